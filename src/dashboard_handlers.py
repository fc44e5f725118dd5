"""
Customer dashboard: own shipments, profile, addresses, payments, tickets
and notifications. Every query is scoped to the signed-in user.
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from fastapi import HTTPException, UploadFile
from starlette.responses import Response

from src.models.api import MessageResponse
from src.models.auth import CurrentUser
from src.models.dashboard import (
    AddressRequest,
    DashboardOverview,
    ProfileUpdate,
    ShipmentListResponse,
    ShipmentStats,
    TicketCreate,
    TicketMessage,
)
from src.utils.csv_export import csv_response, text_download
from src.utils.formatting import (
    format_currency,
    format_date,
    format_status,
    money,
    short_id,
)
from src.utils.listing import ListViewState, Page, ViewStateStore, run_list_view, sort_by_created
from src.utils.logger import api_logger, log_api_request, log_success
from src.utils.supabase import (
    supabase_count,
    supabase_delete,
    supabase_get_row,
    supabase_get_rows,
    supabase_insert,
    supabase_update,
    supabase_upsert,
)
from src.utils.uploads import AVATAR_UPLOAD, store_upload
from src.utils.validation import is_blank


RECENT_LIMIT = 5
NOTIFICATION_LIMIT = 20
TICKET_SHIPMENT_CHOICES = 20
STATUS_ORDER = ["pending", "in_transit", "out_for_delivery", "delivered", "cancelled"]
SHIPMENT_CSV_HEADERS = ["Tracking", "Status", "Service", "From", "To", "Cost", "Date"]

dashboard_views = ViewStateStore()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ===============================================================
# Overview
# ===============================================================
def shipment_stats(shipments: List[dict]) -> ShipmentStats:
    def count(status: str) -> int:
        return sum(1 for s in shipments if s.get("status") == status)

    return ShipmentStats(
        total=len(shipments),
        in_transit=count("in_transit"),
        delivered=count("delivered"),
        pending=count("pending"),
    )


def overview_handler(user: CurrentUser) -> DashboardOverview:
    shipments = supabase_get_rows("shipments", {"user_id": user.id})
    unread = supabase_count("user_notifications", {"user_id": user.id, "is_read": False})
    return DashboardOverview(
        stats=shipment_stats(shipments),
        recent_shipments=shipments[:RECENT_LIMIT],
        unread_notifications=unread,
    )


# ===============================================================
# Shipments
# ===============================================================
def _sort_shipments(rows: List[dict], order: str) -> List[dict]:
    if order == "status":
        rank = {status: i for i, status in enumerate(STATUS_ORDER)}
        return sorted(rows, key=lambda r: rank.get(r.get("status"), len(rank)))
    return sort_by_created(rows, order)


def _shipment_rows(user: CurrentUser, state: ListViewState) -> Tuple[Page, List[dict]]:
    status = state.filters.get("status")
    filters = {"user_id": user.id}
    if status and status != "all":
        filters["status"] = status
    rows = supabase_get_rows("shipments", filters)
    return run_list_view(rows, state, ["tracking_number"], _sort_shipments)


def list_shipments_handler(
    user: CurrentUser,
    page: Optional[int] = None,
    search: Optional[str] = None,
    status: Optional[str] = None,
    sort: Optional[str] = None,
) -> ShipmentListResponse:
    state = dashboard_views.update(
        user.id,
        "shipments",
        page=page,
        search=search,
        filters={"status": status} if status is not None else None,
        sort=sort,
    )
    result, _ = _shipment_rows(user, state)
    return ShipmentListResponse(
        page=result,
        search=state.search,
        status=state.filters.get("status", "all"),
        sort=state.sort,
    )


def export_shipments_handler(user: CurrentUser) -> Response:
    _, rows = _shipment_rows(user, dashboard_views.get(user.id, "shipments"))
    return csv_response(
        "shipments",
        SHIPMENT_CSV_HEADERS,
        [
            [
                r.get("tracking_number"),
                format_status(r.get("status")),
                format_status(r.get("service_type")),
                r.get("origin"),
                r.get("destination"),
                f"{money(r.get('total_cost')):.2f}",
                format_date(r.get("created_at")),
            ]
            for r in rows
        ],
    )


def get_own_shipment(user: CurrentUser, shipment_id: str) -> dict:
    shipment = supabase_get_row("shipments", {"id": shipment_id, "user_id": user.id})
    if not shipment:
        raise HTTPException(status_code=404, detail="Shipment not found")
    return shipment


def shipment_details_handler(user: CurrentUser, shipment_id: str) -> dict:
    shipment = get_own_shipment(user, shipment_id)
    updates = supabase_get_rows("shipment_updates", {"shipment_id": shipment_id}, desc=False)
    return {"shipment": shipment, "updates": updates}


# ===============================================================
# Profile
# ===============================================================
def get_profile_handler(user: CurrentUser) -> dict:
    profile = supabase_get_row("user_profiles", {"user_id": user.id})
    return {**(profile or {"user_id": user.id}), "email": user.email}


def update_profile_handler(user: CurrentUser, req: ProfileUpdate) -> dict:
    if req.full_name is not None and is_blank(req.full_name):
        raise HTTPException(status_code=400, detail="Full name cannot be empty")
    changes = {k: (v.strip() if isinstance(v, str) else v) for k, v in req.model_dump(exclude_none=True).items()}
    changes.update({"user_id": user.id, "updated_at": _now_iso()})
    profile = supabase_upsert("user_profiles", changes, on_conflict="user_id")
    log_success(api_logger, f"Profile updated for {user.id}")
    return {"profile": profile, "message": "Profile updated successfully"}


async def upload_avatar_handler(user: CurrentUser, file: UploadFile) -> dict:
    ext = (file.filename or "avatar.png").rsplit(".", 1)[-1].lower() or "png"
    path = f"{user.id}/avatar-{int(datetime.now().timestamp() * 1000)}.{ext}"
    url = await store_upload(AVATAR_UPLOAD, file, path=path)
    supabase_upsert(
        "user_profiles",
        {"user_id": user.id, "avatar_url": url, "updated_at": _now_iso()},
        on_conflict="user_id",
    )
    return {"avatar_url": url, "message": "Profile picture updated"}


def remove_avatar_handler(user: CurrentUser) -> MessageResponse:
    supabase_update("user_profiles", {"user_id": user.id}, {"avatar_url": None, "updated_at": _now_iso()})
    return MessageResponse(message="Profile picture removed")


# ===============================================================
# Addresses
# ===============================================================
def list_addresses_handler(user: CurrentUser) -> List[dict]:
    return supabase_get_rows("addresses", {"user_id": user.id}, order_by="is_default", desc=True)


def _clear_default(user: CurrentUser) -> None:
    supabase_update("addresses", {"user_id": user.id, "is_default": True}, {"is_default": False})


def save_address_handler(
    user: CurrentUser, req: AddressRequest, address_id: Optional[str] = None
) -> dict:
    """Create or update an address; a new default replaces the old one."""
    for field in ("label", "street_address", "city", "country"):
        if is_blank(getattr(req, field)):
            raise HTTPException(status_code=400, detail=f"{format_status(field)} is required")

    data = {k: (v.strip() if isinstance(v, str) else v) for k, v in req.model_dump().items()}
    if address_id and not supabase_get_row("addresses", {"id": address_id, "user_id": user.id}, columns="id"):
        raise HTTPException(status_code=404, detail="Address not found")
    if req.is_default:
        _clear_default(user)

    if address_id:
        rows = supabase_update("addresses", {"id": address_id, "user_id": user.id}, data)
        address = rows[0] if rows else {**data, "id": address_id}
        message = "Address updated successfully"
    else:
        address = supabase_insert("addresses", {**data, "user_id": user.id})
        message = "Address added successfully"
    return {"address": address, "message": message}


def delete_address_handler(user: CurrentUser, address_id: str) -> MessageResponse:
    address = supabase_get_row("addresses", {"id": address_id, "user_id": user.id})
    if not address:
        raise HTTPException(status_code=404, detail="Address not found")
    if address.get("is_default"):
        raise HTTPException(status_code=400, detail="Default address cannot be deleted")
    supabase_delete("addresses", {"id": address_id, "user_id": user.id})
    return MessageResponse(message="Address deleted")


# ===============================================================
# Payments and invoices
# ===============================================================
def list_payments_handler(user: CurrentUser) -> List[dict]:
    return supabase_get_rows(
        "payments", {"user_id": user.id}, columns="*, shipment:shipments(tracking_number)"
    )


def build_invoice_text(payment: dict, shipment: Optional[dict]) -> str:
    shipment = shipment or {}
    lines = [
        "AMEREX LOGISTICS",
        "INVOICE",
        "=" * 40,
        f"Invoice #: {short_id(payment.get('id'))}",
        f"Date: {format_date(payment.get('created_at'))}",
        f"Status: {format_status(payment.get('status'))}",
        f"Payment Method: {format_status(payment.get('payment_method'))}",
        "",
        f"Tracking #: {shipment.get('tracking_number') or 'N/A'}",
        f"From: {shipment.get('origin') or 'N/A'}",
        f"To: {shipment.get('destination') or 'N/A'}",
        f"Service: {format_status(shipment.get('service_type'))}",
        "-" * 40,
    ]
    if shipment:
        lines += [
            f"Base Price: {format_currency(shipment.get('base_price'))}",
            f"Insurance: {format_currency(shipment.get('insurance_amount'))}",
            f"Discount: -{format_currency(shipment.get('discount_amount'))}",
            f"Tax: {format_currency(shipment.get('tax_amount'))}",
        ]
    lines += [
        f"TOTAL: {format_currency(payment.get('amount'))} {payment.get('currency') or 'USD'}",
        "",
        "Thank you for shipping with Amerex Logistics.",
    ]
    return "\n".join(lines) + "\n"


def invoice_handler(user: CurrentUser, payment_id: str) -> Response:
    payment = supabase_get_row("payments", {"id": payment_id, "user_id": user.id})
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    shipment = None
    if payment.get("shipment_id"):
        shipment = supabase_get_row("shipments", {"id": payment["shipment_id"]})
    return text_download(
        f"Amerex-Invoice-{short_id(payment_id)}.txt", build_invoice_text(payment, shipment)
    )


# ===============================================================
# Support tickets
# ===============================================================
def list_tickets_handler(user: CurrentUser) -> List[dict]:
    return supabase_get_rows("support_tickets", {"user_id": user.id})


def ticket_shipment_choices_handler(user: CurrentUser) -> List[dict]:
    return supabase_get_rows(
        "shipments",
        {"user_id": user.id},
        columns="id, tracking_number",
        limit=TICKET_SHIPMENT_CHOICES,
    )


def create_ticket_handler(user: CurrentUser, req: TicketCreate) -> dict:
    log_api_request(api_logger, "POST", "/dashboard/tickets", {"user_id": user.id})
    if is_blank(req.subject) or is_blank(req.message):
        raise HTTPException(status_code=400, detail="Please enter a subject and a message")
    if req.shipment_id:
        get_own_shipment(user, req.shipment_id)
    ticket = supabase_insert(
        "support_tickets",
        {
            "user_id": user.id,
            "subject": req.subject.strip(),
            "message": req.message.strip(),
            "priority": req.priority.value,
            "shipment_id": req.shipment_id,
            "status": "open",
        },
    )
    return {"ticket": ticket, "message": "Support ticket created successfully"}


def _own_ticket(user: CurrentUser, ticket_id: str) -> dict:
    ticket = supabase_get_row("support_tickets", {"id": ticket_id, "user_id": user.id})
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


def ticket_thread_handler(user: CurrentUser, ticket_id: str) -> dict:
    ticket = _own_ticket(user, ticket_id)
    replies = supabase_get_rows("ticket_replies", {"ticket_id": ticket_id}, desc=False)
    return {"ticket": ticket, "replies": replies}


def reply_ticket_handler(user: CurrentUser, ticket_id: str, req: TicketMessage) -> dict:
    _own_ticket(user, ticket_id)
    if is_blank(req.message):
        raise HTTPException(status_code=400, detail="Please enter a reply message")
    reply = supabase_insert(
        "ticket_replies",
        {"ticket_id": ticket_id, "user_id": user.id, "message": req.message.strip(), "is_staff": False},
    )
    return {"reply": reply, "message": "Reply sent"}


# ===============================================================
# Notifications
# ===============================================================
def list_notifications_handler(user: CurrentUser) -> List[dict]:
    return supabase_get_rows("user_notifications", {"user_id": user.id}, limit=NOTIFICATION_LIMIT)


def mark_notification_read_handler(user: CurrentUser, notification_id: str) -> MessageResponse:
    rows = supabase_update(
        "user_notifications", {"id": notification_id, "user_id": user.id}, {"is_read": True}
    )
    if not rows:
        raise HTTPException(status_code=404, detail="Notification not found")
    return MessageResponse(message="Notification marked as read")


def mark_all_notifications_read_handler(user: CurrentUser) -> MessageResponse:
    supabase_update(
        "user_notifications", {"user_id": user.id, "is_read": False}, {"is_read": True}
    )
    return MessageResponse(message="All notifications marked as read")
