"""
Admin console: dashboard stats, entity list views, approvals and exports.

List views share one pipeline (server filters -> search -> sort -> page)
and keep per-admin view state in `view_store`.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import HTTPException
from starlette.responses import Response

from src.db.payment import get_payment_record, set_payment_status
from src.models.admin import (
    AdminListResponse,
    AdminPage,
    AdminPageResponse,
    AdminRole,
    AdminTable,
    AdminUserCreate,
    AdminUserUpdate,
    DashboardStats,
    NotificationsResponse,
    PendingAction,
    ShipmentEdit,
    TicketReplyRequest,
)
from src.models.api import MessageResponse
from src.models.auth import AdminUser
from src.utils.csv_export import csv_response
from src.utils.formatting import (
    format_date,
    format_relative_time,
    format_status,
    money,
    parse_datetime,
    short_id,
)
from src.utils.listing import (
    ListViewState,
    ViewStateStore,
    run_list_view,
    sort_by_created,
)
from src.utils.logger import admin_logger, log_api_request, log_success
from src.utils.supabase import (
    supabase_count,
    supabase_delete,
    supabase_get_row,
    supabase_get_rows,
    supabase_insert,
    supabase_invoke_function,
    supabase_update,
)


RECENT_LIMIT = 5
TRACKING_UPDATES_LIMIT = 50
USER_DETAIL_SHIPMENTS = 10
ALL = "all"

view_store = ViewStateStore()

# Filled by the scheduler; read by the dashboard endpoint
_stats_cache: Dict[str, Optional[DashboardStats]] = {"latest": None}

PAGE_TABLES = {
    AdminPage.shipments: AdminTable.shipments,
    AdminPage.users: AdminTable.users,
    AdminPage.payments: AdminTable.payments,
    AdminPage.tickets: AdminTable.tickets,
    AdminPage.settings: AdminTable.admin_users,
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _active(value: Optional[str]) -> Optional[str]:
    """Filter value, or None when the filter is unset / 'all'."""
    if value is None or value == "" or value == ALL:
        return None
    return value


# ===============================================================
# Dashboard
# ===============================================================
def _revenue() -> float:
    rows = supabase_get_rows("payments", {"status": "paid"}, columns="amount", order_by=None)
    return money(sum(float(r.get("amount") or 0) for r in rows))


async def compute_dashboard_stats() -> DashboardStats:
    """Independent count queries issued in parallel."""
    results = await asyncio.gather(
        asyncio.to_thread(supabase_count, "shipments"),
        asyncio.to_thread(supabase_count, "shipments", {"admin_approved": False}),
        asyncio.to_thread(supabase_count, "shipments", {"status": "in_transit"}),
        asyncio.to_thread(supabase_count, "user_profiles"),
        asyncio.to_thread(supabase_count, "support_tickets", {"status": "open"}),
        asyncio.to_thread(supabase_count, "payments", {"status": "pending"}),
        asyncio.to_thread(_revenue),
    )
    return DashboardStats(
        total_shipments=results[0],
        pending_approvals=results[1],
        in_transit=results[2],
        total_users=results[3],
        open_tickets=results[4],
        pending_payments=results[5],
        total_revenue=results[6],
        refreshed_at=_now_iso(),
    )


async def refresh_dashboard_stats() -> DashboardStats:
    stats = await compute_dashboard_stats()
    _stats_cache["latest"] = stats
    return stats


async def dashboard_stats_handler(refresh: bool = False) -> DashboardStats:
    cached = _stats_cache["latest"]
    if cached is not None and not refresh:
        return cached
    return await refresh_dashboard_stats()


def clear_stats_cache() -> None:
    _stats_cache["latest"] = None


def recent_shipments_handler() -> List[dict]:
    return supabase_get_rows("shipments", limit=RECENT_LIMIT)


def _pending_shipments() -> List[PendingAction]:
    rows = supabase_get_rows("shipments", {"admin_approved": False}, limit=RECENT_LIMIT)
    return [
        PendingAction(
            kind="shipment_approval",
            id=str(r["id"]),
            title=f"Approve shipment {r.get('tracking_number') or short_id(r['id'])}",
            subtitle=f"{r.get('sender_name') or 'Unknown'} -> {r.get('recipient_name') or 'Unknown'}",
            created_at=r.get("created_at"),
            time_ago=format_relative_time(r.get("created_at")),
        )
        for r in rows
    ]


def _pending_payments() -> List[PendingAction]:
    rows = supabase_get_rows("payments", {"status": "pending"}, limit=RECENT_LIMIT)
    return [
        PendingAction(
            kind="payment",
            id=str(r["id"]),
            title=f"Verify payment {short_id(r['id'])}",
            subtitle=f"${money(r.get('amount')):.2f} via {format_status(r.get('payment_method'))}",
            created_at=r.get("created_at"),
            time_ago=format_relative_time(r.get("created_at")),
        )
        for r in rows
    ]


def _open_tickets() -> List[PendingAction]:
    rows = supabase_get_rows("support_tickets", {"status": "open"}, limit=RECENT_LIMIT)
    return [
        PendingAction(
            kind="ticket",
            id=str(r["id"]),
            title=r.get("subject") or "Support ticket",
            subtitle=f"Priority: {format_status(r.get('priority'))}",
            created_at=r.get("created_at"),
            time_ago=format_relative_time(r.get("created_at")),
        )
        for r in rows
    ]


def _newest_first(items: List[PendingAction]) -> List[PendingAction]:
    return sorted(items, key=lambda a: str(a.created_at or ""), reverse=True)


def pending_actions_handler() -> List[PendingAction]:
    return _newest_first(_pending_shipments() + _pending_payments() + _open_tickets())


def notifications_handler() -> NotificationsResponse:
    items = _newest_first(_pending_shipments() + _open_tickets())
    return NotificationsResponse(count=len(items), items=items)


# ===============================================================
# Shipments
# ===============================================================
SHIPMENT_SEARCH_FIELDS = ["tracking_number", "sender_name", "recipient_name"]
SHIPMENT_CSV_HEADERS = [
    "Tracking", "Sender", "Recipient", "From", "To",
    "Service", "Status", "Cost", "Approved", "Created",
]


def _shipment_server_filters(state: ListViewState) -> dict:
    filters: Dict[str, Any] = {}
    status = _active(state.filters.get("status"))
    if status:
        filters["status"] = status
    approval = _active(state.filters.get("approval"))
    if approval == "approved":
        filters["admin_approved"] = True
    elif approval == "pending":
        filters["admin_approved"] = False
    date_range = {}
    if _active(state.filters.get("date_from")):
        date_range["gte"] = state.filters["date_from"]
    if _active(state.filters.get("date_to")):
        date_range["lte"] = f"{state.filters['date_to']}T23:59:59"
    if date_range:
        filters["created_at"] = date_range
    return filters


def _shipment_rows(state: ListViewState) -> Tuple[Any, List[dict]]:
    rows = supabase_get_rows("shipments", _shipment_server_filters(state))
    return run_list_view(rows, state, SHIPMENT_SEARCH_FIELDS, sort_by_created)


def list_shipments_handler(admin: AdminUser, state: ListViewState) -> AdminListResponse:
    page, _ = _shipment_rows(state)
    return AdminListResponse(page=page, filters=state.filters, search=state.search, sort=state.sort)


def export_shipments_handler(admin: AdminUser, state: ListViewState) -> Response:
    _, rows = _shipment_rows(state)
    return csv_response(
        "shipments",
        SHIPMENT_CSV_HEADERS,
        [
            [
                r.get("tracking_number"),
                r.get("sender_name"),
                r.get("recipient_name"),
                r.get("origin"),
                r.get("destination"),
                format_status(r.get("service_type")),
                format_status(r.get("status")),
                f"{money(r.get('total_cost')):.2f}",
                "Yes" if r.get("admin_approved") else "No",
                format_date(r.get("created_at")),
            ]
            for r in rows
        ],
    )


def get_shipment_handler(shipment_id: str) -> dict:
    shipment = supabase_get_row("shipments", {"id": shipment_id})
    if not shipment:
        raise HTTPException(status_code=404, detail="Shipment not found")
    updates = supabase_get_rows("shipment_updates", {"shipment_id": shipment_id})
    return {"shipment": shipment, "updates": updates}


def edit_shipment_handler(shipment_id: str, edit: ShipmentEdit, admin: AdminUser) -> dict:
    log_api_request(admin_logger, "PUT", f"/admin/shipments/{shipment_id}", edit.model_dump(exclude_none=True))
    shipment = supabase_get_row("shipments", {"id": shipment_id})
    if not shipment:
        raise HTTPException(status_code=404, detail="Shipment not found")

    changes: Dict[str, Any] = {}
    if edit.status is not None:
        changes["status"] = edit.status.value
    if edit.current_location is not None:
        changes["current_location"] = edit.current_location.strip()
    if edit.admin_approved is not None:
        changes["admin_approved"] = edit.admin_approved

    if edit.add_update:
        status = changes.get("status") or shipment.get("status")
        location = changes.get("current_location") or shipment.get("current_location")
        if not status or not location:
            raise HTTPException(
                status_code=400, detail="A tracking update needs a status and a location"
            )

    if changes:
        changes["updated_at"] = _now_iso()
        supabase_update("shipments", {"id": shipment_id}, changes)

    update = None
    if edit.add_update:
        update = supabase_insert(
            "shipment_updates",
            {
                "shipment_id": shipment_id,
                "status": status,
                "location": location,
                "message": (edit.update_message or "").strip() or f"Status updated to {format_status(status)}",
                "created_at": edit.update_timestamp or _now_iso(),
            },
        )

    clear_stats_cache()
    log_success(admin_logger, f"Shipment {shipment_id} updated by {admin.user_id}")
    return {"shipment": {**shipment, **changes}, "update": update, "message": "Shipment updated successfully"}


def approve_shipment_handler(shipment_id: str, admin: AdminUser) -> MessageResponse:
    rows = supabase_update(
        "shipments",
        {"id": shipment_id},
        {"admin_approved": True, "updated_at": _now_iso()},
    )
    if not rows:
        raise HTTPException(status_code=404, detail="Shipment not found")
    clear_stats_cache()
    log_success(admin_logger, f"Shipment {shipment_id} approved by {admin.user_id}")
    return MessageResponse(message="Shipment approved successfully")


# ===============================================================
# Users
# ===============================================================
USER_SEARCH_FIELDS = ["full_name", "user_id"]
USER_CSV_HEADERS = ["User ID", "Full Name", "Phone", "Company", "Shipments", "Total Spent", "Joined"]


def _sort_users(rows: List[dict], order: str) -> List[dict]:
    if order == "most_shipments":
        return sorted(rows, key=lambda r: r.get("shipment_count", 0), reverse=True)
    return sort_by_created(rows, order)


def _user_rows(state: ListViewState) -> Tuple[Any, List[dict]]:
    profiles = supabase_get_rows("user_profiles")
    shipments = supabase_get_rows(
        "shipments", columns="user_id, total_cost", order_by=None
    )
    counts: Dict[str, int] = {}
    spent: Dict[str, float] = {}
    for s in shipments:
        uid = s.get("user_id")
        counts[uid] = counts.get(uid, 0) + 1
        spent[uid] = spent.get(uid, 0.0) + float(s.get("total_cost") or 0)
    enriched = [
        {
            **p,
            "shipment_count": counts.get(p.get("user_id"), 0),
            "total_spent": money(spent.get(p.get("user_id"), 0.0)),
        }
        for p in profiles
    ]
    return run_list_view(enriched, state, USER_SEARCH_FIELDS, _sort_users)


def list_users_handler(admin: AdminUser, state: ListViewState) -> AdminListResponse:
    page, _ = _user_rows(state)
    return AdminListResponse(page=page, filters=state.filters, search=state.search, sort=state.sort)


def export_users_handler(admin: AdminUser, state: ListViewState) -> Response:
    _, rows = _user_rows(state)
    return csv_response(
        "users",
        USER_CSV_HEADERS,
        [
            [
                r.get("user_id"),
                r.get("full_name"),
                r.get("phone"),
                r.get("company"),
                r.get("shipment_count"),
                f"{r.get('total_spent', 0):.2f}",
                format_date(r.get("created_at")),
            ]
            for r in rows
        ],
    )


def user_details_handler(user_id: str) -> dict:
    profile = supabase_get_row("user_profiles", {"user_id": user_id})
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    shipments = supabase_get_rows("shipments", {"user_id": user_id}, limit=USER_DETAIL_SHIPMENTS)
    return {"profile": profile, "shipments": shipments}


# ===============================================================
# Tracking updates (read-only, append-only log)
# ===============================================================
def list_tracking_updates_handler() -> List[dict]:
    return supabase_get_rows(
        "shipment_updates",
        columns="*, shipment:shipments(tracking_number)",
        limit=TRACKING_UPDATES_LIMIT,
    )


# ===============================================================
# Payments
# ===============================================================
PAYMENT_SEARCH_FIELDS = ["id", "shipment.tracking_number"]
PAYMENT_CSV_HEADERS = ["Invoice #", "Tracking #", "Amount", "Method", "Status", "Created", "Paid At"]


def _payment_rows(state: ListViewState) -> Tuple[Any, List[dict]]:
    filters = {
        "status": _active(state.filters.get("status")),
        "payment_method": _active(state.filters.get("method")),
    }
    rows = supabase_get_rows(
        "payments", filters, columns="*, shipment:shipments(tracking_number)"
    )
    return run_list_view(rows, state, PAYMENT_SEARCH_FIELDS, sort_by_created)


def payment_stats(now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    rows = supabase_get_rows("payments", columns="amount, status, paid_at", order_by=None)
    total_revenue = 0.0
    pending_amount = 0.0
    paid_this_month = 0.0
    for r in rows:
        amount = float(r.get("amount") or 0)
        if r.get("status") == "paid":
            total_revenue += amount
            paid_at = parse_datetime(r.get("paid_at"))
            if paid_at and paid_at.year == now.year and paid_at.month == now.month:
                paid_this_month += amount
        elif r.get("status") == "pending":
            pending_amount += amount
    return {
        "total_revenue": money(total_revenue),
        "pending_amount": money(pending_amount),
        "paid_this_month": money(paid_this_month),
    }


def list_payments_handler(admin: AdminUser, state: ListViewState) -> AdminListResponse:
    page, _ = _payment_rows(state)
    return AdminListResponse(
        page=page,
        filters=state.filters,
        search=state.search,
        sort=state.sort,
        stats=payment_stats(),
    )


def export_payments_handler(admin: AdminUser, state: ListViewState) -> Response:
    _, rows = _payment_rows(state)
    return csv_response(
        "payments",
        PAYMENT_CSV_HEADERS,
        [
            [
                short_id(r.get("id")),
                (r.get("shipment") or {}).get("tracking_number") or "N/A",
                f"{money(r.get('amount')):.2f}",
                format_status(r.get("payment_method")),
                format_status(r.get("status")),
                format_date(r.get("created_at")),
                format_date(r.get("paid_at")) if r.get("paid_at") else "",
            ]
            for r in rows
        ],
    )


def payment_details_handler(payment_id: str) -> dict:
    return get_payment_record(payment_id)


def approve_payment_handler(payment_id: str, admin: AdminUser, note: Optional[str] = None) -> dict:
    payment = set_payment_status(payment_id, "paid", note)
    clear_stats_cache()
    log_success(admin_logger, f"Payment {payment_id} approved by {admin.user_id}")
    return {"payment": payment, "message": "Payment approved successfully"}


def reject_payment_handler(payment_id: str, admin: AdminUser, note: Optional[str] = None) -> dict:
    payment = set_payment_status(payment_id, "failed", note)
    clear_stats_cache()
    admin_logger.info(f"💳 Payment {payment_id} rejected by {admin.user_id}")
    return {"payment": payment, "message": "Payment rejected"}


# ===============================================================
# Support tickets
# ===============================================================
TICKET_SEARCH_FIELDS = ["id", "subject"]
TICKET_CSV_HEADERS = ["Ticket #", "Subject", "Priority", "Status", "Created", "Updated"]


def _ticket_rows(state: ListViewState) -> Tuple[Any, List[dict]]:
    filters = {
        "status": _active(state.filters.get("status")),
        "priority": _active(state.filters.get("priority")),
    }
    rows = supabase_get_rows("support_tickets", filters)
    return run_list_view(rows, state, TICKET_SEARCH_FIELDS, sort_by_created)


def ticket_stats(now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    rows = supabase_get_rows("support_tickets", columns="status, updated_at", order_by=None)
    resolved_today = 0
    for r in rows:
        updated = parse_datetime(r.get("updated_at"))
        if r.get("status") == "resolved" and updated and updated.date() == now.date():
            resolved_today += 1
    return {
        "open": sum(1 for r in rows if r.get("status") == "open"),
        "in_progress": sum(1 for r in rows if r.get("status") == "in_progress"),
        "resolved_today": resolved_today,
    }


def list_tickets_handler(admin: AdminUser, state: ListViewState) -> AdminListResponse:
    page, _ = _ticket_rows(state)
    return AdminListResponse(
        page=page,
        filters=state.filters,
        search=state.search,
        sort=state.sort,
        stats=ticket_stats(),
    )


def export_tickets_handler(admin: AdminUser, state: ListViewState) -> Response:
    _, rows = _ticket_rows(state)
    return csv_response(
        "tickets",
        TICKET_CSV_HEADERS,
        [
            [
                short_id(r.get("id")),
                r.get("subject"),
                format_status(r.get("priority")),
                format_status(r.get("status")),
                format_date(r.get("created_at")),
                format_date(r.get("updated_at")),
            ]
            for r in rows
        ],
    )


def ticket_thread_handler(ticket_id: str) -> dict:
    ticket = supabase_get_row("support_tickets", {"id": ticket_id})
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    replies = supabase_get_rows("ticket_replies", {"ticket_id": ticket_id}, desc=False)
    return {"ticket": ticket, "replies": replies}


def reply_ticket_handler(ticket_id: str, req: TicketReplyRequest, admin: AdminUser) -> dict:
    message = (req.message or "").strip()
    if not message:
        raise HTTPException(status_code=400, detail="Please enter a reply message")
    if not supabase_get_row("support_tickets", {"id": ticket_id}, columns="id"):
        raise HTTPException(status_code=404, detail="Ticket not found")

    reply = supabase_insert(
        "ticket_replies",
        {
            "ticket_id": ticket_id,
            "user_id": admin.user_id,
            "message": message,
            "is_staff": True,
        },
    )
    changes = {k: v for k, v in {"status": req.status, "priority": req.priority}.items() if v}
    if changes:
        changes["updated_at"] = _now_iso()
        supabase_update("support_tickets", {"id": ticket_id}, changes)
        clear_stats_cache()
    return {"reply": reply, "message": "Reply sent successfully"}


# ===============================================================
# Admin users (settings page)
# ===============================================================
ADMIN_USER_SEARCH_FIELDS = ["email", "role"]
ADMIN_USER_CSV_HEADERS = ["Email", "Role", "Status", "Created"]


def _admin_user_rows(state: ListViewState) -> Tuple[Any, List[dict]]:
    rows = supabase_get_rows("admin_users", {"role": _active(state.filters.get("role"))})
    return run_list_view(rows, state, ADMIN_USER_SEARCH_FIELDS, sort_by_created)


def list_admin_users_handler(admin: AdminUser, state: ListViewState) -> AdminListResponse:
    page, _ = _admin_user_rows(state)
    return AdminListResponse(page=page, filters=state.filters, search=state.search, sort=state.sort)


def export_admin_users_handler(admin: AdminUser, state: ListViewState) -> Response:
    _, rows = _admin_user_rows(state)
    return csv_response(
        "admin-users",
        ADMIN_USER_CSV_HEADERS,
        [
            [r.get("email"), format_status(r.get("role")), format_status(r.get("status")), format_date(r.get("created_at"))]
            for r in rows
        ],
    )


def create_admin_user_handler(req: AdminUserCreate, admin: AdminUser) -> MessageResponse:
    if admin.role != AdminRole.super_admin.value and not admin.permissions.get("manage_settings"):
        raise HTTPException(status_code=403, detail="You do not have permission to add admin users")
    try:
        result = supabase_invoke_function(
            "create-admin-user",
            {
                "email": req.email.strip().lower(),
                "role": req.role.value,
                "permissions": req.permissions.model_dump(),
            },
        )
    except Exception as e:
        admin_logger.exception("create-admin-user failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create admin user")
    if isinstance(result, dict) and result.get("error"):
        raise HTTPException(status_code=400, detail=str(result["error"]))
    log_success(admin_logger, f"Admin user {req.email} created by {admin.user_id}")
    return MessageResponse(message="Admin user created successfully")


def update_admin_user_handler(admin_user_id: str, req: AdminUserUpdate, admin: AdminUser) -> MessageResponse:
    changes: Dict[str, Any] = {}
    if req.role is not None:
        changes["role"] = req.role.value
    if req.status is not None:
        if req.status not in ("active", "inactive"):
            raise HTTPException(status_code=400, detail="Status must be active or inactive")
        changes["status"] = req.status
    if req.permissions is not None:
        changes["permissions"] = req.permissions.model_dump()
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")
    rows = supabase_update("admin_users", {"id": admin_user_id}, changes)
    if not rows:
        raise HTTPException(status_code=404, detail="Admin user not found")
    return MessageResponse(message="Admin user updated successfully")


def delete_admin_user_handler(admin_user_id: str, admin: AdminUser) -> MessageResponse:
    target = supabase_get_row("admin_users", {"id": admin_user_id})
    if not target:
        raise HTTPException(status_code=404, detail="Admin user not found")
    if target.get("role") == AdminRole.super_admin.value:
        raise HTTPException(status_code=400, detail="Super admin accounts cannot be deleted")
    supabase_delete("admin_users", {"id": admin_user_id})
    admin_logger.info(f"🛡️ Admin user {admin_user_id} removed by {admin.user_id}")
    return MessageResponse(message="Admin user deleted")


# ===============================================================
# Page dispatch
# ===============================================================
TABLE_LISTERS: Dict[AdminTable, Callable[[AdminUser, ListViewState], AdminListResponse]] = {
    AdminTable.shipments: list_shipments_handler,
    AdminTable.users: list_users_handler,
    AdminTable.payments: list_payments_handler,
    AdminTable.tickets: list_tickets_handler,
    AdminTable.admin_users: list_admin_users_handler,
}

TABLE_EXPORTERS: Dict[AdminTable, Callable[[AdminUser, ListViewState], Response]] = {
    AdminTable.shipments: export_shipments_handler,
    AdminTable.users: export_users_handler,
    AdminTable.payments: export_payments_handler,
    AdminTable.tickets: export_tickets_handler,
    AdminTable.admin_users: export_admin_users_handler,
}


def current_view(admin: AdminUser, table: AdminTable) -> ListViewState:
    return view_store.get(admin.user_id, table.value)


def list_table(admin: AdminUser, table: AdminTable, state: ListViewState) -> AdminListResponse:
    return TABLE_LISTERS[table](admin, state)


def export_table(admin: AdminUser, table: AdminTable) -> Response:
    log_api_request(admin_logger, "GET", f"/admin/{table.value}/export")
    return TABLE_EXPORTERS[table](admin, current_view(admin, table))


async def load_page_handler(page: AdminPage, admin: AdminUser) -> AdminPageResponse:
    """
    Switch the console to a page. The page's table restarts at page 1 and
    keeps its filters.
    """
    log_api_request(admin_logger, "GET", f"/admin/pages/{page.value}")
    table = PAGE_TABLES.get(page)
    state = view_store.reset_page(admin.user_id, table.value) if table else None

    if page == AdminPage.dashboard:
        stats = await dashboard_stats_handler()
        data = {
            "stats": stats.model_dump(),
            "recent_shipments": recent_shipments_handler(),
            "pending_actions": [a.model_dump() for a in pending_actions_handler()],
        }
    elif page == AdminPage.tracking:
        data = {"updates": list_tracking_updates_handler()}
    elif page in (
        AdminPage.shipments,
        AdminPage.users,
        AdminPage.payments,
        AdminPage.tickets,
        AdminPage.settings,
    ):
        data = list_table(admin, table, state).model_dump()
    else:
        raise ValueError(f"Unknown admin page: {page}")
    return AdminPageResponse(page=page, data=data)
