from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from src.admin_handlers import (
    approve_payment_handler,
    approve_shipment_handler,
    create_admin_user_handler,
    dashboard_stats_handler,
    delete_admin_user_handler,
    edit_shipment_handler,
    export_table,
    get_shipment_handler,
    list_table,
    list_tracking_updates_handler,
    load_page_handler,
    notifications_handler,
    payment_details_handler,
    pending_actions_handler,
    recent_shipments_handler,
    reject_payment_handler,
    reply_ticket_handler,
    ticket_thread_handler,
    update_admin_user_handler,
    user_details_handler,
    view_store,
)
from src.models.admin import (
    AdminListResponse,
    AdminPage,
    AdminPageResponse,
    AdminTable,
    AdminUserCreate,
    AdminUserUpdate,
    DashboardStats,
    NotificationsResponse,
    PaymentDecision,
    PendingAction,
    ShipmentEdit,
    TicketReplyRequest,
)
from src.models.api import MessageResponse
from src.models.auth import AdminUser
from src.utils.auth import require_admin
from src.utils.listing import ListViewState
from src.utils.safe_handler import safe_handler

router = APIRouter()


def _view(
    admin: AdminUser,
    table: AdminTable,
    page: Optional[int],
    search: Optional[str],
    sort: Optional[str],
    filters: Dict[str, Optional[str]],
) -> ListViewState:
    """Merge query params into the admin's stored view; absent params keep their value."""
    changed = {k: v for k, v in filters.items() if v is not None}
    return view_store.update(
        admin.user_id,
        table.value,
        page=page,
        search=search,
        filters=changed or None,
        sort=sort,
    )


# ===============================================================
# DASHBOARD
# ===============================================================
@router.get("/pages/{page}", response_model=AdminPageResponse, summary="Open an admin page")
@safe_handler()
async def open_page(page: AdminPage, admin: AdminUser = Depends(require_admin)):
    return await load_page_handler(page, admin)


@router.get("/stats", response_model=DashboardStats, summary="Dashboard statistics")
@safe_handler()
async def stats(
    refresh: bool = Query(False, description="Bypass the 30s cache"),
    admin: AdminUser = Depends(require_admin),
):
    return await dashboard_stats_handler(refresh=refresh)


@router.get("/recent-shipments", summary="Latest shipments")
@safe_handler()
def recent_shipments(admin: AdminUser = Depends(require_admin)):
    return recent_shipments_handler()


@router.get("/pending-actions", response_model=List[PendingAction], summary="Items awaiting an operator")
@safe_handler()
def pending_actions(admin: AdminUser = Depends(require_admin)):
    return pending_actions_handler()


@router.get("/notifications", response_model=NotificationsResponse, summary="Admin notifications")
@safe_handler()
def notifications(admin: AdminUser = Depends(require_admin)):
    return notifications_handler()


@router.post("/{table}/clear-filters", response_model=ListViewState, summary="Reset a list view")
@safe_handler()
def clear_filters(table: AdminTable, admin: AdminUser = Depends(require_admin)):
    return view_store.clear_filters(admin.user_id, table.value)


@router.get("/{table}/export", summary="Download the filtered list as CSV")
@safe_handler()
def export(table: AdminTable, admin: AdminUser = Depends(require_admin)):
    return export_table(admin, table)


# ===============================================================
# SHIPMENTS
# ===============================================================
@router.get("/shipments", response_model=AdminListResponse, summary="List shipments")
@safe_handler()
def list_shipments(
    page: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, description="Tracking number, sender or recipient"),
    sort: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    approval: Optional[str] = Query(None, description="all, approved or pending"),
    date_from: Optional[str] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, description="YYYY-MM-DD"),
    admin: AdminUser = Depends(require_admin),
):
    state = _view(
        admin,
        AdminTable.shipments,
        page,
        search,
        sort,
        {"status": status, "approval": approval, "date_from": date_from, "date_to": date_to},
    )
    return list_table(admin, AdminTable.shipments, state)


@router.get("/shipments/{shipment_id}", summary="Shipment with its tracking updates")
@safe_handler()
def get_shipment(shipment_id: str, admin: AdminUser = Depends(require_admin)):
    return get_shipment_handler(shipment_id)


@router.put("/shipments/{shipment_id}", summary="Edit a shipment")
@safe_handler()
def edit_shipment(shipment_id: str, edit: ShipmentEdit, admin: AdminUser = Depends(require_admin)):
    return edit_shipment_handler(shipment_id, edit, admin)


@router.post("/shipments/{shipment_id}/approve", response_model=MessageResponse, summary="Approve a shipment")
@safe_handler()
def approve_shipment(shipment_id: str, admin: AdminUser = Depends(require_admin)):
    return approve_shipment_handler(shipment_id, admin)


# ===============================================================
# USERS
# ===============================================================
@router.get("/users", response_model=AdminListResponse, summary="List customers")
@safe_handler()
def list_users(
    page: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, description="Name or user id"),
    sort: Optional[str] = Query(None, description="newest, oldest or most_shipments"),
    admin: AdminUser = Depends(require_admin),
):
    state = _view(admin, AdminTable.users, page, search, sort, {})
    return list_table(admin, AdminTable.users, state)


@router.get("/users/{user_id}", summary="Customer profile and latest shipments")
@safe_handler()
def user_details(user_id: str, admin: AdminUser = Depends(require_admin)):
    return user_details_handler(user_id)


# ===============================================================
# TRACKING UPDATES
# ===============================================================
@router.get("/tracking-updates", summary="Latest tracking updates")
@safe_handler()
def tracking_updates(admin: AdminUser = Depends(require_admin)):
    return list_tracking_updates_handler()


# ===============================================================
# PAYMENTS
# ===============================================================
@router.get("/payments", response_model=AdminListResponse, summary="List payments")
@safe_handler()
def list_payments(
    page: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, description="Payment id or tracking number"),
    sort: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    method: Optional[str] = Query(None),
    admin: AdminUser = Depends(require_admin),
):
    state = _view(admin, AdminTable.payments, page, search, sort, {"status": status, "method": method})
    return list_table(admin, AdminTable.payments, state)


@router.get("/payments/{payment_id}", summary="Payment details")
@safe_handler()
def payment_details(payment_id: str, admin: AdminUser = Depends(require_admin)):
    return payment_details_handler(payment_id)


@router.post("/payments/{payment_id}/approve", summary="Confirm a pending payment")
@safe_handler()
def approve_payment(
    payment_id: str,
    decision: Optional[PaymentDecision] = None,
    admin: AdminUser = Depends(require_admin),
):
    return approve_payment_handler(payment_id, admin, decision.note if decision else None)


@router.post("/payments/{payment_id}/reject", summary="Reject a pending payment")
@safe_handler()
def reject_payment(
    payment_id: str,
    decision: Optional[PaymentDecision] = None,
    admin: AdminUser = Depends(require_admin),
):
    return reject_payment_handler(payment_id, admin, decision.note if decision else None)


# ===============================================================
# TICKETS
# ===============================================================
@router.get("/tickets", response_model=AdminListResponse, summary="List support tickets")
@safe_handler()
def list_tickets(
    page: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, description="Ticket id or subject"),
    sort: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    admin: AdminUser = Depends(require_admin),
):
    state = _view(admin, AdminTable.tickets, page, search, sort, {"status": status, "priority": priority})
    return list_table(admin, AdminTable.tickets, state)


@router.get("/tickets/{ticket_id}", summary="Ticket with replies")
@safe_handler()
def ticket_thread(ticket_id: str, admin: AdminUser = Depends(require_admin)):
    return ticket_thread_handler(ticket_id)


@router.post("/tickets/{ticket_id}/reply", summary="Staff reply")
@safe_handler()
def reply_ticket(ticket_id: str, req: TicketReplyRequest, admin: AdminUser = Depends(require_admin)):
    return reply_ticket_handler(ticket_id, req, admin)


# ===============================================================
# ADMIN USERS
# ===============================================================
@router.get("/admin_users", response_model=AdminListResponse, summary="List admin users")
@safe_handler()
def list_admin_users(
    page: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    admin: AdminUser = Depends(require_admin),
):
    state = _view(admin, AdminTable.admin_users, page, search, sort, {"role": role})
    return list_table(admin, AdminTable.admin_users, state)


@router.post("/admin_users", response_model=MessageResponse, summary="Invite an admin user")
@safe_handler()
def create_admin_user(req: AdminUserCreate, admin: AdminUser = Depends(require_admin)):
    return create_admin_user_handler(req, admin)


@router.put("/admin_users/{admin_user_id}", response_model=MessageResponse, summary="Update an admin user")
@safe_handler()
def update_admin_user(
    admin_user_id: str, req: AdminUserUpdate, admin: AdminUser = Depends(require_admin)
):
    return update_admin_user_handler(admin_user_id, req, admin)


@router.delete("/admin_users/{admin_user_id}", response_model=MessageResponse, summary="Remove an admin user")
@safe_handler()
def delete_admin_user(admin_user_id: str, admin: AdminUser = Depends(require_admin)):
    return delete_admin_user_handler(admin_user_id, admin)
