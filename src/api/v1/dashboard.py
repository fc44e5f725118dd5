from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from src.dashboard_handlers import (
    create_ticket_handler,
    delete_address_handler,
    export_shipments_handler,
    get_profile_handler,
    invoice_handler,
    list_addresses_handler,
    list_notifications_handler,
    list_payments_handler,
    list_shipments_handler,
    list_tickets_handler,
    mark_all_notifications_read_handler,
    mark_notification_read_handler,
    overview_handler,
    remove_avatar_handler,
    reply_ticket_handler,
    save_address_handler,
    shipment_details_handler,
    ticket_shipment_choices_handler,
    ticket_thread_handler,
    update_profile_handler,
    upload_avatar_handler,
)
from src.models.api import MessageResponse
from src.models.auth import CurrentUser
from src.models.dashboard import (
    AddressRequest,
    DashboardOverview,
    ProfileUpdate,
    ShipmentListResponse,
    TicketCreate,
    TicketMessage,
)
from src.utils.auth import get_current_user
from src.utils.safe_handler import safe_handler

router = APIRouter()


@router.get("/overview", response_model=DashboardOverview, summary="Stats and recent shipments")
@safe_handler()
def overview(user: CurrentUser = Depends(get_current_user)):
    return overview_handler(user)


# ===============================================================
# SHIPMENTS
# ===============================================================
@router.get("/shipments", response_model=ShipmentListResponse, summary="My shipments")
@safe_handler()
def shipments(
    page: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="'all' or a shipment status"),
    sort: Optional[str] = Query(None, description="newest, oldest or status"),
    user: CurrentUser = Depends(get_current_user),
):
    return list_shipments_handler(user, page, search, status, sort)


@router.get("/shipments/export", summary="Export my shipments as CSV")
@safe_handler()
def export_shipments(user: CurrentUser = Depends(get_current_user)):
    return export_shipments_handler(user)


@router.get("/shipments/{shipment_id}", summary="Shipment details with tracking history")
@safe_handler()
def shipment_details(shipment_id: str, user: CurrentUser = Depends(get_current_user)):
    return shipment_details_handler(user, shipment_id)


# ===============================================================
# PROFILE
# ===============================================================
@router.get("/profile", summary="My profile")
@safe_handler()
def profile(user: CurrentUser = Depends(get_current_user)):
    return get_profile_handler(user)


@router.put("/profile", summary="Update my profile")
@safe_handler()
def update_profile(req: ProfileUpdate, user: CurrentUser = Depends(get_current_user)):
    return update_profile_handler(user, req)


@router.post("/profile/avatar", summary="Upload a profile picture")
@safe_handler()
async def upload_avatar(
    file: UploadFile = File(...), user: CurrentUser = Depends(get_current_user)
):
    return await upload_avatar_handler(user, file)


@router.delete("/profile/avatar", response_model=MessageResponse, summary="Remove my profile picture")
@safe_handler()
def remove_avatar(user: CurrentUser = Depends(get_current_user)):
    return remove_avatar_handler(user)


# ===============================================================
# ADDRESSES
# ===============================================================
@router.get("/addresses", summary="Saved addresses")
@safe_handler()
def addresses(user: CurrentUser = Depends(get_current_user)):
    return list_addresses_handler(user)


@router.post("/addresses", summary="Add an address")
@safe_handler()
def add_address(req: AddressRequest, user: CurrentUser = Depends(get_current_user)):
    return save_address_handler(user, req)


@router.put("/addresses/{address_id}", summary="Edit an address")
@safe_handler()
def edit_address(
    address_id: str, req: AddressRequest, user: CurrentUser = Depends(get_current_user)
):
    return save_address_handler(user, req, address_id)


@router.delete("/addresses/{address_id}", response_model=MessageResponse, summary="Delete an address")
@safe_handler()
def delete_address(address_id: str, user: CurrentUser = Depends(get_current_user)):
    return delete_address_handler(user, address_id)


# ===============================================================
# PAYMENTS
# ===============================================================
@router.get("/payments", summary="My payments")
@safe_handler()
def payments(user: CurrentUser = Depends(get_current_user)):
    return list_payments_handler(user)


@router.get("/payments/{payment_id}/invoice", summary="Download an invoice")
@safe_handler()
def invoice(payment_id: str, user: CurrentUser = Depends(get_current_user)):
    return invoice_handler(user, payment_id)


# ===============================================================
# SUPPORT TICKETS
# ===============================================================
@router.get("/tickets", summary="My support tickets")
@safe_handler()
def tickets(user: CurrentUser = Depends(get_current_user)):
    return list_tickets_handler(user)


@router.get("/tickets/shipment-choices", summary="Shipments a ticket can refer to")
@safe_handler()
def ticket_shipment_choices(user: CurrentUser = Depends(get_current_user)):
    return ticket_shipment_choices_handler(user)


@router.post("/tickets", summary="Open a support ticket")
@safe_handler()
def create_ticket(req: TicketCreate, user: CurrentUser = Depends(get_current_user)):
    return create_ticket_handler(user, req)


@router.get("/tickets/{ticket_id}", summary="Ticket with its messages")
@safe_handler()
def ticket_thread(ticket_id: str, user: CurrentUser = Depends(get_current_user)):
    return ticket_thread_handler(user, ticket_id)


@router.post("/tickets/{ticket_id}/messages", summary="Reply to a ticket")
@safe_handler()
def reply_ticket(
    ticket_id: str, req: TicketMessage, user: CurrentUser = Depends(get_current_user)
):
    return reply_ticket_handler(user, ticket_id, req)


# ===============================================================
# NOTIFICATIONS
# ===============================================================
@router.get("/notifications", summary="Latest notifications")
@safe_handler()
def notifications(user: CurrentUser = Depends(get_current_user)):
    return list_notifications_handler(user)


@router.post("/notifications/read-all", response_model=MessageResponse, summary="Mark all notifications read")
@safe_handler()
def mark_all_read(user: CurrentUser = Depends(get_current_user)):
    return mark_all_notifications_read_handler(user)


@router.post("/notifications/{notification_id}/read", response_model=MessageResponse, summary="Mark a notification read")
@safe_handler()
def mark_read(notification_id: str, user: CurrentUser = Depends(get_current_user)):
    return mark_notification_read_handler(user, notification_id)
