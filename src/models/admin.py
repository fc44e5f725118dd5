"""
Pydantic models and enums for the admin console.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from src.utils.listing import Page


class AdminPage(str, Enum):
    dashboard = "dashboard"
    shipments = "shipments"
    users = "users"
    tracking = "tracking"
    payments = "payments"
    tickets = "tickets"
    settings = "settings"


class AdminTable(str, Enum):
    shipments = "shipments"
    users = "users"
    payments = "payments"
    tickets = "tickets"
    admin_users = "admin_users"


class ShipmentStatus(str, Enum):
    pending = "pending"
    in_transit = "in_transit"
    out_for_delivery = "out_for_delivery"
    delivered = "delivered"
    cancelled = "cancelled"


class AdminRole(str, Enum):
    super_admin = "super_admin"
    admin = "admin"
    support = "support"


# Request Models
class ShipmentEdit(BaseModel):
    """Admin edit form; a status + location pair also appends a tracking update."""

    status: Optional[ShipmentStatus] = None
    current_location: Optional[str] = None
    admin_approved: Optional[bool] = None
    add_update: bool = Field(False, description="Append a tracking update with this edit")
    update_message: Optional[str] = None
    update_timestamp: Optional[str] = Field(None, description="ISO timestamp, defaults to now")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "in_transit",
                "current_location": "Accra, Ghana",
                "add_update": True,
                "update_message": "Departed regional hub",
            }
        }


class TicketReplyRequest(BaseModel):
    message: str
    status: Optional[str] = None
    priority: Optional[str] = None


class AdminPermissions(BaseModel):
    manage_shipments: bool = True
    manage_users: bool = False
    manage_payments: bool = False
    manage_tickets: bool = True
    view_reports: bool = True
    manage_settings: bool = False


class AdminUserCreate(BaseModel):
    email: str
    role: AdminRole = AdminRole.admin
    permissions: AdminPermissions = Field(default_factory=AdminPermissions)


class AdminUserUpdate(BaseModel):
    role: Optional[AdminRole] = None
    status: Optional[str] = Field(None, description="active or inactive")
    permissions: Optional[AdminPermissions] = None


class PaymentDecision(BaseModel):
    note: Optional[str] = None


# Response Models
class DashboardStats(BaseModel):
    total_shipments: int = 0
    pending_approvals: int = 0
    in_transit: int = 0
    total_users: int = 0
    open_tickets: int = 0
    pending_payments: int = 0
    total_revenue: float = 0.0
    refreshed_at: Optional[str] = None


class PendingAction(BaseModel):
    kind: str = Field(..., description="shipment_approval, payment or ticket")
    id: str
    title: str
    subtitle: Optional[str] = None
    created_at: Optional[str] = None
    time_ago: Optional[str] = None


class AdminListResponse(BaseModel):
    page: Page
    filters: dict = Field(default_factory=dict)
    search: str = ""
    sort: str = "newest"
    stats: Optional[dict] = None


class AdminPageResponse(BaseModel):
    page: AdminPage
    data: dict


class NotificationsResponse(BaseModel):
    count: int
    items: List[PendingAction]
