"""
Pydantic models for the customer dashboard.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from src.utils.listing import Page


class TicketPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


# Request Models
class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None


class AddressRequest(BaseModel):
    label: str = Field(..., description="e.g. Home, Office")
    street_address: str
    apt_suite: Optional[str] = None
    city: str
    state: Optional[str] = None
    zip: Optional[str] = None
    country: str
    is_default: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "label": "Office",
                "street_address": "12 Marina Road",
                "city": "Lagos",
                "state": "Lagos",
                "zip": "101001",
                "country": "Nigeria",
                "is_default": True,
            }
        }


class TicketCreate(BaseModel):
    subject: str
    message: str
    priority: TicketPriority = TicketPriority.medium
    shipment_id: Optional[str] = None


class TicketMessage(BaseModel):
    message: str


# Response Models
class ShipmentStats(BaseModel):
    total: int = 0
    in_transit: int = 0
    delivered: int = 0
    pending: int = 0


class DashboardOverview(BaseModel):
    stats: ShipmentStats
    recent_shipments: List[dict]
    unread_notifications: int = 0


class ShipmentListResponse(BaseModel):
    page: Page
    search: str = ""
    status: str = "all"
    sort: str = "newest"
