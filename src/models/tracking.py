from typing import List, Optional

from pydantic import BaseModel


class Milestone(BaseModel):
    status: str
    label: str
    completed: bool
    active: bool


class TimelineEntry(BaseModel):
    status: str
    status_label: str
    location: Optional[str] = None
    message: Optional[str] = None
    timestamp: Optional[str] = None


class MapPoint(BaseModel):
    label: str
    lat: float
    lng: float


class MapRoute(BaseModel):
    origin: MapPoint
    current: MapPoint
    destination: MapPoint


class ShipmentSummary(BaseModel):
    tracking_number: str
    display_tracking_number: str
    status: str
    status_label: str
    service_type: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    current_location: Optional[str] = None
    sender_name: Optional[str] = None
    recipient_name: Optional[str] = None
    weight: Optional[float] = None
    package_type: Optional[str] = None
    pickup_date: Optional[str] = None
    estimated_delivery: Optional[str] = None
    created_at: Optional[str] = None


class TrackingResponse(BaseModel):
    shipment: ShipmentSummary
    progress: int
    milestones: List[Milestone]
    timeline: List[TimelineEntry]
    route: MapRoute
    video_proof_url: Optional[str] = None
