"""
Public tracking lookup: code normalization, progress, timeline and report.
"""

import re
from typing import List, Optional

from fastapi import HTTPException

from src.models.tracking import (
    MapPoint,
    MapRoute,
    Milestone,
    ShipmentSummary,
    TimelineEntry,
    TrackingResponse,
)
from src.utils.cooldown import Cooldown
from src.utils.formatting import format_date, format_datetime, format_status
from src.utils.logger import log_api_request, tracking_logger
from src.utils.supabase import supabase_get_row, supabase_get_rows


MAX_TRACKING_LENGTH = 16
TRACKING_COOLDOWN_SECONDS = 3

MILESTONES = [
    ("pending", "Order Placed"),
    ("in_transit", "In Transit"),
    ("out_for_delivery", "Out for Delivery"),
    ("delivered", "Delivered"),
]
PROGRESS = {"pending": 25, "in_transit": 50, "out_for_delivery": 75, "delivered": 100}

# Used when a shipment has no coordinates
DEFAULT_ORIGIN = (6.5244, 3.3792)  # Lagos
DEFAULT_DESTINATION = (40.7128, -74.0060)  # New York

tracking_cooldown = Cooldown(TRACKING_COOLDOWN_SECONDS)
# Separate so a download right after a lookup is allowed
report_cooldown = Cooldown(TRACKING_COOLDOWN_SECONDS)


def normalize_tracking_code(raw: Optional[str]) -> str:
    """Uppercase, alphanumerics only, at most 16 characters. This is the lookup key."""
    return re.sub(r"[^A-Z0-9]", "", (raw or "").upper())[:MAX_TRACKING_LENGTH]


def format_tracking_code(raw: Optional[str]) -> str:
    """Display form: groups of four joined by dashes."""
    code = normalize_tracking_code(raw)
    return "-".join(code[i : i + 4] for i in range(0, len(code), 4))


def progress_for_status(status: Optional[str]) -> int:
    return PROGRESS.get(status or "", 0)


def build_milestones(status: Optional[str]) -> List[Milestone]:
    order = [key for key, _ in MILESTONES]
    reached = order.index(status) if status in order else -1
    return [
        Milestone(status=key, label=label, completed=i <= reached, active=i == reached)
        for i, (key, label) in enumerate(MILESTONES)
    ]


def _coordinate(shipment: dict, lat_key: str, lng_key: str, default: tuple) -> tuple:
    lat, lng = shipment.get(lat_key), shipment.get(lng_key)
    if lat is None or lng is None:
        return default
    try:
        return float(lat), float(lng)
    except (TypeError, ValueError):
        return default


def build_route(shipment: dict) -> MapRoute:
    origin = _coordinate(shipment, "origin_lat", "origin_lng", DEFAULT_ORIGIN)
    destination = _coordinate(
        shipment, "destination_lat", "destination_lng", DEFAULT_DESTINATION
    )
    current = _coordinate(shipment, "current_lat", "current_lng", origin)
    return MapRoute(
        origin=MapPoint(label=shipment.get("origin") or "Origin", lat=origin[0], lng=origin[1]),
        current=MapPoint(
            label=shipment.get("current_location") or "Current Location",
            lat=current[0],
            lng=current[1],
        ),
        destination=MapPoint(
            label=shipment.get("destination") or "Destination",
            lat=destination[0],
            lng=destination[1],
        ),
    )


def build_timeline(updates: List[dict]) -> List[TimelineEntry]:
    """Oldest first."""
    ordered = sorted(updates, key=lambda u: str(u.get("created_at") or u.get("timestamp") or ""))
    return [
        TimelineEntry(
            status=u.get("status") or "pending",
            status_label=format_status(u.get("status")),
            location=u.get("location"),
            message=u.get("message"),
            timestamp=u.get("created_at") or u.get("timestamp"),
        )
        for u in ordered
    ]


def build_summary(shipment: dict) -> ShipmentSummary:
    code = shipment.get("tracking_number") or ""
    weight = shipment.get("weight")
    return ShipmentSummary(
        tracking_number=code,
        display_tracking_number=format_tracking_code(code),
        status=shipment.get("status") or "pending",
        status_label=format_status(shipment.get("status")),
        service_type=shipment.get("service_type"),
        origin=shipment.get("origin"),
        destination=shipment.get("destination"),
        current_location=shipment.get("current_location"),
        sender_name=shipment.get("sender_name"),
        recipient_name=shipment.get("recipient_name"),
        weight=float(weight) if weight is not None else None,
        package_type=shipment.get("package_type"),
        pickup_date=shipment.get("pickup_date"),
        estimated_delivery=shipment.get("estimated_delivery"),
        created_at=shipment.get("created_at"),
    )


def fetch_shipment_by_code(code: str) -> dict:
    shipment = supabase_get_row("shipments", {"tracking_number": code})
    if not shipment:
        tracking_logger.info(f"📍 Tracking number {code} not found")
        raise HTTPException(
            status_code=404,
            detail=f"Tracking Number Not Found: {format_tracking_code(code)}",
        )
    return shipment


def load_tracking(code: str) -> TrackingResponse:
    shipment = fetch_shipment_by_code(code)
    updates = supabase_get_rows(
        "shipment_updates",
        {"shipment_id": shipment["id"]},
        order_by="created_at",
        desc=False,
    )
    status = shipment.get("status")
    return TrackingResponse(
        shipment=build_summary(shipment),
        progress=progress_for_status(status),
        milestones=build_milestones(status),
        timeline=build_timeline(updates),
        route=build_route(shipment),
        video_proof_url=shipment.get("video_proof_url") or None,
    )


# ===============================================================
# /tracking/{code}
# ===============================================================
def track_shipment_handler(raw_code: Optional[str], requester: str) -> TrackingResponse:
    log_api_request(tracking_logger, "GET", "/tracking", {"code": raw_code})

    code = normalize_tracking_code(raw_code)
    if not code:
        raise HTTPException(status_code=400, detail="Please enter a tracking number")

    # Armed before the lookup so a burst never reaches the backend
    tracking_cooldown.check_and_arm(
        requester, "Please wait {seconds} seconds before tracking again"
    )
    return load_tracking(code)


# ===============================================================
# /tracking/{code}/report
# ===============================================================
def build_tracking_report(result: TrackingResponse) -> str:
    s = result.shipment
    lines = [
        "AMEREX LOGISTICS - TRACKING REPORT",
        "=" * 40,
        f"Tracking Number: {s.display_tracking_number}",
        f"Status: {s.status_label} ({result.progress}%)",
        f"Service: {format_status(s.service_type)}",
        f"From: {s.origin or 'N/A'}",
        f"To: {s.destination or 'N/A'}",
        f"Current Location: {s.current_location or 'N/A'}",
        f"Estimated Delivery: {format_date(s.estimated_delivery)}",
        "",
        "TRACKING HISTORY",
        "-" * 40,
    ]
    for entry in result.timeline:
        lines.append(f"{format_datetime(entry.timestamp)} | {entry.status_label} | {entry.location or ''}")
        if entry.message:
            lines.append(f"    {entry.message}")
    if not result.timeline:
        lines.append("No tracking updates yet.")
    return "\n".join(lines) + "\n"


def tracking_report_handler(raw_code: Optional[str], requester: str) -> tuple[str, str]:
    """Returns (filename, text)."""
    log_api_request(tracking_logger, "GET", "/tracking/report", {"code": raw_code})

    code = normalize_tracking_code(raw_code)
    if not code:
        raise HTTPException(status_code=400, detail="Please enter a tracking number")

    report_cooldown.check_and_arm(
        requester, "Please wait {seconds} seconds before downloading another report"
    )
    return f"tracking-{code}.txt", build_tracking_report(load_tracking(code))
