from typing import Optional

from fastapi import APIRouter, Query, Request

from src.models.tracking import TrackingResponse
from src.tracking_handlers import track_shipment_handler, tracking_report_handler
from src.utils.auth import client_key
from src.utils.csv_export import text_download
from src.utils.safe_handler import safe_handler

router = APIRouter()


@router.get("", response_model=TrackingResponse, summary="Track by query parameter")
@safe_handler()
def track_by_query(
    request: Request,
    tracking: Optional[str] = Query(None, description="Tracking number"),
    tn: Optional[str] = Query(None, description="Short alias of tracking"),
):
    return track_shipment_handler(tracking or tn, client_key(request))


@router.get("/{code}", response_model=TrackingResponse, summary="Track a shipment")
@safe_handler()
def track(code: str, request: Request):
    return track_shipment_handler(code, client_key(request))


@router.get("/{code}/report", summary="Download a plain-text tracking report")
@safe_handler()
def report(code: str, request: Request):
    filename, content = tracking_report_handler(code, client_key(request))
    return text_download(filename, content)
