from typing import Optional

from fastapi import APIRouter, Depends, Request

from src.models.api import MessageResponse
from src.models.auth import CurrentUser
from src.models.quote import (
    EmailQuoteRequest,
    QuickQuoteRequest,
    QuickQuoteResponse,
    QuoteRequest,
    QuoteResponse,
)
from src.quote_engine import TIER_PRICING
from src.quote_handlers import email_quote_handler, quick_quote_handler, request_quote_handler
from src.utils.auth import client_key, get_optional_user
from src.utils.safe_handler import safe_handler

router = APIRouter()


@router.get("/tiers", summary="Service tiers and their rates")
def tiers():
    return [
        {
            "service": tier.value,
            "label": pricing.label,
            "base_rate": float(pricing.base_rate),
            "per_weight_rate": float(pricing.per_weight_rate),
            "transit_days": pricing.transit_days,
        }
        for tier, pricing in TIER_PRICING.items()
    ]


@router.post("/calculate", response_model=QuickQuoteResponse, summary="Quick price estimate")
@safe_handler()
def calculate(req: QuickQuoteRequest):
    return quick_quote_handler(req)


@router.post("", response_model=QuoteResponse, summary="Request a detailed quote")
@safe_handler()
def request_quote(
    req: QuoteRequest,
    request: Request,
    user: Optional[CurrentUser] = Depends(get_optional_user),
):
    return request_quote_handler(req, client_key(request, user), user)


@router.post("/email", response_model=MessageResponse, summary="Email a quote")
@safe_handler()
def email_quote(req: EmailQuoteRequest):
    return email_quote_handler(req)
