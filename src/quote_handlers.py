import random
from typing import Optional

from fastapi import HTTPException

from src.models.api import MessageResponse
from src.models.auth import CurrentUser
from src.models.quote import (
    EmailQuoteRequest,
    QuickQuoteRequest,
    QuickQuoteResponse,
    QuoteOptions,
    QuoteRequest,
    QuoteResponse,
)
from src.quote_engine import compute_cost, generate_quote_id, positive_decimal, resolve_tier
from src.utils.cooldown import Cooldown
from src.utils.formatting import money
from src.utils.logger import api_logger, log_api_request, log_failure, log_success
from src.utils.supabase import supabase_insert, supabase_invoke_function
from src.utils.validation import is_blank, is_valid_email, is_valid_phone


QUOTE_COOLDOWN_SECONDS = 10

quote_cooldown = Cooldown(QUOTE_COOLDOWN_SECONDS)


# ===============================================================
# /quotes/calculate
# ===============================================================
def quick_quote_handler(req: QuickQuoteRequest) -> QuickQuoteResponse:
    breakdown = compute_cost(req.weight, req.service)
    if breakdown is None:
        return QuickQuoteResponse(message="Please enter weight and select service")
    return QuickQuoteResponse(quote=breakdown.to_response())


# ===============================================================
# /quotes
# ===============================================================
def validate_quote_request(req: QuoteRequest) -> None:
    required = [
        ("name", "Name"),
        ("email", "Email"),
        ("origin", "Origin"),
        ("destination", "Destination"),
        ("service", "Service"),
    ]
    for field, label in required:
        if is_blank(getattr(req, field)):
            raise HTTPException(status_code=400, detail=f"{label} is required")
    if not is_valid_email(req.email):
        raise HTTPException(status_code=400, detail="Please enter a valid email address")
    if not is_blank(req.phone) and not is_valid_phone(req.phone):
        raise HTTPException(status_code=400, detail="Please enter a valid phone number")
    if positive_decimal(req.weight) is None:
        raise HTTPException(status_code=400, detail="Weight must be greater than 0")
    if resolve_tier(req.service) is None:
        raise HTTPException(status_code=400, detail="Please select a valid service")


def request_quote_handler(
    req: QuoteRequest, requester: str, user: Optional[CurrentUser] = None
) -> QuoteResponse:
    log_api_request(api_logger, "POST", "/quotes", {"email": req.email, "service": req.service})

    quote_cooldown.check(requester, "Please wait {seconds} seconds before requesting another quote")
    validate_quote_request(req)

    options = QuoteOptions(
        signature=req.signature_required,
        insurance=req.insurance_required,
        declared_value=req.declared_value,
        saturday=req.saturday_delivery,
        packaging=req.special_packaging,
    )
    breakdown = compute_cost(req.weight, req.service, options)
    if breakdown is None:
        raise HTTPException(status_code=400, detail="Unable to calculate quote")

    quote_id = generate_quote_id(random.randint(0, 999))
    record = {
        "user_id": user.id if user else None,
        "quote_id": quote_id,
        "name": req.name.strip(),
        "email": req.email.strip().lower(),
        "phone": (req.phone or "").strip() or None,
        "company": (req.company or "").strip() or None,
        "origin": req.origin.strip(),
        "destination": req.destination.strip(),
        "weight": float(breakdown.weight),
        "service": breakdown.tier.value,
        "dimensions": (req.dimensions or "").strip() or None,
        "declared_value": money(req.declared_value) if req.declared_value not in (None, "") else None,
        "signature_required": req.signature_required,
        "insurance_required": req.insurance_required,
        "saturday_delivery": req.saturday_delivery,
        "special_packaging": req.special_packaging,
        "special_instructions": (req.special_instructions or "").strip() or None,
        "base_shipping": money(breakdown.base_shipping),
        "signature_cost": money(breakdown.signature_cost),
        "insurance_cost": money(breakdown.insurance_cost),
        "saturday_cost": money(breakdown.saturday_cost),
        "packaging_cost": money(breakdown.packaging_cost),
        "total_amount": money(breakdown.total),
        "status": "pending",
    }
    supabase_insert("quotes", record)

    # only a successful quote starts the cooldown
    quote_cooldown.arm(requester)
    log_success(api_logger, f"Quote {quote_id} saved ({record['total_amount']})")
    return QuoteResponse(
        quote_id=quote_id,
        breakdown=breakdown.to_response(),
        message="Quote generated successfully!",
    )


# ===============================================================
# /quotes/email
# ===============================================================
def email_quote_handler(req: EmailQuoteRequest) -> MessageResponse:
    if not is_valid_email(req.email):
        raise HTTPException(status_code=400, detail="Please enter a valid email address")
    try:
        supabase_invoke_function(
            "send-quote-email",
            {
                "quote_id": req.quote_id,
                "email": req.email,
                "name": req.name,
                "quote": req.breakdown.model_dump(mode="json"),
            },
        )
    except Exception as e:
        log_failure(api_logger, f"Quote email for {req.quote_id} not sent: {e}")
        return MessageResponse(
            success=False,
            message="We could not email your quote right now. Your quote has been saved.",
        )
    return MessageResponse(message=f"Quote sent to {req.email}")
