from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import httpx
from fastapi import HTTPException

from src.utils.logger import payment_logger
from src.utils.settings import stripe_get_api_base, stripe_get_secret_key
from src.utils.supabase import supabase_invoke_function


GENERIC_PAYMENT_ERROR = "Payment failed. Please check your card details and try again."

# Country names the site offers -> ISO 3166 alpha-2
COUNTRY_CODES = {
    "united states": "US",
    "usa": "US",
    "united kingdom": "GB",
    "uk": "GB",
    "canada": "CA",
    "nigeria": "NG",
    "ghana": "GH",
    "kenya": "KE",
    "south africa": "ZA",
    "germany": "DE",
    "france": "FR",
    "netherlands": "NL",
    "spain": "ES",
    "italy": "IT",
    "china": "CN",
    "india": "IN",
    "japan": "JP",
    "australia": "AU",
    "brazil": "BR",
    "mexico": "MX",
    "united arab emirates": "AE",
}


# ===============================================================
# Helpers
# ===============================================================
def stripe_country_code(country: Optional[str]) -> Optional[str]:
    if not country:
        return None
    name = country.strip()
    if len(name) == 2 and name.isalpha():
        return name.upper()
    return COUNTRY_CODES.get(name.lower())


def stripe_amount_in_cents(total: Any) -> int:
    return int((Decimal(str(total)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def stripe_intent_id_from_secret(client_secret: str) -> str:
    """pi_123_secret_abc -> pi_123"""
    return client_secret.split("_secret_")[0]


def stripe_error_message(resp: httpx.Response) -> str:
    try:
        err = resp.json().get("error") or {}
    except ValueError:
        err = {}
    return err.get("message") or GENERIC_PAYMENT_ERROR


# ===============================================================
# Payment intents
# ===============================================================
def stripe_create_payment_intent(amount_cents: int, metadata: Dict[str, str]) -> str:
    """Ask the backend function for a payment intent; returns its client secret."""
    try:
        data = supabase_invoke_function(
            "create-payment-intent",
            {"amount": amount_cents, "currency": "usd", "metadata": metadata},
        )
    except Exception as e:
        payment_logger.exception("create-payment-intent failed: %s", e)
        raise HTTPException(status_code=502, detail="Unable to start payment. Please try again.")

    client_secret = (data or {}).get("clientSecret") if isinstance(data, dict) else None
    if not client_secret:
        error = data.get("error") if isinstance(data, dict) else None
        payment_logger.error(f"create-payment-intent returned no client secret: {data}")
        raise HTTPException(status_code=502, detail=error or "Unable to start payment. Please try again.")
    return client_secret


async def stripe_confirm_payment_intent(
    client_secret: str,
    payment_method_id: str,
    shipping: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Confirm a payment intent with a tokenized card.

    POST /v1/payment_intents/{id}/confirm
    Processor errors raise HTTPException(402) carrying the processor's message.
    """
    secret_key = stripe_get_secret_key()
    if not secret_key:
        raise ValueError("STRIPE_SECRET_KEY is required")

    intent_id = stripe_intent_id_from_secret(client_secret)
    data: Dict[str, Any] = {"payment_method": payment_method_id}
    if shipping:
        address = shipping.get("address") or {}
        data["shipping[name]"] = shipping.get("name") or ""
        for key, value in address.items():
            if value:
                data[f"shipping[address][{key}]"] = value

    payment_logger.info(f"💳 Confirming payment intent {intent_id}")
    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            resp = await client.post(
                f"{stripe_get_api_base()}/payment_intents/{intent_id}/confirm",
                auth=(secret_key, ""),
                data=data,
            )
    except httpx.HTTPError as e:
        payment_logger.exception("Stripe confirm request failed: %s", e)
        raise HTTPException(status_code=402, detail=GENERIC_PAYMENT_ERROR)

    if resp.status_code >= 400:
        message = stripe_error_message(resp)
        payment_logger.warning(f"💳 Stripe declined {intent_id} ({resp.status_code}): {message}")
        raise HTTPException(status_code=402, detail=message)

    return resp.json()
