import pytest
from fastapi import HTTPException

from src.utils.stripe import (
    stripe_amount_in_cents,
    stripe_country_code,
    stripe_create_payment_intent,
    stripe_intent_id_from_secret,
)


def test_amount_in_minor_units():
    assert stripe_amount_in_cents(68.63) == 6863
    assert stripe_amount_in_cents("0.1") == 10
    assert stripe_amount_in_cents(148.5) == 14850


def test_country_names_map_to_iso_codes():
    assert stripe_country_code("United States") == "US"
    assert stripe_country_code(" nigeria ") == "NG"
    assert stripe_country_code("gb") == "GB"
    assert stripe_country_code("Atlantis") is None
    assert stripe_country_code(None) is None


def test_intent_id_from_client_secret():
    assert stripe_intent_id_from_secret("pi_3Abc_secret_xyz") == "pi_3Abc"


def test_create_intent_returns_client_secret(db):
    db.function_results["create-payment-intent"] = {"clientSecret": "pi_1_secret_2"}
    assert stripe_create_payment_intent(1250, {"service": "express"}) == "pi_1_secret_2"
    name, body = db.function_calls[0]
    assert name == "create-payment-intent"
    assert body == {"amount": 1250, "currency": "usd", "metadata": {"service": "express"}}


def test_create_intent_without_secret_is_a_gateway_error(db):
    db.function_results["create-payment-intent"] = {"error": "Amount too small"}
    with pytest.raises(HTTPException) as exc:
        stripe_create_payment_intent(10, {})
    assert exc.value.status_code == 502
    assert exc.value.detail == "Amount too small"
