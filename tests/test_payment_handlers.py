import asyncio

import pytest
from fastapi import HTTPException

from src import payment_handlers
from src.models.auth import CurrentUser
from src.models.shipment import Coupon, DiscountType, PaymentMethod, SubmitRequest
from src.payment_handlers import (
    NOT_SAVED,
    PAID_BUT_NOT_SAVED,
    BankTransferAdapter,
    CardPaymentAdapter,
    ManualProofAdapter,
    get_payment_adapter,
    submission_guard,
    submit_shipment_handler,
)


USER = CurrentUser(id="user-1", email="ada@example.com", full_name="Ada Obi")


@pytest.fixture
def card_processor(monkeypatch):
    """Replaces the payment intent calls; `calls` records what was sent."""
    calls = {"created": [], "confirmed": [], "status": "succeeded"}

    def create(amount_cents, metadata):
        calls["created"].append((amount_cents, metadata))
        return "pi_123_secret_abc"

    async def confirm(client_secret, payment_method_id, shipping=None):
        calls["confirmed"].append((client_secret, payment_method_id, shipping))
        return {"id": "pi_123", "status": calls["status"]}

    monkeypatch.setattr(payment_handlers, "stripe_create_payment_intent", create)
    monkeypatch.setattr(payment_handlers, "stripe_confirm_payment_intent", confirm)
    return calls


def _submit(state, method, **extra):
    req = SubmitRequest(state=state, payment_method=method, **extra)
    return asyncio.run(submit_shipment_handler(req, USER))


def test_adapter_dispatch():
    assert isinstance(get_payment_adapter(PaymentMethod.card, "pm_1"), CardPaymentAdapter)
    assert isinstance(get_payment_adapter(PaymentMethod.crypto, proof_url="u"), ManualProofAdapter)
    assert isinstance(get_payment_adapter(PaymentMethod.bank_transfer), BankTransferAdapter)


def test_card_payment_creates_paid_shipment(db, payment_state, card_processor):
    result = _submit(payment_state, PaymentMethod.card, payment_method_id="pm_card_visa")

    assert result.payment_status == "paid"
    assert result.total == 68.63
    assert result.tracking_number.startswith("AMX")
    assert card_processor["created"][0][0] == 6863
    shipping = card_processor["confirmed"][0][2]
    assert shipping["address"]["country"] == "US"

    shipment = db.rows("shipments")[0]
    assert shipment["payment_status"] == "paid"
    assert shipment["stripe_payment_id"] == "pi_123"
    assert shipment["admin_approved"] is False
    assert shipment["dimensions"] == "30x20x10"

    payment = db.rows("payments")[0]
    assert payment["status"] == "paid"
    assert payment["transaction_id"] == "pi_123"
    assert payment["paid_at"] is not None
    assert payment["shipment_id"] == shipment["id"]

    update = db.rows("shipment_updates")[0]
    assert update["status"] == "pending"
    assert update["location"] == "Lagos, Nigeria"
    assert update["message"] == "Payment received. Shipment is being processed."

    assert db.function_calls[0][0] == "send-shipment-email"


def test_unsuccessful_intent_creates_nothing(db, payment_state, card_processor):
    card_processor["status"] = "requires_action"
    with pytest.raises(HTTPException) as exc:
        _submit(payment_state, PaymentMethod.card, payment_method_id="pm_card_visa")
    assert exc.value.status_code == 402
    assert db.rows("shipments") == []
    assert db.rows("payments") == []


def test_card_path_needs_a_payment_method(db, payment_state, card_processor):
    with pytest.raises(HTTPException) as exc:
        _submit(payment_state, PaymentMethod.card)
    assert exc.value.status_code == 400
    assert card_processor["created"] == []


def test_manual_proof_is_pending(db, payment_state):
    proof = "https://storage.test/payment-proofs/receipt.png"
    result = _submit(payment_state, PaymentMethod.crypto, payment_proof_url=proof)

    assert result.payment_status == "pending"
    shipment = db.rows("shipments")[0]
    assert shipment["payment_proof_url"] == proof
    assert "stripe_payment_id" not in shipment
    payment = db.rows("payments")[0]
    assert payment["status"] == "pending"
    assert payment["paid_at"] is None
    assert db.rows("shipment_updates")[0]["message"] == (
        "Shipment request submitted. Awaiting payment confirmation."
    )


def test_manual_proof_requires_upload(db, payment_state):
    with pytest.raises(HTTPException) as exc:
        _submit(payment_state, PaymentMethod.crypto)
    assert exc.value.status_code == 400
    assert exc.value.detail["field"] == "payment_proof"


def test_bank_transfer_is_pending_without_proof(db, payment_state):
    result = _submit(payment_state, PaymentMethod.bank_transfer)
    assert result.payment_status == "pending"
    assert len(db.rows("shipments")) == 1
    assert len(db.rows("payments")) == 1
    assert len(db.rows("shipment_updates")) == 1


def test_failed_update_insert_rolls_back_everything(db, payment_state):
    db.fail_on.add(("insert", "shipment_updates"))
    with pytest.raises(HTTPException) as exc:
        _submit(payment_state, PaymentMethod.bank_transfer)
    assert exc.value.detail == NOT_SAVED
    assert db.rows("shipments") == []
    assert db.rows("payments") == []


def test_captured_payment_that_cannot_be_saved_says_so(db, payment_state, card_processor):
    db.fail_on.add(("insert", "payments"))
    with pytest.raises(HTTPException) as exc:
        _submit(payment_state, PaymentMethod.card, payment_method_id="pm_card_visa")
    assert exc.value.status_code == 500
    assert exc.value.detail == PAID_BUT_NOT_SAVED
    assert db.rows("shipments") == []


def test_confirmation_email_failure_does_not_fail_submission(db, payment_state):
    db.function_errors.add("send-shipment-email")
    result = _submit(payment_state, PaymentMethod.bank_transfer)
    assert result.shipment_id == db.rows("shipments")[0]["id"]


def test_second_concurrent_submission_is_rejected(db, payment_state):
    with submission_guard.hold(USER.id):
        with pytest.raises(HTTPException) as exc:
            _submit(payment_state, PaymentMethod.bank_transfer)
    assert exc.value.status_code == 409
    assert db.rows("shipments") == []
    assert not submission_guard.is_active(USER.id)


def test_unknown_coupon_in_saved_state_is_rejected(db, payment_state):
    payment_state.draft.coupon = Coupon(
        code="NOTREAL", discount_type=DiscountType.percentage, discount_value=99
    )
    with pytest.raises(HTTPException) as exc:
        _submit(payment_state, PaymentMethod.bank_transfer)
    assert exc.value.status_code == 400
    assert exc.value.detail == "Invalid coupon code"
    assert db.rpc_calls == [("use_coupon", {"coupon_code_input": "NOTREAL"})]
    assert db.rows("shipments") == []


def test_coupon_discount_comes_from_the_coupon_table(db, payment_state):
    db.rpc_results["use_coupon"] = {"valid": True, "discount_type": "percentage", "discount_value": 10}
    payment_state.draft.coupon = Coupon(
        code="SAVE10", discount_type=DiscountType.percentage, discount_value=99
    )
    result = _submit(payment_state, PaymentMethod.bank_transfer)

    assert result.total == pytest.approx(61.77, abs=0.01)
    row = db.rows("shipments")[0]
    assert row["coupon_code"] == "SAVE10"
    assert row["total_cost"] == result.total
