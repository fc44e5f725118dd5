"""
Payment paths for wizard submission.

Each path is an adapter with one `authorize` call. Whatever the path, the
shipment is then saved by the shared `persist_shipment`.
"""

import asyncio
from typing import Optional

from fastapi import HTTPException

from src.db.shipment import (
    AWAITING_PAYMENT_MESSAGE,
    PAYMENT_RECEIVED_MESSAGE,
    persist_shipment,
)
from src.models.auth import CurrentUser
from src.models.shipment import (
    PaymentMethod,
    PaymentResult,
    ShipmentDraft,
    SubmitRequest,
    SubmitResponse,
)
from src.shipment_handlers import validate_coupon
from src.shipment_wizard import prepare_submission
from src.utils.cooldown import InFlightGuard
from src.utils.logger import (
    log_api_request,
    log_error_with_context,
    log_failure,
    log_success,
    payment_logger,
)
from src.utils.stripe import (
    stripe_amount_in_cents,
    stripe_confirm_payment_intent,
    stripe_country_code,
    stripe_create_payment_intent,
)
from src.utils.supabase import supabase_invoke_function


PAID_BUT_NOT_SAVED = "Failed to create shipment. Payment was successful - please contact support."
NOT_SAVED = "Failed to create shipment. Please try again."
PAYMENT_NOT_COMPLETED = "Payment was not completed. Please try again."

submission_guard = InFlightGuard("Your shipment is already being submitted")


# ===============================================================
# Adapters
# ===============================================================
class PaymentAdapter:
    method: PaymentMethod

    async def authorize(self, draft: ShipmentDraft, user: CurrentUser) -> PaymentResult:
        raise NotImplementedError


class CardPaymentAdapter(PaymentAdapter):
    """Synchronous capture through the card processor."""

    method = PaymentMethod.card

    def __init__(self, payment_method_id: Optional[str]):
        self.payment_method_id = payment_method_id

    async def authorize(self, draft: ShipmentDraft, user: CurrentUser) -> PaymentResult:
        if not self.payment_method_id:
            raise HTTPException(status_code=400, detail="Please enter your card details")

        amount = stripe_amount_in_cents(draft.cost.total)
        metadata = {
            "customer_email": user.email or draft.sender.email,
            "route": f"{draft.sender.city} -> {draft.recipient.city}",
            "service": draft.service.tier.value,
        }
        client_secret = await asyncio.to_thread(stripe_create_payment_intent, amount, metadata)

        recipient = draft.recipient
        shipping = {
            "name": recipient.name,
            "address": {
                "line1": recipient.address,
                "line2": recipient.apt_suite,
                "city": recipient.city,
                "state": recipient.state,
                "postal_code": recipient.zip,
                "country": stripe_country_code(recipient.country),
            },
        }
        intent = await stripe_confirm_payment_intent(
            client_secret, self.payment_method_id, shipping=shipping
        )
        if intent.get("status") != "succeeded":
            payment_logger.warning(
                f"💳 Intent {intent.get('id')} ended in status {intent.get('status')}"
            )
            raise HTTPException(status_code=402, detail=PAYMENT_NOT_COMPLETED)

        log_success(payment_logger, f"Card payment captured: {intent.get('id')} ({amount} cents)")
        return PaymentResult(
            payment_status="paid",
            transaction_id=intent.get("id"),
            stripe_payment_id=intent.get("id"),
            update_message=PAYMENT_RECEIVED_MESSAGE,
        )


class ManualProofAdapter(PaymentAdapter):
    """Off-platform payment (cryptocurrency) confirmed by an uploaded proof."""

    method = PaymentMethod.crypto

    def __init__(self, proof_url: Optional[str]):
        self.proof_url = proof_url

    async def authorize(self, draft: ShipmentDraft, user: CurrentUser) -> PaymentResult:
        if not self.proof_url:
            raise HTTPException(status_code=400, detail="Please upload proof of payment")
        return PaymentResult(
            payment_status="pending",
            payment_proof_url=self.proof_url,
            update_message=AWAITING_PAYMENT_MESSAGE,
        )


class BankTransferAdapter(PaymentAdapter):
    """Wire transfer; an operator confirms receipt later."""

    method = PaymentMethod.bank_transfer

    async def authorize(self, draft: ShipmentDraft, user: CurrentUser) -> PaymentResult:
        return PaymentResult(payment_status="pending", update_message=AWAITING_PAYMENT_MESSAGE)


def get_payment_adapter(
    method: PaymentMethod,
    payment_method_id: Optional[str] = None,
    proof_url: Optional[str] = None,
) -> PaymentAdapter:
    if method == PaymentMethod.card:
        return CardPaymentAdapter(payment_method_id)
    elif method == PaymentMethod.crypto:
        return ManualProofAdapter(proof_url)
    elif method == PaymentMethod.bank_transfer:
        return BankTransferAdapter()
    raise ValueError(f"Unsupported payment method: {method}")


# ===============================================================
# Side effects
# ===============================================================
def send_shipment_confirmation(shipment: dict, draft: ShipmentDraft) -> None:
    """Confirmation email; failure never fails the submission."""
    try:
        supabase_invoke_function(
            "send-shipment-email",
            {
                "shipment_id": shipment.get("id"),
                "tracking_number": shipment.get("tracking_number"),
                "email": draft.sender.email,
                "name": draft.sender.name,
                "total": draft.cost.total,
                "payment_status": shipment.get("payment_status"),
            },
        )
    except Exception as e:
        log_failure(payment_logger, f"Confirmation email for shipment {shipment.get('id')} not sent: {e}")


# ===============================================================
# /shipments/wizard/submit
# ===============================================================
async def submit_shipment_handler(req: SubmitRequest, user: CurrentUser) -> SubmitResponse:
    log_api_request(
        payment_logger,
        "POST",
        "/shipments/wizard/submit",
        {"user_id": user.id, "payment_method": req.payment_method},
    )

    state = req.state
    if state.draft.coupon:
        # The discount is re-read from the coupon table, never taken from the client
        coupon = await asyncio.to_thread(validate_coupon, state.draft.coupon.code)
        state = state.model_copy(deep=True)
        state.draft.coupon = coupon

    draft, error = prepare_submission(state, req.payment_method, req.payment_proof_url)
    if error:
        raise HTTPException(status_code=400, detail=error.model_dump())

    with submission_guard.hold(user.id):
        adapter = get_payment_adapter(
            draft.payment_method, req.payment_method_id, draft.payment_proof_url
        )
        result = await adapter.authorize(draft, user)

        try:
            shipment = await asyncio.to_thread(persist_shipment, user.id, draft, result)
        except Exception as e:
            if result.payment_status == "paid":
                log_error_with_context(
                    payment_logger,
                    "Shipment not saved after a captured payment, needs manual reconciliation",
                    e,
                    {"user_id": user.id, "transaction_id": result.transaction_id},
                )
                raise HTTPException(status_code=500, detail=PAID_BUT_NOT_SAVED)
            log_error_with_context(payment_logger, "Shipment not saved", e, {"user_id": user.id})
            raise HTTPException(status_code=500, detail=NOT_SAVED)

    await asyncio.to_thread(send_shipment_confirmation, shipment, draft)

    if result.payment_status == "paid":
        message = "Payment successful! Your shipment has been created."
    else:
        message = "Shipment submitted! We will confirm once your payment is verified."
    log_success(payment_logger, f"Shipment {shipment.get('id')} created for user {user.id}")
    return SubmitResponse(
        shipment_id=str(shipment.get("id")),
        tracking_number=shipment.get("tracking_number"),
        payment_status=result.payment_status,
        total=draft.cost.total,
        message=message,
    )
