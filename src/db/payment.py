from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException

from src.models.shipment import PaymentResult, ShipmentDraft
from src.utils.logger import admin_logger
from src.utils.supabase import supabase_get_row, supabase_update


def build_payment_record(
    user_id: str, shipment: dict, draft: ShipmentDraft, result: PaymentResult
) -> dict:
    """`payments` row for a new shipment; paid_at only when already captured."""
    paid = result.payment_status == "paid"
    return {
        "user_id": user_id,
        "shipment_id": shipment["id"],
        "amount": draft.cost.total,
        "currency": "USD",
        "payment_method": draft.payment_method.value if draft.payment_method else None,
        "transaction_id": result.transaction_id,
        "payment_proof_url": result.payment_proof_url,
        "status": result.payment_status,
        "paid_at": datetime.now(timezone.utc).isoformat() if paid else None,
    }


def get_payment_record(payment_id: str) -> dict:
    payment = supabase_get_row(
        "payments", {"id": payment_id}, columns="*, shipment:shipments(tracking_number)"
    )
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return payment


def set_payment_status(payment_id: str, status: str, note: Optional[str] = None) -> dict:
    """
    Move a payment to paid/failed and mirror it on the shipment's payment_status.
    """
    payment = get_payment_record(payment_id)
    changes = {"status": status}
    if status == "paid":
        changes["paid_at"] = datetime.now(timezone.utc).isoformat()
    if note:
        changes["notes"] = note

    rows = supabase_update("payments", {"id": payment_id}, changes)
    if payment.get("shipment_id"):
        supabase_update(
            "shipments", {"id": payment["shipment_id"]}, {"payment_status": status}
        )
    admin_logger.info(f"💳 Payment {payment_id[:8]} marked {status}")
    return rows[0] if rows else {**payment, **changes}
