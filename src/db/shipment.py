from datetime import datetime, timezone
from typing import List, Tuple

from src.db.payment import build_payment_record
from src.models.shipment import PaymentResult, ShipmentDraft
from src.utils.logger import log_database_operation, log_failure, payment_logger
from src.utils.supabase import supabase_delete, supabase_insert


PAYMENT_RECEIVED_MESSAGE = "Payment received. Shipment is being processed."
AWAITING_PAYMENT_MESSAGE = "Shipment request submitted. Awaiting payment confirmation."


def location_label(city: str, country: str) -> str:
    return f"{city}, {country}"


def build_shipment_record(user_id: str, draft: ShipmentDraft, result: PaymentResult) -> dict:
    """
    Flatten a completed draft into a `shipments` row.

    The tracking number is generated by the backend on insert.
    """
    sender = draft.sender
    recipient = draft.recipient
    package = draft.package
    service = draft.service
    cost = draft.cost
    video = draft.video

    origin = location_label(sender.city, sender.country)
    record = {
        "user_id": user_id,
        "sender_name": sender.name,
        "sender_email": sender.email,
        "sender_phone": sender.phone,
        "sender_address": sender.address,
        "sender_apt": sender.apt_suite,
        "sender_city": sender.city,
        "sender_state": sender.state,
        "sender_zip": sender.zip,
        "sender_country": sender.country,
        "pickup_instructions": sender.instructions,
        "recipient_name": recipient.name,
        "recipient_email": recipient.email,
        "recipient_phone": recipient.phone,
        "recipient_address": recipient.address,
        "recipient_apt": recipient.apt_suite,
        "recipient_city": recipient.city,
        "recipient_state": recipient.state,
        "recipient_zip": recipient.zip,
        "recipient_country": recipient.country,
        "delivery_instructions": recipient.instructions,
        "package_type": package.package_type.value,
        "length": package.length,
        "width": package.width,
        "height": package.height,
        "weight": package.weight,
        "quantity": package.quantity,
        "description": package.description,
        "declared_value": package.declared_value,
        "dimensions": package.dimensions,
        "service_type": service.tier.value,
        "pickup_date": service.pickup_date.isoformat(),
        "pickup_time": service.pickup_time,
        "estimated_delivery": draft.estimated_delivery.isoformat() if draft.estimated_delivery else None,
        "payment_method": draft.payment_method.value if draft.payment_method else None,
        "payment_status": result.payment_status,
        "has_insurance": draft.has_insurance,
        "insurance_amount": cost.insurance,
        "tax_amount": cost.tax,
        "discount_amount": cost.discount,
        "coupon_code": draft.coupon.code if draft.coupon else None,
        "base_price": cost.base_price,
        "total_cost": cost.total,
        "status": "pending",
        "admin_approved": False,
        "is_international": draft.is_international,
        "origin": origin,
        "destination": location_label(recipient.city, recipient.country),
        "current_location": origin,
        "video_proof_url": video.video_url if video else None,
        "video_notes": video.video_notes if video else None,
        "tax_id": recipient.tax_id,
        "hs_code": recipient.hs_code,
        "content_type": recipient.content_type,
    }
    if result.stripe_payment_id:
        record["stripe_payment_id"] = result.stripe_payment_id
    if result.payment_proof_url:
        record["payment_proof_url"] = result.payment_proof_url
    return record


def build_initial_update(shipment: dict, message: str) -> dict:
    return {
        "shipment_id": shipment["id"],
        "status": "pending",
        "location": shipment.get("origin"),
        "message": message,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


def _rollback(created: List[Tuple[str, str]]) -> None:
    for table, row_id in reversed(created):
        try:
            supabase_delete(table, {"id": row_id})
            payment_logger.warning(f"↩️ Rolled back {table} row {row_id}")
        except Exception as e:
            log_failure(payment_logger, f"Rollback of {table} row {row_id} failed: {e}")


def persist_shipment(user_id: str, draft: ShipmentDraft, result: PaymentResult) -> dict:
    """
    Create the shipment, its payment record and its first tracking update.

    Either all three rows exist afterwards or none created by this call do;
    the first failure is re-raised after rolling back.
    """
    shipment = supabase_insert("shipments", build_shipment_record(user_id, draft, result))
    created: List[Tuple[str, str]] = [("shipments", shipment["id"])]
    try:
        payment = supabase_insert(
            "payments", build_payment_record(user_id, shipment, draft, result)
        )
        created.append(("payments", payment["id"]))
        supabase_insert("shipment_updates", build_initial_update(shipment, result.update_message))
    except Exception:
        payment_logger.error(f"❌ Persisting shipment {shipment['id']} failed, rolling back")
        _rollback(created)
        raise

    log_database_operation(payment_logger, "Created", 3, "shipments/payments/shipment_updates")
    return shipment
