from fastapi import HTTPException, UploadFile

from src.models.auth import CurrentUser
from src.models.shipment import (
    Coupon,
    CouponRequest,
    DiscountType,
    StepRequest,
    TierRequest,
    TogglesRequest,
    WizardResponse,
    WizardState,
)
from src.shipment_wizard import (
    advance,
    apply_coupon,
    go_back,
    remove_coupon,
    select_tier,
    set_toggles,
    start_state,
)
from src.utils.logger import log_api_request, wizard_logger
from src.utils.supabase import supabase_get_row, supabase_rpc
from src.utils.uploads import PAYMENT_PROOF_UPLOAD, VIDEO_UPLOAD, store_upload


# ===============================================================
# /shipments/wizard/start
# ===============================================================
def wizard_start_handler(user: CurrentUser) -> dict:
    """Fresh state plus sender details the form can pre-fill."""
    profile = supabase_get_row(
        "user_profiles", {"user_id": user.id}, columns="full_name, phone"
    ) or {}
    prefill = {
        "name": profile.get("full_name") or user.full_name,
        "email": user.email,
        "phone": profile.get("phone"),
    }
    return {"state": start_state(), "prefill": {k: v for k, v in prefill.items() if v}}


# ===============================================================
# step transitions
# ===============================================================
def wizard_next_handler(req: StepRequest) -> WizardResponse:
    outcome = advance(req.state, req.form)
    if not outcome.ok:
        wizard_logger.info(
            f"📦 Step {req.state.step.name} rejected on {outcome.error.field}: {outcome.error.message}"
        )
        raise HTTPException(status_code=400, detail=outcome.error.model_dump())
    return WizardResponse(state=outcome.state)


def wizard_back_handler(state: WizardState) -> WizardResponse:
    return WizardResponse(state=go_back(state))


def wizard_tier_handler(req: TierRequest) -> WizardResponse:
    outcome = select_tier(req.state, req.tier)
    if not outcome.ok:
        raise HTTPException(status_code=400, detail=outcome.error.model_dump())
    return WizardResponse(state=outcome.state)


def wizard_toggles_handler(req: TogglesRequest) -> WizardResponse:
    return WizardResponse(
        state=set_toggles(req.state, req.is_international, req.has_insurance)
    )


# ===============================================================
# coupons
# ===============================================================
def validate_coupon(code: str) -> Coupon:
    """Server-side coupon check through the `use_coupon` RPC."""
    normalized = (code or "").strip().upper()
    if not normalized:
        raise HTTPException(status_code=400, detail="Please enter a coupon code")

    data = supabase_rpc("use_coupon", {"coupon_code_input": normalized})
    if isinstance(data, list):
        data = data[0] if data else None
    if not data or not data.get("valid"):
        message = (data or {}).get("message") or "Invalid coupon code"
        raise HTTPException(status_code=400, detail=message)

    try:
        discount_type = DiscountType(data.get("discount_type") or "percentage")
    except ValueError:
        discount_type = DiscountType.fixed
    return Coupon(
        code=normalized,
        discount_type=discount_type,
        discount_value=float(data.get("discount_value") or 0),
    )


def wizard_apply_coupon_handler(req: CouponRequest) -> WizardResponse:
    log_api_request(wizard_logger, "POST", "/shipments/wizard/coupon", {"code": req.code})
    coupon = validate_coupon(req.code)
    state = apply_coupon(req.state, coupon)
    return WizardResponse(state=state, message=f"Coupon {coupon.code} applied")


def wizard_remove_coupon_handler(state: WizardState) -> WizardResponse:
    return WizardResponse(state=remove_coupon(state), message="Coupon removed")


# ===============================================================
# uploads
# ===============================================================
async def upload_video_handler(file: UploadFile, user: CurrentUser) -> dict:
    url = await store_upload(VIDEO_UPLOAD, file)
    wizard_logger.info(f"🎥 Video proof uploaded by {user.id}")
    return {"url": url, "message": "Video uploaded successfully"}


async def upload_payment_proof_handler(file: UploadFile, user: CurrentUser) -> dict:
    url = await store_upload(PAYMENT_PROOF_UPLOAD, file)
    wizard_logger.info(f"🧾 Payment proof uploaded by {user.id}")
    return {"url": url, "message": "Payment proof uploaded successfully"}
