from fastapi import APIRouter, Depends, File, UploadFile

from src.models.auth import CurrentUser
from src.models.shipment import (
    CouponRequest,
    StateRequest,
    StepRequest,
    SubmitRequest,
    SubmitResponse,
    TierRequest,
    TogglesRequest,
    WizardResponse,
)
from src.payment_handlers import submit_shipment_handler
from src.shipment_handlers import (
    upload_payment_proof_handler,
    upload_video_handler,
    wizard_apply_coupon_handler,
    wizard_back_handler,
    wizard_next_handler,
    wizard_remove_coupon_handler,
    wizard_start_handler,
    wizard_tier_handler,
    wizard_toggles_handler,
)
from src.utils.auth import get_current_user
from src.utils.safe_handler import safe_handler

router = APIRouter()


# ===============================================================
# WIZARD STEPS
# ===============================================================
@router.post("/wizard/start", summary="Start a new shipment")
@safe_handler()
def start(user: CurrentUser = Depends(get_current_user)):
    return wizard_start_handler(user)


@router.post("/wizard/next", response_model=WizardResponse, summary="Validate the current step and continue")
@safe_handler()
def next_step(req: StepRequest, user: CurrentUser = Depends(get_current_user)):
    return wizard_next_handler(req)


@router.post("/wizard/back", response_model=WizardResponse, summary="Go back one step")
@safe_handler()
def previous_step(req: StateRequest, user: CurrentUser = Depends(get_current_user)):
    return wizard_back_handler(req.state)


@router.post("/wizard/tier", response_model=WizardResponse, summary="Select a service tier")
@safe_handler()
def select_tier(req: TierRequest, user: CurrentUser = Depends(get_current_user)):
    return wizard_tier_handler(req)


@router.post("/wizard/toggles", response_model=WizardResponse, summary="International / insurance toggles")
@safe_handler()
def toggles(req: TogglesRequest, user: CurrentUser = Depends(get_current_user)):
    return wizard_toggles_handler(req)


@router.post("/wizard/coupon", response_model=WizardResponse, summary="Apply a coupon code")
@safe_handler()
def apply_coupon(req: CouponRequest, user: CurrentUser = Depends(get_current_user)):
    return wizard_apply_coupon_handler(req)


@router.post("/wizard/coupon/remove", response_model=WizardResponse, summary="Remove the coupon")
@safe_handler()
def remove_coupon(req: StateRequest, user: CurrentUser = Depends(get_current_user)):
    return wizard_remove_coupon_handler(req.state)


# ===============================================================
# UPLOADS
# ===============================================================
@router.post("/wizard/uploads/video", summary="Upload an optional package video")
@safe_handler()
async def upload_video(
    file: UploadFile = File(...), user: CurrentUser = Depends(get_current_user)
):
    return await upload_video_handler(file, user)


@router.post("/wizard/uploads/payment-proof", summary="Upload proof of an off-platform payment")
@safe_handler()
async def upload_payment_proof(
    file: UploadFile = File(...), user: CurrentUser = Depends(get_current_user)
):
    return await upload_payment_proof_handler(file, user)


# ===============================================================
# SUBMIT
# ===============================================================
@router.post("/wizard/submit", response_model=SubmitResponse, summary="Pay and create the shipment")
@safe_handler()
async def submit(req: SubmitRequest, user: CurrentUser = Depends(get_current_user)):
    return await submit_shipment_handler(req, user)
