"""
Pydantic models for the shipment wizard: step forms, draft blocks and state.
"""

from datetime import date
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.models.quote import ServiceTier


class WizardStep(IntEnum):
    SENDER = 1
    RECIPIENT = 2
    PACKAGE = 3
    VIDEO = 4
    SERVICE = 5
    PAYMENT = 6


class PackageType(str, Enum):
    envelope = "envelope"
    small_box = "small_box"
    large_box = "large_box"
    pallet = "pallet"


class PaymentMethod(str, Enum):
    card = "card"
    crypto = "crypto"
    bank_transfer = "bank_transfer"


class DiscountType(str, Enum):
    percentage = "percentage"
    fixed = "fixed"


# ===============================================================
# Step forms (raw user input, validated by the wizard)
# ===============================================================
class _Form(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")


class ContactForm(_Form):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    apt_suite: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    instructions: Optional[str] = Field(None, description="Pickup or delivery instructions")


class RecipientForm(ContactForm):
    is_international: Optional[bool] = None
    tax_id: Optional[str] = None
    hs_code: Optional[str] = None
    content_type: Optional[str] = None


class PackageForm(_Form):
    package_type: Optional[str] = None
    length: Union[float, str, None] = None
    width: Union[float, str, None] = None
    height: Union[float, str, None] = None
    weight: Union[float, str, None] = None
    quantity: Union[float, str, None] = None
    description: Optional[str] = None
    declared_value: Union[float, str, None] = None
    has_insurance: Optional[bool] = None


class VideoForm(_Form):
    video_url: Optional[str] = None
    video_notes: Optional[str] = None


class ServiceForm(_Form):
    tier: Optional[str] = None
    pickup_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    pickup_time: Optional[str] = None


# ===============================================================
# Draft blocks (validated data)
# ===============================================================
class ContactBlock(BaseModel):
    name: str
    email: str
    phone: str
    address: str
    apt_suite: Optional[str] = None
    city: str
    state: str
    zip: str
    country: str
    instructions: Optional[str] = None


class RecipientBlock(ContactBlock):
    tax_id: Optional[str] = None
    hs_code: Optional[str] = None
    content_type: Optional[str] = None


class PackageBlock(BaseModel):
    package_type: PackageType
    length: float
    width: float
    height: float
    weight: float
    quantity: int
    description: str
    declared_value: float

    @property
    def dimensions(self) -> str:
        return f"{self.length:g}x{self.width:g}x{self.height:g}"


class VideoBlock(BaseModel):
    video_url: Optional[str] = None
    video_notes: Optional[str] = None


class ServiceBlock(BaseModel):
    tier: ServiceTier
    label: str
    transit_days: int
    pickup_date: date
    pickup_time: str


class Coupon(BaseModel):
    code: str
    discount_type: DiscountType = DiscountType.percentage
    discount_value: float = 0.0


class CostBreakdown(BaseModel):
    base_price: float
    insurance: float
    international_fee: float
    subtotal: float
    discount: float
    tax: float
    total: float


class ShipmentDraft(BaseModel):
    sender: Optional[ContactBlock] = None
    recipient: Optional[RecipientBlock] = None
    package: Optional[PackageBlock] = None
    video: Optional[VideoBlock] = None
    service: Optional[ServiceBlock] = None
    estimated_delivery: Optional[date] = None
    is_international: bool = False
    has_insurance: bool = False
    coupon: Optional[Coupon] = None
    cost: Optional[CostBreakdown] = None
    payment_method: Optional[PaymentMethod] = None
    payment_proof_url: Optional[str] = None


class WizardState(BaseModel):
    """Everything the wizard knows; sent by the client and returned updated."""

    step: WizardStep = WizardStep.SENDER
    draft: ShipmentDraft = Field(default_factory=ShipmentDraft)
    selected_tier: Optional[ServiceTier] = None


class FieldError(BaseModel):
    field: str
    message: str


# ===============================================================
# API payloads
# ===============================================================
class StepRequest(BaseModel):
    state: WizardState = Field(default_factory=WizardState)
    form: Dict[str, Any] = Field(default_factory=dict)


class StateRequest(BaseModel):
    state: WizardState = Field(default_factory=WizardState)


class TierRequest(StateRequest):
    tier: str


class TogglesRequest(StateRequest):
    is_international: Optional[bool] = None
    has_insurance: Optional[bool] = None


class CouponRequest(StateRequest):
    code: str


class SubmitRequest(StateRequest):
    payment_method: Optional[PaymentMethod] = None
    payment_method_id: Optional[str] = Field(
        None, description="Tokenized card from the payment processor (card path)"
    )
    payment_proof_url: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "state": {"step": 6, "draft": {}},
                "payment_method": "card",
                "payment_method_id": "pm_card_visa",
            }
        }


class WizardResponse(BaseModel):
    state: WizardState
    message: Optional[str] = None


class SubmitResponse(BaseModel):
    shipment_id: str
    tracking_number: Optional[str] = None
    payment_status: str
    total: float
    message: str


class PaymentResult(BaseModel):
    """Outcome of a payment adapter; feeds the shared shipment persistence."""

    payment_status: str = Field(..., description="paid or pending")
    transaction_id: Optional[str] = None
    stripe_payment_id: Optional[str] = None
    payment_proof_url: Optional[str] = None
    update_message: str
