"""
Six-step shipment wizard as a pure state machine.

Every operation takes a WizardState and returns a new one; nothing is kept
between requests. A step's form is merged into the draft only after that
step's validator passes.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ValidationError

from src.models.quote import ServiceTier
from src.models.shipment import (
    ContactBlock,
    ContactForm,
    Coupon,
    FieldError,
    PackageBlock,
    PackageForm,
    PackageType,
    PaymentMethod,
    RecipientBlock,
    RecipientForm,
    ServiceBlock,
    ServiceForm,
    ShipmentDraft,
    VideoBlock,
    VideoForm,
    WizardState,
    WizardStep,
)
from src.quote_engine import (
    TIER_PRICING,
    compute_shipment_cost,
    positive_decimal,
    resolve_tier,
    wizard_base_price,
)
from src.utils.logger import wizard_logger
from src.utils.validation import (
    MIN_PHONE_DIGITS,
    count_digits,
    is_blank,
    is_valid_simple_email,
)


ENVELOPE_DIMENSIONS = (30.0, 22.0, 1.0)
MIN_DESCRIPTION_LENGTH = 10
MAX_PICKUP_DAYS_AHEAD = 30

CONTACT_FIELDS: List[Tuple[str, str]] = [
    ("name", "Full name"),
    ("email", "Email"),
    ("phone", "Phone number"),
    ("address", "Street address"),
    ("city", "City"),
    ("state", "State"),
    ("zip", "ZIP code"),
    ("country", "Country"),
]


@dataclass
class StepOutcome:
    state: WizardState
    error: Optional[FieldError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


# ===============================================================
# Validators: inspect only their own step's form
# ===============================================================
def validate_contact(form: ContactForm, prefix: str) -> Optional[FieldError]:
    for field, label in CONTACT_FIELDS:
        if is_blank(getattr(form, field)):
            return FieldError(field=f"{prefix}_{field}", message=f"{label} is required")
    if not is_valid_simple_email(form.email):
        return FieldError(
            field=f"{prefix}_email", message="Please enter a valid email address"
        )
    if count_digits(form.phone) < MIN_PHONE_DIGITS:
        return FieldError(
            field=f"{prefix}_phone",
            message=f"Phone number must have at least {MIN_PHONE_DIGITS} digits",
        )
    return None


def validate_package(form: PackageForm) -> Optional[FieldError]:
    if is_blank(form.package_type):
        return FieldError(field="package_type", message="Please select a package type")
    try:
        package_type = PackageType(form.package_type.strip().lower())
    except ValueError:
        return FieldError(field="package_type", message="Unknown package type")

    numeric_fields = [
        ("weight", "Weight"),
        ("quantity", "Quantity"),
        ("declared_value", "Declared value"),
    ]
    if package_type != PackageType.envelope:
        numeric_fields = [
            ("length", "Length"),
            ("width", "Width"),
            ("height", "Height"),
        ] + numeric_fields

    for field, label in numeric_fields:
        if positive_decimal(getattr(form, field)) is None:
            return FieldError(field=field, message=f"{label} must be greater than 0")
    if positive_decimal(form.quantity) % 1 != 0:
        return FieldError(field="quantity", message="Quantity must be a whole number")

    if len((form.description or "").strip()) < MIN_DESCRIPTION_LENGTH:
        return FieldError(
            field="description",
            message=f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters",
        )
    return None


def parse_pickup_date(value: Optional[str]) -> Optional[date]:
    if is_blank(value):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def validate_service(form: ServiceForm, today: Optional[date] = None) -> Optional[FieldError]:
    today = today or date.today()
    if is_blank(form.tier):
        return FieldError(field="tier", message="Please select a service type")
    if resolve_tier(form.tier) is None:
        return FieldError(field="tier", message="Unknown service type")
    if is_blank(form.pickup_date):
        return FieldError(field="pickup_date", message="Please select a pickup date")
    pickup = parse_pickup_date(form.pickup_date)
    if pickup is None:
        return FieldError(field="pickup_date", message="Please enter a valid pickup date")
    if pickup < today + timedelta(days=1):
        return FieldError(field="pickup_date", message="Pickup date must be tomorrow or later")
    if pickup > today + timedelta(days=MAX_PICKUP_DAYS_AHEAD):
        return FieldError(
            field="pickup_date",
            message=f"Pickup date must be within {MAX_PICKUP_DAYS_AHEAD} days",
        )
    if is_blank(form.pickup_time):
        return FieldError(field="pickup_time", message="Please select a pickup time")
    return None


# ===============================================================
# Form -> draft block
# ===============================================================
def _contact_values(form: ContactForm) -> Dict[str, Any]:
    return {
        "name": form.name.strip(),
        "email": form.email.strip(),
        "phone": form.phone.strip(),
        "address": form.address.strip(),
        "apt_suite": _clean(form.apt_suite),
        "city": form.city.strip(),
        "state": form.state.strip(),
        "zip": form.zip.strip(),
        "country": form.country.strip(),
        "instructions": _clean(form.instructions),
    }


def build_package_block(form: PackageForm) -> PackageBlock:
    package_type = PackageType(form.package_type.strip().lower())
    if package_type == PackageType.envelope:
        length, width, height = ENVELOPE_DIMENSIONS
    else:
        length = float(positive_decimal(form.length))
        width = float(positive_decimal(form.width))
        height = float(positive_decimal(form.height))
    return PackageBlock(
        package_type=package_type,
        length=length,
        width=width,
        height=height,
        weight=float(positive_decimal(form.weight)),
        quantity=int(positive_decimal(form.quantity)),
        description=form.description.strip(),
        declared_value=float(positive_decimal(form.declared_value)),
    )


def build_service_block(form: ServiceForm) -> ServiceBlock:
    tier = resolve_tier(form.tier)
    pricing = TIER_PRICING[tier]
    return ServiceBlock(
        tier=tier,
        label=pricing.label,
        transit_days=pricing.transit_days,
        pickup_date=parse_pickup_date(form.pickup_date),
        pickup_time=form.pickup_time.strip(),
    )


def _parse_form(model: type, form: Union[Dict[str, Any], BaseModel, None]):
    if isinstance(form, model):
        return form, None
    data = form.model_dump() if isinstance(form, BaseModel) else (form or {})
    try:
        return model.model_validate(data), None
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "form"
        return None, FieldError(field=field, message="Invalid value")


# ===============================================================
# Cost
# ===============================================================
def recompute_cost(state: WizardState) -> WizardState:
    """Recalculate the cost summary from the draft; None until tier and weight are known."""
    draft = state.draft
    tier = state.selected_tier or (draft.service.tier if draft.service else None)
    weight = draft.package.weight if draft.package else None
    base = wizard_base_price(tier, weight)
    if base is None:
        draft.cost = None
        return state
    draft.cost = compute_shipment_cost(
        base,
        declared_value=draft.package.declared_value,
        insurance=draft.has_insurance,
        international=draft.is_international,
        coupon=draft.coupon,
    ).to_model()
    return state


# ===============================================================
# Transitions
# ===============================================================
def start_state() -> WizardState:
    return WizardState()


def advance(
    state: WizardState,
    form: Union[Dict[str, Any], BaseModel, None],
    today: Optional[date] = None,
) -> StepOutcome:
    """Validate the current step's form; on success merge it and move to the next step."""
    step = state.step

    if step == WizardStep.PAYMENT:
        return StepOutcome(
            state=state,
            error=FieldError(field="step", message="Payment is the last step; submit the shipment"),
        )

    new_state = state.model_copy(deep=True)
    draft = new_state.draft

    if step in (WizardStep.SENDER, WizardStep.RECIPIENT):
        form_model = ContactForm if step == WizardStep.SENDER else RecipientForm
        prefix = "sender" if step == WizardStep.SENDER else "recipient"
        parsed, error = _parse_form(form_model, form)
        error = error or validate_contact(parsed, prefix)
        if error:
            return StepOutcome(state=state, error=error)
        if step == WizardStep.SENDER:
            draft.sender = ContactBlock(**_contact_values(parsed))
        else:
            draft.recipient = RecipientBlock(
                **_contact_values(parsed),
                tax_id=_clean(parsed.tax_id),
                hs_code=_clean(parsed.hs_code),
                content_type=_clean(parsed.content_type),
            )
            if parsed.is_international is not None:
                draft.is_international = parsed.is_international
    elif step == WizardStep.PACKAGE:
        parsed, error = _parse_form(PackageForm, form)
        error = error or validate_package(parsed)
        if error:
            return StepOutcome(state=state, error=error)
        draft.package = build_package_block(parsed)
        if parsed.has_insurance is not None:
            draft.has_insurance = parsed.has_insurance
    elif step == WizardStep.VIDEO:
        parsed, error = _parse_form(VideoForm, form)
        if error:
            return StepOutcome(state=state, error=error)
        # video is optional
        draft.video = VideoBlock(
            video_url=_clean(parsed.video_url), video_notes=_clean(parsed.video_notes)
        )
    elif step == WizardStep.SERVICE:
        parsed, error = _parse_form(ServiceForm, form)
        error = error or validate_service(parsed, today)
        if error:
            return StepOutcome(state=state, error=error)
        draft.service = build_service_block(parsed)
        new_state.selected_tier = draft.service.tier
    else:
        raise ValueError(f"Unknown wizard step: {step}")

    new_state.step = WizardStep(step + 1)
    if new_state.step == WizardStep.PAYMENT:
        draft.estimated_delivery = draft.service.pickup_date + timedelta(
            days=draft.service.transit_days
        )
    recompute_cost(new_state)
    wizard_logger.debug(f"📦 Wizard advanced {step.name} -> {new_state.step.name}")
    return StepOutcome(state=new_state)


def go_back(state: WizardState) -> WizardState:
    new_state = state.model_copy(deep=True)
    if new_state.step > WizardStep.SENDER:
        new_state.step = WizardStep(new_state.step - 1)
    return new_state


def select_tier(state: WizardState, tier: Union[str, ServiceTier, None]) -> StepOutcome:
    """Single active tier selection; drives the live price and delivery estimate."""
    resolved = resolve_tier(tier)
    if resolved is None:
        return StepOutcome(
            state=state, error=FieldError(field="tier", message="Unknown service type")
        )
    new_state = state.model_copy(deep=True)
    new_state.selected_tier = resolved
    return StepOutcome(state=recompute_cost(new_state))


def set_toggles(
    state: WizardState,
    is_international: Optional[bool] = None,
    has_insurance: Optional[bool] = None,
) -> WizardState:
    new_state = state.model_copy(deep=True)
    if is_international is not None:
        new_state.draft.is_international = is_international
    if has_insurance is not None:
        new_state.draft.has_insurance = has_insurance
    return recompute_cost(new_state)


def apply_coupon(state: WizardState, coupon: Coupon) -> WizardState:
    """Attach a validated coupon, replacing any previous one."""
    new_state = state.model_copy(deep=True)
    new_state.draft.coupon = coupon
    return recompute_cost(new_state)


def remove_coupon(state: WizardState) -> WizardState:
    new_state = state.model_copy(deep=True)
    new_state.draft.coupon = None
    return recompute_cost(new_state)


def estimated_delivery(pickup: date, tier: Union[str, ServiceTier]) -> date:
    return pickup + timedelta(days=TIER_PRICING[resolve_tier(tier)].transit_days)


# ===============================================================
# Submission checks
# ===============================================================
def revalidate_draft(draft: ShipmentDraft, today: Optional[date] = None) -> Optional[FieldError]:
    """Re-run every step validator against the blocks a client sent back."""
    if draft.sender is None:
        return FieldError(field="sender", message="Sender details are missing")
    error = validate_contact(ContactForm(**draft.sender.model_dump()), "sender")
    if error:
        return error
    if draft.recipient is None:
        return FieldError(field="recipient", message="Recipient details are missing")
    error = validate_contact(RecipientForm(**draft.recipient.model_dump()), "recipient")
    if error:
        return error
    if draft.package is None:
        return FieldError(field="package", message="Package details are missing")
    error = validate_package(PackageForm(**draft.package.model_dump(mode="json")))
    if error:
        return error
    if draft.service is None:
        return FieldError(field="tier", message="Please select a service type")
    return validate_service(
        ServiceForm(
            tier=draft.service.tier.value,
            pickup_date=draft.service.pickup_date.isoformat(),
            pickup_time=draft.service.pickup_time,
        ),
        today,
    )


def prepare_submission(
    state: WizardState,
    payment_method: Optional[PaymentMethod],
    payment_proof_url: Optional[str] = None,
    today: Optional[date] = None,
) -> Tuple[Optional[ShipmentDraft], Optional[FieldError]]:
    """
    Final checks before any payment is attempted.

    Returns the draft with cost recomputed server side, or the first problem.
    """
    if state.step != WizardStep.PAYMENT:
        return None, FieldError(field="step", message="Please complete all steps first")
    error = revalidate_draft(state.draft, today)
    if error:
        return None, error
    if payment_method is None:
        return None, FieldError(field="payment_method", message="Please select a payment method")
    if payment_method == PaymentMethod.crypto and is_blank(payment_proof_url):
        return None, FieldError(
            field="payment_proof", message="Please upload proof of payment"
        )

    new_state = state.model_copy(deep=True)
    draft = new_state.draft
    # Derived fields are rebuilt from the raw inputs
    draft.package = build_package_block(PackageForm(**draft.package.model_dump(mode="json")))
    draft.service = build_service_block(
        ServiceForm(
            tier=draft.service.tier.value,
            pickup_date=draft.service.pickup_date.isoformat(),
            pickup_time=draft.service.pickup_time,
        )
    )
    new_state.selected_tier = draft.service.tier
    recompute_cost(new_state)
    if draft.cost is None or draft.cost.total <= 0:
        return None, FieldError(field="total", message="Unable to calculate shipping cost")

    draft.estimated_delivery = estimated_delivery(draft.service.pickup_date, draft.service.tier)
    draft.payment_method = payment_method
    draft.payment_proof_url = _clean(payment_proof_url)
    return draft, None
