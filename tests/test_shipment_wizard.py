from datetime import date, timedelta

from src.models.shipment import (
    Coupon,
    DiscountType,
    PackageType,
    PaymentMethod,
    WizardStep,
)
from src.shipment_wizard import (
    advance,
    apply_coupon,
    go_back,
    prepare_submission,
    remove_coupon,
    select_tier,
    set_toggles,
    start_state,
)


def _advance_to(step, forms):
    state = start_state()
    steps = [forms.sender, forms.recipient, forms.package, {}, forms.service()]
    for form in steps[: step - 1]:
        outcome = advance(state, form)
        assert outcome.ok, outcome.error
        state = outcome.state
    return state


def test_first_missing_field_is_reported(wizard_forms):
    form = dict(wizard_forms.sender, email="", phone="")
    outcome = advance(start_state(), form)
    assert not outcome.ok
    assert outcome.error.field == "sender_email"
    assert outcome.state.step == WizardStep.SENDER
    assert outcome.state.draft.sender is None


def test_short_phone_number_is_rejected(wizard_forms):
    outcome = advance(start_state(), dict(wizard_forms.sender, phone="555-0100"))
    assert outcome.error.field == "sender_phone"


def test_valid_step_merges_and_advances(wizard_forms):
    outcome = advance(start_state(), wizard_forms.sender)
    assert outcome.ok
    assert outcome.state.step == WizardStep.RECIPIENT
    assert outcome.state.draft.sender.city == "Lagos"


def test_recipient_step_sets_international_flag(wizard_forms):
    state = _advance_to(WizardStep.PACKAGE, wizard_forms)
    assert state.draft.is_international is True
    assert state.draft.recipient.country == "United States"


def test_envelope_uses_fixed_dimensions(wizard_forms):
    state = _advance_to(WizardStep.PACKAGE, wizard_forms)
    form = {
        "package_type": "envelope",
        "weight": 0.5,
        "quantity": 1,
        "description": "Signed contract papers",
        "declared_value": 50,
    }
    outcome = advance(state, form)
    assert outcome.ok, outcome.error
    package = outcome.state.draft.package
    assert package.package_type == PackageType.envelope
    assert package.dimensions == "30x22x1"


def test_box_requires_dimensions(wizard_forms):
    state = _advance_to(WizardStep.PACKAGE, wizard_forms)
    outcome = advance(state, dict(wizard_forms.package, height=0))
    assert outcome.error.field == "height"


def test_short_description_is_rejected(wizard_forms):
    state = _advance_to(WizardStep.PACKAGE, wizard_forms)
    outcome = advance(state, dict(wizard_forms.package, description="Books"))
    assert outcome.error.field == "description"


def test_fractional_quantity_is_rejected(wizard_forms):
    state = _advance_to(WizardStep.PACKAGE, wizard_forms)
    outcome = advance(state, dict(wizard_forms.package, quantity="1.5"))
    assert outcome.error.field == "quantity"


def test_video_step_is_optional(wizard_forms):
    state = _advance_to(WizardStep.VIDEO, wizard_forms)
    outcome = advance(state, {})
    assert outcome.ok
    assert outcome.state.step == WizardStep.SERVICE


def test_pickup_today_is_rejected_and_nothing_is_merged(wizard_forms):
    state = _advance_to(WizardStep.SERVICE, wizard_forms)
    outcome = advance(state, wizard_forms.service(days_ahead=0))
    assert outcome.error.field == "pickup_date"
    assert outcome.state.draft.service is None
    assert outcome.state.step == WizardStep.SERVICE


def test_pickup_too_far_ahead_is_rejected(wizard_forms):
    state = _advance_to(WizardStep.SERVICE, wizard_forms)
    outcome = advance(state, wizard_forms.service(days_ahead=45))
    assert outcome.error.field == "pickup_date"


def test_pickup_tomorrow_is_accepted(wizard_forms):
    state = _advance_to(WizardStep.SERVICE, wizard_forms)
    assert advance(state, wizard_forms.service(days_ahead=1)).ok


def test_entering_payment_estimates_delivery(payment_state):
    draft = payment_state.draft
    assert payment_state.step == WizardStep.PAYMENT
    assert draft.estimated_delivery == draft.service.pickup_date + timedelta(days=5)


def test_payment_step_cost_includes_international_fee(payment_state):
    cost = payment_state.draft.cost
    # standard: 9.99 + 2 * 1.20 = 12.39, plus the 50.00 international fee
    assert cost.base_price == 12.39
    assert cost.international_fee == 50.0
    assert cost.subtotal == 62.39
    assert cost.tax == 6.24
    assert cost.total == 68.63


def test_advance_from_payment_is_an_error(payment_state):
    outcome = advance(payment_state, {})
    assert outcome.error.field == "step"


def test_go_back_keeps_the_draft(payment_state):
    state = go_back(payment_state)
    assert state.step == WizardStep.SERVICE
    assert state.draft.package is not None
    assert go_back(start_state()).step == WizardStep.SENDER


def test_toggles_recompute_cost(payment_state):
    state = set_toggles(payment_state, is_international=False, has_insurance=True)
    # 12.39 + 200 * 1.5% = 15.39, tax 1.539
    assert state.draft.cost.subtotal == 15.39
    assert state.draft.cost.total == 16.93


def test_tier_selection_drives_price(payment_state):
    outcome = select_tier(payment_state, "express")
    assert outcome.ok
    assert outcome.state.draft.cost.base_price == 20.99
    assert not select_tier(payment_state, "teleport").ok


def test_coupon_replaces_previous_and_can_be_removed(payment_state):
    state = apply_coupon(payment_state, Coupon(code="A", discount_type=DiscountType.fixed, discount_value=5))
    state = apply_coupon(state, Coupon(code="B", discount_type=DiscountType.percentage, discount_value=10))
    assert state.draft.coupon.code == "B"
    assert state.draft.cost.discount == 6.24
    state = remove_coupon(state)
    assert state.draft.coupon is None
    assert state.draft.cost.discount == 0


def test_prepare_submission_requires_payment_step(wizard_forms):
    state = _advance_to(WizardStep.SERVICE, wizard_forms)
    draft, error = prepare_submission(state, PaymentMethod.card)
    assert draft is None
    assert error.field == "step"


def test_prepare_submission_requires_proof_for_crypto(payment_state):
    draft, error = prepare_submission(payment_state, PaymentMethod.crypto)
    assert error.field == "payment_proof"


def test_prepare_submission_recomputes_tampered_cost(payment_state):
    payment_state.draft.cost.total = 1.0
    draft, error = prepare_submission(payment_state, PaymentMethod.bank_transfer)
    assert error is None
    assert draft.cost.total == 68.63
    assert draft.payment_method == PaymentMethod.bank_transfer


def test_prepare_submission_revalidates_blocks(payment_state):
    payment_state.draft.service.pickup_date = date.today()
    draft, error = prepare_submission(payment_state, PaymentMethod.bank_transfer)
    assert draft is None
    assert error.field == "pickup_date"


def test_prepare_submission_rebuilds_derived_package_and_service_fields(payment_state):
    payment_state.draft.package.package_type = PackageType.envelope
    payment_state.draft.package.length = 100
    payment_state.draft.package.width = 100
    payment_state.draft.package.height = 100
    payment_state.draft.service.label = "Free Overnight"
    payment_state.draft.service.transit_days = 0
    draft, error = prepare_submission(payment_state, PaymentMethod.bank_transfer)
    assert error is None
    package = draft.package
    assert (package.length, package.width, package.height) == (30, 22, 1)
    assert draft.service.label == "Standard (3-5 days)"
    assert draft.service.transit_days == 5
