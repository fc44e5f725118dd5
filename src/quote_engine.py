"""
Pricing for quotes and shipments.

Two variants share the tier table:
- compute_cost: quote calculator (base + add-ons)
- compute_shipment_cost: wizard checkout (base + insurance + international
  fee, then coupon discount, then tax on the discounted amount)
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from src.models.quote import QuoteBreakdownResponse, QuoteOptions, ServiceTier
from src.models.shipment import CostBreakdown, Coupon, DiscountType
from src.utils.formatting import money, to_decimal


@dataclass(frozen=True)
class TierPricing:
    base_rate: Decimal
    per_weight_rate: Decimal
    transit_days: int
    label: str


TIER_PRICING: Dict[ServiceTier, TierPricing] = {
    ServiceTier.express: TierPricing(Decimal("15.99"), Decimal("2.50"), 2, "Express (1-2 days)"),
    ServiceTier.standard: TierPricing(Decimal("9.99"), Decimal("1.20"), 5, "Standard (3-5 days)"),
    ServiceTier.economy: TierPricing(Decimal("5.99"), Decimal("0.85"), 8, "Economy (5-8 days)"),
    ServiceTier.international: TierPricing(
        Decimal("25.99"), Decimal("3.75"), 10, "International (7-10 days)"
    ),
}

# Names the quote page uses for the same tiers
TIER_ALIASES = {"freight": ServiceTier.economy}

# Quote add-ons
SIGNATURE_FEE = Decimal("3.00")
INSURANCE_RATE = Decimal("0.02")
SATURDAY_FEE = Decimal("15.00")
PACKAGING_FEE = Decimal("8.00")

# Wizard checkout
WIZARD_INSURANCE_RATE = Decimal("0.015")
INTERNATIONAL_FEE = Decimal("50.00")
TAX_RATE = Decimal("0.10")
FREE_SHIPPING_CODE = "FREESHIP"

ZERO = Decimal("0")


def resolve_tier(value: Union[str, ServiceTier, None]) -> Optional[ServiceTier]:
    """Map a tier name to a ServiceTier, None if unrecognized."""
    if value is None:
        return None
    if isinstance(value, ServiceTier):
        return value
    name = str(value).strip().lower()
    if name in TIER_ALIASES:
        return TIER_ALIASES[name]
    try:
        return ServiceTier(name)
    except ValueError:
        return None


def positive_decimal(value: Any) -> Optional[Decimal]:
    amount = to_decimal(value)
    if amount is None or amount <= 0:
        return None
    return amount


# ===============================================================
# Quote calculator
# ===============================================================
@dataclass(frozen=True)
class QuoteBreakdown:
    tier: ServiceTier
    weight: Decimal
    base_shipping: Decimal
    signature_cost: Decimal
    insurance_cost: Decimal
    saturday_cost: Decimal
    packaging_cost: Decimal
    total: Decimal

    def to_response(self) -> QuoteBreakdownResponse:
        return QuoteBreakdownResponse(
            service=self.tier,
            weight=float(self.weight),
            base_shipping=money(self.base_shipping),
            signature_cost=money(self.signature_cost),
            insurance_cost=money(self.insurance_cost),
            saturday_cost=money(self.saturday_cost),
            packaging_cost=money(self.packaging_cost),
            total=money(self.total),
            transit_days=TIER_PRICING[self.tier].transit_days,
        )


def compute_cost(
    weight: Any,
    tier: Union[str, ServiceTier, None],
    options: Optional[QuoteOptions] = None,
) -> Optional[QuoteBreakdown]:
    """
    Price a quote. Returns None when weight is missing, non-numeric or not
    positive, or when the tier is unknown.
    """
    weight_value = positive_decimal(weight)
    resolved = resolve_tier(tier)
    if weight_value is None or resolved is None:
        return None

    options = options or QuoteOptions()
    pricing = TIER_PRICING[resolved]

    base_shipping = pricing.base_rate + weight_value * pricing.per_weight_rate
    signature_cost = SIGNATURE_FEE if options.signature else ZERO
    insurance_cost = ZERO
    if options.insurance:
        insurance_cost = (to_decimal(options.declared_value) or ZERO) * INSURANCE_RATE
    saturday_cost = SATURDAY_FEE if options.saturday else ZERO
    packaging_cost = PACKAGING_FEE if options.packaging else ZERO

    total = base_shipping + signature_cost + insurance_cost + saturday_cost + packaging_cost
    return QuoteBreakdown(
        tier=resolved,
        weight=weight_value,
        base_shipping=base_shipping,
        signature_cost=signature_cost,
        insurance_cost=insurance_cost,
        saturday_cost=saturday_cost,
        packaging_cost=packaging_cost,
        total=total,
    )


# ===============================================================
# Wizard checkout
# ===============================================================
@dataclass(frozen=True)
class ShipmentCost:
    base_price: Decimal
    insurance: Decimal
    international_fee: Decimal
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal

    def to_model(self) -> CostBreakdown:
        return CostBreakdown(
            base_price=money(self.base_price),
            insurance=money(self.insurance),
            international_fee=money(self.international_fee),
            subtotal=money(self.subtotal),
            discount=money(self.discount),
            tax=money(self.tax),
            total=money(self.total),
        )


def wizard_base_price(tier: Union[str, ServiceTier, None], weight: Any) -> Optional[Decimal]:
    resolved = resolve_tier(tier)
    weight_value = positive_decimal(weight)
    if resolved is None or weight_value is None:
        return None
    pricing = TIER_PRICING[resolved]
    return pricing.base_rate + weight_value * pricing.per_weight_rate


def coupon_discount(subtotal: Decimal, coupon: Optional[Coupon]) -> Decimal:
    """Discount for a coupon against the surcharge-inclusive subtotal."""
    if coupon is None:
        return ZERO
    if coupon.code.upper() == FREE_SHIPPING_CODE:
        return subtotal
    value = to_decimal(coupon.discount_value) or ZERO
    if coupon.discount_type == DiscountType.percentage:
        discount = subtotal * value / Decimal("100")
    else:
        discount = value
    return max(ZERO, min(discount, subtotal))


def compute_shipment_cost(
    base_price: Any,
    *,
    declared_value: Any = None,
    insurance: bool = False,
    international: bool = False,
    coupon: Optional[Coupon] = None,
) -> ShipmentCost:
    """subtotal -> discount -> tax on (subtotal - discount) -> total."""
    base = to_decimal(base_price) or ZERO
    insurance_amount = ZERO
    if insurance:
        insurance_amount = (to_decimal(declared_value) or ZERO) * WIZARD_INSURANCE_RATE
    international_fee = INTERNATIONAL_FEE if international else ZERO

    subtotal = base + insurance_amount + international_fee
    discount = coupon_discount(subtotal, coupon)
    after_discount = subtotal - discount
    tax = after_discount * TAX_RATE
    return ShipmentCost(
        base_price=base,
        insurance=insurance_amount,
        international_fee=international_fee,
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        total=after_discount + tax,
    )


def generate_quote_id(sequence: int, today: Optional[date] = None) -> str:
    """Q-YYYYMMDD-NNN"""
    today = today or date.today()
    return f"Q-{today.strftime('%Y%m%d')}-{sequence % 1000:03d}"
