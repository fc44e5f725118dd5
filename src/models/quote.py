"""
Pydantic models for the quote calculator and quote requests.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ServiceTier(str, Enum):
    express = "express"
    standard = "standard"
    economy = "economy"
    international = "international"


# Request Models
class QuoteOptions(BaseModel):
    """Optional add-ons priced on top of the base shipping cost."""

    signature: bool = False
    insurance: bool = False
    declared_value: Union[float, str, None] = Field(
        None, description="Declared value used for the insurance add-on"
    )
    saturday: bool = False
    packaging: bool = False


class QuickQuoteRequest(BaseModel):
    """Calculator widget: weight and tier only."""

    weight: Union[float, str, None] = None
    service: Optional[str] = None


class QuoteRequest(BaseModel):
    """Full quote form."""

    model_config = ConfigDict(
        coerce_numbers_to_str=True,
        json_schema_extra={
            "example": {
                "name": "Ada Obi",
                "email": "ada@example.com",
                "phone": "+234 801 234 5678",
                "origin": "Lagos, Nigeria",
                "destination": "New York, USA",
                "weight": 4.5,
                "service": "express",
                "insurance_required": True,
                "declared_value": 250,
            }
        },
    )

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    weight: Union[float, str, None] = None
    service: Optional[str] = None
    dimensions: Optional[str] = None
    declared_value: Union[float, str, None] = None
    signature_required: bool = False
    insurance_required: bool = False
    saturday_delivery: bool = False
    special_packaging: bool = False
    special_instructions: Optional[str] = None


# Response Models
class QuoteBreakdownResponse(BaseModel):
    service: ServiceTier
    weight: float
    base_shipping: float
    signature_cost: float
    insurance_cost: float
    saturday_cost: float
    packaging_cost: float
    total: float
    transit_days: int


class QuickQuoteResponse(BaseModel):
    quote: Optional[QuoteBreakdownResponse] = None
    message: Optional[str] = Field(None, description="Set when no quote can be computed")


class QuoteResponse(BaseModel):
    quote_id: str
    breakdown: QuoteBreakdownResponse
    message: str


class EmailQuoteRequest(BaseModel):
    quote_id: str
    name: Optional[str] = None
    email: str
    breakdown: QuoteBreakdownResponse
