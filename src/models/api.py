"""
Pydantic models shared by the public API endpoints.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# Request Models
class ContactRequest(BaseModel):
    """Contact form submission."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "full_name": "Ada Obi",
                "email": "ada@example.com",
                "subject": "Delivery question",
                "message": "When will my parcel from Lagos arrive?",
            }
        }
    )

    full_name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None


# Response Models
class MessageResponse(BaseModel):
    """Generic acknowledgement."""

    success: bool = Field(True, description="Whether the action completed")
    message: str = Field(..., description="Human readable outcome")
