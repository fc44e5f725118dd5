"""
Pydantic models for sign-in, sign-up and the authenticated caller.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CurrentUser(BaseModel):
    """The signed-in caller, resolved from the bearer token."""

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    access_token: Optional[str] = Field(None, exclude=True)


class AdminUser(BaseModel):
    id: Optional[str] = None
    user_id: str
    email: Optional[str] = None
    role: str = "admin"
    status: str = "active"
    permissions: Dict[str, bool] = Field(default_factory=dict)


class LoginRequest(BaseModel):
    email: str
    password: str
    remember_me: bool = False

    class Config:
        json_schema_extra = {
            "example": {"email": "ada@example.com", "password": "Secret123"}
        }


class SignupRequest(BaseModel):
    first_name: str
    last_name: str
    email: str
    password: str
    confirm_password: str
    terms_accepted: bool = True


class ForgotPasswordRequest(BaseModel):
    email: str


class AuthResponse(BaseModel):
    message: str
    redirect: Optional[str] = Field(None, description="Page the browser should open next")
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
