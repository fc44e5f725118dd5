from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.auth_handlers import (
    forgot_password_handler,
    login_handler,
    logout_handler,
    oauth_callback_handler,
    redirect_for,
    signup_handler,
)
from src.models.api import MessageResponse
from src.models.auth import (
    AuthResponse,
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    SignupRequest,
)
from src.utils.auth import get_current_user
from src.utils.safe_handler import safe_handler

router = APIRouter()


@router.post("/login", response_model=AuthResponse, summary="Sign in with email and password")
@safe_handler()
def login(req: LoginRequest):
    return login_handler(req)


@router.post("/signup", response_model=AuthResponse, summary="Create an account")
@safe_handler()
def signup(req: SignupRequest):
    return signup_handler(req)


@router.post("/forgot-password", response_model=MessageResponse, summary="Send a password reset email")
@safe_handler()
def forgot_password(req: ForgotPasswordRequest):
    return forgot_password_handler(req)


@router.get("/callback", response_model=AuthResponse, summary="Finish social sign-in")
@safe_handler()
def oauth_callback(
    oauth: Optional[str] = Query(None, description="'success' after the provider redirect"),
    user: CurrentUser = Depends(get_current_user),
):
    return oauth_callback_handler(user, oauth)


@router.get("/session", summary="Current session and landing page")
@safe_handler()
def session(user: CurrentUser = Depends(get_current_user)):
    return {"user": user, "redirect": redirect_for(user.id)}


@router.post("/logout", response_model=MessageResponse, summary="Sign out")
@safe_handler()
def logout(user: CurrentUser = Depends(get_current_user)):
    return logout_handler(user)
