from typing import Optional

from fastapi import HTTPException

from src.models.api import MessageResponse
from src.models.auth import (
    AuthResponse,
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    SignupRequest,
)
from src.utils.auth import get_admin_record
from src.utils.cooldown import LoginLockout
from src.utils.logger import auth_logger, log_api_request, log_failure, log_success
from src.utils.settings import get_site_url
from src.utils.supabase import (
    get_auth_client,
    get_supabase,
    supabase_get_row,
    supabase_insert,
)
from src.utils.validation import is_blank, is_valid_email, password_problem


ADMIN_REDIRECT = "admin.html"
CUSTOMER_REDIRECT = "dashboard.html"
MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_SECONDS = 5 * 60

login_lockout = LoginLockout(MAX_LOGIN_ATTEMPTS, LOCKOUT_SECONDS)


def _error_message(error: Exception) -> str:
    return getattr(error, "message", None) or str(error)


def redirect_for(user_id: str) -> str:
    """Admins land on the console, everyone else on the dashboard."""
    record = get_admin_record(user_id)
    if record and (record.get("status") or "active") == "active":
        return ADMIN_REDIRECT
    return CUSTOMER_REDIRECT


def ensure_profile(user_id: str, full_name: Optional[str]) -> None:
    """Create the user's profile row when missing. Failure is logged, never raised."""
    try:
        if supabase_get_row("user_profiles", {"user_id": user_id}, columns="user_id"):
            return
        supabase_insert("user_profiles", {"user_id": user_id, "full_name": full_name})
        auth_logger.info(f"🔐 Created profile for {user_id}")
    except Exception as e:
        log_failure(auth_logger, f"Profile bootstrap for {user_id} failed: {e}")


# ===============================================================
# /auth/login
# ===============================================================
def login_handler(req: LoginRequest) -> AuthResponse:
    email = (req.email or "").strip().lower()
    log_api_request(auth_logger, "POST", "/auth/login", {"email": email})

    if is_blank(email) or is_blank(req.password):
        raise HTTPException(status_code=400, detail="Please enter your email and password")
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Please enter a valid email address")

    locked = login_lockout.locked_for(email)
    if locked > 0:
        minutes = int(locked // 60) + 1
        raise HTTPException(
            status_code=429,
            detail=f"Too many failed attempts. Please try again in {minutes} minute(s)",
        )

    try:
        res = get_auth_client().auth.sign_in_with_password(
            {"email": email, "password": req.password}
        )
    except Exception as e:
        message = _error_message(e)
        if "not confirmed" in message.lower():
            raise HTTPException(
                status_code=403, detail="Please confirm your email before signing in"
            )
        remaining = login_lockout.register_failure(email)
        auth_logger.warning(f"🔐 Failed sign-in for {email}: {message}")
        if remaining == 0:
            raise HTTPException(
                status_code=429,
                detail="Too many failed attempts. Please try again in 5 minute(s)",
            )
        raise HTTPException(
            status_code=401,
            detail=f"Invalid email or password. {remaining} attempt(s) remaining",
        )

    user, session = res.user, res.session
    if user is None or session is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    login_lockout.register_success(email)
    metadata = dict(getattr(user, "user_metadata", None) or {})
    ensure_profile(str(user.id), metadata.get("full_name"))

    log_success(auth_logger, f"Signed in {email}")
    return AuthResponse(
        message="Login successful! Redirecting...",
        redirect=redirect_for(str(user.id)),
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=getattr(session, "expires_in", None),
        user_id=str(user.id),
        email=user.email,
    )


# ===============================================================
# /auth/signup
# ===============================================================
def signup_handler(req: SignupRequest) -> AuthResponse:
    email = (req.email or "").strip().lower()
    log_api_request(auth_logger, "POST", "/auth/signup", {"email": email})

    if is_blank(req.first_name) or is_blank(req.last_name):
        raise HTTPException(status_code=400, detail="Please enter your first and last name")
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Please enter a valid email address")
    problem = password_problem(req.password)
    if problem:
        raise HTTPException(status_code=400, detail=problem)
    if req.password != req.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    if not req.terms_accepted:
        raise HTTPException(status_code=400, detail="Please accept the terms and conditions")

    full_name = f"{req.first_name.strip()} {req.last_name.strip()}"
    try:
        res = get_auth_client().auth.sign_up(
            {
                "email": email,
                "password": req.password,
                "options": {
                    "data": {
                        "first_name": req.first_name.strip(),
                        "last_name": req.last_name.strip(),
                        "full_name": full_name,
                    },
                    "email_redirect_to": f"{get_site_url()}/login.html",
                },
            }
        )
    except Exception as e:
        message = _error_message(e)
        if "already" in message.lower():
            raise HTTPException(status_code=409, detail="An account with this email already exists")
        auth_logger.exception("Sign-up failed for %s: %s", email, e)
        raise HTTPException(status_code=500, detail="Unable to create account. Please try again")

    user = res.user
    if user is None:
        raise HTTPException(status_code=500, detail="Unable to create account. Please try again")

    ensure_profile(str(user.id), full_name)
    log_success(auth_logger, f"Account created for {email}")
    return AuthResponse(
        message="Account created! Please check your email to confirm your account.",
        user_id=str(user.id),
        email=email,
    )


# ===============================================================
# /auth/forgot-password
# ===============================================================
def forgot_password_handler(req: ForgotPasswordRequest) -> MessageResponse:
    email = (req.email or "").strip().lower()
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Please enter a valid email address")
    try:
        get_auth_client().auth.reset_password_for_email(
            email, {"redirect_to": f"{get_site_url()}/reset-password.html"}
        )
    except Exception as e:
        auth_logger.exception("Password reset for %s failed: %s", email, e)
        raise HTTPException(status_code=500, detail="Unable to send reset email. Please try again")
    return MessageResponse(message="Password reset link sent! Check your email.")


# ===============================================================
# /auth/callback and /auth/logout
# ===============================================================
def oauth_callback_handler(user: CurrentUser, oauth: Optional[str]) -> AuthResponse:
    if oauth != "success":
        raise HTTPException(status_code=400, detail="Social sign-in did not complete")
    ensure_profile(user.id, user.full_name)
    return AuthResponse(
        message="Login successful! Redirecting...",
        redirect=redirect_for(user.id),
        user_id=user.id,
        email=user.email,
    )


def logout_handler(user: CurrentUser) -> MessageResponse:
    try:
        get_supabase().auth.admin.sign_out(user.access_token)
    except Exception as e:
        log_failure(auth_logger, f"Sign-out for {user.id} failed: {e}")
    return MessageResponse(message="Signed out")
