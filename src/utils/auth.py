from typing import Optional

from fastapi import Depends, HTTPException, Request

from src.models.auth import AdminUser, CurrentUser
from src.utils.logger import auth_logger
from src.utils.supabase import get_supabase, supabase_get_row


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_user(token: str) -> Optional[CurrentUser]:
    """Look the token up with the auth service; None when it is not a live session."""
    try:
        res = get_supabase().auth.get_user(token)
    except Exception as e:
        auth_logger.warning(f"🔐 Session lookup failed: {e}")
        return None
    user = getattr(res, "user", None)
    if user is None:
        return None
    metadata = dict(getattr(user, "user_metadata", None) or {})
    full_name = metadata.get("full_name") or " ".join(
        part for part in (metadata.get("first_name"), metadata.get("last_name")) if part
    )
    return CurrentUser(
        id=str(user.id),
        email=getattr(user, "email", None),
        full_name=full_name or None,
        metadata=metadata,
        access_token=token,
    )


# ===============================================================
# FastAPI dependencies
# ===============================================================
def get_current_user(request: Request) -> CurrentUser:
    """Auth gate: every protected route requires a live session."""
    token = bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Please sign in to continue")
    user = resolve_user(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Your session has expired. Please sign in again")
    return user


def get_optional_user(request: Request) -> Optional[CurrentUser]:
    token = bearer_token(request)
    return resolve_user(token) if token else None


def get_admin_record(user_id: str) -> Optional[dict]:
    return supabase_get_row("admin_users", {"user_id": user_id})


def require_admin(user: CurrentUser = Depends(get_current_user)) -> AdminUser:
    record = get_admin_record(user.id)
    if not record or (record.get("status") or "active") != "active":
        auth_logger.warning(f"🔐 Non-admin {user.id} tried to open the admin console")
        raise HTTPException(status_code=403, detail="Access denied. Admin privileges required")
    return AdminUser(
        id=record.get("id"),
        user_id=user.id,
        email=record.get("email") or user.email,
        role=record.get("role") or "admin",
        status=record.get("status") or "active",
        permissions=record.get("permissions") or {},
    )


def client_key(request: Request, user: Optional[CurrentUser] = None) -> str:
    """Identity used by cooldowns: the user when known, else the client address."""
    if user is not None:
        return f"user:{user.id}"
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"
