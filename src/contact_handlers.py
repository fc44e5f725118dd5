from datetime import datetime, timezone

from fastapi import HTTPException

from src.models.api import ContactRequest, MessageResponse
from src.utils.cooldown import Cooldown
from src.utils.logger import api_logger, log_api_request, log_failure, log_success
from src.utils.supabase import supabase_insert, supabase_invoke_function
from src.utils.validation import is_blank, is_valid_email


CONTACT_COOLDOWN_SECONDS = 5
DEFAULT_SUBJECT = "New Contact Message"
MIN_NAME_LENGTH = 2
MIN_MESSAGE_LENGTH = 10
MAX_MESSAGE_LENGTH = 1000

contact_cooldown = Cooldown(CONTACT_COOLDOWN_SECONDS)


def validate_contact_form(req: ContactRequest) -> None:
    if is_blank(req.full_name) or is_blank(req.email) or is_blank(req.message):
        raise HTTPException(status_code=400, detail="Please fill in all required fields")
    if len(req.full_name.strip()) < MIN_NAME_LENGTH:
        raise HTTPException(
            status_code=400, detail=f"Name must be at least {MIN_NAME_LENGTH} characters"
        )
    if not is_valid_email(req.email):
        raise HTTPException(status_code=400, detail="Please enter a valid email address")
    length = len(req.message.strip())
    if length < MIN_MESSAGE_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Message must be at least {MIN_MESSAGE_LENGTH} characters",
        )
    if length > MAX_MESSAGE_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Message must be less than {MAX_MESSAGE_LENGTH} characters",
        )


# ===============================================================
# /contact
# ===============================================================
def contact_handler(req: ContactRequest, requester: str) -> MessageResponse:
    log_api_request(api_logger, "POST", "/contact", {"email": req.email})

    contact_cooldown.check(requester, "Please wait {seconds} seconds before sending another message")
    validate_contact_form(req)
    contact_cooldown.arm(requester)

    record = {
        "full_name": req.full_name.strip(),
        "email": req.email.strip().lower(),
        "subject": (req.subject or "").strip() or DEFAULT_SUBJECT,
        "message": req.message.strip(),
        "status": "new",
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    saved = supabase_insert("contact_messages", record)

    try:
        supabase_invoke_function("send-contact-email", record)
    except Exception as e:
        log_failure(api_logger, f"Contact email notification not sent: {e}")

    log_success(api_logger, f"Contact message {saved.get('id')} stored")
    return MessageResponse(message="Thank you! Your message has been sent successfully.")
