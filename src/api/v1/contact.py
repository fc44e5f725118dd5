from fastapi import APIRouter, Request

from src.contact_handlers import contact_handler
from src.models.api import ContactRequest, MessageResponse
from src.utils.auth import client_key
from src.utils.safe_handler import safe_handler

router = APIRouter()


@router.post("", response_model=MessageResponse, summary="Send a contact message")
@safe_handler()
def contact(req: ContactRequest, request: Request):
    return contact_handler(req, client_key(request))
