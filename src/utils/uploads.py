import time
from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import HTTPException, UploadFile

from src.utils.formatting import format_file_size
from src.utils.logger import api_logger
from src.utils.supabase import supabase_upload_file
from src.utils.validation import sanitize_filename


@dataclass(frozen=True)
class UploadRule:
    bucket: str
    allowed_types: Tuple[str, ...]
    max_bytes: int
    label: str

    def accepts(self, content_type: Optional[str]) -> bool:
        content_type = (content_type or "").lower()
        for allowed in self.allowed_types:
            if allowed.endswith("/*"):
                if content_type.startswith(allowed[:-1]):
                    return True
            elif content_type == allowed:
                return True
        return False


VIDEO_UPLOAD = UploadRule(
    bucket="shipment-videos",
    allowed_types=("video/mp4", "video/quicktime", "video/x-msvideo", "video/webm"),
    max_bytes=50 * 1024 * 1024,
    label="video (MP4, MOV, AVI or WebM)",
)

PAYMENT_PROOF_UPLOAD = UploadRule(
    bucket="payment-proofs",
    allowed_types=("image/png", "image/jpeg", "image/jpg", "application/pdf"),
    max_bytes=10 * 1024 * 1024,
    label="PNG, JPG or PDF file",
)

AVATAR_UPLOAD = UploadRule(
    bucket="avatars",
    allowed_types=("image/*",),
    max_bytes=2 * 1024 * 1024,
    label="image",
)


def check_upload(rule: UploadRule, content_type: Optional[str], size: int) -> None:
    """Raise 400 when the file type or size is outside the rule."""
    if not rule.accepts(content_type):
        raise HTTPException(status_code=400, detail=f"Please upload a valid {rule.label}")
    if size > rule.max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File size must be less than {format_file_size(rule.max_bytes)}",
        )
    if size == 0:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")


def timestamped_name(filename: Optional[str]) -> str:
    return f"{int(time.time() * 1000)}_{sanitize_filename(filename or 'upload')}"


async def store_upload(rule: UploadRule, file: UploadFile, path: Optional[str] = None) -> str:
    """Validate and upload a file, returning its public URL."""
    content = await file.read()
    check_upload(rule, file.content_type, len(content))
    object_path = path or timestamped_name(file.filename)
    url = supabase_upload_file(rule.bucket, object_path, content, file.content_type or "")
    api_logger.info(
        f"📤 Stored {rule.bucket}/{object_path} ({format_file_size(len(content))})"
    )
    return url
