"""Upload validation and storage key helpers."""
import re
import time
from pathlib import Path

# MIME types accepted by /upload
ALLOWED_UPLOAD_TYPES = {
    "application/pdf",
    "text/plain",
    "image/jpeg",
    "image/png",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

IMAGE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
}


def check_upload_size(size: int, max_size_mb: int = 10) -> None:
    """Raises ValueError when `size` bytes exceeds the per-file limit."""
    if size > max_size_mb * 1024 * 1024:
        raise ValueError(f"File too large. Maximum size is {max_size_mb}MB.")


def validate_upload(content: bytes, content_type: str, max_size_mb: int = 10) -> None:
    """
    Validate an uploaded file's size and type.

    Raises:
        ValueError: If validation fails
    """
    check_upload_size(len(content), max_size_mb)
    if not content:
        raise ValueError("Empty file.")
    if (content_type or "").lower() not in ALLOWED_UPLOAD_TYPES:
        raise ValueError("Invalid file type. Only PDF, TXT, DOC, DOCX, JPG, and PNG files are allowed.")


def upload_key(user_id: int, original_filename: str) -> str:
    """uploads/user_<id>/<sanitized name>_<ms timestamp><ext>"""
    path = Path(original_filename or "file")
    stem = re.sub(r"[^a-z0-9]", "_", path.stem.lower()) or "file"
    extension = re.sub(r"[^a-z0-9.]", "", path.suffix.lower())
    return f"uploads/user_{user_id}/{stem}_{int(time.time() * 1000)}{extension}"


def image_key(user_id: int, image_id: str, mime_type: str) -> str:
    return f"images/user_{user_id}/{image_id}{IMAGE_EXTENSIONS.get(mime_type, '.png')}"
