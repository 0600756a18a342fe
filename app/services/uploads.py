"""Premium file uploads backed by object storage."""
import logging
from dataclasses import dataclass
from typing import List
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.errors import NotFoundError, UpstreamProviderError
from app.models import FileUpload, User
from app.services import storage
from app.utils.files import upload_key, validate_upload

logger = logging.getLogger(__name__)


@dataclass
class IncomingFile:
    filename: str
    content_type: str
    content: bytes


def save_uploads(db: Session, user: User, files: List[IncomingFile]) -> List[FileUpload]:
    """
    Validate every file, then store each one and record it.

    Raises:
        ValueError: when any file fails validation (nothing is stored)
        UpstreamProviderError: when storage rejects a write
    """
    if not files:
        raise ValueError("No files uploaded")
    if len(files) > settings.max_upload_files:
        raise ValueError(f"Too many files. Maximum is {settings.max_upload_files} per request.")
    for f in files:
        validate_upload(f.content, f.content_type, settings.max_upload_size_mb)

    stored_urls = []
    try:
        for f in files:
            stored_urls.append(storage.put(f.content, upload_key(user.id, f.filename), f.content_type))
    except UpstreamProviderError:
        # A partial batch is not recorded, so its objects must not outlive it
        for url in stored_urls:
            storage.delete(url)
        logger.warning(f"Upload batch for user {user.id} failed after {len(stored_urls)} file(s); rolled back")
        raise

    records = []
    for f, url in zip(files, stored_urls):
        record = FileUpload(
            user_id=user.id,
            filename=f.filename,
            file_type=f.content_type,
            file_path=url,
        )
        db.add(record)
        records.append(record)
    db.commit()
    for record in records:
        db.refresh(record)
    logger.info(f"User {user.id} uploaded {len(records)} file(s)")
    return records


def list_uploads(db: Session, user: User) -> List[FileUpload]:
    return (
        db.query(FileUpload)
        .filter(FileUpload.user_id == user.id)
        .order_by(FileUpload.created_at.desc(), FileUpload.id.desc())
        .all()
    )


def delete_upload(db: Session, user: User, upload_id: int) -> None:
    record = (
        db.query(FileUpload)
        .filter(FileUpload.id == upload_id, FileUpload.user_id == user.id)
        .first()
    )
    if not record:
        raise NotFoundError("Upload not found")
    if not storage.delete(record.file_path):
        logger.warning(f"Stored object for upload {record.id} was not removed: {record.file_path}")
    db.delete(record)
    db.commit()
