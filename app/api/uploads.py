"""Premium file uploads."""
import logging
from typing import List
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session
from app.api.deps import require_premium, run_blocking
from app.core.config import settings
from app.database import get_db
from app.models import User
from app.schemas.content import FileUploadResponse, UploadResponse
from app.services import uploads
from app.services.uploads import IncomingFile
from app.utils.files import check_upload_size

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_files(
    files: List[UploadFile] = File(...),
    user: User = Depends(require_premium),
    db: Session = Depends(get_db),
):
    """Store up to max_upload_files files (PDF, TXT, DOC, DOCX, JPEG, PNG) and return their URLs."""
    try:
        # Reject oversized parts before their bodies are read into memory
        for f in files:
            if f.size is not None:
                check_upload_size(f.size, settings.max_upload_size_mb)
        incoming = [
            IncomingFile(
                filename=f.filename or "upload",
                content_type=f.content_type or "",
                content=await f.read(),
            )
            for f in files
        ]
        records = await run_blocking(uploads.save_uploads, db, user, incoming)
    except ValueError as e:
        logger.info(f"Upload rejected for user {user.id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return UploadResponse(
        urls=[r.file_path for r in records],
        files=[FileUploadResponse.model_validate(r) for r in records],
    )


@router.get("", response_model=List[FileUploadResponse])
def list_uploads(user: User = Depends(require_premium), db: Session = Depends(get_db)):
    return uploads.list_uploads(db, user)


@router.delete("/{upload_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_upload(upload_id: int, user: User = Depends(require_premium), db: Session = Depends(get_db)):
    await run_blocking(uploads.delete_upload, db, user, upload_id)
