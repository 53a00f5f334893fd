"""
File upload routes. Stored files are served statically under /uploads.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, File, Request, UploadFile, status

from core.config import settings
from core.exceptions import ValidationException
from core.file_utils import StoredFile, public_url, save_upload_file
from core.logging import get_logger
from core.security import get_current_user
from schemas.common import success_envelope
from schemas.file import UploadedFileRead
from schemas.user import serialize_user
from storage.selector import StorageSession, get_storage

router = APIRouter(prefix="/api/upload", tags=["Uploads"])
logger = get_logger("uploads")


def _describe(request: Request, stored: StoredFile) -> dict:
    return UploadedFileRead(
        filename=stored.filename,
        original_name=stored.original_name,
        mimetype=stored.mimetype,
        size=stored.size,
        type=stored.media_type,
        url=public_url(str(request.base_url), stored),
    ).to_api()


async def _store_many(request: Request, files: List[UploadFile], user_id: str) -> List[dict]:
    if not files:
        raise ValidationException("No files uploaded")
    if len(files) > settings.max_files_per_request:
        raise ValidationException(f"At most {settings.max_files_per_request} files per request")
    stored = [await save_upload_file(upload) for upload in files]
    logger.info("Files uploaded", user_id=user_id, count=len(stored), total_bytes=sum(s.size for s in stored))
    return [_describe(request, item) for item in stored]


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_files(
    request: Request,
    files: List[UploadFile] = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    """Upload one or more files (multipart field ``files``)."""
    described = await _store_many(request, files, current_user["id"])
    return success_envelope({"files": described}, message="Files uploaded")


@router.post("/single", status_code=status.HTTP_201_CREATED)
async def upload_single(
    request: Request,
    file: UploadFile = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    stored = await save_upload_file(file)
    logger.info("File uploaded", user_id=current_user["id"], media_type=stored.media_type, size=stored.size)
    return success_envelope({"file": _describe(request, stored)}, message="File uploaded")


@router.post("/multiple", status_code=status.HTTP_201_CREATED)
async def upload_multiple(
    request: Request,
    files: List[UploadFile] = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    described = await _store_many(request, files, current_user["id"])
    return success_envelope({"files": described}, message="Files uploaded")


@router.post("/avatar", status_code=status.HTTP_201_CREATED)
async def upload_avatar(
    request: Request,
    avatar: UploadFile = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
):
    """Store an image and set it as the caller's avatar."""
    stored = await save_upload_file(avatar, image_only=True)
    described = _describe(request, stored)
    account = await storage.accounts.update(current_user["id"], {"avatar": described["url"]})
    return success_envelope(
        {"file": described, "user": serialize_user(account or current_user)},
        message="Avatar uploaded",
    )
