"""
Utilities for storing uploaded files on disk.
"""
import os
import re
import secrets
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile

from core.config import settings
from core.exceptions import ValidationException

ALLOWED_MIME_TYPES = {
    # Images
    "image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml",
    # Video
    "video/mp4", "video/webm", "video/ogg", "video/quicktime",
    # Audio
    "audio/mpeg", "audio/wav", "audio/ogg", "audio/webm", "audio/mp4",
    # Documents
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    # Text
    "text/plain", "text/markdown", "text/csv", "text/html",
    "application/json",
}

_DOCUMENT_MARKERS = ("pdf", "document", "presentation", "spreadsheet", "msword", "ms-powerpoint", "ms-excel")
_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9_\-一-龥]+")


@dataclass
class StoredFile:
    filename: str
    original_name: str
    mimetype: str
    size: int
    media_type: str
    path: str


def media_type_for(mimetype: str) -> str:
    """Map a MIME type onto the directory it is stored under."""
    if mimetype.startswith("image/"):
        return "image"
    if mimetype.startswith("video/"):
        return "video"
    if mimetype.startswith("audio/"):
        return "audio"
    if any(marker in mimetype for marker in _DOCUMENT_MARKERS):
        return "document"
    if mimetype.startswith("text/") or mimetype == "application/json":
        return "text"
    return "other"


def validate_file_type(mimetype: Optional[str]) -> bool:
    return mimetype in ALLOWED_MIME_TYPES


def validate_file_size(file_size: int) -> bool:
    return file_size <= settings.max_file_size_mb * 1024 * 1024


def unique_filename(original_name: str) -> str:
    stem, extension = os.path.splitext(os.path.basename(original_name or "file"))
    stem = _UNSAFE_NAME.sub("_", stem).strip("_") or "file"
    extension = _UNSAFE_NAME.sub("", extension.lower())[:10]
    suffix = f".{extension}" if extension else ""
    return f"{stem[:64]}-{int(time.time() * 1000)}-{secrets.token_hex(4)}{suffix}"


async def save_upload_file(upload_file: UploadFile, image_only: bool = False) -> StoredFile:
    """
    Validate an uploaded file and write it under ``<upload_directory>/<media type>/``.

    Raises:
        ValidationException: If the MIME type or size is not allowed
    """
    mimetype = upload_file.content_type or "application/octet-stream"
    if not validate_file_type(mimetype):
        raise ValidationException(f"Unsupported file type: {mimetype}")
    if image_only and not mimetype.startswith("image/"):
        raise ValidationException("Avatar must be an image file")

    content = await upload_file.read()
    if not validate_file_size(len(content)):
        raise ValidationException(f"File exceeds the {settings.max_file_size_mb}MB limit")

    media_type = media_type_for(mimetype)
    upload_dir = os.path.join(settings.upload_directory, media_type)
    os.makedirs(upload_dir, exist_ok=True)

    filename = unique_filename(upload_file.filename)
    file_path = os.path.join(upload_dir, filename)
    with open(file_path, "wb") as f:
        f.write(content)

    return StoredFile(
        filename=filename,
        original_name=upload_file.filename or filename,
        mimetype=mimetype,
        size=len(content),
        media_type=media_type,
        path=file_path,
    )


def public_url(base_url: str, stored: StoredFile) -> str:
    return f"{base_url.rstrip('/')}/uploads/{stored.media_type}/{stored.filename}"
