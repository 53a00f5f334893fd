"""
Upload-related Pydantic schemas.
"""
from pydantic import Field

from schemas.common import CamelModel


class UploadedFileRead(CamelModel):
    """Metadata returned for every stored upload."""
    filename: str
    original_name: str
    mimetype: str
    size: int = Field(..., ge=0)
    type: str = Field(..., description="Media type directory: image, video, audio, document, text or other")
    url: str
