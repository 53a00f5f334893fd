"""
Shared response helpers and the camelCase base model for API payloads.
"""
import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for request/response models exchanged as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Pagination(CamelModel):
    current: int
    page_size: int
    total: int
    total_pages: int


def build_pagination(page: int, limit: int, total: int) -> dict:
    return Pagination(
        current=page,
        page_size=limit,
        total=total,
        total_pages=math.ceil(total / limit) if limit else 0,
    ).to_api()


def success_envelope(data: Any = None, message: Optional[str] = None) -> dict:
    body = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
