"""Generic ``{success, data, meta}`` response envelope."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class PageMeta(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True, alias_generator=to_camel)

    total: int = 0
    page: int = 1
    limit: int = 0
    total_pages: int = 0
    has_next_page: bool = False
    has_previous_page: bool = False


class ApiResponse(BaseModel, Generic[T]):
    model_config = ConfigDict(frozen=True, extra="ignore")

    success: bool = True
    data: T
    meta: PageMeta | None = None
    message: str | None = None

    @classmethod
    def is_envelope(cls, payload: Any) -> bool:
        return isinstance(payload, dict) and "data" in payload and ("success" in payload or "meta" in payload)
