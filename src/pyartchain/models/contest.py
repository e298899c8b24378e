"""Contest model."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pyartchain.models._base import ArtchainBaseModel


class ContestStatus(StrEnum):
    UPCOMING = "UPCOMING"
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    COMPLETED = "COMPLETED"


class Contest(ArtchainBaseModel):
    """A drawing contest."""

    contest_id: int
    title: str = ""
    description: str = ""
    banner_url: str | None = None
    num_of_award: int = 0
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: ContestStatus | str = ""
    created_by: str = ""
