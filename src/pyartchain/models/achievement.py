"""User achievement models."""

from __future__ import annotations

from pydantic import Field

from pyartchain.models._base import ArtchainBaseModel


class Award(ArtchainBaseModel):
    award_id: int | str
    name: str = ""
    description: str | None = None
    rank: int | None = None
    prize: float | str | None = None


class ContestSummary(ArtchainBaseModel):
    contest_id: int | str
    title: str = ""
    start_date: str | None = None
    end_date: str | None = None


class AchievementItem(ArtchainBaseModel):
    painting_id: str
    painting_title: str = ""
    painting_image: str | None = None
    award: Award | None = None
    contest: ContestSummary | None = None
    achieved_date: str | None = None


class AchievementUser(ArtchainBaseModel):
    user_id: str
    full_name: str | None = None


class UserAchievements(ArtchainBaseModel):
    """Payload of ``/users/{id}/achievements``."""

    user: AchievementUser
    achievements: list[AchievementItem] = Field(default_factory=list)
    total_achievements: int = 0
