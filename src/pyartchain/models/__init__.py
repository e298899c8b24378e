"""Data models for ArtChain API payloads."""

from pyartchain.models._base import ArtchainBaseModel
from pyartchain.models.achievement import (
    AchievementItem,
    AchievementUser,
    Award,
    ContestSummary,
    UserAchievements,
)
from pyartchain.models.api_response import ApiResponse, PageMeta
from pyartchain.models.auth import AuthResponse, LoginRequest, RegisterRequest, UserRole, WhoAmI
from pyartchain.models.contest import Contest, ContestStatus

__all__ = [
    "AchievementItem",
    "AchievementUser",
    "ApiResponse",
    "ArtchainBaseModel",
    "AuthResponse",
    "Award",
    "Contest",
    "ContestStatus",
    "ContestSummary",
    "LoginRequest",
    "PageMeta",
    "RegisterRequest",
    "UserAchievements",
    "UserRole",
    "WhoAmI",
]
