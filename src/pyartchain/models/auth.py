"""Authentication request/response models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pyartchain.models._base import ArtchainBaseModel


class UserRole(StrEnum):
    GUARDIAN = "GUARDIAN"
    COMPETITOR = "COMPETITOR"
    STAFF = "STAFF"
    EXAMINER = "EXAMINER"
    ADMIN = "ADMIN"


class WhoAmI(ArtchainBaseModel):
    """The signed-in user as returned by ``/users/me`` and login."""

    user_id: str = Field(validation_alias=AliasChoices("userId", "user_id", "id"))
    username: str = ""
    full_name: str = ""
    email: str = ""
    role: UserRole | str = ""

    @property
    def is_guardian(self) -> bool:
        return self.role == UserRole.GUARDIAN

    @property
    def is_competitor(self) -> bool:
        return self.role == UserRole.COMPETITOR


class LoginRequest(BaseModel):
    """Credentials posted to ``/auth/login``."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    username: str
    password: str


class RegisterRequest(BaseModel):
    """Sign-up form posted to ``/auth/register``.

    Only guardians and competitors can sign themselves up.  The school
    fields apply to competitors.
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    username: str
    password: str
    email: str
    full_name: str
    role: UserRole
    birthday: str | None = None
    school_name: str | None = None
    ward: str | None = None
    grade: str | None = None

    @field_validator("role")
    @classmethod
    def _self_service_role(cls, role: UserRole) -> UserRole:
        if role not in (UserRole.GUARDIAN, UserRole.COMPETITOR):
            raise ValueError(f"role {role.value} cannot self-register")
        return role

    def to_body(self) -> dict[str, str]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class AuthResponse(ArtchainBaseModel):
    """Login result.  The token key is snake_case on the wire."""

    access_token: str = Field(validation_alias=AliasChoices("access_token", "accessToken"))
    user: WhoAmI | None = None
