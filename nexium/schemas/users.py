"""Pydantic schemas for tracked users and the /api/users responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _coerce_id(value: object) -> object:
    # The profile API returns numeric ids; older documents stored them as numbers.
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class Profile(BaseModel):
    """Profile attributes normalized from the third-party users API."""

    id: str = Field(..., description="Numeric user id, as a string.")
    username: str = Field(..., description="Account name on the platform.")

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, value: object) -> object:
        return _coerce_id(value)


class TrackedUser(BaseModel):
    """A tracked user record. Soft-deleted, never physically deleted."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Numeric user id (primary key).")
    username: str | None = Field(
        default=None,
        description="Cached username; null for seeded ids never fetched.",
    )
    added_at: datetime | None = Field(
        default=None,
        alias="addedAt",
        description="When the id was (last) added to the directory.",
    )
    removed: bool = Field(
        default=False,
        description="True once the id has been removed from the active list.",
    )
    removed_at: datetime | None = Field(
        default=None,
        alias="removedAt",
        description="When the id was removed.",
    )

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, value: object) -> object:
        return _coerce_id(value)


class UserIdRequest(BaseModel):
    """Body of the add/remove endpoints.

    ``userid`` is optional at the schema level so a missing value is reported
    with the same error as an empty one.
    """

    userid: str | int | None = Field(
        default=None,
        description="Numeric user id; JSON numbers are accepted.",
    )


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str


class ProfilesResponse(BaseModel):
    users: list[Profile]


class UserIdListResponse(BaseModel):
    users: list[str]


class HistoryResponse(BaseModel):
    users: list[TrackedUser]


class AddUserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "success"
    users: list[str] = Field(..., description="Active ids after the add.")
    added_user: TrackedUser = Field(..., alias="addedUser")


class RemoveUserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "removed"
    users: list[str] = Field(..., description="Active ids after the removal.")
    removed_user_id: str = Field(..., alias="removedUserId")
