from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from videotube.core.security import PASSWORD_MAX_LENGTH
from videotube.models.user import User


def camel(name: str, alias: str, **kwargs: Any) -> Any:
    """Field read by its python name or camelCase alias, written as camelCase."""
    return Field(validation_alias=AliasChoices(name, alias), serialization_alias=alias, **kwargs)


class UserOut(BaseModel):
    """Outward view of a user: never carries the password hash or refresh token."""

    id: int
    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: str = camel("cover_image", "coverImage", default="")
    created_at: datetime | None = camel("created_at", "createdAt", default=None)
    updated_at: datetime | None = camel("updated_at", "updatedAt", default=None)

    model_config = ConfigDict(from_attributes=True)


def public_user(user: User) -> UserOut:
    return UserOut.model_validate(user)


class ChangePasswordIn(BaseModel):
    old_password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH, alias="oldPassword")
    new_password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH, alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)


class UpdateAccountIn(BaseModel):
    fullname: str = Field(min_length=1, max_length=100)
    email: EmailStr


class ChannelProfileOut(BaseModel):
    id: int
    username: str
    fullname: str
    email: str
    avatar: str
    cover_image: str = camel("cover_image", "coverImage", default="")
    subscribers_count: int = camel("subscribers_count", "subscribersCount")
    channels_subscribed_to_count: int = camel("channels_subscribed_to_count", "channelsSubscribedToCount")
    is_subscribed: bool = camel("is_subscribed", "isSubscribed")
