from pydantic import BaseModel, ConfigDict, Field

from videotube.core.security import PASSWORD_MAX_LENGTH
from videotube.schemas.user import UserOut, camel


class LoginIn(BaseModel):
    # Either one identifies the user; when both are sent, a match on either counts.
    username: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)

    @property
    def identifiers(self) -> tuple[str, ...]:
        return tuple(v.strip() for v in (self.username, self.email) if v and v.strip())


class RefreshIn(BaseModel):
    refresh_token: str | None = Field(default=None, alias="refreshToken")

    model_config = ConfigDict(populate_by_name=True)


class TokenPairOut(BaseModel):
    access_token: str = camel("access_token", "accessToken")
    refresh_token: str = camel("refresh_token", "refreshToken")


class LoginOut(TokenPairOut):
    user: UserOut


class MessageOut(BaseModel):
    message: str
