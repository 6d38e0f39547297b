from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class UserProfile(BaseModel):
    """Cached copy of the signed-in user's profile. Every field is optional."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    enterprise_id: Optional[Union[int, str]] = Field(default=None, alias="enterpriseId")
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class CredentialUpdate(BaseModel):
    token: str


class SessionStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    authenticated: bool
    role: Optional[str] = None
    user_id: Optional[int] = Field(default=None, alias="userId")


class HealthSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    consecutive_failures: int = Field(alias="consecutiveFailures")
    dismissed_until: Optional[int] = Field(default=None, alias="dismissedUntil")
    banner_visible: bool = Field(alias="bannerVisible")


class UpstreamErrorPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    target_url: str = Field(alias="targetUrl")
