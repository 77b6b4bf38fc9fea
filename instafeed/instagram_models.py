"""Pydantic models for Instagram login tokens, profiles, media and comments."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Instagram's documented lifetime for a long-lived token
LONG_LIVED_TOKEN_SECONDS = 60 * 24 * 60 * 60


# ─────────────────────────────────────────────
# OAUTH TOKENS
# ─────────────────────────────────────────────

class ShortLivedToken(BaseModel):
    access_token: str
    user_id: str
    permissions: Optional[list[str]] = None

    @field_validator("user_id", mode="before")
    @classmethod
    def user_id_as_str(cls, v):
        # api.instagram.com returns user_id as a JSON number
        return str(v) if isinstance(v, int) else v


class LongLivedToken(BaseModel):
    access_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None


class TokenSession(BaseModel):
    """The client's handle on a logged-in account."""

    access_token: str
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_in: int = LONG_LIVED_TOKEN_SECONDS

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.expires_in)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at


# ─────────────────────────────────────────────
# PROFILE + MEDIA
# ─────────────────────────────────────────────

class UserProfile(BaseModel):
    id: str
    username: str
    name: Optional[str] = None
    account_type: Optional[str] = None
    media_count: Optional[int] = None
    followers_count: Optional[int] = None
    follows_count: Optional[int] = None
    profile_picture_url: Optional[str] = None
    biography: Optional[str] = None
    website: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_as_str(cls, v):
        return str(v) if isinstance(v, int) else v


class Media(BaseModel):
    id: str
    caption: Optional[str] = None
    media_type: str = "IMAGE"   # IMAGE | VIDEO | CAROUSEL_ALBUM
    media_url: Optional[str] = None
    permalink: Optional[str] = None
    timestamp: Optional[str] = None
    username: Optional[str] = None
    comments_count: Optional[int] = None
    like_count: Optional[int] = None


# ─────────────────────────────────────────────
# COMMENTS
# Records are flat, exactly as /{media_id}/comments returns them.
# A node is a root record plus its direct replies, one level only.
# ─────────────────────────────────────────────

class CommentAuthor(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: Optional[str] = None


class CommentRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    text: str = ""
    timestamp: Optional[str] = None
    like_count: int = 0
    from_: Optional[CommentAuthor] = Field(default=None, alias="from")
    parent_id: Optional[str] = None

    @property
    def author(self) -> str:
        if self.from_ and self.from_.username:
            return self.from_.username
        return "Unknown"


class CommentNode(CommentRecord):
    replies: tuple[CommentRecord, ...] = ()


class ReplyTarget(BaseModel):
    """What the user clicked "Reply" on: a media item, optionally one of its comments."""

    media_id: str
    comment_id: Optional[str] = None


class PostCommentResponse(BaseModel):
    id: str
