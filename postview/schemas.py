"""Postview output schema — the ContentRecord returned for every post."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Platform(str, Enum):
    TWITTER = "twitter"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"


class MediaType(str, Enum):
    VIDEO = "video"
    IMAGE = "image"
    GIF = "gif"


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


class MediaItem(_Model):
    type: MediaType
    url: str
    thumbnail: Optional[str] = None  # poster / preview (video and gif)


class Author(_Model):
    username: str = ""
    display_name: str = Field("", alias="displayName")
    avatar: str = ""
    verified: bool = False


class Content(_Model):
    text: str = ""
    media: list[MediaItem] = Field(default_factory=list)


class Stats(_Model):
    likes: Optional[int] = None
    retweets: Optional[int] = None
    replies: Optional[int] = None
    views: Optional[int] = None
    comments: Optional[int] = None


class ContentRecord(_Model):
    platform: Platform
    original_url: str = Field(alias="originalUrl")
    embed_mode: bool = Field(False, alias="embedMode")
    embed_url: Optional[str] = Field(None, alias="embedUrl")
    author: Optional[Author] = None
    content: Optional[Content] = None
    timestamp: Optional[str] = None
    stats: Optional[Stats] = None

    def to_json(self) -> dict[str, Any]:
        """Wire shape: camelCase keys, unknown optional fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @property
    def has_video(self) -> bool:
        if self.content is None:
            return False
        return any(m.type == MediaType.VIDEO.value and m.url for m in self.content.media)


class ErrorResponse(BaseModel):
    error: str  # invalid_url | unsupported_platform | extraction_failed
    message: str
