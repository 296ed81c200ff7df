"""
Pydantic schemas for the LonyiChat API.

JSON keys are camelCase (``recipientId``, ``followerCount``); Python
attributes stay snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

REACTION_PATTERN = r"^[a-z][a-z0-9_]{0,31}$"


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class FriendRequestPayload(ApiModel):
    recipient_id: str = Field(..., min_length=1, max_length=128)
    sender_id: Optional[str] = Field(None, max_length=128)


class CreatePostPayload(ApiModel):
    content: str = Field(..., min_length=1, max_length=5000)
    media_url: Optional[str] = Field(None, max_length=2048)


class ReactionPayload(ApiModel):
    reaction: str = Field(..., pattern=REACTION_PATTERN)


class CreateChurchPayload(ApiModel):
    name: str = Field(..., min_length=2, max_length=120)
    description: str = Field("", max_length=2000)


class CreateEventPayload(ApiModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    starts_at: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=200)


class CreateMediaPayload(ApiModel):
    title: str = Field(..., min_length=1, max_length=200)
    url: str = Field(..., min_length=1, max_length=2048)
    media_type: Literal["audio", "video", "image"] = "video"
    description: str = Field("", max_length=2000)


class ApiResponse(ApiModel):
    success: bool = True
    message: Optional[str] = None


class ProfileResponse(ApiResponse):
    profile: dict


class UserListResponse(ApiResponse):
    users: list[dict]


class FriendRequestResponse(ApiResponse):
    friend_request: dict


class PostResponse(ApiResponse):
    post: dict


class PostListResponse(ApiResponse):
    posts: list[dict]


class ReactionResponse(ApiResponse):
    post_id: str
    reaction: str


class ChurchResponse(ApiResponse):
    church: dict


class ChurchListResponse(ApiResponse):
    churches: list[dict]


class FollowResponse(ApiResponse):
    church_id: str
    outcome: Literal["joined", "already_member"]
    follower_count: int


class EventResponse(ApiResponse):
    event: dict


class EventListResponse(ApiResponse):
    events: list[dict]


class MediaResponse(ApiResponse):
    media: dict


class MediaListResponse(ApiResponse):
    media: list[dict]


class VerseResponse(ApiResponse):
    date: str
    verse: dict


class TrendingMusicResponse(ApiResponse):
    songs: list[dict]
