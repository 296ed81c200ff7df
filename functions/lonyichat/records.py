"""
Records stored by the backend.

Each record maps to one document. ``to_document`` produces the stored
(camelCase) fields, ``as_dict`` adds the document id for API responses and
``from_document`` rebuilds the record from stored fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

USERS_COLLECTION = "users"
FRIEND_REQUESTS_COLLECTION = "friendRequests"
POSTS_COLLECTION = "posts"
CHURCHES_COLLECTION = "churches"
EVENTS_COLLECTION = "events"
MEDIA_COLLECTION = "media"

FRIEND_REQUEST_PENDING = "pending"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def friend_request_id(sender_id: str, recipient_id: str) -> str:
    """Deterministic key so a repeated request overwrites the earlier one."""
    return f"{sender_id}_{recipient_id}"


@dataclass
class UserProfile:
    user_id: str
    name: str
    email: str
    phone: str
    age: int
    country: str
    photo_url: Optional[str] = None
    created_at: Any = None

    def to_document(self) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "age": self.age,
            "country": self.country,
            "photoUrl": self.photo_url,
            "createdAt": self.created_at,
        }

    def as_dict(self) -> dict:
        return {"id": self.user_id, **self.to_document()}

    @classmethod
    def from_document(cls, user_id: str, data: dict) -> "UserProfile":
        return cls(
            user_id=user_id,
            name=data.get("name", ""),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            age=int(data.get("age") or 0),
            country=data.get("country", ""),
            photo_url=data.get("photoUrl"),
            created_at=data.get("createdAt"),
        )


@dataclass
class FriendRequest:
    sender_id: str
    recipient_id: str
    status: str = FRIEND_REQUEST_PENDING
    created_at: Any = None

    @property
    def request_id(self) -> str:
        return friend_request_id(self.sender_id, self.recipient_id)

    def to_document(self) -> dict:
        return {
            "senderId": self.sender_id,
            "recipientId": self.recipient_id,
            "status": self.status,
            "createdAt": self.created_at,
        }

    def as_dict(self) -> dict:
        return {"id": self.request_id, **self.to_document()}

    @classmethod
    def from_document(cls, data: dict) -> "FriendRequest":
        return cls(
            sender_id=data["senderId"],
            recipient_id=data["recipientId"],
            status=data.get("status", FRIEND_REQUEST_PENDING),
            created_at=data.get("createdAt"),
        )


@dataclass
class Post:
    author_id: str
    content: str
    media_url: Optional[str] = None
    reactions: dict[str, int] = field(default_factory=dict)
    created_at: Any = None
    post_id: str = ""

    def to_document(self) -> dict:
        return {
            "authorId": self.author_id,
            "content": self.content,
            "mediaUrl": self.media_url,
            "reactions": dict(self.reactions),
            "createdAt": self.created_at,
        }

    def as_dict(self) -> dict:
        return {"id": self.post_id, **self.to_document()}

    @classmethod
    def from_document(cls, post_id: str, data: dict) -> "Post":
        return cls(
            post_id=post_id,
            author_id=data.get("authorId", ""),
            content=data.get("content", ""),
            media_url=data.get("mediaUrl"),
            reactions=dict(data.get("reactions") or {}),
            created_at=data.get("createdAt"),
        )


@dataclass
class Church:
    """
    A community. ``follower_count`` always equals ``len(members)``; the
    creator is the first member.
    """

    name: str
    owner_id: str
    description: str = ""
    members: list[str] = field(default_factory=list)
    follower_count: int = 0
    created_at: Any = None
    church_id: str = ""

    @classmethod
    def founded_by(cls, owner_id: str, name: str, description: str = "") -> "Church":
        return cls(
            name=name,
            owner_id=owner_id,
            description=description,
            members=[owner_id],
            follower_count=1,
        )

    def to_document(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "ownerId": self.owner_id,
            "members": list(self.members),
            "followerCount": self.follower_count,
            "createdAt": self.created_at,
        }

    def as_dict(self) -> dict:
        return {"id": self.church_id, **self.to_document()}

    @classmethod
    def from_document(cls, church_id: str, data: dict) -> "Church":
        return cls(
            church_id=church_id,
            name=data.get("name", ""),
            description=data.get("description", ""),
            owner_id=data.get("ownerId", ""),
            members=list(data.get("members") or []),
            follower_count=int(data.get("followerCount") or 0),
            created_at=data.get("createdAt"),
        )


@dataclass
class ChurchEvent:
    church_id: str
    title: str
    created_by: str
    description: str = ""
    starts_at: Optional[datetime] = None
    location: Optional[str] = None
    created_at: Any = None
    event_id: str = ""

    def to_document(self) -> dict:
        return {
            "churchId": self.church_id,
            "title": self.title,
            "description": self.description,
            "startsAt": self.starts_at,
            "location": self.location,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
        }

    def as_dict(self) -> dict:
        return {"id": self.event_id, **self.to_document()}

    @classmethod
    def from_document(cls, event_id: str, data: dict) -> "ChurchEvent":
        return cls(
            event_id=event_id,
            church_id=data.get("churchId", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            starts_at=data.get("startsAt"),
            location=data.get("location"),
            created_by=data.get("createdBy", ""),
            created_at=data.get("createdAt"),
        )


@dataclass
class MediaItem:
    title: str
    url: str
    uploader_id: str
    media_type: str = "video"
    description: str = ""
    created_at: Any = None
    media_id: str = ""

    def to_document(self) -> dict:
        return {
            "title": self.title,
            "url": self.url,
            "mediaType": self.media_type,
            "description": self.description,
            "uploaderId": self.uploader_id,
            "createdAt": self.created_at,
        }

    def as_dict(self) -> dict:
        return {"id": self.media_id, **self.to_document()}

    @classmethod
    def from_document(cls, media_id: str, data: dict) -> "MediaItem":
        return cls(
            media_id=media_id,
            title=data.get("title", ""),
            url=data.get("url", ""),
            media_type=data.get("mediaType", "video"),
            description=data.get("description", ""),
            uploader_id=data.get("uploaderId", ""),
            created_at=data.get("createdAt"),
        )


class JoinOutcome(str, Enum):
    JOINED = "joined"
    ALREADY_MEMBER = "already_member"


@dataclass
class JoinResult:
    church_id: str
    member_id: str
    outcome: JoinOutcome
    follower_count: int
