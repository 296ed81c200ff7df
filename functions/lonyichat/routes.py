"""
HTTP routes for the LonyiChat backend API.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from lonyichat import membership
from lonyichat.auth import AuthenticatedUser
from lonyichat.config import Settings
from lonyichat.content import load_static_content
from lonyichat.db import DbClient
from lonyichat.dependencies import get_app_settings, get_current_user, get_db_client
from lonyichat.errors import Forbidden, NotFound, ValidationError
from lonyichat.records import (
    Church,
    ChurchEvent,
    FriendRequest,
    JoinOutcome,
    MediaItem,
    Post,
    UserProfile,
)
from lonyichat.schemas import (
    ChurchListResponse,
    ChurchResponse,
    CreateChurchPayload,
    CreateEventPayload,
    CreateMediaPayload,
    CreatePostPayload,
    EventListResponse,
    EventResponse,
    FollowResponse,
    FriendRequestPayload,
    FriendRequestResponse,
    MediaListResponse,
    MediaResponse,
    PostListResponse,
    PostResponse,
    ProfileResponse,
    ReactionPayload,
    ReactionResponse,
    TrendingMusicResponse,
    UserListResponse,
    VerseResponse,
)
from lonyichat.validation import parse_age, validate_profile

logger = logging.getLogger(__name__)

router = APIRouter()


def _public_profile(profile: UserProfile) -> dict:
    return {
        "id": profile.user_id,
        "name": profile.name,
        "country": profile.country,
        "photoUrl": profile.photo_url,
    }


def _require_church(db: DbClient, church_id: str) -> Church:
    church = db.get_church(church_id)
    if church is None:
        raise NotFound(f"Church {church_id} not found.")
    return church


@router.get("/", response_class=PlainTextResponse)
def health():
    return "LonyiChat Backend API is running."


@router.get("/ready")
def ready(request: Request):
    if getattr(request.app.state, "db_client", None) is None:
        return JSONResponse(
            status_code=503,
            content={
                "success": False,
                "message": "Database connection not available.",
                "error": request.app.state.startup_error,
            },
        )
    return {"success": True, "message": "ready"}


@router.post("/signup-profile", response_model=ProfileResponse, status_code=201)
def signup_profile(request: Request, payload: dict = Body(...)):
    """
    Store the extended profile (name, phone, age, country) of a user who
    already signed up with the identity provider. Merges into any existing
    profile document.
    """
    errors = validate_profile(payload)
    if errors:
        raise ValidationError(errors=errors)

    db = get_db_client(request)
    profile = UserProfile(
        user_id=payload["userId"],
        name=payload["name"],
        email=payload["email"],
        phone=payload["phone"],
        age=parse_age(payload["age"]),
        country=payload["country"],
        photo_url=payload.get("photoUrl") or None,
    )
    db.save_profile(profile)
    logger.info("Stored profile data for user: %s", profile.user_id)

    return ProfileResponse(
        message="Profile data saved successfully.",
        profile={"id": profile.user_id, "name": profile.name, "country": profile.country},
    )


@router.get("/users/me", response_model=ProfileResponse)
def get_my_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    profile = db.get_profile(user.uid)
    if profile is None:
        raise NotFound("Profile not found.")
    return ProfileResponse(profile=profile.as_dict())


@router.get("/users/search", response_model=UserListResponse)
def search_users(
    name: str = Query(..., min_length=1, max_length=100),
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    profiles = db.search_users(name, limit=settings.user_search_limit)
    return UserListResponse(users=[_public_profile(p) for p in profiles])


@router.post(
    "/users/friend-request", response_model=FriendRequestResponse, status_code=201
)
def send_friend_request(
    payload: FriendRequestPayload,
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if payload.sender_id and payload.sender_id != user.uid:
        raise Forbidden("senderId must match the authenticated user.")
    if payload.recipient_id == user.uid:
        raise ValidationError(errors=["Cannot send a friend request to yourself."])

    saved = db.save_friend_request(
        FriendRequest(sender_id=user.uid, recipient_id=payload.recipient_id)
    )
    logger.info("Friend request %s stored.", saved.request_id)
    return FriendRequestResponse(
        message="Friend request sent.", friend_request=saved.as_dict()
    )


@router.get("/posts", response_model=PostListResponse)
def list_posts(
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    posts = db.list_posts(limit=settings.post_feed_limit)
    return PostListResponse(posts=[p.as_dict() for p in posts])


@router.post("/posts", response_model=PostResponse, status_code=201)
def create_post(
    payload: CreatePostPayload,
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    post = db.create_post(
        Post(author_id=user.uid, content=payload.content, media_url=payload.media_url)
    )
    logger.info("User %s created post %s.", user.uid, post.post_id)
    return PostResponse(message="Post created.", post=post.as_dict())


@router.post("/posts/{post_id}/react", response_model=ReactionResponse)
def react_to_post(
    post_id: str,
    payload: ReactionPayload,
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    db.increment_reaction(post_id, payload.reaction)
    return ReactionResponse(
        message="Reaction recorded.", post_id=post_id, reaction=payload.reaction
    )


@router.get("/churches", response_model=ChurchListResponse)
def list_churches(
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    churches = db.list_churches(limit=settings.church_list_limit)
    return ChurchListResponse(churches=[c.as_dict() for c in churches])


@router.post("/churches", response_model=ChurchResponse, status_code=201)
def create_church(
    payload: CreateChurchPayload,
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    church = db.create_church(
        Church.founded_by(user.uid, payload.name, payload.description)
    )
    logger.info("User %s created church %s.", user.uid, church.church_id)
    return ChurchResponse(message="Church created.", church=church.as_dict())


@router.get("/churches/{church_id}", response_model=ChurchResponse)
def get_church(
    church_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return ChurchResponse(church=_require_church(db, church_id).as_dict())


@router.post("/churches/{church_id}/follow", response_model=FollowResponse)
def follow_church(
    church_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    result = membership.join(db, church_id, user.uid)
    if result.outcome == JoinOutcome.JOINED:
        message = "Church followed."
    else:
        message = "Already following this church."
    return FollowResponse(
        message=message,
        church_id=result.church_id,
        outcome=result.outcome.value,
        follower_count=result.follower_count,
    )


@router.get("/churches/{church_id}/events", response_model=EventListResponse)
def list_church_events(
    church_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    _require_church(db, church_id)
    events = db.list_church_events(church_id)
    return EventListResponse(events=[e.as_dict() for e in events])


@router.post(
    "/churches/{church_id}/events", response_model=EventResponse, status_code=201
)
def create_church_event(
    church_id: str,
    payload: CreateEventPayload,
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    event = db.create_church_event(
        ChurchEvent(
            church_id=church_id,
            title=payload.title,
            description=payload.description,
            starts_at=payload.starts_at,
            location=payload.location,
            created_by=user.uid,
        )
    )
    logger.info("User %s created event %s in church %s.", user.uid, event.event_id, church_id)
    return EventResponse(message="Event created.", event=event.as_dict())


@router.get("/media", response_model=MediaListResponse)
def list_media(
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    items = db.list_media(limit=settings.media_list_limit)
    return MediaListResponse(media=[m.as_dict() for m in items])


@router.post("/media", response_model=MediaResponse, status_code=201)
def create_media(
    payload: CreateMediaPayload,
    user: AuthenticatedUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    item = db.create_media(
        MediaItem(
            title=payload.title,
            url=payload.url,
            media_type=payload.media_type,
            description=payload.description,
            uploader_id=user.uid,
        )
    )
    return MediaResponse(message="Media saved.", media=item.as_dict())


@router.get("/bible/verse-of-the-day", response_model=VerseResponse)
def verse_of_the_day(settings: Settings = Depends(get_app_settings)):
    today = datetime.now(timezone.utc).date()
    content = load_static_content(settings.static_content_path)
    return VerseResponse(date=today.isoformat(), verse=content.verse_for(today).as_dict())


@router.get("/music/trending", response_model=TrendingMusicResponse)
def trending_music(settings: Settings = Depends(get_app_settings)):
    content = load_static_content(settings.static_content_path)
    return TrendingMusicResponse(songs=[s.as_dict() for s in content.trending_music])
