"""
Firestore-backed implementation of ``DbClient``.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from firebase_admin import firestore
from google.api_core import exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from lonyichat.errors import CommunityNotFound, NotFound, StoreUnavailable
from lonyichat.records import (
    CHURCHES_COLLECTION,
    EVENTS_COLLECTION,
    FRIEND_REQUESTS_COLLECTION,
    MEDIA_COLLECTION,
    POSTS_COLLECTION,
    USERS_COLLECTION,
    Church,
    ChurchEvent,
    FriendRequest,
    JoinOutcome,
    JoinResult,
    MediaItem,
    Post,
    UserProfile,
    utcnow,
)

logger = logging.getLogger(__name__)

# Highest code point Firestore sorts; bounds a name-prefix range query.
PREFIX_UPPER_BOUND = "\uf8ff"


def _store_call(fn):
    """Translate Google API failures into StoreUnavailable."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except exceptions.NotFound as exc:
            raise NotFound() from exc
        except exceptions.GoogleAPICallError as exc:
            logger.error("Firestore call %s failed: %s", fn.__name__, exc)
            raise StoreUnavailable() from exc

    return wrapper


def _server_stamped(record) -> dict:
    """
    Document for a new record with ``createdAt`` left to the server clock.

    The record keeps the local time so the API response has a timestamp.
    """
    record.created_at = utcnow()
    data = record.to_document()
    data["createdAt"] = SERVER_TIMESTAMP
    return data


def apply_join(transaction, church_ref, member_id: str) -> JoinResult:
    """
    Read-check-write body of the follow transaction.

    Reads the church inside ``transaction`` and, if ``member_id`` is not yet a
    member, adds it and increments ``followerCount`` in the same commit.
    Firestore re-runs this function when the read document changes before
    commit.
    """
    snapshot = church_ref.get(transaction=transaction)
    if not snapshot.exists:
        raise CommunityNotFound(church_ref.id)

    data = snapshot.to_dict() or {}
    members = data.get("members") or []
    follower_count = int(data.get("followerCount") or 0)

    if member_id in members:
        return JoinResult(
            church_id=church_ref.id,
            member_id=member_id,
            outcome=JoinOutcome.ALREADY_MEMBER,
            follower_count=follower_count,
        )

    transaction.update(
        church_ref,
        {
            "members": firestore.ArrayUnion([member_id]),
            "followerCount": firestore.Increment(1),
        },
    )
    return JoinResult(
        church_id=church_ref.id,
        member_id=member_id,
        outcome=JoinOutcome.JOINED,
        follower_count=follower_count + 1,
    )


class FirestoreDbClient:
    """Production store: Firestore through the Firebase Admin SDK."""

    def __init__(self, client):
        self.client = client

    def _users(self):
        return self.client.collection(USERS_COLLECTION)

    def _posts(self):
        return self.client.collection(POSTS_COLLECTION)

    def _churches(self):
        return self.client.collection(CHURCHES_COLLECTION)

    def _media(self):
        return self.client.collection(MEDIA_COLLECTION)

    @_store_call
    def save_profile(self, profile: UserProfile) -> None:
        data = _server_stamped(profile)
        self._users().document(profile.user_id).set(data, merge=True)

    @_store_call
    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        doc = self._users().document(user_id).get()
        if not doc.exists:
            return None
        return UserProfile.from_document(doc.id, doc.to_dict())

    @_store_call
    def search_users(self, prefix: str, limit: int = 10) -> list[UserProfile]:
        query = (
            self._users()
            .where(filter=firestore.FieldFilter("name", ">=", prefix))
            .where(filter=firestore.FieldFilter("name", "<=", prefix + PREFIX_UPPER_BOUND))
            .order_by("name")
            .limit(limit)
        )
        return [UserProfile.from_document(doc.id, doc.to_dict()) for doc in query.stream()]

    @_store_call
    def save_friend_request(self, request: FriendRequest) -> FriendRequest:
        data = _server_stamped(request)
        # Plain set (no merge): a repeated request replaces the earlier one.
        self.client.collection(FRIEND_REQUESTS_COLLECTION).document(
            request.request_id
        ).set(data)
        return request

    @_store_call
    def get_friend_request(self, request_id: str) -> Optional[FriendRequest]:
        doc = self.client.collection(FRIEND_REQUESTS_COLLECTION).document(request_id).get()
        if not doc.exists:
            return None
        return FriendRequest.from_document(doc.to_dict())

    @_store_call
    def create_post(self, post: Post) -> Post:
        doc_ref = self._posts().document()
        data = _server_stamped(post)
        doc_ref.set(data)
        post.post_id = doc_ref.id
        return post

    @_store_call
    def get_post(self, post_id: str) -> Optional[Post]:
        doc = self._posts().document(post_id).get()
        if not doc.exists:
            return None
        return Post.from_document(doc.id, doc.to_dict())

    @_store_call
    def list_posts(self, limit: int = 20) -> list[Post]:
        query = self._posts().order_by(
            "createdAt", direction=firestore.Query.DESCENDING
        ).limit(limit)
        return [Post.from_document(doc.id, doc.to_dict()) for doc in query.stream()]

    @_store_call
    def increment_reaction(self, post_id: str, reaction: str) -> None:
        # update() fails with NotFound instead of creating a stray post.
        try:
            self._posts().document(post_id).update(
                {f"reactions.{reaction}": firestore.Increment(1)}
            )
        except exceptions.NotFound as exc:
            raise NotFound(f"Post {post_id} not found.") from exc

    @_store_call
    def create_church(self, church: Church) -> Church:
        doc_ref = self._churches().document()
        church.members = list(dict.fromkeys(church.members))
        church.follower_count = len(church.members)
        data = _server_stamped(church)
        doc_ref.set(data)
        church.church_id = doc_ref.id
        return church

    @_store_call
    def get_church(self, church_id: str) -> Optional[Church]:
        doc = self._churches().document(church_id).get()
        if not doc.exists:
            return None
        return Church.from_document(doc.id, doc.to_dict())

    @_store_call
    def list_churches(self, limit: int = 50) -> list[Church]:
        query = self._churches().order_by(
            "createdAt", direction=firestore.Query.DESCENDING
        ).limit(limit)
        return [Church.from_document(doc.id, doc.to_dict()) for doc in query.stream()]

    @_store_call
    def join_church(self, church_id: str, member_id: str) -> JoinResult:
        church_ref = self._churches().document(church_id)
        transaction = self.client.transaction()
        try:
            return firestore.transactional(apply_join)(
                transaction, church_ref, member_id
            )
        except ValueError as exc:
            # Raised once Firestore gives up retrying a contended commit.
            logger.error("Join transaction for church %s failed: %s", church_id, exc)
            raise StoreUnavailable() from exc

    @_store_call
    def create_church_event(self, event: ChurchEvent) -> ChurchEvent:
        church_ref = self._churches().document(event.church_id)
        if not church_ref.get().exists:
            raise CommunityNotFound(event.church_id)
        doc_ref = church_ref.collection(EVENTS_COLLECTION).document()
        data = _server_stamped(event)
        doc_ref.set(data)
        event.event_id = doc_ref.id
        return event

    @_store_call
    def list_church_events(
        self, church_id: str, limit: int = 50
    ) -> list[ChurchEvent]:
        query = (
            self._churches()
            .document(church_id)
            .collection(EVENTS_COLLECTION)
            .order_by("createdAt", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )
        return [ChurchEvent.from_document(doc.id, doc.to_dict()) for doc in query.stream()]

    @_store_call
    def create_media(self, item: MediaItem) -> MediaItem:
        doc_ref = self._media().document()
        data = _server_stamped(item)
        doc_ref.set(data)
        item.media_id = doc_ref.id
        return item

    @_store_call
    def list_media(self, limit: int = 50) -> list[MediaItem]:
        query = self._media().order_by(
            "createdAt", direction=firestore.Query.DESCENDING
        ).limit(limit)
        return [MediaItem.from_document(doc.id, doc.to_dict()) for doc in query.stream()]
