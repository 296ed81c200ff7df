"""
Database abstraction: SQLAlchemy and in-memory implementations.

The Firestore implementation used in production lives in
``lonyichat.firestore_db``. All three honour the same contract; in
particular ``join_church`` adds the member and bumps ``followerCount`` as
one atomic step, or does nothing when the member is already present.
"""

from __future__ import annotations

import copy
import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from lonyichat.errors import CommunityNotFound, NotFound, StoreUnavailable
from lonyichat.records import (
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


class DbClient(Protocol):
    """Interface for database access."""

    def save_profile(self, profile: UserProfile) -> None:
        ...

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        ...

    def search_users(self, prefix: str, limit: int = 10) -> list[UserProfile]:
        ...

    def save_friend_request(self, request: FriendRequest) -> FriendRequest:
        ...

    def get_friend_request(self, request_id: str) -> Optional[FriendRequest]:
        ...

    def create_post(self, post: Post) -> Post:
        ...

    def get_post(self, post_id: str) -> Optional[Post]:
        ...

    def list_posts(self, limit: int = 20) -> list[Post]:
        ...

    def increment_reaction(self, post_id: str, reaction: str) -> None:
        ...

    def create_church(self, church: Church) -> Church:
        ...

    def get_church(self, church_id: str) -> Optional[Church]:
        ...

    def list_churches(self, limit: int = 50) -> list[Church]:
        ...

    def join_church(self, church_id: str, member_id: str) -> JoinResult:
        ...

    def create_church_event(self, event: ChurchEvent) -> ChurchEvent:
        ...

    def list_church_events(
        self, church_id: str, limit: int = 50
    ) -> list[ChurchEvent]:
        ...

    def create_media(self, item: MediaItem) -> MediaItem:
        ...

    def list_media(self, limit: int = 50) -> list[MediaItem]:
        ...


def _newest_first(records: list, limit: int) -> list:
    ordered = sorted(records, key=lambda r: r.created_at, reverse=True)
    return ordered[:limit]


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserProfile] = {}
        self.friend_requests: Dict[str, FriendRequest] = {}
        self.posts: Dict[str, Post] = {}
        self.churches: Dict[str, Church] = {}
        self.events: Dict[str, ChurchEvent] = {}
        self.media: Dict[str, MediaItem] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.users.clear()
            self.friend_requests.clear()
            self.posts.clear()
            self.churches.clear()
            self.events.clear()
            self.media.clear()

    def save_profile(self, profile: UserProfile) -> None:
        with self._lock:
            profile = copy.deepcopy(profile)
            profile.created_at = utcnow()
            self.users[profile.user_id] = profile

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return copy.deepcopy(self.users.get(user_id))

    def search_users(self, prefix: str, limit: int = 10) -> list[UserProfile]:
        matches = sorted(
            (u for u in self.users.values() if u.name.startswith(prefix)),
            key=lambda u: u.name,
        )
        return copy.deepcopy(matches[:limit])

    def save_friend_request(self, request: FriendRequest) -> FriendRequest:
        with self._lock:
            stored = copy.deepcopy(request)
            stored.created_at = utcnow()
            self.friend_requests[stored.request_id] = stored
            return copy.deepcopy(stored)

    def get_friend_request(self, request_id: str) -> Optional[FriendRequest]:
        return copy.deepcopy(self.friend_requests.get(request_id))

    def create_post(self, post: Post) -> Post:
        with self._lock:
            stored = copy.deepcopy(post)
            stored.post_id = uuid.uuid4().hex
            stored.created_at = utcnow()
            self.posts[stored.post_id] = stored
            return copy.deepcopy(stored)

    def get_post(self, post_id: str) -> Optional[Post]:
        return copy.deepcopy(self.posts.get(post_id))

    def list_posts(self, limit: int = 20) -> list[Post]:
        return copy.deepcopy(_newest_first(list(self.posts.values()), limit))

    def increment_reaction(self, post_id: str, reaction: str) -> None:
        with self._lock:
            post = self.posts.get(post_id)
            if post is None:
                raise NotFound(f"Post {post_id} not found.")
            post.reactions[reaction] = post.reactions.get(reaction, 0) + 1

    def create_church(self, church: Church) -> Church:
        with self._lock:
            stored = copy.deepcopy(church)
            stored.church_id = uuid.uuid4().hex
            stored.created_at = utcnow()
            stored.members = list(dict.fromkeys(stored.members))
            stored.follower_count = len(stored.members)
            self.churches[stored.church_id] = stored
            return copy.deepcopy(stored)

    def get_church(self, church_id: str) -> Optional[Church]:
        return copy.deepcopy(self.churches.get(church_id))

    def list_churches(self, limit: int = 50) -> list[Church]:
        return copy.deepcopy(_newest_first(list(self.churches.values()), limit))

    def join_church(self, church_id: str, member_id: str) -> JoinResult:
        with self._lock:
            church = self.churches.get(church_id)
            if church is None:
                raise CommunityNotFound(church_id)
            if member_id in church.members:
                outcome = JoinOutcome.ALREADY_MEMBER
            else:
                church.members.append(member_id)
                church.follower_count += 1
                outcome = JoinOutcome.JOINED
            return JoinResult(
                church_id=church_id,
                member_id=member_id,
                outcome=outcome,
                follower_count=church.follower_count,
            )

    def create_church_event(self, event: ChurchEvent) -> ChurchEvent:
        with self._lock:
            if event.church_id not in self.churches:
                raise CommunityNotFound(event.church_id)
            stored = copy.deepcopy(event)
            stored.event_id = uuid.uuid4().hex
            stored.created_at = utcnow()
            self.events[stored.event_id] = stored
            return copy.deepcopy(stored)

    def list_church_events(
        self, church_id: str, limit: int = 50
    ) -> list[ChurchEvent]:
        events = [e for e in self.events.values() if e.church_id == church_id]
        return copy.deepcopy(_newest_first(events, limit))

    def create_media(self, item: MediaItem) -> MediaItem:
        with self._lock:
            stored = copy.deepcopy(item)
            stored.media_id = uuid.uuid4().hex
            stored.created_at = utcnow()
            self.media[stored.media_id] = stored
            return copy.deepcopy(stored)

    def list_media(self, limit: int = 50) -> list[MediaItem]:
        return copy.deepcopy(_newest_first(list(self.media.values()), limit))


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        try:
            Base.metadata.create_all(self.engine)
        except OperationalError as exc:
            raise StoreUnavailable() from exc

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self.Session() as session:
                yield session
        except OperationalError as exc:
            raise StoreUnavailable() from exc

    def save_profile(self, profile: UserProfile) -> None:
        with self._session() as session:
            row = session.get(UserRow, profile.user_id)
            if row is None:
                row = UserRow(user_id=profile.user_id)
                session.add(row)
            row.name = profile.name
            row.email = profile.email
            row.phone = profile.phone
            row.age = profile.age
            row.country = profile.country
            row.photo_url = profile.photo_url
            row.created_at = utcnow()
            session.commit()

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        with self._session() as session:
            row = session.get(UserRow, user_id)
            return _to_profile(row) if row else None

    def search_users(self, prefix: str, limit: int = 10) -> list[UserProfile]:
        with self._session() as session:
            stmt = (
                select(UserRow)
                .where(UserRow.name.startswith(prefix, autoescape=True))
                .order_by(UserRow.name.asc())
                .limit(limit)
            )
            return [_to_profile(row) for row in session.execute(stmt).scalars()]

    def save_friend_request(self, request: FriendRequest) -> FriendRequest:
        now = utcnow()
        with self._session() as session:
            row = session.get(FriendRequestRow, request.request_id)
            if row is None:
                row = FriendRequestRow(request_id=request.request_id)
                session.add(row)
            row.sender_id = request.sender_id
            row.recipient_id = request.recipient_id
            row.status = request.status
            row.created_at = now
            session.commit()
        return FriendRequest(
            sender_id=request.sender_id,
            recipient_id=request.recipient_id,
            status=request.status,
            created_at=now,
        )

    def get_friend_request(self, request_id: str) -> Optional[FriendRequest]:
        with self._session() as session:
            row = session.get(FriendRequestRow, request_id)
            if not row:
                return None
            return FriendRequest(
                sender_id=row.sender_id,
                recipient_id=row.recipient_id,
                status=row.status,
                created_at=row.created_at,
            )

    def create_post(self, post: Post) -> Post:
        with self._session() as session:
            row = PostRow(
                post_id=uuid.uuid4().hex,
                author_id=post.author_id,
                content=post.content,
                media_url=post.media_url,
                created_at=utcnow(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_post(row)

    def get_post(self, post_id: str) -> Optional[Post]:
        with self._session() as session:
            row = session.get(PostRow, post_id)
            return _to_post(row) if row else None

    def list_posts(self, limit: int = 20) -> list[Post]:
        with self._session() as session:
            stmt = select(PostRow).order_by(PostRow.created_at.desc()).limit(limit)
            return [_to_post(row) for row in session.execute(stmt).scalars()]

    def increment_reaction(self, post_id: str, reaction: str) -> None:
        bump = (
            update(PostReactionRow)
            .where(
                PostReactionRow.post_id == post_id,
                PostReactionRow.reaction == reaction,
            )
            .values(count=PostReactionRow.count + 1)
        )
        with self._session() as session:
            if session.get(PostRow, post_id) is None:
                raise NotFound(f"Post {post_id} not found.")
            if session.execute(bump).rowcount == 0:
                session.add(
                    PostReactionRow(post_id=post_id, reaction=reaction, count=1)
                )
            try:
                session.commit()
            except IntegrityError:
                # Another writer inserted the counter row first.
                session.rollback()
                session.execute(bump)
                session.commit()

    def create_church(self, church: Church) -> Church:
        now = utcnow()
        members = list(dict.fromkeys(church.members))
        with self._session() as session:
            row = ChurchRow(
                church_id=uuid.uuid4().hex,
                name=church.name,
                description=church.description,
                owner_id=church.owner_id,
                follower_count=len(members),
                created_at=now,
            )
            row.members = [
                ChurchMemberRow(member_id=member_id, joined_at=now)
                for member_id in members
            ]
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_church(row)

    def get_church(self, church_id: str) -> Optional[Church]:
        with self._session() as session:
            row = session.get(ChurchRow, church_id)
            return _to_church(row) if row else None

    def list_churches(self, limit: int = 50) -> list[Church]:
        with self._session() as session:
            stmt = select(ChurchRow).order_by(ChurchRow.created_at.desc()).limit(limit)
            return [_to_church(row) for row in session.execute(stmt).scalars()]

    def join_church(self, church_id: str, member_id: str) -> JoinResult:
        with self._session() as session:
            church = session.get(ChurchRow, church_id, with_for_update=True)
            if church is None:
                raise CommunityNotFound(church_id)
            if session.get(ChurchMemberRow, (church_id, member_id)) is not None:
                return JoinResult(
                    church_id=church_id,
                    member_id=member_id,
                    outcome=JoinOutcome.ALREADY_MEMBER,
                    follower_count=church.follower_count,
                )
            session.add(
                ChurchMemberRow(
                    church_id=church_id, member_id=member_id, joined_at=utcnow()
                )
            )
            try:
                # Increment in SQL, not from the value read above.
                session.execute(
                    update(ChurchRow)
                    .where(ChurchRow.church_id == church_id)
                    .values(follower_count=ChurchRow.follower_count + 1)
                    .execution_options(synchronize_session=False)
                )
                session.commit()
                outcome = JoinOutcome.JOINED
            except IntegrityError:
                # A concurrent join for the same member won the insert.
                session.rollback()
                outcome = JoinOutcome.ALREADY_MEMBER
            follower_count = session.execute(
                select(ChurchRow.follower_count).where(
                    ChurchRow.church_id == church_id
                )
            ).scalar_one()
            return JoinResult(
                church_id=church_id,
                member_id=member_id,
                outcome=outcome,
                follower_count=follower_count,
            )

    def create_church_event(self, event: ChurchEvent) -> ChurchEvent:
        with self._session() as session:
            if session.get(ChurchRow, event.church_id) is None:
                raise CommunityNotFound(event.church_id)
            row = ChurchEventRow(
                event_id=uuid.uuid4().hex,
                church_id=event.church_id,
                title=event.title,
                description=event.description,
                starts_at=event.starts_at,
                location=event.location,
                created_by=event.created_by,
                created_at=utcnow(),
            )
            session.add(row)
            session.commit()
            return _to_event(row)

    def list_church_events(
        self, church_id: str, limit: int = 50
    ) -> list[ChurchEvent]:
        with self._session() as session:
            stmt = (
                select(ChurchEventRow)
                .where(ChurchEventRow.church_id == church_id)
                .order_by(ChurchEventRow.created_at.desc())
                .limit(limit)
            )
            return [_to_event(row) for row in session.execute(stmt).scalars()]

    def create_media(self, item: MediaItem) -> MediaItem:
        with self._session() as session:
            row = MediaRow(
                media_id=uuid.uuid4().hex,
                title=item.title,
                url=item.url,
                media_type=item.media_type,
                description=item.description,
                uploader_id=item.uploader_id,
                created_at=utcnow(),
            )
            session.add(row)
            session.commit()
            return _to_media(row)

    def list_media(self, limit: int = 50) -> list[MediaItem]:
        with self._session() as session:
            stmt = select(MediaRow).order_by(MediaRow.created_at.desc()).limit(limit)
            return [_to_media(row) for row in session.execute(stmt).scalars()]


def _to_profile(row: "UserRow") -> UserProfile:
    return UserProfile(
        user_id=row.user_id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        age=row.age,
        country=row.country,
        photo_url=row.photo_url,
        created_at=row.created_at,
    )


def _to_post(row: "PostRow") -> Post:
    return Post(
        post_id=row.post_id,
        author_id=row.author_id,
        content=row.content,
        media_url=row.media_url,
        reactions={r.reaction: r.count for r in row.reactions},
        created_at=row.created_at,
    )


def _to_church(row: "ChurchRow") -> Church:
    return Church(
        church_id=row.church_id,
        name=row.name,
        description=row.description,
        owner_id=row.owner_id,
        members=[m.member_id for m in row.members],
        follower_count=row.follower_count,
        created_at=row.created_at,
    )


def _to_event(row: "ChurchEventRow") -> ChurchEvent:
    return ChurchEvent(
        event_id=row.event_id,
        church_id=row.church_id,
        title=row.title,
        description=row.description,
        starts_at=row.starts_at,
        location=row.location,
        created_by=row.created_by,
        created_at=row.created_at,
    )


def _to_media(row: "MediaRow") -> MediaItem:
    return MediaItem(
        media_id=row.media_id,
        title=row.title,
        url=row.url,
        media_type=row.media_type,
        description=row.description,
        uploader_id=row.uploader_id,
        created_at=row.created_at,
    )


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    user_id = Column(String, primary_key=True)
    name = Column(String, nullable=False, index=True)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    age = Column(Integer, nullable=False)
    country = Column(String, nullable=False)
    photo_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class FriendRequestRow(Base):
    __tablename__ = "friend_requests"

    request_id = Column(String, primary_key=True)
    sender_id = Column(String, nullable=False, index=True)
    recipient_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class PostRow(Base):
    __tablename__ = "posts"

    post_id = Column(String, primary_key=True)
    author_id = Column(String, nullable=False, index=True)
    content = Column(Text, nullable=False)
    media_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    reactions = relationship(
        "PostReactionRow", lazy="selectin", cascade="all, delete-orphan"
    )


class PostReactionRow(Base):
    __tablename__ = "post_reactions"

    post_id = Column(String, ForeignKey("posts.post_id"), primary_key=True)
    reaction = Column(String, primary_key=True)
    count = Column(Integer, nullable=False, default=0)


class ChurchRow(Base):
    __tablename__ = "churches"

    church_id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    owner_id = Column(String, nullable=False, index=True)
    follower_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    members = relationship(
        "ChurchMemberRow",
        lazy="selectin",
        order_by="ChurchMemberRow.joined_at",
        cascade="all, delete-orphan",
    )


class ChurchMemberRow(Base):
    __tablename__ = "church_members"

    church_id = Column(String, ForeignKey("churches.church_id"), primary_key=True)
    member_id = Column(String, primary_key=True)
    joined_at = Column(DateTime(timezone=True), nullable=False)


class ChurchEventRow(Base):
    __tablename__ = "church_events"

    event_id = Column(String, primary_key=True)
    church_id = Column(
        String, ForeignKey("churches.church_id"), nullable=False, index=True
    )
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    starts_at = Column(DateTime(timezone=True), nullable=True)
    location = Column(String, nullable=True)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class MediaRow(Base):
    __tablename__ = "media"

    media_id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    url = Column(String, nullable=False)
    media_type = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    uploader_id = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
