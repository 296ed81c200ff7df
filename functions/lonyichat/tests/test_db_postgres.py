import os
import tempfile
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from lonyichat.db import PostgresDbClient
from lonyichat.errors import CommunityNotFound, NotFound
from lonyichat.records import (
    Church,
    ChurchEvent,
    FriendRequest,
    JoinOutcome,
    MediaItem,
    Post,
    UserProfile,
)


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    def setUp(self):
        self.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def _profile(self, user_id: str, name: str) -> UserProfile:
        return UserProfile(
            user_id=user_id,
            name=name,
            email=f"{user_id}@example.com",
            phone="1234567890",
            age=30,
            country="US",
        )

    def test_profile_merge_and_get(self):
        self.db.save_profile(self._profile("u1", "Jo Ann"))
        updated = self._profile("u1", "Jo Ann")
        updated.country = "GH"
        self.db.save_profile(updated)

        fetched = self.db.get_profile("u1")
        self.assertEqual(fetched.country, "GH")
        self.assertIsNotNone(fetched.created_at)
        self.assertIsNone(self.db.get_profile("u2"))

    def test_search_users_by_prefix(self):
        for user_id, name in [("u1", "John"), ("u2", "Jo Ann"), ("u3", "Mary"), ("u4", "Jo_x")]:
            self.db.save_profile(self._profile(user_id, name))
        names = [p.name for p in self.db.search_users("Jo", limit=10)]
        self.assertEqual(names, ["Jo Ann", "Jo_x", "John"])
        self.assertEqual(len(self.db.search_users("Jo", limit=2)), 2)
        # "_" must not act as a wildcard.
        self.assertEqual([p.name for p in self.db.search_users("Jo_")], ["Jo_x"])

    def test_friend_request_overwrites_same_key(self):
        self.db.save_friend_request(FriendRequest(sender_id="A", recipient_id="B"))
        self.db.save_friend_request(FriendRequest(sender_id="A", recipient_id="B"))
        stored = self.db.get_friend_request("A_B")
        self.assertEqual(stored.sender_id, "A")
        self.assertEqual(stored.recipient_id, "B")
        self.assertIsNone(self.db.get_friend_request("B_A"))

    def test_posts_and_reactions(self):
        post = self.db.create_post(Post(author_id="A", content="Hello"))
        self.db.increment_reaction(post.post_id, "like")
        self.db.increment_reaction(post.post_id, "like")
        self.db.increment_reaction(post.post_id, "pray")

        fetched = self.db.get_post(post.post_id)
        self.assertEqual(fetched.reactions, {"like": 2, "pray": 1})
        self.assertEqual([p.post_id for p in self.db.list_posts()], [post.post_id])

        with self.assertRaises(NotFound):
            self.db.increment_reaction("missing", "like")

    def test_church_join_is_idempotent(self):
        church = self.db.create_church(Church.founded_by("owner", "Grace Chapel"))
        self.assertEqual(church.members, ["owner"])
        self.assertEqual(church.follower_count, 1)

        joined = self.db.join_church(church.church_id, "m1")
        self.assertEqual(joined.outcome, JoinOutcome.JOINED)
        self.assertEqual(joined.follower_count, 2)

        again = self.db.join_church(church.church_id, "m1")
        self.assertEqual(again.outcome, JoinOutcome.ALREADY_MEMBER)
        self.assertEqual(again.follower_count, 2)

        stored = self.db.get_church(church.church_id)
        self.assertEqual(sorted(stored.members), ["m1", "owner"])
        self.assertEqual(stored.follower_count, len(stored.members))

    def test_join_missing_church(self):
        with self.assertRaises(CommunityNotFound):
            self.db.join_church("missing", "m1")
        self.assertEqual(self.db.list_churches(), [])

    def test_church_events(self):
        church = self.db.create_church(Church.founded_by("owner", "Grace Chapel"))
        event = self.db.create_church_event(
            ChurchEvent(
                church_id=church.church_id,
                title="Vigil",
                created_by="owner",
                starts_at=datetime(2026, 11, 1, 18, tzinfo=timezone.utc),
            )
        )
        events = self.db.list_church_events(church.church_id)
        self.assertEqual([e.event_id for e in events], [event.event_id])

        with self.assertRaises(CommunityNotFound):
            self.db.create_church_event(
                ChurchEvent(church_id="missing", title="Vigil", created_by="owner")
            )

    def test_media(self):
        item = self.db.create_media(
            MediaItem(title="Sermon", url="https://x/sermon.mp3", uploader_id="A", media_type="audio")
        )
        listed = self.db.list_media()
        self.assertEqual([m.media_id for m in listed], [item.media_id])
        self.assertEqual(listed[0].media_type, "audio")


class ConcurrentJoinTests(unittest.TestCase):
    """
    Joins racing on a file-backed SQLite database, where each thread gets its
    own connection.
    """

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        path = os.path.join(self.tmpdir.name, "lonyichat.db")
        self.db = PostgresDbClient(f"sqlite+pysqlite:///{path}")
        self.church = self.db.create_church(Church.founded_by("owner", "Grace Chapel"))

    def tearDown(self):
        self.db.engine.dispose()
        self.tmpdir.cleanup()

    def _join_together(self, member_ids):
        barrier = threading.Barrier(len(member_ids))

        def join_after_barrier(member_id):
            barrier.wait()
            return self.db.join_church(self.church.church_id, member_id)

        with ThreadPoolExecutor(max_workers=len(member_ids)) as pool:
            return list(pool.map(join_after_barrier, member_ids))

    def test_distinct_members_are_all_counted(self):
        results = self._join_together([f"m{i}" for i in range(8)])

        self.assertTrue(all(r.outcome == JoinOutcome.JOINED for r in results))
        stored = self.db.get_church(self.church.church_id)
        self.assertEqual(len(stored.members), 9)
        self.assertEqual(stored.follower_count, 9)

    def test_same_member_joins_exactly_once(self):
        results = self._join_together(["m1"] * 10)

        outcomes = [r.outcome for r in results]
        self.assertEqual(outcomes.count(JoinOutcome.JOINED), 1)
        self.assertEqual(outcomes.count(JoinOutcome.ALREADY_MEMBER), 9)
        stored = self.db.get_church(self.church.church_id)
        self.assertEqual(stored.members, ["owner", "m1"])
        self.assertEqual(stored.follower_count, 2)


if __name__ == "__main__":
    unittest.main()
