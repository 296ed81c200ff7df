import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from lonyichat import membership
from lonyichat.db import InMemoryDbClient
from lonyichat.errors import CommunityNotFound, ValidationError
from lonyichat.records import Church, JoinOutcome, Post


class MembershipJoinTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.church = self.db.create_church(Church.founded_by("owner", "Grace Chapel"))

    def _stored(self) -> Church:
        return self.db.get_church(self.church.church_id)

    def test_join_adds_member_and_increments_counter(self):
        result = membership.join(self.db, self.church.church_id, "m1")
        self.assertEqual(result.outcome, JoinOutcome.JOINED)
        self.assertEqual(result.follower_count, 2)
        self.assertEqual(self._stored().members, ["owner", "m1"])

    def test_repeated_join_counts_once(self):
        membership.join(self.db, self.church.church_id, "m1")
        again = membership.join(self.db, self.church.church_id, "m1")
        self.assertEqual(again.outcome, JoinOutcome.ALREADY_MEMBER)
        stored = self._stored()
        self.assertEqual(stored.follower_count, 2)
        self.assertEqual(stored.follower_count, len(stored.members))

    def test_missing_church_leaves_no_trace(self):
        with self.assertRaises(CommunityNotFound):
            membership.join(self.db, "missing", "m1")
        self.assertEqual(list(self.db.churches), [self.church.church_id])
        self.assertIsNone(self.db.get_church("missing"))

    def test_blank_member_is_rejected(self):
        with self.assertRaises(ValidationError):
            membership.join(self.db, self.church.church_id, "  ")
        self.assertEqual(self._stored().follower_count, 1)

    def test_concurrent_distinct_members_all_counted(self):
        members = [f"m{i}" for i in range(50)]
        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(
                pool.map(
                    lambda m: membership.join(self.db, self.church.church_id, m),
                    members,
                )
            )
        self.assertTrue(all(r.outcome == JoinOutcome.JOINED for r in results))
        stored = self._stored()
        self.assertEqual(len(set(stored.members)), 51)
        self.assertEqual(stored.follower_count, 51)

    def test_concurrent_same_member_joins_once(self):
        barrier = threading.Barrier(10)

        def join_after_barrier(_):
            barrier.wait()
            return membership.join(self.db, self.church.church_id, "m1")

        with ThreadPoolExecutor(max_workers=10) as pool:
            results = list(pool.map(join_after_barrier, range(10)))

        outcomes = [r.outcome for r in results]
        self.assertEqual(outcomes.count(JoinOutcome.JOINED), 1)
        self.assertEqual(outcomes.count(JoinOutcome.ALREADY_MEMBER), 9)
        self.assertEqual(self._stored().follower_count, 2)


class ReactionCounterTests(unittest.TestCase):
    def test_concurrent_increments_are_not_lost(self):
        db = InMemoryDbClient()
        post = db.create_post(Post(author_id="a", content="Amen"))
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: db.increment_reaction(post.post_id, "like"), range(40)))
        self.assertEqual(db.get_post(post.post_id).reactions["like"], 40)


if __name__ == "__main__":
    unittest.main()
