import unittest
from unittest.mock import MagicMock, patch

from google.api_core import exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from lonyichat.errors import CommunityNotFound, NotFound, StoreUnavailable
from lonyichat.firestore_db import FirestoreDbClient, apply_join
from lonyichat.records import Church, FriendRequest, JoinOutcome, Post


def _church_ref(data, exists=True, church_id="c1"):
    snapshot = MagicMock()
    snapshot.exists = exists
    snapshot.to_dict.return_value = data
    ref = MagicMock()
    ref.id = church_id
    ref.get.return_value = snapshot
    return ref


class ApplyJoinTests(unittest.TestCase):
    def test_new_member_updates_members_and_counter_together(self):
        transaction = MagicMock()
        ref = _church_ref({"members": ["owner"], "followerCount": 1})

        result = apply_join(transaction, ref, "m1")

        self.assertEqual(result.outcome, JoinOutcome.JOINED)
        self.assertEqual(result.follower_count, 2)
        ref.get.assert_called_once_with(transaction=transaction)
        transaction.update.assert_called_once()
        updated_ref, fields = transaction.update.call_args.args
        self.assertIs(updated_ref, ref)
        self.assertEqual(set(fields), {"members", "followerCount"})

    def test_existing_member_writes_nothing(self):
        transaction = MagicMock()
        ref = _church_ref({"members": ["owner", "m1"], "followerCount": 2})

        result = apply_join(transaction, ref, "m1")

        self.assertEqual(result.outcome, JoinOutcome.ALREADY_MEMBER)
        self.assertEqual(result.follower_count, 2)
        transaction.update.assert_not_called()

    def test_missing_church_writes_nothing(self):
        transaction = MagicMock()
        ref = _church_ref(None, exists=False, church_id="missing")

        with self.assertRaises(CommunityNotFound):
            apply_join(transaction, ref, "m1")
        transaction.update.assert_not_called()
        transaction.set.assert_not_called()


class FirestoreDbClientTests(unittest.TestCase):
    def setUp(self):
        self.firestore = MagicMock()
        self.db = FirestoreDbClient(self.firestore)

    def test_friend_request_uses_deterministic_document_id(self):
        self.db.save_friend_request(FriendRequest(sender_id="A", recipient_id="B"))

        self.firestore.collection.assert_called_with("friendRequests")
        collection = self.firestore.collection.return_value
        collection.document.assert_called_once_with("A_B")
        doc_ref = collection.document.return_value
        data = doc_ref.set.call_args.args[0]
        self.assertEqual(data["senderId"], "A")
        self.assertEqual(data["recipientId"], "B")
        self.assertEqual(data["status"], "pending")
        # Overwrite, not merge.
        self.assertEqual(doc_ref.set.call_args.kwargs, {})

    def test_create_church_starts_with_owner_as_only_member(self):
        doc_ref = self.firestore.collection.return_value.document.return_value
        doc_ref.id = "c1"

        church = self.db.create_church(Church.founded_by("owner", "Grace Chapel"))

        self.assertEqual(church.church_id, "c1")
        data = doc_ref.set.call_args.args[0]
        self.assertEqual(data["members"], ["owner"])
        self.assertEqual(data["followerCount"], 1)

    def test_created_post_carries_a_timestamp(self):
        doc_ref = self.firestore.collection.return_value.document.return_value
        doc_ref.id = "p1"

        post = self.db.create_post(Post(author_id="A", content="Hello"))

        self.assertEqual(post.post_id, "p1")
        self.assertIsNotNone(post.created_at)
        data = doc_ref.set.call_args.args[0]
        self.assertIs(data["createdAt"], SERVER_TIMESTAMP)

    def test_reaction_on_missing_post_is_not_found(self):
        doc_ref = self.firestore.collection.return_value.document.return_value
        doc_ref.update.side_effect = exceptions.NotFound("no document")

        with self.assertRaises(NotFound):
            self.db.increment_reaction("missing", "like")

    def test_reaction_updates_single_counter_field(self):
        doc_ref = self.firestore.collection.return_value.document.return_value

        self.db.increment_reaction("p1", "pray")

        fields = doc_ref.update.call_args.args[0]
        self.assertEqual(list(fields), ["reactions.pray"])

    def test_unreachable_store_is_reported(self):
        doc_ref = self.firestore.collection.return_value.document.return_value
        doc_ref.get.side_effect = exceptions.ServiceUnavailable("down")

        with self.assertRaises(StoreUnavailable):
            self.db.get_profile("u1")

    @patch("lonyichat.firestore_db.firestore")
    def test_join_runs_inside_a_transaction(self, mock_firestore):
        mock_firestore.transactional.side_effect = lambda fn: fn
        transaction = self.firestore.transaction.return_value
        church_ref = self.firestore.collection.return_value.document.return_value
        church_ref.id = "c1"
        church_ref.get.return_value.exists = True
        church_ref.get.return_value.to_dict.return_value = {
            "members": ["owner"],
            "followerCount": 1,
        }

        result = self.db.join_church("c1", "m1")

        self.assertEqual(result.outcome, JoinOutcome.JOINED)
        mock_firestore.transactional.assert_called_once_with(apply_join)
        church_ref.get.assert_called_once_with(transaction=transaction)
        transaction.update.assert_called_once()

    @patch("lonyichat.firestore_db.firestore")
    def test_join_gives_up_as_store_unavailable(self, mock_firestore):
        def exhausted(fn):
            def run(*args):
                raise ValueError("Failed to commit transaction in 5 attempts.")

            return run

        mock_firestore.transactional.side_effect = exhausted

        with self.assertRaises(StoreUnavailable):
            self.db.join_church("c1", "m1")


if __name__ == "__main__":
    unittest.main()
