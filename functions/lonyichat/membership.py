"""
Church membership (follow) service.

A church's ``followerCount`` always equals the size of its member set. The
only mutation is ``join``, which either adds the member and increments the
counter in a single store transaction or, for an existing member, changes
nothing. Atomicity is provided by the store client's ``join_church``.
"""

from __future__ import annotations

import logging

from lonyichat.db import DbClient
from lonyichat.errors import ValidationError
from lonyichat.records import JoinOutcome, JoinResult

logger = logging.getLogger(__name__)


def join(db: DbClient, church_id: str, member_id: str) -> JoinResult:
    """
    Add ``member_id`` to the church, at most once.

    Raises:
        ValidationError: if either id is blank.
        CommunityNotFound: if the church does not exist (nothing is written).
        StoreUnavailable: if the store cannot be reached (nothing is written).
    """
    if not church_id or not church_id.strip():
        raise ValidationError(errors=["churchId is required."])
    if not member_id or not member_id.strip():
        raise ValidationError(errors=["memberId is required."])

    result = db.join_church(church_id, member_id)
    if result.outcome == JoinOutcome.JOINED:
        logger.info(
            "User %s joined church %s (followers: %d).",
            member_id,
            church_id,
            result.follower_count,
        )
    else:
        logger.info("User %s already follows church %s.", member_id, church_id)
    return result
