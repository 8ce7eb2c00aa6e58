"""
Unit tests for vote_service: idempotent votes, unvotes, the terminal delete,
and concurrent final votes.

Data access is patched onto an in-memory fake so the tests are DB-free.
"""

from __future__ import annotations

import threading
import time
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from squareup.app.errors import AppError, ErrorCode
from squareup.app.services import vote_service
from squareup.app.services.locks import _group_locks, group_write_lock

SERVICE = "squareup.app.services.vote_service"


class FakeGroupStore:
    """One group, its votes and a delete counter, shared across threads."""

    def __init__(self, member_ids, votes=(), read_delay: float = 0.0):
        self.group = SimpleNamespace(id=1, member_ids=list(member_ids))
        self.votes: set[int] = set(votes)
        self.deleted = False
        self.delete_calls = 0
        self.read_delay = read_delay

    def get_group(self, group_id, session, for_update=False):
        if self.deleted:
            raise AppError(ErrorCode.INVALID_GROUP, f"Transaction {group_id} does not exist.", 404)
        return self.group

    def voter_ids(self, group_id, session):
        snapshot = set(self.votes)
        if self.read_delay:
            time.sleep(self.read_delay)  # widen the read-check-write window
        return snapshot

    def record(self, group_id, user_id, session):
        self.votes.add(user_id)

    def discard(self, group_id, user_id, session):
        self.votes.discard(user_id)

    def delete(self, group, session):
        self.delete_calls += 1
        self.deleted = True
        self.votes.clear()

    def patches(self):
        return [
            patch(f"{SERVICE}.get_group_or_404", side_effect=self.get_group),
            patch(f"{SERVICE}.get_voter_ids", side_effect=self.voter_ids),
            patch(f"{SERVICE}._record_vote", side_effect=self.record),
            patch(f"{SERVICE}._discard_vote", side_effect=self.discard),
            patch(f"{SERVICE}._delete_group", side_effect=self.delete),
        ]


@pytest.fixture
def store():
    fake = FakeGroupStore(member_ids=[1, 2, 3])
    patchers = fake.patches()
    for p in patchers:
        p.start()
    yield fake
    for p in patchers:
        p.stop()


def test_first_vote_is_recorded(store):
    result = vote_service.add_vote(1, 2, MagicMock())

    assert result == {
        "transaction_id": 1,
        "user_ids": [1, 2, 3],
        "votes_to_delete": [2],
        "deleted": False,
    }
    assert store.votes == {2}


def test_duplicate_vote_is_a_no_op(store):
    vote_service.add_vote(1, 2, MagicMock())
    result = vote_service.add_vote(1, 2, MagicMock())

    assert result["votes_to_delete"] == [2]
    assert result["deleted"] is False
    assert store.delete_calls == 0


def test_unanimous_vote_deletes_group_once(store):
    vote_service.add_vote(1, 1, MagicMock())
    vote_service.add_vote(1, 2, MagicMock())
    result = vote_service.add_vote(1, 3, MagicMock())

    assert result["deleted"] is True
    assert result["votes_to_delete"] == [1, 2, 3]
    assert store.delete_calls == 1


def test_vote_after_delete_is_invalid_group(store):
    for uid in (1, 2, 3):
        vote_service.add_vote(1, uid, MagicMock())

    with pytest.raises(AppError) as exc_info:
        vote_service.add_vote(1, 1, MagicMock())

    assert exc_info.value.code == ErrorCode.INVALID_GROUP
    assert exc_info.value.http_status == 404


def test_non_member_vote_is_forbidden(store):
    with pytest.raises(AppError) as exc_info:
        vote_service.add_vote(1, 99, MagicMock())

    assert exc_info.value.code == ErrorCode.NOT_A_MEMBER
    assert exc_info.value.http_status == 403
    assert store.votes == set()


def test_unvote_removes_vote(store):
    vote_service.add_vote(1, 1, MagicMock())
    vote_service.add_vote(1, 2, MagicMock())

    result = vote_service.remove_vote(1, 1, MagicMock())

    assert result["votes_to_delete"] == [2]
    assert result["deleted"] is False
    assert store.votes == {2}


def test_unvote_without_vote_is_a_no_op(store):
    result = vote_service.remove_vote(1, 3, MagicMock())

    assert result["votes_to_delete"] == []
    assert store.votes == set()


def test_unvote_by_non_member_is_forbidden(store):
    with pytest.raises(AppError) as exc_info:
        vote_service.remove_vote(1, 99, MagicMock())

    assert exc_info.value.code == ErrorCode.NOT_A_MEMBER


def test_unvote_then_vote_again_requires_everyone(store):
    vote_service.add_vote(1, 1, MagicMock())
    vote_service.add_vote(1, 2, MagicMock())
    vote_service.remove_vote(1, 2, MagicMock())

    result = vote_service.add_vote(1, 3, MagicMock())

    assert result["deleted"] is False
    assert store.delete_calls == 0


# ── Concurrency ────────────────────────────────────────────────────────────

def _vote_concurrently(store: FakeGroupStore, voters: list[int]) -> list:
    results: list = []
    errors: list = []
    barrier = threading.Barrier(len(voters))

    def cast(uid: int) -> None:
        barrier.wait()
        try:
            with group_write_lock(store.group.id):
                results.append(vote_service.add_vote(store.group.id, uid, MagicMock()))
        except AppError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=cast, args=(uid,)) for uid in voters]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    return results + errors


def test_concurrent_final_votes_delete_exactly_once():
    store = FakeGroupStore(member_ids=[1, 2, 3], votes={1}, read_delay=0.05)
    patches = store.patches()
    for p in patches:
        p.start()
    try:
        outcomes = _vote_concurrently(store, [2, 3])
    finally:
        for p in patches:
            p.stop()

    deleted = [o for o in outcomes if isinstance(o, dict) and o["deleted"]]
    assert store.delete_calls == 1
    assert len(deleted) == 1
    assert len(outcomes) == 2
    assert store.group.id not in _group_locks
