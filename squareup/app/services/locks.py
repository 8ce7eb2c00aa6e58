"""
services/locks.py — Per-group write serialization.

Every write that touches a group (new contribution, vote, unvote, the final
delete) runs inside group_write_lock(group_id) and commits before leaving it:

    with group_write_lock(transaction_id):
        result = vote_service.add_vote(transaction_id, g.user_id, db.session)
        db.session.commit()

This serializes writers inside one server process. Across processes the
services additionally take SELECT ... FOR UPDATE on the group row
(group_service.get_group_or_404(..., for_update=True)), which PostgreSQL
honours and SQLite ignores. Groups are independent: no lock ever spans two
groups, so there is no lock ordering to get wrong.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class _GroupLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0  # holders plus waiters


_registry_guard = threading.Lock()
_group_locks: dict[int, _GroupLock] = {}


@contextmanager
def group_write_lock(group_id: int) -> Iterator[None]:
    """
    Holds the write lock of one group for the duration of the block.

    An entry lives only while someone holds or waits for it, so ids that
    never existed and groups that were deleted leave nothing behind.
    """
    with _registry_guard:
        entry = _group_locks.get(group_id)
        if entry is None:
            entry = _group_locks[group_id] = _GroupLock()
        entry.users += 1
    try:
        with entry.lock:
            yield
    finally:
        with _registry_guard:
            entry.users -= 1
            if entry.users == 0:
                del _group_locks[group_id]
