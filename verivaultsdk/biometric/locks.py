# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import asyncio
from typing import Dict, Set


class OwnerLocks:
    """asyncio locks keyed by owner. Unused locks are dropped."""

    def __init__(self):
        self._locks = {}     # type: Dict[str, asyncio.Lock]
        self._users = {}     # type: Dict[str, int]

    def __call__(self, owner_id):
        return _OwnerLockContext(self, owner_id)

    def _acquire_ref(self, owner_id):    # type: (str) -> asyncio.Lock
        lock = self._locks.get(owner_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[owner_id] = lock
        self._users[owner_id] = self._users.get(owner_id, 0) + 1
        return lock

    def _release_ref(self, owner_id):
        count = self._users.get(owner_id, 1) - 1
        if count <= 0:
            self._users.pop(owner_id, None)
            self._locks.pop(owner_id, None)
        else:
            self._users[owner_id] = count

    def __len__(self):
        return len(self._locks)


class _OwnerLockContext:
    def __init__(self, locks, owner_id):    # type: (OwnerLocks, str) -> None
        self._locks = locks
        self._owner_id = owner_id
        self._lock = None

    async def __aenter__(self):
        self._lock = self._locks._acquire_ref(self._owner_id)
        try:
            await self._lock.acquire()
        except BaseException:
            self._locks._release_ref(self._owner_id)
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._lock.release()
        self._locks._release_ref(self._owner_id)


class AttemptGuard:
    """Admits one authentication or enrollment attempt per owner at a time.

    A second attempt for a busy owner is refused instead of queued.
    """
    def __init__(self):
        self._in_flight = set()    # type: Set[str]

    def try_acquire(self, owner_id):    # type: (str) -> bool
        if owner_id in self._in_flight:
            return False
        self._in_flight.add(owner_id)
        return True

    def release(self, owner_id):    # type: (str) -> None
        self._in_flight.discard(owner_id)

    def is_busy(self, owner_id):    # type: (str) -> bool
        return owner_id in self._in_flight
