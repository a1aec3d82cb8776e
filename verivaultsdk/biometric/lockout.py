# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import abc
import asyncio
import datetime
from typing import Optional, Dict, Callable

from .locks import OwnerLocks
from .. import utils
from ..configuration import BiometricSettings


class LockoutState:
    def __init__(self, failure_count=0, locked_until=None):
        self.failure_count = failure_count    # type: int
        self.locked_until = locked_until      # type: Optional[datetime.datetime]

    @property
    def is_clear(self):
        return self.failure_count == 0 and self.locked_until is None

    def __eq__(self, other):
        if not isinstance(other, LockoutState):
            return NotImplemented
        return self.failure_count == other.failure_count and self.locked_until == other.locked_until

    def __repr__(self):
        return 'LockoutState(failure_count={0}, locked_until={1})'.format(
            self.failure_count, utils.to_iso(self.locked_until))


class ILockoutStore(abc.ABC):
    @abc.abstractmethod
    async def get(self, owner_id):    # type: (str) -> LockoutState
        pass

    @abc.abstractmethod
    async def put(self, owner_id, state):    # type: (str, LockoutState) -> None
        pass


class InMemoryLockoutStore(ILockoutStore):
    def __init__(self):
        self.states = {}    # type: Dict[str, LockoutState]

    async def get(self, owner_id):
        state = self.states.get(owner_id)
        return LockoutState(state.failure_count, state.locked_until) if state else LockoutState()

    async def put(self, owner_id, state):
        if state.is_clear:
            self.states.pop(owner_id, None)
        else:
            self.states[owner_id] = LockoutState(state.failure_count, state.locked_until)


class ProfileLockoutStore(ILockoutStore):
    """Keeps the counter and lockout window in the owner's profile (``failure_count``, ``locked_until``)."""

    def __init__(self, bridge, timeout=None):
        self.bridge = bridge
        self.timeout = timeout if timeout is not None else BiometricSettings().bridge_timeout

    async def get(self, owner_id):
        profile = await asyncio.wait_for(self.bridge.get_profile(owner_id), self.timeout)
        if profile is None:
            return LockoutState()
        record = profile.record
        return LockoutState(record.failure_count, record.locked_until)

    async def put(self, owner_id, state):
        partial = {
            'failure_count': state.failure_count,
            'locked_until': utils.to_iso(state.locked_until),
        }
        await asyncio.wait_for(self.bridge.update_profile(owner_id, partial), self.timeout)


class LockoutTracker:
    """Fixed threshold, fixed cooldown.

    When the counter reaches ``max_failures`` the owner is locked for
    ``lockout_minutes``. The counter stays set after the lock expires and
    is cleared only by a success or an explicit reset.
    """
    def __init__(self, store, settings=None, clock=None, locks=None):
        # type: (ILockoutStore, Optional[BiometricSettings], Optional[Callable], Optional[OwnerLocks]) -> None
        self.store = store
        self.settings = settings or BiometricSettings()
        self.clock = clock or utils.utc_now
        self.locks = locks or OwnerLocks()
        self.logger = utils.get_logger()

    async def on_failure(self, owner_id):    # type: (str) -> int
        async with self.locks(owner_id):
            state = await self.store.get(owner_id)
            state.failure_count += 1
            if state.failure_count >= self.settings.max_failures:
                state.locked_until = self.clock() + self.settings.lockout_duration
                self.logger.info('Biometric login locked until %s after %d failures',
                                 utils.to_iso(state.locked_until), state.failure_count)
            await self.store.put(owner_id, state)
            return state.failure_count

    async def on_success(self, owner_id):    # type: (str) -> None
        async with self.locks(owner_id):
            state = await self.store.get(owner_id)
            if not state.is_clear:
                await self.store.put(owner_id, LockoutState())

    async def reset(self, owner_id):    # type: (str) -> None
        async with self.locks(owner_id):
            await self.store.put(owner_id, LockoutState())

    async def is_locked_out(self, owner_id):    # type: (str) -> bool
        async with self.locks(owner_id):
            state = await self.store.get(owner_id)
            if state.locked_until is None:
                return False
            if state.locked_until > self.clock():
                return True
            self.logger.debug('Biometric lockout expired at %s', utils.to_iso(state.locked_until))
            state.locked_until = None
            await self.store.put(owner_id, state)
            return False

    async def locked_until(self, owner_id):    # type: (str) -> Optional[datetime.datetime]
        state = await self.store.get(owner_id)
        return state.locked_until

    def remaining_attempts(self, failure_count):    # type: (int) -> int
        return max(0, self.settings.max_failures - failure_count)
