# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import asyncio
import functools
import json
from typing import Optional, List, Tuple, Callable, Iterable, Dict, Any

from .biometric_types import StoredCredential, FactorType, ENROLLABLE_FACTORS
from .secure_storage import ISecureStorage
from .. import utils
from ..configuration import BiometricSettings
from ..errors import StorageError, BackendUnavailableError, FailureReason

CREDENTIAL_KEY = 'biometric_credential'


class VaultResult:
    def __init__(self, success, reason=None, message='', backend=None):
        self.success = success     # type: bool
        self.reason = reason       # type: Optional[FailureReason]
        self.message = message     # type: str
        self.backend = backend     # type: Optional[str]

    def __bool__(self):
        return self.success

    def __repr__(self):
        return 'VaultResult(success={0}, reason={1}, backend={2})'.format(
            self.success, self.reason.value if self.reason else None, self.backend)


class CredentialVault:
    """Holds the one biometric credential of this device.

    The record is written to the strongest available backend and copies in
    weaker backends are removed. Backend failures surface as a failed
    ``VaultResult`` or ``BackendUnavailableError``, never as ``StorageError``.
    """
    def __init__(self, backends, settings=None, clock=None):
        # type: (Iterable[ISecureStorage], Optional[BiometricSettings], Optional[Callable]) -> None
        self.backends = sorted(backends, key=lambda x: x.strength, reverse=True)   # type: List[ISecureStorage]
        self.settings = settings or BiometricSettings()
        self.clock = clock or utils.utc_now
        self.logger = utils.get_logger()
        self._lock = None    # type: Optional[asyncio.Lock]

    def _get_lock(self):    # type: () -> asyncio.Lock
        # created on first use so it belongs to the running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @staticmethod
    async def _run(fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args))

    async def _available_backends(self):    # type: () -> List[ISecureStorage]
        result = []
        for backend in self.backends:
            try:
                if await self._run(backend.is_available):
                    result.append(backend)
            except Exception as e:
                self.logger.debug('Storage "%s" availability error: %s', backend.name, e)
        return result

    async def _load(self):    # type: () -> Tuple[Optional[StoredCredential], Optional[ISecureStorage]]
        readable = 0
        for backend in await self._available_backends():
            try:
                value = await self._run(backend.get, CREDENTIAL_KEY)
            except StorageError as e:
                self.logger.warning('Credential read error: %s', e)
                continue
            readable += 1
            if not value:
                continue
            try:
                credential = StoredCredential.from_dict(json.loads(value))
            except ValueError as e:
                self.logger.warning('Storage "%s": corrupted credential record: %s', backend.name, e)
                credential = None
            if credential:
                return credential, backend
        if readable == 0:
            raise BackendUnavailableError('No secure storage backend can be read')
        return None, None

    async def _write(self, credential):    # type: (StoredCredential) -> VaultResult
        value = json.dumps(credential.to_dict())
        available = await self._available_backends()
        written = None    # type: Optional[ISecureStorage]
        for backend in available:
            try:
                await self._run(backend.put, CREDENTIAL_KEY, value)
                written = backend
                break
            except StorageError as e:
                self.logger.error('Credential write error: %s', e)
        if written is None:
            return VaultResult(False, reason=FailureReason.BackendUnavailable,
                               message='No secure storage backend accepted the credential')
        await self._delete_all(exclude=written)
        self.logger.debug('Biometric credential stored in "%s"', written.name)
        return VaultResult(True, backend=written.name)

    async def _delete_all(self, exclude=None):   # type: (Optional[ISecureStorage]) -> bool
        ok = True
        for backend in await self._available_backends():
            if backend is exclude:
                continue
            try:
                await self._run(backend.delete, CREDENTIAL_KEY)
            except StorageError as e:
                self.logger.warning('Credential delete error: %s', e)
                ok = False
        return ok

    async def store(self, owner_id, secret, factor, device_id=None):
        # type: (str, str, FactorType, Optional[str]) -> VaultResult
        if factor not in ENROLLABLE_FACTORS:
            return VaultResult(False, reason=FailureReason.CapabilityUnavailable,
                               message='Factor "{0}" cannot be enrolled'.format(factor.value))
        async with self._get_lock():
            now = self.clock()
            try:
                existing, _ = await self._load()
            except BackendUnavailableError as e:
                return VaultResult(False, reason=FailureReason.BackendUnavailable, message=str(e))

            factors = [factor]
            if existing and existing.owner_id == owner_id and not existing.is_expired(now):
                factors = [x for x in existing.factors if x != factor] + [factor]
            credential = StoredCredential(owner_id, secret, now, now + self.settings.credential_ttl,
                                          device_id=device_id, factors=factors)
            return await self._write(credential)

    async def retrieve(self, factor=None):    # type: (Optional[FactorType]) -> Optional[StoredCredential]
        async with self._get_lock():
            credential, _ = await self._load()
            if credential is None:
                return None
            if credential.is_expired(self.clock()):
                self.logger.info('Biometric credential expired at %s. Purged.', utils.to_iso(credential.expires_at))
                await self._delete_all()
                return None
            if not credential.factors:
                return None
            if factor is not None and not credential.has_factor(factor):
                return None
            return credential

    async def purge(self, factor=None):    # type: (Optional[FactorType]) -> VaultResult
        async with self._get_lock():
            try:
                credential, backend = await self._load()
            except BackendUnavailableError as e:
                return VaultResult(False, reason=FailureReason.BackendUnavailable, message=str(e))
            if credential is None:
                return VaultResult(True)
            if factor is not None:
                credential.factors = [x for x in credential.factors if x != factor]
                if credential.factors:
                    return await self._write(credential)
            if await self._delete_all():
                return VaultResult(True)
            return VaultResult(False, reason=FailureReason.BackendUnavailable,
                               message='Biometric credential could not be removed')

    async def snapshot(self):    # type: () -> Optional[Dict[str, Any]]
        async with self._get_lock():
            try:
                credential, _ = await self._load()
            except BackendUnavailableError:
                return None
            return credential.to_dict() if credential else None

    async def restore(self, snapshot):    # type: (Optional[Dict[str, Any]]) -> VaultResult
        async with self._get_lock():
            credential = StoredCredential.from_dict(snapshot) if snapshot else None
            if credential is None:
                if await self._delete_all():
                    return VaultResult(True)
                return VaultResult(False, reason=FailureReason.BackendUnavailable,
                                   message='Biometric credential could not be removed')
            return await self._write(credential)

    async def backend_name(self):    # type: () -> Optional[str]
        async with self._get_lock():
            try:
                _, backend = await self._load()
            except BackendUnavailableError:
                return None
            return backend.name if backend else None
