# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import copy
import datetime
from typing import Optional, Dict, List, Any, Set, Callable

from .bridge import (IAccountBridge, AccountSession, AccountProfile, AuthMethods, AuditEventType, LoginMethod,
                     PROFILE_EXTRA_FIELDS)
from ..biometric.assertion import BiometricAssertion, verify_assertion
from ..biometric.biometric_types import FactorEnablementRecord
from .. import crypto, utils
from ..errors import AccountBridgeError

SESSION_LIFETIME = datetime.timedelta(hours=1)
PASSWORD_ITERATIONS = 1000


class AuditLogEntry:
    def __init__(self, owner_id, event_type, success, detail=None, created_at=None):
        self.owner_id = owner_id         # type: str
        self.event_type = event_type     # type: AuditEventType
        self.success = success           # type: bool
        self.detail = detail or {}       # type: Dict[str, Any]
        self.created_at = created_at     # type: Optional[datetime.datetime]


class _User:
    def __init__(self, owner_id, email, salt, password_hash):
        self.owner_id = owner_id
        self.email = email
        self.salt = salt
        self.password_hash = password_hash


class InMemoryAccountBridge(IAccountBridge):
    """Account store kept in process memory. Used by tests and offline demos."""

    def __init__(self, clock=None, assertion_max_age=None):
        # type: (Optional[Callable], Optional[datetime.timedelta]) -> None
        self.clock = clock or utils.utc_now
        self.assertion_max_age = assertion_max_age or datetime.timedelta(seconds=60)
        self.users = {}           # type: Dict[str, _User]
        self.profiles = {}        # type: Dict[str, AccountProfile]
        self.audit_log = []       # type: List[AuditLogEntry]
        self.current_session = None    # type: Optional[AccountSession]
        self._used_nonces = set()      # type: Set[str]
        self.profile_updates = 0

    def add_user(self, email, password, owner_id=None):    # type: (str, str, Optional[str]) -> str
        owner_id = owner_id or utils.generate_uid()
        email = utils.adjust_email(email)
        salt = crypto.get_random_bytes(16)
        self.users[email] = _User(owner_id, email, salt, crypto.derive_key_v1(password, salt, PASSWORD_ITERATIONS))
        self.profiles[owner_id] = AccountProfile(owner_id, email=email)
        return owner_id

    def _new_session(self, owner_id, email, method):
        session = AccountSession(owner_id, email=email, access_token=utils.generate_uid(),
                                 refresh_token=utils.generate_uid(), expires_at=self.clock() + SESSION_LIFETIME,
                                 method=method)
        self.current_session = session
        return session

    async def get_current_user(self):
        return self.current_session.owner_id if self.current_session else None

    async def sign_in_with_password(self, email, password):
        user = self.users.get(utils.adjust_email(email))
        if user is None:
            raise AccountBridgeError('invalid_grant', 'Invalid login credentials')
        if not crypto.bytes_equal(crypto.derive_key_v1(password, user.salt, PASSWORD_ITERATIONS), user.password_hash):
            raise AccountBridgeError('invalid_grant', 'Invalid login credentials')
        return self._new_session(user.owner_id, user.email, LoginMethod.Password)

    async def sign_out(self):
        self.current_session = None

    async def lookup_profile_by_email(self, email):
        user = self.users.get(utils.adjust_email(email))
        if user is None:
            return None
        return await self.get_profile(user.owner_id)

    async def get_profile(self, owner_id):
        profile = self.profiles.get(owner_id)
        return copy.deepcopy(profile) if profile else None

    async def update_profile(self, owner_id, partial):
        profile = self.profiles.get(owner_id)
        if profile is None:
            raise AccountBridgeError('not_found', 'Profile {0} not found'.format(owner_id))
        record = copy.deepcopy(profile.record)
        record.apply(partial)
        profile.record = record
        for key in PROFILE_EXTRA_FIELDS:
            if key in partial:
                setattr(profile, key, partial[key])
        self.profile_updates += 1

    async def append_audit_log_entry(self, owner_id, event_type, success, detail=None):
        self.audit_log.append(AuditLogEntry(owner_id, event_type, success, detail=detail, created_at=self.clock()))

    async def check_auth_methods(self, email):
        user = self.users.get(utils.adjust_email(email))
        if user is None:
            return AuthMethods(has_password=False)
        profile = self.profiles[user.owner_id]
        factors = profile.record.enabled_factors() if profile.record.biometric_enabled else []
        return AuthMethods(owner_id=user.owner_id, has_password=True, has_biometric=len(factors) > 0,
                           biometric_types=factors)

    async def redeem_biometric_assertion(self, assertion):    # type: (BiometricAssertion) -> AccountSession
        profile = self.profiles.get(assertion.owner_id)
        if profile is None or not profile.record.biometric_enabled or not profile.biometric_token:
            raise AccountBridgeError('biometric_not_enabled', 'Biometric login is not enabled for this account')
        if assertion.nonce in self._used_nonces:
            raise AccountBridgeError('assertion_replayed', 'Biometric assertion has already been used')
        if not verify_assertion(assertion, profile.biometric_token, profile.device_id, self.clock(),
                                self.assertion_max_age):
            raise AccountBridgeError('invalid_assertion', 'Biometric assertion is invalid or expired')
        self._used_nonces.add(assertion.nonce)
        return self._new_session(profile.owner_id, profile.email, LoginMethod.Biometric)

    def audit_events(self, owner_id=None):    # type: (Optional[str]) -> List[AuditEventType]
        return [x.event_type for x in self.audit_log if owner_id is None or x.owner_id == owner_id]

    def record_of(self, owner_id):    # type: (str) -> FactorEnablementRecord
        return copy.deepcopy(self.profiles[owner_id].record)
