# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import abc
import datetime
import enum
from typing import Optional, List, Dict, Any

from ..biometric.biometric_types import FactorEnablementRecord, FactorType
from ..biometric.assertion import BiometricAssertion


class AuditEventType(enum.Enum):
    Login = 'login'
    Logout = 'logout'
    BiometricSetup = 'biometric_setup'
    BiometricAuth = 'biometric_auth'
    PasswordReset = 'password_reset'
    FailedAttempt = 'failed_attempt'


class LoginMethod(enum.Enum):
    Password = 'password'
    Biometric = 'biometric'


class AccountSession:
    def __init__(self, owner_id, email=None, access_token=None, refresh_token=None, expires_at=None,
                 method=LoginMethod.Password):
        self.owner_id = owner_id             # type: str
        self.email = email                   # type: Optional[str]
        self.access_token = access_token     # type: Optional[str]
        self.refresh_token = refresh_token   # type: Optional[str]
        self.expires_at = expires_at         # type: Optional[datetime.datetime]
        self.method = method                 # type: LoginMethod

    def __repr__(self):
        return 'AccountSession(owner_id={0!r}, email={1!r}, method={2})'.format(
            self.owner_id, self.email, self.method.value)


class AccountProfile:
    """Profile row: the enablement record plus the server-side copy of the enrolled secret."""

    def __init__(self, owner_id, email=None, record=None, biometric_token=None, device_id=None):
        self.owner_id = owner_id                                  # type: str
        self.email = email                                        # type: Optional[str]
        self.record = record or FactorEnablementRecord()          # type: FactorEnablementRecord
        self.biometric_token = biometric_token                    # type: Optional[str]
        self.device_id = device_id                                # type: Optional[str]


class AuthMethods:
    def __init__(self, owner_id=None, has_password=True, has_biometric=False, biometric_types=None):
        self.owner_id = owner_id                                  # type: Optional[str]
        self.has_password = has_password                          # type: bool
        self.has_biometric = has_biometric                        # type: bool
        self.biometric_types = list(biometric_types or [])        # type: List[FactorType]

    def __repr__(self):
        return 'AuthMethods(has_password={0}, has_biometric={1}, biometric_types={2})'.format(
            self.has_password, self.has_biometric, [x.value for x in self.biometric_types])


# profile fields accepted by update_profile besides the enablement record fields
PROFILE_EXTRA_FIELDS = ('biometric_token', 'device_id')


class IAccountBridge(abc.ABC):
    """The remote account store: profiles, audit log and session grants.

    Failures are raised as ``AccountBridgeError``.
    """
    @abc.abstractmethod
    async def get_current_user(self):    # type: () -> Optional[str]
        pass

    @abc.abstractmethod
    async def sign_in_with_password(self, email, password):    # type: (str, str) -> AccountSession
        pass

    @abc.abstractmethod
    async def sign_out(self):    # type: () -> None
        pass

    @abc.abstractmethod
    async def lookup_profile_by_email(self, email):    # type: (str) -> Optional[AccountProfile]
        pass

    @abc.abstractmethod
    async def get_profile(self, owner_id):    # type: (str) -> Optional[AccountProfile]
        pass

    @abc.abstractmethod
    async def update_profile(self, owner_id, partial):    # type: (str, Dict[str, Any]) -> None
        """``partial`` holds ``FactorEnablementRecord`` fields (timestamps as ISO strings)
        and optionally ``biometric_token`` and ``device_id``."""
        pass

    @abc.abstractmethod
    async def append_audit_log_entry(self, owner_id, event_type, success, detail=None):
        # type: (str, AuditEventType, bool, Optional[Dict[str, Any]]) -> None
        pass

    @abc.abstractmethod
    async def check_auth_methods(self, email):    # type: (str) -> AuthMethods
        pass

    @abc.abstractmethod
    async def redeem_biometric_assertion(self, assertion):    # type: (BiometricAssertion) -> AccountSession
        pass
