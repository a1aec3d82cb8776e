# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import datetime
import enum
from typing import Optional, List, Dict, Any

from .. import utils
from ..errors import FailureReason


class FactorType(enum.Enum):
    Fingerprint = 'fingerprint'
    Face = 'face'
    Iris = 'iris'
    NoFactor = 'none'

    @staticmethod
    def parse(value):     # type: (Any) -> FactorType
        if isinstance(value, FactorType):
            return value
        if isinstance(value, str):
            value = value.strip().lower()
            if value in ('faceid', 'face_id'):
                return FactorType.Face
            if value in ('touchid', 'touch_id'):
                return FactorType.Fingerprint
            for factor in FactorType:
                if factor.value == value:
                    return factor
        return FactorType.NoFactor


ENROLLABLE_FACTORS = (FactorType.Fingerprint, FactorType.Face)


class AuthState(enum.Enum):
    Idle = 'idle'
    CheckingCapability = 'checking-capability'
    CheckingLockout = 'checking-lockout'
    CheckingEnrollment = 'checking-enrollment'
    Challenging = 'challenging'
    Success = 'success'
    FailedRetryable = 'failed-retryable'
    FailedLocked = 'failed-locked'
    FailedUnavailable = 'failed-unavailable'

    @property
    def is_final(self):
        return self in (AuthState.Success, AuthState.FailedRetryable, AuthState.FailedLocked,
                        AuthState.FailedUnavailable)


class EnrollmentState(enum.Enum):
    Welcome = 'welcome'
    CapabilityCheck = 'capability-check'
    Unavailable = 'unavailable'
    ChooseFactor = 'choose-factor'
    Enrolling = 'enrolling'
    Complete = 'complete'
    Cancelled = 'cancelled'
    Error = 'error'


class BiometricCapability:
    def __init__(self, available=False, enrolled_factor=False, factor_type=FactorType.NoFactor, error_reason=None):
        self.available = available                 # type: bool
        self.enrolled_factor = enrolled_factor     # type: bool
        self.factor_type = factor_type             # type: FactorType
        self.error_reason = error_reason           # type: Optional[str]

    @staticmethod
    def unavailable(reason):    # type: (str) -> BiometricCapability
        return BiometricCapability(available=False, enrolled_factor=False, factor_type=FactorType.NoFactor,
                                   error_reason=reason)

    @property
    def is_usable(self):
        return self.available and self.enrolled_factor

    def __repr__(self):
        return 'BiometricCapability(available={0}, enrolled_factor={1}, factor_type={2}, error_reason={3!r})'.format(
            self.available, self.enrolled_factor, self.factor_type.value, self.error_reason)


class StoredCredential:
    def __init__(self, owner_id, secret_token, created_at, expires_at, device_id=None, factors=None):
        self.owner_id = owner_id                   # type: str
        self.secret_token = secret_token           # type: str
        self.created_at = created_at               # type: datetime.datetime
        self.expires_at = expires_at               # type: datetime.datetime
        self.device_id = device_id                 # type: Optional[str]
        self.factors = list(factors or [])         # type: List[FactorType]

    def is_expired(self, now):    # type: (datetime.datetime) -> bool
        return self.expires_at <= now

    def has_factor(self, factor):     # type: (FactorType) -> bool
        return factor in self.factors

    def to_dict(self):    # type: () -> Dict[str, Any]
        return {
            'owner_id': self.owner_id,
            'secret_token': self.secret_token,
            'created_at': utils.to_iso(self.created_at),
            'expires_at': utils.to_iso(self.expires_at),
            'device_id': self.device_id,
            'factors': [x.value for x in self.factors],
        }

    @staticmethod
    def from_dict(data):    # type: (Dict[str, Any]) -> Optional[StoredCredential]
        if not isinstance(data, dict):
            return None
        owner_id = data.get('owner_id')
        secret_token = data.get('secret_token')
        created_at = utils.from_iso(data.get('created_at'))
        expires_at = utils.from_iso(data.get('expires_at'))
        if not owner_id or not secret_token or not expires_at:
            return None
        factors = [FactorType.parse(x) for x in data.get('factors') or []]
        factors = [x for x in factors if x in ENROLLABLE_FACTORS]
        return StoredCredential(owner_id, secret_token, created_at or expires_at, expires_at,
                                device_id=data.get('device_id'), factors=factors)

    def __repr__(self):
        # secret_token is not printed
        return 'StoredCredential(owner_id={0!r}, device_id={1!r}, factors={2}, expires_at={3})'.format(
            self.owner_id, self.device_id, [x.value for x in self.factors], utils.to_iso(self.expires_at))


_FACTOR_FLAGS = {
    FactorType.Fingerprint: 'fingerprint_enabled',
    FactorType.Face: 'face_enabled',
}


class FactorEnablementRecord:
    FIELDS = ('fingerprint_enabled', 'face_enabled', 'biometric_enabled', 'failure_count', 'locked_until',
              'last_setup_at', 'last_login_at')
    TIMESTAMP_FIELDS = ('locked_until', 'last_setup_at', 'last_login_at')

    def __init__(self):
        self.fingerprint_enabled = False
        self.face_enabled = False
        self.biometric_enabled = False
        self.failure_count = 0
        self.locked_until = None       # type: Optional[datetime.datetime]
        self.last_setup_at = None      # type: Optional[datetime.datetime]
        self.last_login_at = None      # type: Optional[datetime.datetime]

    @staticmethod
    def factor_flag(factor):     # type: (FactorType) -> str
        flag = _FACTOR_FLAGS.get(factor)
        if not flag:
            raise ValueError('Factor "{0}" cannot be enrolled'.format(factor.value))
        return flag

    def is_factor_enabled(self, factor):    # type: (FactorType) -> bool
        flag = _FACTOR_FLAGS.get(factor)
        return bool(getattr(self, flag)) if flag else False

    def enabled_factors(self):    # type: () -> List[FactorType]
        return [x for x in ENROLLABLE_FACTORS if self.is_factor_enabled(x)]

    def apply(self, partial):     # type: (Dict[str, Any]) -> None
        for key, value in partial.items():
            if key not in self.FIELDS:
                continue
            if key in self.TIMESTAMP_FIELDS:
                value = utils.from_iso(value)
            elif key == 'failure_count':
                value = max(0, int(value or 0))
            else:
                value = bool(value)
            setattr(self, key, value)

    def to_dict(self):    # type: () -> Dict[str, Any]
        result = {}
        for key in self.FIELDS:
            value = getattr(self, key)
            result[key] = utils.to_iso(value) if key in self.TIMESTAMP_FIELDS else value
        return result

    @staticmethod
    def from_dict(data):   # type: (Dict[str, Any]) -> FactorEnablementRecord
        record = FactorEnablementRecord()
        if isinstance(data, dict):
            record.apply(data)
        return record

    def __eq__(self, other):
        if not isinstance(other, FactorEnablementRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return 'FactorEnablementRecord({0})'.format(self.to_dict())


FAILURE_MESSAGES = {
    FailureReason.CapabilityUnavailable:
        'Biometric authentication is not available on this device. Please use your password.',
    FailureReason.NotEnrolled:
        'Biometric login is not set up for this account on this device. Please use your password.',
    FailureReason.LockedOut:
        'Too many failed attempts. Biometric login is locked for now. Please use your password.',
    FailureReason.ChallengeRejected:
        'Biometric verification failed. Try biometrics again.',
    FailureReason.ChallengeTimedOut:
        'Biometric verification timed out. Try biometrics again.',
    FailureReason.CredentialMismatch:
        'This device is not recognized for this account. Try biometrics again or use your password.',
    FailureReason.BackendUnavailable:
        'Secure credential storage is unavailable. Please use your password.',
    FailureReason.SessionEstablishmentFailed:
        'Biometric verification succeeded but login failed. Please use your password.',
    FailureReason.AttemptInProgress:
        'Another biometric request is already in progress. Try biometrics again in a moment.',
}


class AuthenticationResult:
    def __init__(self, success, state, reason=None, requires_fallback=False, message='', remaining_attempts=None,
                 session=None):
        self.success = success                         # type: bool
        self.state = state                             # type: AuthState
        self.reason = reason                           # type: Optional[FailureReason]
        self.requires_fallback = requires_fallback     # type: bool
        self.message = message                         # type: str
        self.remaining_attempts = remaining_attempts   # type: Optional[int]
        self.session = session

    @staticmethod
    def succeeded(session):
        return AuthenticationResult(True, AuthState.Success, session=session)

    @staticmethod
    def failed(state, reason, requires_fallback, message=None, remaining_attempts=None):
        return AuthenticationResult(False, state, reason=reason, requires_fallback=requires_fallback,
                                    message=message or FAILURE_MESSAGES.get(reason, ''),
                                    remaining_attempts=remaining_attempts)

    def __repr__(self):
        return 'AuthenticationResult(success={0}, state={1}, reason={2}, requires_fallback={3})'.format(
            self.success, self.state.value, self.reason.value if self.reason else None, self.requires_fallback)


class EnrollmentResult:
    def __init__(self, success, state, token=None, reason=None, message='', factor=None):
        self.success = success       # type: bool
        self.state = state           # type: EnrollmentState
        self.token = token           # type: Optional[str]
        self.reason = reason         # type: Optional[FailureReason]
        self.message = message       # type: str
        self.factor = factor         # type: Optional[FactorType]

    def __repr__(self):
        return 'EnrollmentResult(success={0}, state={1}, reason={2})'.format(
            self.success, self.state.value, self.reason.value if self.reason else None)
