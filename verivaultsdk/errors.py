# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import enum


class FailureReason(enum.Enum):
    CapabilityUnavailable = 'capability_unavailable'
    NotEnrolled = 'not_enrolled'
    LockedOut = 'locked_out'
    ChallengeRejected = 'challenge_rejected'
    ChallengeTimedOut = 'challenge_timed_out'
    CredentialMismatch = 'credential_mismatch'
    BackendUnavailable = 'backend_unavailable'
    SessionEstablishmentFailed = 'session_establishment_failed'
    AttemptInProgress = 'attempt_in_progress'


class VeriVaultError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class AccountBridgeError(VeriVaultError):
    def __init__(self, result_code, message):
        VeriVaultError.__init__(self, message)
        self.result_code = result_code

    def __str__(self):
        return '({0}: {1})'.format(self.result_code, self.message)


class StorageError(VeriVaultError):
    def __init__(self, backend, message):
        VeriVaultError.__init__(self, message)
        self.backend = backend

    def __str__(self):
        return '{0}: {1}'.format(self.backend, self.message)


class BiometricError(VeriVaultError):
    reason = FailureReason.BackendUnavailable

    def __init__(self, message, reason=None):
        VeriVaultError.__init__(self, message)
        if reason is not None:
            self.reason = reason


class CapabilityUnavailableError(BiometricError):
    reason = FailureReason.CapabilityUnavailable


class NotEnrolledError(BiometricError):
    reason = FailureReason.NotEnrolled


class LockedOutError(BiometricError):
    reason = FailureReason.LockedOut


class ChallengeRejectedError(BiometricError):
    reason = FailureReason.ChallengeRejected


class ChallengeTimedOutError(BiometricError):
    reason = FailureReason.ChallengeTimedOut


class CredentialMismatchError(BiometricError):
    reason = FailureReason.CredentialMismatch


class BackendUnavailableError(BiometricError):
    reason = FailureReason.BackendUnavailable


class SessionEstablishmentFailedError(BiometricError):
    reason = FailureReason.SessionEstablishmentFailed
