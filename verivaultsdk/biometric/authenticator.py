# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import asyncio
from typing import Optional, Callable, Union

from .assertion import create_assertion
from .biometric_types import AuthState, AuthenticationResult, FactorType, FAILURE_MESSAGES
from .capability import CapabilityProber
from .credential_vault import CredentialVault
from .lockout import LockoutTracker
from .locks import AttemptGuard
from .. import utils
from ..account.bridge import IAccountBridge, AuditEventType
from ..configuration import BiometricSettings
from ..errors import (BiometricError, FailureReason, AccountBridgeError, CapabilityUnavailableError,
                      LockedOutError, NotEnrolledError, ChallengeTimedOutError)
from ..notifications import FanOut
from ..ui import IBiometricChallenger, ChallengeRequest, ChallengePurpose

# reason -> (final state, requires password fallback)
_FAILURE_OUTCOMES = {
    FailureReason.CapabilityUnavailable: (AuthState.FailedUnavailable, True),
    FailureReason.NotEnrolled: (AuthState.FailedUnavailable, True),
    FailureReason.LockedOut: (AuthState.FailedLocked, True),
    FailureReason.ChallengeRejected: (AuthState.FailedRetryable, False),
    FailureReason.ChallengeTimedOut: (AuthState.FailedRetryable, False),
    FailureReason.CredentialMismatch: (AuthState.FailedRetryable, False),
    FailureReason.BackendUnavailable: (AuthState.FailedUnavailable, True),
    FailureReason.SessionEstablishmentFailed: (AuthState.FailedUnavailable, True),
    FailureReason.AttemptInProgress: (AuthState.FailedRetryable, False),
}


def failure_result(reason, message=None, remaining_attempts=None):
    # type: (FailureReason, Optional[str], Optional[int]) -> AuthenticationResult
    state, requires_fallback = _FAILURE_OUTCOMES[reason]
    return AuthenticationResult.failed(state, reason, requires_fallback, message=message,
                                       remaining_attempts=remaining_attempts)


def bridge_timeout_result(reason):    # type: (FailureReason) -> AuthenticationResult
    """The account service did not answer in time. Retryable, no password fallback."""
    return AuthenticationResult.failed(AuthState.FailedRetryable, reason, False,
                                       message='The login service did not respond in time. Try biometrics again.')


class AttemptHandle:
    """A running authentication attempt.

    Cancelling a ``wait()`` or calling ``detach()`` drops the UI listeners only.
    The attempt itself runs to completion.
    """
    def __init__(self, task, events):    # type: (asyncio.Future, FanOut[AuthState]) -> None
        self.task = task
        self.events = events

    @property
    def done(self):    # type: () -> bool
        return self.task.done()

    def listen(self, callback):    # type: (Callable[[AuthState], Optional[bool]]) -> None
        self.events.register_callback(callback)

    def detach(self):
        self.events.remove_all()

    async def wait(self):    # type: () -> AuthenticationResult
        try:
            return await asyncio.shield(self.task)
        except asyncio.CancelledError:
            self.detach()
            raise


class BiometricAuthenticator:
    def __init__(self, prober, vault, tracker, bridge, challenger, device_id, settings=None, clock=None,
                 guard=None):
        # type: (CapabilityProber, CredentialVault, LockoutTracker, IAccountBridge, IBiometricChallenger, str, Optional[BiometricSettings], Optional[Callable], Optional[AttemptGuard]) -> None
        self.prober = prober
        self.vault = vault
        self.tracker = tracker
        self.bridge = bridge
        self.challenger = challenger
        self.device_id = device_id
        self.settings = settings or BiometricSettings()
        self.clock = clock or utils.utc_now
        self.guard = guard or AttemptGuard()
        self.logger = utils.get_logger()

    def start_authentication(self, owner_or_email, factor, listener=None):
        # type: (str, Union[FactorType, str], Optional[Callable[[AuthState], Optional[bool]]]) -> AttemptHandle
        events = FanOut()    # type: FanOut[AuthState]
        if listener:
            events.register_callback(listener)
        task = asyncio.ensure_future(self._run(owner_or_email, FactorType.parse(factor), events))
        return AttemptHandle(task, events)

    async def authenticate(self, owner_or_email, factor, listener=None):
        # type: (str, Union[FactorType, str], Optional[Callable[[AuthState], Optional[bool]]]) -> AuthenticationResult
        handle = self.start_authentication(owner_or_email, factor, listener=listener)
        return await handle.wait()

    async def _run(self, owner_or_email, factor, events):
        # type: (str, FactorType, FanOut[AuthState]) -> AuthenticationResult
        def transition(state):
            self.logger.debug('Biometric authentication: %s', state.value)
            events.push(state)

        transition(AuthState.Idle)
        owner_id = None
        acquired = False
        try:
            owner_id = await self._resolve_owner(owner_or_email)
            if self.guard.try_acquire(owner_id):
                acquired = True
                result = await self._attempt(owner_id, factor, transition)
            else:
                result = failure_result(FailureReason.AttemptInProgress)
        except BiometricError as e:
            result = failure_result(e.reason, message=self._failure_message(e))
        except asyncio.TimeoutError:
            self.logger.warning('Account service timed out during biometric authentication')
            result = bridge_timeout_result(FailureReason.BackendUnavailable)
        except AccountBridgeError as e:
            self.logger.warning('Biometric authentication error: %r', e)
            if e.result_code == 'timeout':
                result = bridge_timeout_result(FailureReason.BackendUnavailable)
            else:
                result = failure_result(FailureReason.BackendUnavailable)
        except Exception as e:
            self.logger.warning('Biometric authentication error: %r', e)
            result = failure_result(FailureReason.BackendUnavailable)
        finally:
            if acquired:
                self.guard.release(owner_id)

        transition(result.state)
        events.shutdown()
        if owner_id and result.reason != FailureReason.AttemptInProgress:
            await self._audit(owner_id, factor, result)
        if result.success:
            self.logger.info('Biometric login succeeded')
        return result

    @staticmethod
    def _failure_message(error):    # type: (BiometricError) -> str
        default = FAILURE_MESSAGES.get(error.reason, '')
        if not error.message or error.message == default:
            return default
        return '{0}. {1}'.format(error.message.rstrip('.'), default)

    async def _resolve_owner(self, owner_or_email):    # type: (str) -> str
        if not owner_or_email:
            raise NotEnrolledError('No account specified.')
        if not utils.is_email(owner_or_email):
            return owner_or_email
        profile = await asyncio.wait_for(self.bridge.lookup_profile_by_email(owner_or_email),
                                         self.settings.bridge_timeout)
        if profile is None:
            raise NotEnrolledError('No account found for this email.')
        return profile.owner_id

    async def _attempt(self, owner_id, factor, transition):
        # type: (str, FactorType, Callable[[AuthState], None]) -> AuthenticationResult
        transition(AuthState.CheckingCapability)
        capability = await self.prober.probe()
        if not capability.available:
            raise CapabilityUnavailableError(capability.error_reason or '')

        transition(AuthState.CheckingLockout)
        if await self.tracker.is_locked_out(owner_id):
            raise LockedOutError('')

        transition(AuthState.CheckingEnrollment)
        credential = await self.vault.retrieve(factor)
        if credential is None:
            raise NotEnrolledError('')

        transition(AuthState.Challenging)
        request = ChallengeRequest(owner_id, factor, ChallengePurpose.Authenticate)
        try:
            accepted = await asyncio.wait_for(self.challenger.challenge(request), self.settings.challenge_timeout)
        except asyncio.TimeoutError:
            raise ChallengeTimedOutError('')
        if accepted is not True:
            return await self._on_failure(owner_id, FailureReason.ChallengeRejected)

        if credential.owner_id != owner_id or credential.device_id != self.device_id:
            self.logger.warning('Stored biometric credential does not match the account or device')
            return await self._on_failure(owner_id, FailureReason.CredentialMismatch)

        await self.tracker.on_success(owner_id)

        assertion = create_assertion(credential, factor, self.clock())
        try:
            session = await asyncio.wait_for(self.bridge.redeem_biometric_assertion(assertion),
                                             self.settings.bridge_timeout)
        except asyncio.TimeoutError:
            return bridge_timeout_result(FailureReason.SessionEstablishmentFailed)
        except AccountBridgeError as e:
            self.logger.warning('Biometric session was rejected: %s', e)
            if e.result_code == 'timeout':
                return bridge_timeout_result(FailureReason.SessionEstablishmentFailed)
            return failure_result(FailureReason.SessionEstablishmentFailed)

        try:
            await asyncio.wait_for(self.bridge.update_profile(owner_id, {'last_login_at': utils.to_iso(self.clock())}),
                                   self.settings.bridge_timeout)
        except (AccountBridgeError, asyncio.TimeoutError) as e:
            self.logger.warning('Last biometric login time was not recorded: %s', e)
        return AuthenticationResult.succeeded(session)

    async def _on_failure(self, owner_id, reason):    # type: (str, FailureReason) -> AuthenticationResult
        count = await self.tracker.on_failure(owner_id)
        if count >= self.settings.max_failures:
            return failure_result(FailureReason.LockedOut, remaining_attempts=0)
        remaining = self.tracker.remaining_attempts(count)
        message = '{0} {1} attempt{2} remaining.'.format(FAILURE_MESSAGES[reason], remaining,
                                                         '' if remaining == 1 else 's')
        return failure_result(reason, message=message, remaining_attempts=remaining)

    async def _audit(self, owner_id, factor, result):    # type: (str, FactorType, AuthenticationResult) -> None
        detail = {'method': 'biometric', 'factor': factor.value}
        if result.success:
            event_type = AuditEventType.BiometricAuth
        else:
            event_type = AuditEventType.FailedAttempt
            detail['reason'] = result.reason.value if result.reason else None
            detail['error_message'] = result.message
        try:
            await asyncio.wait_for(self.bridge.append_audit_log_entry(owner_id, event_type, result.success, detail),
                                   self.settings.bridge_timeout)
        except Exception as e:
            self.logger.warning('Audit log entry was not recorded: %s', e)
