# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import asyncio
from typing import Optional, Callable, Union, Dict, Any

from .biometric_types import (EnrollmentState, EnrollmentResult, FactorType, FactorEnablementRecord,
                              ENROLLABLE_FACTORS, FAILURE_MESSAGES)
from .capability import CapabilityProber
from .credential_vault import CredentialVault
from .lockout import LockoutTracker
from .locks import AttemptGuard
from .. import crypto, utils
from ..account.bridge import IAccountBridge, AuditEventType
from ..configuration import BiometricSettings
from ..errors import FailureReason, AccountBridgeError
from ..notifications import FanOut
from ..ui import IBiometricChallenger, ChallengeRequest, ChallengePurpose

SKIP_GUIDANCE = 'You can skip this step and keep using your password.'


class EnrollmentWizard:
    """First-time biometric setup and the matching disable flow."""

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

    async def enroll(self, owner_id, factor, listener=None):
        # type: (str, Union[FactorType, str], Optional[Callable[[EnrollmentState], Optional[bool]]]) -> EnrollmentResult
        events = FanOut()    # type: FanOut[EnrollmentState]
        if listener:
            events.register_callback(listener)
        task = asyncio.ensure_future(self._run_enroll(owner_id, FactorType.parse(factor), events))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            events.remove_all()
            raise

    async def _run_enroll(self, owner_id, factor, events):
        # type: (str, FactorType, FanOut[EnrollmentState]) -> EnrollmentResult
        def transition(state):
            self.logger.debug('Biometric enrollment: %s', state.value)
            events.push(state)

        transition(EnrollmentState.Welcome)
        if not self.guard.try_acquire(owner_id):
            result = EnrollmentResult(False, EnrollmentState.Error, reason=FailureReason.AttemptInProgress,
                                      message=FAILURE_MESSAGES[FailureReason.AttemptInProgress], factor=factor)
            transition(result.state)
            events.shutdown()
            return result
        try:
            result = await self._enroll(owner_id, factor, transition)
        except Exception as e:
            self.logger.warning('Biometric enrollment error: %s', e)
            result = EnrollmentResult(False, EnrollmentState.Error, reason=FailureReason.BackendUnavailable,
                                      message=FAILURE_MESSAGES[FailureReason.BackendUnavailable], factor=factor)
        finally:
            self.guard.release(owner_id)

        transition(result.state)
        events.shutdown()
        if result.state != EnrollmentState.Cancelled:
            await self._audit(owner_id, result.success, {'action': 'enable', 'factor': factor.value,
                                                         'error_message': None if result.success else result.message})
        if result.success:
            self.logger.info('Biometric %s login is set up', factor.value)
        return result

    async def _enroll(self, owner_id, factor, transition):
        # type: (str, FactorType, Callable[[EnrollmentState], None]) -> EnrollmentResult
        transition(EnrollmentState.CapabilityCheck)
        capability = await self.prober.probe()
        if not capability.available or factor not in ENROLLABLE_FACTORS:
            if capability.available:
                reason = '{0} cannot be used for biometric login'.format(factor.value.capitalize())
            else:
                reason = capability.error_reason or 'Biometric authentication is not available on this device'
            return EnrollmentResult(False, EnrollmentState.Unavailable, reason=FailureReason.CapabilityUnavailable,
                                    message='{0}. {1}'.format(reason.rstrip('.'), SKIP_GUIDANCE), factor=factor)

        transition(EnrollmentState.ChooseFactor)
        transition(EnrollmentState.Enrolling)
        request = ChallengeRequest(owner_id, factor, ChallengePurpose.Enroll)
        try:
            accepted = await asyncio.wait_for(self.challenger.challenge(request), self.settings.enrollment_timeout)
        except asyncio.TimeoutError:
            return EnrollmentResult(False, EnrollmentState.Cancelled, reason=FailureReason.ChallengeTimedOut,
                                    message='Biometric setup timed out. ' + SKIP_GUIDANCE, factor=factor)
        if accepted is not True:
            return EnrollmentResult(False, EnrollmentState.Cancelled, reason=FailureReason.ChallengeRejected,
                                    message='Biometric setup was cancelled. ' + SKIP_GUIDANCE, factor=factor)

        secret = crypto.generate_secret_token()
        snapshot = await self.vault.snapshot()
        stored = await self.vault.store(owner_id, secret, factor, device_id=self.device_id)
        if not stored.success:
            return EnrollmentResult(False, EnrollmentState.Error, reason=stored.reason or FailureReason.BackendUnavailable,
                                    message=FAILURE_MESSAGES[FailureReason.BackendUnavailable], factor=factor)

        partial = {
            FactorEnablementRecord.factor_flag(factor): True,
            'biometric_enabled': True,
            'last_setup_at': utils.to_iso(self.clock()),
            'failure_count': 0,
            'locked_until': None,
            'biometric_token': secret,
            'device_id': self.device_id,
        }
        try:
            await asyncio.wait_for(self.bridge.update_profile(owner_id, partial), self.settings.bridge_timeout)
        except (AccountBridgeError, asyncio.TimeoutError) as e:
            self.logger.warning('Biometric profile update failed: %r', e)
            restored = await self.vault.restore(snapshot)
            if not restored.success:
                self.logger.error('Biometric credential rollback failed: %s', restored.message)
            return EnrollmentResult(False, EnrollmentState.Error, reason=FailureReason.BackendUnavailable,
                                    message='Your account could not be updated. Please try again later.',
                                    factor=factor)
        await self.tracker.reset(owner_id)
        return EnrollmentResult(True, EnrollmentState.Complete, token=secret, factor=factor)

    async def disable(self, owner_id, factor=None):
        # type: (str, Optional[Union[FactorType, str]]) -> EnrollmentResult
        """Turns off one factor, or all of them when ``factor`` is omitted.

        Disabling the last enabled factor also clears the enrolled secret,
        the setup time and the failure and lockout state.
        """
        factor = FactorType.parse(factor) if factor is not None else None
        return await asyncio.shield(self._run_disable(owner_id, factor))

    async def _run_disable(self, owner_id, factor):    # type: (str, Optional[FactorType]) -> EnrollmentResult
        if not self.guard.try_acquire(owner_id):
            return EnrollmentResult(False, EnrollmentState.Error, reason=FailureReason.AttemptInProgress,
                                    message=FAILURE_MESSAGES[FailureReason.AttemptInProgress], factor=factor)
        try:
            result = await self._disable(owner_id, factor)
        except Exception as e:
            self.logger.warning('Biometric disable error: %s', e)
            result = EnrollmentResult(False, EnrollmentState.Error, reason=FailureReason.BackendUnavailable,
                                      message=FAILURE_MESSAGES[FailureReason.BackendUnavailable], factor=factor)
        finally:
            self.guard.release(owner_id)

        await self._audit(owner_id, result.success, {'action': 'disable',
                                                     'factor': factor.value if factor else 'all',
                                                     'error_message': None if result.success else result.message})
        return result

    async def _disable(self, owner_id, factor):    # type: (str, Optional[FactorType]) -> EnrollmentResult
        profile = await asyncio.wait_for(self.bridge.get_profile(owner_id), self.settings.bridge_timeout)
        record = profile.record if profile else FactorEnablementRecord()
        remaining = [x for x in record.enabled_factors() if factor is not None and x != factor]

        held = await self.vault.snapshot()
        owns_credential = held is None or held.get('owner_id') == owner_id
        if owns_credential:
            purged = await self.vault.purge(factor)
            if not purged.success:
                return EnrollmentResult(False, EnrollmentState.Error, reason=purged.reason,
                                        message=FAILURE_MESSAGES[FailureReason.BackendUnavailable], factor=factor)

        partial = {}    # type: Dict[str, Any]
        for x in ENROLLABLE_FACTORS:
            if factor is None or x == factor:
                partial[FactorEnablementRecord.factor_flag(x)] = False
        partial['biometric_enabled'] = len(remaining) > 0
        partial['failure_count'] = 0
        partial['locked_until'] = None
        if not remaining:
            partial['last_setup_at'] = None
            partial['biometric_token'] = None
            partial['device_id'] = None
        try:
            await asyncio.wait_for(self.bridge.update_profile(owner_id, partial), self.settings.bridge_timeout)
        except (AccountBridgeError, asyncio.TimeoutError) as e:
            self.logger.warning('Biometric profile update failed: %r', e)
            if owns_credential:
                restored = await self.vault.restore(held)
                if not restored.success:
                    self.logger.error('Biometric credential rollback failed: %s', restored.message)
            return EnrollmentResult(False, EnrollmentState.Error, reason=FailureReason.BackendUnavailable,
                                    message='Your account could not be updated. Please try again later.',
                                    factor=factor)
        await self.tracker.reset(owner_id)
        self.logger.info('Biometric %s login is disabled', factor.value if factor else 'all')
        return EnrollmentResult(True, EnrollmentState.Complete, factor=factor,
                                message='Biometric login has been disabled.')

    async def _audit(self, owner_id, success, detail):
        try:
            await asyncio.wait_for(
                self.bridge.append_audit_log_entry(owner_id, AuditEventType.BiometricSetup, success, detail),
                self.settings.bridge_timeout)
        except Exception as e:
            self.logger.warning('Audit log entry was not recorded: %s', e)
