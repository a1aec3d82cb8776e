# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import asyncio
from typing import Optional, Union, Callable

from . import utils
from .account.bridge import IAccountBridge, AccountSession, AuthMethods, AuditEventType
from .biometric.authenticator import BiometricAuthenticator
from .biometric.biometric_types import AuthenticationResult, AuthState, FactorType
from .configuration import BiometricSettings
from .errors import AccountBridgeError


class BiometricLogin:
    """Email-first login: look up the account's methods, try biometrics, fall back to the password."""

    def __init__(self, bridge, authenticator, settings=None):
        # type: (IAccountBridge, BiometricAuthenticator, Optional[BiometricSettings]) -> None
        self.bridge = bridge
        self.authenticator = authenticator
        self.settings = settings or BiometricSettings()
        self.session = None    # type: Optional[AccountSession]
        self.logger = utils.get_logger()

    async def check_auth_methods(self, email):    # type: (str) -> AuthMethods
        try:
            return await asyncio.wait_for(self.bridge.check_auth_methods(utils.adjust_email(email)),
                                          self.settings.bridge_timeout)
        except (AccountBridgeError, asyncio.TimeoutError) as e:
            self.logger.warning('Login methods lookup failed: %s', e)
            return AuthMethods(has_password=True, has_biometric=False)

    async def login_with_biometric(self, email, factor, listener=None):
        # type: (str, Union[FactorType, str], Optional[Callable[[AuthState], Optional[bool]]]) -> AuthenticationResult
        result = await self.authenticator.authenticate(utils.adjust_email(email), factor, listener=listener)
        if result.success:
            self.session = result.session
        return result

    async def login_with_password(self, email, password):    # type: (str, str) -> AccountSession
        email = utils.adjust_email(email)
        try:
            session = await asyncio.wait_for(self.bridge.sign_in_with_password(email, password),
                                             self.settings.bridge_timeout)
        except asyncio.TimeoutError:
            raise AccountBridgeError('timeout', 'The login service did not respond in time')
        except AccountBridgeError as e:
            profile = None
            try:
                profile = await self.bridge.lookup_profile_by_email(email)
            except AccountBridgeError as le:
                self.logger.debug('Profile lookup error: %s', le)
            if profile:
                await self._audit(profile.owner_id, AuditEventType.FailedAttempt, False,
                                  {'method': 'password', 'error_message': e.message})
            raise

        self.session = session
        await self._audit(session.owner_id, AuditEventType.Login, True, {'method': 'password'})
        self.logger.info('Password login succeeded')
        return session

    async def logout(self):
        session = self.session
        self.session = None
        if session:
            await self._audit(session.owner_id, AuditEventType.Logout, True, None)
        await self.bridge.sign_out()

    async def _audit(self, owner_id, event_type, success, detail):
        try:
            await asyncio.wait_for(self.bridge.append_audit_log_entry(owner_id, event_type, success, detail),
                                   self.settings.bridge_timeout)
        except Exception as e:
            self.logger.warning('Audit log entry was not recorded: %s', e)
