import asyncio
from unittest import IsolatedAsyncioTestCase
from unittest import mock

import data_biometric
from verivaultsdk.account.bridge import AuditEventType, LoginMethod
from verivaultsdk.biometric.biometric_types import FactorType, AuthState
from verivaultsdk.errors import AccountBridgeError, FailureReason
from verivaultsdk.login import BiometricLogin


class TestBiometricLogin(IsolatedAsyncioTestCase):
    def setUp(self):
        self.env = data_biometric.BiometricEnvironment()
        self.login = BiometricLogin(self.env.bridge, self.env.authenticator, self.env.settings)

    async def test_check_auth_methods(self):
        methods = await self.login.check_auth_methods(data_biometric.UserEmail)
        self.assertTrue(methods.has_password)
        self.assertFalse(methods.has_biometric)

        await self.env.wizard.enroll(self.env.owner_id, FactorType.Fingerprint)
        methods = await self.login.check_auth_methods(' ' + data_biometric.UserEmail.upper())
        self.assertEqual(methods.owner_id, self.env.owner_id)
        self.assertTrue(methods.has_biometric)
        self.assertEqual(methods.biometric_types, [FactorType.Fingerprint])

        methods = await self.login.check_auth_methods('nobody@company.com')
        self.assertFalse(methods.has_password)
        self.assertFalse(methods.has_biometric)

    async def test_check_auth_methods_failure(self):
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Fingerprint)
        with mock.patch.object(self.env.bridge, 'check_auth_methods',
                               side_effect=AccountBridgeError('network_error', 'Offline')):
            with self.assertLogs('verivault', level='WARNING'):
                methods = await self.login.check_auth_methods(data_biometric.UserEmail)
        self.assertTrue(methods.has_password)
        self.assertFalse(methods.has_biometric)

        async def hang(email):
            await asyncio.sleep(3600)

        self.env.settings.bridge_timeout_ms = 20
        with mock.patch.object(self.env.bridge, 'check_auth_methods', side_effect=hang):
            methods = await self.login.check_auth_methods(data_biometric.UserEmail)
        self.assertTrue(methods.has_password)
        self.assertFalse(methods.has_biometric)

    async def test_password_login(self):
        session = await self.login.login_with_password(data_biometric.UserEmail, data_biometric.UserPassword)
        self.assertEqual(session.owner_id, self.env.owner_id)
        self.assertEqual(session.method, LoginMethod.Password)
        self.assertIs(self.login.session, session)
        self.assertEqual(self.env.bridge.audit_events(), [AuditEventType.Login])

        await self.login.logout()
        self.assertIsNone(self.login.session)
        self.assertIsNone(self.env.bridge.current_session)
        self.assertEqual(self.env.bridge.audit_events(), [AuditEventType.Login, AuditEventType.Logout])

    async def test_password_login_failure(self):
        with self.assertRaises(AccountBridgeError) as ctx:
            await self.login.login_with_password(data_biometric.UserEmail, 'wrong password')
        self.assertEqual(ctx.exception.result_code, 'invalid_grant')
        self.assertIsNone(self.login.session)
        entry = self.env.bridge.audit_log[0]
        self.assertEqual(entry.event_type, AuditEventType.FailedAttempt)
        self.assertFalse(entry.success)
        self.assertEqual(entry.detail['method'], 'password')

        with self.assertRaises(AccountBridgeError):
            await self.login.login_with_password('nobody@company.com', data_biometric.UserPassword)
        self.assertEqual(len(self.env.bridge.audit_log), 1)

    async def test_password_login_timeout(self):
        async def hang(email, password):
            await asyncio.sleep(3600)

        self.env.settings.bridge_timeout_ms = 20
        with mock.patch.object(self.env.bridge, 'sign_in_with_password', side_effect=hang):
            with self.assertRaises(AccountBridgeError) as ctx:
                await self.login.login_with_password(data_biometric.UserEmail, data_biometric.UserPassword)
        self.assertEqual(ctx.exception.result_code, 'timeout')

    async def test_biometric_login(self):
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        methods = await self.login.check_auth_methods(data_biometric.UserEmail)
        self.assertIn(FactorType.Face, methods.biometric_types)

        states = []
        rs = await self.login.login_with_biometric(data_biometric.UserEmail, FactorType.Face, listener=states.append)
        self.assertTrue(rs.success)
        self.assertEqual(states[-1], AuthState.Success)
        self.assertEqual(self.login.session.owner_id, self.env.owner_id)
        self.assertEqual(self.login.session.method, LoginMethod.Biometric)

        await self.login.logout()
        self.assertEqual(self.env.bridge.audit_events(),
                         [AuditEventType.BiometricSetup, AuditEventType.BiometricAuth, AuditEventType.Logout])

    async def test_biometric_login_falls_back_to_password(self):
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        self.env.challenger.default = False
        for _ in range(self.env.settings.max_failures):
            rs = await self.login.login_with_biometric(data_biometric.UserEmail, FactorType.Face)
        self.assertEqual(rs.reason, FailureReason.LockedOut)
        self.assertTrue(rs.requires_fallback)
        self.assertIsNone(self.login.session)

        session = await self.login.login_with_password(data_biometric.UserEmail, data_biometric.UserPassword)
        self.assertEqual(session.method, LoginMethod.Password)

    async def test_logout_without_session(self):
        await self.login.logout()
        self.assertEqual(self.env.bridge.audit_log, [])
