import asyncio
from unittest import IsolatedAsyncioTestCase
from unittest import mock

import data_biometric
from verivaultsdk import utils
from verivaultsdk.account.bridge import AuditEventType
from verivaultsdk.biometric.biometric_types import EnrollmentState, FactorType, FactorEnablementRecord
from verivaultsdk.errors import FailureReason, AccountBridgeError


class TestEnrollmentWizard(IsolatedAsyncioTestCase):
    def setUp(self):
        self.env = data_biometric.BiometricEnvironment()

    async def test_enroll_face(self):
        states = []
        rs = await self.env.wizard.enroll(self.env.owner_id, FactorType.Face, listener=states.append)
        self.assertTrue(rs.success)
        self.assertEqual(rs.state, EnrollmentState.Complete)
        self.assertEqual(states, [EnrollmentState.Welcome, EnrollmentState.CapabilityCheck,
                                  EnrollmentState.ChooseFactor, EnrollmentState.Enrolling, EnrollmentState.Complete])
        self.assertGreaterEqual(len(utils.base64_url_decode(rs.token)), 16)

        record = self.env.record()
        self.assertTrue(record.face_enabled)
        self.assertFalse(record.fingerprint_enabled)
        self.assertTrue(record.biometric_enabled)
        self.assertEqual(record.last_setup_at, self.env.clock())
        self.assertEqual(record.failure_count, 0)
        self.assertEqual(self.env.challenger.requests[0].title, 'Setup Face ID')

        credential = await self.env.vault.retrieve(FactorType.Face)
        self.assertEqual(credential.secret_token, rs.token)
        self.assertEqual(credential.device_id, data_biometric.DeviceId)
        profile = self.env.bridge.profiles[self.env.owner_id]
        self.assertEqual(profile.biometric_token, rs.token)
        self.assertEqual(profile.device_id, data_biometric.DeviceId)
        self.assertEqual(self.env.bridge.audit_events(), [AuditEventType.BiometricSetup])

    async def test_enroll_then_authenticate(self):
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        rs = await self.env.authenticator.authenticate(self.env.owner_id, FactorType.Face)
        self.assertTrue(rs.success)
        self.assertEqual(self.env.record().failure_count, 0)

    async def test_enroll_clears_lockout(self):
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        self.env.challenger.default = False
        for _ in range(3):
            await self.env.authenticator.authenticate(self.env.owner_id, FactorType.Face)
        self.assertTrue(await self.env.tracker.is_locked_out(self.env.owner_id))

        self.env.challenger.default = True
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Fingerprint)
        record = self.env.record()
        self.assertEqual(record.failure_count, 0)
        self.assertIsNone(record.locked_until)
        self.assertTrue(record.face_enabled)
        self.assertTrue(record.fingerprint_enabled)
        credential = await self.env.vault.retrieve()
        self.assertEqual(credential.factors, [FactorType.Face, FactorType.Fingerprint])

    async def test_unavailable(self):
        self.env.platform.available = False
        rs = await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        self.assertFalse(rs.success)
        self.assertEqual(rs.state, EnrollmentState.Unavailable)
        self.assertEqual(rs.reason, FailureReason.CapabilityUnavailable)
        self.assertIn('skip', rs.message)
        self.assertEqual(self.env.challenger.count, 0)
        self.assertEqual(self.env.record(), FactorEnablementRecord())

    async def test_factor_not_enrollable(self):
        rs = await self.env.wizard.enroll(self.env.owner_id, FactorType.Iris)
        self.assertEqual(rs.state, EnrollmentState.Unavailable)
        self.assertEqual(self.env.challenger.count, 0)

    async def test_cancelled(self):
        self.env.challenger.default = False
        rs = await self.env.wizard.enroll(self.env.owner_id, FactorType.Fingerprint)
        self.assertFalse(rs.success)
        self.assertEqual(rs.state, EnrollmentState.Cancelled)
        self.assertEqual(rs.reason, FailureReason.ChallengeRejected)
        self.assertIsNone(rs.token)
        self.assertEqual(self.env.record(), FactorEnablementRecord())
        self.assertEqual(self.env.keyring.passwords, {})
        self.assertEqual(self.env.bridge.profile_updates, 0)
        self.assertEqual(self.env.bridge.audit_log, [])

    async def test_timeout(self):
        self.env.settings.enrollment_timeout_ms = 20
        self.env.challenger.answers = [data_biometric.HANG]
        rs = await self.env.wizard.enroll(self.env.owner_id, FactorType.Fingerprint)
        self.assertEqual(rs.state, EnrollmentState.Cancelled)
        self.assertEqual(rs.reason, FailureReason.ChallengeTimedOut)
        self.assertIsNone(await self.env.vault.retrieve())

    async def test_profile_update_failure_rolls_back(self):
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        before = await self.env.vault.snapshot()
        with mock.patch.object(self.env.bridge, 'update_profile',
                               side_effect=AccountBridgeError('network_error', 'Offline')):
            rs = await self.env.wizard.enroll(self.env.owner_id, FactorType.Fingerprint)
        self.assertFalse(rs.success)
        self.assertEqual(rs.state, EnrollmentState.Error)
        self.assertEqual(await self.env.vault.snapshot(), before)
        self.assertFalse(self.env.record().fingerprint_enabled)

    async def test_storage_failure(self):
        with mock.patch.object(self.env.wizard.vault, 'store') as store:
            store.return_value.success = False
            store.return_value.reason = FailureReason.BackendUnavailable
            rs = await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        self.assertEqual(rs.state, EnrollmentState.Error)
        self.assertEqual(rs.reason, FailureReason.BackendUnavailable)
        self.assertFalse(self.env.record().biometric_enabled)

    async def test_attempt_in_progress(self):
        self.env.challenger.gate = asyncio.Event()
        first = asyncio.ensure_future(self.env.wizard.enroll(self.env.owner_id, FactorType.Face))
        while self.env.challenger.count == 0:
            await asyncio.sleep(0)
        second = await self.env.wizard.enroll(self.env.owner_id, FactorType.Fingerprint)
        self.assertEqual(second.reason, FailureReason.AttemptInProgress)
        rs = await self.env.authenticator.authenticate(self.env.owner_id, FactorType.Face)
        self.assertEqual(rs.reason, FailureReason.AttemptInProgress)
        self.env.challenger.gate.set()
        self.assertTrue((await first).success)


class TestDisable(IsolatedAsyncioTestCase):
    def setUp(self):
        self.env = data_biometric.BiometricEnvironment()

    async def test_enable_disable_symmetry(self):
        record_before = self.env.record()
        vault_before = await self.env.vault.snapshot()
        profile = self.env.bridge.profiles[self.env.owner_id]

        rs = await self.env.wizard.enroll(self.env.owner_id, FactorType.Fingerprint)
        self.assertTrue(rs.success)
        rs = await self.env.wizard.disable(self.env.owner_id, FactorType.Fingerprint)
        self.assertTrue(rs.success)

        self.assertEqual(self.env.record(), record_before)
        self.assertEqual(await self.env.vault.snapshot(), vault_before)
        self.assertIsNone(profile.biometric_token)
        self.assertIsNone(profile.device_id)

    async def test_disable_only_factor(self):
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        await self.env.wizard.disable(self.env.owner_id, FactorType.Face)
        record = self.env.record()
        self.assertFalse(record.biometric_enabled)
        self.assertFalse(record.face_enabled)
        for factor in (None, FactorType.Face, FactorType.Fingerprint):
            self.assertIsNone(await self.env.vault.retrieve(factor))
        rs = await self.env.authenticator.authenticate(self.env.owner_id, FactorType.Face)
        self.assertEqual(rs.reason, FailureReason.NotEnrolled)

    async def test_disable_one_of_two(self):
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Fingerprint)
        self.env.challenger.default = False
        await self.env.authenticator.authenticate(self.env.owner_id, FactorType.Face)
        self.assertEqual(self.env.record().failure_count, 1)

        await self.env.wizard.disable(self.env.owner_id, FactorType.Face)
        record = self.env.record()
        self.assertTrue(record.biometric_enabled)
        self.assertTrue(record.fingerprint_enabled)
        self.assertFalse(record.face_enabled)
        self.assertEqual(record.failure_count, 0)
        self.assertIsNotNone(record.last_setup_at)
        self.assertIsNone(await self.env.vault.retrieve(FactorType.Face))
        self.assertIsNotNone(await self.env.vault.retrieve(FactorType.Fingerprint))

    async def test_disable_all(self):
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Fingerprint)
        rs = await self.env.wizard.disable(self.env.owner_id)
        self.assertTrue(rs.success)
        self.assertEqual(self.env.record(), FactorEnablementRecord())
        self.assertIsNone(await self.env.vault.retrieve())

    async def test_disable_profile_update_failure_keeps_credential(self):
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        before = await self.env.vault.snapshot()
        with mock.patch.object(self.env.bridge, 'update_profile',
                               side_effect=AccountBridgeError('network_error', 'Offline')):
            rs = await self.env.wizard.disable(self.env.owner_id, FactorType.Face)
        self.assertFalse(rs.success)
        self.assertEqual(rs.state, EnrollmentState.Error)
        self.assertEqual(await self.env.vault.snapshot(), before)
        record = self.env.record()
        self.assertTrue(record.face_enabled)
        self.assertTrue(record.biometric_enabled)

        rs = await self.env.authenticator.authenticate(self.env.owner_id, FactorType.Face)
        self.assertTrue(rs.success)

    async def test_disable_profile_update_timeout_keeps_credential(self):
        self.env.settings.bridge_timeout_ms = 20

        async def hang(owner_id, partial):
            await asyncio.sleep(3600)

        await self.env.wizard.enroll(self.env.owner_id, FactorType.Fingerprint)
        with mock.patch.object(self.env.bridge, 'update_profile', side_effect=hang):
            rs = await self.env.wizard.disable(self.env.owner_id)
        self.assertEqual(rs.state, EnrollmentState.Error)
        self.assertIsNotNone(await self.env.vault.retrieve(FactorType.Fingerprint))
        self.assertTrue(self.env.record().fingerprint_enabled)

    async def test_disable_keeps_other_owner_credential(self):
        await self.env.wizard.enroll(self.env.owner_id, FactorType.Face)
        other_id = self.env.bridge.add_user('other@company.com', data_biometric.UserPassword)
        rs = await self.env.wizard.disable(other_id)
        self.assertTrue(rs.success)
        self.assertIsNotNone(await self.env.vault.retrieve(FactorType.Face))
