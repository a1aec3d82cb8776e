import asyncio
import time
from unittest import TestCase, IsolatedAsyncioTestCase
from unittest import mock

import data_biometric
from verivaultsdk.biometric import platform_authenticator
from verivaultsdk.biometric.biometric_types import FactorType
from verivaultsdk.biometric.capability import CapabilityProber, default_factor_type
from verivaultsdk.configuration import BiometricSettings


class TestCapabilityProber(IsolatedAsyncioTestCase):
    async def test_available(self):
        prober = CapabilityProber(data_biometric.StaticPlatformAuthenticator(), system_name='Windows')
        capability = await prober.probe()
        self.assertTrue(capability.available)
        self.assertTrue(capability.enrolled_factor)
        self.assertEqual(capability.factor_type, FactorType.Fingerprint)
        self.assertIsNone(capability.error_reason)

    async def test_factor_heuristic(self):
        self.assertEqual(default_factor_type('Darwin'), FactorType.Face)
        self.assertEqual(default_factor_type('Linux'), FactorType.Fingerprint)
        prober = CapabilityProber(data_biometric.StaticPlatformAuthenticator(), system_name='Darwin')
        self.assertEqual((await prober.probe()).factor_type, FactorType.Face)
        prober = CapabilityProber(data_biometric.StaticPlatformAuthenticator(factor=FactorType.Fingerprint),
                                  system_name='Darwin')
        self.assertEqual((await prober.probe()).factor_type, FactorType.Fingerprint)

    async def test_not_available(self):
        prober = CapabilityProber(data_biometric.StaticPlatformAuthenticator(available=False))
        capability = await prober.probe()
        self.assertFalse(capability.available)
        self.assertEqual(capability.factor_type, FactorType.NoFactor)
        self.assertTrue(capability.error_reason)

    async def test_platform_error(self):
        authenticator = data_biometric.StaticPlatformAuthenticator(error=OSError('WebAuthn API is missing'))
        capability = await CapabilityProber(authenticator).probe()
        self.assertFalse(capability.available)
        self.assertIn('WebAuthn API is missing', capability.error_reason)

    async def test_probe_timeout(self):
        settings = BiometricSettings(probe_timeout_ms=50)
        prober = CapabilityProber(data_biometric.StaticPlatformAuthenticator(delay=0.5), settings)
        capability = await prober.probe()
        self.assertFalse(capability.available)
        self.assertIn('timed out', capability.error_reason)

    async def test_fido2_authenticator(self):
        authenticator = platform_authenticator.Fido2PlatformAuthenticator(system_name='Linux')
        with mock.patch('fido2.hid.CtapHidDevice.list_devices', return_value=iter([])):
            self.assertFalse((await CapabilityProber(authenticator).probe()).available)
        device = mock.MagicMock()
        with mock.patch('fido2.hid.CtapHidDevice.list_devices', return_value=iter([device])):
            self.assertTrue((await CapabilityProber(authenticator).probe()).available)


class TestCapabilityProberShutdown(TestCase):
    def test_hung_availability_check_does_not_block_shutdown(self):
        settings = BiometricSettings(probe_timeout_ms=50)
        prober = CapabilityProber(data_biometric.StaticPlatformAuthenticator(delay=2), settings)
        started = time.monotonic()
        capability = asyncio.run(prober.probe())
        self.assertFalse(capability.available)
        self.assertLess(time.monotonic() - started, 1)
