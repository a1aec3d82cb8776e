import datetime
import os
import tempfile
from unittest import TestCase

from verivaultsdk import configuration


class TestConfiguration(TestCase):
    def test_defaults(self):
        settings = configuration.BiometricSettings()
        self.assertEqual(settings.max_failures, 3)
        self.assertEqual(settings.lockout_duration, datetime.timedelta(minutes=15))
        self.assertEqual(settings.credential_ttl, datetime.timedelta(hours=24))
        self.assertEqual(settings.challenge_timeout, 60)
        self.assertEqual(settings.enrollment_timeout, 30)
        self.assertEqual(settings.probe_timeout, 5)
        self.assertEqual(settings.assertion_max_age, datetime.timedelta(seconds=60))
        self.assertEqual(settings.service_name, 'VeriVault')

    def test_override(self):
        settings = configuration.BiometricSettings()
        custom = settings.override(max_failures=5, lockout_minutes=1)
        self.assertEqual(custom.max_failures, 5)
        self.assertEqual(custom.lockout_duration, datetime.timedelta(minutes=1))
        self.assertEqual(settings.max_failures, 3)
        with self.assertRaises(AttributeError):
            settings.override(max_retries=1)

    def test_json(self):
        settings = configuration.BiometricSettings(max_failures=4, lockout_minutes=30, challenge_timeout_ms=20000,
                                                   service_name='VeriVault Test')
        in_memory = configuration.InMemoryJsonLoader({'other': {'key': 'value'}})
        holder = configuration.JsonSettingsStorage(in_memory)
        holder.put(settings)
        self.assertEqual(in_memory.data['other'], {'key': 'value'})
        self.assertEqual(in_memory.data['biometric']['maxFailures'], 4)
        self.assertEqual(in_memory.data['biometric']['challengeTimeoutMs'], 20000)

        loaded = holder.get()
        self.assertEqual(loaded.max_failures, 4)
        self.assertEqual(loaded.lockout_minutes, 30)
        self.assertEqual(loaded.challenge_timeout_ms, 20000)
        self.assertEqual(loaded.credential_ttl_hours, 24)
        self.assertEqual(loaded.service_name, 'VeriVault Test')

    def test_invalid_values(self):
        json_config = {'maxFailures': 0, 'lockoutMinutes': 'ten', 'credentialTtlHours': True,
                       'challengeTimeoutMs': 15000}
        with self.assertLogs(level='WARNING') as logs:
            settings = configuration.json_to_settings(json_config)
        self.assertEqual(len(logs.output), 3)
        self.assertEqual(settings.max_failures, 3)
        self.assertEqual(settings.lockout_minutes, 15)
        self.assertEqual(settings.credential_ttl_hours, 24)
        self.assertEqual(settings.challenge_timeout_ms, 15000)

    def test_missing_configuration(self):
        holder = configuration.JsonSettingsStorage(configuration.InMemoryJsonLoader())
        settings = holder.get()
        self.assertEqual(settings.max_failures, 3)

    def test_json_file(self):
        with tempfile.TemporaryDirectory() as folder:
            file_path = os.path.join(folder, 'config.json')
            loader = configuration.JsonFileLoader(file_path)
            self.assertEqual(loader.file_path, file_path)
            self.assertIsNone(loader.load_json())

            holder = configuration.JsonSettingsStorage(loader)
            holder.put(configuration.BiometricSettings(lockout_minutes=5))
            self.assertTrue(os.path.isfile(file_path))
            self.assertEqual(holder.get().lockout_minutes, 5)
