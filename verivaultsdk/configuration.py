# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import abc
import copy
import datetime
import json
import logging
import os.path

DEFAULT_SERVICE_NAME = 'VeriVault'
CONFIG_DIRECTORY = '.verivault'

# JSON key -> attribute name
_SETTING_KEYS = (
    ('maxFailures', 'max_failures'),
    ('lockoutMinutes', 'lockout_minutes'),
    ('credentialTtlHours', 'credential_ttl_hours'),
    ('challengeTimeoutMs', 'challenge_timeout_ms'),
    ('enrollmentTimeoutMs', 'enrollment_timeout_ms'),
    ('probeTimeoutMs', 'probe_timeout_ms'),
    ('bridgeTimeoutMs', 'bridge_timeout_ms'),
    ('assertionMaxAgeSeconds', 'assertion_max_age_seconds'),
)


class BiometricSettings:
    def __init__(self, max_failures=3, lockout_minutes=15, credential_ttl_hours=24, challenge_timeout_ms=60000,
                 enrollment_timeout_ms=30000, probe_timeout_ms=5000, bridge_timeout_ms=10000,
                 assertion_max_age_seconds=60, service_name=DEFAULT_SERVICE_NAME):
        self.max_failures = max_failures
        self.lockout_minutes = lockout_minutes
        self.credential_ttl_hours = credential_ttl_hours
        self.challenge_timeout_ms = challenge_timeout_ms
        self.enrollment_timeout_ms = enrollment_timeout_ms
        self.probe_timeout_ms = probe_timeout_ms
        self.bridge_timeout_ms = bridge_timeout_ms
        self.assertion_max_age_seconds = assertion_max_age_seconds
        self.service_name = service_name

    @property
    def lockout_duration(self):     # type: () -> datetime.timedelta
        return datetime.timedelta(minutes=self.lockout_minutes)

    @property
    def credential_ttl(self):       # type: () -> datetime.timedelta
        return datetime.timedelta(hours=self.credential_ttl_hours)

    @property
    def challenge_timeout(self):    # type: () -> float
        return self.challenge_timeout_ms / 1000.0

    @property
    def enrollment_timeout(self):   # type: () -> float
        return self.enrollment_timeout_ms / 1000.0

    @property
    def probe_timeout(self):        # type: () -> float
        return self.probe_timeout_ms / 1000.0

    @property
    def bridge_timeout(self):       # type: () -> float
        return self.bridge_timeout_ms / 1000.0

    @property
    def assertion_max_age(self):    # type: () -> datetime.timedelta
        return datetime.timedelta(seconds=self.assertion_max_age_seconds)

    def override(self, **kwargs):   # type: (...) -> BiometricSettings
        settings = copy.copy(self)
        for key, value in kwargs.items():
            if not hasattr(settings, key):
                raise AttributeError('Unknown biometric setting: {0}'.format(key))
            setattr(settings, key, value)
        return settings


def settings_to_json(settings, json_config):
    for json_key, attr in _SETTING_KEYS:
        json_config[json_key] = getattr(settings, attr)
    json_config['serviceName'] = settings.service_name


def json_to_settings(json_config):
    settings = BiometricSettings()
    if not isinstance(json_config, dict):
        return settings
    for json_key, attr in _SETTING_KEYS:
        if json_key not in json_config:
            continue
        value = json_config[json_key]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            logging.warning('Biometric setting "%s" has invalid value %r. Default %r is used',
                            json_key, value, getattr(settings, attr))
            continue
        setattr(settings, attr, value)
    service_name = json_config.get('serviceName')
    if isinstance(service_name, str) and service_name:
        settings.service_name = service_name
    return settings


class IJsonLoader(abc.ABC):
    @abc.abstractmethod
    def load_json(self):
        pass

    @abc.abstractmethod
    def store_json(self, data):
        pass


class InMemoryJsonLoader(IJsonLoader):
    def __init__(self, data=None):
        self.data = data

    def load_json(self):
        return copy.deepcopy(self.data) if self.data is not None else None

    def store_json(self, data):
        self.data = copy.deepcopy(data)


class JsonFileLoader(IJsonLoader):
    def __init__(self, filename):
        if os.path.isabs(filename) or os.path.isfile(filename):
            self._file_path = os.path.abspath(filename)
        else:
            config_dir = os.path.join(os.path.expanduser('~'), CONFIG_DIRECTORY)
            if not os.path.exists(config_dir):
                os.mkdir(config_dir)
            self._file_path = os.path.join(config_dir, filename)

    @property
    def file_path(self):
        return self._file_path

    def load_json(self):
        if os.path.isfile(self._file_path):
            with open(self._file_path, 'r') as fp:
                return json.load(fp)
        return None

    def store_json(self, data):
        with open(self._file_path, 'w') as fp:
            json.dump(data, fp, ensure_ascii=False, indent=2)
        logging.debug('Stored JSON file: %s', self._file_path)


class JsonSettingsStorage:
    SECTION = 'biometric'

    def __init__(self, loader):     # type: (IJsonLoader) -> None
        self._loader = loader

    def get(self):    # type: () -> BiometricSettings
        try:
            json_config = self._loader.load_json() or {}
            return json_to_settings(json_config.get(self.SECTION))
        except Exception as e:
            logging.error('Load JSON configuration error: %s', e)
        return BiometricSettings()

    def put(self, settings):     # type: (BiometricSettings) -> None
        stored_config = {}
        try:
            stored_config = self._loader.load_json() or {}
        except Exception as e:
            logging.error('Load JSON configuration error: %s', e)

        section = stored_config.get(self.SECTION)
        if not isinstance(section, dict):
            section = {}
            stored_config[self.SECTION] = section
        settings_to_json(settings, section)
        try:
            self._loader.store_json(stored_config)
        except Exception as e:
            logging.error('JSON configuration store error: %s', e)
