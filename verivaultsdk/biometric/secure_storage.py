# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import abc
from typing import Optional, Dict

import keyring
from cryptography.exceptions import InvalidTag
from keyring.backend import KeyringBackend
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordDeleteError

from .platform_authenticator import IPlatformAuthenticator
from .. import crypto, utils
from ..configuration import IJsonLoader, DEFAULT_SERVICE_NAME
from ..errors import StorageError

PBKDF2_ITERATIONS = 100000


class ISecureStorage(abc.ABC):
    """Key/value store scoped to a named service.

    Implementations raise ``StorageError`` when the backend cannot be read or written.
    """
    name = ''
    strength = 0

    @abc.abstractmethod
    def is_available(self):    # type: () -> bool
        pass

    @abc.abstractmethod
    def get(self, key):    # type: (str) -> Optional[str]
        pass

    @abc.abstractmethod
    def put(self, key, value):    # type: (str, str) -> None
        pass

    @abc.abstractmethod
    def delete(self, key):    # type: (str) -> None
        pass

    def __repr__(self):
        return '{0}(strength={1})'.format(self.name, self.strength)


class KeyringStorage(ISecureStorage):
    """OS credential store: macOS Keychain, Windows Credential Locker, Secret Service."""
    name = 'keyring'
    strength = 30

    def __init__(self, service_name=DEFAULT_SERVICE_NAME, backend=None):
        # type: (str, Optional[KeyringBackend]) -> None
        self.service_name = service_name
        self._backend = backend

    @property
    def backend(self):    # type: () -> KeyringBackend
        return self._backend or keyring.get_keyring()

    def is_available(self):
        try:
            return not isinstance(self.backend, fail.Keyring)
        except KeyringError as e:
            utils.get_logger().debug('Keyring backend error: %s', e)
            return False

    def get(self, key):
        try:
            return self.backend.get_password(self.service_name, key)
        except KeyringError as e:
            raise StorageError(self.name, 'Read error: {0}'.format(e))

    def put(self, key, value):
        try:
            self.backend.set_password(self.service_name, key, value)
        except KeyringError as e:
            raise StorageError(self.name, 'Write error: {0}'.format(e))

    def delete(self, key):
        try:
            self.backend.delete_password(self.service_name, key)
        except PasswordDeleteError:
            pass
        except KeyringError as e:
            raise StorageError(self.name, 'Delete error: {0}'.format(e))


class _JsonSectionStorage(ISecureStorage, abc.ABC):
    def __init__(self, loader, service_name):    # type: (IJsonLoader, str) -> None
        self.loader = loader
        self.service_name = service_name

    def _load(self):    # type: () -> Dict[str, Dict]
        try:
            data = self.loader.load_json()
        except Exception as e:
            raise StorageError(self.name, 'Read error: {0}'.format(e))
        return data if isinstance(data, dict) else {}

    def _store(self, data):
        try:
            self.loader.store_json(data)
        except Exception as e:
            raise StorageError(self.name, 'Write error: {0}'.format(e))

    def _section(self, data):    # type: (Dict[str, Dict]) -> Dict
        section = data.get(self.service_name)
        if not isinstance(section, dict):
            section = {}
            data[self.service_name] = section
        return section


class PlatformBoundStorage(_JsonSectionStorage):
    """JSON file with values encrypted by a key derived from the device identity.

    Values copied to another device do not decrypt and read as absent.
    Available only while the platform authenticator is present.
    """
    name = 'platform'
    strength = 20

    def __init__(self, loader, platform_authenticator, device_id, service_name=DEFAULT_SERVICE_NAME):
        # type: (IJsonLoader, IPlatformAuthenticator, str, str) -> None
        _JsonSectionStorage.__init__(self, loader, service_name)
        self.platform_authenticator = platform_authenticator
        self.device_id = device_id
        self._keys = {}    # type: Dict[str, bytes]

    def is_available(self):
        try:
            return self.platform_authenticator.is_available() is True
        except Exception as e:
            utils.get_logger().debug('%s availability error: %s', self.platform_authenticator.name, e)
            return False

    def _device_key(self, section):    # type: (Dict) -> bytes
        salt = section.get('salt')
        if not salt:
            salt = utils.base64_url_encode(crypto.get_random_bytes(16))
            section['salt'] = salt
        key = self._keys.get(salt)
        if key is None:
            key = crypto.derive_key_v1(self.device_id, utils.base64_url_decode(salt), PBKDF2_ITERATIONS)
            self._keys[salt] = key
        return key

    def get(self, key):
        data = self._load()
        section = data.get(self.service_name)
        if not isinstance(section, dict):
            return None
        values = section.get('values') or {}
        encrypted = values.get(key)
        if not encrypted:
            return None
        try:
            return crypto.decrypt_aes_v2(utils.base64_url_decode(encrypted), self._device_key(section)).decode('utf-8')
        except (InvalidTag, ValueError) as e:
            utils.get_logger().debug('%s: value "%s" cannot be decrypted on this device: %s', self.name, key, e)
            return None

    def put(self, key, value):
        data = self._load()
        section = self._section(data)
        device_key = self._device_key(section)
        values = section.get('values')
        if not isinstance(values, dict):
            values = {}
            section['values'] = values
        values[key] = utils.base64_url_encode(crypto.encrypt_aes_v2(value.encode('utf-8'), device_key))
        self._store(data)

    def delete(self, key):
        data = self._load()
        section = data.get(self.service_name)
        if not isinstance(section, dict):
            return
        values = section.get('values')
        if isinstance(values, dict) and key in values:
            del values[key]
            self._store(data)


class LocalStorage(_JsonSectionStorage):
    """Plain JSON file. Last resort when no protected store exists."""
    name = 'local'
    strength = 10

    def is_available(self):
        return True

    def get(self, key):
        section = self._load().get(self.service_name)
        if isinstance(section, dict):
            value = section.get(key)
            if isinstance(value, str):
                return value
        return None

    def put(self, key, value):
        data = self._load()
        self._section(data)[key] = value
        self._store(data)

    def delete(self, key):
        data = self._load()
        section = data.get(self.service_name)
        if isinstance(section, dict) and key in section:
            del section[key]
            self._store(data)
