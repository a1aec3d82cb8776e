# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import abc
import platform
from typing import Optional

from fido2.hid import CtapHidDevice

from .biometric_types import FactorType
from .. import utils


class IPlatformAuthenticator(abc.ABC):
    """Platform-level "is a verifying authenticator present" API.

    Both calls are blocking and may hang on some platforms.
    Callers run them in a worker thread with a timeout.
    """
    @property
    @abc.abstractmethod
    def name(self):    # type: () -> str
        pass

    @abc.abstractmethod
    def is_available(self):    # type: () -> bool
        pass

    def factor_type(self):     # type: () -> Optional[FactorType]
        return None


class Fido2PlatformAuthenticator(IPlatformAuthenticator):
    def __init__(self, system_name=None):
        self.system_name = system_name or platform.system()

    @property
    def name(self):
        return 'Windows Hello' if self.system_name == 'Windows' else 'FIDO2'

    def is_available(self):
        if self.system_name == 'Windows':
            # fido2.client.windows loads the WebAuthn DLL on import
            from fido2.client.windows import WindowsClient
            return WindowsClient.is_available()

        for device in CtapHidDevice.list_devices():
            utils.get_logger().debug('FIDO2 authenticator found: %s', device.descriptor.path)
            return True
        return False


class ConsentPlatformAuthenticator(IPlatformAuthenticator):
    """Always available. Used when the challenge is a consent confirmation."""

    def __init__(self, factor=None):   # type: (Optional[FactorType]) -> None
        self._factor = factor

    @property
    def name(self):
        return 'Consent'

    def is_available(self):
        return True

    def factor_type(self):
        return self._factor
