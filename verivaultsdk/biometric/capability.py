# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import asyncio
import platform
import threading
from typing import Optional, Callable, Any

from .biometric_types import BiometricCapability, FactorType
from .platform_authenticator import IPlatformAuthenticator
from .. import utils
from ..configuration import BiometricSettings

FACE_PLATFORMS = ('Darwin', 'iOS', 'iPadOS')


def default_factor_type(system_name):    # type: (str) -> FactorType
    """UI label only. Apple platforms default to face, the rest to fingerprint."""
    return FactorType.Face if system_name in FACE_PLATFORMS else FactorType.Fingerprint


class CapabilityProber:
    def __init__(self, platform_authenticator, settings=None, system_name=None):
        # type: (IPlatformAuthenticator, Optional[BiometricSettings], Optional[str]) -> None
        self.platform_authenticator = platform_authenticator
        self.settings = settings or BiometricSettings()
        self.system_name = system_name or platform.system()
        self.logger = utils.get_logger()

    @staticmethod
    def _run_detached(fn):    # type: (Callable[[], Any]) -> asyncio.Future
        """Runs a blocking platform call on a daemon thread.

        A call that never returns is abandoned after the timeout and does not
        hold up loop shutdown or interpreter exit.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def deliver(result, error):
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def run():
            result, error = None, None
            try:
                result = fn()
            except Exception as e:
                error = e
            try:
                loop.call_soon_threadsafe(deliver, result, error)
            except RuntimeError:
                pass    # loop already closed

        threading.Thread(target=run, name='biometric-availability', daemon=True).start()
        return future

    async def probe(self):     # type: () -> BiometricCapability
        authenticator = self.platform_authenticator
        try:
            available = await asyncio.wait_for(self._run_detached(authenticator.is_available),
                                               self.settings.probe_timeout)
        except asyncio.TimeoutError:
            self.logger.debug('%s availability probe timed out', authenticator.name)
            return BiometricCapability.unavailable(
                'Biometric availability check timed out after {0} ms'.format(self.settings.probe_timeout_ms))
        except Exception as e:
            self.logger.debug('%s availability probe error: %s', authenticator.name, e)
            return BiometricCapability.unavailable('Biometric API is not available: {0}'.format(e))

        if not available:
            return BiometricCapability.unavailable('No biometric authenticator found on this device')

        factor = None
        try:
            factor = authenticator.factor_type()
        except Exception as e:
            self.logger.debug('%s factor type error: %s', authenticator.name, e)
        if not isinstance(factor, FactorType) or factor == FactorType.NoFactor:
            factor = default_factor_type(self.system_name)
        return BiometricCapability(available=True, enrolled_factor=True, factor_type=factor)
