import asyncio
import datetime
import time

from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError, KeyringError

from verivaultsdk.account.memory_bridge import InMemoryAccountBridge
from verivaultsdk.biometric.authenticator import BiometricAuthenticator
from verivaultsdk.biometric.capability import CapabilityProber
from verivaultsdk.biometric.credential_vault import CredentialVault
from verivaultsdk.biometric.enrollment import EnrollmentWizard
from verivaultsdk.biometric.lockout import LockoutTracker, ProfileLockoutStore
from verivaultsdk.biometric.locks import AttemptGuard
from verivaultsdk.biometric.platform_authenticator import IPlatformAuthenticator
from verivaultsdk.biometric.secure_storage import KeyringStorage, LocalStorage
from verivaultsdk.configuration import BiometricSettings, InMemoryJsonLoader
from verivaultsdk.ui import IBiometricChallenger

UserEmail = 'unit.test@company.com'
UserPassword = 'q2rXmNBFeLwAEX55hVVTfg'
DeviceId = 'UgjK_Q3QxT0WcHV8wuGp2Q'
OtherDeviceId = 'zqG5d3OxU7aLeYtQfAq2fw'
StartTime = datetime.datetime(2025, 7, 11, 12, 0, 0, tzinfo=datetime.timezone.utc)

HANG = 'hang'


class FakeClock:
    def __init__(self, now=StartTime):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + datetime.timedelta(**kwargs)


class ScriptedChallenger(IBiometricChallenger):
    """Answers challenges from a script. ``HANG`` never answers.

    When ``gate`` is set every challenge waits for it first.
    """
    def __init__(self, *answers, default=True):
        self.answers = list(answers)
        self.default = default
        self.requests = []
        self.gate = None     # type: asyncio.Event

    @property
    def count(self):
        return len(self.requests)

    async def challenge(self, request):
        self.requests.append(request)
        if self.gate:
            await self.gate.wait()
        answer = self.answers.pop(0) if self.answers else self.default
        if answer == HANG:
            await asyncio.sleep(3600)
        return answer


class StaticPlatformAuthenticator(IPlatformAuthenticator):
    def __init__(self, available=True, factor=None, delay=0, error=None):
        self.available = available
        self.factor = factor
        self.delay = delay
        self.error = error

    @property
    def name(self):
        return 'Static'

    def is_available(self):
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return self.available

    def factor_type(self):
        return self.factor


class MemoryKeyring(KeyringBackend):
    priority = 1

    def __init__(self):
        super().__init__()
        self.passwords = {}
        self.broken = False

    def _check(self):
        if self.broken:
            raise KeyringError('Keyring is locked')

    def get_password(self, service, username):
        self._check()
        return self.passwords.get((service, username))

    def set_password(self, service, username, password):
        self._check()
        self.passwords[(service, username)] = password

    def delete_password(self, service, username):
        self._check()
        if (service, username) not in self.passwords:
            raise PasswordDeleteError('Password not found')
        del self.passwords[(service, username)]


class BiometricEnvironment:
    """All biometric services wired over in-memory collaborators."""

    def __init__(self, settings=None, available=True, device_id=DeviceId, vault=None):
        self.clock = FakeClock()
        self.settings = settings or BiometricSettings()
        self.bridge = InMemoryAccountBridge(clock=self.clock, assertion_max_age=self.settings.assertion_max_age)
        self.owner_id = self.bridge.add_user(UserEmail, UserPassword)
        self.platform = StaticPlatformAuthenticator(available=available)
        self.keyring = MemoryKeyring()
        self.local_loader = InMemoryJsonLoader()
        self.vault = vault or CredentialVault([KeyringStorage(self.settings.service_name, backend=self.keyring),
                                               LocalStorage(self.local_loader, self.settings.service_name)],
                                              self.settings, self.clock)
        self.prober = CapabilityProber(self.platform, self.settings, system_name='Linux')
        self.tracker = LockoutTracker(ProfileLockoutStore(self.bridge, self.settings.bridge_timeout),
                                      self.settings, self.clock)
        self.challenger = ScriptedChallenger()
        self.guard = AttemptGuard()
        self.device_id = device_id
        self.wizard = EnrollmentWizard(self.prober, self.vault, self.tracker, self.bridge, self.challenger,
                                       device_id, self.settings, self.clock, self.guard)
        self.authenticator = self.create_authenticator(device_id)

    def create_authenticator(self, device_id):
        return BiometricAuthenticator(self.prober, self.vault, self.tracker, self.bridge, self.challenger,
                                      device_id, self.settings, self.clock, self.guard)

    def record(self):
        return self.bridge.record_of(self.owner_id)
