import argparse
import asyncio
import getpass
import logging
import os

from verivaultsdk import BiometricSettings, ConsentChallenger, IBiometricUI, BiometricAuthenticator, \
    EnrollmentWizard, BiometricLogin, JsonSettingsStorage, JsonFileLoader, InMemoryJsonLoader
from verivaultsdk.account.memory_bridge import InMemoryAccountBridge
from verivaultsdk.biometric import capability, credential_vault, device, lockout, locks, platform_authenticator, \
    secure_storage
from verivaultsdk.errors import AccountBridgeError


class ConsoleUI(IBiometricUI):
    def confirmation(self, information):
        print(information)
        answer = input('Continue? [y/N] ')
        return answer.strip().lower() in ('y', 'yes')


def on_state(state):
    logging.debug('state: %s', state.value)


async def main(args):
    config_file = os.path.join(os.path.dirname(__file__), 'config.json')
    settings = JsonSettingsStorage(JsonFileLoader(config_file)).get()
    bridge = InMemoryAccountBridge(assertion_max_age=settings.assertion_max_age)
    owner_id = bridge.add_user(args.email, args.password)

    authenticator_api = platform_authenticator.ConsentPlatformAuthenticator()
    device_id = device.get_device_id()
    vault = credential_vault.CredentialVault([
        secure_storage.KeyringStorage(settings.service_name),
        secure_storage.LocalStorage(InMemoryJsonLoader(), settings.service_name),
    ], settings)
    prober = capability.CapabilityProber(authenticator_api, settings)
    tracker = lockout.LockoutTracker(lockout.ProfileLockoutStore(bridge, settings.bridge_timeout), settings)
    challenger = ConsentChallenger(ConsoleUI())
    guard = locks.AttemptGuard()
    wizard = EnrollmentWizard(prober, vault, tracker, bridge, challenger, device_id, settings, guard=guard)
    login = BiometricLogin(bridge, BiometricAuthenticator(prober, vault, tracker, bridge, challenger, device_id,
                                                          settings, guard=guard), settings)

    enrolled = await wizard.enroll(owner_id, args.factor, listener=on_state)
    print(enrolled.message or 'Biometric login is set up ({0}).'.format(enrolled.state.value))

    try:
        methods = await login.check_auth_methods(args.email)
        if methods.has_biometric:
            result = await login.login_with_biometric(args.email, args.factor, listener=on_state)
            print(result.message or 'Logged in with biometrics.')
            if result.success:
                return
        password = getpass.getpass('Password: ')
        try:
            await login.login_with_password(args.email, password)
            print('Logged in with password.')
        except AccountBridgeError as e:
            print(e)
    finally:
        await login.logout()
        await wizard.disable(owner_id)


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='VeriVault biometric login walkthrough')
    parser.add_argument('--email', default='user@example.com')
    parser.add_argument('--password', default='password')
    parser.add_argument('--factor', choices=('fingerprint', 'face'), default='fingerprint')
    parser.add_argument('--debug', action='store_true')
    opts = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if opts.debug else logging.WARNING)
    asyncio.run(main(opts))
