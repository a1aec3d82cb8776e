# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

from .configuration import BiometricSettings, JsonSettingsStorage, JsonFileLoader, InMemoryJsonLoader
from .errors import VeriVaultError, AccountBridgeError, BiometricError, FailureReason
from .ui import IBiometricUI, IBiometricChallenger, ConsentChallenger
from .biometric.biometric_types import FactorType, AuthState, EnrollmentState, AuthenticationResult, EnrollmentResult
from .biometric.authenticator import BiometricAuthenticator
from .biometric.enrollment import EnrollmentWizard
from .account.bridge import IAccountBridge
from .login import BiometricLogin

__author__ = 'VeriVault'
__license__ = 'MIT'
__version__ = '0.1.0'

__all__ = ('BiometricSettings', 'JsonSettingsStorage', 'JsonFileLoader', 'InMemoryJsonLoader',
           'VeriVaultError', 'AccountBridgeError', 'BiometricError', 'FailureReason',
           'IBiometricUI', 'IBiometricChallenger', 'ConsentChallenger',
           'FactorType', 'AuthState', 'EnrollmentState', 'AuthenticationResult', 'EnrollmentResult',
           'BiometricAuthenticator', 'EnrollmentWizard', 'IAccountBridge', 'BiometricLogin')
