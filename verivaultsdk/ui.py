# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import abc
import asyncio
import enum


class ChallengePurpose(enum.Enum):
    Authenticate = 'authenticate'
    Enroll = 'enroll'


class ChallengeRequest:
    def __init__(self, owner_id, factor, purpose):
        self.owner_id = owner_id
        self.factor = factor
        self.purpose = purpose

    @property
    def title(self):
        name = 'Face ID' if self.factor.value == 'face' else 'Touch ID'
        if self.purpose == ChallengePurpose.Enroll:
            return 'Setup {0}'.format(name)
        return '{0} Authentication'.format(name)

    @property
    def instruction(self):
        if self.factor.value == 'face':
            action = 'look directly at the camera' if self.purpose == ChallengePurpose.Enroll else 'look at the camera'
        else:
            action = 'place your finger on the sensor'
        goal = 'to complete setup' if self.purpose == ChallengePurpose.Enroll else 'to authenticate'
        return 'Please {0} {1}.'.format(action, goal)

    def prompt_text(self):
        return '{0}\n\n{1}'.format(self.title, self.instruction)


class IBiometricUI(abc.ABC):
    """
    Defines the blocking UI callbacks the biometric flows rely on
    """
    @abc.abstractmethod
    def confirmation(self, information):    # type: (str) -> bool
        pass


class IBiometricChallenger(abc.ABC):
    """
    Presents a biometric challenge and reports whether the user passed it.
    A platform biometric prompt plugs in here; the timeout is applied by the caller.
    """
    @abc.abstractmethod
    async def challenge(self, request):     # type: (ChallengeRequest) -> bool
        pass


class ConsentChallenger(IBiometricChallenger):
    """Asks the user to confirm through ``IBiometricUI`` in place of a platform prompt."""

    def __init__(self, biometric_ui):   # type: (IBiometricUI) -> None
        self.ui = biometric_ui

    async def challenge(self, request):
        loop = asyncio.get_running_loop()
        accepted = await loop.run_in_executor(None, self.ui.confirmation, request.prompt_text())
        return accepted is True
