# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

"""Short-lived signed assertion exchanged for a session after a passed challenge.

The secret issued at enrollment is shared with the account service once,
as the profile's ``biometric_token``, and is never sent again at login.
The assertion carries an HMAC-SHA256 signature keyed with it, which the
account service checks against its stored copy.
"""

import datetime
import json
from typing import Optional, Dict, Any

from .biometric_types import StoredCredential, FactorType
from .. import crypto, utils

CLOCK_SKEW = datetime.timedelta(seconds=5)


class BiometricAssertion:
    def __init__(self, owner_id, device_id, factor, issued_at, nonce, signature=''):
        self.owner_id = owner_id       # type: str
        self.device_id = device_id     # type: Optional[str]
        self.factor = factor           # type: str
        self.issued_at = issued_at     # type: datetime.datetime
        self.nonce = nonce             # type: str
        self.signature = signature     # type: str

    def payload(self):    # type: () -> bytes
        body = {
            'owner_id': self.owner_id,
            'device_id': self.device_id or '',
            'factor': self.factor,
            'issued_at': utils.to_iso(self.issued_at),
            'nonce': self.nonce,
        }
        return json.dumps(body, sort_keys=True, separators=(',', ':')).encode('utf-8')

    def to_dict(self):    # type: () -> Dict[str, Any]
        return {
            'owner_id': self.owner_id,
            'device_id': self.device_id,
            'factor': self.factor,
            'issued_at': utils.to_iso(self.issued_at),
            'nonce': self.nonce,
            'signature': self.signature,
        }

    @staticmethod
    def from_dict(data):    # type: (Dict[str, Any]) -> BiometricAssertion
        return BiometricAssertion(data.get('owner_id'), data.get('device_id'), data.get('factor'),
                                  utils.from_iso(data.get('issued_at')), data.get('nonce'), data.get('signature'))


def _sign(assertion, secret):    # type: (BiometricAssertion, str) -> bytes
    return crypto.hmac_sha256(secret.encode('utf-8'), assertion.payload())


def create_assertion(credential, factor, now=None):
    # type: (StoredCredential, FactorType, Optional[datetime.datetime]) -> BiometricAssertion
    assertion = BiometricAssertion(credential.owner_id, credential.device_id, factor.value,
                                   now or utils.utc_now(), utils.generate_uid())
    assertion.signature = utils.base64_url_encode(_sign(assertion, credential.secret_token))
    return assertion


def verify_assertion(assertion, secret, device_id, now, max_age):
    # type: (BiometricAssertion, str, Optional[str], datetime.datetime, datetime.timedelta) -> bool
    if not secret or not assertion.signature or not assertion.issued_at or not assertion.nonce:
        return False
    try:
        signature = utils.base64_url_decode(assertion.signature)
    except ValueError:
        return False
    if not crypto.bytes_equal(signature, _sign(assertion, secret)):
        return False
    if (device_id or '') != (assertion.device_id or ''):
        return False
    if assertion.issued_at > now + CLOCK_SKEW:
        return False
    return now - assertion.issued_at <= max_age
