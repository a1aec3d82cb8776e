# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import platform
import uuid

from .. import crypto, utils


def device_fingerprint_source():    # type: () -> str
    return '|'.join((platform.node(), platform.system(), platform.machine(), str(uuid.getnode())))


def get_device_id(source=None):     # type: (...) -> str
    """Returns a stable identity for this device.

    The identity is a hash of host attributes, so credentials recorded
    on one device cannot be replayed from another.
    """
    source = source if source is not None else device_fingerprint_source()
    return utils.base64_url_encode(crypto.hash_sha256(source.encode('utf-8')))
