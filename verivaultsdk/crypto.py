# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import os

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import constant_time
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.hashes import Hash, SHA256
from cryptography.hazmat.primitives.hmac import HMAC
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from . import utils

_CRYPTO_BACKEND = default_backend()

SECRET_TOKEN_LENGTH = 32
MIN_SECRET_TOKEN_LENGTH = 16


def get_random_bytes(length):
    return os.urandom(length)


def generate_secret_token(length=SECRET_TOKEN_LENGTH):    # type: (int) -> str
    if length < MIN_SECRET_TOKEN_LENGTH:
        raise ValueError('Secret token must carry at least 128 bits of entropy')
    return utils.base64_url_encode(get_random_bytes(length))


def encrypt_aes_v2(data, key, nonce=None):
    aesgcm = AESGCM(key)
    nonce = nonce or os.urandom(12)
    enc = aesgcm.encrypt(nonce, data, None)
    return nonce + enc


def decrypt_aes_v2(data, key):
    aesgcm = AESGCM(key)
    return aesgcm.decrypt(data[:12], data[12:], None)


def derive_key_v1(password, salt, iterations):
    kdf = PBKDF2HMAC(algorithm=SHA256(), length=32, salt=salt, iterations=iterations, backend=_CRYPTO_BACKEND)
    return kdf.derive(password.encode('utf-8'))


def hash_sha256(data):     # type: (bytes) -> bytes
    hf = Hash(SHA256(), backend=_CRYPTO_BACKEND)
    hf.update(data)
    return hf.finalize()


def hmac_sha256(key, data):     # type: (bytes, bytes) -> bytes
    hf = HMAC(key, SHA256(), backend=_CRYPTO_BACKEND)
    hf.update(data)
    return hf.finalize()


def bytes_equal(a, b):     # type: (bytes, bytes) -> bool
    return constant_time.bytes_eq(a, b)
