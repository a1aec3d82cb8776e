# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import base64
import datetime
import logging
import os
from typing import Optional


def get_logger():    # type: () -> logging.Logger
    return logging.getLogger('verivault')


def base64_url_decode(s):     # type: (str) -> bytes
    return base64.urlsafe_b64decode(s + '==')


def base64_url_encode(b):     # type: (bytes) -> str
    bs = base64.urlsafe_b64encode(b)
    return bs.rstrip(b'=').decode('utf-8')


def generate_uid():           # type: () -> str
    return base64_url_encode(os.urandom(16))


def utc_now():                # type: () -> datetime.datetime
    return datetime.datetime.now(datetime.timezone.utc)


def to_iso(value):            # type: (Optional[datetime.datetime]) -> Optional[str]
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value.isoformat()


def from_iso(value):          # type: (Optional[str]) -> Optional[datetime.datetime]
    """Parses ISO-8601 timestamps, including the trailing 'Z' form returned by the backend."""
    if not value:
        return None
    if isinstance(value, datetime.datetime):
        dt = value
    else:
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        dt = datetime.datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def adjust_email(email):      # type: (str) -> str
    return email.strip().lower() if isinstance(email, str) else ''


def is_email(value):          # type: (str) -> bool
    return isinstance(value, str) and '@' in value
