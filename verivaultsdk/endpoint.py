# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import json
import logging
from typing import Optional, Dict, Any
from urllib.parse import urlparse, urlunparse, urlencode

import requests

from . import utils
from .errors import AccountBridgeError

CLIENT_VERSION = 'verivault-python/0.1.0'
DEFAULT_TIMEOUT = 10


class RestEndpoint:
    """Executes JSON requests against the hosted backend (auth, REST tables and RPC functions)."""

    def __init__(self, base_url, api_key, timeout=DEFAULT_TIMEOUT):
        url = urlparse(base_url if '://' in base_url else 'https://' + base_url)
        self.scheme = url.scheme or 'https'
        self.server = url.netloc.lower()
        self.api_key = api_key
        self.timeout = timeout
        self.client_version = CLIENT_VERSION
        self.access_token = None       # type: Optional[str]
        self.logger = utils.get_logger()

    def get_url(self, path, params=None):
        query = urlencode(params) if params else None
        return urlunparse((self.scheme, self.server, path, None, query, None))

    def execute_rest(self, method, path, payload=None, params=None, headers=None, access_token=None):
        # type: (str, str, Optional[Any], Optional[Dict[str, str]], Optional[Dict[str, str]], Optional[str]) -> Any
        url = self.get_url(path, params)
        self.logger.debug('>>> Request: [%s %s]', method, url)

        rq_headers = {
            'apikey': self.api_key,
            'Content-Type': 'application/json',
            'User-Agent': self.client_version,
        }
        token = access_token or self.access_token or self.api_key
        rq_headers['Authorization'] = 'Bearer ' + token
        if headers:
            rq_headers.update(headers)

        data = json.dumps(payload) if payload is not None else None
        try:
            rs = requests.request(method, url, data=data, headers=rq_headers, timeout=self.timeout)
        except requests.Timeout as e:
            raise AccountBridgeError('timeout', 'Request timed out: {0}'.format(e))
        except requests.RequestException as e:
            raise AccountBridgeError('network_error', str(e))

        self.logger.debug('<<< Response Code: [%d]', rs.status_code)
        content_type = rs.headers.get('Content-Type') or ''
        is_json = content_type.startswith('application/json')
        if rs.status_code < 400:
            if is_json and rs.content:
                return rs.json()
            return None

        if self.logger.isEnabledFor(logging.DEBUG) and rs.text:
            self.logger.debug('<<< Response Content: [%s]', rs.text)
        failure = rs.json() if is_json and rs.content else {}
        if not isinstance(failure, dict):
            failure = {}
        code = failure.get('error') or failure.get('code') or failure.get('error_code') or str(rs.status_code)
        message = failure.get('error_description') or failure.get('msg') or failure.get('message') \
            or rs.reason or 'Request failed'
        raise AccountBridgeError(str(code), message)
