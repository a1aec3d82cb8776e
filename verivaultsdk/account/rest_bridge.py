# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

import asyncio
import concurrent.futures
import datetime
import functools
import platform
from typing import Optional, Dict, Any

from .bridge import IAccountBridge, AccountSession, AccountProfile, AuthMethods, LoginMethod
from ..biometric.biometric_types import FactorEnablementRecord, FactorType, ENROLLABLE_FACTORS
from .. import utils
from ..endpoint import RestEndpoint
from ..errors import AccountBridgeError

# FactorEnablementRecord field -> profiles column
PROFILE_COLUMNS = {
    'fingerprint_enabled': 'fingerprint_enabled',
    'face_enabled': 'face_id_enabled',
    'biometric_enabled': 'biometric_enabled',
    'failure_count': 'biometric_failures',
    'locked_until': 'biometric_locked_until',
    'last_setup_at': 'last_biometric_setup',
    'last_login_at': 'last_biometric_login',
    'biometric_token': 'biometric_token',
    'device_id': 'device_id',
}


def profile_to_columns(partial):    # type: (Dict[str, Any]) -> Dict[str, Any]
    columns = {}
    for key, value in partial.items():
        column = PROFILE_COLUMNS.get(key)
        if column is None:
            raise ValueError('Unsupported profile field: {0}'.format(key))
        if isinstance(value, datetime.datetime):
            value = utils.to_iso(value)
        columns[column] = value
    return columns


def row_to_profile(row):    # type: (Dict[str, Any]) -> AccountProfile
    fields = {}
    for key, column in PROFILE_COLUMNS.items():
        if key in FactorEnablementRecord.FIELDS and column in row:
            fields[key] = row[column]
    return AccountProfile(row.get('id'), email=row.get('email'), record=FactorEnablementRecord.from_dict(fields),
                          biometric_token=row.get('biometric_token'), device_id=row.get('device_id'))


class _AsyncExecutor:
    def __init__(self):   # type: () -> None
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=2)

    async def execute_async(self, fn, *args, **kwargs):
        if self._executor is None:
            raise AccountBridgeError('closed', 'Account bridge is closed')
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args, **kwargs))

    def close(self):
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None


class SupabaseAccountBridge(_AsyncExecutor, IAccountBridge):
    """Account bridge over the hosted backend REST API (GoTrue auth, PostgREST tables and RPC)."""

    def __init__(self, endpoint):    # type: (RestEndpoint) -> None
        _AsyncExecutor.__init__(self)
        self.endpoint = endpoint
        self.session = None    # type: Optional[AccountSession]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    async def _rest(self, method, path, payload=None, params=None, headers=None):
        return await self.execute_async(self.endpoint.execute_rest, method, path, payload=payload, params=params,
                                        headers=headers)

    def _session_from_token(self, rs, method):    # type: (Dict[str, Any], LoginMethod) -> AccountSession
        user = rs.get('user') or {}
        owner_id = user.get('id') or rs.get('user_id')
        if not owner_id or not rs.get('access_token'):
            raise AccountBridgeError('invalid_response', 'Session response has no user or access token')
        expires_at = None
        if isinstance(rs.get('expires_in'), (int, float)):
            expires_at = utils.utc_now() + datetime.timedelta(seconds=rs['expires_in'])
        session = AccountSession(owner_id, email=user.get('email'), access_token=rs.get('access_token'),
                                 refresh_token=rs.get('refresh_token'), expires_at=expires_at, method=method)
        self.session = session
        self.endpoint.access_token = session.access_token
        return session

    async def get_current_user(self):
        if not self.endpoint.access_token:
            return None
        try:
            rs = await self._rest('GET', '/auth/v1/user')
        except AccountBridgeError as e:
            if e.result_code in ('401', '403', 'bad_jwt', 'session_not_found'):
                return None
            raise
        return rs.get('id') if isinstance(rs, dict) else None

    async def sign_in_with_password(self, email, password):
        rs = await self._rest('POST', '/auth/v1/token', payload={'email': utils.adjust_email(email),
                                                                  'password': password},
                              params={'grant_type': 'password'})
        if not isinstance(rs, dict):
            raise AccountBridgeError('invalid_response', 'Empty sign in response')
        return self._session_from_token(rs, LoginMethod.Password)

    async def sign_out(self):
        if self.endpoint.access_token:
            try:
                await self._rest('POST', '/auth/v1/logout')
            finally:
                self.session = None
                self.endpoint.access_token = None

    async def _select_profile(self, column, value):    # type: (str, str) -> Optional[AccountProfile]
        rs = await self._rest('GET', '/rest/v1/profiles', params={column: 'eq.' + value, 'select': '*'})
        if isinstance(rs, list) and len(rs) > 0 and isinstance(rs[0], dict):
            return row_to_profile(rs[0])
        return None

    async def lookup_profile_by_email(self, email):
        return await self._select_profile('email', utils.adjust_email(email))

    async def get_profile(self, owner_id):
        return await self._select_profile('id', owner_id)

    async def update_profile(self, owner_id, partial):
        columns = profile_to_columns(partial)
        columns['updated_at'] = utils.to_iso(utils.utc_now())
        await self._rest('PATCH', '/rest/v1/profiles', payload=columns, params={'id': 'eq.' + owner_id},
                         headers={'Prefer': 'return=minimal'})

    async def append_audit_log_entry(self, owner_id, event_type, success, detail=None):
        detail = dict(detail or {})
        error_message = detail.pop('error_message', None)
        device_info = {'platform': platform.system(), 'client': self.endpoint.client_version}
        device_info.update(detail)
        payload = {
            'user_id': owner_id,
            'event_type': event_type.value,
            'success': success,
            'device_info': device_info,
            'error_message': error_message,
        }
        await self._rest('POST', '/rest/v1/auth_logs', payload=payload, headers={'Prefer': 'return=minimal'})

    async def check_auth_methods(self, email):
        rs = await self._rest('POST', '/rest/v1/rpc/check_auth_methods_for_email',
                              payload={'user_email': utils.adjust_email(email)})
        if isinstance(rs, dict):
            rs = [rs]
        if not rs:
            return AuthMethods(has_password=False)
        row = rs[0]
        factors = [FactorType.parse(x) for x in row.get('biometric_types') or []]
        return AuthMethods(owner_id=row.get('user_id'), has_password=row.get('has_password') is True,
                           has_biometric=row.get('has_biometric') is True,
                           biometric_types=[x for x in factors if x in ENROLLABLE_FACTORS])

    async def redeem_biometric_assertion(self, assertion):
        rs = await self._rest('POST', '/rest/v1/rpc/redeem_biometric_assertion',
                              payload={'assertion': assertion.to_dict()})
        if not isinstance(rs, dict):
            raise AccountBridgeError('invalid_response', 'Empty assertion response')
        return self._session_from_token(rs, LoginMethod.Biometric)
