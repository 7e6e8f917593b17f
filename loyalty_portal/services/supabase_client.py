"""
Supabase REST transport for the loyalty portal.

Talks to the three Supabase collaborators over plain HTTP:
- GoTrue (/auth/v1): one-time codes, verification, user lookup, logout
- PostgREST (/rest/v1): read-only table queries under row-level security
- Edge functions (/functions/v1): the redemption function

The client holds no per-user state; callers pass the user's access token
on every call so one instance can be shared across requests.

API Documentation: https://supabase.com/docs/guides/api
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..utils.exceptions import SupabaseError

logger = logging.getLogger(__name__)


class SupabaseClient:
    """
    Thin requests-based client for Supabase.

    Usage (as a Flask extension):
        supabase = SupabaseClient()
        supabase.init_app(app)
    """

    DEFAULT_TIMEOUT = 30

    def __init__(self, url: str = None, anon_key: str = None, timeout: int = None):
        self.url = (url or '').rstrip('/')
        self.anon_key = anon_key or ''
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.http = requests.Session()

    def init_app(self, app) -> None:
        self.url = (app.config.get('SUPABASE_URL') or '').rstrip('/')
        self.anon_key = app.config.get('SUPABASE_ANON_KEY') or ''
        self.timeout = app.config.get('SUPABASE_TIMEOUT') or self.DEFAULT_TIMEOUT
        app.extensions['supabase'] = self

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)

    # ==================== HTTP PLUMBING ====================

    def _headers(self, access_token: str = None) -> Dict[str, str]:
        """Headers for a request; the user token wins over the anon key."""
        return {
            'apikey': self.anon_key,
            'Authorization': f'Bearer {access_token or self.anon_key}',
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }

    def _request(
        self,
        method: str,
        url: str,
        access_token: str = None,
        params: Dict[str, str] = None,
        json: Any = None,
        extra_headers: Dict[str, str] = None,
    ) -> requests.Response:
        headers = self._headers(access_token)
        if extra_headers:
            headers.update(extra_headers)
        return self.http.request(
            method,
            url,
            headers=headers,
            params=params,
            json=json,
            timeout=self.timeout,
        )

    @staticmethod
    def _json(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    @classmethod
    def _raise_for_error(cls, response: requests.Response, context: str) -> None:
        if response.status_code < 400:
            return
        body = cls._json(response)
        message, error_code = cls.error_message(body, default=response.text or context)
        logger.debug('Supabase %s failed: %s %s', context, response.status_code, message)
        raise SupabaseError(message, status=response.status_code, error_code=error_code)

    @staticmethod
    def error_message(body: Any, default: str = '') -> Tuple[str, Optional[str]]:
        """
        Pull a message and machine code out of a Supabase error body.

        GoTrue answers {"code", "error_code", "msg"} (newer) or
        {"error", "error_description"} (older); PostgREST answers
        {"code", "message", "details", "hint"}; functions answer {"error"}.
        """
        if not isinstance(body, dict):
            return default, None
        message = (
            body.get('msg')
            or body.get('message')
            or body.get('error_description')
            or body.get('error')
            or default
        )
        error_code = body.get('error_code')
        if error_code is None and isinstance(body.get('code'), str):
            error_code = body['code']
        return str(message), error_code

    # ==================== AUTH (GoTrue) ====================

    def send_otp(self, email: str, create_user: bool = False) -> None:
        """Email a one-time code. create_user=False never creates accounts."""
        response = self._request(
            'POST',
            f'{self.url}/auth/v1/otp',
            json={'email': email, 'create_user': create_user},
        )
        self._raise_for_error(response, 'send_otp')

    def verify_otp(self, email: str, token: str) -> Dict[str, Any]:
        """Exchange an emailed code for a session payload."""
        response = self._request(
            'POST',
            f'{self.url}/auth/v1/verify',
            json={'type': 'email', 'email': email, 'token': token},
        )
        self._raise_for_error(response, 'verify_otp')
        return self._json(response) or {}

    def get_user(self, access_token: str) -> Dict[str, Any]:
        response = self._request('GET', f'{self.url}/auth/v1/user', access_token=access_token)
        self._raise_for_error(response, 'get_user')
        return self._json(response) or {}

    def sign_out(self, access_token: str) -> None:
        response = self._request('POST', f'{self.url}/auth/v1/logout', access_token=access_token)
        self._raise_for_error(response, 'sign_out')

    # ==================== DATA (PostgREST) ====================

    def select(
        self,
        table: str,
        columns: str = '*',
        filters: Dict[str, Any] = None,
        order: str = None,
        descending: bool = False,
        limit: int = None,
        access_token: str = None,
    ) -> List[Dict[str, Any]]:
        """
        Read rows from a table.

        Args:
            table: Table name
            columns: PostgREST select list (may embed joins, e.g. "reward:rewards(id)")
            filters: Equality filters {column: value}
            order: Column to order by
            descending: Order direction
            limit: Maximum rows
            access_token: User token so row-level security applies

        Returns:
            List of row dicts (possibly empty)
        """
        params = {'select': columns}
        for column, value in (filters or {}).items():
            if isinstance(value, bool):
                value = 'true' if value else 'false'
            params[column] = f'eq.{value}'
        if order:
            params['order'] = f'{order}.{"desc" if descending else "asc"}'
        if limit is not None:
            params['limit'] = str(limit)

        response = self._request(
            'GET',
            f'{self.url}/rest/v1/{table}',
            access_token=access_token,
            params=params,
        )
        self._raise_for_error(response, f'select {table}')
        data = self._json(response)
        return data if isinstance(data, list) else []

    def select_one(
        self,
        table: str,
        columns: str = '*',
        filters: Dict[str, Any] = None,
        access_token: str = None,
    ) -> Optional[Dict[str, Any]]:
        """First matching row or None."""
        rows = self.select(table, columns, filters=filters, limit=1, access_token=access_token)
        return rows[0] if rows else None

    # ==================== FUNCTIONS ====================

    def invoke_function(
        self,
        url: str,
        payload: Dict[str, Any],
        access_token: str,
        headers: Dict[str, str] = None,
    ) -> Tuple[int, Any]:
        """
        POST to an edge function.

        Non-2xx statuses are returned, not raised: the caller classifies them.
        Transport failures propagate as requests.RequestException.

        Returns:
            Tuple of (status_code, parsed JSON body or None)
        """
        response = self._request(
            'POST',
            url,
            access_token=access_token,
            json=payload,
            extra_headers=headers,
        )
        return response.status_code, self._json(response)
