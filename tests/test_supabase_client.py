"""
Tests for the Supabase HTTP transport.

The requests session is patched; no network calls are made.
"""
import pytest
import requests
from unittest.mock import MagicMock, patch

from loyalty_portal.services.supabase_client import SupabaseClient
from loyalty_portal.utils.exceptions import SupabaseError

URL = 'https://project.supabase.test'


def _response(status=200, body=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status
    response.content = b'x' if body is not None else b''
    response.json.return_value = body
    response.text = '' if body is None else str(body)
    return response


@pytest.fixture
def supabase():
    return SupabaseClient(URL + '/', 'anon-key', timeout=5)


class TestRequests:

    def test_send_otp(self, supabase):
        """OTP requests go to GoTrue with create_user off."""
        with patch.object(supabase.http, 'request', return_value=_response(200, {})) as request:
            supabase.send_otp('ana@example.com')

        args, kwargs = request.call_args
        assert args == ('POST', f'{URL}/auth/v1/otp')
        assert kwargs['json'] == {'email': 'ana@example.com', 'create_user': False}
        assert kwargs['headers']['apikey'] == 'anon-key'
        assert kwargs['headers']['Authorization'] == 'Bearer anon-key'
        assert kwargs['timeout'] == 5

    def test_verify_otp(self, supabase):
        """Verification posts the email, token and type."""
        payload = {'access_token': 'tok', 'user': {'id': 'u'}}
        with patch.object(supabase.http, 'request', return_value=_response(200, payload)) as request:
            assert supabase.verify_otp('ana@example.com', '123456') == payload

        assert request.call_args[1]['json'] == {
            'type': 'email', 'email': 'ana@example.com', 'token': '123456',
        }

    def test_select_builds_postgrest_query(self, supabase):
        """Filters, ordering and limits become PostgREST query parameters."""
        rows = [{'id': 'a'}]
        with patch.object(supabase.http, 'request', return_value=_response(200, rows)) as request:
            result = supabase.select(
                'rewards', 'id, name',
                filters={'active': True, 'member_id': 'm1'},
                order='cost_points', descending=True, limit=50,
                access_token='user-token',
            )

        assert result == rows
        args, kwargs = request.call_args
        assert args == ('GET', f'{URL}/rest/v1/rewards')
        assert kwargs['params'] == {
            'select': 'id, name',
            'active': 'eq.true',
            'member_id': 'eq.m1',
            'order': 'cost_points.desc',
            'limit': '50',
        }
        assert kwargs['headers']['Authorization'] == 'Bearer user-token'

    def test_select_one_empty(self, supabase):
        """select_one returns None for no rows."""
        with patch.object(supabase.http, 'request', return_value=_response(200, [])):
            assert supabase.select_one('loyalty_members', filters={'user_id': 'u'}) is None

    def test_invoke_function_returns_error_status(self, supabase):
        """Function errors come back as status and body instead of raising."""
        with patch.object(supabase.http, 'request',
                          return_value=_response(400, {'error': 'Not enough points'})) as request:
            status, body = supabase.invoke_function(
                f'{URL}/functions/v1/app/redeem', {'reward_id': 'a'},
                access_token='tok', headers={'Idempotency-Key': 'k'},
            )

        assert status == 400
        assert body == {'error': 'Not enough points'}
        headers = request.call_args[1]['headers']
        assert headers['Idempotency-Key'] == 'k'
        assert headers['Authorization'] == 'Bearer tok'


class TestErrors:

    @pytest.mark.parametrize('body,message,code', [
        ({'code': 422, 'error_code': 'otp_disabled', 'msg': 'Signups not allowed for otp'},
         'Signups not allowed for otp', 'otp_disabled'),
        ({'error': 'invalid_grant', 'error_description': 'Token has expired or is invalid'},
         'Token has expired or is invalid', None),
        ({'code': 'PGRST301', 'message': 'JWT expired'}, 'JWT expired', 'PGRST301'),
    ])
    def test_error_bodies(self, supabase, body, message, code):
        """Error bodies of each Supabase service are normalized."""
        with patch.object(supabase.http, 'request', return_value=_response(401, body)):
            with pytest.raises(SupabaseError) as exc_info:
                supabase.get_user('tok')

        assert exc_info.value.status == 401
        assert exc_info.value.message == message
        assert exc_info.value.error_code == code

    def test_transport_errors_propagate(self, supabase):
        """Connection errors propagate to the caller."""
        with patch.object(supabase.http, 'request', side_effect=requests.exceptions.ConnectionError()):
            with pytest.raises(requests.exceptions.ConnectionError):
                supabase.sign_out('tok')


class TestAppIntegration:

    def test_init_app_reads_config(self, app):
        """init_app picks up the URL, key and timeout."""
        supabase = SupabaseClient()
        supabase.init_app(app)

        assert supabase.url == 'https://project.supabase.test'
        assert supabase.anon_key == 'anon-test-key'
        assert supabase.is_configured is True
        assert app.extensions['supabase'] is supabase

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

