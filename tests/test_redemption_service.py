"""
Tests for the redemption invoker.

Covers response classification, the session-expired short circuit,
idempotency keys and the per-(user, reward) in-flight guard.
"""
import pytest
import requests
from unittest.mock import MagicMock

from loyalty_portal.services.redemption_service import (
    InFlightRedemptions,
    RedemptionOutcome,
    RedemptionService,
    classify_response,
)
from loyalty_portal.services.supabase_client import SupabaseClient
from loyalty_portal.utils import messages

FUNCTION_URL = 'https://project.supabase.test/functions/v1/app/redeem'


@pytest.fixture
def supabase():
    return MagicMock(spec=SupabaseClient)


@pytest.fixture
def inflight():
    return InFlightRedemptions()


@pytest.fixture
def service(supabase, inflight):
    return RedemptionService(supabase, FUNCTION_URL, inflight=inflight)


class TestClassifyResponse:

    @pytest.mark.parametrize('status,body,outcome,message', [
        (200, {'code': 'LOYAL-123'}, RedemptionOutcome.SUCCESS, messages.REDEEM_SUCCESS),
        (400, {'error': 'Not enough points'}, RedemptionOutcome.NOT_ENOUGH_POINTS, messages.NOT_ENOUGH_POINTS),
        (400, {'error': 'Invalid reward'}, RedemptionOutcome.INVALID_REWARD, messages.INVALID_REWARD),
        (400, {'error': 'Reward out of stock'}, RedemptionOutcome.BAD_REQUEST, 'Reward out of stock'),
        (400, None, RedemptionOutcome.BAD_REQUEST, messages.UNKNOWN_ERROR),
        (401, None, RedemptionOutcome.SESSION_EXPIRED, messages.SESSION_EXPIRED_RELOGIN),
        (404, {'error': 'Member not found'}, RedemptionOutcome.MEMBER_NOT_FOUND, messages.MEMBER_NOT_FOUND_SUPPORT),
        (500, None, RedemptionOutcome.SERVER_ERROR, messages.SERVER_ERROR),
        (502, None, RedemptionOutcome.SERVER_ERROR, messages.SERVER_ERROR),
        (418, None, RedemptionOutcome.UNKNOWN_ERROR, messages.UNKNOWN_ERROR),
        (200, {}, RedemptionOutcome.UNKNOWN_ERROR, messages.UNKNOWN_ERROR),
    ])
    def test_classification(self, status, body, outcome, message):
        """Function responses map to outcomes and pt-BR messages."""
        result_outcome, result_message, code = classify_response(status, body)

        assert result_outcome == outcome
        assert result_message == message
        if outcome == RedemptionOutcome.SUCCESS:
            assert code == 'LOYAL-123'
        else:
            assert code is None


class TestRedeem:

    def test_success(self, service, supabase):
        """A successful call sends the reward and key and returns the code."""
        supabase.invoke_function.return_value = (200, {'code': 'LOYAL-123'})

        result = service.redeem('reward-a', 'tok', user_id='user-1', idempotency_key='key-1')

        assert result.ok is True
        assert result.code == 'LOYAL-123'
        assert result.http_status == 200
        supabase.invoke_function.assert_called_once_with(
            FUNCTION_URL,
            {'reward_id': 'reward-a', 'idempotency_key': 'key-1'},
            access_token='tok',
            headers={'Idempotency-Key': 'key-1'},
        )

    def test_missing_token_never_calls(self, service, supabase):
        """Without a token the function is never invoked."""
        result = service.redeem('reward-a', None, user_id='user-1')

        assert result.outcome == RedemptionOutcome.SESSION_EXPIRED
        assert result.http_status == 401
        supabase.invoke_function.assert_not_called()

    def test_generates_idempotency_key(self, service, supabase):
        """Each intent without a key gets a fresh one, sent as a header too."""
        supabase.invoke_function.return_value = (200, {'code': 'C'})

        first = service.redeem('reward-a', 'tok', user_id='user-1')
        second = service.redeem('reward-a', 'tok', user_id='user-1')

        assert first.idempotency_key
        assert first.idempotency_key != second.idempotency_key
        sent_headers = supabase.invoke_function.call_args_list[0][1]['headers']
        assert sent_headers['Idempotency-Key'] == first.idempotency_key

    def test_not_enough_points(self, service, supabase):
        """Not enough points is reported from the 400 body."""
        supabase.invoke_function.return_value = (400, {'error': 'Not enough points'})

        result = service.redeem('reward-b', 'tok', user_id='user-1')

        assert result.outcome == RedemptionOutcome.NOT_ENOUGH_POINTS
        assert result.http_status == 400
        assert result.upstream_status == 400

    def test_connection_error(self, service, supabase, inflight):
        """Network failures are reported and release the in-flight slot."""
        supabase.invoke_function.side_effect = requests.exceptions.ConnectionError()

        result = service.redeem('reward-a', 'tok', user_id='user-1')

        assert result.outcome == RedemptionOutcome.CONNECTION_ERROR
        assert result.message == messages.CONNECTION_ERROR
        assert not inflight.is_in_flight('user-1', 'reward-a')

    def test_same_reward_in_flight_is_rejected(self, service, supabase, inflight):
        """A second redeem of the same reward while one runs is refused."""
        inflight.acquire('user-1', 'reward-a')

        result = service.redeem('reward-a', 'tok', user_id='user-1')

        assert result.outcome == RedemptionOutcome.ALREADY_IN_PROGRESS
        assert result.http_status == 409
        supabase.invoke_function.assert_not_called()

    def test_other_reward_may_redeem_concurrently(self, service, supabase, inflight):
        """Different rewards may be redeemed at the same time."""
        inflight.acquire('user-1', 'reward-a')
        supabase.invoke_function.return_value = (200, {'code': 'C'})

        result = service.redeem('reward-b', 'tok', user_id='user-1')

        assert result.ok is True

    def test_slot_released_after_call(self, service, supabase, inflight):
        """The in-flight slot is freed once the call returns."""
        seen = {}

        def invoke(*args, **kwargs):
            seen['during'] = inflight.is_in_flight('user-1', 'reward-a')
            return 200, {'code': 'C'}

        supabase.invoke_function.side_effect = invoke

        service.redeem('reward-a', 'tok', user_id='user-1')

        assert seen['during'] is True
        assert inflight.is_in_flight('user-1', 'reward-a') is False


class TestInFlightRedemptions:

    def test_acquire_once(self, inflight):
        """A slot can only be taken once until released."""
        assert inflight.acquire('u', 'r') is True
        assert inflight.acquire('u', 'r') is False
        inflight.release('u', 'r')
        assert inflight.acquire('u', 'r') is True

    def test_for_user(self, inflight):
        inflight.acquire('u1', 'a')
        inflight.acquire('u1', 'b')
        inflight.acquire('u2', 'a')

        assert inflight.for_user('u1') == {'a', 'b'}
