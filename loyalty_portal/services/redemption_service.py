"""
Reward redemption through the remote redeem function.

The function owns the transaction (balance check, deduction, ledger
write, discount code). This service only:
- refuses to call without an access token
- attaches an idempotency key per redemption intent
- keeps one in-flight call per (user, reward)
- classifies the HTTP response into a RedemptionOutcome

Nothing is retried automatically.

Response contract:
    200 {"code": str}                      success
    400 {"error": "Not enough points"}     insufficient balance
    400 {"error": "Invalid reward"}        unknown or inactive reward
    400 {"error": <other>}                 server message passed through
    401                                    session expired
    404                                    member missing server-side
    500 / 502                              transient server fault
    other                                  unknown error
"""
import logging
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Set, Tuple

import requests

from ..utils import messages
from .supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

NOT_ENOUGH_POINTS_ERROR = 'Not enough points'
INVALID_REWARD_ERROR = 'Invalid reward'


class RedemptionOutcome(str, Enum):
    """Classified result of a redemption call."""
    SUCCESS = 'success'
    NOT_ENOUGH_POINTS = 'not_enough_points'
    INVALID_REWARD = 'invalid_reward'
    BAD_REQUEST = 'bad_request'
    SESSION_EXPIRED = 'session_expired'
    MEMBER_NOT_FOUND = 'member_not_found'
    SERVER_ERROR = 'server_error'
    UNKNOWN_ERROR = 'unknown_error'
    CONNECTION_ERROR = 'connection_error'
    ALREADY_IN_PROGRESS = 'already_in_progress'


OUTCOME_MESSAGES = {
    RedemptionOutcome.SUCCESS: messages.REDEEM_SUCCESS,
    RedemptionOutcome.NOT_ENOUGH_POINTS: messages.NOT_ENOUGH_POINTS,
    RedemptionOutcome.INVALID_REWARD: messages.INVALID_REWARD,
    RedemptionOutcome.BAD_REQUEST: messages.UNKNOWN_ERROR,
    RedemptionOutcome.SESSION_EXPIRED: messages.SESSION_EXPIRED_RELOGIN,
    RedemptionOutcome.MEMBER_NOT_FOUND: messages.MEMBER_NOT_FOUND_SUPPORT,
    RedemptionOutcome.SERVER_ERROR: messages.SERVER_ERROR,
    RedemptionOutcome.UNKNOWN_ERROR: messages.UNKNOWN_ERROR,
    RedemptionOutcome.CONNECTION_ERROR: messages.CONNECTION_ERROR,
    RedemptionOutcome.ALREADY_IN_PROGRESS: messages.REDEEM_IN_PROGRESS,
}

# Status the portal answers with for each outcome
OUTCOME_HTTP_STATUS = {
    RedemptionOutcome.SUCCESS: 200,
    RedemptionOutcome.NOT_ENOUGH_POINTS: 400,
    RedemptionOutcome.INVALID_REWARD: 400,
    RedemptionOutcome.BAD_REQUEST: 400,
    RedemptionOutcome.SESSION_EXPIRED: 401,
    RedemptionOutcome.MEMBER_NOT_FOUND: 404,
    RedemptionOutcome.ALREADY_IN_PROGRESS: 409,
    RedemptionOutcome.SERVER_ERROR: 502,
    RedemptionOutcome.UNKNOWN_ERROR: 502,
    RedemptionOutcome.CONNECTION_ERROR: 503,
}


@dataclass(frozen=True)
class RedemptionResult:
    outcome: RedemptionOutcome
    reward_id: str
    message: str
    code: Optional[str] = None
    idempotency_key: Optional[str] = None
    upstream_status: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome == RedemptionOutcome.SUCCESS

    @property
    def http_status(self) -> int:
        return OUTCOME_HTTP_STATUS[self.outcome]

    def to_dict(self) -> dict:
        return {
            'outcome': self.outcome.value,
            'reward_id': self.reward_id,
            'code': self.code,
            'message': self.message,
            'idempotency_key': self.idempotency_key,
        }


class InFlightRedemptions:
    """Tracks which (user, reward) pairs have a redemption call running."""

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Set[Tuple[str, str]] = set()

    def init_app(self, app) -> None:
        app.extensions['inflight_redemptions'] = self

    def acquire(self, user_id: str, reward_id: str) -> bool:
        key = (user_id, reward_id)
        with self._lock:
            if key in self._active:
                return False
            self._active.add(key)
            return True

    def release(self, user_id: str, reward_id: str) -> None:
        with self._lock:
            self._active.discard((user_id, reward_id))

    def is_in_flight(self, user_id: str, reward_id: str) -> bool:
        with self._lock:
            return (user_id, reward_id) in self._active

    def for_user(self, user_id: str) -> Set[str]:
        with self._lock:
            return {reward for user, reward in self._active if user == user_id}


def classify_response(status: int, body: Any) -> Tuple[RedemptionOutcome, str, Optional[str]]:
    """
    Map a redeem-function response onto an outcome.

    Returns:
        Tuple of (outcome, user message, discount code or None)
    """
    body = body if isinstance(body, dict) else {}

    if 200 <= status < 300:
        code = body.get('code')
        if code:
            return RedemptionOutcome.SUCCESS, messages.REDEEM_SUCCESS, str(code)
        return RedemptionOutcome.UNKNOWN_ERROR, messages.UNKNOWN_ERROR, None

    if status == 400:
        error = body.get('error')
        if error == NOT_ENOUGH_POINTS_ERROR:
            return RedemptionOutcome.NOT_ENOUGH_POINTS, messages.NOT_ENOUGH_POINTS, None
        if error == INVALID_REWARD_ERROR:
            return RedemptionOutcome.INVALID_REWARD, messages.INVALID_REWARD, None
        return RedemptionOutcome.BAD_REQUEST, str(error) if error else messages.UNKNOWN_ERROR, None

    if status == 401:
        return RedemptionOutcome.SESSION_EXPIRED, messages.SESSION_EXPIRED_RELOGIN, None
    if status == 404:
        return RedemptionOutcome.MEMBER_NOT_FOUND, messages.MEMBER_NOT_FOUND_SUPPORT, None
    if status in (500, 502):
        return RedemptionOutcome.SERVER_ERROR, messages.SERVER_ERROR, None
    return RedemptionOutcome.UNKNOWN_ERROR, messages.UNKNOWN_ERROR, None


class RedemptionService:

    def __init__(
        self,
        supabase: SupabaseClient,
        function_url: str,
        inflight: Optional[InFlightRedemptions] = None,
    ):
        self.supabase = supabase
        self.function_url = function_url
        self.inflight = inflight or InFlightRedemptions()

    @staticmethod
    def new_idempotency_key() -> str:
        return str(uuid.uuid4())

    def redeem(
        self,
        reward_id: str,
        access_token: Optional[str],
        user_id: str = '',
        idempotency_key: str = None,
    ) -> RedemptionResult:
        """
        Redeem a reward for the signed-in member.

        Args:
            reward_id: Reward to redeem
            access_token: User's bearer token; missing means session expired
            user_id: Owner of the in-flight slot
            idempotency_key: Reuse to retry the same intent; generated if absent

        Returns:
            RedemptionResult (never raises for HTTP or transport failures)
        """
        reward_id = str(reward_id)
        if not isinstance(idempotency_key, str) or not idempotency_key.strip():
            idempotency_key = self.new_idempotency_key()
        key = idempotency_key

        if not access_token:
            return self._result(RedemptionOutcome.SESSION_EXPIRED, reward_id, key)

        if not self.inflight.acquire(user_id, reward_id):
            logger.info('Redemption of %s already running for user %s', reward_id, user_id)
            return self._result(RedemptionOutcome.ALREADY_IN_PROGRESS, reward_id, key)

        try:
            status, body = self.supabase.invoke_function(
                self.function_url,
                {'reward_id': reward_id, 'idempotency_key': key},
                access_token=access_token,
                headers={'Idempotency-Key': key},
            )
        except requests.exceptions.RequestException as e:
            logger.error('Redeem call failed for reward %s: %s', reward_id, e)
            return self._result(RedemptionOutcome.CONNECTION_ERROR, reward_id, key)
        finally:
            self.inflight.release(user_id, reward_id)

        outcome, message, code = classify_response(status, body)
        if outcome == RedemptionOutcome.SUCCESS:
            logger.info('User %s redeemed reward %s', user_id, reward_id)
        else:
            logger.warning('Redeem of %s failed: %s (HTTP %s)', reward_id, outcome.value, status)

        return RedemptionResult(
            outcome=outcome,
            reward_id=reward_id,
            message=message,
            code=code,
            idempotency_key=key,
            upstream_status=status,
        )

    @staticmethod
    def _result(outcome: RedemptionOutcome, reward_id: str, key: str) -> RedemptionResult:
        return RedemptionResult(
            outcome=outcome,
            reward_id=reward_id,
            message=OUTCOME_MESSAGES[outcome],
            idempotency_key=key,
        )
