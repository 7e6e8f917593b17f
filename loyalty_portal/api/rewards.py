"""
Rewards API endpoints.

GET  /                    reward picker (active rewards, cheapest first)
POST /<reward_id>/redeem  redeem a reward through the remote function
"""
import logging

from flask import Blueprint, g

from ..middleware import require_session, clear_auth_session, current_auth_session
from ..models import ToastType
from ..services import RedemptionOutcome
from ..services.member_service import FETCH_ERRORS
from ..services.presenters import present_catalog
from ..services.resource_state import BALANCE
from ..services.toast_service import notify
from ..utils import messages
from ..utils.errors import ErrorCode, error_response, json_response
from ..utils.exceptions import MemberNotFoundError
from . import (
    get_member_service,
    get_redemption_service,
    get_resource_state,
    get_rewards_service,
    json_body,
)
from .dashboard import resolve_member_id, dashboard_payload, end_session, load_dashboard, update_view_state

logger = logging.getLogger(__name__)

rewards_bp = Blueprint('rewards', __name__)

OUTCOME_ERROR_CODES = {
    RedemptionOutcome.NOT_ENOUGH_POINTS: ErrorCode.INSUFFICIENT_POINTS,
    RedemptionOutcome.INVALID_REWARD: ErrorCode.INVALID_REWARD,
    RedemptionOutcome.BAD_REQUEST: ErrorCode.REDEMPTION_REJECTED,
    RedemptionOutcome.SESSION_EXPIRED: ErrorCode.SESSION_EXPIRED,
    RedemptionOutcome.MEMBER_NOT_FOUND: ErrorCode.MEMBER_NOT_FOUND,
    RedemptionOutcome.ALREADY_IN_PROGRESS: ErrorCode.REDEMPTION_IN_PROGRESS,
    RedemptionOutcome.SERVER_ERROR: ErrorCode.EXTERNAL_SERVICE_ERROR,
    RedemptionOutcome.UNKNOWN_ERROR: ErrorCode.EXTERNAL_SERVICE_ERROR,
    RedemptionOutcome.CONNECTION_ERROR: ErrorCode.CONNECTION_ERROR,
}


def _current_points() -> int:
    """Latest known balance, fetched when the dashboard has not loaded it yet."""
    balance = get_resource_state().get(g.user.id, BALANCE)
    if balance is not None:
        return balance.points
    member_id = resolve_member_id()
    return get_member_service().load_balance(member_id, g.access_token).points


@rewards_bp.route('', methods=['GET'])
@require_session
def list_rewards():
    """
    Reward picker contents.

    A failed catalog query shows a toast and renders an empty catalog.

    Returns:
        current_points, rewards (each with can_redeem / redeeming)
    """
    try:
        points = _current_points()
    except MemberNotFoundError:
        return end_session(messages.NO_POINTS_YET, ErrorCode.MEMBER_NOT_FOUND, 404)
    except FETCH_ERRORS as e:
        logger.warning('Balance unavailable for reward picker: %s', e)
        points = 0

    try:
        rewards = get_rewards_service().list_active_rewards(g.access_token, user_id=g.user.id)
    except FETCH_ERRORS as e:
        logger.warning('Rewards fetch failed: %s', e)
        notify(messages.LOAD_REWARDS_FAILED, ToastType.ERROR)
        rewards = []

    in_flight = get_redemption_service().inflight.for_user(g.user.id)
    return json_response({
        'reward_picker': {'open': True},
        **present_catalog(rewards, points, in_flight),
    })


@rewards_bp.route('/<reward_id>/redeem', methods=['POST'])
@require_session
def redeem_reward(reward_id):
    """
    Redeem a reward.

    Request body (optional):
        idempotency_key: reuse to retry the same redemption intent

    Returns:
        redemption result; on success also the reloaded dashboard with the
        code modal open
    """
    data = json_body()
    result = get_redemption_service().redeem(
        reward_id,
        g.access_token,
        user_id=g.user.id,
        idempotency_key=data.get('idempotency_key'),
    )

    if not result.ok:
        if result.outcome == RedemptionOutcome.SESSION_EXPIRED:
            get_resource_state().clear(g.user.id)
            clear_auth_session()
        return error_response(
            result.message,
            OUTCOME_ERROR_CODES[result.outcome],
            result.http_status,
            details={'reward_id': result.reward_id, 'upstream_status': result.upstream_status},
        )

    notify(result.message, ToastType.SUCCESS)

    # The redemption already happened; a failed reload only loses the refresh.
    dashboard_data, error = load_dashboard()
    if error:
        logger.warning('Dashboard reload after redeeming %s failed', reward_id)

    # A reload that ended the session leaves no view state to hold the code;
    # the code then travels only in the redemption body.
    signed_in = current_auth_session() is not None
    if signed_in:
        update_view_state(redeem_code=result.code)

    return json_response({
        'redemption': result.to_dict(),
        'reward_picker': {'open': False},
        'code_modal': {'open': True, 'code': result.code},
        'authenticated': signed_in,
        'dashboard': dashboard_payload(dashboard_data) if dashboard_data else None,
    })
