"""
Member dashboard API endpoints.

The dashboard aggregates member info, points balance, points history and
past redemptions, with two tabs and the discount-code modal that opens
after a successful redemption.
"""
import logging
from typing import Any, Dict

import requests
from flask import Blueprint, current_app, g, session

from ..middleware import require_session, clear_auth_session
from ..models import DashboardTab, ToastType
from ..services.presenters import present_dashboard, present_history, present_redemptions
from ..services.toast_service import notify
from ..utils import messages
from ..utils.errors import ErrorCode, error_response, json_response, bad_request
from ..utils.exceptions import MemberNotFoundError, SupabaseError
from . import get_auth_service, get_member_service, get_resource_state, json_body

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard', __name__)

STATE_KEY = 'dashboard'


# ==================== Session state ====================

def get_view_state() -> Dict[str, Any]:
    state = session.get(STATE_KEY) or {}
    return {
        'member_id': state.get('member_id'),
        'tab': state.get('tab') or DashboardTab.HISTORY.value,
        'redeem_code': state.get('redeem_code'),
    }


def update_view_state(**changes) -> Dict[str, Any]:
    state = get_view_state()
    state.update(changes)
    session[STATE_KEY] = state
    session.modified = True
    return state


def _tz():
    return current_app.config.get('DISPLAY_TIMEZONE')


# ==================== Loading ====================

def end_session(message: str, code: ErrorCode, status_code: int):
    """Sign out upstream and locally, then answer with the reason."""
    get_auth_service().sign_out(g.access_token)
    get_resource_state().clear(g.user.id)
    clear_auth_session()
    return error_response(message, code, status_code, log_error=False)


def load_dashboard():
    """
    Full reload of member, balance, history and redemptions.

    A missing member ends the session. Other member-lookup failures keep
    the session and report a load error.

    Returns:
        Tuple of (DashboardData, None) or (None, error response)
    """
    try:
        data = get_member_service().load_dashboard(g.user.id, g.access_token)
    except MemberNotFoundError:
        logger.info('User %s has no loyalty member; signing out', g.user.id)
        return None, end_session(messages.NO_POINTS_YET, ErrorCode.MEMBER_NOT_FOUND, 404)
    except SupabaseError as e:
        if e.status == 401:
            return None, end_session(messages.SESSION_EXPIRED, ErrorCode.SESSION_EXPIRED, 401)
        return None, error_response(messages.LOAD_DATA_FAILED, ErrorCode.EXTERNAL_SERVICE_ERROR, 502,
                                    details={'status': e.status, 'message': e.message})
    except requests.exceptions.RequestException as e:
        return None, error_response(messages.LOAD_DATA_FAILED, ErrorCode.CONNECTION_ERROR, 503,
                                    details={'error': str(e)})

    update_view_state(member_id=data.member.id)
    return data, None


def dashboard_payload(data) -> Dict[str, Any]:
    state = get_view_state()
    return present_dashboard(
        data,
        active_tab=state['tab'],
        redeem_code=state['redeem_code'],
        tz_name=_tz(),
    )


def resolve_member_id():
    """Member id for the session, resolving it when not loaded yet."""
    member_id = get_view_state()['member_id']
    if member_id:
        return member_id
    member = get_member_service().load_member(g.user.id, g.access_token)
    update_view_state(member_id=member.id)
    return member.id


# ==================== Routes ====================

@dashboard_bp.route('', methods=['GET'])
@require_session
def get_dashboard():
    """
    Load the whole dashboard.

    Returns:
        member, balance, active tab, history, redemptions and code modal state
    """
    data, error = load_dashboard()
    if error:
        return error
    return json_response(dashboard_payload(data))


@dashboard_bp.route('/refresh', methods=['POST'])
@require_session
def refresh_dashboard():
    """Manual refresh: same full reload plus a confirmation toast."""
    data, error = load_dashboard()
    if error:
        return error
    notify(messages.DATA_REFRESHED, ToastType.INFO)
    return json_response(dashboard_payload(data))


@dashboard_bp.route('/history', methods=['GET'])
@require_session
def get_history():
    """Points history only (newest first, up to 50)."""
    try:
        member_id = resolve_member_id()
    except MemberNotFoundError:
        return end_session(messages.NO_POINTS_YET, ErrorCode.MEMBER_NOT_FOUND, 404)
    except (SupabaseError, requests.exceptions.RequestException) as e:
        return error_response(messages.LOAD_DATA_FAILED, ErrorCode.EXTERNAL_SERVICE_ERROR, 502,
                              details={'error': str(e)})

    entries = get_member_service().refresh_history(g.user.id, member_id, g.access_token)
    return json_response({'history': present_history(entries, _tz())})


@dashboard_bp.route('/redemptions', methods=['GET'])
@require_session
def get_redemptions():
    """Past redemptions only (newest first, up to 50)."""
    try:
        member_id = resolve_member_id()
    except MemberNotFoundError:
        return end_session(messages.NO_POINTS_YET, ErrorCode.MEMBER_NOT_FOUND, 404)
    except (SupabaseError, requests.exceptions.RequestException) as e:
        return error_response(messages.LOAD_DATA_FAILED, ErrorCode.EXTERNAL_SERVICE_ERROR, 502,
                              details={'error': str(e)})

    redemptions = get_member_service().refresh_redemptions(g.user.id, member_id, g.access_token)
    return json_response({'redemptions': present_redemptions(redemptions, _tz())})


@dashboard_bp.route('/tab', methods=['POST'])
@require_session
def select_tab():
    """
    Switch the visible tab.

    Request body:
        tab: "history" | "redemptions"
    """
    data = json_body()
    try:
        tab = DashboardTab(data.get('tab'))
    except ValueError:
        return bad_request(f"Invalid tab: {data.get('tab')}", ErrorCode.INVALID_REQUEST)

    state = update_view_state(tab=tab.value)
    return json_response({'active_tab': state['tab']})


# ==================== Code modal ====================

@dashboard_bp.route('/code-modal', methods=['GET'])
@require_session
def get_code_modal():
    code = get_view_state()['redeem_code']
    return json_response({'code_modal': {'open': bool(code), 'code': code}})


@dashboard_bp.route('/code-modal/copied', methods=['POST'])
@require_session
def report_code_copy():
    """
    Record the outcome of the browser's clipboard copy.

    Request body:
        success: bool
    """
    data = json_body()
    if data.get('success'):
        notify(messages.CODE_COPIED, ToastType.SUCCESS)
    else:
        notify(messages.CODE_COPY_FAILED, ToastType.ERROR)
    code = get_view_state()['redeem_code']
    return json_response({'code_modal': {'open': bool(code), 'code': code}})


@dashboard_bp.route('/code-modal/close', methods=['POST'])
@require_session
def close_code_modal():
    update_view_state(redeem_code=None)
    return json_response({'code_modal': {'open': False, 'code': None}})
