"""
Sign-in API endpoints.

Two-step passwordless login:
    POST /request-code  email -> code emailed, step becomes "otp"
    POST /verify        6-character code -> session stored in the cookie
    POST /resend        new code, stays on "otp"
    POST /back          back to the email step
    POST /sign-out
    GET  /me            current user (or signed out) plus login step
"""
import logging
from flask import Blueprint, g

from ..models import AuthFailure, ToastType
from ..middleware import (
    current_auth_session,
    store_auth_session,
    clear_auth_session,
    require_session,
)
from ..services import LoginFlow
from ..services.toast_service import notify
from ..utils import messages
from ..utils.errors import ErrorCode, error_response, json_response, conflict, bad_request
from . import get_auth_service, get_resource_state, json_body

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

FAILURE_RESPONSES = {
    AuthFailure.NO_ACCOUNT: (ErrorCode.NO_ACCOUNT, 404),
    AuthFailure.CODE_EXPIRED: (ErrorCode.CODE_EXPIRED, 400),
    AuthFailure.CODE_INVALID: (ErrorCode.CODE_INVALID, 400),
    AuthFailure.PROVIDER_ERROR: (ErrorCode.AUTH_PROVIDER_ERROR, 400),
    AuthFailure.TRANSPORT_ERROR: (ErrorCode.CONNECTION_ERROR, 503),
}


def _failure_response(failure: AuthFailure, message: str):
    code, status = FAILURE_RESPONSES[failure]
    return error_response(message, code, status, log_error=failure == AuthFailure.TRANSPORT_ERROR)


def _force_sign_out() -> None:
    """Leave no half-authenticated state behind."""
    auth_session = current_auth_session()
    if auth_session:
        get_auth_service().sign_out(auth_session.access_token)
        get_resource_state().clear(auth_session.user.id)
    clear_auth_session()


@auth_bp.route('/request-code', methods=['POST'])
def request_code():
    """
    Email a one-time code to an existing member.

    Request body:
        email: string (required)

    Returns:
        Login step ("otp" on success)
    """
    data = json_body()
    email = data.get('email')
    if not isinstance(email, str) or not email.strip():
        return bad_request(messages.EMAIL_REQUIRED, ErrorCode.MISSING_FIELD)

    service = get_auth_service()
    result = service.request_code(email)
    flow = LoginFlow.load()

    if not result.ok:
        if result.failure == AuthFailure.NO_ACCOUNT:
            _force_sign_out()
            flow.reset()
        flow.save()
        return _failure_response(result.failure, result.message)

    flow.code_sent(service.normalize_email(email))
    flow.save()
    notify(result.message, ToastType.SUCCESS)
    return json_response({'login': flow.to_dict()})


@auth_bp.route('/verify', methods=['POST'])
def verify_code():
    """
    Verify the emailed code and open a session.

    Request body:
        code: 6-character code (required)

    Returns:
        Authenticated user
    """
    flow = LoginFlow.load()
    if not flow.awaiting_code or not flow.email:
        return conflict(messages.REQUEST_CODE_FIRST)

    data = json_body()
    result = get_auth_service().verify_code(flow.email, data.get('code', ''))

    if not result.ok:
        return _failure_response(result.failure, result.message)

    store_auth_session(result.session)
    get_resource_state().clear(result.session.user.id)
    flow.reset()
    flow.save()

    return json_response({
        'authenticated': True,
        'user': result.session.user.to_dict(),
        'login': flow.to_dict(),
    })


@auth_bp.route('/resend', methods=['POST'])
def resend_code():
    """Send a new code to the email on the current login step."""
    flow = LoginFlow.load()
    if not flow.awaiting_code or not flow.email:
        return conflict(messages.REQUEST_CODE_FIRST)

    result = get_auth_service().resend_code(flow.email)
    if not result.ok:
        if result.failure == AuthFailure.NO_ACCOUNT:
            _force_sign_out()
            flow.reset()
            flow.save()
        return _failure_response(result.failure, result.message)

    notify(result.message, ToastType.SUCCESS)
    return json_response({'login': flow.to_dict()})


@auth_bp.route('/back', methods=['POST'])
def back_to_email():
    """Return to the email step, keeping the typed email."""
    flow = LoginFlow.load()
    flow.back_to_email()
    flow.save()
    return json_response({'login': flow.to_dict()})


@auth_bp.route('/sign-out', methods=['POST'])
@require_session
def sign_out():
    get_auth_service().sign_out(g.access_token)
    get_resource_state().clear(g.user.id)
    clear_auth_session()
    return json_response({'authenticated': False})


@auth_bp.route('/me', methods=['GET'])
def current_user():
    """
    Current user for the stored session.

    Returns:
        authenticated flag, user (when signed in) and login step
    """
    flow = LoginFlow.load()
    auth_session = current_auth_session()
    if auth_session is None:
        return json_response({'authenticated': False, 'user': None, 'login': flow.to_dict()})

    user = get_auth_service().get_current_user(auth_session.access_token)
    if user is None:
        logger.info('Stored session for %s rejected upstream', auth_session.user.id)
        get_resource_state().clear(auth_session.user.id)
        clear_auth_session()
        notify(messages.SESSION_EXPIRED, ToastType.ERROR)
        return json_response({'authenticated': False, 'user': None, 'login': LoginFlow().to_dict()})

    return json_response({'authenticated': True, 'user': user.to_dict(), 'login': flow.to_dict()})
