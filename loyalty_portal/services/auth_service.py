"""
Passwordless sign-in against Supabase Auth.

Members sign in with a one-time code emailed to them. Codes are only
issued to existing accounts; there is no self-service signup, so an
unknown email is reported as "no points yet".

Login is a two-step flow (email -> otp) tracked by LoginFlow. Verification
returns the resulting session directly instead of relying on an auth-state
listener.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

import requests
from flask import session

from ..models import AuthFailure, AuthSession, AuthUser, LoginStep, VerifyResult
from ..utils import messages
from ..utils.exceptions import SupabaseError
from .supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

OTP_LENGTH = 6

# GoTrue answers 422 "Signups not allowed for otp" when create_user is false
# and the email has no account.
NO_ACCOUNT_STATUS = 422


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a code request."""
    ok: bool
    message: str
    failure: Optional[AuthFailure] = None


class AuthService:
    """Sign-in, sign-out and current-user lookup."""

    def __init__(self, supabase: SupabaseClient):
        self.supabase = supabase

    @staticmethod
    def normalize_email(email: str) -> str:
        if not isinstance(email, str):
            return ''
        return email.strip().lower()

    @staticmethod
    def _is_no_account(error: SupabaseError) -> bool:
        text = (error.message or '').lower()
        return (
            error.status == NO_ACCOUNT_STATUS
            or 'signups not allowed' in text
            or 'signup' in text
        )

    def request_code(self, email: str) -> AuthResult:
        """
        Send a one-time code to an existing account.

        Never creates an account. An unknown email yields NO_ACCOUNT.
        """
        return self._send_code(email, messages.CODE_SENT, messages.SEND_CODE_FAILED)

    def resend_code(self, email: str) -> AuthResult:
        """Issue a fresh code for the same email."""
        return self._send_code(email, messages.CODE_RESENT, messages.RESEND_CODE_FAILED)

    def _send_code(self, email: str, ok_message: str, transport_message: str) -> AuthResult:
        email = self.normalize_email(email)
        if not email:
            return AuthResult(False, messages.EMAIL_REQUIRED, AuthFailure.PROVIDER_ERROR)

        try:
            self.supabase.send_otp(email, create_user=False)
        except SupabaseError as e:
            if self._is_no_account(e):
                logger.info('Code requested for email without member: %s', email)
                return AuthResult(False, messages.NO_POINTS_YET, AuthFailure.NO_ACCOUNT)
            logger.warning('Code request rejected for %s: %s', email, e.message)
            return AuthResult(False, e.message, AuthFailure.PROVIDER_ERROR)
        except requests.exceptions.RequestException as e:
            logger.error('Code request failed for %s: %s', email, e)
            return AuthResult(False, transport_message, AuthFailure.TRANSPORT_ERROR)

        return AuthResult(True, ok_message)

    def verify_code(self, email: str, code: str) -> VerifyResult:
        """
        Exchange a one-time code for a session.

        Returns:
            VerifyResult carrying the session, or the failure reason
            (CODE_EXPIRED, CODE_INVALID, PROVIDER_ERROR, TRANSPORT_ERROR)
        """
        email = self.normalize_email(email)
        if not isinstance(code, str):
            return VerifyResult(failure=AuthFailure.CODE_INVALID, message=messages.CODE_INVALID)
        code = code.strip()

        if len(code) != OTP_LENGTH:
            return VerifyResult(failure=AuthFailure.CODE_INVALID, message=messages.CODE_INVALID)

        try:
            payload = self.supabase.verify_otp(email, code)
        except SupabaseError as e:
            if 'Token has expired' in e.message:
                return VerifyResult(failure=AuthFailure.CODE_EXPIRED, message=messages.CODE_EXPIRED)
            if 'Token not found' in e.message:
                return VerifyResult(failure=AuthFailure.CODE_INVALID, message=messages.CODE_INVALID)
            logger.warning('Code verification rejected for %s: %s', email, e.message)
            return VerifyResult(failure=AuthFailure.PROVIDER_ERROR, message=e.message)
        except requests.exceptions.RequestException as e:
            logger.error('Code verification failed for %s: %s', email, e)
            return VerifyResult(failure=AuthFailure.TRANSPORT_ERROR, message=messages.VERIFY_CODE_FAILED)

        auth_session = AuthSession.from_payload(payload)
        if not auth_session.access_token or not auth_session.user.id:
            logger.error('Verification for %s returned no session', email)
            return VerifyResult(failure=AuthFailure.PROVIDER_ERROR, message=messages.VERIFY_CODE_FAILED)

        logger.info('User %s signed in', auth_session.user.id)
        return VerifyResult(session=auth_session, message=None)

    def sign_out(self, access_token: Optional[str]) -> None:
        """Revoke the session upstream. Local state is dropped by the caller regardless."""
        if not access_token:
            return
        try:
            self.supabase.sign_out(access_token)
        except (SupabaseError, requests.exceptions.RequestException) as e:
            logger.warning('Upstream sign-out failed: %s', e)

    def get_current_user(self, access_token: Optional[str]) -> Optional[AuthUser]:
        """The user behind a token, or None when it is missing or rejected."""
        if not access_token:
            return None
        try:
            payload = self.supabase.get_user(access_token)
        except SupabaseError as e:
            if e.status not in (401, 403):
                logger.warning('User lookup failed: %s', e.message)
            return None
        except requests.exceptions.RequestException as e:
            logger.warning('User lookup failed: %s', e)
            return None

        user = AuthUser.from_payload(payload)
        return user if user.id else None


class LoginFlow:
    """
    Two-step login state machine kept in the Flask session.

    email --code_sent--> otp
    otp   --code_sent--> otp      (resend)
    otp   --back_to_email--> email
    """

    SESSION_KEY = 'login'

    def __init__(self, step: LoginStep = LoginStep.EMAIL, email: str = ''):
        self.step = LoginStep(step)
        self.email = email

    @classmethod
    def load(cls) -> 'LoginFlow':
        data = session.get(cls.SESSION_KEY) or {}
        try:
            step = LoginStep(data.get('step', LoginStep.EMAIL.value))
        except ValueError:
            step = LoginStep.EMAIL
        return cls(step=step, email=data.get('email') or '')

    def save(self) -> None:
        session[self.SESSION_KEY] = self.to_dict()
        session.modified = True

    def code_sent(self, email: str) -> None:
        self.email = email
        self.step = LoginStep.OTP

    def back_to_email(self) -> None:
        self.step = LoginStep.EMAIL

    def reset(self) -> None:
        self.step = LoginStep.EMAIL
        self.email = ''

    @property
    def awaiting_code(self) -> bool:
        return self.step == LoginStep.OTP

    def to_dict(self) -> Dict[str, Any]:
        return {'step': self.step.value, 'email': self.email}
