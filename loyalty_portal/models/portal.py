"""
Session-scoped portal state: auth sessions, login steps, toasts and tabs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any


class ToastType(str, Enum):
    """Visual class of a toast notification."""
    SUCCESS = 'success'
    ERROR = 'error'
    INFO = 'info'


class LoginStep(str, Enum):
    """Two-step passwordless login."""
    EMAIL = 'email'   # Waiting for the email address
    OTP = 'otp'       # Code sent, waiting for the 6-character code


class AuthFailure(str, Enum):
    """Why a sign-in step failed."""
    NO_ACCOUNT = 'no_account'
    CODE_EXPIRED = 'code_expired'
    CODE_INVALID = 'code_invalid'
    PROVIDER_ERROR = 'provider_error'
    TRANSPORT_ERROR = 'transport_error'


class DashboardTab(str, Enum):
    HISTORY = 'history'
    REDEMPTIONS = 'redemptions'


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'AuthUser':
        return cls(id=str(payload.get('id') or ''), email=payload.get('email') or '')

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'email': self.email}


@dataclass(frozen=True)
class AuthSession:
    """Tokens issued by the auth provider for one signed-in user."""
    access_token: str
    user: AuthUser
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'AuthSession':
        return cls(
            access_token=payload.get('access_token') or '',
            refresh_token=payload.get('refresh_token'),
            expires_at=payload.get('expires_at'),
            user=AuthUser.from_payload(payload.get('user') or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'access_token': self.access_token,
            'refresh_token': self.refresh_token,
            'expires_at': self.expires_at,
            'user': self.user.to_dict(),
        }


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of a code verification: a session or a typed failure."""
    session: Optional[AuthSession] = None
    failure: Optional[AuthFailure] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.session is not None


@dataclass(frozen=True)
class Toast:
    id: str
    type: ToastType
    message: str
    expires_at: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Toast':
        return cls(
            id=data['id'],
            type=ToastType(data['type']),
            message=data['message'],
            expires_at=float(data['expires_at']),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type.value,
            'message': self.message,
            'expires_at': self.expires_at,
        }
