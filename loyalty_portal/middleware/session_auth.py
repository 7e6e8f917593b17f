"""
Session Authentication Middleware.

The portal keeps the Supabase session (access token, refresh token and
user) inside the signed Flask session cookie. Routes that need a signed-in
member use @require_session.
"""
from functools import wraps
from typing import Optional

from flask import g, session

from ..models import AuthSession
from ..utils import messages
from ..utils.errors import unauthorized

SESSION_KEY = 'auth'


def current_auth_session() -> Optional[AuthSession]:
    """Stored auth session, or None when signed out or unreadable."""
    data = session.get(SESSION_KEY)
    if not data:
        return None
    try:
        auth_session = AuthSession.from_payload(data)
    except (AttributeError, TypeError):
        return None
    if not auth_session.access_token or not auth_session.user.id:
        return None
    return auth_session


def store_auth_session(auth_session: AuthSession) -> None:
    session[SESSION_KEY] = auth_session.to_dict()
    session.modified = True


def clear_auth_session() -> None:
    """Drop auth and per-screen state; toasts survive so the user sees why."""
    for key in (SESSION_KEY, 'dashboard', 'login'):
        session.pop(key, None)
    session.modified = True


def require_session(f):
    """
    Decorator to require a signed-in user.

    Sets g.auth_session, g.user and g.access_token.

    Usage:
        @require_session
        def my_endpoint():
            user_id = g.user.id
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_session = current_auth_session()
        if auth_session is None:
            return unauthorized(messages.SESSION_EXPIRED)

        g.auth_session = auth_session
        g.user = auth_session.user
        g.access_token = auth_session.access_token
        return f(*args, **kwargs)

    return decorated_function
