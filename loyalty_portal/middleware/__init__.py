"""
Middleware package for the loyalty portal.
"""
from .session_auth import (
    require_session,
    current_auth_session,
    store_auth_session,
    clear_auth_session,
)
