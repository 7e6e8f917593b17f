"""
Utility modules for the loyalty portal.
"""
from .logging_config import setup_logging
from .exceptions import (
    PortalError,
    SupabaseError,
    MemberNotFoundError,
)
