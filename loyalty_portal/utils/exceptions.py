"""
Custom exceptions for the loyalty portal.

These exceptions carry a stable code so routes can map them onto the
standard error envelope without inspecting message text.
"""


class PortalError(Exception):
    """Base exception for all portal errors."""

    def __init__(self, message: str, code: str = "PORTAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class SupabaseError(PortalError):
    """Error response from the Supabase auth, data or function endpoints."""

    def __init__(self, message: str, status: int = None, error_code: str = None):
        self.status = status
        self.error_code = error_code
        super().__init__(message, "SUPABASE_ERROR")

    def __repr__(self):
        return f'<SupabaseError {self.status} {self.error_code}: {self.message}>'


class MemberNotFoundError(PortalError):
    """Authenticated user has no provisioned loyalty member."""

    def __init__(self, user_id=None):
        message = "Member not found"
        if user_id:
            message = f"Member for user {user_id} not found"
        super().__init__(message, "MEMBER_NOT_FOUND")

