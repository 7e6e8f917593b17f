"""
API blueprints for the loyalty portal.

Services are built per request from the app's extensions so tests can swap
the Supabase transport on app.extensions.
"""
from flask import current_app, request

from ..services import (
    AuthService,
    MemberService,
    RewardsService,
    RedemptionService,
)


def json_body() -> dict:
    """Request JSON object, or an empty dict for a missing or non-object body."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def get_supabase():
    return current_app.extensions['supabase']


def get_resource_state():
    return current_app.extensions['resource_state']


def get_auth_service() -> AuthService:
    return AuthService(get_supabase())


def get_member_service() -> MemberService:
    return MemberService(
        get_supabase(),
        store=get_resource_state(),
        history_limit=current_app.config.get('HISTORY_LIMIT', 50),
    )


def get_rewards_service() -> RewardsService:
    return RewardsService(get_supabase(), store=get_resource_state())


def get_redemption_service() -> RedemptionService:
    return RedemptionService(
        get_supabase(),
        function_url=current_app.config.get('REDEEM_FUNCTION_URL', ''),
        inflight=current_app.extensions['inflight_redemptions'],
    )
