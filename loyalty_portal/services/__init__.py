"""
Business logic services for the loyalty portal.
"""
from .supabase_client import SupabaseClient
from .auth_service import AuthService, LoginFlow
from .member_service import MemberService, DashboardData
from .rewards_service import RewardsService
from .redemption_service import RedemptionService, RedemptionOutcome, InFlightRedemptions
from .resource_state import ResourceStateStore

__all__ = [
    'SupabaseClient',
    'AuthService',
    'LoginFlow',
    'MemberService',
    'DashboardData',
    'RewardsService',
    'RedemptionService',
    'RedemptionOutcome',
    'InFlightRedemptions',
    'ResourceStateStore',
]
