"""
Read models and session state for the loyalty portal.
"""
from .loyalty import (
    DiscountType,
    RedemptionStatus,
    LedgerReason,
    Member,
    Balance,
    LedgerEntry,
    Reward,
    RewardSummary,
    Redemption,
)
from .portal import (
    ToastType,
    LoginStep,
    AuthFailure,
    DashboardTab,
    AuthUser,
    AuthSession,
    VerifyResult,
    Toast,
)
