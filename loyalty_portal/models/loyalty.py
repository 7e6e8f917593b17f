"""
Loyalty read models for the customer portal.

All rows are owned by the Supabase data store. The portal only keeps
short-lived, read-only copies built from PostgREST rows:

- Member: the loyalty account linked 1:1 to an authenticated user
- Balance: materialized points counter (missing row means zero)
- LedgerEntry: append-only audit trail of balance changes
- Reward: catalog item bought with points
- Redemption: points exchanged for a reward, carrying a discount code
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any


# ==================== Enums ====================

class DiscountType(str, Enum):
    """How a reward's discount is applied at checkout."""
    PERCENTAGE = 'percentage'
    FIXED_AMOUNT = 'fixed_amount'


class RedemptionStatus(str, Enum):
    """Lifecycle of a redeemed discount code."""
    ACTIVE = 'active'     # Code issued, not used yet
    USED = 'used'         # Applied at checkout
    EXPIRED = 'expired'   # Past its validity window


class LedgerReason(str, Enum):
    """Namespaced prefixes used in ledger reason tags."""
    ORDER = 'order:'
    REFUND = 'refund:'
    REDEEM = 'redeem:'


# ==================== Models ====================

@dataclass(frozen=True)
class Member:
    id: str
    email: str
    user_id: str
    created_at: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Member':
        return cls(
            id=str(row.get('id')),
            email=row.get('email') or '',
            user_id=str(row.get('user_id') or ''),
            created_at=row.get('created_at') or '',
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'email': self.email,
            'user_id': self.user_id,
            'created_at': self.created_at,
        }


@dataclass(frozen=True)
class Balance:
    member_id: str
    points: int = 0

    @classmethod
    def from_row(cls, member_id: str, row: Optional[Dict[str, Any]]) -> 'Balance':
        """Build a balance; a missing row is a zero balance."""
        if not row:
            return cls(member_id=member_id, points=0)
        return cls(member_id=member_id, points=max(int(row.get('points') or 0), 0))

    def to_dict(self) -> Dict[str, Any]:
        return {'member_id': self.member_id, 'points': self.points}


@dataclass(frozen=True)
class LedgerEntry:
    id: str
    member_id: str
    delta_points: int
    reason: str
    created_at: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'LedgerEntry':
        return cls(
            id=str(row.get('id')),
            member_id=str(row.get('member_id') or ''),
            delta_points=int(row.get('delta_points') or 0),
            reason=row.get('reason') or '',
            created_at=row.get('created_at') or '',
        )

    @property
    def is_credit(self) -> bool:
        return self.delta_points > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'member_id': self.member_id,
            'delta_points': self.delta_points,
            'reason': self.reason,
            'created_at': self.created_at,
        }


@dataclass(frozen=True)
class Reward:
    id: str
    name: str
    cost_points: int
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: float = 0.0
    active: bool = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Reward':
        return cls(
            id=str(row.get('id')),
            name=row.get('name') or '',
            cost_points=int(row.get('cost_points') or 0),
            discount_type=DiscountType(row.get('discount_type') or DiscountType.PERCENTAGE.value),
            discount_value=float(row.get('discount_value') or 0),
            # Catalog queries filter on active=true, so a missing column means active
            active=bool(row.get('active', True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'cost_points': self.cost_points,
            'discount_type': self.discount_type.value,
            'discount_value': self.discount_value,
            'active': self.active,
        }


@dataclass(frozen=True)
class RewardSummary:
    """The slice of a reward joined onto a redemption row."""
    id: str
    name: str
    cost_points: int = 0

    PLACEHOLDER_NAME = 'Recompensa'

    @classmethod
    def from_join(cls, reward_id: str, joined: Optional[Dict[str, Any]]) -> 'RewardSummary':
        if not joined:
            return cls(id=str(reward_id), name=cls.PLACEHOLDER_NAME, cost_points=0)
        return cls(
            id=str(joined.get('id') or reward_id),
            name=joined.get('name') or cls.PLACEHOLDER_NAME,
            cost_points=int(joined.get('cost_points') or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'cost_points': self.cost_points}


@dataclass(frozen=True)
class Redemption:
    id: str
    member_id: str
    reward_id: str
    discount_code: str
    status: str
    created_at: str
    reward: RewardSummary = field(default=None)
    redeemed_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Redemption':
        reward_id = str(row.get('reward_id') or '')
        return cls(
            id=str(row.get('id')),
            member_id=str(row.get('member_id') or ''),
            reward_id=reward_id,
            discount_code=row.get('discount_code') or '',
            status=row.get('status') or RedemptionStatus.ACTIVE.value,
            created_at=row.get('created_at') or '',
            reward=RewardSummary.from_join(reward_id, row.get('reward')),
            redeemed_at=row.get('redeemed_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'member_id': self.member_id,
            'reward_id': self.reward_id,
            'discount_code': self.discount_code,
            'status': self.status,
            'created_at': self.created_at,
            'redeemed_at': self.redeemed_at,
            'reward': self.reward.to_dict() if self.reward else None,
        }
