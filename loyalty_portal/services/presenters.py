"""
View-models for the portal screens.

Turns read models into the display shape the front-end renders: pt-BR
number and date formatting, ledger reason labels, redemption status badges
and the reward picker's per-reward state.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set
from zoneinfo import ZoneInfo

from ..models import (
    DashboardTab,
    DiscountType,
    LedgerEntry,
    LedgerReason,
    Member,
    Redemption,
    RedemptionStatus,
    Reward,
)
from ..utils import messages

EMPTY_VALUE = '—'

REASON_LABELS = (
    (LedgerReason.ORDER.value, messages.REASON_ORDER),
    (LedgerReason.REFUND.value, messages.REASON_REFUND),
    (LedgerReason.REDEEM.value, messages.REASON_REDEEM),
)

STATUS_LABELS = {
    RedemptionStatus.ACTIVE.value: messages.STATUS_ACTIVE,
    RedemptionStatus.USED.value: messages.STATUS_USED,
    RedemptionStatus.EXPIRED.value: messages.STATUS_EXPIRED,
}


# ==================== Formatting ====================

def format_reason(reason: str) -> str:
    """Human label for a namespaced ledger reason; unknown tags pass through."""
    for prefix, label in REASON_LABELS:
        if reason.startswith(prefix):
            return label
    return reason


def format_points(points: int) -> str:
    """Thousands separated with dots, pt-BR style (1500 -> '1.500')."""
    return f'{int(points):,}'.replace(',', '.')


def format_delta(delta: int) -> str:
    sign = '+' if delta > 0 else ''
    return f'{sign}{format_points(delta)} pts'


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _localize(moment: datetime, tz_name: Optional[str]) -> datetime:
    if not tz_name or moment.tzinfo is None:
        return moment
    return moment.astimezone(ZoneInfo(tz_name))


def format_datetime(value: Optional[str], tz_name: str = None) -> str:
    """'2024-03-05T14:07:00+00:00' -> '05/03/2024 14:07'."""
    moment = parse_timestamp(value)
    if moment is None:
        return EMPTY_VALUE
    return _localize(moment, tz_name).strftime('%d/%m/%Y %H:%M')


def format_date(value: Optional[str], tz_name: str = None) -> str:
    moment = parse_timestamp(value)
    if moment is None:
        return EMPTY_VALUE
    return _localize(moment, tz_name).strftime('%d/%m/%Y')


def _format_number(value: float) -> str:
    # 10.0 -> '10', 12.5 -> '12.5'
    return f'{value:g}'


def format_discount(reward: Reward) -> str:
    if reward.discount_type == DiscountType.PERCENTAGE:
        return f'{_format_number(reward.discount_value)}% OFF'
    return f'R$ {reward.discount_value:.2f} OFF'


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


# ==================== View-models ====================

def present_member(member: Member, tz_name: str = None) -> Dict[str, Any]:
    return {
        'id': member.id,
        'email': member.email,
        'member_since': format_date(member.created_at, tz_name),
        'member_since_label': f'Membro desde {format_date(member.created_at, tz_name)}',
    }


def present_balance(points: int) -> Dict[str, Any]:
    return {
        'points': points,
        'display': f'{format_points(points)} pts',
    }


def present_ledger_entry(entry: LedgerEntry, tz_name: str = None) -> Dict[str, Any]:
    return {
        'id': entry.id,
        'label': format_reason(entry.reason),
        'reason': entry.reason,
        'delta_points': entry.delta_points,
        'delta_display': format_delta(entry.delta_points),
        'direction': 'credit' if entry.is_credit else 'debit',
        'created_at': entry.created_at,
        'date_display': format_datetime(entry.created_at, tz_name),
    }


def present_history(entries: Iterable[LedgerEntry], tz_name: str = None) -> List[Dict[str, Any]]:
    return [present_ledger_entry(e, tz_name) for e in entries]


def present_redemption(redemption: Redemption, tz_name: str = None) -> Dict[str, Any]:
    reward = redemption.reward
    if redemption.status == RedemptionStatus.USED.value:
        caption = f'Utilizado em {format_datetime(redemption.redeemed_at, tz_name)}'
    else:
        caption = f'Resgatado em {format_datetime(redemption.created_at, tz_name)}'

    return {
        'id': redemption.id,
        'reward_name': reward.name if reward else 'Recompensa',
        'cost_points': reward.cost_points if reward else 0,
        'cost_display': f'{format_points(reward.cost_points if reward else 0)} pts',
        'code': redemption.discount_code or EMPTY_VALUE,
        'status': redemption.status,
        'status_label': status_label(redemption.status),
        'caption': caption,
        'created_at': redemption.created_at,
    }


def present_redemptions(redemptions: Iterable[Redemption], tz_name: str = None) -> List[Dict[str, Any]]:
    return [present_redemption(r, tz_name) for r in redemptions]


def present_reward_option(reward: Reward, current_points: int, redeeming: bool = False) -> Dict[str, Any]:
    """One row of the reward picker; can_redeem gates the redeem button."""
    return {
        'id': reward.id,
        'name': reward.name,
        'cost_points': reward.cost_points,
        'discount_type': reward.discount_type.value,
        'discount_value': reward.discount_value,
        'discount_display': format_discount(reward),
        'can_redeem': current_points >= reward.cost_points,
        'redeeming': redeeming,
    }


def present_catalog(
    rewards: Iterable[Reward],
    current_points: int,
    in_flight: Set[str] = None,
) -> Dict[str, Any]:
    in_flight = in_flight or set()
    return {
        'current_points': current_points,
        'current_points_display': f'{format_points(current_points)} pontos',
        'rewards': [
            present_reward_option(r, current_points, redeeming=r.id in in_flight)
            for r in rewards
        ],
    }


def present_dashboard(
    data,
    active_tab: DashboardTab = DashboardTab.HISTORY,
    redeem_code: Optional[str] = None,
    tz_name: str = None,
) -> Dict[str, Any]:
    return {
        'member': present_member(data.member, tz_name),
        'balance': present_balance(data.balance.points),
        'active_tab': DashboardTab(active_tab).value,
        'history': present_history(data.history, tz_name),
        'redemptions': present_redemptions(data.redemptions, tz_name),
        'code_modal': {'open': bool(redeem_code), 'code': redeem_code},
    }
