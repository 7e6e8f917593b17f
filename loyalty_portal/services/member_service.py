"""
Member, balance, ledger and redemption reads for the dashboard.

Member resolution gates everything else: an authenticated user without a
member row has nothing to view. Balance, history and redemptions are
supplementary and degrade to defaults on failure.

A full dashboard load is idempotent and safe to re-run on every refresh:
member first, then balance, then history and redemptions concurrently.
Each resource goes through ResourceStateStore so an older request that
finishes late never replaces newer data.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from ..models import Member, Balance, LedgerEntry, Redemption
from ..utils.exceptions import SupabaseError, MemberNotFoundError
from . import resource_state
from .resource_state import ResourceStateStore
from .supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50

MEMBERS_TABLE = 'loyalty_members'
BALANCES_TABLE = 'member_balances'
LEDGER_TABLE = 'points_ledger'
REDEMPTIONS_TABLE = 'redemptions'

MEMBER_COLUMNS = 'id, email, user_id, created_at'
LEDGER_COLUMNS = 'id, member_id, delta_points, reason, created_at'
REDEMPTION_COLUMNS = (
    'id, member_id, reward_id, discount_code, status, created_at, '
    'reward:rewards ( id, name, cost_points )'
)

FETCH_ERRORS = (SupabaseError, requests.exceptions.RequestException)


@dataclass
class DashboardData:
    member: Member
    balance: Balance
    history: List[LedgerEntry] = field(default_factory=list)
    redemptions: List[Redemption] = field(default_factory=list)


class MemberService:
    """Read-side of the member dashboard."""

    def __init__(
        self,
        supabase: SupabaseClient,
        store: Optional[ResourceStateStore] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self.supabase = supabase
        self.store = store
        self.history_limit = history_limit

    # ==================== SINGLE RESOURCES ====================

    def load_member(self, user_id: str, access_token: str) -> Member:
        """
        Fetch the member linked to an authenticated user.

        Raises:
            MemberNotFoundError: No member provisioned for this user
            SupabaseError / requests.RequestException: Query or transport failure
        """
        row = self.supabase.select_one(
            MEMBERS_TABLE,
            MEMBER_COLUMNS,
            filters={'user_id': user_id},
            access_token=access_token,
        )
        if not row:
            raise MemberNotFoundError(user_id)
        return Member.from_row(row)

    def load_balance(self, member_id: str, access_token: str) -> Balance:
        """Points balance; a missing row or failed query reads as zero."""
        try:
            row = self.supabase.select_one(
                BALANCES_TABLE,
                'points',
                filters={'member_id': member_id},
                access_token=access_token,
            )
        except FETCH_ERRORS as e:
            logger.warning('Balance fetch failed for member %s: %s', member_id, e)
            row = None
        return Balance.from_row(member_id, row)

    def load_history(self, member_id: str, access_token: str) -> List[LedgerEntry]:
        """Most recent ledger entries, newest first. Errors yield an empty list."""
        try:
            rows = self.supabase.select(
                LEDGER_TABLE,
                LEDGER_COLUMNS,
                filters={'member_id': member_id},
                order='created_at',
                descending=True,
                limit=self.history_limit,
                access_token=access_token,
            )
        except FETCH_ERRORS as e:
            logger.warning('Ledger fetch failed for member %s: %s', member_id, e)
            return []
        return [LedgerEntry.from_row(r) for r in rows if isinstance(r, dict)]

    def load_redemptions(self, member_id: str, access_token: str) -> List[Redemption]:
        """
        Most recent redemptions joined to their reward, newest first.

        A row whose reward join is missing keeps a placeholder reward
        instead of being dropped. Errors yield an empty list.
        """
        try:
            rows = self.supabase.select(
                REDEMPTIONS_TABLE,
                REDEMPTION_COLUMNS,
                filters={'member_id': member_id},
                order='created_at',
                descending=True,
                limit=self.history_limit,
                access_token=access_token,
            )
        except FETCH_ERRORS as e:
            logger.warning('Redemptions fetch failed for member %s: %s', member_id, e)
            return []
        return [Redemption.from_row(r) for r in rows if isinstance(r, dict)]

    # ==================== ORCHESTRATION ====================

    def load_dashboard(self, user_id: str, access_token: str) -> DashboardData:
        """
        Load member, balance, history and redemptions for a session.

        History and redemptions run concurrently once the member is known;
        a failure in one does not affect the other.

        Raises:
            MemberNotFoundError: No member for this user (terminal for the session)
            SupabaseError / requests.RequestException: Member query failed
        """
        member = self._tracked(
            user_id, resource_state.MEMBER,
            lambda: self.load_member(user_id, access_token),
        )
        balance = self._tracked(
            user_id, resource_state.BALANCE,
            lambda: self.load_balance(member.id, access_token),
        )

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix='dashboard') as pool:
            history_future = pool.submit(
                self._tracked, user_id, resource_state.HISTORY,
                lambda: self.load_history(member.id, access_token),
            )
            redemptions_future = pool.submit(
                self._tracked, user_id, resource_state.REDEMPTIONS,
                lambda: self.load_redemptions(member.id, access_token),
            )
            history = history_future.result()
            redemptions = redemptions_future.result()

        return DashboardData(
            member=member,
            balance=balance,
            history=history,
            redemptions=redemptions,
        )

    def refresh_history(self, user_id: str, member_id: str, access_token: str) -> List[LedgerEntry]:
        return self._tracked(
            user_id, resource_state.HISTORY,
            lambda: self.load_history(member_id, access_token),
        )

    def refresh_redemptions(self, user_id: str, member_id: str, access_token: str) -> List[Redemption]:
        return self._tracked(
            user_id, resource_state.REDEMPTIONS,
            lambda: self.load_redemptions(member_id, access_token),
        )

    def _tracked(self, user_id: str, resource: str, fetch):
        """Run a fetch under a generation; return the freshest committed value."""
        if self.store is None:
            return fetch()
        generation = self.store.issue(user_id, resource)
        value = fetch()
        return self.store.resolve(user_id, resource, generation, value)
