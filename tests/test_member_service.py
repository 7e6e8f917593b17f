"""
Tests for the member dashboard reads.

Covers member resolution, tolerant balance/history/redemption fetches,
the placeholder reward join and latest-response-wins tracking.
"""
import pytest
import requests
from unittest.mock import MagicMock

from loyalty_portal.services import resource_state
from loyalty_portal.services.member_service import MemberService
from loyalty_portal.services.resource_state import ResourceStateStore
from loyalty_portal.services.supabase_client import SupabaseClient
from loyalty_portal.utils.exceptions import MemberNotFoundError, SupabaseError

from conftest import MEMBER_ID, USER_ID, member_row, table_router


@pytest.fixture
def supabase():
    return MagicMock(spec=SupabaseClient)


@pytest.fixture
def store():
    return ResourceStateStore()


@pytest.fixture
def service(supabase, store):
    return MemberService(supabase, store=store)


def _route(supabase, **tables):
    rows, select, select_one = table_router(**tables)
    supabase.select.side_effect = select
    supabase.select_one.side_effect = select_one
    return rows


class TestLoadMember:

    def test_member_by_user_id(self, service, supabase):
        """The member is looked up by auth user id with the caller's token."""
        supabase.select_one.return_value = member_row()

        member = service.load_member(USER_ID, 'tok')

        assert member.id == MEMBER_ID
        assert member.email == 'ana@example.com'
        args, kwargs = supabase.select_one.call_args
        assert args[0] == 'loyalty_members'
        assert kwargs['filters'] == {'user_id': USER_ID}
        assert kwargs['access_token'] == 'tok'

    def test_missing_member_raises(self, service, supabase):
        """No member row raises MemberNotFoundError."""
        supabase.select_one.return_value = None

        with pytest.raises(MemberNotFoundError):
            service.load_member(USER_ID, 'tok')

    def test_query_failure_propagates(self, service, supabase):
        """Member query failures are not swallowed."""
        supabase.select_one.side_effect = SupabaseError('permission denied', status=403)

        with pytest.raises(SupabaseError):
            service.load_member(USER_ID, 'tok')


class TestLoadBalance:

    def test_points(self, service, supabase):
        supabase.select_one.return_value = {'points': 1500}

        assert service.load_balance(MEMBER_ID, 'tok').points == 1500

    def test_missing_row_is_zero(self, service, supabase):
        """A missing balance row reads as zero points."""
        supabase.select_one.return_value = None

        assert service.load_balance(MEMBER_ID, 'tok').points == 0

    def test_failure_is_zero(self, service, supabase):
        """A failed balance query reads as zero points."""
        supabase.select_one.side_effect = requests.exceptions.ConnectionError()

        assert service.load_balance(MEMBER_ID, 'tok').points == 0


class TestLoadHistory:

    def test_newest_first_with_limit(self, supabase, store):
        """History is ordered newest first and capped at the limit."""
        service = MemberService(supabase, store=store, history_limit=50)
        supabase.select.return_value = [
            {'id': 'l1', 'member_id': MEMBER_ID, 'delta_points': 100,
             'reason': 'order:1', 'created_at': '2024-03-01T00:00:00Z'},
        ]

        entries = service.load_history(MEMBER_ID, 'tok')

        assert [e.id for e in entries] == ['l1']
        args, kwargs = supabase.select.call_args
        assert args[0] == 'points_ledger'
        assert kwargs['order'] == 'created_at'
        assert kwargs['descending'] is True
        assert kwargs['limit'] == 50

    def test_failure_is_empty(self, service, supabase):
        """A failed history query reads as an empty list."""
        supabase.select.side_effect = SupabaseError('boom', status=500)

        assert service.load_history(MEMBER_ID, 'tok') == []


class TestLoadRedemptions:

    def test_joined_reward(self, service, supabase):
        """Redemptions embed the reward name and cost."""
        supabase.select.return_value = [
            {'id': 'r1', 'member_id': MEMBER_ID, 'reward_id': 'reward-a',
             'discount_code': 'CODE1', 'status': 'active', 'created_at': '2024-03-01T00:00:00Z',
             'reward': {'id': 'reward-a', 'name': 'Frete grátis', 'cost_points': 300}},
        ]

        redemptions = service.load_redemptions(MEMBER_ID, 'tok')

        assert redemptions[0].reward.name == 'Frete grátis'
        assert redemptions[0].reward.cost_points == 300
        columns = supabase.select.call_args[0][1]
        assert 'reward:rewards' in columns

    def test_missing_join_uses_placeholder(self, service, supabase):
        """A redemption whose reward is gone gets the placeholder reward."""
        supabase.select.return_value = [
            {'id': 'r1', 'member_id': MEMBER_ID, 'reward_id': 'reward-gone',
             'discount_code': 'CODE1', 'status': 'used', 'created_at': '2024-03-01T00:00:00Z',
             'reward': None},
        ]

        redemption = service.load_redemptions(MEMBER_ID, 'tok')[0]

        assert redemption.reward.id == 'reward-gone'
        assert redemption.reward.name == 'Recompensa'
        assert redemption.reward.cost_points == 0

    def test_failure_is_empty(self, service, supabase):
        """A failed redemptions query reads as an empty list."""
        supabase.select.side_effect = requests.exceptions.Timeout()

        assert service.load_redemptions(MEMBER_ID, 'tok') == []


class TestLoadDashboard:

    def test_full_load(self, service, supabase):
        """A full load returns member, balance, history and redemptions."""
        _route(
            supabase,
            member=member_row(),
            points=500,
            ledger=[{'id': 'l1', 'member_id': MEMBER_ID, 'delta_points': 500,
                     'reason': 'order:1', 'created_at': '2024-03-01T00:00:00Z'}],
            redemptions=[],
        )

        data = service.load_dashboard(USER_ID, 'tok')

        assert data.member.id == MEMBER_ID
        assert data.balance.points == 500
        assert len(data.history) == 1
        assert data.redemptions == []

    def test_history_failure_does_not_affect_redemptions(self, service, supabase):
        """History and redemptions fail independently."""
        tables = _route(
            supabase,
            member=member_row(),
            points=10,
            redemptions=[{'id': 'r1', 'member_id': MEMBER_ID, 'reward_id': 'x',
                          'discount_code': 'C', 'status': 'active',
                          'created_at': '2024-03-01T00:00:00Z'}],
        )
        tables['points_ledger'] = SupabaseError('boom', status=500)

        data = service.load_dashboard(USER_ID, 'tok')

        assert data.history == []
        assert [r.id for r in data.redemptions] == ['r1']

    def test_missing_member_stops_load(self, service, supabase):
        """Without a member nothing else is queried."""
        _route(supabase, member=None)

        with pytest.raises(MemberNotFoundError):
            service.load_dashboard(USER_ID, 'tok')

        assert supabase.select.call_count == 0

    def test_snapshots_committed(self, service, supabase, store):
        """Loaded resources are committed to the store."""
        _route(supabase, member=member_row(), points=42)

        service.load_dashboard(USER_ID, 'tok')

        assert store.get(USER_ID, resource_state.BALANCE).points == 42
        assert store.get(USER_ID, resource_state.MEMBER).id == MEMBER_ID

    def test_stale_history_response_is_discarded(self, service, supabase, store):
        """An older response finishing late does not replace newer data."""
        # A newer history fetch already committed while this one was running
        fresh = ['fresh']

        def slow_fetch():
            newer = store.issue(USER_ID, resource_state.HISTORY)
            store.commit(USER_ID, resource_state.HISTORY, newer, fresh)
            return ['stale']

        result = service._tracked(USER_ID, resource_state.HISTORY, slow_fetch)

        assert result == fresh
        assert store.get(USER_ID, resource_state.HISTORY) == fresh


class TestRepeatedLoads:
    """Reloading without any mutation in between gives the same data."""

    LEDGER = [
        {'id': 'l2', 'member_id': MEMBER_ID, 'delta_points': -200,
         'reason': 'redeem:r1', 'created_at': '2024-03-02T00:00:00Z'},
        {'id': 'l1', 'member_id': MEMBER_ID, 'delta_points': 700,
         'reason': 'order:123', 'created_at': '2024-03-01T00:00:00Z'},
    ]
    REDEMPTIONS = [
        {'id': 'r1', 'member_id': MEMBER_ID, 'reward_id': 'reward-a',
         'discount_code': 'LOYAL-AAA', 'status': 'active', 'created_at': '2024-03-02T00:00:00Z',
         'reward': {'id': 'reward-a', 'name': 'Frete grátis', 'cost_points': 200}},
    ]

    def _route_member(self, supabase):
        _route(supabase, member=member_row(), points=500,
               ledger=self.LEDGER, redemptions=self.REDEMPTIONS)

    def test_dashboard_twice_is_identical(self, service, supabase):
        """Two full loads against unchanged tables compare equal field by field."""
        self._route_member(supabase)

        first = service.load_dashboard(USER_ID, 'tok')
        second = service.load_dashboard(USER_ID, 'tok')

        assert first == second
        assert first.balance.points == 500
        assert [e.id for e in first.history] == ['l2', 'l1']
        assert [r.id for r in first.redemptions] == ['r1']

    def test_refresh_history_twice_is_identical(self, service, supabase):
        """Refreshing history twice returns equal entries."""
        self._route_member(supabase)

        first = service.refresh_history(USER_ID, MEMBER_ID, 'tok')
        second = service.refresh_history(USER_ID, MEMBER_ID, 'tok')

        assert first == second
        assert len(first) == 2

    def test_refresh_redemptions_twice_is_identical(self, service, supabase):
        """Refreshing redemptions twice returns equal rows."""
        self._route_member(supabase)

        first = service.refresh_redemptions(USER_ID, MEMBER_ID, 'tok')
        second = service.refresh_redemptions(USER_ID, MEMBER_ID, 'tok')

        assert first == second
        assert first[0].reward.name == 'Frete grátis'

    def test_balance_twice_is_identical(self, service, supabase):
        self._route_member(supabase)

        assert service.load_balance(MEMBER_ID, 'tok') == service.load_balance(MEMBER_ID, 'tok')
