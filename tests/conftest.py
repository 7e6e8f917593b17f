"""
Shared pytest fixtures for the loyalty portal.

Supabase is never reached: `supabase_mock` replaces the transport on the
app and each test scripts the rows or errors it needs.
"""
import pytest
from unittest.mock import MagicMock

from loyalty_portal import create_app
from loyalty_portal.services.redemption_service import InFlightRedemptions
from loyalty_portal.services.resource_state import ResourceStateStore
from loyalty_portal.services.supabase_client import SupabaseClient

USER_ID = 'user-123'
MEMBER_ID = 'member-1'
ACCESS_TOKEN = 'access-token-abc'


def member_row(**overrides):
    row = {
        'id': MEMBER_ID,
        'email': 'ana@example.com',
        'user_id': USER_ID,
        'created_at': '2024-01-15T10:00:00+00:00',
    }
    row.update(overrides)
    return row


def reward_row(reward_id='reward-a', cost=500, **overrides):
    row = {
        'id': reward_id,
        'name': f'Reward {reward_id}',
        'cost_points': cost,
        'discount_type': 'percentage',
        'discount_value': 10,
    }
    row.update(overrides)
    return row


def table_router(member=None, points=None, ledger=None, redemptions=None, rewards=None):
    """
    Build select / select_one side effects keyed by table name.

    Pass an Exception instance for a table to make its query raise.
    """
    tables = {
        'loyalty_members': [member] if member else [],
        'member_balances': [{'points': points}] if points is not None else [],
        'points_ledger': ledger or [],
        'redemptions': redemptions or [],
        'rewards': rewards or [],
    }

    def select(table, columns='*', **kwargs):
        rows = tables[table]
        if isinstance(rows, Exception):
            raise rows
        return list(rows)

    def select_one(table, columns='*', **kwargs):
        rows = select(table, columns, **kwargs)
        return rows[0] if rows else None

    return tables, select, select_one


@pytest.fixture
def app():
    """Create application for testing."""
    app = create_app('testing')
    # Fresh in-process stores per test
    app.extensions['resource_state'] = ResourceStateStore()
    app.extensions['inflight_redemptions'] = InFlightRedemptions()
    yield app


@pytest.fixture
def supabase_mock(app):
    """Supabase transport double installed on the app."""
    mock = MagicMock(spec=SupabaseClient)
    app.extensions['supabase'] = mock
    return mock


@pytest.fixture
def client(app, supabase_mock):
    """Test client with the Supabase transport mocked."""
    return app.test_client()


@pytest.fixture
def signed_in_client(client):
    """Client whose session already holds a verified auth session."""
    with client.session_transaction() as sess:
        sess['auth'] = {
            'access_token': ACCESS_TOKEN,
            'refresh_token': 'refresh-token',
            'expires_at': None,
            'user': {'id': USER_ID, 'email': 'ana@example.com'},
        }
    return client


@pytest.fixture
def member_tables(supabase_mock):
    """Member with 500 points, two ledger rows and one redemption."""
    tables, select, select_one = table_router(
        member=member_row(),
        points=500,
        ledger=[
            {'id': 'l2', 'member_id': MEMBER_ID, 'delta_points': -200,
             'reason': 'redeem:r1', 'created_at': '2024-03-02T12:00:00+00:00'},
            {'id': 'l1', 'member_id': MEMBER_ID, 'delta_points': 700,
             'reason': 'order:123', 'created_at': '2024-03-01T09:30:00+00:00'},
        ],
        redemptions=[
            {'id': 'r1', 'member_id': MEMBER_ID, 'reward_id': 'reward-a',
             'discount_code': 'LOYAL-AAA', 'status': 'active',
             'created_at': '2024-03-02T12:00:00+00:00',
             'reward': {'id': 'reward-a', 'name': '10% na loja', 'cost_points': 200}},
        ],
        rewards=[reward_row('reward-a', 500), reward_row('reward-b', 501)],
    )
    supabase_mock.select.side_effect = select
    supabase_mock.select_one.side_effect = select_one
    return tables
