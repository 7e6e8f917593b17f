"""
Rewards catalog reads.
"""
import logging
from typing import List, Optional

from ..models import Reward
from .resource_state import ResourceStateStore, REWARDS
from .supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

REWARDS_TABLE = 'rewards'
REWARD_COLUMNS = 'id, name, cost_points, discount_type, discount_value'


class RewardsService:

    def __init__(self, supabase: SupabaseClient, store: Optional[ResourceStateStore] = None):
        self.supabase = supabase
        self.store = store

    def list_active_rewards(self, access_token: str = None, user_id: str = None) -> List[Reward]:
        """
        Active rewards, cheapest first. No pagination.

        Raises:
            SupabaseError / requests.RequestException: Query failed; the
            caller shows a toast and renders an empty catalog
        """
        generation = None
        if self.store is not None and user_id:
            generation = self.store.issue(user_id, REWARDS)

        rows = self.supabase.select(
            REWARDS_TABLE,
            REWARD_COLUMNS,
            filters={'active': True},
            order='cost_points',
            descending=False,
            access_token=access_token,
        )
        rewards = []
        for row in rows:
            try:
                rewards.append(Reward.from_row(row))
            except (ValueError, TypeError) as e:
                logger.warning('Skipping malformed reward row %s: %s', row.get('id'), e)

        if generation is not None:
            return self.store.resolve(user_id, REWARDS, generation, rewards)
        return rewards
