"""
Flask extensions initialization.
"""
from .services.supabase_client import SupabaseClient
from .services.resource_state import ResourceStateStore
from .services.redemption_service import InFlightRedemptions

# Supabase transport (auth, data, functions)
supabase = SupabaseClient()

# Latest-response-wins snapshots per user resource
resource_state = ResourceStateStore()

# Redemption calls currently running per (user, reward)
inflight_redemptions = InFlightRedemptions()
