"""External API clients: Supabase."""

from outreach_studio.clients.supabase import SupabaseCampaignStore
