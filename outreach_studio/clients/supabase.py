"""Supabase row store for campaigns, steps and linked candidates."""

import asyncio
import os
from typing import Optional

from supabase import create_client, Client
import structlog

from outreach_studio.core.config import SupabaseConfig

log = structlog.get_logger()


class SupabaseCampaignStore:
    """Row-level campaign operations. No transactional guarantees.

    The supabase client is synchronous, so each call runs in a worker thread
    to keep the event loop free.
    """

    def __init__(self, tables: Optional[SupabaseConfig] = None):
        """Initialize Supabase client from environment variables."""
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_KEY")

        if not url:
            raise ValueError("SUPABASE_URL environment variable is required")
        if not key:
            raise ValueError("SUPABASE_KEY environment variable is required")

        self.client: Client = create_client(url, key)
        self.tables = tables or SupabaseConfig()

    def _nest_steps(self, row: dict) -> dict:
        row = dict(row)
        row["campaign_steps"] = row.pop(self.tables.steps_table, None) or []
        return row

    def _insert_campaign(self, header: dict) -> dict:
        result = self.client.table(self.tables.campaigns_table).insert(header).execute()
        return result.data[0]

    def _insert_steps(self, rows: list[dict]) -> list[dict]:
        result = self.client.table(self.tables.steps_table).insert(rows).execute()
        return result.data

    def _update_campaign(self, campaign_id: str, patch: dict) -> dict:
        result = (
            self.client.table(self.tables.campaigns_table)
            .update(patch)
            .eq("id", campaign_id)
            .execute()
        )
        if not result.data:
            raise LookupError(f"Campaign not found: {campaign_id}")
        return result.data[0]

    def _delete_campaign(self, campaign_id: str) -> None:
        self.client.table(self.tables.campaigns_table).delete().eq("id", campaign_id).execute()

    def _delete_steps(self, campaign_id: str) -> None:
        self.client.table(self.tables.steps_table).delete().eq("campaign_id", campaign_id).execute()

    def _insert_candidates(self, rows: list[dict]) -> None:
        self.client.table(self.tables.candidates_table).insert(rows).execute()

    def _list_campaigns(self, user_id: str, project_id: Optional[str]) -> list[dict]:
        query = (
            self.client.table(self.tables.campaigns_table)
            .select(f"*, {self.tables.steps_table}(*)")
            .eq("user_id", user_id)
        )
        if project_id:
            query = query.eq("project_id", project_id)
        result = query.order("created_at", desc=True).execute()
        return [self._nest_steps(row) for row in result.data]

    def _get_campaign(self, campaign_id: str) -> Optional[dict]:
        result = (
            self.client.table(self.tables.campaigns_table)
            .select(f"*, {self.tables.steps_table}(*)")
            .eq("id", campaign_id)
            .execute()
        )
        return self._nest_steps(result.data[0]) if result.data else None

    async def insert_campaign(self, header: dict) -> dict:
        return await asyncio.to_thread(self._insert_campaign, header)

    async def insert_steps(self, rows: list[dict]) -> list[dict]:
        return await asyncio.to_thread(self._insert_steps, rows)

    async def update_campaign(self, campaign_id: str, patch: dict) -> dict:
        return await asyncio.to_thread(self._update_campaign, campaign_id, patch)

    async def delete_campaign(self, campaign_id: str) -> None:
        await asyncio.to_thread(self._delete_campaign, campaign_id)

    async def delete_steps(self, campaign_id: str) -> None:
        await asyncio.to_thread(self._delete_steps, campaign_id)

    async def insert_candidates(self, rows: list[dict]) -> None:
        await asyncio.to_thread(self._insert_candidates, rows)

    async def list_campaigns(self, user_id: str, project_id: Optional[str] = None) -> list[dict]:
        return await asyncio.to_thread(self._list_campaigns, user_id, project_id)

    async def get_campaign(self, campaign_id: str) -> Optional[dict]:
        return await asyncio.to_thread(self._get_campaign, campaign_id)
