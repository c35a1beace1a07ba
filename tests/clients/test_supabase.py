"""Tests for Supabase campaign store."""

from unittest.mock import MagicMock, patch

import pytest

from outreach_studio.clients.supabase import SupabaseCampaignStore

ENV = {"SUPABASE_URL": "https://test.supabase.co", "SUPABASE_KEY": "test-key"}


def _store(mock_client):
    with patch("outreach_studio.clients.supabase.create_client", return_value=mock_client):
        with patch.dict("os.environ", ENV):
            return SupabaseCampaignStore()


def test_store_init_requires_env_vars():
    """Store should raise if SUPABASE_URL or SUPABASE_KEY is not set."""
    with patch.dict("os.environ", {}, clear=True):
        with pytest.raises(ValueError, match="SUPABASE_URL"):
            SupabaseCampaignStore()

    with patch.dict("os.environ", {"SUPABASE_URL": "https://test.supabase.co"}, clear=True):
        with pytest.raises(ValueError, match="SUPABASE_KEY"):
            SupabaseCampaignStore()


@pytest.mark.asyncio
async def test_insert_campaign_returns_row():
    mock_client = MagicMock()
    mock_client.table.return_value.insert.return_value.execute.return_value.data = [{"id": "c1", "name": "Test"}]
    store = _store(mock_client)

    row = await store.insert_campaign({"name": "Test"})

    assert row == {"id": "c1", "name": "Test"}
    mock_client.table.assert_called_with("campaigns")


@pytest.mark.asyncio
async def test_update_missing_campaign_raises():
    mock_client = MagicMock()
    mock_client.table.return_value.update.return_value.eq.return_value.execute.return_value.data = []
    store = _store(mock_client)

    with pytest.raises(LookupError):
        await store.update_campaign("missing", {"name": "x"})


@pytest.mark.asyncio
async def test_delete_steps_filters_by_campaign():
    mock_client = MagicMock()
    store = _store(mock_client)

    await store.delete_steps("c1")

    mock_client.table.assert_called_with("campaign_steps")
    mock_client.table.return_value.delete.return_value.eq.assert_called_with("campaign_id", "c1")


@pytest.mark.asyncio
async def test_get_campaign_nests_steps():
    mock_client = MagicMock()
    query = mock_client.table.return_value.select.return_value.eq.return_value
    query.execute.return_value.data = [
        {"id": "c1", "name": "Test", "campaign_steps": [{"id": "s1", "step_order": 1}]}
    ]
    store = _store(mock_client)

    row = await store.get_campaign("c1")

    assert row["campaign_steps"] == [{"id": "s1", "step_order": 1}]
    mock_client.table.return_value.select.assert_called_with("*, campaign_steps(*)")


@pytest.mark.asyncio
async def test_get_campaign_not_found():
    mock_client = MagicMock()
    mock_client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = []
    store = _store(mock_client)

    assert await store.get_campaign("missing") is None
