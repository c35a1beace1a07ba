"""Core infrastructure: CLI and config."""

from outreach_studio.core.config import (
    Settings,
    AIConfig,
    DefaultsConfig,
    SequenceConfig,
    ProgressConfig,
    SupabaseConfig,
    CampaignExample,
    load_settings,
    load_campaign_examples,
    get_examples_by_type,
)
