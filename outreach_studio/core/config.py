"""Configuration loading and models."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel


class AIConfig(BaseModel):
    generation_model: str = "claude-sonnet-4-20250514"
    naming_model: str = "claude-sonnet-4-20250514"
    generation_max_tokens: int = 4000
    naming_max_tokens: int = 50
    temperature: float = 0.5


class DefaultsConfig(BaseModel):
    company_name: str = "HCA Healthcare"
    recruiter_name: str = "Sarah Johnson"
    tone: str = "professional"
    email_length: str = "concise"


class SequenceConfig(BaseModel):
    followup_delay_days: int = 3


class ProgressConfig(BaseModel):
    min_stage_seconds: float = 1.0
    max_stage_seconds: float = 2.0
    final_pause_seconds: float = 0.5


class SupabaseConfig(BaseModel):
    campaigns_table: str = "campaigns"
    steps_table: str = "campaign_steps"
    candidates_table: str = "campaign_candidates"


class Settings(BaseModel):
    ai: AIConfig = AIConfig()
    defaults: DefaultsConfig = DefaultsConfig()
    sequence: SequenceConfig = SequenceConfig()
    progress: ProgressConfig = ProgressConfig()
    supabase: SupabaseConfig = SupabaseConfig()


class SequenceOutline(BaseModel):
    steps: int = 3
    duration: int = 6
    description: str = ""
    examples: list[str] = []


class CampaignExample(BaseModel):
    """Example sequence used as a hint when generating a campaign."""
    id: str
    campaign_type: str
    campaign_goal: str
    sequence: SequenceOutline = SequenceOutline()
    collateral: list[str] = []


DEFAULT_CONFIG_PATH = Path("config")


def load_settings(config_path: Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Load settings from YAML file."""
    settings_file = config_path / "settings.yaml"

    if not settings_file.exists():
        return Settings()

    with open(settings_file) as f:
        data = yaml.safe_load(f) or {}

    return Settings(**data)


def load_campaign_examples(config_path: Path = DEFAULT_CONFIG_PATH) -> list[CampaignExample]:
    """Load the campaign example catalogue from campaign_examples.yaml."""
    examples_file = config_path / "campaign_examples.yaml"

    if not examples_file.exists():
        return []

    with open(examples_file) as f:
        data = yaml.safe_load(f) or {}

    return [CampaignExample(**item) for item in data.get("examples", [])]


def get_examples_by_type(
    examples: list[CampaignExample], campaign_type: str
) -> list[CampaignExample]:
    """Filter catalogue entries for one campaign type."""
    return [e for e in examples if e.campaign_type == campaign_type]


def find_example_by_goal(
    examples: list[CampaignExample], goal: str
) -> Optional[CampaignExample]:
    """Find an example whose goal overlaps the given goal text."""
    needle = goal.strip().lower()
    if not needle:
        return None
    for example in examples:
        haystack = example.campaign_goal.lower()
        if needle in haystack or haystack in needle:
            return example
    return None
