"""Shared fixtures for campaign tests."""

import pytest

from outreach_studio.campaigns.models import (
    CampaignDraft,
    CampaignParameters,
    CampaignType,
    DelayUnit,
    EmailStep,
)
from outreach_studio.core.config import ProgressConfig


class FakeCampaignStore:
    """In-memory row store. Set fail_on[operation] to make that call raise."""

    def __init__(self):
        self.campaigns: dict[str, dict] = {}
        self.steps: list[dict] = []
        self.candidates: list[dict] = []
        self.fail_on: dict[str, Exception] = {}
        self.calls: list[str] = []
        self._next_id = 0

    def _call(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise self.fail_on[operation]

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    def steps_for(self, campaign_id: str) -> list[dict]:
        rows = [s for s in self.steps if s["campaign_id"] == campaign_id]
        return sorted(rows, key=lambda s: s["step_order"])

    def _with_steps(self, row: dict) -> dict:
        return {**row, "campaign_steps": self.steps_for(row["id"])}

    async def insert_campaign(self, header: dict) -> dict:
        self._call("insert_campaign")
        row = {**header, "id": self._new_id("campaign")}
        self.campaigns[row["id"]] = row
        return dict(row)

    async def insert_steps(self, rows: list[dict]) -> list[dict]:
        self._call("insert_steps")
        inserted = [{**row, "id": self._new_id("step-row")} for row in rows]
        self.steps.extend(inserted)
        return [dict(row) for row in inserted]

    async def update_campaign(self, campaign_id: str, patch: dict) -> dict:
        self._call("update_campaign")
        if campaign_id not in self.campaigns:
            raise LookupError(f"Campaign not found: {campaign_id}")
        self.campaigns[campaign_id].update(patch)
        return dict(self.campaigns[campaign_id])

    async def delete_campaign(self, campaign_id: str) -> None:
        self._call("delete_campaign")
        self.campaigns.pop(campaign_id, None)

    async def delete_steps(self, campaign_id: str) -> None:
        self._call("delete_steps")
        self.steps = [s for s in self.steps if s["campaign_id"] != campaign_id]

    async def insert_candidates(self, rows: list[dict]) -> None:
        self._call("insert_candidates")
        self.candidates.extend(rows)

    async def list_campaigns(self, user_id: str, project_id=None) -> list[dict]:
        self._call("list_campaigns")
        return [
            self._with_steps(row)
            for row in self.campaigns.values()
            if row["user_id"] == user_id and (not project_id or row["project_id"] == project_id)
        ]

    async def get_campaign(self, campaign_id: str):
        self._call("get_campaign")
        row = self.campaigns.get(campaign_id)
        return self._with_steps(row) if row else None


@pytest.fixture
def store():
    return FakeCampaignStore()


@pytest.fixture
def instant_progress():
    return ProgressConfig(min_stage_seconds=0, max_stage_seconds=0, final_pause_seconds=0)


@pytest.fixture
def params():
    return CampaignParameters(
        campaign_type=CampaignType.NURTURE,
        target_audience="new grads",
        campaign_goal="keep warm",
        company_name="HCA Healthcare",
        recruiter_name="Sarah Johnson",
    )


@pytest.fixture
def draft(params):
    return CampaignDraft(
        parameters=params,
        name="Test",
        steps=(
            EmailStep(
                id="step-1",
                subject="Hi",
                content="Hello {{First Name}}",
                delay=0,
                delay_unit=DelayUnit.IMMEDIATELY,
            ),
        ),
    )


@pytest.fixture
def raw_steps():
    return [
        {"type": "email", "subject": "Welcome", "content": "Hi {{First Name}}", "delay": 0, "delayUnit": "immediately"},
        {"type": "email", "subject": "Checking in", "content": "Still interested?", "delay": 3, "delayUnit": "business days"},
        {"type": "email", "subject": "Last note", "content": "Reply anytime.", "delay": 4, "delayUnit": "business days"},
    ]
