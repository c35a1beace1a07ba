"""Committing campaign drafts to the row store.

The store offers no transactions, so create and update are strictly
sequenced and create compensates a failed step insert by deleting the header.
"""

from typing import Optional, Protocol

import structlog

from outreach_studio.campaigns.delays import normalize_steps
from outreach_studio.campaigns.errors import PersistenceError
from outreach_studio.campaigns.models import (
    CampaignDraft,
    CampaignStatus,
    EmailStep,
    PersistedCampaign,
    SourceContext,
    StepType,
)

log = structlog.get_logger()

OWNERSHIP_FIELDS = ("user_id", "project_id", "status", "settings", "stats")


class CampaignStore(Protocol):
    async def insert_campaign(self, header: dict) -> dict: ...
    async def insert_steps(self, rows: list[dict]) -> list[dict]: ...
    async def update_campaign(self, campaign_id: str, patch: dict) -> dict: ...
    async def delete_campaign(self, campaign_id: str) -> None: ...
    async def delete_steps(self, campaign_id: str) -> None: ...
    async def insert_candidates(self, rows: list[dict]) -> None: ...
    async def list_campaigns(self, user_id: str, project_id: Optional[str] = None) -> list[dict]: ...
    async def get_campaign(self, campaign_id: str) -> Optional[dict]: ...


def build_campaign_header(draft: CampaignDraft, user_id: str, project_id: str) -> dict:
    """Header row for a new campaign."""
    params = draft.parameters
    return {
        "user_id": user_id,
        "project_id": project_id,
        "name": draft.name.strip(),
        "type": params.campaign_type.value,
        "status": CampaignStatus.DRAFT.value,
        "target_audience": params.target_audience.strip(),
        "campaign_goal": params.campaign_goal.strip(),
        "content_sources": [s.model_dump() for s in params.content_sources],
        "ai_instructions": params.ai_instructions.strip() or None,
        "tone": params.tone.value,
        "company_name": params.company_name.strip(),
        "recruiter_name": params.recruiter_name.strip(),
        "settings": {},
        "stats": {"sent": 0, "opened": 0, "replied": 0},
    }


def build_campaign_patch(draft: CampaignDraft) -> dict:
    """Header fields an edit may change; ownership, status and stats are kept."""
    header = build_campaign_header(draft, "", "")
    return {k: v for k, v in header.items() if k not in OWNERSHIP_FIELDS}


def build_step_rows(steps: list[EmailStep]) -> list[dict]:
    """Step rows in editor order, with units normalized a second time."""
    return [
        {
            "type": StepType(step.type).value,
            "subject": step.subject.strip(),
            "content": step.content.strip(),
            "delay": max(0, step.delay or 0),
            "delay_unit": step.delay_unit.value,
        }
        for step in normalize_steps(steps)
    ]


def _with_order(campaign_id: str, rows: list[dict]) -> list[dict]:
    return [
        {**row, "campaign_id": campaign_id, "step_order": index}
        for index, row in enumerate(rows, start=1)
    ]


class CampaignCoordinator:
    """Create, update, list and delete persisted campaigns."""

    def __init__(self, store: CampaignStore):
        self.store = store

    async def create(
        self,
        header: dict,
        steps: list[dict],
        candidate_ids: Optional[list[str]] = None,
        source_context: Optional[SourceContext] = None,
    ) -> PersistedCampaign:
        log.info("creating_campaign", name=header.get("name"), steps=len(steps))

        try:
            campaign_row = await self.store.insert_campaign(header)
        except Exception as e:
            log.error("campaign_insert_failed", error=str(e))
            raise PersistenceError(str(e), stage="insert_campaign") from e

        campaign_id = campaign_row["id"]
        log.info("campaign_created", campaign_id=campaign_id)

        try:
            step_rows = await self.store.insert_steps(_with_order(campaign_id, steps))
        except Exception as e:
            log.error("campaign_steps_insert_failed", campaign_id=campaign_id, error=str(e))
            await self._compensate(campaign_id)
            raise PersistenceError(str(e), stage="insert_steps") from e

        if candidate_ids and source_context:
            await self.link_candidates(campaign_id, candidate_ids, source_context)

        log.info("campaign_create_completed", campaign_id=campaign_id, steps=len(step_rows))
        return PersistedCampaign.from_row(campaign_row, step_rows)

    async def _compensate(self, campaign_id: str) -> None:
        try:
            await self.store.delete_campaign(campaign_id)
            log.info("campaign_header_compensated", campaign_id=campaign_id)
        except Exception as e:
            log.error("campaign_compensation_failed", campaign_id=campaign_id, error=str(e))

    async def update(
        self,
        campaign_id: str,
        patch: dict,
        steps: Optional[list[dict]] = None,
    ) -> PersistedCampaign:
        """Update the header in place and, if given, replace every step.

        Old steps are deleted before the header is touched, so a failed
        delete leaves the campaign exactly as it was. If the header update
        then fails, the new steps are still inserted so the campaign is never
        left empty by a header error. A failed insert leaves the campaign
        with zero steps; the caller still holds the draft and can retry.
        """
        log.info("updating_campaign", campaign_id=campaign_id, replace_steps=steps is not None)

        if steps is not None:
            try:
                await self.store.delete_steps(campaign_id)
            except Exception as e:
                log.error("campaign_steps_delete_failed", campaign_id=campaign_id, error=str(e))
                raise PersistenceError(str(e), stage="delete_steps") from e

        try:
            campaign_row = await self.store.update_campaign(campaign_id, patch)
        except Exception as e:
            log.error("campaign_update_failed", campaign_id=campaign_id, error=str(e))
            if steps is not None:
                await self._restore_steps(campaign_id, steps)
            raise PersistenceError(str(e), stage="update_campaign") from e

        if steps is None:
            log.info("campaign_updated", campaign_id=campaign_id)
            return PersistedCampaign.from_row(campaign_row, [])

        try:
            step_rows = await self.store.insert_steps(_with_order(campaign_id, steps))
        except Exception as e:
            log.error(
                "campaign_steps_replace_failed",
                campaign_id=campaign_id,
                error=str(e),
                remaining_steps=0,
            )
            raise PersistenceError(str(e), stage="insert_steps") from e

        log.info("campaign_updated", campaign_id=campaign_id, steps=len(step_rows))
        return PersistedCampaign.from_row(campaign_row, step_rows)

    async def _restore_steps(self, campaign_id: str, steps: list[dict]) -> None:
        try:
            await self.store.insert_steps(_with_order(campaign_id, steps))
            log.info("campaign_steps_restored", campaign_id=campaign_id, steps=len(steps))
        except Exception as e:
            log.error(
                "campaign_steps_restore_failed",
                campaign_id=campaign_id,
                error=str(e),
                remaining_steps=0,
            )

    async def link_candidates(
        self,
        campaign_id: str,
        candidate_ids: list[str],
        source_context: SourceContext,
    ) -> bool:
        """Attach recipients. Best effort: failures are logged, never raised."""
        rows = [
            {
                "campaign_id": campaign_id,
                "candidate_id": candidate_id,
                "source_type": source_context.type.value,
                "source_context": source_context.context,
                "job_posting_id": source_context.job_posting_id,
                "status": "pending",
            }
            for candidate_id in candidate_ids
        ]
        try:
            await self.store.insert_candidates(rows)
        except Exception as e:
            log.error("campaign_candidates_link_failed", campaign_id=campaign_id, error=str(e))
            return False

        log.info("campaign_candidates_linked", campaign_id=campaign_id, count=len(rows))
        return True

    async def list_campaigns(
        self, user_id: str, project_id: Optional[str] = None
    ) -> list[PersistedCampaign]:
        rows = await self.store.list_campaigns(user_id, project_id)
        log.info("campaigns_listed", user_id=user_id, project_id=project_id, count=len(rows))
        return [PersistedCampaign.from_row(row) for row in rows]

    async def get_campaign(self, campaign_id: str) -> Optional[PersistedCampaign]:
        row = await self.store.get_campaign(campaign_id)
        return PersistedCampaign.from_row(row) if row else None

    async def delete_campaign(self, campaign_id: str) -> None:
        """Delete steps, then the header; a failed step delete keeps the header."""
        try:
            await self.store.delete_steps(campaign_id)
        except Exception as e:
            log.error("campaign_steps_delete_failed", campaign_id=campaign_id, error=str(e))
            raise PersistenceError(str(e), stage="delete_steps") from e

        try:
            await self.store.delete_campaign(campaign_id)
        except Exception as e:
            log.error("campaign_delete_failed", campaign_id=campaign_id, error=str(e))
            raise PersistenceError(str(e), stage="delete_campaign") from e

        log.info("campaign_deleted", campaign_id=campaign_id)
