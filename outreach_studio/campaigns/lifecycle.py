"""Authoring session for one campaign draft.

setup -> generating -> steps -> saved, with back/cancel returning to setup.
Persisted campaigns can be opened straight into the steps state, either for
editing in place or as a template for a new campaign.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import structlog

from outreach_studio.campaigns.editor import StepSequence, StepTemplate
from outreach_studio.campaigns.errors import (
    GenerationCancelledError,
    GenerationError,
    GenerationInProgressError,
    InvalidTransitionError,
    PersistenceError,
)
from outreach_studio.campaigns.generation import (
    GenerationOrchestrator,
    GenerationProgress,
    SequenceGenerator,
)
from outreach_studio.campaigns.models import (
    CampaignDraft,
    CampaignParameters,
    CampaignType,
    ContentSource,
    DelayUnit,
    EmailLength,
    EmailStep,
    PersistedCampaign,
    SourceContext,
    StepType,
    Tone,
)
from outreach_studio.campaigns.persistence import (
    CampaignCoordinator,
    build_campaign_header,
    build_campaign_patch,
    build_step_rows,
)
from outreach_studio.campaigns.tokens import TokenContext, find_persona, render_tokens
from outreach_studio.campaigns.validator import validate_draft
from outreach_studio.core.config import ProgressConfig

log = structlog.get_logger()

NameGenerator = Callable[[str, str, str], Awaitable[str]]


class DraftState(str, Enum):
    SETUP = "setup"
    GENERATING = "generating"
    STEPS = "steps"
    SAVED = "saved"


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    content: str


def _enum_or(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _content_sources(raw_sources: list) -> list[ContentSource]:
    sources = []
    for raw in raw_sources or []:
        if isinstance(raw, dict):
            sources.append(ContentSource(title=raw.get("title") or "Content", content=raw.get("content") or ""))
        else:
            sources.append(ContentSource(title="Content", content=str(raw)))
    return sources


class CampaignDraftSession:
    """One author's draft, from setup parameters through a saved campaign."""

    def __init__(
        self,
        generate_sequence: Optional[SequenceGenerator] = None,
        coordinator: Optional[CampaignCoordinator] = None,
        generate_name: Optional[NameGenerator] = None,
        parameters: Optional[CampaignParameters] = None,
        template: StepTemplate = StepTemplate(),
        progress_config: Optional[ProgressConfig] = None,
        on_progress: Optional[Callable[[GenerationProgress], None]] = None,
    ):
        self.parameters = parameters or CampaignParameters()
        self.coordinator = coordinator
        self.generate_name = generate_name
        self.template = template
        self.orchestrator = GenerationOrchestrator(generate_sequence, progress_config, on_progress)

        self.state = DraftState.SETUP
        self.name = ""
        self.name_overridden = False
        self.sequence = StepSequence()
        self.editing_campaign: Optional[PersistedCampaign] = None
        self.saved_campaign: Optional[PersistedCampaign] = None
        self.errors: list[str] = []
        self._generation_token = 0

    @classmethod
    def from_persisted(
        cls,
        campaign: PersistedCampaign,
        clone: bool = False,
        **kwargs,
    ) -> "CampaignDraftSession":
        """Open a persisted campaign in the steps editor.

        Editing keeps the campaign identity so saving updates it; cloning
        drops it so saving creates a new campaign named "<name> (Copy)".
        """
        session = cls(**kwargs)
        session.parameters = CampaignParameters(
            campaign_type=_enum_or(CampaignType, campaign.type, CampaignType.NURTURE),
            target_audience=campaign.target_audience or "",
            campaign_goal=campaign.campaign_goal or "",
            content_sources=_content_sources(campaign.content_sources),
            ai_instructions=campaign.ai_instructions or "",
            tone=_enum_or(Tone, campaign.tone, Tone.PROFESSIONAL),
            email_length=EmailLength.CONCISE,
            company_name=campaign.company_name or session.parameters.company_name,
            recruiter_name=campaign.recruiter_name or session.parameters.recruiter_name,
        )
        session.sequence = StepSequence.of(
            EmailStep(
                id=f"step-{index}" if clone or not step.id else step.id,
                type=StepType.EMAIL,
                subject=step.subject or "",
                content=step.content or "",
                delay=step.delay or 0,
                delay_unit=step.delay_unit or DelayUnit.IMMEDIATELY,
            )
            for index, step in enumerate(campaign.steps, start=1)
        )
        session.name = f"{campaign.name} (Copy)" if clone else campaign.name
        session.name_overridden = True
        session.editing_campaign = None if clone else campaign
        session.state = DraftState.STEPS

        log.info(
            "campaign_opened",
            campaign_id=campaign.id,
            mode="clone" if clone else "edit",
            steps=len(session.sequence),
        )
        return session

    @classmethod
    def from_draft(
        cls,
        draft: CampaignDraft,
        editing_campaign: Optional[PersistedCampaign] = None,
        **kwargs,
    ) -> "CampaignDraftSession":
        """Resume a draft in the steps editor, or in setup if it has no steps."""
        session = cls(parameters=draft.parameters, **kwargs)
        session.set_name(draft.name)
        session.sequence = StepSequence.of(draft.steps)
        session.editing_campaign = editing_campaign
        session.state = DraftState.STEPS if draft.steps else DraftState.SETUP
        return session

    def _require(self, *states: DraftState) -> None:
        if self.state not in states:
            raise InvalidTransitionError(
                f"Cannot do that while the draft is in '{self.state.value}'"
            )

    @property
    def steps(self) -> list[EmailStep]:
        return list(self.sequence.steps)

    def update_parameters(self, **changes: Any) -> None:
        self._require(DraftState.SETUP)
        self.parameters = CampaignParameters(**{**self.parameters.model_dump(), **changes})

    def set_name(self, name: str) -> None:
        self.name = name
        self.name_overridden = bool(name.strip())

    async def refresh_name(self) -> str:
        """Derive the name from type, audience and goal unless overridden."""
        params = self.parameters
        if self.name_overridden or params.missing_required():
            return self.name

        campaign_type = params.campaign_type.value
        fallback = f"{campaign_type} Campaign"
        if self.generate_name is None:
            name = fallback
        else:
            try:
                name = await self.generate_name(
                    campaign_type, params.target_audience, params.campaign_goal
                )
            except Exception as e:
                log.error("campaign_name_error", error=str(e))
                name = fallback

        # parameters edited while the name was being generated
        if self.parameters != params or self.name_overridden:
            return self.name

        self.name = name or fallback
        return self.name

    async def generate(self) -> bool:
        """Generate the sequence and move to the steps editor on success."""
        if self.state == DraftState.GENERATING or self.orchestrator.in_progress:
            raise GenerationInProgressError("Sequence generation is already in progress")
        self._require(DraftState.SETUP)
        if self.orchestrator.generate is None:
            raise InvalidTransitionError("No sequence generator is configured")

        missing = self.parameters.missing_required()
        if missing:
            self.errors = missing
            log.warning("generation_blocked", violations=missing)
            return False

        self.errors = []
        self.state = DraftState.GENERATING
        self._generation_token += 1
        token = self._generation_token

        try:
            steps = await self.orchestrator.run(self.parameters)
        except GenerationCancelledError:
            return False
        except GenerationError as e:
            if token == self._generation_token:
                self.state = DraftState.SETUP
                self.sequence = StepSequence()
                self.errors = [str(e)]
            return False

        if token != self._generation_token or self.state != DraftState.GENERATING:
            log.info("generation_result_discarded")
            return False

        self.sequence = StepSequence.of(steps)
        self.state = DraftState.STEPS
        return True

    def cancel_generation(self) -> None:
        if self.state != DraftState.GENERATING:
            return
        self._generation_token += 1
        self.orchestrator.cancel()
        self.state = DraftState.SETUP
        log.info("generation_abandoned")

    def back(self) -> None:
        """Return to setup from the steps editor or an active generation."""
        if self.state == DraftState.GENERATING:
            self.cancel_generation()
            return
        self._require(DraftState.STEPS)
        self.state = DraftState.SETUP

    def add_step(self) -> None:
        self._require(DraftState.STEPS)
        self.sequence = self.sequence.add(self.template)

    def update_step(self, step_id: str, field_name: str, value: Any) -> None:
        self._require(DraftState.STEPS)
        self.sequence = self.sequence.update(step_id, field_name, value)

    def remove_step(self, step_id: str) -> None:
        self._require(DraftState.STEPS)
        self.sequence = self.sequence.remove(step_id)

    def duplicate_step(self, step_id: str) -> None:
        self._require(DraftState.STEPS)
        self.sequence = self.sequence.duplicate(step_id, self.template.followup_delay)

    def select_step(self, step_id: str) -> None:
        self._require(DraftState.STEPS)
        self.sequence = self.sequence.select(step_id)

    def insert_token(self, step_id: str, token: str) -> None:
        self._require(DraftState.STEPS)
        self.sequence = self.sequence.insert_token(step_id, token)

    def preview(
        self, step_id: Optional[str] = None, persona_name: str = ""
    ) -> Optional[RenderedEmail]:
        """Render a step for a preview persona."""
        step = self.sequence.get(step_id) if step_id else self.sequence.active_step
        if step is None:
            return None
        context = TokenContext.for_recipient(
            find_persona(persona_name),
            self.parameters.company_name,
            self.parameters.recruiter_name,
        )
        return RenderedEmail(
            subject=render_tokens(step.subject, context),
            content=render_tokens(step.content, context),
        )

    def to_draft(self) -> CampaignDraft:
        return CampaignDraft(
            parameters=self.parameters,
            name=self.name,
            steps=self.sequence.steps,
            editing_campaign_id=self.editing_campaign.id if self.editing_campaign else None,
        )

    def validate(self, user_id: Optional[str], project_id: Optional[str]) -> list[str]:
        return validate_draft(self.to_draft(), user_id, project_id)

    async def save(
        self,
        user_id: Optional[str],
        project_id: Optional[str],
        candidate_ids: Optional[list[str]] = None,
        source_context: Optional[SourceContext] = None,
    ) -> Optional[PersistedCampaign]:
        """Validate and commit the draft. Returns None when nothing was saved."""
        self._require(DraftState.STEPS)
        self.errors = []

        violations = self.validate(user_id, project_id)
        if violations:
            self.errors = violations
            log.warning("campaign_validation_failed", violations=violations)
            return None

        if self.coordinator is None:
            raise InvalidTransitionError("No campaign store is configured")

        draft = self.to_draft()
        step_rows = build_step_rows(list(draft.steps))

        try:
            if self.editing_campaign:
                campaign = await self.coordinator.update(
                    self.editing_campaign.id, build_campaign_patch(draft), step_rows
                )
            else:
                campaign = await self.coordinator.create(
                    build_campaign_header(draft, user_id, project_id),
                    step_rows,
                    candidate_ids=candidate_ids,
                    source_context=source_context,
                )
        except PersistenceError as e:
            self.errors = [f"Failed to save campaign: {e}"]
            return None

        self.saved_campaign = campaign
        self.state = DraftState.SAVED
        log.info("campaign_saved", campaign_id=campaign.id, steps=len(campaign.steps))
        return campaign
