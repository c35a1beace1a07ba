"""Campaign authoring pipeline: generate, edit, validate, persist."""

from outreach_studio.campaigns.models import (
    CampaignDraft,
    CampaignParameters,
    CampaignStatus,
    CampaignType,
    ContentSource,
    DelayUnit,
    EmailLength,
    EmailStep,
    PersistedCampaign,
    PersistedStep,
    SourceContext,
    SourceType,
    Tone,
)
from outreach_studio.campaigns.tokens import Recipient, TokenContext, render_tokens
from outreach_studio.campaigns.delays import normalize_delay_unit, normalize_steps
from outreach_studio.campaigns.editor import StepSequence, StepTemplate
from outreach_studio.campaigns.validator import validate_draft
from outreach_studio.campaigns.generation import GenerationOrchestrator, Stage
from outreach_studio.campaigns.persistence import CampaignCoordinator
from outreach_studio.campaigns.lifecycle import CampaignDraftSession, DraftState
