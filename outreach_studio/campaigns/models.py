"""Campaign, step and parameter types."""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class CampaignType(str, Enum):
    NURTURE = "nurture"
    ENRICHMENT = "enrichment"
    KEEP_WARM = "keep-warm"
    REENGAGE = "reengage"


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class DelayUnit(str, Enum):
    IMMEDIATELY = "immediately"
    BUSINESS_DAYS = "business days"


class StepType(str, Enum):
    EMAIL = "email"


class Tone(str, Enum):
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    CASUAL = "casual"
    FORMAL = "formal"


class EmailLength(str, Enum):
    SHORT = "short"
    CONCISE = "concise"
    MEDIUM = "medium"
    LONG = "long"

    @property
    def word_range(self) -> tuple[int, Optional[int]]:
        return _WORD_RANGES[self][0]

    @property
    def label(self) -> str:
        low, high = self.word_range
        return f"{low}-{high} words" if high else f"{low}+ words"

    @property
    def description(self) -> str:
        return _WORD_RANGES[self][1]


_WORD_RANGES = {
    EmailLength.SHORT: ((30, 50), "Brief and to the point"),
    EmailLength.CONCISE: ((60, 80), "Balanced and focused"),
    EmailLength.MEDIUM: ((100, 120), "Detailed but readable"),
    EmailLength.LONG: ((150, None), "Comprehensive and thorough"),
}


class SourceType(str, Enum):
    SEARCH = "search"
    SHORTLIST = "shortlist"
    MANUAL = "manual"


class ContentSource(BaseModel):
    """Excerpt the generator should draw on."""
    title: str
    content: str = ""

    def as_prompt_line(self) -> str:
        return f"{self.title}: {self.content}"


class CampaignParameters(BaseModel):
    """Inputs to sequence generation."""
    campaign_type: Optional[CampaignType] = CampaignType.NURTURE
    target_audience: str = ""
    campaign_goal: str = ""
    content_sources: list[ContentSource] = []
    ai_instructions: str = ""
    tone: Tone = Tone.PROFESSIONAL
    email_length: EmailLength = EmailLength.CONCISE
    company_name: str = ""
    recruiter_name: str = ""

    def missing_required(self) -> list[str]:
        """Messages for the fields generation cannot run without."""
        missing = []
        if not self.campaign_type:
            missing.append("Campaign type is required")
        if not self.target_audience.strip():
            missing.append("Target audience is required")
        if not self.campaign_goal.strip():
            missing.append("Campaign goal is required")
        return missing


@dataclass(frozen=True)
class EmailStep:
    """One email in an editable sequence.

    delay_unit is whatever the author or the model supplied; only the
    delay normalizer and the validator interpret it.
    """
    id: str
    subject: str
    content: str
    delay: int = 0
    delay_unit: Any = DelayUnit.IMMEDIATELY
    type: StepType = StepType.EMAIL


@dataclass(frozen=True)
class SourceContext:
    """Where linked candidates came from."""
    type: SourceType = SourceType.MANUAL
    context: Optional[str] = None
    job_posting_id: Optional[str] = None


def _from_row(cls, row: dict):
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in row.items() if k in known})


@dataclass
class PersistedStep:
    """Step row from the campaign_steps table."""
    id: str
    campaign_id: str
    step_order: int
    subject: str
    content: str
    delay: int = 0
    delay_unit: str = DelayUnit.BUSINESS_DAYS.value
    type: str = StepType.EMAIL.value
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "PersistedStep":
        return _from_row(cls, row)


@dataclass
class PersistedCampaign:
    """Campaign header row plus its ordered steps."""
    id: str
    user_id: str
    project_id: str
    name: str
    type: str
    status: str = CampaignStatus.DRAFT.value
    target_audience: Optional[str] = None
    campaign_goal: Optional[str] = None
    content_sources: list = field(default_factory=list)
    ai_instructions: Optional[str] = None
    tone: Optional[str] = None
    company_name: Optional[str] = None
    recruiter_name: Optional[str] = None
    job_posting_id: Optional[str] = None
    source_context: Optional[str] = None
    settings: dict = field(default_factory=dict)
    stats: dict = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    steps: list[PersistedStep] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict, steps: Optional[list[dict]] = None) -> "PersistedCampaign":
        campaign = _from_row(cls, row)
        step_rows = steps if steps is not None else row.get("campaign_steps") or []
        campaign.steps = sorted(
            (PersistedStep.from_row(s) for s in step_rows),
            key=lambda s: s.step_order,
        )
        return campaign


@dataclass(frozen=True)
class CampaignDraft:
    """Everything the validator and the coordinator need from a draft."""
    parameters: CampaignParameters
    name: str
    steps: tuple[EmailStep, ...] = ()
    editing_campaign_id: Optional[str] = None
