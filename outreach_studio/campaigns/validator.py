"""Save-gate validation for campaign drafts."""

from typing import Optional

from outreach_studio.campaigns.delays import parse_delay_unit
from outreach_studio.campaigns.models import CampaignDraft, StepType


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def _valid_step_type(value) -> bool:
    try:
        StepType(value)
    except (TypeError, ValueError):
        return False
    return True


def validate_draft(
    draft: CampaignDraft,
    user_id: Optional[str],
    project_id: Optional[str],
) -> list[str]:
    """Collect every reason the draft cannot be saved. Empty means valid."""
    errors = []
    params = draft.parameters

    if _blank(draft.name):
        errors.append("Campaign name is required")
    if not params.campaign_type:
        errors.append("Campaign type is required")
    if _blank(params.target_audience):
        errors.append("Target audience is required")
    if _blank(params.campaign_goal):
        errors.append("Campaign goal is required")
    if not draft.steps:
        errors.append("At least one email step is required")

    for number, step in enumerate(draft.steps, start=1):
        if _blank(step.subject):
            errors.append(f"Email step {number}: Subject is required")
        if _blank(step.content):
            errors.append(f"Email step {number}: Content is required")
        if parse_delay_unit(step.delay_unit) is None:
            errors.append(
                f"Email step {number}: Invalid delay unit "
                "(must be 'immediately' or 'business days')"
            )
        if not _valid_step_type(step.type):
            errors.append(f"Email step {number}: Invalid step type (must be 'email')")

    if _blank(user_id):
        errors.append("User authentication required")
    if _blank(project_id):
        errors.append("Project selection required")

    return errors
