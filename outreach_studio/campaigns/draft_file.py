"""YAML files holding campaign drafts between CLI commands."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from outreach_studio.campaigns.errors import DraftValidationError
from outreach_studio.campaigns.models import (
    CampaignDraft,
    CampaignParameters,
    EmailStep,
    StepType,
)


def _enum_value(value) -> str:
    return getattr(value, "value", value)


def _parameters(data: dict) -> CampaignParameters:
    try:
        return CampaignParameters(**data)
    except ValidationError as e:
        raise DraftValidationError([
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]) from e


def draft_to_dict(draft: CampaignDraft) -> dict:
    return {
        "name": draft.name,
        "editing_campaign_id": draft.editing_campaign_id,
        "parameters": draft.parameters.model_dump(mode="json"),
        "steps": [
            {
                "id": step.id,
                "type": _enum_value(step.type),
                "subject": step.subject,
                "content": step.content,
                "delay": step.delay,
                "delay_unit": _enum_value(step.delay_unit),
            }
            for step in draft.steps
        ],
    }


def _delay(raw, number: int) -> int:
    try:
        return int(raw or 0)
    except (TypeError, ValueError) as e:
        raise DraftValidationError(
            [f"Email step {number}: Delay must be a whole number (got {raw!r})"]
        ) from e


def draft_from_dict(data: dict) -> CampaignDraft:
    steps = tuple(
        EmailStep(
            id=str(raw.get("id") or f"step-{index}"),
            subject=raw.get("subject") or "",
            content=raw.get("content") or "",
            delay=_delay(raw.get("delay"), index),
            delay_unit=raw.get("delay_unit"),
            type=raw.get("type") or StepType.EMAIL,
        )
        for index, raw in enumerate(data.get("steps") or [], start=1)
    )
    return CampaignDraft(
        parameters=_parameters(data.get("parameters") or {}),
        name=data.get("name") or "",
        steps=steps,
        editing_campaign_id=data.get("editing_campaign_id"),
    )


def load_parameters(path: Path) -> CampaignParameters:
    """Load CampaignParameters from a YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return _parameters(data)


def load_draft(path: Path) -> CampaignDraft:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return draft_from_dict(data)


def save_draft(draft: CampaignDraft, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(draft_to_dict(draft), f, sort_keys=False, allow_unicode=True)
    return path
