"""In-memory editing of an ordered email sequence.

Every operation returns a new StepSequence; unknown step ids are a no-op so
stale selections never raise.
"""

import re
from dataclasses import dataclass, replace
from typing import Any, Optional

from outreach_studio.campaigns.delays import (
    DEFAULT_FOLLOWUP_DELAY,
    first_step_defaults,
    followup_defaults,
)
from outreach_studio.campaigns.models import EmailStep
from outreach_studio.campaigns.tokens import RECOGNIZED_TOKENS

EDITABLE_FIELDS = ("subject", "content", "delay", "delay_unit", "type")

STEP_ID_PATTERN = re.compile(r"^step-(\d+)$")


@dataclass(frozen=True)
class StepTemplate:
    """Default content for manually added steps."""
    subject: str = "Following up on our conversation"
    content: str = (
        "Hi {{First Name}},\n\n"
        "I wanted to follow up on our previous conversation about opportunities at {{Company Name}}.\n\n"
        "We have some exciting new positions that might be a perfect fit for your background "
        "and career goals.\n\n"
        "Would you be available for a brief call this week to discuss?\n\n"
        "Best regards,\n"
        "{{Your Name}}"
    )
    followup_delay: int = DEFAULT_FOLLOWUP_DELAY


def next_step_id(steps: tuple[EmailStep, ...]) -> str:
    """Return a step-<n> id larger than any numbered id in use."""
    highest = len(steps)
    for step in steps:
        match = STEP_ID_PATTERN.match(step.id)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"step-{highest + 1}"


@dataclass(frozen=True)
class StepSequence:
    steps: tuple[EmailStep, ...] = ()
    active_id: Optional[str] = None

    @classmethod
    def of(cls, steps) -> "StepSequence":
        steps = tuple(steps)
        return cls(steps=steps, active_id=steps[0].id if steps else None)

    def __len__(self) -> int:
        return len(self.steps)

    def index_of(self, step_id: str) -> int:
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return -1

    def get(self, step_id: Optional[str]) -> Optional[EmailStep]:
        index = self.index_of(step_id) if step_id else -1
        return self.steps[index] if index >= 0 else None

    @property
    def active_step(self) -> Optional[EmailStep]:
        return self.get(self.active_id)

    def select(self, step_id: str) -> "StepSequence":
        if self.index_of(step_id) < 0:
            return self
        return replace(self, active_id=step_id)

    def add(self, template: StepTemplate = StepTemplate()) -> "StepSequence":
        if self.steps:
            delay, unit = followup_defaults(template.followup_delay)
        else:
            delay, unit = first_step_defaults()
        step = EmailStep(
            id=next_step_id(self.steps),
            subject=template.subject,
            content=template.content,
            delay=delay,
            delay_unit=unit,
        )
        return StepSequence(steps=self.steps + (step,), active_id=step.id)

    def update(self, step_id: str, field_name: str, value: Any) -> "StepSequence":
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown step field: {field_name}")
        index = self.index_of(step_id)
        if index < 0:
            return self
        updated = replace(self.steps[index], **{field_name: value})
        steps = self.steps[:index] + (updated,) + self.steps[index + 1:]
        return replace(self, steps=steps)

    def remove(self, step_id: str) -> "StepSequence":
        index = self.index_of(step_id)
        if index < 0:
            return self
        steps = self.steps[:index] + self.steps[index + 1:]
        if not steps:
            return StepSequence()
        return StepSequence(steps=steps, active_id=steps[max(0, index - 1)].id)

    def duplicate(
        self, step_id: str, followup_delay: int = DEFAULT_FOLLOWUP_DELAY
    ) -> "StepSequence":
        index = self.index_of(step_id)
        if index < 0:
            return self
        source = self.steps[index]
        delay, unit = followup_defaults(followup_delay)
        copy = replace(
            source,
            id=next_step_id(self.steps),
            subject=f"{source.subject} (Copy)",
            delay=delay,
            delay_unit=unit,
        )
        steps = self.steps[:index + 1] + (copy,) + self.steps[index + 1:]
        return StepSequence(steps=steps, active_id=copy.id)

    def insert_token(self, step_id: str, token: str) -> "StepSequence":
        """Append a personalization token to a step's content."""
        if token not in RECOGNIZED_TOKENS:
            raise ValueError(f"Unknown personalization token: {token}")
        step = self.get(step_id)
        if step is None:
            return self
        return self.update(step_id, "content", step.content + "{{" + token + "}}")
