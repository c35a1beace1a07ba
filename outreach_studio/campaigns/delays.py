"""Delay unit normalization.

Only the first step of a sequence may fire immediately. Model output and
manual edits can carry any unit value, so anything outside the two valid
units is resolved by position before it reaches storage.
"""

from dataclasses import replace
from typing import Any, Iterable, Optional

from outreach_studio.campaigns.models import DelayUnit, EmailStep

FIRST_STEP_DELAY = 0
DEFAULT_FOLLOWUP_DELAY = 3


def parse_delay_unit(raw: Any) -> Optional[DelayUnit]:
    """Return the DelayUnit for raw, or None if it is not a valid unit."""
    try:
        return DelayUnit(raw)
    except (TypeError, ValueError):
        return None


def normalize_delay_unit(raw: Any, index: int) -> DelayUnit:
    """Coerce raw to a valid unit, falling back on the step's position."""
    unit = parse_delay_unit(raw)
    if unit is not None:
        return unit
    return DelayUnit.IMMEDIATELY if index == 0 else DelayUnit.BUSINESS_DAYS


def normalize_steps(steps: Iterable[EmailStep]) -> list[EmailStep]:
    """Normalize every step's delay unit. Idempotent."""
    return [
        replace(step, delay_unit=normalize_delay_unit(step.delay_unit, index))
        for index, step in enumerate(steps)
    ]


def first_step_defaults() -> tuple[int, DelayUnit]:
    return FIRST_STEP_DELAY, DelayUnit.IMMEDIATELY


def followup_defaults(followup_delay: int = DEFAULT_FOLLOWUP_DELAY) -> tuple[int, DelayUnit]:
    return max(1, followup_delay), DelayUnit.BUSINESS_DAYS
