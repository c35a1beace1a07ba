"""Staged progress around a sequence generation call.

The stages are cosmetic: they advance on a timer while the generation call
runs concurrently, and only the call's result decides success.
"""

import asyncio
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import structlog

from outreach_studio.campaigns.delays import normalize_delay_unit
from outreach_studio.campaigns.errors import (
    GenerationCancelledError,
    GenerationError,
    GenerationInProgressError,
    MalformedOutputError,
)
from outreach_studio.campaigns.models import CampaignParameters, EmailStep, StepType
from outreach_studio.core.config import ProgressConfig

log = structlog.get_logger()

PLACEHOLDER_CONTENT = "Email content here..."

SequenceGenerator = Callable[[CampaignParameters], Awaitable[list[dict]]]


class Stage(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationProgress:
    stage: Stage
    message: str
    percent: int


IDLE = GenerationProgress(Stage.IDLE, "", 0)

PROGRESS_STAGES = (
    GenerationProgress(Stage.PREPARING, "Preparing campaign parameters...", 20),
    GenerationProgress(Stage.ANALYZING, "Analyzing target audience and goals...", 40),
    GenerationProgress(Stage.GENERATING, "Generating personalized email sequence...", 70),
    GenerationProgress(Stage.FINALIZING, "Finalizing campaign structure...", 90),
)

COMPLETE = GenerationProgress(Stage.COMPLETE, "Campaign sequence generated successfully!", 100)


def _coerce_delay(raw: Any, index: int) -> int:
    try:
        delay = int(raw)
    except (TypeError, ValueError):
        delay = 0
    return delay if delay > 0 else index * 2


def coerce_generated_steps(raw_steps: list[dict]) -> list[EmailStep]:
    """Turn untrusted model output into EmailSteps with valid delay units."""
    if not isinstance(raw_steps, list) or not raw_steps:
        raise MalformedOutputError("Generator returned no email steps")

    steps = []
    for index, raw in enumerate(raw_steps):
        if not isinstance(raw, dict):
            raise MalformedOutputError(f"Email step {index + 1} is not an object")
        steps.append(EmailStep(
            id=f"step-{index + 1}",
            type=StepType.EMAIL,
            subject=raw.get("subject") or f"Follow-up {index + 1}",
            content=raw.get("content") or PLACEHOLDER_CONTENT,
            delay=_coerce_delay(raw.get("delay"), index),
            delay_unit=normalize_delay_unit(raw.get("delayUnit", raw.get("delay_unit")), index),
        ))
    return steps


class GenerationOrchestrator:
    """Runs one generation at a time and reports progress."""

    def __init__(
        self,
        generate: SequenceGenerator,
        progress_config: Optional[ProgressConfig] = None,
        on_progress: Optional[Callable[[GenerationProgress], None]] = None,
    ):
        self.generate = generate
        self.config = progress_config or ProgressConfig()
        self.on_progress = on_progress
        self.progress = IDLE
        self.in_progress = False
        self._cancelled: Optional[asyncio.Event] = None

    def _stage_seconds(self) -> float:
        return random.uniform(self.config.min_stage_seconds, self.config.max_stage_seconds)

    def _enter(self, progress: GenerationProgress) -> None:
        self.progress = progress
        log.debug("generation_stage", stage=progress.stage.value, percent=progress.percent)
        if self.on_progress:
            self.on_progress(progress)

    async def _advance_stages(self) -> None:
        for progress in PROGRESS_STAGES:
            self._enter(progress)
            await asyncio.sleep(self._stage_seconds())
        await asyncio.sleep(self.config.final_pause_seconds)

    def cancel(self) -> None:
        """Stop reporting progress; an in-flight call's result will be dropped."""
        if self._cancelled is not None:
            self._cancelled.set()

    async def run(self, params: CampaignParameters) -> list[EmailStep]:
        if self.in_progress:
            raise GenerationInProgressError("Sequence generation is already in progress")

        self.in_progress = True
        self._cancelled = asyncio.Event()
        generation = asyncio.create_task(self.generate(params))
        ticker = asyncio.create_task(self._advance_stages())
        cancel_waiter = asyncio.create_task(self._cancelled.wait())

        log.info("generation_started", campaign_type=getattr(params.campaign_type, "value", None))

        try:
            waiting = {generation, ticker, cancel_waiter}
            while generation in waiting or ticker in waiting:
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
                waiting -= done
                if cancel_waiter in done:
                    generation.add_done_callback(_discard_result)
                    self._enter(IDLE)
                    log.info("generation_cancelled")
                    raise GenerationCancelledError("Generation was cancelled")
                if generation in done and generation.exception() is not None:
                    break

            steps = coerce_generated_steps(generation.result())
        except GenerationCancelledError:
            raise
        except Exception as e:
            log.error("generation_failed", error=str(e))
            self._enter(GenerationProgress(Stage.FAILED, str(GenerationError()), 0))
            raise GenerationError() from e
        finally:
            ticker.cancel()
            cancel_waiter.cancel()
            self.in_progress = False
            self._cancelled = None

        self._enter(COMPLETE)
        log.info("generation_complete", steps=len(steps))
        return steps


def _discard_result(task: asyncio.Task) -> None:
    if not task.cancelled() and task.exception() is not None:
        log.info("late_generation_result_discarded", error=str(task.exception()))
    else:
        log.info("late_generation_result_discarded")
