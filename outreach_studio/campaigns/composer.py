"""Campaign sequence and name generation using Claude."""

import json
from pathlib import Path
from typing import Optional

import anthropic
import structlog

from outreach_studio.campaigns.errors import MalformedOutputError
from outreach_studio.campaigns.models import CampaignParameters
from outreach_studio.core.config import (
    DEFAULT_CONFIG_PATH,
    AIConfig,
    CampaignExample,
    find_example_by_goal,
    get_examples_by_type,
    load_campaign_examples,
)

log = structlog.get_logger()

DEFAULT_STEP_COUNT = 3
DEFAULT_DURATION_DAYS = 6

NAMING_PROMPT = (
    "Generate a concise, professional campaign name (3-6 words) based on the "
    "campaign parameters. Make it descriptive and actionable. Reply with the name only."
)


def build_system_prompt(params: CampaignParameters, examples: list[CampaignExample]) -> str:
    """Build the system prompt for sequence generation."""
    length = params.email_length
    steps = examples[0].sequence.steps if examples else DEFAULT_STEP_COUNT
    duration = examples[0].sequence.duration if examples else DEFAULT_DURATION_DAYS

    if examples:
        example_lines = "\n".join(
            f"- {e.campaign_goal} ({e.sequence.steps} steps over {e.sequence.duration} days): "
            f"{e.sequence.description}. Example subjects: {', '.join(e.sequence.examples)}"
            for e in examples
        )
    else:
        example_lines = "No example sequences available for this campaign type."

    sources = "\n".join(s.as_prompt_line() for s in params.content_sources) or "None provided."
    campaign_type = params.campaign_type.value if params.campaign_type else ""

    return f"""You are an expert email campaign generator specializing in healthcare recruitment.
Create professional, engaging outreach email sequences for recruiters.

Campaign Type: {campaign_type}
Target Audience: {params.target_audience}
Campaign Goal: {params.campaign_goal}
Company: {params.company_name}
Recruiter: {params.recruiter_name}
Tone: {params.tone.value}

EMAIL LENGTH REQUIREMENTS:
- Target length: {length.label} ({length.description})
- CRITICAL: Each email must be approximately {length.label}. This is a strict requirement.

EXAMPLE SEQUENCES (guidelines, not strict templates):
{example_lines}

Content Sources:
{sources}

Additional Instructions:
{params.ai_instructions or "None."}

IMPORTANT:
- Create {steps} email steps over {duration} days.
- Include personalization tokens: {{{{First Name}}}}, {{{{Company Name}}}}, {{{{Current Company}}}}, {{{{Your Name}}}}
- The first email must have delay 0 and delayUnit "immediately".
- Every later email must have a positive delay with delayUnit "business days".
- Each email must have a clear call to action.

RESPONSE FORMAT:
Return only a JSON object:
{{"emailSteps": [{{"type": "email", "subject": "...", "content": "...", "delay": 0, "delayUnit": "immediately"}}]}}
"""


def build_user_prompt(params: CampaignParameters) -> str:
    return (
        "Generate the email sequence based on the provided parameters. "
        f"CRITICAL: Each email must be {params.email_length.label} in length "
        f"with a {params.tone.value} tone."
    )


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code block, if any."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("```")[1]
        if text.startswith("json"):
            text = text[4:]
        text = text.strip()
    return text


def parse_sequence_response(text: str) -> list[dict]:
    """Extract the list of raw step dicts from a model response."""
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Response is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("emailSteps", data.get("steps"))

    if not isinstance(data, list) or not data:
        raise MalformedOutputError("Response does not contain a list of email steps")
    if not all(isinstance(item, dict) for item in data):
        raise MalformedOutputError("Every email step must be a JSON object")
    return data


class CampaignComposer:
    """Claude-backed implementation of the generation collaborators."""

    def __init__(
        self,
        ai_config: Optional[AIConfig] = None,
        config_path: Path = DEFAULT_CONFIG_PATH,
    ):
        self.ai = ai_config or AIConfig()
        self.config_path = config_path
        self.client = anthropic.AsyncAnthropic()

    async def _complete(self, model: str, max_tokens: int, system: str, user: str) -> str:
        response = await self.client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=self.ai.temperature,
            system=system,
            messages=[{"role": "user", "content": user}],
        )
        return response.content[0].text.strip()

    async def generate_sequence(self, params: CampaignParameters) -> list[dict]:
        """Generate raw step drafts. Raises on any failure; never falls back."""
        campaign_type = params.campaign_type.value if params.campaign_type else ""
        examples = get_examples_by_type(load_campaign_examples(self.config_path), campaign_type)
        closest = find_example_by_goal(examples, params.campaign_goal)
        if closest:
            examples = [closest] + [e for e in examples if e is not closest]
        system_prompt = build_system_prompt(params, examples)

        log.info(
            "generating_sequence",
            campaign_type=campaign_type,
            email_length=params.email_length.value,
            examples=len(examples),
        )

        response_text = await self._complete(
            self.ai.generation_model,
            self.ai.generation_max_tokens,
            system_prompt,
            build_user_prompt(params),
        )
        raw_steps = parse_sequence_response(response_text)

        log.info("sequence_generated", steps=len(raw_steps))
        return raw_steps

    async def generate_name(self, campaign_type: str, audience: str, goal: str) -> str:
        """Generate a campaign name, falling back to '<type> Campaign'."""
        fallback = f"{campaign_type} Campaign"
        user_prompt = f"Campaign Type: {campaign_type}\nTarget Audience: {audience}\nGoal: {goal}"

        try:
            name = await self._complete(
                self.ai.naming_model, self.ai.naming_max_tokens, NAMING_PROMPT, user_prompt
            )
        except Exception as e:
            log.error("campaign_name_error", error=str(e))
            log.info("campaign_name_fallback", name=fallback)
            return fallback

        name = name.strip().strip('"')
        if not name:
            log.info("campaign_name_fallback", name=fallback)
            return fallback

        log.info("campaign_name_generated", name=name)
        return name
