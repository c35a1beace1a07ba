"""Command-line interface for campaign authoring."""

import asyncio
from pathlib import Path
from typing import Optional

import click
import structlog

from outreach_studio.campaigns.composer import CampaignComposer
from outreach_studio.campaigns.draft_file import load_draft, load_parameters, save_draft
from outreach_studio.campaigns.editor import StepTemplate
from outreach_studio.campaigns.errors import DraftValidationError, PersistenceError
from outreach_studio.campaigns.generation import GenerationProgress
from outreach_studio.campaigns.lifecycle import CampaignDraftSession
from outreach_studio.campaigns.models import (
    CampaignParameters,
    DelayUnit,
    EmailLength,
    SourceContext,
    SourceType,
    Tone,
)
from outreach_studio.campaigns.persistence import CampaignCoordinator
from outreach_studio.campaigns.tokens import PREVIEW_PERSONAS
from outreach_studio.campaigns.validator import validate_draft
from outreach_studio.clients.supabase import SupabaseCampaignStore
from outreach_studio.core.config import (
    DEFAULT_CONFIG_PATH,
    DefaultsConfig,
    Settings,
    load_settings,
)

# Configure structlog for CLI output
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer()
    ]
)

log = structlog.get_logger()

config_option = click.option(
    "--config", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_PATH),
    help="Config directory path",
)
user_option = click.option(
    "--user", "user_id", envvar="OUTREACH_USER_ID", default=None,
    help="Owning user id (or OUTREACH_USER_ID)",
)
project_option = click.option(
    "--project", "project_id", envvar="OUTREACH_PROJECT_ID", default=None,
    help="Project id (or OUTREACH_PROJECT_ID)",
)


def apply_defaults(params: CampaignParameters, defaults: DefaultsConfig) -> CampaignParameters:
    """Fill company, recruiter, tone and length the parameters file left out."""
    updates = {}
    if not params.company_name.strip():
        updates["company_name"] = defaults.company_name
    if not params.recruiter_name.strip():
        updates["recruiter_name"] = defaults.recruiter_name
    if "tone" not in params.model_fields_set:
        updates["tone"] = Tone(defaults.tone)
    if "email_length" not in params.model_fields_set:
        updates["email_length"] = EmailLength(defaults.email_length)
    return params.model_copy(update=updates)


def _fail(messages: list[str]) -> None:
    for message in messages:
        click.echo(f"  ✗ {message}")
    raise SystemExit(1)


def _echo_progress(progress: GenerationProgress) -> None:
    click.echo(f"  [{progress.percent:3d}%] {progress.message}")


def _template(settings: Settings) -> StepTemplate:
    return StepTemplate(followup_delay=settings.sequence.followup_delay_days)


def _coordinator(settings: Settings) -> CampaignCoordinator:
    return CampaignCoordinator(SupabaseCampaignStore(settings.supabase))


def _load_draft_or_fail(path: str):
    try:
        return load_draft(Path(path))
    except DraftValidationError as e:
        _fail(e.violations)


@click.group()
def cli():
    """Outreach Studio - AI-assisted recruiting email campaigns."""


@cli.command()
@click.argument("params_file", type=click.Path(exists=True))
@click.option("--output", "-o", type=click.Path(), default="draft.yaml",
              help="Where to write the generated draft")
@click.option("--name", default="", help="Campaign name (generated when omitted)")
@config_option
def generate(params_file: str, output: str, name: str, config_path: str):
    """Generate an email sequence from a campaign parameters file."""
    config = Path(config_path)
    settings = load_settings(config)

    try:
        params = apply_defaults(load_parameters(Path(params_file)), settings.defaults)
    except DraftValidationError as e:
        _fail(e.violations)

    composer = CampaignComposer(settings.ai, config)
    session = CampaignDraftSession(
        generate_sequence=composer.generate_sequence,
        generate_name=composer.generate_name,
        parameters=params,
        template=_template(settings),
        progress_config=settings.progress,
        on_progress=_echo_progress,
    )
    session.set_name(name)

    async def run_generation() -> bool:
        await session.refresh_name()
        return await session.generate()

    click.echo("Generating campaign sequence...")
    if not asyncio.run(run_generation()):
        _fail(session.errors)

    path = save_draft(session.to_draft(), Path(output))
    click.echo(f"\nCampaign: {session.name}")
    click.echo(f"Steps generated: {len(session.steps)}")
    click.echo(f"Draft saved to {path}")


@cli.command()
@click.argument("draft_file", type=click.Path(exists=True))
@click.option("--persona", default=PREVIEW_PERSONAS[0].name,
              type=click.Choice([p.name for p in PREVIEW_PERSONAS]),
              help="Preview recipient")
@click.option("--step", "step_number", type=int, default=None,
              help="Only preview this step (1-based)")
def preview(draft_file: str, persona: str, step_number: Optional[int]):
    """Render a draft's emails for a preview recipient."""
    draft = _load_draft_or_fail(draft_file)
    session = CampaignDraftSession.from_draft(draft)

    steps = session.steps
    if step_number is not None:
        if not 1 <= step_number <= len(steps):
            _fail([f"Step {step_number} does not exist (draft has {len(steps)} steps)"])
        steps = [steps[step_number - 1]]

    for step in steps:
        rendered = session.preview(step.id, persona)
        number = session.sequence.index_of(step.id) + 1
        unit = getattr(step.delay_unit, "value", step.delay_unit)
        when = unit if unit == DelayUnit.IMMEDIATELY.value else f"after {step.delay} {unit}"
        click.echo("=" * 40)
        click.echo(f"Email {number} ({when})")
        click.echo(f"Subject: {rendered.subject}")
        click.echo("-" * 40)
        click.echo(rendered.content)
        click.echo()


@cli.command()
@click.argument("draft_file", type=click.Path(exists=True))
@user_option
@project_option
def validate(draft_file: str, user_id: Optional[str], project_id: Optional[str]):
    """Check a draft against the save rules without saving it."""
    draft = _load_draft_or_fail(draft_file)
    violations = validate_draft(draft, user_id, project_id)
    if violations:
        click.echo("Please fix the following issues:")
        _fail(violations)
    click.echo("✓ Draft is valid")


@cli.command()
@click.argument("draft_file", type=click.Path(exists=True))
@user_option
@project_option
@click.option("--candidate", "candidate_ids", multiple=True,
              help="Candidate id to link (repeatable)")
@click.option("--source-type", type=click.Choice([t.value for t in SourceType]),
              default=SourceType.MANUAL.value, help="Where the candidates came from")
@click.option("--source-context", default=None, help="Free-text source description")
@click.option("--job-posting", "job_posting_id", default=None, help="Related job posting id")
@config_option
def save(
    draft_file: str,
    user_id: Optional[str],
    project_id: Optional[str],
    candidate_ids: tuple,
    source_type: str,
    source_context: Optional[str],
    job_posting_id: Optional[str],
    config_path: str,
):
    """Save a draft as a new campaign, or update the campaign it was exported from."""
    draft = _load_draft_or_fail(draft_file)
    settings = load_settings(Path(config_path))
    coordinator = _coordinator(settings)

    async def run_save():
        violations = validate_draft(draft, user_id, project_id)
        if violations:
            return None, violations

        editing = None
        if draft.editing_campaign_id:
            editing = await coordinator.get_campaign(draft.editing_campaign_id)
            if editing is None:
                return None, [f"Campaign not found: {draft.editing_campaign_id}"]

        session = CampaignDraftSession.from_draft(
            draft, editing, coordinator=coordinator, template=_template(settings)
        )
        context = SourceContext(SourceType(source_type), source_context, job_posting_id)
        campaign = await session.save(
            user_id, project_id, candidate_ids=list(candidate_ids), source_context=context
        )
        return campaign, session.errors

    campaign, errors = asyncio.run(run_save())
    if campaign is None:
        _fail(errors)

    verb = "Updated" if draft.editing_campaign_id else "Created"
    click.echo(f"✓ {verb} campaign '{campaign.name}' ({campaign.id}) with {len(campaign.steps)} steps")


@cli.command("list")
@user_option
@project_option
@config_option
def list_campaigns(user_id: Optional[str], project_id: Optional[str], config_path: str):
    """List a user's campaigns, newest first."""
    if not user_id:
        _fail(["User authentication required"])

    coordinator = _coordinator(load_settings(Path(config_path)))
    campaigns = asyncio.run(coordinator.list_campaigns(user_id, project_id))

    if not campaigns:
        click.echo("No campaigns found")
        return

    click.echo(f"\n{'ID':<38} {'Status':<10} {'Type':<12} {'Steps':>5}  Name")
    click.echo("─" * 80)
    for campaign in campaigns:
        click.echo(
            f"{campaign.id:<38} {campaign.status:<10} {campaign.type:<12} "
            f"{len(campaign.steps):>5}  {campaign.name}"
        )


@cli.command()
@click.argument("campaign_id")
@config_option
def show(campaign_id: str, config_path: str):
    """Show a campaign and its steps."""
    coordinator = _coordinator(load_settings(Path(config_path)))
    campaign = asyncio.run(coordinator.get_campaign(campaign_id))
    if campaign is None:
        _fail([f"Campaign not found: {campaign_id}"])

    click.echo(f"\nCampaign: {campaign.name}")
    click.echo(f"  Type: {campaign.type}")
    click.echo(f"  Status: {campaign.status}")
    click.echo(f"  Audience: {campaign.target_audience or 'N/A'}")
    click.echo(f"  Goal: {campaign.campaign_goal or 'N/A'}")
    click.echo(f"  Tone: {campaign.tone or 'N/A'}")
    if campaign.stats:
        click.echo(
            f"  Stats: sent {campaign.stats.get('sent', 0)}, "
            f"opened {campaign.stats.get('opened', 0)}, "
            f"replied {campaign.stats.get('replied', 0)}"
        )
    for step in campaign.steps:
        click.echo(f"\n  {step.step_order}. {step.subject}  ({step.delay} {step.delay_unit})")


@cli.command()
@click.argument("campaign_id")
@click.option("--output", "-o", type=click.Path(), default="draft.yaml",
              help="Where to write the draft")
@click.option("--clone", is_flag=True, help="Export as a template for a new campaign")
@config_option
def export(campaign_id: str, output: str, clone: bool, config_path: str):
    """Export a saved campaign to a draft file for editing or cloning."""
    settings = load_settings(Path(config_path))
    coordinator = _coordinator(settings)
    campaign = asyncio.run(coordinator.get_campaign(campaign_id))
    if campaign is None:
        _fail([f"Campaign not found: {campaign_id}"])

    session = CampaignDraftSession.from_persisted(
        campaign,
        clone=clone,
        parameters=CampaignParameters(
            company_name=settings.defaults.company_name,
            recruiter_name=settings.defaults.recruiter_name,
        ),
    )
    path = save_draft(session.to_draft(), Path(output))
    mode = "template" if clone else "edit"
    click.echo(f"Exported '{session.name}' ({mode}) to {path}")


@cli.command()
@click.argument("campaign_id")
@click.confirmation_option(prompt="Delete this campaign and all of its steps?")
@config_option
def delete(campaign_id: str, config_path: str):
    """Delete a campaign and its steps."""
    coordinator = _coordinator(load_settings(Path(config_path)))
    try:
        asyncio.run(coordinator.delete_campaign(campaign_id))
    except PersistenceError as e:
        _fail([f"Failed to delete campaign: {e}"])
    click.echo(f"✓ Deleted campaign {campaign_id}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
