import asyncio
from unittest.mock import AsyncMock

import pytest

from outreach_studio.campaigns.errors import (
    GENERATION_FAILED_MESSAGE,
    GenerationInProgressError,
    InvalidTransitionError,
)
from outreach_studio.campaigns.lifecycle import CampaignDraftSession, DraftState
from outreach_studio.campaigns.models import CampaignParameters, CampaignType, SourceContext
from outreach_studio.campaigns.persistence import CampaignCoordinator


def _session(store, instant_progress, generate=None, **kwargs):
    async def default_generate(p):
        return [
            {"subject": "Welcome", "content": "Hi {{First Name}}", "delay": 0, "delayUnit": "immediately"},
            {"subject": "Checking in", "content": "From {{Your Name}}", "delay": 3, "delayUnit": "business days"},
        ]

    return CampaignDraftSession(
        generate_sequence=generate or default_generate,
        coordinator=CampaignCoordinator(store),
        progress_config=instant_progress,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_generate_moves_to_steps(store, instant_progress, params):
    session = _session(store, instant_progress, parameters=params)

    assert await session.generate() is True

    assert session.state == DraftState.STEPS
    assert [s.id for s in session.steps] == ["step-1", "step-2"]
    assert session.sequence.active_id == "step-1"
    assert session.errors == []


@pytest.mark.asyncio
async def test_generation_failure_returns_to_setup(store, instant_progress, params):
    async def failing(p):
        raise RuntimeError("no api key")

    session = _session(store, instant_progress, generate=failing, parameters=params)

    assert await session.generate() is False

    assert session.state == DraftState.SETUP
    assert session.steps == []
    assert session.errors == [GENERATION_FAILED_MESSAGE]


@pytest.mark.asyncio
async def test_generate_blocks_on_missing_parameters(store, instant_progress):
    generate = AsyncMock()
    session = _session(
        store, instant_progress, generate=generate,
        parameters=CampaignParameters(campaign_type=CampaignType.NURTURE, target_audience="X"),
    )

    assert await session.generate() is False

    assert session.errors == ["Campaign goal is required"]
    assert session.state == DraftState.SETUP
    generate.assert_not_called()


@pytest.mark.asyncio
async def test_generate_twice_is_rejected(store, instant_progress, params):
    release = asyncio.Event()

    async def slow(p):
        await release.wait()
        return [{"subject": "s", "content": "c"}]

    session = _session(store, instant_progress, generate=slow, parameters=params)
    first = asyncio.create_task(session.generate())
    await asyncio.sleep(0)

    with pytest.raises(GenerationInProgressError):
        await session.generate()

    release.set()
    assert await first is True


@pytest.mark.asyncio
async def test_back_during_generation_discards_result(store, instant_progress, params):
    release = asyncio.Event()

    async def slow(p):
        await release.wait()
        return [{"subject": "s", "content": "c"}]

    session = _session(store, instant_progress, generate=slow, parameters=params)
    run = asyncio.create_task(session.generate())
    await asyncio.sleep(0.01)

    session.back()
    release.set()

    assert await run is False
    assert session.state == DraftState.SETUP
    assert session.steps == []


@pytest.mark.asyncio
async def test_refresh_name_uses_generator_until_overridden(store, instant_progress, params):
    generate_name = AsyncMock(return_value="New Grad Welcome")
    session = _session(store, instant_progress, parameters=params, generate_name=generate_name)

    assert await session.refresh_name() == "New Grad Welcome"
    generate_name.assert_awaited_once_with("nurture", "new grads", "keep warm")

    session.set_name("My Campaign")
    assert await session.refresh_name() == "My Campaign"
    assert generate_name.await_count == 1


@pytest.mark.asyncio
async def test_refresh_name_falls_back_on_error(store, instant_progress, params):
    generate_name = AsyncMock(side_effect=RuntimeError("down"))
    session = _session(store, instant_progress, parameters=params, generate_name=generate_name)

    assert await session.refresh_name() == "nurture Campaign"


@pytest.mark.asyncio
async def test_edit_steps_then_save_creates_campaign(store, instant_progress, params):
    session = _session(store, instant_progress, parameters=params)
    session.set_name("Grad Nurture")
    await session.generate()

    session.add_step()
    session.update_step("step-3", "subject", "Final note")
    session.duplicate_step("step-1")
    session.remove_step("step-4")
    session.insert_token("step-1", "Company Name")

    campaign = await session.save(
        "user-1", "project-1",
        candidate_ids=["cand-1"], source_context=SourceContext(context="search results"),
    )

    assert session.state == DraftState.SAVED
    assert campaign.name == "Grad Nurture"
    assert [s.subject for s in campaign.steps] == ["Welcome", "Checking in", "Final note"]
    assert campaign.steps[0].content == "Hi {{First Name}}{{Company Name}}"
    assert campaign.steps[2].delay == 3
    assert len(store.candidates) == 1


@pytest.mark.asyncio
async def test_save_reports_validation_errors(store, instant_progress, params):
    session = _session(store, instant_progress, parameters=params)
    await session.generate()
    session.update_step("step-2", "delay_unit", "weeks")

    assert await session.save(None, "project-1") is None

    assert session.state == DraftState.STEPS
    assert session.errors == [
        "Campaign name is required",
        "Email step 2: Invalid delay unit (must be 'immediately' or 'business days')",
        "User authentication required",
    ]
    assert store.calls == []


@pytest.mark.asyncio
async def test_save_reports_persistence_failure(store, instant_progress, params):
    store.fail_on["insert_steps"] = RuntimeError("bad row")
    session = _session(store, instant_progress, parameters=params)
    session.set_name("Grad Nurture")
    await session.generate()

    assert await session.save("user-1", "project-1") is None

    assert session.errors == ["Failed to save campaign: bad row"]
    assert session.state == DraftState.STEPS
    assert store.campaigns == {}


@pytest.mark.asyncio
async def test_edit_persisted_campaign_updates_in_place(store, instant_progress, params):
    creator = _session(store, instant_progress, parameters=params)
    creator.set_name("Original")
    await creator.generate()
    original = await creator.save("user-1", "project-1")

    editor = CampaignDraftSession.from_persisted(
        original, coordinator=CampaignCoordinator(store), progress_config=instant_progress
    )
    assert editor.state == DraftState.STEPS
    assert editor.name == "Original"
    assert [s.id for s in editor.steps] == [s.id for s in original.steps]

    editor.set_name("Edited")
    editor.update_step(editor.steps[1].id, "content", "Updated body")
    saved = await editor.save("user-1", "project-1")

    assert saved.id == original.id
    assert len(store.campaigns) == 1
    assert store.campaigns[original.id]["name"] == "Edited"
    assert [r["content"] for r in store.steps_for(original.id)] == ["Hi {{First Name}}", "Updated body"]


@pytest.mark.asyncio
async def test_clone_persisted_campaign_creates_new(store, instant_progress, params):
    creator = _session(store, instant_progress, parameters=params)
    creator.set_name("Original")
    await creator.generate()
    original = await creator.save("user-1", "project-1")

    clone = CampaignDraftSession.from_persisted(
        original, clone=True, coordinator=CampaignCoordinator(store)
    )
    assert clone.name == "Original (Copy)"
    assert [s.id for s in clone.steps] == ["step-1", "step-2"]
    assert clone.editing_campaign is None

    saved = await clone.save("user-1", "project-1")

    assert saved.id != original.id
    assert len(store.campaigns) == 2


def test_step_operations_require_steps_state(store, instant_progress, params):
    session = _session(store, instant_progress, parameters=params)

    with pytest.raises(InvalidTransitionError):
        session.add_step()
    with pytest.raises(InvalidTransitionError):
        session.back()


@pytest.mark.asyncio
async def test_back_from_steps_allows_new_generation(store, instant_progress, params):
    session = _session(store, instant_progress, parameters=params)
    await session.generate()

    session.back()
    session.update_parameters(campaign_goal="re-engage")

    assert session.state == DraftState.SETUP
    assert session.parameters.campaign_goal == "re-engage"
    assert await session.generate() is True


@pytest.mark.asyncio
async def test_preview_renders_for_persona(store, instant_progress, params):
    session = _session(store, instant_progress, parameters=params)
    await session.generate()

    first = session.preview()
    second = session.preview("step-2", "Emily Davis")

    assert first.content == "Hi John"
    assert second.content == "From Sarah Johnson"
    assert session.preview("missing") is None


@pytest.mark.asyncio
async def test_save_reports_invalid_step_type(store, instant_progress, params):
    session = _session(store, instant_progress, parameters=params)
    session.set_name("Grad Nurture")
    await session.generate()
    session.update_step("step-1", "type", "sms")

    assert await session.save("user-1", "project-1") is None

    assert session.errors == ["Email step 1: Invalid step type (must be 'email')"]
    assert session.state == DraftState.STEPS
    assert store.calls == []
