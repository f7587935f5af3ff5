from __future__ import annotations

import json

import pytest

from threadnotes.background.enrichment import enrich_and_store_thread_metadata
from threadnotes.core.models.note import Note, NoteType
from threadnotes.core.models.thread import DEFAULT_THREAD_DESCRIPTION, DEFAULT_THREAD_TITLE, Thread
from threadnotes.core.services.enrichment_service import (
    EnrichmentService,
    build_thread_prompt,
    parse_enrichment_response,
    strip_code_fences,
)

from conftest import ENRICHMENT_REPLY, FakeOpenAI


async def seed_thread(thread_repo, note_repo, contents: list[str]) -> str:
    thread = await thread_repo.create(Thread(note_count=len(contents)))
    for content in contents:
        await note_repo.create(Note(thread_id=thread.id, content=content, note_type=NoteType.TEXT))
    return thread.id


async def run_job(thread_id, thread_repo, note_repo, enrichment):
    await enrich_and_store_thread_metadata(
        thread_id=thread_id,
        thread_repo=thread_repo,
        note_repo=note_repo,
        enrichment=enrichment,
    )


def test_strip_code_fences_handles_json_fence():
    text = "```json\n{\"title\": \"x\"}\n```"
    assert strip_code_fences(text) == '{"title": "x"}'


def test_strip_code_fences_drops_surrounding_chatter():
    text = 'Sure! Here it is: {"title": "x"} Hope that helps.'
    assert strip_code_fences(text) == '{"title": "x"}'


def test_parse_fenced_response():
    result = parse_enrichment_response(f"```json\n{ENRICHMENT_REPLY}\n```")
    assert result.title == "Grocery shopping"
    assert result.tags == ["shopping", "groceries", "errands"]
    assert len(result.questions) == 3


def test_parse_rejects_non_json():
    with pytest.raises(ValueError):
        parse_enrichment_response("I could not process these notes.")


def test_parse_rejects_too_few_tags():
    payload = json.loads(ENRICHMENT_REPLY)
    payload["tags"] = ["one", "ONE", "two"]
    with pytest.raises(ValueError):
        parse_enrichment_response(json.dumps(payload))


def test_parse_rejects_too_few_questions():
    payload = json.loads(ENRICHMENT_REPLY)
    payload["questions"] = ["Only one?"]
    with pytest.raises(ValueError):
        parse_enrichment_response(json.dumps(payload))


def test_parse_bounds_lengths_and_counts():
    payload = {
        "title": "T" * 80,
        "description": "D" * 400,
        "tags": ["a", "b", "c", "d", "e", "f", "g"],
        "questions": ["q1?", "q2?", "q3?", "q4?"],
        "confidence": 0.9,
    }
    result = parse_enrichment_response(json.dumps(payload))
    assert len(result.title) == 50
    assert len(result.description) == 150
    assert result.tags == ["a", "b", "c", "d", "e"]
    assert result.questions == ["q1?", "q2?", "q3?"]


def test_parse_cuts_long_tags():
    payload = {
        "title": "Groceries",
        "description": "Shopping list",
        "tags": ["X" * 70, "food", "errands"],
        "questions": ["q1?", "q2?", "q3?"],
    }
    result = parse_enrichment_response(json.dumps(payload))
    assert result.tags == ["x" * 50, "food", "errands"]


def test_prompt_numbers_notes_and_targets_most_recent():
    prompt = build_thread_prompt(["Buy milk", "Also buy eggs"])
    assert "1. Buy milk" in prompt
    assert "2. Also buy eggs" in prompt
    assert "(note 2)" in prompt


@pytest.mark.asyncio
async def test_enrichment_writes_metadata_and_prompt_note(thread_repo, note_repo, enrichment):
    thread_id = await seed_thread(thread_repo, note_repo, ["Buy milk", "Also buy eggs"])

    await run_job(thread_id, thread_repo, note_repo, enrichment)

    thread = await thread_repo.get(thread_id)
    assert 0 < len(thread.title) <= 50
    assert 0 < len(thread.description) <= 150
    assert 3 <= len(thread.tags) <= 5
    assert len(thread.leading_questions) == 3

    notes = await note_repo.list_by_thread(thread_id)
    prompts = [n for n in notes if n.is_prompt]
    assert len(prompts) == 1
    assert prompts[0].content == "\n".join(thread.leading_questions)
    assert notes[-1].is_prompt
    assert thread.note_count == 2


@pytest.mark.asyncio
async def test_enrichment_without_content_notes_is_noop(thread_repo, note_repo, fake_openai, enrichment):
    thread = await thread_repo.create(Thread())
    await note_repo.create(Note(thread_id=thread.id, content="Old question?", is_prompt=True))

    await run_job(thread.id, thread_repo, note_repo, enrichment)

    stored = await thread_repo.get(thread.id)
    assert stored == thread
    assert len(await note_repo.list_by_thread(thread.id)) == 1
    assert fake_openai.responses.calls == []


@pytest.mark.asyncio
async def test_unparseable_reply_leaves_thread_untouched(thread_repo, note_repo):
    client = FakeOpenAI(replies=['{"title": "Half a reply"'])
    enrichment = EnrichmentService(client, model="test-model")
    thread_id = await seed_thread(thread_repo, note_repo, ["Buy milk"])
    before = await thread_repo.get(thread_id)

    await run_job(thread_id, thread_repo, note_repo, enrichment)

    after = await thread_repo.get(thread_id)
    assert after == before
    assert after.title == DEFAULT_THREAD_TITLE
    assert after.description == DEFAULT_THREAD_DESCRIPTION
    assert all(not n.is_prompt for n in await note_repo.list_by_thread(thread_id))


@pytest.mark.asyncio
async def test_prompt_notes_are_excluded_from_later_enrichment(thread_repo, note_repo, fake_openai, enrichment):
    thread_id = await seed_thread(thread_repo, note_repo, ["Buy milk"])
    await run_job(thread_id, thread_repo, note_repo, enrichment)
    await note_repo.create(Note(thread_id=thread_id, content="Also buy eggs"))

    await run_job(thread_id, thread_repo, note_repo, enrichment)

    second_prompt = fake_openai.responses.calls[1]["input"][1]["content"]
    assert "1. Buy milk" in second_prompt
    assert "2. Also buy eggs" in second_prompt
    assert "Which store are you going to?" not in second_prompt


@pytest.mark.asyncio
async def test_reasoning_effort_is_forwarded(fake_openai):
    enrichment = EnrichmentService(fake_openai, model="gpt-5-nano", reasoning_effort="low")

    result = await enrichment.generate_thread_metadata(["Buy milk"])

    assert result is not None
    call = fake_openai.responses.calls[0]
    assert call["model"] == "gpt-5-nano"
    assert call["reasoning"] == {"effort": "low"}
