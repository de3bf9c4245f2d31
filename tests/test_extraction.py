"""Tests for LLM output parsing and the extraction engine."""

import json
from datetime import date

import httpx
import pytest
from openai import APIConnectionError

from api.services import ConfigurationError, ExtractionError, OutputParseError
from api.services.extraction import (
    UNKNOWN_IDOL,
    build_prompt,
    normalize_events,
    parse_model_output,
    strip_reasoning,
)
from conftest import make_extractor

SOURCE = "https://example.com/tour"

PAYLOAD = {
    "idol_name": "星野アイ",
    "events": [
        {
            "title": "B小町 LIVE 2026",
            "event_date": "2026-04-15T18:00:00",
            "venue": "東京ドーム",
            "source_url": "https://model-made-this-up.example",
            "deadlines": [
                {"type": "lottery_start", "end_at": "2026-02-01T10:00:00"},
                {"type": "lottery_end", "end_at": "2026-02-10T23:59:00", "description": "FC先行"},
            ],
        }
    ],
}


class TestParseModelOutput:
    def test_parses_fenced_json_block(self):
        text = f"Here you go:\n```json\n{json.dumps(PAYLOAD, ensure_ascii=False)}\n```\nDone."
        assert parse_model_output(text) == PAYLOAD

    def test_parses_fence_without_language_tag(self):
        text = f"```\n{json.dumps(PAYLOAD)}\n```"
        assert parse_model_output(text)["idol_name"] == "星野アイ"

    def test_parses_raw_json(self):
        assert parse_model_output(json.dumps(PAYLOAD)) == PAYLOAD

    @pytest.mark.parametrize("text", [
        "I could not find any events.",
        "```json\n{not json}\n```",
        "[1, 2, 3]",
    ])
    def test_unparseable_output_raises(self, text: str):
        with pytest.raises(OutputParseError, match="Failed to parse event information"):
            parse_model_output(text)


class TestNormalizeEvents:
    def test_stamps_source_url_on_every_event(self):
        events = normalize_events(PAYLOAD["events"] * 2, SOURCE)
        assert [e.source_url for e in events] == [SOURCE, SOURCE]

    def test_drops_events_without_title(self):
        raw = [{"title": "", "deadlines": []}, {"venue": "x"}, {"title": "Keep"}]
        assert [e.title for e in normalize_events(raw, SOURCE)] == ["Keep"]

    def test_drops_invalid_deadlines_only(self):
        raw = [{
            "title": "Show",
            "deadlines": [
                {"type": "payment", "end_at": "2026-03-01T23:59:00"},
                {"type": "refund", "end_at": "2026-03-02T00:00:00"},
                {"type": "lottery_end"},
            ],
        }]
        (event,) = normalize_events(raw, SOURCE)
        assert [d.type for d in event.deadlines] == ["payment"]

    def test_missing_events_is_empty(self):
        assert normalize_events(None, SOURCE) == []

    def test_non_list_events_raises(self):
        with pytest.raises(OutputParseError):
            normalize_events({"title": "x"}, SOURCE)


def test_strip_reasoning_removes_think_blocks():
    assert strip_reasoning("<think>hmm</think>\n{\"a\": 1}") == '{"a": 1}'
    assert strip_reasoning("<think>never closed") == ""


def test_build_prompt_appends_content_and_year():
    prompt = build_prompt("PAGE BODY", 2026)
    assert "PAGE BODY" in prompt
    assert prompt.rstrip().endswith("2026")


class TestEventExtractor:
    async def test_extracts_events_and_overrides_source_url(self):
        extractor, llm = make_extractor(f"```json\n{json.dumps(PAYLOAD)}\n```")
        result = await extractor.extract("page markdown", SOURCE)

        assert result.idol_name == "星野アイ"
        assert len(result.events) == 1
        assert result.events[0].source_url == SOURCE
        assert [d.type for d in result.events[0].deadlines] == ["lottery_start", "lottery_end"]
        assert result.raw_response.startswith("```json")

        call = llm.completions.calls[0]
        assert call["max_tokens"] == 4096
        assert call["model"] == "test/model"
        prompt = call["messages"][0]["content"]
        assert "page markdown" in prompt
        assert str(date.today().year) in prompt

    async def test_missing_idol_name_falls_back_to_unknown(self):
        extractor, _ = make_extractor(json.dumps({"events": []}))
        result = await extractor.extract("page", SOURCE)
        assert result.idol_name == UNKNOWN_IDOL
        assert result.events == []

    async def test_missing_api_key_raises_configuration_error(self):
        extractor, llm = make_extractor(json.dumps(PAYLOAD), api_key="")
        with pytest.raises(ConfigurationError):
            await extractor.extract("page", SOURCE)
        assert llm.completions.calls == []

    @pytest.mark.parametrize("content", [None, "", "<think>only thinking</think>"])
    async def test_empty_response_raises(self, content):
        extractor, _ = make_extractor(content)
        with pytest.raises(ExtractionError, match="No response"):
            await extractor.extract("page", SOURCE)

    async def test_unparseable_response_raises(self):
        extractor, _ = make_extractor("Sorry, no events here.")
        with pytest.raises(OutputParseError):
            await extractor.extract("page", SOURCE)

    async def test_api_error_becomes_extraction_error(self):
        request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
        extractor, _ = make_extractor(APIConnectionError(request=request))
        with pytest.raises(ExtractionError, match="request failed"):
            await extractor.extract("page", SOURCE)
