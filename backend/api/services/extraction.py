"""Event extraction with an OpenAI-compatible language model.

The model reads the markdown of a page and answers with JSON describing
the idol and each event with its ticket deadlines. Output is validated
here; nothing the model says about the source URL is trusted.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from openai import APIError, AsyncOpenAI
from pydantic import ValidationError as PydanticValidationError

from api.schemas import DeadlineDraft, ExtractedEventDraft

from .errors import ConfigurationError, ExtractionError, OutputParseError

logger = logging.getLogger(__name__)

UNKNOWN_IDOL = "Unknown"

_FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_THINK_BLOCK_RE = re.compile(r"<think>[\s\S]*?</think>")
_OPEN_THINK_RE = re.compile(r"<think>[\s\S]*$")

EXTRACTION_PROMPT = """あなたはアイドル・アーティストのイベント情報を抽出するアシスタントです。
以下のWebページから、ライブ、コンサート、握手会、リリースイベント、ファンミーティングなどの情報を抽出してください。

抽出項目:
- title: イベントの正式名称
- event_date: 開催日時（ISO 8601形式 YYYY-MM-DDTHH:mm:ss、時刻が不明なら日付のみ）
- venue: 会場名
- deadlines: 次の種類の締切
  - lottery_start: 抽選受付の開始日時
  - lottery_end: 抽選受付の終了日時・申込締切
  - payment: 入金締切・支払期限

ルール:
- ページに実際に書かれている情報だけを抽出すること。推測や補完はしない
- 「3月上旬」のような曖昧な日付は、その月の1日とする
- 年の記載がない場合は、下記の現在の年を基準に判断する
- ページ内のイベントはすべて抽出する
- 関連するアイドル・アーティスト名を idol_name として特定する

説明文は不要です。次のJSONだけを出力してください:
{
  "idol_name": "アーティスト名",
  "events": [
    {
      "title": "イベント名",
      "event_date": "2026-03-15T18:00:00",
      "venue": "会場名",
      "deadlines": [
        {"type": "lottery_end", "end_at": "2026-02-28T23:59:59", "description": "一般抽選"}
      ]
    }
  ]
}

イベントが見つからない場合は events を空の配列にしてください。

---

Webページ内容:
"""


@dataclass(frozen=True)
class ExtractionConfig:
    """Model settings injected at construction time."""

    api_key: str
    model: str
    base_url: str = "https://openrouter.ai/api/v1"
    max_tokens: int = 4096


@dataclass
class ExtractionResult:
    idol_name: str
    events: list[ExtractedEventDraft] = field(default_factory=list)
    # Diagnostics only; never sent back to callers
    raw_response: str = field(default="", repr=False)


def build_prompt(page_content: str, current_year: int) -> str:
    return f"{EXTRACTION_PROMPT}{page_content}\n\n現在の年: {current_year}"


def strip_reasoning(text: str) -> str:
    """Remove <think> blocks some reasoning models emit before the answer."""
    text = _THINK_BLOCK_RE.sub("", text)
    text = _OPEN_THINK_RE.sub("", text)
    return text.strip()


def parse_model_output(text: str) -> dict[str, Any]:
    """Parse the JSON object from a fenced block, or from the raw text."""
    match = _FENCED_BLOCK_RE.search(text)
    payload = match.group(1).strip() if match else text.strip()
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as e:
        raise OutputParseError("Failed to parse event information") from e
    if not isinstance(parsed, dict):
        raise OutputParseError("Failed to parse event information")
    return parsed


def _normalize_deadlines(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    kept = []
    for item in raw:
        try:
            kept.append(DeadlineDraft.model_validate(item).model_dump())
        except PydanticValidationError as e:
            logger.warning(f"Dropping invalid deadline {item!r}: {e.error_count()} error(s)")
    return kept


def normalize_events(raw_events: Any, source_url: str) -> list[ExtractedEventDraft]:
    """Validate each event, drop the broken ones and stamp the source URL."""
    if raw_events is None:
        return []
    if not isinstance(raw_events, list):
        raise OutputParseError("Failed to parse event information")

    events = []
    for item in raw_events:
        if not isinstance(item, dict):
            logger.warning(f"Dropping non-object event: {item!r}")
            continue
        candidate = {
            **item,
            "deadlines": _normalize_deadlines(item.get("deadlines")),
            "source_url": source_url,
        }
        try:
            events.append(ExtractedEventDraft.model_validate(candidate))
        except PydanticValidationError as e:
            logger.warning(f"Dropping invalid event {item.get('title')!r}: {e.error_count()} error(s)")
    return events


class EventExtractor:
    """Turn page markdown into idol event drafts via the language model."""

    def __init__(self, config: ExtractionConfig, client: AsyncOpenAI | None = None) -> None:
        self.config = config
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(base_url=self.config.base_url, api_key=self.config.api_key)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()

    async def _complete(self, prompt: str) -> str:
        try:
            completion = await self.client.chat.completions.create(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except APIError as e:
            logger.error(f"LLM request failed [{self.config.model}]: {type(e).__name__}: {e}")
            raise ExtractionError("The language model request failed") from e

        if not completion.choices:
            return ""
        return strip_reasoning(completion.choices[0].message.content or "")

    async def extract(self, page_content: str, source_url: str) -> ExtractionResult:
        """Extract the idol name and event drafts from one page.

        Raises ConfigurationError without an API key and ExtractionError
        when the model answers with nothing parseable.
        """
        if not self.config.api_key:
            raise ConfigurationError("LLM API key is not configured")

        prompt = build_prompt(page_content, date.today().year)
        response_text = await self._complete(prompt)
        if not response_text:
            raise ExtractionError("No response from the language model")

        try:
            parsed = parse_model_output(response_text)
            events = normalize_events(parsed.get("events"), source_url)
        except ExtractionError:
            logger.error(f"Unparseable LLM output for {source_url}:\n{response_text}")
            raise

        idol_name = parsed.get("idol_name")
        if not isinstance(idol_name, str) or not idol_name.strip():
            idol_name = UNKNOWN_IDOL

        logger.info(f"Extracted {len(events)} event(s) for {idol_name!r} from {source_url}")
        logger.debug(f"Raw LLM output: {response_text}")
        return ExtractionResult(
            idol_name=idol_name.strip(),
            events=events,
            raw_response=response_text,
        )
