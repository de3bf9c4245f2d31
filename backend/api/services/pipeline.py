"""AI collection pipeline orchestration.

extract: robots.txt check -> reader fetch -> LLM extraction, returns a preview.
save:    persists the drafts the user confirmed.

Every branch ends in a PipelineResult so the router has a single shape
to turn into an HTTP response.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any
from urllib.parse import quote_plus

from api.schemas import CollectRequest

from .collection_service import CollectionService
from .content_fetcher import ContentFetcher
from .errors import (
    ConfigurationError,
    ExtractionError,
    FetchError,
    OutputParseError,
    StorageError,
    ValidationError,
)
from .extraction import EventExtractor
from .robots import RobotsChecker

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.google.com/search?q="


class ErrorKind(Enum):
    INPUT = "input"
    AUTH = "auth"
    PERMISSION = "permission"
    UPSTREAM_FETCH = "upstream_fetch"
    EXTRACTION = "extraction"
    STORAGE = "storage"
    UNEXPECTED = "unexpected"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.INPUT: 400,
    ErrorKind.AUTH: 401,
    ErrorKind.PERMISSION: 403,
    ErrorKind.UPSTREAM_FETCH: 502,
    ErrorKind.EXTRACTION: 500,
    ErrorKind.STORAGE: 500,
    ErrorKind.UNEXPECTED: 500,
}

# User-facing messages (the frontend is Japanese)
MSG_AUTH_REQUIRED = "認証が必要です"
MSG_KEYWORD_OR_URL = "キーワードまたはURLが必要です"
MSG_SAVE_INPUT = "推し名と保存するイベントが必要です"
MSG_UNKNOWN_MODE = "不明なモードです"
MSG_FETCH_FAILED = "ページの取得に失敗しました"
MSG_LLM_NOT_CONFIGURED = "AI抽出機能が設定されていません"
MSG_LLM_NO_RESPONSE = "AIからの応答が取得できませんでした"
MSG_PARSE_FAILED = "イベント情報の解析に失敗しました"
MSG_STORAGE_FAILED = "イベントの保存に失敗しました"
MSG_SERVER_ERROR = "サーバーエラーが発生しました"


@dataclass
class PipelineResult:
    """Tagged outcome of a pipeline run: data on success, error + kind otherwise."""

    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    kind: ErrorKind | None = field(default=None)

    @classmethod
    def ok(cls, data: dict[str, Any]) -> "PipelineResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "PipelineResult":
        return cls(success=False, error=error, kind=kind)

    @property
    def status_code(self) -> int:
        return 200 if self.kind is None else self.kind.status_code

    def to_payload(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"error": self.error}


def build_search_url(keyword: str, year: int | None = None) -> str:
    """Search-engine URL for an idol keyword, biased to ticket pages."""
    query = f"{keyword} ライブ チケット {year or date.today().year}"
    return SEARCH_URL + quote_plus(query)


class CollectPipeline:
    """Entry point for the extract/save modes."""

    def __init__(
        self,
        robots: RobotsChecker,
        fetcher: ContentFetcher,
        extractor: EventExtractor,
        collection_factory: Callable[[], CollectionService],
    ) -> None:
        self.robots = robots
        self.fetcher = fetcher
        self.extractor = extractor
        # Built per save so extract mode never needs the database
        self.collection_factory = collection_factory

    async def run(self, request: CollectRequest, user_id: str | None) -> PipelineResult:
        """Dispatch on ``request.mode``; never raises."""
        try:
            if not user_id:
                return PipelineResult.fail(ErrorKind.AUTH, MSG_AUTH_REQUIRED)

            mode = (request.mode or "extract").strip().lower()
            if mode == "extract":
                return await self.extract(request.keyword, request.url)
            if mode == "save":
                return await self.save(request.idol_name, request.events, user_id)
            return PipelineResult.fail(ErrorKind.INPUT, f"{MSG_UNKNOWN_MODE}: {request.mode}")
        except Exception as e:
            logger.exception(f"AI collect pipeline error: {e}")
            return PipelineResult.fail(ErrorKind.UNEXPECTED, MSG_SERVER_ERROR)

    async def extract(self, keyword: str | None, url: str | None) -> PipelineResult:
        keyword = (keyword or "").strip()
        url = (url or "").strip()
        if not keyword and not url:
            return PipelineResult.fail(ErrorKind.INPUT, MSG_KEYWORD_OR_URL)

        target_url = url or build_search_url(keyword)
        logger.info(f"Extract requested: keyword={keyword!r}, target={target_url}")

        decision = await self.robots.check_allowed(target_url)
        if not decision.allowed:
            return PipelineResult.fail(ErrorKind.PERMISSION, decision.reason or MSG_FETCH_FAILED)

        try:
            content = await self.fetcher.fetch_content(target_url)
        except FetchError as e:
            logger.error(f"Fetch failed for {target_url}: status={e.status_code}")
            return PipelineResult.fail(ErrorKind.UPSTREAM_FETCH, MSG_FETCH_FAILED)

        try:
            result = await self.extractor.extract(content, target_url)
        except ConfigurationError as e:
            logger.error(f"Extraction not configured: {e}")
            return PipelineResult.fail(ErrorKind.EXTRACTION, MSG_LLM_NOT_CONFIGURED)
        except OutputParseError:
            return PipelineResult.fail(ErrorKind.EXTRACTION, MSG_PARSE_FAILED)
        except ExtractionError as e:
            logger.error(f"Extraction failed for {target_url}: {e}")
            return PipelineResult.fail(ErrorKind.EXTRACTION, MSG_LLM_NO_RESPONSE)

        return PipelineResult.ok(
            {
                "idol_name": result.idol_name,
                "events": [event.model_dump() for event in result.events],
                "message": f"{len(result.events)}件のイベントが見つかりました。内容を確認してください。",
            }
        )

    async def save(
        self,
        idol_name: str | None,
        events: list[Any] | None,
        user_id: str,
    ) -> PipelineResult:
        try:
            collection = self.collection_factory()
            saved = await collection.save(idol_name, events, user_id)
        except ValidationError as e:
            logger.info(f"Save rejected: {e}")
            return PipelineResult.fail(ErrorKind.INPUT, MSG_SAVE_INPUT)
        except StorageError as e:
            logger.error(f"Save failed: {e}")
            return PipelineResult.fail(ErrorKind.STORAGE, MSG_STORAGE_FAILED)

        return PipelineResult.ok({"saved_count": saved.saved_count, "message": saved.message})
