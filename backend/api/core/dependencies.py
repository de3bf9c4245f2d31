"""Dependency injection utilities for FastAPI"""

import logging
from collections.abc import Callable

import asyncpg
from fastapi import Cookie, Depends, Header, HTTPException

from api.core.config import get_settings
from api.core.database import get_database_manager
from api.services import (
    CollectionService,
    CollectPipeline,
    ContentFetcher,
    EventExtractor,
    ExtractionConfig,
    RobotsChecker,
    SessionService,
    StorageError,
)

logger = logging.getLogger(__name__)


# ============================================
# Service Dependencies
# ============================================


def get_session_service() -> SessionService:
    """Get SessionService instance (dependency injection)"""
    settings = get_settings()
    return SessionService(
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        audience=settings.jwt_audience,
    )


_robots: RobotsChecker | None = None
_fetcher: ContentFetcher | None = None
_extractor: EventExtractor | None = None


def get_robots_checker() -> RobotsChecker:
    """Get shared RobotsChecker singleton (connection reuse)."""
    global _robots
    if _robots is None:
        _robots = RobotsChecker(timeout=get_settings().http_timeout)
    return _robots


def get_content_fetcher() -> ContentFetcher:
    """Get shared ContentFetcher singleton (connection reuse)."""
    global _fetcher
    if _fetcher is None:
        settings = get_settings()
        _fetcher = ContentFetcher(
            base_url=settings.reader_base_url,
            api_key=settings.jina_api_key,
            timeout=settings.http_timeout,
        )
    return _fetcher


def get_event_extractor() -> EventExtractor:
    """Get shared EventExtractor singleton; the LLM client is created on first use."""
    global _extractor
    if _extractor is None:
        settings = get_settings()
        _extractor = EventExtractor(
            ExtractionConfig(
                api_key=settings.llm_api_key,
                model=settings.llm_model,
                base_url=settings.llm_base_url,
                max_tokens=settings.llm_max_tokens,
            )
        )
    return _extractor


async def close_shared_clients() -> None:
    """Close shared HTTP / LLM clients. Call on app shutdown."""
    global _robots, _fetcher, _extractor
    if _robots is not None:
        await _robots.close()
        _robots = None
    if _fetcher is not None:
        await _fetcher.close()
        _fetcher = None
    if _extractor is not None:
        await _extractor.close()
        _extractor = None


def get_db_pool() -> asyncpg.Pool:
    try:
        db_manager = get_database_manager()
    except RuntimeError:
        raise HTTPException(status_code=503, detail="Database not ready") from None
    if db_manager._pool is None:
        raise HTTPException(status_code=503, detail="Database not ready")
    return db_manager._pool


def get_collection_service(pool: asyncpg.Pool = Depends(get_db_pool)) -> CollectionService:
    """Get CollectionService instance (dependency injection)"""
    return CollectionService(pool, timezone=get_settings().default_timezone)


def get_collection_factory() -> Callable[[], CollectionService]:
    """Build CollectionService on demand; raises StorageError while the pool is missing"""

    def build() -> CollectionService:
        try:
            pool = get_database_manager().pool
        except RuntimeError as e:
            raise StorageError("Database not ready") from e
        return CollectionService(pool, timezone=get_settings().default_timezone)

    return build


def get_collect_pipeline(
    collection_factory: Callable[[], CollectionService] = Depends(get_collection_factory),
    robots: RobotsChecker = Depends(get_robots_checker),
    fetcher: ContentFetcher = Depends(get_content_fetcher),
    extractor: EventExtractor = Depends(get_event_extractor),
) -> CollectPipeline:
    """Get CollectPipeline wired with shared clients and a lazy collection service"""
    return CollectPipeline(robots, fetcher, extractor, collection_factory)


# ============================================
# Authentication Dependencies
# ============================================


def _extract_token(authorization: str | None, auth_token: str | None) -> str | None:
    """Bearer header first, then the auth_token cookie"""
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return auth_token or None


async def get_optional_user_id(
    authorization: str | None = Header(None),
    auth_token: str | None = Cookie(None),
) -> str | None:
    """Return the session user id, or None when missing/invalid"""
    token = _extract_token(authorization, auth_token)
    if not token:
        logger.debug("No session token provided")
        return None
    return get_session_service().get_user_id(token)


async def get_current_user_id(
    user_id: str | None = Depends(get_optional_user_id),
) -> str:
    """Require a valid session and return its user id"""
    if not user_id:
        raise HTTPException(status_code=401, detail="認証が必要です")
    return user_id
