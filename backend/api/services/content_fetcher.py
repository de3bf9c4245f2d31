"""Page retrieval through the Jina Reader proxy.

The proxy renders the target page (including JavaScript) and returns it
as markdown, which is what the extraction prompt consumes.
"""

import logging

import httpx

from .errors import FetchError

logger = logging.getLogger(__name__)

READER_BASE_URL = "https://r.jina.ai"

# Keeps the extraction prompt inside the model's context window
MAX_CONTENT_LENGTH = 100_000
TRUNCATION_MARKER = "\n\n[...content truncated because the page is too long...]"


def truncate_content(content: str, limit: int = MAX_CONTENT_LENGTH) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + TRUNCATION_MARKER


class ContentFetcher:
    """Fetch a markdown rendering of a page that robots.txt already allowed."""

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        base_url: str = READER_BASE_URL,
        api_key: str = "",
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "text/markdown", "X-Return-Format": "markdown"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def fetch_content(self, url: str) -> str:
        """Return the page as markdown, truncated to MAX_CONTENT_LENGTH.

        Raises FetchError when the proxy is unreachable or answers non-2xx.
        """
        reader_url = f"{self.base_url}/{url}"
        try:
            response = await self._http.get(reader_url, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"Reader request failed for {url}: {type(e).__name__}: {e}")
            raise FetchError(f"Failed to fetch page: {type(e).__name__}") from e

        if not response.is_success:
            logger.error(f"Reader returned {response.status_code} for {url}")
            raise FetchError(
                f"Failed to fetch page: {response.status_code}",
                status_code=response.status_code,
            )

        content = response.text
        if len(content) > MAX_CONTENT_LENGTH:
            logger.info(f"Truncating page content for {url}: {len(content)} chars")
        return truncate_content(content)
