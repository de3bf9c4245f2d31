"""robots.txt parsing and crawl permission checks.

The checker fetches ``/robots.txt`` from the target origin and evaluates
the Allow/Disallow rules that apply to ``*`` or to the reader proxy that
will actually fetch the page.
"""

import logging
import re
from dataclasses import dataclass
from urllib.parse import SplitResult, urlsplit

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; Favea/1.0; +https://favea.app)"

# Agent names whose groups bind us: the Jina reader does the fetching
FETCHER_AGENTS = frozenset({"jina", "jinaai", "favea"})


@dataclass(frozen=True)
class RobotsRule:
    path: str
    allow: bool


@dataclass(frozen=True)
class PermissionDecision:
    """Result of a robots.txt check."""

    allowed: bool
    reason: str | None = None


def _split_directive(line: str) -> tuple[str, str] | None:
    """Split ``Name: value`` into (lowercased name, stripped value)."""
    name, sep, value = line.partition(":")
    if not sep:
        return None
    return name.strip().lower(), value.strip()


def parse_robots_txt(content: str, agents: frozenset[str] = FETCHER_AGENTS) -> list[RobotsRule]:
    """Collect the rules from every group addressed to ``*`` or one of ``agents``.

    Consecutive User-agent lines form a single group; the first rule line
    closes the header so the next User-agent starts a new group.
    """
    rules: list[RobotsRule] = []
    relevant = False
    in_header = False

    for raw_line in content.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if not line:
            continue

        directive = _split_directive(line)
        if directive is None:
            continue
        name, value = directive

        if name == "user-agent":
            agent = value.lower()
            matches = agent == "*" or agent in agents
            relevant = (relevant or matches) if in_header else matches
            in_header = True
            continue

        in_header = False
        if not relevant or not value:
            continue

        if name == "disallow":
            rules.append(RobotsRule(path=value, allow=False))
        elif name == "allow":
            rules.append(RobotsRule(path=value, allow=True))

    return rules


def _compile_pattern(pattern: str) -> re.Pattern[str]:
    anchored = pattern.endswith("$")
    body = pattern[:-1] if anchored else pattern
    regex = "^" + ".*".join(re.escape(part) for part in body.split("*"))
    if anchored:
        regex += "$"
    return re.compile(regex)


def match_rule(url_path: str, pattern: str) -> bool:
    """True when ``pattern`` applies to ``url_path`` (path plus query)."""
    if "*" in pattern or pattern.endswith("$"):
        return _compile_pattern(pattern).match(url_path) is not None
    return url_path.startswith(pattern)


def find_winning_rule(url_path: str, rules: list[RobotsRule]) -> RobotsRule | None:
    """Pick the longest matching rule; Disallow wins a length tie.

    ``sorted`` is stable, so among equal rules the first listed wins.
    """
    ordered = sorted(rules, key=lambda r: (-len(r.path), r.allow))
    for rule in ordered:
        if match_rule(url_path, rule.path):
            return rule
    return None


def evaluate_rules(url_path: str, rules: list[RobotsRule]) -> PermissionDecision:
    winner = find_winning_rule(url_path, rules)
    if winner is None or winner.allow:
        return PermissionDecision(allowed=True)
    return PermissionDecision(
        allowed=False,
        reason=f"このサイトはスクレイピングを許可していません (Disallow: {winner.path})",
    )


def _origin_host(parts: SplitResult) -> str:
    """Host and port of a URL without any userinfo."""
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    if parts.port is not None:
        host += f":{parts.port}"
    return host


class RobotsChecker:
    """Decide whether a URL may be fetched according to its site's robots.txt."""

    def __init__(self, http: httpx.AsyncClient | None = None, timeout: float = 10.0) -> None:
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def check_allowed(self, url: str) -> PermissionDecision:
        """Fail closed on 5xx, fail open on everything else that goes wrong."""
        try:
            parts = urlsplit(url)
            if parts.scheme not in ("http", "https") or not parts.hostname:
                raise ValueError("Not an absolute http(s) URL")

            robots_url = f"{parts.scheme}://{_origin_host(parts)}/robots.txt"
            response = await self._http.get(robots_url, headers={"User-Agent": USER_AGENT})

            if response.status_code == 404:
                return PermissionDecision(allowed=True)

            if not response.is_success:
                if response.status_code >= 500:
                    logger.warning(f"robots.txt fetch failed: {robots_url} -> {response.status_code}")
                    return PermissionDecision(allowed=False, reason="robots.txtの取得に失敗しました")
                return PermissionDecision(allowed=True)

            rules = parse_robots_txt(response.text)
            if not rules:
                return PermissionDecision(allowed=True)

            url_path = parts.path or "/"
            if parts.query:
                url_path += f"?{parts.query}"

            decision = evaluate_rules(url_path, rules)
            if not decision.allowed:
                logger.info(f"robots.txt at {robots_url} blocks {url_path}: {decision.reason}")
            return decision

        except Exception as e:
            # The fetch step validates the URL for real
            logger.warning(f"robots.txt check error: {type(e).__name__}: {e}")
            return PermissionDecision(allowed=True)
