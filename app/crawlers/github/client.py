"""Async GitHub REST client returning FetchResult contracts."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

from app.config.settings import settings
from app.crawlers.github.contracts import (
    CommitContract,
    CommitListContract,
    FetchResult,
    FetchState,
    LanguagesContract,
    RepoContract,
)

logger = logging.getLogger(__name__)

REDACTED = "***REDACTED***"

_SENSITIVE_KEY_PARTS = ("authorization", "token", "api_key", "apikey", "secret", "password", "session", "cookie")
_PAYLOAD_KEYS = {"body", "content", "payload", "raw", "raw_text", "text"}
_SECRET_PATTERNS = (
    re.compile(r"(?i)(bearer\s+)[^\s,;\"']+"),
    re.compile(r"(?i)((?:access_)?token|api[_-]?key|password|secret)(\s*[=:]\s*)[^\s&,;\"']+"),
)


def _is_sensitive_key(key: Optional[str]) -> bool:
    if not key:
        return False
    lowered = key.lower()
    return any(part in lowered for part in _SENSITIVE_KEY_PARTS)


def _scrub(text: str) -> str:
    text = _SECRET_PATTERNS[0].sub(lambda m: m.group(1) + REDACTED, text)
    return _SECRET_PATTERNS[1].sub(lambda m: m.group(1) + m.group(2) + REDACTED, text)


def sanitize_for_log(value: Any, key: Optional[str] = None) -> Any:
    """Mask credentials and bulky payloads before they reach log records."""
    if _is_sensitive_key(key):
        return REDACTED
    if isinstance(value, Mapping):
        return {k: sanitize_for_log(v, key=str(k)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_for_log(item) for item in value]
    if isinstance(value, str):
        if key and key.lower() in _PAYLOAD_KEYS:
            return f"<redacted payload len={len(value)}>"
        return _scrub(value)
    return value


def sanitize_log_extra(**fields: Any) -> dict[str, Any]:
    return {name: sanitize_for_log(value, key=name) for name, value in fields.items()}


class GitHubClient:
    """
    Thin async wrapper over the GitHub REST API

    Every call resolves to a FetchResult instead of raising, so callers
    decide whether a failure skips an item or aborts the request.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_base_seconds: float = 1.0,
        backoff_max_seconds: float = 30.0,
        rate_limit_buffer_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._token = token if token is not None else settings.GITHUB_TOKEN
        self._max_retries = max(int(max_retries if max_retries is not None else settings.GITHUB_MAX_RETRIES), 1)
        self._backoff_base = backoff_base_seconds
        self._backoff_max = backoff_max_seconds
        self._rate_limit_buffer = rate_limit_buffer_seconds
        self._sleep = sleep

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": settings.USER_AGENT,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        timeout = timeout_seconds if timeout_seconds is not None else settings.GITHUB_TIMEOUT_SECONDS
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.GITHUB_API_URL).rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    async def get_repo(self, owner: str, repo: str) -> RepoContract:
        return await self._request(f"/repos/{owner}/{repo}")

    async def list_languages(self, owner: str, repo: str) -> LanguagesContract:
        result = await self._request(f"/repos/{owner}/{repo}/languages")
        if result.is_ok and isinstance(result.data, dict):
            result.data = {str(language): int(size) for language, size in result.data.items()}
        return result

    async def list_commits(
        self,
        owner: str,
        repo: str,
        *,
        since: str,
        until: Optional[str] = None,
        page: int = 1,
        per_page: int = 100,
    ) -> CommitListContract:
        params: dict[str, Any] = {"since": since, "per_page": per_page, "page": page}
        if until:
            params["until"] = until
        return await self._request(f"/repos/{owner}/{repo}/commits", params=params)

    async def get_commit(self, owner: str, repo: str, sha: str) -> CommitContract:
        return await self._request(f"/repos/{owner}/{repo}/commits/{sha}")

    async def _request(self, path: str, params: Optional[dict[str, Any]] = None) -> FetchResult[Any]:
        backoff = self._backoff_base
        last: FetchResult[Any] = FetchResult(state=FetchState.FAILED, error="no attempt made")

        for attempt in range(1, self._max_retries + 1):
            is_last = attempt == self._max_retries
            try:
                response = await self._client.get(path, params=params)
            except httpx.HTTPError as exc:
                last = FetchResult(state=FetchState.FAILED, error=f"{type(exc).__name__}: {exc}")
                logger.warning(
                    "GitHub request error",
                    extra=sanitize_log_extra(path=path, params=params or {}, attempt=attempt, error=last.error),
                )
                if not is_last:
                    await self._sleep(backoff)
                    backoff = min(backoff * 2, self._backoff_max)
                    continue
                return last

            if 200 <= response.status_code < 300:
                data = response.json() if response.content else None
                state = FetchState.EMPTY if data in ([], {}, None) else FetchState.OK
                return FetchResult(state=state, data=data, status_code=response.status_code)

            rate_limited = self._is_rate_limited(response)
            last = FetchResult(
                state=FetchState.FAILED,
                status_code=response.status_code,
                error=self._error_message(response),
                rate_limited=rate_limited,
            )

            if rate_limited and not is_last:
                wait = self._rate_limit_wait_seconds(response, backoff)
                logger.warning(
                    "GitHub rate limit hit, waiting",
                    extra=sanitize_log_extra(path=path, status_code=response.status_code, wait_seconds=wait),
                )
                await self._sleep(wait)
                backoff = min(backoff * 2, self._backoff_max)
                continue

            if response.status_code >= 500 and not is_last:
                await self._sleep(backoff)
                backoff = min(backoff * 2, self._backoff_max)
                continue

            break

        logger.warning(
            "GitHub request failed",
            extra=sanitize_log_extra(
                path=path,
                params=params or {},
                status_code=last.status_code,
                error=last.error,
                retries=self._max_retries,
            ),
        )
        return last

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        if response.status_code == 429:
            return True
        if response.status_code != 403:
            return False
        return response.headers.get("x-ratelimit-remaining") == "0" or "retry-after" in response.headers

    def _rate_limit_wait_seconds(self, response: httpx.Response, fallback: float) -> float:
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                return max(float(retry_after), 0.0)
            except ValueError:
                pass

        reset = response.headers.get("x-ratelimit-reset")
        if reset:
            try:
                wait = int(reset) - int(time.time()) + self._rate_limit_buffer
                return min(max(float(wait), 0.0), self._backoff_max)
            except ValueError:
                pass
        return fallback

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        message = ""
        try:
            body = response.json()
            if isinstance(body, dict):
                message = str(body.get("message") or "")
        except ValueError:
            message = (response.text or "")[:200]
        return f"HTTP {response.status_code}" + (f": {message}" if message else "")
