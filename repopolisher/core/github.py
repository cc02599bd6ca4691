"""GitHub helpers — remote URL parsing and a small REST client."""

from __future__ import annotations

import asyncio
import os
import re
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

log = structlog.get_logger("repopolisher.github")

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds

# ssh://git@host[:port]/owner/repo
_SSH_URL_RE = re.compile(r"^ssh://(?:[^@/]+@)?(?P<host>[^/:]+)(?::\d+)?/(?P<path>.+)$")
# git@host:owner/repo (scp-like syntax)
_SCP_URL_RE = re.compile(r"^(?:[^@/]+@)?(?P<host>[^/:]+):(?P<path>[^/].*)$")
# https://host/owner/repo, optionally with credentials
_HTTP_URL_RE = re.compile(r"^(?:https?|git)://(?:[^@/]+@)?(?P<host>[^/:]+)(?::\d+)?/(?P<path>.+)$")


@dataclass(frozen=True)
class RemoteRef:
    """Structured view of a git remote URL."""

    host: str
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def is_github(self) -> bool:
        return self.host.lower() == "github.com"


def parse_remote_url(url: str | None) -> RemoteRef | None:
    """Extract host/owner/repo from an HTTPS or SSH git remote URL.

    Handles:
      - https://github.com/owner/repo(.git)
      - git@github.com:owner/repo(.git)
      - ssh://git@github.com/owner/repo(.git)

    Returns None when the URL does not name an ``owner/repo`` pair. Only the
    first two path segments are used, so nested group paths are lossy.
    """
    if not url:
        return None
    url = url.strip().rstrip("/")
    for pattern in (_HTTP_URL_RE, _SSH_URL_RE, _SCP_URL_RE):
        match = pattern.match(url)
        if match:
            break
    else:
        return None

    parts = [p for p in match.group("path").split("/") if p]
    if len(parts) < 2:
        return None
    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[:-4]
    if not owner or not repo:
        return None
    return RemoteRef(host=match.group("host"), owner=owner, repo=repo)


class GitHubClient:
    """Thin async wrapper around the GitHub REST API."""

    def __init__(
        self,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        resolved_token = token or os.environ.get("GITHUB_TOKEN")
        headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if resolved_token:
            headers["Authorization"] = f"token {resolved_token}"
        self._client = httpx.AsyncClient(
            base_url="https://api.github.com",
            headers=headers,
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Single-resource GET, returns parsed JSON.

        Raises ``httpx.HTTPStatusError`` for 4xx responses and after the
        last retry of a 5xx response.
        """
        response = await self._request_with_retry(path, params)
        return response.json()

    async def fetch_repository(self, owner: str, repo: str) -> dict[str, Any]:
        """Return repository metadata plus its language byte counts."""
        data = await self.get(f"/repos/{owner}/{repo}")
        languages = await self.get(f"/repos/{owner}/{repo}/languages")
        return {
            "name": data.get("name") or repo,
            "description": data.get("description"),
            "stars": data.get("stargazers_count"),
            "default_branch": data.get("default_branch") or "main",
            "html_url": data.get("html_url") or f"https://github.com/{owner}/{repo}",
            "clone_url": data.get("clone_url") or f"https://github.com/{owner}/{repo}.git",
            "languages": languages if isinstance(languages, dict) else {},
        }

    async def _request_with_retry(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """GET with exponential backoff on 5xx and timeout errors."""
        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES):
            try:
                resp = await self._client.get(url, params=params)
                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp

                log.warning(
                    "github.server_error",
                    url=url,
                    status=resp.status_code,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = httpx.HTTPStatusError(
                    f"{resp.status_code}", request=resp.request, response=resp
                )
            except httpx.TimeoutException as exc:
                log.warning("github.timeout", url=url, attempt=attempt + 1)
                last_exc = exc

            if attempt < _MAX_RETRIES - 1:
                await asyncio.sleep(_RETRY_BASE_DELAY * (2**attempt))

        raise last_exc  # type: ignore[misc]
