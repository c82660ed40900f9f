from __future__ import annotations
"""HTTP helpers shared by the GitHub star sources."""

import json
from http.client import HTTPException
from typing import Any, Callable
from urllib.error import HTTPError, URLError
from urllib.request import Request

from dothub.domain.entities import RepoIdentity


GITHUB_HOST = "github.com"
DEFAULT_API_BASE_URL = "https://api.github.com"
USER_AGENT = "dothub/0.1"
RATE_LIMIT_STATUS_CODES = frozenset({403, 429})


class RateLimitSignal(Exception):
    """GitHub answered with a rate-limit status; stop issuing requests."""

    def __init__(self, status: int, reset_at: str | None = None) -> None:
        self.status = status
        self.reset_at = reset_at
        super().__init__(f"GitHub rate limit hit (HTTP {status})")


def is_github(identity: RepoIdentity) -> bool:
    return identity.host == GITHUB_HOST and bool(identity.owner) and bool(identity.repo)


def request_json(
    request: Request,
    *,
    urlopen_fn: Callable[..., Any],
    timeout_seconds: float,
) -> Any:
    """Send `request` and decode the JSON body.

    Raises:
        RateLimitSignal: on HTTP 403/429.
        HTTPError: on any other HTTP error status, for the caller to map.
        RuntimeError: on network errors, timeouts and undecodable bodies.
    """
    url = request.full_url
    try:
        with urlopen_fn(request, timeout=timeout_seconds) as response:
            content = response.read()
    except HTTPError as error:
        if error.code in RATE_LIMIT_STATUS_CODES:
            headers = error.headers
            reset_at = headers.get("X-RateLimit-Reset") if headers is not None else None
            raise RateLimitSignal(error.code, reset_at) from error
        raise
    except URLError as error:
        raise RuntimeError(f"GitHub request failed for URL: {url}: {error.reason}") from error
    except (OSError, HTTPException) as error:
        raise RuntimeError(f"GitHub request failed for URL: {url}: {error}") from error

    try:
        return json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as error:
        raise RuntimeError(f"Invalid JSON received from GitHub for URL: {url}") from error


def build_headers(token: str | None = None) -> dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": USER_AGENT,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def coerce_star_count(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value
