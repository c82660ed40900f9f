from __future__ import annotations
"""Per-item star source backed by the unauthenticated GitHub REST API."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Sequence
from urllib.error import HTTPError
from urllib.parse import quote
from urllib.request import Request, urlopen

from dothub.adapters.star_sources.github_common import (
    DEFAULT_API_BASE_URL,
    RateLimitSignal,
    build_headers,
    coerce_star_count,
    is_github,
    request_json,
)
from dothub.domain.entities import RepoIdentity, StarResult, StarSource
from dothub.domain.ports import StarSourcePort


LOGGER = logging.getLogger(__name__)


class GitHubRestStarSource(StarSourcePort):
    """One `GET /repos/<owner>/<repo>` per identity, issued on a thread pool.

    The first rate-limit answer sets a shared stop flag: lookups that have not
    started yet are reported unresolved without a request. Nothing is retried.
    """

    def __init__(
        self,
        *,
        api_base_url: str = DEFAULT_API_BASE_URL,
        max_workers: int = 8,
        timeout_seconds: float = 30.0,
        urlopen_fn: Callable[..., Any] = urlopen,
    ) -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be greater than 0")
        self._api_base_url = api_base_url.rstrip("/")
        self._max_workers = max_workers
        self._timeout_seconds = timeout_seconds
        self._urlopen_fn = urlopen_fn

    def fetch(self, identities: Sequence[RepoIdentity]) -> list[StarResult]:
        if not identities:
            return []

        halted = threading.Event()

        def lookup(identity: RepoIdentity) -> StarResult:
            if not is_github(identity):
                return StarResult.unresolved(identity.key)
            if halted.is_set():
                LOGGER.debug(
                    "lookup skipped after rate limit",
                    extra={"event": "stars.per_item.skipped", "identity": identity.key},
                )
                return StarResult.unresolved(identity.key)

            try:
                stars = self._request_stars(identity)
            except RateLimitSignal as signal:
                halted.set()
                LOGGER.warning(
                    "rest rate limit reached; no further requests will be issued",
                    extra={
                        "event": "stars.rate_limited",
                        "source": StarSource.PER_ITEM.value,
                        "status": signal.status,
                        "reset_at": signal.reset_at,
                        "identity": identity.key,
                    },
                )
                return StarResult.unresolved(identity.key)
            except RuntimeError as error:
                LOGGER.info(
                    "repository not resolved by rest",
                    extra={
                        "event": "stars.unresolved",
                        "identity": identity.key,
                        "guessed": identity.guessed,
                        "error": str(error),
                    },
                )
                return StarResult.unresolved(identity.key)

            return StarResult(identity_key=identity.key, stars=stars, source=StarSource.PER_ITEM)

        workers = min(self._max_workers, len(identities))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lookup, identities))

    def _request_stars(self, identity: RepoIdentity) -> int:
        url = f"{self._api_base_url}/repos/{quote(identity.owner, safe='')}/{quote(identity.repo, safe='')}"
        request = Request(url, headers=build_headers())

        try:
            payload = request_json(request, urlopen_fn=self._urlopen_fn, timeout_seconds=self._timeout_seconds)
        except HTTPError as error:
            raise RuntimeError(f"GitHub REST request failed with HTTP {error.code} for URL: {url}") from error

        if not isinstance(payload, dict):
            raise RuntimeError(f"Unexpected GitHub REST payload for URL: {url}")

        stars = coerce_star_count(payload.get("stargazers_count"))
        if stars is None:
            raise RuntimeError(f"GitHub REST payload has no valid 'stargazers_count' for URL: {url}")
        return stars
