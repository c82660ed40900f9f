from __future__ import annotations
"""Batched star source backed by the GitHub GraphQL API."""

import json
import logging
from typing import Any, Callable, Sequence
from urllib.error import HTTPError
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
from dothub.domain.errors import StarSourceUnavailable
from dothub.domain.ports import StarSourcePort


LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_BATCH_SIZE = 50


class GitHubGraphQLStarSource(StarSourcePort):
    """Resolve up to `max_batch_size` repositories per GraphQL round trip.

    Each repository becomes one aliased `repository(owner:, name:)` field, so a
    missing repository only nulls its own alias. A failed chunk marks just that
    chunk unresolved; a rate-limit answer stops the remaining chunks.
    """

    def __init__(
        self,
        *,
        token: str,
        api_base_url: str = DEFAULT_API_BASE_URL,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        timeout_seconds: float = 30.0,
        urlopen_fn: Callable[..., Any] = urlopen,
    ) -> None:
        if not token:
            raise ValueError("GraphQL star source requires a token")
        if max_batch_size <= 0:
            raise ValueError("max_batch_size must be greater than 0")
        self._token = token
        self._endpoint = f"{api_base_url.rstrip('/')}/graphql"
        self._max_batch_size = max_batch_size
        self._timeout_seconds = timeout_seconds
        self._urlopen_fn = urlopen_fn

    def fetch(self, identities: Sequence[RepoIdentity]) -> list[StarResult]:
        results = [StarResult.unresolved(identity.key) for identity in identities]
        eligible = [(index, identity) for index, identity in enumerate(identities) if is_github(identity)]

        chunks = [
            eligible[start : start + self._max_batch_size]
            for start in range(0, len(eligible), self._max_batch_size)
        ]

        for chunk_number, chunk in enumerate(chunks):
            try:
                data = self._query_chunk([identity for _, identity in chunk])
            except RateLimitSignal as signal:
                LOGGER.warning(
                    "graphql rate limit reached; skipping remaining chunks",
                    extra={
                        "event": "stars.rate_limited",
                        "source": StarSource.BATCHED.value,
                        "status": signal.status,
                        "reset_at": signal.reset_at,
                        "skipped_chunks": len(chunks) - chunk_number,
                    },
                )
                break
            except RuntimeError as error:
                LOGGER.warning(
                    "graphql chunk failed",
                    extra={
                        "event": "stars.batched.chunk_failed",
                        "chunk": chunk_number,
                        "size": len(chunk),
                        "error": str(error),
                    },
                )
                continue

            for position, (index, identity) in enumerate(chunk):
                node = data.get(f"r{position}")
                stars = coerce_star_count(node.get("stargazerCount")) if isinstance(node, dict) else None
                if stars is None:
                    LOGGER.info(
                        "repository not resolved by graphql",
                        extra={
                            "event": "stars.unresolved",
                            "identity": identity.key,
                            "guessed": identity.guessed,
                        },
                    )
                    continue
                results[index] = StarResult(identity_key=identity.key, stars=stars, source=StarSource.BATCHED)

        return results

    def _query_chunk(self, identities: Sequence[RepoIdentity]) -> dict[str, Any]:
        query, variables = build_query(identities)
        body = json.dumps({"query": query, "variables": variables}).encode("utf-8")
        headers = build_headers(self._token)
        headers["Content-Type"] = "application/json"
        request = Request(self._endpoint, data=body, headers=headers, method="POST")

        try:
            payload = request_json(request, urlopen_fn=self._urlopen_fn, timeout_seconds=self._timeout_seconds)
        except HTTPError as error:
            if error.code == 401:
                raise StarSourceUnavailable("GitHub rejected the token (HTTP 401)") from error
            raise RuntimeError(f"GitHub GraphQL request failed with HTTP {error.code}") from error

        if not isinstance(payload, dict):
            raise RuntimeError("Unexpected GraphQL payload: top-level value must be a JSON object")

        errors = payload.get("errors")
        if isinstance(errors, list) and any(
            isinstance(item, dict) and item.get("type") == "RATE_LIMITED" for item in errors
        ):
            raise RateLimitSignal(200)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise RuntimeError("Unexpected GraphQL payload: 'data' must be a JSON object")
        return data


def build_query(identities: Sequence[RepoIdentity]) -> tuple[str, dict[str, str]]:
    """Build one aliased query (`r0`, `r1`, ...) with owner/name variables."""
    declarations: list[str] = []
    fields: list[str] = []
    variables: dict[str, str] = {}
    for position, identity in enumerate(identities):
        declarations.append(f"$o{position}: String!, $n{position}: String!")
        fields.append(f"r{position}: repository(owner: $o{position}, name: $n{position}) {{ stargazerCount }}")
        variables[f"o{position}"] = identity.owner
        variables[f"n{position}"] = identity.repo
    query = f"query({', '.join(declarations)}) {{ {' '.join(fields)} }}"
    return query, variables
