from __future__ import annotations
"""Use case resolving star counts and ranking hub candidates."""

from dataclasses import dataclass
import logging
import re
from typing import Callable, Collection, Iterable, Sequence

from dothub.domain.entities import HubEntry, HubRow, RepoIdentity, StarResult
from dothub.domain.errors import InvalidReference, StarSourceUnavailable
from dothub.domain.identity import resolve
from dothub.domain.ports import StarSourcePort


LOGGER = logging.getLogger(__name__)

_HUB_TYPE_PATTERN = re.compile(r"^[\w.-]+$")


@dataclass(slots=True)
class PopularityAggregator:
    """Pick a star source per call and return order-preserving results.

    With a token the batched source is built through `batched_source_factory`;
    without one the per-item source is used. If the batched source is
    unavailable altogether (rejected token), the whole input is re-fetched
    through the per-item source. Results are never cached.
    """

    per_item_source: StarSourcePort
    batched_source_factory: Callable[[str], StarSourcePort]

    def fetch_stars(self, identities: Sequence[RepoIdentity], token: str | None = None) -> list[StarResult]:
        if not identities:
            return []

        if token:
            try:
                results = self.batched_source_factory(token).fetch(identities)
            except StarSourceUnavailable as error:
                LOGGER.warning(
                    "batched star source unavailable; falling back to per-item lookups",
                    extra={"event": "stars.batched.unavailable", "error": str(error), "count": len(identities)},
                )
                results = self.per_item_source.fetch(identities)
        else:
            results = self.per_item_source.fetch(identities)

        if len(results) != len(identities):
            raise RuntimeError(
                f"Star source returned {len(results)} results for {len(identities)} identities"
            )

        LOGGER.info(
            "star lookup completed",
            extra={
                "event": "stars.completed",
                "count": len(results),
                "unresolved": sum(1 for result in results if not result.resolved),
            },
        )
        return results


def parse_hub_entry(text: str) -> HubEntry:
    """Split `type=reference`; a bare reference has an empty type.

    The type is only taken when the part before `=` is a plain word, so
    URLs with query strings stay whole.
    """
    head, separator, tail = text.partition("=")
    if separator and _HUB_TYPE_PATTERN.match(head.strip()):
        return HubEntry(type=head.strip(), reference=tail.strip())
    return HubEntry(type="", reference=text.strip())


def select_hub_entries(entries: Iterable[HubEntry], types: Iterable[str] = ()) -> list[HubEntry]:
    """Keep entries whose type is one of `types`, compared case-insensitively.

    No types means no filtering.
    """
    wanted = {item.strip().lower() for item in types if item.strip()}
    if not wanted:
        return list(entries)
    return [entry for entry in entries if entry.type.lower() in wanted]


def resolve_hub_entries(entries: Sequence[HubEntry]) -> list[RepoIdentity]:
    """Resolve every entry; unparseable references become unresolvable placeholders.

    A placeholder has no host, so no star source sends a request for it and
    it ranks with the other unresolved rows.
    """
    identities: list[RepoIdentity] = []
    for entry in entries:
        try:
            identities.append(resolve(entry.reference))
        except InvalidReference as error:
            LOGGER.warning(
                "invalid hub reference kept as an unresolved row",
                extra={"event": "hub.reference.invalid", "reference": entry.reference, "error": str(error)},
            )
            identities.append(RepoIdentity(name="", clone_url=entry.reference))
    return identities


def rank_hub(
    identities: Sequence[RepoIdentity],
    results: Sequence[StarResult],
    installed_names: Collection[str],
    types: Sequence[str] | None = None,
) -> list[HubRow]:
    """Pair identities with their results and rank by stars, unresolved last."""
    if types is None:
        types = [""] * len(identities)
    paired = list(zip(identities, results, types, strict=True))
    ordered = sorted(
        paired,
        key=lambda item: (item[1].stars is None, -(item[1].stars or 0)),
    )
    return [
        HubRow(
            rank=position,
            stars=result.stars,
            installed=bool(identity.name) and identity.name in installed_names,
            source_url=identity.clone_url,
            identity_key=result.identity_key,
            type=hub_type,
        )
        for position, (identity, result, hub_type) in enumerate(ordered, start=1)
    ]
