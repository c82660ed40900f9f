import pytest

from dothub.application.use_cases.popularity import (
    PopularityAggregator,
    parse_hub_entry,
    rank_hub,
    resolve_hub_entries,
    select_hub_entries,
)
from dothub.domain.entities import HubEntry, StarResult, StarSource
from dothub.domain.errors import StarSourceUnavailable
from dothub.domain.identity import resolve
from dothub.domain.ports import StarSourcePort


class RecordingSource(StarSourcePort):
    def __init__(self, source, stars=None, error=None):
        self.source = source
        self.stars = stars or {}
        self.error = error
        self.calls = []

    def fetch(self, identities):
        self.calls.append([identity.key for identity in identities])
        if self.error is not None:
            raise self.error
        return [
            StarResult(identity.key, self.stars[identity.key], self.source)
            if identity.key in self.stars
            else StarResult.unresolved(identity.key)
            for identity in identities
        ]


@pytest.fixture
def identities():
    return [resolve("a/a"), resolve("b/b"), resolve("c/c")]


def _aggregator(per_item, batched):
    tokens = []

    def factory(token):
        tokens.append(token)
        return batched

    aggregator = PopularityAggregator(per_item_source=per_item, batched_source_factory=factory)
    return aggregator, tokens


def test_token_selects_batched_source(identities):
    per_item = RecordingSource(StarSource.PER_ITEM)
    batched = RecordingSource(StarSource.BATCHED, {"a/a": 1, "b/b": 2, "c/c": 3})
    aggregator, tokens = _aggregator(per_item, batched)

    results = aggregator.fetch_stars(identities, token="secret")

    assert tokens == ["secret"]
    assert batched.calls == [["a/a", "b/b", "c/c"]]
    assert per_item.calls == []
    assert [result.source for result in results] == [StarSource.BATCHED] * 3


def test_missing_token_selects_per_item_source(identities):
    per_item = RecordingSource(StarSource.PER_ITEM, {"a/a": 1, "c/c": 3})
    batched = RecordingSource(StarSource.BATCHED)
    aggregator, tokens = _aggregator(per_item, batched)

    results = aggregator.fetch_stars(identities, token=None)

    assert tokens == []
    assert [result.stars for result in results] == [1, None, 3]
    assert [result.identity_key for result in results] == ["a/a", "b/b", "c/c"]


def test_unavailable_batched_source_falls_back_to_per_item(identities):
    per_item = RecordingSource(StarSource.PER_ITEM, {"a/a": 1, "b/b": 2, "c/c": 3})
    batched = RecordingSource(StarSource.BATCHED, error=StarSourceUnavailable("HTTP 401"))
    aggregator, _ = _aggregator(per_item, batched)

    results = aggregator.fetch_stars(identities, token="expired")

    assert per_item.calls == [["a/a", "b/b", "c/c"]]
    assert [result.source for result in results] == [StarSource.PER_ITEM] * 3


def test_empty_input_touches_no_source():
    per_item = RecordingSource(StarSource.PER_ITEM)
    batched = RecordingSource(StarSource.BATCHED)
    aggregator, tokens = _aggregator(per_item, batched)

    assert aggregator.fetch_stars([], token="secret") == []
    assert tokens == [] and per_item.calls == []


def test_rank_hub_orders_by_stars_with_unresolved_last():
    identities = [resolve("a/low"), resolve("b/none"), resolve("c/high"), resolve("d/mid")]
    results = [
        StarResult("a/low", 3, StarSource.BATCHED),
        StarResult.unresolved("b/none"),
        StarResult("c/high", 900, StarSource.BATCHED),
        StarResult("d/mid", 40, StarSource.BATCHED),
    ]

    rows = rank_hub(identities, results, installed_names={"mid"})

    assert [(row.rank, row.identity_key, row.stars, row.installed) for row in rows] == [
        (1, "c/high", 900, False),
        (2, "d/mid", 40, True),
        (3, "a/low", 3, False),
        (4, "b/none", None, False),
    ]
    assert rows[0].source_url == "https://github.com/c/high"


def test_rank_hub_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        rank_hub([resolve("a/a")], [], installed_names=set())


@pytest.mark.parametrize(
    ("text", "entry"),
    [
        ("nvim=folke/lazy.nvim", HubEntry("nvim", "folke/lazy.nvim")),
        (" tmux = tmux-plugins/tpm ", HubEntry("tmux", "tmux-plugins/tpm")),
        ("folke/lazy.nvim", HubEntry("", "folke/lazy.nvim")),
        ("https://example.com/a/b?tab=readme", HubEntry("", "https://example.com/a/b?tab=readme")),
    ],
)
def test_parse_hub_entry(text, entry):
    assert parse_hub_entry(text) == entry


def test_select_hub_entries_ignores_case_and_blank_filters():
    entries = [HubEntry("nvim", "a/a"), HubEntry("Tmux", "b/b"), HubEntry("", "c/c")]

    assert select_hub_entries(entries, ["TMUX", " "]) == [HubEntry("Tmux", "b/b")]
    assert select_hub_entries(entries, []) == entries


def test_resolve_hub_entries_keeps_invalid_references_in_place():
    identities = resolve_hub_entries([HubEntry("", "a/a"), HubEntry("nvim", "not a ref"), HubEntry("", "c/c")])

    assert [identity.key for identity in identities] == ["a/a", "", "c/c"]
    assert identities[1].clone_url == "not a ref"
    assert identities[1].host == ""


def test_rank_hub_carries_types_and_never_marks_placeholders_installed():
    identities = resolve_hub_entries([HubEntry("nvim", "a/lazy"), HubEntry("tmux", "???")])
    results = [StarResult("a/lazy", 5, StarSource.BATCHED), StarResult.unresolved("")]

    rows = rank_hub(identities, results, installed_names={"lazy", ""}, types=["nvim", "tmux"])

    assert [(row.type, row.installed, row.stars) for row in rows] == [("nvim", True, 5), ("tmux", False, None)]
