from __future__ import annotations
"""Core domain entities shared by the store, link and popularity use cases.

These models carry no I/O. The filesystem is the only persisted state, so
every entity here is rebuilt from a directory scan or a network lookup.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import UpdateError


@dataclass(frozen=True, slots=True)
class RepoRef:
    """Parsed user-supplied repository reference.

    Attributes:
        host: Hostname, e.g. `github.com`.
        owner: Owner (user or organisation) segment.
        repo: Repository segment, `None` when only an owner was given.
        scheme: `https`, `http`, `ssh` (an `ssh://` URL) or `scp`
            (`user@host:owner/repo`).
        user: User part of the address, e.g. `git` or `deploy`.
        port: Explicit port from a URL reference.
    """

    host: str
    owner: str
    repo: str | None
    scheme: str = "https"
    user: str | None = None
    port: int | None = None


@dataclass(frozen=True, slots=True)
class RepoIdentity:
    """Resolved repository identity.

    Attributes:
        name: Store slug, used as the directory name under the store root.
        clone_url: URL handed to `git clone`.
        host: Hostname the repository lives on.
        owner: Owner segment.
        repo: Repository segment.
        guessed: `True` when `repo` came from the owner-only heuristic.
    """

    name: str
    clone_url: str
    host: str = ""
    owner: str = ""
    repo: str = ""
    guessed: bool = False

    @property
    def key(self) -> str:
        if self.owner and self.repo:
            return f"{self.owner}/{self.repo}"
        return self.name


@dataclass(frozen=True, slots=True)
class StoreEntry:
    identity: RepoIdentity
    path: Path

    @property
    def name(self) -> str:
        return self.identity.name


@dataclass(frozen=True, slots=True)
class LinkEntry:
    """One direct entry of the configuration directory.

    `resolved_store_name` is set only when the entry is a symlink resolving
    inside the store root.
    """

    config_target: str
    resolved_store_name: str | None
    target_path: Path | None = None


class StarSource(str, Enum):
    BATCHED = "batched"
    PER_ITEM = "per_item"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True, slots=True)
class StarResult:
    identity_key: str
    stars: int | None
    source: StarSource

    @property
    def resolved(self) -> bool:
        return self.source is not StarSource.UNRESOLVED

    @classmethod
    def unresolved(cls, identity_key: str) -> "StarResult":
        return cls(identity_key=identity_key, stars=None, source=StarSource.UNRESOLVED)


@dataclass(frozen=True, slots=True)
class UpdateOutcome:
    """Per-repository result of a bulk update."""

    name: str
    path: Path
    error: UpdateError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class HubEntry:
    """One hub candidate: a repository reference grouped under a type such as `nvim`."""

    type: str
    reference: str


@dataclass(frozen=True, slots=True)
class HubRow:
    """One ranked row handed to the presentation layer."""

    rank: int
    stars: int | None
    installed: bool
    source_url: str
    identity_key: str
    type: str = ""
