from __future__ import annotations
"""Hexagonal architecture port interfaces.

Use cases depend only on these abstractions. Adapters provide the concrete
git subprocess, local filesystem and GitHub HTTP implementations.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Sequence

from .entities import RepoIdentity, StarResult


class GitClientPort(ABC):
    """Local git operations used by the store (clone/pull)."""

    @abstractmethod
    def clone(self, clone_url: str, local_path: Path) -> None:
        """Clone remote repository into local path."""
        raise NotImplementedError

    @abstractmethod
    def pull(self, local_path: Path) -> None:
        """Fast-forward an existing working copy from its upstream."""
        raise NotImplementedError

    @abstractmethod
    def remote_url(self, local_path: Path) -> str | None:
        """Return the `origin` remote URL, or `None` when it cannot be read."""
        raise NotImplementedError


class FileSystemPort(ABC):
    """Filesystem operations abstracted for testability and portability."""

    @abstractmethod
    def ensure_directory(self, path: Path) -> None:
        """Ensure target directory exists (create recursively if needed)."""
        raise NotImplementedError

    @abstractmethod
    def path_exists(self, path: Path) -> bool:
        """Return whether anything, including a dangling symlink, is at `path`."""
        raise NotImplementedError

    @abstractmethod
    def list_directory(self, path: Path) -> Iterable[Path]:
        """Yield direct children of `path` (empty when it does not exist)."""
        raise NotImplementedError

    @abstractmethod
    def is_git_working_copy(self, path: Path) -> bool:
        """Return whether `path` is a directory holding a `.git` marker."""
        raise NotImplementedError

    @abstractmethod
    def is_symlink(self, path: Path) -> bool:
        raise NotImplementedError

    @abstractmethod
    def resolve_symlink(self, path: Path) -> Path:
        """Return the absolute, fully resolved target of symlink `path`."""
        raise NotImplementedError

    @abstractmethod
    def remove(self, path: Path) -> None:
        """Remove whatever is at `path`: symlink, file or whole directory tree."""
        raise NotImplementedError

    @abstractmethod
    def symlink(self, source: Path, link_path: Path) -> None:
        """Create `link_path` pointing at `source`."""
        raise NotImplementedError


class StarSourcePort(ABC):
    """Star count lookup for a list of repository identities."""

    @abstractmethod
    def fetch(self, identities: Sequence[RepoIdentity]) -> list[StarResult]:
        """Return one `StarResult` per identity, in input order.

        Implementations never raise for a single failed lookup; the entry is
        reported unresolved instead.
        """
        raise NotImplementedError
