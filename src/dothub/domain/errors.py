from __future__ import annotations
"""Error taxonomy raised by the use cases.

Single-entity operations (install, link, remove) raise these directly. Batch
operations never raise for one unit: `UpdateError` is carried inside an
`UpdateOutcome`, and unresolved star lookups are plain result states.
"""

from typing import Sequence


class DotHubError(Exception):
    """Base class for every error the CLI reports to the user."""


class InvalidReference(DotHubError):
    def __init__(self, reference: str, reason: str = "not a repository URL or owner/repo shorthand") -> None:
        self.reference = reference
        self.reason = reason
        super().__init__(f"Invalid repository reference '{reference}': {reason}")


class AlreadyInstalled(DotHubError):
    def __init__(self, name: str, path: object) -> None:
        self.name = name
        self.path = path
        super().__init__(f"Repository '{name}' already exists: {path}")


class NotFound(DotHubError):
    def __init__(self, name: str, path: object) -> None:
        self.name = name
        self.path = path
        super().__init__(f"Repository '{name}' not found in store: {path}")


class CloneFailed(DotHubError):
    def __init__(self, clone_url: str, reason: str) -> None:
        self.clone_url = clone_url
        self.reason = reason
        super().__init__(f"Clone of {clone_url} failed: {reason}")


class PermissionDenied(DotHubError):
    def __init__(self, path: object, action: str, hint: str | None = None) -> None:
        self.path = path
        self.action = action
        message = f"Permission denied while {action}: {path}"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)


class FileSystemError(DotHubError):
    """Any other OS failure on a store or configuration path."""

    def __init__(self, path: object, action: str, reason: str) -> None:
        self.path = path
        self.action = action
        self.reason = reason
        super().__init__(f"Filesystem error while {action}: {path}: {reason}")


class StillLinked(DotHubError):
    """Raised by `remove` when configuration links still resolve into the entry."""

    def __init__(self, name: str, targets: Sequence[str]) -> None:
        self.name = name
        self.targets = tuple(targets)
        joined = ", ".join(self.targets)
        super().__init__(
            f"Repository '{name}' is still linked from: {joined}. Use --force to remove it anyway"
        )


class UpdateError(DotHubError):
    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Update of '{name}' failed: {reason}")


class StarSourceUnavailable(DotHubError):
    """The batched star source cannot serve any request (e.g. rejected token)."""
