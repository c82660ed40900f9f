from __future__ import annotations
"""Use case for the on-disk store of cloned configuration repositories."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import logging
from pathlib import Path

from dothub.application.use_cases.link_manager import LinkManager
from dothub.domain.entities import RepoIdentity, StoreEntry, UpdateOutcome
from dothub.domain.errors import (
    AlreadyInstalled,
    CloneFailed,
    FileSystemError,
    NotFound,
    PermissionDenied,
    StillLinked,
    UpdateError,
)
from dothub.domain.identity import validate_store_name
from dothub.domain.ports import FileSystemPort, GitClientPort


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class Store:
    """The store root holds one git working copy per installed repository.

    There is no metadata file: every query re-scans `store_root`, and an
    entry is any direct subdirectory containing a `.git` marker.

    Responsibilities:
    - clone new repositories (`install`)
    - enumerate and delete entries (`list`, `remove`)
    - fast-forward every entry, isolating failures (`update_all`)
    """

    store_root: Path
    git_client: GitClientPort
    filesystem: FileSystemPort
    link_manager: LinkManager | None = None

    def install(self, identity: RepoIdentity) -> StoreEntry:
        """Clone `identity` into `<store_root>/<name>`.

        Raises:
            AlreadyInstalled: something already exists at the destination.
            CloneFailed: git could not clone; the partial destination is removed.
            PermissionDenied: the store root cannot be created or written.
            FileSystemError: the store root cannot be created for another reason.
        """
        validate_store_name(identity.name)
        destination = self.store_root / identity.name
        if self.filesystem.path_exists(destination):
            raise AlreadyInstalled(identity.name, destination)

        try:
            self.filesystem.ensure_directory(self.store_root)
        except PermissionError as error:
            raise PermissionDenied(self.store_root, "creating the store directory", hint="need sudo?") from error
        except OSError as error:
            raise FileSystemError(
                self.store_root, "creating the store directory", error.strerror or str(error)
            ) from error

        LOGGER.info(
            "installing repository",
            extra={
                "event": "store.install.start",
                "repo_name": identity.name,
                "clone_url": identity.clone_url,
                "guessed": identity.guessed,
            },
        )

        try:
            self.git_client.clone(identity.clone_url, destination)
        except RuntimeError as error:
            self._discard_partial_clone(destination)
            LOGGER.error(
                "repository install failed",
                extra={"event": "store.install.failed", "repo_name": identity.name, "error": str(error)},
            )
            raise CloneFailed(identity.clone_url, str(error)) from error

        LOGGER.info(
            "repository installed",
            extra={"event": "store.install.success", "repo_name": identity.name, "path": str(destination)},
        )
        return StoreEntry(identity=identity, path=destination)

    def list(self) -> list[StoreEntry]:
        """Return every store entry in directory enumeration order."""
        entries: list[StoreEntry] = []
        for path in self._scan():
            clone_url = self.git_client.remote_url(path) or ""
            entries.append(StoreEntry(identity=RepoIdentity(name=path.name, clone_url=clone_url), path=path))
        return entries

    def installed_names(self) -> set[str]:
        return {path.name for path in self._scan()}

    def contains(self, name: str) -> bool:
        return self.filesystem.is_git_working_copy(self.store_root / name)

    def remove(self, name: str, *, force: bool = False) -> None:
        """Delete the entry `name`.

        Entries still targeted by active configuration links are kept unless
        `force` is set; with `force` the links are left dangling.

        Raises:
            NotFound: no such entry.
            StillLinked: active links resolve into the entry and `force` is off.
            PermissionDenied: the directory cannot be deleted.
        """
        validate_store_name(name)
        path = self.store_root / name
        if not self.contains(name):
            raise NotFound(name, path)

        linked = self.link_manager.links_to(name) if self.link_manager is not None else []
        if linked and not force:
            raise StillLinked(name, [entry.config_target for entry in linked])
        if linked:
            LOGGER.warning(
                "removing linked repository; links are left dangling",
                extra={
                    "event": "store.remove.dangling_links",
                    "repo_name": name,
                    "links": [entry.config_target for entry in linked],
                },
            )

        try:
            self.filesystem.remove(path)
        except PermissionError as error:
            raise PermissionDenied(path, "removing the repository", hint="need sudo?") from error
        except OSError as error:
            raise FileSystemError(path, "removing the repository", error.strerror or str(error)) from error

        LOGGER.info("repository removed", extra={"event": "store.remove.success", "repo_name": name})

    def update_all(self, *, max_workers: int = 1) -> list[UpdateOutcome]:
        """Fast-forward every entry; one failure never stops the others.

        Args:
            max_workers: Number of repositories pulled concurrently. Each pull
                runs in its own working copy, so no locking is involved.

        Returns:
            One `UpdateOutcome` per entry, sorted by name.
        """
        paths = sorted(self._scan(), key=lambda item: item.name)
        if not paths:
            return []

        LOGGER.info(
            "updating repositories",
            extra={"event": "store.update.start", "count": len(paths), "max_workers": max_workers},
        )

        workers = max(1, min(max_workers, len(paths)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(self._update_one, paths))

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        LOGGER.info(
            "update completed",
            extra={
                "event": "store.update.completed",
                "successful_repositories": len(outcomes) - failed,
                "failed_repositories": failed,
            },
        )
        return outcomes

    def _update_one(self, path: Path) -> UpdateOutcome:
        try:
            self.git_client.pull(path)
        except Exception as error:  # noqa: BLE001
            LOGGER.warning(
                "repository update failed",
                extra={"event": "store.update.failed", "repo_name": path.name, "error": str(error)},
            )
            return UpdateOutcome(name=path.name, path=path, error=UpdateError(path.name, str(error)))
        return UpdateOutcome(name=path.name, path=path)

    def _scan(self) -> list[Path]:
        try:
            children = list(self.filesystem.list_directory(self.store_root))
        except PermissionError as error:
            raise PermissionDenied(self.store_root, "reading the store directory") from error
        except OSError as error:
            raise FileSystemError(
                self.store_root, "reading the store directory", error.strerror or str(error)
            ) from error
        return [child for child in children if self.filesystem.is_git_working_copy(child)]

    def _discard_partial_clone(self, destination: Path) -> None:
        if not self.filesystem.path_exists(destination):
            return
        try:
            self.filesystem.remove(destination)
        except OSError:
            LOGGER.exception(
                "could not remove partial clone",
                extra={"event": "store.install.cleanup_failed", "path": str(destination)},
            )
