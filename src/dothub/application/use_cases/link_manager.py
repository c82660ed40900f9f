from __future__ import annotations
"""Use case owning the symlinks from the configuration directory into the store."""

from dataclasses import dataclass
import logging
from pathlib import Path, PurePath

from dothub.domain.entities import LinkEntry
from dothub.domain.errors import FileSystemError, InvalidReference, NotFound, PermissionDenied
from dothub.domain.identity import validate_store_name
from dothub.domain.ports import FileSystemPort


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class LinkManager:
    """Create and inspect `<config_dir>/<target> -> <store_root>/<name>` links.

    Linking is destructive on purpose: whatever already sits at the target
    path is deleted without a backup before the symlink is created. Running
    the same `link` twice converges to the same state.
    """

    store_root: Path
    config_dir: Path
    filesystem: FileSystemPort

    def link(self, name: str, target: str) -> LinkEntry:
        """Point `<config_dir>/<target>` at the store entry `name`.

        Raises:
            NotFound: `name` is not a store entry.
            InvalidReference: `target` is not a single relative path segment.
            PermissionDenied: the config directory is not writable.
            FileSystemError: any other OS failure, e.g. the config directory
                path exists as a regular file.
        """
        validate_store_name(name)
        source = self.store_root / name
        if not self.filesystem.is_git_working_copy(source):
            raise NotFound(name, source)

        _check_target(target)
        link_path = self.config_dir / target

        try:
            self.filesystem.ensure_directory(self.config_dir)
            if self.filesystem.path_exists(link_path):
                LOGGER.warning(
                    "replacing existing configuration entry",
                    extra={"event": "link.replace_existing", "path": str(link_path)},
                )
                self.filesystem.remove(link_path)
            self.filesystem.symlink(source, link_path)
        except PermissionError as error:
            raise PermissionDenied(link_path, "linking") from error
        except OSError as error:
            raise FileSystemError(error.filename or link_path, "linking", error.strerror or str(error)) from error

        LOGGER.info(
            "link created",
            extra={"event": "link.created", "source": str(source), "target": str(link_path)},
        )
        return LinkEntry(config_target=target, resolved_store_name=name, target_path=source)

    def active(self) -> list[LinkEntry]:
        """Return config entries that are symlinks resolving strictly inside the store."""
        store_root = self.store_root.resolve(strict=False)
        entries: list[LinkEntry] = []

        try:
            children = list(self.filesystem.list_directory(self.config_dir))
        except PermissionError as error:
            raise PermissionDenied(self.config_dir, "reading the configuration directory") from error
        except OSError as error:
            raise FileSystemError(
                self.config_dir, "reading the configuration directory", error.strerror or str(error)
            ) from error

        for child in children:
            if not self.filesystem.is_symlink(child):
                continue
            try:
                resolved = self.filesystem.resolve_symlink(child)
            except OSError:
                LOGGER.info(
                    "unreadable symlink skipped",
                    extra={"event": "link.active.unreadable", "path": str(child)},
                )
                continue

            store_name = _store_name_for(resolved, store_root)
            if store_name is None:
                continue
            entries.append(LinkEntry(config_target=child.name, resolved_store_name=store_name, target_path=resolved))

        entries.sort(key=lambda entry: entry.config_target)
        return entries

    def links_to(self, name: str) -> list[LinkEntry]:
        return [entry for entry in self.active() if entry.resolved_store_name == name]


def _store_name_for(resolved: Path, store_root: Path) -> str | None:
    try:
        relative = resolved.relative_to(store_root)
    except ValueError:
        return None
    if not relative.parts:
        return None
    return relative.parts[0]


def _check_target(target: str) -> None:
    parts = PurePath(target).parts if target else ()
    if len(parts) != 1 or parts[0] in {".", ".."} or PurePath(target).is_absolute():
        raise InvalidReference(target, "link target must be a single name under the configuration directory")
