from __future__ import annotations

import os
import shutil
from pathlib import Path

from dothub.domain.ports import FileSystemPort


class LocalFileSystemAdapter(FileSystemPort):
    def ensure_directory(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def path_exists(self, path: Path) -> bool:
        return path.exists() or path.is_symlink()

    def list_directory(self, path: Path):
        if not path.is_dir():
            return []
        return list(path.iterdir())

    def is_git_working_copy(self, path: Path) -> bool:
        return path.is_dir() and (path / ".git").exists()

    def is_symlink(self, path: Path) -> bool:
        return path.is_symlink()

    def resolve_symlink(self, path: Path) -> Path:
        target = Path(os.readlink(path))
        if not target.is_absolute():
            target = path.parent / target
        return target.resolve(strict=False)

    def remove(self, path: Path) -> None:
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()

    def symlink(self, source: Path, link_path: Path) -> None:
        os.symlink(source, link_path, target_is_directory=source.is_dir())
