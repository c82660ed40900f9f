from __future__ import annotations

import io
import json
from email.message import Message
from pathlib import Path
from typing import Any, Callable
from urllib.error import HTTPError

import pytest

from dothub.adapters.filesystem.local_filesystem import LocalFileSystemAdapter
from dothub.application.use_cases.link_manager import LinkManager
from dothub.application.use_cases.store import Store
from dothub.domain.ports import GitClientPort


class FakeGitClient(GitClientPort):
    """Creates `.git` markers instead of cloning; failures are opt-in per URL/name."""

    def __init__(self) -> None:
        self.cloned: list[tuple[str, Path]] = []
        self.pulled: list[str] = []
        self.failing_clones: set[str] = set()
        self.failing_pulls: dict[str, str] = {}
        self.partial_on_failure = False

    def clone(self, clone_url: str, local_path: Path) -> None:
        self.cloned.append((clone_url, local_path))
        if clone_url in self.failing_clones:
            if self.partial_on_failure:
                local_path.mkdir(parents=True)
                (local_path / "partial.txt").write_text("x", encoding="utf-8")
            raise RuntimeError("Git command failed (128): repository not found")
        (local_path / ".git").mkdir(parents=True)
        (local_path / ".git" / "origin").write_text(clone_url, encoding="utf-8")

    def pull(self, local_path: Path) -> None:
        self.pulled.append(local_path.name)
        reason = self.failing_pulls.get(local_path.name)
        if reason:
            raise RuntimeError(reason)

    def remote_url(self, local_path: Path) -> str | None:
        marker = local_path / ".git" / "origin"
        return marker.read_text(encoding="utf-8") if marker.exists() else None


class DenyingFileSystem(LocalFileSystemAdapter):
    """Local filesystem whose named operations fail with `PermissionError`."""

    def __init__(self, *denied: str) -> None:
        self.denied = set(denied)

    def _check(self, operation: str, path: Path) -> None:
        if operation in self.denied:
            raise PermissionError(13, "Permission denied", str(path))

    def ensure_directory(self, path: Path) -> None:
        self._check("ensure_directory", path)
        super().ensure_directory(path)

    def list_directory(self, path: Path):
        self._check("list_directory", path)
        return super().list_directory(path)

    def remove(self, path: Path) -> None:
        self._check("remove", path)
        super().remove(path)

    def symlink(self, source: Path, link_path: Path) -> None:
        self._check("symlink", link_path)
        super().symlink(source, link_path)


class FakeResponse:
    def __init__(self, body: bytes) -> None:
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None


class FakeUrlopen:
    """Records requests and answers them through `handler(request)`.

    The handler returns a JSON-serialisable payload, raw `bytes`, or raises.
    """

    def __init__(self, handler: Callable[[Any], Any]) -> None:
        self._handler = handler
        self.requests: list[Any] = []

    def __call__(self, request, timeout=None):
        self.requests.append(request)
        payload = self._handler(request)
        if isinstance(payload, bytes):
            return FakeResponse(payload)
        return FakeResponse(json.dumps(payload).encode("utf-8"))

    @property
    def urls(self) -> list[str]:
        return [request.full_url for request in self.requests]


def http_error(url: str, code: int, headers: dict[str, str] | None = None) -> HTTPError:
    message = Message()
    for key, value in (headers or {}).items():
        message[key] = value
    return HTTPError(url, code, f"HTTP {code}", message, io.BytesIO(b"{}"))


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    return tmp_path / "home" / ".config"


@pytest.fixture
def git_client() -> FakeGitClient:
    return FakeGitClient()


@pytest.fixture
def link_manager(store_root: Path, config_dir: Path) -> LinkManager:
    return LinkManager(store_root=store_root, config_dir=config_dir, filesystem=LocalFileSystemAdapter())


@pytest.fixture
def store(store_root: Path, git_client: FakeGitClient, link_manager: LinkManager) -> Store:
    return Store(
        store_root=store_root,
        git_client=git_client,
        filesystem=LocalFileSystemAdapter(),
        link_manager=link_manager,
    )
