from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Callable, Sequence

from dothub.domain.ports import GitClientPort


class ShellGitClientAdapter(GitClientPort):
    def __init__(
        self,
        *,
        git_executable: str = "git",
        timeout_seconds: float = 300.0,
        runner: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
    ) -> None:
        self._git_executable = git_executable
        self._timeout_seconds = timeout_seconds
        self._runner = runner
        self._logger = logging.getLogger(__name__)

    def clone(self, clone_url: str, local_path: Path) -> None:
        self._logger.info(
            "cloning repository",
            extra={
                "event": "git.clone.start",
                "clone_url": clone_url,
                "local_path": str(local_path),
            },
        )
        self._run_git(["clone", "--", clone_url, str(local_path)], cwd=local_path.parent)
        self._logger.info(
            "clone completed",
            extra={"event": "git.clone.success", "local_path": str(local_path)},
        )

    def pull(self, local_path: Path) -> None:
        if not (local_path / ".git").exists():
            raise RuntimeError(f"Cannot pull repository: not a git repository: {local_path}")

        self._logger.info(
            "pulling repository",
            extra={"event": "git.pull.start", "local_path": str(local_path)},
        )
        # Detached HEAD and diverged branches both fail here with git's own message.
        self._run_git(["pull", "--ff-only"], cwd=local_path)
        self._logger.info(
            "pull completed",
            extra={"event": "git.pull.success", "local_path": str(local_path)},
        )

    def remote_url(self, local_path: Path) -> str | None:
        result = self._run_git_allow_fail(["remote", "get-url", "origin"], cwd=local_path)
        if result.returncode != 0:
            return None
        value = (result.stdout or "").strip()
        return value or None

    def _invoke(self, command: list[str], cwd: Path, *, check: bool) -> subprocess.CompletedProcess[str]:
        try:
            return self._runner(
                command,
                cwd=str(cwd),
                check=check,
                text=True,
                capture_output=True,
                timeout=self._timeout_seconds,
            )
        except FileNotFoundError as error:
            raise RuntimeError(
                f"Git executable '{self._git_executable}' was not found in PATH"
            ) from error
        except subprocess.TimeoutExpired as error:
            raise RuntimeError(
                f"Git command timed out after {self._timeout_seconds}s: {' '.join(command)}"
            ) from error

    def _run_git_allow_fail(self, args: Sequence[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        return self._invoke([self._git_executable, *args], cwd, check=False)

    def _run_git(self, args: Sequence[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        command = [self._git_executable, *args]
        try:
            return self._invoke(command, cwd, check=True)
        except subprocess.CalledProcessError as error:
            stderr = (error.stderr or "").strip()
            stdout = (error.stdout or "").strip()
            details = stderr or stdout or "No command output"
            self._logger.error(
                "git command failed",
                extra={
                    "event": "git.command.error",
                    "command": " ".join(command),
                    "cwd": str(cwd),
                    "return_code": error.returncode,
                    "details": details,
                },
            )
            raise RuntimeError(
                f"Git command failed ({error.returncode}): {' '.join(command)}\n{details}"
            ) from error
