from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping


DEFAULT_STORE_DIR = "/usr/local/share/dothub"
DEFAULT_GITHUB_API_URL = "https://api.github.com"


@dataclass(slots=True)
class AppConfig:
    store_root: Path
    config_dir: Path
    github_token: str | None
    github_api_url: str
    http_timeout_seconds: float
    git_timeout_seconds: float
    max_workers: int
    graphql_batch_size: int
    log_level: str


def load_config(args, env: Mapping[str, str]) -> AppConfig:
    store_dir_raw = (
        _normalize_empty(getattr(args, "store_dir", None))
        or _normalize_empty(env.get("DOTHUB_DIR"))
        or DEFAULT_STORE_DIR
    )
    config_dir_raw = (
        _normalize_empty(getattr(args, "config_dir", None))
        or _normalize_empty(env.get("DOTHUB_CONFIG_DIR"))
        or "~/.config"
    )

    raw_max_workers = _normalize_empty(
        str(args.max_workers) if getattr(args, "max_workers", None) is not None else None
    ) or _normalize_empty(env.get("DOTHUB_MAX_WORKERS"))
    max_workers = _parse_int(raw_max_workers, "DOTHUB_MAX_WORKERS/--max-workers", default=8)

    graphql_batch_size = _parse_int(
        _normalize_empty(env.get("DOTHUB_GRAPHQL_BATCH_SIZE")),
        "DOTHUB_GRAPHQL_BATCH_SIZE",
        default=50,
    )
    if graphql_batch_size > 100:
        raise ValueError("DOTHUB_GRAPHQL_BATCH_SIZE must be at most 100")

    http_timeout_seconds = _parse_float(
        _normalize_empty(env.get("DOTHUB_HTTP_TIMEOUT_SECONDS")),
        "DOTHUB_HTTP_TIMEOUT_SECONDS",
        default=30.0,
    )
    git_timeout_seconds = _parse_float(
        _normalize_empty(env.get("DOTHUB_GIT_TIMEOUT_SECONDS")),
        "DOTHUB_GIT_TIMEOUT_SECONDS",
        default=300.0,
    )

    return AppConfig(
        store_root=Path(store_dir_raw).expanduser(),
        config_dir=Path(config_dir_raw).expanduser(),
        github_token=_normalize_empty(env.get("GITHUB_TOKEN")),
        github_api_url=(_normalize_empty(env.get("GITHUB_API_URL")) or DEFAULT_GITHUB_API_URL).rstrip("/"),
        http_timeout_seconds=http_timeout_seconds,
        git_timeout_seconds=git_timeout_seconds,
        max_workers=max_workers,
        graphql_batch_size=graphql_batch_size,
        log_level=_normalize_empty(env.get("LOG_LEVEL")) or "WARNING",
    )


def _parse_int(raw: str | None, name: str, *, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as error:
        raise ValueError(f"{name} must be an integer") from error
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0")
    return value


def _parse_float(raw: str | None, name: str, *, default: float) -> float:
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as error:
        raise ValueError(f"{name} must be a number") from error
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0")
    return value


def _normalize_empty(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None
