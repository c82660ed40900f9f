from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Mapping, Sequence

from dothub.adapters.filesystem.local_filesystem import LocalFileSystemAdapter
from dothub.adapters.git_client.shell_git_client import ShellGitClientAdapter
from dothub.adapters.star_sources.github_graphql import GitHubGraphQLStarSource
from dothub.adapters.star_sources.github_rest import GitHubRestStarSource
from dothub.application.use_cases.link_manager import LinkManager
from dothub.application.use_cases.popularity import (
    PopularityAggregator,
    parse_hub_entry,
    rank_hub,
    resolve_hub_entries,
    select_hub_entries,
)
from dothub.application.use_cases.store import Store
from dothub.cli.config import AppConfig, load_config
from dothub.domain.entities import HubRow, StarSource, UpdateOutcome
from dothub.domain.errors import DotHubError
from dothub.domain.identity import resolve
from dothub.logging_utils import configure_logging


GH_TOKEN_HELP_URL = "https://github.com/settings/personal-access-tokens"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dothub",
        description="Manage dotfile repositories in a local store and link them into ~/.config.",
    )
    parser.add_argument("--store-dir", required=False, help="Store directory. Falls back to DOTHUB_DIR.")
    parser.add_argument(
        "--config-dir",
        required=False,
        help="Configuration directory receiving links. Falls back to DOTHUB_CONFIG_DIR, then ~/.config.",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        required=False,
        help="Concurrent git pulls and star lookups. Falls back to DOTHUB_MAX_WORKERS.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    install = subparsers.add_parser("install", help="Clone a git repository into the store")
    install.add_argument("repo", help="Repository URL or owner/repo, e.g. https://github.com/hygo-nvim")
    install.add_argument("--name", required=False, help="Store name. Defaults to the repository name.")

    link = subparsers.add_parser("link", help="Replace ~/.config/<target> with a symlink to a stored repo")
    link.add_argument("name", help="Repository name in the store (e.g. hygo-nvim)")
    link.add_argument("target", help="Entry name under ~/.config (e.g. nvim, alacritty, fish)")

    remove = subparsers.add_parser("remove", help="Delete a repository from the store")
    remove.add_argument("name", help="Repository name in the store")
    remove.add_argument("--force", action="store_true", help="Remove even if links still point at it")

    subparsers.add_parser("update", help="Pull latest changes for all stored repos")
    subparsers.add_parser("active", help="List active links in ~/.config that point into the store")
    subparsers.add_parser("list", help="List repositories installed in the store")

    hub = subparsers.add_parser("hub", help="Rank repositories by GitHub stars")
    hub.add_argument(
        "repos",
        nargs="+",
        metavar="REPO",
        help="Repository URLs or owner/repo references, optionally grouped by type (e.g. nvim=folke/lazy.nvim)",
    )
    hub.add_argument(
        "--type",
        dest="types",
        action="append",
        default=[],
        help="Only show these types, case-insensitive. Repeatable or comma-separated (e.g. nvim,tmux).",
    )

    return parser


def main(argv: Sequence[str] | None = None, env: Mapping[str, str] | None = None) -> int:
    env = os.environ if env is None else env
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = load_config(args=args, env=env)
        configure_logging(config.log_level)
    except ValueError as error:
        parser.error(str(error))

    logger = logging.getLogger(__name__)
    logger.info(
        "cli configuration resolved",
        extra={
            "event": "cli.config.resolved",
            "command": args.command,
            "store_root": str(config.store_root),
            "config_dir": str(config.config_dir),
            "token_present": config.github_token is not None,
            "max_workers": config.max_workers,
        },
    )

    handlers = {
        "install": _cmd_install,
        "link": _cmd_link,
        "remove": _cmd_remove,
        "update": _cmd_update,
        "active": _cmd_active,
        "list": _cmd_list,
        "hub": _cmd_hub,
    }
    try:
        return handlers[args.command](args, config)
    except DotHubError as error:
        logger.error("command failed", extra={"event": "cli.command.failed", "command": args.command})
        print(f"error: {error}", file=sys.stderr)
        return 1


def _build_link_manager(config: AppConfig) -> LinkManager:
    return LinkManager(
        store_root=config.store_root,
        config_dir=config.config_dir,
        filesystem=LocalFileSystemAdapter(),
    )


def _build_store(config: AppConfig) -> Store:
    return Store(
        store_root=config.store_root,
        git_client=ShellGitClientAdapter(timeout_seconds=config.git_timeout_seconds),
        filesystem=LocalFileSystemAdapter(),
        link_manager=_build_link_manager(config),
    )


def _build_aggregator(config: AppConfig) -> PopularityAggregator:
    def batched(token: str) -> GitHubGraphQLStarSource:
        return GitHubGraphQLStarSource(
            token=token,
            api_base_url=config.github_api_url,
            max_batch_size=config.graphql_batch_size,
            timeout_seconds=config.http_timeout_seconds,
        )

    return PopularityAggregator(
        per_item_source=GitHubRestStarSource(
            api_base_url=config.github_api_url,
            max_workers=config.max_workers,
            timeout_seconds=config.http_timeout_seconds,
        ),
        batched_source_factory=batched,
    )


def _cmd_install(args, config: AppConfig) -> int:
    identity = resolve(args.repo, args.name)
    destination = config.store_root / identity.name
    if identity.guessed:
        print(f"Only an owner was given; guessing repository {identity.key}")
    print(f"Cloning {identity.clone_url} -> {destination}")
    entry = _build_store(config).install(identity)
    print(f"Installed {entry.name}")
    return 0


def _cmd_link(args, config: AppConfig) -> int:
    entry = _build_link_manager(config).link(args.name, args.target)
    print(f"Linked {entry.target_path} -> {config.config_dir / entry.config_target}")
    return 0


def _cmd_remove(args, config: AppConfig) -> int:
    _build_store(config).remove(args.name, force=args.force)
    print(f"Removed {args.name}")
    return 0


def _cmd_update(args, config: AppConfig) -> int:
    outcomes = _build_store(config).update_all(max_workers=config.max_workers)
    _print_update_summary(outcomes)
    return 0 if all(outcome.ok for outcome in outcomes) else 1


def _cmd_active(args, config: AppConfig) -> int:
    entries = _build_link_manager(config).active()
    if not entries:
        print(f"No active dothub links in {config.config_dir}.")
        return 0
    for entry in entries:
        print(f"{entry.config_target} -> {entry.target_path}")
    return 0


def _cmd_list(args, config: AppConfig) -> int:
    names = sorted(_build_store(config).installed_names())
    if not names:
        print(f"No repositories installed in {config.store_root}.")
        return 0
    for name in names:
        print(name)
    return 0


def _cmd_hub(args, config: AppConfig) -> int:
    types = [item for value in args.types for item in value.split(",")]
    entries = select_hub_entries((parse_hub_entry(text) for text in args.repos), types)
    if not entries:
        print("No hub entries match the requested types.")
        return 0

    identities = resolve_hub_entries(entries)
    results = _build_aggregator(config).fetch_stars(identities, config.github_token)
    installed = _build_store(config).installed_names()
    _print_hub(rank_hub(identities, results, installed, [entry.type for entry in entries]))

    if config.github_token is None:
        print(
            "To improve performance, please set your GITHUB_TOKEN environment variable.\n"
            f"Learn more: {GH_TOKEN_HELP_URL}"
        )
    elif any(result.source is StarSource.PER_ITEM for result in results):
        print(
            "GITHUB_TOKEN detected but GitHub GraphQL failed; falling back to REST.\n"
            f"Learn more: {GH_TOKEN_HELP_URL}"
        )
    return 0


def _print_update_summary(outcomes: Sequence[UpdateOutcome]) -> None:
    for outcome in outcomes:
        if outcome.ok:
            print(f"- {outcome.name}: updated")
        else:
            print(f"- {outcome.name}: failed")
            print(f"  error: {outcome.error.reason}")
    failed = sum(1 for outcome in outcomes if not outcome.ok)
    print(f"Updated {len(outcomes) - failed} repositories ({failed} failed).")


def _print_hub(rows: Sequence[HubRow]) -> None:
    print(f"{'#':>3}  {'Stars':>7}  {'Installed':<9}  {'Type':<8}  Source")
    for row in rows:
        stars = "?" if row.stars is None else str(row.stars)
        installed = "y" if row.installed else "n"
        print(f"{row.rank:>3}  {stars:>7}  {installed:<9}  {row.type or '-':<8}  {row.source_url}")


if __name__ == "__main__":
    raise SystemExit(main())
