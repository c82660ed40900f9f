from __future__ import annotations
"""Repository reference parsing and store name resolution.

Pure functions only: nothing here touches the network or the filesystem.
"""

import re
from urllib.parse import urlsplit

from .entities import RepoIdentity, RepoRef
from .errors import InvalidReference


DEFAULT_HOST = "github.com"

_SCP_PATTERN = re.compile(r"^(?P<user>[\w.-]+)@(?P<host>[\w.-]+):(?P<path>.+)$")
_SHORTHAND_PATTERN = re.compile(r"^(?P<owner>[\w.-]+)/(?P<repo>[\w.-]+)/?$")
_SEGMENT_PATTERN = re.compile(r"^[\w.-]+$")


def parse_ref(ref: str) -> RepoRef:
    """Parse a URL, scp-style SSH address or `owner/repo` shorthand."""
    text = (ref or "").strip()
    if not text:
        raise InvalidReference(ref, "reference is empty")

    if "://" in text:
        return _parse_url(ref, text)

    scp_match = _SCP_PATTERN.match(text)
    if scp_match:
        owner, repo = _split_path(ref, scp_match.group("path"))
        return RepoRef(
            host=scp_match.group("host").lower(),
            owner=owner,
            repo=repo,
            scheme="scp",
            user=scp_match.group("user"),
        )

    shorthand = _SHORTHAND_PATTERN.match(text)
    if shorthand:
        repo = _strip_repo_suffix(shorthand.group("repo"))
        _check_segment(ref, shorthand.group("owner"))
        _check_segment(ref, repo)
        return RepoRef(host=DEFAULT_HOST, owner=shorthand.group("owner"), repo=repo)

    raise InvalidReference(ref)


def resolve(ref: str, explicit_name: str | None = None) -> RepoIdentity:
    """Resolve a user reference into the identity used by every other operation.

    When only an owner is given, the repository is guessed to share the
    owner's name (`https://github.com/foo` -> `foo/foo`). The guess is not
    verified; a wrong guess shows up later as a clone failure or an
    unresolved star lookup.
    """
    parsed = parse_ref(ref)

    guessed = parsed.repo is None
    repo = parsed.owner if guessed else parsed.repo

    name = (explicit_name or "").strip() or repo
    validate_store_name(name, reference=ref)

    return RepoIdentity(
        name=name,
        clone_url=_clone_url(parsed, repo),
        host=parsed.host,
        owner=parsed.owner,
        repo=repo,
        guessed=guessed,
    )


def _parse_url(ref: str, text: str) -> RepoRef:
    parts = urlsplit(text)
    scheme = parts.scheme.lower()
    if scheme not in {"http", "https", "ssh"}:
        raise InvalidReference(ref, f"unsupported scheme '{parts.scheme}'")

    host = (parts.hostname or "").lower()
    if not host:
        raise InvalidReference(ref, "missing host")

    try:
        port = parts.port
    except ValueError as error:
        raise InvalidReference(ref, "invalid port") from error

    owner, repo = _split_path(ref, parts.path)
    return RepoRef(host=host, owner=owner, repo=repo, scheme=scheme, user=parts.username or None, port=port)


def _clone_url(parsed: RepoRef, repo: str) -> str:
    """Rebuild the address git should clone, keeping the user and port given."""
    path = f"{parsed.owner}/{repo}"
    if parsed.scheme == "scp" or (parsed.scheme == "ssh" and parsed.port is None):
        return f"{parsed.user or 'git'}@{parsed.host}:{path}.git"

    userinfo = f"{parsed.user}@" if parsed.user else ""
    netloc = f"{userinfo}{parsed.host}" if parsed.port is None else f"{userinfo}{parsed.host}:{parsed.port}"
    if parsed.scheme == "ssh":
        return f"ssh://{netloc}/{path}.git"
    return f"{parsed.scheme}://{netloc}/{path}"


def _split_path(ref: str, path: str) -> tuple[str, str | None]:
    segments = [segment for segment in path.strip("/").split("/") if segment]
    if not segments:
        raise InvalidReference(ref, "missing owner")

    owner = segments[0]
    _check_segment(ref, owner)
    if len(segments) == 1:
        return owner, None

    repo = _strip_repo_suffix(segments[1])
    _check_segment(ref, repo)
    return owner, repo


def _strip_repo_suffix(repo: str) -> str:
    if repo.endswith(".git"):
        return repo[: -len(".git")]
    if repo.endswith("."):
        return repo[:-1]
    return repo


def _check_segment(ref: str, segment: str) -> None:
    if not segment or not _SEGMENT_PATTERN.match(segment) or segment in {".", ".."}:
        raise InvalidReference(ref, f"invalid path segment '{segment}'")


def validate_store_name(name: str, *, reference: str | None = None) -> None:
    """Reject names that would escape the store root or read as CLI options."""
    if not name or name in {".", ".."} or "/" in name or "\\" in name or name.startswith("-"):
        raise InvalidReference(
            name if reference is None else reference,
            f"'{name}' cannot be used as a store name",
        )
