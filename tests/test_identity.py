import pytest

from dothub.domain.errors import InvalidReference
from dothub.domain.identity import parse_ref, resolve


@pytest.mark.parametrize(
    "reference",
    [
        "https://github.com/folke/lazy.nvim",
        "https://github.com/folke/lazy.nvim/",
        "https://github.com/folke/lazy.nvim.git",
        "https://github.com/folke/lazy.nvim/tree/main",
        "folke/lazy.nvim",
    ],
)
def test_resolve_uses_repo_segment_as_name(reference):
    identity = resolve(reference)

    assert identity.name == "lazy.nvim"
    assert identity.owner == "folke"
    assert identity.repo == "lazy.nvim"
    assert identity.clone_url == "https://github.com/folke/lazy.nvim"
    assert identity.key == "folke/lazy.nvim"
    assert identity.guessed is False


def test_resolve_is_deterministic():
    assert resolve("https://github.com/a/b") == resolve("https://github.com/a/b")


def test_explicit_name_overrides_repo_segment():
    identity = resolve("https://github.com/folke/lazy.nvim", "lazy")

    assert identity.name == "lazy"
    assert identity.repo == "lazy.nvim"


def test_owner_only_reference_guesses_owner_as_repo():
    identity = resolve("https://github.com/hygo-nvim")

    assert identity.name == "hygo-nvim"
    assert identity.key == "hygo-nvim/hygo-nvim"
    assert identity.clone_url == "https://github.com/hygo-nvim/hygo-nvim"
    assert identity.guessed is True


def test_scp_style_ssh_reference_keeps_ssh_clone_url():
    identity = resolve("git@github.com:folke/tokyonight.nvim.git")

    assert identity.name == "tokyonight.nvim"
    assert identity.host == "github.com"
    assert identity.clone_url == "git@github.com:folke/tokyonight.nvim.git"


def test_scp_style_owner_only_reference_is_guessed():
    identity = resolve("git@github.com:hygo-nvim")

    assert identity.guessed is True
    assert identity.clone_url == "git@github.com:hygo-nvim/hygo-nvim.git"


def test_trailing_dot_is_stripped_from_repo():
    assert parse_ref("https://github.com/owner/repo.").repo == "repo"


def test_other_hosts_are_kept():
    identity = resolve("https://gitlab.com/group/dots")

    assert identity.host == "gitlab.com"
    assert identity.clone_url == "https://gitlab.com/group/dots"


@pytest.mark.parametrize(
    "reference",
    ["", "   ", "nvim", "ftp://github.com/a/b", "https://github.com", "https:///a/b", "a/../b", "../x"],
)
def test_invalid_references_are_rejected(reference):
    with pytest.raises(InvalidReference):
        resolve(reference)


@pytest.mark.parametrize("name", ["..", "a/b", "-rf"])
def test_unusable_explicit_names_are_rejected(name):
    with pytest.raises(InvalidReference):
        resolve("owner/repo", name)


@pytest.mark.parametrize(
    ("reference", "clone_url"),
    [
        ("https://git.example.com:8443/o/r", "https://git.example.com:8443/o/r"),
        ("deploy@git.example.com:o/r.git", "deploy@git.example.com:o/r.git"),
        ("ssh://git@git.example.com:2222/o/r.git", "ssh://git@git.example.com:2222/o/r.git"),
        ("ssh://deploy@git.example.com/o/r", "deploy@git.example.com:o/r.git"),
    ],
)
def test_clone_url_keeps_user_and_port(reference, clone_url):
    identity = resolve(reference)

    assert identity.clone_url == clone_url
    assert identity.host == "git.example.com"
    assert identity.key == "o/r"


def test_parse_ref_records_user_and_port():
    parsed = parse_ref("ssh://deploy@git.example.com:2222/o/r.git")

    assert (parsed.scheme, parsed.user, parsed.port) == ("ssh", "deploy", 2222)


def test_invalid_port_is_rejected():
    with pytest.raises(InvalidReference):
        resolve("https://git.example.com:notaport/o/r")
