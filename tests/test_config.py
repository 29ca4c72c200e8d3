from __future__ import annotations

from pathlib import Path

import pytest

from jjtask.config import find_config, load_config, parse_config
from jjtask.errors import ConfigValidationError


def _write(tmp_path: Path, rel_path: str, body: str) -> Path:
    path = tmp_path / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body.strip() + "\n", encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("JJTASK_JJ", raising=False)
    monkeypatch.delenv("JJTASK_TIMEOUT", raising=False)


def test_defaults_without_any_file(tmp_path: Path) -> None:
    cfg = load_config(tmp_path)

    assert cfg.path is None
    assert cfg.binary == "jj"
    assert cfg.timeout is None
    assert [r.display_name for r in cfg.workspace_repos()] == ["workspace"]
    assert cfg.read_prime_content() is None


def test_toml_is_found_from_a_subdirectory(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        ".jjtask.toml",
        """
[jj]
binary = "/opt/jj"
timeout = 30

[workspaces]
repos = [{ path = ".", name = "main" }, { path = "frontend" }]

[prime]
content = "Custom prime text"
""",
    )
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    cfg = load_config(nested)
    root = tmp_path.resolve()

    assert cfg.path == path.resolve()
    assert cfg.root == root
    assert cfg.binary == "/opt/jj"
    assert cfg.timeout == 30.0
    assert cfg.is_multi_repo
    assert [r.display_name for r in cfg.repos] == ["main", "frontend"]
    assert cfg.repos[1].resolve(cfg.root) == root / "frontend"
    assert cfg.repos[0].resolve(cfg.root) == root
    assert cfg.read_prime_content() == "Custom prime text"


def test_prime_content_file_is_relative_to_config_root(tmp_path: Path) -> None:
    _write(tmp_path, ".jjtask.toml", '[prime]\ncontent_file = "docs/prime.md"')
    _write(tmp_path, "docs/prime.md", "# From file")

    assert load_config(tmp_path).read_prime_content() == "# From file\n"


def test_missing_prime_file_is_a_config_error(tmp_path: Path) -> None:
    _write(tmp_path, ".jjtask.toml", '[prime]\ncontent_file = "missing.md"')

    with pytest.raises(ConfigValidationError, match="missing.md"):
        load_config(tmp_path).read_prime_content()


def test_legacy_yaml_workspaces_are_read(tmp_path: Path) -> None:
    _write(
        tmp_path,
        ".jj-workspaces.yaml",
        """
repos:
  - path: .
    name: root
  - path: services/api
""",
    )

    cfg = load_config(tmp_path)

    assert [r.path for r in cfg.repos] == [".", "services/api"]
    assert cfg.repos[0].name == "root"
    assert (tmp_path / ".jj-workspaces.yaml").read_text(encoding="utf-8").startswith("repos:")


def test_invalid_toml_names_the_file(tmp_path: Path) -> None:
    path = _write(tmp_path, ".jjtask.toml", "[jj\nbinary=")

    with pytest.raises(ConfigValidationError) as raised:
        load_config(tmp_path)

    assert str(path.resolve()) in str(raised.value)


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({"jj": "nope"}, "[jj] must be a table"),
        ({"jj": {"timeout": "soon"}}, "[jj].timeout must be a number"),
        ({"jj": {"timeout": 0}}, "[jj].timeout must be positive"),
        ({"workspaces": {"repos": "x"}}, "[workspaces].repos must be an array"),
        ({"workspaces": {"repos": [{"name": "n"}]}}, "[workspaces].repos[0].path"),
    ],
)
def test_parse_config_validation(raw: dict, message: str) -> None:
    with pytest.raises(ConfigValidationError) as raised:
        parse_config(raw)
    assert message in str(raised.value)


def test_env_overrides_binary_and_timeout(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(tmp_path, ".jjtask.toml", '[jj]\nbinary = "jj"\ntimeout = 5')
    monkeypatch.setenv("JJTASK_JJ", "/usr/local/bin/jj")
    monkeypatch.setenv("JJTASK_TIMEOUT", "12.5")

    cfg = load_config(tmp_path)

    assert cfg.binary == "/usr/local/bin/jj"
    assert cfg.timeout == 12.5


def test_toml_wins_over_legacy_yaml_in_same_directory(tmp_path: Path) -> None:
    _write(tmp_path, ".jjtask.toml", '[jj]\nbinary = "jj-toml"')
    _write(tmp_path, ".jj-workspaces.yaml", "repos: []")

    assert find_config(tmp_path) == (tmp_path / ".jjtask.toml").resolve()
