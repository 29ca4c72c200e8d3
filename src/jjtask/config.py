"""``.jjtask.toml`` discovery and parsing.

Resolution walks up from the working directory and stops at the first
``.jjtask.toml`` or legacy ``.jj-workspaces.yaml``. The legacy file is only
read; converting it is left to the user.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomllib
import yaml

from .errors import ConfigValidationError
from .util import env_float

CONFIG_NAME = ".jjtask.toml"
LEGACY_CONFIG_NAME = ".jj-workspaces.yaml"
DEFAULT_BINARY = "jj"


@dataclass(frozen=True)
class RepoConfig:
    path: str = "."
    name: str = ""

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.path == ".":
            return "workspace"
        return self.path

    def resolve(self, root: Path | None) -> Path | None:
        if self.path == ".":
            return root
        path = Path(self.path).expanduser()
        if path.is_absolute() or root is None:
            return path
        return root / path


@dataclass(frozen=True)
class JJTaskConfig:
    root: Path | None = None
    path: Path | None = None
    binary: str = DEFAULT_BINARY
    timeout: float | None = None
    repos: tuple[RepoConfig, ...] = ()
    prime_content: str | None = None
    prime_content_file: str | None = None

    @property
    def is_multi_repo(self) -> bool:
        return len(self.repos) > 1

    def workspace_repos(self) -> tuple[RepoConfig, ...]:
        if self.repos:
            return self.repos
        return (RepoConfig(path=".", name="workspace"),)

    def read_prime_content(self) -> str | None:
        if self.prime_content:
            return self.prime_content
        if not self.prime_content_file:
            return None
        path = Path(self.prime_content_file).expanduser()
        if not path.is_absolute() and self.root is not None:
            path = self.root / path
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigValidationError(f"cannot read [prime].content_file {path}: {exc}") from exc


def _as_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    if not stripped:
        return None
    return stripped


def _as_table(value: object, *, field: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigValidationError(f"{field} must be a table")
    return value


def _parse_repos(value: object, *, field: str) -> tuple[RepoConfig, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ConfigValidationError(f"{field} must be an array of tables")

    out: list[RepoConfig] = []
    for idx, item in enumerate(value):
        if not isinstance(item, dict):
            raise ConfigValidationError(f"{field}[{idx}] must be a table with a path")
        path = _as_str(item.get("path"))
        if path is None:
            raise ConfigValidationError(f"{field}[{idx}].path must be a non-empty string")
        out.append(RepoConfig(path=path, name=_as_str(item.get("name")) or ""))
    return tuple(out)


def _parse_timeout(value: object) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigValidationError("[jj].timeout must be a number of seconds")
    if value <= 0:
        raise ConfigValidationError("[jj].timeout must be positive")
    return float(value)


def parse_config(raw: dict[str, Any], *, root: Path | None = None, path: Path | None = None) -> JJTaskConfig:
    jj = _as_table(raw.get("jj"), field="[jj]")
    workspaces = _as_table(raw.get("workspaces"), field="[workspaces]")
    prime = _as_table(raw.get("prime"), field="[prime]")

    return JJTaskConfig(
        root=root,
        path=path,
        binary=_as_str(jj.get("binary")) or DEFAULT_BINARY,
        timeout=_parse_timeout(jj.get("timeout")),
        repos=_parse_repos(workspaces.get("repos"), field="[workspaces].repos"),
        prime_content=_as_str(prime.get("content")),
        prime_content_file=_as_str(prime.get("content_file")),
    )


def find_config(cwd: Path | None = None) -> Path | None:
    start = (cwd or Path.cwd()).resolve()
    for base in (start, *start.parents):
        for name in (CONFIG_NAME, LEGACY_CONFIG_NAME):
            candidate = base / name
            if candidate.is_file():
                return candidate
    return None


def _read_raw(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.name == LEGACY_CONFIG_NAME:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"invalid YAML in {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigValidationError(f"{path}: top level must be a mapping")
        return {"workspaces": {"repos": data.get("repos")}}

    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigValidationError(f"invalid TOML in {path}: {exc}") from exc


def _apply_env(cfg: JJTaskConfig) -> JJTaskConfig:
    binary = _as_str(os.environ.get("JJTASK_JJ"))
    timeout = env_float("JJTASK_TIMEOUT")
    if binary is None and timeout is None:
        return cfg
    return JJTaskConfig(
        root=cfg.root,
        path=cfg.path,
        binary=binary or cfg.binary,
        timeout=timeout if timeout is not None else cfg.timeout,
        repos=cfg.repos,
        prime_content=cfg.prime_content,
        prime_content_file=cfg.prime_content_file,
    )


def load_config(cwd: Path | None = None) -> JJTaskConfig:
    path = find_config(cwd)
    if path is None:
        return _apply_env(JJTaskConfig())

    try:
        cfg = parse_config(_read_raw(path), root=path.parent, path=path)
    except ConfigValidationError as exc:
        if str(path) in str(exc):
            raise
        raise ConfigValidationError(f"{path}: {exc}") from exc
    return _apply_env(cfg)
