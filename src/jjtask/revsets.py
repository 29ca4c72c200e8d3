"""Revset expressions over task flags.

Expressions are small immutable trees; ``str(expr)`` renders the jj revset
language. Keeping the tree around (instead of building strings directly) lets
callers compose predicates freely and lets the test suite evaluate the same
queries against an in-memory graph.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from .flags import PENDING_FLAGS, TAG_PREFIX, Flag, parse_flag

CATEGORIES = ("pending", "done", "all") + tuple(flag.value for flag in Flag)


class Revset:
    def __or__(self, other: "Revset") -> "Revset":
        return union(self, other)

    def __and__(self, other: "Revset") -> "Revset":
        return Intersection(self, other)

    def __sub__(self, other: "Revset") -> "Revset":
        return Difference(self, other)


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _leading(prefix: str) -> str:
    """Match descriptions whose first characters are ``prefix``."""
    pattern = _quote("^" + re.escape(prefix))
    return f"description(regex:{pattern})"


@dataclass(frozen=True)
class Ref(Revset):
    """A revision symbol: change id, commit id, bookmark or ``@``."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Raw(Revset):
    """A user-supplied revset, kept opaque and parenthesized."""

    text: str

    def __str__(self) -> str:
        return f"({self.text})"


@dataclass(frozen=True)
class Root(Revset):
    def __str__(self) -> str:
        return "root()"


@dataclass(frozen=True)
class AllTasks(Revset):
    def __str__(self) -> str:
        return _leading(TAG_PREFIX)


@dataclass(frozen=True)
class TaskFlagged(Revset):
    flag: Flag

    def __str__(self) -> str:
        return _leading(self.flag.tag)


@dataclass(frozen=True)
class Union(Revset):
    items: tuple[Revset, ...]

    def __str__(self) -> str:
        return "(" + " | ".join(str(item) for item in self.items) + ")"


@dataclass(frozen=True)
class Intersection(Revset):
    left: Revset
    right: Revset

    def __str__(self) -> str:
        return f"({self.left} & {self.right})"


@dataclass(frozen=True)
class Difference(Revset):
    left: Revset
    right: Revset

    def __str__(self) -> str:
        return f"({self.left} ~ {self.right})"


@dataclass(frozen=True)
class Parents(Revset):
    of: Revset

    def __str__(self) -> str:
        return f"parents({self.of})"


@dataclass(frozen=True)
class Children(Revset):
    of: Revset

    def __str__(self) -> str:
        return f"children({self.of})"


@dataclass(frozen=True)
class Ancestors(Revset):
    """``::x``, inclusive of ``x``."""

    of: Revset

    def __str__(self) -> str:
        return f"::{self.of}"


@dataclass(frozen=True)
class Descendants(Revset):
    """``x::``, inclusive of ``x``."""

    of: Revset

    def __str__(self) -> str:
        return f"{self.of}::"


@dataclass(frozen=True)
class Heads(Revset):
    of: Revset

    def __str__(self) -> str:
        return f"heads({self.of})"


@dataclass(frozen=True)
class Latest(Revset):
    of: Revset

    def __str__(self) -> str:
        return f"latest({self.of})"


def as_revset(value: Revset | str) -> Revset:
    return value if isinstance(value, Revset) else Ref(str(value))


def union(*items: Revset | str) -> Revset:
    flat: list[Revset] = []
    for item in items:
        expr = as_revset(item)
        if isinstance(expr, Union):
            flat.extend(expr.items)
        else:
            flat.append(expr)
    if len(flat) == 1:
        return flat[0]
    return Union(tuple(flat))


def refs(names: Iterable[str]) -> Revset:
    return union(*(Ref(name) for name in names))


def tasks() -> Revset:
    return AllTasks()


def flagged(*flags: Flag | str) -> Revset:
    if not flags:
        raise ValueError("flagged() requires at least one flag")
    return union(*(TaskFlagged(parse_flag(flag)) for flag in flags))


def pending() -> Revset:
    return flagged(*PENDING_FLAGS)


def done() -> Revset:
    return flagged(Flag.DONE)


def category(name: str) -> Revset:
    """Expression for a named listing category (``pending``, ``all``, a flag...)."""
    value = name.strip().lower()
    if value == "pending":
        return pending()
    if value == "all":
        return tasks()
    return flagged(value)


def pending_descendants(start: Revset | str) -> Revset:
    return Descendants(as_revset(start)) & pending()


def pending_children(rev: Revset | str) -> Revset:
    return Children(as_revset(rev)) & pending()


def stale() -> Revset:
    """Done tasks outside the working position's ancestry."""
    return done() - Ancestors(Ref("@"))
