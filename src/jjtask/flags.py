"""Task flag tags embedded in revision descriptions.

A task is a revision whose description starts with ``[task:<flag>] <title>``.
Anything after the first line is the body, normally separated by one blank
line. The tag is only ever read or written here; the rest of the package works
with :class:`Flag` and :class:`TaskDescription` values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .errors import NotATaskError, PreconditionError


class Flag(str, Enum):
    DRAFT = "draft"
    TODO = "todo"
    WIP = "wip"
    DONE = "done"
    BLOCKED = "blocked"
    STANDBY = "standby"
    REVIEW = "review"
    UNTESTED = "untested"

    def __str__(self) -> str:
        return self.value

    @property
    def tag(self) -> str:
        return f"{TAG_PREFIX}{self.value}]"


TAG_PREFIX = "[task:"
TASK_FLAGS = tuple(flag.value for flag in Flag)
PENDING_FLAGS = (Flag.DRAFT, Flag.TODO, Flag.WIP)

_TAG_RE = re.compile(r"^\[task:(?P<flag>[a-z]+)\]")


@dataclass(frozen=True)
class TaskDescription:
    flag: Flag
    title: str
    body: str = ""

    @property
    def is_pending(self) -> bool:
        return self.flag in PENDING_FLAGS


def parse_flag(name: str | Flag) -> Flag:
    if isinstance(name, Flag):
        return name
    value = str(name).strip().lower()
    try:
        return Flag(value)
    except ValueError:
        expected = ", ".join(TASK_FLAGS)
        raise PreconditionError(f"invalid flag {name!r}; expected one of: {expected}") from None


def _split_first_line(text: str) -> tuple[str, str]:
    first, sep, rest = text.partition("\n")
    return first, rest if sep else ""


def parse_description(text: str) -> TaskDescription | None:
    """Return the task encoded in ``text``, or ``None`` if it is not a task."""
    first, rest = _split_first_line(text)
    match = _TAG_RE.match(first)
    if match is None:
        return None
    try:
        flag = Flag(match.group("flag"))
    except ValueError:
        return None

    title = first[match.end():]
    if title.startswith(" "):
        title = title[1:]
    body = rest[1:] if rest.startswith("\n") else rest
    return TaskDescription(flag=flag, title=title, body=body)


def format_description(task: TaskDescription) -> str:
    message = f"{task.flag.tag} {task.title}"
    if task.body:
        message = f"{message}\n\n{task.body}"
    return message


def replace_flag(text: str, flag: Flag, *, rev: str = "revision") -> str:
    """Swap the flag token on the first line, leaving everything else as-is."""
    match = _TAG_RE.match(text)
    if match is None or parse_description(text) is None:
        raise NotATaskError(rev)
    return f"{flag.tag}{text[match.end():]}"


def strip_flag(text: str) -> str:
    """First line of ``text`` without a leading tag."""
    first, _ = _split_first_line(text.strip())
    match = _TAG_RE.match(first)
    if match is not None:
        first = first[match.end():]
    return first.strip()


def flag_of(text: str) -> Flag | None:
    task = parse_description(text)
    return task.flag if task is not None else None
