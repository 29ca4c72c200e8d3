from __future__ import annotations

from .util import CommandError


class JJTaskError(RuntimeError):
    pass


class StoreError(JJTaskError):
    """A graph store call failed.

    ``step`` names what the engine was doing and ``rev`` which revision it was
    doing it to, so batch reports can say exactly where a rewrite stopped.
    """

    def __init__(
        self,
        step: str,
        rev: str | None = None,
        *,
        cause: CommandError | None = None,
        detail: str | None = None,
    ) -> None:
        self.step = step
        self.rev = rev
        self.cause = cause
        self.detail = detail or (cause.detail if cause is not None else "")
        target = f" {rev}" if rev else ""
        message = f"{step}{target}"
        if self.detail:
            message = f"{message}: {self.detail}"
        super().__init__(message)

    def within(self, step: str) -> "StoreError":
        """Return a copy of this error with an outer step prefixed."""
        wrapped = StoreError(
            f"{step}: {self.step}",
            self.rev,
            cause=self.cause,
            detail=self.detail,
        )
        wrapped.__cause__ = self
        return wrapped


class PreconditionError(JJTaskError, ValueError):
    pass


class NotATaskError(PreconditionError):
    def __init__(self, rev: str) -> None:
        super().__init__(f"{rev} is not a task (no [task:<flag>] tag on its first line)")
        self.rev = rev


class ConfigValidationError(JJTaskError, ValueError):
    pass
