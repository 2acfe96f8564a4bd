from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from repo_provisioner.provisioner.commands import CommandResult


class PreconditionError(RuntimeError):
    """A fatal precondition failed; the run must stop with exit code 1."""

    def __init__(self, message: str, *, remediation: str = "") -> None:
        super().__init__(message)
        self.remediation = remediation


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of one non-fatal provisioning step.

    `fallback` is a manual instruction shown to the operator when `ok` is false.
    """

    ok: bool
    message: str
    details: dict[str, object] | None = None
    fallback: str = ""

    @classmethod
    def from_command(
        cls,
        result: CommandResult,
        *,
        success: str,
        failure: str,
        fallback: str = "",
        details: dict[str, object] | None = None,
    ) -> ActionResult:
        if result.ok:
            return cls(ok=True, message=success, details=details)
        return cls(
            ok=False,
            message=f"{failure}: {result.message}",
            details=details,
            fallback=fallback,
        )


@dataclass(slots=True)
class StepLog:
    """Ordered results of one stage.

    `listener` sees each result as soon as it is recorded, so warnings reach the
    operator at the point of occurrence rather than at the end of the stage.
    """

    listener: Callable[[ActionResult], None] | None = None
    results: list[ActionResult] = field(default_factory=list)

    def add(self, result: ActionResult) -> ActionResult:
        self.results.append(result)
        if self.listener is not None:
            self.listener(result)
        return result

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failures(self) -> list[ActionResult]:
        return [r for r in self.results if not r.ok]
