"""Tool availability probing (stage 1)."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from repo_provisioner.provisioner.commands import CommandRunner, run_command
from repo_provisioner.provisioner.workflow.actions import PreconditionError

logger = logging.getLogger(__name__)

_INSTALL_HINTS: dict[str, str] = {
    "git": "Install Git from https://git-scm.com/downloads",
    "node": "Install Node.js from https://nodejs.org/",
    "npm": "npm ships with Node.js; reinstall Node.js from https://nodejs.org/",
    "gh": "Install the GitHub CLI from https://cli.github.com/ and run 'gh auth login'",
}


@dataclass(frozen=True, slots=True)
class ToolAvailability:
    """Presence flags for every probed tool, computed once per run."""

    present: Mapping[str, bool]
    mandatory: tuple[str, ...]
    optional: str | None = None

    @property
    def missing_mandatory(self) -> list[str]:
        return [t for t in self.mandatory if not self.present.get(t, False)]

    @property
    def hosting_cli_available(self) -> bool:
        if self.optional is None:
            return False
        return self.present.get(self.optional, False)


def probe_tools(
    tools: Sequence[str],
    *,
    runner: CommandRunner = run_command,
) -> dict[str, bool]:
    """Return `{tool: callable}` by running `<tool> --version` for each tool."""

    present: dict[str, bool] = {}
    for tool in tools:
        result = runner([tool, "--version"])
        present[tool] = result.ok
        if result.ok:
            version = result.stdout.strip().splitlines()[0] if result.stdout.strip() else ""
            logger.info("Tool available", extra={"tool": tool, "version": version})
        else:
            logger.info("Tool unavailable", extra={"tool": tool, "reason": result.message})
    return present


def check_environment(
    *,
    required: Sequence[str],
    optional: str | None,
    confirm_degraded: Callable[[str], bool],
    runner: CommandRunner = run_command,
) -> ToolAvailability:
    """Verify tooling before any repository work starts.

    Raises:
        PreconditionError: if a mandatory tool is missing, or the optional hosting
            CLI is missing and the operator declines to continue without it.
    """

    names = list(required)
    if optional and optional not in names:
        names.append(optional)

    availability = ToolAvailability(
        present=probe_tools(names, runner=runner),
        mandatory=tuple(required),
        optional=optional,
    )

    missing = availability.missing_mandatory
    if missing:
        hints = [_INSTALL_HINTS.get(t, f"Install '{t}' and make sure it is on PATH") for t in missing]
        raise PreconditionError(
            f"Required tool(s) not available: {', '.join(missing)}",
            remediation="\n".join(hints),
        )

    if optional and not availability.hosting_cli_available:
        question = (
            f"'{optional}' is not available; pull requests will not be created. Continue anyway?"
        )
        if not confirm_degraded(question):
            raise PreconditionError(
                f"'{optional}' is required to open pull requests",
                remediation=_INSTALL_HINTS.get(
                    optional, f"Install '{optional}' and authenticate it"
                ),
            )
        logger.warning("Continuing without hosting CLI", extra={"tool": optional})

    return availability
