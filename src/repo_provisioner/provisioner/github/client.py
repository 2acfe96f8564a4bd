"""Wrapper around the GitHub CLI (`gh`).

Authentication is whatever `gh auth login` configured; no token is handled here.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from repo_provisioner.provisioner.commands import CommandResult, CommandRunner, run_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PullRequestRef:
    """Minimal metadata for an open pull request."""

    number: int
    url: str | None


class GitHubCli:
    """Small wrapper around `gh` for the operations provisioning needs."""

    def __init__(self, *, workdir: Path, runner: CommandRunner = run_command) -> None:
        self._workdir = workdir
        self._runner = runner

    def _gh(self, *args: str) -> CommandResult:
        return self._runner(["gh", *args], cwd=self._workdir)

    def repo_exists(self, full_name: str) -> bool:
        return self._gh("repo", "view", full_name, "--json", "name").ok

    def create_repo(self, full_name: str, *, public: bool = True, source: str = ".") -> CommandResult:
        visibility = "--public" if public else "--private"
        logger.info("Creating repository", extra={"repo": full_name})
        return self._gh("repo", "create", full_name, visibility, "--source", source)

    def find_open_pull_request(self, *, head: str, base: str) -> PullRequestRef | None:
        """Return the open PR from `head` into `base`, if any.

        Lookup failures are treated as "none found" so creation is still attempted.
        """

        result = self._gh(
            "pr",
            "list",
            "--head",
            head,
            "--base",
            base,
            "--state",
            "open",
            "--json",
            "number,url",
        )
        if not result.ok:
            logger.debug("Pull request lookup failed", extra={"head": head, "reason": result.message})
            return None
        try:
            items = json.loads(result.stdout or "[]")
        except json.JSONDecodeError:
            return None
        if not isinstance(items, list) or not items:
            return None

        first = items[0]
        if not isinstance(first, dict):
            return None
        number = first.get("number")
        if not isinstance(number, int):
            return None
        url = first.get("url")
        return PullRequestRef(number=number, url=url if isinstance(url, str) else None)

    def create_pull_request(
        self,
        *,
        base: str,
        head: str,
        title: str,
        body: str | None = None,
        body_file: Path | None = None,
    ) -> CommandResult:
        """Open a pull request; `body_file` takes precedence over `body`."""

        args = ["pr", "create", "--base", base, "--head", head, "--title", title]
        if body_file is not None:
            args += ["--body-file", str(body_file)]
        elif body is not None:
            args += ["--body", body]
        else:
            args.append("--fill")
        logger.info("Creating pull request", extra={"head": head, "base": base})
        return self._gh(*args)
