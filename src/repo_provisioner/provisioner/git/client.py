"""Thin wrapper over the `git` command-line client.

Methods return `CommandResult` values (or plain booleans for queries) so the
workflow stages decide how a failure is treated.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from repo_provisioner.provisioner.commands import CommandResult, CommandRunner, run_command

logger = logging.getLogger(__name__)


class GitClient:
    """Run git commands inside a single working tree."""

    def __init__(self, *, workdir: Path, runner: CommandRunner = run_command) -> None:
        self._workdir = workdir
        self._runner = runner

    @property
    def workdir(self) -> Path:
        return self._workdir

    def _git(self, *args: str) -> CommandResult:
        result = self._runner(["git", *args], cwd=self._workdir)
        if not result.ok:
            logger.debug(
                "git command failed",
                extra={"git_args": " ".join(args), "returncode": result.returncode},
            )
        return result

    # Working tree

    def init(self) -> CommandResult:
        return self._git("init")

    def is_work_tree(self) -> bool:
        result = self._git("rev-parse", "--is-inside-work-tree")
        return result.ok and result.stdout.strip() == "true"

    def status_porcelain(self) -> list[str]:
        """Return one entry per changed path; empty when the tree is clean."""

        result = self._git("status", "--porcelain")
        if not result.ok:
            raise RuntimeError(f"git status failed: {result.message}")
        return [line for line in result.stdout.splitlines() if line.strip()]

    def is_ignored(self, path: str) -> bool:
        return self._git("check-ignore", "--quiet", path).ok

    def add_all(self) -> CommandResult:
        return self._git("add", "-A")

    def add(self, paths: Sequence[str]) -> CommandResult:
        return self._git("add", "--", *paths)

    def has_staged_changes(self) -> bool:
        # `diff --quiet` exits 1 when the index differs from HEAD.
        return not self._git("diff", "--cached", "--quiet").ok

    def commit(self, message: str, *, allow_empty: bool = False) -> CommandResult:
        if allow_empty:
            return self._git("commit", "--allow-empty", "-m", message)
        return self._git("commit", "-m", message)

    def has_head(self) -> bool:
        """False while the current branch is unborn (no commits yet)."""

        return self._git("rev-parse", "--verify", "--quiet", "HEAD").ok

    def is_tracked(self, path: str) -> bool:
        return self._git("ls-files", "--error-unmatch", "--", path).ok

    def discard(self, path: str) -> CommandResult:
        """Drop any staged and working-tree change to `path`.

        Tracked files are restored from HEAD; untracked files are deleted.
        """

        reset = self._git("reset", "-q", "--", path)
        if not reset.ok:
            return reset
        if self.is_tracked(path):
            return self._git("checkout", "--", path)
        (self._workdir / path).unlink(missing_ok=True)
        return reset

    # Branches

    def branch_exists(self, name: str) -> bool:
        return self._git("rev-parse", "--verify", "--quiet", f"refs/heads/{name}").ok

    def create_branch(self, name: str, *, start_point: str | None = None) -> CommandResult:
        """Create `name` and switch to it."""

        if start_point is None:
            return self._git("checkout", "-b", name)
        return self._git("checkout", "-b", name, start_point)

    def checkout(self, name: str) -> CommandResult:
        return self._git("checkout", name)

    # Remotes

    def remote_url(self, name: str) -> str | None:
        result = self._git("remote", "get-url", name)
        if not result.ok:
            return None
        return result.stdout.strip() or None

    def add_remote(self, name: str, url: str) -> CommandResult:
        return self._git("remote", "add", name, url)

    def push(self, remote: str, branch: str, *, set_upstream: bool = True) -> CommandResult:
        if set_upstream:
            return self._git("push", "-u", remote, branch)
        return self._git("push", remote, branch)
