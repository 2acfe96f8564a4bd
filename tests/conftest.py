"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TypeVar

import pytest

from repo_provisioner.provisioner.commands import CommandResult
from repo_provisioner.provisioner.environment import ToolAvailability
from repo_provisioner.provisioner.workflow.context import ProvisionContext, RepositoryTarget

T = TypeVar("T")

Handler = Callable[[tuple[str, ...]], CommandResult | None]

_SETTINGS_ENV_VARS = (
    "LOG_LEVEL",
    "LOG_FORMAT",
    "PROVISIONER_OWNER",
    "PROVISIONER_REPO",
    "PROVISIONER_PRIMARY_BRANCH",
    "PROVISIONER_REMOTE",
    "PROVISIONER_GIT_HOST",
    "PROVISIONER_REQUIRED_TOOLS",
    "PROVISIONER_HOSTING_CLI",
    "PROVISIONER_TEMPLATES_DIR",
    "PROVISIONER_SETUP_SCRIPT",
    "PROVISIONER_BOOTSTRAP_MESSAGE",
    "STORAGE_URL",
    "STORAGE_SERVICE_KEY",
    "STORAGE_BUCKETS_PATH",
    "STORAGE_TIMEOUT_SECONDS",
)


def ok(args: Sequence[str] = (), stdout: str = "") -> CommandResult:
    return CommandResult(args=tuple(args), returncode=0, stdout=stdout)


class FakeRunner:
    """Records every command; `handler` may return a result, otherwise success."""

    def __init__(self, handler: Handler | None = None) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.cwds: list[Path | None] = []
        self._handler = handler

    def __call__(self, args: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        argv = tuple(args)
        self.calls.append(argv)
        self.cwds.append(cwd)
        if self._handler is not None:
            result = self._handler(argv)
            if result is not None:
                return result
        return ok(argv)

    def matching(self, *prefix: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[: len(prefix)] == prefix]


class ScriptedPrompter:
    """Answers from a dict keyed by question substring; defaults otherwise."""

    def __init__(
        self,
        answers: dict[str, str] | None = None,
        confirms: dict[str, bool] | None = None,
    ) -> None:
        self.answers = answers or {}
        self.confirms = confirms or {}
        self.questions: list[str] = []

    @staticmethod
    def _lookup(table: dict[str, T], question: str) -> T | None:
        for key, value in table.items():
            if key in question:
                return value
        return None

    def ask(self, question: str, default: str = "") -> str:
        self.questions.append(question)
        answer = self._lookup(self.answers, question)
        return default if answer is None else answer

    def secret(self, question: str, default: str = "") -> str:
        return self.ask(question, default)

    def confirm(self, question: str, default: bool = False) -> bool:
        self.questions.append(question)
        answer = self._lookup(self.confirms, question)
        return default if answer is None else answer


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run from an empty directory with no provisioner variables set."""

    for name in _SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def all_tools() -> ToolAvailability:
    return ToolAvailability(
        present={"git": True, "node": True, "npm": True, "gh": True},
        mandatory=("git", "node", "npm"),
        optional="gh",
    )


@pytest.fixture
def context(all_tools: ToolAvailability) -> ProvisionContext:
    return ProvisionContext(
        target=RepositoryTarget(owner="acme", name="widgets"),
        primary_branch="main",
        remote_name="origin",
        tools=all_tools,
    )


@pytest.fixture
def make_runner() -> type[FakeRunner]:
    return FakeRunner


@pytest.fixture
def make_prompter() -> type[ScriptedPrompter]:
    return ScriptedPrompter
