"""Explicit orchestration state shared by every stage."""

from __future__ import annotations

from dataclasses import dataclass

from repo_provisioner.provisioner.environment import ToolAvailability


@dataclass(frozen=True, slots=True)
class RepositoryTarget:
    """The hosted repository, as confirmed by the operator."""

    owner: str
    name: str

    def __post_init__(self) -> None:
        if not self.owner.strip():
            raise ValueError("owner must not be empty")
        if not self.name.strip():
            raise ValueError("name must not be empty")
        if "/" in self.owner or "/" in self.name:
            raise ValueError("owner and name must not contain '/'")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def ssh_url(self, host: str = "github.com") -> str:
        return f"git@{host}:{self.owner}/{self.name}.git"


@dataclass(frozen=True, slots=True)
class ProvisionContext:
    """Everything a stage needs to know about the run.

    Stages never ask git which branch is checked out; they rely on
    `primary_branch` being the base every feature branch is forked from.
    """

    target: RepositoryTarget
    primary_branch: str
    remote_name: str
    tools: ToolAvailability
    git_host: str = "github.com"

    @property
    def pull_requests_enabled(self) -> bool:
        return self.tools.hosting_cli_available

    @property
    def remote_url(self) -> str:
        return self.target.ssh_url(self.git_host)
