"""Unit tests for the gh CLI wrapper."""

from __future__ import annotations

import json
from pathlib import Path

from repo_provisioner.provisioner.commands import CommandResult
from repo_provisioner.provisioner.github.client import GitHubCli, PullRequestRef


def test_find_open_pull_request_parses_json(tmp_path: Path, make_runner) -> None:  # type: ignore[no-untyped-def]
    payload = json.dumps([{"number": 12, "url": "https://github.com/acme/widgets/pull/12"}])
    runner = make_runner(lambda argv: CommandResult(args=argv, returncode=0, stdout=payload))
    gh = GitHubCli(workdir=tmp_path, runner=runner)

    found = gh.find_open_pull_request(head="feature/setup", base="main")

    assert found == PullRequestRef(number=12, url="https://github.com/acme/widgets/pull/12")
    call = runner.calls[0]
    assert call[:3] == ("gh", "pr", "list")
    assert call[call.index("--head") + 1] == "feature/setup"
    assert call[call.index("--base") + 1] == "main"
    assert call[call.index("--state") + 1] == "open"


def test_find_open_pull_request_none_on_empty_or_error(tmp_path: Path, make_runner) -> None:  # type: ignore[no-untyped-def]
    empty = GitHubCli(
        workdir=tmp_path,
        runner=make_runner(lambda argv: CommandResult(args=argv, returncode=0, stdout="[]")),
    )
    broken = GitHubCli(
        workdir=tmp_path,
        runner=make_runner(lambda argv: CommandResult(args=argv, returncode=0, stdout="not json")),
    )
    failing = GitHubCli(
        workdir=tmp_path,
        runner=make_runner(lambda argv: CommandResult(args=argv, returncode=4, stderr="auth")),
    )

    assert empty.find_open_pull_request(head="a", base="main") is None
    assert broken.find_open_pull_request(head="a", base="main") is None
    assert failing.find_open_pull_request(head="a", base="main") is None


def test_create_pull_request_prefers_body_file(tmp_path: Path, make_runner) -> None:  # type: ignore[no-untyped-def]
    runner = make_runner()
    gh = GitHubCli(workdir=tmp_path, runner=runner)
    template = tmp_path / "feature-setup.md"

    gh.create_pull_request(
        base="main", head="feature/setup", title="Scaffold: feature/setup", body_file=template
    )
    gh.create_pull_request(base="main", head="feature/docs", title="t", body="checklist")

    with_file, with_body = runner.calls
    assert with_file[with_file.index("--body-file") + 1] == str(template)
    assert "--body" not in with_file
    assert with_body[with_body.index("--body") + 1] == "checklist"
    assert runner.cwds == [tmp_path, tmp_path]


def test_repo_create_is_public_from_working_tree(tmp_path: Path, make_runner) -> None:  # type: ignore[no-untyped-def]
    runner = make_runner()
    gh = GitHubCli(workdir=tmp_path, runner=runner)

    gh.create_repo("acme/widgets")

    assert runner.calls == [("gh", "repo", "create", "acme/widgets", "--public", "--source", ".")]
