"""Unit tests for local setup delegation."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock

from repo_provisioner.provisioner.commands import CommandResult
from repo_provisioner.provisioner.workflow.stages import run_local_setup, setup_command


def _script(tmp_path: Path, name: str) -> Path:
    path = tmp_path / "scripts" / name
    path.parent.mkdir(parents=True)
    path.write_text("echo setup\n", encoding="utf-8")
    return path


def test_missing_routine_is_skipped(tmp_path: Path, make_runner) -> None:  # type: ignore[no-untyped-def]
    runner = make_runner()
    opt_in = Mock(return_value=True)

    steps = run_local_setup(
        Path("scripts/setup-local.ps1"), workdir=tmp_path, opt_in=opt_in, runner=runner
    )

    assert steps.ok
    assert "skipping" in steps.results[0].message
    opt_in.assert_not_called()
    assert runner.calls == []


def test_declined_routine_is_not_run(tmp_path: Path, make_runner) -> None:  # type: ignore[no-untyped-def]
    _script(tmp_path, "setup-local.sh")
    runner = make_runner()

    steps = run_local_setup(
        Path("scripts/setup-local.sh"),
        workdir=tmp_path,
        opt_in=Mock(return_value=False),
        runner=runner,
    )

    assert steps.ok
    assert runner.calls == []


def test_accepted_routine_runs_in_workdir(tmp_path: Path, make_runner) -> None:  # type: ignore[no-untyped-def]
    script = _script(tmp_path, "setup-local.sh")
    runner = make_runner()

    steps = run_local_setup(
        Path("scripts/setup-local.sh"),
        workdir=tmp_path,
        opt_in=Mock(return_value=True),
        runner=runner,
    )

    assert steps.ok
    assert runner.calls == [("bash", str(script))]
    assert runner.cwds == [tmp_path]


def test_failure_message_is_captured(tmp_path: Path, make_runner) -> None:  # type: ignore[no-untyped-def]
    _script(tmp_path, "setup-local.sh")
    runner = make_runner(
        lambda argv: CommandResult(args=argv, returncode=2, stderr="npm install failed")
    )

    steps = run_local_setup(
        Path("scripts/setup-local.sh"),
        workdir=tmp_path,
        opt_in=Mock(return_value=True),
        runner=runner,
    )

    assert not steps.ok
    assert "npm install failed" in steps.results[0].message


def test_powershell_routine_bypasses_policy_for_the_process_only() -> None:
    argv = setup_command(Path("scripts/setup-local.ps1"))

    assert argv[0] in {"powershell", "pwsh"}
    assert argv[argv.index("-ExecutionPolicy") + 1] == "Bypass"
    assert argv[-2:] == ["-File", str(Path("scripts/setup-local.ps1"))]
