"""CLI entrypoint for the provisioner.

Runs the six stages in order. Only the environment check and the repository
bootstrap can stop the run (exit code 1); every later failure is reported as a
warning with a manual fallback and the run carries on.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import requests
from pydantic import ValidationError
from pydantic_settings import SettingsError

from repo_provisioner import __version__
from repo_provisioner.provisioner.commands import CommandRunner, run_command
from repo_provisioner.provisioner.config import ProvisionerSettings
from repo_provisioner.provisioner.environment import check_environment
from repo_provisioner.provisioner.git.client import GitClient
from repo_provisioner.provisioner.github.client import GitHubCli
from repo_provisioner.provisioner.logging import configure_logging
from repo_provisioner.provisioner.planning.branch_plan import build_branch_plan
from repo_provisioner.provisioner.prompts import ConsolePrompter, DefaultsPrompter, Prompter
from repo_provisioner.provisioner.workflow.actions import ActionResult, PreconditionError
from repo_provisioner.provisioner.workflow.context import ProvisionContext, RepositoryTarget
from repo_provisioner.provisioner.workflow.stages import (
    bootstrap_repository,
    fan_out_branches,
    link_remote,
    provision_buckets,
    run_local_setup,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130

_RED = "\033[31m"
_RESET = "\033[0m"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-provisioner",
        description=(
            "Commit the working tree, link it to a hosted repository, push the feature "
            "branch scaffold and open pull requests"
        ),
    )
    parser.add_argument("--version", action="version", version=f"repo-provisioner {__version__}")
    parser.add_argument("--owner", default=None, help="Repository owner (user or organisation)")
    parser.add_argument("--repo", default=None, help="Repository name")
    parser.add_argument(
        "--workdir",
        default=".",
        help="Working tree to provision (defaults to the current directory)",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help=(
            "Do not prompt: accept defaults, skip the optional stages and continue "
            "without the hosting CLI if it is missing"
        ),
    )
    return parser


def _report(result: ActionResult) -> None:
    extra = dict(result.details or {})
    if result.ok:
        logger.info(result.message, extra=extra)
        return
    if result.fallback:
        extra["fallback"] = result.fallback
    logger.warning(result.message, extra=extra)


def _print_fatal(error: PreconditionError) -> None:
    use_color = sys.stderr.isatty()
    text = f"ERROR: {error}"
    print(f"{_RED}{text}{_RESET}" if use_color else text, file=sys.stderr)
    if error.remediation:
        print(error.remediation, file=sys.stderr)


def _resolve_target(
    prompter: Prompter,
    *,
    owner: str,
    repo: str,
) -> RepositoryTarget:
    owner = prompter.ask("GitHub owner (user or organisation)", default=owner).strip()
    repo = prompter.ask("Repository name", default=repo).strip()
    try:
        return RepositoryTarget(owner=owner, name=repo)
    except ValueError as e:
        raise PreconditionError(
            f"Invalid repository target '{owner}/{repo}': {e}",
            remediation="Pass --owner and --repo, or set PROVISIONER_OWNER / PROVISIONER_REPO",
        ) from e


def run(
    settings: ProvisionerSettings,
    *,
    workdir: Path,
    prompter: Prompter,
    owner: str | None = None,
    repo: str | None = None,
    accept_degraded_default: bool = False,
    runner: CommandRunner = run_command,
    session: requests.Session | None = None,
) -> int:
    """Execute all stages; returns the process exit code."""

    # Stage 1: tooling.
    tools = check_environment(
        required=settings.required_tools,
        optional=settings.optional_tool or None,
        confirm_degraded=lambda q: prompter.confirm(q, default=accept_degraded_default),
        runner=runner,
    )

    # Stage 2: local repository.
    git = GitClient(workdir=workdir, runner=runner)
    bootstrap_repository(
        git, commit_message=settings.bootstrap_commit_message, listener=_report
    )

    # Stage 3: hosted repository and remote link.
    target = _resolve_target(
        prompter,
        owner=owner or settings.default_owner,
        repo=repo or settings.default_repo or workdir.resolve().name,
    )
    ctx = ProvisionContext(
        target=target,
        primary_branch=settings.primary_branch,
        remote_name=settings.remote_name,
        tools=tools,
        git_host=settings.git_host,
    )
    gh = GitHubCli(workdir=workdir, runner=runner) if ctx.pull_requests_enabled else None
    link_remote(ctx, git=git, gh=gh, listener=_report)

    # Stage 4: branch fan-out.
    plans = build_branch_plan(settings.templates_dir)
    fan_out_branches(ctx, git=git, gh=gh, plans=plans, listener=_report)

    # Stage 5: storage buckets.
    if prompter.confirm("Create storage buckets now?", default=False):
        endpoint = prompter.ask("Storage endpoint URL", default=settings.storage_url)
        key = prompter.secret(
            "Service role key", default=settings.storage_service_key.get_secret_value()
        )
        provision_buckets(
            endpoint=endpoint,
            service_key=key,
            buckets_path=settings.storage_buckets_path,
            timeout_seconds=settings.storage_timeout_seconds,
            session=session,
            listener=_report,
        )
    else:
        logger.info("Skipping bucket provisioning")

    # Stage 6: local setup delegation.
    run_local_setup(
        settings.setup_script,
        workdir=workdir,
        opt_in=lambda q: prompter.confirm(q, default=False),
        runner=runner,
        listener=_report,
    )

    print(f"Provisioning finished for {target.full_name}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ProvisionerSettings()
    except (ValidationError, SettingsError) as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_CONFIG

    configure_logging(settings.log_level, settings.log_format)

    prompter: Prompter = DefaultsPrompter() if args.non_interactive else ConsolePrompter()
    try:
        return run(
            settings,
            workdir=Path(args.workdir).resolve(),
            prompter=prompter,
            owner=args.owner,
            repo=args.repo,
            accept_degraded_default=args.non_interactive,
        )
    except PreconditionError as e:
        logger.debug("Precondition failed", exc_info=True)
        _print_fatal(e)
        return EXIT_FATAL
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    except Exception:
        logger.exception("Provisioning failed")
        return EXIT_FATAL


if __name__ == "__main__":
    raise SystemExit(main())
