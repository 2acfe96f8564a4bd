"""The provisioning stages after the environment check.

Stage 2 (bootstrap) may raise `PreconditionError`. Every later stage records an
`ActionResult` per external call and never raises for operational failures, so
one branch's push or PR failure cannot stop the remaining branches.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path

import requests

from repo_provisioner.provisioner.commands import CommandRunner, run_command
from repo_provisioner.provisioner.git.client import GitClient
from repo_provisioner.provisioner.github.client import GitHubCli
from repo_provisioner.provisioner.planning.branch_plan import (
    BranchPlan,
    render_marker,
    resolve_pull_request_draft,
)
from repo_provisioner.provisioner.storage.client import (
    BUCKETS,
    DEFAULT_BUCKETS_PATH,
    BucketSpec,
    StorageClient,
)

from .actions import ActionResult, PreconditionError, StepLog
from .context import ProvisionContext

logger = logging.getLogger(__name__)

Listener = Callable[[ActionResult], None]

DEFAULT_BOOTSTRAP_MESSAGE = "chore: initial commit of working tree"
SECRET_ENV_FILE = ".env"


def _local_now() -> datetime:
    return datetime.now().astimezone()


def bootstrap_repository(
    git: GitClient,
    *,
    commit_message: str = DEFAULT_BOOTSTRAP_MESSAGE,
    listener: Listener | None = None,
) -> StepLog:
    """Make sure the workdir is a git working tree and commit any pending changes.

    Re-running with a clean tree produces no commit.

    Raises:
        PreconditionError: if the directory cannot be made into a working tree.
    """

    steps = StepLog(listener=listener)

    if not git.is_work_tree():
        init = git.init()
        if not init.ok:
            raise PreconditionError(
                f"Could not initialise a git repository in {git.workdir}: {init.message}",
                remediation="Run 'git init' manually and re-run the provisioner",
            )
        steps.add(ActionResult(ok=True, message="Initialised git repository"))

    if not git.is_work_tree():
        raise PreconditionError(
            f"{git.workdir} is not recognised as a git working tree",
            remediation="Run 'git rev-parse --is-inside-work-tree' to diagnose, then re-run",
        )

    try:
        changes = git.status_porcelain()
    except RuntimeError as e:
        raise PreconditionError(
            str(e), remediation="Run 'git status' and resolve the reported problem"
        ) from e

    if not changes:
        if git.has_head():
            steps.add(ActionResult(ok=True, message="Working tree clean; nothing to commit"))
            return steps
        # Fresh repository with nothing to stage: later stages need a HEAD to branch from.
        steps.add(
            ActionResult.from_command(
                git.commit(commit_message, allow_empty=True),
                success="Created empty initial commit",
                failure="Initial commit failed",
                fallback="Check 'git config user.name' / 'user.email' and commit manually",
                details={"commit_message": commit_message},
            )
        )
        return steps

    if (git.workdir / SECRET_ENV_FILE).exists() and not git.is_ignored(SECRET_ENV_FILE):
        logger.warning(
            "Secret file is not ignored and will be committed",
            extra={"path": SECRET_ENV_FILE},
        )
        steps.add(
            ActionResult(
                ok=False,
                message=f"{SECRET_ENV_FILE} is not listed in .gitignore",
                fallback=f"Add {SECRET_ENV_FILE} to .gitignore and rewrite the commit if it holds secrets",
            )
        )

    added = steps.add(
        ActionResult.from_command(
            git.add_all(),
            success=f"Staged {len(changes)} changed path(s)",
            failure="Staging failed",
            fallback="Run 'git add -A' manually",
        )
    )
    if not added.ok:
        return steps

    steps.add(
        ActionResult.from_command(
            git.commit(commit_message),
            success="Committed working tree",
            failure="Initial commit failed",
            fallback="Check 'git config user.name' / 'user.email' and commit manually",
            details={"commit_message": commit_message},
        )
    )
    return steps


def link_remote(
    ctx: ProvisionContext,
    *,
    git: GitClient,
    gh: GitHubCli | None,
    listener: Listener | None = None,
) -> StepLog:
    """Ensure the hosted repository, the remote link and the pushed primary branch."""

    steps = StepLog(listener=listener)
    full_name = ctx.target.full_name

    if gh is None:
        steps.add(
            ActionResult(
                ok=False,
                message="Hosting CLI unavailable; not checking for the hosted repository",
                fallback=f"Create {full_name} manually on {ctx.git_host}",
            )
        )
    elif gh.repo_exists(full_name):
        steps.add(
            ActionResult(ok=True, message="Hosted repository exists", details={"repo": full_name})
        )
    else:
        steps.add(
            ActionResult.from_command(
                gh.create_repo(full_name, public=True, source="."),
                success="Created hosted repository",
                failure="Could not create hosted repository",
                fallback=f"Create {full_name} manually on {ctx.git_host}",
                details={"repo": full_name},
            )
        )

    existing_url = git.remote_url(ctx.remote_name)
    if existing_url is not None:
        steps.add(
            ActionResult(
                ok=True,
                message="Remote already configured",
                details={"remote": ctx.remote_name, "url": existing_url},
            )
        )
    else:
        steps.add(
            ActionResult.from_command(
                git.add_remote(ctx.remote_name, ctx.remote_url),
                success="Added remote",
                failure="Could not add remote",
                fallback=f"Run 'git remote add {ctx.remote_name} {ctx.remote_url}'",
                details={"remote": ctx.remote_name, "url": ctx.remote_url},
            )
        )

    if git.branch_exists(ctx.primary_branch):
        switched = git.checkout(ctx.primary_branch)
    else:
        switched = git.create_branch(ctx.primary_branch)
    steps.add(
        ActionResult.from_command(
            switched,
            success="On primary branch",
            failure="Could not switch to primary branch",
            fallback=f"Run 'git checkout -B {ctx.primary_branch}' manually",
            details={"branch": ctx.primary_branch},
        )
    )

    steps.add(
        ActionResult.from_command(
            git.push(ctx.remote_name, ctx.primary_branch),
            success="Pushed primary branch",
            failure="Push of primary branch failed",
            fallback=f"Run 'git push -u {ctx.remote_name} {ctx.primary_branch}' once you have access",
            details={"branch": ctx.primary_branch},
        )
    )
    return steps


def _create_or_resume(git: GitClient, plan: BranchPlan, primary: str) -> ActionResult:
    created = git.create_branch(plan.name, start_point=primary)
    if created.ok:
        return ActionResult(ok=True, message="Created branch", details={"branch": plan.name})

    resumed = git.checkout(plan.name)
    if resumed.ok:
        return ActionResult(ok=True, message="Resumed existing branch", details={"branch": plan.name})
    return ActionResult(
        ok=False,
        message=f"Could not create or check out branch: {resumed.message}",
        details={"branch": plan.name},
        fallback=f"Run 'git checkout -b {plan.name} {primary}' manually",
    )


def _mark(git: GitClient, plan: BranchPlan, now: datetime) -> ActionResult:
    marker = git.workdir / plan.marker_path
    try:
        marker.write_text(render_marker(plan.name, now=now), encoding="utf-8")
    except OSError as e:
        return ActionResult(
            ok=False, message=f"Could not write marker: {e}", details={"branch": plan.name}
        )

    added = git.add([plan.marker_path])
    if not added.ok:
        _discard_marker(git, plan)
        return ActionResult(
            ok=False,
            message=f"Could not stage marker: {added.message}",
            details={"branch": plan.name},
        )

    if not git.has_staged_changes():
        return ActionResult(
            ok=True, message="Marker unchanged; nothing to commit", details={"branch": plan.name}
        )

    committed = git.commit(plan.commit_message)
    if not committed.ok:
        # Leaving it staged would sweep this marker into the next branch's commit.
        _discard_marker(git, plan)
    return ActionResult.from_command(
        committed,
        success="Committed marker",
        failure="Marker commit failed",
        details={"branch": plan.name, "marker": plan.marker_path},
    )


def _discard_marker(git: GitClient, plan: BranchPlan) -> None:
    discarded = git.discard(plan.marker_path)
    if not discarded.ok:
        logger.warning(
            "Could not discard uncommitted marker",
            extra={"branch": plan.name, "marker": plan.marker_path, "error": discarded.message},
        )


def _open_pull_request(
    ctx: ProvisionContext, gh: GitHubCli, plan: BranchPlan, workdir: Path
) -> ActionResult:
    existing = gh.find_open_pull_request(head=plan.name, base=ctx.primary_branch)
    if existing is not None:
        return ActionResult(
            ok=True,
            message="Pull request already open",
            details={"branch": plan.name, "pull_number": existing.number, "url": existing.url},
        )

    draft = resolve_pull_request_draft(plan, workdir=workdir)
    return ActionResult.from_command(
        gh.create_pull_request(
            base=ctx.primary_branch,
            head=plan.name,
            title=draft.title,
            body=None if draft.body_file is not None else draft.body,
            body_file=draft.body_file,
        ),
        success="Opened pull request",
        failure="Pull request creation failed",
        fallback=f"Open a pull request from {plan.name} into {ctx.primary_branch} manually",
        details={
            "branch": plan.name,
            "template": str(draft.body_file) if draft.body_file is not None else None,
        },
    )


def fan_out_branches(
    ctx: ProvisionContext,
    *,
    git: GitClient,
    gh: GitHubCli | None,
    plans: Sequence[BranchPlan],
    listener: Listener | None = None,
    clock: Callable[[], datetime] = _local_now,
) -> StepLog:
    """Create, mark, push and open a PR for every planned branch, in order.

    Each branch is forked from `ctx.primary_branch`; the primary branch is
    checked out again after every iteration, whatever happened in it.
    """

    steps = StepLog(listener=listener)
    if gh is not None and not ctx.pull_requests_enabled:
        gh = None

    for plan in plans:
        logger.info("Provisioning branch", extra={"branch": plan.name})

        branch = steps.add(_create_or_resume(git, plan, ctx.primary_branch))
        if branch.ok:
            steps.add(_mark(git, plan, clock()))
            steps.add(
                ActionResult.from_command(
                    git.push(ctx.remote_name, plan.name),
                    success="Pushed branch",
                    failure="Push failed",
                    fallback=f"Run 'git push -u {ctx.remote_name} {plan.name}' once you have access",
                    details={"branch": plan.name},
                )
            )
            if gh is not None:
                steps.add(_open_pull_request(ctx, gh, plan, git.workdir))

        steps.add(
            ActionResult.from_command(
                git.checkout(ctx.primary_branch),
                success="Returned to primary branch",
                failure="Could not return to primary branch",
                fallback=f"Run 'git checkout {ctx.primary_branch}' before continuing",
                details={"branch": ctx.primary_branch},
            )
        )

    return steps


def provision_buckets(
    *,
    endpoint: str,
    service_key: str,
    buckets: Sequence[BucketSpec] = BUCKETS,
    buckets_path: str = DEFAULT_BUCKETS_PATH,
    timeout_seconds: float = 30.0,
    session: requests.Session | None = None,
    listener: Listener | None = None,
) -> StepLog:
    """Create the storage buckets; a blank endpoint or key skips the stage."""

    steps = StepLog(listener=listener)
    if not endpoint.strip() or not service_key.strip():
        steps.add(
            ActionResult(ok=True, message="Storage endpoint or key not provided; skipping buckets")
        )
        return steps

    client = StorageClient(
        endpoint=endpoint,
        service_key=service_key,
        buckets_path=buckets_path,
        timeout_seconds=timeout_seconds,
        session=session,
    )
    try:
        for bucket in buckets:
            try:
                created = client.create_bucket(bucket)
            except requests.RequestException as e:
                steps.add(
                    ActionResult(
                        ok=False,
                        message=f"Bucket creation failed: {e}",
                        details={"bucket": bucket.name},
                        fallback=f"Create the private bucket '{bucket.name}' in the provider console",
                    )
                )
                continue
            steps.add(
                ActionResult(
                    ok=True,
                    message="Created bucket",
                    details={"bucket": created.name, "status_code": created.status_code},
                )
            )
    finally:
        client.close()
    return steps


def setup_command(script: Path) -> list[str]:
    """Command line for a delegated setup routine.

    PowerShell routines get a process-scoped execution policy bypass; anything
    else runs through bash so no executable bit is needed.
    """

    if script.suffix.lower() == ".ps1":
        return [
            "powershell" if os.name == "nt" else "pwsh",
            "-NoProfile",
            "-ExecutionPolicy",
            "Bypass",
            "-File",
            str(script),
        ]
    return ["bash", str(script)]


def run_local_setup(
    script: Path,
    *,
    workdir: Path,
    opt_in: Callable[[str], bool],
    runner: CommandRunner = run_command,
    listener: Listener | None = None,
) -> StepLog:
    steps = StepLog(listener=listener)
    path = script if script.is_absolute() else workdir / script
    if not path.is_file():
        steps.add(
            ActionResult(
                ok=True,
                message="No local setup routine found; skipping",
                details={"path": str(script)},
            )
        )
        return steps

    if not opt_in(f"Run local setup routine {script}?"):
        steps.add(
            ActionResult(ok=True, message="Local setup declined", details={"path": str(script)})
        )
        return steps

    steps.add(
        ActionResult.from_command(
            runner(setup_command(path), cwd=workdir),
            success="Local setup completed",
            failure="Local setup failed",
            fallback=f"Run {script} manually",
            details={"path": str(script)},
        )
    )
    return steps
