"""Static branch fan-out table.

Every per-branch string (marker file, template path, commit message, PR title)
is derived once here so the fan-out loop only iterates over data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

BRANCH_NAMES: tuple[str, ...] = (
    "feature/setup",
    "feature/schema",
    "feature/pages",
    "feature/components",
    "feature/uploads",
    "feature/pdf-email",
    "feature/audit-log",
    "feature/tests",
    "feature/docs",
)

MARKER_PREFIX = ".branch-marker-"
PR_TITLE_PREFIX = "Scaffold: "

DEFAULT_PR_BODY = """\
## Summary

Scaffolding branch created by repo-provisioner.

## Checklist

- [ ] Implementation complete
- [ ] Tests added or updated
- [ ] Documentation updated
- [ ] No secrets or `.env` files committed
- [ ] Ready for review
"""


def branch_slug(name: str) -> str:
    """Flatten a branch name into a single path component."""

    slug = name.strip().replace("/", "-").replace("\\", "-")
    if not slug:
        raise ValueError("Branch name must not be empty")
    return slug


@dataclass(frozen=True, slots=True)
class BranchPlan:
    name: str
    slug: str
    template_path: Path
    marker_path: str
    commit_message: str
    pr_title: str


@dataclass(frozen=True, slots=True)
class PullRequestDraft:
    """Title/body submitted for one branch.

    `body_file` is set when the body came from a template on disk.
    """

    title: str
    body: str
    body_file: Path | None = None


def build_branch_plan(
    templates_dir: Path,
    names: tuple[str, ...] = BRANCH_NAMES,
) -> tuple[BranchPlan, ...]:
    plans: list[BranchPlan] = []
    for name in names:
        slug = branch_slug(name)
        plans.append(
            BranchPlan(
                name=name,
                slug=slug,
                template_path=templates_dir / f"{slug}.md",
                marker_path=f"{MARKER_PREFIX}{slug}",
                commit_message=f"chore: add branch marker for {name}",
                pr_title=f"{PR_TITLE_PREFIX}{name}",
            )
        )
    return tuple(plans)


def render_marker(name: str, *, now: datetime) -> str:
    return f"Branch: {name}\nCreated: {now.strftime('%Y-%m-%d %H:%M:%S %z').strip()}\n"


def resolve_pull_request_draft(plan: BranchPlan, *, workdir: Path) -> PullRequestDraft:
    """Use the branch template when present, otherwise the fixed checklist."""

    template = plan.template_path if plan.template_path.is_absolute() else workdir / plan.template_path
    if template.is_file():
        return PullRequestDraft(
            title=plan.pr_title,
            body=template.read_text(encoding="utf-8"),
            body_file=template,
        )
    return PullRequestDraft(title=plan.pr_title, body=DEFAULT_PR_BODY)
