"""Configuration for the provisioner.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Prompts still have the final say: settings only provide the defaults offered to
the operator. The storage service key is held as a `SecretStr` so it never shows
up in reprs or logs.
"""

from __future__ import annotations

from pathlib import Path
import json
from typing import Annotated, Any, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from repo_provisioner.provisioner.storage.client import DEFAULT_BUCKETS_PATH


class ProvisionerSettings(BaseSettings):
    """Settings for a provisioning run.

    Environment variables:
    - LOG_LEVEL, LOG_FORMAT           (optional)
    - PROVISIONER_OWNER, PROVISIONER_REPO
    - PROVISIONER_PRIMARY_BRANCH      (default "main")
    - STORAGE_URL, STORAGE_SERVICE_KEY (optional; bucket prompt defaults)

    Notes:
        Tests can override the env file with
        `ProvisionerSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        validation_alias="LOG_FORMAT",
        description="'text' for humans, 'json' for structured output",
    )

    default_owner: str = Field(
        default="",
        validation_alias="PROVISIONER_OWNER",
        description="Default repository owner offered at the prompt",
    )
    default_repo: str = Field(
        default="",
        validation_alias="PROVISIONER_REPO",
        description="Default repository name (falls back to the working directory name)",
    )
    primary_branch: str = Field(
        default="main",
        validation_alias="PROVISIONER_PRIMARY_BRANCH",
        description="Branch every feature branch is forked from",
    )
    remote_name: str = Field(
        default="origin",
        validation_alias="PROVISIONER_REMOTE",
        description="Name of the git remote to create or reuse",
    )
    git_host: str = Field(
        default="github.com",
        validation_alias="PROVISIONER_GIT_HOST",
        description="Host used to build the SSH remote URL",
    )

    required_tools: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["git", "node", "npm"],
        validation_alias="PROVISIONER_REQUIRED_TOOLS",
        description=(
            "Tools that must answer '--version' for the run to start; "
            "comma separated (git,node,npm) or a JSON list"
        ),
    )
    optional_tool: str = Field(
        default="gh",
        validation_alias="PROVISIONER_HOSTING_CLI",
        description="Hosting CLI used for repository and pull request operations",
    )

    templates_dir: Path = Field(
        default=Path(".github/pr-templates"),
        validation_alias="PROVISIONER_TEMPLATES_DIR",
        description="Directory holding per-branch pull request templates",
    )
    setup_script: Path = Field(
        default=Path("scripts/setup-local.ps1"),
        validation_alias="PROVISIONER_SETUP_SCRIPT",
        description="Optional local setup routine delegated to at the end of the run",
    )
    bootstrap_commit_message: str = Field(
        default="chore: initial commit of working tree",
        validation_alias="PROVISIONER_BOOTSTRAP_MESSAGE",
    )

    storage_url: str = Field(
        default="",
        validation_alias="STORAGE_URL",
        description="Storage service endpoint offered as the bucket prompt default",
    )
    storage_service_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias="STORAGE_SERVICE_KEY",
        description="Service role key; only ever sent in request headers",
    )
    storage_buckets_path: str = Field(
        default=DEFAULT_BUCKETS_PATH,
        validation_alias="STORAGE_BUCKETS_PATH",
    )
    storage_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias="STORAGE_TIMEOUT_SECONDS",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("primary_branch", "remote_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("required_tools", mode="before")
    @classmethod
    def _split_tools(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        text = value.strip()
        if text.startswith("["):
            return json.loads(text)
        return text.split(",")

    @field_validator("required_tools")
    @classmethod
    def _strip_tools(cls, value: list[str]) -> list[str]:
        return [t.strip() for t in value if t.strip()]
