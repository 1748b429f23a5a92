"""Runtime settings for paravendor."""
import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Settings(BaseModel):
    """Settings shared by every ledger operation.

    Values come from defaults, then ``PARAVENDOR_*`` environment variables
    (see ``from_env``), then CLI options.
    """

    branch: str = Field(default="paravendor", description="Local ledger branch name")
    manifest_entry: str = Field(
        default="manifest.json",
        description="Tree entry holding the manifest in every ledger commit",
    )
    remote: Optional[str] = Field(
        default=None,
        description="Remote to adopt the ledger from when it is missing locally",
    )
    git_timeout: int = Field(default=60, ge=1, description="Timeout (s) for local git calls")
    fetch_timeout: int = Field(default=600, ge=1, description="Timeout (s) for network fetches")

    @field_validator("branch")
    @classmethod
    def validate_branch(cls, v: str) -> str:
        """Reject names that are full refs or obviously invalid."""
        if not v or v.startswith("refs/") or " " in v or v.endswith("/"):
            raise ValueError(f"branch must be a short branch name, got: '{v}'")
        return v

    @field_validator("manifest_entry")
    @classmethod
    def validate_manifest_entry(cls, v: str) -> str:
        """The manifest lives at the root of the ledger tree."""
        if not v or "/" in v:
            raise ValueError(f"manifest_entry must be a plain file name, got: '{v}'")
        return v

    @property
    def ledger_ref(self) -> str:
        return f"refs/heads/{self.branch}"

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Build settings from ``PARAVENDOR_*`` variables plus explicit overrides.

        Overrides whose value is None are ignored so CLI options left unset
        fall through to the environment.
        """
        env_map = {
            "branch": "PARAVENDOR_BRANCH",
            "manifest_entry": "PARAVENDOR_MANIFEST",
            "remote": "PARAVENDOR_REMOTE",
            "git_timeout": "PARAVENDOR_GIT_TIMEOUT",
            "fetch_timeout": "PARAVENDOR_FETCH_TIMEOUT",
        }
        values = {}
        for field, var in env_map.items():
            if os.environ.get(var):
                values[field] = os.environ[var]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
