"""Manifest model and its deterministic blob encoding."""
import json
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from paravendor.core.errors import ManifestParseError

SCHEMA_VERSION = "1.1"
SUPPORTED_MAJOR = "1"


class Head(BaseModel):
    """A commit id advertised by a dependency's remote."""

    model_config = ConfigDict(extra="forbid")

    commit_id: str = Field(..., description="Commit (or tag object) id the reference points at")

    @field_validator("commit_id")
    @classmethod
    def validate_commit_id(cls, v: str) -> str:
        """Ensure commit_id looks like a full git object id."""
        if len(v) not in (40, 64):
            raise ValueError(
                f"commit_id must be 40 or 64 hex characters; got '{v}' (len={len(v)})"
            )
        if not all(c in "0123456789abcdef" for c in v):
            raise ValueError(f"commit_id must be lowercase hexadecimal; got '{v}'")
        return v


class Dependency(BaseModel):
    """A vendored dependency: where it comes from and what it advertised."""

    model_config = ConfigDict(extra="forbid")

    source_url: str = Field(..., description="Fetchable location of the dependency")
    heads: Dict[str, Head] = Field(
        default_factory=dict,
        description="Advertised reference name -> head, replaced wholesale on each sync",
    )


class Manifest(BaseModel):
    """Dependency manifest stored as one blob in every ledger commit.

    Dependency names are case-sensitive, opaque keys. Serialization sorts
    every mapping so equal manifests always encode to identical bytes.
    """

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "schema_version": SCHEMA_VERSION,
                "dependencies": {
                    "lib": {
                        "source_url": "https://example.com/lib.git",
                        "heads": {
                            "HEAD": {"commit_id": "abc123def456abc123def456abc123def456abc1"},
                            "refs/heads/main": {"commit_id": "abc123def456abc123def456abc123def456abc1"},
                        },
                    }
                },
            }
        },
    )

    schema_version: str = Field(default=SCHEMA_VERSION)
    dependencies: Dict[str, Dependency] = Field(default_factory=dict)

    @field_validator("schema_version")
    @classmethod
    def validate_schema_version(cls, v: str) -> str:
        """Accept any minor revision of the supported major version."""
        if v.split(".", 1)[0] != SUPPORTED_MAJOR:
            raise ValueError(
                f"unsupported manifest schema_version '{v}' (expected {SUPPORTED_MAJOR}.x)"
            )
        return v


def encode(manifest: Manifest) -> bytes:
    """Serialize a manifest to canonical JSON bytes (sorted keys, trailing newline)."""
    data = manifest.model_dump(mode="json")
    return (json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n").encode("utf-8")


def decode(data: bytes) -> Manifest:
    """Parse manifest bytes.

    Raises:
        ManifestParseError: If the bytes are not valid UTF-8 JSON, do not
            match the manifest schema, or carry an unsupported schema version.
    """
    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ManifestParseError(f"Manifest is not valid JSON: {e}")

    if not isinstance(raw, dict):
        raise ManifestParseError("Manifest must be a JSON object")

    try:
        return Manifest.model_validate(raw)
    except ValidationError as e:
        raise ManifestParseError(f"Invalid manifest: {e}")
