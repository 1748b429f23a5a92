"""Tests for runtime settings."""
import pytest
from pydantic import ValidationError

from paravendor.core.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.branch == "paravendor"
    assert settings.ledger_ref == "refs/heads/paravendor"
    assert settings.manifest_entry == "manifest.json"
    assert settings.remote is None


def test_from_env(monkeypatch):
    monkeypatch.setenv("PARAVENDOR_BRANCH", "deps")
    monkeypatch.setenv("PARAVENDOR_REMOTE", "upstream")
    monkeypatch.setenv("PARAVENDOR_GIT_TIMEOUT", "5")

    settings = Settings.from_env()

    assert settings.branch == "deps"
    assert settings.remote == "upstream"
    assert settings.git_timeout == 5


def test_overrides_win_over_env(monkeypatch):
    monkeypatch.setenv("PARAVENDOR_BRANCH", "deps")
    assert Settings.from_env(branch="ledger").branch == "ledger"
    assert Settings.from_env(branch=None).branch == "deps"


@pytest.mark.parametrize("branch", ["", "refs/heads/x", "with space", "trailing/"])
def test_invalid_branch(branch):
    with pytest.raises(ValidationError):
        Settings(branch=branch)


def test_invalid_manifest_entry():
    with pytest.raises(ValidationError):
        Settings(manifest_entry="dir/manifest.json")
