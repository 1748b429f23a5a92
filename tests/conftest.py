"""Pytest fixtures for paravendor tests."""
from pathlib import Path
from typing import Dict

import pytest

from paravendor.core.config import Settings
from paravendor.git.repository import GitRepository
from paravendor.ledger import Vendor

from helpers import init_repo, make_commit, run_git


@pytest.fixture
def consumer_repo(tmp_path: Path) -> Path:
    """A repository with one commit on main that will vendor dependencies."""
    repo_path = init_repo(tmp_path / "consumer")
    (repo_path / "README.md").write_text("# Consumer\n")
    run_git(repo_path, "add", "README.md")
    run_git(repo_path, "commit", "-m", "initial")
    return repo_path


@pytest.fixture
def dependency_repo(tmp_path: Path) -> Dict[str, any]:
    """Create a dependency repository with a branch and an annotated tag.

    Returns dict with:
        - path: Path to repo
        - url: URL to vendor it from (its absolute path)
        - v1_sha: SHA of the commit tagged v1
        - tag_object: SHA of the annotated v1 tag object
        - main_sha: SHA of main (one commit ahead of v1)
        - dev_sha: SHA of dev (branched from v1)
    """
    repo_path = init_repo(tmp_path / "lib")

    v1_sha = make_commit(repo_path, "Initial commit", "lib.h")
    run_git(repo_path, "tag", "-a", "v1", "-m", "Release v1")
    tag_object = run_git(repo_path, "rev-parse", "refs/tags/v1")

    run_git(repo_path, "checkout", "-q", "-b", "dev")
    dev_sha = make_commit(repo_path, "Work on dev", "dev.h")

    run_git(repo_path, "checkout", "-q", "main")
    main_sha = make_commit(repo_path, "Second commit", "lib.h")

    return {
        "path": repo_path,
        "url": str(repo_path),
        "v1_sha": v1_sha,
        "tag_object": tag_object,
        "main_sha": main_sha,
        "dev_sha": dev_sha,
    }


@pytest.fixture
def simple_dependency(tmp_path: Path) -> Dict[str, any]:
    """A dependency with a single commit on main and no other references."""
    repo_path = init_repo(tmp_path / "simple")
    main_sha = make_commit(repo_path, "init", "simple.h")
    return {"path": repo_path, "url": str(repo_path), "main_sha": main_sha}


@pytest.fixture
def repository(consumer_repo: Path) -> GitRepository:
    return GitRepository(consumer_repo)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def vendor(repository: GitRepository, settings: Settings) -> Vendor:
    """A Vendor whose ledger has been bootstrapped."""
    vendor = Vendor(repository, settings)
    vendor.bootstrap(ignore_remote=True)
    return vendor
