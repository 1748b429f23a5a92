"""Tests for reference resolution."""
import pytest

from paravendor.core.errors import ReferenceNotFoundError
from paravendor.ledger.manifest import Dependency, Head
from paravendor.ledger.resolver import candidate_names, resolve

X = "1" * 40
Y = "2" * 40
Z = "3" * 40
W = "4" * 40


def _dependency(**heads: str) -> Dependency:
    return Dependency(
        source_url="https://example.com/lib.git",
        heads={name: Head(commit_id=oid) for name, oid in heads.items()},
    )


def test_branch_and_peeled_tag_fallback():
    dependency = Dependency(
        source_url="https://example.com/lib.git",
        heads={
            "refs/heads/main": Head(commit_id=X),
            "refs/tags/v1^{}": Head(commit_id=Y),
        },
    )
    assert resolve(dependency, "main") == X
    assert resolve(dependency, "v1") == Y


def test_exact_name_wins():
    dependency = Dependency(
        source_url="u",
        heads={
            "HEAD": Head(commit_id=X),
            "refs/heads/HEAD": Head(commit_id=Y),
            "refs/heads/main": Head(commit_id=Z),
        },
    )
    assert resolve(dependency, "HEAD") == X
    assert resolve(dependency, "refs/heads/main") == Z


def test_branch_wins_over_tag():
    dependency = Dependency(
        source_url="u",
        heads={
            "refs/heads/release": Head(commit_id=X),
            "refs/tags/release": Head(commit_id=Y),
        },
    )
    assert resolve(dependency, "release") == X


def test_peeled_tag_wins_over_tag_object():
    dependency = Dependency(
        source_url="u",
        heads={
            "refs/tags/v2": Head(commit_id=W),
            "refs/tags/v2^{}": Head(commit_id=Z),
        },
    )
    assert resolve(dependency, "v2") == Z


def test_lightweight_tag():
    dependency = Dependency(source_url="u", heads={"refs/tags/v3": Head(commit_id=W)})
    assert resolve(dependency, "v3") == W


def test_missing_reference_raises():
    dependency = Dependency(source_url="u", heads={"refs/heads/main": Head(commit_id=X)})
    with pytest.raises(ReferenceNotFoundError):
        resolve(dependency, "dev")


def test_candidate_order():
    assert candidate_names("v1") == ["v1", "refs/heads/v1", "refs/tags/v1^{}", "refs/tags/v1"]
