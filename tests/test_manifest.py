"""Tests for the manifest codec."""
import json

import pytest
from pydantic import ValidationError

from paravendor.core.errors import ManifestParseError
from paravendor.ledger.manifest import SCHEMA_VERSION, Dependency, Head, Manifest, decode, encode

SHA_A = "a" * 40
SHA_B = "b" * 40


def _manifest(*names: str) -> Manifest:
    manifest = Manifest()
    for name in names:
        manifest.dependencies[name] = Dependency(
            source_url=f"https://example.com/{name}.git",
            heads={
                "refs/heads/main": Head(commit_id=SHA_A),
                "HEAD": Head(commit_id=SHA_A),
                "refs/tags/v1": Head(commit_id=SHA_B),
            },
        )
    return manifest


def test_empty_manifest_defaults():
    manifest = Manifest()
    assert manifest.schema_version == SCHEMA_VERSION
    assert manifest.dependencies == {}


def test_encode_is_deterministic():
    """Test: equal manifests encode to identical bytes.

    Given: two manifests with the same content built in different orders
    When: both are encoded
    Then: the bytes are identical and the keys are sorted
    """
    first = _manifest("zlib", "abseil")
    second = _manifest("abseil", "zlib")

    assert encode(first) == encode(second)
    assert encode(first) == encode(first)

    data = json.loads(encode(first))
    assert list(data["dependencies"]) == ["abseil", "zlib"]
    assert list(data["dependencies"]["zlib"]["heads"]) == ["HEAD", "refs/heads/main", "refs/tags/v1"]


def test_encode_ends_with_newline():
    assert encode(Manifest()).endswith(b"\n")


def test_decode_restores_encoded_manifest():
    original = _manifest("lib")
    assert decode(encode(original)) == original


def test_names_are_case_sensitive():
    manifest = _manifest("Lib", "lib")
    assert set(decode(encode(manifest)).dependencies) == {"Lib", "lib"}


@pytest.mark.parametrize(
    "payload",
    [
        b"not json",
        b"\xff\xfe",
        b"[]",
        b'{"schema_version": "1.1", "dependencies": {"x": {"heads": {}}}}',
        b'{"schema_version": "1.1", "dependencies": {"x": {"source_url": "u", "heads": {"HEAD": {"commit_id": "xyz"}}}}}',
        b'{"schema_version": "1.1", "dependencies": {}, "unexpected": true}',
    ],
)
def test_decode_rejects_malformed_input(payload):
    with pytest.raises(ManifestParseError):
        decode(payload)


def test_decode_rejects_incompatible_schema():
    payload = json.dumps({"schema_version": "2.0", "dependencies": {}}).encode()
    with pytest.raises(ManifestParseError, match="schema_version"):
        decode(payload)


def test_decode_accepts_older_minor_version():
    payload = json.dumps({"schema_version": "1.0", "dependencies": {}}).encode()
    assert decode(payload).schema_version == "1.0"


def test_head_validates_commit_id():
    """Test: Head rejects ids that are not full hexadecimal object ids."""
    with pytest.raises(ValidationError):
        Head(commit_id="abc")
    with pytest.raises(ValidationError):
        Head(commit_id="g" * 40)
    with pytest.raises(ValidationError):
        Head(commit_id="A" * 40)

    assert Head(commit_id="0" * 64).commit_id == "0" * 64
