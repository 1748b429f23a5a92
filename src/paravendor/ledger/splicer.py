"""Ledger splicer: commit a manifest state and retain dependency commits.

A ledger commit has the previous ledger tip as its first parent and the
pruned dependency heads as further parents. Those extra parents exist only to
keep the dependency objects reachable; ledger history is read through first
parents alone.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from paravendor.core.errors import LedgerConflictError, StorageWriteError
from paravendor.git.repository import GitRepository, TreeEntry
from paravendor.ledger.manifest import Manifest, encode

logger = logging.getLogger(__name__)

BLOB_MODE = "100644"


@dataclass(frozen=True)
class LedgerHandle:
    """A ledger branch as observed at one point: its ref and its tip commit."""

    ref: str
    tip: str


def _unique_parents(tip: str, extra_parents: Iterable[str]) -> List[str]:
    parents: List[str] = []
    for parent in extra_parents:
        if parent != tip and parent not in parents:
            parents.append(parent)
    return parents


def manifest_tree(
    repository: GitRepository,
    blob: str,
    manifest_entry: str,
    base: Optional[str] = None,
) -> str:
    """Write a tree holding ``blob`` as ``manifest_entry``.

    When ``base`` is given every other entry of its tree is carried over
    unchanged.
    """
    entries = []
    if base is not None:
        entries = [e for e in repository.read_tree(base) if e.name != manifest_entry]
    entries.append(TreeEntry(mode=BLOB_MODE, type="blob", oid=blob, name=manifest_entry))
    return repository.write_tree(entries)


def update_ledger(
    repository: GitRepository,
    handle: LedgerHandle,
    manifest: Manifest,
    extra_parents: Iterable[str],
    message: str,
    manifest_entry: str = "manifest.json",
) -> Optional[LedgerHandle]:
    """Record ``manifest`` on the ledger and splice in ``extra_parents``.

    Args:
        repository: Repository holding the ledger branch
        handle: Ledger ref and the tip the caller read its manifest from
        manifest: Manifest to record
        extra_parents: Pruned dependency commits, kept in the given order
        message: Commit message
        manifest_entry: Tree entry name of the manifest blob

    Returns:
        Handle on the new tip, or None when the manifest is byte-identical to
        the one at ``handle.tip`` and there is nothing to splice.

    Raises:
        LedgerConflictError: If the branch no longer points at ``handle.tip``
        StorageWriteError: If writing an object or moving the branch fails
    """
    encoded = encode(manifest)
    parents = _unique_parents(handle.tip, extra_parents)

    if not parents and repository.read_blob(handle.tip, manifest_entry) == encoded:
        logger.info("Manifest unchanged, ledger left as is")
        return None

    blob = repository.write_blob(encoded)
    tree = manifest_tree(repository, blob, manifest_entry, base=handle.tip)
    commit = repository.commit_tree(tree, [handle.tip, *parents], message)

    try:
        repository.update_ref(handle.ref, commit, handle.tip, message=f"paravendor: {message}")
    except StorageWriteError:
        current = repository.rev_parse(handle.ref)
        if current != handle.tip:
            raise LedgerConflictError(
                f"{handle.ref} moved from {handle.tip[:12]} to "
                f"{(current or 'nothing')[:12]} during the update; re-run the command"
            )
        raise

    logger.info(f"Ledger advanced to {commit[:12]} with {len(parents)} spliced commits")
    return LedgerHandle(ref=handle.ref, tip=commit)
