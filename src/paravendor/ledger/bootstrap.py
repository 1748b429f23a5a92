"""Ledger bootstrapper: create the ledger branch or adopt a remote copy."""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from paravendor.core.config import Settings
from paravendor.core.errors import AlreadyInitializedError, LedgerConflictError, StorageWriteError
from paravendor.git.repository import GitRepository
from paravendor.ledger.manifest import Manifest, encode
from paravendor.ledger.splicer import LedgerHandle, manifest_tree

logger = logging.getLogger(__name__)

INIT_MESSAGE = "Initialize paravendor"


@dataclass(frozen=True)
class BootstrapResult:
    """The new ledger and, if it was adopted, the remote it came from."""

    handle: LedgerHandle
    adopted_from: Optional[str] = None


def select_remote(repository: GitRepository, preferred: Optional[str] = None) -> Optional[str]:
    """Pick the remote to look for a ledger copy on.

    Order: ``preferred``, the upstream remote of the checked-out branch, the
    first configured remote.
    """
    if preferred:
        return preferred

    branch = repository.current_branch()
    if branch:
        upstream = repository.branch_remote(branch)
        if upstream:
            return upstream

    remotes = repository.remotes()
    if not remotes:
        return None
    if len(remotes) > 1:
        logger.warning(
            f"No upstream remote for the current branch; using '{remotes[0]}' "
            f"out of {', '.join(remotes)} (set --remote to choose)"
        )
    return remotes[0]


def find_remote_copy(
    repository: GitRepository,
    settings: Settings,
) -> Optional[Tuple[str, str]]:
    """Return ``(remote, tip)`` of a remote-tracked ledger branch, if one exists."""
    remote = select_remote(repository, settings.remote)
    if remote is None:
        return None
    tip = repository.remote_branch_tip(remote, settings.branch)
    if tip is None:
        logger.debug(f"No {remote}/{settings.branch} branch to adopt")
        return None
    return remote, tip


def adopt_remote_copy(repository: GitRepository, settings: Settings) -> Optional[BootstrapResult]:
    """Create the local ledger branch from its remote-tracked copy, if any."""
    found = find_remote_copy(repository, settings)
    if found is None:
        return None
    remote, tip = found
    _create_branch(repository, settings.ledger_ref, tip, f"adopted from {remote}/{settings.branch}")
    logger.info(f"Adopted ledger from {remote}/{settings.branch} at {tip[:12]}")
    return BootstrapResult(handle=LedgerHandle(ref=settings.ledger_ref, tip=tip), adopted_from=remote)


def bootstrap(
    repository: GitRepository,
    settings: Settings,
    ignore_remote: bool = False,
) -> BootstrapResult:
    """Establish the ledger branch.

    Raises:
        AlreadyInitializedError: If the local ledger branch exists
        StorageWriteError: If the root commit or branch cannot be written
    """
    if repository.branch_tip(settings.branch) is not None:
        raise AlreadyInitializedError(f"'{settings.branch}' branch already exists")

    if not ignore_remote:
        adopted = adopt_remote_copy(repository, settings)
        if adopted is not None:
            return adopted

    blob = repository.write_blob(encode(Manifest()))
    tree = manifest_tree(repository, blob, settings.manifest_entry)
    root = repository.commit_tree(tree, [], INIT_MESSAGE)
    _create_branch(repository, settings.ledger_ref, root, INIT_MESSAGE)

    logger.info(f"Created ledger branch '{settings.branch}' at {root[:12]}")
    return BootstrapResult(handle=LedgerHandle(ref=settings.ledger_ref, tip=root))


def _create_branch(repository: GitRepository, ref: str, commit: str, reason: str) -> None:
    try:
        repository.update_ref(ref, commit, "", message=f"paravendor: {reason}")
    except StorageWriteError:
        if repository.rev_parse(ref) is not None:
            raise LedgerConflictError(f"{ref} was created concurrently")
        raise
