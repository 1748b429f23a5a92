"""Vendor: the ledger operations offered to the command line.

Each operation reads the ledger tip once, works on an in-memory copy of the
manifest and finishes with at most one ledger commit. Any error raised
before that commit leaves the branch untouched.
"""
import logging
from functools import partial
from typing import Callable, Iterable, List, Optional, Tuple

from paravendor.core.config import Settings
from paravendor.core.errors import (
    DependencyNotFoundError,
    DuplicateDependencyError,
    ManifestParseError,
    NotInitializedError,
)
from paravendor.git.repository import FetchProgress, GitRepository
from paravendor.ledger.bootstrap import BootstrapResult, adopt_remote_copy, bootstrap
from paravendor.ledger.fetcher import FetchResult, fetch_heads
from paravendor.ledger.history import LedgerHistory
from paravendor.ledger.manifest import Dependency, Manifest, decode
from paravendor.ledger.pruner import AncestryCache, prune
from paravendor.ledger.resolver import resolve
from paravendor.ledger.splicer import LedgerHandle, update_ledger

logger = logging.getLogger(__name__)

# Receives the dependency name and a transfer progress report.
DependencyProgress = Callable[[str, FetchProgress], None]


class Vendor:
    """Vendored dependencies of one repository, recorded on its ledger branch."""

    def __init__(self, repository: GitRepository, settings: Optional[Settings] = None):
        self.repository = repository
        self.settings = settings or Settings()
        self._ancestry = AncestryCache(repository.is_ancestor)

    # --- ledger state -------------------------------------------------------

    def _handle(self) -> LedgerHandle:
        tip = self.repository.branch_tip(self.settings.branch)
        if tip is not None:
            return LedgerHandle(ref=self.settings.ledger_ref, tip=tip)

        adopted = adopt_remote_copy(self.repository, self.settings)
        if adopted is None:
            raise NotInitializedError(
                f"paravendor is not initialized (no '{self.settings.branch}' branch), "
                "run `git paravendor init`"
            )
        return adopted.handle

    def load(self) -> Tuple[LedgerHandle, Manifest]:
        """Current ledger handle and the manifest recorded at its tip.

        Raises:
            NotInitializedError: If there is no ledger branch to read or adopt
            ManifestParseError: If the tip has no readable manifest
        """
        handle = self._handle()
        data = self.repository.read_blob(handle.tip, self.settings.manifest_entry)
        if data is None:
            raise ManifestParseError(
                f"No '{self.settings.manifest_entry}' in ledger commit {handle.tip[:12]}"
            )
        return handle, decode(data)

    def _fetch(
        self,
        name: str,
        url: str,
        progress: Optional[DependencyProgress],
    ) -> FetchResult:
        logger.info(f"Fetching {name} from {url}")
        callback = partial(progress, name) if progress is not None else None
        result = fetch_heads(self.repository, url, progress=callback)
        result.commits = prune(result.commits, self._ancestry)
        return result

    def _retention_parents(self, tip: str, commits: Iterable[str]) -> List[str]:
        """Pruned ``commits`` minus those the ledger already keeps reachable."""
        return [c for c in prune(commits, self._ancestry) if not self._ancestry(c, tip)]

    # --- commands -----------------------------------------------------------

    def bootstrap(self, ignore_remote: bool = False) -> BootstrapResult:
        return bootstrap(self.repository, self.settings, ignore_remote=ignore_remote)

    def add_dependency(
        self,
        name: str,
        url: str,
        progress: Optional[DependencyProgress] = None,
    ) -> Optional[LedgerHandle]:
        """Fetch ``url`` and record it as dependency ``name``.

        Raises:
            DuplicateDependencyError: If ``name`` is already vendored
            NetworkFetchError: If the dependency cannot be fetched
        """
        handle, manifest = self.load()
        if name in manifest.dependencies:
            raise DuplicateDependencyError(f"{name} has been already added, aborting")

        result = self._fetch(name, url, progress)

        updated = manifest.model_copy(deep=True)
        updated.dependencies[name] = Dependency(source_url=url, heads=result.heads)

        return update_ledger(
            self.repository,
            handle,
            updated,
            self._retention_parents(handle.tip, result.commits),
            f"Add {name} from {url}",
            manifest_entry=self.settings.manifest_entry,
        )

    def sync(
        self,
        names: Iterable[str] = (),
        progress: Optional[DependencyProgress] = None,
    ) -> List[str]:
        """Re-fetch dependencies and record every changed head set in one commit.

        Fetched commits not yet reachable from the ledger are spliced in even
        when no head set changed.

        Args:
            names: Dependencies to sync; empty means all of them
            progress: Transfer progress callback

        Returns:
            Names of the dependencies whose heads changed, sorted by name

        Raises:
            DependencyNotFoundError: If a requested name is not vendored
            NetworkFetchError: If any fetch fails (nothing is committed)
        """
        handle, manifest = self.load()

        requested = set(names)
        missing = sorted(requested - set(manifest.dependencies))
        if missing:
            raise DependencyNotFoundError(f"Dependency not found: {', '.join(missing)}")

        selected = [
            name for name in sorted(manifest.dependencies)
            if not requested or name in requested
        ]

        updated = manifest.model_copy(deep=True)
        changed: List[str] = []
        commits: List[str] = []
        for name in selected:
            dependency = updated.dependencies[name]
            result = self._fetch(name, dependency.source_url, progress)
            # Unchanged heads may still bring commits that were missing locally
            commits.extend(result.commits)
            if result.heads != dependency.heads:
                dependency.heads = result.heads
                changed.append(name)
                logger.info(f"Synced {name}")

        parents = self._retention_parents(handle.tip, commits)
        if not changed and not parents:
            logger.info("No updates detected")
            return changed

        if changed:
            message = f"Sync: {', '.join(changed)}"
        else:
            message = f"Sync: retain {len(parents)} commits"
        update_ledger(
            self.repository,
            handle,
            updated,
            parents,
            message,
            manifest_entry=self.settings.manifest_entry,
        )
        return changed

    def list_dependencies(self) -> List[Tuple[str, str]]:
        _, manifest = self.load()
        return [(name, dep.source_url) for name, dep in sorted(manifest.dependencies.items())]

    def dependency(self, name: str) -> Dependency:
        _, manifest = self.load()
        try:
            return manifest.dependencies[name]
        except KeyError:
            raise DependencyNotFoundError(f"Dependency not found: {name}")

    def list_references(self, name: str) -> List[str]:
        return sorted(self.dependency(name).heads)

    def resolve_reference(self, name: str, reference: str) -> str:
        return resolve(self.dependency(name), reference)

    def history(self) -> LedgerHistory:
        return LedgerHistory(self.repository, self._handle().tip)
