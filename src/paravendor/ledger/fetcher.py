"""Remote head fetcher: download a dependency and report what its remote advertises."""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from paravendor.git.repository import GitRepository, ProgressCallback
from paravendor.ledger.manifest import Head

logger = logging.getLogger(__name__)

PEELED_SUFFIX = "^{}"


@dataclass
class FetchResult:
    """Outcome of fetching one dependency.

    ``heads`` is the full advertisement. ``commits`` only holds the ids that
    are present locally as commit objects afterwards, so a reference can be
    recorded in the manifest even though its object never arrived.
    """

    heads: Dict[str, Head] = field(default_factory=dict)
    commits: List[str] = field(default_factory=list)


def fetch_heads(
    repository: GitRepository,
    url: str,
    progress: Optional[ProgressCallback] = None,
) -> FetchResult:
    """Fetch everything ``url`` advertises into the local object store.

    Args:
        repository: Repository whose object store receives the objects
        url: Any location git can fetch from
        progress: Called synchronously with transfer progress reports

    Returns:
        FetchResult with the advertised heads and the locally resolvable
        head commits, deduplicated, in advertisement order

    Raises:
        NetworkFetchError: If listing or fetching the remote fails
    """
    advertised = repository.ls_remote(url)
    logger.info(f"{url} advertises {len(advertised)} references")

    # Peeled entries name the commit behind an annotated tag; the tag
    # reference itself already brings that commit along.
    refspecs = [ref for ref, _ in advertised if not ref.endswith(PEELED_SUFFIX)]
    if refspecs:
        repository.fetch(url, refspecs, progress=progress)

    heads = {ref: Head(commit_id=oid) for ref, oid in advertised}

    candidates = []
    for _, oid in advertised:
        if oid not in candidates:
            candidates.append(oid)

    types = repository.object_types(candidates)
    commits = [oid for oid in candidates if types.get(oid) == "commit"]

    dropped = len(candidates) - len(commits)
    if dropped:
        logger.debug(f"{dropped} advertised ids from {url} are not local commits")

    return FetchResult(heads=heads, commits=commits)
