"""Resolve short reference names against a dependency's recorded heads."""
from typing import List

from paravendor.core.errors import ReferenceNotFoundError
from paravendor.ledger.manifest import Dependency


def candidate_names(name: str) -> List[str]:
    """Reference names tried for ``name``, in priority order."""
    return [
        name,
        f"refs/heads/{name}",
        f"refs/tags/{name}^{{}}",
        f"refs/tags/{name}",
    ]


def resolve(dependency: Dependency, name: str) -> str:
    """Return the commit id recorded for ``name``.

    The peeled tag form wins over the tag itself, so annotated tags resolve
    to the commit they point at rather than the tag object.

    Raises:
        ReferenceNotFoundError: If no candidate name is recorded
    """
    for candidate in candidate_names(name):
        head = dependency.heads.get(candidate)
        if head is not None:
            return head.commit_id
    raise ReferenceNotFoundError(f"Reference '{name}' not found in {dependency.source_url}")
