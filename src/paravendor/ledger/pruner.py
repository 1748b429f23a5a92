"""Ancestry pruning of fetched head commits."""
import logging
from typing import Callable, Dict, Iterable, List, Tuple

logger = logging.getLogger(__name__)

AncestryPredicate = Callable[[str, str], bool]


class AncestryCache:
    """Memoizes an ancestry predicate per (ancestor, descendant) pair.

    Commit graphs are immutable, so answers stay valid for the lifetime of
    the object store.
    """

    def __init__(self, is_ancestor: AncestryPredicate):
        self._is_ancestor = is_ancestor
        self._answers: Dict[Tuple[str, str], bool] = {}

    def __call__(self, ancestor: str, descendant: str) -> bool:
        key = (ancestor, descendant)
        if key not in self._answers:
            self._answers[key] = self._is_ancestor(ancestor, descendant)
        return self._answers[key]

    def __len__(self) -> int:
        return len(self._answers)


def prune(commits: Iterable[str], is_ancestor: AncestryPredicate) -> List[str]:
    """Drop every commit that is a strict ancestor of another commit in the set.

    Args:
        commits: Commit ids; duplicates count once
        is_ancestor: ``is_ancestor(a, b)`` is True when ``a`` is reachable
            from ``b`` through any parent

    Returns:
        The minimal subset covering the input, in first-occurrence order.
        Membership does not depend on the input order.
    """
    unique: List[str] = []
    for commit in commits:
        if commit not in unique:
            unique.append(commit)

    kept = [
        commit
        for commit in unique
        if not any(other != commit and is_ancestor(commit, other) for other in unique)
    ]

    if len(kept) != len(unique):
        logger.debug(f"Pruned {len(unique) - len(kept)} of {len(unique)} head commits")
    return kept
