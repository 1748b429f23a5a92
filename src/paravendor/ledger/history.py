"""First-parent history of the ledger branch."""
from dataclasses import dataclass
from typing import Iterator, Optional

from paravendor.git.repository import GitRepository


@dataclass(frozen=True)
class HistoryEntry:
    commit_id: str
    summary: str

    def __str__(self) -> str:
        return f"{self.commit_id} {self.summary}"


class LedgerHistory:
    """Manifest states from ``tip`` back to the ledger root.

    Iteration is lazy (one commit read per step) and every ``iter()`` starts
    a fresh walk from the same tip.
    """

    def __init__(self, repository: GitRepository, tip: str):
        self.repository = repository
        self.tip = tip

    def __iter__(self) -> Iterator[HistoryEntry]:
        oid: Optional[str] = self.tip
        while oid is not None:
            commit = self.repository.read_commit(oid)
            yield HistoryEntry(commit_id=oid, summary=commit.summary)
            oid = commit.parents[0] if commit.parents else None
