"""Git substrate: object store, references and remote transfer."""
from paravendor.git.repository import (
    CommitInfo,
    FetchProgress,
    GitRepository,
    ProgressCallback,
    TreeEntry,
)

__all__ = [
    "CommitInfo",
    "FetchProgress",
    "GitRepository",
    "ProgressCallback",
    "TreeEntry",
]
