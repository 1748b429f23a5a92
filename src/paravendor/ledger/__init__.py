"""Vendor ledger: manifest, fetching, pruning and splicing."""
from paravendor.ledger.bootstrap import BootstrapResult, bootstrap
from paravendor.ledger.fetcher import FetchResult, fetch_heads
from paravendor.ledger.history import HistoryEntry, LedgerHistory
from paravendor.ledger.manifest import SCHEMA_VERSION, Dependency, Head, Manifest, decode, encode
from paravendor.ledger.pruner import AncestryCache, prune
from paravendor.ledger.resolver import resolve
from paravendor.ledger.splicer import LedgerHandle, update_ledger
from paravendor.ledger.vendor import Vendor

__all__ = [
    "SCHEMA_VERSION",
    "AncestryCache",
    "BootstrapResult",
    "Dependency",
    "FetchResult",
    "Head",
    "HistoryEntry",
    "LedgerHandle",
    "LedgerHistory",
    "Manifest",
    "Vendor",
    "bootstrap",
    "decode",
    "encode",
    "fetch_heads",
    "prune",
    "resolve",
    "update_ledger",
]
