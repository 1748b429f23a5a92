"""Core exception types for paravendor."""


class ParavendorError(Exception):
    """Base exception for all paravendor errors."""
    pass


class NotInitializedError(ParavendorError):
    """Raised when the ledger branch does not exist and cannot be adopted."""
    pass


class AlreadyInitializedError(ParavendorError):
    """Raised when bootstrapping a repository that already has a ledger."""
    pass


class DuplicateDependencyError(ParavendorError):
    """Raised when adding a dependency under a name already in the manifest."""
    pass


class DependencyNotFoundError(ParavendorError):
    """Raised when a dependency name is not present in the manifest."""
    pass


class ReferenceNotFoundError(ParavendorError):
    """Raised when a reference cannot be resolved within a dependency."""
    pass


class ManifestParseError(ParavendorError):
    """Raised when a manifest blob is malformed or of an incompatible schema."""
    pass


class LedgerConflictError(ParavendorError):
    """Raised when the ledger branch moved between read and update."""
    pass


class GitOperationError(ParavendorError):
    """Raised when a git operation fails."""
    pass


class NetworkFetchError(GitOperationError):
    """Raised when listing or fetching a remote fails."""
    pass


class StorageWriteError(GitOperationError):
    """Raised when writing an object or moving a reference fails."""
    pass
