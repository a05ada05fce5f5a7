"""Error taxonomy for context assembly."""


class ContextAssemblyError(Exception):
    """Base exception for context assembly failures."""
    pass


class ConfigurationError(ContextAssemblyError):
    """Raised when no usable context profile can be resolved."""
    pass


class RetrievalError(ContextAssemblyError):
    """Raised when query embedding or candidate retrieval fails."""
    pass


class EvidenceSourceError(ContextAssemblyError):
    """Raised inside the evidence fan-out when an optional source fails.

    Never escapes the aggregator: the failing source degrades to no results.
    """

    def __init__(self, source: str, cause: BaseException):
        self.source = source
        self.cause = cause
        super().__init__(f"{source} lookup failed: {cause}")


class AuditError(ContextAssemblyError):
    """Raised when a disclosure record cannot be persisted."""
    pass
