"""Custom exception hierarchy for the evidence engine.

Every error carries a machine-readable ``kind`` so the API layer can tell
"try again later" apart from "this request is malformed".
"""


class EvidenceEngineError(Exception):
    """Base exception for all evidence engine errors."""

    kind = "internal_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or ""


class InputError(EvidenceEngineError):
    """The request is missing a query or scope, or is otherwise malformed."""

    kind = "invalid_input"


class ConfigurationError(EvidenceEngineError):
    """Error in system configuration."""

    kind = "configuration_error"


# Upstream


class UpstreamError(EvidenceEngineError):
    """An external collaborator failed."""

    kind = "upstream_error"


class EmbeddingError(UpstreamError):
    """Error generating the query embedding."""

    kind = "embedding_failed"


class RetrievalError(UpstreamError):
    """Error during vector-similarity retrieval."""

    kind = "retrieval_failed"


class CatalogError(UpstreamError):
    """Error reading the source catalog."""

    kind = "catalog_failed"


class GenerationError(UpstreamError):
    """Error during document generation."""

    kind = "generation_failed"


class ThrottlingError(GenerationError):
    """The generation service is rate limiting requests."""

    kind = "upstream_throttled"


# Structural output


class StructuralOutputError(EvidenceEngineError):
    """The generation result could not be parsed into a document."""

    kind = "invalid_generation_output"


class TruncatedOutputError(StructuralOutputError):
    """Model output ended before a complete JSON object was produced."""

    kind = "truncated_output"


class CitationIntegrityError(StructuralOutputError):
    """The generated document cites evidence outside the working set."""

    kind = "citation_integrity"


# Capacity


class CapacityError(EvidenceEngineError):
    """The system cannot take this request right now."""

    kind = "capacity_exceeded"

    def __init__(self, message: str = "", retry_after_seconds: int | None = None) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class CallerBusyError(CapacityError):
    """A generation for this caller is already in flight."""

    kind = "caller_busy"


class QueueFullError(CapacityError):
    """The generation queue is at capacity."""

    kind = "queue_full"


class QueueTimeoutError(CapacityError):
    """A queued request waited longer than the maximum residency."""

    kind = "queue_timeout"
