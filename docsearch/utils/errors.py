"""Custom exception hierarchy for docsearch.

All application exceptions inherit from :class:`DocSearchError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "sqlite") caused the failure.

    DocSearchError  (base -- catch-all for any docsearch error)
    +-- ConfigurationError       (missing driver / model / dimension)
    |   +-- ProviderConfigError  (missing API key or base URL)
    +-- SchemaMissingError       (embedding table absent)
    +-- ProviderCallError        (embedding / completion call failed)
    |   +-- TransientProviderError (network-level failure, retryable once)
    +-- GenerationError          (answer / writing generation failed)
    +-- JobDispatchError         (job with no registered handler)

Configuration errors are never retried.  A missing schema is fatal for
indexing jobs but only degrades retrieval to "no context".
"""


class DocSearchError(Exception):
    """Base exception for all docsearch errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets,
    e.g. ``[openai] Embedding request failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(DocSearchError):
    """Raised when a required setting (driver, model, dimension) is missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderConfigError(ConfigurationError):
    """Raised when the provider API key or base URL is not configured."""

    def __init__(
        self,
        message: str = "Provider credentials are not configured",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------

class SchemaMissingError(DocSearchError):
    """Raised when the embedding table has not been created yet."""

    def __init__(
        self,
        message: str = "Embedding table does not exist",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Provider call errors
# ---------------------------------------------------------------------------

class ProviderCallError(DocSearchError):
    """Raised when a call to the embedding or completion provider fails."""

    def __init__(
        self,
        message: str = "Provider call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TransientProviderError(ProviderCallError):
    """Network-level provider failure (timeout, reset, socket error)."""

    def __init__(
        self,
        message: str = "Transient provider failure",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Service errors
# ---------------------------------------------------------------------------

class GenerationError(DocSearchError):
    """Raised when answer or writing generation fails."""

    def __init__(
        self,
        message: str = "AI generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class JobDispatchError(DocSearchError):
    """Raised when an indexing job has no registered handler."""

    def __init__(
        self,
        message: str = "No handler registered for job",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
