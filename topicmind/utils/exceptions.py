"""
Custom exception hierarchy for TopicMind.

Provides structured error types for the adjudication and memory pipeline.
All exceptions inherit from TopicMindError for easy catching.
"""


class TopicMindError(Exception):
    """
    Base exception for all TopicMind errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize TopicMind error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ProviderError(TopicMindError):
    """
    Base exception for completion/embedding provider failures.
    """

    pass


class ProviderUnavailableError(ProviderError):
    """
    Network or HTTP failure while calling a provider.
    Raised when the provider could not be reached or returned an error status.
    """

    pass


class ProviderMalformedError(ProviderError):
    """
    Provider responded, but the response did not parse into the expected shape.
    """

    pass


class LLMError(ProviderUnavailableError):
    """
    Completion provider errors (API errors, timeouts, empty content).
    """

    pass


class EmbeddingError(ProviderUnavailableError):
    """
    Embedding generation errors.
    """

    pass


class StoreError(TopicMindError):
    """
    Base exception for persistent store operations.
    """

    pass


class RecordNotFoundError(StoreError):
    """
    A node or message record does not exist in the store.
    """

    pass


NotFoundError = RecordNotFoundError


class VersionConflictError(StoreError):
    """
    Optimistic update rejected because the node version changed concurrently.
    """

    def __init__(
        self,
        message: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, context)
        self.expected_version = expected_version
        self.actual_version = actual_version


class QueueError(TopicMindError):
    """
    Transport errors.
    Raised when enqueueing or receiving envelopes fails.
    """

    pass


class ValidationError(TopicMindError):
    """
    Validation errors.
    Raised when input validation fails or data is invalid.
    """

    pass


class ConfigurationError(TopicMindError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass
