"""Utility modules for TopicMind."""

from topicmind.utils.exceptions import (
    ConfigurationError,
    EmbeddingError,
    LLMError,
    NotFoundError,
    ProviderError,
    ProviderMalformedError,
    ProviderUnavailableError,
    QueueError,
    RecordNotFoundError,
    StoreError,
    TopicMindError,
    ValidationError,
    VersionConflictError,
)
from topicmind.utils.id_generator import (
    generate_fact_id,
    generate_message_id,
    generate_node_id,
)
from topicmind.utils.logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # ID Generators
    "generate_node_id",
    "generate_message_id",
    "generate_fact_id",
    # Exceptions
    "TopicMindError",
    "ProviderError",
    "ProviderUnavailableError",
    "ProviderMalformedError",
    "LLMError",
    "EmbeddingError",
    "StoreError",
    "RecordNotFoundError",
    "NotFoundError",
    "VersionConflictError",
    "QueueError",
    "ValidationError",
    "ConfigurationError",
]
