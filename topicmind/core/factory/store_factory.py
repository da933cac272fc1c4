"""
Factory for creating node stores and transports.
"""

from topicmind.config import QueueConfig, StoreConfig
from topicmind.core.node_store.base import NodeStore
from topicmind.core.node_store.memory_store import InMemoryNodeStore
from topicmind.core.node_store.sqlite_store import SQLiteNodeStore
from topicmind.core.queue.base import DeliveryMode, MessageQueue
from topicmind.core.queue.memory_queue import InMemoryQueue
from topicmind.utils.exceptions import ConfigurationError


class NodeStoreFactory:
    """Factory for creating node store backends from configuration."""

    @staticmethod
    def create(config: StoreConfig) -> NodeStore:
        """
        Create node store from configuration.

        Raises:
            ConfigurationError: If backend is not supported
        """
        if config.backend == "memory":
            return InMemoryNodeStore()
        elif config.backend == "sqlite":
            return SQLiteNodeStore(db_path=config.sqlite_path)
        else:
            raise ConfigurationError(f"Unsupported store backend: {config.backend}")


class QueueFactory:
    """Factory for creating transports from configuration."""

    @staticmethod
    def create(config: QueueConfig) -> MessageQueue:
        """
        Create transport from configuration.

        Raises:
            ConfigurationError: If backend or delivery mode is not supported
        """
        try:
            mode = DeliveryMode(config.delivery_mode)
        except ValueError as e:
            raise ConfigurationError(f"Unsupported delivery mode: {config.delivery_mode}") from e

        if config.backend == "memory":
            return InMemoryQueue(delivery_mode=mode, dedup_window=config.dedup_window)
        else:
            raise ConfigurationError(f"Unsupported queue backend: {config.backend}")
