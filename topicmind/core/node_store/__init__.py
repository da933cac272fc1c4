"""Persistent node/message store components for TopicMind."""

from topicmind.core.node_store.base import NodeStore
from topicmind.core.node_store.memory_store import InMemoryNodeStore
from topicmind.core.node_store.sqlite_store import SQLiteNodeStore

__all__ = [
    "NodeStore",
    "InMemoryNodeStore",
    "SQLiteNodeStore",
]
