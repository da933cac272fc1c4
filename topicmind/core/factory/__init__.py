"""
Factory modules for creating TopicMind components.

Provides modular factories for LLM, Embedder, Node Store and Queue.
"""

from topicmind.core.factory.embedder_factory import EmbedderFactory
from topicmind.core.factory.llm_factory import LLMFactory
from topicmind.core.factory.store_factory import NodeStoreFactory, QueueFactory

__all__ = [
    "LLMFactory",
    "EmbedderFactory",
    "NodeStoreFactory",
    "QueueFactory",
]
