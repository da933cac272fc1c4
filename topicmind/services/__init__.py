"""
Services for TopicMind.

High-level business logic services:
- TopicMindEngine: Unified interface wiring every component
- PipelineController: Consumer loop over the message transport
- AdjudicationEngine: Relevance and staleness judgments
- MemoryManager: Three-tier node memory and compression
- FactStore: Key fact extraction, deduplication and confidence
"""

from topicmind.services.adjudication import AdjudicationEngine
from topicmind.services.engine import TopicMindEngine
from topicmind.services.fact_store import FactStore
from topicmind.services.memory_manager import MemoryManager
from topicmind.services.pipeline import PipelineController, resolve_status

__all__ = [
    "TopicMindEngine",
    "PipelineController",
    "resolve_status",
    "AdjudicationEngine",
    "MemoryManager",
    "FactStore",
]
