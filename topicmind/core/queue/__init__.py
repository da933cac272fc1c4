"""
Transport abstraction for QueueMessage envelopes.

Supported backends:
- In-memory FIFO with per-node grouping
"""

from topicmind.core.queue.base import DeliveryMode, MessageQueue
from topicmind.core.queue.memory_queue import InMemoryQueue

__all__ = [
    "DeliveryMode",
    "MessageQueue",
    "InMemoryQueue",
]
