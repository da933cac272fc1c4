"""
Base interface for the message transport.

Envelopes are grouped by node id (ordering key) and deduplicated by message
id. Delivery is at-least-once (ack after processing, release to redeliver) or
at-most-once (removed on receipt).
"""

from abc import ABC, abstractmethod
from enum import Enum

from topicmind.models.message import QueueMessage


class DeliveryMode(str, Enum):
    """Transport delivery guarantee."""

    AT_LEAST_ONCE = "at_least_once"
    AT_MOST_ONCE = "at_most_once"


class MessageQueue(ABC):
    """Abstract base class for transports carrying QueueMessage envelopes."""

    @abstractmethod
    async def enqueue(self, message: QueueMessage) -> bool:
        """
        Add an envelope.

        node_id is the ordering/group key, message_id the deduplication key.

        Returns:
            False when the envelope was dropped as a duplicate
        """
        pass

    @abstractmethod
    async def dequeue(self, wait_seconds: float | None = None) -> QueueMessage | None:
        """
        Receive the next deliverable envelope.

        Blocks up to wait_seconds (long poll); returns None on timeout.
        """
        pass

    @abstractmethod
    async def ack(self, message_id: str) -> None:
        """Mark an in-flight envelope as done."""
        pass

    @abstractmethod
    async def release(self, message_id: str) -> bool:
        """
        Return an in-flight envelope for redelivery, when the delivery mode allows it.

        Returns:
            True if the envelope will be delivered again
        """
        pass

    async def close(self) -> None:
        """Release transport resources."""
        pass
