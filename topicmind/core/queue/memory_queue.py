"""
In-process FIFO transport with per-node grouping.

Mirrors FIFO-queue semantics: while an envelope of a group is in flight, no
later envelope of the same group is delivered, so each node's stream is
processed strictly in order.
"""

import asyncio
import time
from collections import OrderedDict, deque

from topicmind.core.queue.base import DeliveryMode, MessageQueue
from topicmind.models.message import QueueMessage
from topicmind.utils.logger import get_logger

logger = get_logger(__name__)


class InMemoryQueue(MessageQueue):
    """asyncio-based queue for development, tests and single-process deployments."""

    def __init__(
        self,
        delivery_mode: DeliveryMode | str = DeliveryMode.AT_LEAST_ONCE,
        dedup_window: float = 300.0,
    ):
        """
        Args:
            delivery_mode: Whether dequeued envelopes wait for ack
            dedup_window: Seconds after its first enqueue during which a
                message id is dropped as a duplicate
        """
        self.delivery_mode = DeliveryMode(delivery_mode)
        self.dedup_window = dedup_window
        self._pending: deque[QueueMessage] = deque()
        self._in_flight: dict[str, QueueMessage] = {}
        # message id -> monotonic time of first enqueue, oldest first
        self._seen: OrderedDict[str, float] = OrderedDict()
        self._condition = asyncio.Condition()

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    @property
    def tracked_ids(self) -> int:
        """Message ids currently inside the dedup window."""
        return len(self._seen)

    async def enqueue(self, message: QueueMessage) -> bool:
        async with self._condition:
            self._expire_seen()
            if message.message_id in self._seen:
                logger.debug(f"Dropping duplicate envelope {message.message_id}")
                return False

            self._seen[message.message_id] = time.monotonic()
            self._pending.append(message)
            self._condition.notify_all()

        logger.bind(message_id=message.message_id, node_id=message.node_id).debug(
            f"Enqueued message {message.message_id} for node {message.node_id}",
        )
        return True

    async def dequeue(self, wait_seconds: float | None = None) -> QueueMessage | None:
        async with self._condition:
            try:
                await asyncio.wait_for(
                    self._condition.wait_for(self._has_deliverable), timeout=wait_seconds
                )
            except asyncio.TimeoutError:
                return None

            message = self._pop_deliverable()

            if self.delivery_mode == DeliveryMode.AT_LEAST_ONCE:
                self._in_flight[message.message_id] = message

        logger.debug(f"Dequeued message {message.message_id}")
        return message

    async def ack(self, message_id: str) -> None:
        async with self._condition:
            self._in_flight.pop(message_id, None)
            self._expire_seen()
            self._condition.notify_all()

    async def release(self, message_id: str) -> bool:
        async with self._condition:
            message = self._in_flight.pop(message_id, None)
            if message is None:
                logger.debug(f"Release of {message_id} ignored; not in flight")
                return False

            # Front of the queue keeps it ahead of later envelopes of its group
            self._pending.appendleft(message)
            self._condition.notify_all()

        logger.info(f"Released message {message_id} for redelivery")
        return True

    def _expire_seen(self) -> None:
        cutoff = time.monotonic() - self.dedup_window
        while self._seen:
            oldest = next(iter(self._seen.values()))
            if oldest > cutoff:
                break
            self._seen.popitem(last=False)

    def _busy_groups(self) -> set[str]:
        return {m.node_id for m in self._in_flight.values()}

    def _has_deliverable(self) -> bool:
        busy = self._busy_groups()
        return any(m.node_id not in busy for m in self._pending)

    def _pop_deliverable(self) -> QueueMessage:
        busy = self._busy_groups()
        for index, message in enumerate(self._pending):
            if message.node_id not in busy:
                del self._pending[index]
                return message
        raise LookupError("No deliverable envelope")
