"""
Pipeline Controller - Consumer loop over the message transport.

Per envelope:
1. Load the authoritative Message and Node
2. Adjudicate
3. Map the verdict to a terminal status (stale wins over relevant)
4. Persist the status
5. On ACCEPTED only, fold the message into node memory (version + 1)

Failures are isolated per envelope; the loop itself never stops on one.
"""

import asyncio

from topicmind.config import PipelineConfig
from topicmind.core.llm.base import LLMProvider
from topicmind.core.node_store.base import NodeStore
from topicmind.core.queue.base import MessageQueue
from topicmind.models.adjudication import AdjudicationResult
from topicmind.models.message import (
    Message,
    MessageStatus,
    ProcessingAction,
    ProcessingOutcome,
    QueueMessage,
)
from topicmind.models.node import Node
from topicmind.services.adjudication import AdjudicationEngine
from topicmind.services.memory_manager import MemoryManager
from topicmind.utils.exceptions import ProviderError, VersionConflictError
from topicmind.utils.logger import get_logger

logger = get_logger(__name__)


def resolve_status(verdict: AdjudicationResult) -> MessageStatus:
    """Staleness is checked first: a stale-but-relevant message adds nothing new."""
    if verdict.is_stale:
        return MessageStatus.STALE
    if verdict.is_relevant:
        return MessageStatus.ACCEPTED
    return MessageStatus.REJECTED


class PipelineController:
    """
    Sequential consumer for one process.

    Node state lives only in the injected NodeStore; per-node ordering across
    processes is the transport's responsibility.
    """

    def __init__(
        self,
        store: NodeStore,
        queue: MessageQueue,
        adjudicator: AdjudicationEngine,
        memory_manager: MemoryManager,
        llm: LLMProvider | None = None,
        config: PipelineConfig | None = None,
        wait_seconds: float | None = 10.0,
    ):
        """
        Initialize pipeline controller.

        Args:
            store: Persistent node/message store
            queue: Transport to consume
            adjudicator: Adjudication engine
            memory_manager: Memory manager used to fold accepted messages
            llm: Optional provider for assistant replies
            config: Loop and reply settings
            wait_seconds: Long-poll duration per receive
        """
        self.store = store
        self.queue = queue
        self.adjudicator = adjudicator
        self.memory_manager = memory_manager
        self.llm = llm
        self.config = config or PipelineConfig()
        self.wait_seconds = wait_seconds

        self._running = False
        # Accepted messages whose fold lost a version race; retried on redelivery
        self._unfolded: set[str] = set()

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """Consume envelopes until stop() is called or the task is cancelled."""
        self._running = True
        logger.info("Starting message processor")

        while self._running:
            try:
                await self.process_next(self.wait_seconds)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Transport-level failure; envelope-level failures never reach here
                logger.exception(f"Receive failed: {e}")
                await asyncio.sleep(self.config.poll_interval)

        logger.info("Message processor stopped")

    def stop(self) -> None:
        self._running = False

    async def process_next(self, wait_seconds: float | None = None) -> ProcessingOutcome | None:
        """
        Receive and process one envelope.

        Returns:
            The outcome, or None when nothing arrived within wait_seconds
        """
        envelope = await self.queue.dequeue(wait_seconds)
        if envelope is None:
            return None
        return await self.process_envelope(envelope)

    async def process_envelope(self, envelope: QueueMessage) -> ProcessingOutcome:
        """Run one envelope through the state machine; never raises."""
        message_id = envelope.message_id
        logger.bind(node_id=envelope.node_id).info(f"Processing message {message_id}")

        try:
            message = await self.store.get_message(message_id)
            if message is None:
                logger.warning(f"Message {message_id} not found; discarding envelope")
                await self.queue.ack(message_id)
                return ProcessingOutcome(message_id=message_id, action=ProcessingAction.DISCARDED)

            node = await self.store.get_node(message.node_id)
            if node is None:
                logger.warning(
                    f"Node {message.node_id} for message {message_id} not found; discarding"
                )
                await self.queue.ack(message_id)
                return ProcessingOutcome(
                    message_id=message_id,
                    action=ProcessingAction.DISCARDED,
                    status=message.status,
                )

            if message.status.is_terminal:
                return await self._handle_redelivery(message, node)

            verdict = await self.adjudicator.adjudicate(message, node)
            status = resolve_status(verdict)
            logger.bind(message_id=message_id, reason=verdict.reason).info(
                f"Verdict for {message_id}: {status.value} "
                f"(relevant={verdict.is_relevant}, stale={verdict.is_stale}, score={verdict.score:.2f})",
            )

            await self.store.update_message_status(message_id, status)

            node_version = node.version
            if status == MessageStatus.ACCEPTED:
                updated = await self._fold(node, message)
                node_version = updated.version

            await self.queue.ack(message_id)
            return ProcessingOutcome(
                message_id=message_id,
                action=ProcessingAction.PROCESSED,
                status=status,
                node_version=node_version,
            )

        except VersionConflictError as e:
            logger.bind(
                message_id=message_id,
                expected_version=e.expected_version,
                actual_version=e.actual_version,
            ).warning(
                f"Version conflict folding message {message_id}: {e}",
            )
            if not await self.queue.release(message_id):
                # No redelivery coming, so the owed fold cannot be retried
                self._unfolded.discard(message_id)
                logger.error(
                    f"Accepted message {message_id} left unfolded; transport will not redeliver"
                )
                return ProcessingOutcome(
                    message_id=message_id,
                    action=ProcessingAction.FAILED,
                    status=MessageStatus.ACCEPTED,
                    error=str(e),
                )

            self._unfolded.add(message_id)
            return ProcessingOutcome(
                message_id=message_id,
                action=ProcessingAction.REQUEUED,
                status=MessageStatus.ACCEPTED,
                error=str(e),
            )
        except Exception as e:
            logger.exception(f"Error processing message {message_id}: {e}")
            self._unfolded.discard(message_id)
            await self._safe_ack(message_id)
            return ProcessingOutcome(
                message_id=message_id, action=ProcessingAction.FAILED, error=str(e)
            )

    async def _handle_redelivery(self, message: Message, node: Node) -> ProcessingOutcome:
        """A terminal message arrived again: skip it, unless its fold is owed."""
        if message.id in self._unfolded and message.status == MessageStatus.ACCEPTED:
            logger.info(f"Retrying fold of accepted message {message.id}")
            updated = await self._fold(node, message)
            self._unfolded.discard(message.id)
            await self.queue.ack(message.id)
            return ProcessingOutcome(
                message_id=message.id,
                action=ProcessingAction.PROCESSED,
                status=message.status,
                node_version=updated.version,
            )

        logger.info(f"Message {message.id} already {message.status.value}; skipping redelivery")
        await self.queue.ack(message.id)
        return ProcessingOutcome(
            message_id=message.id,
            action=ProcessingAction.DUPLICATE,
            status=message.status,
            node_version=node.version,
        )

    async def _fold(self, node: Node, message: Message) -> Node:
        """
        Fold an accepted message into node memory and persist version + 1.

        Raises:
            VersionConflictError: If the node changed since it was read
        """
        reply = await self._generate_reply(node, message)
        memory = await self.memory_manager.add_message(node, message, reply)
        updated = await self.store.update_node(node.id, memory, expected_version=node.version)

        logger.bind(node_id=node.id, message_count=memory.message_count).info(
            f"Node {node.id} advanced to v{updated.version}",
        )
        return updated

    async def _generate_reply(self, node: Node, message: Message) -> str | None:
        """Assistant reply for the turn; None when disabled or on failure."""
        if self.llm is None or not self.config.generate_replies:
            return None

        system_prompt = (
            "You are an AI assistant having a focused conversation about the following topic.\n\n"
            f"{self.memory_manager.get_context(node)}\n\n"
            "Stay focused on the core topic while being helpful. "
            "Build upon previous context naturally."
        )

        try:
            response = await asyncio.wait_for(
                self.llm.complete(message.content, system_prompt=system_prompt, model=node.model),
                timeout=self.config.reply_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Reply generation timed out for {message.id}; folding without reply")
            return None
        except ProviderError as e:
            logger.warning(f"Reply generation failed for {message.id}; folding without reply: {e}")
            return None

        return response.content.strip() or None

    async def _safe_ack(self, message_id: str) -> None:
        try:
            await self.queue.ack(message_id)
        except Exception as e:
            logger.error(f"Failed to ack message {message_id}: {e}")
