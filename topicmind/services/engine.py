"""
TopicMind Engine - Integrates all components.

Brings together:
- LLM & Embedder providers
- Node store & message transport
- Fact Store, Memory Manager and Adjudication Engine
- Pipeline Controller worker
"""

import asyncio

from topicmind.config import Config
from topicmind.core.embeddings.base import Embedder
from topicmind.core.factory import EmbedderFactory, LLMFactory, NodeStoreFactory, QueueFactory
from topicmind.core.llm.base import LLMProvider
from topicmind.core.node_store.base import NodeStore
from topicmind.core.queue.base import MessageQueue
from topicmind.core.tokenizer import Tokenizer
from topicmind.models.message import Message, MessageStatus, QueueMessage
from topicmind.models.node import Node
from topicmind.services.adjudication import AdjudicationEngine
from topicmind.services.fact_store import FactStore
from topicmind.services.memory_manager import MemoryManager
from topicmind.services.pipeline import PipelineController
from topicmind.utils.exceptions import RecordNotFoundError, ValidationError
from topicmind.utils.id_generator import generate_message_id, generate_node_id
from topicmind.utils.logger import get_logger

logger = get_logger(__name__)


class TopicMindEngine:
    """
    Unified engine wiring providers, storage and services.

    Features:
    - Create topic nodes with initialized memory
    - Submit messages for asynchronous adjudication
    - Assemble provider context for a node
    - Run the pipeline worker
    """

    def __init__(
        self,
        llm: LLMProvider,
        embedder: Embedder,
        store: NodeStore,
        queue: MessageQueue,
        config: Config,
    ):
        """
        Initialize TopicMind Engine.

        Args:
            llm: LLM provider for judgments, summaries and replies
            embedder: Embedder for fact deduplication
            store: Node and message store
            queue: Message transport
            config: Configuration object
        """
        self.llm = llm
        self.embedder = embedder
        self.store = store
        self.queue = queue
        self.config = config

        self.fact_store = FactStore(llm=llm, embedder=embedder, config=config.fact_store)
        self.memory_manager = MemoryManager(
            llm=llm,
            fact_store=self.fact_store,
            tokenizer=Tokenizer(config.tokenizer),
            config=config.memory,
        )
        self.adjudicator = AdjudicationEngine(llm=llm, config=config.adjudication)
        self.pipeline = PipelineController(
            store=store,
            queue=queue,
            adjudicator=self.adjudicator,
            memory_manager=self.memory_manager,
            llm=llm,
            config=config.pipeline,
            wait_seconds=config.queue.wait_seconds,
        )

        self._worker_task: asyncio.Task | None = None

    @classmethod
    def from_config(cls, config: Config) -> "TopicMindEngine":
        """Build an engine with providers and backends chosen by configuration."""
        return cls(
            llm=LLMFactory.create(config.llm),
            embedder=EmbedderFactory.create(config.embedder),
            store=NodeStoreFactory.create(config.store),
            queue=QueueFactory.create(config.queue),
            config=config,
        )

    async def initialize(self) -> None:
        """Initialize storage."""
        logger.info("Initializing TopicMind Engine")

        await self.store.initialize()
        logger.info("Node store initialized")

        logger.info("TopicMind Engine ready")

    # NODE OPERATIONS

    async def create_node(
        self, topic: str, description: str | None = None, model: str | None = None
    ) -> Node:
        """
        Create a topic node at version 1.

        Raises:
            ValidationError: If topic is empty
        """
        if not topic or not topic.strip():
            raise ValidationError("Node topic cannot be empty")

        node = Node(
            id=generate_node_id(),
            topic=topic.strip(),
            description=description,
            model=model or self.config.llm.model,
            memory=self.memory_manager.initialize_memory(topic.strip(), description),
        )
        node = await self.store.create_node(node)

        logger.bind(node_id=node.id, topic=node.topic).info(f"Created node {node.id}")
        return node

    async def get_node(self, node_id: str) -> Node:
        """
        Raises:
            RecordNotFoundError: If node doesn't exist
        """
        node = await self.store.get_node(node_id)
        if node is None:
            raise RecordNotFoundError(f"Node not found: {node_id}", context={"node_id": node_id})
        return node

    async def get_context(self, node_id: str, recent_messages: list[Message] | None = None) -> str:
        node = await self.get_node(node_id)
        return self.memory_manager.get_context(node, recent_messages)

    # MESSAGE OPERATIONS

    async def submit_message(
        self,
        node_id: str,
        content: str,
        user_id: str,
        target_node_version: int | None = None,
    ) -> Message:
        """
        Record a PENDING message and hand it to the transport.

        Args:
            node_id: Target node
            content: Message text
            user_id: Sender
            target_node_version: Node version the sender saw (defaults to current)

        Returns:
            The stored message

        Raises:
            ValidationError: If content is empty
            RecordNotFoundError: If node doesn't exist
        """
        if not content or not content.strip():
            raise ValidationError("Message content cannot be empty", {"node_id": node_id})

        node = await self.get_node(node_id)

        message = Message(
            id=generate_message_id(),
            content=content,
            user_id=user_id,
            node_id=node.id,
            target_node_version=target_node_version or node.version,
            status=MessageStatus.PENDING,
        )
        message = await self.store.create_message(message)
        await self.queue.enqueue(QueueMessage.from_message(message))

        logger.bind(message_id=message.id, target_node_version=message.target_node_version).info(
            f"Queued message {message.id} for node {node.id}",
        )
        return message

    async def get_message(self, message_id: str) -> Message:
        """
        Raises:
            RecordNotFoundError: If message doesn't exist
        """
        message = await self.store.get_message(message_id)
        if message is None:
            raise RecordNotFoundError(
                f"Message not found: {message_id}", context={"message_id": message_id}
            )
        return message

    # WORKER

    async def run_worker(self) -> None:
        """Run the pipeline until stop_worker() is called."""
        await self.pipeline.run()

    def start_worker(self) -> asyncio.Task:
        """Start the pipeline as a background task."""
        if self._worker_task is None or self._worker_task.done():
            self._worker_task = asyncio.create_task(self.run_worker())
            logger.info("Pipeline worker started")
        return self._worker_task

    def stop_worker(self) -> None:
        self.pipeline.stop()

    # LIFECYCLE MANAGEMENT

    async def close(self) -> None:
        """Stop the worker and close all connections."""
        logger.info("Shutting down TopicMind Engine")

        self.pipeline.stop()
        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"Error during worker shutdown: {e}")

        await self.queue.close()
        await self.store.close()

        await self.llm.close()
        await self.embedder.close()

        logger.info("TopicMind Engine shutdown complete")
