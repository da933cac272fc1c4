"""
In-process node store.

Keeps records in dictionaries; every operation copies models in and out so
callers never hold a reference to stored state.
"""

from datetime import datetime

from topicmind.core.node_store.base import NodeStore
from topicmind.models.message import Message, MessageStatus
from topicmind.models.node import Node, NodeMemory
from topicmind.utils.exceptions import (
    RecordNotFoundError,
    StoreError,
    ValidationError,
    VersionConflictError,
)
from topicmind.utils.logger import get_logger

logger = get_logger(__name__)


class InMemoryNodeStore(NodeStore):
    """Dictionary-backed store for development and tests."""

    def __init__(self):
        self._nodes: dict[str, Node] = {}
        self._messages: dict[str, Message] = {}

    async def initialize(self) -> None:
        logger.debug("In-memory node store ready")

    async def create_node(self, node: Node) -> Node:
        if node.id in self._nodes:
            raise StoreError(f"Node already exists: {node.id}", context={"node_id": node.id})
        self._nodes[node.id] = node.model_copy(deep=True)
        return node.model_copy(deep=True)

    async def get_node(self, node_id: str) -> Node | None:
        node = self._nodes.get(node_id)
        return node.model_copy(deep=True) if node else None

    async def update_node(self, node_id: str, memory: NodeMemory, expected_version: int) -> Node:
        stored = self._nodes.get(node_id)
        if stored is None:
            raise RecordNotFoundError(f"Node not found: {node_id}", context={"node_id": node_id})

        if stored.version != expected_version:
            raise VersionConflictError(
                f"Node {node_id} is at version {stored.version}, expected {expected_version}",
                expected_version=expected_version,
                actual_version=stored.version,
                context={"node_id": node_id},
            )

        updated = stored.model_copy(
            update={
                "memory": memory.model_copy(deep=True),
                "version": stored.version + 1,
                "updated_at": datetime.now(),
            }
        )
        self._nodes[node_id] = updated
        return updated.model_copy(deep=True)

    async def list_nodes(self, limit: int = 100, offset: int = 0) -> list[Node]:
        nodes = sorted(self._nodes.values(), key=lambda n: n.updated_at, reverse=True)
        return [n.model_copy(deep=True) for n in nodes[offset : offset + limit]]

    async def create_message(self, message: Message) -> Message:
        if message.id in self._messages:
            raise StoreError(
                f"Message already exists: {message.id}", context={"message_id": message.id}
            )
        self._messages[message.id] = message.model_copy()
        return message.model_copy()

    async def get_message(self, message_id: str) -> Message | None:
        message = self._messages.get(message_id)
        return message.model_copy() if message else None

    async def update_message_status(self, message_id: str, status: MessageStatus) -> Message:
        stored = self._messages.get(message_id)
        if stored is None:
            raise RecordNotFoundError(
                f"Message not found: {message_id}", context={"message_id": message_id}
            )
        if stored.status.is_terminal:
            raise ValidationError(
                f"Message {message_id} already {stored.status.value}",
                context={"message_id": message_id, "requested": status.value},
            )

        updated = stored.model_copy(update={"status": status})
        self._messages[message_id] = updated
        return updated.model_copy()

    async def close(self) -> None:
        pass
