"""
Base interface for node and message persistence.

Treated as a key-value store keyed by node/message id with optimistic
versioning on nodes. update_node is the only path that changes a node's
version.
"""

from abc import ABC, abstractmethod

from topicmind.models.message import Message, MessageStatus
from topicmind.models.node import Node, NodeMemory


class NodeStore(ABC):
    """Abstract base class for node/message storage implementations."""

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the store (create tables/schema).

        Raises:
            StoreError: If initialization fails
        """
        pass

    # ═══════════════════════════════════════════════════════════
    # NODE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def create_node(self, node: Node) -> Node:
        """
        Persist a new node.

        Raises:
            StoreError: If a node with the same id exists
        """
        pass

    @abstractmethod
    async def get_node(self, node_id: str) -> Node | None:
        """
        Retrieve a node by ID.

        Returns:
            Node or None if not found
        """
        pass

    @abstractmethod
    async def update_node(self, node_id: str, memory: NodeMemory, expected_version: int) -> Node:
        """
        Replace a node's memory and increment its version by one.

        Single-record atomic compare-and-set on version.

        Args:
            node_id: Node identifier
            memory: New memory
            expected_version: Version the caller read before computing memory

        Returns:
            Updated node (version == expected_version + 1)

        Raises:
            RecordNotFoundError: If the node does not exist
            VersionConflictError: If the stored version differs from expected_version
        """
        pass

    @abstractmethod
    async def list_nodes(self, limit: int = 100, offset: int = 0) -> list[Node]:
        """List nodes, most recently updated first."""
        pass

    # ═══════════════════════════════════════════════════════════
    # MESSAGE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def create_message(self, message: Message) -> Message:
        """
        Persist a new message (normally PENDING).

        Raises:
            StoreError: If a message with the same id exists
        """
        pass

    @abstractmethod
    async def get_message(self, message_id: str) -> Message | None:
        """
        Retrieve a message by ID.

        Returns:
            Message or None if not found
        """
        pass

    @abstractmethod
    async def update_message_status(self, message_id: str, status: MessageStatus) -> Message:
        """
        Set a message's status.

        Raises:
            RecordNotFoundError: If the message does not exist
            ValidationError: If the message already holds a terminal status
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release store resources."""
        pass
