"""
SQLite node store implementation using aiosqlite.

Node memory is stored as a JSON document; version updates are a single
conditional UPDATE so the compare-and-set is atomic per record.
"""

from datetime import datetime
from pathlib import Path

import aiosqlite

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

_TERMINAL = tuple(s.value for s in MessageStatus if s.is_terminal)


class SQLiteNodeStore(NodeStore):
    """
    SQLite-based store for nodes and messages.

    Features:
    - Local durable storage
    - JSON memory documents
    - Optimistic versioning on nodes
    """

    def __init__(self, db_path: str = "data/topicmind.db"):
        """
        Initialize SQLite node store.

        Args:
            db_path: Path to SQLite database file (":memory:" for a transient database)
        """
        self.db_path = db_path
        self.connection: aiosqlite.Connection | None = None

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        """Establish connection to SQLite."""
        if self.connection is None:
            self.connection = await aiosqlite.connect(self.db_path)
            self.connection.row_factory = aiosqlite.Row
            await self.connection.execute("PRAGMA foreign_keys = ON")
            await self.connection.execute("PRAGMA journal_mode = WAL")
            await self.connection.commit()

    async def initialize(self) -> None:
        """Initialize database schema."""
        await self.connect()

        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS nodes (
                id TEXT PRIMARY KEY,
                topic TEXT NOT NULL,
                description TEXT,
                model TEXT NOT NULL,
                memory TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """
        )

        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS messages (
                id TEXT PRIMARY KEY,
                node_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                content TEXT NOT NULL,
                target_node_version INTEGER NOT NULL,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (node_id) REFERENCES nodes(id) ON DELETE CASCADE
            )
        """
        )

        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_messages_node ON messages(node_id)"
        )
        await self.connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_nodes_updated ON nodes(updated_at)"
        )

        await self.connection.commit()
        logger.info(f"SQLite node store initialized at {self.db_path}")

    # ═══════════════════════════════════════════════════════════
    # NODE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def create_node(self, node: Node) -> Node:
        await self.connect()

        try:
            await self.connection.execute(
                """
                INSERT INTO nodes (
                    id, topic, description, model, memory, version, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    node.id,
                    node.topic,
                    node.description,
                    node.model,
                    node.memory.model_dump_json(),
                    node.version,
                    node.created_at.isoformat(),
                    node.updated_at.isoformat(),
                ),
            )
            await self.connection.commit()
        except aiosqlite.IntegrityError as e:
            raise StoreError(f"Node already exists: {node.id}", context={"node_id": node.id}) from e

        return node

    async def get_node(self, node_id: str) -> Node | None:
        await self.connect()

        cursor = await self.connection.execute("SELECT * FROM nodes WHERE id = ?", (node_id,))
        row = await cursor.fetchone()

        if not row:
            return None

        return self._row_to_node(row)

    async def update_node(self, node_id: str, memory: NodeMemory, expected_version: int) -> Node:
        await self.connect()

        cursor = await self.connection.execute(
            """
            UPDATE nodes
            SET memory = ?, version = version + 1, updated_at = ?
            WHERE id = ? AND version = ?
            """,
            (memory.model_dump_json(), datetime.now().isoformat(), node_id, expected_version),
        )
        await self.connection.commit()

        if cursor.rowcount == 0:
            current = await self.get_node(node_id)
            if current is None:
                raise RecordNotFoundError(
                    f"Node not found: {node_id}", context={"node_id": node_id}
                )
            raise VersionConflictError(
                f"Node {node_id} is at version {current.version}, expected {expected_version}",
                expected_version=expected_version,
                actual_version=current.version,
                context={"node_id": node_id},
            )

        return await self.get_node(node_id)

    async def list_nodes(self, limit: int = 100, offset: int = 0) -> list[Node]:
        await self.connect()

        cursor = await self.connection.execute(
            "SELECT * FROM nodes ORDER BY updated_at DESC LIMIT ? OFFSET ?", (limit, offset)
        )
        rows = await cursor.fetchall()

        return [self._row_to_node(row) for row in rows]

    # ═══════════════════════════════════════════════════════════
    # MESSAGE OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def create_message(self, message: Message) -> Message:
        await self.connect()

        try:
            await self.connection.execute(
                """
                INSERT INTO messages (
                    id, node_id, user_id, content, target_node_version, status, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message.id,
                    message.node_id,
                    message.user_id,
                    message.content,
                    message.target_node_version,
                    message.status.value,
                    message.created_at.isoformat(),
                ),
            )
            await self.connection.commit()
        except aiosqlite.IntegrityError as e:
            raise StoreError(
                f"Cannot create message {message.id}: {e}",
                context={"message_id": message.id, "node_id": message.node_id},
            ) from e

        return message

    async def get_message(self, message_id: str) -> Message | None:
        await self.connect()

        cursor = await self.connection.execute(
            "SELECT * FROM messages WHERE id = ?", (message_id,)
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return self._row_to_message(row)

    async def update_message_status(self, message_id: str, status: MessageStatus) -> Message:
        await self.connect()

        placeholders = ", ".join("?" for _ in _TERMINAL)
        cursor = await self.connection.execute(
            f"UPDATE messages SET status = ? WHERE id = ? AND status NOT IN ({placeholders})",
            (status.value, message_id, *_TERMINAL),
        )
        await self.connection.commit()

        if cursor.rowcount == 0:
            current = await self.get_message(message_id)
            if current is None:
                raise RecordNotFoundError(
                    f"Message not found: {message_id}", context={"message_id": message_id}
                )
            raise ValidationError(
                f"Message {message_id} already {current.status.value}",
                context={"message_id": message_id, "requested": status.value},
            )

        return await self.get_message(message_id)

    async def close(self) -> None:
        """Close the database connection."""
        if self.connection:
            await self.connection.close()
            self.connection = None

    # ═══════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════

    def _row_to_node(self, row: aiosqlite.Row) -> Node:
        return Node(
            id=row["id"],
            topic=row["topic"],
            description=row["description"],
            model=row["model"],
            memory=NodeMemory.model_validate_json(row["memory"]),
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_message(self, row: aiosqlite.Row) -> Message:
        return Message(
            id=row["id"],
            content=row["content"],
            user_id=row["user_id"],
            node_id=row["node_id"],
            target_node_version=row["target_node_version"],
            status=MessageStatus(row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
