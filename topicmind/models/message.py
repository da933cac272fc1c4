"""
Message, transport envelope and per-envelope processing outcome models.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class MessageStatus(str, Enum):
    """Message lifecycle status."""

    PENDING = "PENDING"
    ADJUDICATING = "ADJUDICATING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    STALE = "STALE"

    @property
    def is_terminal(self) -> bool:
        return self in (MessageStatus.ACCEPTED, MessageStatus.REJECTED, MessageStatus.STALE)


class Message(BaseModel):
    """A single contribution awaiting or having received a verdict."""

    id: str = Field(..., description="Unique message ID (msg_xxx)")
    content: str
    user_id: str
    node_id: str
    target_node_version: int = Field(..., description="Node version the sender saw")
    status: MessageStatus = Field(default=MessageStatus.PENDING)
    created_at: datetime = Field(default_factory=datetime.now)


class QueueMessage(BaseModel):
    """
    Transport envelope.

    Serialized with camelCase keys on the wire. Carries enough to re-fetch
    the authoritative Message and Node; it is not itself authoritative.
    """

    model_config = {"populate_by_name": True, "extra": "ignore"}

    message_id: str = Field(..., alias="messageId")
    node_id: str = Field(..., alias="nodeId")
    target_node_version: int = Field(..., alias="targetNodeVersion")
    content: str
    user_id: str = Field(..., alias="userId")
    timestamp: float | None = None

    @classmethod
    def from_message(cls, message: Message) -> "QueueMessage":
        return cls(
            message_id=message.id,
            node_id=message.node_id,
            target_node_version=message.target_node_version,
            content=message.content,
            user_id=message.user_id,
            timestamp=message.created_at.timestamp() * 1000,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ProcessingAction(str, Enum):
    """What the pipeline did with one envelope."""

    PROCESSED = "processed"
    DUPLICATE = "duplicate"
    DISCARDED = "discarded"
    FAILED = "failed"
    REQUEUED = "requeued"


class ProcessingOutcome(BaseModel):
    """Report for one dequeued envelope."""

    message_id: str
    action: ProcessingAction
    status: MessageStatus | None = None
    node_version: int | None = None
    error: str | None = None
