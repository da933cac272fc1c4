"""
Node and three-tier memory models.

A Node is a topic-scoped conversation thread. Its NodeMemory separates
durable topic framing (core context) from recent detail (working memory)
and confidence-scored long-term claims (key facts).
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class FactSource(str, Enum):
    """Provenance of a key fact."""

    USER_STATED = "USER_STATED"
    USER_CONFIRMED = "USER_CONFIRMED"
    LLM_INFERRED = "LLM_INFERRED"
    IMPLICIT = "IMPLICIT"


def source_weight(source: FactSource) -> float:
    """
    Initial confidence for a fact of the given provenance.

    Raises:
        ValueError: If the source is not a known FactSource variant
    """
    if source is FactSource.USER_STATED:
        return 0.9
    elif source is FactSource.USER_CONFIRMED:
        return 1.0
    elif source is FactSource.LLM_INFERRED:
        return 0.6
    elif source is FactSource.IMPLICIT:
        return 0.4
    raise ValueError(f"Unknown fact source: {source!r}")


def clamp_confidence(value: float) -> float:
    """Clamp a confidence value into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


class KeyFact(BaseModel):
    """
    A single factual claim with provenance and trust level.

    Confidence is clamped to [0, 1] on construction and on every assignment.
    """

    model_config = {"validate_assignment": True}

    id: str = Field(..., description="Unique fact ID (fact_xxx)")
    content: str = Field(..., description="Atomic factual claim")
    confidence: float = Field(..., description="Trust level in [0, 1]")
    source: FactSource = Field(default=FactSource.LLM_INFERRED, description="Provenance")
    extracted_at: datetime = Field(default_factory=datetime.now)
    last_confirmed_at: datetime | None = Field(default=None)
    supporting_evidence: list[str] = Field(default_factory=list)
    embedding: list[float] | None = Field(default=None, description="Lazily populated vector")

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_confidence(value)

    def decay_anchor(self) -> datetime:
        """Timestamp temporal decay is measured from."""
        return self.last_confirmed_at or self.extracted_at


class NodeMemory(BaseModel):
    """Three-tier memory owned by exactly one Node."""

    core_context: str = Field(..., description="Founding statement, never compressed")
    working_memory: str = Field(default="", description="Recent turns buffer")
    key_facts: list[KeyFact] = Field(default_factory=list)
    message_count: int = Field(default=0, ge=0)
    last_summary_at: int = Field(default=0, ge=0)

    def messages_since_summary(self) -> int:
        return self.message_count - self.last_summary_at

    def top_facts(self, limit: int, min_confidence: float = 0.0) -> list[KeyFact]:
        """Highest-confidence facts at or above min_confidence."""
        eligible = [f for f in self.key_facts if f.confidence >= min_confidence]
        eligible.sort(key=lambda f: f.confidence, reverse=True)
        return eligible[:limit]


class Node(BaseModel):
    """
    Topic-scoped, versioned conversation thread.

    version starts at 1 and increases by exactly one per successful memory
    update; NodeStore.update_node is the only path that changes it.
    """

    id: str = Field(..., description="Unique node ID (node_xxx)")
    topic: str
    description: str | None = None
    model: str = Field(..., description="Provider model used for this node")
    memory: NodeMemory
    version: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
