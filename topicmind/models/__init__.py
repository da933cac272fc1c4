"""
Data models for TopicMind.

Core models:
- Node, NodeMemory, KeyFact, FactSource: topic threads and their memory
- Message, MessageStatus, QueueMessage: contributions and transport envelopes
- AdjudicationResult, Verdict: relevance/staleness judgments
- ConfidenceEvent, ConfidenceEventType: fact confidence updates
- ProcessingOutcome, ProcessingAction: per-envelope pipeline reports
"""

from topicmind.models.adjudication import (
    AdjudicationPayload,
    AdjudicationResult,
    Verdict,
    VerdictOk,
    VerdictParseError,
    VerdictProviderError,
)
from topicmind.models.confidence import ConfidenceEvent, ConfidenceEventType
from topicmind.models.message import (
    Message,
    MessageStatus,
    ProcessingAction,
    ProcessingOutcome,
    QueueMessage,
)
from topicmind.models.node import (
    FactSource,
    KeyFact,
    Node,
    NodeMemory,
    clamp_confidence,
    source_weight,
)

__all__ = [
    # Node models
    "Node",
    "NodeMemory",
    "KeyFact",
    "FactSource",
    "source_weight",
    "clamp_confidence",
    # Message models
    "Message",
    "MessageStatus",
    "QueueMessage",
    "ProcessingAction",
    "ProcessingOutcome",
    # Adjudication models
    "AdjudicationResult",
    "AdjudicationPayload",
    "Verdict",
    "VerdictOk",
    "VerdictParseError",
    "VerdictProviderError",
    # Confidence models
    "ConfidenceEvent",
    "ConfidenceEventType",
]
