"""
Tests for data models.

Tests cover:
1. Key fact confidence clamping and provenance weights
2. Node memory helpers
3. Message status lifecycle
4. Transport envelope wire format
5. Tagged adjudication verdicts
"""

import json
from datetime import datetime, timedelta

import pytest
from pydantic import TypeAdapter

from topicmind.models import (
    AdjudicationResult,
    FactSource,
    KeyFact,
    Message,
    MessageStatus,
    Node,
    NodeMemory,
    QueueMessage,
    Verdict,
    VerdictOk,
    VerdictParseError,
    VerdictProviderError,
    source_weight,
)


@pytest.mark.unit
class TestKeyFact:
    """Test KeyFact model."""

    def test_confidence_clamped_on_construction(self):
        high = KeyFact(id="fact_1", content="x", confidence=1.7)
        low = KeyFact(id="fact_2", content="y", confidence=-0.3)

        assert high.confidence == 1.0
        assert low.confidence == 0.0

    def test_confidence_clamped_on_assignment(self):
        fact = KeyFact(id="fact_1", content="x", confidence=0.5)
        fact.confidence = 2.0
        assert fact.confidence == 1.0

    def test_defaults(self):
        fact = KeyFact(id="fact_1", content="x", confidence=0.5)

        assert fact.source == FactSource.LLM_INFERRED
        assert fact.last_confirmed_at is None
        assert fact.supporting_evidence == []
        assert fact.embedding is None

    def test_decay_anchor_prefers_last_confirmation(self):
        extracted = datetime(2024, 1, 1)
        confirmed = extracted + timedelta(days=3)

        unconfirmed = KeyFact(id="f1", content="x", confidence=0.5, extracted_at=extracted)
        reconfirmed = unconfirmed.model_copy(update={"last_confirmed_at": confirmed})

        assert unconfirmed.decay_anchor() == extracted
        assert reconfirmed.decay_anchor() == confirmed


@pytest.mark.unit
class TestSourceWeight:
    """Test initial confidence by provenance."""

    @pytest.mark.parametrize(
        "source,weight",
        [
            (FactSource.USER_STATED, 0.9),
            (FactSource.USER_CONFIRMED, 1.0),
            (FactSource.LLM_INFERRED, 0.6),
            (FactSource.IMPLICIT, 0.4),
        ],
    )
    def test_weights(self, source, weight):
        assert source_weight(source) == weight

    def test_unknown_source_rejected(self):
        with pytest.raises(ValueError):
            source_weight("GUESSED")


@pytest.mark.unit
class TestNodeMemory:
    """Test NodeMemory helpers."""

    def test_messages_since_summary(self):
        memory = NodeMemory(core_context="c", message_count=27, last_summary_at=20)
        assert memory.messages_since_summary() == 7

    def test_top_facts_sorted_and_filtered(self):
        memory = NodeMemory(
            core_context="c",
            key_facts=[
                KeyFact(id="a", content="a", confidence=0.25),
                KeyFact(id="b", content="b", confidence=0.9),
                KeyFact(id="c", content="c", confidence=0.5),
            ],
        )

        top = memory.top_facts(10, min_confidence=0.3)

        assert [f.id for f in top] == ["b", "c"]

    def test_top_facts_limit(self):
        memory = NodeMemory(
            core_context="c",
            key_facts=[KeyFact(id=str(i), content=str(i), confidence=i / 20) for i in range(20)],
        )
        assert len(memory.top_facts(5)) == 5

    def test_node_version_starts_at_one(self):
        node = Node(id="node_1", topic="t", model="m", memory=NodeMemory(core_context="c"))
        assert node.version == 1

    def test_node_version_must_be_positive(self):
        with pytest.raises(Exception):
            Node(id="node_1", topic="t", model="m", memory=NodeMemory(core_context="c"), version=0)


@pytest.mark.unit
class TestMessageStatus:
    """Test message lifecycle states."""

    def test_terminal_states(self):
        assert MessageStatus.ACCEPTED.is_terminal
        assert MessageStatus.REJECTED.is_terminal
        assert MessageStatus.STALE.is_terminal

    def test_non_terminal_states(self):
        assert not MessageStatus.PENDING.is_terminal
        assert not MessageStatus.ADJUDICATING.is_terminal

    def test_message_defaults_to_pending(self):
        message = Message(id="msg_1", content="hi", user_id="u", node_id="n", target_node_version=1)
        assert message.status == MessageStatus.PENDING


@pytest.mark.unit
class TestQueueMessage:
    """Test the transport envelope."""

    def test_wire_format_uses_camel_case(self):
        envelope = QueueMessage(
            message_id="msg_1",
            node_id="node_1",
            target_node_version=3,
            content="hello",
            user_id="user_1",
        )

        data = json.loads(envelope.to_json())

        assert data == {
            "messageId": "msg_1",
            "nodeId": "node_1",
            "targetNodeVersion": 3,
            "content": "hello",
            "userId": "user_1",
        }

    def test_parses_wire_payload(self):
        payload = (
            '{"messageId": "msg_1", "nodeId": "node_1", "targetNodeVersion": 2, '
            '"content": "hello", "userId": "user_1", "timestamp": 1700000000000}'
        )

        envelope = QueueMessage.model_validate_json(payload)

        assert envelope.message_id == "msg_1"
        assert envelope.node_id == "node_1"
        assert envelope.target_node_version == 2
        assert envelope.timestamp == 1700000000000

    def test_from_message(self):
        message = Message(
            id="msg_1", content="hello", user_id="user_1", node_id="node_1", target_node_version=4
        )

        envelope = QueueMessage.from_message(message)

        assert envelope.message_id == message.id
        assert envelope.node_id == message.node_id
        assert envelope.target_node_version == 4
        assert envelope.timestamp == pytest.approx(message.created_at.timestamp() * 1000)


@pytest.mark.unit
class TestVerdict:
    """Test tagged adjudication verdicts."""

    def test_fallback_is_conservative(self):
        result = AdjudicationResult.fallback("msg_1", "boom")

        assert result.is_relevant is False
        assert result.is_stale is True
        assert result.score == 0.0
        assert result.reason == "boom"

    def test_score_clamped(self):
        result = AdjudicationResult(message_id="m", is_relevant=True, is_stale=False, score=1.4)
        assert result.score == 1.0

    def test_discriminated_union(self):
        adapter = TypeAdapter(Verdict)

        ok = adapter.validate_python(
            {
                "kind": "ok",
                "result": {"message_id": "m", "is_relevant": True, "is_stale": False, "score": 0.5},
            }
        )
        parse = adapter.validate_python({"kind": "parse_error", "raw": "x", "error": "bad"})
        provider = adapter.validate_python({"kind": "provider_error", "error": "down"})

        assert isinstance(ok, VerdictOk)
        assert isinstance(parse, VerdictParseError)
        assert isinstance(provider, VerdictProviderError)
