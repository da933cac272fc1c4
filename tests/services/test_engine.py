"""
Tests for TopicMindEngine.

End-to-end flow through the facade with fake providers and in-memory
backends.
"""

import asyncio

import pytest

from topicmind.config import Config, PipelineConfig, QueueConfig
from topicmind.core.node_store import InMemoryNodeStore
from topicmind.core.queue import InMemoryQueue
from topicmind.models import FactSource, MessageStatus
from topicmind.services.engine import TopicMindEngine
from topicmind.utils.exceptions import RecordNotFoundError, ValidationError

from conftest import FakeEmbedder, FakeLLM, verdict_json


@pytest.fixture
async def engine():
    llm = FakeLLM(handler=lambda prompt, system: verdict_json(True, False))
    config = Config(
        pipeline=PipelineConfig(poll_interval=0.01, generate_replies=False),
        queue=QueueConfig(wait_seconds=0.05),
    )
    engine = TopicMindEngine(
        llm=llm,
        embedder=FakeEmbedder(),
        store=InMemoryNodeStore(),
        queue=InMemoryQueue(),
        config=config,
    )
    await engine.initialize()
    yield engine
    await engine.close()


@pytest.mark.unit
@pytest.mark.asyncio
class TestTopicMindEngine:
    """Test the engine facade."""

    async def test_create_node(self, engine):
        node = await engine.create_node("Rollout Plan", "Ship v2 by Friday")

        assert node.id.startswith("node_")
        assert node.version == 1
        assert node.model == engine.config.llm.model
        assert node.memory.key_facts[0].source == FactSource.USER_STATED
        assert node.memory.key_facts[0].confidence == 0.9

    async def test_create_node_empty_topic(self, engine):
        with pytest.raises(ValidationError):
            await engine.create_node("  ")

    async def test_submit_message(self, engine):
        node = await engine.create_node("Rollout Plan", "Ship v2 by Friday")

        message = await engine.submit_message(node.id, "Freeze on Thursday?", "user_1")

        assert message.status == MessageStatus.PENDING
        assert message.target_node_version == 1
        assert len(engine.queue) == 1

    async def test_submit_to_missing_node(self, engine):
        with pytest.raises(RecordNotFoundError):
            await engine.submit_message("node_missing", "hello", "user_1")

    async def test_submit_empty_content(self, engine):
        node = await engine.create_node("Rollout Plan")

        with pytest.raises(ValidationError):
            await engine.submit_message(node.id, "", "user_1")

    async def test_worker_folds_messages(self, engine):
        node = await engine.create_node("Rollout Plan", "Ship v2 by Friday")
        message = await engine.submit_message(node.id, "Freeze on Thursday?", "user_1")

        engine.start_worker()
        for _ in range(100):
            if (await engine.get_message(message.id)).status.is_terminal:
                break
            await asyncio.sleep(0.01)
        engine.stop_worker()

        assert (await engine.get_message(message.id)).status == MessageStatus.ACCEPTED
        assert (await engine.get_node(node.id)).version == 2

        context = await engine.get_context(node.id)
        assert context.startswith("Topic: Rollout Plan\nInitial Context: Ship v2 by Friday")
        assert "User: Freeze on Thursday?" in context

    async def test_close_releases_providers(self, engine):
        await engine.close()

        assert engine.llm.closed
        assert engine.embedder.closed

    async def test_from_config(self):
        engine = TopicMindEngine.from_config(Config())

        assert isinstance(engine.store, InMemoryNodeStore)
        assert isinstance(engine.queue, InMemoryQueue)
