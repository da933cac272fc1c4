"""
Tests for PipelineController.

Tests cover:
1. Verdict to status mapping (stale wins over relevant)
2. Version advances only on ACCEPTED
3. Missing records and redelivery
4. Per-envelope failure isolation
5. Version conflicts and requeue
6. The run loop
"""

import asyncio

import pytest

from topicmind.config import PipelineConfig
from topicmind.core.node_store import InMemoryNodeStore
from topicmind.core.queue import DeliveryMode, InMemoryQueue
from topicmind.models import (
    AdjudicationResult,
    MessageStatus,
    ProcessingAction,
    QueueMessage,
)
from topicmind.services.adjudication import AdjudicationEngine
from topicmind.services.fact_store import FactStore
from topicmind.services.memory_manager import MemoryManager
from topicmind.services.pipeline import PipelineController, resolve_status
from topicmind.utils.exceptions import LLMError, StoreError

from conftest import FakeEmbedder, FakeLLM, make_message, make_node, verdict_json


def build_pipeline(llm: FakeLLM, store=None, queue=None, config=None) -> PipelineController:
    memory_manager = MemoryManager(llm=llm, fact_store=FactStore(llm=llm, embedder=FakeEmbedder()))
    return PipelineController(
        store=store if store is not None else InMemoryNodeStore(),
        queue=queue if queue is not None else InMemoryQueue(),
        adjudicator=AdjudicationEngine(llm),
        memory_manager=memory_manager,
        llm=llm,
        config=config or PipelineConfig(poll_interval=0.01, generate_replies=False),
        wait_seconds=0.05,
    )


async def submit(pipeline: PipelineController, content: str = "Freeze Thursday?", message_id="msg_1"):
    message = make_message(content, message_id=message_id)
    await pipeline.store.create_message(message)
    await pipeline.queue.enqueue(QueueMessage.from_message(message))
    return message


@pytest.fixture
def seeded():
    """Pipeline factory with one node already stored."""

    async def factory(llm, **kwargs):
        pipeline = build_pipeline(llm, **kwargs)
        await pipeline.store.create_node(make_node())
        return pipeline

    return factory


@pytest.mark.unit
class TestResolveStatus:
    """Test verdict mapping."""

    @pytest.mark.parametrize(
        "relevant,stale,status",
        [
            (True, False, MessageStatus.ACCEPTED),
            (True, True, MessageStatus.STALE),
            (False, True, MessageStatus.STALE),
            (False, False, MessageStatus.REJECTED),
        ],
    )
    def test_mapping(self, relevant, stale, status):
        verdict = AdjudicationResult(message_id="m", is_relevant=relevant, is_stale=stale)
        assert resolve_status(verdict) == status


@pytest.mark.unit
@pytest.mark.asyncio
class TestProcessEnvelope:
    """Test the per-envelope state machine."""

    async def test_accepted_advances_version(self, seeded):
        pipeline = await seeded(FakeLLM(responses=[verdict_json(True, False)]))
        await submit(pipeline)

        outcome = await pipeline.process_next(0.1)

        assert outcome.action == ProcessingAction.PROCESSED
        assert outcome.status == MessageStatus.ACCEPTED
        assert outcome.node_version == 2

        node = await pipeline.store.get_node("node_000000000001")
        assert node.version == 2
        assert node.memory.message_count == 1
        assert "User: Freeze Thursday?" in node.memory.working_memory
        assert (await pipeline.store.get_message("msg_1")).status == MessageStatus.ACCEPTED
        assert pipeline.queue.in_flight == 0

    async def test_relevant_but_stale_is_stale(self, seeded):
        pipeline = await seeded(FakeLLM(responses=[verdict_json(True, True)]))
        await submit(pipeline)

        outcome = await pipeline.process_next(0.1)

        assert outcome.status == MessageStatus.STALE
        node = await pipeline.store.get_node("node_000000000001")
        assert node.version == 1
        assert node.memory.message_count == 0

    async def test_rejected_leaves_node_untouched(self, seeded):
        pipeline = await seeded(FakeLLM(responses=[verdict_json(False, False)]))
        await submit(pipeline)
        before = await pipeline.store.get_node("node_000000000001")

        outcome = await pipeline.process_next(0.1)

        assert outcome.status == MessageStatus.REJECTED
        assert await pipeline.store.get_node("node_000000000001") == before

    async def test_adjudication_failure_is_stale(self, seeded):
        pipeline = await seeded(FakeLLM(responses=[LLMError("connection refused")]))
        await submit(pipeline)

        outcome = await pipeline.process_next(0.1)

        assert outcome.status == MessageStatus.STALE
        assert (await pipeline.store.get_node("node_000000000001")).version == 1

    async def test_missing_message_discarded(self, seeded):
        pipeline = await seeded(FakeLLM())
        await pipeline.queue.enqueue(QueueMessage.from_message(make_message(message_id="msg_ghost")))

        outcome = await pipeline.process_next(0.1)

        assert outcome.action == ProcessingAction.DISCARDED
        assert pipeline.queue.in_flight == 0

    async def test_missing_node_discarded(self):
        llm = FakeLLM()
        pipeline = build_pipeline(llm)
        await submit(pipeline)

        outcome = await pipeline.process_next(0.1)

        assert outcome.action == ProcessingAction.DISCARDED
        assert llm.calls == []

    async def test_redelivery_skipped(self, seeded):
        llm = FakeLLM(responses=[verdict_json(True, False)])
        pipeline = await seeded(llm)
        message = await submit(pipeline)
        await pipeline.process_next(0.1)

        outcome = await pipeline.process_envelope(QueueMessage.from_message(message))

        assert outcome.action == ProcessingAction.DUPLICATE
        assert (await pipeline.store.get_node("node_000000000001")).version == 2
        assert len(llm.calls) == 1

    async def test_store_failure_isolated(self, seeded):
        pipeline = await seeded(FakeLLM(responses=[verdict_json(True, False)]))
        await submit(pipeline)

        async def broken(*args, **kwargs):
            raise StoreError("disk full")

        pipeline.store.update_message_status = broken

        outcome = await pipeline.process_next(0.1)

        assert outcome.action == ProcessingAction.FAILED
        assert "disk full" in outcome.error
        assert pipeline.queue.in_flight == 0

    async def test_version_conflict_requeues_and_retries_fold(self, seeded):
        pipeline = await seeded(FakeLLM(responses=[verdict_json(True, False)]))
        message = await submit(pipeline)

        original_add = pipeline.memory_manager.add_message

        async def racing_add(node, msg, reply=None):
            memory = await original_add(node, msg, reply)
            # Another writer lands first
            current = await pipeline.store.get_node(node.id)
            await pipeline.store.update_node(node.id, current.memory, expected_version=current.version)
            return memory

        pipeline.memory_manager.add_message = racing_add

        outcome = await pipeline.process_next(0.1)

        assert outcome.action == ProcessingAction.REQUEUED
        assert (await pipeline.store.get_node("node_000000000001")).version == 2
        assert len(pipeline.queue) == 1

        pipeline.memory_manager.add_message = original_add
        retry = await pipeline.process_next(0.1)

        assert retry.action == ProcessingAction.PROCESSED
        assert retry.node_version == 3
        node = await pipeline.store.get_node("node_000000000001")
        assert f"User: {message.content}" in node.memory.working_memory

    async def test_version_conflict_without_redelivery_fails(self, seeded):
        queue = InMemoryQueue(delivery_mode=DeliveryMode.AT_MOST_ONCE)
        pipeline = await seeded(FakeLLM(responses=[verdict_json(True, False)]), queue=queue)
        message = await submit(pipeline)

        original_add = pipeline.memory_manager.add_message

        async def racing_add(node, msg, reply=None):
            memory = await original_add(node, msg, reply)
            current = await pipeline.store.get_node(node.id)
            await pipeline.store.update_node(node.id, current.memory, expected_version=current.version)
            return memory

        pipeline.memory_manager.add_message = racing_add

        outcome = await pipeline.process_next(0.1)

        assert outcome.action == ProcessingAction.FAILED
        assert outcome.status == MessageStatus.ACCEPTED
        assert len(queue) == 0

        # A later duplicate is skipped rather than folded
        pipeline.memory_manager.add_message = original_add
        again = await pipeline.process_envelope(QueueMessage.from_message(message))
        assert again.action == ProcessingAction.DUPLICATE

    async def test_reply_folded_into_memory(self, seeded):
        llm = FakeLLM(responses=[verdict_json(True, False), "Thursday works."])
        pipeline = await seeded(llm, config=PipelineConfig(generate_replies=True))
        await submit(pipeline)

        await pipeline.process_next(0.1)

        node = await pipeline.store.get_node("node_000000000001")
        assert "Assistant: Thursday works." in node.memory.working_memory
        assert "Recent Context:" in llm.calls[1]["system_prompt"]

    async def test_reply_failure_still_folds(self, seeded):
        llm = FakeLLM(responses=[verdict_json(True, False), LLMError("overloaded")])
        pipeline = await seeded(llm, config=PipelineConfig(generate_replies=True))
        await submit(pipeline)

        outcome = await pipeline.process_next(0.1)

        assert outcome.node_version == 2
        node = await pipeline.store.get_node("node_000000000001")
        assert "Assistant:" not in node.memory.working_memory

    async def test_idle_returns_none(self, seeded):
        pipeline = await seeded(FakeLLM())
        assert await pipeline.process_next(0.01) is None


@pytest.mark.unit
@pytest.mark.asyncio
class TestRunLoop:
    """Test the consumer loop."""

    async def test_processes_in_order_and_survives_failures(self, seeded):
        llm = FakeLLM(
            responses=[
                verdict_json(True, False),
                "not json at all",
                verdict_json(True, False),
            ]
        )
        pipeline = await seeded(llm)
        for i in range(3):
            await submit(pipeline, f"turn {i}", message_id=f"msg_{i}")

        task = asyncio.create_task(pipeline.run())
        for _ in range(100):
            if len(pipeline.queue) == 0 and pipeline.queue.in_flight == 0:
                break
            await asyncio.sleep(0.01)
        pipeline.stop()
        await asyncio.wait_for(task, timeout=1.0)

        statuses = [(await pipeline.store.get_message(f"msg_{i}")).status for i in range(3)]
        assert statuses == [MessageStatus.ACCEPTED, MessageStatus.STALE, MessageStatus.ACCEPTED]

        node = await pipeline.store.get_node("node_000000000001")
        assert node.version == 3
        assert node.memory.working_memory.index("turn 0") < node.memory.working_memory.index("turn 2")
        assert "turn 1" not in node.memory.working_memory

    async def test_receive_failure_does_not_stop_loop(self, seeded):
        pipeline = await seeded(FakeLLM(responses=[verdict_json(True, False)]))
        await submit(pipeline)

        real_dequeue = pipeline.queue.dequeue
        failures = []

        async def flaky(wait_seconds=None):
            if not failures:
                failures.append(1)
                raise ConnectionError("transport hiccup")
            return await real_dequeue(wait_seconds)

        pipeline.queue.dequeue = flaky

        task = asyncio.create_task(pipeline.run())
        for _ in range(100):
            if (await pipeline.store.get_message("msg_1")).status.is_terminal:
                break
            await asyncio.sleep(0.01)
        pipeline.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert failures == [1]
        assert (await pipeline.store.get_message("msg_1")).status == MessageStatus.ACCEPTED
