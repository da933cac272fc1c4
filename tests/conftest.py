"""
Shared test fixtures for all test modules.

Providers are replaced by scripted fakes so tests never need a running
Ollama or OpenAI endpoint.
"""

from collections.abc import Callable
from datetime import datetime

import pytest

from topicmind.config import FactStoreConfig, MemoryConfig, PipelineConfig
from topicmind.core.embeddings.base import Embedder, normalize_vector
from topicmind.core.llm.base import LLMProvider, LLMResponse
from topicmind.core.node_store.memory_store import InMemoryNodeStore
from topicmind.core.queue.memory_queue import InMemoryQueue
from topicmind.models.message import Message, MessageStatus
from topicmind.models.node import FactSource, KeyFact, Node, NodeMemory
from topicmind.services.adjudication import AdjudicationEngine
from topicmind.services.fact_store import FactStore
from topicmind.services.memory_manager import MemoryManager
from topicmind.utils.exceptions import EmbeddingError, LLMError


class FakeLLM(LLMProvider):
    """
    Scripted completion provider.

    `responses` is consumed in order; an Exception entry is raised instead of
    returned. `handler`, when given, computes the reply from the prompt.
    """

    def __init__(
        self,
        responses: list | None = None,
        handler: Callable[[str, str | None], str] | None = None,
        default: str = "ok",
    ):
        self.responses = list(responses or [])
        self.handler = handler
        self.default = default
        self.calls: list[dict] = []
        self.closed = False

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.0,
        **kwargs,
    ) -> LLMResponse:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "model": model})

        if self.responses:
            item = self.responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return LLMResponse(content=item)

        if self.handler is not None:
            return LLMResponse(content=self.handler(prompt, system_prompt))

        return LLMResponse(content=self.default)

    async def close(self):
        self.closed = True


class FakeEmbedder(Embedder):
    """
    Keyword embedder: each text maps to a bag-of-words vector over a fixed vocabulary.

    Texts sharing most words score close to 1.0; unrelated texts score 0.0.
    Explicit vectors can be pinned per text.
    """

    def __init__(self, vectors: dict[str, list[float]] | None = None, fail: bool = False):
        self.vectors = vectors or {}
        self.fail = fail
        self.batch_calls = 0
        self.closed = False

    async def embed(self, text: str, **kwargs) -> list[float]:
        if self.fail:
            raise EmbeddingError("embedder offline")
        if text in self.vectors:
            return normalize_vector(self.vectors[text])
        return normalize_vector(_bag_of_words(text))

    async def batch_embed(self, texts: list[str], batch_size: int = 32, **kwargs) -> list[list[float]]:
        self.batch_calls += 1
        return [await self.embed(text) for text in texts]

    async def close(self):
        self.closed = True


_VOCABULARY_SIZE = 64


def _bag_of_words(text: str) -> list[float]:
    vector = [0.0] * _VOCABULARY_SIZE
    for word in text.lower().replace(".", " ").replace(",", " ").split():
        vector[sum(ord(c) for c in word) % _VOCABULARY_SIZE] += 1.0
    return vector


def make_fact(
    content: str,
    confidence: float = 0.5,
    source: FactSource = FactSource.LLM_INFERRED,
    extracted_at: datetime | None = None,
    **kwargs,
) -> KeyFact:
    return KeyFact(
        id=kwargs.pop("id", f"fact_{abs(hash(content)) % 10**12:012d}"),
        content=content,
        confidence=confidence,
        source=source,
        extracted_at=extracted_at or datetime.now(),
        **kwargs,
    )


def make_node(
    topic: str = "Rollout Plan",
    description: str = "Ship v2 by Friday",
    version: int = 1,
    **memory_fields,
) -> Node:
    memory = NodeMemory(
        core_context=f"Topic: {topic}\nInitial Context: {description}",
        working_memory=memory_fields.pop("working_memory", f"Starting conversation about: {topic}"),
        **memory_fields,
    )
    return Node(
        id="node_000000000001",
        topic=topic,
        description=description,
        model="llama3.1:8b",
        memory=memory,
        version=version,
    )


def make_message(
    content: str = "Can we move the freeze to Thursday?",
    node_id: str = "node_000000000001",
    message_id: str = "msg_000000000001",
    target_node_version: int = 1,
    status: MessageStatus = MessageStatus.PENDING,
) -> Message:
    return Message(
        id=message_id,
        content=content,
        user_id="user_1",
        node_id=node_id,
        target_node_version=target_node_version,
        status=status,
    )


def verdict_json(relevant: bool, stale: bool, score: float = 0.8, reason: str = "test") -> str:
    return (
        f'{{"isRelevant": {str(relevant).lower()}, "isStale": {str(stale).lower()}, '
        f'"reason": "{reason}", "score": {score}}}'
    )


# Fixtures


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def failing_llm():
    return FakeLLM(handler=_raise_llm_error)


def _raise_llm_error(prompt, system_prompt):
    raise LLMError("connection refused")


@pytest.fixture
def node():
    return make_node()


@pytest.fixture
def message():
    return make_message()


@pytest.fixture
def fact_store(fake_llm, fake_embedder):
    return FactStore(llm=fake_llm, embedder=fake_embedder, config=FactStoreConfig())


@pytest.fixture
def memory_manager(fake_llm, fact_store):
    return MemoryManager(llm=fake_llm, fact_store=fact_store, config=MemoryConfig())


@pytest.fixture
def node_store():
    return InMemoryNodeStore()


@pytest.fixture
def queue():
    return InMemoryQueue()


@pytest.fixture
def adjudicator(fake_llm):
    return AdjudicationEngine(llm=fake_llm)


@pytest.fixture
def pipeline_config():
    return PipelineConfig(poll_interval=0.01, generate_replies=False)
