"""
Memory Manager - Three-tier node memory.

Tiers, from most to least durable:
- Core context: founding statement of the topic, never compressed
- Key facts: confidence-scored claims maintained by the FactStore
- Working memory: recent turns, summarized once it grows too large
"""

import asyncio

from topicmind.config import MemoryConfig
from topicmind.core.llm.base import LLMProvider
from topicmind.core.tokenizer import Tokenizer
from topicmind.models.message import Message
from topicmind.models.node import FactSource, KeyFact, Node, NodeMemory, source_weight
from topicmind.services.fact_store import FactStore
from topicmind.utils.exceptions import ProviderError
from topicmind.utils.id_generator import generate_fact_id
from topicmind.utils.logger import get_logger

logger = get_logger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You are a precise memory compression system. "
    "Respond with the compressed summary only, no preamble."
)


class MemoryManager:
    """
    Owns the memory representation of a node.

    Decides when working memory must be compressed and drives the FactStore
    during compression. Never mutates the Node it is given.
    """

    def __init__(
        self,
        llm: LLMProvider,
        fact_store: FactStore,
        tokenizer: Tokenizer | None = None,
        config: MemoryConfig | None = None,
    ):
        """
        Initialize memory manager.

        Args:
            llm: LLM provider for working memory summaries
            fact_store: FactStore for key fact consolidation
            tokenizer: Token counter for the working memory budget
            config: Compression thresholds and context limits
        """
        self.llm = llm
        self.fact_store = fact_store
        self.tokenizer = tokenizer or Tokenizer()
        self.config = config or MemoryConfig()

    def initialize_memory(self, topic: str, description: str | None) -> NodeMemory:
        """
        Build the initial memory for a new node.

        The description becomes a USER_STATED key fact so the node's founding
        premise carries provenance.
        """
        description = (description or "").strip()

        key_facts = []
        if description:
            key_facts.append(
                KeyFact(
                    id=generate_fact_id(),
                    content=description,
                    confidence=source_weight(FactSource.USER_STATED),
                    source=FactSource.USER_STATED,
                    supporting_evidence=["Node description"],
                )
            )

        return NodeMemory(
            core_context=f"Topic: {topic}\nInitial Context: {description}",
            working_memory=f"Starting conversation about: {topic}",
            key_facts=key_facts,
            message_count=0,
            last_summary_at=0,
        )

    async def add_message(
        self, node: Node, message: Message, reply_text: str | None = None
    ) -> NodeMemory:
        """
        Fold an accepted message (and optional reply) into working memory.

        Compresses when the turn or token threshold is reached.

        Returns:
            New memory for the node
        """
        memory = node.memory.model_copy(deep=True)
        memory.message_count += 1

        turn = f"User: {message.content}"
        if reply_text:
            turn += f"\nAssistant: {reply_text}"

        if memory.working_memory:
            memory.working_memory = f"{memory.working_memory}\n\n{turn}"
        else:
            memory.working_memory = turn

        if self.should_compress(memory):
            logger.bind(
                node_id=node.id, messages_since_summary=memory.messages_since_summary()
            ).info(
                f"Compressing memory for node {node.id}",
            )
            return await self.compress_memory(node.model_copy(update={"memory": memory}))

        return memory

    def should_compress(self, memory: NodeMemory) -> bool:
        """
        True when either the turn threshold or the token budget is hit.

        A single very long turn triggers compression on its own.
        """
        if memory.messages_since_summary() >= self.config.turn_threshold:
            return True
        return self.tokenizer.exceeds(memory.working_memory, self.config.token_budget)

    async def compress_memory(self, node: Node) -> NodeMemory:
        """
        Consolidate key facts and summarize working memory.

        Core context is carried over untouched. A failed summary falls back to
        keeping the last half of the working memory lines.
        """
        memory = node.memory

        key_facts = await self.fact_store.extract_and_merge_key_facts(
            memory.key_facts,
            memory.working_memory,
            memory.core_context,
            model=node.model,
        )

        summary = await self._summarize(node)
        if summary is None:
            summary = self._truncate_working_memory(memory.working_memory)

        return NodeMemory(
            core_context=memory.core_context,
            working_memory=summary,
            key_facts=key_facts,
            message_count=memory.message_count,
            last_summary_at=memory.message_count,
        )

    def get_context(self, node: Node, recent_messages: list[Message] | None = None) -> str:
        """
        Assemble provider context, most stable material first.

        Order: core context, trusted key facts, working memory, then the last
        few explicitly supplied messages not yet folded in.
        """
        memory = node.memory
        sections = [memory.core_context]

        facts = memory.top_facts(
            self.config.context_max_facts, min_confidence=self.config.context_min_confidence
        )
        if facts:
            sections.append("Key Facts:\n" + "\n".join(f"- {fact.content}" for fact in facts))

        sections.append(f"Recent Context:\n{memory.working_memory}")

        if recent_messages:
            latest = recent_messages[-self.config.context_recent_messages :]
            sections.append(
                "Latest Messages:\n" + "\n".join(f"- {msg.content}" for msg in latest)
            )

        return "\n\n".join(sections)

    async def _summarize(self, node: Node) -> str | None:
        """Provider summary of working memory, or None on failure."""
        memory = node.memory

        prompt = f"""Compress the following conversation history while preserving essential information.

The conversation is about: {node.topic}

WORKING MEMORY TO COMPRESS:
{memory.working_memory}

Instructions:
1. Keep decisions, open questions and concrete details that build on the topic
2. Drop greetings, repetition and filler
3. Write a concise summary in plain prose"""

        try:
            response = await asyncio.wait_for(
                self.llm.complete(prompt, system_prompt=SUMMARY_SYSTEM_PROMPT, model=node.model),
                timeout=self.config.summary_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Summary timed out for node {node.id}; truncating working memory")
            return None
        except ProviderError as e:
            logger.bind(node_id=node.id, error=str(e), error_type=type(e).__name__).warning(
                f"Summary failed for node {node.id}; truncating working memory: {e}",
            )
            return None

        summary = response.content.strip()
        if not summary:
            logger.warning(f"Empty summary for node {node.id}; truncating working memory")
            return None
        return summary

    def _truncate_working_memory(self, working_memory: str) -> str:
        """Keep the last half of the lines."""
        lines = working_memory.split("\n")
        keep = max(1, len(lines) // 2)
        return "\n".join(lines[-keep:])
