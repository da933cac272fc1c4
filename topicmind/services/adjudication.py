"""
Adjudication Engine - Relevance and staleness judgments.

Judges a single message against a node's current memory. The provider's
answer is decoded strictly into a tagged Verdict; every non-Ok branch
resolves to the conservative reject verdict.
"""

import asyncio
import json

from pydantic import ValidationError as PydanticValidationError

from topicmind.config import AdjudicationConfig
from topicmind.core.llm.base import LLMProvider, extract_json
from topicmind.models.adjudication import (
    AdjudicationPayload,
    AdjudicationResult,
    Verdict,
    VerdictOk,
    VerdictParseError,
    VerdictProviderError,
)
from topicmind.models.message import Message
from topicmind.models.node import Node
from topicmind.utils.exceptions import ProviderError, ValidationError
from topicmind.utils.logger import get_logger

logger = get_logger(__name__)

ADJUDICATION_SYSTEM_PROMPT = (
    "You are an expert conversation moderator. "
    "Always respond with valid JSON in the exact format requested."
)


class AdjudicationEngine:
    """
    Stateless judge of incoming messages.

    Not retried: on ambiguity the message is rejected, since accepting is
    the only irreversible branch.
    """

    def __init__(self, llm: LLMProvider, config: AdjudicationConfig | None = None):
        """
        Initialize adjudication engine.

        Args:
            llm: LLM provider for judgments
            config: Fact limit and call timeout
        """
        self.llm = llm
        self.config = config or AdjudicationConfig()

    async def adjudicate(self, message: Message, node: Node) -> AdjudicationResult:
        """
        Judge a message against the node's memory.

        Raises:
            ValidationError: If the message content is empty
        """
        if not message.content or not message.content.strip():
            raise ValidationError("Message content cannot be empty", {"message_id": message.id})

        logger.info(
            f"Evaluating message {message.id} against node {node.id} (v{node.version}) "
            f"using model {node.model}"
        )

        verdict = await self.judge(message, node)

        if isinstance(verdict, VerdictOk):
            return verdict.result

        if isinstance(verdict, VerdictParseError):
            logger.bind(message_id=message.id, raw=verdict.raw[:500]).warning(
                f"Unparseable adjudication for {message.id}: {verdict.error}",
            )
            return AdjudicationResult.fallback(
                message.id, f"Adjudication response could not be parsed: {verdict.error}"
            )

        logger.bind(message_id=message.id).warning(
            f"Adjudication provider failure for {message.id}: {verdict.error}",
        )
        return AdjudicationResult.fallback(
            message.id, f"Error during adjudication process: {verdict.error}"
        )

    async def judge(self, message: Message, node: Node) -> Verdict:
        """Call the provider and decode its answer into a tagged Verdict."""
        prompt = self.build_prompt(message, node)

        try:
            response = await asyncio.wait_for(
                self.llm.complete(
                    prompt, system_prompt=ADJUDICATION_SYSTEM_PROMPT, model=node.model
                ),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            return VerdictProviderError(error=f"timed out after {self.config.timeout}s")
        except ProviderError as e:
            return VerdictProviderError(error=str(e))

        return self.decode(message.id, response.content)

    def decode(self, message_id: str, content: str) -> Verdict:
        """Strictly decode `{isRelevant, isStale, reason, score}`."""
        try:
            payload = AdjudicationPayload.model_validate_json(extract_json(content))
        except (PydanticValidationError, json.JSONDecodeError) as e:
            return VerdictParseError(raw=content, error=str(e).splitlines()[0])

        return VerdictOk(
            result=AdjudicationResult(
                message_id=message_id,
                is_relevant=payload.isRelevant,
                is_stale=payload.isStale,
                reason=payload.reason,
                score=payload.score,
            )
        )

    def build_prompt(self, message: Message, node: Node) -> str:
        memory = node.memory
        facts = memory.top_facts(self.config.max_facts)
        facts_text = "\n".join(f"- {fact.content}" for fact in facts) or "- (none yet)"

        return f"""
You are an impartial adjudicator for a collaborative conversation.
Your goal is to determine if a new message is relevant to the current state of the conversation and if it provides new information (is not stale).

Core Topic Context:
{memory.core_context}

Current Working Memory:
{memory.working_memory}

Key Facts Known:
{facts_text}

The sender wrote this message while seeing conversation version {message.target_node_version}; the current version is {node.version}.

New Message:
{message.content}

Evaluate the message based on the following criteria:
1. Relevance: Does the message directly address the topic or the current state of the conversation?
2. Staleness: Does the message repeat information already present in the state, or respond to a state that has since moved on?

Respond with a JSON object in the following format:
{{
  "isRelevant": boolean,
  "isStale": boolean,
  "reason": "string explanation",
  "score": number (0-1 confidence score)
}}
"""
