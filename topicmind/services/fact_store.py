"""
Fact Store - Long-term key fact consolidation.

Handles:
- Extraction of atomic factual claims from working memory
- Embedding-based duplicate detection and merge
- Confidence events (temporal decay, confirmation, contradiction)
- Pruning to a bounded, confidence-sorted fact list
"""

import asyncio
import json
from datetime import datetime

import numpy as np
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from topicmind.config import FactStoreConfig
from topicmind.core.embeddings.base import Embedder
from topicmind.core.llm.base import LLMProvider, extract_json
from topicmind.models.confidence import ConfidenceEvent, ConfidenceEventType
from topicmind.models.node import FactSource, KeyFact, clamp_confidence, source_weight
from topicmind.utils.exceptions import (
    ProviderError,
    ProviderMalformedError,
    ValidationError,
)
from topicmind.utils.id_generator import generate_fact_id
from topicmind.utils.logger import get_logger

logger = get_logger(__name__)

SECONDS_PER_WEEK = 7 * 24 * 60 * 60

EXTRACTION_SYSTEM_PROMPT = "You are a fact extraction system. Return only valid JSON."


class ExtractedFact(BaseModel):
    """One candidate fact as returned by the provider."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    content: str = ""
    confidence: float | None = None
    source: str | None = None
    supporting_evidence: list[str] = Field(default_factory=list, alias="supportingEvidence")


class FactStore:
    """
    Maintains the set of key facts for a node.

    All operations are pure with respect to their inputs: facts are copied,
    never mutated in place.
    """

    def __init__(
        self,
        llm: LLMProvider,
        embedder: Embedder,
        config: FactStoreConfig | None = None,
    ):
        """
        Initialize fact store.

        Args:
            llm: LLM provider for fact extraction
            embedder: Embedder for duplicate detection
            config: Thresholds and limits
        """
        self.llm = llm
        self.embedder = embedder
        self.config = config or FactStoreConfig()

    async def extract_and_merge_key_facts(
        self,
        existing_facts: list[KeyFact],
        working_memory: str,
        core_context: str,
        model: str | None = None,
        now: datetime | None = None,
    ) -> list[KeyFact]:
        """
        Extract new facts from working memory and consolidate them with existing ones.

        Steps:
        1. Extract 3-5 candidate facts (provider failure -> no candidates)
        2. Batch-embed candidates and backfill missing embeddings on existing facts
        3. Merge each candidate into its closest existing fact at or above the
           similarity threshold, else add it as a new fact
        4. Apply temporal decay to every fact
        5. Prune, sort by confidence and cap the count

        Args:
            existing_facts: Current key facts of the node
            working_memory: Recent conversation to mine
            core_context: Node's founding statement, for relevance
            model: Provider model of the node
            now: Clock override

        Returns:
            New consolidated fact list, confidence-sorted descending
        """
        now = now or datetime.now()

        candidates = await self._extract_candidate_facts(working_memory, core_context, model, now)
        facts = [fact.model_copy(deep=True) for fact in existing_facts]

        if candidates:
            embeddings_ready = await self._embed_facts(candidates, facts)

            # Merge decisions are sequential so two candidates never race for one fact
            for candidate in candidates:
                index = self._find_similar_index(candidate, facts, embeddings_ready)
                if index is None:
                    facts.append(candidate)
                    logger.debug(f"New fact {candidate.id}: {candidate.content[:80]}")
                else:
                    facts[index] = self.merge_facts(facts[index], candidate, now)
                    logger.debug(f"Merged candidate into fact {facts[index].id}")

        decay = ConfidenceEvent(type=ConfidenceEventType.TIME_DECAY, timestamp=now)
        decayed = [self.update_fact_confidence(fact, decay) for fact in facts]

        result = self.prune_facts_by_confidence(decayed)
        logger.bind(existing=len(existing_facts), candidates=len(candidates)).info(
            f"Consolidated {len(existing_facts)} existing and {len(candidates)} candidate facts "
            f"into {len(result)}",
        )
        return result

    def calculate_similarity(self, embedding1: list[float], embedding2: list[float]) -> float:
        """
        Cosine similarity of two normalized embeddings.

        For unit vectors this is the dot product, clamped to [0, 1] to absorb
        floating-point overshoot and anti-correlation.

        Raises:
            ValidationError: If the vectors differ in dimension
        """
        if len(embedding1) != len(embedding2):
            raise ValidationError(
                f"Embedding dimensions don't match: {len(embedding1)} vs {len(embedding2)}"
            )
        dot = float(np.dot(np.asarray(embedding1, dtype=float), np.asarray(embedding2, dtype=float)))
        return max(0.0, min(1.0, dot))

    async def calculate_text_similarity(self, text1: str, text2: str) -> float:
        """Embed two texts and return their similarity."""
        embedding1, embedding2 = await asyncio.gather(
            self.embedder.embed(text1), self.embedder.embed(text2)
        )
        return self.calculate_similarity(embedding1, embedding2)

    def update_fact_confidence(self, fact: KeyFact, event: ConfidenceEvent) -> KeyFact:
        """
        Apply a confidence event to a fact.

        USER_CONFIRMED: +0.3 (cap 1.0), resets the decay anchor
        MENTIONED_AGAIN: +0.1 (cap 1.0)
        CONTRADICTED: -0.4 (floor 0.1)
        IMPLICIT_VALIDATION: +0.05 (cap 1.0)
        TIME_DECAY: *= weekly_decay ** weeks since last confirmation or extraction

        Returns:
            Updated copy of the fact
        """
        confidence = fact.confidence
        last_confirmed_at = fact.last_confirmed_at

        if event.type == ConfidenceEventType.USER_CONFIRMED:
            confidence = min(1.0, confidence + 0.3)
            last_confirmed_at = event.timestamp
        elif event.type == ConfidenceEventType.MENTIONED_AGAIN:
            confidence = min(1.0, confidence + 0.1)
        elif event.type == ConfidenceEventType.CONTRADICTED:
            confidence = max(0.1, confidence - 0.4)
        elif event.type == ConfidenceEventType.IMPLICIT_VALIDATION:
            confidence = min(1.0, confidence + 0.05)
        elif event.type == ConfidenceEventType.TIME_DECAY:
            elapsed = (event.timestamp - fact.decay_anchor()).total_seconds()
            weeks = max(0.0, elapsed / SECONDS_PER_WEEK)
            confidence *= self.config.weekly_decay**weeks

        evidence = list(fact.supporting_evidence)
        if event.evidence and event.type != ConfidenceEventType.TIME_DECAY:
            evidence.append(event.evidence)

        return fact.model_copy(
            update={
                "confidence": clamp_confidence(confidence),
                "last_confirmed_at": last_confirmed_at,
                "supporting_evidence": evidence,
            }
        )

    def merge_facts(self, existing: KeyFact, candidate: KeyFact, now: datetime | None = None) -> KeyFact:
        """
        Fold a duplicate candidate into an existing fact.

        Confidence never decreases and previous evidence is never dropped.
        """
        return existing.model_copy(
            update={
                "confidence": clamp_confidence(
                    min(1.0, existing.confidence + self.config.merge_boost)
                ),
                "supporting_evidence": [
                    *existing.supporting_evidence,
                    *candidate.supporting_evidence,
                ],
                "last_confirmed_at": now or datetime.now(),
                "embedding": existing.embedding or candidate.embedding,
            }
        )

    def prune_facts_by_confidence(
        self,
        facts: list[KeyFact],
        min_confidence: float | None = None,
        max_facts: int | None = None,
    ) -> list[KeyFact]:
        """
        Drop low-confidence facts, sort descending and keep the top max_facts.

        Sorting precedes truncation, so only the lowest-confidence facts are cut.
        Idempotent for a fixed threshold.
        """
        threshold = self.config.min_confidence if min_confidence is None else min_confidence
        limit = self.config.max_facts if max_facts is None else max_facts

        kept = [fact for fact in facts if fact.confidence >= threshold]
        kept.sort(key=lambda fact: fact.confidence, reverse=True)
        return kept[:limit]

    async def _extract_candidate_facts(
        self,
        working_memory: str,
        core_context: str,
        model: str | None,
        now: datetime,
    ) -> list[KeyFact]:
        """
        Ask the provider for candidate facts.

        Provider and parse failures are logged and yield no candidates.
        """
        if not working_memory or not working_memory.strip():
            return []

        prompt = f"""Extract key facts from the following conversation that are relevant to the core context.

CORE CONTEXT:
{core_context}

CONVERSATION TO ANALYZE:
{working_memory}

Extract between 3 and {self.config.max_candidates} facts that are:
1. Factual statements (not opinions or questions)
2. Relevant to the core topic
3. Worth remembering for future conversations
4. Atomic, specific and self-contained

Return a JSON array of objects with this structure:
[
  {{
    "content": "The factual statement",
    "confidence": 0.6,
    "source": "LLM_INFERRED",
    "supportingEvidence": ["Quote or context that supports this fact"]
  }}
]

Allowed sources: USER_STATED, USER_CONFIRMED, LLM_INFERRED, IMPLICIT.

JSON array:"""

        try:
            response = await asyncio.wait_for(
                self.llm.complete(
                    prompt, system_prompt=EXTRACTION_SYSTEM_PROMPT, model=model, temperature=0.0
                ),
                timeout=self.config.timeout,
            )
            extracted = self._parse_candidates(response.content)
        except asyncio.TimeoutError:
            logger.warning(f"Fact extraction timed out after {self.config.timeout}s")
            return []
        except ProviderError as e:
            logger.bind(error=str(e), error_type=type(e).__name__).warning(
                f"Fact extraction failed: {e}",
            )
            return []

        candidates = []
        for item in extracted[: self.config.max_candidates]:
            content = item.content.strip()
            if not content:
                continue

            source = self._parse_source(item.source)
            confidence = item.confidence if item.confidence is not None else source_weight(source)

            candidates.append(
                KeyFact(
                    id=generate_fact_id(),
                    content=content,
                    confidence=confidence,
                    source=source,
                    extracted_at=now,
                    supporting_evidence=[e for e in item.supporting_evidence if e],
                )
            )

        return candidates

    def _parse_candidates(self, content: str) -> list[ExtractedFact]:
        """
        Decode the provider's JSON array of facts.

        Raises:
            ProviderMalformedError: If the content is not a JSON array of fact objects
        """
        try:
            data = json.loads(extract_json(content))
        except json.JSONDecodeError as e:
            raise ProviderMalformedError(
                f"Fact extraction returned invalid JSON: {e}",
                context={"raw": content[:500]},
            ) from e

        if isinstance(data, dict) and isinstance(data.get("facts"), list):
            data = data["facts"]
        if not isinstance(data, list):
            raise ProviderMalformedError(
                "Fact extraction did not return a JSON array", context={"raw": content[:500]}
            )

        facts = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                facts.append(ExtractedFact.model_validate(item))
            except PydanticValidationError as e:
                logger.debug(f"Skipping malformed fact entry: {e}")
        return facts

    def _parse_source(self, value: str | None) -> FactSource:
        """Unknown or missing source values fall back to LLM_INFERRED."""
        if value:
            try:
                return FactSource(value.strip().upper())
            except ValueError:
                pass
        return FactSource.LLM_INFERRED

    async def _embed_facts(self, candidates: list[KeyFact], existing: list[KeyFact]) -> bool:
        """
        Populate embeddings for candidates and for existing facts lacking one.

        One batch call covers both groups. Returns False when embedding failed,
        in which case merging falls back to exact text comparison.
        """
        missing = [fact for fact in existing if not fact.embedding]
        pending = candidates + missing
        if not pending:
            return True

        try:
            vectors = await asyncio.wait_for(
                self.embedder.batch_embed([fact.content for fact in pending]),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Embedding facts timed out after {self.config.timeout}s, "
                "falling back to exact matching"
            )
            return False
        except ProviderError as e:
            logger.bind(count=len(pending), error=str(e)).warning(
                f"Embedding facts failed, falling back to exact matching: {e}",
            )
            return False

        for fact, vector in zip(pending, vectors):
            fact.embedding = vector

        if missing:
            logger.debug(f"Backfilled embeddings for {len(missing)} existing facts")
        return True

    def _find_similar_index(
        self, candidate: KeyFact, facts: list[KeyFact], embeddings_ready: bool
    ) -> int | None:
        """Index of the most similar fact at or above the threshold, if any."""
        if not embeddings_ready or not candidate.embedding:
            target = _normalize_text(candidate.content)
            for index, fact in enumerate(facts):
                if _normalize_text(fact.content) == target:
                    return index
            return None

        best_index = None
        best_score = 0.0
        for index, fact in enumerate(facts):
            if not fact.embedding:
                continue
            try:
                score = self.calculate_similarity(candidate.embedding, fact.embedding)
            except ValidationError:
                logger.debug(f"Skipping fact {fact.id} with mismatched embedding dimension")
                continue
            if score < self.config.similarity_threshold:
                continue
            if best_index is None or score > best_score:
                best_index = index
                best_score = score

        return best_index


def _normalize_text(text: str) -> str:
    return " ".join(text.lower().split())
