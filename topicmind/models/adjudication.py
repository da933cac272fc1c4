"""
Adjudication verdict models.

The provider's judgment is decoded strictly into a tagged Verdict; only the
Ok branch carries a usable AdjudicationResult.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator

from topicmind.models.node import clamp_confidence


class AdjudicationResult(BaseModel):
    """Relevance/staleness judgment for one message."""

    message_id: str
    is_relevant: bool
    is_stale: bool
    reason: str = ""
    score: float = Field(default=0.0, description="Confidence in [0, 1]")

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> float:
        return clamp_confidence(value)

    @classmethod
    def fallback(cls, message_id: str, reason: str) -> "AdjudicationResult":
        """Conservative verdict used whenever no usable judgment exists."""
        return cls(
            message_id=message_id,
            is_relevant=False,
            is_stale=True,
            reason=reason,
            score=0.0,
        )


class AdjudicationPayload(BaseModel):
    """Exact JSON shape requested from the provider."""

    model_config = {"extra": "ignore"}

    isRelevant: bool
    isStale: bool
    reason: str = ""
    score: float


class VerdictOk(BaseModel):
    kind: Literal["ok"] = "ok"
    result: AdjudicationResult


class VerdictParseError(BaseModel):
    kind: Literal["parse_error"] = "parse_error"
    raw: str
    error: str


class VerdictProviderError(BaseModel):
    kind: Literal["provider_error"] = "provider_error"
    error: str


Verdict = Annotated[
    VerdictOk | VerdictParseError | VerdictProviderError,
    Field(discriminator="kind"),
]
