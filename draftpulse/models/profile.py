"""
Writer Profile Snapshot for DraftPulse.

The profile is owned by an external learner-profiling service. The analysis
services only ever receive a read-only snapshot per call. A malformed
snapshot is treated exactly like "no profile supplied".
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

logger = structlog.get_logger(__name__)


class WritingStage(StrEnum):
    """Writing stage reported by the editor when a nudge is evaluated."""

    BRAINSTORMING = "brainstorming"
    DRAFTING = "drafting"
    REVISING = "revising"
    EDITING = "editing"


class WriterProfileSnapshot(BaseModel):
    """Read-only view of a writer's learning profile."""

    model_config = ConfigDict(
        frozen=True, extra="ignore", alias_generator=to_camel, populate_by_name=True
    )

    reflection_depth_average: float | None = Field(None, ge=0, le=100)
    independence_trend: Literal["increasing", "stable", "decreasing"] | None = None
    emotional_state: str | None = None         # frustrated | confident | neutral | ...
    productivity_pattern: str | None = None    # burst | steady | ...
    preferred_responses: tuple[str, ...] = ()  # e.g. ("supportive", "analytical_questions")
    ai_request_frequency: float | None = Field(None, ge=0)  # AI requests per day
    preferred_learning_style: str | None = None

    @property
    def is_frustrated(self) -> bool:
        return self.emotional_state == "frustrated"

    @property
    def prefers_supportive_tone(self) -> bool:
        return "supportive" in self.preferred_responses


def coerce_profile(
    raw: WriterProfileSnapshot | Mapping[str, Any] | None,
) -> WriterProfileSnapshot | None:
    """
    Normalize whatever the profile collaborator returned.

    Args:
        raw: A snapshot, a raw mapping, or None

    Returns:
        A validated snapshot, or None when absent or malformed
    """
    if raw is None or isinstance(raw, WriterProfileSnapshot):
        return raw
    if not isinstance(raw, Mapping):
        logger.warning("profile_rejected", reason="unsupported_type", type=type(raw).__name__)
        return None
    try:
        return WriterProfileSnapshot.model_validate(raw)
    except ValidationError as exc:
        logger.warning("profile_rejected", reason="validation_failed", errors=exc.error_count())
        return None


__all__ = ["WritingStage", "WriterProfileSnapshot", "coerce_profile"]
