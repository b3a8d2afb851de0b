"""
Cognitive Load Data Classes for DraftPulse.

BehavioralIndicators are derived fresh from a TelemetryRecord for every
evaluation and LoadEstimate is the classifier's verdict over them. Neither
is persisted by the analysis services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from draftpulse.lib.numeric import mean

INSUFFICIENT_DATA_FACTOR = "Insufficient data for analysis"


class LoadLevel(StrEnum):
    """Coarse cognitive load buckets."""

    LOW = "low"
    OPTIMAL = "optimal"
    HIGH = "high"
    OVERLOAD = "overload"

    @property
    def rank(self) -> int:
        """1 (low) .. 4 (overload), used for averaging across sessions."""
        return _LOAD_RANK[self]


_LOAD_RANK: dict[LoadLevel, int] = {
    LoadLevel.LOW: 1,
    LoadLevel.OPTIMAL: 2,
    LoadLevel.HIGH: 3,
    LoadLevel.OVERLOAD: 4,
}


def load_from_rank(value: float) -> LoadLevel:
    """Map an averaged rank back onto a load level."""
    if value <= 1.5:
        return LoadLevel.LOW
    if value <= 2.5:
        return LoadLevel.OPTIMAL
    if value <= 3.5:
        return LoadLevel.HIGH
    return LoadLevel.OVERLOAD


@dataclass(frozen=True)
class BehavioralIndicators:
    """Normalized per-session behavior signals."""

    deletion_ratio: float = 0.0                     # 0-5, chars deleted / chars added
    pause_patterns: tuple[float, ...] = ()          # seconds, each >= 3s
    revision_cycles: int = 0                        # add -> delete -> add triples
    cursor_thrashing: bool = False
    word_production_rate: float = 0.0               # words per minute
    time_on_task: float = 0.0                       # minutes
    progress_stagnation: bool = False
    insufficient_data: bool = False

    @classmethod
    def insufficient(cls) -> BehavioralIndicators:
        """Zeroed sentinel returned when there is no usable telemetry."""
        return cls(insufficient_data=True)

    @property
    def mean_pause(self) -> float:
        return mean(self.pause_patterns)


@dataclass(frozen=True)
class LoadEstimate:
    """Load classifier output."""

    level: LoadLevel
    confidence: float                  # 0.5-1.0 (0.3 only for the insufficient-data sentinel)
    factors: tuple[str, ...]
    score: float = 50.0                # 0-100 overload score behind the level
    insufficient_data: bool = False

    @classmethod
    def insufficient(cls) -> LoadEstimate:
        return cls(
            level=LoadLevel.OPTIMAL,
            confidence=0.3,
            factors=(INSUFFICIENT_DATA_FACTOR,),
            score=50.0,
            insufficient_data=True,
        )


class StruggleType(StrEnum):
    """Kinds of in-session struggle reported upstream."""

    WRITING_BLOCK = "writing_block"
    CONCEPT_CONFUSION = "concept_confusion"
    COGNITIVE_OVERLOAD = "cognitive_overload"


@dataclass(frozen=True)
class StruggleAssessment:
    """Struggle detected within a single session."""

    struggle_type: StruggleType
    severity: str                      # "high" | "medium"
    factors: tuple[str, ...] = field(default_factory=tuple)
    recommendations: tuple[str, ...] = field(default_factory=tuple)


__all__ = [
    "INSUFFICIENT_DATA_FACTOR",
    "LoadLevel",
    "load_from_rank",
    "BehavioralIndicators",
    "LoadEstimate",
    "StruggleType",
    "StruggleAssessment",
]
