"""
Writing Process Insight Data Classes for DraftPulse.

WritingProcessInsights is rebuilt on demand from the full session history
of one assignment; it is never incrementally mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from draftpulse.models.cognition import BehavioralIndicators, LoadEstimate, LoadLevel


class SessionTag(StrEnum):
    """Per-session behavior tag."""

    PRODUCTIVE = "productive"
    STRUGGLING = "struggling"
    STAGNANT = "stagnant"
    REVISION_HEAVY = "revision-heavy"
    EXPLORATORY = "exploratory"


class PatternType(StrEnum):
    """Assignment-level writing patterns."""

    LINEAR = "linear"
    RECURSIVE = "recursive"
    PERFECTIONIST = "perfectionist"
    EXPLORATORY = "exploratory"
    BURST = "burst"
    STEADY = "steady"


class ProcessStageName(StrEnum):
    """Stage a session is attributed to."""

    PLANNING = "planning"
    DRAFTING = "drafting"
    REVISING = "revising"
    EDITING = "editing"
    POLISHING = "polishing"


class TimeOfDay(StrEnum):
    MORNING = "morning"      # 05-12
    AFTERNOON = "afternoon"  # 12-17
    EVENING = "evening"      # 17-21
    NIGHT = "night"


@dataclass(frozen=True)
class SessionPattern:
    """Tag and evidence for one analyzed session."""

    session_id: str | None
    tag: SessionTag
    key_indicators: tuple[str, ...]
    indicators: BehavioralIndicators
    load: LoadEstimate


@dataclass(frozen=True)
class WritingPattern:
    """A weighted pattern classification with its evidence."""

    type: PatternType
    confidence: float                  # 0-1
    evidence: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProcessStage:
    """Stage attribution for one session."""

    stage: ProcessStageName
    duration_minutes: float
    productivity: float                # words per minute
    revision_intensity: float          # 0-1
    load_level: LoadLevel


@dataclass(frozen=True)
class StrugglePoint:
    """A struggling or stagnant session, resolved if the next one was productive."""

    timestamp: datetime | None
    type: SessionTag
    duration_minutes: float
    resolved: bool


@dataclass(frozen=True)
class ProductivePeriod:
    """Aggregated productivity for a time-of-day bucket."""

    time_of_day: TimeOfDay
    productivity_rate: float           # words per minute
    load_level: LoadLevel


def empty_time_distribution() -> dict[ProcessStageName, int]:
    return {stage: 0 for stage in ProcessStageName}


@dataclass
class WritingProcessInsights:
    """Per-assignment aggregate of a writer's process."""

    writer_id: str
    assignment_id: str
    dominant_pattern: WritingPattern
    secondary_patterns: list[WritingPattern] = field(default_factory=list)
    session_patterns: list[SessionPattern] = field(default_factory=list)
    process_stages: list[ProcessStage] = field(default_factory=list)
    time_distribution: dict[ProcessStageName, int] = field(default_factory=empty_time_distribution)
    coherence_score: int = 0
    development_score: int = 0
    revision_quality: int = 0
    productive_periods: list[ProductivePeriod] = field(default_factory=list)
    struggle_points: list[StrugglePoint] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)
    improvement_areas: list[str] = field(default_factory=list)
    process_recommendations: list[str] = field(default_factory=list)
    intervention_suggestions: list[str] = field(default_factory=list)

    @property
    def unresolved_struggles(self) -> list[StrugglePoint]:
        return [sp for sp in self.struggle_points if not sp.resolved]


@dataclass(frozen=True)
class PatternSnapshot:
    """Dominant pattern of one assignment, used for cross-assignment evolution."""

    assignment_id: str
    started_at: datetime | None
    pattern: PatternType
    confidence: float


@dataclass
class CrossAssignmentSummary:
    """Patterns across several assignments for one writer."""

    consistent_patterns: list[PatternType] = field(default_factory=list)
    evolution: list[PatternSnapshot] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


__all__ = [
    "SessionTag",
    "PatternType",
    "ProcessStageName",
    "TimeOfDay",
    "SessionPattern",
    "WritingPattern",
    "ProcessStage",
    "StrugglePoint",
    "ProductivePeriod",
    "empty_time_distribution",
    "WritingProcessInsights",
    "PatternSnapshot",
    "CrossAssignmentSummary",
]
