"""
Intervention Data Classes for DraftPulse.

An Intervention is a nudge surfaced to a writer. InterventionHistory is the
read-only snapshot of prior nudges the decision engine consults for cooldown,
hourly cap and threshold adaptation. The engine never writes history itself;
the caller persists deliveries and responses through the logging collaborator.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class InterventionType(StrEnum):
    """Kinds of nudge content."""

    GENTLE_PROMPT = "gentle_prompt"
    PROCESS_QUESTION = "process_question"
    RESOURCE_SUGGESTION = "resource_suggestion"
    BREAK_SUGGESTION = "break_suggestion"
    ENCOURAGEMENT = "encouragement"


class InterventionPriority(StrEnum):
    """Nudge urgency."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DecisionOutcome(StrEnum):
    """Why the engine did or did not intervene."""

    INTERVENE = "intervene"
    COOLDOWN = "cooldown"
    RATE_LIMITED = "rate_limited"
    NOT_ELIGIBLE = "not_eligible"


@dataclass(frozen=True)
class InterventionAction:
    """Optional call-to-action attached to a nudge."""

    text: str
    action: str        # e.g. "take_break", "start_freewrite", "view_peer_examples"


@dataclass(frozen=True)
class Intervention:
    """A nudge the engine decided to surface."""

    type: InterventionType
    priority: InterventionPriority
    message: str
    rationale: str
    detailed_content: str | None = None
    action: InterventionAction | None = None
    dismissable: bool = True
    expires_in_seconds: int | None = None
    id: str = field(default_factory=lambda: f"intervention_{uuid.uuid4().hex}")


@dataclass(frozen=True)
class InterventionHistory:
    """Snapshot of prior nudges for one writer and assignment."""

    last_intervention_at: datetime | None = None
    intervention_count: int = 0          # deliveries in the trailing window
    accepted_count: int = 0
    dismissed_count: int = 0
    effectiveness: float = 50.0          # 0-100

    @property
    def acceptance_rate(self) -> float:
        """Share of windowed nudges that were accepted; neutral 0.5 with no history."""
        if self.intervention_count <= 0:
            return 0.5
        return self.accepted_count / self.intervention_count


@dataclass(frozen=True)
class InterventionDecision:
    """Decision engine result."""

    outcome: DecisionOutcome
    reason: str
    intervention: Intervention | None = None
    cooldown_minutes: float | None = None
    threshold: float | None = None

    @property
    def should_intervene(self) -> bool:
        return self.outcome == DecisionOutcome.INTERVENE


@dataclass(frozen=True)
class DeliveredIntervention:
    """A past delivery as seen by educator-facing summaries."""

    intervention_type: InterventionType
    priority: InterventionPriority
    message: str
    delivered_at: datetime


@dataclass
class InterventionInsights:
    """Educator-facing summary of recent nudges for one writer."""

    effectiveness_score: float
    recommendations: list[str] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)
    recent: list[DeliveredIntervention] = field(default_factory=list)


__all__ = [
    "InterventionType",
    "InterventionPriority",
    "DecisionOutcome",
    "InterventionAction",
    "Intervention",
    "InterventionHistory",
    "InterventionDecision",
    "DeliveredIntervention",
    "InterventionInsights",
]
