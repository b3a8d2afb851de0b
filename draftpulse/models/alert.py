"""
Educator Alert Data Classes for DraftPulse.

Alerts are built by the AlertComposer and handed to a delivery collaborator.
Delivery preferences (enabled types, threshold, quiet hours, aggregation)
live here too because the dispatcher consumes them per educator.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class AlertType(StrEnum):
    COGNITIVE_OVERLOAD = "cognitive_overload"
    WRITING_STRUGGLE = "writing_struggle"
    INTERVENTION_NEEDED = "intervention_needed"
    PATTERN_CHANGE = "pattern_change"
    DEADLINE_RISK = "deadline_risk"
    BREAKTHROUGH_MOMENT = "breakthrough_moment"
    SUPPORT_REQUEST = "support_request"


class AlertPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK: dict[AlertPriority, int] = {
    AlertPriority.LOW: 0,
    AlertPriority.MEDIUM: 1,
    AlertPriority.HIGH: 2,
    AlertPriority.URGENT: 3,
}


class AlertCategory(StrEnum):
    IMMEDIATE_ATTENTION = "immediate_attention"
    ACADEMIC_SUPPORT = "academic_support"
    POSITIVE_REINFORCEMENT = "positive_reinforcement"
    INSIGHT = "insight"


class Aggregation(StrEnum):
    IMMEDIATE = "immediate"
    BATCHED = "batched"
    SUMMARY = "summary"


@dataclass(frozen=True)
class ActionItem:
    """A follow-up the educator can trigger from the alert."""

    label: str
    action: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class EducatorAlert:
    """A candidate alert for a supervising educator."""

    type: AlertType
    priority: AlertPriority
    category: AlertCategory
    writer_id: str
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    action_items: list[ActionItem] = field(default_factory=list)
    assignment_id: str | None = None
    course_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class QuietHours:
    """Hour-of-day window (24h clock); start > end wraps past midnight."""

    start: int
    end: int

    def contains(self, hour: int) -> bool:
        if self.start <= self.end:
            return self.start <= hour < self.end
        return hour >= self.start or hour < self.end


@dataclass(frozen=True)
class AlertPreferences:
    """Per-educator delivery preferences."""

    educator_id: str
    enabled_types: frozenset[AlertType] = frozenset(AlertType)
    priority_threshold: AlertPriority = AlertPriority.MEDIUM
    quiet_hours: QuietHours | None = None
    aggregation: Aggregation = Aggregation.BATCHED


@dataclass
class AlertBatch:
    """Alerts flushed together for one educator."""

    educator_id: str
    alerts: list[EducatorAlert]
    summary: str
    priority: AlertPriority


__all__ = [
    "AlertType",
    "AlertPriority",
    "AlertCategory",
    "Aggregation",
    "ActionItem",
    "EducatorAlert",
    "QuietHours",
    "AlertPreferences",
    "AlertBatch",
]
