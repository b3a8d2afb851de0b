"""
Educator Alert Composer for DraftPulse.

Turns analysis results and explicit external triggers into EducatorAlert
candidates with fixed templates:
- Cognitive overload (overload with confidence >= 0.8)
- Writing struggle (two or more unresolved struggle points)
- Intervention needed (an intervene decision)
- Pattern change, breakthrough, deadline risk, support request (triggered externally)

The composer never filters, deduplicates or batches. Delivery policy belongs
to the dispatcher, which consumes prioritize() output as an ordered queue.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

import structlog

from draftpulse.lib.numeric import round_half_up
from draftpulse.models.alert import (
    ActionItem,
    AlertCategory,
    AlertPriority,
    AlertType,
    EducatorAlert,
)
from draftpulse.models.cognition import LoadEstimate, LoadLevel
from draftpulse.models.insights import PatternType, WritingProcessInsights
from draftpulse.models.intervention import Intervention, InterventionDecision

logger = structlog.get_logger(__name__)

DEFAULT_WRITER_NAME = "The writer"

# (old, new) -> implications; None matches any other old pattern
_PATTERN_CHANGE_IMPLICATIONS: tuple[tuple[PatternType | None, PatternType, tuple[str, ...]], ...] = (
    (
        PatternType.PERFECTIONIST,
        PatternType.LINEAR,
        ("Writer may be developing healthier writing habits", "Less revision paralysis observed"),
    ),
    (
        PatternType.EXPLORATORY,
        PatternType.LINEAR,
        ("Writer showing more focused approach", "May indicate improved planning skills"),
    ),
    (
        PatternType.LINEAR,
        PatternType.PERFECTIONIST,
        ("Writer may be experiencing increased anxiety", "Consider stress management support"),
    ),
    (
        None,
        PatternType.RECURSIVE,
        ("Increased revision activity detected", "May benefit from structured revision strategies"),
    ),
)


def pattern_change_implications(old: PatternType | str, new: PatternType | str) -> list[str]:
    """What a shift between two dominant patterns may mean for the educator."""
    old, new = PatternType(old), PatternType(new)
    implications: list[str] = []
    for from_pattern, to_pattern, lines in _PATTERN_CHANGE_IMPLICATIONS:
        if to_pattern != new:
            continue
        if from_pattern is None and old == new:
            continue
        if from_pattern is not None and from_pattern != old:
            continue
        implications.extend(lines)
    return implications


def estimate_hours_needed(completion_percentage: float) -> int:
    """Rough hours of work left, assuming 20% completion per hour."""
    return math.ceil((100 - completion_percentage) / 20)


class AlertComposer:
    """
    Builds educator alert candidates.

    Usage:
        composer = AlertComposer()
        alert = composer.compose_cognitive_overload("writer-1", estimate)
        if alert:
            await dispatcher.dispatch(alert, educator_id, preferences)
    """

    OVERLOAD_MIN_CONFIDENCE = 0.8
    MIN_UNRESOLVED_STRUGGLES = 2
    LONG_STRUGGLE_MINUTES = 60

    def compose_cognitive_overload(
        self,
        writer_id: str,
        estimate: LoadEstimate,
        intervention: Intervention | None = None,
        assignment_id: str | None = None,
        writer_name: str | None = None,
    ) -> EducatorAlert | None:
        """Alert when a writer is in confident overload; None otherwise."""
        if estimate.level != LoadLevel.OVERLOAD or estimate.confidence < self.OVERLOAD_MIN_CONFIDENCE:
            return None

        name = writer_name or DEFAULT_WRITER_NAME
        return EducatorAlert(
            type=AlertType.COGNITIVE_OVERLOAD,
            priority=AlertPriority.HIGH,
            category=AlertCategory.IMMEDIATE_ATTENTION,
            writer_id=writer_id,
            assignment_id=assignment_id,
            title="Writer Experiencing Cognitive Overload",
            message=(
                f"{name} is showing signs of cognitive overload with "
                f"{round_half_up(estimate.confidence * 100)}% confidence. "
                f"Key indicators: {', '.join(estimate.factors[:2])}."
            ),
            data={
                "load_level": estimate.level.value,
                "confidence": estimate.confidence,
                "factors": list(estimate.factors),
                "intervention_id": intervention.id if intervention else None,
            },
            action_items=[
                ActionItem("View Writing Session", "view_session",
                           {"writer_id": writer_id, "assignment_id": assignment_id}),
                ActionItem("Send Encouragement", "send_message",
                           {"writer_id": writer_id, "type": "encouragement"}),
                ActionItem("Schedule Check-in", "schedule_meeting", {"writer_id": writer_id}),
            ],
        )

    def compose_writing_struggle(
        self,
        insights: WritingProcessInsights,
        writer_name: str | None = None,
    ) -> EducatorAlert | None:
        """Alert on persistent unresolved struggles; None below two."""
        unresolved = insights.unresolved_struggles
        if len(unresolved) < self.MIN_UNRESOLVED_STRUGGLES:
            return None

        total_minutes = sum(point.duration_minutes for point in unresolved)
        name = writer_name or DEFAULT_WRITER_NAME
        return EducatorAlert(
            type=AlertType.WRITING_STRUGGLE,
            priority=(
                AlertPriority.HIGH if total_minutes > self.LONG_STRUGGLE_MINUTES
                else AlertPriority.MEDIUM
            ),
            category=AlertCategory.ACADEMIC_SUPPORT,
            writer_id=insights.writer_id,
            assignment_id=insights.assignment_id,
            title="Persistent Writing Struggles Detected",
            message=(
                f"{name} has experienced {len(unresolved)} unresolved struggle periods "
                f"totaling {round_half_up(total_minutes)} minutes. "
                f"Pattern: {insights.dominant_pattern.type.value} writer."
            ),
            data={
                "struggle_count": len(unresolved),
                "total_minutes": total_minutes,
                "dominant_pattern": insights.dominant_pattern.type.value,
                "recommendations": list(insights.process_recommendations),
            },
            action_items=[
                ActionItem("View Process Analysis", "view_analysis",
                           {"writer_id": insights.writer_id, "assignment_id": insights.assignment_id}),
                ActionItem("Provide Scaffolding", "provide_support", {
                    "writer_id": insights.writer_id,
                    "assignment_id": insights.assignment_id,
                    "suggested_support": (
                        insights.intervention_suggestions[0]
                        if insights.intervention_suggestions else None
                    ),
                }),
            ],
        )

    def compose_intervention_needed(
        self,
        writer_id: str,
        decision: InterventionDecision,
        assignment_id: str | None = None,
        emotional_state: str | None = None,
        writer_name: str | None = None,
    ) -> EducatorAlert | None:
        """Mirror an intervene decision to the educator; None for refusals."""
        if not decision.should_intervene or decision.intervention is None:
            return None

        intervention = decision.intervention
        name = writer_name or DEFAULT_WRITER_NAME
        message = f"{name} requires intervention: {decision.reason}."
        if emotional_state:
            message += f" Current state: {emotional_state}."
        return EducatorAlert(
            type=AlertType.INTERVENTION_NEEDED,
            priority=AlertPriority(intervention.priority.value),
            category=AlertCategory.ACADEMIC_SUPPORT,
            writer_id=writer_id,
            assignment_id=assignment_id,
            title="Writer Needs Intervention",
            message=message,
            data={
                "intervention_id": intervention.id,
                "intervention_type": intervention.type.value,
                "reason": decision.reason,
            },
            action_items=[
                ActionItem("Review Intervention", "review_intervention",
                           {"writer_id": writer_id, "intervention_id": intervention.id}),
                ActionItem("Override Automated Support", "manual_intervention",
                           {"writer_id": writer_id, "assignment_id": assignment_id}),
            ],
        )

    def compose_pattern_change(
        self,
        writer_id: str,
        old_pattern: PatternType | str,
        new_pattern: PatternType | str,
        confidence: float,
        course_id: str | None = None,
        writer_name: str | None = None,
    ) -> EducatorAlert:
        old_pattern, new_pattern = PatternType(old_pattern), PatternType(new_pattern)
        name = writer_name or DEFAULT_WRITER_NAME
        return EducatorAlert(
            type=AlertType.PATTERN_CHANGE,
            priority=AlertPriority.MEDIUM,
            category=AlertCategory.INSIGHT,
            writer_id=writer_id,
            course_id=course_id,
            title="Writing Pattern Evolution Detected",
            message=(
                f"{name}'s writing pattern has shifted from {old_pattern.value} to "
                f"{new_pattern.value} ({round_half_up(confidence * 100)}% confidence). "
                "This may indicate growth or a need for support."
            ),
            data={
                "old_pattern": old_pattern.value,
                "new_pattern": new_pattern.value,
                "confidence": confidence,
                "implications": pattern_change_implications(old_pattern, new_pattern),
            },
            action_items=[
                ActionItem("Review Pattern History", "view_patterns",
                           {"writer_id": writer_id, "course_id": course_id}),
                ActionItem("Adjust Support Strategy", "update_support",
                           {"writer_id": writer_id, "new_pattern": new_pattern.value}),
            ],
        )

    def compose_breakthrough(
        self,
        writer_id: str,
        achievement: str,
        assignment_id: str | None = None,
        strengths: Sequence[str] = (),
        writer_name: str | None = None,
    ) -> EducatorAlert:
        name = writer_name or DEFAULT_WRITER_NAME
        return EducatorAlert(
            type=AlertType.BREAKTHROUGH_MOMENT,
            priority=AlertPriority.LOW,
            category=AlertCategory.POSITIVE_REINFORCEMENT,
            writer_id=writer_id,
            assignment_id=assignment_id,
            title="Writer Breakthrough Detected!",
            message=(
                f"{name} has achieved {achievement}. "
                "This represents significant progress from their typical pattern."
            ),
            data={"achievement": achievement, "strengths": list(strengths)},
            action_items=[
                ActionItem("Send Congratulations", "send_message",
                           {"writer_id": writer_id, "type": "congratulations"}),
                ActionItem("Note Achievement", "add_note",
                           {"writer_id": writer_id, "achievement": achievement}),
            ],
        )

    def compose_deadline_risk(
        self,
        writer_id: str,
        assignment_id: str,
        assignment_title: str,
        hours_until_due: float,
        completion_percentage: float,
        writer_name: str | None = None,
        now: datetime | None = None,
    ) -> EducatorAlert:
        """
        Alert on an at-risk deadline.

        Priority is urgent under 24 hours, high under 48, medium otherwise.
        The alert expires when the assignment is due.
        """
        now = now or datetime.now(UTC)
        if hours_until_due < 24:
            priority = AlertPriority.URGENT
        elif hours_until_due < 48:
            priority = AlertPriority.HIGH
        else:
            priority = AlertPriority.MEDIUM

        name = writer_name or DEFAULT_WRITER_NAME
        return EducatorAlert(
            type=AlertType.DEADLINE_RISK,
            priority=priority,
            category=AlertCategory.IMMEDIATE_ATTENTION,
            writer_id=writer_id,
            assignment_id=assignment_id,
            title="Assignment Deadline Risk",
            message=(
                f'{name} has only completed {completion_percentage:g}% of "{assignment_title}" '
                f"with {round_half_up(hours_until_due)} hours until deadline."
            ),
            data={
                "assignment_title": assignment_title,
                "hours_until_due": hours_until_due,
                "completion_percentage": completion_percentage,
                "estimated_hours_needed": estimate_hours_needed(completion_percentage),
            },
            action_items=[
                ActionItem("Contact Writer", "send_message",
                           {"writer_id": writer_id, "urgency": "high"}),
                ActionItem("Consider Extension", "manage_deadline",
                           {"writer_id": writer_id, "assignment_id": assignment_id}),
                ActionItem("Provide Emergency Support", "emergency_support",
                           {"writer_id": writer_id, "assignment_id": assignment_id}),
            ],
            created_at=now,
            expires_at=now + timedelta(hours=hours_until_due),
        )

    def compose_support_request(
        self,
        writer_id: str,
        request_type: str,
        request_message: str,
        assignment_id: str | None = None,
        writer_name: str | None = None,
    ) -> EducatorAlert:
        name = writer_name or DEFAULT_WRITER_NAME
        return EducatorAlert(
            type=AlertType.SUPPORT_REQUEST,
            priority=AlertPriority.HIGH,
            category=AlertCategory.IMMEDIATE_ATTENTION,
            writer_id=writer_id,
            assignment_id=assignment_id,
            title="Writer Support Request",
            message=f'{name} has requested help: "{request_message}"',
            data={"request_type": request_type, "original_message": request_message},
            action_items=[
                ActionItem("Respond to Writer", "send_message",
                           {"writer_id": writer_id, "in_reply_to": request_message}),
                ActionItem("Schedule Meeting", "schedule_meeting",
                           {"writer_id": writer_id, "topic": request_type}),
                ActionItem("View Assignment Progress", "view_progress",
                           {"writer_id": writer_id, "assignment_id": assignment_id}),
            ],
        )

    def prioritize(self, alerts: Sequence[EducatorAlert | None]) -> list[EducatorAlert]:
        """Drop empty results and order by priority (highest first), then age."""
        queue = [alert for alert in alerts if alert is not None]
        queue.sort(key=lambda alert: (-alert.priority.rank, alert.created_at))
        logger.debug("alerts_prioritized", count=len(queue))
        return queue


__all__ = [
    "AlertComposer",
    "DEFAULT_WRITER_NAME",
    "estimate_hours_needed",
    "pattern_change_implications",
]
