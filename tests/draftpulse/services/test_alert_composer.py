"""
Tests for the AlertComposer.

Tests cover:
- Trigger conditions for analysis-driven alerts
- Message templates and priority mapping
- Externally triggered alerts (pattern change, breakthrough, deadline, support)
- Prioritized ordering
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from draftpulse.models.alert import AlertCategory, AlertPriority, AlertType
from draftpulse.models.cognition import LoadEstimate, LoadLevel
from draftpulse.models.insights import (
    PatternType,
    SessionTag,
    StrugglePoint,
    WritingPattern,
    WritingProcessInsights,
)
from draftpulse.models.intervention import (
    DecisionOutcome,
    Intervention,
    InterventionDecision,
    InterventionPriority,
    InterventionType,
)
from draftpulse.services.alert_composer import (
    AlertComposer,
    estimate_hours_needed,
    pattern_change_implications,
)


@pytest.fixture
def composer():
    return AlertComposer()


def _overload(confidence: float) -> LoadEstimate:
    return LoadEstimate(
        level=LoadLevel.OVERLOAD,
        confidence=confidence,
        factors=("High deletion rate indicates struggle", "Very slow writing pace", "Moderate session length"),
        score=90,
    )


def _insights(*points: StrugglePoint) -> WritingProcessInsights:
    return WritingProcessInsights(
        writer_id="writer-1",
        assignment_id="essay-1",
        dominant_pattern=WritingPattern(type=PatternType.PERFECTIONIST, confidence=0.6),
        struggle_points=list(points),
        process_recommendations=["Set revision limits for each session"],
        intervention_suggestions=["Offer brainstorming techniques when stuck"],
    )


def _struggle(minutes: float, resolved: bool = False) -> StrugglePoint:
    return StrugglePoint(
        timestamp=None, type=SessionTag.STAGNANT, duration_minutes=minutes, resolved=resolved
    )


def _decision(priority: InterventionPriority) -> InterventionDecision:
    return InterventionDecision(
        outcome=DecisionOutcome.INTERVENE,
        reason="overload load detected, 85% confidence",
        intervention=Intervention(
            type=InterventionType.BREAK_SUGGESTION,
            priority=priority,
            message="Take a break",
            rationale="Overload",
        ),
    )


# =============================================================================
# Analysis-Driven Alerts
# =============================================================================


class TestCognitiveOverload:

    def test_confident_overload(self, composer):
        alert = composer.compose_cognitive_overload("writer-1", _overload(0.85), writer_name="Ana")
        assert alert.type == AlertType.COGNITIVE_OVERLOAD
        assert alert.priority == AlertPriority.HIGH
        assert alert.category == AlertCategory.IMMEDIATE_ATTENTION
        assert alert.message == (
            "Ana is showing signs of cognitive overload with 85% confidence. "
            "Key indicators: High deletion rate indicates struggle, Very slow writing pace."
        )
        assert [item.action for item in alert.action_items] == [
            "view_session", "send_message", "schedule_meeting",
        ]

    def test_low_confidence_is_not_alerted(self, composer):
        assert composer.compose_cognitive_overload("writer-1", _overload(0.7)) is None

    def test_high_load_is_not_alerted(self, composer):
        estimate = LoadEstimate(level=LoadLevel.HIGH, confidence=0.95, factors=("x",))
        assert composer.compose_cognitive_overload("writer-1", estimate) is None

    def test_default_writer_name(self, composer):
        alert = composer.compose_cognitive_overload("writer-1", _overload(0.8))
        assert alert.message.startswith("The writer is showing")


class TestWritingStruggle:

    def test_single_unresolved_struggle_is_quiet(self, composer):
        insights = _insights(_struggle(30), _struggle(30, resolved=True))
        assert composer.compose_writing_struggle(insights) is None

    def test_medium_priority_for_short_struggles(self, composer):
        alert = composer.compose_writing_struggle(_insights(_struggle(20), _struggle(25)))
        assert alert.priority == AlertPriority.MEDIUM
        assert alert.message == (
            "The writer has experienced 2 unresolved struggle periods totaling 45 minutes. "
            "Pattern: perfectionist writer."
        )
        assert alert.action_items[1].data["suggested_support"] == (
            "Offer brainstorming techniques when stuck"
        )

    def test_high_priority_over_an_hour(self, composer):
        alert = composer.compose_writing_struggle(_insights(_struggle(40), _struggle(25)))
        assert alert.priority == AlertPriority.HIGH
        assert alert.data["total_minutes"] == 65


class TestInterventionNeeded:

    @pytest.mark.parametrize(
        "priority,expected",
        [
            (InterventionPriority.LOW, AlertPriority.LOW),
            (InterventionPriority.MEDIUM, AlertPriority.MEDIUM),
            (InterventionPriority.HIGH, AlertPriority.HIGH),
        ],
    )
    def test_priority_follows_intervention(self, composer, priority, expected):
        alert = composer.compose_intervention_needed("writer-1", _decision(priority))
        assert alert.priority == expected

    def test_message_includes_emotional_state(self, composer):
        alert = composer.compose_intervention_needed(
            "writer-1", _decision(InterventionPriority.HIGH), emotional_state="frustrated"
        )
        assert alert.message == (
            "The writer requires intervention: overload load detected, 85% confidence. "
            "Current state: frustrated."
        )

    def test_refusal_is_not_alerted(self, composer):
        decision = InterventionDecision(outcome=DecisionOutcome.COOLDOWN, reason="cooldown active")
        assert composer.compose_intervention_needed("writer-1", decision) is None


# =============================================================================
# Externally Triggered Alerts
# =============================================================================


class TestPatternChange:

    def test_perfectionist_to_linear(self, composer):
        alert = composer.compose_pattern_change("writer-1", "perfectionist", "linear", 0.8)
        assert alert.priority == AlertPriority.MEDIUM
        assert alert.category == AlertCategory.INSIGHT
        assert "shifted from perfectionist to linear (80% confidence)" in alert.message
        assert alert.data["implications"] == [
            "Writer may be developing healthier writing habits",
            "Less revision paralysis observed",
        ]

    def test_any_shift_to_recursive(self):
        assert pattern_change_implications(PatternType.BURST, PatternType.RECURSIVE) == [
            "Increased revision activity detected",
            "May benefit from structured revision strategies",
        ]

    def test_unlisted_shift_has_no_implications(self):
        assert pattern_change_implications("steady", "burst") == []


class TestDeadlineRisk:

    @pytest.mark.parametrize(
        "hours,priority",
        [(12, AlertPriority.URGENT), (36, AlertPriority.HIGH), (72, AlertPriority.MEDIUM)],
    )
    def test_priority_by_hours(self, composer, now, hours, priority):
        alert = composer.compose_deadline_risk("writer-1", "essay-1", "Essay", hours, 40, now=now)
        assert alert.priority == priority
        assert alert.expires_at == now + timedelta(hours=hours)

    def test_message_and_estimate(self, composer, now):
        alert = composer.compose_deadline_risk(
            "writer-1", "essay-1", "Climate Essay", 12, 40, writer_name="Ana", now=now
        )
        assert alert.message == (
            'Ana has only completed 40% of "Climate Essay" with 12 hours until deadline.'
        )
        assert alert.data["estimated_hours_needed"] == 3

    @pytest.mark.parametrize("pct,hours", [(0, 5), (90, 1), (95, 1), (100, 0)])
    def test_estimate_hours_needed(self, pct, hours):
        assert estimate_hours_needed(pct) == hours


class TestOtherTriggers:

    def test_breakthrough_is_low_priority_praise(self, composer):
        alert = composer.compose_breakthrough(
            "writer-1", "a 90-minute focused session", strengths=["Strong coherence"]
        )
        assert alert.priority == AlertPriority.LOW
        assert alert.category == AlertCategory.POSITIVE_REINFORCEMENT
        assert alert.title == "Writer Breakthrough Detected!"
        assert alert.data["strengths"] == ["Strong coherence"]

    def test_support_request(self, composer):
        alert = composer.compose_support_request("writer-1", "feedback", "Is my thesis clear?")
        assert alert.priority == AlertPriority.HIGH
        assert alert.message == 'The writer has requested help: "Is my thesis clear?"'
        assert alert.data["request_type"] == "feedback"


# =============================================================================
# Ordering
# =============================================================================


class TestPrioritize:

    def test_orders_by_priority_then_age(self, composer, now):
        older = composer.compose_deadline_risk("w1", "a", "A", 72, 10, now=now - timedelta(hours=1))
        newer = composer.compose_deadline_risk("w2", "a", "A", 72, 10, now=now)
        urgent = composer.compose_deadline_risk("w3", "a", "A", 2, 10, now=now)
        low = composer.compose_breakthrough("w4", "progress")

        queue = composer.prioritize([low, None, newer, urgent, older])
        assert queue == [urgent, older, newer, low]

    def test_drops_missing_candidates(self, composer):
        assert composer.prioritize([None, None]) == []
