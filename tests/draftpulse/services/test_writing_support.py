"""
Tests for the WritingSupportService facade.

Tests cover:
- Live session evaluation end to end with mocked collaborators
- Delivery logging only for intervene decisions
- Alert composition and dispatch
- Response forwarding
- Assignment analysis alerts
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from draftpulse.lib.exceptions import InterventionNotFoundError
from draftpulse.models.alert import AlertPriority, AlertType
from draftpulse.models.cognition import LoadLevel, StruggleType
from draftpulse.models.intervention import (
    DecisionOutcome,
    InterventionHistory,
    InterventionPriority,
    InterventionType,
)
from draftpulse.models.insights import SessionTag
from draftpulse.services.alert_dispatcher import AlertDispatcher, DispatchResult
from draftpulse.services.writing_support import WritingSupportService

WRITER = "writer-1"
ASSIGNMENT = "essay-1"


@pytest.fixture
def profiles():
    source = MagicMock()
    source.fetch_writer_profile = AsyncMock(return_value=None)
    return source


@pytest.fixture
def history():
    source = MagicMock()
    source.fetch_intervention_history = AsyncMock(return_value=InterventionHistory())
    return source


@pytest.fixture
def sessions():
    source = MagicMock()
    source.fetch_session_history = AsyncMock(return_value=[])
    return source


@pytest.fixture
def intervention_log():
    log = MagicMock()
    log.log_intervention_delivery = AsyncMock(return_value=None)
    log.log_intervention_response = AsyncMock(return_value=None)
    return log


@pytest.fixture
def delivery():
    transport = MagicMock()
    transport.deliver_alert = AsyncMock(return_value=None)
    transport.deliver_batch = AsyncMock(return_value=None)
    return transport


@pytest.fixture
def service(profiles, history, sessions, intervention_log, delivery):
    return WritingSupportService(
        profiles=profiles,
        history=history,
        sessions=sessions,
        intervention_log=intervention_log,
        dispatcher=AlertDispatcher(delivery),
    )


@pytest.fixture
def overloaded_record(record_factory, thrashing_positions):
    """Heavy rewriting, slow output and a jumping cursor."""
    return record_factory(
        characters_added=100,
        characters_deleted=350,
        words_added=30,
        words_deleted=10,
        duration_seconds=10 * 60,
        cursor_positions=thrashing_positions,
    )


# =============================================================================
# Live Session Evaluation
# =============================================================================


class TestEvaluateSession:

    @pytest.mark.asyncio
    async def test_overloaded_session_intervenes(
        self, service, history, intervention_log, overloaded_record, now
    ):
        evaluation = await service.evaluate_session(
            WRITER, ASSIGNMENT, overloaded_record, document_id="doc-1", now=now
        )

        assert evaluation.estimate.level == LoadLevel.OVERLOAD
        assert evaluation.estimate.confidence == pytest.approx(0.7)
        assert evaluation.decision.outcome == DecisionOutcome.INTERVENE
        assert evaluation.decision.reason == "overload load detected, 70% confidence"

        intervention = evaluation.decision.intervention
        assert intervention.type == InterventionType.PROCESS_QUESTION
        assert intervention.priority == InterventionPriority.HIGH

        history.fetch_intervention_history.assert_awaited_once_with(WRITER, ASSIGNMENT, 60)
        intervention_log.log_intervention_delivery.assert_awaited_once_with(
            intervention, WRITER, ASSIGNMENT, "doc-1"
        )

    @pytest.mark.asyncio
    async def test_overloaded_session_alerts_and_struggle(self, service, overloaded_record, now):
        evaluation = await service.evaluate_session(WRITER, ASSIGNMENT, overloaded_record, now=now)

        # Overload at 70% confidence is below the educator alert bar
        assert [alert.type for alert in evaluation.alerts] == [AlertType.INTERVENTION_NEEDED]
        assert evaluation.alerts[0].priority == AlertPriority.HIGH
        assert evaluation.dispatch_results == []

        assert evaluation.struggle.struggle_type == StruggleType.COGNITIVE_OVERLOAD
        assert evaluation.struggle.severity == "high"
        assert evaluation.recommendations[-2:] == [
            "Perfectionism can slow progress - try moving forward",
            "Focus on one section at a time",
        ]

    @pytest.mark.asyncio
    async def test_frustrated_profile_raises_confidence(
        self, service, profiles, overloaded_record, now
    ):
        profiles.fetch_writer_profile.return_value = {"emotionalState": "frustrated"}
        evaluation = await service.evaluate_session(WRITER, ASSIGNMENT, overloaded_record, now=now)

        assert evaluation.estimate.confidence == pytest.approx(0.8)
        assert {alert.type for alert in evaluation.alerts} == {
            AlertType.COGNITIVE_OVERLOAD,
            AlertType.INTERVENTION_NEEDED,
        }
        needed = next(a for a in evaluation.alerts if a.type == AlertType.INTERVENTION_NEEDED)
        assert needed.message.endswith("Current state: frustrated.")

    @pytest.mark.asyncio
    async def test_alerts_dispatched_to_educator(
        self, service, delivery, overloaded_record, now
    ):
        evaluation = await service.evaluate_session(
            WRITER, ASSIGNMENT, overloaded_record, educator_id="educator-1", now=now
        )
        assert evaluation.dispatch_results == [DispatchResult.BATCHED]
        assert service.dispatcher.pending("educator-1")["batched"] == 1
        delivery.deliver_alert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_calm_session_does_not_intervene(
        self, service, intervention_log, record_factory, now
    ):
        evaluation = await service.evaluate_session(WRITER, ASSIGNMENT, record_factory(), now=now)

        assert evaluation.estimate.level == LoadLevel.OPTIMAL
        assert evaluation.decision.outcome == DecisionOutcome.NOT_ELIGIBLE
        assert evaluation.alerts == []
        assert evaluation.struggle is None
        intervention_log.log_intervention_delivery.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_telemetry(self, service, intervention_log, now):
        evaluation = await service.evaluate_session(WRITER, ASSIGNMENT, None, now=now)

        assert evaluation.indicators.insufficient_data
        assert evaluation.estimate.confidence == pytest.approx(0.3)
        assert evaluation.decision.should_intervene is False
        intervention_log.log_intervention_delivery.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cooldown_from_history(self, service, history, intervention_log, overloaded_record, now):
        history.fetch_intervention_history.return_value = InterventionHistory(
            last_intervention_at=now - timedelta(minutes=1), intervention_count=1
        )
        evaluation = await service.evaluate_session(WRITER, ASSIGNMENT, overloaded_record, now=now)

        assert evaluation.decision.outcome == DecisionOutcome.COOLDOWN
        assert evaluation.alerts == []
        intervention_log.log_intervention_delivery.assert_not_awaited()


# =============================================================================
# Responses
# =============================================================================


class TestRecordResponse:

    @pytest.mark.asyncio
    async def test_forwards_to_log(self, service, intervention_log):
        await service.record_response("intervention_1", WRITER, ASSIGNMENT, True, "take_break")
        intervention_log.log_intervention_response.assert_awaited_once_with(
            "intervention_1", WRITER, ASSIGNMENT, True, "take_break"
        )

    @pytest.mark.asyncio
    async def test_unknown_intervention_propagates(self, service, intervention_log):
        intervention_log.log_intervention_response.side_effect = InterventionNotFoundError("nope")
        with pytest.raises(InterventionNotFoundError):
            await service.record_response("nope", WRITER, ASSIGNMENT, False)


# =============================================================================
# Assignment Analysis
# =============================================================================


class TestAnalyzeAssignment:

    @pytest.mark.asyncio
    async def test_persistent_struggle_alert(self, service, sessions, series_factory, now):
        sessions.fetch_session_history.return_value = series_factory(
            4,
            words_added=5,
            words_deleted=0,
            characters_added=30,
            characters_deleted=0,
            duration_seconds=10 * 60,
        )
        analysis = await service.analyze_assignment(
            WRITER, ASSIGNMENT, educator_id="educator-1", now=now
        )

        assert all(sp.tag == SessionTag.STAGNANT for sp in analysis.insights.session_patterns)
        assert [alert.type for alert in analysis.alerts] == [AlertType.WRITING_STRUGGLE]
        assert analysis.alerts[0].priority == AlertPriority.MEDIUM
        assert analysis.dispatch_results == [DispatchResult.BATCHED]
        sessions.fetch_session_history.assert_awaited_once_with(WRITER, ASSIGNMENT)

    @pytest.mark.asyncio
    async def test_no_sessions(self, service, now):
        analysis = await service.analyze_assignment(WRITER, ASSIGNMENT, now=now)
        assert analysis.insights.process_recommendations == ["Encourage writer to begin writing"]
        assert analysis.alerts == []
        assert analysis.dispatch_results == []
