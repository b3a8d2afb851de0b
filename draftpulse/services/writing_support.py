"""
Writing Support Service for DraftPulse.

Facade the enclosing application calls. It wires the external
collaborators around the pure analysis core in a fixed order:

    fetch profile + history -> extract -> classify -> decide
        -> log delivery -> compose alerts -> dispatch

Per-writer serialization is the caller's job: two concurrent
evaluate_session calls for the same writer can both pass the cooldown
check because neither delivery has been logged yet.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from draftpulse.config.settings import EngineSettings
from draftpulse.models.alert import AlertPreferences, EducatorAlert
from draftpulse.models.cognition import BehavioralIndicators, LoadEstimate, StruggleAssessment
from draftpulse.models.insights import WritingProcessInsights
from draftpulse.models.intervention import InterventionDecision
from draftpulse.models.profile import WritingStage, coerce_profile
from draftpulse.models.telemetry import TelemetryRecord
from draftpulse.services.alert_composer import AlertComposer
from draftpulse.services.alert_dispatcher import AlertDispatcher, DispatchResult
from draftpulse.services.cognition import LoadClassifier, SignalExtractor
from draftpulse.services.collaborators import (
    InterventionHistorySource,
    InterventionLogger,
    SessionHistorySource,
    WriterProfileSource,
)
from draftpulse.services.intervention_engine import InterventionDecisionEngine
from draftpulse.services.process_analyzer import WritingProcessAnalyzer

logger = structlog.get_logger(__name__)


@dataclass
class SessionEvaluation:
    """Everything computed for one live session evaluation."""

    indicators: BehavioralIndicators
    estimate: LoadEstimate
    decision: InterventionDecision
    recommendations: list[str] = field(default_factory=list)
    struggle: StruggleAssessment | None = None
    alerts: list[EducatorAlert] = field(default_factory=list)
    dispatch_results: list[DispatchResult] = field(default_factory=list)


@dataclass
class AssignmentAnalysis:
    """Process insights for one assignment plus the alerts they produced."""

    insights: WritingProcessInsights
    alerts: list[EducatorAlert] = field(default_factory=list)
    dispatch_results: list[DispatchResult] = field(default_factory=list)


class WritingSupportService:
    """
    Orchestrates real-time nudges and educator alerts.

    Usage:
        store = InterventionLogStore(db)
        service = WritingSupportService(
            profiles=profile_client,
            history=store,
            sessions=session_repo,
            intervention_log=store,
            dispatcher=AlertDispatcher(delivery),
        )
        evaluation = await service.evaluate_session("writer-1", "essay-2", record)
    """

    def __init__(
        self,
        profiles: WriterProfileSource,
        history: InterventionHistorySource,
        sessions: SessionHistorySource,
        intervention_log: InterventionLogger,
        dispatcher: AlertDispatcher | None = None,
        settings: EngineSettings | None = None,
    ):
        self.profiles = profiles
        self.history = history
        self.sessions = sessions
        self.intervention_log = intervention_log
        self.dispatcher = dispatcher
        self.settings = settings or EngineSettings()

        self.extractor = SignalExtractor()
        self.classifier = LoadClassifier()
        self.engine = InterventionDecisionEngine(self.settings)
        self.analyzer = WritingProcessAnalyzer(self.extractor, self.classifier)
        self.composer = AlertComposer()

    async def evaluate_session(
        self,
        writer_id: str,
        assignment_id: str,
        record: TelemetryRecord | None,
        document_id: str | None = None,
        stage: WritingStage | str | None = None,
        educator_id: str | None = None,
        preferences: AlertPreferences | None = None,
        prior_cursor_positions: Sequence[int] | None = None,
        now: datetime | None = None,
    ) -> SessionEvaluation:
        """
        Evaluate the live session and act on the decision.

        Args:
            writer_id: Writer identifier
            assignment_id: Assignment identifier
            record: Current session telemetry (None when nothing was captured)
            document_id: Document the nudge is shown in
            stage: Writing stage reported by the editor
            educator_id: Educator to alert (alerts are composed but not sent when None)
            preferences: Educator alert preferences
            prior_cursor_positions: Cursor positions from before this record
            now: Evaluation time

        Returns:
            SessionEvaluation
        """
        now = now or datetime.now(UTC)
        profile = coerce_profile(await self.profiles.fetch_writer_profile(writer_id))
        history = await self.history.fetch_intervention_history(
            writer_id, assignment_id, self.settings.history_window_minutes
        )

        indicators = self.extractor.extract(record, prior_cursor_positions)
        estimate = self.classifier.classify(indicators, profile)
        decision = self.engine.decide(estimate, indicators, history, profile, stage, now)

        if decision.should_intervene and decision.intervention is not None:
            await self.intervention_log.log_intervention_delivery(
                decision.intervention, writer_id, assignment_id, document_id
            )

        alerts = self.composer.prioritize([
            self.composer.compose_cognitive_overload(
                writer_id, estimate, decision.intervention, assignment_id
            ),
            self.composer.compose_intervention_needed(
                writer_id,
                decision,
                assignment_id,
                emotional_state=profile.emotional_state if profile else None,
            ),
        ])
        evaluation = SessionEvaluation(
            indicators=indicators,
            estimate=estimate,
            decision=decision,
            recommendations=self.classifier.recommendations_for(estimate, indicators),
            struggle=self.classifier.classify_struggle(estimate, indicators),
            alerts=alerts,
            dispatch_results=await self._dispatch(alerts, educator_id, preferences, now),
        )
        logger.info(
            "session_evaluated",
            writer_id=writer_id,
            assignment_id=assignment_id,
            load_level=estimate.level.value,
            outcome=decision.outcome.value,
            alert_count=len(alerts),
        )
        return evaluation

    async def record_response(
        self,
        intervention_id: str,
        writer_id: str,
        assignment_id: str,
        accepted: bool,
        action_taken: str | None = None,
    ) -> None:
        """
        Forward a writer's response to the log.

        Raises:
            InterventionNotFoundError: If the intervention was never delivered
        """
        await self.intervention_log.log_intervention_response(
            intervention_id, writer_id, assignment_id, accepted, action_taken
        )

    async def analyze_assignment(
        self,
        writer_id: str,
        assignment_id: str,
        educator_id: str | None = None,
        preferences: AlertPreferences | None = None,
        now: datetime | None = None,
    ) -> AssignmentAnalysis:
        """Rebuild process insights for an assignment and alert on persistent struggles."""
        now = now or datetime.now(UTC)
        profile = coerce_profile(await self.profiles.fetch_writer_profile(writer_id))
        sessions = await self.sessions.fetch_session_history(writer_id, assignment_id)

        insights = self.analyzer.analyze(writer_id, assignment_id, sessions, profile)
        alerts = self.composer.prioritize([self.composer.compose_writing_struggle(insights)])
        return AssignmentAnalysis(
            insights=insights,
            alerts=alerts,
            dispatch_results=await self._dispatch(alerts, educator_id, preferences, now),
        )

    async def _dispatch(
        self,
        alerts: list[EducatorAlert],
        educator_id: str | None,
        preferences: AlertPreferences | None,
        now: datetime,
    ) -> list[DispatchResult]:
        if self.dispatcher is None or educator_id is None:
            return []
        return [
            await self.dispatcher.dispatch(alert, educator_id, preferences, now)
            for alert in alerts
        ]


__all__ = ["WritingSupportService", "SessionEvaluation", "AssignmentAnalysis"]
