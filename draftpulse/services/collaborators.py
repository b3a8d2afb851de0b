"""
External Collaborator Protocols for DraftPulse.

The analysis core performs no I/O. Everything it reads (profiles, history,
sessions) and everything it emits (intervention log events, educator
alerts) goes through these interfaces, implemented by the enclosing service.

Reference implementations:
- InterventionLogStore (services/intervention_log.py): history + logging
- AlertDispatcher (services/alert_dispatcher.py): wraps an AlertDelivery
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from draftpulse.models.alert import AlertBatch, EducatorAlert
from draftpulse.models.intervention import Intervention, InterventionHistory
from draftpulse.models.profile import WriterProfileSnapshot
from draftpulse.models.telemetry import TelemetryRecord


class WriterProfileSource(Protocol):
    """Read-only access to the learner-profiling service."""

    async def fetch_writer_profile(
        self,
        writer_id: str,
    ) -> WriterProfileSnapshot | Mapping[str, Any] | None:
        """Return the writer's profile, or None when there is none."""
        ...


class InterventionHistorySource(Protocol):
    """Read-only access to prior nudges."""

    async def fetch_intervention_history(
        self,
        writer_id: str,
        assignment_id: str,
        window_minutes: int,
    ) -> InterventionHistory:
        """Summarize nudges in the trailing window (last delivery may be older)."""
        ...


class SessionHistorySource(Protocol):
    """Read-only access to captured sessions."""

    async def fetch_session_history(
        self,
        writer_id: str,
        assignment_id: str,
    ) -> Sequence[TelemetryRecord]:
        """All sessions of one assignment, oldest first."""
        ...


class InterventionLogger(Protocol):
    """Durable write-back the decision engine's rate limiting depends on."""

    async def log_intervention_delivery(
        self,
        intervention: Intervention,
        writer_id: str,
        assignment_id: str,
        document_id: str | None,
    ) -> None:
        ...

    async def log_intervention_response(
        self,
        intervention_id: str,
        writer_id: str,
        assignment_id: str,
        accepted: bool,
        action_taken: str | None = None,
    ) -> None:
        """Record the writer's response; raises InterventionNotFoundError for unknown ids."""
        ...


class AlertDelivery(Protocol):
    """Transport to educators (notification table, email, chat, ...)."""

    async def deliver_alert(self, alert: EducatorAlert, educator_id: str) -> None:
        ...

    async def deliver_batch(self, batch: AlertBatch) -> None:
        ...


__all__ = [
    "WriterProfileSource",
    "InterventionHistorySource",
    "SessionHistorySource",
    "InterventionLogger",
    "AlertDelivery",
]
