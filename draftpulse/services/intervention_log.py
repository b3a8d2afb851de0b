"""
Intervention Log Store for DraftPulse.

SQLAlchemy-backed implementation of the intervention collaborators:
- fetch_intervention_history: windowed InterventionHistory snapshot
- log_intervention_delivery / log_intervention_response: append-only events
- record_follow_up: words written after a nudge, feeding effectiveness

The decision engine's cooldown and hourly cap only see what was logged
here, so deliveries must be logged before the next decision call.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from draftpulse.lib.exceptions import InterventionNotFoundError
from draftpulse.models.intervention import (
    DeliveredIntervention,
    Intervention,
    InterventionHistory,
    InterventionPriority,
    InterventionType,
)
from draftpulse.models.intervention_log import InterventionLogEntry, LogEntryKind
from draftpulse.services.intervention_engine import InterventionDecisionEngine

logger = structlog.get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class InterventionLogStore:
    """
    Persists nudge deliveries and responses.

    Usage:
        store = InterventionLogStore(db)
        history = await store.fetch_intervention_history("writer-1", "essay-2", 60)
        await store.log_intervention_delivery(intervention, "writer-1", "essay-2", "doc-9")
    """

    def __init__(self, db: Session, engine: InterventionDecisionEngine | None = None):
        """
        Initialize the store.

        Args:
            db: SQLAlchemy database session
            engine: Used for effectiveness scoring (default engine when omitted)
        """
        self.db = db
        self.engine = engine or InterventionDecisionEngine()

    async def fetch_intervention_history(
        self,
        writer_id: str,
        assignment_id: str,
        window_minutes: int,
        now: datetime | None = None,
    ) -> InterventionHistory:
        """
        Summarize nudges for one writer and assignment.

        Counts cover the trailing window; the last delivery time does not.
        """
        now = now or datetime.now(UTC)
        since = now - timedelta(minutes=window_minutes)

        last_delivered = self.db.execute(
            select(func.max(InterventionLogEntry.created_at)).where(
                InterventionLogEntry.writer_id == writer_id,
                InterventionLogEntry.assignment_id == assignment_id,
                InterventionLogEntry.kind == LogEntryKind.DELIVERY.value,
            )
        ).scalar()

        entries = self.db.execute(
            select(InterventionLogEntry).where(
                InterventionLogEntry.writer_id == writer_id,
                InterventionLogEntry.assignment_id == assignment_id,
                InterventionLogEntry.created_at >= since,
            )
        ).scalars().all()

        deliveries = [e for e in entries if e.kind == LogEntryKind.DELIVERY.value]
        responses = [e for e in entries if e.kind == LogEntryKind.RESPONSE.value]

        history = InterventionHistory(
            last_intervention_at=_as_utc(last_delivered) if last_delivered else None,
            intervention_count=len(deliveries),
            accepted_count=sum(1 for r in responses if r.accepted),
            dismissed_count=sum(1 for r in responses if r.accepted is False),
            effectiveness=self.engine.score_effectiveness([d.follow_up_words for d in deliveries]),
        )
        logger.debug(
            "intervention_history_fetched",
            writer_id=writer_id,
            assignment_id=assignment_id,
            count=history.intervention_count,
        )
        return history

    async def log_intervention_delivery(
        self,
        intervention: Intervention,
        writer_id: str,
        assignment_id: str,
        document_id: str | None,
        delivered_at: datetime | None = None,
    ) -> None:
        entry = InterventionLogEntry(
            intervention_id=intervention.id,
            writer_id=writer_id,
            assignment_id=assignment_id,
            document_id=document_id,
            kind=LogEntryKind.DELIVERY.value,
            intervention_type=intervention.type.value,
            priority=intervention.priority.value,
            message=intervention.message,
            created_at=delivered_at or datetime.now(UTC),
        )
        self.db.add(entry)
        self.db.commit()
        logger.info(
            "intervention_delivered",
            intervention_id=intervention.id,
            writer_id=writer_id,
            assignment_id=assignment_id,
            type=intervention.type.value,
        )

    async def log_intervention_response(
        self,
        intervention_id: str,
        writer_id: str,
        assignment_id: str,
        accepted: bool,
        action_taken: str | None = None,
        responded_at: datetime | None = None,
    ) -> None:
        """
        Record the writer's response to a delivered nudge.

        Raises:
            InterventionNotFoundError: If no delivery exists for the id
        """
        delivery = self._get_delivery(intervention_id)
        entry = InterventionLogEntry(
            intervention_id=intervention_id,
            writer_id=writer_id,
            assignment_id=assignment_id,
            document_id=delivery.document_id,
            kind=LogEntryKind.RESPONSE.value,
            intervention_type=delivery.intervention_type,
            accepted=accepted,
            action_taken=action_taken,
            created_at=responded_at or datetime.now(UTC),
        )
        self.db.add(entry)
        self.db.commit()
        logger.info(
            "intervention_response_logged",
            intervention_id=intervention_id,
            accepted=accepted,
            action_taken=action_taken,
        )

    async def record_follow_up(self, intervention_id: str, words_written: int) -> None:
        """
        Attach the words written after a nudge to its delivery.

        Raises:
            InterventionNotFoundError: If no delivery exists for the id
        """
        delivery = self._get_delivery(intervention_id)
        delivery.follow_up_words = max(0, words_written)
        self.db.commit()

    async def recent_deliveries(
        self,
        writer_id: str,
        assignment_id: str | None = None,
        limit: int = 10,
    ) -> list[DeliveredIntervention]:
        """Most recent deliveries for a writer, newest first."""
        stmt = select(InterventionLogEntry).where(
            InterventionLogEntry.writer_id == writer_id,
            InterventionLogEntry.kind == LogEntryKind.DELIVERY.value,
        )
        if assignment_id is not None:
            stmt = stmt.where(InterventionLogEntry.assignment_id == assignment_id)
        stmt = stmt.order_by(InterventionLogEntry.created_at.desc()).limit(limit)

        return [
            DeliveredIntervention(
                intervention_type=InterventionType(entry.intervention_type),
                priority=InterventionPriority(entry.priority),
                message=entry.message or "",
                delivered_at=_as_utc(entry.created_at),
            )
            for entry in self.db.execute(stmt).scalars().all()
        ]

    def _get_delivery(self, intervention_id: str) -> InterventionLogEntry:
        delivery = self.db.execute(
            select(InterventionLogEntry).where(
                InterventionLogEntry.intervention_id == intervention_id,
                InterventionLogEntry.kind == LogEntryKind.DELIVERY.value,
            )
        ).scalars().first()
        if delivery is None:
            raise InterventionNotFoundError(intervention_id)
        return delivery


__all__ = ["InterventionLogStore"]
