"""
Intervention Log Model for DraftPulse.

Append-only record of nudge deliveries, writer responses and follow-up
outcomes. The decision engine never touches this table; it is read through
InterventionLogStore.fetch_intervention_history and written through the
log_* methods after the engine has returned.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from draftpulse.models.base import Base


class LogEntryKind(StrEnum):
    DELIVERY = "delivery"
    RESPONSE = "response"


class InterventionLogEntry(Base):
    """One delivery or response event."""

    __tablename__ = "intervention_log"

    id = Column(Integer, primary_key=True, autoincrement=True)

    intervention_id = Column(String(64), nullable=False, index=True)
    writer_id = Column(String(64), nullable=False)
    assignment_id = Column(String(64), nullable=False)
    document_id = Column(String(64), nullable=True)

    kind = Column(String(16), nullable=False)  # LogEntryKind value

    # Delivery details
    intervention_type = Column(String(32), nullable=True)
    priority = Column(String(16), nullable=True)
    message = Column(Text, nullable=True)
    follow_up_words = Column(Integer, nullable=True)  # words written in the 10 min after delivery

    # Response details
    accepted = Column(Boolean, nullable=True)
    action_taken = Column(String(64), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_intervention_log_writer_assignment", "writer_id", "assignment_id", "created_at"),
    )


__all__ = ["InterventionLogEntry", "LogEntryKind"]
