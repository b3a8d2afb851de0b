"""
Writing Session Telemetry Models for DraftPulse.

A TelemetryRecord is one writing session's raw activity as captured by the
editor client: character/word counters, action timestamps, discrete edit
operations and (optionally) cursor positions. Records are immutable once
captured and are validated with pydantic because they arrive from outside
the process. Both snake_case and the editor's camelCase keys are accepted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EditOperation(BaseModel):
    """A single discrete edit in the document."""

    model_config = ConfigDict(
        frozen=True, extra="ignore", alias_generator=to_camel, populate_by_name=True
    )

    type: Literal["add", "delete"]
    length: int = Field(0, ge=0)
    position: int = 0
    timestamp: float | None = None  # ms since epoch


class TelemetryRecord(BaseModel):
    """One writing session's raw activity."""

    model_config = ConfigDict(
        frozen=True, extra="ignore", alias_generator=to_camel, populate_by_name=True
    )

    session_id: str | None = None
    started_at: datetime | None = None
    duration_seconds: float = Field(0.0, ge=0)

    characters_added: int = Field(0, ge=0)
    characters_deleted: int = Field(0, ge=0)
    words_added: int = Field(0, ge=0)
    words_deleted: int = Field(0, ge=0)
    pause_count: int = Field(0, ge=0)
    copy_paste_events: int = Field(0, ge=0)

    timestamps: tuple[float, ...] = ()  # ms since epoch, in capture order
    edits: tuple[EditOperation, ...] = ()
    cursor_positions: tuple[int, ...] | None = None

    @property
    def duration_minutes(self) -> float:
        """Session length in minutes."""
        return self.duration_seconds / 60

    @property
    def has_activity(self) -> bool:
        """
        True when the editor captured anything at all for this session.

        Elapsed time alone counts: an open session with no output is the
        stagnation case, not missing data.
        """
        return bool(
            self.duration_seconds
            or self.characters_added
            or self.characters_deleted
            or self.words_added
            or self.words_deleted
            or self.timestamps
            or self.edits
            or self.cursor_positions
        )


__all__ = ["EditOperation", "TelemetryRecord"]
