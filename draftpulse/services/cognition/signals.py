"""
Signal Extraction Service for DraftPulse.

Converts one session's raw telemetry into normalized behavioral indicators:
- Deletion ratio (characters deleted per character added, capped at 5)
- Pause list (gaps of 3s or more between captured actions)
- Revision cycles (add -> delete -> add at nearby positions)
- Cursor thrashing (large jumps among the most recent cursor positions)
- Word production rate, time on task, and progress stagnation

Missing or malformed telemetry never raises; it yields the insufficient-data
sentinel so callers can always hand the result to the load classifier.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from pydantic import ValidationError

from draftpulse.models.cognition import BehavioralIndicators
from draftpulse.models.telemetry import EditOperation, TelemetryRecord

logger = structlog.get_logger(__name__)


class SignalExtractor:
    """
    Derives BehavioralIndicators from a TelemetryRecord.

    Stateless: identical input always produces identical output.

    Usage:
        extractor = SignalExtractor()
        indicators = extractor.extract(record)
    """

    PAUSE_THRESHOLD_MS = 3000
    MAX_DELETION_RATIO = 5.0

    REVISION_POSITION_WINDOW = 50      # positions; first and third edit must be this close
    THRASHING_WINDOW = 10              # most recent cursor positions inspected
    THRASHING_JUMP = 100               # position delta counted as a jump
    THRASHING_SHARE = 0.7              # share of jumps that counts as thrashing

    STAGNATION_MAX_WPM = 2.0
    STAGNATION_MIN_MINUTES = 5.0
    STAGNATION_MAX_WORDS = 50

    def extract(
        self,
        record: TelemetryRecord | None,
        prior_cursor_positions: Sequence[int] | None = None,
    ) -> BehavioralIndicators:
        """
        Compute indicators for one session.

        Args:
            record: The session telemetry (None when the editor sent nothing)
            prior_cursor_positions: Cursor positions captured before this record

        Returns:
            BehavioralIndicators, or the insufficient-data sentinel
        """
        if record is None or not record.has_activity:
            return BehavioralIndicators.insufficient()

        time_on_task = record.duration_minutes
        word_production_rate = self.word_production_rate(record.words_added, time_on_task)

        cursor_positions: list[int] = list(prior_cursor_positions or [])
        cursor_positions.extend(record.cursor_positions or ())

        return BehavioralIndicators(
            deletion_ratio=self.deletion_ratio(record.characters_added, record.characters_deleted),
            pause_patterns=self.pauses(record.timestamps),
            revision_cycles=self.revision_cycles(record.edits),
            cursor_thrashing=self.cursor_thrashing(cursor_positions),
            word_production_rate=word_production_rate,
            time_on_task=time_on_task,
            progress_stagnation=self.is_stagnant(
                word_production_rate, time_on_task, record.words_added
            ),
        )

    def extract_from_payload(
        self,
        payload: Mapping[str, Any] | None,
        prior_cursor_positions: Sequence[int] | None = None,
    ) -> BehavioralIndicators:
        """
        Validate a raw editor payload and extract indicators from it.

        Malformed payloads are logged and downgraded to the sentinel.
        """
        if not payload:
            return BehavioralIndicators.insufficient()
        try:
            record = TelemetryRecord.model_validate(payload)
        except ValidationError as exc:
            logger.warning("telemetry_rejected", errors=exc.error_count())
            return BehavioralIndicators.insufficient()
        return self.extract(record, prior_cursor_positions)

    def deletion_ratio(self, characters_added: int, characters_deleted: int) -> float:
        """Characters deleted per character added, capped at MAX_DELETION_RATIO."""
        return min(characters_deleted / max(1, characters_added), self.MAX_DELETION_RATIO)

    def pauses(self, timestamps: Sequence[float]) -> tuple[float, ...]:
        """Gaps between consecutive actions that reach the pause threshold, in seconds."""
        if len(timestamps) < 2:
            return ()
        return tuple(
            (current - previous) / 1000
            for previous, current in zip(timestamps, timestamps[1:])
            if current - previous >= self.PAUSE_THRESHOLD_MS
        )

    def revision_cycles(self, edits: Sequence[EditOperation]) -> int:
        """Count non-overlapping add -> delete -> add triples at nearby positions."""
        cycles = 0
        i = 0
        while i < len(edits) - 2:
            first, second, third = edits[i], edits[i + 1], edits[i + 2]
            if (
                first.type == "add"
                and second.type == "delete"
                and third.type == "add"
                and abs(first.position - third.position) < self.REVISION_POSITION_WINDOW
            ):
                cycles += 1
                i += 3
            else:
                i += 1
        return cycles

    def cursor_thrashing(self, positions: Sequence[int]) -> bool:
        """True when most of the recent cursor moves are large jumps."""
        if len(positions) < self.THRASHING_WINDOW:
            return False
        recent = positions[-self.THRASHING_WINDOW:]
        jumps = sum(
            1 for previous, current in zip(recent, recent[1:])
            if abs(current - previous) > self.THRASHING_JUMP
        )
        return jumps >= self.THRASHING_WINDOW * self.THRASHING_SHARE

    def word_production_rate(self, words_added: int, duration_minutes: float) -> float:
        """Words per minute, treating sessions shorter than a minute as one minute."""
        return words_added / max(1.0, duration_minutes)

    def is_stagnant(self, wpm: float, time_on_task: float, words_added: int) -> bool:
        """Low output rate, meaningful time spent, and little total output."""
        return (
            wpm < self.STAGNATION_MAX_WPM
            and time_on_task > self.STAGNATION_MIN_MINUTES
            and words_added < self.STAGNATION_MAX_WORDS
        )


__all__ = ["SignalExtractor"]
