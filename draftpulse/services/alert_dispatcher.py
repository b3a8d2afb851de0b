"""
Educator Alert Dispatcher for DraftPulse.

Reference delivery collaborator that sits between the AlertComposer and an
AlertDelivery transport. Per educator it applies, in order:
- Enabled alert types
- Priority threshold
- Duplicate suppression per (type, writer) within a window
- Quiet hours (alerts are deferred, not dropped)
- Aggregation: immediate delivery, batch, or summary digest

Batches and digests are flushed explicitly by the caller's scheduler.
State is in-process; run one dispatcher per educator shard.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from enum import StrEnum

import structlog

from draftpulse.config.settings import EngineSettings
from draftpulse.lib.exceptions import DeliveryError
from draftpulse.models.alert import (
    Aggregation,
    AlertBatch,
    AlertPreferences,
    AlertPriority,
    EducatorAlert,
)
from draftpulse.services.collaborators import AlertDelivery

logger = structlog.get_logger(__name__)


class DispatchResult(StrEnum):
    """What happened to a dispatched alert."""

    DELIVERED = "delivered"
    BATCHED = "batched"
    SUMMARIZED = "summarized"
    DEFERRED = "deferred"
    TYPE_DISABLED = "type_disabled"
    BELOW_THRESHOLD = "below_threshold"
    DUPLICATE = "duplicate"


def batch_summary(alerts: Sequence[EducatorAlert]) -> str:
    """One-line digest, e.g. "You have 2 cognitive overload alerts. 0 require immediate attention." """
    counts = Counter(alert.type for alert in alerts)
    parts = [
        f"{count} {alert_type.value.replace('_', ' ')} alert{'s' if count > 1 else ''}"
        for alert_type, count in counts.items()
    ]
    urgent = sum(1 for alert in alerts if alert.priority == AlertPriority.URGENT)
    return f"You have {', '.join(parts)}. {urgent} require immediate attention."


class AlertDispatcher:
    """
    Applies educator preferences and hands alerts to a transport.

    Args:
        delivery: Transport implementing AlertDelivery
        settings: Dedup window and default priority threshold

    Usage:
        dispatcher = AlertDispatcher(delivery, EngineSettings.from_env())
        for alert in composer.prioritize(candidates):
            await dispatcher.dispatch(alert, educator_id, preferences)
        await dispatcher.flush_batch(educator_id)
    """

    def __init__(
        self,
        delivery: AlertDelivery,
        settings: EngineSettings | None = None,
    ) -> None:
        self._delivery = delivery
        self._settings = settings or EngineSettings()
        self._batched: dict[str, list[EducatorAlert]] = {}
        self._summaries: dict[str, list[EducatorAlert]] = {}
        self._deferred: dict[str, list[EducatorAlert]] = {}
        # Last accepted time by (educator, alert type, writer) for dedup
        self._last_seen: dict[tuple[str, str, str], datetime] = {}

    def default_preferences(self, educator_id: str) -> AlertPreferences:
        """Preferences used when the educator has not configured any."""
        return AlertPreferences(
            educator_id=educator_id,
            priority_threshold=AlertPriority(self._settings.alert_priority_threshold),
        )

    async def dispatch(
        self,
        alert: EducatorAlert,
        educator_id: str,
        preferences: AlertPreferences | None = None,
        now: datetime | None = None,
    ) -> DispatchResult:
        """
        Route one alert according to the educator's preferences.

        Args:
            alert: Composer output
            educator_id: Recipient
            preferences: Educator preferences (defaults from settings when None)
            now: Dispatch time (defaults to the current UTC time)

        Returns:
            DispatchResult describing what happened

        Raises:
            DeliveryError: If the transport fails on immediate delivery
        """
        now = now or datetime.now(UTC)
        preferences = preferences or self.default_preferences(educator_id)

        if alert.type not in preferences.enabled_types:
            return self._skip(alert, educator_id, DispatchResult.TYPE_DISABLED)
        if alert.priority.rank < preferences.priority_threshold.rank:
            return self._skip(alert, educator_id, DispatchResult.BELOW_THRESHOLD)
        if self._is_duplicate(alert, educator_id, now):
            return self._skip(alert, educator_id, DispatchResult.DUPLICATE)

        if preferences.quiet_hours is not None and preferences.quiet_hours.contains(now.hour):
            self._deferred.setdefault(educator_id, []).append(alert)
            self._remember(alert, educator_id, now)
            logger.info("alert_deferred", educator_id=educator_id, alert_type=alert.type.value)
            return DispatchResult.DEFERRED

        result = await self._route(alert, educator_id, preferences.aggregation)
        # Not reached when delivery raises, so a retry is not a duplicate
        self._remember(alert, educator_id, now)
        return result

    async def release_deferred(
        self,
        educator_id: str,
        preferences: AlertPreferences | None = None,
        now: datetime | None = None,
    ) -> list[DispatchResult]:
        """Route alerts held during quiet hours once the window has ended."""
        now = now or datetime.now(UTC)
        preferences = preferences or self.default_preferences(educator_id)
        if preferences.quiet_hours is not None and preferences.quiet_hours.contains(now.hour):
            return []

        held = self._deferred.pop(educator_id, [])
        results = [
            await self._route(alert, educator_id, preferences.aggregation)
            for alert in held
            if alert.expires_at is None or alert.expires_at > now
        ]
        logger.info("deferred_alerts_released", educator_id=educator_id, count=len(results))
        return results

    async def flush_batch(self, educator_id: str) -> AlertBatch | None:
        """Deliver and clear the pending batch; None when it is empty."""
        return await self._flush(self._batched, educator_id)

    async def flush_summary(self, educator_id: str) -> AlertBatch | None:
        """Deliver and clear the pending digest; None when it is empty."""
        return await self._flush(self._summaries, educator_id)

    def pending(self, educator_id: str) -> dict[str, int]:
        """Queue sizes for one educator."""
        return {
            "batched": len(self._batched.get(educator_id, [])),
            "summary": len(self._summaries.get(educator_id, [])),
            "deferred": len(self._deferred.get(educator_id, [])),
        }

    @property
    def _dedup_window(self) -> timedelta:
        return timedelta(minutes=self._settings.alert_dedup_minutes)

    def _is_duplicate(self, alert: EducatorAlert, educator_id: str, now: datetime) -> bool:
        window = self._dedup_window
        if window <= timedelta(0):
            return False
        key = (educator_id, alert.type.value, alert.writer_id)
        last = self._last_seen.get(key)
        if last is None:
            return False
        if now - last >= window:
            del self._last_seen[key]
            return False
        return True

    def _remember(self, alert: EducatorAlert, educator_id: str, now: datetime) -> None:
        window = self._dedup_window
        if window <= timedelta(0):
            return
        # Expired entries are dropped on every insert
        self._last_seen = {
            key: seen for key, seen in self._last_seen.items() if now - seen < window
        }
        self._last_seen[(educator_id, alert.type.value, alert.writer_id)] = now

    def _skip(self, alert: EducatorAlert, educator_id: str, result: DispatchResult) -> DispatchResult:
        logger.debug(
            "alert_skipped",
            educator_id=educator_id,
            alert_type=alert.type.value,
            reason=result.value,
        )
        return result

    async def _route(
        self,
        alert: EducatorAlert,
        educator_id: str,
        aggregation: Aggregation,
    ) -> DispatchResult:
        if aggregation == Aggregation.IMMEDIATE:
            await self._deliver_alert(alert, educator_id)
            return DispatchResult.DELIVERED
        if aggregation == Aggregation.BATCHED:
            self._batched.setdefault(educator_id, []).append(alert)
            return DispatchResult.BATCHED
        self._summaries.setdefault(educator_id, []).append(alert)
        return DispatchResult.SUMMARIZED

    async def _deliver_alert(self, alert: EducatorAlert, educator_id: str) -> None:
        try:
            await self._delivery.deliver_alert(alert, educator_id)
        except Exception as exc:
            logger.error(
                "alert_delivery_failed",
                educator_id=educator_id,
                alert_type=alert.type.value,
                error=str(exc),
            )
            raise DeliveryError(f"Failed to deliver alert {alert.id}") from exc
        logger.info(
            "alert_delivered",
            educator_id=educator_id,
            alert_type=alert.type.value,
            priority=alert.priority.value,
        )

    async def _flush(
        self,
        queues: dict[str, list[EducatorAlert]],
        educator_id: str,
    ) -> AlertBatch | None:
        alerts = queues.get(educator_id, [])
        if not alerts:
            return None

        batch = AlertBatch(
            educator_id=educator_id,
            alerts=list(alerts),
            summary=batch_summary(alerts),
            priority=max((alert.priority for alert in alerts), key=lambda p: p.rank),
        )
        try:
            await self._delivery.deliver_batch(batch)
        except Exception as exc:
            logger.error("alert_batch_failed", educator_id=educator_id, error=str(exc))
            raise DeliveryError(f"Failed to deliver batch for {educator_id}") from exc

        # Queue survives a failed delivery
        queues.pop(educator_id, None)
        logger.info(
            "alert_batch_delivered",
            educator_id=educator_id,
            count=len(batch.alerts),
            priority=batch.priority.value,
        )
        return batch


__all__ = ["AlertDispatcher", "DispatchResult", "batch_summary"]
