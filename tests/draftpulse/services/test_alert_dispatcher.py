"""
Tests for the AlertDispatcher.

Tests cover:
- Enabled types and priority threshold
- Duplicate suppression window
- Quiet hours deferral and release
- Immediate, batched and summary aggregation
- Transport failures
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from draftpulse.config.settings import EngineSettings
from draftpulse.lib.exceptions import DeliveryError
from draftpulse.models.alert import (
    Aggregation,
    AlertCategory,
    AlertPreferences,
    AlertPriority,
    AlertType,
    EducatorAlert,
    QuietHours,
)
from draftpulse.services.alert_dispatcher import AlertDispatcher, DispatchResult, batch_summary

EDUCATOR = "educator-1"


@pytest.fixture
def delivery():
    transport = AsyncMock()
    transport.deliver_alert = AsyncMock(return_value=None)
    transport.deliver_batch = AsyncMock(return_value=None)
    return transport


@pytest.fixture
def dispatcher(delivery):
    return AlertDispatcher(delivery)


def _alert(
    writer_id: str = "writer-1",
    alert_type: AlertType = AlertType.COGNITIVE_OVERLOAD,
    priority: AlertPriority = AlertPriority.HIGH,
    **fields,
) -> EducatorAlert:
    return EducatorAlert(
        type=alert_type,
        priority=priority,
        category=AlertCategory.IMMEDIATE_ATTENTION,
        writer_id=writer_id,
        title="Test alert",
        message="Test message",
        **fields,
    )


def _prefs(**fields) -> AlertPreferences:
    return AlertPreferences(educator_id=EDUCATOR, **fields)


IMMEDIATE = _prefs(aggregation=Aggregation.IMMEDIATE)


# =============================================================================
# Filtering
# =============================================================================


class TestFiltering:

    @pytest.mark.asyncio
    async def test_immediate_delivery(self, dispatcher, delivery, now):
        alert = _alert()
        result = await dispatcher.dispatch(alert, EDUCATOR, IMMEDIATE, now)
        assert result == DispatchResult.DELIVERED
        delivery.deliver_alert.assert_awaited_once_with(alert, EDUCATOR)

    @pytest.mark.asyncio
    async def test_disabled_type(self, dispatcher, delivery, now):
        prefs = _prefs(
            enabled_types=frozenset({AlertType.DEADLINE_RISK}),
            aggregation=Aggregation.IMMEDIATE,
        )
        result = await dispatcher.dispatch(_alert(), EDUCATOR, prefs, now)
        assert result == DispatchResult.TYPE_DISABLED
        delivery.deliver_alert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_below_default_threshold(self, dispatcher, delivery, now):
        alert = _alert(priority=AlertPriority.LOW)
        result = await dispatcher.dispatch(alert, EDUCATOR, now=now)
        assert result == DispatchResult.BELOW_THRESHOLD

    @pytest.mark.asyncio
    async def test_threshold_from_settings(self, delivery, now):
        dispatcher = AlertDispatcher(delivery, EngineSettings(alert_priority_threshold="urgent"))
        result = await dispatcher.dispatch(_alert(), EDUCATOR, now=now)
        assert result == DispatchResult.BELOW_THRESHOLD


class TestDeduplication:

    @pytest.mark.asyncio
    async def test_same_writer_and_type_within_window(self, dispatcher, now):
        assert await dispatcher.dispatch(_alert(), EDUCATOR, IMMEDIATE, now) == DispatchResult.DELIVERED
        repeat = await dispatcher.dispatch(_alert(), EDUCATOR, IMMEDIATE, now + timedelta(minutes=10))
        assert repeat == DispatchResult.DUPLICATE

    @pytest.mark.asyncio
    async def test_window_expires(self, dispatcher, now):
        await dispatcher.dispatch(_alert(), EDUCATOR, IMMEDIATE, now)
        later = await dispatcher.dispatch(_alert(), EDUCATOR, IMMEDIATE, now + timedelta(minutes=30))
        assert later == DispatchResult.DELIVERED

    @pytest.mark.asyncio
    async def test_other_writer_is_not_duplicate(self, dispatcher, now):
        await dispatcher.dispatch(_alert("writer-1"), EDUCATOR, IMMEDIATE, now)
        other = await dispatcher.dispatch(_alert("writer-2"), EDUCATOR, IMMEDIATE, now)
        assert other == DispatchResult.DELIVERED

    @pytest.mark.asyncio
    async def test_expired_entries_are_pruned(self, dispatcher, now):
        for index in range(3):
            await dispatcher.dispatch(_alert(f"writer-{index}"), EDUCATOR, IMMEDIATE, now)
        assert len(dispatcher._last_seen) == 3

        later = now + timedelta(minutes=45)
        await dispatcher.dispatch(_alert("writer-9"), EDUCATOR, IMMEDIATE, later)
        assert list(dispatcher._last_seen) == [(EDUCATOR, "cognitive_overload", "writer-9")]

    @pytest.mark.asyncio
    async def test_zero_window_disables_dedup(self, delivery, now):
        dispatcher = AlertDispatcher(delivery, EngineSettings(alert_dedup_minutes=0))
        await dispatcher.dispatch(_alert(), EDUCATOR, IMMEDIATE, now)
        assert await dispatcher.dispatch(_alert(), EDUCATOR, IMMEDIATE, now) == DispatchResult.DELIVERED


# =============================================================================
# Quiet Hours
# =============================================================================


class TestQuietHours:

    QUIET = _prefs(quiet_hours=QuietHours(start=22, end=7), aggregation=Aggregation.IMMEDIATE)

    @pytest.mark.parametrize("hour,inside", [(22, True), (2, True), (6, True), (7, False), (12, False)])
    def test_window_wraps_midnight(self, hour, inside):
        assert QuietHours(start=22, end=7).contains(hour) is inside

    @pytest.mark.asyncio
    async def test_deferred_then_released(self, dispatcher, delivery, now):
        night = now.replace(hour=23)
        result = await dispatcher.dispatch(_alert(), EDUCATOR, self.QUIET, night)
        assert result == DispatchResult.DEFERRED
        assert dispatcher.pending(EDUCATOR)["deferred"] == 1
        delivery.deliver_alert.assert_not_awaited()

        assert await dispatcher.release_deferred(EDUCATOR, self.QUIET, night) == []

        morning = night + timedelta(hours=9)
        released = await dispatcher.release_deferred(EDUCATOR, self.QUIET, morning)
        assert released == [DispatchResult.DELIVERED]
        assert dispatcher.pending(EDUCATOR)["deferred"] == 0

    @pytest.mark.asyncio
    async def test_expired_alerts_are_dropped_on_release(self, dispatcher, delivery, now):
        night = now.replace(hour=23)
        alert = _alert(expires_at=night + timedelta(hours=2))
        await dispatcher.dispatch(alert, EDUCATOR, self.QUIET, night)

        released = await dispatcher.release_deferred(EDUCATOR, self.QUIET, night + timedelta(hours=9))
        assert released == []
        delivery.deliver_alert.assert_not_awaited()


# =============================================================================
# Aggregation
# =============================================================================


class TestAggregation:

    @pytest.mark.asyncio
    async def test_batch_flush(self, dispatcher, delivery, now):
        prefs = _prefs(aggregation=Aggregation.BATCHED)
        first = _alert("writer-1", priority=AlertPriority.MEDIUM)
        second = _alert("writer-2", priority=AlertPriority.URGENT)
        assert await dispatcher.dispatch(first, EDUCATOR, prefs, now) == DispatchResult.BATCHED
        assert await dispatcher.dispatch(second, EDUCATOR, prefs, now) == DispatchResult.BATCHED

        batch = await dispatcher.flush_batch(EDUCATOR)
        assert batch.alerts == [first, second]
        assert batch.priority == AlertPriority.URGENT
        assert batch.summary == "You have 2 cognitive overload alerts. 1 require immediate attention."
        delivery.deliver_batch.assert_awaited_once_with(batch)
        assert dispatcher.pending(EDUCATOR)["batched"] == 0
        assert await dispatcher.flush_batch(EDUCATOR) is None

    @pytest.mark.asyncio
    async def test_summary_digest(self, dispatcher, delivery, now):
        prefs = _prefs(aggregation=Aggregation.SUMMARY)
        result = await dispatcher.dispatch(_alert(), EDUCATOR, prefs, now)
        assert result == DispatchResult.SUMMARIZED
        assert dispatcher.pending(EDUCATOR) == {"batched": 0, "summary": 1, "deferred": 0}

        digest = await dispatcher.flush_summary(EDUCATOR)
        assert digest.summary == "You have 1 cognitive overload alert. 0 require immediate attention."

    def test_batch_summary_mixed_types(self):
        alerts = [
            _alert(alert_type=AlertType.DEADLINE_RISK, priority=AlertPriority.URGENT),
            _alert(alert_type=AlertType.WRITING_STRUGGLE),
            _alert(alert_type=AlertType.WRITING_STRUGGLE),
        ]
        assert batch_summary(alerts) == (
            "You have 1 deadline risk alert, 2 writing struggle alerts. 1 require immediate attention."
        )


# =============================================================================
# Failures
# =============================================================================


class TestDeliveryFailures:

    @pytest.mark.asyncio
    async def test_immediate_failure_raises(self, dispatcher, delivery, now):
        delivery.deliver_alert.side_effect = ConnectionError("smtp down")
        with pytest.raises(DeliveryError) as exc_info:
            await dispatcher.dispatch(_alert(), EDUCATOR, IMMEDIATE, now)
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_retry_after_failure_is_delivered(self, dispatcher, delivery, now):
        alert = _alert()
        delivery.deliver_alert.side_effect = ConnectionError("smtp down")
        with pytest.raises(DeliveryError):
            await dispatcher.dispatch(alert, EDUCATOR, IMMEDIATE, now)

        delivery.deliver_alert.side_effect = None
        assert await dispatcher.dispatch(alert, EDUCATOR, IMMEDIATE, now) == DispatchResult.DELIVERED
        assert delivery.deliver_alert.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_batch_keeps_queue(self, dispatcher, delivery, now):
        await dispatcher.dispatch(_alert(), EDUCATOR, _prefs(), now)
        delivery.deliver_batch.side_effect = ConnectionError("smtp down")

        with pytest.raises(DeliveryError):
            await dispatcher.flush_batch(EDUCATOR)
        assert dispatcher.pending(EDUCATOR)["batched"] == 1

        delivery.deliver_batch.side_effect = None
        batch = await dispatcher.flush_batch(EDUCATOR)
        assert len(batch.alerts) == 1
