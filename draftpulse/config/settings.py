"""
Engine Configuration for DraftPulse.

Rate-limiting and alert-delivery knobs. The classification thresholds used
by the signal extractor, load classifier and process analyzer are fixed
class constants on those services and are deliberately not configurable.

Environment variables (all optional):
- DRAFTPULSE_HISTORY_WINDOW_MINUTES      (default 60)
- DRAFTPULSE_MAX_INTERVENTIONS_PER_HOUR  (default 4)
- DRAFTPULSE_COOLDOWN_OVERLOAD_MINUTES   (default 5)
- DRAFTPULSE_COOLDOWN_HIGH_MINUTES       (default 10)
- DRAFTPULSE_COOLDOWN_DEFAULT_MINUTES    (default 15)
- DRAFTPULSE_ALERT_DEDUP_MINUTES         (default 30)
- DRAFTPULSE_ALERT_PRIORITY_THRESHOLD    (default "medium")
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from draftpulse.lib.exceptions import ConfigurationError

VALID_PRIORITY_THRESHOLDS: tuple[str, ...] = ("low", "medium", "high", "urgent")


@dataclass(frozen=True)
class EngineSettings:
    """Immutable settings snapshot shared by the decision engine and dispatcher."""

    history_window_minutes: int = 60
    max_interventions_per_hour: int = 4
    cooldown_overload_minutes: int = 5
    cooldown_high_minutes: int = 10
    cooldown_default_minutes: int = 15
    alert_dedup_minutes: int = 30
    alert_priority_threshold: str = "medium"

    def __post_init__(self) -> None:
        for name in (
            "history_window_minutes",
            "max_interventions_per_hour",
            "cooldown_overload_minutes",
            "cooldown_high_minutes",
            "cooldown_default_minutes",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if self.alert_dedup_minutes < 0:
            raise ConfigurationError("alert_dedup_minutes must not be negative")
        if self.alert_priority_threshold not in VALID_PRIORITY_THRESHOLDS:
            raise ConfigurationError(
                f"alert_priority_threshold must be one of {VALID_PRIORITY_THRESHOLDS}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineSettings:
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            EngineSettings with defaults for unset variables

        Raises:
            ConfigurationError: If a variable is set to an invalid value
        """
        env = os.environ if environ is None else environ
        return cls(
            history_window_minutes=_int_var(env, "DRAFTPULSE_HISTORY_WINDOW_MINUTES", 60),
            max_interventions_per_hour=_int_var(env, "DRAFTPULSE_MAX_INTERVENTIONS_PER_HOUR", 4),
            cooldown_overload_minutes=_int_var(env, "DRAFTPULSE_COOLDOWN_OVERLOAD_MINUTES", 5),
            cooldown_high_minutes=_int_var(env, "DRAFTPULSE_COOLDOWN_HIGH_MINUTES", 10),
            cooldown_default_minutes=_int_var(env, "DRAFTPULSE_COOLDOWN_DEFAULT_MINUTES", 15),
            alert_dedup_minutes=_int_var(env, "DRAFTPULSE_ALERT_DEDUP_MINUTES", 30),
            alert_priority_threshold=env.get(
                "DRAFTPULSE_ALERT_PRIORITY_THRESHOLD", "medium"
            ).strip().lower(),
        )


def _int_var(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


__all__ = ["EngineSettings", "VALID_PRIORITY_THRESHOLDS"]
