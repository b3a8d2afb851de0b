"""
Custom exception hierarchy for DraftPulse.

Only lookup failures and configuration problems surface as exceptions.
Missing telemetry, rate limiting and malformed profiles are expressed as
return values by the analysis services instead.
"""

from __future__ import annotations


class DraftPulseException(Exception):
    """Base exception for all DraftPulse errors."""


class ConfigurationError(DraftPulseException):
    """Invalid environment variables or settings values."""


class NotFoundError(DraftPulseException):
    """A collaborator could not find the requested record."""


class InterventionNotFoundError(NotFoundError):
    """No delivered intervention exists for the given id."""

    def __init__(self, intervention_id: str) -> None:
        super().__init__(f"Intervention not found: {intervention_id}")
        self.intervention_id = intervention_id


class DeliveryError(DraftPulseException):
    """An alert delivery collaborator failed."""
