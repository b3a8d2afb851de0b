"""
Cognition Services Package for DraftPulse.

- SignalExtractor: raw session telemetry -> BehavioralIndicators
- LoadClassifier: BehavioralIndicators (+ profile) -> LoadEstimate
"""

from draftpulse.services.cognition.load import LoadClassifier
from draftpulse.services.cognition.signals import SignalExtractor

__all__ = [
    "SignalExtractor",
    "LoadClassifier",
]
