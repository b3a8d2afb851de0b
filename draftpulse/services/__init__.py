"""
Services for DraftPulse.

Services:
    - Cognition (2):
        - SignalExtractor: Session telemetry -> behavioral indicators
        - LoadClassifier: Indicators (+ profile) -> load estimate
    - InterventionDecisionEngine: Rate-limited real-time nudges
    - WritingProcessAnalyzer: Multi-session process insights
    - AlertComposer: Educator alert candidates
    - AlertDispatcher: Preference-aware alert delivery
    - InterventionLogStore: SQLAlchemy intervention history and logging
    - WritingSupportService: Facade wiring collaborators around the core
"""

from .alert_composer import AlertComposer
from .alert_dispatcher import AlertDispatcher, DispatchResult
from .cognition import LoadClassifier, SignalExtractor
from .intervention_engine import InterventionDecisionEngine
from .intervention_log import InterventionLogStore
from .process_analyzer import WritingProcessAnalyzer
from .writing_support import AssignmentAnalysis, SessionEvaluation, WritingSupportService

__all__ = [
    # Cognition
    "SignalExtractor",
    "LoadClassifier",
    # Interventions
    "InterventionDecisionEngine",
    "InterventionLogStore",
    # Process analysis
    "WritingProcessAnalyzer",
    # Alerts
    "AlertComposer",
    "AlertDispatcher",
    "DispatchResult",
    # Facade
    "WritingSupportService",
    "SessionEvaluation",
    "AssignmentAnalysis",
]
