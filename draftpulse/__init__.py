"""
DraftPulse - writing-session telemetry analysis.

Turns keystroke-level writing telemetry into cognitive load estimates,
rate-limited intervention decisions, multi-session process insights and
prioritized educator alerts.
"""

__version__ = "1.0.0"
