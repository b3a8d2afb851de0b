"""
Cognitive Load Classification Service for DraftPulse.

Maps behavioral indicators (optionally conditioned on the writer's profile)
onto one of four load levels with a confidence and human-readable factors.

The score is a documented threshold heuristic, not a statistical model:
- Start at 50 (neutral, 0-100 scale)
- Apply additive adjustments in a fixed order, each recording a factor
- Apply profile-conditioned multipliers in a fixed order
- Clamp score to [0, 100] and confidence to [0.5, 1.0]
- Bucket: >= 80 overload, >= 65 high, <= 35 low, otherwise optimal

Evaluation order matters because the multipliers act on the running score.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from draftpulse.lib.numeric import clamp
from draftpulse.models.cognition import (
    BehavioralIndicators,
    LoadEstimate,
    LoadLevel,
    StruggleAssessment,
    StruggleType,
)
from draftpulse.models.profile import WriterProfileSnapshot

logger = structlog.get_logger(__name__)


@dataclass
class _Scorecard:
    score: float = 50.0
    confidence: float = 0.7
    factors: list[str] = field(default_factory=list)

    def add(self, points: float, factor: str) -> None:
        self.score += points
        self.factors.append(factor)

    def scale(self, multiplier: float, factor: str) -> None:
        self.score *= multiplier
        self.factors.append(factor)


# Default factor per bucket when no adjustment fired
_DEFAULT_FACTORS: dict[LoadLevel, str] = {
    LoadLevel.OVERLOAD: "Multiple stress indicators present",
    LoadLevel.HIGH: "Showing signs of cognitive strain",
    LoadLevel.LOW: "Minimal cognitive demand",
    LoadLevel.OPTIMAL: "Healthy challenge level",
}

_LEVEL_RECOMMENDATIONS: dict[LoadLevel, tuple[str, ...]] = {
    LoadLevel.OVERLOAD: (
        "Consider taking a 5-minute break",
        "Try breaking down your current paragraph into smaller points",
        "Focus on getting ideas down without worrying about perfection",
    ),
    LoadLevel.HIGH: (
        "You're working hard - remember to breathe",
        "Consider outlining your next few points",
        "It's okay to write a rough draft first",
    ),
    LoadLevel.OPTIMAL: (
        "You're in a good flow - keep going!",
        "Your pace is sustainable",
    ),
}


class LoadClassifier:
    """
    Classifies cognitive load from behavioral indicators.

    Usage:
        classifier = LoadClassifier()
        estimate = classifier.classify(indicators, profile)
    """

    BASE_SCORE = 50.0
    BASE_CONFIDENCE = 0.7

    OVERLOAD_THRESHOLD = 80.0
    HIGH_THRESHOLD = 65.0
    LOW_THRESHOLD = 35.0

    LOW_REFLECTION_DEPTH = 50.0
    BURST_EARLY_MINUTES = 15.0

    def classify(
        self,
        indicators: BehavioralIndicators,
        profile: WriterProfileSnapshot | None = None,
    ) -> LoadEstimate:
        """
        Classify one session.

        Args:
            indicators: Output of SignalExtractor.extract
            profile: Optional writer profile snapshot

        Returns:
            LoadEstimate (the insufficient-data sentinel for sentinel indicators)
        """
        if indicators.insufficient_data:
            return LoadEstimate.insufficient()

        card = _Scorecard(score=self.BASE_SCORE, confidence=self.BASE_CONFIDENCE)
        self._apply_indicator_adjustments(card, indicators)
        if profile is not None:
            self._apply_profile_adjustments(card, indicators, profile)

        score = clamp(card.score, 0.0, 100.0)
        confidence = round(clamp(card.confidence, 0.5, 1.0), 2)
        level = self.level_for_score(score)
        if not card.factors:
            card.factors.append(_DEFAULT_FACTORS[level])

        logger.debug(
            "load_classified",
            level=level.value,
            score=round(score, 2),
            confidence=round(confidence, 2),
            factor_count=len(card.factors),
        )
        return LoadEstimate(
            level=level,
            confidence=confidence,
            factors=tuple(card.factors),
            score=score,
        )

    def level_for_score(self, score: float) -> LoadLevel:
        """Bucket a clamped 0-100 score."""
        if score >= self.OVERLOAD_THRESHOLD:
            return LoadLevel.OVERLOAD
        if score >= self.HIGH_THRESHOLD:
            return LoadLevel.HIGH
        if score <= self.LOW_THRESHOLD:
            return LoadLevel.LOW
        return LoadLevel.OPTIMAL

    def _apply_indicator_adjustments(
        self,
        card: _Scorecard,
        indicators: BehavioralIndicators,
    ) -> None:
        # Deletion ratio (up to +30)
        if indicators.deletion_ratio > 2:
            card.add(20, "High deletion rate indicates struggle")
            if indicators.deletion_ratio > 3:
                card.add(10, "Excessive rewriting detected")
        elif indicators.deletion_ratio < 0.3:
            card.add(-10, "Smooth writing flow")

        # Pauses (up to +15)
        mean_pause = indicators.mean_pause
        if mean_pause > 10:
            card.add(15, "Long thinking pauses detected")
        elif mean_pause > 5:
            card.add(5, "Moderate pauses for reflection")

        # Revision cycles (up to +15)
        if indicators.revision_cycles > 5:
            card.add(15, "Frequent revision cycles")
        elif indicators.revision_cycles > 2:
            card.add(5, "Some revision activity")

        if indicators.cursor_thrashing:
            card.add(10, "Jumping between sections frequently")

        # Production rate (-10 to +15)
        if indicators.word_production_rate < 5:
            card.add(15, "Very slow writing pace")
        elif indicators.word_production_rate < 10:
            card.add(5, "Below average writing pace")
        elif indicators.word_production_rate > 30:
            card.add(-10, "Good writing flow")

        if indicators.progress_stagnation:
            card.add(15, "Writing progress has stalled")
            card.confidence += 0.1

        # Fatigue (up to +10)
        if indicators.time_on_task > 60:
            card.add(10, "Extended session may cause fatigue")
        elif indicators.time_on_task > 30:
            card.add(5, "Moderate session length")

    def _apply_profile_adjustments(
        self,
        card: _Scorecard,
        indicators: BehavioralIndicators,
        profile: WriterProfileSnapshot,
    ) -> None:
        if (
            profile.reflection_depth_average is not None
            and profile.reflection_depth_average < self.LOW_REFLECTION_DEPTH
        ):
            card.scale(1.1, "Writer typically struggles with complex tasks")

        if profile.emotional_state == "frustrated":
            card.scale(1.2, "Already showing frustration")
            card.confidence += 0.1
        elif profile.emotional_state == "confident":
            card.scale(0.9, "Writer feeling confident")

        if (
            profile.productivity_pattern == "burst"
            and indicators.time_on_task < self.BURST_EARLY_MINUTES
        ):
            card.scale(0.8, "Normal pattern for burst writer")

    def recommendations_for(
        self,
        estimate: LoadEstimate,
        indicators: BehavioralIndicators,
    ) -> list[str]:
        """
        Writer-facing suggestions for the current load.

        Args:
            estimate: Classifier output
            indicators: The indicators the estimate was computed from

        Returns:
            Ordered list of suggestion strings (level first, then indicator-specific)
        """
        if estimate.level == LoadLevel.LOW:
            if indicators.time_on_task < 5:
                recommendations = [
                    "Take a moment to gather your thoughts",
                    "Review your assignment goals",
                ]
            else:
                recommendations = [
                    "Try freewriting for 5 minutes without stopping",
                    "Consider changing your environment",
                ]
        else:
            recommendations = list(_LEVEL_RECOMMENDATIONS[estimate.level])

        if indicators.deletion_ratio > 2:
            recommendations.append("Perfectionism can slow progress - try moving forward")
        if indicators.cursor_thrashing:
            recommendations.append("Focus on one section at a time")
        if indicators.progress_stagnation:
            recommendations.append("Stuck? Try explaining your ideas out loud")
        return recommendations

    def classify_struggle(
        self,
        estimate: LoadEstimate,
        indicators: BehavioralIndicators,
    ) -> StruggleAssessment | None:
        """
        Name the kind of struggle behind a strained session.

        Only overload, or high load with confidence above 0.7, counts as a
        struggle. Returns None otherwise.
        """
        strained = estimate.level == LoadLevel.OVERLOAD or (
            estimate.level == LoadLevel.HIGH and estimate.confidence > 0.7
        )
        if not strained:
            return None

        if indicators.progress_stagnation and indicators.word_production_rate < 2:
            struggle_type = StruggleType.WRITING_BLOCK
        elif indicators.revision_cycles > 5 and indicators.deletion_ratio > 2:
            struggle_type = StruggleType.CONCEPT_CONFUSION
        else:
            struggle_type = StruggleType.COGNITIVE_OVERLOAD

        return StruggleAssessment(
            struggle_type=struggle_type,
            severity="high" if estimate.level == LoadLevel.OVERLOAD else "medium",
            factors=estimate.factors,
            recommendations=tuple(self.recommendations_for(estimate, indicators)),
        )


__all__ = ["LoadClassifier"]
