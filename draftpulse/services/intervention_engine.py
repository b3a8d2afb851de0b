"""
Intervention Decision Engine for DraftPulse.

Decides whether (and how) to nudge a writer in real time, given the current
load estimate and a snapshot of prior nudges:

1. Cooldown: 5 min after overload, 10 after high, 15 otherwise
2. Hourly cap: at most N nudges in the trailing window (default 4)
3. Dynamic threshold from effectiveness, AI-request frequency and acceptance
4. Eligibility by load level
5. Content from an ordered rule table keyed on (level, indicator)

The engine is a pure function of its inputs. It never records its own
decisions; the caller persists deliveries through the intervention log
before the next call, otherwise cooldown and cap cannot see them.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from draftpulse.config.settings import EngineSettings
from draftpulse.lib.numeric import clamp, round_half_up
from draftpulse.models.cognition import BehavioralIndicators, LoadEstimate, LoadLevel
from draftpulse.models.intervention import (
    DecisionOutcome,
    DeliveredIntervention,
    Intervention,
    InterventionAction,
    InterventionDecision,
    InterventionHistory,
    InterventionInsights,
    InterventionPriority,
    InterventionType,
)
from draftpulse.models.profile import WriterProfileSnapshot, WritingStage

logger = structlog.get_logger(__name__)


# =============================================================================
# Rule Table
# =============================================================================

RulePredicate = Callable[[BehavioralIndicators, WriterProfileSnapshot | None], bool]


@dataclass(frozen=True)
class InterventionTemplate:
    """Fixed content for one rule."""

    type: InterventionType
    message: str
    rationale: str
    detailed_content: str | None = None
    action: InterventionAction | None = None


@dataclass(frozen=True)
class InterventionRule:
    """One row of the content table: first matching row for a level wins."""

    name: str
    level: LoadLevel
    applies: RulePredicate
    template: InterventionTemplate


def _always(_indicators: BehavioralIndicators, _profile: WriterProfileSnapshot | None) -> bool:
    return True


INTERVENTION_RULES: tuple[InterventionRule, ...] = (
    InterventionRule(
        name="overload_thrashing",
        level=LoadLevel.OVERLOAD,
        applies=lambda ind, _p: ind.cursor_thrashing,
        template=InterventionTemplate(
            type=InterventionType.PROCESS_QUESTION,
            message="It looks like you're jumping between sections. What's your main focus right now?",
            detailed_content=(
                "Sometimes when we're overwhelmed, it helps to identify one specific point "
                "to work on. Which section feels most important to complete first?"
            ),
            rationale="Helps writer prioritize and reduce cognitive scatter",
        ),
    ),
    InterventionRule(
        name="overload_perfectionism",
        level=LoadLevel.OVERLOAD,
        applies=lambda ind, _p: ind.deletion_ratio > 2,
        template=InterventionTemplate(
            type=InterventionType.GENTLE_PROMPT,
            message=(
                "You're working hard on getting this just right. "
                "Remember, first drafts don't need to be perfect."
            ),
            detailed_content=(
                "Try writing your ideas without editing for the next 5 minutes. "
                "You can always revise later!"
            ),
            action=InterventionAction(text="Try freewriting", action="start_freewrite"),
            rationale="Reduces perfectionism paralysis",
        ),
    ),
    InterventionRule(
        name="overload_break",
        level=LoadLevel.OVERLOAD,
        applies=_always,
        template=InterventionTemplate(
            type=InterventionType.BREAK_SUGGESTION,
            message="You've been working intensely. A short break can help refresh your thinking.",
            action=InterventionAction(text="Take 5-minute break", action="take_break"),
            rationale="Cognitive rest improves subsequent performance",
        ),
    ),
    InterventionRule(
        name="high_stagnation",
        level=LoadLevel.HIGH,
        applies=lambda ind, _p: ind.progress_stagnation,
        template=InterventionTemplate(
            type=InterventionType.PROCESS_QUESTION,
            message="Let's take a step back. What's the main point you want to make in this section?",
            detailed_content=(
                "Sometimes explaining your ideas out loud (or writing them informally) "
                "can help clarify your thoughts."
            ),
            rationale="Metacognitive reflection breaks through stagnation",
        ),
    ),
    InterventionRule(
        name="high_frustrated",
        level=LoadLevel.HIGH,
        applies=lambda _ind, profile: profile is not None and profile.is_frustrated,
        template=InterventionTemplate(
            type=InterventionType.ENCOURAGEMENT,
            message=(
                "Writing can be challenging, and that's okay. "
                "You're making progress, even if it doesn't feel like it."
            ),
            detailed_content=(
                "Every writer faces moments like this. "
                "What you're experiencing is part of the creative process."
            ),
            rationale="Emotional support maintains engagement",
        ),
    ),
    InterventionRule(
        name="high_peer_examples",
        level=LoadLevel.HIGH,
        applies=_always,
        template=InterventionTemplate(
            type=InterventionType.RESOURCE_SUGGESTION,
            message="Would you like to see how other writers approached similar challenges?",
            action=InterventionAction(text="View examples", action="view_peer_examples"),
            rationale="Peer modeling provides concrete strategies",
        ),
    ),
    InterventionRule(
        name="low_stagnation",
        level=LoadLevel.LOW,
        applies=lambda ind, _p: ind.progress_stagnation,
        template=InterventionTemplate(
            type=InterventionType.GENTLE_PROMPT,
            message="Starting can be the hardest part. What's one idea you'd like to explore?",
            detailed_content=(
                "Try writing just one sentence about your topic. "
                "Don't worry about making it perfect!"
            ),
            rationale="Reduces activation energy for writing",
        ),
    ),
    InterventionRule(
        name="low_connections",
        level=LoadLevel.LOW,
        applies=_always,
        template=InterventionTemplate(
            type=InterventionType.PROCESS_QUESTION,
            message="You have a good flow starting. What connections are you seeing in your ideas?",
            rationale="Encourages deeper thinking during low-stress periods",
        ),
    ),
)

# One fixed prefix per type so identical inputs give identical messages
SUPPORTIVE_PREFIXES: dict[InterventionType, str] = {
    InterventionType.GENTLE_PROMPT: "You're doing great. ",
    InterventionType.PROCESS_QUESTION: "Keep going! ",
    InterventionType.RESOURCE_SUGGESTION: "You've got this. ",
    InterventionType.BREAK_SUGGESTION: "Good effort so far. ",
    InterventionType.ENCOURAGEMENT: "You're doing great. ",
}

STAGE_LEAD_INS: dict[WritingStage, str] = {
    WritingStage.BRAINSTORMING: "during brainstorming, ",
    WritingStage.DRAFTING: "while drafting, ",
    WritingStage.REVISING: "in revision, ",
    WritingStage.EDITING: "during editing, ",
}

_LEVEL_PRIORITY: dict[LoadLevel, InterventionPriority] = {
    LoadLevel.OVERLOAD: InterventionPriority.HIGH,
    LoadLevel.HIGH: InterventionPriority.MEDIUM,
    LoadLevel.LOW: InterventionPriority.LOW,
    LoadLevel.OPTIMAL: InterventionPriority.LOW,
}

_TYPE_RECOMMENDATIONS: dict[InterventionType, str] = {
    InterventionType.BREAK_SUGGESTION: "Consider shorter assignment sessions with planned breaks",
    InterventionType.PROCESS_QUESTION: "Writer may benefit from additional scaffolding on planning",
    InterventionType.ENCOURAGEMENT: "Writer may need confidence-building activities",
}


# =============================================================================
# Service
# =============================================================================

class InterventionDecisionEngine:
    """
    Decides whether to surface a nudge for the current session.

    Usage:
        engine = InterventionDecisionEngine(EngineSettings.from_env())
        decision = engine.decide(estimate, indicators, history, profile, stage)
        if decision.should_intervene:
            await log_store.log_intervention_delivery(decision.intervention, ...)
    """

    BASE_THRESHOLD = 0.75
    MIN_THRESHOLD = 0.6
    MAX_THRESHOLD = 0.95

    OVERLOAD_MIN_CONFIDENCE = 0.7
    HIGH_MIN_CONFIDENCE = 0.8
    HIGH_MIN_MINUTES = 30.0
    LOW_MIN_MINUTES = 10.0

    NON_URGENT_EXPIRY_SECONDS = 300

    def __init__(self, settings: EngineSettings | None = None):
        """
        Initialize the decision engine.

        Args:
            settings: Cooldown and cap configuration (defaults when omitted)
        """
        self.settings = settings or EngineSettings()

    def decide(
        self,
        estimate: LoadEstimate,
        indicators: BehavioralIndicators,
        history: InterventionHistory,
        profile: WriterProfileSnapshot | None = None,
        stage: WritingStage | str | None = None,
        now: datetime | None = None,
    ) -> InterventionDecision:
        """
        Run the five-step decision.

        Args:
            estimate: Current load estimate
            indicators: Indicators behind the estimate
            history: Snapshot of prior nudges for this writer and assignment
            profile: Optional writer profile snapshot
            stage: Writing stage reported by the editor
            now: Evaluation time (defaults to the current UTC time)

        Returns:
            InterventionDecision; refusals carry a reason and never raise
        """
        now = now or datetime.now(UTC)

        # Step 1: cooldown
        required = self.cooldown_for(estimate.level)
        if history.last_intervention_at is not None:
            elapsed = (now - history.last_intervention_at).total_seconds() / 60
            if elapsed < required:
                remaining = required - elapsed
                logger.debug(
                    "intervention_refused",
                    outcome=DecisionOutcome.COOLDOWN.value,
                    remaining_minutes=round(remaining, 2),
                )
                return InterventionDecision(
                    outcome=DecisionOutcome.COOLDOWN,
                    reason=f"cooldown active ({math.ceil(remaining)} minutes remaining)",
                    cooldown_minutes=remaining,
                )

        # Step 2: hourly cap
        if history.intervention_count >= self.settings.max_interventions_per_hour:
            logger.debug(
                "intervention_refused",
                outcome=DecisionOutcome.RATE_LIMITED.value,
                count=history.intervention_count,
            )
            return InterventionDecision(
                outcome=DecisionOutcome.RATE_LIMITED,
                reason="hourly limit reached",
            )

        # Step 3: threshold
        threshold = self.calculate_threshold(profile, history)

        # Step 4: eligibility
        if not self.is_eligible(estimate, indicators, profile, threshold):
            return InterventionDecision(
                outcome=DecisionOutcome.NOT_ELIGIBLE,
                reason="Cognitive load within acceptable range",
                threshold=threshold,
            )

        # Step 5: content
        intervention = self.build_intervention(estimate, indicators, profile, stage)
        logger.debug(
            "intervention_selected",
            level=estimate.level.value,
            type=intervention.type.value,
            threshold=round(threshold, 2),
        )
        return InterventionDecision(
            outcome=DecisionOutcome.INTERVENE,
            reason=f"{estimate.level.value} load detected, "
                   f"{round_half_up(estimate.confidence * 100)}% confidence",
            intervention=intervention,
            threshold=threshold,
        )

    def cooldown_for(self, level: LoadLevel) -> int:
        """Required minutes since the last nudge for the given level."""
        if level == LoadLevel.OVERLOAD:
            return self.settings.cooldown_overload_minutes
        if level == LoadLevel.HIGH:
            return self.settings.cooldown_high_minutes
        return self.settings.cooldown_default_minutes

    def calculate_threshold(
        self,
        profile: WriterProfileSnapshot | None,
        history: InterventionHistory,
    ) -> float:
        """Confidence a decreasing-independence writer must exceed, in [0.6, 0.95]."""
        threshold = self.BASE_THRESHOLD

        if history.effectiveness < 50 and history.intervention_count > 5:
            threshold += 0.1
        elif history.effectiveness > 80:
            threshold -= 0.05

        if (
            profile is not None
            and profile.ai_request_frequency is not None
            and profile.ai_request_frequency < 2
        ):
            threshold += 0.1

        if history.acceptance_rate < 0.3:
            threshold += 0.15

        return clamp(threshold, self.MIN_THRESHOLD, self.MAX_THRESHOLD)

    def is_eligible(
        self,
        estimate: LoadEstimate,
        indicators: BehavioralIndicators,
        profile: WriterProfileSnapshot | None,
        threshold: float,
    ) -> bool:
        """Level-specific eligibility, tightened for decreasing independence."""
        level = estimate.level
        if level == LoadLevel.OVERLOAD:
            eligible = estimate.confidence >= self.OVERLOAD_MIN_CONFIDENCE
        elif level == LoadLevel.HIGH:
            eligible = estimate.confidence >= self.HIGH_MIN_CONFIDENCE and (
                indicators.progress_stagnation or indicators.time_on_task > self.HIGH_MIN_MINUTES
            )
        elif level == LoadLevel.LOW:
            eligible = (
                indicators.progress_stagnation and indicators.time_on_task > self.LOW_MIN_MINUTES
            )
        else:
            eligible = False

        # Applied literally for trend == "decreasing"
        if eligible and profile is not None and profile.independence_trend == "decreasing":
            eligible = estimate.confidence >= threshold
        return eligible

    def select_rule(
        self,
        level: LoadLevel,
        indicators: BehavioralIndicators,
        profile: WriterProfileSnapshot | None,
    ) -> InterventionRule | None:
        """First matching rule for the level, or None (optimal has no rows)."""
        for rule in INTERVENTION_RULES:
            if rule.level == level and rule.applies(indicators, profile):
                return rule
        return None

    def build_intervention(
        self,
        estimate: LoadEstimate,
        indicators: BehavioralIndicators,
        profile: WriterProfileSnapshot | None = None,
        stage: WritingStage | str | None = None,
    ) -> Intervention:
        """Instantiate the matching template with tone and stage adjustments."""
        rule = self.select_rule(estimate.level, indicators, profile)
        if rule is None:
            # Optimal load never passes eligibility; fall back to the low-load row
            rule = INTERVENTION_RULES[-1]
        template = rule.template

        message = template.message
        if profile is not None and profile.prefers_supportive_tone:
            message = SUPPORTIVE_PREFIXES[template.type] + message
        message = self.adjust_for_stage(message, stage)

        priority = _LEVEL_PRIORITY[estimate.level]
        return Intervention(
            type=template.type,
            priority=priority,
            message=message,
            rationale=template.rationale,
            detailed_content=template.detailed_content,
            action=template.action,
            expires_in_seconds=(
                None if priority == InterventionPriority.HIGH else self.NON_URGENT_EXPIRY_SECONDS
            ),
        )

    def adjust_for_stage(self, message: str, stage: WritingStage | str | None) -> str:
        """Prepend the stage lead-in unless the message already names the stage."""
        if stage is None:
            return message
        try:
            stage = WritingStage(stage)
        except ValueError:
            return message
        if stage.value in message.lower():
            return message
        return STAGE_LEAD_INS[stage] + message[0].lower() + message[1:]

    # =========================================================================
    # Effectiveness and educator insights
    # =========================================================================

    def score_effectiveness(self, follow_up_words: Sequence[int | None]) -> int:
        """
        Score how well recent nudges worked from subsequent writing output.

        Args:
            follow_up_words: Words written after each nudge (None when unmeasured)

        Returns:
            Rounded 0-100 score, 50 when nothing was measured
        """
        scores: list[int] = []
        for words in follow_up_words:
            if words is None:
                continue
            if words > 50:
                scores.append(80)
            elif words > 20:
                scores.append(60)
            else:
                scores.append(30)
        if not scores:
            return 50
        return round_half_up(sum(scores) / len(scores))

    def summarize_interventions(
        self,
        delivered: Sequence[DeliveredIntervention],
        effectiveness: float,
    ) -> InterventionInsights:
        """Educator-facing summary of the recent nudges for one writer."""
        recommendations: list[str] = []
        patterns: list[str] = []

        if delivered:
            counts = Counter(item.intervention_type for item in delivered)
            most_common, _ = counts.most_common(1)[0]
            patterns.append(f"Writer frequently receives {most_common.value} interventions")
            if most_common in _TYPE_RECOMMENDATIONS:
                recommendations.append(_TYPE_RECOMMENDATIONS[most_common])

        if effectiveness < 50:
            recommendations.append("Current interventions show limited effectiveness")
            recommendations.append("Consider one-on-one check-in to understand writer needs")
        elif effectiveness > 80:
            patterns.append("Writer responds well to automated interventions")

        return InterventionInsights(
            effectiveness_score=effectiveness,
            recommendations=recommendations,
            patterns=patterns,
            recent=sorted(delivered, key=lambda item: item.delivered_at, reverse=True)[:10],
        )


__all__ = [
    "InterventionTemplate",
    "InterventionRule",
    "INTERVENTION_RULES",
    "SUPPORTIVE_PREFIXES",
    "STAGE_LEAD_INS",
    "InterventionDecisionEngine",
]
