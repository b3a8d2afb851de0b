"""
Writing Process Analysis Service for DraftPulse.

Aggregates every session of one assignment into WritingProcessInsights:
- Per-session tags (productive, struggling, stagnant, revision-heavy, exploratory)
- Dominant and secondary writing patterns with evidence
- Stage segmentation and time distribution
- Coherence, development and revision-quality scores
- Productive time-of-day periods and struggle points
- Strengths, improvement areas, recommendations and intervention suggestions

Also compares dominant patterns across assignments for a writer.

The analysis is CPU-only and side-effect free; session fetching happens in
the caller.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

import structlog

from draftpulse.lib.numeric import clamp, round_half_up
from draftpulse.models.cognition import LoadLevel, load_from_rank
from draftpulse.models.insights import (
    CrossAssignmentSummary,
    PatternSnapshot,
    PatternType,
    ProcessStage,
    ProcessStageName,
    ProductivePeriod,
    SessionPattern,
    SessionTag,
    StrugglePoint,
    TimeOfDay,
    WritingPattern,
    WritingProcessInsights,
    empty_time_distribution,
)
from draftpulse.models.profile import WriterProfileSnapshot, coerce_profile
from draftpulse.models.telemetry import TelemetryRecord
from draftpulse.services.cognition.load import LoadClassifier
from draftpulse.services.cognition.signals import SignalExtractor

logger = structlog.get_logger(__name__)


# =============================================================================
# Rule Tables
# =============================================================================

PATTERN_EVIDENCE: dict[PatternType, tuple[str, ...]] = {
    PatternType.LINEAR: ("Consistent forward progress", "Low deletion ratios"),
    PatternType.RECURSIVE: ("Multiple revision cycles", "Iterative development"),
    PatternType.PERFECTIONIST: ("High deletion-to-addition ratio", "Extended revision periods"),
    PatternType.BURST: ("Short, highly productive sessions", "High words-per-minute rate"),
    PatternType.STEADY: ("Consistent productivity", "Sustained focus periods"),
    PatternType.EXPLORATORY: ("Balanced writing and thinking", "Varied session patterns"),
}

PATTERN_RECOMMENDATIONS: dict[PatternType, tuple[str, ...]] = {
    PatternType.PERFECTIONIST: (
        "Try timed freewriting to reduce over-editing",
        "Set revision limits for each session",
    ),
    PatternType.LINEAR: ("Consider adding reflection breaks to deepen thinking",),
    PatternType.RECURSIVE: ("Create an outline to guide your revision process",),
    PatternType.BURST: (
        "Plan regular short writing sessions",
        "Use timers to maintain focus during bursts",
    ),
}

# Used when no rule in a table fires, so every list is non-empty
DEFAULT_STRENGTH = "Keeps engaging with the writing process across sessions"
DEFAULT_IMPROVEMENT_AREA = "Continue building consistent writing habits"
DEFAULT_PROCESS_RECOMMENDATION = "Keep following your current writing routine"
DEFAULT_INTERVENTION_SUGGESTION = "Continue monitoring sessions for emerging support needs"

COHERENCE_AREA = "Work on maintaining focus and coherence"


@dataclass(frozen=True)
class _AnalyzedSession:
    record: TelemetryRecord
    pattern: SessionPattern
    stage_load: LoadLevel          # load without profile conditioning


@dataclass(frozen=True)
class _SecondaryRule:
    type: PatternType
    matches: Callable[[SessionPattern], bool]
    evidence: tuple[str, ...]


SECONDARY_RULES: tuple[_SecondaryRule, ...] = (
    _SecondaryRule(
        PatternType.PERFECTIONIST,
        lambda sp: sp.indicators.deletion_ratio > 1.5 or sp.indicators.revision_cycles > 5,
        ("High deletion ratios", "Multiple revision cycles"),
    ),
    _SecondaryRule(
        PatternType.BURST,
        lambda sp: (
            sp.tag == SessionTag.PRODUCTIVE
            and sp.indicators.time_on_task < 30
            and sp.indicators.word_production_rate > 25
        ),
        ("Short productive sessions", "High word production rate"),
    ),
    _SecondaryRule(
        PatternType.LINEAR,
        lambda sp: sp.tag == SessionTag.PRODUCTIVE and sp.indicators.word_production_rate > 20,
        PATTERN_EVIDENCE[PatternType.LINEAR],
    ),
    _SecondaryRule(
        PatternType.RECURSIVE,
        lambda sp: sp.tag == SessionTag.REVISION_HEAVY,
        PATTERN_EVIDENCE[PatternType.RECURSIVE],
    ),
    _SecondaryRule(
        PatternType.STEADY,
        lambda sp: sp.tag == SessionTag.PRODUCTIVE and sp.indicators.time_on_task > 60,
        PATTERN_EVIDENCE[PatternType.STEADY],
    ),
    _SecondaryRule(
        PatternType.EXPLORATORY,
        lambda sp: sp.tag == SessionTag.EXPLORATORY,
        PATTERN_EVIDENCE[PatternType.EXPLORATORY],
    ),
)


def time_of_day(hour: int) -> TimeOfDay:
    """Bucket an hour of the day (0-23)."""
    if 5 <= hour < 12:
        return TimeOfDay.MORNING
    if 12 <= hour < 17:
        return TimeOfDay.AFTERNOON
    if 17 <= hour < 21:
        return TimeOfDay.EVENING
    return TimeOfDay.NIGHT


# =============================================================================
# Service
# =============================================================================

class WritingProcessAnalyzer:
    """
    Builds process insights from a writer's sessions for one assignment.

    Usage:
        analyzer = WritingProcessAnalyzer()
        insights = analyzer.analyze("writer-1", "essay-2", sessions, profile)
    """

    SECONDARY_SHARE = 0.3
    CONSISTENT_SHARE = 0.6
    MAX_PATTERN_CONFIDENCE = 0.95

    PRODUCTIVE_MIN_WORDS = 200
    REVISION_HEAVY_RATIO = 0.7
    JUMPY_SESSION_POSITIONS = 50
    SUBSTANTIVE_SESSION_WORDS = 50

    def __init__(
        self,
        extractor: SignalExtractor | None = None,
        classifier: LoadClassifier | None = None,
    ):
        self.extractor = extractor or SignalExtractor()
        self.classifier = classifier or LoadClassifier()

    def analyze(
        self,
        writer_id: str,
        assignment_id: str,
        sessions: Sequence[TelemetryRecord],
        profile: WriterProfileSnapshot | Mapping | None = None,
    ) -> WritingProcessInsights:
        """
        Analyze all sessions of one assignment.

        Args:
            writer_id: Writer identifier
            assignment_id: Assignment identifier
            sessions: Sessions in chronological order
            profile: Optional writer profile (snapshot or raw mapping)

        Returns:
            WritingProcessInsights (documented defaults when there are no sessions)
        """
        if not sessions:
            return self.empty_insights(writer_id, assignment_id)

        profile = coerce_profile(profile)
        analyzed = [self._analyze_session(record, profile) for record in sessions]
        patterns = [item.pattern for item in analyzed]

        dominant = self.dominant_pattern(patterns)
        secondary = self.secondary_patterns(patterns, dominant)
        stages = self.process_stages(analyzed)
        coherence = self.coherence_score(sessions)
        development = self.development_score(sessions)
        revision = self.revision_quality(sessions)
        struggle_points = self.struggle_points(analyzed)

        strengths = self._strengths(patterns, coherence, development, revision)
        improvement_areas = self._improvement_areas(patterns, stages, coherence, development)

        insights = WritingProcessInsights(
            writer_id=writer_id,
            assignment_id=assignment_id,
            dominant_pattern=dominant,
            secondary_patterns=secondary,
            session_patterns=patterns,
            process_stages=stages,
            time_distribution=self.time_distribution(stages),
            coherence_score=coherence,
            development_score=development,
            revision_quality=revision,
            productive_periods=self.productive_periods(analyzed),
            struggle_points=struggle_points,
            strengths=strengths,
            improvement_areas=improvement_areas,
            process_recommendations=self._process_recommendations(dominant, stages, struggle_points),
            intervention_suggestions=self._intervention_suggestions(
                struggle_points, improvement_areas, profile
            ),
        )
        logger.debug(
            "process_analyzed",
            writer_id=writer_id,
            assignment_id=assignment_id,
            session_count=len(sessions),
            dominant_pattern=dominant.type.value,
        )
        return insights

    def empty_insights(self, writer_id: str, assignment_id: str) -> WritingProcessInsights:
        """Insights for an assignment with no sessions yet."""
        return WritingProcessInsights(
            writer_id=writer_id,
            assignment_id=assignment_id,
            dominant_pattern=WritingPattern(type=PatternType.EXPLORATORY, confidence=0.0),
            improvement_areas=["No data available for analysis"],
            process_recommendations=["Encourage writer to begin writing"],
            intervention_suggestions=["Provide initial writing support"],
        )

    # =========================================================================
    # Sessions and patterns
    # =========================================================================

    def _analyze_session(
        self,
        record: TelemetryRecord,
        profile: WriterProfileSnapshot | None,
    ) -> _AnalyzedSession:
        indicators = self.extractor.extract(record)
        load = self.classifier.classify(indicators, profile)
        stage_load = load if profile is None else self.classifier.classify(indicators)
        tag, key_indicators = self.tag_session(
            record,
            wpm=indicators.word_production_rate,
            stagnant=indicators.progress_stagnation,
            level=load.level,
            factors=load.factors,
        )
        return _AnalyzedSession(
            record=record,
            pattern=SessionPattern(
                session_id=record.session_id,
                tag=tag,
                key_indicators=key_indicators,
                indicators=indicators,
                load=load,
            ),
            stage_load=stage_load.level,
        )

    def tag_session(
        self,
        record: TelemetryRecord,
        wpm: float,
        stagnant: bool,
        level: LoadLevel,
        factors: Sequence[str] = (),
    ) -> tuple[SessionTag, tuple[str, ...]]:
        """Tag one session; the deletion ratio here is word-based."""
        if not record.has_activity:
            return SessionTag.STAGNANT, ("No activity data",)

        word_ratio = record.words_deleted / max(1, record.words_added)
        if wpm < 5 and stagnant:
            return SessionTag.STAGNANT, ("Low word production", "Progress stagnation")
        if word_ratio > self.REVISION_HEAVY_RATIO:
            return SessionTag.REVISION_HEAVY, (f"High deletion ratio: {round_half_up(word_ratio * 100)}%",)
        if level in (LoadLevel.HIGH, LoadLevel.OVERLOAD):
            return SessionTag.STRUGGLING, (f"{level.value} cognitive load", *factors[:2])
        if record.words_added > self.PRODUCTIVE_MIN_WORDS and word_ratio < 0.3:
            return SessionTag.PRODUCTIVE, (f"High productivity: {round_half_up(wpm)} wpm",)
        return SessionTag.EXPLORATORY, ("Balanced writing and revision",)

    def dominant_pattern(self, patterns: Sequence[SessionPattern]) -> WritingPattern:
        """Weighted vote over session tags; ties keep the first type to score."""
        scores: dict[PatternType, float] = {}

        def vote(pattern_type: PatternType, weight: float) -> None:
            scores[pattern_type] = scores.get(pattern_type, 0.0) + weight

        for sp in patterns:
            productive = sp.tag == SessionTag.PRODUCTIVE
            if productive and sp.indicators.word_production_rate > 20:
                vote(PatternType.LINEAR, 1.0)
            if sp.tag == SessionTag.REVISION_HEAVY:
                vote(PatternType.RECURSIVE, 1.0)
                if sp.indicators.deletion_ratio > 2:
                    vote(PatternType.PERFECTIONIST, 0.5)
            if sp.tag == SessionTag.EXPLORATORY:
                vote(PatternType.EXPLORATORY, 1.0)
            if productive and sp.indicators.time_on_task < 30:
                vote(PatternType.BURST, 0.7)
            if productive and sp.indicators.time_on_task > 60:
                vote(PatternType.STEADY, 0.7)

        dominant = PatternType.EXPLORATORY
        best = 0.0
        for pattern_type, score in scores.items():
            if score > best:
                dominant, best = pattern_type, score

        confidence = min(self.MAX_PATTERN_CONFIDENCE, best / len(patterns)) if patterns else 0.0
        return WritingPattern(
            type=dominant,
            confidence=confidence,
            evidence=PATTERN_EVIDENCE[dominant],
        )

    def secondary_patterns(
        self,
        patterns: Sequence[SessionPattern],
        dominant: WritingPattern,
    ) -> list[WritingPattern]:
        """Non-dominant patterns matched by at least 30% of sessions."""
        if not patterns:
            return []
        threshold = len(patterns) * self.SECONDARY_SHARE
        secondary: list[WritingPattern] = []
        for rule in SECONDARY_RULES:
            if rule.type == dominant.type:
                continue
            matching = sum(1 for sp in patterns if rule.matches(sp))
            if matching and matching >= threshold:
                secondary.append(
                    WritingPattern(
                        type=rule.type,
                        confidence=matching / len(patterns),
                        evidence=rule.evidence,
                    )
                )
        return secondary

    # =========================================================================
    # Stages and scores
    # =========================================================================

    def process_stages(self, analyzed: Sequence[_AnalyzedSession]) -> list[ProcessStage]:
        """Attribute each session to a stage."""
        stages: list[ProcessStage] = []
        total = len(analyzed)
        for index, item in enumerate(analyzed):
            record = item.record
            added, deleted = record.words_added, record.words_deleted
            duration = record.duration_minutes
            revision_intensity = 0.0

            if index == 0 and added < 100:
                stage = ProcessStageName.PLANNING
            elif deleted > added * 0.5:
                stage = ProcessStageName.REVISING
                revision_intensity = min(1.0, deleted / max(1, added))
            elif added > 100 and deleted < added * 0.2:
                stage = ProcessStageName.DRAFTING
            elif index >= total - 2 and added < 50:
                stage = ProcessStageName.POLISHING
            else:
                stage = ProcessStageName.EDITING
                revision_intensity = 0.3

            stages.append(
                ProcessStage(
                    stage=stage,
                    duration_minutes=duration,
                    productivity=added / max(1.0, duration),
                    revision_intensity=revision_intensity,
                    load_level=item.stage_load,
                )
            )
        return stages

    def time_distribution(self, stages: Sequence[ProcessStage]) -> dict[ProcessStageName, int]:
        """Rounded percentage of total minutes per stage (all zero with no time)."""
        distribution = empty_time_distribution()
        total = sum(stage.duration_minutes for stage in stages)
        if total <= 0:
            return distribution
        minutes: dict[ProcessStageName, float] = {name: 0.0 for name in distribution}
        for stage in stages:
            minutes[stage.stage] += stage.duration_minutes
        return {name: round_half_up(value / total * 100) for name, value in minutes.items()}

    def coherence_score(self, sessions: Sequence[TelemetryRecord]) -> int:
        """Rewards net word growth session over session, penalizes jumpy sessions."""
        if not sessions:
            return 0
        score = 70.0
        word_count = 0
        growth = 0
        for record in sessions:
            current = word_count + record.words_added - record.words_deleted
            if current > word_count:
                growth += 1
            word_count = current
        score += growth / len(sessions) * 20

        jumpy = sum(
            1 for record in sessions
            if len(record.cursor_positions or ()) > self.JUMPY_SESSION_POSITIONS
        )
        score -= jumpy / len(sessions) * 10
        return round_half_up(clamp(score, 0, 100))

    def development_score(self, sessions: Sequence[TelemetryRecord]) -> int:
        """Rewards total volume and the share of substantive sessions."""
        if not sessions:
            return 0
        score = 60.0
        total_words = sum(record.words_added for record in sessions)
        if total_words > 1000:
            score += 20
        elif total_words > 500:
            score += 10
        substantive = sum(
            1 for record in sessions if record.words_added > self.SUBSTANTIVE_SESSION_WORDS
        )
        score += substantive / len(sessions) * 20
        return round_half_up(clamp(score, 0, 100))

    def revision_quality(self, sessions: Sequence[TelemetryRecord]) -> int:
        """Rewards moderate deletion ratios spread across some but not all sessions."""
        score = 50.0
        revision_sessions = [record for record in sessions if record.words_deleted > 0]
        if not revision_sessions:
            return int(score)
        for record in revision_sessions:
            ratio = record.words_deleted / max(1, record.words_added)
            if 0.2 < ratio < 0.8:
                score += 5
            elif ratio > 2:
                score -= 5
        revision_rate = len(revision_sessions) / len(sessions)
        if 0.3 < revision_rate < 0.7:
            score += 20
        return round_half_up(clamp(score, 0, 100))

    def productive_periods(self, analyzed: Sequence[_AnalyzedSession]) -> list[ProductivePeriod]:
        """Words per minute by time-of-day bucket, most productive first."""
        buckets: dict[TimeOfDay, dict[str, float]] = {}
        for item in analyzed:
            record = item.record
            if record.started_at is None or not record.has_activity:
                continue
            bucket = buckets.setdefault(
                time_of_day(record.started_at.hour),
                {"words": 0.0, "minutes": 0.0, "load": 0.0, "count": 0.0},
            )
            bucket["words"] += record.words_added
            bucket["minutes"] += record.duration_minutes
            bucket["load"] += item.stage_load.rank
            bucket["count"] += 1

        periods = [
            ProductivePeriod(
                time_of_day=period,
                productivity_rate=data["words"] / max(1.0, data["minutes"]),
                load_level=load_from_rank(data["load"] / data["count"]),
            )
            for period, data in buckets.items()
        ]
        return sorted(periods, key=lambda p: p.productivity_rate, reverse=True)

    def struggle_points(self, analyzed: Sequence[_AnalyzedSession]) -> list[StrugglePoint]:
        """Struggling or stagnant sessions, resolved iff the next session is productive."""
        points: list[StrugglePoint] = []
        for index, item in enumerate(analyzed):
            tag = item.pattern.tag
            if tag not in (SessionTag.STRUGGLING, SessionTag.STAGNANT):
                continue
            resolved = (
                index + 1 < len(analyzed)
                and analyzed[index + 1].pattern.tag == SessionTag.PRODUCTIVE
            )
            points.append(
                StrugglePoint(
                    timestamp=item.record.started_at,
                    type=tag,
                    duration_minutes=item.record.duration_minutes,
                    resolved=resolved,
                )
            )
        return points

    # =========================================================================
    # Growth insights and recommendations
    # =========================================================================

    def _strengths(
        self,
        patterns: Sequence[SessionPattern],
        coherence: int,
        development: int,
        revision: int,
    ) -> list[str]:
        strengths: list[str] = []
        if coherence > 80:
            strengths.append("Maintains strong coherence throughout writing")
        if development > 80:
            strengths.append("Demonstrates robust content development")
        if revision > 70:
            strengths.append("Shows effective revision practices")
        productive = sum(1 for sp in patterns if sp.tag == SessionTag.PRODUCTIVE)
        if productive > len(patterns) * 0.6:
            strengths.append("Consistently maintains productive writing sessions")
        return strengths or [DEFAULT_STRENGTH]

    def _improvement_areas(
        self,
        patterns: Sequence[SessionPattern],
        stages: Sequence[ProcessStage],
        coherence: int,
        development: int,
    ) -> list[str]:
        areas: list[str] = []
        if coherence < 50:
            areas.append(COHERENCE_AREA)
        if development < 50:
            areas.append("Focus on developing ideas more fully")
        struggling = sum(
            1 for sp in patterns if sp.tag in (SessionTag.STRUGGLING, SessionTag.STAGNANT)
        )
        if struggling > len(patterns) * 0.3:
            areas.append("Develop strategies for overcoming writing blocks")
        high_load = sum(
            1 for stage in stages if stage.load_level in (LoadLevel.HIGH, LoadLevel.OVERLOAD)
        )
        if high_load > len(stages) * 0.4:
            areas.append("Practice stress management during writing")
        return areas or [DEFAULT_IMPROVEMENT_AREA]

    def _process_recommendations(
        self,
        dominant: WritingPattern,
        stages: Sequence[ProcessStage],
        struggle_points: Sequence[StrugglePoint],
    ) -> list[str]:
        recommendations = list(PATTERN_RECOMMENDATIONS.get(dominant.type, ()))
        planning_minutes = sum(
            stage.duration_minutes for stage in stages if stage.stage == ProcessStageName.PLANNING
        )
        if planning_minutes < 10:
            recommendations.append("Spend more time planning before drafting")
        if len(struggle_points) > 3:
            recommendations.append("Break assignments into smaller, manageable chunks")
            recommendations.append("Identify your peak writing times and schedule accordingly")
        return recommendations or [DEFAULT_PROCESS_RECOMMENDATION]

    def _intervention_suggestions(
        self,
        struggle_points: Sequence[StrugglePoint],
        improvement_areas: Sequence[str],
        profile: WriterProfileSnapshot | None,
    ) -> list[str]:
        suggestions: list[str] = []
        if sum(1 for sp in struggle_points if not sp.resolved) > 2:
            suggestions.append("Provide scaffolding questions during stagnant periods")
            suggestions.append("Offer brainstorming techniques when stuck")
        if COHERENCE_AREA in improvement_areas:
            suggestions.append("Use focusing questions to maintain thread")
            suggestions.append("Provide organizational templates")
        if profile is not None:
            if profile.is_frustrated:
                suggestions.append("Include more encouragement and emotional support")
            if profile.preferred_learning_style == "visual":
                suggestions.append("Offer visual organizers and concept maps")
        return suggestions or [DEFAULT_INTERVENTION_SUGGESTION]

    # =========================================================================
    # Cross-assignment analysis
    # =========================================================================

    def analyze_cross_assignment(
        self,
        sessions_by_assignment: Mapping[str, Sequence[TelemetryRecord]],
    ) -> CrossAssignmentSummary:
        """
        Compare dominant patterns across assignments.

        Args:
            sessions_by_assignment: Assignment id -> chronological sessions

        Returns:
            CrossAssignmentSummary ordered by each assignment's first session
        """
        snapshots: list[PatternSnapshot] = []
        for assignment_id, sessions in sessions_by_assignment.items():
            if not sessions:
                continue
            patterns = [self._analyze_session(record, None).pattern for record in sessions]
            dominant = self.dominant_pattern(patterns)
            snapshots.append(
                PatternSnapshot(
                    assignment_id=assignment_id,
                    started_at=sessions[0].started_at,
                    pattern=dominant.type,
                    confidence=dominant.confidence,
                )
            )
        snapshots.sort(key=lambda s: (s.started_at is None, s.started_at or datetime.min))

        counts = Counter(snapshot.pattern for snapshot in snapshots)
        consistent = [
            pattern for pattern, count in counts.items()
            if count >= len(snapshots) * self.CONSISTENT_SHARE
        ]
        return CrossAssignmentSummary(
            consistent_patterns=consistent,
            evolution=snapshots,
            recommendations=self._cross_assignment_recommendations(consistent, snapshots),
        )

    def _cross_assignment_recommendations(
        self,
        consistent: Sequence[PatternType],
        evolution: Sequence[PatternSnapshot],
    ) -> list[str]:
        recommendations: list[str] = []
        if PatternType.PERFECTIONIST in consistent:
            recommendations.append(
                "Writer consistently shows perfectionist tendencies - "
                "introduce structured revision strategies"
            )
        if PatternType.BURST in consistent:
            recommendations.append(
                "Writer prefers burst writing - design assignments that accommodate this style"
            )

        recent = evolution[-3:]
        if len({snapshot.pattern for snapshot in recent}) == 3:
            recommendations.append(
                "Writing patterns are highly variable - help writer find their optimal approach"
            )

        early_confidence = sum(s.confidence for s in evolution[:3]) / 3
        recent_confidence = sum(s.confidence for s in recent) / 3
        if recent_confidence > early_confidence * 1.2:
            recommendations.append(
                "Writer is developing more consistent writing patterns - "
                "reinforce current strategies"
            )
        return recommendations


__all__ = [
    "PATTERN_EVIDENCE",
    "PATTERN_RECOMMENDATIONS",
    "SECONDARY_RULES",
    "time_of_day",
    "WritingProcessAnalyzer",
]
