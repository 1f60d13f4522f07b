"""
Pain Point Classifier - Maps behavioral patterns to named pain categories.

Pure mapping, one pattern at a time:

    repetitive, frequency > 5     -> repetitive_task     severity from score, 0.9
    error, frequency > 3          -> recurring_error     high, 2x time cost, 0.85
    bottleneck, time cost > 60    -> workflow_bottleneck medium, 0.75

Workflow and search patterns produce no pain point.
"""

from ..models import BehavioralPattern, PainCategory, PainPoint, PatternCategory, Severity


def severity_for(pattern: BehavioralPattern) -> Severity:
    """Severity from frequency x time cost x confidence."""
    score = pattern.frequency * pattern.time_cost * pattern.confidence
    if score > 1000:
        return Severity.CRITICAL
    if score > 500:
        return Severity.HIGH
    if score > 200:
        return Severity.MEDIUM
    return Severity.LOW


def _pain_id(pattern: BehavioralPattern) -> str:
    suffix = pattern.id.split("-", 1)[-1]
    return f"pain-{suffix}"


def classify_pattern(pattern: BehavioralPattern) -> PainPoint | None:
    """Return the pain point for a single pattern, or None if it qualifies for none."""
    if pattern.category == PatternCategory.REPETITIVE and pattern.frequency > 5:
        return PainPoint(
            id=_pain_id(pattern),
            category=PainCategory.REPETITIVE_TASK,
            description=f'User repeats "{pattern.description}" {pattern.frequency}x/week',
            severity=severity_for(pattern),
            time_cost=pattern.time_cost,
            automation_potential=0.9,
            related_patterns=[pattern.id],
        )

    if pattern.category == PatternCategory.ERROR and pattern.frequency > 3:
        return PainPoint(
            id=_pain_id(pattern),
            category=PainCategory.RECURRING_ERROR,
            description=f"Recurring error: {pattern.description}",
            severity=Severity.HIGH,
            time_cost=pattern.time_cost * 2,
            automation_potential=0.85,
            related_patterns=[pattern.id],
        )

    if pattern.category == PatternCategory.BOTTLENECK and pattern.time_cost > 60:
        return PainPoint(
            id=_pain_id(pattern),
            category=PainCategory.WORKFLOW_BOTTLENECK,
            description=f"Bottleneck in: {pattern.description}",
            severity=Severity.MEDIUM,
            time_cost=pattern.time_cost,
            automation_potential=0.75,
            related_patterns=[pattern.id],
        )

    return None


class PainPointClassifier:
    """Classifies patterns into pain points."""

    def classify(self, patterns: list[BehavioralPattern]) -> list[PainPoint]:
        """Classify each pattern, keeping input order and dropping non-matches."""
        pain_points = []
        for pattern in patterns:
            pain_point = classify_pattern(pattern)
            if pain_point is not None:
                pain_points.append(pain_point)
        return pain_points

    severity_for = staticmethod(severity_for)
