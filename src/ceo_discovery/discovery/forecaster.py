"""
Impact Forecaster - Scores proposals before they are presented.

All scores are pure functions of the proposal, so identical proposals always
produce identical predictions.
"""

import logging

from ..models import (
    ImpactBreakdown,
    ImpactPrediction,
    Proposal,
    RiskLevel,
    Severity,
    round_half_up,
    six_month_value,
)

logger = logging.getLogger(__name__)

# (minimum weekly minutes saved, score), checked top down
TIME_SAVINGS_STEPS = [
    (300, 100),
    (180, 90),
    (120, 80),
    (60, 70),
    (30, 60),
    (15, 50),
    (5, 40),
]
TIME_SAVINGS_FLOOR = 30

SEVERITY_SCORE = {
    Severity.LOW: 40,
    Severity.MEDIUM: 60,
    Severity.HIGH: 80,
    Severity.CRITICAL: 100,
}

SEVERITY_BONUS = {
    Severity.LOW: 0,
    Severity.MEDIUM: 10,
    Severity.HIGH: 20,
    Severity.CRITICAL: 30,
}

STRENGTH_THRESHOLD = 80


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def time_savings_score(proposal: Proposal) -> int:
    minutes = proposal.expected_time_savings
    for threshold, score in TIME_SAVINGS_STEPS:
        if minutes >= threshold:
            return score
    return TIME_SAVINGS_FLOOR


def problem_solution_score(proposal: Proposal) -> int:
    pain = proposal.pain_point
    score = SEVERITY_SCORE[Severity(pain.severity)] * pain.automation_potential
    if proposal.risk_level == RiskLevel.LOW:
        score *= 1.1
    elif proposal.risk_level == RiskLevel.HIGH:
        score *= 0.9
    return int(min(100, round_half_up(score)))


def usability_score(proposal: Proposal) -> int:
    score = 70 + proposal.automation_level * 20

    team_size = len(proposal.required_roles)
    if team_size <= 2:
        score += 10
    elif team_size >= 4:
        score -= 10

    has_docs = any(
        "documentation" in d.lower() or "guide" in d.lower() for d in proposal.deliverables
    )
    if has_docs:
        score += 10

    return int(_clamp(round_half_up(score), 0, 100))


def sustainability_score(proposal: Proposal) -> int:
    score = 60 + SEVERITY_BONUS[Severity(proposal.pain_point.severity)]
    if proposal.expected_time_savings >= 120:
        score += 20
    elif proposal.expected_time_savings >= 60:
        score += 10
    score += proposal.automation_level * 10
    return int(min(100, round_half_up(score)))


def expected_roi(proposal: Proposal, expected_impact: float) -> float:
    """Six-month value of the weekly savings, scaled by impact, over cost."""
    if proposal.cost <= 0:
        return 0.0
    value = six_month_value(proposal.expected_time_savings) * (expected_impact / 100)
    return round_half_up(value / proposal.cost, 1)


def prediction_confidence(proposal: Proposal) -> float:
    confidence = 0.5
    if proposal.risk_level == RiskLevel.LOW:
        confidence += 0.2
    elif proposal.risk_level == RiskLevel.HIGH:
        confidence -= 0.1
    confidence += proposal.automation_level * 0.2
    if proposal.pain_point.severity in (Severity.HIGH, Severity.CRITICAL):
        confidence += 0.1
    return _clamp(confidence, 0.3, 1.0)


def build_reasoning(proposal: Proposal, breakdown: ImpactBreakdown) -> str:
    strengths = []
    if breakdown.time_savings >= STRENGTH_THRESHOLD:
        strengths.append("Significant time savings")
    if breakdown.problem_solution >= STRENGTH_THRESHOLD:
        strengths.append("Excellent problem solution fit")
    if breakdown.usability >= STRENGTH_THRESHOLD:
        strengths.append("High usability score")
    if breakdown.sustainability >= STRENGTH_THRESHOLD:
        strengths.append("Strong sustainability potential")

    concerns = []
    if proposal.risk_level == RiskLevel.HIGH:
        concerns.append("High implementation risk")
    if proposal.automation_level < 0.7:
        concerns.append("Lower automation potential")
    if proposal.cost > 400:
        concerns.append("Higher cost project")

    parts = []
    if strengths:
        parts.append(f"Strengths: {', '.join(strengths)}.")
    if concerns:
        parts.append(f"Concerns: {', '.join(concerns)}.")
    else:
        parts.append("No major concerns identified.")
    return " ".join(parts)


class ImpactForecaster:
    """Predicts impact, ROI and confidence for a proposal."""

    def predict(self, proposal: Proposal) -> ImpactPrediction:
        breakdown = ImpactBreakdown(
            time_savings=time_savings_score(proposal),
            problem_solution=problem_solution_score(proposal),
            usability=usability_score(proposal),
            sustainability=sustainability_score(proposal),
        )
        overall = int(round_half_up(sum(breakdown.values()) / 4))

        prediction = ImpactPrediction(
            expected_impact=overall,
            expected_roi=expected_roi(proposal, overall),
            confidence=prediction_confidence(proposal),
            breakdown=breakdown,
            reasoning=build_reasoning(proposal, breakdown),
        )
        logger.debug(
            f"Predicted impact {overall} (ROI {prediction.expected_roi}x) for {proposal.title}"
        )
        return prediction
