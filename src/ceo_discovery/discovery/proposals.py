"""
Proposal Synthesizer - Costed remediation proposals for pain points.

A proposal is generated only when its cost falls inside the budget range and
within the share of the treasury's available balance a single allocation may
take. Rejection is a routine outcome and is returned as None.
"""

import logging
import uuid
from dataclasses import dataclass

from ..models import (
    MAX_ALLOCATION_RATIO,
    PainCategory,
    PainPoint,
    Proposal,
    RiskLevel,
    Severity,
    TreasurySnapshot,
    round_half_up,
)

logger = logging.getLogger(__name__)

BASE_COST = 100.0

SEVERITY_MULTIPLIER = {
    Severity.LOW: 1.0,
    Severity.MEDIUM: 1.5,
    Severity.HIGH: 2.0,
    Severity.CRITICAL: 3.0,
}

# Added on top of the base cost
TOKEN_SURCHARGE = 0.5
RISK_BUFFER = 0.3
MARGIN = 0.4

QA_ROLE = "Reality-Checker"
MAX_PRIMARY_ROLES = 2

ROLE_MAPPING = {
    PainCategory.REPETITIVE_TASK: [
        "Backend-Architect",
        "DevOps-Automator",
        "Rapid-Prototyper",
    ],
    PainCategory.RECURRING_ERROR: [
        "Senior-Developer",
        "Reality-Checker",
        "Performance-Benchmarker",
    ],
    PainCategory.WORKFLOW_BOTTLENECK: [
        "Workflow-Optimizer",
        "Senior-Project-Manager",
        "Performance-Benchmarker",
    ],
    PainCategory.MANUAL_PROCESS: [
        "Backend-Architect",
        "DevOps-Automator",
        "Workflow-Optimizer",
    ],
}

TITLES = {
    PainCategory.REPETITIVE_TASK: "Task Automation System",
    PainCategory.RECURRING_ERROR: "Error Prevention & Recovery System",
    PainCategory.WORKFLOW_BOTTLENECK: "Workflow Optimization Suite",
    PainCategory.MANUAL_PROCESS: "Process Automation Framework",
}

DESCRIPTIONS = {
    PainCategory.REPETITIVE_TASK: (
        "Automate the repetitive task identified in your workflow. This solution "
        "will handle the task automatically, saving you {time_cost} minutes per "
        "week and eliminating manual effort."
    ),
    PainCategory.RECURRING_ERROR: (
        "Implement robust error prevention and automatic recovery mechanisms. "
        "This will eliminate the recurring errors you're experiencing and provide "
        "fail-safe fallbacks."
    ),
    PainCategory.WORKFLOW_BOTTLENECK: (
        "Optimize the workflow bottleneck that's slowing you down. We'll streamline "
        "the process, reduce friction, and accelerate your throughput significantly."
    ),
    PainCategory.MANUAL_PROCESS: (
        "Transform your manual process into an automated workflow. This will free "
        "up your time, reduce errors, and ensure consistent execution."
    ),
}

BASE_DELIVERABLES = [
    "Fully functional implementation",
    "Comprehensive documentation",
    "Testing and validation",
    "Integration guide",
]

CATEGORY_DELIVERABLES = {
    PainCategory.REPETITIVE_TASK: [
        "Automated script/tool",
        "Scheduling configuration",
        "Error handling system",
    ],
    PainCategory.RECURRING_ERROR: [
        "Error detection system",
        "Automatic recovery mechanisms",
        "Monitoring dashboard",
    ],
    PainCategory.WORKFLOW_BOTTLENECK: [
        "Optimized workflow implementation",
        "Performance metrics dashboard",
        "Bottleneck elimination report",
    ],
    PainCategory.MANUAL_PROCESS: [
        "Automation framework",
        "Process documentation",
        "Training materials",
    ],
}

CATEGORY_METRICS = {
    PainCategory.REPETITIVE_TASK: [
        "100% task completion rate",
        "Zero manual intervention required",
        "Error rate < 1%",
    ],
    PainCategory.RECURRING_ERROR: [
        "90% reduction in errors",
        "Automatic recovery in < 5 seconds",
        "Zero downtime",
    ],
    PainCategory.WORKFLOW_BOTTLENECK: [
        "3x throughput improvement",
        "50% reduction in processing time",
        "User satisfaction > 85%",
    ],
    PainCategory.MANUAL_PROCESS: [
        "95% time reduction",
        "Consistent results every time",
        "Easy to use interface",
    ],
}


@dataclass
class BudgetRange:
    """Inclusive cost range a proposal must fall in."""

    min: float
    max: float

    def contains(self, cost: float) -> bool:
        return self.min <= cost <= self.max


def _fmt_minutes(minutes: float) -> str:
    return f"{minutes:g}"


def estimate_cost(pain_point: PainPoint) -> float:
    """
    Cost in Becoins.

    base = 100 x severity multiplier x (2 - automation potential) x (1 + time cost / 300)
    total = base x (1 + 0.5 + 0.3 + 0.4), rounded half up
    """
    base = BASE_COST
    base *= SEVERITY_MULTIPLIER[Severity(pain_point.severity)]
    base *= 2.0 - pain_point.automation_potential
    base *= 1 + pain_point.time_cost / 300
    total = base + base * TOKEN_SURCHARGE + base * RISK_BUFFER + base * MARGIN
    return round_half_up(total)


def estimate_timeline(pain_point: PainPoint) -> str:
    """Timeline bucket from the inverse of automation potential."""
    if pain_point.automation_potential <= 0:
        return "3-4 weeks"
    complexity = 1 / pain_point.automation_potential
    if complexity < 1.3:
        return "3-5 days"
    if complexity < 1.6:
        return "1-2 weeks"
    if complexity < 2.0:
        return "2-3 weeks"
    return "3-4 weeks"


def select_roles(pain_point: PainPoint) -> list[str]:
    """Up to two primary roles, plus QA for high or critical severity."""
    roles = list(ROLE_MAPPING.get(pain_point.category, ["Rapid-Prototyper"])[:MAX_PRIMARY_ROLES])
    if pain_point.severity in (Severity.HIGH, Severity.CRITICAL):
        roles.append(QA_ROLE)
    return roles


def assess_risk(pain_point: PainPoint, cost: float) -> RiskLevel:
    """Risk from automation potential, cost and severity."""
    score = 0
    if pain_point.automation_potential < 0.6:
        score += 2
    elif pain_point.automation_potential < 0.8:
        score += 1

    if cost > 400:
        score += 2
    elif cost > 250:
        score += 1

    if pain_point.severity == Severity.CRITICAL:
        score += 1

    if score >= 4:
        return RiskLevel.HIGH
    if score >= 2:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class ProposalSynthesizer:
    """Generates proposals gated by budget and treasury capacity."""

    def __init__(self, id_factory=None):
        self._id_factory = id_factory or (lambda: f"proposal-{uuid.uuid4().hex[:12]}")

    def generate(
        self,
        pain_point: PainPoint,
        budget: BudgetRange,
        target_roi: float,
        treasury: TreasurySnapshot,
    ) -> Proposal | None:
        """
        Build a proposal for a pain point.

        Args:
            pain_point: Pain point to remediate
            budget: Acceptable cost range
            target_roi: ROI the proposal is expected to reach (recorded as a metric)
            treasury: Current ledger view; cost must fit 20% of available balance

        Returns:
            Proposal, or None when cost is out of range or over the allocation cap
        """
        cost = estimate_cost(pain_point)

        if not budget.contains(cost):
            logger.debug(f"Cost {cost:g} outside budget range {budget.min:g}-{budget.max:g}")
            return None

        allocation_cap = treasury.available_balance * MAX_ALLOCATION_RATIO
        if cost > allocation_cap:
            logger.debug(
                f"Cost {cost:g} exceeds 20% of available treasury ({allocation_cap:.2f})"
            )
            return None

        category = PainCategory(pain_point.category)
        proposal = Proposal(
            id=self._id_factory(),
            title=TITLES.get(category, "Custom Solution"),
            description=DESCRIPTIONS.get(
                category, "Custom solution tailored to your specific needs."
            ).format(time_cost=_fmt_minutes(pain_point.time_cost)),
            pain_point=pain_point,
            cost=cost,
            timeline=estimate_timeline(pain_point),
            required_roles=select_roles(pain_point),
            deliverables=BASE_DELIVERABLES + CATEGORY_DELIVERABLES.get(category, []),
            success_metrics=self._success_metrics(pain_point, target_roi),
            expected_time_savings=pain_point.time_cost,
            automation_level=pain_point.automation_potential,
            risk_level=assess_risk(pain_point, cost),
        )

        logger.info(f"Generated proposal: {proposal.title} ({cost:g} Becoins)")
        return proposal

    def _success_metrics(self, pain_point: PainPoint, target_roi: float) -> list[str]:
        metrics = [
            f"Time savings: {_fmt_minutes(pain_point.time_cost)} min/week",
            f"Automation level: {round_half_up(pain_point.automation_potential * 100):g}%",
            f"Target ROI: {target_roi:g}x",
        ]
        return metrics + CATEGORY_METRICS.get(PainCategory(pain_point.category), [])
