"""
CEO Discovery Models - Data classes for discovery, treasury and learning entities.

Every record converts to a JSON-safe dict with ``to_dict()`` and back with
``from_dict()``. Timestamps are ISO 8601 strings in UTC.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

# Share of available treasury balance a single allocation may take
MAX_ALLOCATION_RATIO = 0.2

# Currency value of one saved hour, and the amortization horizon in months
VALUE_PER_HOUR = 100.0
WEEKS_PER_MONTH = 4.33
AMORTIZATION_MONTHS = 6


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Format a datetime as ISO 8601, assuming UTC for naive values."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_iso(value: str) -> datetime:
    """Parse an ISO 8601 timestamp, accepting a trailing ``Z``."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero for positive values (0.5 -> 1, 677.6 -> 678)."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def six_month_value(weekly_minutes: float) -> float:
    """Currency value of a weekly time saving over the amortization horizon."""
    monthly_hours = weekly_minutes * WEEKS_PER_MONTH / 60
    return monthly_hours * VALUE_PER_HOUR * AMORTIZATION_MONTHS


def _enum_value(value):
    return value.value if isinstance(value, Enum) else value


# =============================================================================
# Enums
# =============================================================================


class PatternCategory(str, Enum):
    """Kind of behavior a pattern describes."""

    REPETITIVE = "repetitive"
    ERROR = "error"
    BOTTLENECK = "bottleneck"
    WORKFLOW = "workflow"
    SEARCH = "search"


class PainCategory(str, Enum):
    """Named problem class derived from patterns."""

    REPETITIVE_TASK = "repetitive_task"
    RECURRING_ERROR = "recurring_error"
    WORKFLOW_BOTTLENECK = "workflow_bottleneck"
    MANUAL_PROCESS = "manual_process"


class Severity(str, Enum):
    """Pain point severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(str, Enum):
    """Delivery risk of a proposal."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReservationStatus(str, Enum):
    """Reservation lifecycle. Committed and cancelled are terminal."""

    RESERVED = "reserved"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class TransactionKind(str, Enum):
    """Direction of a ledger transaction."""

    EXPENSE = "expense"
    REVENUE = "revenue"


class SessionStatus(str, Enum):
    """Discovery session lifecycle."""

    ANALYZING = "analyzing"
    PROPOSING = "proposing"
    COMPLETED = "completed"


class ModelKind(str, Enum):
    """Estimator trained from outcomes."""

    IMPACT_PREDICTOR = "impact_predictor"
    COST_ESTIMATOR = "cost_estimator"


class ActionType(str, Enum):
    """Improvement actions the scheduler can run."""

    RETRAIN_MODEL = "retrain_model"
    ADJUST_ALGORITHM = "adjust_algorithm"
    UPDATE_WEIGHTS = "update_weights"
    CHANGE_STRATEGY = "change_strategy"


# =============================================================================
# Discovery records
# =============================================================================


@dataclass
class BehavioralPattern:
    """A weighted, deduplicated behavior observed in the logs."""

    id: str
    category: PatternCategory
    description: str
    frequency: int
    time_cost: float  # minutes accumulated over the window
    confidence: float
    first_seen: str
    last_seen: str
    context: list[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        """Merge key: patterns with the same key describe the same behavior."""
        return (_enum_value(self.category), self.description)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": _enum_value(self.category),
            "description": self.description,
            "frequency": self.frequency,
            "time_cost": self.time_cost,
            "confidence": self.confidence,
            "first_seen": self.first_seen,
            "last_seen": self.last_seen,
            "context": list(self.context),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BehavioralPattern":
        return cls(
            id=data["id"],
            category=PatternCategory(data["category"]),
            description=data["description"],
            frequency=int(data["frequency"]),
            time_cost=float(data["time_cost"]),
            confidence=float(data["confidence"]),
            first_seen=data["first_seen"],
            last_seen=data["last_seen"],
            context=list(data.get("context") or []),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class PainPoint:
    """A classified problem worth remediating."""

    id: str
    category: PainCategory
    description: str
    severity: Severity
    time_cost: float  # minutes per week
    automation_potential: float
    related_patterns: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": _enum_value(self.category),
            "description": self.description,
            "severity": _enum_value(self.severity),
            "time_cost": self.time_cost,
            "automation_potential": self.automation_potential,
            "related_patterns": list(self.related_patterns),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PainPoint":
        return cls(
            id=data["id"],
            category=PainCategory(data["category"]),
            description=data["description"],
            severity=Severity(data["severity"]),
            time_cost=float(data["time_cost"]),
            automation_potential=float(data["automation_potential"]),
            related_patterns=list(data.get("related_patterns") or []),
        )


@dataclass
class ImpactBreakdown:
    """The four 0-100 impact dimensions."""

    time_savings: int
    problem_solution: int
    usability: int
    sustainability: int

    def values(self) -> list[int]:
        return [
            self.time_savings,
            self.problem_solution,
            self.usability,
            self.sustainability,
        ]

    def to_dict(self) -> dict:
        return {
            "time_savings": self.time_savings,
            "problem_solution": self.problem_solution,
            "usability": self.usability,
            "sustainability": self.sustainability,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ImpactBreakdown":
        return cls(
            time_savings=int(data["time_savings"]),
            problem_solution=int(data["problem_solution"]),
            usability=int(data["usability"]),
            sustainability=int(data["sustainability"]),
        )


@dataclass
class ImpactPrediction:
    """Forecast attached to a proposal before it is persisted."""

    expected_impact: int
    expected_roi: float
    confidence: float
    breakdown: ImpactBreakdown
    reasoning: str

    def to_dict(self) -> dict:
        return {
            "expected_impact": self.expected_impact,
            "expected_roi": self.expected_roi,
            "confidence": self.confidence,
            "breakdown": self.breakdown.to_dict(),
            "reasoning": self.reasoning,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ImpactPrediction":
        return cls(
            expected_impact=int(data["expected_impact"]),
            expected_roi=float(data["expected_roi"]),
            confidence=float(data["confidence"]),
            breakdown=ImpactBreakdown.from_dict(data["breakdown"]),
            reasoning=data.get("reasoning", ""),
        )


@dataclass
class Proposal:
    """A costed remediation plan for one pain point."""

    id: str
    title: str
    description: str
    pain_point: PainPoint
    cost: float
    timeline: str
    required_roles: list[str]
    deliverables: list[str]
    success_metrics: list[str]
    expected_time_savings: float  # minutes per week
    automation_level: float
    risk_level: RiskLevel
    prediction: ImpactPrediction | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "pain_point": self.pain_point.to_dict(),
            "cost": self.cost,
            "timeline": self.timeline,
            "required_roles": list(self.required_roles),
            "deliverables": list(self.deliverables),
            "success_metrics": list(self.success_metrics),
            "expected_time_savings": self.expected_time_savings,
            "automation_level": self.automation_level,
            "risk_level": _enum_value(self.risk_level),
            "prediction": self.prediction.to_dict() if self.prediction else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Proposal":
        prediction = data.get("prediction")
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            pain_point=PainPoint.from_dict(data["pain_point"]),
            cost=float(data["cost"]),
            timeline=data["timeline"],
            required_roles=list(data.get("required_roles") or []),
            deliverables=list(data.get("deliverables") or []),
            success_metrics=list(data.get("success_metrics") or []),
            expected_time_savings=float(data["expected_time_savings"]),
            automation_level=float(data["automation_level"]),
            risk_level=RiskLevel(data["risk_level"]),
            prediction=ImpactPrediction.from_dict(prediction) if prediction else None,
        )


@dataclass
class DiscoverySession:
    """One run of the discovery pipeline."""

    id: str
    start_time: str
    status: SessionStatus = SessionStatus.ANALYZING
    patterns: list[BehavioralPattern] = field(default_factory=list)
    pain_points: list[PainPoint] = field(default_factory=list)
    proposals: list[Proposal] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "start_time": self.start_time,
            "status": _enum_value(self.status),
            "patterns": [p.to_dict() for p in self.patterns],
            "pain_points": [p.to_dict() for p in self.pain_points],
            "proposals": [p.to_dict() for p in self.proposals],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DiscoverySession":
        return cls(
            id=data["id"],
            start_time=data["start_time"],
            status=SessionStatus(data["status"]),
            patterns=[BehavioralPattern.from_dict(p) for p in data.get("patterns", [])],
            pain_points=[PainPoint.from_dict(p) for p in data.get("pain_points", [])],
            proposals=[Proposal.from_dict(p) for p in data.get("proposals", [])],
        )


# =============================================================================
# Treasury records
# =============================================================================


@dataclass
class TreasurySnapshot:
    """Derived view of the ledger. Never stored directly."""

    balance: float
    start_capital: float
    burn_rate: float
    runway: float  # hours, inf when nothing burns
    reserved: float
    available_balance: float

    def to_dict(self) -> dict:
        return {
            "balance": self.balance,
            "start_capital": self.start_capital,
            "burn_rate": self.burn_rate,
            "runway": None if math.isinf(self.runway) else self.runway,
            "reserved": self.reserved,
            "available_balance": self.available_balance,
        }


@dataclass
class Reservation:
    """An earmarked, not yet spent allocation."""

    id: str
    amount: float
    reason: str
    status: ReservationStatus
    created_at: str
    committed_at: str | None = None
    actual_cost: float | None = None
    proposal_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": self.amount,
            "reason": self.reason,
            "status": _enum_value(self.status),
            "created_at": self.created_at,
            "committed_at": self.committed_at,
            "actual_cost": self.actual_cost,
            "proposal_id": self.proposal_id,
        }

    @classmethod
    def from_row(cls, row) -> "Reservation":
        return cls(
            id=row["id"],
            amount=row["amount"],
            reason=row["reason"],
            status=ReservationStatus(row["status"]),
            created_at=row["created_at"],
            committed_at=row["committed_at"],
            actual_cost=row["actual_cost"],
            proposal_id=row["proposal_id"],
        )


@dataclass
class Transaction:
    """Append-only ledger entry."""

    id: str
    kind: TransactionKind
    amount: float
    description: str
    created_at: str
    reservation_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": _enum_value(self.kind),
            "amount": self.amount,
            "description": self.description,
            "created_at": self.created_at,
            "reservation_id": self.reservation_id,
        }

    @classmethod
    def from_row(cls, row) -> "Transaction":
        return cls(
            id=row["id"],
            kind=TransactionKind(row["kind"]),
            amount=row["amount"],
            description=row["description"],
            created_at=row["created_at"],
            reservation_id=row["reservation_id"],
        )


# =============================================================================
# Learning records
# =============================================================================


@dataclass
class OutcomeScores:
    """Raw post-delivery feedback for a project."""

    time_savings: float
    problem_solution: float
    usability: float
    sustainability: float
    user_satisfaction: float
    actual_cost: float
    actual_timeline: str
    would_recommend: bool = True
    user_comments: str | None = None


@dataclass
class ActualOutcome:
    """Realized result of a delivered project. Immutable once recorded."""

    proposal_id: str
    project_id: str
    completed_at: str
    actual_time_savings: float
    actual_problem_solution: float
    actual_usability: float
    actual_sustainability: float
    actual_overall_impact: float
    prediction_accuracy: float
    user_satisfaction: float
    would_recommend: bool
    actual_cost: float
    actual_timeline: str
    actual_roi: float
    predicted_impact: float | None = None
    user_comments: str | None = None

    def to_dict(self) -> dict:
        return {
            "proposal_id": self.proposal_id,
            "project_id": self.project_id,
            "completed_at": self.completed_at,
            "actual_time_savings": self.actual_time_savings,
            "actual_problem_solution": self.actual_problem_solution,
            "actual_usability": self.actual_usability,
            "actual_sustainability": self.actual_sustainability,
            "actual_overall_impact": self.actual_overall_impact,
            "prediction_accuracy": self.prediction_accuracy,
            "user_satisfaction": self.user_satisfaction,
            "would_recommend": self.would_recommend,
            "actual_cost": self.actual_cost,
            "actual_timeline": self.actual_timeline,
            "actual_roi": self.actual_roi,
            "predicted_impact": self.predicted_impact,
            "user_comments": self.user_comments,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ActualOutcome":
        return cls(
            proposal_id=data["proposal_id"],
            project_id=data["project_id"],
            completed_at=data["completed_at"],
            actual_time_savings=float(data["actual_time_savings"]),
            actual_problem_solution=float(data["actual_problem_solution"]),
            actual_usability=float(data["actual_usability"]),
            actual_sustainability=float(data["actual_sustainability"]),
            actual_overall_impact=float(data["actual_overall_impact"]),
            prediction_accuracy=float(data.get("prediction_accuracy") or 0),
            user_satisfaction=float(data["user_satisfaction"]),
            would_recommend=bool(data.get("would_recommend", False)),
            actual_cost=float(data["actual_cost"]),
            actual_timeline=data.get("actual_timeline", ""),
            actual_roi=float(data["actual_roi"]),
            predicted_impact=data.get("predicted_impact"),
            user_comments=data.get("user_comments"),
        )


@dataclass
class TrainingExample:
    """Proposal, its forecast and the realized outcome, weighted by surprise."""

    proposal: Proposal
    prediction: ImpactPrediction
    outcome: ActualOutcome
    learning_weight: float
    consumed: bool = False

    @property
    def proposal_id(self) -> str:
        return self.proposal.id

    def to_dict(self) -> dict:
        return {
            "proposal": self.proposal.to_dict(),
            "prediction": self.prediction.to_dict(),
            "outcome": self.outcome.to_dict(),
            "learning_weight": self.learning_weight,
        }

    @classmethod
    def from_dict(cls, data: dict, consumed: bool = False) -> "TrainingExample":
        return cls(
            proposal=Proposal.from_dict(data["proposal"]),
            prediction=ImpactPrediction.from_dict(data["prediction"]),
            outcome=ActualOutcome.from_dict(data["outcome"]),
            learning_weight=float(data["learning_weight"]),
            consumed=consumed,
        )


@dataclass
class Model:
    """A versioned set of named feature weights."""

    id: str
    kind: ModelKind
    version: int
    trained_at: str
    training_size: int
    accuracy: float
    weights: dict[str, float] = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": _enum_value(self.kind),
            "version": self.version,
            "trained_at": self.trained_at,
            "training_size": self.training_size,
            "accuracy": self.accuracy,
            "weights": dict(self.weights),
            "metadata": dict(self.metadata),
        }


@dataclass
class TrainingResult:
    """Summary of one training pass."""

    model_id: str
    epochs_completed: int
    final_accuracy: float
    improvement: float  # best accuracy minus the prior model's accuracy
    training_time_ms: float

    def to_dict(self) -> dict:
        return {
            "model_id": self.model_id,
            "epochs_completed": self.epochs_completed,
            "final_accuracy": self.final_accuracy,
            "improvement": self.improvement,
            "training_time_ms": self.training_time_ms,
        }


@dataclass
class ImprovementAction:
    """A unit of work proposed by the improvement scheduler."""

    id: str
    action_type: ActionType
    reason: str
    expected_improvement: float
    executed_at: str | None = None
    actual_improvement: float | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action_type": _enum_value(self.action_type),
            "reason": self.reason,
            "expected_improvement": self.expected_improvement,
            "executed_at": self.executed_at,
            "actual_improvement": self.actual_improvement,
        }


@dataclass
class LearningMetrics:
    """Aggregate view over all recorded outcomes."""

    total_projects: int = 0
    average_prediction_accuracy: float = 0.0
    average_user_satisfaction: float = 0.0
    average_roi: float = 0.0
    improvement_trend: float = 0.0  # -1 to 1
    confidence_level: float = 0.0  # 0 to 1

    def to_dict(self) -> dict:
        return {
            "total_projects": self.total_projects,
            "average_prediction_accuracy": self.average_prediction_accuracy,
            "average_user_satisfaction": self.average_user_satisfaction,
            "average_roi": self.average_roi,
            "improvement_trend": self.improvement_trend,
            "confidence_level": self.confidence_level,
        }
