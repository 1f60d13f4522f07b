"""
Discovery pipeline: behavioral patterns to prioritized, costed proposals.

Usage:
    from ceo_discovery.discovery import DiscoveryOrchestrator

    session = orchestrator.start_discovery()
    for proposal in session.proposals:
        print(proposal.title, proposal.prediction.expected_roi)
"""

from .classifier import PainPointClassifier, classify_pattern, severity_for
from .forecaster import ImpactForecaster
from .orchestrator import DiscoveryOrchestrator
from .patterns import PatternExtractor, merge_patterns
from .proposals import BudgetRange, ProposalSynthesizer, estimate_cost
from .sessions import SessionStore

__all__ = [
    "BudgetRange",
    "DiscoveryOrchestrator",
    "ImpactForecaster",
    "PainPointClassifier",
    "PatternExtractor",
    "ProposalSynthesizer",
    "SessionStore",
    "classify_pattern",
    "estimate_cost",
    "merge_patterns",
    "severity_for",
]
