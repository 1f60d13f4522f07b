"""Test helpers for ceo-discovery.

Builders return fully populated records with predictable values so tests
only spell out the fields they care about.
"""

from .builders import (
    FROZEN_NOW,
    make_example,
    make_pain_point,
    make_pattern,
    make_proposal,
    make_scores,
    make_snapshot,
    save_session,
    write_jsonl,
)

__all__ = [
    "FROZEN_NOW",
    "make_example",
    "make_pain_point",
    "make_pattern",
    "make_proposal",
    "make_scores",
    "make_snapshot",
    "save_session",
    "write_jsonl",
]
