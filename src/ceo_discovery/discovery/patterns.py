"""
Pattern Extractor - Behavioral log analysis.

Reads behavioral records from the configured log sources and turns them into
weighted, deduplicated patterns. Each source is read independently; a source
that is missing or unreadable contributes nothing (first runs have no logs).

Source kinds:
    commands         plain text, one shell command per line
    file_operations  JSONL: {"operation": "edit", "file": "...", "timestamp": "..."}
    coordination     JSONL: {"task": "...", "timestamp": "..."}
    interactions     JSONL: {"category": "error", "action": "...",
                             "duration_minutes": 12, "timestamp": "...",
                             "context": ["..."]}
"""

import hashlib
import json
import logging
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from ..models import BehavioralPattern, PatternCategory, parse_iso, to_iso, utc_now

logger = logging.getLogger(__name__)

SOURCE_KINDS = ("commands", "file_operations", "coordination", "interactions")

# Task keywords checked in order; first match wins
TASK_TYPES = [
    ("testing", ("test", "qa")),
    ("deployment", ("build", "deploy")),
    ("bugfix", ("fix", "bug")),
    ("api-development", ("api", "endpoint")),
    ("frontend", ("ui", "component")),
    ("backend", ("database", "query")),
]

_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")
_ID_RE = re.compile(r"\d{10,}")
_QUOTED_RE = re.compile(r"[\"']([^\"']+)[\"']")


def normalize_command(command: str) -> str:
    """Collapse dates, long numeric ids and quoted strings so variants group together."""
    normalized = _DATE_RE.sub("DATE", command)
    normalized = _ID_RE.sub("ID", normalized)
    normalized = _QUOTED_RE.sub("STRING", normalized)
    return normalized.strip()


def classify_task_type(task: str) -> str:
    """Map a coordination task description to a coarse task type."""
    lower = task.lower()
    for task_type, keywords in TASK_TYPES:
        if any(keyword in lower for keyword in keywords):
            return task_type
    return "general"


def pattern_id(category: PatternCategory | str, description: str) -> str:
    """Stable id derived from the merge key."""
    value = category.value if isinstance(category, PatternCategory) else category
    digest = hashlib.sha256(f"{value}\x00{description}".encode()).hexdigest()
    return f"pat-{digest[:12]}"


@dataclass
class _Tally:
    """Running count for one candidate pattern within a source."""

    count: int = 0
    minutes: float = 0.0
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    context: list[str] = field(default_factory=list)

    def add(self, when: datetime | None, minutes: float = 0.0) -> None:
        self.count += 1
        self.minutes += minutes
        if when is not None:
            if self.first_seen is None or when < self.first_seen:
                self.first_seen = when
            if self.last_seen is None or when > self.last_seen:
                self.last_seen = when


class PatternExtractor:
    """Extracts behavioral patterns from log sources."""

    # Thresholds and per-occurrence time assumptions
    MIN_COMMAND_REPEATS = 3
    MINUTES_PER_COMMAND = 2
    MIN_FILE_EDITS = 5
    MINUTES_PER_EDIT = 3
    FILE_EDIT_CONFIDENCE = 0.85
    MIN_TASK_REPEATS = 3
    MINUTES_PER_TASK = 10
    TASK_CONFIDENCE = 0.9
    MIN_INTERACTION_REPEATS = 2

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        """
        Initialize extractor.

        Args:
            clock: Returns the reference "now" for the analysis window.
        """
        self.clock = clock

    def analyze(
        self,
        time_window: float,
        sources: Mapping[str, Path | str],
        min_confidence: float,
    ) -> list[BehavioralPattern]:
        """
        Extract, merge and filter patterns from all sources.

        Args:
            time_window: Look-back window in hours. Records with an older
                timestamp are ignored; records without one are kept.
            sources: Source kind -> file path
            min_confidence: Patterns below this confidence are dropped

        Returns:
            Merged patterns with confidence >= min_confidence
        """
        now = self.clock()
        window_start = now - timedelta(hours=time_window)

        collected: list[BehavioralPattern] = []
        for kind in SOURCE_KINDS:
            if kind not in sources:
                continue
            collected.extend(self._analyze_source(kind, Path(sources[kind]), window_start, now))

        for kind in sources:
            if kind not in SOURCE_KINDS:
                logger.warning(f"Unknown pattern source kind (ignored): {kind}")

        merged = merge_patterns(collected)
        logger.info(f"Found {len(merged)} unique patterns from {len(collected)} candidates")

        return [p for p in merged if p.confidence >= min_confidence]

    # =========================================================================
    # Source readers
    # =========================================================================

    def _analyze_source(
        self, kind: str, path: Path, window_start: datetime, now: datetime
    ) -> list[BehavioralPattern]:
        if not path.exists():
            logger.debug(f"Pattern source not found (skipping): {path}")
            return []

        try:
            if kind == "commands":
                return self._analyze_commands(path, window_start, now)
            if kind == "file_operations":
                return self._analyze_file_operations(path, window_start, now)
            if kind == "coordination":
                return self._analyze_coordination(path, window_start, now)
            return self._analyze_interactions(path, window_start, now)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Cannot read pattern source {path}: {e}")
            return []

    def _read_jsonl(self, path: Path) -> Iterator[dict]:
        with open(path, encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    logger.debug(f"Skipping invalid JSON at {path}:{line_number}")
                    continue
                if isinstance(record, dict):
                    yield record

    def _record_time(
        self, record: dict, window_start: datetime
    ) -> tuple[bool, datetime | None]:
        """Return (in_window, timestamp) for a record."""
        raw = record.get("timestamp")
        if not raw:
            return True, None
        try:
            when = parse_iso(str(raw))
        except ValueError:
            return True, None
        return when >= window_start, when

    def _analyze_commands(
        self, path: Path, window_start: datetime, now: datetime
    ) -> list[BehavioralPattern]:
        tallies: dict[str, _Tally] = {}
        for line in path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            tallies.setdefault(normalize_command(line), _Tally()).add(None)

        patterns = []
        for command, tally in tallies.items():
            if tally.count >= self.MIN_COMMAND_REPEATS:
                patterns.append(
                    self._build(
                        PatternCategory.REPETITIVE,
                        command,
                        tally,
                        time_cost=tally.count * self.MINUTES_PER_COMMAND,
                        confidence=min(tally.count / 10, 1.0),
                        context=["command", "cli"],
                        metadata={"source": "commands"},
                        window_start=window_start,
                        now=now,
                    )
                )
        return patterns

    def _analyze_file_operations(
        self, path: Path, window_start: datetime, now: datetime
    ) -> list[BehavioralPattern]:
        tallies: dict[str, _Tally] = {}
        for record in self._read_jsonl(path):
            if record.get("operation") not in ("edit", "write") or not record.get("file"):
                continue
            in_window, when = self._record_time(record, window_start)
            if in_window:
                tallies.setdefault(str(record["file"]), _Tally()).add(when)

        patterns = []
        for file_name, tally in tallies.items():
            if tally.count >= self.MIN_FILE_EDITS:
                patterns.append(
                    self._build(
                        PatternCategory.REPETITIVE,
                        f"edit {file_name}",
                        tally,
                        time_cost=tally.count * self.MINUTES_PER_EDIT,
                        confidence=self.FILE_EDIT_CONFIDENCE,
                        context=["file", "edit"],
                        metadata={"file": file_name, "source": "file_operations"},
                        window_start=window_start,
                        now=now,
                    )
                )
        return patterns

    def _analyze_coordination(
        self, path: Path, window_start: datetime, now: datetime
    ) -> list[BehavioralPattern]:
        tallies: dict[str, _Tally] = {}
        for record in self._read_jsonl(path):
            task = record.get("task")
            if not task:
                continue
            in_window, when = self._record_time(record, window_start)
            if in_window:
                tallies.setdefault(classify_task_type(str(task)), _Tally()).add(when)

        patterns = []
        for task_type, tally in tallies.items():
            if tally.count >= self.MIN_TASK_REPEATS:
                patterns.append(
                    self._build(
                        PatternCategory.WORKFLOW,
                        f"{task_type} task",
                        tally,
                        time_cost=tally.count * self.MINUTES_PER_TASK,
                        confidence=self.TASK_CONFIDENCE,
                        context=["coordination"],
                        metadata={"task_type": task_type, "source": "coordination"},
                        window_start=window_start,
                        now=now,
                    )
                )
        return patterns

    def _analyze_interactions(
        self, path: Path, window_start: datetime, now: datetime
    ) -> list[BehavioralPattern]:
        tallies: dict[tuple[PatternCategory, str], _Tally] = {}
        for record in self._read_jsonl(path):
            action = record.get("action")
            try:
                category = PatternCategory(record.get("category"))
            except ValueError:
                continue
            if not action:
                continue
            in_window, when = self._record_time(record, window_start)
            if not in_window:
                continue
            try:
                minutes = float(record.get("duration_minutes") or 0)
            except (TypeError, ValueError):
                minutes = 0.0
            tally = tallies.setdefault((category, str(action)), _Tally())
            tally.add(when, minutes)
            for tag in record.get("context") or []:
                if isinstance(tag, str) and tag not in tally.context:
                    tally.context.append(tag)

        patterns = []
        for (category, action), tally in tallies.items():
            if tally.count >= self.MIN_INTERACTION_REPEATS:
                patterns.append(
                    self._build(
                        category,
                        action,
                        tally,
                        time_cost=tally.minutes,
                        confidence=min(tally.count / 5, 1.0),
                        context=tally.context or ["interaction"],
                        metadata={"source": "interactions"},
                        window_start=window_start,
                        now=now,
                    )
                )
        return patterns

    def _build(
        self,
        category: PatternCategory,
        description: str,
        tally: _Tally,
        time_cost: float,
        confidence: float,
        context: list[str],
        metadata: dict,
        window_start: datetime,
        now: datetime,
    ) -> BehavioralPattern:
        return BehavioralPattern(
            id=pattern_id(category, description),
            category=category,
            description=description,
            frequency=tally.count,
            time_cost=float(time_cost),
            confidence=confidence,
            first_seen=to_iso(tally.first_seen or window_start),
            last_seen=to_iso(tally.last_seen or now),
            context=list(context),
            metadata=metadata,
        )


def merge_patterns(patterns: list[BehavioralPattern]) -> list[BehavioralPattern]:
    """
    Merge patterns sharing a (category, description) key.

    Frequency and time cost are summed, confidence takes the maximum,
    last_seen the latest and first_seen the earliest timestamp. Context tags
    are unioned in first-seen order. Output keeps first-occurrence order.
    """
    merged: dict[tuple[str, str], BehavioralPattern] = {}

    for pattern in patterns:
        existing = merged.get(pattern.key)
        if existing is None:
            merged[pattern.key] = BehavioralPattern.from_dict(pattern.to_dict())
            continue

        existing.frequency += pattern.frequency
        existing.time_cost += pattern.time_cost
        existing.confidence = max(existing.confidence, pattern.confidence)
        if parse_iso(pattern.last_seen) > parse_iso(existing.last_seen):
            existing.last_seen = pattern.last_seen
        if parse_iso(pattern.first_seen) < parse_iso(existing.first_seen):
            existing.first_seen = pattern.first_seen
        for tag in pattern.context:
            if tag not in existing.context:
                existing.context.append(tag)

    return list(merged.values())
