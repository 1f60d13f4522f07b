"""
Session store - persisted discovery sessions.

Each session is stored as one JSON payload keyed by its timestamp-derived id.
"""

import json
import logging

from ..database import CeoDatabase
from ..models import DiscoverySession, Proposal, to_iso, utc_now

logger = logging.getLogger(__name__)


class SessionStore:
    """Reads and writes discovery sessions."""

    def __init__(self, db: CeoDatabase):
        self.db = db

    def save(self, session: DiscoverySession) -> None:
        """Insert or replace a session."""
        self.db.execute_insert(
            """
            INSERT OR REPLACE INTO discovery_sessions
                (id, start_time, status, proposal_count, payload, saved_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                session.id,
                session.start_time,
                session.status.value,
                len(session.proposals),
                json.dumps(session.to_dict()),
                to_iso(utc_now()),
            ),
        )
        logger.info(f"Session saved: {session.id} ({len(session.proposals)} proposals)")

    def get(self, session_id: str) -> DiscoverySession | None:
        row = self.db.execute_one(
            "SELECT payload FROM discovery_sessions WHERE id = ?", (session_id,)
        )
        return self._decode(row["payload"]) if row else None

    def load_all(self) -> list[DiscoverySession]:
        """All sessions, oldest first. Corrupt payloads are skipped."""
        rows = self.db.execute(
            "SELECT payload FROM discovery_sessions ORDER BY start_time, id"
        )
        sessions = []
        for row in rows:
            session = self._decode(row["payload"])
            if session is not None:
                sessions.append(session)
        return sessions

    def find_proposal(self, proposal_id: str) -> Proposal | None:
        """Locate a proposal across sessions, newest session first."""
        for session in reversed(self.load_all()):
            for proposal in session.proposals:
                if proposal.id == proposal_id:
                    return proposal
        return None

    def _decode(self, payload: str) -> DiscoverySession | None:
        try:
            return DiscoverySession.from_dict(json.loads(payload))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Skipping unreadable session record: {e}")
            return None
