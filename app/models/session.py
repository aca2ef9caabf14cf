"""
Session registry for the avatar realtime relay.

This module provides the SessionManager class which owns every active relay
session. A session maps an opaque identifier to the avatar provider session it
created (if any) and, when avatar coordination is active, to the realtime
client and bridge pair that drives the avatar. Entries are added on session
creation and removed exactly once on teardown.
"""

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

SESSION_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id() -> str:
    """Build an opaque session identifier: ``session_{ms}_{9 alphanumerics}``."""
    suffix = "".join(random.choices(SESSION_ID_ALPHABET, k=9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


@dataclass
class SessionRecord:
    """State kept for one relay session."""

    session_id: str
    heygen_session_id: Optional[str] = None
    heygen_data: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Typed loosely to keep the models package free of bot imports
    realtime_client: Optional[Any] = None
    bridge: Optional[Any] = None

    @property
    def has_bridge(self) -> bool:
        return self.bridge is not None


class SessionManager:
    """
    Manages active relay sessions.

    This class is the only owner of session state in the process. Sessions are
    addressed by their identifier; callers are responsible for tearing down the
    bridge and client before calling remove_session.
    """

    def __init__(self):
        """Initialize an empty session registry."""
        self.active_sessions: Dict[str, SessionRecord] = {}

    def add_session(self, record: SessionRecord) -> SessionRecord:
        """
        Register a new session.

        Args:
            record: The session record to store

        Returns:
            The stored record

        Raises:
            ValueError: If a session with the same id already exists
        """
        if record.session_id in self.active_sessions:
            raise ValueError(f"Session already exists: {record.session_id}")
        self.active_sessions[record.session_id] = record
        return record

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        """
        Get an active session by its ID.

        Returns:
            The session record, or None if the session does not exist
        """
        return self.active_sessions.get(session_id)

    def remove_session(self, session_id: str) -> Optional[SessionRecord]:
        """
        Remove a session from the registry.

        Returns:
            The removed record, or None if it was not registered
        """
        return self.active_sessions.pop(session_id, None)

    def get_all_sessions(self) -> Dict[str, SessionRecord]:
        return self.active_sessions

    def expired_sessions(
        self, max_age_seconds: float, now: Optional[datetime] = None
    ) -> List[SessionRecord]:
        """
        List sessions created more than max_age_seconds ago.

        Args:
            max_age_seconds: Maximum session age; values <= 0 disable expiry
            now: Reference time (defaults to the current UTC time)
        """
        if max_age_seconds <= 0:
            return []
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=max_age_seconds)
        return [
            record
            for record in self.active_sessions.values()
            if record.created_at < cutoff
        ]

    def count_bridges(self) -> int:
        return sum(1 for record in self.active_sessions.values() if record.has_bridge)

    def __len__(self) -> int:
        return len(self.active_sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.active_sessions
