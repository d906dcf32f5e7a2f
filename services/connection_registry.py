"""
Connection registry: who is currently present, and where.

Maps connection id → Participant for the lifetime of the process. State is
confined to the event loop: callers mutate it only from handlers running on
that loop, and never across an ``await`` inside a single protocol step.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Set

from domain.models import Participant
from shared_utils.constants import LogScope
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.REGISTRY)


class ConnectionRegistry:
    """In-memory connection → participant map with a per-meeting index."""

    def __init__(self) -> None:
        self._by_connection: Dict[str, Participant] = {}
        self._by_meeting: Dict[str, Set[str]] = {}

    def register(
        self,
        connection_id: str,
        user_id: str,
        display_name: str,
        meeting_id: str,
    ) -> Participant:
        """Insert or overwrite the entry for *connection_id* (last write wins)."""
        self._drop_index(connection_id)
        participant = Participant(
            connection_id=connection_id,
            user_id=user_id,
            display_name=display_name,
            meeting_id=meeting_id,
        )
        self._by_connection[connection_id] = participant
        self._by_meeting.setdefault(meeting_id, set()).add(connection_id)
        logger.debug(
            "participant_registered",
            connection_id=connection_id,
            user_id=user_id,
            meeting_id=meeting_id,
        )
        return participant

    def unregister(self, connection_id: str) -> Optional[Participant]:
        """Remove and return the entry for *connection_id*, if any."""
        self._drop_index(connection_id)
        participant = self._by_connection.pop(connection_id, None)
        if participant is not None:
            logger.debug(
                "participant_unregistered",
                connection_id=connection_id,
                user_id=participant.user_id,
                meeting_id=participant.meeting_id,
            )
        return participant

    def lookup(self, connection_id: str) -> Optional[Participant]:
        return self._by_connection.get(connection_id)

    def list_by_meeting(self, meeting_id: str) -> List[Participant]:
        """Current participants of a meeting. No ordering is promised."""
        return [
            self._by_connection[cid]
            for cid in self._by_meeting.get(meeting_id, ())
        ]

    def clear(self) -> None:
        """Drop every entry (process shutdown)."""
        self._by_connection.clear()
        self._by_meeting.clear()

    def __len__(self) -> int:
        return len(self._by_connection)

    def _drop_index(self, connection_id: str) -> None:
        previous = self._by_connection.get(connection_id)
        if previous is None:
            return
        members = self._by_meeting.get(previous.meeting_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._by_meeting[previous.meeting_id]
