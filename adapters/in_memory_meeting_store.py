"""
In-memory meeting store adapter for local development.

Implements MeetingStorePort with a plain dict. Used when no DynamoDB table
is configured (local dev, CI).

NOT for production: no persistence across restarts.
"""

from __future__ import annotations

import threading
import uuid
from typing import Dict, List, Optional

from domain.models import Meeting, MeetingStatus, utc_now
from shared_utils.constants import LogScope
from shared_utils.error_handler import MeetingNotFoundError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


class InMemoryMeetingStoreAdapter:
    """Dict-backed implementation of MeetingStorePort.

    Calls arrive from worker threads, so access is guarded by a lock.
    """

    def __init__(self) -> None:
        self._meetings: Dict[str, Meeting] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # MeetingStorePort implementation
    # ------------------------------------------------------------------

    def create(self, creator_id: str) -> Meeting:
        meeting = Meeting(
            id=uuid.uuid4().hex,
            creator_id=creator_id,
            status=MeetingStatus.ACTIVE,
            created_at=utc_now(),
        )
        with self._lock:
            self._meetings[meeting.id] = meeting
        logger.info("inmemory_meeting_created", meeting_id=meeting.id, creator_id=creator_id)
        return meeting

    def get_by_id(self, meeting_id: str) -> Optional[Meeting]:
        with self._lock:
            return self._meetings.get(meeting_id)

    def update_status(self, meeting_id: str, status: MeetingStatus) -> None:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
            if meeting is None:
                raise MeetingNotFoundError(meeting_id)
            if meeting.status != status:
                self._meetings[meeting_id] = meeting.model_copy(update={"status": status})
        logger.info("inmemory_update_status", meeting_id=meeting_id, status=status.value)

    def delete(self, meeting_id: str) -> None:
        with self._lock:
            removed = self._meetings.pop(meeting_id, None)
        logger.info("inmemory_meeting_deleted", meeting_id=meeting_id, existed=removed is not None)

    def list_by_status(self, status: MeetingStatus) -> List[Meeting]:
        with self._lock:
            return [m for m in self._meetings.values() if m.status == status]
