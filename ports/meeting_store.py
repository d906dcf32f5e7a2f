"""
Port interface for meeting metadata storage.

Implementations: DynamoMeetingStoreAdapter, InMemoryMeetingStoreAdapter (adapters/)
"""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from domain.models import Meeting, MeetingStatus


@runtime_checkable
class MeetingStorePort(Protocol):
    """Abstract interface for meeting lifecycle records.

    Calls are blocking; async callers run them in a worker thread.
    """

    def create(self, creator_id: str) -> Meeting:
        """Create a new meeting with ``status=active`` and a fresh id.

        Raises:
            StoreUnavailableError: If the store is unreachable.
        """
        ...

    def get_by_id(self, meeting_id: str) -> Optional[Meeting]:
        """Retrieve a single meeting by id.

        Returns:
            Meeting if found, None otherwise.

        Raises:
            StoreUnavailableError: If the store is unreachable.
        """
        ...

    def update_status(self, meeting_id: str, status: MeetingStatus) -> None:
        """Set a meeting's status. Idempotent when already at *status*.

        Raises:
            MeetingNotFoundError: If no meeting has this id.
            StoreUnavailableError: If the store is unreachable.
        """
        ...

    def delete(self, meeting_id: str) -> None:
        """Remove a meeting record.

        Administrative only: no route or protocol step calls it; operators
        use it to purge records.
        """
        ...

    def list_by_status(self, status: MeetingStatus) -> List[Meeting]:
        """Return every meeting currently at *status*."""
        ...
