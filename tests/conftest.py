"""
Root conftest.py: shared fixtures for the entire test suite.

Guidelines:
    • No __init__.py in test sub-directories (avoids shadowing root packages).
    • pytest.ini_options lives in pyproject.toml with pythonpath=["."].
    • Async tests are plain ``async def`` tests run by pytest-asyncio
      (asyncio_mode = "auto"), marked with @pytest.mark.asyncio.
"""

import os

# Settings are read once and cached; pin them before any app import.
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DYNAMODB_TABLE_NAME", "")

from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple
from unittest.mock import MagicMock

import pytest

from adapters.in_memory_meeting_store import InMemoryMeetingStoreAdapter
from domain.models import Identity, Meeting, MeetingStatus
from services.connection_registry import ConnectionRegistry
from services.lifecycle_trigger import MeetingLifecycleTrigger
from services.room_coordinator import RoomCoordinator


# ---------------------------------------------------------------------------
# Marker registration
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")


TEST_JWT_SECRET = os.environ["JWT_SECRET"]


# ---------------------------------------------------------------------------
# Recording transport fake
# ---------------------------------------------------------------------------

class RecordingTransport:
    """In-memory RoomTransportPort that records every delivery per connection.

    Broadcast groups behave like Socket.IO rooms: a broadcast reaches the
    connections currently in the group, minus the skipped one.
    """

    def __init__(self) -> None:
        self.rooms: Dict[str, Set[str]] = defaultdict(set)
        self.delivered: Dict[str, List[Tuple[str, Any]]] = defaultdict(list)

    async def enter_room(self, connection_id: str, room: str) -> None:
        self.rooms[room].add(connection_id)

    async def leave_room(self, connection_id: str, room: str) -> None:
        self.rooms[room].discard(connection_id)

    async def send(self, connection_id: str, event: str, data: Any) -> None:
        self.delivered[connection_id].append((event, data))

    async def broadcast(
        self,
        room: str,
        event: str,
        data: Any,
        skip_connection_id: Optional[str] = None,
    ) -> None:
        for cid in sorted(self.rooms.get(room, ())):
            if cid != skip_connection_id:
                self.delivered[cid].append((event, data))

    def drop(self, connection_id: str) -> None:
        """Simulate the transport losing a connection."""
        for members in self.rooms.values():
            members.discard(connection_id)

    def events(self, connection_id: str, event: Optional[str] = None) -> List[Any]:
        return [
            data for name, data in self.delivered[connection_id]
            if event is None or name == event
        ]

    def names(self, connection_id: str) -> List[str]:
        return [name for name, _ in self.delivered[connection_id]]


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------

def make_meeting(
    meeting_id: str = "m1",
    creator_id: str = "u1",
    status: MeetingStatus = MeetingStatus.ACTIVE,
    created_at: Optional[datetime] = None,
) -> Meeting:
    return Meeting(
        id=meeting_id,
        creator_id=creator_id,
        status=status,
        created_at=created_at or datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc),
    )


class SeededMeetingStore(InMemoryMeetingStoreAdapter):
    """In-memory store with fixed ids, plus a log of status writes."""

    def __init__(self, *meetings: Meeting) -> None:
        super().__init__()
        self.status_updates: List[Tuple[str, MeetingStatus]] = []
        for m in meetings:
            self._meetings[m.id] = m

    def update_status(self, meeting_id: str, status: MeetingStatus) -> None:
        self.status_updates.append((meeting_id, status))
        super().update_status(meeting_id, status)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture()
def meeting_store() -> SeededMeetingStore:
    """Store holding active ``m1`` and ``m2`` and ended ``m-ended``."""
    return SeededMeetingStore(
        make_meeting("m1"),
        make_meeting("m2"),
        make_meeting("m-ended", status=MeetingStatus.ENDED),
    )


@pytest.fixture()
def lifecycle(meeting_store: SeededMeetingStore, registry: ConnectionRegistry) -> MeetingLifecycleTrigger:
    return MeetingLifecycleTrigger(meeting_store=meeting_store, registry=registry)


@pytest.fixture()
def coordinator(
    meeting_store: SeededMeetingStore,
    registry: ConnectionRegistry,
    transport: RecordingTransport,
    lifecycle: MeetingLifecycleTrigger,
) -> RoomCoordinator:
    return RoomCoordinator(
        meeting_store=meeting_store,
        registry=registry,
        transport=transport,
        lifecycle=lifecycle,
    )


@pytest.fixture()
def mock_meeting_store() -> MagicMock:
    """Pre-configured meeting store mock."""
    mock = MagicMock()
    mock.get_by_id.return_value = make_meeting("m1")
    return mock


def identity(user_id: str, display_name: Optional[str] = None) -> Identity:
    return Identity(user_id=user_id, display_name=display_name or user_id.upper())
