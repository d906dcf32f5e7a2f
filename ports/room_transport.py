"""
Port interface for the real-time transport.

Implementations: SocketIOTransportAdapter (adapters/)
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class RoomTransportPort(Protocol):
    """Broadcast groups and event delivery over live connections.

    Delivery is best-effort: no acknowledgement, no retry.
    """

    async def enter_room(self, connection_id: str, room: str) -> None:
        """Add a connection to a room's broadcast group (idempotent)."""
        ...

    async def leave_room(self, connection_id: str, room: str) -> None:
        """Remove a connection from a room's broadcast group (idempotent)."""
        ...

    async def send(self, connection_id: str, event: str, data: Any) -> None:
        """Emit an event to a single connection."""
        ...

    async def broadcast(
        self,
        room: str,
        event: str,
        data: Any,
        skip_connection_id: Optional[str] = None,
    ) -> None:
        """Emit an event to every connection in a room, optionally skipping one."""
        ...
