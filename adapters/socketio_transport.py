"""
Socket.IO transport adapter.

Implements RoomTransportPort on top of a python-socketio ``AsyncServer``.
Socket.IO rooms are the broadcast groups; room name is the meeting id.
"""

from __future__ import annotations

from typing import Any, List, Optional

import socketio

from shared_utils.constants import LogScope
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)


def create_socket_server(cors_allowed_origins: List[str]) -> socketio.AsyncServer:
    """Build the Socket.IO server for an ASGI deployment."""
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors_allowed_origins,
        ping_timeout=25,
        ping_interval=20,
        logger=False,
        engineio_logger=False,
    )


class SocketIOTransportAdapter:
    """RoomTransportPort backed by ``socketio.AsyncServer``."""

    def __init__(self, server: socketio.AsyncServer, namespace: str = "/") -> None:
        self._server = server
        self._namespace = namespace

    @property
    def server(self) -> socketio.AsyncServer:
        return self._server

    async def enter_room(self, connection_id: str, room: str) -> None:
        await self._server.enter_room(connection_id, room, namespace=self._namespace)
        logger.debug("socketio_enter_room", connection_id=connection_id, room=room)

    async def leave_room(self, connection_id: str, room: str) -> None:
        await self._server.leave_room(connection_id, room, namespace=self._namespace)
        logger.debug("socketio_leave_room", connection_id=connection_id, room=room)

    async def send(self, connection_id: str, event: str, data: Any) -> None:
        await self._server.emit(event, data, to=connection_id, namespace=self._namespace)

    async def broadcast(
        self,
        room: str,
        event: str,
        data: Any,
        skip_connection_id: Optional[str] = None,
    ) -> None:
        await self._server.emit(
            event,
            data,
            room=room,
            skip_sid=skip_connection_id,
            namespace=self._namespace,
        )
