"""
Socket.IO gateway for the meeting chat relay.

Validates every inbound payload against its event schema, resolves the
caller's identity, and dispatches into the RoomCoordinator. Any failure
becomes a single ``error`` event to the caller; nothing here is fatal.

Events (client → server):
    join-meeting    {meetingId, userId?, displayName?}
    send-message    {meetingId, text, authorLabel}
    leave-meeting   {meetingId} | "<meetingId>"
    end-meeting     {meetingId} | "<meetingId>"
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar

import socketio
from pydantic import BaseModel
from pydantic import ValidationError as PayloadValidationError

from domain.models import (
    EndMeetingPayload,
    Identity,
    JoinMeetingPayload,
    LeaveMeetingPayload,
    SendMessagePayload,
)
from ports.room_transport import RoomTransportPort
from services.room_coordinator import RoomCoordinator
from shared_utils.auth import decode_token, extract_bearer_token
from shared_utils.constants import Defaults, IdentitySource, LogScope, SocketEvents
from shared_utils.error_handler import (
    AppException,
    AuthenticationError,
    ExternalServiceError,
    log_exception,
)
from shared_utils.logging_utils import ContextualLogger

logger = ContextualLogger(scope=LogScope.REALTIME)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def parse_payload(model: Type[PayloadT], data: Any) -> PayloadT:
    """Validate a raw event payload. A bare string is taken as the meeting id."""
    if isinstance(data, str):
        data = {"meetingId": data}
    elif data is None:
        data = {}
    return model.model_validate(data)


def _describe(exc: PayloadValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ())) or "payload"
    return f"Invalid payload: {field}: {first.get('msg', 'invalid')}"


class RealtimeGateway:
    """Binds Socket.IO events to the room coordination protocol."""

    def __init__(
        self,
        coordinator: RoomCoordinator,
        transport: RoomTransportPort,
        identity_source: str = IdentitySource.PAYLOAD.value,
        jwt_secret: str = "",
        jwt_algorithm: str = Defaults.JWT_ALGORITHM,
    ) -> None:
        self._coordinator = coordinator
        self._transport = transport
        self._identity_source = identity_source
        self._jwt_secret = jwt_secret
        self._jwt_algorithm = jwt_algorithm
        # Verified token identities, by connection (token mode only)
        self._token_identities: Dict[str, Identity] = {}

    def register(self, sio: socketio.AsyncServer) -> None:
        sio.on("connect", self.on_connect)
        sio.on("disconnect", self.on_disconnect)
        sio.on(SocketEvents.JOIN_MEETING, self.on_join_meeting)
        sio.on(SocketEvents.SEND_MESSAGE, self.on_send_message)
        sio.on(SocketEvents.LEAVE_MEETING, self.on_leave_meeting)
        sio.on(SocketEvents.END_MEETING, self.on_end_meeting)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
        logger.info("socket_connected", connection_id=sid)
        self._coordinator.connected(sid)
        if self._identity_source != IdentitySource.TOKEN.value:
            return

        token = None
        if isinstance(auth, dict):
            token = auth.get("token")
        if not token:
            token = extract_bearer_token((environ or {}).get("HTTP_AUTHORIZATION"))
        try:
            self._token_identities[sid] = decode_token(token, self._jwt_secret, self._jwt_algorithm)
        except AuthenticationError as exc:
            # Connection stays open; its joins are refused with an error event
            logger.warning("socket_token_rejected", connection_id=sid, reason=exc.message)

    async def on_disconnect(self, sid: str, *args: Any) -> None:
        self._token_identities.pop(sid, None)
        try:
            await self._coordinator.disconnect(sid)
        except Exception as exc:
            log_exception(exc, scope=LogScope.REALTIME)
        logger.info("socket_disconnected", connection_id=sid)

    # ------------------------------------------------------------------
    # Protocol events
    # ------------------------------------------------------------------

    async def on_join_meeting(self, sid: str, data: Any = None) -> None:
        await self._dispatch(sid, SocketEvents.JOIN_MEETING, self._join, data)

    async def on_send_message(self, sid: str, data: Any = None) -> None:
        await self._dispatch(sid, SocketEvents.SEND_MESSAGE, self._send_message, data)

    async def on_leave_meeting(self, sid: str, data: Any = None) -> None:
        await self._dispatch(sid, SocketEvents.LEAVE_MEETING, self._leave, data)

    async def on_end_meeting(self, sid: str, data: Any = None) -> None:
        await self._dispatch(sid, SocketEvents.END_MEETING, self._end, data)

    async def _join(self, sid: str, data: Any) -> None:
        payload = parse_payload(JoinMeetingPayload, data)
        await self._coordinator.join(sid, payload.meeting_id, self._resolve_identity(sid, payload))

    async def _send_message(self, sid: str, data: Any) -> None:
        payload = parse_payload(SendMessagePayload, data)
        await self._coordinator.send_message(sid, payload)

    async def _leave(self, sid: str, data: Any) -> None:
        payload = parse_payload(LeaveMeetingPayload, data)
        await self._coordinator.leave(sid, payload.meeting_id)

    async def _end(self, sid: str, data: Any) -> None:
        payload = parse_payload(EndMeetingPayload, data)
        await self._coordinator.end_meeting(payload.meeting_id, connection_id=sid)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_identity(self, sid: str, payload: JoinMeetingPayload) -> Optional[Identity]:
        display_name = payload.display_name or payload.name
        if self._identity_source == IdentitySource.TOKEN.value:
            identity = self._token_identities.get(sid)
            if identity is None:
                return None
            return identity.model_copy(
                update={"display_name": identity.display_name or display_name}
            )
        if payload.user_id is None:
            return None
        return Identity(user_id=payload.user_id, display_name=display_name)

    async def _dispatch(
        self,
        sid: str,
        event: str,
        handler: Callable[[str, Any], Awaitable[None]],
        data: Any,
    ) -> None:
        try:
            await handler(sid, data)
        except PayloadValidationError as exc:
            reason = _describe(exc)
            logger.warning("socket_payload_invalid", connection_id=sid, socket_event=event, reason=reason)
            await self._send_error(sid, reason)
        except ExternalServiceError as exc:
            logger.error("socket_store_unavailable", connection_id=sid, socket_event=event, error=exc.message)
            await self._send_error(sid, Defaults.STORE_UNAVAILABLE_MESSAGE)
        except AppException as exc:
            logger.info("socket_request_rejected", connection_id=sid, socket_event=event, error_code=exc.error_code)
            await self._send_error(sid, exc.message)
        except Exception as exc:
            log_exception(exc, scope=LogScope.REALTIME)
            await self._send_error(sid, Defaults.GENERIC_ERROR_MESSAGE)

    async def _send_error(self, sid: str, reason: str) -> None:
        try:
            await self._transport.send(sid, SocketEvents.ERROR, reason)
        except Exception as exc:
            logger.warning("socket_error_delivery_failed", connection_id=sid, error=str(exc))
