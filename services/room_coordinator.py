"""
Room coordinator: join/leave/disconnect protocol and event fan-out.

Flow (join):  identity check → store lookup (awaited) → registry update →
presence broadcast → enter broadcast group → participants-list → ack.

Every registry mutation and the reads that decide what to broadcast happen
in one synchronous block, with no ``await`` in between, so concurrent
handlers on the event loop always see a consistent room.

Policies:
    - A user may hold several connections in one room; ``user-joined`` is
      sent only for the user's first connection and ``user-left`` only when
      the user's last connection goes.
    - ``user-left`` goes to the remaining members only.
    - Joining another meeting on a joined connection is leave-then-join.
    - A join that runs after its connection disconnected is dropped.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional

from domain.models import (
    ChatMessage,
    Identity,
    Meeting,
    Participant,
    ParticipantLeft,
    ParticipantSummary,
    ParticipantsList,
    SendMessagePayload,
)
from ports.meeting_store import MeetingStorePort
from ports.room_transport import RoomTransportPort
from services.connection_registry import ConnectionRegistry
from services.lifecycle_trigger import MeetingLifecycleTrigger
from shared_utils.constants import LogScope, SocketEvents
from shared_utils.error_handler import (
    AppException,
    AuthenticationError,
    MeetingInactiveError,
    MeetingNotFoundError,
    NotParticipantError,
    StoreUnavailableError,
    ValidationError,
)
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.validation import InputValidator

logger = get_scoped_logger(LogScope.COORDINATOR)

MEETING_ENDED_NOTICE = "The meeting has ended."

# How long a disconnected connection id is remembered
_TOMBSTONE_TTL_SECONDS = 60.0


@dataclass(frozen=True)
class Departure:
    """Outcome of removing one connection from a room."""

    participant: Participant
    user_gone: bool  # no other connection of this user remains in the room
    room_empty: bool


class RoomCoordinator:
    """Owns room membership changes and what gets broadcast for them."""

    def __init__(
        self,
        meeting_store: MeetingStorePort,
        registry: ConnectionRegistry,
        transport: RoomTransportPort,
        lifecycle: MeetingLifecycleTrigger,
        join_timeout_seconds: Optional[float] = None,
        require_membership_for_messages: bool = False,
    ) -> None:
        self._store = meeting_store
        self._registry = registry
        self._transport = transport
        self._lifecycle = lifecycle
        self._join_timeout = join_timeout_seconds
        self._require_membership = require_membership_for_messages
        self._connection_locks: Dict[str, asyncio.Lock] = {}
        # Disconnected connection ids -> monotonic time of the disconnect
        self._closed: Dict[str, float] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def participants(self, meeting_id: str) -> List[ParticipantSummary]:
        """Distinct users currently in a room."""
        seen: Dict[str, ParticipantSummary] = {}
        for p in self._registry.list_by_meeting(meeting_id):
            seen.setdefault(p.user_id, p.summary())
        return sorted(seen.values(), key=lambda s: (s.display_name, s.user_id))

    def room_size(self, meeting_id: str) -> int:
        return len(self._registry.list_by_meeting(meeting_id))

    # ------------------------------------------------------------------
    # Join
    # ------------------------------------------------------------------

    async def join(
        self,
        connection_id: str,
        meeting_id: str,
        identity: Optional[Identity],
    ) -> List[ParticipantSummary]:
        """Run the join protocol for one connection.

        Returns:
            The participant list sent to the joiner, or an empty list when
            the connection disconnected before the join could run.

        Raises:
            AuthenticationError: Identity missing or malformed.
            MeetingNotFoundError: No such meeting.
            MeetingInactiveError: Meeting is not active.
            StoreUnavailableError: Store lookup failed or timed out.
        """
        async with self._serialized(connection_id):
            if self._join_dropped(connection_id, meeting_id):
                return []
            user_id, display_name = self._validate_identity(identity)
            meeting = await self._fetch_meeting(meeting_id)
            if meeting is None:
                logger.info("join_rejected_not_found", connection_id=connection_id, meeting_id=meeting_id)
                raise MeetingNotFoundError(meeting_id)
            if not meeting.is_active:
                logger.info("join_rejected_inactive", connection_id=connection_id, meeting_id=meeting_id)
                raise MeetingInactiveError(meeting_id)
            if self._join_dropped(connection_id, meeting_id):
                return []

            # No await from here until the registry reflects this join
            previous = self._registry.lookup(connection_id)
            same_membership = (
                previous is not None
                and previous.meeting_id == meeting_id
                and previous.user_id == user_id
            )
            prior_entry = None
            if previous is not None and not same_membership:
                prior_entry = self._registry.unregister(connection_id)

            user_present = same_membership or any(
                p.user_id == user_id
                for p in self._registry.list_by_meeting(meeting_id)
                if p.connection_id != connection_id
            )
            participant = self._registry.register(connection_id, user_id, display_name, meeting_id)
            participants = self.participants(meeting_id)
            departure = self._departure(prior_entry) if prior_entry is not None else None
            if departure is not None and departure.room_empty:
                self._lifecycle.room_vacated(departure.participant.meeting_id)

            if departure is not None:
                await self._announce_departure(departure, leave_group=True)

            if user_present:
                logger.info(
                    "join_reconnection",
                    connection_id=connection_id,
                    user_id=user_id,
                    meeting_id=meeting_id,
                )
            else:
                await self._transport.broadcast(
                    meeting_id,
                    SocketEvents.USER_JOINED,
                    participant.summary().to_wire(),
                    skip_connection_id=connection_id,
                )

            await self._transport.enter_room(connection_id, meeting_id)
            await self._transport.send(
                connection_id,
                SocketEvents.PARTICIPANTS_LIST,
                ParticipantsList(participants=participants).to_wire_list(),
            )
            await self._transport.send(connection_id, SocketEvents.JOINED, f"Joined meeting {meeting_id}")

            logger.info(
                "participant_joined",
                connection_id=connection_id,
                user_id=user_id,
                meeting_id=meeting_id,
                room_size=self.room_size(meeting_id),
                announced=not user_present,
            )
            return participants

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def send_message(self, connection_id: str, payload: SendMessagePayload) -> ChatMessage:
        """Relay a chat message to the room, excluding the sender."""
        async with self._serialized(connection_id):
            sender = self._registry.lookup(connection_id)
            is_member = sender is not None and sender.meeting_id == payload.meeting_id
            if self._require_membership and not is_member:
                raise NotParticipantError(payload.meeting_id)

            author_label = payload.author_label.strip()
            if not author_label and is_member:
                author_label = sender.display_name

            message = ChatMessage(author_label=author_label, text=payload.text)
            await self._transport.broadcast(
                payload.meeting_id,
                SocketEvents.RECEIVE_MESSAGE,
                message.to_wire(),
                skip_connection_id=connection_id,
            )
            logger.debug(
                "message_relayed",
                connection_id=connection_id,
                meeting_id=payload.meeting_id,
                length=len(payload.text),
            )
            return message

    # ------------------------------------------------------------------
    # Leave / disconnect
    # ------------------------------------------------------------------

    async def leave(self, connection_id: str, meeting_id: str) -> Optional[Departure]:
        """Explicit leave of *meeting_id* by one connection."""
        async with self._serialized(connection_id):
            departure = None
            current = self._registry.lookup(connection_id)
            if current is not None and current.meeting_id == meeting_id:
                departure = self._remove(connection_id)

            await self._transport.leave_room(connection_id, meeting_id)
            if departure is not None:
                await self._announce_departure(departure, leave_group=False)
            logger.info(
                "participant_left",
                connection_id=connection_id,
                meeting_id=meeting_id,
                was_registered=departure is not None,
            )
            return departure

    def connected(self, connection_id: str) -> None:
        """A connection (re)opened; forget any earlier disconnect of its id."""
        self._closed.pop(connection_id, None)

    async def disconnect(self, connection_id: str) -> Optional[Departure]:
        """Transport lost the connection; same effect as leaving its room.

        The id is remembered for a while so that a join still queued for
        this connection cannot register it after the fact.
        """
        self._mark_closed(connection_id)
        try:
            async with self._serialized(connection_id):
                departure = self._remove(connection_id)
                if departure is None:
                    logger.info("disconnect_unregistered", connection_id=connection_id)
                    return None
                # Transport has already dropped the connection from its groups
                await self._announce_departure(departure, leave_group=False)
                logger.info(
                    "participant_disconnected",
                    connection_id=connection_id,
                    user_id=departure.participant.user_id,
                    meeting_id=departure.participant.meeting_id,
                )
                return departure
        finally:
            self._connection_locks.pop(connection_id, None)

    # ------------------------------------------------------------------
    # End meeting
    # ------------------------------------------------------------------

    async def end_meeting(self, meeting_id: str, connection_id: Optional[str] = None) -> None:
        """Tell every room member the meeting is over.

        Registry entries stay; clients leave or disconnect on receipt.
        """
        if connection_id is not None and self._require_membership:
            requester = self._registry.lookup(connection_id)
            if requester is None or requester.meeting_id != meeting_id:
                raise NotParticipantError(meeting_id)

        await self._transport.broadcast(meeting_id, SocketEvents.MEETING_ENDED, MEETING_ENDED_NOTICE)
        logger.info(
            "meeting_end_broadcast",
            meeting_id=meeting_id,
            requested_by=connection_id,
            room_size=self.room_size(meeting_id),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _serialized(self, connection_id: str) -> AsyncIterator[None]:
        """Process one connection's events in arrival order."""
        lock = self._connection_locks.setdefault(connection_id, asyncio.Lock())
        try:
            async with lock:
                yield
        finally:
            if connection_id in self._closed and not lock.locked():
                self._connection_locks.pop(connection_id, None)

    def _mark_closed(self, connection_id: str) -> None:
        now = time.monotonic()
        expired = [cid for cid, at in self._closed.items() if now - at > _TOMBSTONE_TTL_SECONDS]
        for cid in expired:
            del self._closed[cid]
        self._closed[connection_id] = now

    def _join_dropped(self, connection_id: str, meeting_id: str) -> bool:
        if connection_id not in self._closed:
            return False
        # The disconnect for this connection already ran or is waiting
        logger.info("join_after_disconnect_dropped", connection_id=connection_id, meeting_id=meeting_id)
        return True

    @staticmethod
    def _validate_identity(identity: Optional[Identity]) -> tuple[str, str]:
        if identity is None:
            raise AuthenticationError("Missing identity")
        try:
            if identity.verified:
                user_id = InputValidator.validate_token_subject(identity.user_id, "userId")
            else:
                user_id = InputValidator.validate_identifier(identity.user_id, "userId")
            display_name = InputValidator.optional_text(identity.display_name) or user_id
        except ValidationError as exc:
            raise AuthenticationError(f"Invalid identity: {exc.message}") from exc
        return user_id, display_name

    async def _fetch_meeting(self, meeting_id: str) -> Optional[Meeting]:
        lookup = asyncio.to_thread(self._store.get_by_id, meeting_id)
        try:
            if self._join_timeout is not None:
                return await asyncio.wait_for(lookup, timeout=self._join_timeout)
            return await lookup
        except asyncio.TimeoutError as exc:
            logger.warning("join_store_timeout", meeting_id=meeting_id, timeout=self._join_timeout)
            raise StoreUnavailableError("Meeting lookup timed out", context={"meeting_id": meeting_id}) from exc
        except AppException:
            raise
        except Exception as exc:
            logger.error("join_store_failed", meeting_id=meeting_id, error=str(exc))
            raise StoreUnavailableError(str(exc), context={"meeting_id": meeting_id}) from exc

    def _remove(self, connection_id: str) -> Optional[Departure]:
        """Unregister and, if the room emptied, fire the lifecycle trigger."""
        participant = self._registry.unregister(connection_id)
        if participant is None:
            return None
        departure = self._departure(participant)
        if departure.room_empty:
            self._lifecycle.room_vacated(participant.meeting_id)
        return departure

    def _departure(self, participant: Participant) -> Departure:
        remaining = self._registry.list_by_meeting(participant.meeting_id)
        return Departure(
            participant=participant,
            user_gone=not any(p.user_id == participant.user_id for p in remaining),
            room_empty=not remaining,
        )

    async def _announce_departure(self, departure: Departure, leave_group: bool) -> None:
        participant = departure.participant
        if leave_group:
            await self._transport.leave_room(participant.connection_id, participant.meeting_id)
        if departure.user_gone:
            await self._transport.broadcast(
                participant.meeting_id,
                SocketEvents.USER_LEFT,
                ParticipantLeft(user_id=participant.user_id).to_wire(),
                skip_connection_id=participant.connection_id,
            )
