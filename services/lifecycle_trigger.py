"""
Meeting lifecycle trigger: ends a meeting once its room empties.

The status write is fire-and-forget: it runs as a detached task, a failure
is logged and never retried, and the leave/disconnect that caused it has
already completed. A periodic sweep corrects meetings whose write failed.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta, timezone
from typing import List, Optional, Set

from domain.models import Meeting, MeetingStatus, utc_now
from ports.meeting_store import MeetingStorePort
from services.connection_registry import ConnectionRegistry
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import AppException
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.LIFECYCLE)


class MeetingLifecycleTrigger:
    """Issues ``status=ended`` for rooms that became empty."""

    def __init__(
        self,
        meeting_store: MeetingStorePort,
        registry: ConnectionRegistry,
        sweep_grace_seconds: float = Defaults.SWEEP_GRACE_SECONDS,
    ) -> None:
        self._store = meeting_store
        self._registry = registry
        self._sweep_grace = timedelta(seconds=sweep_grace_seconds)
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def room_vacated(self, meeting_id: str) -> asyncio.Task:
        """Schedule the ended-status write for a room that just emptied.

        Must be called from the handler that performed the removal, before
        it yields control, so the emptiness it saw is the one acted on.
        """
        task = asyncio.get_running_loop().create_task(
            self._end_meeting(meeting_id),
            name=f"end-meeting-{meeting_id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.info("room_vacated", meeting_id=meeting_id)
        return task

    async def _end_meeting(self, meeting_id: str) -> None:
        # A rejoin may have landed between scheduling and running
        if self._registry.list_by_meeting(meeting_id):
            logger.info("room_reoccupied_skip_end", meeting_id=meeting_id)
            return
        try:
            await asyncio.to_thread(self._store.update_status, meeting_id, MeetingStatus.ENDED)
            logger.info("meeting_auto_ended", meeting_id=meeting_id)
        except Exception as exc:
            logger.error(
                "meeting_auto_end_failed",
                meeting_id=meeting_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )

    async def drain(self) -> None:
        """Wait for every scheduled status write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Administrative sweep
    # ------------------------------------------------------------------

    async def sweep(self) -> List[str]:
        """End active meetings past the grace period that have nobody in them.

        Meetings that were created but never joined are ended too once the
        grace period has passed; the store keeps no record of past presence.

        Returns:
            Ids of meetings marked ended by this pass.
        """
        active: List[Meeting] = await asyncio.to_thread(
            self._store.list_by_status, MeetingStatus.ACTIVE
        )
        cutoff = utc_now() - self._sweep_grace
        ended: List[str] = []

        for meeting in active:
            created_at = meeting.created_at
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            if created_at > cutoff or self._registry.list_by_meeting(meeting.id):
                continue
            try:
                await asyncio.to_thread(self._store.update_status, meeting.id, MeetingStatus.ENDED)
                ended.append(meeting.id)
            except AppException as exc:
                logger.warning("sweep_end_failed", meeting_id=meeting.id, error=exc.message)

        logger.info("sweep_completed", checked=len(active), ended=len(ended))
        return ended

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Sweep forever every *interval_seconds*; cancel to stop."""
        logger.info("sweeper_started", interval_seconds=interval_seconds)
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.sweep()
            except Exception as exc:
                logger.error("sweep_failed", error_type=type(exc).__name__, error=str(exc))

    def start_sweeper(self, interval_seconds: float) -> Optional[asyncio.Task]:
        if interval_seconds <= 0:
            return None
        return asyncio.get_running_loop().create_task(
            self.run_sweeper(interval_seconds), name="meeting-sweeper"
        )
