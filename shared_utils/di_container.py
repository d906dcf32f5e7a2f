"""
Dependency injection container for managing application dependencies.
Centralizes adapter and service creation and lifecycle management.
"""

from typing import Optional
import logging

from shared_utils.config_loader import get_settings
from shared_utils.constants import LogScope


logger = logging.getLogger(__name__)


class DIContainer:
    """Singleton dependency injection container."""

    _instance: Optional['DIContainer'] = None

    _meeting_store: Optional[object] = None
    _socket_server: Optional[object] = None
    _transport: Optional[object] = None
    _registry: Optional[object] = None
    _lifecycle_trigger: Optional[object] = None
    _room_coordinator: Optional[object] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reset(self):
        """Reset container (useful for testing)."""
        self._meeting_store = None
        self._socket_server = None
        self._transport = None
        self._registry = None
        self._lifecycle_trigger = None
        self._room_coordinator = None

    def get_meeting_store(self):
        """Get or create the meeting store adapter (lazy singleton).

        Uses InMemoryMeetingStoreAdapter when DYNAMODB_TABLE_NAME is empty
        (local dev / CI), and DynamoMeetingStoreAdapter otherwise.
        """
        if self._meeting_store is None:
            settings = get_settings()
            if settings.uses_in_memory_store:
                from adapters.in_memory_meeting_store import InMemoryMeetingStoreAdapter
                self._meeting_store = InMemoryMeetingStoreAdapter()
                logger.info(
                    "Initialized InMemoryMeetingStoreAdapter (local dev)",
                    extra={"scope": LogScope.CONFIG}
                )
            else:
                from adapters.dynamo_meeting_store import DynamoMeetingStoreAdapter
                self._meeting_store = DynamoMeetingStoreAdapter(
                    table_name=settings.dynamodb_table_name,
                    region=settings.aws_region,
                    endpoint_url=settings.aws_endpoint_url,
                )
                logger.info(
                    "Initialized DynamoMeetingStoreAdapter",
                    extra={"scope": LogScope.CONFIG}
                )
        return self._meeting_store

    def get_socket_server(self):
        """Get or create the Socket.IO server (lazy singleton)."""
        if self._socket_server is None:
            from adapters.socketio_transport import create_socket_server

            settings = get_settings()
            self._socket_server = create_socket_server([settings.frontend_url])
            logger.info("Initialized Socket.IO server")
        return self._socket_server

    def get_transport(self):
        """Get or create SocketIOTransportAdapter (lazy singleton)."""
        if self._transport is None:
            from adapters.socketio_transport import SocketIOTransportAdapter

            self._transport = SocketIOTransportAdapter(self.get_socket_server())
            logger.info("Initialized SocketIOTransportAdapter")
        return self._transport

    def get_registry(self):
        """Get or create the process-wide ConnectionRegistry."""
        if self._registry is None:
            from services.connection_registry import ConnectionRegistry

            self._registry = ConnectionRegistry()
        return self._registry

    def get_lifecycle_trigger(self):
        """Get or create MeetingLifecycleTrigger (lazy singleton)."""
        if self._lifecycle_trigger is None:
            from services.lifecycle_trigger import MeetingLifecycleTrigger

            settings = get_settings()
            self._lifecycle_trigger = MeetingLifecycleTrigger(
                meeting_store=self.get_meeting_store(),
                registry=self.get_registry(),
                sweep_grace_seconds=settings.sweep_grace_seconds,
            )
            logger.info("Initialized MeetingLifecycleTrigger")
        return self._lifecycle_trigger

    def get_room_coordinator(self):
        """Get or create RoomCoordinator (lazy singleton)."""
        if self._room_coordinator is None:
            from services.room_coordinator import RoomCoordinator

            settings = get_settings()
            self._room_coordinator = RoomCoordinator(
                meeting_store=self.get_meeting_store(),
                registry=self.get_registry(),
                transport=self.get_transport(),
                lifecycle=self.get_lifecycle_trigger(),
                join_timeout_seconds=settings.join_timeout_seconds,
                require_membership_for_messages=settings.require_membership_for_messages,
            )
            logger.info("Initialized RoomCoordinator")
        return self._room_coordinator


# Global singleton instance
_container = DIContainer()


def get_di_container() -> DIContainer:
    """Get global DI container instance."""
    return _container
