"""
Constants management.
Centralized configuration for all magic values, event names, and defaults.
"""

from enum import Enum
from typing import Final


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class IdentitySource(str, Enum):
    """Where a joining connection's identity comes from."""
    PAYLOAD = "payload"
    TOKEN = "token"


# Default values
class Defaults:
    """Service defaults for all configurations."""
    LOG_LEVEL: Final[str] = "INFO"
    AWS_REGION: Final[str] = "eu-west-2"
    JWT_ALGORITHM: Final[str] = "HS256"
    FRONTEND_URL: Final[str] = "http://localhost:5173"
    SOCKETIO_PATH: Final[str] = "socket.io"
    SWEEP_GRACE_SECONDS: Final[float] = 300.0
    GENERIC_ERROR_MESSAGE: Final[str] = "Internal server error"
    STORE_UNAVAILABLE_MESSAGE: Final[str] = "Meeting service temporarily unavailable"


# Logging scopes
class LogScope:
    """Standardized logging scope names."""
    CONFIG = "config_loader"
    API = "api"
    AUTH = "auth"
    VALIDATION = "validation"
    ERROR_HANDLER = "error_handler"
    ADAPTER = "adapter"
    REGISTRY = "connection_registry"
    COORDINATOR = "room_coordinator"
    LIFECYCLE = "lifecycle_trigger"
    REALTIME = "realtime"


# API endpoints and paths
class APIEndpoints:
    """API route definitions."""
    HEALTH = "/health"
    DEBUG = "/debug"
    MEETINGS = "/api/meetings"
    MEETING = "/api/meetings/{meeting_id}"
    MEETING_END = "/api/meetings/{meeting_id}/end"


# Real-time protocol event names
class SocketEvents:
    """Socket.IO event names, client→server and server→client."""
    JOIN_MEETING = "join-meeting"
    SEND_MESSAGE = "send-message"
    LEAVE_MEETING = "leave-meeting"
    END_MEETING = "end-meeting"

    JOINED = "joined"
    PARTICIPANTS_LIST = "participants-list"
    USER_JOINED = "user-joined"
    RECEIVE_MESSAGE = "receive-message"
    USER_LEFT = "user-left"
    MEETING_ENDED = "meeting-ended"
    ERROR = "error"


# Error codes
class ErrorCode(str, Enum):
    """Standardized error codes for consistency."""
    INVALID_CONFIG = "INVALID_CONFIG"
    INVALID_INPUT = "INVALID_INPUT"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    MEETING_NOT_FOUND = "MEETING_NOT_FOUND"
    MEETING_INACTIVE = "MEETING_INACTIVE"
    NOT_A_PARTICIPANT = "NOT_A_PARTICIPANT"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
