"""
FastAPI backend for the meeting chat relay.

Endpoints:
    GET  /health                       Health check
    GET  /debug                        Runtime configuration summary
    POST /api/meetings                 Create a meeting (creator from token)
    GET  /api/meetings/{meeting_id}    Fetch a meeting
    PUT  /api/meetings/{meeting_id}/end  End a meeting and notify its room

Socket.IO is mounted on the same ASGI app (see ``realtime.py``). Run
``asgi_app``, not ``app``, to serve both.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import socketio
import uvicorn
from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api_service.src.realtime import RealtimeGateway
from domain.models import Identity, MeetingStatus
from shared_utils.auth import decode_token, extract_bearer_token
from shared_utils.config_loader import get_settings
from shared_utils.constants import APIEndpoints, Defaults, LogScope
from shared_utils.di_container import get_di_container
from shared_utils.error_handler import AppException, MeetingNotFoundError, handle_error
from shared_utils.logging_utils import ContextualLogger


# ---------------------------------------------------------------------------
# Application bootstrap
# ---------------------------------------------------------------------------

settings = get_settings()
logger = ContextualLogger(scope=LogScope.API)


@asynccontextmanager
async def lifespan(_: FastAPI):
    container = get_di_container()
    lifecycle = container.get_lifecycle_trigger()
    sweeper = lifecycle.start_sweeper(settings.sweep_interval_seconds)
    logger.info(
        "api_started",
        base_url=settings.get_api_base_url(),
        sweeper_enabled=sweeper is not None,
    )
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
        await lifecycle.drain()
        container.get_registry().clear()
        logger.info("api_stopped")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=settings.app_description,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

try:
    _container = get_di_container()
    _gateway = RealtimeGateway(
        coordinator=_container.get_room_coordinator(),
        transport=_container.get_transport(),
        identity_source=settings.join_identity_source,
        jwt_secret=settings.jwt_secret,
        jwt_algorithm=settings.jwt_algorithm,
    )
    _gateway.register(_container.get_socket_server())
    logger.info(
        "api_initialized",
        environment=settings.environment,
        identity_source=settings.join_identity_source,
    )
except Exception as e:
    logger.error("api_initialization_failed", error=str(e))
    raise

asgi_app = socketio.ASGIApp(
    _container.get_socket_server(),
    other_asgi_app=app,
    socketio_path=settings.socketio_path,
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.warning("request_rejected", path=request.url.path, error_code=exc.error_code)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def require_identity(authorization: Optional[str] = Header(default=None)) -> Identity:
    """Resolve the caller from ``Authorization: Bearer <token>``; 401 otherwise."""
    return decode_token(
        extract_bearer_token(authorization),
        settings.jwt_secret,
        settings.jwt_algorithm,
    )


def _internal_error(e: Exception) -> JSONResponse:
    error_response = handle_error(e, scope=LogScope.API)
    error_response["error"]["message"] = Defaults.GENERIC_ERROR_MESSAGE
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get(APIEndpoints.HEALTH)
def health_check() -> dict:
    """Health check endpoint."""
    logger.debug("health_check_requested")
    return {
        "status": "healthy",
        "environment": settings.environment,
    }


@app.get(APIEndpoints.DEBUG)
def debug_info() -> dict:
    """Runtime configuration summary (no secrets)."""
    logger.debug("debug_info_requested")
    container = get_di_container()
    return {
        "environment": settings.environment,
        "store": "memory" if settings.uses_in_memory_store else "dynamodb",
        "port": settings.api_port,
        "socketIo": "initialized",
        "identitySource": settings.join_identity_source,
        "connections": len(container.get_registry()),
    }


# ======================================================================
# Meeting administration
# ======================================================================

@app.post(APIEndpoints.MEETINGS, status_code=status.HTTP_201_CREATED)
async def create_meeting(identity: Identity = Depends(require_identity)) -> JSONResponse:
    """Create an active meeting owned by the caller."""
    try:
        store = get_di_container().get_meeting_store()
        meeting = await asyncio.to_thread(store.create, identity.user_id)
        logger.info("meeting_created", meeting_id=meeting.id, creator_id=identity.user_id)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={"meeting": meeting.to_wire()},
        )
    except Exception as e:
        return _internal_error(e)


@app.get(APIEndpoints.MEETING)
async def get_meeting(meeting_id: str, identity: Identity = Depends(require_identity)) -> JSONResponse:
    """Fetch a meeting by id."""
    try:
        store = get_di_container().get_meeting_store()
        meeting = await asyncio.to_thread(store.get_by_id, meeting_id)
    except Exception as e:
        return _internal_error(e)

    if meeting is None:
        logger.info("meeting_lookup_miss", meeting_id=meeting_id)
        not_found = MeetingNotFoundError(meeting_id)
        return JSONResponse(status_code=not_found.http_status, content=not_found.to_dict())
    return JSONResponse(content={"meeting": meeting.to_wire()})


@app.put(APIEndpoints.MEETING_END)
async def end_meeting(meeting_id: str, identity: Identity = Depends(require_identity)) -> JSONResponse:
    """Mark a meeting ended and notify anyone still in its room."""
    try:
        container = get_di_container()
        store = container.get_meeting_store()
        await asyncio.to_thread(store.update_status, meeting_id, MeetingStatus.ENDED)
        await container.get_room_coordinator().end_meeting(meeting_id)
        logger.info("meeting_ended", meeting_id=meeting_id, ended_by=identity.user_id)
        return JSONResponse(content={"message": "Meeting ended", "meetingId": meeting_id})
    except AppException as e:
        if e.http_status >= 500:
            return _internal_error(e)
        logger.warning("meeting_end_rejected", meeting_id=meeting_id, error_code=e.error_code)
        return JSONResponse(status_code=e.http_status, content=e.to_dict())
    except Exception as e:
        return _internal_error(e)


def main() -> None:
    uvicorn.run(
        asgi_app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
