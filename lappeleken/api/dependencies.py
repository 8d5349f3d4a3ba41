"""
FastAPI dependencies and error translation shared by the routers.

Application-wide collaborators (session registry, data source,
entitlement gate) are created in the lifespan handler and stored on
``app.state``.
"""
import logging

from fastapi import Depends, HTTPException, Request

from lappeleken.services.entitlements import EntitlementGate
from lappeleken.services.football_data.errors import ApiErrorKind, FootballDataError
from lappeleken.services.football_data.service import MatchDataSource
from lappeleken.services.game_session import GameSession, LiveModeError
from lappeleken.services.persistence import PersistenceError
from lappeleken.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    ApiErrorKind.RATE_LIMITED: 429,
    ApiErrorKind.NETWORK_ERROR: 503,
    ApiErrorKind.SERVER_ERROR: 503,
    ApiErrorKind.DECODING_ERROR: 502,
    ApiErrorKind.INVALID_CONFIGURATION: 500,
    ApiErrorKind.UNKNOWN: 500,
}


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_data_source(request: Request) -> MatchDataSource:
    return request.app.state.data_source


def get_entitlements(request: Request) -> EntitlementGate:
    return request.app.state.entitlements


def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> GameSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Game session {session_id} not found")
    return session


def football_data_http_error(error: FootballDataError) -> HTTPException:
    """HTTP error carrying the player-facing message."""
    status = _STATUS_BY_KIND.get(error.kind, 500)
    logger.warning(f"Match data request failed ({status}): {error}")
    return HTTPException(status_code=status, detail=error.user_message)


def live_mode_http_error(error: LiveModeError) -> HTTPException:
    status = 403 if error.reason == LiveModeError.NOT_ENTITLED else 409
    return HTTPException(status_code=status, detail=str(error))


def persistence_http_error(error: PersistenceError) -> HTTPException:
    logger.error(f"Saved game operation failed: {error}")
    return HTTPException(status_code=500, detail=str(error))
