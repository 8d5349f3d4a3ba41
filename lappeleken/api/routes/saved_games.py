"""
Saved game API routes.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from lappeleken.api.dependencies import get_registry, persistence_http_error
from lappeleken.api.routes.sessions import session_state
from lappeleken.services.persistence import PersistenceError
from lappeleken.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/saved-games", tags=["saved-games"])


@router.get("", response_model=dict)
async def list_saved_games(registry: SessionRegistry = Depends(get_registry)):
    """Saved games, newest first."""
    try:
        summaries = registry.store.list_summaries()
    except PersistenceError as e:
        raise persistence_http_error(e)
    return {
        "count": len(summaries),
        "saved_games": [s.model_dump(mode="json") for s in summaries],
    }


@router.get("/name-exists", response_model=dict)
async def saved_game_name_exists(
    name: str = Query(..., min_length=1),
    registry: SessionRegistry = Depends(get_registry)
):
    try:
        exists = registry.store.name_exists(name)
    except PersistenceError as e:
        raise persistence_http_error(e)
    return {"name": name, "exists": exists}


@router.post("/{save_id}/load", response_model=dict, status_code=201)
async def load_saved_game(save_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Restore a saved game into a new session."""
    try:
        session = registry.load_saved(save_id)
    except PersistenceError as e:
        raise persistence_http_error(e)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Saved game {save_id} not found")
    return session_state(session)


@router.delete("/{save_id}", response_model=dict)
async def delete_saved_game(save_id: str, registry: SessionRegistry = Depends(get_registry)):
    try:
        deleted = registry.store.delete(save_id)
    except PersistenceError as e:
        raise persistence_http_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Saved game {save_id} not found")
    logger.info(f"Deleted saved game {save_id}")
    return {"deleted": True}
