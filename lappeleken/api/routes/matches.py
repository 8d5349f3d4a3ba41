"""
Match data API routes backed by the configured match data source.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from lappeleken.api.dependencies import football_data_http_error, get_data_source
from lappeleken.services.football_data.errors import FootballDataError
from lappeleken.services.football_data.service import (
    DATE_RANGE_DAYS,
    MatchDataSource,
    fetch_matches_with_fallback,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matches", tags=["matches"])


@router.get("", response_model=dict)
async def get_matches(
    competition: Optional[str] = Query(None, description="Competition code, e.g. PL"),
    source: MatchDataSource = Depends(get_data_source)
):
    """Live matches, else upcoming, else the next week's fixtures."""
    try:
        matches = await fetch_matches_with_fallback(source, competition)
    except FootballDataError as e:
        raise football_data_http_error(e)
    return {
        "capability": source.capability.value,
        "count": len(matches),
        "matches": [m.model_dump(mode="json") for m in matches],
    }


@router.get("/live", response_model=dict)
async def get_live_matches(
    competition: Optional[str] = Query(None, description="Competition code, e.g. PL"),
    source: MatchDataSource = Depends(get_data_source)
):
    try:
        matches = await source.fetch_live_matches(competition)
    except FootballDataError as e:
        raise football_data_http_error(e)
    return {"count": len(matches), "matches": [m.model_dump(mode="json") for m in matches]}


@router.get("/upcoming", response_model=dict)
async def get_upcoming_matches(
    competition: Optional[str] = Query(None, description="Competition code, e.g. PL"),
    source: MatchDataSource = Depends(get_data_source)
):
    try:
        matches = await source.fetch_upcoming_matches(competition)
    except FootballDataError as e:
        raise football_data_http_error(e)
    return {"count": len(matches), "matches": [m.model_dump(mode="json") for m in matches]}


@router.get("/range", response_model=dict)
async def get_matches_in_range(
    days: int = Query(DATE_RANGE_DAYS, ge=1, le=14, description="Days ahead from today"),
    source: MatchDataSource = Depends(get_data_source)
):
    try:
        matches = await source.fetch_matches_in_range(days)
    except FootballDataError as e:
        raise football_data_http_error(e)
    return {"count": len(matches), "matches": [m.model_dump(mode="json") for m in matches]}


@router.get("/{match_id}", response_model=dict)
async def get_match(match_id: str, source: MatchDataSource = Depends(get_data_source)):
    try:
        detail = await source.fetch_match_details(match_id)
    except FootballDataError as e:
        raise football_data_http_error(e)
    return detail.model_dump(mode="json")


@router.get("/{match_id}/lineup", response_model=dict)
async def get_match_lineup(match_id: str, source: MatchDataSource = Depends(get_data_source)):
    """Published lineup, or squads grouped by position when none is out yet."""
    try:
        lineup = await source.fetch_match_lineup(match_id)
    except FootballDataError as e:
        raise football_data_http_error(e)
    return lineup.model_dump(mode="json")


@router.get("/{match_id}/players", response_model=dict)
async def get_match_players(match_id: str, source: MatchDataSource = Depends(get_data_source)):
    try:
        players = await source.fetch_match_players(match_id)
    except FootballDataError as e:
        raise football_data_http_error(e)
    return {"count": len(players), "players": [p.model_dump(mode="json") for p in players]}
