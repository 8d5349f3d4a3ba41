"""
Match data sources.

A game session talks to a ``MatchDataSource``. Each implementation declares
its capability once:

- ENHANCED: live data from football-data.org; match events, lineups and
  live monitoring are available.
- BASIC: static data only (see sample_data.py); no live events, so live
  monitoring is refused up front.

Cache TTL by match status (seconds): finished 3600, live 60, upcoming 900,
unknown 300. Match lists 300, players 1800.
"""
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol, runtime_checkable

from lappeleken.core.logging import get_logger
from lappeleken.models.game import Player
from lappeleken.models.match import Lineup, Match, MatchDetail, MatchStatus, MatchUpdate
from lappeleken.services.football_data import mapper
from lappeleken.services.football_data.client import FootballDataClient
from lappeleken.services.football_data.errors import ApiErrorKind, FootballDataError

logger = get_logger(__name__)

MATCH_LIST_TTL = 300
PLAYERS_TTL = 1800
MATCH_DETAIL_TTL = {
    MatchStatus.FINISHED: 3600,
    MatchStatus.IN_PROGRESS: 60,
    MatchStatus.HALFTIME: 60,
    MatchStatus.PAUSED: 60,
    MatchStatus.UPCOMING: 900,
}
DEFAULT_MATCH_DETAIL_TTL = 300
DATE_RANGE_DAYS = 7


class ServiceCapability(str, Enum):
    BASIC = "basic"
    ENHANCED = "enhanced"


@runtime_checkable
class MatchDataSource(Protocol):
    """What a game session needs from a match data provider."""

    capability: ServiceCapability

    async def fetch_live_matches(self, competition_code: Optional[str] = None) -> List[Match]: ...

    async def fetch_upcoming_matches(self, competition_code: Optional[str] = None) -> List[Match]: ...

    async def fetch_matches_in_range(self, days: int = DATE_RANGE_DAYS) -> List[Match]: ...

    async def fetch_match_details(self, match_id: str) -> MatchDetail: ...

    async def fetch_match_lineup(self, match_id: str) -> Lineup: ...

    async def fetch_match_players(self, match_id: str) -> List[Player]: ...

    async def fetch_match_update(self, match_id: str, seen_event_ids: Iterable[str] = ()) -> MatchUpdate: ...

    async def close(self) -> None: ...


async def fetch_matches_with_fallback(
    source: MatchDataSource, competition_code: Optional[str] = None
) -> List[Match]:
    """
    Live matches, else upcoming ones, else anything in the next 7 days.

    Rate limiting and configuration errors are raised immediately; other
    failures on one step move on to the next one. Nothing is retried.
    """
    steps = (
        ("live", lambda: source.fetch_live_matches(competition_code)),
        ("upcoming", lambda: source.fetch_upcoming_matches(competition_code)),
        ("date range", lambda: source.fetch_matches_in_range(DATE_RANGE_DAYS)),
    )
    last_error: Optional[FootballDataError] = None

    for label, step in steps:
        try:
            matches = await step()
        except FootballDataError as e:
            if e.kind in (ApiErrorKind.RATE_LIMITED, ApiErrorKind.INVALID_CONFIGURATION):
                raise
            logger.warning(f"Fetching {label} matches failed: {e}")
            last_error = e
            continue
        if matches:
            logger.info(f"Loaded {len(matches)} {label} matches")
            return matches
        logger.info(f"No {label} matches found")

    if last_error is not None:
        raise last_error
    return []


class FootballDataService:
    """
    football-data.org backed match data source (enhanced capability).

    Args:
        client: Configured FootballDataClient
    """

    capability = ServiceCapability.ENHANCED

    def __init__(self, client: FootballDataClient):
        self.client = client

    async def close(self) -> None:
        await self.client.close()

    # Match lists

    async def fetch_live_matches(self, competition_code: Optional[str] = None) -> List[Match]:
        params: Dict[str, str] = {"status": "LIVE,IN_PLAY"}
        if competition_code:
            params["competitions"] = competition_code
        data = await self.client.get_json("matches", params=params, cache_ttl=MATCH_LIST_TTL)
        return mapper.map_matches(data)

    async def fetch_upcoming_matches(self, competition_code: Optional[str] = None) -> List[Match]:
        params: Dict[str, str] = {"status": "SCHEDULED"}
        if competition_code:
            params["competitions"] = competition_code
        data = await self.client.get_json("matches", params=params, cache_ttl=MATCH_LIST_TTL)
        return mapper.map_matches(data)

    async def fetch_matches_in_range(self, days: int = DATE_RANGE_DAYS) -> List[Match]:
        today = date.today()
        params = {
            "dateFrom": today.isoformat(),
            "dateTo": (today + timedelta(days=days)).isoformat(),
        }
        data = await self.client.get_json("matches", params=params, cache_ttl=MATCH_LIST_TTL)
        return mapper.map_matches(data)

    async def fetch_live_matches_with_fallback(self, competition_code: Optional[str] = None) -> List[Match]:
        return await fetch_matches_with_fallback(self, competition_code)

    # Single match

    async def _fetch_match_json(self, match_id: str) -> Dict:
        endpoint = f"matches/{match_id}"
        data = await self.client.get_cached(endpoint)
        if data is None:
            data = await self.client.get_json(endpoint)
            ttl = MATCH_DETAIL_TTL.get(mapper.map_status(data.get("status")), DEFAULT_MATCH_DETAIL_TTL)
            await self.client.set_cache(endpoint, data, ttl)
        return data

    async def fetch_match_details(self, match_id: str) -> MatchDetail:
        data = await self._fetch_match_json(match_id)
        try:
            return mapper.map_match_detail(data)
        except (KeyError, TypeError, ValueError) as e:
            raise FootballDataError.decoding(f"match {match_id}: {e}")

    async def fetch_match_players(self, match_id: str) -> List[Player]:
        """Squad players of both teams; empty if squads are not published yet."""
        cache_key = f"players:{match_id}"
        cached = await self.client.get_cached(cache_key)
        if cached is not None:
            # Sessions mutate player stats; never hand out the cached objects
            return [p.model_copy(deep=True) for p in cached]

        players = mapper.map_squad_players(await self._fetch_match_json(match_id))
        if players:
            await self.client.set_cache(cache_key, [p.model_copy(deep=True) for p in players], PLAYERS_TTL)
        else:
            logger.warning(f"No squad data published for match {match_id}")
        return players

    async def fetch_match_lineup(self, match_id: str) -> Lineup:
        """
        Lineup from the lineups endpoint, falling back to match squads.

        Raises:
            FootballDataError: if both sources fail (the last error)
        """
        try:
            data = await self.client.get_json(f"matches/{match_id}/lineups", cache_ttl=PLAYERS_TTL)
            lineup = mapper.map_lineup(data)
            if lineup.players:
                return lineup
            logger.info(f"Lineups endpoint returned no players for match {match_id}, using squads")
        except FootballDataError as e:
            if e.kind == ApiErrorKind.RATE_LIMITED:
                raise
            logger.warning(f"Lineup fetch failed for match {match_id}, using squads: {e}")

        return mapper.lineup_from_squads(await self._fetch_match_json(match_id))

    async def fetch_match_update(self, match_id: str, seen_event_ids: Iterable[str] = ()) -> MatchUpdate:
        """Current match state plus events whose ids are not in ``seen_event_ids``."""
        detail = await self.fetch_match_details(match_id)
        seen = set(seen_event_ids)
        new_events = [e for e in detail.events if e.id not in seen]
        if new_events:
            logger.info(f"Found {len(new_events)} new events for match {match_id}")
        return MatchUpdate(match=detail.match, new_events=new_events)
