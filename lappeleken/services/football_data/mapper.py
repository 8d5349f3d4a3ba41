"""
Map football-data.org v4 JSON onto the game's models.

Input shapes (abridged):
    match:   {id, utcDate, status, competition{id,name,code},
              homeTeam{id,name,shortName,tla,crest,squad?}, awayTeam{...},
              score{fullTime{home,away}}, goals?, bookings?, substitutions?,
              venue?, referees?}
    lineups: {homeTeam{id,name,formation,lineup[],bench[],coach}, awayTeam}
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from lappeleken.models.game import Player, Position, Team, new_id
from lappeleken.models.match import (
    Competition,
    Lineup,
    Match,
    MatchDetail,
    MatchEvent,
    MatchStatus,
    TeamLineup,
)

logger = logging.getLogger(__name__)

STATUS_MAP = {
    "SCHEDULED": MatchStatus.UPCOMING,
    "TIMED": MatchStatus.UPCOMING,
    "LIVE": MatchStatus.IN_PROGRESS,
    "IN_PLAY": MatchStatus.IN_PROGRESS,
    "PAUSED": MatchStatus.HALFTIME,
    "FINISHED": MatchStatus.FINISHED,
    "AWARDED": MatchStatus.FINISHED,
    "POSTPONED": MatchStatus.POSTPONED,
    "CANCELLED": MatchStatus.CANCELLED,
    "SUSPENDED": MatchStatus.SUSPENDED,
}

# football-data goal.type -> canonical live event type
GOAL_TYPES = {
    "REGULAR": "goal",
    "OWN": "own_goal",
    "PENALTY": "penalty",
}

STARTING_ELEVEN_SIZE = 11


def map_status(raw: Optional[str]) -> MatchStatus:
    return STATUS_MAP.get((raw or "").upper(), MatchStatus.UNKNOWN)


def map_position(raw: Optional[str]) -> Position:
    """
    Map a football-data position string to a Position.

    Handles both squad strings ("Defence", "Offence") and detailed ones
    ("Left-Back", "Centre-Forward", "Right Winger").
    """
    value = (raw or "").lower()
    if "goalkeeper" in value or value == "gk":
        return Position.GOALKEEPER
    if "defence" in value or "defender" in value or "back" in value:
        return Position.DEFENDER
    if "midfield" in value or "winger" in value:
        return Position.MIDFIELDER
    if "offence" in value or "forward" in value or "striker" in value or "attack" in value:
        return Position.FORWARD
    return Position.MIDFIELDER


def parse_datetime(raw: Optional[str]) -> datetime:
    if not raw:
        return datetime.now(timezone.utc)
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable match date: {raw}")
        return datetime.now(timezone.utc)


def map_team(data: Dict[str, Any]) -> Team:
    api_id = str(data.get("id", ""))
    name = data.get("name") or data.get("shortName") or "Unknown"
    return Team(
        # Stable id so the same team maps to one Team across calls
        id=f"fd-team-{api_id}" if api_id else new_id(),
        api_id=api_id or None,
        name=name,
        short_name=data.get("tla") or (data.get("shortName") or name)[:3].upper(),
        logo_name=data.get("crest") or "soccerball",
        primary_color="#1A5276",
    )


def map_competition(data: Optional[Dict[str, Any]]) -> Competition:
    data = data or {}
    return Competition(
        id=str(data.get("id", "")),
        name=data.get("name", "Unknown"),
        code=data.get("code", ""),
    )


def map_player(data: Dict[str, Any], team: Team) -> Player:
    api_id = str(data.get("id", ""))
    return Player(
        id=f"fd-player-{api_id}" if api_id else new_id(),
        api_id=api_id or None,
        name=data.get("name", "Unknown"),
        team=team,
        position=map_position(data.get("position")),
    )


def map_match(data: Dict[str, Any]) -> Match:
    score = (data.get("score") or {}).get("fullTime") or {}
    return Match(
        id=str(data["id"]),
        home_team=map_team(data.get("homeTeam") or {}),
        away_team=map_team(data.get("awayTeam") or {}),
        start_time=parse_datetime(data.get("utcDate")),
        status=map_status(data.get("status")),
        competition=map_competition(data.get("competition")),
        home_score=score.get("home"),
        away_score=score.get("away"),
    )


def map_matches(data: Dict[str, Any]) -> List[Match]:
    matches = []
    for raw in data.get("matches", []):
        try:
            matches.append(map_match(raw))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed match entry: {e}")
    return matches


def map_events(data: Dict[str, Any]) -> List[MatchEvent]:
    """Goals (plus their assists), bookings and substitutions of a match."""
    events: List[MatchEvent] = []

    for goal in data.get("goals") or []:
        scorer = goal.get("scorer") or {}
        if not scorer.get("id"):
            continue
        minute = goal.get("minute") or 0
        team_id = str((goal.get("team") or {}).get("id", "")) or None
        raw_type = (goal.get("type") or "REGULAR").upper()
        events.append(MatchEvent(
            id=f"{minute}_goal_{scorer['id']}",
            type=GOAL_TYPES.get(raw_type, raw_type.lower()),
            player_id=str(scorer["id"]),
            player_name=scorer.get("name"),
            minute=minute,
            team_id=team_id,
        ))
        assist = goal.get("assist") or {}
        if assist.get("id"):
            events.append(MatchEvent(
                id=f"{minute}_assist_{assist['id']}",
                type="assist",
                player_id=str(assist["id"]),
                player_name=assist.get("name"),
                minute=minute,
                team_id=team_id,
            ))

    for booking in data.get("bookings") or []:
        player = booking.get("player") or {}
        if not player.get("id"):
            continue
        minute = booking.get("minute") or 0
        card = (booking.get("card") or "").upper()
        events.append(MatchEvent(
            id=f"{minute}_{card.lower()}_{player['id']}",
            type="yellow_card" if card == "YELLOW" else "red_card",
            player_id=str(player["id"]),
            player_name=player.get("name"),
            minute=minute,
            team_id=str((booking.get("team") or {}).get("id", "")) or None,
        ))

    for sub in data.get("substitutions") or []:
        player_out = sub.get("playerOut") or {}
        player_in = sub.get("playerIn") or {}
        if not player_out.get("id"):
            continue
        minute = sub.get("minute") or 0
        events.append(MatchEvent(
            id=f"{minute}_sub_{player_out['id']}",
            type="substitution",
            player_id=str(player_out["id"]),
            player_name=player_out.get("name"),
            minute=minute,
            team_id=str((sub.get("team") or {}).get("id", "")) or None,
            player_off_id=str(player_out["id"]),
            player_on_id=str(player_in["id"]) if player_in.get("id") else None,
        ))

    events.sort(key=lambda e: e.minute)
    return events


def map_match_detail(data: Dict[str, Any]) -> MatchDetail:
    referees = data.get("referees") or []
    return MatchDetail(
        match=map_match(data),
        venue=data.get("venue"),
        referee=referees[0].get("name") if referees else None,
        events=map_events(data),
    )


def map_squad_players(data: Dict[str, Any]) -> List[Player]:
    """Players listed in the squads of a match detail response."""
    players: List[Player] = []
    for side in ("homeTeam", "awayTeam"):
        team_data = data.get(side) or {}
        team = map_team(team_data)
        players.extend(map_player(p, team) for p in team_data.get("squad") or [])
    return players


def _team_lineup(team_data: Dict[str, Any]) -> TeamLineup:
    team = map_team(team_data)
    coach = team_data.get("coach") or {}
    return TeamLineup(
        team=team,
        formation=team_data.get("formation"),
        starting_eleven=[map_player(p, team) for p in team_data.get("lineup") or []],
        substitutes=[map_player(p, team) for p in team_data.get("bench") or []],
        coach=coach.get("name"),
    )


def map_lineup(data: Dict[str, Any]) -> Lineup:
    return Lineup(
        home_team=_team_lineup(data.get("homeTeam") or {}),
        away_team=_team_lineup(data.get("awayTeam") or {}),
    )


def lineup_from_squads(data: Dict[str, Any]) -> Lineup:
    """Lineup built from match detail squads: first eleven start."""
    sides = []
    for side in ("homeTeam", "awayTeam"):
        team_data = data.get(side) or {}
        team = map_team(team_data)
        squad = [map_player(p, team) for p in team_data.get("squad") or []]
        sides.append(TeamLineup(
            team=team,
            starting_eleven=squad[:STARTING_ELEVEN_SIZE],
            substitutes=squad[STARTING_ELEVEN_SIZE:],
        ))
    return Lineup(home_team=sides[0], away_team=sides[1])
