"""
Live event ingestion.

Takes ``MatchEvent``s from the match feed and turns them into session
mutations:

1. Dedup on ``{id}_{minute}_{type}_{player_id}``. The key is marked
   processed before anything else, so an event that cannot be resolved is
   not retried on the next poll.
2. Substitutions are routed to ``GameSession.substitute_player``.
3. Everything else is mapped to a ``BetEventType``, the player is resolved
   against the session's available pool and the event is recorded.

Nothing here raises on bad feed data; discarded events are logged and
counted in ``live_events_discarded_total``.
"""
import logging
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional

from lappeleken.core import metrics
from lappeleken.models.game import BetEventType, Player
from lappeleken.models.match import MatchEvent
from lappeleken.services.matching.player_resolver import PlayerResolver

if TYPE_CHECKING:
    from lappeleken.services.game_session import GameSession

logger = logging.getLogger(__name__)

# Feed type (lowercased) -> bet event type
EVENT_TYPE_MAP = {
    "goal": BetEventType.GOAL,
    "regular": BetEventType.GOAL,
    "assist": BetEventType.ASSIST,
    "yellow_card": BetEventType.YELLOW_CARD,
    "red_card": BetEventType.RED_CARD,
    "yellow_red_card": BetEventType.RED_CARD,
    "penalty": BetEventType.PENALTY,
    "penalty_missed": BetEventType.PENALTY_MISSED,
    "own_goal": BetEventType.OWN_GOAL,
    "own": BetEventType.OWN_GOAL,
}


class IngestResult(str, Enum):
    RECORDED = "recorded"
    SUBSTITUTED = "substituted"
    DUPLICATE = "duplicate"
    UNRESOLVED_PLAYER = "unresolved_player"
    UNKNOWN_TYPE = "unknown_type"
    INVALID = "invalid"


def dedup_key(event: MatchEvent) -> str:
    return f"{event.id}_{event.minute}_{event.type}_{event.player_id}"


def map_event_type(raw_type: str) -> Optional[BetEventType]:
    return EVENT_TYPE_MAP.get((raw_type or "").strip().lower())


class EventIngestor:
    """
    Applies live feed events to one game session.

    Args:
        session: The session to mutate
        resolver: Player resolver; defaults to one with fuzzy matching on
    """

    def __init__(self, session: "GameSession", resolver: Optional[PlayerResolver] = None):
        self.session = session
        self.resolver = resolver or PlayerResolver()

    def ingest_many(self, events: Iterable[MatchEvent]) -> List[IngestResult]:
        return [self.ingest(event) for event in events]

    def ingest(self, event: MatchEvent) -> IngestResult:
        key = dedup_key(event)
        if key in self.session.processed_event_keys:
            logger.debug(f"Skipping duplicate live event {key}")
            return self._discard(IngestResult.DUPLICATE)
        self.session.processed_event_keys.add(key)

        if event.is_substitution:
            return self._ingest_substitution(event)

        event_type = map_event_type(event.type)
        if event_type is None:
            logger.warning(
                f"Unknown live event type '{event.type}' for event {event.id}",
                extra={"event_id": event.id, "event_type": event.type},
            )
            return self._discard(IngestResult.UNKNOWN_TYPE)

        match = self.resolver.resolve(
            self.session.available_players,
            api_id=event.player_id,
            name=event.player_name,
            team_api_id=event.team_id,
        )
        if match is None:
            logger.warning(f"Could not resolve player {event.player_name or event.player_id} "
                           f"for {event_type.value} at {event.minute}'")
            return self._discard(IngestResult.UNRESOLVED_PLAYER)

        self.session.record_event(match.player, event_type, minute=event.minute, source="live")
        logger.info(
            f"Live {event_type.value}: {match.player.name} ({event.minute}')",
            extra={"match_method": match.match_method, "event_id": event.id},
        )
        return IngestResult.RECORDED

    def _ingest_substitution(self, event: MatchEvent) -> IngestResult:
        off_id = event.player_off_id or event.player_id
        on_id = event.player_on_id
        if not off_id or not on_id:
            logger.warning(f"Substitution {event.id} is missing a player id")
            return self._discard(IngestResult.INVALID)

        player_off = self._find_by_api_id(self.session.selected_players, off_id)
        if player_off is None:
            logger.warning(f"Substituted player {off_id} is not in the game; ignoring substitution")
            return self._discard(IngestResult.UNRESOLVED_PLAYER)

        match = self.resolver.resolve(self.session.available_players, api_id=on_id)
        player_on = match.player if match else None
        if player_on is None:
            logger.warning(f"Incoming player {on_id} not found in the available pool")
            return self._discard(IngestResult.UNRESOLVED_PLAYER)

        substitution = self.session.substitute_player(player_off, player_on, minute=event.minute)
        if substitution is None:
            return self._discard(IngestResult.INVALID)
        return IngestResult.SUBSTITUTED

    @staticmethod
    def _find_by_api_id(players: Iterable[Player], api_id: str) -> Optional[Player]:
        return next((p for p in players if p.api_id == api_id), None)

    @staticmethod
    def _discard(result: IngestResult) -> IngestResult:
        metrics.live_events_discarded_total.labels(reason=result.value).inc()
        return result
