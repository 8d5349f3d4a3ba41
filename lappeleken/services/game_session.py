"""
Game session orchestrator.

Owns all mutable state of one game: participants, bets, the event log,
player pools, substitutions and the undo journal. Every mutation publishes
a ``SessionChange`` on the session's change feed.

Balances are always a fold over the event log. Each recorded event also
gets a journal entry (deltas plus balances before and after) so undo can
restore balances exactly instead of relying on float negation.

Collaborators are injected:
- data_source: MatchDataSource (basic or enhanced capability)
- store: PersistenceStore for saved games
- monitor: LiveMatchMonitor for live polling (optional)
- entitlements: EntitlementGate consulted before live mode (optional)

Nothing on the settlement/event path raises; invalid input is logged and
ignored. External data failures surface as FootballDataError.
"""
import random
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from lappeleken.core import metrics
from lappeleken.core.logging import get_logger
from lappeleken.models.game import (
    STAT_FIELDS,
    Bet,
    BetEventType,
    GameEvent,
    Participant,
    Player,
    Substitution,
    SubstitutionStatus,
    new_id,
    utc_now,
)
from lappeleken.models.match import Match, MatchUpdate
from lappeleken.services.change_feed import ChangeFeed, ChangeKind, SessionChange
from lappeleken.services.event_ingestion import EventIngestor, IngestResult
from lappeleken.services.football_data.errors import FootballDataError
from lappeleken.services.football_data.service import (
    MatchDataSource,
    ServiceCapability,
    fetch_matches_with_fallback,
)
from lappeleken.services.matching.player_resolver import PlayerResolver
from lappeleken.services.persistence import GameSnapshot, PersistenceStore, SavedGameSummary
from lappeleken.services.settlement import compute_deltas, find_bet_for_event

logger = get_logger(__name__)

MAX_SUBSTITUTIONS_PER_TEAM = 5
STARTERS_FALLBACK_COUNT = 22  # roughly eleven per side when no lineup is published


class SessionStatus(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class LiveModeError(Exception):
    """Live monitoring cannot be started for this session."""

    NOT_ENTITLED = "not_entitled"
    BASIC_CAPABILITY = "basic_capability"
    NO_MONITOR = "no_monitor"
    NO_MATCH = "no_match"

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


@dataclass
class JournalEntry:
    """Balance effect of one recorded event."""
    event_id: str
    deltas: Dict[str, float] = field(default_factory=dict)
    balances_before: Dict[str, float] = field(default_factory=dict)
    balances_after: Dict[str, float] = field(default_factory=dict)


@dataclass
class TimelineEntry:
    kind: str  # "event" or "substitution"
    timestamp: datetime
    minute: Optional[int]
    description: str
    item_id: str


class GameSession:
    """
    One game of Lappeleken.

    Args:
        data_source: Match data provider, its capability decides whether
            live mode is available
        store: Saved game store
        monitor: Live poll scheduler wrapper; live mode is refused without one
        entitlements: Live-feature gate; no gate means no limits
        change_feed: Observer channel; a private one is created if None
        resolver: Player resolver for live events
        fallback_source: Offline source used when match fetching fails
        session_id: Fixed id (a new one is generated if None)
        is_live_mode: Events come from the live feed instead of manual entry
    """

    def __init__(
        self,
        data_source: MatchDataSource,
        store: PersistenceStore,
        *,
        monitor=None,
        entitlements=None,
        change_feed: Optional[ChangeFeed] = None,
        resolver: Optional[PlayerResolver] = None,
        fallback_source: Optional[MatchDataSource] = None,
        session_id: Optional[str] = None,
        is_live_mode: bool = False,
    ):
        self.id = session_id or new_id()
        self.data_source = data_source
        self.store = store
        self.monitor = monitor
        self.entitlements = entitlements
        self.changes = change_feed or ChangeFeed()
        self.fallback_source = fallback_source
        self.ingestor = EventIngestor(self, resolver)
        self.is_live_mode = is_live_mode

        self.participants: List[Participant] = []
        self.bets: List[Bet] = []
        self.events: List[GameEvent] = []
        self.available_players: List[Player] = []
        self.selected_players: List[Player] = []
        self.substitutions: List[Substitution] = []
        self.processed_event_keys: Set[str] = set()

        self.available_matches: List[Match] = []
        self.selected_match: Optional[Match] = None
        self._fallback_match_ids: Set[str] = set()

        self.save_id: Optional[str] = None
        self.current_save_name: Optional[str] = None

        self._journal: List[JournalEntry] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def capability(self) -> ServiceCapability:
        return self.data_source.capability

    @property
    def status(self) -> SessionStatus:
        if self.participants or self.bets or self.selected_players:
            return SessionStatus.ACTIVE
        return SessionStatus.IDLE

    @property
    def is_monitoring(self) -> bool:
        return self.monitor is not None and self.monitor.is_monitoring(self.id)

    @property
    def can_undo_last_event(self) -> bool:
        return bool(self.events)

    @property
    def has_been_saved(self) -> bool:
        return self.save_id is not None

    def _publish(self, kind: ChangeKind, **payload: Any) -> None:
        self.changes.publish(SessionChange(session_id=self.id, kind=kind, payload=payload))

    def _balances(self) -> Dict[str, float]:
        return {p.id: p.balance for p in self.participants}

    def _player_objects(self, player_id: str) -> List[Player]:
        """Every Player object in the session with this id, each once."""
        seen: Set[int] = set()
        found = []
        pools: List[Iterable[Player]] = [self.available_players, self.selected_players]
        for participant in self.participants:
            pools.append(participant.selected_players)
            pools.append(participant.substituted_players)
        for pool in pools:
            for player in pool:
                if player.id == player_id and id(player) not in seen:
                    seen.add(id(player))
                    found.append(player)
        return found

    def _canonical_player(self, player: Player) -> Player:
        for pool in (self.available_players, self.selected_players):
            for candidate in pool:
                if candidate.id == player.id:
                    return candidate
        return player

    def find_player(self, player_id: str) -> Optional[Player]:
        objects = self._player_objects(player_id)
        return objects[0] if objects else None

    def find_participant(self, participant_id: str) -> Optional[Participant]:
        return next((p for p in self.participants if p.id == participant_id), None)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def add_participant(self, name: str) -> Optional[Participant]:
        name = (name or "").strip()
        if not name:
            logger.warning("Ignoring participant with a blank name")
            return None
        participant = Participant(name=name)
        self.participants.append(participant)
        self._publish(ChangeKind.PARTICIPANT_ADDED, participant_id=participant.id, name=name)
        return participant

    def add_players(self, players: Iterable[Player]) -> int:
        """Extend the available pool; players whose id is present are skipped."""
        known = {p.id for p in self.available_players}
        added = 0
        for player in players:
            if player.id in known:
                continue
            self.available_players.append(player)
            known.add(player.id)
            added += 1
        if added:
            self._publish(ChangeKind.PLAYERS_CHANGED, added=added)
        return added

    def select_player(self, player: Player) -> bool:
        if any(p.id == player.id for p in self.selected_players):
            return False
        self.selected_players.append(self._canonical_player(player))
        self._publish(ChangeKind.PLAYERS_CHANGED, selected=player.id)
        return True

    def deselect_player(self, player_id: str) -> bool:
        before = len(self.selected_players)
        self.selected_players = [p for p in self.selected_players if p.id != player_id]
        if len(self.selected_players) == before:
            return False
        self._publish(ChangeKind.PLAYERS_CHANGED, deselected=player_id)
        return True

    # ------------------------------------------------------------------
    # Bets
    # ------------------------------------------------------------------

    def add_bet(self, event_type: BetEventType, amount: float) -> Optional[Bet]:
        if event_type == BetEventType.CUSTOM and any(b.is_custom and not b.name for b in self.bets):
            logger.warning("Skipping custom bet: an unnamed custom bet already exists")
            return None
        bet = Bet(event_type=event_type, amount=amount)
        self.bets.append(bet)
        logger.info(f"Added bet: {event_type.value} = {amount}")
        self._publish(ChangeKind.BETS_CHANGED, bet_id=bet.id)
        return bet

    def add_custom_bet(self, name: str, amount: float) -> Optional[Bet]:
        name = (name or "").strip()
        if not name:
            logger.warning("Ignoring custom bet with a blank name")
            return None
        if any(b.is_custom and (b.name or "").lower() == name.lower() for b in self.bets):
            logger.warning(f"Custom bet '{name}' already exists")
            return None
        bet = Bet(event_type=BetEventType.CUSTOM, amount=amount, name=name)
        self.bets.append(bet)
        logger.info(f"Added custom bet: {name} = {amount}")
        self._publish(ChangeKind.BETS_CHANGED, bet_id=bet.id)
        return bet

    def remove_custom_bet(self, bet_id: str) -> bool:
        before = len(self.bets)
        self.bets = [b for b in self.bets if not (b.is_custom and b.id == bet_id)]
        if len(self.bets) == before:
            return False
        self._publish(ChangeKind.BETS_CHANGED, removed=bet_id)
        return True

    def custom_bets(self) -> List[Bet]:
        return [b for b in self.bets if b.is_custom and b.name]

    def recreate_bets_with_preservation(self, amounts: Dict[BetEventType, float]) -> None:
        """Replace the standard bets; named custom bets (and their ids) survive."""
        preserved = self.custom_bets()
        self.bets = [
            Bet(event_type=event_type, amount=amount)
            for event_type, amount in amounts.items()
            if event_type != BetEventType.CUSTOM
        ]
        self.bets.extend(preserved)
        logger.info(f"Recreated bets: {len(self.bets)} total, {len(preserved)} custom preserved")
        self._publish(ChangeKind.BETS_CHANGED, count=len(self.bets))

    def bet_display_name(self, bet: Bet) -> str:
        return bet.display_name

    def event_display_name(self, event: GameEvent) -> str:
        if event.event_type == BetEventType.CUSTOM:
            if event.custom_event_name:
                return event.custom_event_name
            bet = find_bet_for_event(event, self.bets)
            if bet is not None:
                return bet.display_name
        return event.event_type.value

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    def assign_players_randomly(self, rng: Optional[random.Random] = None) -> bool:
        """
        Deal the selected players out to participants.

        Everyone gets ``N // P`` players and the first ``N % P`` participants
        one extra. No-op without participants or selected players.
        """
        if not self.participants or not self.selected_players:
            logger.warning(
                f"Cannot assign players: {len(self.participants)} participants, "
                f"{len(self.selected_players)} selected players"
            )
            return False

        pool = list(self.selected_players)
        (rng or random.Random()).shuffle(pool)

        per_participant, extra = divmod(len(pool), len(self.participants))
        start = 0
        for index, participant in enumerate(self.participants):
            count = per_participant + (1 if index < extra else 0)
            participant.selected_players = pool[start:start + count]
            start += count

        logger.info(f"Assigned {len(pool)} players to {len(self.participants)} participants")
        self._publish(ChangeKind.PLAYERS_ASSIGNED, players=len(pool))
        return True

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _update_stats(self, player_id: str, event_type: BetEventType, step: int) -> None:
        stat = STAT_FIELDS.get(event_type)
        if stat is None:
            return
        for player in self._player_objects(player_id):
            setattr(player, stat, max(0, getattr(player, stat) + step))

    def _settle(self, event: GameEvent) -> JournalEntry:
        before = self._balances()
        deltas = compute_deltas(event, self.participants, self.bets)
        for participant in self.participants:
            if participant.id in deltas:
                participant.balance += deltas[participant.id]
        return JournalEntry(
            event_id=event.id,
            deltas=deltas,
            balances_before=before,
            balances_after=self._balances(),
        )

    def record_event(
        self,
        player: Player,
        event_type: BetEventType,
        minute: Optional[int] = None,
        bet_id: Optional[str] = None,
        *,
        source: str = "manual",
    ) -> GameEvent:
        """
        Append an event, update the player's counter and settle it.

        A custom event without ``bet_id`` is logged but moves no money.
        """
        player = self._canonical_player(player)
        custom_name = None
        if event_type == BetEventType.CUSTOM:
            bet = next((b for b in self.bets if b.id == bet_id), None) if bet_id else None
            custom_name = bet.name if bet else None
            if bet is None:
                logger.warning(f"Custom event for {player.name} has no matching bet; nothing settles")

        event = GameEvent(
            player=player.model_copy(deep=True),
            event_type=event_type,
            minute=minute,
            bet_id=bet_id,
            custom_event_name=custom_name,
        )

        self._update_stats(player.id, event_type, 1)
        entry = self._settle(event)
        self.events.append(event)
        self._journal.append(entry)

        metrics.game_events_recorded_total.labels(event_type=event_type.value, source=source).inc()
        logger.info(
            f"Recorded {self.event_display_name(event)} for {player.name}",
            extra={"session_id": self.id, "event_id": event.id, "transfers": len(entry.deltas)},
        )
        self._publish(ChangeKind.EVENT_RECORDED, event_id=event.id, deltas=entry.deltas)
        return event

    def record_custom_event(
        self, player: Player, event_name: str, minute: Optional[int] = None
    ) -> Optional[GameEvent]:
        """Record a custom event by bet name (exact, then case-insensitive)."""
        bets = self.custom_bets()
        bet = next((b for b in bets if b.name == event_name), None)
        if bet is None:
            wanted = (event_name or "").strip().lower()
            bet = next((b for b in bets if b.name.lower() == wanted), None)
        if bet is None:
            logger.warning(f"No custom bet named '{event_name}'")
            return None
        return self.record_event(player, BetEventType.CUSTOM, minute=minute, bet_id=bet.id)

    def undo_last_event(self) -> Optional[GameEvent]:
        """Remove the last event and restore balances and counters exactly."""
        if not self.events:
            logger.info("Nothing to undo")
            return None

        event = self.events.pop()
        entry = self._journal.pop() if self._journal and self._journal[-1].event_id == event.id else None

        if entry is not None:
            for participant in self.participants:
                if participant.id not in entry.deltas:
                    continue
                if participant.balance == entry.balances_after.get(participant.id):
                    participant.balance = entry.balances_before[participant.id]
                else:
                    participant.balance -= entry.deltas[participant.id]
        else:
            deltas = compute_deltas(event, self.participants, self.bets)
            for participant in self.participants:
                participant.balance -= deltas.get(participant.id, 0.0)

        self._update_stats(event.player.id, event.event_type, -1)

        metrics.game_events_undone_total.inc()
        logger.info(f"Undid {self.event_display_name(event)} for {event.player.name}")
        self._publish(ChangeKind.EVENT_UNDONE, event_id=event.id)
        return event

    def _replay_journal(self) -> List[JournalEntry]:
        """Journal entries for the current log, settled from zero balances."""
        balances = {p.id: 0.0 for p in self.participants}
        journal = []
        for event in self.events:
            deltas = compute_deltas(event, self.participants, self.bets)
            after = dict(balances)
            for participant_id, delta in deltas.items():
                after[participant_id] += delta
            journal.append(JournalEntry(event.id, deltas, balances, after))
            balances = after
        return journal

    def recalculate_balances_from_events(self) -> Dict[str, float]:
        """Zero every balance and replay the event log."""
        self._journal = self._replay_journal()
        final = self._journal[-1].balances_after if self._journal else {}
        for participant in self.participants:
            participant.balance = final.get(participant.id, 0.0)
        logger.info(f"Recalculated balances from {len(self.events)} events")
        self._publish(ChangeKind.BALANCES_RECALCULATED, balances=self._balances())
        return self._balances()

    # ------------------------------------------------------------------
    # Substitutions
    # ------------------------------------------------------------------

    def substitute_player(
        self, player_off: Player, player_on: Player, minute: Optional[int] = None
    ) -> Optional[Substitution]:
        """
        Replace ``player_off`` with ``player_on`` on the roster holding it.

        The outgoing player stays on the participant's substituted list, so
        its earlier events keep counting for that participant.
        """
        owner = next((p for p in self.participants if p.holds_active(player_off.id)), None)
        if owner is None:
            logger.warning(f"Player {player_off.name} is not on any participant's active roster")
            return None
        if player_off.id == player_on.id:
            logger.warning(f"Cannot substitute {player_off.name} for themselves")
            return None
        if any(p.holds_active(player_on.id) for p in self.participants):
            logger.warning(f"Player {player_on.name} is already in the game")
            return None

        held_off = next(p for p in owner.selected_players if p.id == player_off.id)
        if not held_off.is_active:
            logger.warning(f"Player {held_off.name} is already substituted off")
            return None

        incoming = self._canonical_player(player_on)
        if incoming.team.id != held_off.team.id:
            logger.warning(f"Substitution across teams: {held_off.team.name} -> {incoming.team.name}")

        now = utc_now()
        for player in self._player_objects(held_off.id):
            player.substitution_status = SubstitutionStatus.substituted_off(now)
        for player in self._player_objects(incoming.id) + [incoming]:
            player.substitution_status = SubstitutionStatus.substituted_on(now)

        owner.selected_players = [p for p in owner.selected_players if p.id != held_off.id]
        owner.substituted_players.append(held_off)
        owner.selected_players.append(incoming)

        self.selected_players = [p for p in self.selected_players if p.id != held_off.id]
        if not any(p.id == incoming.id for p in self.selected_players):
            self.selected_players.append(incoming)

        substitution = Substitution(
            from_player=held_off.model_copy(deep=True),
            to_player=incoming.model_copy(deep=True),
            timestamp=now,
            team=held_off.team,
            minute=minute,
        )
        self.substitutions.append(substitution)

        logger.info(f"Substitution for {owner.name}: {held_off.name} -> {incoming.name}")
        self._publish(
            ChangeKind.SUBSTITUTION,
            substitution_id=substitution.id,
            participant_id=owner.id,
            player_off=held_off.id,
            player_on=incoming.id,
        )
        return substitution

    def remaining_substitutions(self, team_id: str) -> int:
        used = sum(1 for s in self.substitutions if s.team.id == team_id)
        return max(0, MAX_SUBSTITUTIONS_PER_TEAM - used)

    def can_make_more_substitutions(self, team_id: str) -> bool:
        return self.remaining_substitutions(team_id) > 0

    def timeline(self) -> List[TimelineEntry]:
        """Events and substitutions in time order, for display."""
        entries = [
            TimelineEntry(
                kind="event",
                timestamp=e.timestamp,
                minute=e.minute,
                description=f"{self.event_display_name(e)}: {e.player.name}",
                item_id=e.id,
            )
            for e in self.events
        ]
        entries.extend(
            TimelineEntry(
                kind="substitution",
                timestamp=s.timestamp,
                minute=s.minute,
                description=f"Substitution: {s.from_player.name} → {s.to_player.name}",
                item_id=s.id,
            )
            for s in self.substitutions
        )
        return sorted(entries, key=lambda entry: entry.timestamp)

    # ------------------------------------------------------------------
    # Match data
    # ------------------------------------------------------------------

    async def fetch_available_matches(self, competition_code: Optional[str] = None) -> List[Match]:
        """
        Live, then upcoming, then next-week matches.

        Raises:
            FootballDataError: if fetching fails and no fallback source is set
        """
        try:
            matches = await fetch_matches_with_fallback(self.data_source, competition_code)
            self._fallback_match_ids.clear()
        except FootballDataError as e:
            if self.fallback_source is None:
                logger.error(f"Could not fetch matches: {e}")
                raise
            logger.warning(f"Could not fetch matches ({e.user_message}); using sample data")
            matches = await self.fallback_source.fetch_upcoming_matches(competition_code)
            self._fallback_match_ids = {m.id for m in matches}

        self.available_matches = matches
        self._publish(ChangeKind.MATCH_UPDATED, available_matches=len(matches))
        return matches

    def _source_for(self, match_id: str) -> MatchDataSource:
        if match_id in self._fallback_match_ids and self.fallback_source is not None:
            return self.fallback_source
        return self.data_source

    async def select_match(self, match: Match) -> List[Player]:
        """
        Make ``match`` the session's match and load its players.

        Lineup players join the available pool and the starting elevens
        become the selected pool. Without a lineup, squad players are used.

        Raises:
            FootballDataError: if neither lineup nor squad can be loaded
        """
        self.selected_match = match
        source = self._source_for(match.id)

        try:
            lineup = await source.fetch_match_lineup(match.id)
            players = lineup.players
            starters = lineup.home_team.starting_eleven + lineup.away_team.starting_eleven
        except FootballDataError as e:
            logger.warning(f"Lineup unavailable for match {match.id}: {e}")
            players = await source.fetch_match_players(match.id)
            starters = players[:STARTERS_FALLBACK_COUNT]

        self.add_players(players)
        self.selected_players = [self._canonical_player(p) for p in starters]
        logger.info(
            f"Selected match {match.home_team.name} vs {match.away_team.name}: "
            f"{len(players)} players, {len(starters)} starters"
        )
        self._publish(ChangeKind.MATCH_UPDATED, match_id=match.id, players=len(players))
        return players

    def process_match_update(self, update: MatchUpdate) -> List[IngestResult]:
        """Apply one poll result: refresh the match and ingest new events."""
        if self.selected_match is None or self.selected_match.id == update.match.id:
            self.selected_match = update.match
        results = self.ingestor.ingest_many(update.new_events)
        self._publish(
            ChangeKind.MATCH_UPDATED,
            match_id=update.match.id,
            status=update.match.status.value,
            new_events=len(update.new_events),
        )
        return results

    # ------------------------------------------------------------------
    # Live monitoring
    # ------------------------------------------------------------------

    def _ensure_live_allowed(self) -> None:
        if self.monitor is None:
            raise LiveModeError(LiveModeError.NO_MONITOR, "Live monitoring is not configured")
        if self.capability != ServiceCapability.ENHANCED:
            raise LiveModeError(
                LiveModeError.BASIC_CAPABILITY,
                "Live match data is not available with the current data source",
            )
        if self.entitlements is not None and not self.entitlements.can_use_live_features():
            raise LiveModeError(
                LiveModeError.NOT_ENTITLED,
                "Daily live match limit reached. Watch an ad or upgrade to continue.",
            )

    def _start_monitor(self, match_id: str, interval: Optional[int] = None):
        handle = self.monitor.start(self, match_id, interval)
        self._publish(ChangeKind.MONITORING_STARTED, match_id=match_id, interval=handle.interval)
        return handle

    def start_monitoring_match(self, match_id: str, interval: Optional[int] = None):
        """
        Poll ``match_id`` in the background, replacing any running poll.

        Raises:
            LiveModeError: no monitor, basic data source or not entitled
        """
        self._ensure_live_allowed()
        return self._start_monitor(match_id, interval)

    def setup_event_driven_mode(self, interval: Optional[int] = None):
        """
        Start live mode for the selected match, replacing any running poll.

        Counts one live match against the entitlement allowance. Dedup keys
        are kept, so events already recorded are not settled again.
        Only reset() clears them.
        """
        if not self.is_live_mode:
            logger.info("Session is not in live mode; skipping event-driven setup")
            return None
        if self.selected_match is None:
            raise LiveModeError(LiveModeError.NO_MATCH, "Select a match before starting live mode")

        self._ensure_live_allowed()
        self.stop_all_monitoring()
        if self.entitlements is not None:
            self.entitlements.record_live_match_usage()
        return self._start_monitor(self.selected_match.id, interval)

    def stop_all_monitoring(self) -> bool:
        if self.monitor is None or not self.monitor.stop(self.id):
            return False
        self._publish(ChangeKind.MONITORING_STOPPED)
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """End the game; the session is idle afterwards."""
        self.stop_all_monitoring()
        self.participants = []
        self.bets = []
        self.events = []
        self.selected_players = []
        self.substitutions = []
        self.processed_event_keys.clear()
        self._journal = []
        for player in self.available_players:
            for stat in STAT_FIELDS.values():
                setattr(player, stat, 0)
            player.substitution_status = SubstitutionStatus()
        logger.info(f"Session {self.id} reset")
        self._publish(ChangeKind.ENDED)

    def verify_data_integrity(self) -> bool:
        if not self.available_players:
            logger.warning("Integrity check failed: no available players")
            return False
        nameless = [p for p in self.available_players if not p.team.name.strip()]
        if nameless:
            logger.warning(f"Integrity check failed: {len(nameless)} players without a team name")
            return False
        teams = {p.team.id for p in self.available_players}
        if len(teams) < 2:
            logger.warning(f"Integrity check failed: need at least 2 teams, found {len(teams)}")
            return False
        return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_snapshot(self, name: str, snapshot_id: Optional[str] = None) -> GameSnapshot:
        return GameSnapshot(
            id=snapshot_id or new_id(),
            name=name,
            participants=self.participants,
            bets=self.bets,
            events=self.events,
            selected_players=self.selected_players,
            available_players=self.available_players,
            substitutions=self.substitutions,
            selected_match=self.selected_match,
            is_live_mode=self.is_live_mode,
            processed_event_keys=sorted(self.processed_event_keys),
        )

    def apply_snapshot(self, snapshot: GameSnapshot) -> None:
        """
        Replace the session state with a snapshot.

        Player objects are re-linked by id so a stat update reaches every
        list. Stored balances and live dedup keys are kept; the undo
        journal is rebuilt from the event log.
        """
        self.stop_all_monitoring()

        canonical: Dict[str, Player] = {}
        for player in snapshot.available_players:
            canonical.setdefault(player.id, player)

        def link(players: List[Player]) -> List[Player]:
            return [canonical.setdefault(p.id, p) for p in players]

        self.available_players = list(canonical.values())
        self.selected_players = link(snapshot.selected_players)
        for participant in snapshot.participants:
            participant.selected_players = link(participant.selected_players)
            participant.substituted_players = link(participant.substituted_players)

        self.participants = snapshot.participants
        self.bets = snapshot.bets
        self.events = snapshot.events
        self.substitutions = snapshot.substitutions
        self.selected_match = snapshot.selected_match
        self.is_live_mode = snapshot.is_live_mode
        self.processed_event_keys = set(snapshot.processed_event_keys)
        self._journal = self._replay_journal()
        self.save_id = snapshot.id
        self.current_save_name = snapshot.name

    @classmethod
    def from_snapshot(
        cls, snapshot: GameSnapshot, data_source: MatchDataSource, store: PersistenceStore, **kwargs
    ) -> "GameSession":
        session = cls(data_source, store, **kwargs)
        session.apply_snapshot(snapshot)
        return session

    def save_game(self, name: str, is_update: bool = False) -> str:
        """
        Save the session; returns the save id.

        ``is_update`` overwrites this session's previous save. A blank
        name becomes "Game <date time>".
        """
        final_name = (name or "").strip() or f"Game {utc_now():%Y-%m-%d %H:%M}"
        snapshot_id = self.save_id if is_update and self.save_id else None
        snapshot = self.to_snapshot(final_name, snapshot_id)
        self.store.save(snapshot)
        self.save_id = snapshot.id
        self.current_save_name = final_name
        self._publish(ChangeKind.SAVED, save_id=snapshot.id, name=final_name)
        return snapshot.id

    def load_saved_game(self, save_id: str) -> bool:
        snapshot = self.store.load(save_id)
        if snapshot is None:
            logger.warning(f"Saved game {save_id} not found")
            return False
        self.apply_snapshot(snapshot)
        logger.info(f"Loaded saved game '{snapshot.name}' ({len(self.events)} events)")
        self._publish(ChangeKind.LOADED, save_id=save_id)
        return True

    def saved_games(self) -> List[SavedGameSummary]:
        return self.store.list_summaries()

    def save_name_exists(self, name: str) -> bool:
        return self.store.name_exists(name, exclude_id=self.save_id)
