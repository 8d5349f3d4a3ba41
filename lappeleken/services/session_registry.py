"""
In-process registry of game sessions.

Sessions live in memory for the lifetime of the process. All sessions
share one match data source (and with it one rate limiter and response
cache), one saved game store, one live monitor and one entitlement gate.
"""
import logging
from typing import Dict, List, Optional

from lappeleken.core.config import Settings
from lappeleken.services.change_feed import ChangeFeed
from lappeleken.services.entitlements import EntitlementGate
from lappeleken.services.football_data.client import FootballDataClient
from lappeleken.services.football_data.rate_limiter import SlidingWindowRateLimiter
from lappeleken.services.football_data.sample_data import SampleDataService
from lappeleken.services.football_data.service import FootballDataService, MatchDataSource
from lappeleken.services.game_session import GameSession
from lappeleken.services.matching.player_resolver import PlayerResolver
from lappeleken.services.persistence import PersistenceStore

logger = logging.getLogger(__name__)


def build_data_source(settings: Settings) -> MatchDataSource:
    """
    Enhanced football-data.org source when an API key is configured,
    otherwise the offline sample source.
    """
    if not settings.has_football_data_key():
        logger.warning("FOOTBALL_DATA_API_KEY not set; using offline sample data (no live mode)")
        return SampleDataService()

    client = FootballDataClient(
        api_key=settings.FOOTBALL_DATA_API_KEY,
        base_url=settings.FOOTBALL_DATA_BASE_URL,
        timeout=settings.FOOTBALL_DATA_TIMEOUT,
        retry_attempts=settings.FOOTBALL_DATA_RETRY_ATTEMPTS,
        rate_limiter=SlidingWindowRateLimiter(max_calls=settings.RATE_LIMIT_CALLS_PER_MINUTE),
    )
    return FootballDataService(client)


class SessionRegistry:
    """
    Creates, finds and removes game sessions.

    Args:
        data_source: Shared match data source
        store: Saved game store
        monitor: Live monitor (attach later with ``attach_monitor`` if the
            scheduler starts after the registry is built)
        entitlements: Shared entitlement gate
        fallback_source: Offline source for degraded match fetching
        fuzzy_matching: Enable fuzzy player resolution for live events
    """

    def __init__(
        self,
        data_source: MatchDataSource,
        store: PersistenceStore,
        monitor=None,
        entitlements: Optional[EntitlementGate] = None,
        fallback_source: Optional[MatchDataSource] = None,
        fuzzy_matching: bool = True,
    ):
        self.data_source = data_source
        self.store = store
        self.monitor = monitor
        self.entitlements = entitlements
        self.fallback_source = fallback_source
        self.fuzzy_matching = fuzzy_matching
        self._sessions: Dict[str, GameSession] = {}

    def attach_monitor(self, monitor) -> None:
        self.monitor = monitor
        for session in self._sessions.values():
            session.monitor = monitor

    def create(self, is_live_mode: bool = False, change_feed: Optional[ChangeFeed] = None) -> GameSession:
        session = GameSession(
            self.data_source,
            self.store,
            monitor=self.monitor,
            entitlements=self.entitlements,
            change_feed=change_feed,
            resolver=PlayerResolver(fuzzy=self.fuzzy_matching),
            fallback_source=self.fallback_source,
            is_live_mode=is_live_mode,
        )
        self._sessions[session.id] = session
        logger.info(f"Created game session {session.id} (live mode: {is_live_mode})")
        return session

    def get(self, session_id: str) -> Optional[GameSession]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.stop_all_monitoring()
        logger.info(f"Removed game session {session_id}")
        return True

    def load_saved(self, save_id: str) -> Optional[GameSession]:
        """New session restored from a saved game, or None if it does not exist."""
        session = self.create()
        if not session.load_saved_game(save_id):
            self._sessions.pop(session.id, None)
            return None
        return session

    def sessions(self) -> List[GameSession]:
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def shutdown(self) -> None:
        for session in list(self._sessions.values()):
            session.stop_all_monitoring()
        self._sessions.clear()
