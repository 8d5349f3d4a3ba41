"""
Change feed for game sessions.

The session publishes a ``SessionChange`` after every mutation. Subscribers
(API push channels, tests, the CLI simulator) register a callable; the
session itself never knows who is listening.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    PARTICIPANT_ADDED = "participant_added"
    PLAYERS_CHANGED = "players_changed"
    BETS_CHANGED = "bets_changed"
    PLAYERS_ASSIGNED = "players_assigned"
    EVENT_RECORDED = "event_recorded"
    EVENT_UNDONE = "event_undone"
    BALANCES_RECALCULATED = "balances_recalculated"
    SUBSTITUTION = "substitution"
    MATCH_UPDATED = "match_updated"
    MONITORING_STARTED = "monitoring_started"
    MONITORING_STOPPED = "monitoring_stopped"
    SAVED = "saved"
    LOADED = "loaded"
    ENDED = "ended"


@dataclass
class SessionChange:
    session_id: str
    kind: ChangeKind
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Subscriber = Callable[[SessionChange], None]


class ChangeFeed:
    """Observer list with failure isolation between subscribers."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber.

        Returns:
            A function that removes the subscription when called
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, change: SessionChange) -> None:
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception:
                logger.exception(f"Change feed subscriber failed on {change.kind.value}")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
