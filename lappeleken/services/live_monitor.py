"""
Live match polling, one scheduler job per game session.

Starting a poll for a session always cancels the previous one first, so
at most one poll job is alive per session. Every job carries a
CancellationToken that is checked after the network fetch and before any
session mutation: a poll that was in flight when the job was cancelled
never touches the session.

Interval after each successful poll:
    in progress        90s (60s if the previous success is older than 120s)
    halftime / paused  300s
    upcoming           600s
    finished, postponed, cancelled: polling stops
    anything else      180s

Failed polls back off to min(300, 30 * consecutive_failures) seconds.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, Optional, Set

from lappeleken.core import metrics
from lappeleken.core.logging import correlation_scope
from lappeleken.core.scheduler import LiveMonitorScheduler
from lappeleken.models.game import utc_now
from lappeleken.models.match import MatchStatus, MatchUpdate
from lappeleken.services.football_data.errors import FootballDataError

if TYPE_CHECKING:
    from lappeleken.services.game_session import GameSession

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 60
MAX_BACKOFF_SECONDS = 300
BACKOFF_STEP_SECONDS = 30
STALE_SUCCESS_SECONDS = 120


def job_id_for(session_id: str) -> str:
    return f"live_poll_{session_id}"


def next_poll_interval(status: MatchStatus, seconds_since_success: float = 0.0) -> Optional[int]:
    """Seconds until the next poll, or None when the match needs no more polling."""
    if status.is_over:
        return None
    if status == MatchStatus.IN_PROGRESS:
        return 60 if seconds_since_success > STALE_SUCCESS_SECONDS else 90
    if status in (MatchStatus.HALFTIME, MatchStatus.PAUSED):
        return 300
    if status == MatchStatus.UPCOMING:
        return 600
    return 180


def backoff_interval(failures: int) -> int:
    return min(MAX_BACKOFF_SECONDS, BACKOFF_STEP_SECONDS * max(1, failures))


class CancellationToken:
    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class MonitorHandle:
    """A running poll job for one session."""
    session_id: str
    match_id: str
    interval: int
    token: CancellationToken = field(default_factory=CancellationToken)
    started_at: datetime = field(default_factory=utc_now)

    @property
    def job_id(self) -> str:
        return job_id_for(self.session_id)

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled


@dataclass
class _PollState:
    session: "GameSession"
    handle: MonitorHandle
    seen_event_ids: Set[str] = field(default_factory=set)
    failures: int = 0
    last_success: Optional[float] = None


class LiveMatchMonitor:
    """
    Schedules and runs live polls for game sessions.

    Args:
        scheduler: Running LiveMonitorScheduler
        data_source: Source to poll; defaults to each session's own source
        default_interval: First poll interval when none is given
        clock: Monotonic clock (injectable for tests)
    """

    def __init__(
        self,
        scheduler: LiveMonitorScheduler,
        data_source=None,
        default_interval: int = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.scheduler = scheduler
        self.data_source = data_source
        self.default_interval = default_interval
        self._clock = clock
        self._polls: Dict[str, _PollState] = {}

    def start(self, session: "GameSession", match_id: str, interval: Optional[int] = None) -> MonitorHandle:
        """Cancel any poll for ``session`` and start a new one."""
        self.stop(session.id)

        handle = MonitorHandle(
            session_id=session.id,
            match_id=match_id,
            interval=interval or self.default_interval,
        )
        self._polls[session.id] = _PollState(session=session, handle=handle)
        self.scheduler.add_interval_job(
            self.poll,
            job_id=handle.job_id,
            seconds=handle.interval,
            kwargs={"session_id": session.id},
            name=f"Live poll {match_id} for session {session.id}",
        )
        metrics.live_poll_jobs_active.set(len(self._polls))
        logger.info(f"Started live monitoring of match {match_id} for session {session.id}")
        return handle

    def stop(self, session_id: str) -> bool:
        state = self._polls.pop(session_id, None)
        if state is None:
            return False
        state.handle.token.cancel()
        self.scheduler.remove_job(state.handle.job_id)
        metrics.live_poll_jobs_active.set(len(self._polls))
        logger.info(f"Stopped live monitoring for session {session_id}")
        return True

    def stop_all(self) -> int:
        session_ids = list(self._polls)
        for session_id in session_ids:
            self.stop(session_id)
        return len(session_ids)

    def is_monitoring(self, session_id: str) -> bool:
        return session_id in self._polls

    def active_count(self) -> int:
        return len(self._polls)

    def handle(self, session_id: str) -> Optional[MonitorHandle]:
        state = self._polls.get(session_id)
        return state.handle if state else None

    def failure_count(self, session_id: str) -> int:
        state = self._polls.get(session_id)
        return state.failures if state else 0

    def _reschedule(self, state: _PollState, seconds: int) -> None:
        if seconds != state.handle.interval:
            state.handle.interval = seconds
            self.scheduler.reschedule(state.handle.job_id, seconds)

    async def poll(self, session_id: str) -> Optional[MatchUpdate]:
        """One poll; this is the scheduler job function."""
        state = self._polls.get(session_id)
        if state is None or state.handle.cancelled:
            return None

        token = state.handle.token
        source = self.data_source or state.session.data_source

        with correlation_scope(session_id):
            try:
                update = await source.fetch_match_update(state.handle.match_id, state.seen_event_ids)
            except FootballDataError as e:
                if token.cancelled:
                    return None
                state.failures += 1
                delay = backoff_interval(state.failures)
                metrics.live_poll_failures_total.labels(error_type=e.kind.value).inc()
                logger.warning(f"Live poll failed ({state.failures} in a row), retrying in {delay}s: {e}")
                self._reschedule(state, delay)
                return None
            except Exception as e:
                if token.cancelled:
                    return None
                state.failures += 1
                metrics.live_poll_failures_total.labels(error_type="unknown").inc()
                logger.exception(f"Unexpected live poll error: {e}")
                self._reschedule(state, backoff_interval(state.failures))
                return None

            if token.cancelled:
                logger.debug(f"Poll for session {session_id} cancelled during fetch; dropping result")
                return None

            now = self._clock()
            since_success = now - state.last_success if state.last_success is not None else 0.0
            state.failures = 0
            state.last_success = now
            state.seen_event_ids.update(e.id for e in update.new_events)

            state.session.process_match_update(update)

            interval = next_poll_interval(update.match.status, since_success)
            if interval is None:
                logger.info(f"Match {update.match.id} is {update.match.status.display_name}; stopping polls")
                if not state.session.stop_all_monitoring():
                    self.stop(session_id)
            else:
                self._reschedule(state, interval)
            return update
