#!/usr/bin/env python3
"""
Play a simulated Lappeleken game on the offline sample data.

Picks the first sample fixture, deals its players out to the given
participants, records random events and prints balances and stats.

Usage:
    python scripts/simulate_match.py --participants Alice Bob Carol --events 12 --seed 7
"""
import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from lappeleken.core.logging import configure_logging
from lappeleken.models.game import BetEventType
from lappeleken.services.football_data.sample_data import SampleDataService
from lappeleken.services.game_session import GameSession
from lappeleken.services.persistence import InMemoryGameStore
from lappeleken.services.stats_calculator import StatsCalculator

logger = logging.getLogger(__name__)

DEFAULT_BETS = {
    BetEventType.GOAL: 1.0,
    BetEventType.ASSIST: 0.5,
    BetEventType.YELLOW_CARD: -0.5,
    BetEventType.RED_CARD: -2.0,
}


async def simulate(participants, events: int, seed: int, undo: bool) -> GameSession:
    rng = random.Random(seed)
    source = SampleDataService()
    session = GameSession(source, InMemoryGameStore())

    matches = await session.fetch_available_matches()
    await session.select_match(matches[0])

    for name in participants:
        session.add_participant(name)
    for event_type, amount in DEFAULT_BETS.items():
        session.add_bet(event_type, amount)
    session.assign_players_randomly(rng)

    for _ in range(events):
        player = rng.choice(session.selected_players)
        event_type = rng.choice(list(DEFAULT_BETS))
        session.record_event(player, event_type, minute=rng.randint(1, 90))

    if undo and session.can_undo_last_event:
        session.undo_last_event()

    return session


def print_report(session: GameSession) -> None:
    match = session.selected_match
    print(f"\n⚽ {match.home_team.name} vs {match.away_team.name}")
    print("=" * 50)

    for entry in session.timeline():
        minute = f"{entry.minute}'" if entry.minute is not None else "--"
        print(f"  {minute:>4}  {entry.description}")

    print("\n💰 Balances")
    for participant in sorted(session.participants, key=lambda p: p.balance, reverse=True):
        players = ", ".join(p.name for p in participant.selected_players)
        print(f"  {participant.name:<12} {participant.balance:>8.2f}   ({players})")

    total = sum(p.balance for p in session.participants)
    print(f"  {'Total':<12} {total:>8.2f}")

    print("\n📊 Players")
    for stats in StatsCalculator(session).player_stats():
        print(
            f"  {stats.player.name:<22} {stats.participant:<12} "
            f"events={stats.events_count} points={stats.points_generated:.2f}"
        )


def main():
    parser = argparse.ArgumentParser(description="Simulate a Lappeleken game on sample data")
    parser.add_argument(
        "--participants",
        nargs="+",
        default=["Alice", "Bob", "Carol"],
        help="Participant names"
    )
    parser.add_argument(
        "--events",
        type=int,
        default=10,
        help="Number of random events to record"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=1,
        help="Random seed for assignment and events"
    )
    parser.add_argument(
        "--undo",
        action="store_true",
        help="Undo the last event before printing"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show service logs"
    )
    args = parser.parse_args()

    configure_logging(level="INFO" if args.verbose else "WARNING", json_output=False)

    session = asyncio.run(simulate(args.participants, args.events, args.seed, args.undo))
    print_report(session)


if __name__ == "__main__":
    main()
