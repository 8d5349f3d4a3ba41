"""
Settlement calculator.

Turns one recorded event into balance deltas for every participant. All
functions here are pure: they read the event, the roster and the bets and
return new values, so replaying the event log always gives the same
balances.

Rules:
- The bet is the one whose event type matches the event. Custom events
  settle against the custom bet whose id the event carries.
- Holders are participants who hold the triggering player now or held it
  before a substitution. Everyone else is a non-holder.
- No bet, no holders or no non-holders: nothing moves.
- amount >= 0: each non-holder pays ``amount``; the pot
  ``non_holders * amount`` is split evenly between holders.
- amount < 0: with ``pay = abs(amount)`` each holder pays
  ``pay * non_holders`` and each non-holder receives ``pay * holders``.

Either way the deltas of one event sum to zero.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from lappeleken.models.game import Bet, BetEventType, GameEvent, Participant


@dataclass
class Settlement:
    """Balance deltas produced by one event."""
    event_id: str
    bet_id: Optional[str] = None
    deltas: Dict[str, float] = field(default_factory=dict)

    @property
    def is_transfer(self) -> bool:
        return bool(self.deltas)


def find_bet_for_event(event: GameEvent, bets: Sequence[Bet]) -> Optional[Bet]:
    """Bet that settles ``event``, or None."""
    if event.event_type == BetEventType.CUSTOM:
        if event.bet_id is None:
            return None
        return next((b for b in bets if b.id == event.bet_id), None)
    return next((b for b in bets if b.event_type == event.event_type), None)


def partition_holders(
    player_id: str, participants: Iterable[Participant]
) -> Tuple[List[Participant], List[Participant]]:
    """Split participants into (holders, non_holders) for a player."""
    holders: List[Participant] = []
    non_holders: List[Participant] = []
    for participant in participants:
        if participant.holds(player_id):
            holders.append(participant)
        else:
            non_holders.append(participant)
    return holders, non_holders


def transfer_amounts(amount: float, holders: int, non_holders: int) -> Tuple[float, float]:
    """
    Per-capita (holder_delta, non_holder_delta) for a bet amount.

    Raises:
        ValueError: if either side is empty
    """
    if holders <= 0 or non_holders <= 0:
        raise ValueError("both holders and non-holders are required for a transfer")

    if amount >= 0:
        return non_holders * amount / holders, -amount

    pay = abs(amount)
    return -(pay * non_holders), pay * holders


def compute_deltas(
    event: GameEvent, participants: Sequence[Participant], bets: Sequence[Bet]
) -> Dict[str, float]:
    """Balance delta per participant id; empty when nothing should move."""
    bet = find_bet_for_event(event, bets)
    if bet is None:
        return {}

    holders, non_holders = partition_holders(event.player.id, participants)
    if not holders or not non_holders:
        return {}

    holder_delta, non_holder_delta = transfer_amounts(bet.amount, len(holders), len(non_holders))

    deltas = {p.id: holder_delta for p in holders}
    deltas.update({p.id: non_holder_delta for p in non_holders})
    return deltas


def settle_event(
    event: GameEvent, participants: Sequence[Participant], bets: Sequence[Bet]
) -> Settlement:
    bet = find_bet_for_event(event, bets)
    return Settlement(
        event_id=event.id,
        bet_id=bet.id if bet else None,
        deltas=compute_deltas(event, participants, bets),
    )


def invert_deltas(deltas: Dict[str, float]) -> Dict[str, float]:
    """Exact negation of a delta map."""
    return {participant_id: -delta for participant_id, delta in deltas.items()}


def apply_deltas(balances: Dict[str, float], deltas: Dict[str, float]) -> Dict[str, float]:
    """New balance map with ``deltas`` added; unknown ids are ignored."""
    updated = dict(balances)
    for participant_id, delta in deltas.items():
        if participant_id in updated:
            updated[participant_id] += delta
    return updated


def replay_balances(
    events: Iterable[GameEvent], participants: Sequence[Participant], bets: Sequence[Bet]
) -> Dict[str, float]:
    """Balances obtained by settling ``events`` in order from zero."""
    balances = {p.id: 0.0 for p in participants}
    for event in events:
        balances = apply_deltas(balances, compute_deltas(event, participants, bets))
    return balances
