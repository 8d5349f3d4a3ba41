"""
End-of-game statistics: per team, per owned player and per participant.
"""
from dataclasses import dataclass
from typing import List, Optional

from lappeleken.models.game import Participant, Player, Team
from lappeleken.services.settlement import find_bet_for_event, partition_holders, transfer_amounts


@dataclass
class TeamStats:
    team: Team
    goals: int
    assists: int
    yellow_cards: int
    red_cards: int
    players: int


@dataclass
class PlayerStats:
    player: Player
    participant: str
    events_count: int
    points_generated: float
    substituted_off: bool = False

    @property
    def efficiency(self) -> float:
        if self.events_count == 0:
            return 0.0
        return self.points_generated / self.events_count


@dataclass
class ParticipantStats:
    participant: Participant
    total_events: int
    most_valuable_player: Optional[Player]
    roi: float  # balance per owned player


class StatsCalculator:
    """Read-only summaries over a game session's state."""

    def __init__(self, session):
        self.session = session

    def _event_count(self, player_id: str) -> int:
        return sum(1 for e in self.session.events if e.player.id == player_id)

    def _points_for(self, player_id: str) -> float:
        """What one holder of the player gained (or lost) from its events."""
        total = 0.0
        for event in self.session.events:
            if event.player.id != player_id:
                continue
            bet = find_bet_for_event(event, self.session.bets)
            if bet is None:
                continue
            holders, non_holders = partition_holders(player_id, self.session.participants)
            if holders and non_holders:
                holder_delta, _ = transfer_amounts(bet.amount, len(holders), len(non_holders))
                total += holder_delta
        return total

    def team_stats(self) -> List[TeamStats]:
        teams = {}
        for player in self.session.available_players:
            teams.setdefault(player.team.id, (player.team, []))[1].append(player)

        stats = [
            TeamStats(
                team=team,
                goals=sum(p.goals for p in players),
                assists=sum(p.assists for p in players),
                yellow_cards=sum(p.yellow_cards for p in players),
                red_cards=sum(p.red_cards for p in players),
                players=len(players),
            )
            for team, players in teams.values()
        ]
        return sorted(stats, key=lambda s: s.goals, reverse=True)

    def player_stats(self) -> List[PlayerStats]:
        stats = []
        for participant in self.session.participants:
            for player in participant.selected_players:
                stats.append(PlayerStats(
                    player=player,
                    participant=participant.name,
                    events_count=self._event_count(player.id),
                    points_generated=self._points_for(player.id),
                ))
            for player in participant.substituted_players:
                stats.append(PlayerStats(
                    player=player,
                    participant=f"{participant.name} (Subbed Off)",
                    events_count=self._event_count(player.id),
                    points_generated=self._points_for(player.id),
                    substituted_off=True,
                ))
        return sorted(stats, key=lambda s: s.points_generated, reverse=True)

    def participant_stats(self) -> List[ParticipantStats]:
        stats = []
        for participant in self.session.participants:
            players = participant.selected_players + participant.substituted_players
            counts = [(p, self._event_count(p.id)) for p in players]
            mvp = max(counts, key=lambda pc: pc[1])[0] if counts else None
            stats.append(ParticipantStats(
                participant=participant,
                total_events=sum(c for _, c in counts),
                most_valuable_player=mvp,
                roi=participant.balance / len(players) if players else 0.0,
            ))
        return sorted(stats, key=lambda s: s.roi, reverse=True)
