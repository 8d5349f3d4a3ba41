"""Tests for the game session orchestrator.

Test Strategy:
1. Setup: participants, player pools, bets and custom bets
2. Random assignment fairness
3. Recording events: settlement, stats, the worked examples
4. Undo is exact; recalculation equals the running balances
5. Substitutions keep historical ownership
6. Match selection and the offline fallback
7. Live mode guard rails (capability, entitlement, monitor)
8. Snapshots, save and load
9. Reset, integrity check and change notifications
"""
import random

import pytest

from conftest import FakeMatchSource, make_player, update_for
from lappeleken.models.game import BetEventType, SubstitutionState
from lappeleken.services.change_feed import ChangeFeed, ChangeKind
from lappeleken.services.entitlements import EntitlementGate
from lappeleken.services.football_data.errors import FootballDataError
from lappeleken.services.football_data.sample_data import SampleDataService
from lappeleken.services.game_session import (
    MAX_SUBSTITUTIONS_PER_TEAM,
    GameSession,
    LiveModeError,
    SessionStatus,
)
from lappeleken.services.persistence import InMemoryGameStore


def deal(game, rosters):
    """Give participants fixed rosters: {participant_name: [player, ...]}."""
    participants = {}
    for name, players in rosters.items():
        participant = game.add_participant(name)
        for player in players:
            game.select_player(player)
        participant.selected_players = [game.find_player(p.id) for p in players]
        participants[name] = participant
    return participants


def total_balance(game):
    return sum(p.balance for p in game.participants)


# Setup
# ─────────────────────────────────────────────────────────────

class TestSetup:

    def test_new_session_is_idle(self, store):
        game = GameSession(SampleDataService(), store)

        assert game.status == SessionStatus.IDLE
        assert not game.can_undo_last_event
        assert not game.has_been_saved

    def test_participant_makes_session_active(self, game):
        participant = game.add_participant("  Alice ")

        assert participant.name == "Alice"
        assert participant.balance == 0
        assert game.status == SessionStatus.ACTIVE

    def test_blank_participant_rejected(self, game):
        """Should ignore a blank participant name."""
        assert game.add_participant("   ") is None
        assert game.participants == []

    def test_add_players_skips_known_ids(self, game, squad, home_team):
        added = game.add_players([squad[0], make_player("New Signing", home_team)])

        assert added == 1
        assert len(game.available_players) == len(squad) + 1

    def test_select_and_deselect(self, game, squad):
        assert game.select_player(squad[0])
        assert not game.select_player(squad[0])
        assert game.deselect_player(squad[0].id)
        assert not game.deselect_player(squad[0].id)
        assert game.selected_players == []


class TestBets:

    def test_custom_bet_blocked_while_unnamed_custom_exists(self, game):
        """Should block a second custom bet while an unnamed one exists."""
        assert game.add_bet(BetEventType.CUSTOM, 1) is not None
        assert game.add_bet(BetEventType.CUSTOM, 2) is None

    def test_named_custom_bets(self, game):
        bet = game.add_custom_bet(" Hat-trick ", 20)

        assert bet.name == "Hat-trick"
        assert game.bet_display_name(bet) == "Hat-trick"
        assert game.add_custom_bet("hat-TRICK", 5) is None
        assert game.add_custom_bet("", 5) is None
        assert game.custom_bets() == [bet]

    def test_remove_custom_bet(self, game):
        bet = game.add_custom_bet("Header", 3)
        goal = game.add_bet(BetEventType.GOAL, 1)

        assert not game.remove_custom_bet(goal.id)
        assert game.remove_custom_bet(bet.id)
        assert game.bets == [goal]

    def test_recreate_preserves_custom_bets(self, game):
        """Should replace standard bets and keep named custom bets with their ids."""
        game.add_bet(BetEventType.GOAL, 1)
        custom = game.add_custom_bet("Hat-trick", 20)

        game.recreate_bets_with_preservation({
            BetEventType.GOAL: 5,
            BetEventType.ASSIST: 2,
            BetEventType.CUSTOM: 99,
        })

        standard = {b.event_type: b.amount for b in game.bets if not b.is_custom}
        assert standard == {BetEventType.GOAL: 5, BetEventType.ASSIST: 2}
        assert [b.id for b in game.custom_bets()] == [custom.id]


class TestAssignment:

    @pytest.mark.parametrize("participants,players", [(2, 6), (3, 7), (4, 8), (3, 2), (5, 8)])
    def test_fair_split(self, game, squad, participants, players):
        """Should give everyone N // P players and the first N % P one extra."""
        for i in range(participants):
            game.add_participant(f"P{i}")
        for player in squad[:players]:
            game.select_player(player)

        assert game.assign_players_randomly(random.Random(3))

        sizes = [len(p.selected_players) for p in game.participants]
        base, extra = divmod(players, participants)
        assert sizes == [base + 1] * extra + [base] * (participants - extra)
        dealt = [pl.id for p in game.participants for pl in p.selected_players]
        assert sorted(dealt) == sorted(p.id for p in squad[:players])

    def test_requires_participants_and_players(self, game, squad):
        assert not game.assign_players_randomly()
        game.add_participant("Alice")
        assert not game.assign_players_randomly()

    def test_reassignment_replaces_rosters(self, game, squad):
        game.add_participant("Alice")
        game.add_participant("Bob")
        for player in squad[:4]:
            game.select_player(player)

        game.assign_players_randomly(random.Random(1))
        game.assign_players_randomly(random.Random(2))

        assert sum(len(p.selected_players) for p in game.participants) == 4


# Events
# ─────────────────────────────────────────────────────────────

class TestRecordEvent:

    def test_goal_scenario_and_undo(self, game, squad):
        """2 participants, goal +10: holder +10, other -10; undo back to 0."""
        people = deal(game, {"A": [squad[0]], "B": [squad[4]]})
        game.add_bet(BetEventType.GOAL, 10)

        game.record_event(squad[0], BetEventType.GOAL, minute=12)

        assert people["A"].balance == 10
        assert people["B"].balance == -10
        assert game.can_undo_last_event

        game.undo_last_event()

        assert people["A"].balance == 0
        assert people["B"].balance == 0
        assert not game.can_undo_last_event

    def test_red_card_scenario(self, game, squad):
        """Red card -5, 1 holder and 2 non-holders: -10, +5, +5."""
        people = deal(game, {"A": [squad[0]], "B": [squad[4]], "C": [squad[5]]})
        game.add_bet(BetEventType.RED_CARD, -5)

        game.record_event(squad[0], BetEventType.RED_CARD)

        assert [people[n].balance for n in "ABC"] == [-10, 5, 5]
        assert total_balance(game) == 0

    def test_custom_event_scenario(self, game, squad):
        """Custom bet +20 settles like a standard positive bet."""
        people = deal(game, {"A": [squad[0]], "B": [squad[4]], "C": [squad[5]]})
        game.add_custom_bet("Hat-trick", 20)

        event = game.record_custom_event(squad[0], "Hat-trick")

        assert event.custom_event_name == "Hat-trick"
        assert game.event_display_name(event) == "Hat-trick"
        assert [people[n].balance for n in "ABC"] == [40, -20, -20]

    def test_custom_event_name_is_case_insensitive(self, game, squad):
        deal(game, {"A": [squad[0]], "B": [squad[4]]})
        bet = game.add_custom_bet("Hat-trick", 20)

        event = game.record_custom_event(squad[0], "HAT-TRICK")

        assert event.bet_id == bet.id

    def test_unknown_custom_event_is_noop(self, game, squad):
        deal(game, {"A": [squad[0]], "B": [squad[4]]})

        assert game.record_custom_event(squad[0], "Bicycle kick") is None
        assert game.events == []

    def test_custom_event_without_bet_settles_nothing(self, game, squad):
        """Should log a custom event without a bet id but move no money."""
        people = deal(game, {"A": [squad[0]], "B": [squad[4]]})
        game.add_custom_bet("Hat-trick", 20)

        game.record_event(squad[0], BetEventType.CUSTOM)

        assert len(game.events) == 1
        assert people["A"].balance == 0

    def test_event_without_bet_is_logged_not_settled(self, game, squad):
        people = deal(game, {"A": [squad[0]], "B": [squad[4]]})

        game.record_event(squad[0], BetEventType.ASSIST)

        assert len(game.events) == 1
        assert people["A"].balance == 0
        assert game.find_player(squad[0].id).assists == 1

    def test_stats_reach_every_copy_of_the_player(self, game, squad):
        """Should bump the counter on the pool, selected and roster objects."""
        people = deal(game, {"A": [squad[0]], "B": [squad[4]]})

        game.record_event(squad[0], BetEventType.YELLOW_CARD)

        assert people["A"].selected_players[0].yellow_cards == 1
        assert all(p.yellow_cards == 1 for p in game._player_objects(squad[0].id))

    def test_event_keeps_player_snapshot(self, game, squad):
        deal(game, {"A": [squad[0]], "B": [squad[4]]})

        event = game.record_event(squad[0], BetEventType.GOAL)
        game.record_event(squad[0], BetEventType.GOAL)

        assert event.player.goals == 0
        assert game.find_player(squad[0].id).goals == 2

    def test_non_stat_event_leaves_counters(self, game, squad):
        deal(game, {"A": [squad[0]], "B": [squad[4]]})

        game.record_event(squad[0], BetEventType.OWN_GOAL)

        player = game.find_player(squad[0].id)
        assert (player.goals, player.assists, player.yellow_cards, player.red_cards) == (0, 0, 0, 0)


class TestUndo:

    def test_undo_on_empty_log_is_noop(self, game):
        assert game.undo_last_event() is None

    def test_undo_restores_exact_floats(self, game, squad):
        """Should restore balances bit-for-bit, even for non-representable amounts."""
        people = deal(game, {"A": [squad[0]], "B": [squad[4]], "C": [squad[5]]})
        game.add_bet(BetEventType.GOAL, 0.1)
        game.add_bet(BetEventType.YELLOW_CARD, -0.7)

        game.record_event(squad[0], BetEventType.GOAL)
        game.record_event(squad[4], BetEventType.YELLOW_CARD)
        before = {n: p.balance for n, p in people.items()}

        game.record_event(squad[5], BetEventType.GOAL)
        game.undo_last_event()

        assert {n: p.balance for n, p in people.items()} == before

    def test_undo_decrements_stats_clamped(self, game, squad):
        deal(game, {"A": [squad[0]], "B": [squad[4]]})
        game.record_event(squad[0], BetEventType.GOAL)
        game.find_player(squad[0].id).goals = 0

        game.undo_last_event()

        assert game.find_player(squad[0].id).goals == 0

    def test_undo_all_returns_to_zero(self, game, squad):
        people = deal(game, {"A": squad[:2], "B": squad[4:6], "C": [squad[2]]})
        game.add_bet(BetEventType.GOAL, 3)
        game.add_bet(BetEventType.ASSIST, 1.5)
        game.add_bet(BetEventType.RED_CARD, -4)
        rng = random.Random(11)
        held = squad[:2] + squad[4:6] + [squad[2]]
        types = [BetEventType.GOAL, BetEventType.ASSIST, BetEventType.RED_CARD]
        for _ in range(20):
            game.record_event(rng.choice(held), rng.choice(types))

        while game.can_undo_last_event:
            game.undo_last_event()

        assert all(p.balance == 0 for p in people.values())
        assert all(p.goals == 0 and p.assists == 0 and p.red_cards == 0 for p in game.available_players)


class TestRecalculate:

    def test_recalculation_matches_running_balances(self, game, squad):
        """Should produce the same balances as incremental settlement."""
        deal(game, {"A": squad[:2], "B": squad[4:6], "C": [squad[2], squad[6]]})
        game.add_bet(BetEventType.GOAL, 2)
        game.add_bet(BetEventType.YELLOW_CARD, -1)
        rng = random.Random(5)
        held = squad[:3] + squad[4:7]
        for _ in range(15):
            game.record_event(rng.choice(held), rng.choice([BetEventType.GOAL, BetEventType.YELLOW_CARD]))
        running = {p.id: p.balance for p in game.participants}

        recalculated = game.recalculate_balances_from_events()

        assert recalculated == pytest.approx(running)
        assert sum(recalculated.values()) == pytest.approx(0.0, abs=1e-9)

    def test_recalculate_after_bet_change(self, game, squad):
        people = deal(game, {"A": [squad[0]], "B": [squad[4]]})
        bet = game.add_bet(BetEventType.GOAL, 1)
        game.record_event(squad[0], BetEventType.GOAL)
        bet.amount = 4

        game.recalculate_balances_from_events()

        assert people["A"].balance == 4
        game.undo_last_event()
        assert people["A"].balance == 0


# Substitutions
# ─────────────────────────────────────────────────────────────

class TestSubstitutions:

    def test_substitution_moves_players(self, game, squad):
        people = deal(game, {"A": [squad[0], squad[1]], "B": [squad[4]]})

        sub = game.substitute_player(squad[0], squad[3], minute=70)

        assert sub.team.id == squad[0].team.id
        assert sub.minute == 70
        assert [p.id for p in people["A"].selected_players] == [squad[1].id, squad[3].id]
        assert [p.id for p in people["A"].substituted_players] == [squad[0].id]
        assert squad[0].id not in [p.id for p in game.selected_players]
        assert squad[3].id in [p.id for p in game.selected_players]
        off = people["A"].substituted_players[0]
        on = people["A"].selected_players[-1]
        assert off.substitution_status.state == SubstitutionState.SUBSTITUTED_OFF
        assert on.substitution_status.state == SubstitutionState.SUBSTITUTED_ON

    def test_substituted_off_player_still_pays_out(self, game, squad):
        """Should credit the former holder for a late event of a subbed-off player."""
        people = deal(game, {"A": [squad[0]], "B": [squad[4]]})
        game.add_bet(BetEventType.GOAL, 5)
        game.substitute_player(squad[0], squad[3])

        game.record_event(squad[0], BetEventType.GOAL)

        assert people["A"].balance == 5
        assert people["B"].balance == -5

    def test_incoming_player_earns_for_new_holder(self, game, squad):
        people = deal(game, {"A": [squad[0]], "B": [squad[4]]})
        game.add_bet(BetEventType.GOAL, 5)
        game.substitute_player(squad[0], squad[3])

        game.record_event(squad[3], BetEventType.GOAL)

        assert people["A"].balance == 5

    @pytest.mark.parametrize("off_index,on_index", [
        (2, 3),  # outgoing not held by anyone
        (0, 0),  # same player
        (0, 4),  # incoming already held
    ])
    def test_invalid_substitutions_are_noops(self, game, squad, off_index, on_index):
        deal(game, {"A": [squad[0]], "B": [squad[4]]})

        assert game.substitute_player(squad[off_index], squad[on_index]) is None
        assert game.substitutions == []

    def test_cannot_substitute_twice(self, game, squad):
        deal(game, {"A": [squad[0]], "B": [squad[4]]})
        game.substitute_player(squad[0], squad[3])

        assert game.substitute_player(squad[0], squad[2]) is None

    def test_cross_team_substitution_allowed(self, game, squad):
        deal(game, {"A": [squad[0]], "B": [squad[4]]})

        assert game.substitute_player(squad[0], squad[7]) is not None

    def test_remaining_substitutions(self, game, squad):
        deal(game, {"A": [squad[0]], "B": [squad[4]]})
        team_id = squad[0].team.id

        game.substitute_player(squad[0], squad[3])

        assert game.remaining_substitutions(team_id) == MAX_SUBSTITUTIONS_PER_TEAM - 1
        assert game.can_make_more_substitutions(team_id)

    def test_timeline_merges_events_and_substitutions(self, game, squad):
        deal(game, {"A": [squad[0]], "B": [squad[4]]})
        game.record_event(squad[0], BetEventType.GOAL, minute=10)
        game.substitute_player(squad[0], squad[3], minute=60)
        game.record_event(squad[3], BetEventType.ASSIST, minute=80)

        timeline = game.timeline()

        assert sorted(entry.kind for entry in timeline) == ["event", "event", "substitution"]
        assert [e.timestamp for e in timeline] == sorted(e.timestamp for e in timeline)
        sub_entry = next(e for e in timeline if e.kind == "substitution")
        assert sub_entry.description.startswith("Substitution")
        assert sub_entry.minute == 60
        assert game.events[-1].event_type == BetEventType.ASSIST


# Match data
# ─────────────────────────────────────────────────────────────

class TestMatchSelection:

    async def test_fetch_and_select_match(self, fake_source, store, squad):
        game = GameSession(fake_source, store)

        matches = await game.fetch_available_matches()
        players = await game.select_match(matches[0])

        assert game.selected_match.id == "500"
        assert len(players) == 8
        assert len(game.available_players) == 8
        assert len(game.selected_players) == 6

    async def test_select_match_falls_back_to_squad(self, fake_source, store, match):
        fake_source.lineup = None
        game = GameSession(fake_source, store)

        players = await game.select_match(match)

        assert len(players) == 8
        assert len(game.selected_players) == 8

    async def test_fetch_failure_uses_sample_fallback(self, store):
        """Should fall back to the offline fixtures when the live source fails."""
        broken = FakeMatchSource()

        async def fail(*args, **kwargs):
            raise FootballDataError.network("offline")

        broken.fetch_live_matches = fail
        broken.fetch_upcoming_matches = fail
        broken.fetch_matches_in_range = fail
        game = GameSession(broken, store, fallback_source=SampleDataService())

        matches = await game.fetch_available_matches("PL")
        players = await game.select_match(matches[0])

        assert matches and matches[0].id.startswith("sample-")
        assert players

    async def test_fetch_failure_without_fallback_raises(self, store):
        broken = FakeMatchSource()

        async def rate_limited(*args, **kwargs):
            raise FootballDataError.rate_limited()

        broken.fetch_live_matches = rate_limited
        game = GameSession(broken, store)

        with pytest.raises(FootballDataError):
            await game.fetch_available_matches()

    async def test_process_match_update_refreshes_match(self, fake_source, store, match):
        from lappeleken.models.match import MatchStatus

        game = GameSession(fake_source, store)
        await game.select_match(match)

        game.process_match_update(update_for(match, status=MatchStatus.HALFTIME))

        assert game.selected_match.status == MatchStatus.HALFTIME


# Live mode
# ─────────────────────────────────────────────────────────────

class TestLiveMode:

    def test_basic_source_refuses_live_monitoring(self, store, fake_scheduler):
        from lappeleken.services.live_monitor import LiveMatchMonitor

        game = GameSession(SampleDataService(), store, monitor=LiveMatchMonitor(fake_scheduler))

        with pytest.raises(LiveModeError) as exc_info:
            game.start_monitoring_match("500")

        assert exc_info.value.reason == LiveModeError.BASIC_CAPABILITY
        assert fake_scheduler.jobs == {}

    def test_no_monitor(self, fake_source, store):
        game = GameSession(fake_source, store)

        with pytest.raises(LiveModeError) as exc_info:
            game.start_monitoring_match("500")

        assert exc_info.value.reason == LiveModeError.NO_MONITOR

    async def test_event_driven_mode_counts_usage(self, fake_source, store, fake_scheduler, match):
        """Should consume the free live match and refuse the next one."""
        from lappeleken.services.live_monitor import LiveMatchMonitor

        gate = EntitlementGate(free_daily_matches=1)
        game = GameSession(fake_source, store, monitor=LiveMatchMonitor(fake_scheduler),
                           entitlements=gate, is_live_mode=True)
        await game.select_match(match)
        game.processed_event_keys.add("23_goal_7001_23_goal_7001")

        handle = game.setup_event_driven_mode(interval=45)

        assert handle.match_id == "500"
        assert handle.interval == 45
        assert game.is_monitoring
        assert game.processed_event_keys == {"23_goal_7001_23_goal_7001"}
        assert gate.remaining_free_matches() == 0

        with pytest.raises(LiveModeError) as exc_info:
            game.setup_event_driven_mode()
        assert exc_info.value.reason == LiveModeError.NOT_ENTITLED

    def test_event_driven_mode_needs_match(self, fake_source, store, fake_scheduler):
        from lappeleken.services.live_monitor import LiveMatchMonitor

        game = GameSession(fake_source, store, monitor=LiveMatchMonitor(fake_scheduler), is_live_mode=True)

        with pytest.raises(LiveModeError) as exc_info:
            game.setup_event_driven_mode()

        assert exc_info.value.reason == LiveModeError.NO_MATCH

    def test_event_driven_mode_outside_live_mode(self, fake_source, store):
        game = GameSession(fake_source, store)

        assert game.setup_event_driven_mode() is None

    def test_stop_all_monitoring(self, fake_source, store, fake_scheduler):
        from lappeleken.services.live_monitor import LiveMatchMonitor

        game = GameSession(fake_source, store, monitor=LiveMatchMonitor(fake_scheduler))
        game.start_monitoring_match("500")

        assert game.stop_all_monitoring()
        assert not game.is_monitoring
        assert not game.stop_all_monitoring()


# Persistence
# ─────────────────────────────────────────────────────────────

class TestSnapshots:

    def _played_game(self, game, squad):
        deal(game, {"A": [squad[0], squad[1]], "B": [squad[4]], "C": [squad[5]]})
        game.add_bet(BetEventType.GOAL, 0.3)
        game.add_custom_bet("Hat-trick", 20)
        game.record_event(squad[0], BetEventType.GOAL, minute=5)
        game.record_custom_event(squad[4], "Hat-trick", minute=30)
        game.substitute_player(squad[0], squad[3], minute=60)
        game.record_event(squad[0], BetEventType.GOAL, minute=75)
        return game

    def test_save_and_load_round_trip(self, game, squad, store):
        self._played_game(game, squad)
        save_id = game.save_game("Sunday league")
        balances = {p.name: p.balance for p in game.participants}

        restored = GameSession(SampleDataService(), store)
        assert restored.load_saved_game(save_id)

        assert {p.name: p.balance for p in restored.participants} == balances
        assert len(restored.events) == 3
        assert len(restored.substitutions) == 1
        assert restored.current_save_name == "Sunday league"
        assert restored.has_been_saved

    def test_loaded_game_undoes_exactly(self, game, squad, store):
        self._played_game(game, squad)
        save_id = game.save_game("Sunday league")
        game.undo_last_event()
        expected = {p.name: p.balance for p in game.participants}

        restored = GameSession(SampleDataService(), store)
        restored.load_saved_game(save_id)
        restored.undo_last_event()

        assert {p.name: p.balance for p in restored.participants} == expected

    def test_loaded_players_are_relinked(self, game, squad, store):
        """Should share one player object between the pool and the rosters."""
        self._played_game(game, squad)
        save_id = game.save_game("Relink")

        restored = GameSession(SampleDataService(), store)
        restored.load_saved_game(save_id)
        restored.record_event(squad[1], BetEventType.GOAL)

        assert restored.find_player(squad[1].id).goals == 1
        assert restored.participants[0].selected_players[0].goals == 1

    def test_update_keeps_save_id(self, game, squad, store):
        self._played_game(game, squad)
        first = game.save_game("Game")

        assert game.save_game("Game", is_update=True) == first
        assert game.save_game("Game copy") != first
        assert len(store.list_summaries()) == 2

    def test_blank_name_gets_default(self, game):
        game.save_game("  ")

        assert game.current_save_name.startswith("Game ")

    def test_load_missing_save(self, game):
        assert not game.load_saved_game("nope")

    def test_save_name_exists_ignores_own_save(self, game, squad):
        game.save_game("Derby")

        assert not game.save_name_exists("derby")
        other = GameSession(SampleDataService(), game.store)
        assert other.save_name_exists("DERBY")

    def test_from_snapshot(self, game, squad, store):
        self._played_game(game, squad)
        snapshot = game.to_snapshot("Snap").model_copy(deep=True)

        restored = GameSession.from_snapshot(snapshot, SampleDataService(), InMemoryGameStore())

        assert restored.save_id == snapshot.id
        assert restored.recalculate_balances_from_events() == pytest.approx(
            {p.id: p.balance for p in game.participants}
        )


# Lifecycle
# ─────────────────────────────────────────────────────────────

class TestLifecycle:

    def test_reset_returns_to_idle(self, game, squad):
        deal(game, {"A": [squad[0]], "B": [squad[4]]})
        game.add_bet(BetEventType.GOAL, 1)
        game.record_event(squad[0], BetEventType.GOAL)
        game.substitute_player(squad[0], squad[3])

        game.reset()

        assert game.status == SessionStatus.IDLE
        assert game.events == [] and game.substitutions == [] and game.processed_event_keys == set()
        assert all(p.goals == 0 for p in game.available_players)
        assert all(p.is_active for p in game.available_players)

    def test_verify_data_integrity(self, store, squad):
        game = GameSession(SampleDataService(), store)
        assert not game.verify_data_integrity()

        game.add_players(squad[:4])
        assert not game.verify_data_integrity()

        game.add_players(squad[4:])
        assert game.verify_data_integrity()

    def test_changes_are_published(self, store, squad):
        feed = ChangeFeed()
        kinds = []
        feed.subscribe(lambda change: kinds.append(change.kind))
        game = GameSession(SampleDataService(), store, change_feed=feed)
        game.add_players(squad)

        deal(game, {"A": [squad[0]], "B": [squad[4]]})
        game.add_bet(BetEventType.GOAL, 1)
        game.record_event(squad[0], BetEventType.GOAL)
        game.undo_last_event()
        game.reset()

        for kind in (ChangeKind.PARTICIPANT_ADDED, ChangeKind.BETS_CHANGED,
                     ChangeKind.EVENT_RECORDED, ChangeKind.EVENT_UNDONE, ChangeKind.ENDED):
            assert kind in kinds
