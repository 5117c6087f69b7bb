"""High-level gameplay tests."""

import random

import pytest

from broadside.ai.targeting import HeatmapTargeting, RandomTargeting
from broadside.engine.board import AttackError
from broadside.engine.game import BattleshipGame, GamePhase, Player
from broadside.engine.ship import SHIP_KINDS, CellState, Orientation


def test_game_flow_between_two_automated_players() -> None:
    game = BattleshipGame(rng_seed=42)
    game.setup_random()
    strategies = {
        Player.PLAYER1: HeatmapTargeting(random.Random(1)),
        Player.PLAYER2: RandomTargeting(random.Random(2)),
    }

    seen_moves = set()
    while game.get_state().phase is not GamePhase.FINISHED:
        player = game.current_player
        assert game.valid_moves(player), "There should always be a valid move while game in progress."
        coord, result = game.play_automated_turn(strategies[player])
        assert result.ok
        move_key = (player, coord)
        assert move_key not in seen_moves, "Duplicate move attempted."
        seen_moves.add(move_key)

    final_state = game.get_state()
    assert final_state.phase is GamePhase.FINISHED
    assert final_state.winner in {Player.PLAYER1, Player.PLAYER2}
    assert game.fleets[final_state.winner.opponent()].all_ships_sunk()


def test_make_move_requires_in_progress_game() -> None:
    game = BattleshipGame()
    with pytest.raises(RuntimeError):
        game.make_move(Player.PLAYER1, 0, 0)


def test_make_move_enforces_turn_order() -> None:
    game = BattleshipGame(rng_seed=1)
    game.setup_random()
    with pytest.raises(RuntimeError):
        game.make_move(Player.PLAYER2, 0, 0)


def _place_fleet_in_rows(game: BattleshipGame, player: Player) -> None:
    # One ship per row from the top-left: carrier on row 0 down to destroyer on row 4.
    for row, kind in enumerate(SHIP_KINDS):
        assert game.fleets[player].place_ship(0, row, kind, Orientation.HORIZONTAL)


def _manual_game() -> BattleshipGame:
    game = BattleshipGame()
    for player in Player:
        _place_fleet_in_rows(game, player)
    game.start()
    return game


def test_manually_placed_fleets_play_to_a_finish() -> None:
    game = _manual_game()
    for row, kind in enumerate(SHIP_KINDS):
        for col in range(kind.length):
            assert game.phase is GamePhase.IN_PROGRESS
            result = game.make_move(Player.PLAYER1, col, row)
            assert result.hit

    state = game.get_state()
    assert state.phase is GamePhase.FINISHED
    assert state.winner is Player.PLAYER1
    assert game.fleets[Player.PLAYER2].all_ships_sunk()
    with pytest.raises(RuntimeError):
        game.make_move(Player.PLAYER1, 9, 9)


def test_start_rejects_a_partial_fleet() -> None:
    game = BattleshipGame()
    _place_fleet_in_rows(game, Player.PLAYER1)
    game.fleets[Player.PLAYER2].place_ship(0, 0, CellState.DESTROYER, Orientation.HORIZONTAL)
    with pytest.raises(RuntimeError, match="CARRIER"):
        game.start()
    assert game.phase is GamePhase.SETUP


def test_hit_keeps_the_turn_and_miss_passes_it() -> None:
    game = _manual_game()
    result = game.make_move(Player.PLAYER1, 0, 0)
    assert result.hit
    assert game.current_player is Player.PLAYER1

    result = game.make_move(Player.PLAYER1, 5, 5)
    assert not result.hit
    assert game.current_player is Player.PLAYER2


def test_repeat_move_is_reported_and_keeps_the_turn() -> None:
    game = _manual_game()
    game.make_move(Player.PLAYER1, 0, 0)
    result = game.make_move(Player.PLAYER1, 0, 0)
    assert result.error is AttackError.ALREADY_ATTACKED
    assert game.current_player is Player.PLAYER1


def test_valid_moves_empty_before_game_starts() -> None:
    game = BattleshipGame()
    assert game.valid_moves(Player.PLAYER1) == []


def test_start_requires_placed_fleets() -> None:
    game = BattleshipGame()
    with pytest.raises(RuntimeError):
        game.start()


def test_setup_random_refuses_a_board_too_small_for_the_fleet() -> None:
    game = BattleshipGame(width=4, height=4, rng_seed=0)
    with pytest.raises(RuntimeError):
        game.setup_random()
    assert game.phase is GamePhase.SETUP


def test_view_board_tracks_shots_and_sinkings() -> None:
    game = _manual_game()
    game.make_move(Player.PLAYER1, 0, 4)
    view = game.views[Player.PLAYER1]
    assert view.get(0, 4) is CellState.HIT

    game.make_move(Player.PLAYER1, 1, 4)
    assert view.get(0, 4) is CellState.SUNK
    assert view.get(1, 4) is CellState.SUNK
    assert view.is_ship_sunk(CellState.DESTROYER)
    assert not view.is_ship_sunk(CellState.CARRIER)
    assert game.phase is GamePhase.IN_PROGRESS


def test_game_state_snapshot_reflects_shots_and_phase() -> None:
    game = BattleshipGame(rng_seed=5)
    game.setup_random()
    target = game.valid_moves(Player.PLAYER1)[0]
    game.make_move(Player.PLAYER1, target.x, target.y)
    state = game.get_state()
    assert state.phase in {GamePhase.IN_PROGRESS, GamePhase.FINISHED}
    seen = state.views[Player.PLAYER1][target.y * game.width + target.x]
    assert seen in {CellState.HIT, CellState.MISS, CellState.SUNK}
    assert len(state.fleets[Player.PLAYER2]) == game.width * game.height
