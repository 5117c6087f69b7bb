"""Command-line driver: play against the heatmap AI or run simulations."""

from __future__ import annotations

import argparse
import random
import string
from typing import Sequence

from pydantic import ValidationError

from broadside.ai.heatmap import HeatmapBoard
from broadside.ai.simulation import SimulationConfig, SimulationReport, Simulator, run_benchmark
from broadside.ai.targeting import STRATEGIES, HeatmapTargeting
from broadside.engine.board import AttackResult, BattleBoard
from broadside.engine.game import BattleshipGame, GamePhase, Player
from broadside.engine.ship import SHIP_KINDS, CellState, Coordinate, Orientation
from broadside.settings import GameSettings, load_settings
from broadside.telemetry import configure_console_logging, init_telemetry

ROW_LABELS = string.ascii_uppercase


def _coordinate_from_input(text: str, cols: int, rows: int) -> Coordinate:
    cleaned = text.strip().upper()
    if not cleaned:
        raise ValueError("Empty coordinate.")
    if cleaned[0].isalpha():
        if cleaned[0] not in ROW_LABELS[:rows]:
            raise ValueError(f"Row must be between A and {ROW_LABELS[rows - 1]}.")
        row = ROW_LABELS.index(cleaned[0])
        try:
            col = int(cleaned[1:]) - 1
        except ValueError as exc:
            raise ValueError(f"Column must be a number between 1 and {cols}.") from exc
    else:
        parts = cleaned.split()
        if len(parts) != 2:
            raise ValueError("Use formats like A5 or '3 7'.")
        row, col = map(int, parts)
    if row not in range(rows) or col not in range(cols):
        raise ValueError(f"Coordinates must be within the {cols}x{rows} board.")
    return Coordinate(col, row)


def _label(coord: Coordinate) -> str:
    return f"{ROW_LABELS[coord.y]}{coord.x + 1}"


def _format_board(board: BattleBoard, show_ships: bool) -> str:
    header = "    " + " ".join(f"{col + 1:>2}" for col in range(board.cols))
    rows = [header]
    for y in range(board.rows):
        symbols = []
        for x in range(board.cols):
            state = board.get(x, y) if show_ships else board.visible_state(x, y)
            if state is CellState.HIT and board.is_cell_sunk(x, y):
                state = CellState.SUNK
            symbols.append(f"{state.symbol:>2}")
        rows.append(f"{ROW_LABELS[y]} |" + " ".join(symbols))
    return "\n".join(rows)


def _describe_shot(player: Player, coord: Coordinate, result: AttackResult) -> str:
    outcome = "hit" if result.hit else "miss"
    if result.sunk and result.ship is not None:
        outcome = f"sank the opponent's {result.ship.name.lower()}!"
    return f"{player.name} fired at {_label(coord)}: {outcome}"


def _prompt_for_coordinate(valid: Sequence[Coordinate], cols: int, rows: int) -> Coordinate:
    valid_set = set(valid)
    while True:
        raw = input("Enter target coordinate (e.g., A5) or 'q' to quit: ").strip()
        if raw.lower() == "q":
            raise SystemExit("Goodbye!")
        try:
            coord = _coordinate_from_input(raw, cols, rows)
        except ValueError as exc:
            print(f"Invalid input: {exc}")
            continue
        if coord not in valid_set:
            print("That cell has already been targeted. Choose another.")
            continue
        return coord


def _prompt_orientation(kind: CellState) -> Orientation:
    while True:
        raw = (
            input(f"Place your {kind.name.title()} (length {kind.length}). Orientation [H/V]: ")
            .strip()
            .upper()
        )
        if raw in {"H", "HOR", "HORIZONTAL"}:
            return Orientation.HORIZONTAL
        if raw in {"V", "VER", "VERTICAL"}:
            return Orientation.VERTICAL
        print("Please enter H for horizontal or V for vertical.")


def _manual_ship_placement(board: BattleBoard) -> None:
    for kind in SHIP_KINDS:
        while True:
            print("\nCurrent layout:")
            print(_format_board(board, show_ships=True))
            orientation = _prompt_orientation(kind)
            start_raw = input("Enter starting coordinate (e.g., A1): ")
            try:
                start = _coordinate_from_input(start_raw, board.cols, board.rows)
            except ValueError as exc:
                print(f"Invalid coordinate: {exc}")
                continue
            if board.place_ship(start.x, start.y, kind, orientation):
                break
            print("Ship cannot be placed there (out of bounds or overlaps). Try again.")


def _prompt_manual_setup() -> bool:
    while True:
        raw = input("Would you like to place your ships manually? [Y/n]: ").strip().lower()
        if raw in {"", "y", "yes"}:
            return True
        if raw in {"n", "no"}:
            return False
        print("Please answer with 'y' or 'n'.")


def play_game(settings: GameSettings) -> None:
    print("Welcome to Broadside!\n")
    game = BattleshipGame(settings.board_width, settings.board_height, rng_seed=settings.seed)
    ai = HeatmapTargeting(game.rng)
    human_board = game.fleets[Player.PLAYER1]

    if _prompt_manual_setup():
        _manual_ship_placement(human_board)
        game.setup_random(players=(Player.PLAYER2,))
    else:
        game.setup_random()
        print("\nYour ships have been positioned automatically.")

    while game.phase is GamePhase.IN_PROGRESS:
        player = game.current_player
        if player is Player.PLAYER1:
            print("\nYour Board:")
            print(_format_board(human_board, show_ships=True))
            print("\nEnemy Waters:")
            print(_format_board(game.fleets[Player.PLAYER2], show_ships=False))
            coord = _prompt_for_coordinate(game.valid_moves(player), game.width, game.height)
            result = game.make_move(player, coord.x, coord.y)
        else:
            coord, result = game.play_automated_turn(ai)
        print(_describe_shot(player, coord, result))

    if game.winner is Player.PLAYER1:
        print("\nCongratulations, you won!")
    else:
        print("\nThe AI won this time. Better luck next battle!")


def _print_report(title: str, report: SimulationReport) -> None:
    print(title)
    print(
        f"  games:          {report.games} "
        f"({report.completed} completed, {report.anomalies} anomalous)"
    )
    print(f"  average moves:  {report.mean_moves:.2f}")
    print(f"  median moves:   {report.median_moves:.2f}")
    print(f"  best / worst:   {report.best_moves} / {report.worst_moves}")
    print(f"  decision time:  {report.mean_decision_ms:.3f} ms per move")
    print(f"  wall time:      {report.duration_seconds:.2f} s")


def show_heatmap(settings: GameSettings, shots: int) -> None:
    """Fire ``shots`` automated shots at a seeded fleet and print the resulting heat."""
    rng = random.Random(settings.seed)
    truth = BattleBoard(settings.board_width, settings.board_height, owner="solution", rng=rng)
    truth.seed_board()
    view = BattleBoard(settings.board_width, settings.board_height, owner="view")
    ai = HeatmapTargeting(rng)
    for _ in range(shots):
        target = ai.choose(view)
        if target is None or truth.all_ships_sunk():
            break
        view.observe(target.x, target.y, truth.attack(target.x, target.y), truth)

    heatmap = HeatmapBoard(view.cols, view.rows)
    heatmap.calculate(view)
    print("View board:")
    print(_format_board(view, show_ships=True))
    print("\nHeatmap:")
    print(heatmap.render())
    print(f"\nTotal heat: {heatmap.total()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="broadside", description="Battleship with a heatmap AI.")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for reproducibility.")
    parser.add_argument("--width", type=int, default=None, help="Board width (columns).")
    parser.add_argument("--height", type=int, default=None, help="Board height (rows).")
    parser.add_argument("--log-level", default=None, help="Console log level, e.g. INFO.")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("play", help="Play against the heatmap AI.")

    simulate = sub.add_parser("simulate", help="Run many automated games in parallel.")
    simulate.add_argument("--games", type=int, default=None)
    simulate.add_argument("--workers", type=int, default=None)
    simulate.add_argument("--strategy", choices=sorted(STRATEGIES), default="heatmap")
    simulate.add_argument("--output", default=None, help="Write a JSON summary to this path.")

    benchmark = sub.add_parser("benchmark", help="Measure heatmap decision time.")
    benchmark.add_argument("--games", type=int, default=None)

    heatmap = sub.add_parser("heatmap", help="Print a heatmap after some automated shots.")
    heatmap.add_argument("--shots", type=int, default=10)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings().with_overrides(
            board_width=args.width,
            board_height=args.height,
            seed=args.seed,
            log_level=args.log_level,
            simulation_games=getattr(args, "games", None),
            simulation_workers=getattr(args, "workers", None),
        )
    except ValidationError as exc:
        parser.error(f"Invalid settings: {exc}")
    configure_console_logging(settings.log_level)
    init_telemetry()

    command = args.command or "play"
    if command in {"play", "heatmap"} and settings.board_height > len(ROW_LABELS):
        parser.error(f"Boards taller than {len(ROW_LABELS)} rows cannot be displayed.")
    if command == "play":
        play_game(settings)
    elif command == "simulate":
        config = SimulationConfig(
            num_games=settings.simulation_games,
            width=settings.board_width,
            height=settings.board_height,
            workers=settings.simulation_workers,
            strategy=args.strategy,
            seed=settings.seed,
            save_path=args.output,
        )
        _print_report(f"Simulation ({args.strategy})", Simulator(config).run())
    elif command == "benchmark":
        report = run_benchmark(
            settings.simulation_games, settings.board_width, settings.board_height, settings.seed
        )
        _print_report("Benchmark (heatmap, single worker)", report)
    else:
        show_heatmap(settings, args.shots)


if __name__ == "__main__":
    main()
