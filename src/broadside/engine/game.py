"""Two-player Broadside game controller."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from broadside.telemetry import get_meter, get_tracer

from .board import AttackResult, BattleBoard
from .ship import SHIP_KINDS, CellState, Coordinate

if TYPE_CHECKING:  # pragma: no cover - typing only
    from broadside.ai.targeting import TargetingStrategy

logger = logging.getLogger(__name__)
tracer = get_tracer("broadside.engine.game")
meter = get_meter("broadside.engine.game")

MOVE_COUNTER = meter.create_counter(
    "broadside_engine_moves",
    unit="1",
    description="Number of moves made in BattleshipGame",
)


class GamePhase(Enum):
    """High-level lifecycle of a match."""

    SETUP = "setup"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class Player(Enum):
    """Available players."""

    PLAYER1 = "player1"
    PLAYER2 = "player2"

    def opponent(self) -> Player:
        """Return the opposing player."""
        return Player.PLAYER2 if self is Player.PLAYER1 else Player.PLAYER1


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of the current game.

    ``fleets`` holds each player's own board, ships included. ``views``
    holds what each player has observed of the opponent's fleet.
    """

    phase: GamePhase
    current_player: Player
    winner: Player | None
    fleets: dict[Player, tuple[CellState, ...]]
    views: dict[Player, tuple[CellState, ...]]


class BattleshipGame:
    """Coordinates a match between two fleets.

    A hit keeps the turn with the shooter; a miss hands it over. Each
    player's view board is kept in sync with their shots so that automated
    players can target from it.
    """

    def __init__(self, width: int = 10, height: int = 10, rng_seed: int | None = None) -> None:
        self.width = width
        self.height = height
        self._rng = random.Random(rng_seed)
        self.fleets: dict[Player, BattleBoard] = {
            player: BattleBoard(width, height, owner=player.value, rng=self._rng) for player in Player
        }
        self.views: dict[Player, BattleBoard] = self._fresh_views()
        self.phase: GamePhase = GamePhase.SETUP
        self.current_player: Player = Player.PLAYER1
        self.winner: Player | None = None

    @property
    def rng(self) -> random.Random:
        return self._rng

    def _fresh_views(self) -> dict[Player, BattleBoard]:
        return {
            player: BattleBoard(self.width, self.height, owner=f"{player.value}_view")
            for player in Player
        }

    def setup_random(self, players: tuple[Player, ...] = tuple(Player)) -> None:
        """Randomly place fleets for ``players`` and start the game."""
        with tracer.start_as_current_span("game.setup_random"):
            for player in players:
                placed = self.fleets[player].seed_board(self._rng)
                if len(placed) != len(SHIP_KINDS):
                    logger.error(
                        "game_fleet_incomplete",
                        extra={"board_owner": player.value, "placed": len(placed)},
                    )
                    raise RuntimeError(
                        f"Could not fit a full fleet on a {self.width}x{self.height} board."
                    )
            self.start()

    def start(self) -> None:
        """Begin play once both fleets hold one ship of every kind."""
        for player, board in self.fleets.items():
            missing = set(SHIP_KINDS) - set(board.placed_ships)
            if missing:
                logger.error(
                    "game_fleet_incomplete",
                    extra={
                        "board_owner": player.value,
                        "missing": sorted(kind.name for kind in missing),
                    },
                )
                raise RuntimeError(
                    f"{player.value} is missing ships: "
                    f"{', '.join(sorted(kind.name for kind in missing))}."
                )
        self.views = self._fresh_views()
        self.phase = GamePhase.IN_PROGRESS
        self.current_player = Player.PLAYER1
        self.winner = None
        logger.info(
            "game_started",
            extra={"phase": self.phase.value, "current_player": self.current_player.value},
        )

    def make_move(self, player: Player, x: int, y: int) -> AttackResult:
        """Fire at the opponent's fleet, enforcing turn order and win conditions."""
        with tracer.start_as_current_span("game.make_move") as span:
            span.set_attribute("player", player.value)
            span.set_attribute("x", x)
            span.set_attribute("y", y)
            if self.phase is not GamePhase.IN_PROGRESS:
                logger.error(
                    "move_rejected_game_not_in_progress",
                    extra={"player": player.value, "phase": self.phase.value},
                )
                raise RuntimeError("Game is not in progress.")
            if player is not self.current_player:
                logger.error(
                    "move_rejected_wrong_player",
                    extra={"player": player.value, "current": self.current_player.value},
                )
                raise RuntimeError("It is not this player's turn.")

            target = self.fleets[player.opponent()]
            result = target.attack(x, y)
            if not result.ok:
                MOVE_COUNTER.add(1, attributes={"result": "repeat", "player": player.value})
                return result

            self.views[player].observe(x, y, result, target)

            if target.all_ships_sunk():
                self.winner = player
                self.phase = GamePhase.FINISHED
                span.set_attribute("game.winner", player.value)
                logger.info("game_finished", extra={"winner": player.value})
            elif not result.hit:
                self.current_player = player.opponent()
                span.set_attribute("next_player", self.current_player.value)

            MOVE_COUNTER.add(
                1, attributes={"result": "hit" if result.hit else "miss", "player": player.value}
            )
            return result

    def play_automated_turn(self, strategy: TargetingStrategy) -> tuple[Coordinate, AttackResult]:
        """Let ``strategy`` pick and fire the current player's next shot."""
        player = self.current_player
        coord = strategy.choose(self.views[player])
        if coord is None:
            raise RuntimeError(f"{player.value} has no cells left to target.")
        return coord, self.make_move(player, coord.x, coord.y)

    def valid_moves(self, player: Player) -> list[Coordinate]:
        """Return all coordinates the player can legally target."""
        if self.phase is not GamePhase.IN_PROGRESS:
            return []
        return self.views[player].empty_cells()

    def get_state(self) -> GameState:
        """Return an immutable view of the current match."""
        return GameState(
            phase=self.phase,
            current_player=self.current_player,
            winner=self.winner,
            fleets={player: tuple(board.to_list()) for player, board in self.fleets.items()},
            views={player: tuple(board.to_list()) for player, board in self.views.items()},
        )
