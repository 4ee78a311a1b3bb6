"""Game logic: board state, placement rules, and win/draw detection."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from tictactoe_server.exceptions import IllegalMoveError, InvalidBoardSizeError

BOARD_SIZES = (3, 4, 5)

LOCAL_MARK = "X"
ORACLE_MARK = "O"

Cell = str | None


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class GameStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    WON_BY_LOCAL = "won_by_local"
    WON_BY_ORACLE = "won_by_oracle"
    DRAW = "draw"

    @property
    def is_terminal(self) -> bool:
        return self is not GameStatus.IN_PROGRESS

    @property
    def result(self) -> str | None:
        """Outcome from the local player's point of view, as stored in stats."""
        return _RESULTS.get(self)


_RESULTS = {
    GameStatus.WON_BY_LOCAL: "won",
    GameStatus.WON_BY_ORACLE: "lost",
    GameStatus.DRAW: "draw",
}


@dataclass(frozen=True)
class Move:
    index: int
    mark: str

    def to_dict(self) -> dict:
        return {"position": self.index, "player": self.mark}


class Board:
    def __init__(self, size: int):
        if size not in BOARD_SIZES:
            raise InvalidBoardSizeError(size)
        self.size = size
        self.cells: list[Cell] = [None] * (size * size)

    def __len__(self) -> int:
        return len(self.cells)

    def __getitem__(self, index: int) -> Cell:
        return self.cells[index]

    def in_range(self, index: int) -> bool:
        return 0 <= index < len(self.cells)

    def is_empty(self, index: int) -> bool:
        return self.in_range(index) and self.cells[index] is None

    def is_full(self) -> bool:
        return all(cell is not None for cell in self.cells)

    def place(self, index: int, mark: str) -> None:
        """Put ``mark`` at ``index``. Raises IllegalMoveError on a bad index."""
        if not self.in_range(index):
            raise IllegalMoveError(index, "out of range")
        if self.cells[index] is not None:
            raise IllegalMoveError(index, "cell is already occupied")
        self.cells[index] = mark

    def winning_line(self, mark: str) -> tuple[int, ...] | None:
        return detect_winner(self.cells, self.size, mark)


def create_board(size: int) -> Board:
    return Board(size)


def detect_winner(cells: Sequence[Cell], size: int, mark: str) -> tuple[int, ...] | None:
    """Return the first complete line of ``mark``, or None.

    Lines are checked rows first, then columns, then the main diagonal and
    finally the anti-diagonal, so the result is deterministic when a board
    holds more than one complete line.
    """
    if len(cells) != size * size:
        raise ValueError(f"Board of {len(cells)} cells does not match size {size}")

    for r in range(size):
        line = tuple(r * size + c for c in range(size))
        if all(cells[i] == mark for i in line):
            return line

    for c in range(size):
        line = tuple(r * size + c for r in range(size))
        if all(cells[i] == mark for i in line):
            return line

    line = tuple(i * size + i for i in range(size))
    if all(cells[i] == mark for i in line):
        return line

    line = tuple(i * size + (size - 1 - i) for i in range(size))
    if all(cells[i] == mark for i in line):
        return line

    return None
