"""Fixed-size two-dimensional grid with wrap-around addressing."""

from __future__ import annotations

from typing import Generic, Iterator, Sequence, TypeVar

T = TypeVar("T")


class Grid(Generic[T]):
    """Row-major ``width × height`` buffer addressed by toroidal coordinates.

    Every coordinate is reduced modulo the grid extent before indexing, so
    ``get(-1, 0)`` reads the last column of the first row and no lookup ever
    raises. Callers that need strict bounds use :meth:`in_bounds`.
    """

    def __init__(self, width: int, height: int, fill: T) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("Grid dimensions must be positive.")
        self._cols = width
        self._rows = height
        self._cells: list[T] = [fill] * (width * height)

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def rows(self) -> int:
        return self._rows

    def __len__(self) -> int:
        return len(self._cells)

    def normalize(self, x: int, y: int) -> tuple[int, int]:
        """Map any integer pair onto an in-grid ``(x, y)``."""
        col = ((x % self._cols) + self._cols) % self._cols
        row = ((y % self._rows) + self._rows) % self._rows
        return col, row

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self._cols and 0 <= y < self._rows

    def get(self, x: int, y: int) -> T:
        col, row = self.normalize(x, y)
        return self._cells[row * self._cols + col]

    def set(self, x: int, y: int, value: T) -> None:
        col, row = self.normalize(x, y)
        self._cells[row * self._cols + col] = value

    def fill(self, value: T) -> None:
        self._cells[:] = [value] * len(self._cells)

    def copy_from(self, buffer: Sequence[T]) -> None:
        """Overwrite cells from a flat row-major buffer.

        Copies ``min(len(buffer), len(self))`` values; any remainder of the
        grid is left untouched.
        """
        count = min(len(buffer), len(self._cells))
        self._cells[:count] = buffer[:count]

    def to_list(self) -> list[T]:
        """Return the live row-major buffer. Mutations write through."""
        return self._cells

    def cells(self) -> Iterator[tuple[int, int, T]]:
        """Yield ``(x, y, value)`` for every cell in row-major order."""
        for index, value in enumerate(self._cells):
            yield index % self._cols, index // self._cols, value

    def render(self, width: int = 3) -> str:
        lines = []
        for y in range(self._rows):
            row = self._cells[y * self._cols : (y + 1) * self._cols]
            lines.append("".join(f"{_label(value):>{width}}" for value in row))
        return "\n".join(lines)


def _label(value: object) -> str:
    symbol = getattr(value, "symbol", None)
    return str(symbol if symbol is not None else value)
