"""
blockbot/grid_world.py
══════════════════════

The tile grid the robot drives around on, plus the robot and cheese state.

On construction the ``START`` and ``CHEESE`` cells are lifted out of the
grid into ``robot.position`` and ``cheese`` and replaced by ``GROUND``; the
stored grid never contains either marker afterwards.  ``snapshot()`` puts
the cheese back for display.

The world is plain data with query / mutation helpers.  Game rules (what a
``MoveForward`` does when a crate is in the way, when the run is lost)
live in :mod:`blockbot.interpreter`.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from blockbot.errors import BlockbotErrorCodes, MapFormatError
from blockbot.instructions import INVALID_POSITION, Direction, Position, TileKind

logger = logging.getLogger(__name__)

Grid = List[List[TileKind]]


@dataclass
class Robot:
    """Robot pose.  The robot starts out facing east."""

    position: Position
    direction: Direction = Direction.EAST

    def facing(self, offset: int = 1) -> Position:
        """Cell *offset* steps ahead of the robot."""
        dx, dy = self.direction.delta
        return self.position.offset(dx * offset, dy * offset)


class GridWorld:
    """
    Rectangular tile grid with a robot and at most one piece of cheese.

    Parameters
    ----------
    tiles : sequence of sequences of TileKind
        Row-major grid description; ``tiles[y][x]``.  Must contain a
        ``START`` cell and may contain one ``CHEESE`` cell.  When several
        are present the last one in row-major order wins.

    Raises
    ------
    MapFormatError
        If the grid is empty, ragged, or has no ``START`` cell.
    """

    def __init__(self, tiles: Sequence[Sequence[TileKind]]) -> None:
        if not tiles or not tiles[0]:
            raise MapFormatError(
                "Grid has no cells", BlockbotErrorCodes.EMPTY_MAP
            )
        width = len(tiles[0])
        for y, row in enumerate(tiles):
            if len(row) != width:
                raise MapFormatError(
                    f"Row {y} has {len(row)} cells, expected {width}",
                    BlockbotErrorCodes.RAGGED_MAP,
                    line=y + 1,
                )

        self._tiles: Grid = [list(row) for row in tiles]
        self.width: int = width
        self.height: int = len(self._tiles)
        self.cheese: Position = INVALID_POSITION

        start: Optional[Position] = None
        for pos, tile in self.cells():
            if tile is TileKind.START:
                start = pos
                self._tiles[pos.y][pos.x] = TileKind.GROUND
            elif tile is TileKind.CHEESE:
                self.cheese = pos
                self._tiles[pos.y][pos.x] = TileKind.GROUND

        if start is None:
            raise MapFormatError(
                "Grid has no start cell", BlockbotErrorCodes.MISSING_START
            )
        self.robot = Robot(position=start)
        logger.debug(
            "World %dx%d: robot at %s, cheese at %s",
            self.width, self.height, start, self.cheese,
        )

    # ----- queries -----------------------------------------------------------

    @property
    def has_cheese(self) -> bool:
        return self.cheese != INVALID_POSITION

    def in_bounds(self, pos: Position) -> bool:
        return 0 <= pos.x < self.width and 0 <= pos.y < self.height

    def tile_at(self, pos: Position) -> TileKind:
        """Tile stored at *pos*.  Raises ``IndexError`` when out of bounds."""
        if not self.in_bounds(pos):
            raise IndexError(f"{pos} is outside a {self.width}x{self.height} grid")
        return self._tiles[pos.y][pos.x]

    def facing_cell(self, offset: int = 1) -> Position:
        return self.robot.facing(offset)

    def cells(self) -> Iterator[Tuple[Position, TileKind]]:
        """Yield ``(position, tile)`` in row-major order."""
        for y, row in enumerate(self._tiles):
            for x, tile in enumerate(row):
                yield Position(x, y), tile

    def snapshot(self) -> Grid:
        """Copy of the grid with the live cheese drawn back in."""
        grid = [list(row) for row in self._tiles]
        if self.has_cheese:
            grid[self.cheese.y][self.cheese.x] = TileKind.CHEESE
        return grid

    # ----- mutation ----------------------------------------------------------

    def set_tile(self, pos: Position, kind: TileKind) -> None:
        if kind in (TileKind.START, TileKind.CHEESE):
            raise ValueError(f"{kind.name} is tracked outside the grid")
        if not self.in_bounds(pos):
            raise IndexError(f"{pos} is outside a {self.width}x{self.height} grid")
        self._tiles[pos.y][pos.x] = kind

    def copy(self) -> "GridWorld":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return (
            f"GridWorld({self.width}x{self.height}, robot={self.robot.position}, "
            f"facing={self.robot.direction.name}, cheese={self.cheese})"
        )
