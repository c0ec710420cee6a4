"""
blockbot/mapfile.py
═══════════════════

Plain-text level format, parsed with a Parsimonious PEG.

One character per tile, one line per row::

    ; a comment line
    ####
    #S.C
    #@0.

    S  start          C  cheese         .  ground (also *)
    #  wall           @  crate          0  pit

Leading / trailing blanks, blank lines and ``;`` comments (whole-line or
after a row) are ignored.  Every row must have the same width.

``render_world`` goes the other way and draws a world, robot included,
the way the game's debug dump does.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Union

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from blockbot.errors import BlockbotErrorCodes, MapFormatError
from blockbot.grid_world import Grid, GridWorld
from blockbot.instructions import Direction, TileKind
from blockbot.interpreter import Interpreter

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  GRAMMAR
# ═══════════════════════════════════════════════════════════════════

MAP_GRAMMAR = Grammar(r'''
    map      = line (newline line)*
    line     = hspace row? hspace comment?
    row      = tile+
    tile     = ~r"[SC.*#@0]"
    comment  = ~r";[^\r\n]*"
    hspace   = ~r"[ \t]*"
    newline  = ~r"\r?\n"
''')

GLYPH_TILES: Dict[str, TileKind] = {
    "S": TileKind.START,
    "C": TileKind.CHEESE,
    ".": TileKind.GROUND,
    "*": TileKind.GROUND,
    "#": TileKind.WALL,
    "@": TileKind.BLOCK,
    "0": TileKind.PIT,
}

TILE_GLYPHS: Dict[TileKind, str] = {
    TileKind.GROUND: "*",
    TileKind.WALL: "#",
    TileKind.BLOCK: "@",
    TileKind.PIT: "0",
    TileKind.CHEESE: "C",
    TileKind.START: "S",
}

ROBOT_GLYPHS: Dict[Direction, str] = {
    Direction.NORTH: "^",
    Direction.SOUTH: "v",
    Direction.EAST: ">",
    Direction.WEST: "<",
}


# ═══════════════════════════════════════════════════════════════════
#  PARSE TREE → GRID
# ═══════════════════════════════════════════════════════════════════

class MapBuilder(NodeVisitor):
    """Collects the rows of a parsed map into a grid."""

    unwrapped_exceptions = (MapFormatError,)

    def __init__(self) -> None:
        self.rows: Grid = []

    def generic_visit(self, node, visited_children):
        """Default: pass children through, or the node itself for leaves."""
        return visited_children or node

    def visit_map(self, node, visited_children):
        return self.rows

    def visit_row(self, node: Node, visited_children):
        row = list(visited_children)
        line = node.full_text.count("\n", 0, node.start) + 1
        if self.rows and len(row) != len(self.rows[0]):
            raise MapFormatError(
                f"Row has {len(row)} tiles, expected {len(self.rows[0])}",
                BlockbotErrorCodes.RAGGED_MAP,
                line=line,
            )
        self.rows.append(row)
        return row

    def visit_tile(self, node: Node, visited_children):
        return GLYPH_TILES[node.text]


def parse_map(text: str) -> Grid:
    """
    Parse a map description into a row-major grid of tiles.

    Raises
    ------
    MapFormatError
        On an unknown glyph, a ragged row, or a map without any row.
    """
    try:
        tree = MAP_GRAMMAR.parse(text)
    except ParseError as exc:
        glyph = text[exc.pos:exc.pos + 1]
        what = f"Unexpected character {glyph!r}" if glyph else "Unexpected end of map"
        raise MapFormatError(
            what,
            BlockbotErrorCodes.MAP_SYNTAX,
            line=exc.line(),
            column=exc.column(),
        ) from exc

    grid = MapBuilder().visit(tree)
    if not grid:
        raise MapFormatError("Map has no rows", BlockbotErrorCodes.EMPTY_MAP)
    logger.debug("parsed map: %d rows of %d tiles", len(grid), len(grid[0]))
    return grid


def load_map(path: Union[str, Path]) -> GridWorld:
    """Read a map file and build its world.

    ``OSError`` from reading the file propagates unchanged.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    logger.info("loading map %s", path)
    return GridWorld(parse_map(text))


# ═══════════════════════════════════════════════════════════════════
#  RENDERING
# ═══════════════════════════════════════════════════════════════════

def render_world(subject: Union[GridWorld, Interpreter]) -> str:
    """Draw a world (or an interpreter's current world) as text.

    The robot is drawn as ``^ v > <``; a lost robot is not drawn.
    """
    world = subject.world if isinstance(subject, Interpreter) else subject
    grid = world.snapshot()
    robot = world.robot
    lines: List[str] = []
    for y, row in enumerate(grid):
        chars = [TILE_GLYPHS[tile] for tile in row]
        if robot.position.y == y and world.in_bounds(robot.position):
            chars[robot.position.x] = ROBOT_GLYPHS[robot.direction]
        lines.append("".join(chars))
    return "\n".join(lines)
