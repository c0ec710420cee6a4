"""
blockbot/instructions.py
════════════════════════

Closed vocabularies shared by every stage of the pipeline: the block /
instruction kinds, the tile kinds of the grid world, the robot's compass
directions and the run outcome.

Instruction kinds fall into three groups:

    statements   Begin, MoveForward, TurnLeft, TurnRight, EatCheese,
                 If, EndIf, While, EndWhile
    negation     ConditionNot, Blank        (first operand of If / While)
    predicates   FacingWall, FacingPit, FacingBlock, FacingCheese, Blank
                                            (second operand of If / While)

Only statements become graph nodes.  The operand kinds exist solely as the
two tokens that follow an ``If`` / ``While`` in a linear program.
"""

from __future__ import annotations

import enum
from typing import FrozenSet, NamedTuple, Tuple


# ---------------------------------------------------------------------------
# Instruction kinds
# ---------------------------------------------------------------------------


class InstructionKind(enum.Enum):
    """Every block / token kind the editor and the interpreter know about.

    The value is the label printed on the block.
    """

    BEGIN = "Begin"
    MOVE_FORWARD = "Move Forward"
    TURN_LEFT = "Turn Left"
    TURN_RIGHT = "Turn Right"
    EAT_CHEESE = "Eat Cheese"
    IF = "If"
    END_IF = "End If"
    WHILE = "While"
    END_WHILE = "End While"
    CONDITION_NOT = "Not"
    FACING_WALL = "Facing Wall"
    FACING_PIT = "Facing Pit"
    FACING_BLOCK = "Facing Block"
    FACING_CHEESE = "Facing Cheese"
    BLANK = ""

    @property
    def label(self) -> str:
        return self.value

    @property
    def is_statement(self) -> bool:
        """True for kinds that may exist as a node in a block graph."""
        return self in _STATEMENTS

    @property
    def is_control_opener(self) -> bool:
        return self in (InstructionKind.IF, InstructionKind.WHILE)

    @property
    def is_control_closer(self) -> bool:
        return self in (InstructionKind.END_IF, InstructionKind.END_WHILE)

    @property
    def is_predicate(self) -> bool:
        return self in _PREDICATES

    @property
    def is_negation_slot_value(self) -> bool:
        return self in (InstructionKind.CONDITION_NOT, InstructionKind.BLANK)

    @property
    def is_predicate_slot_value(self) -> bool:
        return self in _PREDICATES or self is InstructionKind.BLANK

    @property
    def closer(self) -> "InstructionKind":
        """Matching closer of an ``If`` / ``While``."""
        if self is InstructionKind.IF:
            return InstructionKind.END_IF
        if self is InstructionKind.WHILE:
            return InstructionKind.END_WHILE
        raise ValueError(f"{self.name} is not a control opener")

    @property
    def opener(self) -> "InstructionKind":
        """Matching opener of an ``EndIf`` / ``EndWhile``."""
        if self is InstructionKind.END_IF:
            return InstructionKind.IF
        if self is InstructionKind.END_WHILE:
            return InstructionKind.WHILE
        raise ValueError(f"{self.name} is not a control closer")

    def __str__(self) -> str:
        return self.value or "<blank>"


_STATEMENTS: FrozenSet[InstructionKind] = frozenset({
    InstructionKind.BEGIN,
    InstructionKind.MOVE_FORWARD,
    InstructionKind.TURN_LEFT,
    InstructionKind.TURN_RIGHT,
    InstructionKind.EAT_CHEESE,
    InstructionKind.IF,
    InstructionKind.END_IF,
    InstructionKind.WHILE,
    InstructionKind.END_WHILE,
})

_PREDICATES: FrozenSet[InstructionKind] = frozenset({
    InstructionKind.FACING_WALL,
    InstructionKind.FACING_PIT,
    InstructionKind.FACING_BLOCK,
    InstructionKind.FACING_CHEESE,
})


# ---------------------------------------------------------------------------
# Grid world vocabulary
# ---------------------------------------------------------------------------


class TileKind(enum.Enum):
    """Contents of one grid cell."""

    GROUND = "ground"
    WALL = "wall"
    BLOCK = "block"
    PIT = "pit"
    CHEESE = "cheese"
    START = "start"


class Position(NamedTuple):
    """Cell coordinates; ``y`` grows southwards."""

    x: int
    y: int

    def offset(self, dx: int, dy: int) -> "Position":
        return Position(self.x + dx, self.y + dy)


INVALID_POSITION = Position(-1, -1)


class Direction(enum.Enum):
    """Robot heading.

    Turning left walks the cycle North → West → South → East → North;
    turning right walks it in reverse.
    """

    NORTH = (0, -1)
    WEST = (-1, 0)
    SOUTH = (0, 1)
    EAST = (1, 0)

    @property
    def delta(self) -> Tuple[int, int]:
        return self.value

    def turn_left(self) -> "Direction":
        return _LEFT_OF[self]

    def turn_right(self) -> "Direction":
        return _RIGHT_OF[self]


_LEFT_OF = {
    Direction.NORTH: Direction.WEST,
    Direction.WEST: Direction.SOUTH,
    Direction.SOUTH: Direction.EAST,
    Direction.EAST: Direction.NORTH,
}
_RIGHT_OF = {after: before for before, after in _LEFT_OF.items()}


class RunState(enum.Enum):
    """Outcome of a program run so far."""

    NOT_ENDED = "not-ended"
    WON = "won"
    LOST = "lost"

    @property
    def is_terminal(self) -> bool:
        return self is not RunState.NOT_ENDED
