"""
blockbot/interpreter.py
═══════════════════════

Step engine that runs a :class:`~blockbot.linearizer.LinearProgram`
against a :class:`~blockbot.grid_world.GridWorld`.

Each call to :meth:`Interpreter.step` executes exactly one instruction and
returns; there is no internal loop and nothing blocks.  An external
scheduler calls ``step()`` on whatever cadence it likes and stops once
``run_state`` is terminal (further calls are no-ops).

Step order
──────────

    1. if the run is over, return
    2. tick += 1, pointer += 1
    3. pointer == len(program)  →  LOST
    4. dispatch on program[pointer]

Index 0 holds ``Begin`` and is therefore skipped by the first step.

Instruction semantics
─────────────────────

  Kind           Effect
  ─────────────  ─────────────────────────────────────────────────────────
  Begin          nothing
  MoveForward    facing cell off-grid → nothing; Ground → move;
                 Pit → LOST; Block → push (see below)
  TurnLeft       N → W → S → E → N
  TurnRight      N → E → S → W → N
  EatCheese      on the cheese cell → cheese gone, WON
  If / While     condition false → pointer = matching close index;
                 true → pointer += 2 (skip the two operand tokens)
  EndIf          nothing
  EndWhile       back to the loop header (see EndWhilePolicy)
  operands       nothing (only reachable in hand-assembled programs)

Pushing a crate: with the cell beyond the crate off-grid or another crate,
nothing happens.  With ground beyond, the robot steps in and the crate
slides one cell.  With a pit beyond, the robot steps in and the crate is
lost in the pit; the pit stays a pit.

No step budget is imposed here.  A ``While`` whose condition never turns
false keeps the run going for as long as the caller keeps stepping; see
:mod:`blockbot.runner` for a driver with an optional budget.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from blockbot.grid_world import Grid, GridWorld
from blockbot.instructions import (
    INVALID_POSITION,
    Direction,
    InstructionKind,
    Position,
    RunState,
    TileKind,
)
from blockbot.linearizer import LinearProgram

logger = logging.getLogger(__name__)

ProgramLike = Union[LinearProgram, Sequence[InstructionKind]]


# ===================================================================== #
#  Jump table                                                            #
# ===================================================================== #

@dataclass(frozen=True)
class JumpTable:
    """Matching indices of control openers and closers.

    ``open_to_close`` maps the index of every ``If`` / ``While`` to the
    index of its ``End If`` / ``End While``; ``close_to_open`` is the
    inverse.  Built once per program with a single left-to-right scan.
    """

    open_to_close: Dict[int, int] = field(default_factory=dict)
    close_to_open: Dict[int, int] = field(default_factory=dict)

    @classmethod
    def build(cls, tokens: Sequence[InstructionKind]) -> "JumpTable":
        open_to_close: Dict[int, int] = {}
        close_to_open: Dict[int, int] = {}
        stack: List[int] = []
        index = 0
        while index < len(tokens):
            kind = tokens[index]
            if kind.is_control_opener:
                stack.append(index)
                # operand tokens are never openers / closers themselves
                index += 3
                continue
            if kind.is_control_closer and stack:
                start = stack.pop()
                open_to_close[start] = index
                close_to_open[index] = start
            index += 1
        if stack:
            logger.debug("jump table: unclosed openers at %s", stack)
        return cls(open_to_close=open_to_close, close_to_open=close_to_open)


class EndWhilePolicy(enum.Enum):
    """Where ``End While`` sends the pointer.

    REEVALUATE
        Back to the matching ``While`` so its condition is tested again on
        the next step.
    RESTART
        To index 0, so the next step restarts the program right after
        ``Begin``.  Everything before the loop runs again, not just the
        loop header.
    """

    REEVALUATE = "reevaluate"
    RESTART = "restart"


# ===================================================================== #
#  Dispatch registry                                                     #
# ===================================================================== #

# Maps an instruction kind to the handler that executes it.
# Populated by the ``@_handles`` decorator below.
_HANDLERS: Dict[InstructionKind, Callable[["Interpreter"], None]] = {}


def _handles(*kinds: InstructionKind):
    """Decorator: register an Interpreter method as the handler of *kinds*."""
    def deco(fn):
        for kind in kinds:
            _HANDLERS[kind] = fn
        return fn
    return deco


# ===================================================================== #
#  Interpreter                                                           #
# ===================================================================== #

class Interpreter:
    """
    Runs one program on one world, one instruction per :meth:`step`.

    Parameters
    ----------
    world : GridWorld
        Starting world.  The interpreter works on a private copy, so the
        caller can build a fresh interpreter from the same world after a
        lost run.
    program : LinearProgram or sequence of InstructionKind
        Program to execute; plain sequences are wrapped without a
        source map.
    end_while : EndWhilePolicy
        How ``End While`` jumps.
    """

    def __init__(
        self,
        world: GridWorld,
        program: ProgramLike,
        end_while: EndWhilePolicy = EndWhilePolicy.REEVALUATE,
    ) -> None:
        if not isinstance(program, LinearProgram):
            program = LinearProgram.from_tokens(program)
        self._world = world.copy()
        self._program = program
        self._jumps = JumpTable.build(program.tokens)
        self._end_while = end_while
        self._state = RunState.NOT_ENDED
        self._pointer = 0
        self._executed: Optional[int] = None
        self._ticks = 0

    # -- State access ----------------------------------------------------
    @property
    def program(self) -> LinearProgram:
        return self._program

    @property
    def jump_table(self) -> JumpTable:
        return self._jumps

    @property
    def world(self) -> GridWorld:
        return self._world

    @property
    def run_state(self) -> RunState:
        return self._state

    @property
    def pointer(self) -> int:
        """Current program index.  The next step executes ``pointer + 1``."""
        return self._pointer

    @property
    def executed_index(self) -> Optional[int]:
        """Index dispatched by the latest step (``None`` before the first)."""
        return self._executed

    @property
    def tick_count(self) -> int:
        return self._ticks

    @property
    def robot_position(self) -> Position:
        return self._world.robot.position

    @property
    def robot_direction(self) -> Direction:
        return self._world.robot.direction

    @property
    def cheese_position(self) -> Position:
        return self._world.cheese

    def grid(self) -> Grid:
        """Grid snapshot with the cheese drawn in while it still exists."""
        return self._world.snapshot()

    def current_node_id(self) -> Optional[int]:
        """Block that emitted the most recently executed instruction.

        Before the first step this is the ``Begin`` block at index 0.
        """
        index = self._pointer if self._executed is None else self._executed
        return self._program.node_at(index)

    # -- Execution -------------------------------------------------------
    def step(self) -> RunState:
        """Execute one instruction and return the resulting run state."""
        if self._state.is_terminal:
            return self._state
        self._ticks += 1
        self._pointer += 1
        if self._pointer >= len(self._program):
            logger.info("program ran past its last instruction")
            self._lose()
            return self._state

        self._executed = self._pointer
        kind = self._program[self._pointer]
        logger.debug("tick %d: [%d] %s", self._ticks, self._pointer, kind.name)
        _HANDLERS[kind](self)
        return self._state

    def run(self, max_steps: int) -> RunState:
        """Step until the run ends or *max_steps* steps have been taken."""
        for _ in range(max_steps):
            if self.step().is_terminal:
                break
        return self._state

    # -- Helpers ---------------------------------------------------------
    def _lose(self) -> None:
        self._state = RunState.LOST
        self._world.robot.position = INVALID_POSITION
        logger.info("run lost after %d ticks", self._ticks)

    def _win(self) -> None:
        self._state = RunState.WON
        logger.info("run won after %d ticks", self._ticks)

    def _condition_holds(self, negation: InstructionKind, predicate: InstructionKind) -> bool:
        world = self._world
        facing = world.facing_cell(1)
        # off-grid is false, negated or not
        if not world.in_bounds(facing):
            return False
        if predicate is InstructionKind.FACING_CHEESE:
            flag = facing == world.cheese
        else:
            flag = world.tile_at(facing) is _PREDICATE_TILES.get(predicate)
        return not flag if negation is InstructionKind.CONDITION_NOT else flag

    def _operands(self) -> Tuple[InstructionKind, InstructionKind]:
        tokens = self._program.tokens
        negation = tokens[self._pointer + 1] if self._pointer + 1 < len(tokens) else InstructionKind.BLANK
        predicate = tokens[self._pointer + 2] if self._pointer + 2 < len(tokens) else InstructionKind.BLANK
        return negation, predicate

    # -- Instruction handlers -------------------------------------------
    @_handles(
        InstructionKind.BEGIN,
        InstructionKind.END_IF,
        InstructionKind.CONDITION_NOT,
        InstructionKind.FACING_WALL,
        InstructionKind.FACING_PIT,
        InstructionKind.FACING_BLOCK,
        InstructionKind.FACING_CHEESE,
        InstructionKind.BLANK,
    )
    def _exec_nop(self) -> None:
        pass

    @_handles(InstructionKind.MOVE_FORWARD)
    def _exec_move_forward(self) -> None:
        world = self._world
        target = world.facing_cell(1)
        beyond = world.facing_cell(2)
        if not world.in_bounds(target):
            return

        tile = world.tile_at(target)
        if tile is TileKind.GROUND:
            world.robot.position = target
        elif tile is TileKind.PIT:
            logger.info("robot fell into the pit at %s", target)
            self._lose()
        elif tile is TileKind.BLOCK:
            if not world.in_bounds(beyond):
                return
            behind = world.tile_at(beyond)
            if behind is TileKind.GROUND:
                world.robot.position = target
                world.set_tile(target, TileKind.GROUND)
                world.set_tile(beyond, TileKind.BLOCK)
            elif behind is TileKind.PIT:
                world.robot.position = target
                world.set_tile(target, TileKind.GROUND)
        # walls (and a crate behind a crate) stop the robot

    @_handles(InstructionKind.TURN_LEFT)
    def _exec_turn_left(self) -> None:
        robot = self._world.robot
        robot.direction = robot.direction.turn_left()

    @_handles(InstructionKind.TURN_RIGHT)
    def _exec_turn_right(self) -> None:
        robot = self._world.robot
        robot.direction = robot.direction.turn_right()

    @_handles(InstructionKind.EAT_CHEESE)
    def _exec_eat_cheese(self) -> None:
        world = self._world
        if world.has_cheese and world.robot.position == world.cheese:
            world.cheese = INVALID_POSITION
            self._win()

    @_handles(InstructionKind.IF, InstructionKind.WHILE)
    def _exec_branch(self) -> None:
        negation, predicate = self._operands()
        if self._condition_holds(negation, predicate):
            self._pointer += 2
            return
        close = self._jumps.open_to_close.get(self._pointer)
        if close is None:
            # unclosed opener: the next step overruns the program
            close = len(self._program) - 1
        self._pointer = close

    @_handles(InstructionKind.END_WHILE)
    def _exec_end_while(self) -> None:
        if self._end_while is EndWhilePolicy.RESTART:
            self._pointer = 0
            return
        header = self._jumps.close_to_open.get(self._pointer)
        if header is None:
            return
        self._pointer = header - 1

    def __repr__(self) -> str:
        return (
            f"Interpreter(state={self._state.name}, pointer={self._pointer}, "
            f"ticks={self._ticks}, robot={self.robot_position})"
        )


_PREDICATE_TILES: Dict[InstructionKind, TileKind] = {
    InstructionKind.FACING_WALL: TileKind.WALL,
    InstructionKind.FACING_PIT: TileKind.PIT,
    InstructionKind.FACING_BLOCK: TileKind.BLOCK,
}

_missing = set(InstructionKind) - set(_HANDLERS)
if _missing:  # pragma: no cover
    raise ImportError(
        "Interpreter has no handler for " + ", ".join(sorted(k.name for k in _missing))
    )
