"""
blockbot/runner.py
==================

Synchronous driver around :class:`~blockbot.interpreter.Interpreter`.

The interpreter only ever executes one instruction per ``step()``; the
animation timer that paces a real game lives outside this package.  This
module provides the plain loop used by the command line and by tests:

* ``RunConfig``   – tuning knobs (step budget, End While policy)
* ``RunResult``   – outcome of a driven run
* ``StepObserver``– callback invoked after every step, e.g. to highlight
                    the running block
* ``run_program`` – step until the run ends or the budget runs out
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from blockbot.grid_world import GridWorld
from blockbot.instructions import RunState
from blockbot.interpreter import EndWhilePolicy, Interpreter, ProgramLike

logger = logging.getLogger(__name__)


@runtime_checkable
class StepObserver(Protocol):
    """Callback invoked after every interpreter step."""

    def observe(self, step: int, interpreter: Interpreter) -> None: ...


@dataclass
class RunConfig:
    """Tuning knobs for a driven run.

    ``max_steps`` of ``None`` means no budget: a program stuck in an
    endless ``While`` is driven forever.
    """
    max_steps: Optional[int] = None
    end_while: EndWhilePolicy = EndWhilePolicy.REEVALUATE
    record_trace: bool = True

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.max_steps is not None and self.max_steps <= 0:
            warnings.append("max_steps must be positive")
        return warnings


@dataclass
class RunResult:
    """What happened during a driven run."""
    state: RunState
    steps: int
    budget_exhausted: bool = False
    trace: List[int] = field(default_factory=list)
    interpreter: Optional[Interpreter] = None

    @property
    def won(self) -> bool:
        return self.state is RunState.WON


def run_program(
    world: GridWorld,
    program: ProgramLike,
    config: Optional[RunConfig] = None,
    observers: Sequence[StepObserver] = (),
) -> RunResult:
    """Build an interpreter and step it to completion.

    Raises
    ------
    ValueError
        If *config* does not validate.
    """
    config = config or RunConfig()
    problems = config.validate()
    if problems:
        raise ValueError("; ".join(problems))

    interp = Interpreter(world, program, end_while=config.end_while)
    result = RunResult(state=interp.run_state, steps=0, interpreter=interp)

    while not interp.run_state.is_terminal:
        if config.max_steps is not None and result.steps >= config.max_steps:
            result.budget_exhausted = True
            logger.warning("step budget of %d exhausted", config.max_steps)
            break
        # step() always dispatches the index after the pointer
        executed = interp.pointer + 1
        interp.step()
        result.steps += 1
        if config.record_trace:
            result.trace.append(executed)
        for obs in observers:
            obs.observe(result.steps, interp)

    result.state = interp.run_state
    logger.info("run finished: %s after %d steps", result.state.name, result.steps)
    return result
