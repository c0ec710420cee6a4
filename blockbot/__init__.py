"""blockbot — block programs for a cheese-hunting robot.

A player snaps instruction blocks together on a canvas; the chain hanging
off ``Begin`` is compiled into a flat program and stepped, one instruction
at a time, against a small tile world with walls, pits and pushable crates.

Submodules
----------
instructions
    Instruction / tile / direction vocabularies and ``RunState``.

block_graph
    ``BlockGraph``: the editable, acyclic single-successor block graph.

linearizer
    ``compile_graph``: graph → ``LinearProgram`` or ``StructuralError``.

grid_world
    ``GridWorld``: tiles plus robot and cheese state.

interpreter
    ``Interpreter``: one instruction per ``step()``.

runner
    ``run_program`` / ``RunConfig``: a plain driver loop with an optional
    step budget.

mapfile
    Text level format (Parsimonious PEG) and ASCII rendering.

errors
    Error codes (``BBOT-XXXX``), ``StructuralError`` and exceptions.

main
    CLI entry-point with subcommands: ``compile``, ``run``, ``show``.

Usage
-----
Command-line::

    python -m blockbot run level.txt forward forward eat
    python -m blockbot --help

Programmatic::

    from blockbot.block_graph import BlockGraph
    from blockbot.instructions import InstructionKind
    from blockbot.interpreter import Interpreter
    from blockbot.mapfile import parse_map
    from blockbot.grid_world import GridWorld

    graph = BlockGraph()
    step = graph.add_node(InstructionKind.MOVE_FORWARD)
    graph.connect(0, step)
    program = graph.compile().program
    interp = Interpreter(GridWorld(parse_map("S.C")), program)
    interp.step()
"""

from __future__ import annotations

__version__: str = "0.1.0"
__all__: list[str] = [
    "__version__",
    "block_graph",
    "errors",
    "grid_world",
    "instructions",
    "interpreter",
    "linearizer",
    "mapfile",
    "runner",
]
