#!/usr/bin/env python3
"""blockbot/main.py — command-line front end.

Usage examples
--------------
    # Compile a chain of blocks and print the program listing
    python -m blockbot compile forward while:not:wall forward endwhile eat

    # Run a program on a level and print the final board
    python -m blockbot run level.txt forward forward eat --max-steps 100

    # Draw a level
    python -m blockbot show level.txt

Block words
-----------
    forward  left  right  eat  endif  endwhile
    if[:not][:wall|pit|block|cheese]
    while[:not][:wall|pit|block|cheese]

A control word without a predicate leaves the predicate blank, which the
compiler reports as an incomplete condition.

Exit codes
----------
    0   Success (program compiled, run won).
    1   Structural error in the program, or the run was lost.
    2   Infrastructure failure (missing file, bad map, unknown block word).
    3   Step budget exhausted before the run ended.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import textwrap
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from termcolor import colored

from blockbot import __version__
from blockbot.block_graph import BEGIN_ID, BlockGraph
from blockbot.errors import BlockWordError, MapFormatError
from blockbot.instructions import InstructionKind, RunState
from blockbot.interpreter import EndWhilePolicy, Interpreter
from blockbot.linearizer import CompileResult
from blockbot.mapfile import load_map, render_world
from blockbot.runner import RunConfig, run_program

_log = logging.getLogger("blockbot")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2
EXIT_BUDGET: int = 3


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the root ``blockbot`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("blockbot")
    root.setLevel(level)
    # repeated main() calls (tests) must not stack handlers
    root.handlers[:] = [handler]


def _resolve_path(raw: str, label: str = "file") -> Path:
    """Resolve *raw* to an absolute ``Path``, raising on missing files."""
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


# ---------------------------------------------------------------------------
# Block words
# ---------------------------------------------------------------------------

_SIMPLE_WORDS: Dict[str, InstructionKind] = {
    "forward": InstructionKind.MOVE_FORWARD,
    "left": InstructionKind.TURN_LEFT,
    "right": InstructionKind.TURN_RIGHT,
    "eat": InstructionKind.EAT_CHEESE,
    "endif": InstructionKind.END_IF,
    "endwhile": InstructionKind.END_WHILE,
}

_CONTROL_WORDS: Dict[str, InstructionKind] = {
    "if": InstructionKind.IF,
    "while": InstructionKind.WHILE,
}

_PREDICATE_WORDS: Dict[str, InstructionKind] = {
    "wall": InstructionKind.FACING_WALL,
    "pit": InstructionKind.FACING_PIT,
    "block": InstructionKind.FACING_BLOCK,
    "cheese": InstructionKind.FACING_CHEESE,
}


def parse_block_word(word: str) -> Tuple[InstructionKind, List[InstructionKind]]:
    """Split a block word into its kind and the operands to drop on it.

    Raises
    ------
    BlockWordError
        If *word* does not name a block.
    """
    head, *rest = word.strip().lower().split(":")
    if head in _SIMPLE_WORDS and not rest:
        return _SIMPLE_WORDS[head], []
    if head not in _CONTROL_WORDS:
        raise BlockWordError(word)

    operands: List[InstructionKind] = []
    if rest and rest[0] == "not":
        operands.append(InstructionKind.CONDITION_NOT)
        rest = rest[1:]
    if len(rest) > 1 or (rest and rest[0] not in _PREDICATE_WORDS):
        raise BlockWordError(word)
    if rest:
        operands.append(_PREDICATE_WORDS[rest[0]])
    return _CONTROL_WORDS[head], operands


def build_chain(words: Sequence[str]) -> Tuple[BlockGraph, Dict[int, str]]:
    """Build a graph whose ``Begin`` chain holds one block per word.

    Returns the graph and a map from block id to the word that created it.
    """
    graph = BlockGraph()
    origin: Dict[int, str] = {}
    previous = BEGIN_ID
    for word in words:
        kind, operands = parse_block_word(word)
        node_id = graph.add_node(kind)
        for operand in operands:
            graph.set_condition(node_id, operand)
        graph.connect(previous, node_id)
        origin[node_id] = word
        previous = node_id
    _log.debug("built chain of %d blocks", len(origin))
    return graph, origin


def _report_compile_error(result: CompileResult, origin: Dict[int, str]) -> None:
    error = result.error
    word = origin.get(error.node_id, "begin")
    head = colored(f"error[{error.code}]", "red", attrs=["bold"])
    print(f"{head}: {error.message}", file=sys.stderr)
    print(f"  --> block {error.node_id} ({word!r})", file=sys.stderr)


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def cmd_compile(args: argparse.Namespace) -> int:
    """Compile block words and print the listing (or the structural error)."""
    try:
        graph, origin = build_chain(args.blocks)
    except BlockWordError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    result = graph.compile()
    if not result.ok:
        if args.format == "json":
            print(json.dumps({"ok": False, "error": result.error.to_json()}, indent=2))
        else:
            _report_compile_error(result, origin)
        return EXIT_ERROR

    program = result.program
    if args.format == "json":
        payload = {
            "ok": True,
            "tokens": [kind.name for kind in program],
            "source_map": {str(k): v for k, v in sorted(program.source_map.items())},
        }
        print(json.dumps(payload, indent=2))
    else:
        print("\n".join(program.listing()))
    return EXIT_OK


class _TracePrinter:
    """Step observer that prints one line per executed instruction."""

    def __init__(self, stream=None) -> None:
        self._stream = stream or sys.stdout

    def observe(self, step: int, interpreter: Interpreter) -> None:
        pointer = interpreter.pointer
        if pointer >= len(interpreter.program):
            index, kind = pointer, "<end>"
        else:
            index = interpreter.executed_index
            kind = interpreter.program[index].label
        node = interpreter.current_node_id()
        block = f"block {node}" if node is not None else "-"
        pos = interpreter.robot_position
        print(
            f"{step:5d}  [{index:3d}] {kind:<14} {block:<10} "
            f"robot=({pos.x},{pos.y}) {interpreter.robot_direction.name}",
            file=self._stream,
        )


def cmd_run(args: argparse.Namespace) -> int:
    """Compile block words, run them on a map and report the outcome."""
    map_path = _resolve_path(args.map_file, "map")
    try:
        world = load_map(map_path)
    except (MapFormatError, OSError) as exc:
        _log.error("cannot load %s: %s", map_path, exc)
        return EXIT_INFRA

    try:
        graph, origin = build_chain(args.blocks)
    except BlockWordError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    result = graph.compile()
    if not result.ok:
        _report_compile_error(result, origin)
        return EXIT_ERROR

    config = RunConfig(
        max_steps=args.max_steps,
        end_while=(
            EndWhilePolicy.RESTART if args.restart_on_endwhile
            else EndWhilePolicy.REEVALUATE
        ),
        record_trace=False,
    )
    problems = config.validate()
    if problems:
        for problem in problems:
            _log.error("invalid option: %s", problem)
        return EXIT_INFRA

    observers = [_TracePrinter()] if args.trace else []
    outcome = run_program(world, result.program, config, observers=observers)

    print(render_world(outcome.interpreter))
    if outcome.budget_exhausted:
        print(colored(f"Stopped after {outcome.steps} steps (budget exhausted)", "yellow"))
        return EXIT_BUDGET
    color = "green" if outcome.state is RunState.WON else "red"
    print(colored(f"{outcome.state.name} after {outcome.steps} steps", color, attrs=["bold"]))
    return EXIT_OK if outcome.state is RunState.WON else EXIT_ERROR


def cmd_show(args: argparse.Namespace) -> int:
    """Parse a map file and draw it."""
    map_path = _resolve_path(args.map_file, "map")
    try:
        world = load_map(map_path)
    except (MapFormatError, OSError) as exc:
        _log.error("cannot load %s: %s", map_path, exc)
        return EXIT_INFRA
    print(render_world(world))
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="blockbot",
        description=(
            "blockbot — compile block programs and run them on a grid level."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              blockbot compile forward if:wall left endif eat
              blockbot run level.txt while:not:cheese forward endwhile forward eat
              blockbot show level.txt
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- compile -----------------------------------------------------------
    p_compile = subparsers.add_parser(
        "compile",
        help="Compile block words and print the program.",
    )
    p_compile.add_argument(
        "blocks",
        nargs="+",
        metavar="BLOCK",
        help="Block words, chained after Begin in order.",
    )
    p_compile.add_argument(
        "-f", "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text).",
    )
    p_compile.set_defaults(func=cmd_compile)

    # --- run ---------------------------------------------------------------
    p_run = subparsers.add_parser(
        "run",
        help="Run block words on a map.",
    )
    p_run.add_argument("map_file", metavar="MAP", help="Level file.")
    p_run.add_argument(
        "blocks",
        nargs="+",
        metavar="BLOCK",
        help="Block words, chained after Begin in order.",
    )
    g = p_run.add_argument_group("runtime tuning")
    g.add_argument(
        "--max-steps",
        type=int,
        default=None,
        metavar="N",
        help="Stop after N steps (default: no limit).",
    )
    g.add_argument(
        "--restart-on-endwhile",
        action="store_true",
        help="End While restarts the program instead of re-testing the loop.",
    )
    g.add_argument(
        "--trace",
        action="store_true",
        help="Print every executed instruction.",
    )
    p_run.set_defaults(func=cmd_run)

    # --- show --------------------------------------------------------------
    p_show = subparsers.add_parser(
        "show",
        help="Draw a map.",
    )
    p_show.add_argument("map_file", metavar="MAP", help="Level file.")
    p_show.set_defaults(func=cmd_show)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the blockbot CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    # No subcommand given → print help.
    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
