"""
blockbot/linearizer.py
══════════════════════

Compiler from a :class:`~blockbot.block_graph.BlockGraph` to a flat
:class:`LinearProgram`.

    ┌──────────────┐   compile_graph   ┌───────────────┐
    │  BlockGraph  │  ──────────────►  │ LinearProgram │  (or StructuralError)
    └──────────────┘                   └───────────────┘

The walk starts at ``Begin`` and follows successors until a block has
none.  Every statement emits one token except ``If`` / ``While``, which
emit three::

    [If|While, negation, predicate]

While walking, a stack of open control kinds checks nesting:

  * ``If`` / ``While`` with a blank predicate   → IncompleteCondition
  * ``End If`` whose stack top is not ``If``     → UnmatchedEnd
  * ``End While`` whose stack top is not ``While`` → UnmatchedEnd
  * openers left on the stack after the walk    → MissingEnd, reported
                                                  at the *oldest* one

Blocks not on the ``Begin`` chain are ignored.  Compiling has no side
effect on the graph.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from blockbot.block_graph import BEGIN_ID, BlockGraph
from blockbot.errors import ErrorKind, StructuralError
from blockbot.instructions import InstructionKind

logger = logging.getLogger(__name__)

MESSAGES: Dict[Tuple[ErrorKind, Optional[InstructionKind]], str] = {
    (ErrorKind.INCOMPLETE_CONDITION, None): "Incomplete conditional statement",
    (ErrorKind.UNMATCHED_END, InstructionKind.END_IF): "No matching If for End If",
    (ErrorKind.UNMATCHED_END, InstructionKind.END_WHILE): "No matching While for End While",
    (ErrorKind.MISSING_END, None): "Needs end statement",
}


# ---------------------------------------------------------------------------
# Program image
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LinearProgram:
    """
    Compiled token sequence.

    Parameters
    ----------
    tokens : tuple[InstructionKind, ...]
        The program; index 0 is always ``Begin`` for compiled programs.
    source_map : Mapping[int, int]
        Program index → id of the block that emitted it.  Only statement
        indices are mapped, never the two operand slots of a control
        block.  Used by presentation code to highlight the running block.
    """

    tokens: Tuple[InstructionKind, ...]
    source_map: Mapping[int, int] = field(default_factory=dict)

    @classmethod
    def from_tokens(cls, tokens: Iterable[InstructionKind]) -> "LinearProgram":
        """Wrap a hand-assembled token sequence (no source map)."""
        return cls(tokens=tuple(tokens))

    def node_at(self, index: int) -> Optional[int]:
        return self.source_map.get(index)

    def listing(self) -> List[str]:
        """One line per statement, operands folded into their opener."""
        lines: List[str] = []
        depth = 0
        index = 0
        while index < len(self.tokens):
            kind = self.tokens[index]
            if kind.is_control_closer:
                depth = max(depth - 1, 0)
            text = kind.label
            width = 1
            if kind.is_control_opener:
                operands = self.tokens[index + 1:index + 3]
                text = " ".join([kind.label] + [op.label for op in operands if op.label])
                width = 3
            node = self.source_map.get(index)
            origin = f"  (block {node})" if node is not None else ""
            lines.append(f"{index:4d}  {'  ' * depth}{text}{origin}")
            if kind.is_control_opener:
                depth += 1
            index += width
        return lines

    def __len__(self) -> int:
        return len(self.tokens)

    def __getitem__(self, index: int) -> InstructionKind:
        return self.tokens[index]

    def __iter__(self):
        return iter(self.tokens)


@dataclass(frozen=True)
class CompileResult:
    """Either a program or the structural error that prevented one."""

    program: Optional[LinearProgram] = None
    error: Optional[StructuralError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------


def _fail(node_id: int, kind: ErrorKind, closer: Optional[InstructionKind] = None) -> CompileResult:
    error = StructuralError(node_id=node_id, kind=kind, message=MESSAGES[(kind, closer)])
    logger.info("compile failed at block %d: %s [%s]", node_id, error.message, error.code)
    return CompileResult(error=error)


def compile_graph(graph: BlockGraph) -> CompileResult:
    """Linearize the chain reachable from ``Begin``."""
    tokens: List[InstructionKind] = []
    source_map: Dict[int, int] = {}
    # (opener kind, block id) for every unclosed If / While
    open_stack: List[Tuple[InstructionKind, int]] = []

    for node_id in graph.chain(BEGIN_ID):
        node = graph.node(node_id)
        kind = node.kind
        source_map[len(tokens)] = node_id

        if kind.is_control_opener:
            if node.predicate is InstructionKind.BLANK:
                return _fail(node_id, ErrorKind.INCOMPLETE_CONDITION)
            open_stack.append((kind, node_id))
            tokens.extend((kind, node.negation, node.predicate))
            continue

        if kind.is_control_closer:
            if not open_stack or open_stack[-1][0] is not kind.opener:
                return _fail(node_id, ErrorKind.UNMATCHED_END, kind)
            open_stack.pop()

        tokens.append(kind)

    if open_stack:
        return _fail(open_stack[0][1], ErrorKind.MISSING_END)

    program = LinearProgram(tokens=tuple(tokens), source_map=source_map)
    logger.debug("compiled %d tokens from %d blocks", len(tokens), len(source_map))
    return CompileResult(program=program)
