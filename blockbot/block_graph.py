"""
blockbot.block_graph
====================

Authoring-time graph of instruction blocks.

Each node is one statement block (``Begin``, ``Move Forward``, ``If``, …)
and has *at most one* successor.  Several chains may coexist on the canvas
and a chain may simply stop; only the chain that starts at node 0 (the
single ``Begin`` block, created with the graph and never removable) is
compiled.

Public API
----------
    ConditionSlot    - the two operand slots of an ``If`` / ``While`` block
    GraphNode        - a single block
    BlockGraph       - the graph: nodes plus the id → id successor map

Typical usage::

    from blockbot.block_graph import BlockGraph
    from blockbot.instructions import InstructionKind as K

    g = BlockGraph()
    loop = g.add_node(K.WHILE)
    g.set_condition(loop, K.CONDITION_NOT)
    g.set_condition(loop, K.FACING_WALL)
    step = g.add_node(K.MOVE_FORWARD)
    end = g.add_node(K.END_WHILE)
    g.connect(0, loop)
    g.connect(loop, step)
    g.connect(step, end)
    result = g.compile()

Implementation notes
--------------------
* Acyclicity is enforced when an edge is added: ``connect(a, b)`` is
  refused when ``b`` can already reach ``a``.  There is no separate
  validation pass.
* No operation raises on bad input.  Unknown ids, illegal kinds and
  cycle-forming edges are logged at DEBUG and ignored.
* Removing a block severs its predecessor's link; the chain is *not*
  spliced back together.
"""

from __future__ import annotations

import enum
import itertools
import logging
from typing import (
    TYPE_CHECKING,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
)

from blockbot.instructions import InstructionKind

if TYPE_CHECKING:
    from blockbot.linearizer import CompileResult

logger = logging.getLogger(__name__)

BEGIN_ID = 0

Point = Tuple[float, float]


# ---------------------------------------------------------------------------
# Condition slots
# ---------------------------------------------------------------------------


class ConditionSlot(enum.Enum):
    """Operand slots of a control block."""

    NEGATION = "negation"
    PREDICATE = "predicate"

    def accepts(self, kind: InstructionKind) -> bool:
        if self is ConditionSlot.NEGATION:
            return kind.is_negation_slot_value
        return kind.is_predicate_slot_value


# ---------------------------------------------------------------------------
# GraphNode
# ---------------------------------------------------------------------------


class GraphNode:
    """A block on the canvas.

    Attributes
    ----------
    id : int
        Identifier, unique within its graph and never reused.
    kind : InstructionKind
        A statement kind.
    position : tuple[float, float]
        Where the presentation layer draws the block.  Not interpreted.
    negation, predicate : InstructionKind or None
        Operand slots; both ``Blank`` on a fresh ``If`` / ``While`` and
        ``None`` on every other kind.
    """

    __slots__ = ("id", "kind", "position", "negation", "predicate")

    def __init__(
        self,
        node_id: int,
        kind: InstructionKind,
        position: Point = (0.0, 0.0),
    ) -> None:
        self.id: int = node_id
        self.kind: InstructionKind = kind
        self.position: Point = position
        self.negation: Optional[InstructionKind] = None
        self.predicate: Optional[InstructionKind] = None
        if kind.is_control_opener:
            self.negation = InstructionKind.BLANK
            self.predicate = InstructionKind.BLANK

    @property
    def is_control(self) -> bool:
        return self.kind.is_control_opener

    @property
    def condition(self) -> Optional[Tuple[InstructionKind, InstructionKind]]:
        """``(negation, predicate)`` for control blocks, else ``None``."""
        if not self.is_control:
            return None
        return (self.negation, self.predicate)

    def label(self) -> str:
        """Text drawn on the block, e.g. ``"While Not Facing Wall"``."""
        if not self.is_control:
            return self.kind.label
        parts = [self.kind.label, self.negation.label, self.predicate.label]
        return " ".join(p for p in parts if p)

    def __repr__(self) -> str:
        extra = ""
        if self.is_control:
            extra = f", condition=({self.negation.name}, {self.predicate.name})"
        return f"GraphNode(id={self.id}, kind={self.kind.name}{extra})"


# ---------------------------------------------------------------------------
# BlockGraph
# ---------------------------------------------------------------------------


class BlockGraph:
    """Blocks plus single-successor links.

    The graph owns the links; nodes do not know their successor.
    """

    def __init__(self, begin_position: Point = (0.0, 0.0)) -> None:
        self._nodes: Dict[int, GraphNode] = {
            BEGIN_ID: GraphNode(BEGIN_ID, InstructionKind.BEGIN, begin_position)
        }
        self._next: Dict[int, Optional[int]] = {BEGIN_ID: None}
        self._ids = itertools.count(BEGIN_ID + 1)

    # ----- mutation ---------------------------------------------------------

    def add_node(
        self,
        kind: InstructionKind,
        position: Point = (0.0, 0.0),
    ) -> Optional[int]:
        """Place a new block with no successor and return its id.

        Operand kinds (``Not``, ``Facing …``, blank) and a second ``Begin``
        are not blocks; for those nothing is added and ``None`` is returned.
        """
        if not kind.is_statement or kind is InstructionKind.BEGIN:
            logger.debug("add_node: %s cannot be placed as a block", kind.name)
            return None
        node_id = next(self._ids)
        self._nodes[node_id] = GraphNode(node_id, kind, position)
        self._next[node_id] = None
        logger.debug("add_node: %d = %s", node_id, kind.name)
        return node_id

    def connect(self, from_id: int, to_id: int) -> bool:
        """Make *to_id* the successor of *from_id*.

        Refused (returns ``False``, graph unchanged) if either id is
        unknown or if *to_id* already reaches *from_id*, which includes
        ``from_id == to_id``.  Any previous successor is overwritten.
        """
        if from_id not in self._nodes or to_id not in self._nodes:
            logger.debug("connect: unknown block in %d -> %d", from_id, to_id)
            return False
        if self.reachable(to_id, from_id):
            logger.debug("connect: %d -> %d would close a cycle", from_id, to_id)
            return False
        self._next[from_id] = to_id
        logger.debug("connect: %d -> %d", from_id, to_id)
        return True

    def disconnect(self, from_id: int) -> bool:
        """Clear the successor of *from_id*."""
        if from_id not in self._nodes:
            return False
        self._next[from_id] = None
        logger.debug("disconnect: %d", from_id)
        return True

    def set_condition(
        self,
        node_id: int,
        kind: InstructionKind,
        slot: Optional[ConditionSlot] = None,
    ) -> bool:
        """Drop an operand onto a control block.

        Without *slot*, ``Not`` goes to the negation slot and a
        ``Facing …`` kind to the predicate slot.  ``Blank`` needs an
        explicit slot (see also :meth:`clear_condition`).  Returns
        ``False`` and changes nothing when the node is not an ``If`` /
        ``While`` or the kind does not fit the slot.
        """
        node = self._nodes.get(node_id)
        if node is None or not node.is_control:
            logger.debug("set_condition: %d is not a control block", node_id)
            return False
        if slot is None:
            if kind is InstructionKind.CONDITION_NOT:
                slot = ConditionSlot.NEGATION
            elif kind.is_predicate:
                slot = ConditionSlot.PREDICATE
            else:
                logger.debug("set_condition: no slot for %s", kind.name)
                return False
        if not slot.accepts(kind):
            logger.debug(
                "set_condition: %s does not fit the %s slot", kind.name, slot.value
            )
            return False
        if slot is ConditionSlot.NEGATION:
            node.negation = kind
        else:
            node.predicate = kind
        return True

    def clear_condition(self, node_id: int, slot: ConditionSlot) -> bool:
        return self.set_condition(node_id, InstructionKind.BLANK, slot)

    def move(self, node_id: int, position: Point) -> bool:
        node = self._nodes.get(node_id)
        if node is None:
            return False
        node.position = position
        return True

    def remove(self, ids: Iterable[int]) -> List[int]:
        """Delete blocks; return the ids actually removed.

        The ``Begin`` block and unknown ids are skipped.  Every link that
        pointed at a removed block is cleared; the removed block's own
        successor is *not* handed to its predecessor.
        """
        removed: List[int] = []
        for node_id in ids:
            if node_id == BEGIN_ID or node_id not in self._nodes:
                continue
            for other, succ in self._next.items():
                if succ == node_id:
                    self._next[other] = None
            del self._nodes[node_id]
            del self._next[node_id]
            removed.append(node_id)
        if removed:
            logger.debug("remove: %s", removed)
        return removed

    # ----- queries ----------------------------------------------------------

    def reachable(self, from_id: int, to_id: int) -> bool:
        """True iff *to_id* is met while following successors from *from_id*.

        A node reaches itself.
        """
        seen = set()
        current = from_id if from_id in self._nodes else None
        while current is not None and current not in seen:
            if current == to_id:
                return True
            seen.add(current)
            current = self._next.get(current)
        return False

    def successor(self, node_id: int) -> Optional[int]:
        return self._next.get(node_id)

    def predecessors(self, node_id: int) -> List[int]:
        return sorted(src for src, dst in self._next.items() if dst == node_id)

    def node(self, node_id: int) -> Optional[GraphNode]:
        return self._nodes.get(node_id)

    @property
    def begin(self) -> GraphNode:
        return self._nodes[BEGIN_ID]

    def chain(self, from_id: int = BEGIN_ID) -> List[int]:
        """Ids visited by following successors from *from_id*."""
        ids: List[int] = []
        current = from_id if from_id in self._nodes else None
        while current is not None and current not in ids:
            ids.append(current)
            current = self._next.get(current)
        return ids

    def edges(self) -> List[Tuple[int, int]]:
        return [(src, dst) for src, dst in sorted(self._next.items()) if dst is not None]

    def compile(self) -> "CompileResult":
        """Linearize the chain starting at ``Begin``."""
        from blockbot.linearizer import compile_graph

        return compile_graph(self)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[GraphNode]:
        return iter(sorted(self._nodes.values(), key=lambda n: n.id))

    def __repr__(self) -> str:
        return f"BlockGraph(nodes={len(self._nodes)}, edges={len(self.edges())})"
