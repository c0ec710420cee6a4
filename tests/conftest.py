# tests/conftest.py
"""
Shared fixtures for the blockbot test suite.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from blockbot.block_graph import BEGIN_ID, BlockGraph  # noqa: E402
from blockbot.grid_world import GridWorld  # noqa: E402
from blockbot.instructions import InstructionKind  # noqa: E402
from blockbot.linearizer import LinearProgram  # noqa: E402
from blockbot.mapfile import parse_map  # noqa: E402


def build_graph(*entries):
    """Chain blocks after ``Begin`` and return ``(graph, ids)``.

    Each entry is an ``InstructionKind`` or, for control blocks, a tuple
    ``(kind, operand, ...)`` of operands dropped onto the block.
    """
    graph = BlockGraph()
    ids = []
    previous = BEGIN_ID
    for entry in entries:
        kind, *operands = entry if isinstance(entry, tuple) else (entry,)
        node_id = graph.add_node(kind)
        for operand in operands:
            assert graph.set_condition(node_id, operand)
        assert graph.connect(previous, node_id)
        ids.append(node_id)
        previous = node_id
    return graph, ids


@pytest.fixture
def make_world():
    """Factory: map text → GridWorld."""
    def _make(text):
        return GridWorld(parse_map(text))
    return _make


@pytest.fixture
def program():
    """Factory: instruction kinds → LinearProgram (Begin prepended)."""
    def _make(*kinds):
        return LinearProgram.from_tokens((InstructionKind.BEGIN,) + kinds)
    return _make


@pytest.fixture
def level_file(tmp_path):
    """Factory: write map text to a temporary file and return its path."""
    def _write(text, name="level.txt"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write
