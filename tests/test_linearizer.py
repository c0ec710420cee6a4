# tests/test_linearizer.py
"""
Tests for compiling a block graph into a linear program and for the
structural errors reported along the way.
"""

import pytest

from blockbot.block_graph import BEGIN_ID, BlockGraph
from blockbot.errors import ErrorKind, StructuralError
from blockbot.instructions import InstructionKind as K
from blockbot.linearizer import CompileResult, LinearProgram, compile_graph
from tests.conftest import build_graph


class TestEmission:

    def test_lone_begin(self):
        result = compile_graph(BlockGraph())
        assert result.ok
        assert result.program.tokens == (K.BEGIN,)
        assert result.program.source_map == {0: BEGIN_ID}

    def test_straight_chain(self):
        graph, ids = build_graph(K.MOVE_FORWARD, K.TURN_LEFT, K.EAT_CHEESE)
        program = compile_graph(graph).program
        assert program.tokens == (K.BEGIN, K.MOVE_FORWARD, K.TURN_LEFT, K.EAT_CHEESE)
        assert program.source_map == {0: 0, 1: ids[0], 2: ids[1], 3: ids[2]}

    def test_control_block_emits_three_tokens(self):
        graph, (loop, step, end) = build_graph(
            (K.WHILE, K.CONDITION_NOT, K.FACING_WALL),
            K.MOVE_FORWARD,
            K.END_WHILE,
        )
        program = graph.compile().program
        assert program.tokens == (
            K.BEGIN, K.WHILE, K.CONDITION_NOT, K.FACING_WALL,
            K.MOVE_FORWARD, K.END_WHILE,
        )
        # operand slots are never mapped
        assert program.source_map == {0: 0, 1: loop, 4: step, 5: end}
        assert program.node_at(2) is None
        assert program.node_at(4) == step

    def test_blank_negation_compiles(self):
        graph, _ = build_graph((K.IF, K.FACING_PIT), K.TURN_RIGHT, K.END_IF)
        program = graph.compile().program
        assert program.tokens[1:4] == (K.IF, K.BLANK, K.FACING_PIT)

    def test_nested_blocks(self):
        graph, _ = build_graph(
            (K.WHILE, K.CONDITION_NOT, K.FACING_CHEESE),
            (K.IF, K.FACING_WALL),
            K.TURN_LEFT,
            K.END_IF,
            K.MOVE_FORWARD,
            K.END_WHILE,
            K.EAT_CHEESE,
        )
        result = graph.compile()
        assert result.ok
        assert len(result.program) == 12

    def test_unattached_blocks_are_ignored(self):
        graph, _ = build_graph(K.MOVE_FORWARD)
        graph.add_node(K.END_IF)
        stray = graph.add_node(K.IF)
        graph.set_condition(stray, K.FACING_WALL)
        result = graph.compile()
        assert result.ok
        assert result.program.tokens == (K.BEGIN, K.MOVE_FORWARD)

    def test_compile_does_not_touch_the_graph(self):
        graph, ids = build_graph((K.IF, K.FACING_WALL), K.END_IF)
        edges, conditions = graph.edges(), [graph.node(i).condition for i in ids]
        graph.compile()
        graph.compile()
        assert graph.edges() == edges
        assert [graph.node(i).condition for i in ids] == conditions

    def test_result_is_truthy_only_on_success(self):
        ok = BlockGraph().compile()
        bad, _ = build_graph(K.END_IF)
        assert ok and isinstance(ok, CompileResult)
        assert not bad.compile()


class TestStructuralErrors:

    def test_incomplete_condition(self):
        graph, (branch, _) = build_graph((K.IF, K.CONDITION_NOT), K.END_IF)
        result = graph.compile()
        assert result.program is None
        assert result.error.as_triple() == (
            branch, ErrorKind.INCOMPLETE_CONDITION, "Incomplete conditional statement",
        )
        assert result.error.code == "BBOT-1001"

    def test_end_if_without_if(self):
        graph, (_, end) = build_graph(K.MOVE_FORWARD, K.END_IF)
        error = graph.compile().error
        assert error.node_id == end
        assert error.kind is ErrorKind.UNMATCHED_END
        assert error.message == "No matching If for End If"

    def test_end_while_without_while(self):
        graph, (end,) = build_graph(K.END_WHILE)
        error = graph.compile().error
        assert error.node_id == end
        assert error.message == "No matching While for End While"

    def test_crossed_closers(self):
        graph, (_, _, end_if, _) = build_graph(
            (K.WHILE, K.FACING_WALL), K.TURN_LEFT, K.END_IF, K.END_WHILE,
        )
        error = graph.compile().error
        assert error.node_id == end_if
        assert error.kind is ErrorKind.UNMATCHED_END

    def test_missing_end(self):
        graph, (branch, _) = build_graph((K.IF, K.FACING_WALL), K.TURN_LEFT)
        error = graph.compile().error
        assert error.node_id == branch
        assert error.kind is ErrorKind.MISSING_END
        assert error.message == "Needs end statement"
        assert error.code == "BBOT-1003"

    def test_missing_end_reports_oldest_opener(self):
        graph, (outer, inner, _) = build_graph(
            (K.WHILE, K.FACING_WALL), (K.IF, K.FACING_PIT), K.END_IF,
        )
        graph2, (outer2, inner2) = build_graph(
            (K.WHILE, K.FACING_WALL), (K.IF, K.FACING_PIT),
        )
        assert graph.compile().error.node_id == outer
        assert graph2.compile().error.node_id == outer2

    def test_first_error_in_chain_order_wins(self):
        graph, (blank_if, _) = build_graph(K.IF, K.END_WHILE)
        assert graph.compile().error.node_id == blank_if

    def test_error_value_serialises(self):
        graph, (end,) = build_graph(K.END_IF)
        payload = graph.compile().error.to_json()
        assert payload == {
            "code": "BBOT-1002",
            "kind": "UnmatchedEnd",
            "node": end,
            "message": "No matching If for End If",
        }
        assert isinstance(graph.compile().error, StructuralError)


class TestLinearProgram:

    def test_from_tokens(self):
        program = LinearProgram.from_tokens([K.BEGIN, K.MOVE_FORWARD])
        assert len(program) == 2
        assert program[1] is K.MOVE_FORWARD
        assert list(program) == [K.BEGIN, K.MOVE_FORWARD]
        assert program.node_at(1) is None

    def test_listing_indents_bodies(self):
        graph, _ = build_graph(
            (K.WHILE, K.CONDITION_NOT, K.FACING_WALL), K.MOVE_FORWARD, K.END_WHILE,
        )
        lines = graph.compile().program.listing()
        assert lines == [
            "   0  Begin  (block 0)",
            "   1  While Not Facing Wall  (block 1)",
            "   4    Move Forward  (block 2)",
            "   5  End While  (block 3)",
        ]

    def test_program_is_immutable(self):
        program = BlockGraph().compile().program
        with pytest.raises(AttributeError):
            program.tokens = ()
