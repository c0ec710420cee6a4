# tests/test_runner.py
"""
Tests for the driver loop: budgets, traces and step observers.
"""

import logging

import pytest

from blockbot.instructions import InstructionKind as K, RunState
from blockbot.interpreter import EndWhilePolicy
from blockbot.runner import RunConfig, RunResult, StepObserver, run_program


WALK = (
    K.WHILE, K.CONDITION_NOT, K.FACING_CHEESE,
    K.MOVE_FORWARD,
    K.END_WHILE,
    K.MOVE_FORWARD,
    K.EAT_CHEESE,
)


class Recorder:

    def __init__(self):
        self.calls = []

    def observe(self, step, interpreter):
        self.calls.append((step, interpreter.robot_position.x))


class TestRunConfig:

    def test_defaults_are_valid(self):
        config = RunConfig()
        assert config.validate() == []
        assert config.max_steps is None
        assert config.end_while is EndWhilePolicy.REEVALUATE

    @pytest.mark.parametrize("steps", [0, -5])
    def test_non_positive_budget_is_flagged(self, steps):
        assert RunConfig(max_steps=steps).validate()

    def test_invalid_config_is_rejected(self, make_world, program):
        with pytest.raises(ValueError):
            run_program(make_world("S"), program(), RunConfig(max_steps=0))


class TestRunProgram:

    def test_run_to_win(self, make_world, program):
        result = run_program(make_world("S..C"), program(*WALK))
        assert isinstance(result, RunResult)
        assert result.won
        assert result.state is RunState.WON
        assert result.steps == 9
        assert not result.budget_exhausted

    def test_trace_holds_executed_indices(self, make_world, program):
        result = run_program(make_world("S..C"), program(*WALK))
        assert result.trace == [1, 4, 5, 1, 4, 5, 1, 6, 7]

    def test_trace_can_be_disabled(self, make_world, program):
        result = run_program(
            make_world("S..C"), program(*WALK), RunConfig(record_trace=False),
        )
        assert result.trace == []

    def test_overrun_is_recorded(self, make_world, program):
        result = run_program(make_world("S.C"), program(K.MOVE_FORWARD))
        assert result.state is RunState.LOST
        assert result.trace == [1, 2]

    def test_budget_stops_endless_loop(self, make_world, program, caplog):
        endless = program(K.WHILE, K.BLANK, K.FACING_WALL, K.TURN_LEFT, K.TURN_RIGHT, K.END_WHILE)
        with caplog.at_level(logging.WARNING, logger="blockbot"):
            result = run_program(make_world("S#"), endless, RunConfig(max_steps=50))
        assert result.budget_exhausted
        assert result.steps == 50
        assert result.state is RunState.NOT_ENDED
        assert "budget" in caplog.text

    def test_budget_not_reported_when_run_ends_first(self, make_world, program):
        result = run_program(make_world("SC"), program(K.MOVE_FORWARD, K.EAT_CHEESE),
                             RunConfig(max_steps=2))
        assert result.won
        assert not result.budget_exhausted

    def test_restart_policy_is_passed_through(self, make_world, program):
        result = run_program(
            make_world("S..C"), program(*WALK),
            RunConfig(end_while=EndWhilePolicy.RESTART),
        )
        assert result.won
        assert result.trace[:4] == [1, 4, 5, 1]

    def test_observers_see_every_step(self, make_world, program):
        recorder = Recorder()
        assert isinstance(recorder, StepObserver)
        run_program(make_world("S..C"), program(*WALK), observers=[recorder])
        assert [step for step, _ in recorder.calls] == list(range(1, 10))
        assert recorder.calls[1] == (2, 1)

    def test_caller_world_survives_a_lost_run(self, make_world, program):
        world = make_world("S0C")
        first = run_program(world, program(K.MOVE_FORWARD))
        second = run_program(world, program(K.TURN_LEFT), RunConfig(max_steps=1))
        assert first.state is RunState.LOST
        assert second.interpreter.robot_position == world.robot.position
