"""Seeding and simulation engine tests."""

import logging

import numpy as np
import pytest

from mc_kernel.kernel.rng import next_uniform
from mc_kernel.simulation import run_lane_trial, run_simulation, seed_lane, seed_lanes
from mc_kernel.simulation.seeding import WARMUP_DRAWS
from mc_kernel.types import (
    MAX_INPUTS,
    DistributionSpec,
    GeneratorState,
    Instruction,
    ModelProgram,
    Opcode,
)


def test_seed_lane_derivation():
    seed, lane = 0xDEADBEEF_CAFEF00D, 7
    expected = GeneratorState(seed ^ lane, (seed >> 32) ^ (lane << 32))
    for _ in range(WARMUP_DRAWS):
        next_uniform(expected)
    assert seed_lane(seed, lane) == expected


def test_seed_lanes_matches_seed_lane():
    states = seed_lanes(2 ** 63 + 11, [0, 1, 1000, 2 ** 31])
    for i, t in enumerate([0, 1, 1000, 2 ** 31]):
        assert states.lane(i) == seed_lane(2 ** 63 + 11, t)


def test_all_zero_seed_is_rejected():
    with pytest.raises(ValueError):
        seed_lane(0, 0)
    with pytest.raises(ValueError):
        seed_lanes(0, np.arange(4))
    # Seed 0 is fine for every other lane
    assert not seed_lane(0, 1).is_degenerate


def test_run_is_reproducible(profit_distributions, profit_program):
    a = run_simulation(profit_distributions, profit_program, 5_000, seed=42)
    b = run_simulation(profit_distributions, profit_program, 5_000, seed=42)
    assert a.shape == (5_000,)
    assert np.array_equal(a, b)


def test_different_seeds_differ(profit_distributions, profit_program):
    a = run_simulation(profit_distributions, profit_program, 100, seed=1)
    b = run_simulation(profit_distributions, profit_program, 100, seed=2)
    assert not np.array_equal(a, b)


def test_run_is_independent_of_chunk_size(profit_distributions, profit_program):
    whole = run_simulation(profit_distributions, profit_program, 1_000, seed=9)
    chunked = run_simulation(profit_distributions, profit_program, 1_000, seed=9, chunk_size=37)
    np.testing.assert_allclose(whole, chunked, rtol=1e-12)


def test_lanes_match_scalar_trials(profit_distributions, profit_program):
    outputs = run_simulation(profit_distributions, profit_program, 25, seed=77)
    expected = [
        run_lane_trial(seed_lane(77, lane), profit_distributions, profit_program)
        for lane in range(25)
    ]
    np.testing.assert_allclose(outputs, expected, rtol=1e-12)


def test_unseeded_run(profit_distributions, profit_program):
    outputs = run_simulation(profit_distributions, profit_program, 10)
    assert outputs.shape == (10,)
    assert np.isfinite(outputs).all()


def test_non_finite_outputs_are_kept(caplog):
    dists = [DistributionSpec.uniform(0.0, 1.0)]
    prog = ModelProgram((
        Instruction.push_input(0),
        Instruction.push_const(0.0),
        Instruction.op(Opcode.DIV),
    ))
    with caplog.at_level(logging.WARNING):
        outputs = run_simulation(dists, prog, 50, seed=3)
    assert np.isinf(outputs).sum() == 50
    assert "non-finite" in caplog.text


@pytest.mark.parametrize("n_dists", [0, MAX_INPUTS + 1])
def test_distribution_count_limits(n_dists):
    prog = ModelProgram((Instruction.push_const(1.0),))
    with pytest.raises(ValueError):
        run_simulation([DistributionSpec.normal(0.0, 1.0)] * n_dists, prog, 10, seed=1)


def test_rejects_bad_run_arguments(profit_distributions, profit_program):
    with pytest.raises(ValueError):
        run_simulation(profit_distributions, profit_program, 0, seed=1)
    with pytest.raises(ValueError):
        run_simulation(profit_distributions, profit_program, 10, seed=1, chunk_size=0)


def test_rejects_unknown_family(profit_program):
    dists = [DistributionSpec(family=7)] * 4
    with pytest.raises(ValueError, match="unknown family"):
        run_simulation(dists, profit_program, 10, seed=1)


def test_rejects_input_index_beyond_declared_inputs(profit_program):
    with pytest.raises(ValueError):
        run_simulation([DistributionSpec.normal(0.0, 1.0)], profit_program, 10, seed=1)


def test_rejects_empty_program(profit_distributions):
    with pytest.raises(ValueError):
        run_simulation(profit_distributions, ModelProgram(()), 10, seed=1)


def test_lane_trial_reuses_supplied_stack(profit_distributions, profit_program):
    stack = np.full(32, 99.0)
    value = run_lane_trial(seed_lane(77, 3), profit_distributions, profit_program, stack=stack)
    expected = run_lane_trial(seed_lane(77, 3), profit_distributions, profit_program)
    assert value == expected
    assert stack[0] == value
