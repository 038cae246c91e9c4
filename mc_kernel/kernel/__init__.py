"""Per-lane kernel: random engine, distribution samplers, bytecode evaluator."""

from .rng import (
    next_uniform,
    next_normal,
    next_normal_pair,
    next_uniform_lanes,
    next_normal_lanes,
    next_normal_pair_lanes,
)
from .distributions import sample, sample_lanes, draws_per_sample
from .evaluator import evaluate, evaluate_lanes

__all__ = [
    "next_uniform",
    "next_normal",
    "next_normal_pair",
    "next_uniform_lanes",
    "next_normal_lanes",
    "next_normal_pair_lanes",
    "sample",
    "sample_lanes",
    "draws_per_sample",
    "evaluate",
    "evaluate_lanes",
]
