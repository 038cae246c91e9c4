"""
Per-lane xorshift128+ random engine.

Each lane owns its generator state and passes it explicitly into every call;
there is no module-level generator. Two forms share one recurrence:

- scalar: ``GeneratorState`` with Python ints, one draw per call
- batched: ``LaneStates`` with uint64 arrays, one draw per lane per call

Uniform deviates use the top 53 bits of ``s0 + s1`` so every value is exactly
representable as float64 and strictly below 1.0.
"""

import numpy as np
from typing import Tuple

from ..types import GeneratorState, LaneStates, MASK64

_INV_2_53 = 1.0 / (1 << 53)

# Box-Muller floor on u1 so ln(u1) stays finite
MIN_BOX_MULLER_U = 1e-10

_U23 = np.uint64(23)
_U18 = np.uint64(18)
_U11 = np.uint64(11)
_U5 = np.uint64(5)


# =============================================================================
# Scalar lane
# =============================================================================

def next_uniform(state: GeneratorState) -> float:
    """Advance ``state`` one step and return a uniform deviate in [0, 1)."""
    s1 = state.s0
    s0 = state.s1
    state.s0 = s0
    s1 ^= (s1 << 23) & MASK64
    state.s1 = s1 ^ s0 ^ (s1 >> 18) ^ (s0 >> 5)
    return (((state.s0 + state.s1) & MASK64) >> 11) * _INV_2_53


def next_normal_pair(
    state: GeneratorState,
    mean: float,
    std_dev: float
) -> Tuple[float, float]:
    """
    Two independent normal deviates via Box-Muller.

    Consumes exactly two uniform draws.
    """
    u1 = max(next_uniform(state), MIN_BOX_MULLER_U)
    u2 = next_uniform(state)
    r = np.sqrt(-2.0 * np.log(u1))
    theta = 2.0 * np.pi * u2
    return (
        float(mean + std_dev * r * np.cos(theta)),
        float(mean + std_dev * r * np.sin(theta)),
    )


def next_normal(state: GeneratorState, mean: float, std_dev: float) -> float:
    """First Box-Muller deviate; the second is discarded."""
    return next_normal_pair(state, mean, std_dev)[0]


# =============================================================================
# Batched lanes
# =============================================================================

def next_uniform_lanes(states: LaneStates) -> np.ndarray:
    """
    Advance every lane one step in place.

    Returns:
        [n_lanes] float64 uniform deviates in [0, 1)
    """
    s0 = states.s0
    s1 = states.s1

    # x = s0 ^ (s0 << 23), computed before s0 is overwritten
    x = np.left_shift(s0, _U23)
    x ^= s0

    new_s1 = np.right_shift(x, _U18)
    new_s1 ^= x
    new_s1 ^= s1
    np.right_shift(s1, _U5, out=x)
    new_s1 ^= x

    s0[...] = s1
    s1[...] = new_s1

    np.add(s0, s1, out=x)  # wraps mod 2**64
    x >>= _U11
    return x.astype(np.float64) * _INV_2_53


def next_normal_pair_lanes(
    states: LaneStates,
    mean: float,
    std_dev: float
) -> Tuple[np.ndarray, np.ndarray]:
    """Batched Box-Muller; two uniform draws per lane."""
    u1 = np.maximum(next_uniform_lanes(states), MIN_BOX_MULLER_U)
    u2 = next_uniform_lanes(states)
    r = np.sqrt(-2.0 * np.log(u1))
    theta = 2.0 * np.pi * u2
    return (
        mean + std_dev * r * np.cos(theta),
        mean + std_dev * r * np.sin(theta),
    )


def next_normal_lanes(states: LaneStates, mean: float, std_dev: float) -> np.ndarray:
    return next_normal_pair_lanes(states, mean, std_dev)[0]
