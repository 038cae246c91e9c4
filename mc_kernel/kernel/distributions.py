"""
Inverse-CDF / transform samplers driven by the lane generator.

Draw-count contract per sample: Normal and Lognormal consume two uniform
draws (Box-Muller), Uniform, Triangular and Exponential consume one, an
unknown family consumes none and yields 0.0.

All arithmetic follows IEEE-754: degenerate parameters produce inf/NaN
rather than exceptions.
"""

import numpy as np
from typing import Optional

from ..types import DistributionFamily, DistributionSpec, GeneratorState, LaneStates
from .rng import next_normal, next_normal_lanes, next_uniform, next_uniform_lanes

# Floor on 1 - U so the exponential transform stays finite
MIN_EXPONENTIAL_TAIL = 1e-10

DRAWS_PER_SAMPLE = {
    DistributionFamily.NORMAL: 2,
    DistributionFamily.UNIFORM: 1,
    DistributionFamily.TRIANGULAR: 1,
    DistributionFamily.EXPONENTIAL: 1,
    DistributionFamily.LOGNORMAL: 2,
}


def draws_per_sample(family: int) -> int:
    """Uniform draws one sample of ``family`` consumes (0 if unknown)."""
    return DRAWS_PER_SAMPLE.get(family, 0)


def sample(
    state: GeneratorState,
    spec: DistributionSpec,
    family: Optional[int] = None
) -> float:
    """
    Draw one value from ``spec``.

    Args:
        state: Lane generator state, advanced in place
        spec: Distribution parameters
        family: Family tag; defaults to ``spec.family``

    Returns:
        The sampled value, or 0.0 for an unknown family
    """
    if family is None:
        family = spec.family
    p1, p2, p3 = spec.param1, spec.param2, spec.param3

    with np.errstate(all='ignore'):
        if family == DistributionFamily.NORMAL:
            return next_normal(state, p1, p2)

        if family == DistributionFamily.UNIFORM:
            return float(p1 + next_uniform(state) * (p2 - p1))

        if family == DistributionFamily.TRIANGULAR:
            low, high, mode = p1, p2, p3
            u = next_uniform(state)
            fc = np.float64(mode - low) / np.float64(high - low)
            if u < fc:
                return float(low + np.sqrt(np.float64(u * (high - low) * (mode - low))))
            return float(high - np.sqrt(np.float64((1.0 - u) * (high - low) * (high - mode))))

        if family == DistributionFamily.EXPONENTIAL:
            tail = max(1.0 - next_uniform(state), MIN_EXPONENTIAL_TAIL)
            return float(-np.log(tail) / np.float64(p1))

        if family == DistributionFamily.LOGNORMAL:
            return float(np.exp(next_normal(state, p1, p2)))

    return 0.0


def sample_lanes(
    states: LaneStates,
    spec: DistributionSpec,
    family: Optional[int] = None
) -> np.ndarray:
    """
    Draw one value per lane from ``spec``.

    Same formulas and draw counts as ``sample``, applied element-wise.

    Returns:
        [n_lanes] float64 samples
    """
    if family is None:
        family = spec.family
    p1, p2, p3 = spec.param1, spec.param2, spec.param3
    n_lanes = len(states)

    with np.errstate(all='ignore'):
        if family == DistributionFamily.NORMAL:
            return next_normal_lanes(states, p1, p2)

        if family == DistributionFamily.UNIFORM:
            return p1 + next_uniform_lanes(states) * (p2 - p1)

        if family == DistributionFamily.TRIANGULAR:
            low, high, mode = p1, p2, p3
            u = next_uniform_lanes(states)
            fc = np.float64(mode - low) / np.float64(high - low)
            left = low + np.sqrt(u * (high - low) * (mode - low))
            right = high - np.sqrt((1.0 - u) * (high - low) * (high - mode))
            return np.where(u < fc, left, right)

        if family == DistributionFamily.EXPONENTIAL:
            tail = np.maximum(1.0 - next_uniform_lanes(states), MIN_EXPONENTIAL_TAIL)
            return -np.log(tail) / np.float64(p1)

        if family == DistributionFamily.LOGNORMAL:
            return np.exp(next_normal_lanes(states, p1, p2))

    return np.zeros(n_lanes, dtype=np.float64)
