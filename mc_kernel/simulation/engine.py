"""
Monte Carlo simulation engine.

Dispatches one lane per iteration through the kernel pipeline:
seed lane -> sample every declared input -> evaluate the model program.
Lanes are processed in chunks; the input matrix and evaluator stack are
allocated once and reused by every chunk.
"""

import numpy as np
from typing import List, Optional, Sequence
import logging

from ..compiler.validation import validate_program
from ..kernel.distributions import sample, sample_lanes
from ..kernel.evaluator import evaluate, evaluate_lanes
from ..types import (
    DEFAULT_CHUNK_SIZE,
    MAX_INPUTS,
    MAX_STACK,
    DistributionFamily,
    DistributionSpec,
    GeneratorState,
    ModelProgram,
)
from .seeding import draw_base_seed, seed_lanes

logger = logging.getLogger(__name__)


def run_simulation(
    distributions: Sequence[DistributionSpec],
    program: ModelProgram,
    iterations: int,
    seed: Optional[int] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> np.ndarray:
    """
    Run ``iterations`` independent trials.

    Args:
        distributions: One spec per model input, in input-index order
        program: Compiled model program
        iterations: Number of lanes (one trial each)
        seed: 64-bit base seed. If None, one is drawn from OS entropy.
        chunk_size: Lanes processed per vectorised batch

    Returns:
        outputs: [iterations] float64 trial results. Non-finite values
                 (e.g. division by zero) are kept as-is.

    Raises:
        ValueError: If the run configuration is invalid
    """
    _validate_run(distributions, program, iterations, chunk_size)

    if seed is None:
        seed = draw_base_seed()
        logger.info("No seed supplied, drew base seed %d", seed)

    n_inputs = len(distributions)
    chunk = min(chunk_size, iterations)

    inputs = np.empty((n_inputs, chunk), dtype=np.float64)
    stack = np.zeros((MAX_STACK, chunk), dtype=np.float64)
    outputs = np.empty(iterations, dtype=np.float64)

    n_chunks = (iterations + chunk - 1) // chunk
    logger.info(
        f"Running {iterations} lanes in {n_chunks} chunk(s) of up to {chunk}: "
        f"{n_inputs} inputs, {len(program)} instructions"
    )

    for start in range(0, iterations, chunk):
        stop = min(start + chunk, iterations)
        n = stop - start
        states = seed_lanes(seed, np.arange(start, stop, dtype=np.uint64))

        # Inputs are sampled in declaration order so each lane's draw
        # sequence matches the scalar pipeline
        for i, dist in enumerate(distributions):
            inputs[i, :n] = sample_lanes(states, dist)

        outputs[start:stop] = evaluate_lanes(program, inputs[:, :n], stack=stack)

    n_nonfinite = int(np.count_nonzero(~np.isfinite(outputs)))
    if n_nonfinite:
        logger.warning(
            "%d of %d trial outputs are non-finite", n_nonfinite, iterations
        )

    return outputs


def run_lane_trial(
    state: GeneratorState,
    distributions: Sequence[DistributionSpec],
    program: ModelProgram,
    stack: Optional[np.ndarray] = None
) -> float:
    """
    One trial on one lane with the scalar kernel.

    Advances ``state`` by the draws of every input, in declaration order.
    Pass a [MAX_STACK] float64 ``stack`` to reuse it across trials.
    """
    inputs: List[float] = [sample(state, dist) for dist in distributions]
    return evaluate(program, inputs, stack=stack)


def _validate_run(
    distributions: Sequence[DistributionSpec],
    program: ModelProgram,
    iterations: int,
    chunk_size: int
) -> None:
    """Reject configurations the kernel cannot report on once dispatched."""
    n_inputs = len(distributions)
    if not 1 <= n_inputs <= MAX_INPUTS:
        raise ValueError(
            f"Number of distributions must be 1-{MAX_INPUTS}, got {n_inputs}"
        )
    if iterations <= 0:
        raise ValueError(f"Iterations must be > 0, got {iterations}")
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be > 0, got {chunk_size}")

    for i, dist in enumerate(distributions):
        try:
            DistributionFamily(dist.family)
        except ValueError:
            raise ValueError(
                f"Distribution {i} has unknown family tag {dist.family}"
            ) from None

    validate_program(program, n_inputs=n_inputs)
