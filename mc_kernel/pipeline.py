"""
Full pipeline orchestration for a Monte Carlo model run.

Wires the compiler, simulation engine and results layer together.
"""

import time
from typing import Dict
import logging

from .types import ModelConfig
from .compiler import compile_formula, disassemble, max_stack_depth
from .simulation.engine import run_simulation
from .simulation.results import SimulationResults
from .simulation.seeding import draw_base_seed

logger = logging.getLogger(__name__)


def run_model(config: ModelConfig, verbose: bool = True) -> Dict:
    """
    Full model pipeline.

    Steps:
    1. Compile the formula against the declared inputs
    2. Resolve the base seed
    3. Simulate one lane per iteration
    4. Summarise the outputs

    Args:
        config: Model definition
        verbose: Whether to log progress

    Returns:
        Dict with raw outputs, SimulationResults, compiled program and metadata

    Raises:
        CompilationError: If the formula does not compile
        ValueError: If the run configuration is invalid or no output is finite
    """
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # === COMPILE ===
    logger.info(f"Compiling model '{config.name}': {config.formula}")
    program = compile_formula(config.formula, config.input_names)
    logger.debug("Program:\n%s", disassemble(program))

    # === SEED ===
    seed = config.seed
    if seed is None:
        seed = draw_base_seed()
        logger.info(f"No seed configured, using {seed}")

    # === SIMULATE ===
    logger.info(f"Simulating {config.iterations} iterations over {len(config.inputs)} inputs...")
    start = time.perf_counter()
    outputs = run_simulation(
        config.distributions,
        program,
        iterations=config.iterations,
        seed=seed,
        chunk_size=config.chunk_size,
    )
    elapsed = time.perf_counter() - start
    logger.info(f"Simulation finished in {elapsed:.3f}s")

    # === SUMMARISE ===
    results = SimulationResults.from_outputs(outputs)
    stats = results.statistics

    logger.info(f"Mean: {stats.mean:.6g}, std: {stats.std:.6g}")
    logger.info(f"P5-P95: [{results.percentiles[5]:.6g}, {results.percentiles[95]:.6g}]")

    return {
        'outputs': outputs,
        'results': results,
        'program': program,
        'metadata': {
            'name': config.name,
            'formula': config.formula,
            'inputs': [
                {'name': spec.name, 'distribution': spec.distribution.family_name,
                 'params': list(spec.distribution.params)}
                for spec in config.inputs
            ],
            'iterations': config.iterations,
            'seed': seed,
            'chunk_size': config.chunk_size,
            'n_instructions': len(program),
            'stack_depth': max_stack_depth(program),
            'elapsed_seconds': elapsed,
        }
    }
