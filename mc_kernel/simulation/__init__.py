"""Monte Carlo simulation engine."""

from .engine import run_simulation, run_lane_trial, DEFAULT_CHUNK_SIZE
from .results import SimulationResults, SimulationStatistics
from .seeding import seed_lane, seed_lanes, draw_base_seed

__all__ = [
    "run_simulation",
    "run_lane_trial",
    "DEFAULT_CHUNK_SIZE",
    "SimulationResults",
    "SimulationStatistics",
    "seed_lane",
    "seed_lanes",
    "draw_base_seed",
]
