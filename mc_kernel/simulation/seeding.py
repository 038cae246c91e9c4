"""
Lane seeding.

Each lane's state is derived from (base seed, global lane index) alone, so a
lane produces the same stream regardless of how lanes are chunked:

    s0 = base_seed ^ lane_id
    s1 = (base_seed >> 32) ^ (lane_id << 32)

followed by WARMUP_DRAWS discarded draws to decorrelate neighbouring lanes.
"""

import numpy as np
from typing import Sequence, Union

from ..kernel.rng import next_uniform, next_uniform_lanes
from ..types import GeneratorState, LaneStates, MASK64

WARMUP_DRAWS = 10

_U32 = np.uint64(32)


def seed_lane(base_seed: int, lane_id: int) -> GeneratorState:
    """
    Seed a single lane.

    Raises:
        ValueError: If the lane would start from the all-zero state
    """
    base_seed &= MASK64
    state = GeneratorState(
        base_seed ^ lane_id,
        (base_seed >> 32) ^ ((lane_id << 32) & MASK64),
    )
    if state.is_degenerate:
        raise ValueError(
            f"Base seed {base_seed} gives lane {lane_id} an all-zero generator state"
        )
    for _ in range(WARMUP_DRAWS):
        next_uniform(state)
    return state


def seed_lanes(
    base_seed: int,
    lane_ids: Union[Sequence[int], np.ndarray]
) -> LaneStates:
    """
    Seed a batch of lanes.

    Args:
        base_seed: 64-bit run seed
        lane_ids: Global lane indices

    Raises:
        ValueError: If any lane would start from the all-zero state
    """
    lane_ids = np.asarray(lane_ids, dtype=np.uint64)
    seed = np.uint64(base_seed & MASK64)

    states = LaneStates(
        s0=seed ^ lane_ids,
        s1=(seed >> _U32) ^ (lane_ids << _U32),
    )

    degenerate = states.degenerate_mask()
    if degenerate.any():
        bad = [int(t) for t in lane_ids[degenerate][:5]]
        raise ValueError(
            f"Base seed {int(seed)} gives lanes {bad} an all-zero generator state"
        )

    for _ in range(WARMUP_DRAWS):
        next_uniform_lanes(states)
    return states


def draw_base_seed() -> int:
    """Fresh 64-bit base seed from OS entropy."""
    return int(np.random.SeedSequence().generate_state(1, dtype=np.uint64)[0])
