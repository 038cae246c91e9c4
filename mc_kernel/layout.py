"""
Binary layouts shared with the host encoding.

numpy structured dtypes for generator states, distribution parameters and
program instructions, plus pack/unpack helpers. Family tags travel in a
separate int32 array alongside the parameter records.
"""

import numpy as np
from typing import List, Sequence, Tuple

from .types import DistributionSpec, Instruction, LaneStates, ModelProgram


GENERATOR_STATE_DTYPE = np.dtype([
    ('s0', '<u8'),
    ('s1', '<u8'),
])

DISTRIBUTION_PARAMS_DTYPE = np.dtype([
    ('param1', '<f4'),
    ('param2', '<f4'),
    ('param3', '<f4'),
])

FAMILY_TAG_DTYPE = np.dtype('<i4')

INSTRUCTION_DTYPE = np.dtype([
    ('opcode', '<i4'),
    ('operand', '<i4'),
    ('literal', '<f4'),
])


# =============================================================================
# Generator states
# =============================================================================

def encode_states(states: LaneStates) -> np.ndarray:
    """Pack lane states into [n_lanes] GENERATOR_STATE_DTYPE records."""
    records = np.empty(len(states), dtype=GENERATOR_STATE_DTYPE)
    records['s0'] = states.s0
    records['s1'] = states.s1
    return records


def decode_states(records: np.ndarray) -> LaneStates:
    records = np.asarray(records, dtype=GENERATOR_STATE_DTYPE)
    return LaneStates(s0=records['s0'].copy(), s1=records['s1'].copy())


# =============================================================================
# Distributions
# =============================================================================

def encode_distributions(
    specs: Sequence[DistributionSpec]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Pack distribution specs.

    Returns:
        params: [n] DISTRIBUTION_PARAMS_DTYPE records (float32)
        families: [n] int32 family tags
    """
    params = np.empty(len(specs), dtype=DISTRIBUTION_PARAMS_DTYPE)
    params['param1'] = [s.param1 for s in specs]
    params['param2'] = [s.param2 for s in specs]
    params['param3'] = [s.param3 for s in specs]
    families = np.array([s.family for s in specs], dtype=FAMILY_TAG_DTYPE)
    return params, families


def decode_distributions(
    params: np.ndarray,
    families: np.ndarray
) -> List[DistributionSpec]:
    if len(params) != len(families):
        raise ValueError(
            f"{len(params)} parameter records but {len(families)} family tags"
        )
    return [
        DistributionSpec(
            family=int(tag),
            param1=float(rec['param1']),
            param2=float(rec['param2']),
            param3=float(rec['param3']),
        )
        for rec, tag in zip(params, families)
    ]


# =============================================================================
# Programs
# =============================================================================

def encode_program(program: ModelProgram) -> np.ndarray:
    """Pack a program into [n_ops] INSTRUCTION_DTYPE records."""
    records = np.empty(len(program), dtype=INSTRUCTION_DTYPE)
    records['opcode'] = [int(ins.opcode) for ins in program]
    records['operand'] = [ins.operand for ins in program]
    records['literal'] = [ins.literal for ins in program]
    return records


def decode_program(records: np.ndarray) -> ModelProgram:
    """
    Unpack instruction records.

    Raises:
        ValueError: If more than MAX_OPS records are given
    """
    return ModelProgram(tuple(
        Instruction(
            opcode=int(rec['opcode']),
            operand=int(rec['operand']),
            literal=float(rec['literal']),
        )
        for rec in np.asarray(records, dtype=INSTRUCTION_DTYPE)
    ))
