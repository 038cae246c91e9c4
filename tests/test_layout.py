"""Binary layout tests."""

import numpy as np
import pytest

from mc_kernel.layout import (
    DISTRIBUTION_PARAMS_DTYPE,
    FAMILY_TAG_DTYPE,
    GENERATOR_STATE_DTYPE,
    INSTRUCTION_DTYPE,
    decode_distributions,
    decode_program,
    decode_states,
    encode_distributions,
    encode_program,
    encode_states,
)
from mc_kernel.types import MAX_OPS, DistributionSpec, Instruction, LaneStates, ModelProgram, Opcode


def test_record_sizes():
    assert GENERATOR_STATE_DTYPE.itemsize == 16
    assert DISTRIBUTION_PARAMS_DTYPE.itemsize == 12
    assert INSTRUCTION_DTYPE.itemsize == 12
    assert FAMILY_TAG_DTYPE.itemsize == 4


def test_state_records_keep_full_64_bits():
    states = LaneStates(
        s0=np.array([2 ** 64 - 1], dtype=np.uint64),
        s1=np.array([2 ** 63 + 5], dtype=np.uint64),
    )
    records = encode_states(states)
    assert records.tobytes() == (2 ** 64 - 1).to_bytes(8, 'little') + (2 ** 63 + 5).to_bytes(8, 'little')
    decoded = decode_states(records)
    assert decoded.lane(0) == states.lane(0)


def test_distribution_records_widen_float32():
    params, families = encode_distributions([DistributionSpec.triangular(0.1, 10.0, 3.0)])
    assert families.tolist() == [2]
    (spec,) = decode_distributions(params, families)
    assert spec.family == 2
    assert spec.param1 == float(np.float32(0.1))
    assert spec.param2 == 10.0
    assert spec.param3 == 3.0


def test_distribution_record_count_mismatch():
    params, families = encode_distributions([DistributionSpec.normal(0.0, 1.0)])
    with pytest.raises(ValueError):
        decode_distributions(params, np.zeros(2, dtype=FAMILY_TAG_DTYPE))


def test_program_records():
    prog = ModelProgram((
        Instruction.push_input(3),
        Instruction.push_const(2.5),
        Instruction.op(Opcode.MUL),
    ))
    records = encode_program(prog)
    assert records['opcode'].tolist() == [4, 5, 2]
    assert records['operand'].tolist() == [3, 0, 0]
    assert decode_program(records) == prog


def test_decode_program_rejects_over_capacity():
    records = np.zeros(MAX_OPS + 1, dtype=INSTRUCTION_DTYPE)
    with pytest.raises(ValueError):
        decode_program(records)
