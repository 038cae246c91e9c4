"""Shared fixtures; ensure the mc_kernel package is importable for local pytest runs."""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mc_kernel.types import DistributionSpec, Instruction, ModelProgram, Opcode  # noqa: E402


@pytest.fixture
def profit_distributions():
    return [
        DistributionSpec.normal(1000.0, 100.0),
        DistributionSpec.uniform(9.0, 11.0),
        DistributionSpec.triangular(4.0, 7.0, 5.0),
        DistributionSpec.exponential(0.01),
    ]


@pytest.fixture
def profit_program():
    # in0 * (in1 - in2) - in3
    return ModelProgram((
        Instruction.push_input(0),
        Instruction.push_input(1),
        Instruction.push_input(2),
        Instruction.op(Opcode.SUB),
        Instruction.op(Opcode.MUL),
        Instruction.push_input(3),
        Instruction.op(Opcode.SUB),
    ))


@pytest.fixture
def max_length_program():
    # 1 + 1 + ... + 1 (64 ones), negated: exactly 128 instructions
    code = [Instruction.push_const(1.0)]
    for _ in range(63):
        code.append(Instruction.push_const(1.0))
        code.append(Instruction.op(Opcode.ADD))
    code.append(Instruction.op(Opcode.NEG))
    return ModelProgram(tuple(code))
