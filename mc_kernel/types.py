"""
Core data structures for the Monte Carlo lane kernel.

Generator state, distribution specs and the bytecode program model shared
read-only across every lane of a run.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Iterator, List, Optional, Tuple
import numpy as np


# Fixed kernel capacities (contract constants)
MAX_INPUTS = 32
MAX_STACK = 32
MAX_OPS = 128

MASK64 = (1 << 64) - 1

# Lanes per vectorised batch in the simulation engine
DEFAULT_CHUNK_SIZE = 65_536


class DistributionFamily(IntEnum):
    """Distribution family tags (fixed integer mapping)."""
    NORMAL = 0
    UNIFORM = 1
    TRIANGULAR = 2
    EXPONENTIAL = 3
    LOGNORMAL = 4


class Opcode(IntEnum):
    """
    Evaluator opcodes.

    0-5 are the core instruction set. 6-16 are straight-line math extensions
    sharing the same numbering as the host encoding.
    """
    ADD = 0
    SUB = 1
    MUL = 2
    DIV = 3
    PUSH_INPUT = 4
    PUSH_CONST = 5
    POW = 6
    MIN = 7
    MAX = 8
    NEG = 9
    ABS = 10
    SQRT = 11
    LOG = 12
    EXP = 13
    SIN = 14
    COS = 15
    TAN = 16


BINARY_OPCODES = frozenset({
    Opcode.ADD, Opcode.SUB, Opcode.MUL, Opcode.DIV,
    Opcode.POW, Opcode.MIN, Opcode.MAX,
})

UNARY_OPCODES = frozenset({
    Opcode.NEG, Opcode.ABS, Opcode.SQRT, Opcode.LOG,
    Opcode.EXP, Opcode.SIN, Opcode.COS, Opcode.TAN,
})

PUSH_OPCODES = frozenset({Opcode.PUSH_INPUT, Opcode.PUSH_CONST})


@dataclass
class GeneratorState:
    """
    One lane's xorshift128+ state.

    Mutated in place by every draw. Must never be the all-zero pair.
    """
    s0: int
    s1: int

    def __post_init__(self) -> None:
        self.s0 = int(self.s0) & MASK64
        self.s1 = int(self.s1) & MASK64

    @property
    def is_degenerate(self) -> bool:
        return self.s0 == 0 and self.s1 == 0

    def copy(self) -> 'GeneratorState':
        return GeneratorState(self.s0, self.s1)

    def as_tuple(self) -> Tuple[int, int]:
        return (self.s0, self.s1)


@dataclass
class LaneStates:
    """
    Structure-of-arrays form of N generator states.

    Element i of ``s0``/``s1`` is lane i's state; batched kernel calls
    advance every lane by the same number of draws.
    """
    s0: np.ndarray  # [n_lanes] uint64
    s1: np.ndarray  # [n_lanes] uint64

    def __post_init__(self) -> None:
        self.s0 = np.ascontiguousarray(self.s0, dtype=np.uint64)
        self.s1 = np.ascontiguousarray(self.s1, dtype=np.uint64)
        if self.s0.shape != self.s1.shape or self.s0.ndim != 1:
            raise ValueError(
                f"LaneStates words must be matching 1-D arrays, "
                f"got {self.s0.shape} and {self.s1.shape}"
            )

    def __len__(self) -> int:
        return len(self.s0)

    @classmethod
    def from_states(cls, states: Iterable[GeneratorState]) -> 'LaneStates':
        """Pack scalar states into lane arrays."""
        states = list(states)
        return cls(
            s0=np.array([st.s0 for st in states], dtype=np.uint64),
            s1=np.array([st.s1 for st in states], dtype=np.uint64),
        )

    def lane(self, i: int) -> GeneratorState:
        """Copy of lane i as a scalar state."""
        return GeneratorState(int(self.s0[i]), int(self.s1[i]))

    def copy(self) -> 'LaneStates':
        return LaneStates(self.s0.copy(), self.s1.copy())

    def degenerate_mask(self) -> np.ndarray:
        """[n_lanes] bool - lanes stuck at the all-zero fixed point."""
        return (self.s0 == 0) & (self.s1 == 0)


@dataclass(frozen=True)
class DistributionSpec:
    """
    One model input's distribution.

    Attributes:
        family: Family tag (see DistributionFamily). Kept as a plain int so
                out-of-range tags can be represented.
        param1: mean / min / rate / logMean depending on family
        param2: stdDev / max / logStdDev
        param3: mode (Triangular only)
    """
    family: int
    param1: float = 0.0
    param2: float = 0.0
    param3: float = 0.0

    @property
    def params(self) -> Tuple[float, float, float]:
        return (self.param1, self.param2, self.param3)

    @property
    def family_name(self) -> str:
        try:
            return DistributionFamily(self.family).name.lower()
        except ValueError:
            return f"unknown({self.family})"

    @classmethod
    def normal(cls, mean: float, std_dev: float) -> 'DistributionSpec':
        return cls(DistributionFamily.NORMAL, mean, std_dev)

    @classmethod
    def uniform(cls, low: float, high: float) -> 'DistributionSpec':
        return cls(DistributionFamily.UNIFORM, low, high)

    @classmethod
    def triangular(cls, low: float, high: float, mode: float) -> 'DistributionSpec':
        return cls(DistributionFamily.TRIANGULAR, low, high, mode)

    @classmethod
    def exponential(cls, rate: float) -> 'DistributionSpec':
        return cls(DistributionFamily.EXPONENTIAL, rate)

    @classmethod
    def lognormal(cls, log_mean: float, log_std_dev: float) -> 'DistributionSpec':
        return cls(DistributionFamily.LOGNORMAL, log_mean, log_std_dev)


@dataclass(frozen=True)
class Instruction:
    """
    A single bytecode instruction.

    Attributes:
        opcode: Opcode tag
        operand: Input index (PUSH_INPUT only)
        literal: Constant value (PUSH_CONST only)
    """
    opcode: int
    operand: int = 0
    literal: float = 0.0

    @classmethod
    def push_input(cls, index: int) -> 'Instruction':
        return cls(Opcode.PUSH_INPUT, index, 0.0)

    @classmethod
    def push_const(cls, value: float) -> 'Instruction':
        return cls(Opcode.PUSH_CONST, 0, float(value))

    @classmethod
    def op(cls, opcode: Opcode) -> 'Instruction':
        return cls(opcode, 0, 0.0)

    def __str__(self) -> str:
        try:
            name = Opcode(self.opcode).name
        except ValueError:
            name = f"OP{self.opcode}"
        if self.opcode == Opcode.PUSH_INPUT:
            return f"{name} {self.operand}"
        if self.opcode == Opcode.PUSH_CONST:
            return f"{name} {self.literal!r}"
        return name


@dataclass(frozen=True)
class ModelProgram:
    """
    Immutable straight-line program shared by every lane.

    Raises:
        ValueError: If more than MAX_OPS instructions are given
    """
    instructions: Tuple[Instruction, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        instructions = tuple(self.instructions)
        if len(instructions) > MAX_OPS:
            raise ValueError(
                f"ModelProgram holds at most {MAX_OPS} instructions, "
                f"got {len(instructions)}"
            )
        object.__setattr__(self, 'instructions', instructions)

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __getitem__(self, i: int) -> Instruction:
        return self.instructions[i]

    def input_indices(self) -> Tuple[int, ...]:
        """Sorted distinct input indices referenced by PUSH_INPUT."""
        return tuple(sorted({
            ins.operand for ins in self.instructions
            if ins.opcode == Opcode.PUSH_INPUT
        }))


@dataclass
class InputSpec:
    """
    A named model input.

    Attributes:
        name: Identifier used in the model formula
        distribution: Distribution the input is drawn from
    """
    name: str
    distribution: DistributionSpec


@dataclass
class ModelConfig:
    """
    Complete model definition for one simulation run.

    Attributes:
        inputs: Declared inputs; list position = input index
        formula: Arithmetic expression over input names
        iterations: Number of trials
        seed: 64-bit base seed (None = draw from OS entropy)
        chunk_size: Lanes per vectorised batch
        name: Model label used in reports
    """
    inputs: List[InputSpec]
    formula: str
    iterations: int = 100_000
    seed: Optional[int] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    name: str = "model"

    def __post_init__(self):
        if not 1 <= len(self.inputs) <= MAX_INPUTS:
            raise ValueError(
                f"Model must declare 1-{MAX_INPUTS} inputs, got {len(self.inputs)}"
            )
        names = [spec.name for spec in self.inputs]
        if len(set(names)) != len(names):
            dupes = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Duplicate input names: {dupes}")
        if not self.formula or not self.formula.strip():
            raise ValueError("Formula must not be empty")
        if self.iterations <= 0:
            raise ValueError(f"iterations must be > 0, got {self.iterations}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got {self.chunk_size}")
        # Seed 0 leaves lane 0 at the all-zero generator state
        if self.seed is not None and not 0 < self.seed <= MASK64:
            raise ValueError(f"seed must be in [1, 2**64 - 1], got {self.seed}")

    @property
    def input_names(self) -> List[str]:
        return [spec.name for spec in self.inputs]

    @property
    def distributions(self) -> List[DistributionSpec]:
        return [spec.distribution for spec in self.inputs]
