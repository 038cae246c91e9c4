"""
Static checks that make a ModelProgram safe for the evaluator.

The evaluator performs no capacity checks at run time, so every program is
validated here before dispatch: length, input indices, stack underflow,
peak depth and final depth.
"""

from ..types import (
    BINARY_OPCODES,
    MAX_INPUTS,
    MAX_OPS,
    MAX_STACK,
    PUSH_OPCODES,
    UNARY_OPCODES,
    ModelProgram,
    Opcode,
)


class CompilationError(ValueError):
    """Formula or program cannot be executed within kernel capacities."""


def stack_effect(opcode: int) -> int:
    """
    Net stack change of one instruction.

    Raises:
        CompilationError: If the opcode is not part of the instruction set
    """
    if opcode in PUSH_OPCODES:
        return 1
    if opcode in BINARY_OPCODES:
        return -1
    if opcode in UNARY_OPCODES:
        return 0
    raise CompilationError(f"Unknown opcode {opcode}")


def _operands_needed(opcode: int) -> int:
    if opcode in BINARY_OPCODES:
        return 2
    if opcode in UNARY_OPCODES:
        return 1
    return 0


def max_stack_depth(program: ModelProgram) -> int:
    """Peak stack depth reached while executing ``program``."""
    depth = 0
    peak = 0
    for ins in program:
        depth += stack_effect(ins.opcode)
        peak = max(peak, depth)
    return peak


def validate_program(program: ModelProgram, n_inputs: int = MAX_INPUTS) -> int:
    """
    Check ``program`` against kernel capacities.

    Args:
        program: Program to check
        n_inputs: Number of declared inputs (input indices must be below it)

    Returns:
        Peak stack depth

    Raises:
        CompilationError: On any capacity or well-formedness violation
    """
    n_ops = len(program)
    if n_ops == 0:
        raise CompilationError("Program is empty")
    if n_ops > MAX_OPS:
        raise CompilationError(f"Program has {n_ops} instructions (max {MAX_OPS})")

    input_limit = min(n_inputs, MAX_INPUTS)
    depth = 0
    peak = 0
    for pc, ins in enumerate(program):
        needed = _operands_needed(ins.opcode)
        if depth < needed:
            raise CompilationError(
                f"Stack underflow at instruction {pc} ({ins}): "
                f"needs {needed}, depth is {depth}"
            )
        if ins.opcode == Opcode.PUSH_INPUT and not 0 <= ins.operand < input_limit:
            raise CompilationError(
                f"Input index {ins.operand} at instruction {pc} is outside "
                f"[0, {input_limit})"
            )
        depth += stack_effect(ins.opcode)
        peak = max(peak, depth)
        if peak > MAX_STACK:
            raise CompilationError(
                f"Stack depth {peak} at instruction {pc} exceeds {MAX_STACK}"
            )

    if depth != 1:
        raise CompilationError(
            f"Program leaves {depth} values on the stack (expected 1)"
        )
    return peak


def disassemble(program: ModelProgram) -> str:
    """One instruction per line, prefixed with its index."""
    return "\n".join(f"{pc:3d}: {ins}" for pc, ins in enumerate(program))
