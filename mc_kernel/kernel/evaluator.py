"""
Bounded stack-machine evaluator for ModelProgram bytecode.

Programs are straight-line, so the top-of-stack index after each instruction
is the same for every lane; the batched evaluator keeps one index for a
[MAX_STACK, n_lanes] stack.

No runtime capacity checks: stack depth and input indices are validated when
the program is compiled. Division by zero yields the IEEE result, and MIN/MAX
propagate NaN like every other opcode.
"""

import numpy as np
from typing import Optional, Sequence

from ..types import MAX_STACK, ModelProgram, Opcode


def evaluate(
    program: ModelProgram,
    inputs: Sequence[float],
    stack: Optional[np.ndarray] = None
) -> float:
    """
    Execute ``program`` against one lane's sampled inputs.

    Args:
        program: Validated model program
        inputs: Sampled input values, indexed by PUSH_INPUT operands
        stack: Optional preallocated [MAX_STACK] float64 workspace

    Returns:
        The value left at the bottom of the stack
    """
    if stack is None:
        stack = np.zeros(MAX_STACK, dtype=np.float64)
    top = 0

    with np.errstate(all='ignore'):
        for ins in program.instructions:
            op = ins.opcode

            if op == Opcode.PUSH_INPUT:
                stack[top] = inputs[ins.operand]
                top += 1
            elif op == Opcode.PUSH_CONST:
                stack[top] = ins.literal
                top += 1

            elif op == Opcode.ADD:
                stack[top - 2] = stack[top - 2] + stack[top - 1]
                top -= 1
            elif op == Opcode.SUB:
                stack[top - 2] = stack[top - 2] - stack[top - 1]
                top -= 1
            elif op == Opcode.MUL:
                stack[top - 2] = stack[top - 2] * stack[top - 1]
                top -= 1
            elif op == Opcode.DIV:
                stack[top - 2] = stack[top - 2] / stack[top - 1]
                top -= 1
            elif op == Opcode.POW:
                stack[top - 2] = np.power(stack[top - 2], stack[top - 1])
                top -= 1
            elif op == Opcode.MIN:
                stack[top - 2] = np.minimum(stack[top - 2], stack[top - 1])
                top -= 1
            elif op == Opcode.MAX:
                stack[top - 2] = np.maximum(stack[top - 2], stack[top - 1])
                top -= 1

            elif op == Opcode.NEG:
                stack[top - 1] = -stack[top - 1]
            elif op == Opcode.ABS:
                stack[top - 1] = np.abs(stack[top - 1])
            elif op == Opcode.SQRT:
                stack[top - 1] = np.sqrt(stack[top - 1])
            elif op == Opcode.LOG:
                stack[top - 1] = np.log(stack[top - 1])
            elif op == Opcode.EXP:
                stack[top - 1] = np.exp(stack[top - 1])
            elif op == Opcode.SIN:
                stack[top - 1] = np.sin(stack[top - 1])
            elif op == Opcode.COS:
                stack[top - 1] = np.cos(stack[top - 1])
            elif op == Opcode.TAN:
                stack[top - 1] = np.tan(stack[top - 1])
            # unknown opcodes have no stack effect

    return float(stack[0])


def evaluate_lanes(
    program: ModelProgram,
    inputs: np.ndarray,
    stack: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Execute ``program`` for every lane at once.

    Args:
        program: Validated model program
        inputs: [n_inputs, n_lanes] sampled inputs
        stack: Optional preallocated [MAX_STACK, >= n_lanes] float64 workspace

    Returns:
        [n_lanes] float64 results
    """
    n_lanes = inputs.shape[1]
    if stack is None:
        stack = np.zeros((MAX_STACK, n_lanes), dtype=np.float64)
    else:
        stack = stack[:, :n_lanes]
    top = 0

    with np.errstate(all='ignore'):
        for ins in program.instructions:
            op = ins.opcode

            if op == Opcode.PUSH_INPUT:
                stack[top] = inputs[ins.operand]
                top += 1
            elif op == Opcode.PUSH_CONST:
                stack[top] = ins.literal
                top += 1

            elif op == Opcode.ADD:
                np.add(stack[top - 2], stack[top - 1], out=stack[top - 2])
                top -= 1
            elif op == Opcode.SUB:
                np.subtract(stack[top - 2], stack[top - 1], out=stack[top - 2])
                top -= 1
            elif op == Opcode.MUL:
                np.multiply(stack[top - 2], stack[top - 1], out=stack[top - 2])
                top -= 1
            elif op == Opcode.DIV:
                np.divide(stack[top - 2], stack[top - 1], out=stack[top - 2])
                top -= 1
            elif op == Opcode.POW:
                np.power(stack[top - 2], stack[top - 1], out=stack[top - 2])
                top -= 1
            elif op == Opcode.MIN:
                np.minimum(stack[top - 2], stack[top - 1], out=stack[top - 2])
                top -= 1
            elif op == Opcode.MAX:
                np.maximum(stack[top - 2], stack[top - 1], out=stack[top - 2])
                top -= 1

            elif op == Opcode.NEG:
                np.negative(stack[top - 1], out=stack[top - 1])
            elif op == Opcode.ABS:
                np.abs(stack[top - 1], out=stack[top - 1])
            elif op == Opcode.SQRT:
                np.sqrt(stack[top - 1], out=stack[top - 1])
            elif op == Opcode.LOG:
                np.log(stack[top - 1], out=stack[top - 1])
            elif op == Opcode.EXP:
                np.exp(stack[top - 1], out=stack[top - 1])
            elif op == Opcode.SIN:
                np.sin(stack[top - 1], out=stack[top - 1])
            elif op == Opcode.COS:
                np.cos(stack[top - 1], out=stack[top - 1])
            elif op == Opcode.TAN:
                np.tan(stack[top - 1], out=stack[top - 1])

    return stack[0].copy()
