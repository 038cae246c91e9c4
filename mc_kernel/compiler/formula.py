"""
Formula compiler: arithmetic expression text -> ModelProgram.

Formulas are parsed with Python's ``ast`` in expression mode and emitted in
post-order (left operand, right operand, operator). Names resolve to input
indices by declaration order. Subexpressions built only from literals are
folded at compile time using the evaluator itself, so folded constants carry
exactly the run-time IEEE semantics. Folding also drops additive zeros and
multiplicative ones (x + 0, x - 0, x * 1, x / 1).

Example:
    compile_formula("units * (price - unit_cost) - fixed", ["units", "price", "unit_cost", "fixed"])
"""

import ast
import logging
from typing import Dict, List, Optional, Sequence

from ..kernel.evaluator import evaluate
from ..types import MAX_INPUTS, MAX_OPS, Instruction, ModelProgram, Opcode
from .validation import CompilationError, max_stack_depth, validate_program

logger = logging.getLogger(__name__)


_BINARY_OPERATORS = {
    ast.Add: Opcode.ADD,
    ast.Sub: Opcode.SUB,
    ast.Mult: Opcode.MUL,
    ast.Div: Opcode.DIV,
    ast.Pow: Opcode.POW,
}

_UNARY_FUNCTIONS = {
    'abs': Opcode.ABS,
    'sqrt': Opcode.SQRT,
    'log': Opcode.LOG,
    'exp': Opcode.EXP,
    'sin': Opcode.SIN,
    'cos': Opcode.COS,
    'tan': Opcode.TAN,
}

# Variadic min/max chain left to right: min(a, b, c) -> MIN(MIN(a, b), c)
_BINARY_FUNCTIONS = {
    'min': Opcode.MIN,
    'max': Opcode.MAX,
}


def compile_formula(
    formula: str,
    input_names: Sequence[str],
    fold_constants: bool = True
) -> ModelProgram:
    """
    Compile ``formula`` into a validated ModelProgram.

    Args:
        formula: Arithmetic expression over input names
        input_names: Declared input names; position = input index
        fold_constants: Evaluate literal-only subexpressions at compile time

    Returns:
        ModelProgram within MAX_OPS / MAX_STACK / MAX_INPUTS

    Raises:
        CompilationError: On syntax errors, unknown names, unsupported
                          constructs, or capacity violations
    """
    index = _build_name_index(input_names)

    try:
        tree = ast.parse(formula.strip(), mode='eval')
    except SyntaxError as exc:
        raise CompilationError(f"Cannot parse formula {formula!r}: {exc.msg}") from exc
    except (RecursionError, MemoryError) as exc:
        raise CompilationError("Formula is nested too deeply to parse") from exc

    # Every input reference survives as a PUSH_INPUT, so this bound holds
    # before any folding or simplification
    n_refs = sum(
        1 for node in ast.walk(tree)
        if isinstance(node, ast.Name) and node.id in index
    )
    if n_refs > MAX_OPS:
        raise CompilationError(
            f"Formula references inputs {n_refs} times (max {MAX_OPS} instructions)"
        )

    emitter = _Emitter(index, fold_constants)
    try:
        code = emitter.emit(tree.body)
    except RecursionError as exc:
        raise CompilationError(
            f"Formula is nested too deeply (max {MAX_OPS} instructions)"
        ) from exc

    program = ModelProgram(tuple(code))
    validate_program(program, n_inputs=len(index))
    logger.info(
        "Compiled formula: %d instructions, stack depth %d, %d inputs",
        len(program), max_stack_depth(program), len(index)
    )
    return program


def _build_name_index(input_names: Sequence[str]) -> Dict[str, int]:
    if len(input_names) > MAX_INPUTS:
        raise CompilationError(
            f"{len(input_names)} inputs declared (max {MAX_INPUTS})"
        )
    index: Dict[str, int] = {}
    for i, name in enumerate(input_names):
        if not name.isidentifier():
            raise CompilationError(f"Input name {name!r} is not a valid identifier")
        if name in index:
            raise CompilationError(f"Duplicate input name {name!r}")
        if name in _UNARY_FUNCTIONS or name in _BINARY_FUNCTIONS:
            raise CompilationError(f"Input name {name!r} shadows a function")
        index[name] = i
    return index


class _Emitter:
    """Post-order code generator over an ``ast`` expression tree."""

    def __init__(self, index: Dict[str, int], fold_constants: bool):
        self.index = index
        self.fold_constants = fold_constants

    def emit(self, node: ast.AST) -> List[Instruction]:
        if isinstance(node, ast.Constant):
            value = node.value
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise CompilationError(f"Unsupported literal {value!r}")
            try:
                literal = float(value)
            except OverflowError:
                raise CompilationError(f"Literal {value!r} is out of float range") from None
            return [Instruction.push_const(literal)]

        if isinstance(node, ast.Name):
            if node.id not in self.index:
                raise CompilationError(f"Unknown input {node.id!r}")
            return [Instruction.push_input(self.index[node.id])]

        if isinstance(node, ast.BinOp):
            opcode = _BINARY_OPERATORS.get(type(node.op))
            if opcode is None:
                raise CompilationError(
                    f"Unsupported operator {type(node.op).__name__}"
                )
            return self._combine(opcode, [self.emit(node.left), self.emit(node.right)])

        if isinstance(node, ast.UnaryOp):
            operand = self.emit(node.operand)
            if isinstance(node.op, ast.UAdd):
                return operand
            if isinstance(node.op, ast.USub):
                return self._combine(Opcode.NEG, [operand])
            raise CompilationError(
                f"Unsupported unary operator {type(node.op).__name__}"
            )

        if isinstance(node, ast.Call):
            return self._emit_call(node)

        raise CompilationError(f"Unsupported expression {ast.dump(node)}")

    def _emit_call(self, node: ast.Call) -> List[Instruction]:
        if not isinstance(node.func, ast.Name) or node.keywords:
            raise CompilationError("Only plain function calls are supported")
        name = node.func.id
        args = [self.emit(arg) for arg in node.args]

        if name in _UNARY_FUNCTIONS:
            if len(args) != 1:
                raise CompilationError(f"{name}() takes 1 argument, got {len(args)}")
            return self._combine(_UNARY_FUNCTIONS[name], args)

        if name in _BINARY_FUNCTIONS:
            if len(args) < 2:
                raise CompilationError(f"{name}() takes at least 2 arguments")
            code = args[0]
            for arg in args[1:]:
                code = self._combine(_BINARY_FUNCTIONS[name], [code, arg])
            return code

        raise CompilationError(f"Unknown function {name!r}")

    def _combine(self, opcode: Opcode, operands: List[List[Instruction]]) -> List[Instruction]:
        code = [ins for operand in operands for ins in operand]
        code.append(Instruction.op(opcode))
        if len(code) > MAX_OPS:
            raise CompilationError(
                f"Formula compiles to more than {MAX_OPS} instructions"
            )
        if not self.fold_constants:
            return code
        if all(_is_literal(operand) for operand in operands):
            return [Instruction.push_const(evaluate(ModelProgram(tuple(code)), ()))]
        if len(operands) == 2:
            simplified = _simplify_identity(opcode, operands[0], operands[1])
            if simplified is not None:
                return simplified
        return code


def _is_literal(code: List[Instruction], value: Optional[float] = None) -> bool:
    if len(code) != 1 or code[0].opcode != Opcode.PUSH_CONST:
        return False
    return value is None or code[0].literal == value


def _simplify_identity(
    opcode: Opcode,
    left: List[Instruction],
    right: List[Instruction]
) -> Optional[List[Instruction]]:
    """
    Drop additive zeros and multiplicative ones.

    x * 0 is left alone: it is NaN, not 0, when x is inf or NaN.
    """
    if opcode in (Opcode.ADD, Opcode.SUB) and _is_literal(right, 0.0):
        return left
    if opcode == Opcode.ADD and _is_literal(left, 0.0):
        return right
    if opcode in (Opcode.MUL, Opcode.DIV) and _is_literal(right, 1.0):
        return left
    if opcode == Opcode.MUL and _is_literal(left, 1.0):
        return right
    return None
