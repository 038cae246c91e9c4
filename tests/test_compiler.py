"""Formula compiler and program validation tests."""

import math

import pytest

from mc_kernel.compiler import (
    CompilationError,
    compile_formula,
    disassemble,
    max_stack_depth,
    stack_effect,
    validate_program,
)
from mc_kernel.kernel.evaluator import evaluate
from mc_kernel.types import MAX_INPUTS, Instruction, ModelProgram, Opcode

C = Instruction.push_const
IN = Instruction.push_input
OP = Instruction.op


def test_names_resolve_by_declaration_order():
    prog = compile_formula("b - a", ["a", "b"])
    assert list(prog) == [IN(1), IN(0), OP(Opcode.SUB)]


def test_operator_precedence():
    prog = compile_formula("a + b * c", ["a", "b", "c"])
    assert list(prog) == [IN(0), IN(1), IN(2), OP(Opcode.MUL), OP(Opcode.ADD)]
    assert evaluate(prog, [1.0, 2.0, 3.0]) == 7.0


def test_parentheses():
    prog = compile_formula("(a + b) * c", ["a", "b", "c"])
    assert evaluate(prog, [1.0, 2.0, 3.0]) == 9.0


def test_power_is_right_associative():
    prog = compile_formula("2 ** 3 ** 2", ["x"], fold_constants=False)
    assert evaluate(prog, [0.0]) == 512.0


def test_constant_folding():
    prog = compile_formula("x * (2 + 3)", ["x"])
    assert list(prog) == [IN(0), C(5.0), OP(Opcode.MUL)]


def test_folding_can_be_disabled():
    prog = compile_formula("x * (2 + 3)", ["x"], fold_constants=False)
    assert len(prog) == 5


def test_folding_keeps_ieee_semantics():
    prog = compile_formula("x + 1 / 0", ["x"])
    assert prog[1].literal == float("inf")


def test_unary_operators():
    assert list(compile_formula("-x", ["x"])) == [IN(0), OP(Opcode.NEG)]
    assert list(compile_formula("+x", ["x"])) == [IN(0)]
    assert list(compile_formula("-2", ["x"])) == [C(-2.0)]


def test_functions():
    prog = compile_formula("sqrt(abs(x)) + exp(log(y))", ["x", "y"])
    assert evaluate(prog, [-16.0, 2.0]) == pytest.approx(6.0)


def test_variadic_min_max_chain():
    prog = compile_formula("min(a, b, c)", ["a", "b", "c"])
    assert list(prog) == [IN(0), IN(1), OP(Opcode.MIN), IN(2), OP(Opcode.MIN)]
    assert evaluate(compile_formula("max(a, b, c)", ["a", "b", "c"]), [3.0, 9.0, 1.0]) == 9.0


@pytest.mark.parametrize("formula", [
    "a +",
    "a % b",
    "a < b",
    "a if b else c",
    "unknown + a",
    "True + a",
    "'text'",
    "sqrt(a, b)",
    "min(a)",
    "max(a=1, b=2)",
    "foo(a)",
    "a.b",
    "a[0]",
])
def test_rejected_formulas(formula):
    with pytest.raises(CompilationError):
        compile_formula(formula, ["a", "b", "c"])


@pytest.mark.parametrize("names", [
    ["a", "a"],
    ["a", "not valid"],
    ["sqrt"],
    [f"x{i}" for i in range(MAX_INPUTS + 1)],
])
def test_rejected_input_names(names):
    with pytest.raises(CompilationError):
        compile_formula("1", names)


def test_stack_depth_limit():
    formula = "x"
    for _ in range(32):
        formula = f"x + ({formula})"
    with pytest.raises(CompilationError, match="Stack depth"):
        compile_formula(formula, ["x"])


def test_instruction_limit():
    formula = " + ".join(["x"] * 65)
    with pytest.raises(CompilationError, match="instructions"):
        compile_formula(formula, ["x"])


def test_compilation_error_is_value_error():
    assert issubclass(CompilationError, ValueError)


# =============================================================================
# validate_program
# =============================================================================

def test_validate_returns_peak_depth():
    prog = ModelProgram((IN(0), IN(1), IN(2), OP(Opcode.ADD), OP(Opcode.ADD)))
    assert validate_program(prog, n_inputs=3) == 3
    assert max_stack_depth(prog) == 3


@pytest.mark.parametrize("code, n_inputs", [
    ((), 1),
    ((OP(Opcode.ADD),), 1),
    ((C(1), OP(Opcode.NEG), OP(Opcode.ADD)), 1),
    ((C(1), C(2)), 1),
    ((IN(1),), 1),
    ((IN(-1),), 1),
    ((IN(MAX_INPUTS),), 64),
    ((C(1), Instruction(opcode=99)), 1),
])
def test_validate_rejects(code, n_inputs):
    with pytest.raises(CompilationError):
        validate_program(ModelProgram(code), n_inputs=n_inputs)


def test_stack_effect():
    assert stack_effect(Opcode.PUSH_CONST) == 1
    assert stack_effect(Opcode.MUL) == -1
    assert stack_effect(Opcode.SIN) == 0
    with pytest.raises(CompilationError):
        stack_effect(17)


def test_disassemble():
    prog = ModelProgram((IN(0), C(2.5), OP(Opcode.MUL)))
    assert disassemble(prog).splitlines() == [
        "  0: PUSH_INPUT 0",
        "  1: PUSH_CONST 2.5",
        "  2: MUL",
    ]


# =============================================================================
# Capacity and literal rejection
# =============================================================================

def test_long_sum_is_rejected_without_recursing():
    formula = " + ".join(["x"] * 1500)
    with pytest.raises(CompilationError):
        compile_formula(formula, ["x"])


def test_deeply_nested_literals_are_rejected():
    formula = " + ".join(["1"] * 1500)
    with pytest.raises(CompilationError):
        compile_formula(formula, ["x"])


def test_integer_literal_out_of_float_range():
    with pytest.raises(CompilationError, match="out of float range"):
        compile_formula("x * 1" + "0" * 400, ["x"])


# =============================================================================
# Identity simplification
# =============================================================================

@pytest.mark.parametrize("formula", [
    "x + 0",
    "0 + x",
    "x - 0",
    "x * 1",
    "1 * x",
    "x / 1",
    "x * (2 - 1)",
    "(x + 0) * 1",
])
def test_identities_reduce_to_input(formula):
    assert list(compile_formula(formula, ["x"])) == [IN(0)]


@pytest.mark.parametrize("formula", [
    "x * 0",
    "0 * x",
    "0 - x",
    "1 / x",
])
def test_non_identities_are_kept(formula):
    assert len(compile_formula(formula, ["x"])) == 3


def test_identities_kept_without_folding():
    prog = compile_formula("x + 0", ["x"], fold_constants=False)
    assert list(prog) == [IN(0), C(0.0), OP(Opcode.ADD)]


def test_multiplying_infinity_by_zero_stays_nan():
    prog = compile_formula("x * 0", ["x"])
    assert math.isnan(evaluate(prog, [float("inf")]))
