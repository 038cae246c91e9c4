"""Formula compilation and program validation."""

from .formula import compile_formula
from .validation import (
    CompilationError,
    disassemble,
    max_stack_depth,
    stack_effect,
    validate_program,
)

__all__ = [
    "compile_formula",
    "CompilationError",
    "disassemble",
    "max_stack_depth",
    "stack_effect",
    "validate_program",
]
