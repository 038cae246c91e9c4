"""Monte Carlo lane kernel: xorshift128+ lanes, distribution samplers and a bytecode evaluator."""

__version__ = "0.1.0"
