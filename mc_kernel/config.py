"""
Configuration management for the Monte Carlo lane kernel.

Model presets and JSON loading utilities.
"""

import json
from typing import Dict, Any, List, Union

from .types import (
    DistributionFamily,
    DistributionSpec,
    InputSpec,
    ModelConfig,
)


MODEL_FORMAT_VERSION = "1.0"

SUPPORTED_VERSIONS = ("1.0",)


# =============================================================================
# Model Presets
# =============================================================================

MODEL_PRESETS: Dict[str, ModelConfig] = {
    'profit': ModelConfig(
        # Expected profit ~ 1000 * (10 - 5.33) - 2000 = 2667
        name="Unit economics profit",
        inputs=[
            InputSpec('units', DistributionSpec.normal(1000.0, 100.0)),
            InputSpec('price', DistributionSpec.uniform(9.0, 11.0)),
            InputSpec('unit_cost', DistributionSpec.triangular(4.0, 7.0, 5.0)),
            InputSpec('fixed', DistributionSpec.normal(2000.0, 200.0)),
        ],
        formula="units * (price - unit_cost) - fixed",
    ),

    'project_cost': ModelConfig(
        # Three-point task estimates plus an exponential overrun (mean 10)
        name="Project cost (three-point estimates)",
        inputs=[
            InputSpec('design', DistributionSpec.triangular(10.0, 30.0, 15.0)),
            InputSpec('build', DistributionSpec.triangular(40.0, 90.0, 55.0)),
            InputSpec('test', DistributionSpec.triangular(5.0, 20.0, 8.0)),
            InputSpec('overrun', DistributionSpec.exponential(0.1)),
        ],
        formula="design + build + test + overrun",
    ),

    'demand_lognormal': ModelConfig(
        # Revenue capped by capacity; median demand exp(6.9) ~ 992
        name="Capacity-capped revenue",
        inputs=[
            InputSpec('demand', DistributionSpec.lognormal(6.9, 0.25)),
            InputSpec('capacity', DistributionSpec.uniform(800.0, 1400.0)),
            InputSpec('price', DistributionSpec.normal(25.0, 2.0)),
        ],
        formula="min(demand, capacity) * price",
    ),
}


# =============================================================================
# Distribution Parsing
# =============================================================================

def parse_family(value: Union[str, int]) -> DistributionFamily:
    """
    Resolve a family given by name (case-insensitive) or integer tag.

    Raises:
        ValueError: If the family is not recognised
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid distribution family: {value!r}")
    if isinstance(value, int):
        try:
            return DistributionFamily(value)
        except ValueError:
            raise ValueError(f"Unknown distribution family tag: {value}") from None
    if isinstance(value, str):
        try:
            return DistributionFamily[value.strip().upper()]
        except KeyError:
            valid = ', '.join(f.name.lower() for f in DistributionFamily)
            raise ValueError(
                f"Unknown distribution family {value!r}. Valid: {valid}"
            ) from None
    raise ValueError(f"Invalid distribution family: {value!r}")


def parse_distribution(family: Union[str, int], params: List[float]) -> DistributionSpec:
    """Build a DistributionSpec from a family and up to three parameters."""
    params = [float(p) for p in params]
    if len(params) > 3:
        raise ValueError(f"At most 3 distribution parameters, got {len(params)}")
    params = params + [0.0] * (3 - len(params))
    return DistributionSpec(int(parse_family(family)), *params)


# =============================================================================
# JSON Loading Utilities
# =============================================================================

def model_from_dict(data: Dict[str, Any]) -> ModelConfig:
    """
    Build a ModelConfig from parsed JSON.

    Raises:
        ValueError: On an unsupported version or malformed entries
    """
    version = data.get('version', MODEL_FORMAT_VERSION)
    if version not in SUPPORTED_VERSIONS:
        raise ValueError(
            f"Unsupported model format version {version!r}. "
            f"Supported: {', '.join(SUPPORTED_VERSIONS)}"
        )

    if 'formula' not in data or 'inputs' not in data:
        raise ValueError("Model JSON requires 'formula' and 'inputs'")

    inputs = []
    for i, entry in enumerate(data['inputs']):
        try:
            name = entry['name']
            family = entry['distribution']
        except KeyError as exc:
            raise ValueError(f"Input {i} is missing {exc.args[0]!r}") from None
        inputs.append(InputSpec(
            name=name,
            distribution=parse_distribution(family, entry.get('params', [])),
        ))

    return ModelConfig(
        inputs=inputs,
        formula=data['formula'],
        iterations=data.get('iterations', 100_000),
        seed=data.get('seed'),
        chunk_size=data.get('chunk_size', 65_536),
        name=data.get('name', 'model'),
    )


def model_to_dict(config: ModelConfig) -> Dict[str, Any]:
    """Convert a ModelConfig to a JSON-serialisable dict."""
    return {
        'version': MODEL_FORMAT_VERSION,
        'name': config.name,
        'formula': config.formula,
        'iterations': config.iterations,
        'seed': config.seed,
        'chunk_size': config.chunk_size,
        'inputs': [
            {
                'name': spec.name,
                'distribution': spec.distribution.family_name,
                'params': list(spec.distribution.params),
            }
            for spec in config.inputs
        ]
    }


def load_model_from_json(path: str) -> ModelConfig:
    """
    Load model configuration from JSON file.

    Expected format:
    {
        "version": "1.0",
        "name": "Model Name",
        "formula": "units * (price - unit_cost) - fixed",
        "iterations": 100000,
        "seed": 42,
        "inputs": [
            {"name": "units", "distribution": "normal", "params": [1000, 100]},
            {"name": "price", "distribution": "uniform", "params": [9, 11]},
            ...
        ]
    }
    """
    with open(path, 'r') as f:
        data = json.load(f)

    return model_from_dict(data)


def save_model_to_json(config: ModelConfig, path: str):
    """Save model configuration to JSON file."""
    with open(path, 'w') as f:
        json.dump(model_to_dict(config), f, indent=2)


def create_sample_model_json(path: str = 'model_sample.json'):
    """Create a sample model JSON file for reference."""
    sample = model_to_dict(MODEL_PRESETS['profit'])
    sample['seed'] = 42

    with open(path, 'w') as f:
        json.dump(sample, f, indent=2)

    print(f"Sample model config written to {path}")
