"""
Command-line interface for the Monte Carlo lane kernel.
"""

import click
import dataclasses
import json
import logging

from .pipeline import run_model
from .config import load_model_from_json, MODEL_PRESETS
from .compiler import CompilationError, disassemble


@click.command()
@click.argument('model_file', type=click.Path(exists=True), required=False)
@click.option(
    '--preset', '-p',
    type=click.Choice(list(MODEL_PRESETS.keys())),
    help='Use a preset model instead of MODEL_FILE'
)
@click.option(
    '--iterations', '-n',
    type=int,
    help='Number of trials (overrides config)'
)
@click.option(
    '--seed',
    type=int,
    help='64-bit base seed for reproducibility (overrides config)'
)
@click.option(
    '--chunk-size',
    type=int,
    help='Lanes per vectorised batch (overrides config)'
)
@click.option(
    '--bins',
    type=int,
    default=None,
    help='Histogram bin count (default: max of Sturges and Freedman-Diaconis)'
)
@click.option(
    '--output', '-o',
    type=click.Path(),
    help='Output file for summary JSON'
)
@click.option(
    '--samples-csv',
    type=click.Path(),
    help='Write raw trial outputs to this CSV file'
)
@click.option(
    '--show-program',
    is_flag=True,
    default=False,
    help='Print the compiled bytecode'
)
@click.option(
    '--verbose/--quiet', '-v/-q',
    default=True,
    help='Verbose output'
)
def main(
    model_file,
    preset,
    iterations,
    seed,
    chunk_size,
    bins,
    output,
    samples_csv,
    show_program,
    verbose
):
    """
    Run a Monte Carlo model.

    MODEL_FILE: Path to a model JSON file (or use --preset)
    """
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # Validate critical numeric parameters
    if iterations is not None and iterations <= 0:
        raise click.BadParameter("iterations must be a positive integer", param_hint="'--iterations'")
    if chunk_size is not None and chunk_size <= 0:
        raise click.BadParameter("chunk-size must be a positive integer", param_hint="'--chunk-size'")
    if bins is not None and bins <= 0:
        raise click.BadParameter("bins must be a positive integer", param_hint="'--bins'")
    if seed is not None and not 0 < seed < 2 ** 64:
        raise click.BadParameter("seed must be in [1, 2**64 - 1]", param_hint="'--seed'")

    # Load model configuration
    if model_file and preset:
        raise click.BadParameter("Give either MODEL_FILE or --preset, not both")
    if model_file:
        try:
            config = load_model_from_json(model_file)
        except (ValueError, KeyError, TypeError) as exc:
            raise click.BadParameter(str(exc), param_hint="'MODEL_FILE'") from exc
    elif preset:
        config = MODEL_PRESETS[preset]
    else:
        raise click.BadParameter("A MODEL_FILE or --preset is required")

    # Override model settings if provided
    overrides = {}
    if iterations is not None:
        overrides['iterations'] = iterations
    if seed is not None:
        overrides['seed'] = seed
    if chunk_size is not None:
        overrides['chunk_size'] = chunk_size
    if overrides:
        config = dataclasses.replace(config, **overrides)

    click.echo(f"Running model...")
    click.echo(f"  Model: {config.name}")
    click.echo(f"  Formula: {config.formula}")
    for spec in config.inputs:
        dist = spec.distribution
        click.echo(f"    {spec.name}: {dist.family_name}{dist.params}")
    click.echo(f"  Iterations: {config.iterations}")
    click.echo(f"  Seed: {config.seed if config.seed is not None else 'random'}")

    try:
        results = run_model(config, verbose=verbose)
    except CompilationError as exc:
        raise click.BadParameter(str(exc), param_hint="formula") from exc
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    if show_program:
        click.echo("\nProgram:")
        click.echo(disassemble(results['program']))

    # Display results
    sim = results['results']
    stats = sim.statistics

    click.echo("\n" + "=" * 60)
    click.echo("SIMULATION RESULTS")
    click.echo("=" * 60)

    click.echo(f"\nTrials: {stats.count}" + (f" ({stats.n_nonfinite} non-finite excluded)" if stats.n_nonfinite else ''))
    click.echo(f"Mean: {stats.mean:.6g}")
    click.echo(f"Std Dev: {stats.std:.6g}")
    click.echo(f"Min / Max: {stats.min:.6g} / {stats.max:.6g}")
    click.echo(f"Median: {stats.median:.6g}")
    click.echo(f"Skewness: {stats.skewness:.4f}")
    click.echo(f"Excess Kurtosis: {stats.kurtosis:.4f}")

    ci_low, ci_high = sim.confidence_interval(0.95)
    click.echo(f"95% CI (mean): [{ci_low:.6g}, {ci_high:.6g}]")

    click.echo("\nPercentiles:")
    for p, value in sim.percentiles.items():
        click.echo(f"  P{p}: {value:.6g}")

    click.echo(f"\nSeed: {results['metadata']['seed']}")

    if samples_csv:
        sim.to_dataframe().to_csv(samples_csv, index=False)
        click.echo(f"\nSamples exported to {samples_csv}")

    if output:
        output_data = {
            'summary': sim.to_dict(bins=bins),
            'metadata': results['metadata'],
            'program': [str(ins) for ins in results['program']],
        }

        with open(output, 'w') as f:
            json.dump(output_data, f, indent=2)
        click.echo(f"Summary saved to {output}")


if __name__ == '__main__':
    main()
