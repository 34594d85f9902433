"""
Main CLI entry point for the P2P synthetic data generator.

Usage:
    p2p-datagen generate --seed 42 --vendors 1000 --pos 5000 -o ./output
    p2p-datagen generate --scenario TS-002 --anomaly missing_pan_pct=10
    p2p-datagen validate --preset small
    p2p-datagen scenarios
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Dict, Optional, Tuple

import click

from . import __version__
from .config import ANOMALY_KEYS, PRESETS, ConfigError, GeneratorConfig, apply_preset, validate_config
from .generator.constraints import format_validation_results
from .generator.procurement import GenerationError
from .pipeline import generate as generate_dataset
from .pipeline import run_generation
from .scenarios import PACKS, apply_pack, apply_scenario


def parse_seed(value: str):
    """
    Canonical integers become an int seed; anything else stays a string.

    "042" is kept as a string: the stream is seeded from str(seed), so it
    must not collapse onto 42.
    """
    value = value.strip()
    if value.isdigit() and str(int(value)) == value:
        return int(value)
    return value


def parse_anomalies(values: Tuple[str, ...]) -> Dict[str, float]:
    """Parse repeated ``KEY=PCT`` options; the ``_pct`` suffix is optional."""
    parsed = {}
    for item in values:
        key, sep, pct = item.partition("=")
        key = key.strip()
        if not key.endswith("_pct"):
            key = f"{key}_pct"
        if not sep or key not in ANOMALY_KEYS:
            raise click.BadParameter(f"expected KEY=PCT with a known anomaly key, got '{item}'",
                                     param_hint="--anomaly")
        try:
            parsed[key] = float(pct)
        except ValueError:
            raise click.BadParameter(f"percentage must be a number, got '{pct}'", param_hint="--anomaly")
    return parsed


def _fail_config(errors) -> None:
    for error in errors:
        click.echo(f"{error['path']}: {error['message']}", err=True)
    sys.exit(2)


def build_config(
    seed: str,
    vendors: Optional[int],
    pos: Optional[int],
    start_year: Optional[int],
    end_year: Optional[int],
    grn_ratio: Optional[float],
    invoice_ratio: Optional[float],
    payment_ratio: Optional[float],
    chunk_size: Optional[int],
    preset: Optional[str],
    pack: Optional[str],
    scenario: Optional[str],
    anomalies: Dict[str, float],
    no_anomalies: bool,
    no_constraints: bool,
) -> GeneratorConfig:
    """Layer preset, pack, scenario and explicit options, in that order."""
    this_year = date.today().year
    config = GeneratorConfig(
        seed=parse_seed(seed),
        start_year=this_year - 1,
        end_year=this_year,
    )

    try:
        if preset:
            apply_preset(config, preset)
        if pack:
            apply_pack(config, pack)
        if scenario:
            apply_scenario(config, scenario)
    except ValueError as e:
        _fail_config([{"path": "scenario" if scenario else "pack_name", "message": str(e)}])

    overrides = {
        "vendor_count": vendors,
        "po_count": pos,
        "start_year": start_year,
        "end_year": end_year,
        "grn_ratio": grn_ratio,
        "invoice_ratio": invoice_ratio,
        "payment_ratio": payment_ratio,
        "chunk_size": chunk_size,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    config.anomalies.update(anomalies)
    config.enable_anomalies = not no_anomalies
    config.constraints.enabled = not no_constraints

    errors = validate_config(config, enforce_limits=True)
    if errors:
        _fail_config(errors)
    return config


def generation_options(func):
    """Options shared by ``generate`` and ``validate``."""
    options = [
        click.option('--seed', default='42', show_default=True, help='Random seed (integer or string)'),
        click.option('--vendors', type=int, default=None, help='Number of vendors'),
        click.option('--pos', '--rows', 'pos', type=int, default=None, help='Number of purchase orders'),
        click.option('--start-year', type=int, default=None, help='First calendar year (default: last year)'),
        click.option('--end-year', type=int, default=None, help='Last calendar year (default: this year)'),
        click.option('--grn-ratio', type=click.FloatRange(0, 1), default=None,
                     help='Share of eligible POs that get a GRN'),
        click.option('--invoice-ratio', type=click.FloatRange(0, 1), default=None,
                     help='Share of eligible POs that get an invoice'),
        click.option('--payment-ratio', type=click.FloatRange(0, 1), default=None,
                     help='Share of eligible invoices that get paid'),
        click.option('--chunk-size', type=int, default=None, help='POs generated per chunk'),
        click.option('--preset', type=click.Choice(sorted(PRESETS)), default=None, help='Size preset'),
        click.option('--pack', type=click.Choice(sorted(PACKS)), default=None, help='Scenario pack overlay'),
        click.option('--scenario', default=None, help='Scenario (test step) overlay, e.g. TS-002'),
        click.option('--no-constraints', is_flag=True, help='Skip the constraint pass'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Log debug output')
@click.option('--quiet', '-q', is_flag=True, help='Only log warnings and errors')
def cli(verbose: bool, quiet: bool):
    """P2P Synthetic Data Generator

    Generates a deterministic procure-to-pay dataset (vendors, PRs, POs,
    GRNs, invoices, payments and logs) with labeled anomalies and a
    ground-truth file for testing audit detection tools.
    """
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@cli.command()
@generation_options
@click.option('--anomaly', 'anomaly', multiple=True, metavar='KEY=PCT',
              help='Anomaly percentage, e.g. missing_pan_pct=10 (repeatable)')
@click.option('--no-anomalies', is_flag=True, help='Skip anomaly injection')
@click.option('--output', '-o', type=click.Path(), default='./output', show_default=True,
              help='Output directory')
@click.option('--validate', 'run_validation', is_flag=True, help='Print the validator report')
def generate(seed, vendors, pos, start_year, end_year, grn_ratio, invoice_ratio, payment_ratio,
             chunk_size, preset, pack, scenario, no_constraints, anomaly, no_anomalies, output,
             run_validation):
    """Generate the dataset and write CSV files plus manifest.json."""
    config = build_config(
        seed, vendors, pos, start_year, end_year, grn_ratio, invoice_ratio, payment_ratio,
        chunk_size, preset, pack, scenario, parse_anomalies(anomaly), no_anomalies, no_constraints,
    )
    output_path = Path(output)

    click.echo("=" * 60)
    click.echo("P2P Synthetic Data Generator")
    click.echo("=" * 60)
    click.echo(f"Seed: {config.seed}")
    click.echo(f"Vendors: {config.vendor_count}  POs: {config.po_count}")
    click.echo(f"Years: {config.start_year}-{config.end_year}")
    if config.pack_name:
        click.echo(f"Pack: {config.pack_name}  Scenario: {config.scenario_id or '-'}")
    click.echo(f"Output: {output_path}")
    click.echo("=" * 60)

    try:
        result = run_generation(config, output_path)
    except ConfigError as e:
        _fail_config(e.errors)
    except GenerationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("\nFiles written:")
    for filename, count in result.manifest["counts_by_file"].items():
        click.echo(f"  {filename}: {count} rows")
    click.echo(f"\nAnomalies planted: {len(result.truth_records)}")
    for step_id, count in result.manifest["expected_exception_counts_by_test_step"].items():
        click.echo(f"  {step_id}: {count}")

    if run_validation:
        click.echo("")
        click.echo(format_validation_results(result.validation))

    click.echo("\nDone.")


@cli.command()
@generation_options
def validate(seed, vendors, pos, start_year, end_year, grn_ratio, invoice_ratio, payment_ratio,
             chunk_size, preset, pack, scenario, no_constraints):
    """Generate without anomalies and report constraint violations.

    Exits with status 1 when any violation is found.
    """
    config = build_config(
        seed, vendors, pos, start_year, end_year, grn_ratio, invoice_ratio, payment_ratio,
        chunk_size, preset, pack, scenario, {}, True, no_constraints,
    )
    try:
        result = generate_dataset(config)
    except GenerationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(format_validation_results(result.validation))
    if not result.validation.is_valid:
        sys.exit(1)


@cli.command()
def scenarios():
    """List scenario packs and their test steps."""
    for pack in PACKS.values():
        click.echo(f"{pack.pack_name}: {pack.description}")
        for scenario in pack.scenarios:
            click.echo(f"  {scenario.scenario_id}  {scenario.name}")


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
