#!/usr/bin/env python3
"""
Growthline CLI

Command-line interface for pediatric growth analytics.
"""

import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()


def setup_paths():
    """Add the project root to sys.path for imports."""
    root = Path(__file__).parent
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


setup_paths()

STATUS_COLORS = {
    "normal": "green",
    "watch": "yellow",
    "alert": "red",
}

CHANGE_FIELDS = {
    "weight": "weight_kg",
    "height": "height_cm",
    "head_circumference": "head_circumference_cm",
}


def _percentile_color(percentile: float) -> str:
    """Chart colors: red outside p3-p97, yellow outside p15-p85."""
    if percentile < 3 or percentile > 97:
        return "red"
    if percentile < 15 or percentile > 85:
        return "yellow"
    return "green"


def _load_patient_file(path: str) -> dict:
    """
    Load a patient measurement file.

    Expected JSON: {"gender": ..., "birth_date": ..., "measurements": [...]}
    """
    from src.models import Gender, Measurement

    try:
        data = json.loads(Path(path).read_text())
        birth_date = data.get("birth_date")
        return {
            "gender": Gender(data["gender"]),
            "birth_date": date.fromisoformat(birth_date) if birth_date else None,
            "measurements": [Measurement.model_validate(m) for m in data.get("measurements", [])],
        }
    except KeyError as e:
        _fail(f"Invalid patient file {path}: missing {e}")
    except (AttributeError, TypeError, ValueError) as e:
        # JSONDecodeError and pydantic ValidationError are ValueErrors
        _fail(f"Invalid patient file {path}: {e}")


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        _fail(f"Invalid date {value!r}, expected YYYY-MM-DD")


def _fail(e):
    console.print(f"[red]Error:[/red] {escape(str(e))}", soft_wrap=True)
    sys.exit(1)


@click.group()
@click.version_option(version="0.1.0", prog_name="growthline")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """
    Growthline - Pediatric growth analytics.

    Percentiles, growth comparisons and reference curves from WHO growth
    standards.
    """
    from src.config import get_config

    logging.basicConfig(
        level=logging.DEBUG if verbose else get_config().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.command()
@click.option("--gender", type=click.Choice(["male", "female"]), required=True, help="Patient gender")
@click.option("--metric", type=click.Choice(["weight", "height", "head_circumference"]),
              default="weight", help="Measured metric")
@click.option("--age-months", type=int, required=True, help="Age in months")
@click.option("--value", type=float, required=True, help="Measured value (kg or cm)")
def percentile(gender: str, metric: str, age_months: int, value: float):
    """
    Calculate the percentile of a single measurement.

    Example:

        growthline percentile --gender male --age-months 12 --value 10.2
    """
    from src.analytics import GrowthAnalytics, GrowthAnalyticsError
    from src.models import Gender, Metric

    try:
        result = GrowthAnalytics().percentile_for_value(
            Gender(gender), Metric(metric), age_months, value
        )
    except GrowthAnalyticsError as e:
        _fail(e)

    color = _percentile_color(result.percentile)
    console.print(f"{metric.replace('_', ' ').title()}: {value} at {age_months} months")
    console.print(f"Percentile: [{color}]P{result.percentile:.1f}[/{color}] (z = {result.z_score:+.2f})")
    if result.extrapolated:
        console.print("[yellow]Outside the reference range (extrapolated)[/yellow]")


@cli.command()
@click.option("--gender", type=click.Choice(["male", "female"]), required=True, help="Patient gender")
@click.option("--age-months", type=int, required=True, help="Age in months")
def ideal(gender: str, age_months: int):
    """
    Show the ideal (p50) weight and height for an age.
    """
    from src.analytics import GrowthAnalytics, GrowthAnalyticsError
    from src.models import Gender

    try:
        values = GrowthAnalytics().get_ideal(Gender(gender), age_months)
    except GrowthAnalyticsError as e:
        _fail(e)

    lines = [
        f"Weight: {values.weight_kg:.2f} kg",
        f"Height: {values.height_cm:.1f} cm",
    ]
    if values.head_circumference_cm is not None:
        lines.append(f"Head circumference: {values.head_circumference_cm:.1f} cm")
    lines.append(f"BMI: {values.bmi:.1f}")

    console.print(Panel(
        "\n".join(lines),
        title=f"Ideal at {age_months} months ({gender})",
        border_style="blue",
    ))


@cli.command()
@click.argument("patient_path", type=click.Path(exists=True))
@click.option("--as-of", type=str, help="Consultation date (YYYY-MM-DD, default: today)")
@click.option("--json", "as_json", is_flag=True, help="Print the raw comparison as JSON")
def compare(patient_path: str, as_of: Optional[str], as_json: bool):
    """
    Compare the latest measurement with the previous one and the ideal.

    Example:

        growthline compare ./patient.json --as-of 2024-06-01
    """
    from src.analytics import GrowthAnalytics, GrowthAnalyticsError

    as_of_date = _parse_date(as_of)
    patient = _load_patient_file(patient_path)
    if patient["birth_date"] is None:
        _fail("birth_date is required for a comparison")

    try:
        comparison = GrowthAnalytics().get_comparison(
            patient["gender"],
            patient["birth_date"],
            patient["measurements"],
            as_of_date,
        )
    except GrowthAnalyticsError as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps(comparison.model_dump(mode="json"), indent=2))
        return

    current = comparison.current.measurement
    status = comparison.health_status.value
    color = STATUS_COLORS[status]

    table = Table(title=f"Growth at {current.age_months} months ({current.taken_on})")
    table.add_column("Metric")
    table.add_column("Current")
    table.add_column("Percentile")
    table.add_column("Ideal")
    table.add_column("Change")

    ideal_values = {
        "weight": comparison.ideal.weight_kg,
        "height": comparison.ideal.height_cm,
        "head_circumference": comparison.ideal.head_circumference_cm,
    }
    changes = comparison.changes
    for metric, result in comparison.current.percentile_results.items():
        change = getattr(changes, CHANGE_FIELDS[metric.value]) if changes is not None else None
        ideal_value = ideal_values.get(metric.value)
        pcolor = _percentile_color(result.percentile)
        table.add_row(
            metric.value.replace("_", " ").title(),
            f"{result.value:.2f}",
            f"[{pcolor}]P{result.percentile:.0f}[/{pcolor}]",
            f"{ideal_value:.2f}" if ideal_value is not None else "-",
            f"{change:+.2f}" if change is not None else "-",
        )
    console.print(table)

    if comparison.bmi is not None:
        console.print(
            f"BMI: {comparison.bmi:.1f} (ideal {comparison.ideal.bmi:.1f}), "
            f"{comparison.transform_3d.bmi_status.value}"
        )
    console.print(f"Status: [{color}]{status.upper()}[/{color}]")
    if comparison.previous is None:
        console.print("[dim]No previous measurement[/dim]")
    if comparison.extrapolated:
        console.print("[yellow]Some values are outside the reference range[/yellow]")


@cli.command()
@click.argument("patient_path", type=click.Path(exists=True))
def history(patient_path: str):
    """
    Show percentiles for every measurement of a patient.
    """
    from src.analytics import GrowthAnalytics, GrowthAnalyticsError
    from src.models import Metric

    patient = _load_patient_file(patient_path)
    try:
        entries = GrowthAnalytics().get_history(
            patient["gender"], patient["measurements"], patient["birth_date"]
        )
    except GrowthAnalyticsError as e:
        _fail(e)

    table = Table(title="Growth History")
    table.add_column("Date")
    table.add_column("Age (mo)")
    table.add_column("Weight")
    table.add_column("Height")
    table.add_column("Head")

    for entry in entries:
        cells = []
        for metric in Metric:
            result = entry.percentile_results.get(metric)
            if result is None:
                cells.append("-")
                continue
            pcolor = _percentile_color(result.percentile)
            cells.append(f"{result.value:.1f} [{pcolor}]P{result.percentile:.0f}[/{pcolor}]")
        table.add_row(
            entry.measurement.taken_on.isoformat(),
            str(entry.measurement.age_months),
            *cells,
        )
    console.print(table)


@cli.command()
@click.option("--gender", type=click.Choice(["male", "female"]), required=True, help="Patient gender")
@click.option("--metric", type=click.Choice(["weight", "height", "head_circumference"]),
              default="weight", help="Reference metric")
@click.option("--max-age-months", type=int, default=60, help="Last age to include")
@click.option("--step", type=int, default=6, help="Months between printed rows")
def curves(gender: str, metric: str, max_age_months: int, step: int):
    """
    Print percentile reference curves.
    """
    from src.analytics import GrowthAnalytics, GrowthAnalyticsError
    from src.models import Gender, Metric

    try:
        rows = GrowthAnalytics().get_curve_series(Gender(gender), Metric(metric), max_age_months)
    except (GrowthAnalyticsError, ValueError) as e:
        _fail(e)

    table = Table(title=f"{metric.replace('_', ' ').title()} for age ({gender})")
    table.add_column("Age (mo)")
    for band in ("P3", "P15", "P50", "P85", "P97"):
        table.add_column(band)
    for row in rows:
        if row.age_months % max(step, 1) and row is not rows[-1]:
            continue
        table.add_row(str(row.age_months), *(f"{v:.2f}" for _, v in row.bands))
    console.print(table)


@cli.command()
def info():
    """
    Show information about Growthline.
    """
    from src.analytics import default_store

    console.print(Panel(
        "[bold]Growthline[/bold]\n\n"
        "Pediatric growth analytics:\n"
        "• Weight, height and head circumference percentiles\n"
        "• Comparison with the previous consultation and the ideal (P50)\n"
        "• Normal / watch / alert classification\n\n"
        "[dim]Reference: WHO Child Growth Standards (2006)[/dim]",
        title="About",
        border_style="blue",
    ))

    store = default_store()
    console.print("\n[bold]Reference curves:[/bold]")
    for metric, gender in store.pairs():
        console.print(
            f"  • {metric.value} ({gender.value}): "
            f"{store.min_age(metric, gender)}-{store.max_age(metric, gender)} months"
        )


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
