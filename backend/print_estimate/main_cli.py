# main_cli.py

import logging
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from print_estimate.config import settings, setup_logging
from print_estimate.core import geometry
from print_estimate.core.common_types import (
    CostAggregation,
    CostBreakdown,
    PrintMedium,
    ProcessParameters,
)
from print_estimate.core.exceptions import PrintEstimateError
from print_estimate.core.utils import format_hours
from print_estimate.processes import find_material, get_processor
from print_estimate.services.estimate_service import EstimateService

logger = logging.getLogger(__name__)

# --- Typer App Initialization ---
app = typer.Typer(help="3D print material cost estimator (resin and filament)")
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.")):
    """Estimate resin or filament cost from STL files or manual figures."""
    setup_logging("DEBUG" if verbose else None)


def _money(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:,.2f}"


def _number(value: Optional[float], unit: str = "") -> str:
    if value is None:
        return "-"
    return f"{value:,.2f}{(' ' + unit) if unit else ''}"


def build_parameters(medium: Optional[PrintMedium] = None,
                     material_id: Optional[str] = None,
                     **overrides) -> ProcessParameters:
    """Merges settings defaults, an optional material preset and explicit CLI overrides."""
    params = settings.default_parameters(medium=medium)
    if material_id:
        material = find_material(material_id, medium)
        logger.info(f"Using material preset: {material.name} ({material.id})")
        params = material.apply_to(params)
    explicit = {k: v for k, v in overrides.items() if v is not None}
    if explicit:
        params = ProcessParameters.model_validate({**params.model_dump(), **explicit})
    return params


def render_breakdown(result: CostBreakdown):
    """Prints the per-item table and the totals panel."""
    params = result.parameters
    is_resin = params.medium == PrintMedium.RESIN

    table = Table(title=f"{params.medium.value.capitalize()} cost breakdown", show_header=True, header_style="bold magenta")
    table.add_column("Item")
    table.add_column("Volume (mm³)", justify="right")
    if is_resin:
        table.add_column("Resin (mL)", justify="right")
        table.add_column("Supports (mL)", justify="right")
    else:
        table.add_column("Filament (g)", justify="right")
    table.add_column("Material", justify="right")
    table.add_column("Energy", justify="right")
    table.add_column("Total", justify="right")

    for item in result.items:
        if not item.ok:
            blanks = ["-"] * (6 if is_resin else 5)
            table.add_row(item.name, f"[red]{escape(item.error)}[/]", *blanks[1:])
            continue
        quantities = [_number(item.total_ml), _number(item.support_ml)] if is_resin else [_number(item.filament_grams)]
        table.add_row(
            item.name,
            _number(item.volume_mm3),
            *quantities,
            _money(item.material_cost),
            _money(item.energy_cost),
            _money(item.total_cost),
        )
    console.print(table)

    agg = result.aggregate
    summary = Table(show_header=False, box=None, padding=(0, 1))
    summary.add_column()
    summary.add_column(justify="right")
    summary.add_row("Items:", f"{agg.item_count}")
    summary.add_row("Valid items:", f"{agg.valid_items}")
    if agg.failed_items:
        summary.add_row("[red]Failed items:[/]", f"[red]{agg.failed_items}[/]")
    if is_resin:
        summary.add_row("Total resin:", _number(agg.total_volume_ml, "mL"))
        summary.add_row("Support volume:", _number(agg.total_support_ml, "mL"))
    else:
        summary.add_row("Filament usage:", _number(agg.total_filament_grams, "g"))
    summary.add_row("Material cost:", _money(agg.total_material_cost))
    mode = "per project" if params.cost_aggregation == CostAggregation.PER_PROJECT else "per item"
    summary.add_row(f"Energy cost ({mode}, {format_hours(params.print_hours)}):", _money(agg.energy_cost))
    summary.add_row("[bold green]Total cost (incl. energy):[/]", f"[bold green]{_money(agg.total_cost)}[/]")
    console.print(Panel(summary, title="Totals", expand=False))


def _write_output(result: CostBreakdown, output_json: Optional[Path]):
    if not output_json:
        return
    output_json.parent.mkdir(parents=True, exist_ok=True)
    output_json.write_text(result.model_dump_json(indent=2))
    console.print(f"[green]Full breakdown saved to: {output_json}[/]")


# --- CLI Commands ---

@app.command()
def estimate(
    files: List[Path] = typer.Argument(..., exists=True, file_okay=True, dir_okay=False, readable=True, help="STL files to estimate"),
    medium: Optional[PrintMedium] = typer.Option(None, "--medium", help="Print medium (defaults to settings)."),
    material: Optional[str] = typer.Option(None, "--material", help="Material preset ID (see 'list-materials')."),
    price_per_liter: Optional[float] = typer.Option(None, "--price-per-liter", help="Resin price per liter."),
    price_per_kg: Optional[float] = typer.Option(None, "--price-per-kg", help="Filament price per kilogram."),
    density: Optional[float] = typer.Option(None, "--density", help="Filament density (g/cm³)."),
    infill: Optional[float] = typer.Option(None, "--infill", help="Infill percent."),
    shell_factor: Optional[float] = typer.Option(None, "--shell-factor", help="Shell factor added to infill."),
    support: Optional[float] = typer.Option(None, "--support", help="Resin support volume percent."),
    supports: Optional[bool] = typer.Option(None, "--supports/--no-supports", help="Include supports in resin cost."),
    energy: Optional[bool] = typer.Option(None, "--energy/--no-energy", help="Include energy cost."),
    aggregation: Optional[CostAggregation] = typer.Option(None, "--aggregation", help="Charge energy per item or per project."),
    energy_rate: Optional[float] = typer.Option(None, "--energy-rate", help="Energy price per kWh."),
    power: Optional[float] = typer.Option(None, "--power", help="Printer power in watts."),
    hours: Optional[float] = typer.Option(None, "--hours", help="Print time in hours."),
    output_json: Optional[Path] = typer.Option(None, "--output", "-o", help="Save the full breakdown as a JSON file."),
):
    """Estimates material and energy cost for one or more STL files."""
    try:
        params = build_parameters(
            medium=medium, material_id=material,
            price_per_liter=price_per_liter, price_per_kg=price_per_kg,
            filament_density=density, infill_percent=infill, shell_factor=shell_factor,
            support_percent=support, include_supports=supports, include_energy=energy,
            cost_aggregation=aggregation, energy_rate=energy_rate,
            printer_power_watts=power, print_hours=hours,
        )
        result = EstimateService().estimate_files([str(f) for f in files], params)
    except (PrintEstimateError, ValidationError) as e:
        console.print(f"[bold red]Estimate failed: {escape(str(e))}[/]")
        raise typer.Exit(code=1)
    except Exception as e:
        logger.exception("Unexpected error during estimate command:")
        console.print(f"[bold red]An unexpected error occurred: {e}[/]")
        raise typer.Exit(code=1)

    render_breakdown(result)
    _write_output(result, output_json)


@app.command()
def manual(
    name: str = typer.Argument("Manual estimate", help="Project name."),
    medium: Optional[PrintMedium] = typer.Option(None, "--medium", help="Print medium (defaults to settings)."),
    resin_ml: Optional[float] = typer.Option(None, "--resin-ml", help="Resin usage in mL."),
    filament_grams: Optional[float] = typer.Option(None, "--filament-grams", help="Filament usage in grams."),
    material: Optional[str] = typer.Option(None, "--material", help="Material preset ID."),
    price_per_liter: Optional[float] = typer.Option(None, "--price-per-liter"),
    price_per_kg: Optional[float] = typer.Option(None, "--price-per-kg"),
    support: Optional[float] = typer.Option(None, "--support", help="Resin support volume percent."),
    supports: Optional[bool] = typer.Option(None, "--supports/--no-supports"),
    energy: Optional[bool] = typer.Option(None, "--energy/--no-energy"),
    aggregation: Optional[CostAggregation] = typer.Option(None, "--aggregation"),
    energy_rate: Optional[float] = typer.Option(None, "--energy-rate"),
    power: Optional[float] = typer.Option(None, "--power"),
    hours: Optional[float] = typer.Option(None, "--hours"),
    output_json: Optional[Path] = typer.Option(None, "--output", "-o"),
):
    """Estimates cost from a known resin volume or filament mass instead of a file."""
    try:
        params = build_parameters(
            medium=medium, material_id=material,
            price_per_liter=price_per_liter, price_per_kg=price_per_kg,
            support_percent=support, include_supports=supports, include_energy=energy,
            cost_aggregation=aggregation, energy_rate=energy_rate,
            printer_power_watts=power, print_hours=hours,
        )
        result = EstimateService().estimate_manual(name, params, resin_ml=resin_ml, filament_grams=filament_grams)
    except (PrintEstimateError, ValidationError) as e:
        console.print(f"[bold red]Estimate failed: {escape(str(e))}[/]")
        raise typer.Exit(code=1)

    render_breakdown(result)
    _write_output(result, output_json)


@app.command()
def volume(
    file_path: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False, readable=True, help="STL file"),
):
    """Prints the enclosed volume of an STL file."""
    result = geometry.estimate_volume_from_file(str(file_path))
    if not result.success:
        console.print(f"[bold red]{file_path.name}: {result.error}[/]")
        raise typer.Exit(code=1)
    console.print(f"{file_path.name}: [cyan]{result.volume_mm3:,.3f} mm³[/] ({result.volume_mm3 / 1000.0:,.3f} mL)")


@app.command()
def list_materials(
    medium: PrintMedium = typer.Argument(..., help="Print medium ('resin' or 'filament')"),
):
    """Lists the bundled material presets for a medium."""
    try:
        materials = get_processor(medium).list_available_materials()
    except PrintEstimateError as e:
        console.print(f"[bold red]Error listing materials: {e}[/]")
        raise typer.Exit(code=1)

    if not materials:
        console.print(f"[yellow]No materials found for {medium.value}.[/]")
        return

    table = Table(title=f"Available Materials for {medium.value}", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Brand")
    table.add_column("Density (g/cm³)", justify="right")
    table.add_column("Price", justify="right")

    for mat in materials:
        if mat.get("price_per_liter") is not None:
            price = f"{mat['price_per_liter']:.2f}/L"
        elif mat.get("price_per_kg") is not None:
            price = f"{mat['price_per_kg']:.2f}/kg"
        else:
            price = "N/A"
        density = mat.get("density_g_cm3")
        table.add_row(
            mat.get("id", "N/A"),
            mat.get("name", "N/A"),
            mat.get("brand") or "-",
            f"{density:.3f}" if density is not None else "-",
            price,
        )

    console.print(table)


# --- Main Execution ---
if __name__ == "__main__":
    app()
