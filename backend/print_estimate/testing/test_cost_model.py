# testing/test_cost_model.py

import pytest
from pydantic import ValidationError

from print_estimate.core.common_types import CostAggregation, PrintMedium, ProcessParameters
from print_estimate.core.exceptions import InvalidParameterError
from print_estimate.processes import FilamentProcessor, ResinProcessor, energy_cost_base, split_energy
from print_estimate.services.estimate_service import compute_breakdown, manual_entry

from conftest import failed_entry, volume_entry

# --- Resin ---

def test_resin_worked_example(resin_params):
    items, aggregate = compute_breakdown([volume_entry("part.stl", 1000.0)], resin_params())
    item = items[0]

    assert item.ok
    assert item.medium == PrintMedium.RESIN
    assert item.volume_ml == pytest.approx(1.0)
    assert item.support_ml == pytest.approx(0.2)
    assert item.total_ml == pytest.approx(1.2)
    assert item.material_cost == pytest.approx(0.24)
    assert item.energy_cost == 0.0
    assert item.total_cost == pytest.approx(0.24)
    assert item.filament_grams is None

    assert aggregate.total_volume_ml == pytest.approx(1.2)
    assert aggregate.total_support_ml == pytest.approx(0.2)
    assert aggregate.total_cost == pytest.approx(0.24)


def test_resin_without_supports(resin_params):
    items, _ = compute_breakdown([volume_entry("part.stl", 1000.0)], resin_params(include_supports=False))
    assert items[0].support_ml == pytest.approx(0.2)  # still reported
    assert items[0].total_ml == pytest.approx(1.0)
    assert items[0].material_cost == pytest.approx(0.2)

# --- Filament ---

def test_filament_worked_example(filament_params):
    items, aggregate = compute_breakdown([volume_entry("part.stl", 1000.0)], filament_params())
    item = items[0]

    assert item.volume_cm3 == pytest.approx(1.0)
    assert item.effective_volume_cm3 == pytest.approx(0.35)
    assert item.filament_grams == pytest.approx(0.434)
    assert item.material_cost == pytest.approx(0.01085)
    assert item.total_ml is None
    assert aggregate.total_filament_grams == pytest.approx(0.434)
    assert aggregate.total_volume_ml == 0.0


def test_filament_negative_infill_clamped(filament_params):
    items, _ = compute_breakdown([volume_entry("part.stl", 1000.0)], filament_params(infill_percent=-50.0))
    assert items[0].effective_volume_cm3 == pytest.approx(0.15)


def test_filament_manual_mass_overrides_geometry(filament_params):
    params = filament_params()
    entry = manual_entry("Bracket", params, filament_grams=40.0)
    items, aggregate = compute_breakdown([entry], params)

    assert items[0].name == "Bracket"
    assert items[0].filament_grams == pytest.approx(40.0)
    assert items[0].material_cost == pytest.approx(1.0)
    assert aggregate.total_filament_grams == pytest.approx(40.0)


def test_filament_manual_negative_mass_is_zero(filament_params):
    params = filament_params()
    items, _ = compute_breakdown([manual_entry("x", params, filament_grams=-5.0)], params)
    assert items[0].filament_grams == 0.0
    assert items[0].material_cost == 0.0

# --- Manual entry ---

def test_manual_resin_ml_converted_to_mm3(resin_params):
    params = resin_params()
    entry = manual_entry(None, params, resin_ml=10.0)
    assert entry.name == "Manual estimate"
    assert entry.volume.volume_mm3 == pytest.approx(10000.0)

    items, _ = compute_breakdown([entry], params)
    assert items[0].total_ml == pytest.approx(12.0)
    assert items[0].material_cost == pytest.approx(2.4)


def test_manual_entry_requires_quantity_for_medium(resin_params, filament_params):
    with pytest.raises(InvalidParameterError):
        manual_entry("x", resin_params(), filament_grams=10.0)
    with pytest.raises(InvalidParameterError):
        manual_entry("x", filament_params(), resin_ml=10.0)

# --- Energy ---

def test_energy_cost_base(resin_params):
    params = resin_params(include_energy=True, printer_power_watts=50.0, print_hours=2.0, energy_rate=0.2)
    assert energy_cost_base(params) == pytest.approx(0.02)


@pytest.mark.parametrize("overrides", [{"print_hours": -3.0}, {"energy_rate": -0.5}, {"include_energy": False}])
def test_energy_cost_clamped_or_disabled(resin_params, overrides):
    params = resin_params(**{"include_energy": True, **overrides})
    assert energy_cost_base(params) == 0.0


def test_energy_per_item(resin_params):
    params = resin_params(include_energy=True, cost_aggregation=CostAggregation.PER_ITEM)
    entries = [volume_entry(f"p{i}.stl", 1000.0 * (i + 1)) for i in range(3)]
    items, aggregate = compute_breakdown(entries, params)

    assert split_energy(params) == pytest.approx((0.02, 0.0))
    assert all(item.energy_cost == pytest.approx(0.02) for item in items)
    assert aggregate.item_energy_cost == pytest.approx(0.06)
    assert aggregate.project_energy_cost == 0.0
    assert aggregate.energy_cost == pytest.approx(0.06)
    assert aggregate.total_cost == pytest.approx(sum(item.total_cost for item in items))


def test_energy_per_project(resin_params):
    params = resin_params(include_energy=True, cost_aggregation=CostAggregation.PER_PROJECT)
    entries = [volume_entry(f"p{i}.stl", 1000.0) for i in range(3)]
    items, aggregate = compute_breakdown(entries, params)

    assert all(item.energy_cost == 0.0 for item in items)
    assert all(item.total_cost == item.material_cost for item in items)
    assert aggregate.project_energy_cost == pytest.approx(0.02)
    assert aggregate.energy_cost == pytest.approx(0.02)
    assert aggregate.total_cost == pytest.approx(aggregate.total_material_cost + 0.02)
    assert aggregate.total_cost == pytest.approx(3 * 0.24 + 0.02)

# --- Batch behaviour ---

def test_failed_item_propagates_and_is_excluded(resin_params):
    params = resin_params(include_energy=True)
    entries = [volume_entry("a.stl", 1000.0), failed_entry("b.stl"), volume_entry("c.stl", 2000.0)]
    items, aggregate = compute_breakdown(entries, params)

    assert [item.name for item in items] == ["a.stl", "b.stl", "c.stl"]
    failed = items[1]
    assert not failed.ok
    assert failed.error.startswith("could not decode mesh")
    assert failed.volume_mm3 is None
    assert failed.material_cost is None
    assert failed.energy_cost is None
    assert failed.total_cost is None

    assert aggregate.item_count == 3
    assert aggregate.valid_items == 2
    assert aggregate.failed_items == 1
    assert aggregate.total_volume_mm3 == pytest.approx(3000.0)
    assert aggregate.item_energy_cost == pytest.approx(0.04)
    assert aggregate.total_cost == pytest.approx(items[0].total_cost + items[2].total_cost)


def test_empty_batch(resin_params):
    items, aggregate = compute_breakdown([], resin_params())
    assert items == []
    assert aggregate.item_count == 0
    assert aggregate.total_cost == 0.0


def test_breakdown_is_deterministic(filament_params):
    params = filament_params(include_energy=True)
    entries = [volume_entry("a.stl", 1234.5678), volume_entry("b.stl", 98765.4321)]
    assert compute_breakdown(entries, params) == compute_breakdown(entries, params)

# --- Parameters ---

def test_price_required_for_selected_medium():
    with pytest.raises(ValidationError):
        ProcessParameters(medium="resin", price_per_kg=25.0, cost_aggregation="per_item",
                          energy_rate=0.2, printer_power_watts=50.0, print_hours=2.0)
    with pytest.raises(ValidationError):
        ProcessParameters(medium="filament", price_per_liter=200.0, cost_aggregation="per_item",
                          energy_rate=0.2, printer_power_watts=50.0, print_hours=2.0)


def test_documented_defaults():
    params = ProcessParameters(medium="filament", price_per_kg=25.0, cost_aggregation="per_project",
                               energy_rate=0.2, printer_power_watts=50.0, print_hours=2.0)
    assert params.filament_density == 1.24
    assert params.infill_percent == 20.0
    assert params.shell_factor == 0.15
    assert params.support_percent == 20.0
    assert params.include_supports is True
    assert params.include_energy is True
    assert params.cost_aggregation == CostAggregation.PER_PROJECT


def test_out_of_range_percent_is_used_as_given(resin_params):
    items, _ = compute_breakdown([volume_entry("a.stl", 1000.0)], resin_params(support_percent=150.0))
    assert items[0].support_ml == pytest.approx(1.5)


def test_processor_rejects_other_medium(filament_params):
    with pytest.raises(InvalidParameterError):
        ResinProcessor().price_item(volume_entry("a.stl", 1000.0), filament_params(), 0.0)
    assert FilamentProcessor().price_item(failed_entry("b.stl"), filament_params(), 0.0).error is not None
