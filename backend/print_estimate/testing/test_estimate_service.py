# testing/test_estimate_service.py

import pytest

from print_estimate.core.common_types import CostAggregation, CostBreakdown
from print_estimate.services.estimate_service import EstimateService

from conftest import cube_trimesh, write_binary_stl


@pytest.fixture
def batch_files(stl_file_factory):
    """Two valid cubes (1000 and 8000 mm³) around one corrupt file."""
    return [
        stl_file_factory("small.stl", write_binary_stl(cube_trimesh(10.0).triangles)),
        stl_file_factory("broken.stl", b"\x01\x02 definitely not an stl"),
        stl_file_factory("large.stl", write_binary_stl(cube_trimesh(20.0).triangles)),
    ]


def test_estimate_files_keeps_order_and_isolates_failures(batch_files, resin_params):
    result = EstimateService(max_workers=3).estimate_files(batch_files, resin_params())

    assert isinstance(result, CostBreakdown)
    assert [item.name for item in result.items] == ["small.stl", "broken.stl", "large.stl"]
    assert result.items[0].volume_mm3 == pytest.approx(1000.0, rel=1e-6)
    assert result.items[1].error.startswith("could not decode mesh")
    assert result.items[2].volume_mm3 == pytest.approx(8000.0, rel=1e-6)

    assert result.aggregate.item_count == 3
    assert result.aggregate.valid_items == 2
    assert result.aggregate.total_volume_ml == pytest.approx(9.0 * 1.2, rel=1e-6)


def test_worker_count_does_not_change_result(batch_files, filament_params):
    params = filament_params(include_energy=True)
    single = EstimateService(max_workers=1).estimate_files(batch_files, params)
    pooled = EstimateService(max_workers=4).estimate_files(batch_files, params)
    assert single == pooled


def test_estimate_uploads(resin_params):
    uploads = [
        ("cube.stl", write_binary_stl(cube_trimesh(10.0).triangles)),
        ("empty.stl", b""),
    ]
    result = EstimateService().estimate_uploads(uploads, resin_params())
    assert result.items[0].material_cost == pytest.approx(0.24, rel=1e-6)
    assert not result.items[1].ok
    assert result.aggregate.valid_items == 1


def test_estimate_manual_per_project(resin_params):
    params = resin_params(include_energy=True, cost_aggregation=CostAggregation.PER_PROJECT)
    result = EstimateService().estimate_manual("Miniature", params, resin_ml=5.0)

    assert len(result.items) == 1
    assert result.items[0].name == "Miniature"
    assert result.items[0].total_ml == pytest.approx(6.0)
    assert result.aggregate.total_cost == pytest.approx(6.0 * 0.2 + 0.02)


def test_empty_file_list(resin_params):
    result = EstimateService().estimate_files([], resin_params())
    assert result.items == []
    assert result.aggregate.valid_items == 0


def test_breakdown_serializes(batch_files, resin_params):
    result = EstimateService().estimate_files(batch_files, resin_params())
    restored = CostBreakdown.model_validate_json(result.model_dump_json())
    assert restored == result
