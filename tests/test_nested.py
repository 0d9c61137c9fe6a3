import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import MultiPolygon, Polygon, box

from sampling_design.errors import (
    InsufficientCellsError,
    InvalidGeometryError,
    InvalidParametersError,
)
from sampling_design.sampling import SampleLocation, sample_nested_grid
from sampling_design.sampling.nested import NestedGridStrategy, nest_fine_cells
from sampling_design.sampling.types import SamplingInputs, SamplingMethod
from sampling_design.scripts.grid import tessellate


def test_end_to_end_square(square_polygon, nested_params):
    results = sample_nested_grid(square_polygon, **nested_params)

    assert len(results.coarse_grid) == 16
    assert len(results.fine_grid) == 400
    assert len(results.selected_coarse) == 4
    assert results.selected_coarse["large_id"].tolist() == [1, 2, 3, 4]
    assert results.total_samples == 20

    points = results.points
    assert set(points["parent_id"]) == {1, 2, 3, 4}
    assert points.groupby("parent_id").size().tolist() == [5, 5, 5, 5]
    assert points["cell_id"].is_unique
    assert points.crs == square_polygon.crs


def test_fine_cells_nest_in_their_coarse_cell_only(square_polygon, nested_params):
    results = sample_nested_grid(square_polygon, **nested_params)

    # 2500 / 500 = 5 fine cells per side; outside neighbours are excluded
    assert results.nested_fine.groupby("parent_id").size().tolist() == [25] * 4

    parents = results.selected_coarse.set_index("large_id").geometry
    for row in results.nested_fine.itertuples():
        assert parents[row.parent_id].contains(row.geometry.centroid)


def test_parent_ids_reference_selected_coarse_cells(square_polygon, nested_params):
    results = sample_nested_grid(square_polygon, **nested_params)

    large_ids = set(results.selected_coarse["large_id"])
    assert set(results.selected_fine["parent_id"]) <= large_ids

    parents = results.selected_coarse.set_index("large_id").geometry
    for row in results.points.itertuples():
        assert parents[row.parent_id].contains(row.geometry)


def test_sample_locations_are_fine_cell_centroids(square_polygon, nested_params):
    results = sample_nested_grid(square_polygon, **nested_params)

    fine = results.fine_grid.set_index("cell_id").geometry
    for location in results.sample_locations:
        assert isinstance(location, SampleLocation)
        centroid = fine[location.cell_id].centroid
        assert (location.x, location.y) == pytest.approx((centroid.x, centroid.y))
        # fine cells of 500 m sit on a 500 m lattice: centroids end in 250
        assert (location.x - 250) % 500 == pytest.approx(0)

    first = results.sample_locations[0].to_dict()
    assert list(first) == ["cell_id", "parent_id", "x", "y"]
    assert first["cell_id"] == results.points["cell_id"].iloc[0]


def test_same_seed_same_design(square_polygon, nested_params):
    first = sample_nested_grid(square_polygon, **nested_params)
    second = sample_nested_grid(square_polygon, **nested_params)

    pd.testing.assert_frame_equal(
        pd.DataFrame(first.points.drop(columns="geometry")),
        pd.DataFrame(second.points.drop(columns="geometry")),
    )
    assert (
        first.selected_coarse["cell_id"].tolist()
        == second.selected_coarse["cell_id"].tolist()
    )


def test_different_seed_different_design(square_polygon, nested_params):
    first = sample_nested_grid(square_polygon, **nested_params)
    nested_params["seed"] = 1
    second = sample_nested_grid(square_polygon, **nested_params)

    assert first.points["cell_id"].tolist() != second.points["cell_id"].tolist()


def test_too_many_coarse_cells(six_cell_polygon, nested_params):
    nested_params["n_coarse"] = 50

    with pytest.raises(InsufficientCellsError) as excinfo:
        sample_nested_grid(six_cell_polygon, **nested_params)

    assert excinfo.value.requested == 50
    assert excinfo.value.available == 6


def test_too_many_fine_cells(square_polygon, nested_params):
    nested_params["n_fine_per_coarse"] = 26

    with pytest.raises(InsufficientCellsError) as excinfo:
        sample_nested_grid(square_polygon, **nested_params)

    assert excinfo.value.available == 25


def test_geographic_crs_is_rejected(nested_params):
    polygon = gpd.GeoDataFrame(
        geometry=[box(76.4, 11.5, 76.6, 11.7)], crs="EPSG:4326"
    )

    with pytest.raises(InvalidGeometryError, match="projected"):
        sample_nested_grid(polygon, **nested_params)


def test_empty_polygon_is_rejected(nested_params):
    polygon = gpd.GeoDataFrame(geometry=[Polygon()], crs="EPSG:32643")

    with pytest.raises(InvalidGeometryError):
        sample_nested_grid(polygon, **nested_params)


def test_self_intersecting_polygon_is_rejected(nested_params):
    bowtie = Polygon([(0, 0), (10000, 10000), (10000, 0), (0, 10000)])

    with pytest.raises(InvalidGeometryError, match="Invalid polygon"):
        sample_nested_grid(bowtie, crs="EPSG:32643", **nested_params)


def test_bare_geometry_without_crs_is_treated_as_planar(nested_params):
    results = sample_nested_grid(box(0, 0, 10000, 10000), **nested_params)

    assert results.total_samples == 20
    assert results.points.crs is None


def test_multipolygon_study_area(nested_params):
    area = MultiPolygon([box(0, 0, 4000, 5000), box(11000, 0, 15000, 5000)])

    results = sample_nested_grid(area, crs="EPSG:32643", **nested_params)

    # the gap between the two parts holds no cells
    assert len(results.coarse_grid) == 8
    assert results.coarse_grid.geometry.intersects(area).all()
    assert results.total_samples == 20


def test_overlapping_shrunk_cells_keep_first_parent():
    selected = gpd.GeoDataFrame(
        {"large_id": [1, 2], "cell_id": [10, 20]},
        geometry=[box(0, 0, 20, 20), box(10, 0, 30, 20)],
    )
    fine = tessellate((0, 0, 30, 20), 10)

    nested, shrunk = nest_fine_cells(fine, selected, 1)

    parents = dict(zip(nested["cell_id"], nested["parent_id"]))
    assert parents == {1: 1, 2: 1, 3: 2, 4: 1, 5: 1, 6: 2}
    assert len(shrunk) == 2


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"shrink_distance": 250}, "less than half the fine cell size"),
        ({"coarse_size": 500}, "larger than fine cell size"),
        ({"n_coarse": 0}, "Number of coarse cells must be at least 1"),
        ({"n_fine_per_coarse": 2.5}, "must be an integer"),
        ({"seed": None}, "Random seed is required"),
        ({"fine_size": -1}, "Fine cell size must be greater than 0"),
    ],
)
def test_invalid_parameters(square_polygon, nested_params, overrides, message):
    nested_params.update(overrides)

    with pytest.raises(InvalidParametersError, match=message):
        sample_nested_grid(square_polygon, **nested_params)


def test_missing_parameters_are_all_reported():
    strategy = NestedGridStrategy()
    inputs = SamplingInputs(sampling_method=SamplingMethod.NESTED, seed=1)

    errors = strategy.validate_inputs(inputs)

    assert not strategy.is_ready(inputs)
    assert "Study area polygon is required" in errors
    assert "Coarse cell size is required" in errors
    assert "Fine cell size is required" in errors
    assert "Number of coarse cells is required" in errors
    assert "Number of fine cells per coarse cell is required" in errors
    assert "Shrink distance is required" in errors
