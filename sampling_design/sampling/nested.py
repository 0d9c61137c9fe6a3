"""Nested grid sampling strategy implementation.

Two-stage cluster design over a study area polygon: a coarse grid is drawn
over the polygon and a few coarse cells are picked at random; within each
picked coarse cell a fixed number of fine cells is picked at random, and the
centroids of those fine cells are the sampling locations.

Fine cells are matched to their coarse cell through an eroded copy of the
coarse cell. A fine cell sharing only an edge with a coarse cell from the
outside does not intersect the eroded copy, so it is not claimed by it.
"""

import logging
from typing import List

import geopandas as gpd
import numpy as np
import pandas as pd

from sampling_design.errors import InsufficientCellsError
from sampling_design.sampling.base import (
    SamplingStrategy,
    require_positive_int,
    require_positive_number,
)
from sampling_design.sampling.types import (
    NestedSamplingResults,
    SamplingInputs,
    SamplingMethod,
)
from sampling_design.scripts.geospatial import prepare_polygon
from sampling_design.scripts.grid import make_grid, shrink_cells

logger = logging.getLogger("sampling_design.sampling.nested")


def select_coarse_cells(
    coarse_grid: gpd.GeoDataFrame, n_coarse: int, rng: np.random.Generator
) -> gpd.GeoDataFrame:
    """Draw ``n_coarse`` distinct coarse cells uniformly at random.

    The selected cells get ``large_id`` 1..n_coarse in selection order.

    Raises:
        InsufficientCellsError: If the grid has fewer than ``n_coarse`` cells
    """
    if n_coarse > len(coarse_grid):
        raise InsufficientCellsError(n_coarse, len(coarse_grid), "coarse cells")

    picked = rng.choice(len(coarse_grid), size=n_coarse, replace=False)
    selected = coarse_grid.iloc[picked].reset_index(drop=True)
    selected.insert(0, "large_id", np.arange(1, n_coarse + 1))
    return selected


def nest_fine_cells(
    fine_grid: gpd.GeoDataFrame,
    selected_coarse: gpd.GeoDataFrame,
    shrink_distance: float,
):
    """Assign fine cells to the selected coarse cell they sit in.

    Each selected coarse cell is eroded by ``shrink_distance`` and the fine
    grid is joined to the eroded cells with an ``intersects`` predicate. A
    fine cell intersecting more than one eroded cell keeps the first match,
    i.e. the lowest ``large_id``.

    Args:
        fine_grid: Filtered fine grid (cell_id, geometry)
        selected_coarse: Selected coarse cells (large_id, cell_id, geometry)
        shrink_distance: Erosion distance, in CRS units

    Returns:
        Tuple of (nested fine cells with parent_id, eroded coarse cells)
    """
    shrunk = shrink_cells(selected_coarse, shrink_distance)

    joined = gpd.sjoin(
        fine_grid,
        shrunk[["large_id", shrunk.geometry.name]],
        how="inner",
        predicate="intersects",
    )
    joined = joined.rename(columns={"large_id": "parent_id"})
    joined = joined.drop(columns="index_right")

    n_matches = len(joined)
    joined = joined.sort_values(["parent_id", "cell_id"])
    joined = joined.drop_duplicates(subset="cell_id", keep="first")
    if len(joined) < n_matches:
        logger.warning(
            f"{n_matches - len(joined)} fine cell(s) intersect more than one "
            "shrunk coarse cell; kept the lowest parent_id"
        )

    nested = joined.reset_index(drop=True)
    return nested, shrunk


def select_fine_cells(
    nested_fine: gpd.GeoDataFrame,
    parent_ids,
    n_fine_per_coarse: int,
    rng: np.random.Generator,
) -> gpd.GeoDataFrame:
    """Draw ``n_fine_per_coarse`` distinct fine cells within each parent.

    Parents are visited in ascending ``parent_id`` order so the generator is
    consumed the same way on every run.

    Raises:
        InsufficientCellsError: If a parent holds fewer fine cells than asked
    """
    picks = []
    for parent_id in sorted(parent_ids):
        group = nested_fine[nested_fine["parent_id"] == parent_id]
        if n_fine_per_coarse > len(group):
            raise InsufficientCellsError(
                n_fine_per_coarse,
                len(group),
                f"fine cells in coarse cell {parent_id}",
            )
        chosen = rng.choice(len(group), size=n_fine_per_coarse, replace=False)
        picks.append(group.iloc[chosen])

    selected = pd.concat(picks, ignore_index=True)
    return gpd.GeoDataFrame(
        selected, geometry=nested_fine.geometry.name, crs=nested_fine.crs
    )


def compute_sample_locations(selected_fine: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Centroids of the selected fine cells.

    Returns:
        GeoDataFrame with columns: cell_id, parent_id, x, y, geometry
    """
    centroids = selected_fine.geometry.centroid
    return gpd.GeoDataFrame(
        {
            "cell_id": selected_fine["cell_id"].astype(int).values,
            "parent_id": selected_fine["parent_id"].astype(int).values,
            "x": centroids.x.values,
            "y": centroids.y.values,
        },
        geometry=centroids.values,
        crs=selected_fine.crs,
    )


def sample_nested_grid(
    polygon,
    coarse_size: float,
    fine_size: float,
    n_coarse: int,
    n_fine_per_coarse: int,
    shrink_distance: float,
    seed: int,
    crs=None,
) -> NestedSamplingResults:
    """Run a nested grid sampling design over a polygon.

    Args:
        polygon: Study area (GeoDataFrame, GeoSeries or shapely geometry) in a
            projected CRS
        coarse_size: Coarse cell edge length, in CRS units
        fine_size: Fine cell edge length, in CRS units
        n_coarse: Number of coarse cells to select
        n_fine_per_coarse: Number of fine cells to select in each coarse cell
        shrink_distance: Erosion applied to selected coarse cells before the
            fine cell lookup; must be below ``fine_size / 2``
        seed: Seed for the run's random generator
        crs: CRS of a bare shapely geometry

    Returns:
        NestedSamplingResults

    Raises:
        InvalidGeometryError: If the polygon is empty, invalid or geographic
        InsufficientCellsError: If a sample exceeds the cells available
        GridTooLargeError: If a grid would be unreasonably large
    """
    strategy = NestedGridStrategy()
    return strategy.calculate(
        SamplingInputs(
            sampling_method=SamplingMethod.NESTED,
            seed=seed,
            polygon=polygon,
            crs=crs,
            coarse_size=coarse_size,
            fine_size=fine_size,
            n_coarse=n_coarse,
            n_fine_per_coarse=n_fine_per_coarse,
            shrink_distance=shrink_distance,
        )
    )


class NestedGridStrategy(SamplingStrategy):
    """Strategy for nested (two-stage) grid sampling.

    Nested grid sampling is ideal when:
    - Field teams can only visit a few clusters of the study area
    - Sampling units should be regular grid cells
    - Variation at two spatial scales is of interest
    """

    @property
    def method(self) -> SamplingMethod:
        return SamplingMethod.NESTED

    @property
    def display_name(self) -> str:
        return "Nested Grid Sampling"

    @property
    def description(self) -> str:
        return (
            "Select coarse grid cells at random over the study area, then a fixed "
            "number of fine grid cells within each. Sampling locations are the "
            "fine cell centroids."
        )

    @property
    def requires_polygon(self) -> bool:
        return True

    def validate_inputs(self, inputs: SamplingInputs) -> List[str]:
        """Validate inputs for nested grid sampling."""
        errors = self._validate_common_inputs(inputs)

        if inputs.polygon is None:
            errors.append("Study area polygon is required")

        coarse_ok = require_positive_number(
            errors, inputs.coarse_size, "Coarse cell size"
        )
        fine_ok = require_positive_number(errors, inputs.fine_size, "Fine cell size")
        require_positive_int(errors, inputs.n_coarse, "Number of coarse cells")
        require_positive_int(
            errors, inputs.n_fine_per_coarse, "Number of fine cells per coarse cell"
        )
        shrink_ok = require_positive_number(
            errors, inputs.shrink_distance, "Shrink distance"
        )

        if coarse_ok and fine_ok and inputs.coarse_size <= inputs.fine_size:
            errors.append("Coarse cell size must be larger than fine cell size")

        # Half a fine cell or more would drop fine cells inside the coarse cell.
        if fine_ok and shrink_ok and inputs.shrink_distance >= inputs.fine_size / 2:
            errors.append("Shrink distance must be less than half the fine cell size")

        return errors

    def calculate(self, inputs: SamplingInputs) -> NestedSamplingResults:
        """Run the nested grid design."""
        self._check_inputs(inputs)

        geometry, crs = prepare_polygon(inputs.polygon, crs=inputs.crs)
        rng = self._make_rng(inputs)

        logger.info(
            f"Nested grid sampling: coarse={inputs.coarse_size}, "
            f"fine={inputs.fine_size}, n_coarse={inputs.n_coarse}, "
            f"n_fine={inputs.n_fine_per_coarse}, seed={inputs.seed}"
        )

        coarse_grid = make_grid(geometry, inputs.coarse_size, crs=crs)
        fine_grid = make_grid(geometry, inputs.fine_size, crs=crs)
        logger.info(
            f"Filtered grids: {len(coarse_grid)} coarse cells, "
            f"{len(fine_grid)} fine cells"
        )

        try:
            selected_coarse = select_coarse_cells(coarse_grid, inputs.n_coarse, rng)
            nested_fine, shrunk_coarse = nest_fine_cells(
                fine_grid, selected_coarse, inputs.shrink_distance
            )
            selected_fine = select_fine_cells(
                nested_fine,
                selected_coarse["large_id"].tolist(),
                inputs.n_fine_per_coarse,
                rng,
            )
        except InsufficientCellsError as e:
            logger.error(f"Error in nested grid sampling: {e}")
            raise

        points = compute_sample_locations(selected_fine)
        logger.info(f"Generated {len(points)} sampling locations")

        return NestedSamplingResults(
            sampling_method=self.method,
            seed=inputs.seed,
            coarse_size=inputs.coarse_size,
            fine_size=inputs.fine_size,
            shrink_distance=inputs.shrink_distance,
            coarse_grid=coarse_grid,
            fine_grid=fine_grid,
            selected_coarse=selected_coarse,
            shrunk_coarse=shrunk_coarse,
            nested_fine=nested_fine,
            selected_fine=selected_fine,
            points=points,
        )
