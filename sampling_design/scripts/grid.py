"""Planar grid helpers.

Tessellation, intersection filtering and erosion of square cells. All
distances are in the units of the layer's CRS, so callers are expected to
work in a projected CRS.
"""

import logging
import math
from typing import Sequence, Tuple

import geopandas as gpd
import numpy as np
import shapely
from shapely.geometry.base import BaseGeometry

from sampling_design.errors import GridTooLargeError, InvalidGeometryError
from sampling_design.scripts.parameter import max_grid_cells

logger = logging.getLogger("sampling_design.grid")


def grid_shape(bbox: Sequence[float], cellsize: float) -> Tuple[int, int]:
    """Number of columns and rows needed to cover a bounding box.

    Args:
        bbox: (minx, miny, maxx, maxy)
        cellsize: Cell edge length, in CRS units

    Returns:
        Tuple of (n_cols, n_rows), each at least 1
    """
    if cellsize <= 0:
        raise ValueError("Cell size must be greater than 0")

    minx, miny, maxx, maxy = bbox
    # Rounding keeps an exact multiple of the cell size from gaining a column
    # through floating point noise.
    n_cols = max(1, math.ceil(round((maxx - minx) / cellsize, 9)))
    n_rows = max(1, math.ceil(round((maxy - miny) / cellsize, 9)))
    return n_cols, n_rows


def tessellate(
    bbox: Sequence[float],
    cellsize: float,
    crs=None,
    max_cells: int = max_grid_cells,
) -> gpd.GeoDataFrame:
    """Cover a bounding box with square cells.

    Cells start at the lower-left corner of the box and are generated row by
    row, x fastest. ``cell_id`` follows that order, starting at 1.

    Args:
        bbox: (minx, miny, maxx, maxy)
        cellsize: Cell edge length, in CRS units
        crs: CRS assigned to the output
        max_cells: Refuse to build grids with more cells than this

    Returns:
        GeoDataFrame with columns: cell_id, geometry

    Raises:
        GridTooLargeError: If the grid would exceed ``max_cells``
    """
    n_cols, n_rows = grid_shape(bbox, cellsize)
    n_cells = n_cols * n_rows
    if n_cells > max_cells:
        raise GridTooLargeError(n_cells, max_cells)

    minx, miny = bbox[0], bbox[1]
    cols, rows = np.meshgrid(np.arange(n_cols), np.arange(n_rows))
    x0 = minx + cols.ravel() * cellsize
    y0 = miny + rows.ravel() * cellsize
    cells = shapely.box(x0, y0, x0 + cellsize, y0 + cellsize)

    logger.debug(
        f"Tessellated bbox {tuple(bbox)} at {cellsize}: "
        f"{n_cols} x {n_rows} = {n_cells} cells"
    )

    return gpd.GeoDataFrame(
        {"cell_id": np.arange(1, n_cells + 1)},
        geometry=cells,
        crs=crs,
    )


def filter_intersecting(
    grid: gpd.GeoDataFrame, polygon: BaseGeometry
) -> gpd.GeoDataFrame:
    """Keep the cells that intersect a polygon.

    The test is boundary inclusive: a cell touching the polygon along an edge
    or at a single vertex is kept.
    """
    mask = grid.geometry.intersects(polygon)
    return grid[mask].reset_index(drop=True)


def make_grid(
    polygon: BaseGeometry,
    cellsize: float,
    crs=None,
    max_cells: int = max_grid_cells,
    filtered: bool = True,
) -> gpd.GeoDataFrame:
    """Tessellate a polygon's bounding box and optionally drop outside cells.

    Args:
        polygon: Polygon to cover
        cellsize: Cell edge length, in CRS units
        crs: CRS assigned to the output
        max_cells: Cell-count bound passed to :func:`tessellate`
        filtered: Drop cells that do not intersect ``polygon``

    Returns:
        GeoDataFrame with columns: cell_id, geometry
    """
    if polygon is None or polygon.is_empty:
        raise InvalidGeometryError("Cannot build a grid over an empty polygon")

    grid = tessellate(polygon.bounds, cellsize, crs=crs, max_cells=max_cells)
    if not filtered:
        return grid

    kept = filter_intersecting(grid, polygon)
    logger.debug(f"Kept {len(kept)} of {len(grid)} cells at {cellsize}")
    return kept


def shrink_cells(cells: gpd.GeoDataFrame, distance: float) -> gpd.GeoDataFrame:
    """Erode cell boundaries inward by ``distance``.

    Mitre joins keep a square cell square. Attribute columns are preserved.

    Args:
        cells: Cells to erode
        distance: Positive erosion distance, in CRS units
    """
    if distance <= 0:
        raise ValueError("Shrink distance must be greater than 0")

    shrunk = cells.copy()
    eroded = cells.geometry.buffer(-distance, join_style="mitre")
    if eroded.is_empty.any():
        raise InvalidGeometryError(
            f"Shrinking by {distance} collapses {int(eroded.is_empty.sum())} cell(s)"
        )

    shrunk[shrunk.geometry.name] = eroded.values
    return shrunk
