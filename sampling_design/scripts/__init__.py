"""Sampling Design Scripts Package.

Contains grid, geospatial and configuration helpers used by the sampling
strategies.
"""

from .config import DesignConfig, load_config
from .geospatial import (
    RasterGrid,
    check_projected,
    compute_polygon_areas,
    compute_raster_statistics,
    count_points_in_polygons,
    export_points_to_csv,
    export_points_to_geojson,
    export_sample_points,
    extract_raster_values,
    get_file_info,
    is_raster_file,
    is_vector_file,
    prepare_polygon,
    read_polygon,
    read_raster,
    resolve_output_path,
    to_projected_crs,
)
from .grid import filter_intersecting, grid_shape, make_grid, shrink_cells, tessellate

__all__ = [
    # Grids
    "tessellate",
    "grid_shape",
    "make_grid",
    "filter_intersecting",
    "shrink_cells",
    # Geospatial Processing
    "is_raster_file",
    "is_vector_file",
    "check_projected",
    "prepare_polygon",
    "read_polygon",
    "to_projected_crs",
    "RasterGrid",
    "read_raster",
    "compute_raster_statistics",
    "extract_raster_values",
    "compute_polygon_areas",
    "count_points_in_polygons",
    "get_file_info",
    "resolve_output_path",
    "export_sample_points",
    "export_points_to_csv",
    "export_points_to_geojson",
    # Configuration
    "DesignConfig",
    "load_config",
]
