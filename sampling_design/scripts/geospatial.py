"""Geospatial Processing Module.

Contains functions for file I/O, layer summaries, raster handling and
export of sampling locations.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import geopandas as gpd
import numpy as np
import pandas as pd
import rasterio
from pyogrio.errors import DataLayerError, DataSourceError
from pyproj import CRS
from rasterio.transform import Affine, rowcol, xy
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.validation import explain_validity

from sampling_design.errors import (
    EmptyRasterError,
    InvalidGeometryError,
    UnsupportedFormatError,
)
from sampling_design.scripts.parameter import (
    default_output_suffix,
    geographic_crs_str,
    raster_extensions,
    vector_drivers,
    vector_extensions,
)

logger = logging.getLogger("sampling_design.geospatial")


def is_raster_file(file_path: str) -> bool:
    """Check if file is a supported raster format."""
    return Path(file_path).suffix.lower() in raster_extensions


def is_vector_file(file_path: str) -> bool:
    """Check if file is a supported vector format."""
    return Path(file_path).suffix.lower() in vector_extensions


# --- Polygons and CRS ---


def check_projected(crs) -> None:
    """Make sure planar distances are meaningful in ``crs``.

    Args:
        crs: Anything pyproj accepts, or None

    Raises:
        InvalidGeometryError: If the CRS is geographic (degrees)
    """
    if crs is None:
        logger.warning(
            "No CRS defined for the polygon. Assuming planar coordinates in "
            "consistent, albeit unknown, units."
        )
        return

    crs = CRS.from_user_input(crs)
    if crs.is_geographic:
        raise InvalidGeometryError(
            f"Polygon CRS {get_crs_string(crs)} is geographic; nested grids need "
            "a projected CRS. Reproject first (see to_projected_crs)."
        )


def to_projected_crs(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Reproject a geographic layer to the UTM zone covering it.

    Layers that are already projected are returned unchanged.
    """
    if gdf.crs is None:
        raise InvalidGeometryError("Layer has no CRS; cannot pick a projection")

    if not gdf.crs.is_geographic:
        return gdf

    utm_crs = gdf.estimate_utm_crs()
    logger.info(f"Reprojecting layer from {get_crs_string(gdf.crs)} to {utm_crs}")
    return gdf.to_crs(utm_crs)


def prepare_polygon(
    polygon: Union[gpd.GeoDataFrame, gpd.GeoSeries, BaseGeometry], crs=None
) -> Tuple[BaseGeometry, Optional[CRS]]:
    """Turn a layer or geometry into a single valid planar polygon.

    Multi-feature layers are dissolved into one geometry.

    Args:
        polygon: GeoDataFrame, GeoSeries or shapely geometry
        crs: CRS of a bare geometry (ignored for layers, which carry their own)

    Returns:
        Tuple of (geometry, crs)

    Raises:
        InvalidGeometryError: If the polygon is empty, invalid, not areal or
            not in a projected CRS
    """
    if isinstance(polygon, (gpd.GeoDataFrame, gpd.GeoSeries)):
        if polygon.empty:
            raise InvalidGeometryError("Polygon layer contains no features")
        crs = polygon.crs
        geoms = polygon.geometry if isinstance(polygon, gpd.GeoDataFrame) else polygon
        geometry = unary_union(geoms.dropna().values)
    elif isinstance(polygon, BaseGeometry):
        geometry = polygon
    else:
        raise InvalidGeometryError(
            f"Expected a polygon layer or geometry, got {type(polygon).__name__}"
        )

    if geometry is None or geometry.is_empty:
        raise InvalidGeometryError("Polygon is empty")

    if geometry.geom_type not in ("Polygon", "MultiPolygon"):
        raise InvalidGeometryError(
            f"Expected a Polygon or MultiPolygon, got {geometry.geom_type}"
        )

    if not geometry.is_valid:
        raise InvalidGeometryError(f"Invalid polygon: {explain_validity(geometry)}")

    check_projected(crs)
    return geometry, (CRS.from_user_input(crs) if crs is not None else None)


def read_polygon(
    file_path: str,
    layer: Optional[str] = None,
    where: Optional[Dict[str, Any]] = None,
) -> gpd.GeoDataFrame:
    """Read a vector file and dissolve it into a single polygon.

    Args:
        file_path: Path to vector file
        layer: Layer name for multi-layer sources (GeoPackage)
        where: Optional attribute filter, e.g. ``{"NAME": "Mudumalai"}``

    Returns:
        Single-row GeoDataFrame in the file's CRS

    Raises:
        InvalidGeometryError: If the file cannot be read or no feature is
            selected
    """
    try:
        gdf = gpd.read_file(file_path, layer=layer)
    except (DataSourceError, DataLayerError, OSError) as e:
        raise InvalidGeometryError(f"Cannot read polygon layer {file_path}: {e}") from e

    if where:
        for column, value in where.items():
            if column not in gdf.columns:
                raise InvalidGeometryError(
                    f"Column '{column}' not found in {Path(file_path).name}"
                )
            gdf = gdf[gdf[column] == value]

    if gdf.empty:
        raise InvalidGeometryError(f"No features selected from {file_path}")

    logger.info(f"Read {len(gdf)} feature(s) from {Path(file_path).name}")
    return gpd.GeoDataFrame(geometry=[unary_union(gdf.geometry.values)], crs=gdf.crs)


def get_crs_string(crs) -> Optional[str]:
    """Extract clean CRS representation."""
    if not crs:
        return None
    epsg = crs.to_epsg()
    if epsg:
        return f"EPSG:{epsg}"
    crs_str = str(crs)
    match = re.search(r'AUTHORITY\["EPSG","(\d+)"\]', crs_str)
    if match:
        return f"EPSG:{match.group(1)}"
    return "Custom CRS"


# --- Rasters ---


@dataclass
class RasterGrid:
    """A single raster band held in memory.

    Cells are addressed by their flat row-major index into ``values``.
    """

    values: np.ndarray
    transform: Affine
    crs: Optional[Any] = None
    nodata: Optional[float] = None

    @classmethod
    def from_file(cls, file_path: str, band: int = 1) -> "RasterGrid":
        return read_raster(file_path, band=band)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    @property
    def res(self) -> Tuple[float, float]:
        return abs(self.transform.a), abs(self.transform.e)

    def valid_mask(self) -> np.ndarray:
        """Boolean mask of cells that are neither no-data nor NaN."""
        mask = np.ones(self.values.shape, dtype=bool)
        if np.issubdtype(self.values.dtype, np.floating):
            mask &= ~np.isnan(self.values)
        if self.nodata is not None and not np.isnan(self.nodata):
            mask &= self.values != self.nodata
        return mask

    def eligible_indices(self) -> np.ndarray:
        """Flat indices of valid cells, in row-major order."""
        return np.flatnonzero(self.valid_mask())

    def cell_centers(self, flat_indices) -> Tuple[np.ndarray, np.ndarray]:
        """Coordinates of cell centres for the given flat indices."""
        rows, cols = np.unravel_index(np.asarray(flat_indices), self.values.shape)
        xs, ys = xy(self.transform, rows, cols, offset="center")
        return np.asarray(xs, dtype=float), np.asarray(ys, dtype=float)


def read_raster(file_path: str, band: int = 1) -> RasterGrid:
    """Read one band of a raster file.

    Cells masked by the dataset (nodata or mask band) keep the nodata value,
    or become NaN when the band has no nodata value and a float dtype.
    """
    with rasterio.open(file_path) as src:
        data = src.read(band, masked=True)
        nodata = src.nodata
        crs = src.crs
        transform = src.transform

    if crs is None:
        logger.warning(f"No CRS defined for raster {Path(file_path).name}")

    if nodata is None and np.ma.is_masked(data):
        if np.issubdtype(data.dtype, np.floating):
            values = data.filled(np.nan)
        else:
            values = data.astype("float64").filled(np.nan)
    else:
        values = data.filled(nodata) if nodata is not None else np.asarray(data)

    logger.info(
        f"Read band {band} of {Path(file_path).name}: {values.shape[1]} x "
        f"{values.shape[0]} cells, nodata={nodata}"
    )
    return RasterGrid(values=values, transform=transform, crs=crs, nodata=nodata)


def compute_raster_statistics(raster: RasterGrid) -> Dict[str, float]:
    """Summary statistics over the valid cells of a raster.

    Raises:
        EmptyRasterError: If every cell is no-data
    """
    mask = raster.valid_mask()
    values = raster.values[mask]

    if values.size == 0:
        raise EmptyRasterError("No valid data found in raster")

    return {
        "count": int(values.size),
        "nodata_count": int(mask.size - values.size),
        "min": float(values.min()),
        "max": float(values.max()),
        "mean": float(values.mean()),
        "std": float(values.std()),
    }


def extract_raster_values(
    raster: RasterGrid, points: gpd.GeoDataFrame, column: str = "value"
) -> gpd.GeoDataFrame:
    """Attach the raster value under each point.

    Points outside the raster or over no-data cells get NaN.

    Args:
        raster: Raster to read
        points: Point layer
        column: Name of the new column

    Returns:
        Copy of ``points`` with the extra column
    """
    lookup = points
    if raster.crs is not None and points.crs is not None and points.crs != raster.crs:
        lookup = points.to_crs(raster.crs)

    rows, cols = rowcol(
        raster.transform, lookup.geometry.x.values, lookup.geometry.y.values
    )
    rows = np.asarray(rows)
    cols = np.asarray(cols)

    height, width = raster.shape
    inside = (rows >= 0) & (rows < height) & (cols >= 0) & (cols < width)

    values = np.full(len(points), np.nan)
    valid = raster.valid_mask()
    r, c = rows[inside], cols[inside]
    hit = valid[r, c]
    picked = np.where(hit, raster.values[r, c], np.nan)
    values[inside] = picked

    result = points.copy()
    result[column] = values
    return result


# --- Vector summaries ---


def compute_polygon_areas(
    gdf: gpd.GeoDataFrame, by: Optional[str] = None
) -> pd.DataFrame:
    """Area of each feature, or of each attribute value, in square kilometres.

    Geographic layers are projected to their UTM zone first.

    Args:
        gdf: Polygon layer
        by: Optional attribute to group by (e.g. protected area name)

    Returns:
        DataFrame with columns: [by,] area_km2
    """
    if gdf.empty:
        raise InvalidGeometryError("Vector layer contains no features")

    if gdf.crs and gdf.crs.is_geographic:
        gdf_projected = to_projected_crs(gdf)
    else:
        gdf_projected = gdf

    areas = gdf_projected.geometry.area / 1_000_000

    if by is None:
        result = pd.DataFrame(gdf.drop(columns=gdf.geometry.name))
        result["area_km2"] = areas.values
        return result

    if by not in gdf.columns:
        raise KeyError(f"Column '{by}' not found in layer")

    area_by_class = areas.groupby(gdf[by].values).sum()
    return pd.DataFrame({by: area_by_class.index, "area_km2": area_by_class.values})


def count_points_in_polygons(
    points: gpd.GeoDataFrame, polygons: gpd.GeoDataFrame, by: str
) -> pd.DataFrame:
    """Count points (e.g. species occurrences) falling in each polygon.

    Points on a polygon boundary count for that polygon.

    Args:
        points: Point layer
        polygons: Polygon layer
        by: Polygon attribute identifying each polygon

    Returns:
        DataFrame with columns: by, n_points (zero counts included)
    """
    if by not in polygons.columns:
        raise KeyError(f"Column '{by}' not found in polygon layer")

    if points.crs is not None and polygons.crs is not None:
        points = points.to_crs(polygons.crs)

    joined = gpd.sjoin(
        points[[points.geometry.name]],
        polygons[[by, polygons.geometry.name]],
        how="inner",
        predicate="intersects",
    )
    counts = joined.groupby(by).size()
    all_keys = pd.unique(polygons[by])
    counts = counts.reindex(all_keys, fill_value=0)

    return pd.DataFrame({by: counts.index, "n_points": counts.values.astype(int)})


def get_file_info(file_path: str) -> Dict:
    """Get basic information about a geospatial file.

    Args:
        file_path: Path to file

    Returns:
        Dictionary with file information
    """
    info = {
        "file_type": "unknown",
        "size_mb": Path(file_path).stat().st_size / (1024 * 1024),
        "crs": None,
        "bounds": None,
        "feature_count": 0,
    }

    if is_raster_file(file_path):
        with rasterio.open(file_path) as raster:
            info["file_type"] = "raster"
            info["crs"] = get_crs_string(raster.crs)
            info["bounds"] = list(raster.bounds)
            info["width"] = raster.width
            info["height"] = raster.height
            info["resolution"] = list(raster.res)
            info["nodata"] = raster.nodata
            info["feature_count"] = raster.width * raster.height

    elif is_vector_file(file_path):
        gdf = gpd.read_file(file_path)
        info["file_type"] = "vector"
        info["crs"] = get_crs_string(gdf.crs)
        info["bounds"] = list(gdf.total_bounds)
        info["feature_count"] = len(gdf)
        info["geometry_types"] = sorted(gdf.geom_type.dropna().unique().tolist())

    return info


# --- Export ---


def resolve_output_path(
    output_dir: Union[str, Path], filename: str
) -> Tuple[Path, str]:
    """Output path and vector driver for a file name.

    The driver follows the file suffix (.gpkg, .geojson, .shp); a name without
    suffix gets .gpkg. Nothing is created on disk.

    Raises:
        UnsupportedFormatError: If the suffix has no vector driver
    """
    path = Path(output_dir) / filename
    if not path.suffix:
        path = path.with_suffix(default_output_suffix)

    driver = vector_drivers.get(path.suffix.lower())
    if driver is None:
        raise UnsupportedFormatError(
            f"Unsupported output format: {path.suffix} "
            f"(use one of {', '.join(sorted(vector_drivers))})"
        )
    return path, driver


def export_sample_points(
    points: gpd.GeoDataFrame,
    output_dir: Union[str, Path],
    filename: str = "sample_locations" + default_output_suffix,
) -> Path:
    """Write sampling locations to a vector file.

    The output directory is created on demand.

    Returns:
        Path of the written file

    Raises:
        UnsupportedFormatError: If the suffix has no vector driver
    """
    path, driver = resolve_output_path(output_dir, filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    points.to_file(path, driver=driver)
    logger.info(f"Wrote {len(points)} sampling locations to {path}")
    return path


def export_points_to_csv(points: gpd.GeoDataFrame) -> str:
    """Export points to CSV format (attribute columns only).

    Args:
        points: GeoDataFrame with sample points

    Returns:
        CSV string
    """
    return pd.DataFrame(points.drop(columns=points.geometry.name)).to_csv(index=False)


def export_points_to_geojson(points: gpd.GeoDataFrame) -> str:
    """Export points to GeoJSON format, in longitude/latitude.

    Args:
        points: GeoDataFrame with sample points

    Returns:
        GeoJSON string
    """
    if points.crs is not None:
        points = points.to_crs(geographic_crs_str)
    return points.to_json()
