"""Type definitions for sampling strategies.

Contains data classes that define the inputs and outputs for all sampling methods.
This provides a clear contract between callers (CLI, notebooks) and the
sampling logic.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import geopandas as gpd
import pandas as pd
from shapely.geometry.base import BaseGeometry


class SamplingMethod(Enum):
    """Available sampling methods."""

    NESTED = "nested"
    STRATIFIED = "stratified"
    UNIFORM = "uniform"

    @classmethod
    def from_string(cls, value: str) -> "SamplingMethod":
        """Convert string to SamplingMethod enum."""
        for method in cls:
            if method.value == value.lower():
                return method
        raise ValueError(f"Unknown sampling method: {value}")


@dataclass
class SamplingInputs:
    """Input parameters for sampling runs.

    This is a unified input structure that contains all possible parameters.
    Each strategy will use only the parameters relevant to it. None of the
    sampling parameters has a default: a strategy reports every parameter it
    needs and did not get.
    """

    # Common parameters
    sampling_method: SamplingMethod
    seed: Optional[int] = None

    # Nested-grid-specific
    polygon: Optional[Union[gpd.GeoDataFrame, gpd.GeoSeries, BaseGeometry]] = None
    crs: Optional[Any] = None  # Only used when polygon is a bare geometry
    coarse_size: Optional[float] = None  # CRS units (e.g. metres)
    fine_size: Optional[float] = None
    n_coarse: Optional[int] = None
    n_fine_per_coarse: Optional[int] = None
    shrink_distance: Optional[float] = None

    # Raster-specific
    raster: Optional[Any] = None  # RasterGrid
    n_classes: Optional[int] = None
    samples_per_class: Optional[int] = None


@dataclass(frozen=True)
class SampleLocation:
    """A single sampling location: the centroid of a selected fine cell."""

    cell_id: int
    parent_id: int
    x: float
    y: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cell_id": self.cell_id,
            "parent_id": self.parent_id,
            "x": self.x,
            "y": self.y,
        }


@dataclass
class NestedSamplingResults:
    """Results from a nested grid sampling run.

    The intermediate layers are kept so callers can inspect or plot them.
    """

    sampling_method: SamplingMethod
    seed: int
    coarse_size: float
    fine_size: float
    shrink_distance: float

    # Filtered grids (cells intersecting the polygon)
    coarse_grid: gpd.GeoDataFrame
    fine_grid: gpd.GeoDataFrame

    # Selected coarse cells with their large_id, and the eroded copies
    selected_coarse: gpd.GeoDataFrame
    shrunk_coarse: gpd.GeoDataFrame

    # Fine cells nested in a selected coarse cell (with parent_id)
    nested_fine: gpd.GeoDataFrame
    selected_fine: gpd.GeoDataFrame

    # Final sampling locations: cell_id, parent_id, x, y, geometry
    points: gpd.GeoDataFrame

    @property
    def sample_locations(self) -> List[SampleLocation]:
        """Sampling locations in output order."""
        return [
            SampleLocation(
                cell_id=int(row.cell_id),
                parent_id=int(row.parent_id),
                x=float(row.x),
                y=float(row.y),
            )
            for row in self.points.itertuples(index=False)
        ]

    @property
    def total_samples(self) -> int:
        return len(self.points)

    def summary(self) -> Dict[str, Any]:
        """Cell counts at each stage of the design."""
        return {
            "sampling_method": self.sampling_method.value,
            "seed": self.seed,
            "coarse_size": self.coarse_size,
            "fine_size": self.fine_size,
            "shrink_distance": self.shrink_distance,
            "coarse_cells": len(self.coarse_grid),
            "fine_cells": len(self.fine_grid),
            "selected_coarse": len(self.selected_coarse),
            "nested_fine": len(self.nested_fine),
            "total_samples": self.total_samples,
        }


@dataclass
class StratifiedSamplingResults:
    """Results from a raster sampling run (stratified or uniform).

    ``points`` has columns: cell_index, row, col, value, class_label, x, y,
    geometry.
    """

    sampling_method: SamplingMethod
    seed: Optional[int]
    n_classes: int
    points: gpd.GeoDataFrame
    breakpoints: List[float] = field(default_factory=list)
    class_counts: Dict[int, int] = field(default_factory=dict)

    @property
    def total_samples(self) -> int:
        return len(self.points)

    def samples_per_class(self) -> pd.Series:
        """Number of sampled cells in each class label."""
        counts = self.points["class_label"].value_counts().sort_index()
        return counts.reindex(range(1, self.n_classes + 1), fill_value=0)

    def summary(self) -> Dict[str, Any]:
        return {
            "sampling_method": self.sampling_method.value,
            "seed": self.seed,
            "n_classes": self.n_classes,
            "breakpoints": list(self.breakpoints),
            "class_counts": dict(self.class_counts),
            "total_samples": self.total_samples,
        }
