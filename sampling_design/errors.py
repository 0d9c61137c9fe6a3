"""Exceptions raised by the sampling strategies.

Every error is raised synchronously to the caller. Sampling is deterministic
for a given seed, so none of them is worth retrying with the same inputs.
"""

from typing import List, Optional


class SamplingDesignError(Exception):
    """Base class for all sampling design errors."""


class InsufficientCellsError(SamplingDesignError):
    """Raised when a sample size exceeds the number of eligible cells."""

    def __init__(self, requested: int, available: int, what: str = "cells"):
        self.requested = requested
        self.available = available
        self.what = what
        super().__init__(
            f"Cannot sample {requested} {what}: only {available} eligible"
        )


class InvalidGeometryError(SamplingDesignError):
    """Raised for empty or invalid polygons, or a non-planar CRS."""


class EmptyRasterError(SamplingDesignError):
    """Raised when a raster has no cells outside its no-data mask."""


class GridTooLargeError(SamplingDesignError):
    """Raised when a tessellation would exceed the allowed number of cells."""

    def __init__(self, n_cells: int, max_cells: int):
        self.n_cells = n_cells
        self.max_cells = max_cells
        super().__init__(
            f"Grid would contain {n_cells:,} cells (limit {max_cells:,}). "
            "Use a larger cell size or a smaller polygon."
        )


class InvalidParametersError(SamplingDesignError, ValueError):
    """Raised when a strategy rejects its inputs.

    Args:
        errors: Validation messages, one per problem found
    """

    def __init__(self, errors: List[str], method: Optional[str] = None):
        self.errors = list(errors)
        self.method = method
        prefix = f"Invalid inputs for {method} sampling: " if method else ""
        super().__init__(prefix + "; ".join(self.errors))


class ConfigError(SamplingDesignError):
    """Raised when a design file cannot be read or is malformed."""


class UnsupportedFormatError(SamplingDesignError, ValueError):
    """Raised when an output file name has no known vector driver."""
