"""Stratified raster sampling strategy implementation.

Stratified sampling divides the raster's valid cells into equal-count
quantile classes (e.g. elevation quartiles) and draws the same number of
cells from each class. This guarantees that every part of the value range
is represented, which simple random sampling over a skewed raster does not.

Uniform random sampling over the same cells is provided as the baseline to
compare against.
"""

import logging
from typing import List, Tuple

import geopandas as gpd
import numpy as np
import pandas as pd

from sampling_design.errors import EmptyRasterError, InsufficientCellsError
from sampling_design.sampling.base import SamplingStrategy, require_positive_int
from sampling_design.sampling.types import (
    SamplingInputs,
    SamplingMethod,
    StratifiedSamplingResults,
)

logger = logging.getLogger("sampling_design.sampling.stratified")


def assign_quantile_classes(
    values: np.ndarray, n_classes: int
) -> Tuple[np.ndarray, List[float]]:
    """Bin values into equal-count quantile classes.

    Values are ranked with a stable sort, so equal values keep their original
    order. The value of rank ``r`` among ``n`` gets class
    ``r * n_classes // n + 1``; class sizes differ by at most one.

    Args:
        values: 1D array of values, in cell index order
        n_classes: Number of classes (4 for quartiles)

    Returns:
        Tuple of (class labels 1..n_classes aligned with ``values``,
        breakpoints as the maximum value of each class)

    Raises:
        EmptyRasterError: If ``values`` is empty
    """
    values = np.asarray(values)
    n = values.size
    if n == 0:
        raise EmptyRasterError("No valid cells to compute quantile classes from")

    order = np.argsort(values, kind="stable")
    ranks = np.empty(n, dtype=np.int64)
    ranks[order] = np.arange(n)
    labels = ranks * n_classes // n + 1

    breakpoints = []
    for label in range(1, n_classes + 1):
        in_class = values[labels == label]
        breakpoints.append(float(in_class.max()) if in_class.size else float("nan"))

    return labels, breakpoints


def _points_frame(raster, flat_indices: np.ndarray, labels: np.ndarray):
    values = raster.values.ravel()[flat_indices]
    rows, cols = np.unravel_index(flat_indices, raster.shape)
    xs, ys = raster.cell_centers(flat_indices)
    return gpd.GeoDataFrame(
        {
            "cell_index": flat_indices.astype(np.int64),
            "row": rows.astype(np.int64),
            "col": cols.astype(np.int64),
            "value": values,
            "class_label": labels.astype(np.int64),
            "x": xs,
            "y": ys,
        },
        geometry=gpd.points_from_xy(xs, ys),
        crs=raster.crs,
    )


def classify_raster(raster, n_classes: int):
    """Eligible cell indices of a raster with their quantile class.

    Returns:
        Tuple of (flat indices, labels, breakpoints)

    Raises:
        EmptyRasterError: If the raster has no valid cells
    """
    eligible = raster.eligible_indices()
    if eligible.size == 0:
        raise EmptyRasterError("No valid data found in raster")

    values = raster.values.ravel()[eligible]
    labels, breakpoints = assign_quantile_classes(values, n_classes)
    return eligible, labels, breakpoints


def sample_raster_stratified(
    raster, n_classes: int, samples_per_class: int, rng: np.random.Generator
) -> StratifiedSamplingResults:
    """Draw ``samples_per_class`` cells from each quantile class.

    Raises:
        EmptyRasterError: If the raster has no valid cells
        InsufficientCellsError: If a class is smaller than the sample
    """
    eligible, labels, breakpoints = classify_raster(raster, n_classes)

    picked_indices = []
    picked_labels = []
    class_counts = {}
    for label in range(1, n_classes + 1):
        members = eligible[labels == label]
        class_counts[label] = int(members.size)
        if samples_per_class > members.size:
            raise InsufficientCellsError(
                samples_per_class, int(members.size), f"cells in class {label}"
            )
        chosen = rng.choice(members.size, size=samples_per_class, replace=False)
        picked_indices.append(members[chosen])
        picked_labels.append(np.full(samples_per_class, label))

        logger.debug(
            f"Class {label}: {members.size} cells, sampled {samples_per_class}"
        )

    points = _points_frame(
        raster, np.concatenate(picked_indices), np.concatenate(picked_labels)
    )
    return StratifiedSamplingResults(
        sampling_method=SamplingMethod.STRATIFIED,
        seed=None,
        n_classes=n_classes,
        points=points,
        breakpoints=breakpoints,
        class_counts=class_counts,
    )


def sample_raster_uniform(
    raster, n_samples: int, n_classes: int, rng: np.random.Generator
) -> StratifiedSamplingResults:
    """Draw ``n_samples`` cells uniformly at random, ignoring classes.

    Sampled cells are still labelled with their quantile class so the result
    can be compared with a stratified sample.

    Raises:
        EmptyRasterError: If the raster has no valid cells
        InsufficientCellsError: If the raster has fewer valid cells than asked
    """
    eligible, labels, breakpoints = classify_raster(raster, n_classes)
    if n_samples > eligible.size:
        raise InsufficientCellsError(n_samples, int(eligible.size), "raster cells")

    chosen = rng.choice(eligible.size, size=n_samples, replace=False)
    points = _points_frame(raster, eligible[chosen], labels[chosen])

    class_counts = {
        label: int((labels == label).sum()) for label in range(1, n_classes + 1)
    }
    return StratifiedSamplingResults(
        sampling_method=SamplingMethod.UNIFORM,
        seed=None,
        n_classes=n_classes,
        points=points,
        breakpoints=breakpoints,
        class_counts=class_counts,
    )


def _counts(results: StratifiedSamplingResults, labels) -> np.ndarray:
    return results.samples_per_class().reindex(labels, fill_value=0).values


def compare_class_representation(
    stratified: StratifiedSamplingResults, uniform: StratifiedSamplingResults
) -> pd.DataFrame:
    """Per-class sample counts of a stratified and a uniform design.

    Returns:
        DataFrame with columns: class_label, upper_bound, stratified, uniform
    """
    n_classes = max(stratified.n_classes, uniform.n_classes)
    labels = range(1, n_classes + 1)
    bounds = list(stratified.breakpoints) + [np.nan] * n_classes
    return pd.DataFrame(
        {
            "class_label": list(labels),
            "upper_bound": bounds[:n_classes],
            "stratified": _counts(stratified, labels),
            "uniform": _counts(uniform, labels),
        }
    )


class _RasterStrategy(SamplingStrategy):
    @property
    def requires_raster(self) -> bool:
        return True

    def validate_inputs(self, inputs: SamplingInputs) -> List[str]:
        errors = self._validate_common_inputs(inputs)

        if inputs.raster is None:
            errors.append("Raster layer is required")

        require_positive_int(errors, inputs.n_classes, "Number of quantile classes")
        require_positive_int(errors, inputs.samples_per_class, "Samples per class")

        return errors


class StratifiedRasterStrategy(_RasterStrategy):
    """Strategy for quantile-stratified raster sampling.

    Stratified raster sampling is ideal when:
    - A continuous covariate (elevation, precipitation) drives the response
    - Every part of the covariate's range must be sampled
    """

    @property
    def method(self) -> SamplingMethod:
        return SamplingMethod.STRATIFIED

    @property
    def display_name(self) -> str:
        return "Stratified Raster Sampling"

    @property
    def description(self) -> str:
        return (
            "Split the raster's values into equal-count quantile classes and draw "
            "the same number of cells from each class."
        )

    def calculate(self, inputs: SamplingInputs) -> StratifiedSamplingResults:
        """Run the stratified raster design."""
        self._check_inputs(inputs)
        rng = self._make_rng(inputs)

        logger.info(
            f"Stratified raster sampling: {inputs.n_classes} classes, "
            f"{inputs.samples_per_class} per class, seed={inputs.seed}"
        )
        try:
            results = sample_raster_stratified(
                inputs.raster, inputs.n_classes, inputs.samples_per_class, rng
            )
        except (EmptyRasterError, InsufficientCellsError) as e:
            logger.error(f"Error in stratified raster sampling: {e}")
            raise

        results.seed = inputs.seed
        logger.info(f"Generated {results.total_samples} sampling locations")
        return results


class UniformRasterStrategy(_RasterStrategy):
    """Strategy for uniform random raster sampling.

    Draws ``n_classes * samples_per_class`` cells so the sample size matches
    the stratified design it is compared with.
    """

    @property
    def method(self) -> SamplingMethod:
        return SamplingMethod.UNIFORM

    @property
    def display_name(self) -> str:
        return "Uniform Random Raster Sampling"

    @property
    def description(self) -> str:
        return (
            "Draw cells uniformly at random from all valid raster cells. Baseline "
            "for comparison with stratified raster sampling."
        )

    def calculate(self, inputs: SamplingInputs) -> StratifiedSamplingResults:
        """Run the uniform raster design."""
        self._check_inputs(inputs)
        rng = self._make_rng(inputs)

        n_samples = inputs.n_classes * inputs.samples_per_class
        logger.info(f"Uniform raster sampling: {n_samples} cells, seed={inputs.seed}")
        try:
            results = sample_raster_uniform(
                inputs.raster, n_samples, inputs.n_classes, rng
            )
        except (EmptyRasterError, InsufficientCellsError) as e:
            logger.error(f"Error in uniform raster sampling: {e}")
            raise

        results.seed = inputs.seed
        return results
