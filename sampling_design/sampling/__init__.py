"""Sampling strategies module.

This module provides a clean, extensible architecture for different sampling methods.
Each sampling method is implemented as a Strategy class that handles:
- Input validation
- Random selection with an explicitly seeded generator
- Results formatting

Usage:
    from sampling_design.sampling import get_sampling_strategy, SamplingMethod

    strategy = get_sampling_strategy(SamplingMethod.NESTED)
    if strategy.is_ready(inputs):
        results = strategy.calculate(inputs)
"""

from sampling_design.sampling.base import SamplingStrategy
from sampling_design.sampling.nested import sample_nested_grid
from sampling_design.sampling.service import SamplingService, get_sampling_strategy
from sampling_design.sampling.stratified import (
    assign_quantile_classes,
    compare_class_representation,
    sample_raster_stratified,
    sample_raster_uniform,
)
from sampling_design.sampling.types import (
    NestedSamplingResults,
    SampleLocation,
    SamplingInputs,
    SamplingMethod,
    StratifiedSamplingResults,
)

__all__ = [
    "SamplingStrategy",
    "SamplingMethod",
    "SamplingInputs",
    "SampleLocation",
    "NestedSamplingResults",
    "StratifiedSamplingResults",
    "SamplingService",
    "get_sampling_strategy",
    "sample_nested_grid",
    "assign_quantile_classes",
    "sample_raster_stratified",
    "sample_raster_uniform",
    "compare_class_representation",
]
