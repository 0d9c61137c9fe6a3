"""Sampling service for orchestrating sampling runs.

This module provides the main entry points for callers (CLI, notebooks) to
interact with the sampling strategies.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple, Type, Union

from sampling_design.sampling.base import SamplingStrategy
from sampling_design.sampling.nested import NestedGridStrategy
from sampling_design.sampling.stratified import (
    StratifiedRasterStrategy,
    UniformRasterStrategy,
)
from sampling_design.sampling.types import SamplingInputs, SamplingMethod
from sampling_design.scripts.geospatial import (
    export_sample_points,
    read_polygon,
    read_raster,
    resolve_output_path,
)

logger = logging.getLogger("sampling_design.sampling.service")

# Registry of available strategies
_STRATEGY_REGISTRY: Dict[SamplingMethod, Type[SamplingStrategy]] = {
    SamplingMethod.NESTED: NestedGridStrategy,
    SamplingMethod.STRATIFIED: StratifiedRasterStrategy,
    SamplingMethod.UNIFORM: UniformRasterStrategy,
}

# Cached strategy instances
_strategy_instances: Dict[SamplingMethod, SamplingStrategy] = {}


def get_sampling_strategy(method: SamplingMethod) -> SamplingStrategy:
    """Get the sampling strategy for a given method.

    Args:
        method: The sampling method

    Returns:
        The corresponding SamplingStrategy instance

    Raises:
        ValueError: If the method is not supported
    """
    if method not in _STRATEGY_REGISTRY:
        raise ValueError(f"Unsupported sampling method: {method}")

    # Strategies hold no state, so one instance per method is enough
    if method not in _strategy_instances:
        _strategy_instances[method] = _STRATEGY_REGISTRY[method]()

    return _strategy_instances[method]


def get_strategy_from_string(method_str: str) -> SamplingStrategy:
    """Get sampling strategy from string method name.

    Args:
        method_str: String name of sampling method (e.g., "nested")

    Returns:
        The corresponding SamplingStrategy instance
    """
    method = SamplingMethod.from_string(method_str)
    return get_sampling_strategy(method)


class SamplingService:
    """High-level service for sampling runs.

    This service provides a simplified interface for callers, handling the
    conversion between a design file and strategy inputs.
    """

    @staticmethod
    def create_inputs_from_config(config, method: SamplingMethod) -> SamplingInputs:
        """Create SamplingInputs from a design configuration.

        Input layers named in the configuration are read here.

        Args:
            config: A DesignConfig
            method: Sampling method to prepare inputs for

        Returns:
            SamplingInputs populated from the configuration
        """
        inputs = SamplingInputs(sampling_method=method, seed=config.seed)

        if method == SamplingMethod.NESTED:
            if config.polygon_path:
                inputs.polygon = read_polygon(
                    config.polygon_path,
                    layer=config.polygon_layer,
                    where=config.polygon_filter,
                )
            nested = config.nested
            inputs.coarse_size = nested.get("coarse_size")
            inputs.fine_size = nested.get("fine_size")
            inputs.n_coarse = nested.get("n_coarse")
            inputs.n_fine_per_coarse = nested.get("n_fine_per_coarse")
            inputs.shrink_distance = nested.get("shrink_distance")
        else:
            if config.raster_path:
                inputs.raster = read_raster(config.raster_path, band=config.raster_band)
            stratified = config.stratified
            inputs.n_classes = stratified.get("n_classes")
            inputs.samples_per_class = stratified.get("samples_per_class")

        return inputs

    @staticmethod
    def run(inputs: SamplingInputs):
        """Run a sample design using the appropriate strategy.

        Args:
            inputs: Sampling inputs

        Returns:
            Results of the strategy's calculation
        """
        strategy = get_sampling_strategy(inputs.sampling_method)
        return strategy.calculate(inputs)

    @staticmethod
    def run_and_export(
        inputs: SamplingInputs,
        output_dir: Union[str, Path],
        filename: Optional[str] = None,
    ) -> Tuple[object, Path]:
        """Run a sample design and write its sampling locations.

        The output name is checked before the run, and nothing is written
        when the run fails.

        Args:
            inputs: Sampling inputs
            output_dir: Results directory, created on demand
            filename: Output file name (defaults to ``<method>_samples.gpkg``)

        Returns:
            Tuple of (results, written path)

        Raises:
            UnsupportedFormatError: If ``filename`` has no vector driver
        """
        filename = filename or f"{inputs.sampling_method.value}_samples.gpkg"
        resolve_output_path(output_dir, filename)

        results = SamplingService.run(inputs)
        path = export_sample_points(results.points, output_dir, filename)
        return results, path

    @staticmethod
    def get_validation_errors(inputs: SamplingInputs) -> list:
        """Get validation errors for the given inputs.

        Args:
            inputs: Sampling inputs

        Returns:
            List of validation error messages
        """
        strategy = get_sampling_strategy(inputs.sampling_method)
        return strategy.validate_inputs(inputs)

    @staticmethod
    def get_available_methods() -> list:
        """Get list of available sampling methods.

        Returns:
            List of (method_value, display_name, description) tuples
        """
        methods = []
        for method in SamplingMethod:
            strategy = get_sampling_strategy(method)
            methods.append((method.value, strategy.display_name, strategy.description))
        return methods
