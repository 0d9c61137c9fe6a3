"""Base class for sampling strategies.

Defines the interface that all sampling strategies must implement.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

import numpy as np

from sampling_design.errors import InvalidParametersError
from sampling_design.sampling.types import SamplingInputs, SamplingMethod

logger = logging.getLogger("sampling_design.sampling")


class SamplingStrategy(ABC):
    """Abstract base class for sampling strategies.

    Each sampling method (nested, stratified, uniform) implements this interface.
    This ensures consistent behavior and makes it easy to add new methods.
    """

    @property
    @abstractmethod
    def method(self) -> SamplingMethod:
        """Return the sampling method this strategy handles."""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name for this sampling method."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of when to use this sampling method."""
        pass

    @property
    def requires_polygon(self) -> bool:
        """Whether this method requires a study area polygon."""
        return False

    @property
    def requires_raster(self) -> bool:
        """Whether this method requires a raster layer."""
        return False

    @abstractmethod
    def validate_inputs(self, inputs: SamplingInputs) -> List[str]:
        """Validate inputs for this sampling method.

        Args:
            inputs: Sampling inputs to validate

        Returns:
            List of validation error messages (empty if valid)
        """
        pass

    @abstractmethod
    def calculate(self, inputs: SamplingInputs):
        """Run the sample design for this method.

        Args:
            inputs: Sampling inputs

        Returns:
            Results object with the sampled locations

        Raises:
            InvalidParametersError: If the inputs do not validate
        """
        pass

    def is_ready(self, inputs: SamplingInputs) -> bool:
        """Check if inputs are ready for calculation.

        Args:
            inputs: Sampling inputs to check

        Returns:
            True if ready for calculation
        """
        errors = self.validate_inputs(inputs)
        return len(errors) == 0

    def _check_inputs(self, inputs: SamplingInputs) -> None:
        """Raise with every validation message if the inputs are not usable."""
        errors = self.validate_inputs(inputs)
        if errors:
            logger.error(f"{self.display_name}: {'; '.join(errors)}")
            raise InvalidParametersError(errors, method=self.method.value)

    def _make_rng(self, inputs: SamplingInputs) -> np.random.Generator:
        """Fresh generator for one run, seeded from the inputs."""
        return np.random.default_rng(inputs.seed)

    def _validate_common_inputs(self, inputs: SamplingInputs) -> List[str]:
        """Validate inputs common to all sampling methods.

        Args:
            inputs: Sampling inputs to validate

        Returns:
            List of validation error messages
        """
        errors = []

        if inputs.seed is None:
            errors.append("Random seed is required")
        elif not _is_int(inputs.seed) or inputs.seed < 0:
            errors.append("Random seed must be a non-negative integer")

        return errors


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def require_positive_int(errors: List[str], value, label: str) -> bool:
    """Append a message to ``errors`` unless ``value`` is an integer >= 1."""
    if value is None:
        errors.append(f"{label} is required")
    elif not _is_int(value):
        errors.append(f"{label} must be an integer")
    elif value < 1:
        errors.append(f"{label} must be at least 1")
    else:
        return True
    return False


def require_positive_number(errors: List[str], value, label: str) -> bool:
    """Append a message to ``errors`` unless ``value`` is a number > 0."""
    if value is None:
        errors.append(f"{label} is required")
    elif isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
        errors.append(f"{label} must be a number")
    elif not np.isfinite(value) or value <= 0:
        errors.append(f"{label} must be greater than 0")
    else:
        return True
    return False
