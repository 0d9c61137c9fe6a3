"""Design file loading.

A design file is a TOML document describing the inputs, the output location
and the parameters of each sampling method::

    seed = 3432

    [input]
    polygon = "data/protected_area.gpkg"
    raster = "data/elevation.tif"

    [output]
    directory = "results"

    [nested]
    coarse_size = 2500
    fine_size = 500
    n_coarse = 4
    n_fine_per_coarse = 5
    shrink_distance = 100

    [stratified]
    n_classes = 4
    samples_per_class = 10

Relative paths are resolved against the design file's directory.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import tomli

from sampling_design.errors import ConfigError

logger = logging.getLogger("sampling_design.config")

NESTED_KEYS = (
    "coarse_size",
    "fine_size",
    "n_coarse",
    "n_fine_per_coarse",
    "shrink_distance",
)
STRATIFIED_KEYS = ("n_classes", "samples_per_class")
INPUT_KEYS = (
    "polygon",
    "polygon_layer",
    "polygon_filter",
    "raster",
    "raster_band",
)
OUTPUT_KEYS = ("directory", "filename")


@dataclass
class DesignConfig:
    """Parsed design file."""

    seed: Optional[int] = None
    polygon_path: Optional[Path] = None
    polygon_layer: Optional[str] = None
    polygon_filter: Dict[str, Any] = field(default_factory=dict)
    raster_path: Optional[Path] = None
    raster_band: int = 1
    output_dir: Path = Path("results")
    output_filename: Optional[str] = None
    nested: Dict[str, Any] = field(default_factory=dict)
    stratified: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], base_dir: Union[str, Path] = "."
    ) -> "DesignConfig":
        """Build a configuration from a parsed TOML document.

        Raises:
            ConfigError: On unknown sections or keys, or wrongly typed values
        """
        base_dir = Path(base_dir)

        known = {"seed", "input", "output", "nested", "stratified"}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown design file entries: {sorted(unknown)}")

        input_section = _section(data, "input")
        output_section = _section(data, "output")
        nested = _section(data, "nested")
        stratified = _section(data, "stratified")

        _check_keys(input_section, INPUT_KEYS, "input")
        _check_keys(output_section, OUTPUT_KEYS, "output")
        _check_keys(nested, NESTED_KEYS, "nested")
        _check_keys(stratified, STRATIFIED_KEYS, "stratified")

        polygon_filter = input_section.get("polygon_filter", {})
        if not isinstance(polygon_filter, dict):
            raise ConfigError("[input].polygon_filter must be a table")

        raster_band = input_section.get("raster_band", 1)
        if not isinstance(raster_band, int) or raster_band < 1:
            raise ConfigError("[input].raster_band must be a positive integer")

        return cls(
            seed=data.get("seed"),
            polygon_path=_resolve(base_dir, input_section.get("polygon")),
            polygon_layer=input_section.get("polygon_layer"),
            polygon_filter=polygon_filter,
            raster_path=_resolve(base_dir, input_section.get("raster")),
            raster_band=raster_band,
            output_dir=_resolve(base_dir, output_section.get("directory", "results")),
            output_filename=output_section.get("filename"),
            nested=dict(nested),
            stratified=dict(stratified),
        )


def load_config(path: Union[str, Path]) -> DesignConfig:
    """Read a TOML design file.

    Raises:
        ConfigError: If the file is missing or is not a valid design file
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Design file not found: {path}")

    try:
        with path.open("rb") as f:
            data = tomli.load(f)
    except tomli.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    config = DesignConfig.from_dict(data, base_dir=path.parent)
    logger.debug(f"Loaded design file {path}")
    return config


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _check_keys(section: Dict[str, Any], allowed, name: str) -> None:
    unknown = set(section) - set(allowed)
    if unknown:
        raise ConfigError(f"Unknown keys in [{name}]: {sorted(unknown)}")


def _resolve(base_dir: Path, value) -> Optional[Path]:
    if value is None:
        return None
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_dir / path
