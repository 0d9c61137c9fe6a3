from pathlib import Path

import pytest

from sampling_design.errors import ConfigError
from sampling_design.scripts.config import DesignConfig, load_config

DESIGN = """
seed = 3432

[input]
polygon = "data/protected_area.gpkg"
polygon_filter = { NAME = "Mudumalai" }
raster = "/srv/rasters/elevation.tif"
raster_band = 2

[output]
directory = "results"
filename = "mudumalai.gpkg"

[nested]
coarse_size = 2500
fine_size = 500
n_coarse = 4
n_fine_per_coarse = 5
shrink_distance = 100

[stratified]
n_classes = 4
samples_per_class = 10
"""


def test_load_config(tmp_path):
    path = tmp_path / "design.toml"
    path.write_text(DESIGN)

    config = load_config(path)

    assert config.seed == 3432
    assert config.polygon_path == tmp_path / "data" / "protected_area.gpkg"
    assert config.polygon_filter == {"NAME": "Mudumalai"}
    assert config.raster_path == Path("/srv/rasters/elevation.tif")
    assert config.raster_band == 2
    assert config.output_dir == tmp_path / "results"
    assert config.output_filename == "mudumalai.gpkg"
    assert config.nested["n_fine_per_coarse"] == 5
    assert config.stratified == {"n_classes": 4, "samples_per_class": 10}


def test_defaults():
    config = DesignConfig.from_dict({"seed": 1}, base_dir="/data")

    assert config.polygon_path is None
    assert config.raster_band == 1
    assert config.output_dir == Path("/data/results")
    assert config.nested == {}


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.toml")


def test_invalid_toml(tmp_path):
    path = tmp_path / "design.toml"
    path.write_text("seed = \n")

    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_config(path)


@pytest.mark.parametrize(
    "data, message",
    [
        ({"sed": 1}, "Unknown design file entries"),
        ({"nested": {"coarse": 2500}}, r"Unknown keys in \[nested\]"),
        ({"stratified": {"quantiles": 4}}, r"Unknown keys in \[stratified\]"),
        (
            {"input": {"polygon_fliter": {"NAME": "Mudumalai"}}},
            r"Unknown keys in \[input\]",
        ),
        ({"output": {"dir": "results"}}, r"Unknown keys in \[output\]"),
        ({"nested": 5}, r"\[nested\] must be a table"),
        ({"input": {"polygon_filter": "NAME"}}, "polygon_filter must be a table"),
        ({"input": {"raster_band": 0}}, "raster_band must be a positive integer"),
    ],
)
def test_rejects_malformed_design(data, message):
    with pytest.raises(ConfigError, match=message):
        DesignConfig.from_dict(data)
