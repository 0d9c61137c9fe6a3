import json

import geopandas as gpd
import pytest

from sampling_design.cli import build_parser, main

NESTED_DESIGN = """
seed = 3432

[input]
polygon = "protected_area.gpkg"
raster = "elevation.tif"

[output]
directory = "results"

[nested]
coarse_size = 2500
fine_size = 500
n_coarse = {n_coarse}
n_fine_per_coarse = 5
shrink_distance = 100

[stratified]
n_classes = 4
samples_per_class = 5
"""


@pytest.fixture
def design_file(tmp_path, polygon_file, raster_file):
    def write(n_coarse=4):
        path = tmp_path / "design.toml"
        path.write_text(NESTED_DESIGN.format(n_coarse=n_coarse))
        return path

    return write


def _summary(stdout):
    return json.loads(stdout[: stdout.rindex("}") + 1])


def test_parser_defaults():
    args = build_parser().parse_args(["design.toml"])

    assert args.method == "nested"
    assert args.output_dir is None
    assert args.output is None


def test_nested_run(tmp_path, design_file, capsys):
    assert main([str(design_file())]) == 0

    out = capsys.readouterr().out
    summary = _summary(out)
    assert summary["sampling_method"] == "nested"
    assert summary["coarse_cells"] == 16
    assert summary["total_samples"] == 20

    written = gpd.read_file(tmp_path / "results" / "nested_samples.gpkg")
    assert len(written) == 20
    assert written.groupby("parent_id").size().tolist() == [5, 5, 5, 5]


def test_stratified_run(tmp_path, design_file, capsys):
    output_dir = tmp_path / "strata"

    code = main(
        [
            str(design_file()),
            "--method",
            "stratified",
            "--output-dir",
            str(output_dir),
            "--output",
            "elevation_samples.gpkg",
        ]
    )

    assert code == 0
    summary = _summary(capsys.readouterr().out)
    assert summary["class_counts"] == {"1": 21, "2": 20, "3": 20, "4": 20}

    written = gpd.read_file(output_dir / "elevation_samples.gpkg")
    assert written["class_label"].value_counts().sort_index().tolist() == [5, 5, 5, 5]


def test_failed_run_writes_nothing(tmp_path, design_file, capsys):
    assert main([str(design_file(n_coarse=50))]) == 1

    err = capsys.readouterr().err
    assert "Error: Cannot sample 50 coarse cells: only 16 eligible" in err
    assert not (tmp_path / "results").exists()


def test_missing_design_file(tmp_path, capsys):
    assert main([str(tmp_path / "missing.toml")]) == 1
    assert "Design file not found" in capsys.readouterr().err


def test_unreadable_polygon(tmp_path, design_file, capsys):
    path = design_file()
    path.write_text(
        path.read_text().replace('"protected_area.gpkg"', '"missing.gpkg"')
    )

    assert main([str(path)]) == 1

    assert "Cannot read polygon layer" in capsys.readouterr().err
    assert not (tmp_path / "results").exists()


def test_unsupported_output_format(tmp_path, design_file, capsys):
    assert main([str(design_file()), "--output", "samples.csv"]) == 1

    assert "Unsupported output format: .csv" in capsys.readouterr().err
    assert not (tmp_path / "results").exists()
