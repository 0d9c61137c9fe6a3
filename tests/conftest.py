import geopandas as gpd
import numpy as np
import pytest
import rasterio
from rasterio.transform import from_origin
from shapely.geometry import box

from sampling_design.scripts.geospatial import RasterGrid

UTM_43N = "EPSG:32643"
ORIGIN_X = 500000.0
ORIGIN_Y = 1280000.0
NODATA = -9999.0


@pytest.fixture
def square_polygon():
    """10 km x 10 km square in UTM zone 43N."""
    return gpd.GeoDataFrame(
        {"name": ["square"]},
        geometry=[box(ORIGIN_X, ORIGIN_Y, ORIGIN_X + 10000, ORIGIN_Y + 10000)],
        crs=UTM_43N,
    )


@pytest.fixture
def six_cell_polygon():
    """Rectangle covered by 3 x 2 coarse cells of 2500 m."""
    return gpd.GeoDataFrame(
        geometry=[box(ORIGIN_X, ORIGIN_Y, ORIGIN_X + 7500, ORIGIN_Y + 5000)],
        crs=UTM_43N,
    )


@pytest.fixture
def nested_params():
    return {
        "coarse_size": 2500,
        "fine_size": 500,
        "n_coarse": 4,
        "n_fine_per_coarse": 5,
        "shrink_distance": 100,
        "seed": 3432,
    }


@pytest.fixture
def shuffled_values():
    """100 distinct values in a shuffled 10 x 10 layout."""
    rng = np.random.default_rng(7)
    return rng.permutation(100).astype("float64").reshape(10, 10)


@pytest.fixture
def raster(shuffled_values):
    return RasterGrid(
        values=shuffled_values,
        transform=from_origin(ORIGIN_X, ORIGIN_Y + 1000, 100, 100),
        crs=UTM_43N,
        nodata=NODATA,
    )


@pytest.fixture
def raster_with_nodata(shuffled_values):
    values = shuffled_values.copy()
    values[0, :] = NODATA
    values[:, 0] = NODATA
    return RasterGrid(
        values=values,
        transform=from_origin(ORIGIN_X, ORIGIN_Y + 1000, 100, 100),
        crs=UTM_43N,
        nodata=NODATA,
    )


@pytest.fixture
def raster_file(tmp_path, raster_with_nodata):
    path = tmp_path / "elevation.tif"
    values = raster_with_nodata.values.astype("float32")
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=values.shape[0],
        width=values.shape[1],
        count=1,
        dtype="float32",
        crs=UTM_43N,
        transform=raster_with_nodata.transform,
        nodata=NODATA,
    ) as dst:
        dst.write(values, 1)
    return path


@pytest.fixture
def polygon_file(tmp_path, square_polygon):
    path = tmp_path / "protected_area.gpkg"
    square_polygon.to_file(path, driver="GPKG")
    return path
