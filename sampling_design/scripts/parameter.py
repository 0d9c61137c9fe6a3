# File containing shared parameters for sampling design
raster_extensions = (
    ".tif",
    ".tiff",
    ".img",
    ".vrt",
    ".asc",
    ".grd",
    ".nc",
)

vector_extensions = (
    ".shp",
    ".gpkg",
    ".geojson",
    ".json",
    ".gml",
    ".kml",
    ".sqlite",
)

# Output drivers, keyed by file suffix
vector_drivers = {
    ".gpkg": "GPKG",
    ".geojson": "GeoJSON",
    ".json": "GeoJSON",
    ".shp": "ESRI Shapefile",
}
default_output_suffix = ".gpkg"

# Upper bound on cells generated by a single tessellation
max_grid_cells = 1_000_000

# CRS used when exporting coordinates as longitude/latitude
geographic_crs_epsg = 4326
geographic_crs_str = f"EPSG:{geographic_crs_epsg}"
