# sampling_design/__init__.py

# Spatial sampling designs over protected areas: nested grids and
# quantile-stratified raster samples.

__version__ = "0.1.0"
