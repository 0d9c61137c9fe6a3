"""Logging configuration for the sampling design package.

To use this logging configuration, set the environment variable
SAMPLING_DESIGN_LOG_CFG to the path of the logging configuration file.
The repo has a sample configuration file in the root directory. A path
passed explicitly (e.g. from --log-config) must exist.

"""

import logging
import logging.config
import os
from pathlib import Path
from typing import Optional, Union

import tomli

LOG_CFG_ENV = "SAMPLING_DESIGN_LOG_CFG"
LOGGER_NAME = "sampling_design"


def setup_logging(cfg_path: Optional[Union[str, Path]] = None):
    if cfg_path is not None and not Path(cfg_path).is_file():
        raise FileNotFoundError(f"Logging config not found at {cfg_path}")

    cfg_path = (
        cfg_path
        or os.getenv(LOG_CFG_ENV)
        or Path(__file__).parent.parent.parent / "logging_config.toml"
    )

    cfg_path = Path(cfg_path)

    if not cfg_path.exists():
        package_logger = logging.getLogger(LOGGER_NAME)
        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)
        package_logger.addHandler(logging.NullHandler())
        return

    if not cfg_path.is_file():
        raise FileNotFoundError(f"Logging config not found at {cfg_path}")

    with cfg_path.open("rb") as f:
        cfg = tomli.load(f)

    logging.config.dictConfig(cfg)
