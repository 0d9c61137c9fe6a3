"""Command-line interface for running a sampling design."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from sampling_design.errors import SamplingDesignError
from sampling_design.sampling import SamplingMethod, SamplingService
from sampling_design.scripts.config import load_config
from sampling_design.scripts.logger import setup_logging

logger = logging.getLogger("sampling_design.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sampling-design",
        description="Generate spatial sampling locations from a TOML design file",
    )
    parser.add_argument("design", help="Path to the TOML design file")
    parser.add_argument(
        "-m",
        "--method",
        default=SamplingMethod.NESTED.value,
        choices=[method.value for method in SamplingMethod],
        help="Sampling method (default: nested)",
    )
    parser.add_argument(
        "-d",
        "--output-dir",
        help="Results directory (overrides [output].directory)",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output file name (overrides [output].filename)",
    )
    parser.add_argument("--log-config", help="Logging configuration (TOML)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        0 on success, 1 when the design cannot be run
    """
    args = build_parser().parse_args(argv)

    try:
        setup_logging(args.log_config)
        config = load_config(args.design)
        method = SamplingMethod.from_string(args.method)
        inputs = SamplingService.create_inputs_from_config(config, method)
        results, path = SamplingService.run_and_export(
            inputs,
            output_dir=args.output_dir or config.output_dir,
            filename=args.output or config.output_filename,
        )
    except (SamplingDesignError, OSError) as e:
        logger.error(f"Sampling design failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(results.summary(), indent=2, default=str))
    print(f"Sampling locations written to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
