"""
Command line entry point of the pre-processor.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import ConfigurationParser
from .errors import TurbPrepError
from .preprocessor import Preprocessor

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='turbprep',
        description='Wind turbine pre-processor: airfoil interpolation, blade sections and TurbSim wind fields')
    parser.add_argument('config', help='Path to the project configuration file')
    parser.add_argument('-o', '--output-dir', default=None,
                        help='Output directory (default: output_directory from the configuration)')
    parser.add_argument('--plot', action='store_true', help='Show the blade sections in a 3D plot')
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='Debug output')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='Warnings and errors only')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")

    try:
        config = ConfigurationParser().parse(args.config)
        preprocessor = Preprocessor(config)
        outputs = preprocessor.run(args.output_dir)
        if args.plot:
            from .graphics import plot_blade_sections
            plot_blade_sections(preprocessor.sections())
    except TurbPrepError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    for kind, path in outputs.items():
        logger.info("%s: %s", kind, path)
    return 0


if __name__ == '__main__':
    sys.exit(main())
