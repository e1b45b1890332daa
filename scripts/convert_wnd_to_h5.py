#!/usr/bin/env python3
"""
Convert a TurbSim .wnd wind file to HDF5 and optionally plot one iteration.
"""

import argparse
import logging
import os

from turbprep.graphics import plot_wind_field
from turbprep.fileio import write_wind_field_h5
from turbprep.turbsim import TurbSimManager


def main():
    parser = argparse.ArgumentParser(description='Convert a Bladed/AeroDyn .wnd file to HDF5')
    parser.add_argument('wnd_file', help='Path to the .wnd file')
    parser.add_argument('--output', default=None, help='Output HDF5 path (default: next to the .wnd file)')
    parser.add_argument('--plot-iteration', type=int, default=None,
                        help='Show the u component of this iteration')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    manager = TurbSimManager()
    manager.load(args.wnd_file)
    h5_path = args.output or os.path.splitext(args.wnd_file)[0] + ".h5"
    write_wind_field_h5(manager, h5_path)
    logging.info("Usable iterations: %s, dt = %.4f s", manager.usable_iterations(), manager.timestep())

    if args.plot_iteration is not None:
        plot_wind_field(manager, iteration=args.plot_iteration, component='u')


if __name__ == "__main__":
    main()
