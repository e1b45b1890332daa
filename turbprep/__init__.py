"""
TurbPrep - Wind Turbine Aerodynamic Pre-Processor

This package prepares the inputs of horizontal and vertical axis wind turbine simulations.
It parses a project configuration, loads airfoil geometry and performance tables,
interpolates airfoil sections along the blade span, reads TurbSim full-field wind files,
and exports the results for downstream analysis.
"""

from .errors import (
    TurbPrepError,
    FileAccessError,
    TruncatedFileError,
    BadFormatError,
    ConfigurationError,
    MissingRequiredError,
    UnknownKeyError,
    ValueTypeError,
    OutOfRangeError,
    EmptyTableError,
    NotFoundError,
    MarkerMissingError,
    NotLoadedError,
    AxisTooSmallError,
    DomainError
)
from .structs import (
    MarkerType,
    AirfoilMarker,
    AirfoilCoordinate,
    PerformancePoint,
    PolarPoint,
    FileInfo,
    FileList,
    BladeGeometry,
    TurbSimGrid,
    TurbSimVelocityData,
    TurbSimTimingInfo,
    InterpolatedBladeSection,
    ProjectParams,
    expand_range
)
from .interpolation import (
    linear_interpolation,
    bilinear_interpolation,
    trilinear_interpolation,
    monotonic_cubic_interpolation,
    interpolate_1d,
    resample_airfoil,
    BilinearTurbSimInterpolator
)
from .airfoil import AirfoilGeometry, interpolate_between_geometries, naca_four_digit
from .performance import AirfoilPerformance, AirfoilPolar, interpolate_between_polars, interpolate_between_tables
from .blade import AirfoilCatalog, BladeSectionInterpolator
from .turbsim import BladedBinaryReader, TurbSimManager
from .config import ConfigurationParser, ConfigurationSchema, Configuration, default_schema, load_configuration

from .fileio import (
    load_airfoil_geometry,
    load_airfoil_performance,
    load_blade_geometry,
    load_file_list,
    write_tecplot_sections,
    write_dxf_sections,
    write_sections_h5,
    write_wind_field_h5,
    write_performance_csv,
    write_polar_csv,
    write_section_summary_csv,
    write_velocity_time_series
)

from .computations import rotation_matrix_2d, rotate_points_2d
from .graphics import plot_blade_sections, plot_airfoil, plot_wind_field
from .preprocessor import Preprocessor

__version__ = "0.1.0"
