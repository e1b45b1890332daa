"""
Line-oriented project configuration: line parser, value parsers, schema and parser.

A configuration line is empty, a comment (leading `#` or `;`), or a key followed by one or
more whitespace separated values. An inline `#` truncates the line.
"""

import logging
import os
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Union

from .errors import (BadFormatError, FileAccessError, MissingRequiredError,
                     TurbPrepError, UnknownKeyError, ValueTypeError, with_line_number)
from .interpolation import INTERPOLATION_METHODS
from .structs import ProjectParams, expand_range

logger = logging.getLogger(__name__)

COMMENT_PREFIXES = ("#", ";")


class ParsedLine(NamedTuple):
    key: str = ""
    values: Tuple[str, ...] = ()
    is_empty: bool = False
    is_comment: bool = False


def parse_line(line: str) -> ParsedLine:
    """Split one configuration line into key and values."""
    stripped = line.strip()
    if not stripped:
        return ParsedLine(is_empty=True)
    if stripped.startswith(COMMENT_PREFIXES):
        return ParsedLine(is_comment=True)
    if "#" in stripped:
        stripped = stripped.split("#", 1)[0].strip()
    tokens = stripped.split()
    if len(tokens) < 2:
        raise BadFormatError(f"Key '{tokens[0]}' has no value")
    return ParsedLine(tokens[0], tuple(tokens[1:]))


# ---------------------------------------------------------------------------- value parsers

def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    raise ValueTypeError(f"Cannot parse '{value}' as bool")


def parse_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ValueTypeError(f"Cannot parse '{value}' as int") from None


def parse_double(value: str) -> float:
    try:
        return float(value.strip())
    except ValueError:
        raise ValueTypeError(f"Cannot parse '{value}' as double") from None


def parse_string(value: str) -> str:
    return value


def parse_range(values, parser: Callable[[str], Any] = parse_double) -> Tuple[Any, Any, Any]:
    """(start, end, step) from exactly three values."""
    if len(values) != 3:
        raise ValueTypeError(f"Range needs exactly 3 values (start end step), got {len(values)}")
    return parser(values[0]), parser(values[1]), parser(values[2])


def parse_file_path(value: str, base_dir: str = "") -> str:
    """Resolve `value` against `base_dir`; the file must exist."""
    path = value if os.path.isabs(value) else os.path.join(base_dir, value)
    path = os.path.normpath(path)
    if not os.path.isfile(path):
        raise FileAccessError(f"File not found: {path}")
    return path


TYPE_PARSERS = {
    "bool": parse_bool,
    "int": parse_int,
    "double": parse_double,
    "string": parse_string,
}


# ---------------------------------------------------------------------------- schema

class Scalar(NamedTuple):
    type_tag: str
    choices: Tuple[str, ...] = ()


class Range(NamedTuple):
    start_key: str
    end_key: str
    step_key: str
    type_tag: str = "double"


class FilePath(NamedTuple):
    must_exist: bool = True


class FileList(NamedTuple):
    must_exist: bool = True


ParameterKind = Union[Scalar, Range, FilePath, FileList]


class ParameterSpec(NamedTuple):
    key: str
    kind: ParameterKind
    required: bool = False
    description: str = ""


class ConfigurationSchema:
    """Declared configuration keys; built with the `add_*` methods."""

    def __init__(self):
        self.parameters: Dict[str, ParameterSpec] = {}

    def _add(self, key: str, kind: ParameterKind, required: bool, description: str) -> "ConfigurationSchema":
        self.parameters[key] = ParameterSpec(key, kind, required, description)
        return self

    def add_double(self, key, required=False, description=""):
        return self._add(key, Scalar("double"), required, description)

    def add_int(self, key, required=False, description=""):
        return self._add(key, Scalar("int"), required, description)

    def add_string(self, key, required=False, description="", choices=()):
        return self._add(key, Scalar("string", tuple(choices)), required, description)

    def add_bool(self, key, required=False, description=""):
        return self._add(key, Scalar("bool"), required, description)

    def add_range(self, key, prefix, required=False, description=""):
        kind = Range(f"{prefix}_start", f"{prefix}_end", f"{prefix}_step", "double")
        return self._add(key, kind, required, description)

    def add_int_range(self, key, prefix, required=False, description=""):
        kind = Range(f"{prefix}_start", f"{prefix}_end", f"{prefix}_step", "int")
        return self._add(key, kind, required, description)

    def add_file_path(self, key, required=False, description=""):
        return self._add(key, FilePath(), required, description)

    def add_file_list(self, key, required=False, description=""):
        return self._add(key, FileList(), required, description)

    def get(self, key: str) -> Optional[ParameterSpec]:
        return self.parameters.get(key)

    def __contains__(self, key):
        return key in self.parameters

    def required_keys(self) -> List[str]:
        return [key for key, spec in self.parameters.items() if spec.required]


def default_schema() -> ConfigurationSchema:
    """Schema of a wind turbine pre-processing project."""
    schema = ConfigurationSchema()
    (schema
     .add_string("project_name", required=True, description="Project name")
     .add_string("project_id", description="Project identifier")
     .add_string("project_revision", description="Revision")
     .add_string("project_date", description="Date")
     .add_string("project_engineer", description="Responsible engineer")
     .add_file_list("airfoil_geometry_files_file", required=True,
                    description="List of airfoil geometry files")
     .add_file_list("airfoil_performance_files_file", required=True,
                    description="List of airfoil performance files")
     .add_file_path("blade_geometry_file", required=True, description="Blade geometry file")
     .add_bool("turbine_is_horizontal", required=True, description="Horizontal axis turbine")
     .add_int("number_of_blades", required=True, description="Number of blades")
     .add_double("hub_radius", required=True, description="Hub radius [m]")
     .add_double("rated_rotorspeed", required=True, description="Rated rotor speed [rpm]")
     .add_double("min_rotorspeed", description="Minimum rotor speed [rpm]")
     .add_double("rated_electrical_power", description="Rated electrical power [W]")
     .add_bool("simulation_is_time_based", required=True, description="Time based simulation")
     .add_range("wind_speed_range", "windspeed", required=True, description="Wind speeds [m/s]")
     .add_range("tip_speed_ratio_range", "tsr", description="Tip speed ratios")
     .add_range("pitch_angle_range", "pitch", description="Pitch angles [deg]")
     .add_file_path("turbsim_file", description="TurbSim full-field wind file (.wnd)")
     .add_int("number_of_sections", description="Number of interpolated blade sections")
     .add_string("interpolation_method", description="Spanwise interpolation method",
                 choices=INTERPOLATION_METHODS)
     .add_string("output_directory", description="Output directory"))
    return schema


# ---------------------------------------------------------------------------- store

class Configuration:
    """Parsed configuration values plus the structured data loaded from referenced files."""

    def __init__(self, source: str = ""):
        self.source = source
        self.values: Dict[str, Any] = {}
        self.structured_data: Dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    def has(self, key: str) -> bool:
        return key in self.values

    def __contains__(self, key):
        return self.has(key)

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def _typed(self, key: str, type_: type, type_name: str):
        if key not in self.values:
            raise MissingRequiredError(f"Missing parameter: {key}")
        value = self.values[key]
        if not isinstance(value, type_):
            raise ValueTypeError(f"Parameter '{key}' is not a {type_name}")
        return value

    def get_double(self, key: str) -> float:
        return float(self._typed(key, (int, float), "double"))

    def get_int(self, key: str) -> int:
        return self._typed(key, int, "int")

    def get_bool(self, key: str) -> bool:
        return self._typed(key, bool, "bool")

    def get_string(self, key: str) -> str:
        return self._typed(key, str, "string")

    def get_file_path(self, key: str) -> str:
        return self._typed(key, str, "file path")

    def get_range(self, prefix: str) -> Tuple[float, float, float]:
        return (self.get_double(f"{prefix}_start"),
                self.get_double(f"{prefix}_end"),
                self.get_double(f"{prefix}_step"))

    def has_structured_data(self, key: str) -> bool:
        return key in self.structured_data

    def get_structured_data(self, key: str) -> Any:
        if key not in self.structured_data:
            raise MissingRequiredError(f"No data loaded for '{key}'")
        return self.structured_data[key]

    def set_structured_data(self, key: str, data: Any) -> None:
        self.structured_data[key] = data

    def _range_values(self, prefix: str, default=None):
        if not self.has(f"{prefix}_start"):
            return default
        return expand_range(*self.get_range(prefix))

    def to_params(self) -> ProjectParams:
        """Plain parameter object for the preprocessor."""
        defaults = ProjectParams()
        return ProjectParams(
            project_name=self.get("project_name", ""),
            project_id=self.get("project_id", ""),
            project_revision=self.get("project_revision", ""),
            project_date=self.get("project_date", ""),
            project_engineer=self.get("project_engineer", ""),
            turbine_is_horizontal=self.get("turbine_is_horizontal", defaults.turbine_is_horizontal),
            number_of_blades=self.get("number_of_blades", defaults.number_of_blades),
            hub_radius=self.get("hub_radius", defaults.hub_radius),
            rated_rotorspeed=self.get("rated_rotorspeed", defaults.rated_rotorspeed),
            min_rotorspeed=self.get("min_rotorspeed", defaults.min_rotorspeed),
            rated_electrical_power=self.get("rated_electrical_power", defaults.rated_electrical_power),
            simulation_is_time_based=self.get("simulation_is_time_based", defaults.simulation_is_time_based),
            wind_speeds=self._range_values("windspeed"),
            tip_speed_ratios=self._range_values("tsr"),
            pitch_angles=self._range_values("pitch"),
            number_of_sections=self.get("number_of_sections", defaults.number_of_sections),
            interpolation_method=self.get("interpolation_method", defaults.interpolation_method),
            output_directory=self.get("output_directory", defaults.output_directory),
        )


def _data_key(key: str) -> str:
    return key[:-len("_file")] if key.endswith("_file") else key


def default_loaders() -> Dict[str, Callable[[str], Any]]:
    """Loaders for the data files referenced by the default schema, keyed by data key."""
    from . import fileio
    from .turbsim import TurbSimManager

    def load_turbsim(path):
        manager = TurbSimManager()
        manager.load(path)
        return manager

    return {
        "blade_geometry": fileio.load_blade_geometry,
        "turbsim": load_turbsim,
    }


class ConfigurationParser:
    """
    Parses a configuration file against a schema.

    After the lines are parsed, referenced data files (key without the `_file` suffix) and file
    lists (keys containing `_files_file`) are loaded into the structured data, then the required
    keys are checked.
    """

    def __init__(self,
                 schema: Optional[ConfigurationSchema] = None,
                 loaders: Optional[Dict[str, Callable[[str], Any]]] = None,
                 file_list_loader: Optional[Callable[[str], Any]] = None):
        self.schema = schema if schema is not None else default_schema()
        self.loaders = loaders if loaders is not None else default_loaders()
        if file_list_loader is None:
            from .fileio import load_file_list
            file_list_loader = load_file_list
        self.file_list_loader = file_list_loader

    def parse(self, file_path: str) -> Configuration:
        try:
            with open(file_path, 'r') as f:
                lines = f.readlines()
        except OSError as e:
            raise FileAccessError(f"Cannot open configuration file {file_path}: {e}") from e

        config = Configuration(file_path)
        base_dir = os.path.dirname(os.path.abspath(file_path))
        for number, line in enumerate(lines, start=1):
            try:
                self.parse_config_line(line, config, base_dir)
            except TurbPrepError as e:
                raise with_line_number(e, number, f"Error on line {number}: {e}") from e

        self._load_data_files(config)
        self.validate(config)
        logger.info("Parsed configuration %s (%s parameters)", file_path, len(config.values))
        return config

    def parse_lines(self, lines: List[str], base_dir: str = "") -> Configuration:
        """Parse configuration text without loading referenced files or validating."""
        config = Configuration()
        for number, line in enumerate(lines, start=1):
            try:
                self.parse_config_line(line, config, base_dir)
            except TurbPrepError as e:
                raise with_line_number(e, number, f"Error on line {number}: {e}") from e
        return config

    def parse_config_line(self, line: str, config: Configuration, base_dir: str = "") -> None:
        parsed = parse_line(line)
        if parsed.is_empty or parsed.is_comment:
            return
        spec = self.schema.get(parsed.key)
        if spec is None:
            raise UnknownKeyError(f"Unknown configuration key: {parsed.key}")

        kind = spec.kind
        if isinstance(kind, Range):
            start, end, step = parse_range(parsed.values, TYPE_PARSERS[kind.type_tag])
            config.set(kind.start_key, start)
            config.set(kind.end_key, end)
            config.set(kind.step_key, step)
            return

        if len(parsed.values) != 1:
            raise BadFormatError(f"Parameter '{parsed.key}' expects single value, got multiple")
        value = parsed.values[0]
        if isinstance(kind, (FilePath, FileList)):
            config.set(parsed.key, parse_file_path(value, base_dir))
        else:
            parsed_value = TYPE_PARSERS[kind.type_tag](value)
            if kind.choices and parsed_value not in kind.choices:
                raise ValueTypeError(f"Parameter '{parsed.key}' must be one of "
                                     f"{', '.join(kind.choices)}, got '{value}'")
            config.set(parsed.key, parsed_value)

    def _load_data_files(self, config: Configuration) -> None:
        for key, spec in self.schema.parameters.items():
            if not config.has(key):
                continue
            if isinstance(spec.kind, FileList) or "_files_file" in key:
                loader = self.file_list_loader
                what = "file list"
            elif isinstance(spec.kind, FilePath):
                loader = self.loaders.get(_data_key(key))
                what = "data file"
            else:
                continue
            if loader is None:
                continue
            try:
                config.set_structured_data(_data_key(key), loader(config.get(key)))
            except TurbPrepError as e:
                raise type(e)(f"Error loading {what} for parameter '{key}': {e}",
                              line_number=e.line_number) from e

    def validate(self, config: Configuration) -> None:
        for key in self.schema.required_keys():
            kind = self.schema.get(key).kind
            present_key = kind.start_key if isinstance(kind, Range) else key
            if not config.has(present_key):
                raise MissingRequiredError(f"Required parameter missing: {key}")


def load_configuration(file_path: str, schema: Optional[ConfigurationSchema] = None) -> Configuration:
    return ConfigurationParser(schema).parse(file_path)
