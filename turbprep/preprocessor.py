"""
Pre-processing pipeline: configuration -> airfoil catalog -> blade sections -> exported files.
"""

import logging
import os
from typing import Dict, List, Optional

from .blade import AirfoilCatalog, BladeSectionInterpolator
from .config import Configuration
from .errors import FileAccessError
from .fileio import (load_airfoil_geometry, load_airfoil_performance, write_dxf_sections,
                     write_performance_csv, write_polar_csv, write_section_summary_csv, write_sections_h5,
                     write_tecplot_sections, write_velocity_time_series, write_wind_field_h5)
from .structs import InterpolatedBladeSection, ProjectParams

logger = logging.getLogger(__name__)


class Preprocessor:
    """
    Drives one pre-processing run from a parsed configuration.

    Attributes:
        config (Configuration): Parsed configuration with loaded structured data
        params (ProjectParams): Plain parameters derived from the configuration
        catalog (AirfoilCatalog): Airfoils listed by the configuration
        interpolator (BladeSectionInterpolator): Section assembly for the configured blade
        turbsim: Loaded TurbSimManager, or None when no wind file is configured
    """

    def __init__(self, config: Configuration, params: Optional[ProjectParams] = None):
        self.config = config
        self.params = params if params is not None else config.to_params()
        self.catalog = self.build_catalog()
        self.interpolator = BladeSectionInterpolator(config.get_structured_data("blade_geometry"),
                                                     self.catalog,
                                                     self.params.interpolation_method)
        self.turbsim = config.structured_data.get("turbsim")

    def build_catalog(self) -> AirfoilCatalog:
        catalog = AirfoilCatalog()
        for path in self.config.get_structured_data("airfoil_geometry_files").valid_file_paths():
            catalog.add_geometry(load_airfoil_geometry(path))
        for path in self.config.get_structured_data("airfoil_performance_files").valid_file_paths():
            catalog.add_performance(load_airfoil_performance(path))
        logger.info("Airfoil catalog: %s geometries, %s performance tables",
                    len(catalog.geometries), len(catalog.performances))
        return catalog

    def sections(self) -> List[InterpolatedBladeSection]:
        """Dense sections when `number_of_sections` is set, else one per blade definition station."""
        if self.params.number_of_sections >= 2:
            return self.interpolator.generate_dense_sections(self.params.number_of_sections)
        return self.interpolator.interpolate_all_sections()

    def resolve_output_directory(self, output_dir: Optional[str] = None) -> str:
        output_dir = output_dir or self.params.output_directory
        if not os.path.isabs(output_dir) and self.config.source:
            output_dir = os.path.join(os.path.dirname(os.path.abspath(self.config.source)), output_dir)
        return output_dir

    def run(self, output_dir: Optional[str] = None) -> Dict[str, str]:
        """
        Assemble the blade sections and write every output.

        Returns:
            Mapping of output kind to written file path.
        """
        output_dir = self.resolve_output_directory(output_dir)
        try:
            os.makedirs(output_dir, exist_ok=True)
        except OSError as e:
            raise FileAccessError(f"Cannot create output directory: {output_dir}") from e
        logger.info("Project '%s': writing outputs to %s", self.params.project_name, output_dir)

        sections = self.sections()
        outputs = {
            'tecplot': os.path.join(output_dir, 'blade_sections.dat'),
            'dxf': os.path.join(output_dir, 'blade_sections.dxf'),
            'hdf5': os.path.join(output_dir, 'blade_sections.h5'),
            'summary': os.path.join(output_dir, 'blade_sections.csv'),
        }
        write_tecplot_sections(sections, outputs['tecplot'], title=self.params.project_name or "Blade sections")
        write_dxf_sections(sections, outputs['dxf'])
        write_sections_h5(sections, outputs['hdf5'])
        write_section_summary_csv(sections, outputs['summary'])

        for i, section in enumerate(sections):
            if section.performance is not None and not section.performance.is_empty():
                path = os.path.join(output_dir, 'performance', f'section_{i:03d}_r{section.radius:.2f}m.csv')
                write_performance_csv(section.performance, path)

        if self.catalog.has_reynolds_dependence():
            for i, section in enumerate(sections):
                polar = self.catalog.polar_for_thickness(section.relative_thickness)
                path = os.path.join(output_dir, 'polars', f'section_{i:03d}_r{section.radius:.2f}m.csv')
                write_polar_csv(polar, path)

        if self.turbsim is not None:
            outputs['wind_field'] = os.path.join(output_dir, 'wind_field.h5')
            outputs['hub_velocity'] = os.path.join(output_dir, 'hub_velocity.csv')
            write_wind_field_h5(self.turbsim, outputs['wind_field'])
            hub_point = (0.0, 0.0, self.turbsim.grid.hub_height)
            write_velocity_time_series(self.turbsim, hub_point, outputs['hub_velocity'])

        logger.info("Finished: %s sections, blade volume %.4f m^3",
                    len(sections), self.interpolator.blade_volume(sections))
        return outputs
