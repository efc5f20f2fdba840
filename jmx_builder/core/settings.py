"""Generator settings, optionally loaded from a YAML file.

Example settings file:

    ramp_time: 5
    on_sample_error: stoptest
    default_percent: 25.0
    max_include_depth: 8
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from jmx_builder.exceptions import SettingsException


@dataclass
class GeneratorSettings:
    """Settings that shape the generated test plan.

    Attributes:
        ramp_time: Thread group ramp-up in seconds (testinfo rampup wins)
        on_sample_error: Thread group action on sampler error
        default_percent: Throughput percentage for controllers without one
        max_include_depth: Deepest allowed chain of script includes
        csv_delimiter: Delimiter for CSV data sets without one
        csv_recycle: Recycle CSV data on end of file
        jmeter_version: Value of the jmeter/properties attributes on the root
    """

    ramp_time: int = 1
    on_sample_error: str = "continue"
    default_percent: float = 15.0
    max_include_depth: int = 16
    csv_delimiter: str = ","
    csv_recycle: bool = True
    jmeter_version: str = "5.0"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


_TYPES: dict[str, tuple[type, ...]] = {
    "ramp_time": (int,),
    "on_sample_error": (str,),
    "default_percent": (int, float),
    "max_include_depth": (int,),
    "csv_delimiter": (str,),
    "csv_recycle": (bool,),
    "jmeter_version": (str, int, float),
}


def load_settings(path: Optional[Union[str, Path]] = None) -> GeneratorSettings:
    """Load generator settings from a YAML file.

    Args:
        path: Settings file; None returns the defaults

    Returns:
        GeneratorSettings with file values over the defaults

    Raises:
        FileNotFoundError: Settings file doesn't exist
        SettingsException: YAML is invalid or contains unknown/mistyped keys
    """
    if path is None:
        return GeneratorSettings()

    settings_path = Path(path)
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    try:
        with open(settings_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SettingsException(f"Invalid YAML syntax in {path}: {e}")

    if data is None:
        return GeneratorSettings()

    if not isinstance(data, dict):
        raise SettingsException(f"Invalid settings format in {path}: expected dictionary")

    values: dict[str, Any] = {}
    for key, value in data.items():
        if key not in _TYPES:
            raise SettingsException(
                f"Unknown setting '{key}' in {path}. Valid settings: {sorted(_TYPES)}"
            )
        expected = _TYPES[key]
        # bool is an int subclass; only csv_recycle accepts it
        if isinstance(value, bool) and bool not in expected:
            raise SettingsException(f"Setting '{key}' in {path} must not be a boolean")
        if not isinstance(value, expected):
            raise SettingsException(
                f"Setting '{key}' in {path} has wrong type: {type(value).__name__}"
            )
        values[key] = value

    if "default_percent" in values:
        values["default_percent"] = float(values["default_percent"])
    if "jmeter_version" in values:
        values["jmeter_version"] = str(values["jmeter_version"])
    if values.get("max_include_depth", 1) < 1:
        raise SettingsException(f"Setting 'max_include_depth' in {path} must be >= 1")

    return GeneratorSettings(**values)
