"""Define utility functions for reading and writing the YAML files used to configure planning."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_yaml_string(yaml_string: str, source: str = "<string>") -> Any:
    """Parse a string of YAML into Python data structures.

    :param yaml_string: YAML text to be parsed
    :param source: Description of where the text came from, used in error messages
    :return: Dictionary, list, or scalar parsed from the text
    :raises RuntimeError: If the text is not valid YAML
    """
    try:
        return yaml.safe_load(yaml_string)
    except yaml.YAMLError as error:
        raise RuntimeError(f"Failed to load YAML from {source}") from error


def load_yaml_data(yaml_path: Path | str) -> Any:
    """Load data from a YAML file into Python data structures.

    :param yaml_path: Path to the YAML file to be imported
    :return: Dictionary mapping strings to values, or a list of dictionaries, etc.
    :raises FileNotFoundError: If the file doesn't exist
    """
    yaml_path = Path(yaml_path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Cannot load data from nonexistent YAML file: {yaml_path}")

    return load_yaml_string(yaml_path.read_text(), source=str(yaml_path))


def export_yaml_data(data: dict[str, Any] | list[Any], filepath: Path) -> None:
    """Write the given data to a YAML file, preserving the key order of dictionaries."""
    filepath.write_text(yaml.safe_dump(data, sort_keys=False, default_flow_style=False))
