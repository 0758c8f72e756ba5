"""Configuration loading from YAML files."""

from pathlib import Path
from typing import Any

import pydantic_yaml

from .schema import PipelineConfig


DEFAULT_DATA_DIR = Path("data")


def default_config() -> PipelineConfig:
    """
    Configuration used by library calls that are not given one.

    Mirrors config/default.yaml: data under ./data and the response cache
    under ./data/cache, both relative to the current working directory and
    created on first use. Pass an explicit PipelineConfig to keep files
    elsewhere.
    """
    return PipelineConfig(
        data_dir=DEFAULT_DATA_DIR,
        cache_dir=DEFAULT_DATA_DIR / "cache",
    )


def load_config(config_path: Path | str) -> PipelineConfig:
    """
    Load and validate configuration from a YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated PipelineConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If config is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        yaml_content = f.read()

    return pydantic_yaml.parse_yaml_raw_as(PipelineConfig, yaml_content)


def load_config_with_overrides(
    config_path: Path | str,
    overrides: dict[str, Any],
) -> PipelineConfig:
    """
    Load config from YAML and apply dotted-key overrides.

    The CLI routes ``--metric``, ``--hierarchy`` and ``--source`` through
    here so that flags win over the file.

    Args:
        config_path: Path to YAML configuration file
        overrides: Mapping of keys (``"hallmarks.metric"``) to values

    Returns:
        Validated PipelineConfig with overrides applied

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If final config is invalid
    """
    config_dict = load_config(config_path).model_dump()

    for key, value in overrides.items():
        parts = key.split(".")
        target = config_dict
        for part in parts[:-1]:
            target = target[part]
        target[parts[-1]] = value

    return PipelineConfig.model_validate(config_dict)
