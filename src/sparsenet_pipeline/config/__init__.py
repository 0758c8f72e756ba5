from .loader import default_config, load_config, load_config_with_overrides
from .schema import PipelineConfig, APIConfig, HallmarksConfig, BiomartConfig

__all__ = [
    "default_config",
    "load_config",
    "load_config_with_overrides",
    "PipelineConfig",
    "APIConfig",
    "HallmarksConfig",
    "BiomartConfig",
]
