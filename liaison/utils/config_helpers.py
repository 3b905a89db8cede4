import os
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv
from omegaconf import OmegaConf
from omegaconf.dictconfig import DictConfig

load_dotenv()
CONFIG_PATH = os.getenv("CONFIG_PATH")

# Packaged defaults; $CONFIG_PATH/client.yaml and explicit configs override them
DEFAULT_CLIENT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "client.yaml"

ConfigSource = Union[str, Path, dict, DictConfig]


def _as_config(source: ConfigSource) -> DictConfig:
    if isinstance(source, DictConfig):
        return source
    if isinstance(source, dict):
        return OmegaConf.create(source)
    return OmegaConf.load(source)


def merge_configs(configs: List[ConfigSource]) -> DictConfig:
    """
    Merge multiple configurations with precedence. Later configs override earlier ones. Useful for applying overrides to base configs.

    Args:
        configs: YAML file paths, plain dicts or DictConfig objects. Later configs take precedence.

    Returns:
        DictConfig: Merged configuration object

    Raises:
        FileNotFoundError: If any config file doesn't exist

    Example:
        >>> config = merge_configs([DEFAULT_CLIENT_CONFIG, {"throttle": {"enabled": False}}])
        >>> pipeline = RequestPipeline(config=config)
    """
    if not configs:
        raise ValueError("configs is empty!")

    # Load first config as base
    merged = _as_config(configs[0])

    # Merge remaining configs with precedence
    for config in configs[1:]:
        merged = OmegaConf.unsafe_merge(merged, _as_config(config))

    return merged


def load_client_config(config: Optional[ConfigSource] = None) -> DictConfig:
    """
    Load the client configuration.

    Layers, lowest precedence first: packaged client.yaml, $CONFIG_PATH/client.yaml
    (if the variable is set and the file exists), then ``config``.

    Args:
        config: Optional overrides (path, dict or DictConfig)

    Returns:
        DictConfig with base_url, auth_path, api_path, timeout, throttle, auth_headers, api_headers
    """
    layers: List[ConfigSource] = [DEFAULT_CLIENT_CONFIG]

    if CONFIG_PATH:
        env_config = Path(CONFIG_PATH) / "client.yaml"
        if env_config.exists():
            layers.append(env_config)

    if config is not None:
        layers.append(config)

    return merge_configs(layers)
