# fswatch/utils/config.py

"""
Configuration management for fswatch
"""
import json
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass, field, fields, asdict
import logging

logger = logging.getLogger(__name__)


@dataclass
class WatcherConfig:
    """File watch service configuration"""
    # Dispatch
    debounce_delay: float = 0.1  # seconds
    coalesce_events: bool = True
    max_workers: int = 4

    # Native layer
    use_polling: bool = False
    poll_interval: float = 1.0  # seconds
    follow_symlinks: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # text, json, or color
    log_file: Optional[str] = None

    # Patterns watched by main.py
    patterns: list = field(default_factory=list)

    def __post_init__(self):
        if self.debounce_delay < 0:
            raise ValueError(f"debounce_delay must be >= 0, got {self.debounce_delay}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {self.poll_interval}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert config to JSON string"""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def to_yaml(self) -> str:
        """Convert config to YAML string"""
        return yaml.dump(self.to_dict(), default_flow_style=False)

    def save(self, path: Union[str, Path]):
        """Save config to file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix.lower() in ['.yaml', '.yml']:
            with open(path, 'w', encoding='utf-8') as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False)
        else:  # default to JSON
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2, default=str)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'WatcherConfig':
        """Build config from dictionary, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            if key in known:
                values[key] = value
            else:
                logger.warning(f"Ignoring unknown configuration key: {key}")
        return cls(**values)


def load_config(path: Union[str, Path, None] = None) -> WatcherConfig:
    """
    Load configuration from a YAML or JSON file

    Args:
        path: Config file; defaults are used when None or missing

    Returns:
        Loaded configuration
    """
    if path is None:
        return WatcherConfig()

    config_path = Path(path)
    if not config_path.exists():
        logger.info(f"No configuration file at {config_path}, using defaults")
        return WatcherConfig()

    logger.info(f"Loading configuration from {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        if config_path.suffix.lower() in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        else:  # JSON
            data = json.load(f)

    if data is not None and not isinstance(data, dict):
        raise ValueError(f"Configuration in {config_path} must be a mapping")

    return WatcherConfig.from_dict(data)


def save_config(config: WatcherConfig, path: Union[str, Path]):
    """Save configuration to file"""
    config.save(path)
