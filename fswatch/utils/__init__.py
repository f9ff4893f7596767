# fswatch/utils/__init__.py

"""
fswatch utilities
"""
from .config import WatcherConfig, load_config, save_config
from .logger import setup_logging, get_logger, JsonFormatter, ColorFormatter

__all__ = [
    'WatcherConfig', 'load_config', 'save_config',
    'setup_logging', 'get_logger', 'JsonFormatter', 'ColorFormatter',
]
