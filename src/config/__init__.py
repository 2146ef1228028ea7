"""Configuration package."""

from src.config.logging import configure_logging, get_logger
from src.config.settings import OperaSettings, Settings, settings

__all__ = ["settings", "Settings", "OperaSettings", "configure_logging", "get_logger"]
