"""Engine configuration utilities."""

from .settings import EngineSettings, get_settings

__all__ = [
    "EngineSettings",
    "get_settings",
]
