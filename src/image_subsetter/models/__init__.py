"""Configuration and outcome models for image-subsetter."""

from .config import (
    ConfigurationMode,
    DynamicIDMode,
    ScriptMode,
    ServerSettings,
    SingleMode,
)
from .responses import (
    ErrorOutcome,
    ImageOutcome,
    RequestOutcome,
)

__all__ = [
    "ConfigurationMode",
    "SingleMode",
    "DynamicIDMode",
    "ScriptMode",
    "ServerSettings",
    "ImageOutcome",
    "ErrorOutcome",
    "RequestOutcome",
]
