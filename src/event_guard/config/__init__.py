"""
Event Guard Configuration Module

Provides centralized configuration management for the event guard engine.
"""

from .schema import EngineConfig, AuditConfig, LoggingConfig
from .loader import load_config, load_config_from_file, create_default_config

__all__ = [
    "EngineConfig",
    "AuditConfig",
    "LoggingConfig",
    "load_config",
    "load_config_from_file",
    "create_default_config",
]
