"""
配置管理模块

导出配置相关的类和函数
"""

from .config import (
    Config,
    ConfigManager,
    StorageConfig,
    SecurityConfig,
    UploadConfig,
    LoggingConfig,
    APIConfig,
    DEFAULT_ROOT_DIR,
    load_config,
)

__all__ = [
    "Config",
    "ConfigManager",
    "StorageConfig",
    "SecurityConfig",
    "UploadConfig",
    "LoggingConfig",
    "APIConfig",
    "DEFAULT_ROOT_DIR",
    "load_config",
]
