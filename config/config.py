"""
配置管理系统

支持从 YAML 文件、.env 和环境变量加载配置。
加载后的配置对象不可变，显式传给各个组件。
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from dotenv import load_dotenv

# 加载 .env 文件
load_dotenv()

# 默认存储根目录：安装位置下的 uploads 子目录
DEFAULT_ROOT_DIR = Path(__file__).resolve().parent.parent / "uploads"

ENV_PREFIX = "FILEGATE_"

# 服务级环境变量 -> 配置路径
SERVICE_ENV_VARS = {
    "FILES_DIR": ("storage", "root_dir"),
    "API_KEY": ("security", "api_key"),
    "HOST": ("api", "host"),
    "PORT": ("api", "port"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FILE": ("logging", "file"),
}


def _split_csv(value: Any) -> Any:
    """逗号分隔字符串 -> 列表（环境变量只能传字符串）"""
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class StorageConfig(BaseModel):
    """存储配置"""

    model_config = ConfigDict(frozen=True)

    root_dir: Path = Field(default=DEFAULT_ROOT_DIR, description="存储根目录")

    @field_validator("root_dir")
    @classmethod
    def canonicalize_root(cls, v: Path) -> Path:
        """根目录在加载时规范化为绝对路径，之后不再变化"""
        return Path(v).expanduser().resolve()


class SecurityConfig(BaseModel):
    """安全配置"""

    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = Field(default=None, description="共享密钥，未配置时拒绝所有请求")
    api_key_header: str = Field(default="x-api-key", description="携带密钥的请求头")


class UploadConfig(BaseModel):
    """上传限制配置"""

    model_config = ConfigDict(frozen=True)

    allowed_extensions: List[str] = Field(
        default_factory=lambda: [".gif", ".jpg", ".png"],
        description="允许的扩展名"
    )
    allowed_mime_types: List[str] = Field(
        default_factory=lambda: ["image/gif", "image/jpeg", "image/png"],
        description="允许的 MIME 类型"
    )
    max_file_size: int = Field(default=10 * 1024 * 1024, gt=0, description="最大文件大小（字节）")
    field_name: str = Field(default="file", description="multipart 表单中的文件字段名")

    @field_validator("allowed_extensions", "allowed_mime_types", mode="before")
    @classmethod
    def split_lists(cls, v: Any) -> Any:
        return _split_csv(v)

    @field_validator("allowed_extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        """扩展名统一为小写并带前导点"""
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]


class LoggingConfig(BaseModel):
    """日志配置"""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO", description="日志级别")
    file: Optional[str] = Field(default="./logs/filegate.log", description="日志文件路径，为空则只输出到控制台")
    max_bytes: int = Field(default=10485760, description="日志文件最大大小（10MB）")
    backup_count: int = Field(default=5, description="日志备份数量")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("file", mode="before")
    @classmethod
    def empty_file_disables(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class APIConfig(BaseModel):
    """API 服务配置"""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="0.0.0.0", description="API 服务主机")
    port: int = Field(default=3000, description="API 服务端口")
    cors_origins: List[str] = Field(default_factory=list, description="CORS 允许的源")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v: Any) -> Any:
        return _split_csv(v)


class Config(BaseModel):
    """filegate 总配置"""

    model_config = ConfigDict(frozen=True)

    storage: StorageConfig = Field(default_factory=StorageConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: APIConfig = Field(default_factory=APIConfig)


class ConfigManager:
    """
    配置管理器

    支持从 YAML 文件加载配置，支持环境变量覆盖
    """

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """
        初始化配置管理器

        Args:
            config_path: YAML 配置文件路径，默认按顺序查找
            environ: 环境变量映射，默认为 os.environ
        """
        self.config_path = config_path or self._find_config_file()
        self.environ = os.environ if environ is None else environ
        self._config: Optional[Config] = None

    @staticmethod
    def _find_config_file() -> str:
        """
        查找配置文件

        按以下顺序查找：
        1. ./config/settings.yaml
        2. ./settings.yaml
        3. ~/.config/filegate/settings.yaml
        """
        possible_paths = [
            "./config/settings.yaml",
            "./settings.yaml",
            os.path.expanduser("~/.config/filegate/settings.yaml"),
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        # 如果都没找到，使用默认路径
        return "./config/settings.yaml"

    def load_yaml(self) -> Dict[str, Any]:
        """
        从 YAML 文件加载配置

        Returns:
            配置字典
        """
        if not os.path.exists(self.config_path):
            return {}

        with open(self.config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _set_nested(target: Dict[str, Any], parts: List[str], value: Any) -> None:
        current = target
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    def _override_from_env(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        从环境变量覆盖配置

        先应用服务级变量（FILES_DIR, API_KEY, PORT 等），
        再应用 FILEGATE_ 前缀变量，使用 __ 分隔层级，例如：
        FILEGATE_UPLOAD__MAX_FILE_SIZE=1048576
        FILEGATE_SECURITY__API_KEY_HEADER=x-token

        值保持字符串，由 pydantic 负责类型转换。

        Args:
            config_dict: 原始配置字典

        Returns:
            覆盖后的配置字典
        """
        result = {
            key: dict(value) if isinstance(value, dict) else value
            for key, value in config_dict.items()
        }

        for env_key, path in SERVICE_ENV_VARS.items():
            env_value = self.environ.get(env_key)
            if env_value:
                self._set_nested(result, list(path), env_value)

        for env_key, env_value in self.environ.items():
            if env_key.startswith(ENV_PREFIX):
                key = env_key[len(ENV_PREFIX):].lower()
                parts = [part for part in key.split("__") if part]
                if parts:
                    self._set_nested(result, parts, env_value)

        return result

    def load(self) -> Config:
        """
        加载配置

        从 YAML 文件加载配置，并使用环境变量覆盖

        Returns:
            配置对象
        """
        if self._config is not None:
            return self._config

        yaml_config = self.load_yaml()
        merged_config = self._override_from_env(yaml_config)

        self._config = Config(**merged_config)
        return self._config

    def reload(self) -> Config:
        """
        重新加载配置

        Returns:
            配置对象
        """
        self._config = None
        return self.load()


def load_config(config_path: Optional[str] = None) -> Config:
    """
    加载配置（便捷函数）

    Args:
        config_path: 可选的配置文件路径

    Returns:
        配置对象
    """
    return ConfigManager(config_path).load()
