"""
配置管理系统单元测试
"""

import pytest
import yaml
from pydantic import ValidationError

from config import (
    Config,
    ConfigManager,
    APIConfig,
    LoggingConfig,
    SecurityConfig,
    StorageConfig,
    UploadConfig,
    DEFAULT_ROOT_DIR,
)


class TestStorageConfig:
    """测试存储配置"""

    def test_default_root(self):
        """测试默认根目录"""
        config = StorageConfig()

        assert config.root_dir == DEFAULT_ROOT_DIR
        assert config.root_dir.name == "uploads"
        assert config.root_dir.is_absolute()

    def test_root_is_canonicalized(self, tmp_path):
        """测试根目录规范化"""
        config = StorageConfig(root_dir=str(tmp_path / "a" / ".." / "files"))

        assert config.root_dir == (tmp_path / "files").resolve()


class TestSecurityConfig:
    """测试安全配置"""

    def test_default_values(self):
        """测试默认值"""
        config = SecurityConfig()

        assert config.api_key is None
        assert config.api_key_header == "x-api-key"


class TestUploadConfig:
    """测试上传配置"""

    def test_default_values(self):
        """测试默认值"""
        config = UploadConfig()

        assert config.allowed_extensions == [".gif", ".jpg", ".png"]
        assert config.allowed_mime_types == ["image/gif", "image/jpeg", "image/png"]
        assert config.max_file_size == 10 * 1024 * 1024
        assert config.field_name == "file"

    def test_csv_lists(self):
        """测试逗号分隔的列表"""
        config = UploadConfig(
            allowed_extensions="PNG, .webp",
            allowed_mime_types="image/png,image/webp"
        )

        assert config.allowed_extensions == [".png", ".webp"]
        assert config.allowed_mime_types == ["image/png", "image/webp"]

    def test_max_file_size_must_be_positive(self):
        """测试最大文件大小必须为正数"""
        with pytest.raises(ValidationError):
            UploadConfig(max_file_size=0)


class TestLoggingConfig:
    """测试日志配置"""

    def test_level_validation(self):
        """测试日志级别验证"""
        assert LoggingConfig(level="debug").level == "DEBUG"

        with pytest.raises(ValueError):
            LoggingConfig(level="VERBOSE")

    def test_empty_file_disables_file_logging(self):
        """测试空文件路径表示只输出到控制台"""
        assert LoggingConfig(file="").file is None
        assert LoggingConfig(file=None).file is None


class TestConfig:
    """测试总配置"""

    def test_defaults(self):
        """测试默认配置"""
        config = Config()

        assert config.api.port == 3000
        assert config.api.cors_origins == []
        assert config.security.api_key is None

    def test_frozen(self):
        """测试配置不可变"""
        config = Config()

        with pytest.raises(ValidationError):
            config.api = APIConfig(port=8080)
        with pytest.raises(ValidationError):
            config.security.api_key = "changed"


class TestConfigManager:
    """测试配置管理器"""

    def test_missing_file_uses_defaults(self, tmp_path):
        """测试配置文件不存在时使用默认值"""
        manager = ConfigManager(str(tmp_path / "missing.yaml"), environ={})
        config = manager.load()

        assert config.api.port == 3000
        assert config.storage.root_dir == DEFAULT_ROOT_DIR

    def test_load_yaml(self, tmp_path):
        """测试从 YAML 加载"""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.safe_dump({
            "storage": {"root_dir": str(tmp_path / "files")},
            "security": {"api_key": "yaml-secret"},
            "api": {"port": 8080},
        }), encoding="utf-8")

        config = ConfigManager(str(config_file), environ={}).load()

        assert config.storage.root_dir == (tmp_path / "files").resolve()
        assert config.security.api_key == "yaml-secret"
        assert config.api.port == 8080

    def test_empty_yaml(self, tmp_path):
        """测试空 YAML 文件"""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("", encoding="utf-8")

        config = ConfigManager(str(config_file), environ={}).load()

        assert config == Config()

    def test_service_env_vars(self, tmp_path):
        """测试服务级环境变量"""
        environ = {
            "FILES_DIR": str(tmp_path / "env-files"),
            "API_KEY": "env-secret",
            "PORT": "4000",
            "LOG_LEVEL": "warning",
        }

        config = ConfigManager(str(tmp_path / "missing.yaml"), environ=environ).load()

        assert config.storage.root_dir == (tmp_path / "env-files").resolve()
        assert config.security.api_key == "env-secret"
        assert config.api.port == 4000
        assert config.logging.level == "WARNING"

    def test_env_overrides_yaml(self, tmp_path):
        """测试环境变量覆盖 YAML"""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.safe_dump({
            "security": {"api_key": "yaml-secret", "api_key_header": "x-token"},
        }), encoding="utf-8")

        config = ConfigManager(str(config_file), environ={"API_KEY": "env-secret"}).load()

        assert config.security.api_key == "env-secret"
        assert config.security.api_key_header == "x-token"

    def test_prefixed_env_vars(self, tmp_path):
        """测试 FILEGATE_ 前缀的嵌套环境变量"""
        environ = {
            "FILEGATE_UPLOAD__MAX_FILE_SIZE": "1048576",
            "FILEGATE_UPLOAD__ALLOWED_EXTENSIONS": ".png,.webp",
            "FILEGATE_API__CORS_ORIGINS": "https://a.example, https://b.example",
            "FILEGATE_LOGGING__FILE": "",
        }

        config = ConfigManager(str(tmp_path / "missing.yaml"), environ=environ).load()

        assert config.upload.max_file_size == 1048576
        assert config.upload.allowed_extensions == [".png", ".webp"]
        assert config.api.cors_origins == ["https://a.example", "https://b.example"]
        assert config.logging.file is None

    def test_prefixed_env_wins_over_service_env(self, tmp_path):
        """测试前缀变量优先于服务级变量"""
        environ = {
            "PORT": "4000",
            "FILEGATE_API__PORT": "5000",
        }

        config = ConfigManager(str(tmp_path / "missing.yaml"), environ=environ).load()

        assert config.api.port == 5000

    def test_empty_service_env_ignored(self, tmp_path):
        """测试空的服务级环境变量被忽略"""
        config = ConfigManager(str(tmp_path / "missing.yaml"), environ={"API_KEY": ""}).load()

        assert config.security.api_key is None

    def test_invalid_value_raises(self, tmp_path):
        """测试非法值"""
        manager = ConfigManager(str(tmp_path / "missing.yaml"), environ={"PORT": "not-a-port"})

        with pytest.raises(ValidationError):
            manager.load()

    def test_load_is_cached_and_reload(self, tmp_path):
        """测试缓存与重新加载"""
        environ = {"API_KEY": "first"}
        manager = ConfigManager(str(tmp_path / "missing.yaml"), environ=environ)

        first = manager.load()
        environ["API_KEY"] = "second"

        assert manager.load() is first
        assert manager.reload().security.api_key == "second"
