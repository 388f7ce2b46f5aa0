"""
文件存储测试配置

提供测试夹具和测试工具
"""

import pytest
import tempfile
from pathlib import Path

from config import Config, LoggingConfig, SecurityConfig, StorageConfig
from filegate.filestore import FolderStore, create_folder_store


@pytest.fixture
def temp_dir():
    """临时目录夹具"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def root_dir(temp_dir):
    """存储根目录"""
    return temp_dir / "files"


@pytest.fixture
def config(root_dir):
    """测试配置"""
    return Config(
        storage=StorageConfig(root_dir=root_dir),
        security=SecurityConfig(api_key="test-secret"),
        logging=LoggingConfig(file=None),
    )


@pytest.fixture
def folder_store(config) -> FolderStore:
    """FolderStore 实例夹具"""
    return create_folder_store(config)


@pytest.fixture
def png_payload():
    """500 字节的示例内容"""
    return b"\x89PNG\r\n\x1a\n" + bytes(range(256)) + b"x" * 236
