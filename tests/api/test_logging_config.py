"""
日志配置测试
"""

import logging
import logging.handlers

import pytest

from filegate.api.logging_config import setup_logging


@pytest.fixture
def restore_root_logger():
    """测试后恢复根日志器"""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield root_logger
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


class TestSetupLogging:
    """测试 setup_logging"""

    def test_console_only(self, restore_root_logger):
        """测试未配置文件时只输出到控制台"""
        setup_logging(log_level="debug", log_file=None)

        handlers = restore_root_logger.handlers
        assert restore_root_logger.level == logging.DEBUG
        assert len(handlers) == 1
        assert not isinstance(handlers[0], logging.handlers.RotatingFileHandler)

    def test_rotating_file(self, tmp_path, restore_root_logger):
        """测试滚动日志文件"""
        log_file = tmp_path / "logs" / "filegate.log"

        setup_logging(log_level="WARNING", log_file=str(log_file), max_bytes=1024, backup_count=2)
        logging.getLogger("filegate.test").warning("写入日志文件")

        file_handlers = [
            h for h in restore_root_logger.handlers
            if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024
        assert file_handlers[0].backupCount == 2

        for handler in file_handlers:
            handler.flush()
            handler.close()
        assert "写入日志文件" in log_file.read_text(encoding="utf-8")
