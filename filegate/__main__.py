"""
filegate 服务入口

python -m filegate 或 filegate 命令启动
"""

import logging

import uvicorn

from config import load_config
from filegate.api.logging_config import setup_logging
from filegate.api.main import create_app

logger = logging.getLogger(__name__)


def main() -> None:
    """加载配置、初始化日志并启动 uvicorn"""
    config = load_config()

    setup_logging(
        log_level=config.logging.level,
        log_file=config.logging.file,
        max_bytes=config.logging.max_bytes,
        backup_count=config.logging.backup_count
    )

    app = create_app(config)

    logger.info(f"File server running on http://localhost:{config.api.port}")

    # 使用已配置的日志处理器
    uvicorn.run(
        app,
        host=config.api.host,
        port=config.api.port,
        log_config=None,
        proxy_headers=True
    )


if __name__ == "__main__":
    main()
