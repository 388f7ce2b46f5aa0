"""
filegate FastAPI 服务

提供基于共享密钥的文件存储 REST API：
按文件夹上传、下载、列出、统计、删除文件，所有路径限制在存储根目录内。
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Config, load_config
from filegate import __version__
from filegate.api.errors import (
    APIException,
    LoggingMiddleware,
    api_exception_handler,
    global_exception_handler,
    http_exception_handler,
    storage_exception_handler,
)
from filegate.api.routes import files
from filegate.filestore import AccessGate, StorageError, create_folder_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    config: Config = app.state.config
    logger.info(
        f"filegate 服务启动: root={config.storage.root_dir}, "
        f"auth={'enabled' if app.state.access_gate.enabled else 'disabled (all requests rejected)'}"
    )

    yield

    logger.info("filegate 服务已关闭")


def create_app(config: Optional[Config] = None) -> FastAPI:
    """
    创建 FastAPI 应用

    配置在创建时确定，之后不再变化；组件挂在 app.state 上。

    Args:
        config: 配置对象，为 None 时从 YAML/环境变量加载

    Returns:
        FastAPI 应用
    """
    config = config or load_config()

    app = FastAPI(
        title="filegate",
        description="共享密钥保护的文件存储网关",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
        lifespan=lifespan
    )

    app.state.config = config
    app.state.access_gate = AccessGate(config.security.api_key)
    app.state.folder_store = create_folder_store(config)

    # CORS 中间件（默认不开放）
    if config.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.api.cors_origins,
            allow_methods=["GET", "HEAD", "POST", "DELETE"],
            allow_headers=["*"],
            expose_headers=["Content-Length", "Last-Modified", "Created-At", "Cache-Control"],
        )

    # 日志中间件
    app.add_middleware(LoggingMiddleware, log_level="INFO")

    # ===== 异常处理 =====

    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(StorageError, storage_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # ===== 注册路由 =====

    app.include_router(files.router, tags=["文件管理"])

    return app


__all__ = ["create_app"]
