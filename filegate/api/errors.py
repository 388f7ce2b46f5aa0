"""
API 错误处理模块

提供统一的错误处理、异常类和错误响应格式。
"""

import logging
import time
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from filegate.filestore.exceptions import (
    InvalidPathError,
    InvalidUploadError,
    NotFoundError,
    StorageError,
)

logger = logging.getLogger(__name__)


# ===== 错误代码定义 =====

class ErrorCode:
    """标准错误代码"""

    FORBIDDEN = "FORBIDDEN"
    INVALID_PATH = "INVALID_PATH"
    NOT_FOUND = "NOT_FOUND"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    BAD_REQUEST = "BAD_REQUEST"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# ===== 自定义异常 =====

class APIException(Exception):
    """
    API 异常基类

    用于抛出带有结构化错误信息的异常。
    """

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.INTERNAL_ERROR,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Any] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ForbiddenException(APIException):
    """禁止访问错误"""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(
            message=message,
            code=ErrorCode.FORBIDDEN,
            status_code=status.HTTP_403_FORBIDDEN
        )


# ===== 错误响应模型 =====

class ErrorResponse(BaseModel):
    """错误响应"""
    error: str
    code: str
    details: Optional[Any] = None
    reason: Optional[str] = None


# ===== 错误处理函数 =====

def error_response(
    message: str,
    code: str = ErrorCode.INTERNAL_ERROR,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    details: Optional[Any] = None,
    reason: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    """
    创建错误响应

    Args:
        message: 错误消息
        code: 错误代码
        status_code: HTTP 状态码
        details: 错误详情
        reason: 机器可读的失败原因
        headers: 附加响应头

    Returns:
        JSON 响应
    """
    body = ErrorResponse(error=message, code=code, details=details, reason=reason)

    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers
    )


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """
    API 异常处理器

    Args:
        request: 请求对象
        exc: API 异常

    Returns:
        错误响应
    """
    logger.warning(f"API 异常: {request.method} {request.url.path} - {exc.status_code} {exc.message}")

    return error_response(
        message=exc.message,
        code=exc.code,
        status_code=exc.status_code,
        details=exc.details
    )


async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    """
    存储异常处理器

    内部错误的详情只写日志，不返回给客户端

    Args:
        request: 请求对象
        exc: 存储异常

    Returns:
        错误响应
    """
    if isinstance(exc, InvalidPathError):
        logger.warning(f"路径无效: {request.method} {request.url.path} - {exc.message}")
        return error_response(
            message="Invalid path",
            code=ErrorCode.INVALID_PATH,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(exc, NotFoundError):
        return error_response(
            message=exc.message,
            code=ErrorCode.NOT_FOUND,
            status_code=status.HTTP_404_NOT_FOUND
        )

    if isinstance(exc, InvalidUploadError):
        logger.warning(f"上传被拒绝: {request.url.path} - {exc.reason}: {exc.message}")
        return error_response(
            message="Upload failed",
            code=ErrorCode.UPLOAD_FAILED,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=exc.message,
            reason=exc.reason
        )

    logger.error(f"存储错误: {request.method} {request.url.path} - {exc.message}")

    return error_response(
        message="Internal Server Error",
        code=ErrorCode.INTERNAL_ERROR,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    HTTP 异常处理器（未匹配的路由、不支持的方法等）

    Args:
        request: 请求对象
        exc: HTTP 异常

    Returns:
        错误响应
    """
    logger.warning(f"HTTP 异常: {exc.status_code} - {exc.detail}")

    codes = {
        status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
        status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.METHOD_NOT_ALLOWED,
    }
    code = codes.get(exc.status_code, ErrorCode.BAD_REQUEST)
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    return error_response(
        message=detail,
        code=code,
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None)
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    全局异常处理器

    Args:
        request: 请求对象
        exc: 异常对象

    Returns:
        错误响应
    """
    logger.error(f"未处理的异常: {exc}", exc_info=True)

    return error_response(
        message="Internal Server Error",
        code=ErrorCode.INTERNAL_ERROR,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


# ===== 请求日志中间件 =====

class LoggingMiddleware(BaseHTTPMiddleware):
    """
    请求日志中间件

    记录所有 API 请求和响应的详细信息。
    """

    def __init__(self, app, log_level: str = "INFO"):
        """
        初始化日志中间件

        Args:
            app: FastAPI 应用
            log_level: 日志级别
        """
        super().__init__(app)
        self.log_level = getattr(logging, log_level.upper())
        self.logger = logging.getLogger(__name__)

    async def dispatch(self, request: Request, call_next):
        """
        处理请求，记录日志

        Args:
            request: 请求对象
            call_next: 下一个中间件/处理器

        Returns:
            响应对象
        """
        start_time = time.time()

        if self.logger.isEnabledFor(self.log_level):
            self.logger.log(
                self.log_level,
                f"请求: {request.method} {request.url.path} "
                f"from {self._get_client_ip(request)}"
            )

        try:
            response = await call_next(request)
        except Exception as exc:
            self.logger.error(
                f"请求异常: {request.method} {request.url.path} - {exc}",
                exc_info=True
            )
            raise

        process_time = (time.time() - start_time) * 1000

        if self.logger.isEnabledFor(self.log_level):
            self.logger.log(
                self.log_level,
                f"响应: {request.method} {request.url.path} "
                f"status={response.status_code} "
                f"time={process_time:.2f}ms"
            )

        response.headers["X-Process-Time"] = f"{process_time:.2f}"

        return response

    def _get_client_ip(self, request: Request) -> str:
        """获取客户端 IP（服务部署在可信代理之后）"""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        return request.client.host if request.client else "unknown"


__all__ = [
    "ErrorCode",
    "APIException",
    "ForbiddenException",
    "ErrorResponse",
    "error_response",
    "api_exception_handler",
    "storage_exception_handler",
    "http_exception_handler",
    "global_exception_handler",
    "LoggingMiddleware",
]
