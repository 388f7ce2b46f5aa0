"""
共享密钥认证

所有文件路由的依赖项，在任何路径解析或磁盘访问之前执行。
"""

import logging

from fastapi import Request

from filegate.api.errors import ForbiddenException
from filegate.filestore.security import AccessGate

logger = logging.getLogger(__name__)


def get_access_gate(request: Request) -> AccessGate:
    """获取应用的 AccessGate"""
    return request.app.state.access_gate


def verify_api_key(request: Request) -> None:
    """
    校验请求头中的共享密钥

    请求头名称来自配置（默认 x-api-key）。

    Args:
        request: 请求对象

    Raises:
        ForbiddenException: 密钥缺失或不匹配
    """
    header_name = request.app.state.config.security.api_key_header
    supplied = request.headers.get(header_name)

    if not get_access_gate(request).authorize(supplied):
        logger.warning(
            f"密钥校验失败: {request.method} {request.url.path} "
            f"(header {'missing' if supplied is None else 'mismatch'})"
        )
        raise ForbiddenException()


__all__ = [
    "get_access_gate",
    "verify_api_key",
]
