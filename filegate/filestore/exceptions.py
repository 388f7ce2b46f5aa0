"""
文件存储异常

存储层的所有失败都转换为以下类型之一，由 API 层映射为 HTTP 响应
"""

from typing import Optional


class StorageError(Exception):
    """存储异常基类"""

    kind = "internal"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidPathError(StorageError):
    """路径无效或超出根目录（在访问文件系统之前抛出）"""

    kind = "invalid_path"

    def __init__(self, message: str = "Invalid path", segment: Optional[str] = None):
        super().__init__(message)
        self.segment = segment


class NotFoundError(StorageError):
    """目标不存在"""

    kind = "not_found"

    def __init__(self, message: str, resource_type: str = "file"):
        super().__init__(message)
        self.resource_type = resource_type


class InvalidUploadError(StorageError):
    """上传被拒绝：扩展名、MIME 类型或大小不符合要求"""

    kind = "invalid_upload"

    INVALID_EXTENSION = "invalid_extension"
    INVALID_CONTENT_TYPE = "invalid_content_type"
    FILE_TOO_LARGE = "file_too_large"
    MISSING_FILE = "missing_file"
    MALFORMED_FORM = "malformed_form"
    INVALID_TARGET = "invalid_target"

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason


class InternalStorageError(StorageError):
    """其他文件系统错误（磁盘已满、权限不足等）"""

    kind = "internal"


__all__ = [
    "StorageError",
    "InvalidPathError",
    "NotFoundError",
    "InvalidUploadError",
    "InternalStorageError",
]
