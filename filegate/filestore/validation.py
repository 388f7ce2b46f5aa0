"""
上传验证

扩展名、MIME 类型白名单与大小上限检查，以及文件名清洗
"""

import re
from pathlib import PurePosixPath
from typing import Iterable, Optional

from config import UploadConfig
from filegate.filestore.exceptions import InvalidUploadError

# 允许的文件名字符之外的都替换为 _
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.\-_]")


def sanitize_filename(name: str) -> str:
    """
    清洗文件名

    Args:
        name: 客户端声明的文件名

    Returns:
        只包含 [a-zA-Z0-9.-_] 的文件名
    """
    return _UNSAFE_FILENAME_CHARS.sub("_", name)


def get_extension(filename: str) -> str:
    """小写扩展名（含前导点），无扩展名时返回空字符串"""
    return PurePosixPath(filename).suffix.lower()


class UploadValidator:
    """上传文件验证器"""

    # 最大文件大小 (10MB)
    MAX_FILE_SIZE = 10 * 1024 * 1024

    def __init__(
        self,
        allowed_extensions: Iterable[str] = (".gif", ".jpg", ".png"),
        allowed_mime_types: Iterable[str] = ("image/gif", "image/jpeg", "image/png"),
        max_size: int = MAX_FILE_SIZE
    ):
        """
        初始化验证器

        Args:
            allowed_extensions: 允许的扩展名
            allowed_mime_types: 允许的 MIME 类型
            max_size: 最大文件大小（字节）
        """
        self.allowed_extensions = frozenset(ext.lower() for ext in allowed_extensions)
        self.allowed_mime_types = frozenset(mime.lower() for mime in allowed_mime_types)
        self.max_size = max_size

    def validate_type(self, extension: str, content_type: Optional[str]) -> None:
        """
        检查扩展名和 MIME 类型，两者都必须在白名单内

        Raises:
            InvalidUploadError: 任一检查失败
        """
        if extension.lower() not in self.allowed_extensions:
            raise InvalidUploadError(
                f"Invalid file type: extension {extension or '(none)'!r} is not allowed",
                reason=InvalidUploadError.INVALID_EXTENSION
            )

        # 忽略参数部分，如 "image/png; charset=binary"
        mime = (content_type or "").split(";", 1)[0].strip().lower()
        if mime not in self.allowed_mime_types:
            raise InvalidUploadError(
                f"Invalid file type: content type {mime or '(none)'!r} is not allowed",
                reason=InvalidUploadError.INVALID_CONTENT_TYPE
            )

    def validate_size(self, size: Optional[int]) -> None:
        """
        检查文件大小，未知大小时跳过（写入时再按字节数检查）

        Raises:
            InvalidUploadError: 超过上限
        """
        if size is not None and size > self.max_size:
            raise InvalidUploadError(
                f"File too large: limit is {self.max_size} bytes",
                reason=InvalidUploadError.FILE_TOO_LARGE
            )

    def validate(
        self,
        extension: str,
        content_type: Optional[str],
        size: Optional[int] = None
    ) -> None:
        """
        验证上传请求

        Args:
            extension: 目标文件扩展名
            content_type: 声明的 MIME 类型
            size: 声明的文件大小（字节），未知时为 None

        Raises:
            InvalidUploadError: 验证失败
        """
        self.validate_type(extension, content_type)
        self.validate_size(size)


def create_upload_validator(config: Optional[UploadConfig] = None) -> UploadValidator:
    """根据上传配置创建验证器"""
    config = config or UploadConfig()
    return UploadValidator(
        allowed_extensions=config.allowed_extensions,
        allowed_mime_types=config.allowed_mime_types,
        max_size=config.max_file_size
    )


__all__ = [
    "UploadValidator",
    "create_upload_validator",
    "sanitize_filename",
    "get_extension",
]
