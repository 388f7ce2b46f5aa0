"""
安全访问控制

提供共享密钥校验和路径安全验证
"""

import hmac
import logging
import ntpath
import os
from pathlib import Path
from typing import Optional, Union

from filegate.filestore.exceptions import InvalidPathError

logger = logging.getLogger(__name__)


class AccessGate:
    """
    共享密钥校验

    未配置密钥时所有请求都会被拒绝
    """

    def __init__(self, secret: Optional[str]):
        """
        初始化访问控制

        Args:
            secret: 进程配置的共享密钥
        """
        self._secret = self._encode(secret) if secret else None
        if self._secret is None:
            logger.warning("未配置 API 密钥，所有请求都将被拒绝")

    @staticmethod
    def _encode(value: str) -> bytes:
        return value.encode("utf-8", "surrogatepass")

    @property
    def enabled(self) -> bool:
        """是否配置了密钥"""
        return self._secret is not None

    def authorize(self, supplied: Optional[str]) -> bool:
        """
        校验调用方提供的密钥

        使用恒定时间比较，结果与逐字相等比较一致

        Args:
            supplied: 请求携带的密钥

        Returns:
            是否与配置的密钥完全一致
        """
        if self._secret is None or not isinstance(supplied, str):
            return False

        return hmac.compare_digest(self._encode(supplied), self._secret)


class SecurePathResolver:
    """
    安全路径解析器

    防止路径遍历攻击。纯函数：只做字符串层面的规范化，不访问文件系统。
    """

    # 所有平台都视为分隔符
    SEPARATORS = ("/", "\\")

    def __init__(self, root: Union[str, Path]):
        """
        初始化路径解析器

        Args:
            root: 存储根目录（应已规范化为绝对路径）
        """
        self.root = os.path.normpath(os.path.abspath(os.fspath(root)))

    def validate_segment(self, segment: str) -> str:
        """
        验证单个路径段

        规则:
        1. 非空字符串
        2. 不含空字节
        3. 不含路径分隔符（/ 和 \\）
        4. 不是 . 或 ..
        5. 不带盘符（如 C:）

        Args:
            segment: 文件夹名或文件名

        Returns:
            原样返回的路径段

        Raises:
            InvalidPathError: 路径段无效
        """
        if not isinstance(segment, str) or not segment:
            raise InvalidPathError("Empty path segment", segment=segment)

        if "\x00" in segment:
            raise InvalidPathError("Path segment contains a null byte", segment=segment)

        if any(sep in segment for sep in self.SEPARATORS):
            raise InvalidPathError("Path segment contains a separator", segment=segment)

        if segment in (os.curdir, os.pardir):
            raise InvalidPathError("Relative path segment not allowed", segment=segment)

        if ntpath.splitdrive(segment)[0]:
            raise InvalidPathError("Drive-qualified path segment not allowed", segment=segment)

        return segment

    def resolve(self, *segments: str) -> Path:
        """
        将路径段解析为根目录下的绝对路径

        Args:
            *segments: 文件夹名，及可选的文件名

        Returns:
            规范化后的绝对路径

        Raises:
            InvalidPathError: 路径段无效或结果不在根目录内
        """
        if not segments:
            raise InvalidPathError("No path segments given")

        for segment in segments:
            self.validate_segment(segment)

        candidate = os.path.normpath(os.path.join(self.root, *segments))

        if not self.is_contained(candidate):
            logger.warning(f"路径越界被拒绝: {segments!r}")
            raise InvalidPathError("Path escapes the storage root")

        return Path(candidate)

    def is_contained(self, path: Union[str, Path]) -> bool:
        """
        检查路径是否等于根目录或位于根目录之下

        按路径组件比较，/data 不包含 /data-evil

        Args:
            path: 要检查的路径

        Returns:
            路径是否安全
        """
        candidate = os.path.normpath(os.path.abspath(os.fspath(path)))

        try:
            relative = os.path.relpath(candidate, self.root)
        except ValueError:
            # Windows 下不同盘符
            return False

        if os.path.isabs(relative):
            return False

        return relative != os.pardir and not relative.startswith(os.pardir + os.sep)


__all__ = [
    "AccessGate",
    "SecurePathResolver",
]
