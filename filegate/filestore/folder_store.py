"""
Folder Store - 按文件夹组织的文件存储

所有操作先经过 SecurePathResolver 解析路径，文件系统是唯一的数据来源
"""

import logging
import os
import shutil
import stat
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Tuple

from config import Config
from filegate.filestore.exceptions import (
    InternalStorageError,
    InvalidUploadError,
    NotFoundError,
    StorageError,
)
from filegate.filestore.security import SecurePathResolver
from filegate.filestore.validation import (
    UploadValidator,
    create_upload_validator,
    get_extension,
    sanitize_filename,
)
from filegate.models.filestore import FolderSummary, StoredObject

logger = logging.getLogger(__name__)

FILE_NOT_FOUND = "File not found"
DIRECTORY_NOT_FOUND = "Directory not found"


class FolderStore:
    """
    文件夹存储

    特性:
    - 根目录下单层文件夹
    - 上传先写入隐藏的暂存文件，再原子替换到目标路径
    - 不保留任何进程内状态
    """

    STAGING_PREFIX = ".upload-"
    STAGING_SUFFIX = ".part"
    CHUNK_SIZE = 1024 * 1024

    def __init__(self, resolver: SecurePathResolver, validator: UploadValidator):
        """
        初始化 FolderStore

        Args:
            resolver: 路径解析器
            validator: 上传验证器
        """
        self.resolver = resolver
        self.validator = validator

    # ===== 读取 =====

    def get_file(self, folder: str, filename: str) -> StoredObject:
        """
        获取文件（供传输层发送内容）

        Args:
            folder: 文件夹名
            filename: 文件名

        Returns:
            StoredObject，含解析后的路径和缓存指令

        Raises:
            InvalidPathError: 路径无效
            NotFoundError: 文件不存在
        """
        path = self.resolver.resolve(folder, filename)
        return self._stat_file(folder, filename, path)

    def stat_file(self, folder: str, filename: str) -> StoredObject:
        """
        获取文件元数据（大小、修改时间、创建时间）

        Raises:
            InvalidPathError: 路径无效
            NotFoundError: 文件不存在
        """
        path = self.resolver.resolve(folder, filename)
        return self._stat_file(folder, filename, path)

    def list_folder(self, folder: str) -> FolderSummary:
        """
        列出文件夹的直接子项名称（不递归）

        Raises:
            InvalidPathError: 路径无效
            NotFoundError: 文件夹不存在
        """
        path = self.resolver.resolve(folder)
        self._require_dir(path)

        with self._filesystem_errors("列出文件夹", path, DIRECTORY_NOT_FOUND):
            entries = sorted(
                name for name in os.listdir(path)
                if not self._is_staging(name)
            )

        return FolderSummary(folder=folder, entries=entries)

    def stat_folder(self, folder: str) -> FolderSummary:
        """
        统计文件夹直接子文件的大小之和

        子文件夹不计入，也不递归

        Raises:
            InvalidPathError: 路径无效
            NotFoundError: 文件夹不存在
        """
        path = self.resolver.resolve(folder)
        self._require_dir(path)

        entries = []
        total_size = 0

        with self._filesystem_errors("统计文件夹", path, DIRECTORY_NOT_FOUND):
            with os.scandir(path) as it:
                for entry in it:
                    if self._is_staging(entry.name):
                        continue
                    entries.append(entry.name)
                    try:
                        if entry.is_file():
                            total_size += entry.stat().st_size
                    except FileNotFoundError:
                        # 扫描过程中被并发删除
                        continue

        return FolderSummary(folder=folder, entries=sorted(entries), total_size_bytes=total_size)

    # ===== 写入 =====

    def put_file(
        self,
        folder: str,
        filename: str,
        stream: BinaryIO,
        content_type: Optional[str],
        size: Optional[int] = None
    ) -> StoredObject:
        """
        存储上传文件

        文件名先清洗再解析；验证通过后写入暂存文件，
        超出大小上限时删除暂存文件，目标路径保持不变。

        Args:
            folder: 文件夹名（不存在时创建）
            filename: 客户端声明的文件名
            stream: 文件内容流
            content_type: 声明的 MIME 类型
            size: 声明的文件大小，未知时为 None

        Returns:
            StoredObject: 已提交的文件

        Raises:
            InvalidPathError: 路径无效
            InvalidUploadError: 扩展名、MIME 类型或大小不符合要求，
                或文件夹/目标路径已被其他类型的条目占用
            InternalStorageError: 写入失败
        """
        safe_name = sanitize_filename(filename)
        target = self.resolver.resolve(folder, safe_name)
        self.validator.validate(get_extension(safe_name), content_type, size)

        folder_path = target.parent
        created = not os.path.isdir(folder_path)

        if created and os.path.lexists(folder_path):
            raise InvalidUploadError(
                f"Folder {folder!r} exists and is not a directory",
                reason=InvalidUploadError.INVALID_TARGET
            )
        if os.path.isdir(target):
            raise InvalidUploadError(
                f"Target {safe_name!r} is a directory",
                reason=InvalidUploadError.INVALID_TARGET
            )

        with self._filesystem_errors("创建文件夹", folder_path):
            os.makedirs(folder_path, exist_ok=True)

        try:
            staged, written = self._write_staging(folder_path, stream)
        except InvalidUploadError:
            if created:
                self._remove_if_empty(folder_path)
            raise

        try:
            with self._filesystem_errors("提交文件", target):
                os.replace(staged, target)
        except StorageError:
            self._discard(staged)
            raise

        logger.info(f"文件上传成功: {folder}/{safe_name} ({written} bytes)")

        return self._stat_file(folder, safe_name, target)

    def _write_staging(self, folder_path: Path, stream: BinaryIO) -> Tuple[str, int]:
        """
        将内容流写入暂存文件，边写边检查大小

        Returns:
            (暂存文件路径, 写入字节数)
        """
        with self._filesystem_errors("创建暂存文件", folder_path):
            fd, staged = tempfile.mkstemp(
                prefix=self.STAGING_PREFIX,
                suffix=self.STAGING_SUFFIX,
                dir=folder_path
            )

        written = 0
        try:
            with self._filesystem_errors("写入暂存文件", staged):
                with os.fdopen(fd, "wb") as out:
                    while True:
                        chunk = stream.read(self.CHUNK_SIZE)
                        if not chunk:
                            break
                        written += len(chunk)
                        self.validator.validate_size(written)
                        out.write(chunk)
        except Exception:
            self._discard(staged)
            raise

        return staged, written

    # ===== 删除 =====

    def delete_file(self, folder: str, filename: str) -> None:
        """
        删除单个文件

        Raises:
            InvalidPathError: 路径无效
            NotFoundError: 文件不存在
        """
        path = self.resolver.resolve(folder, filename)
        if not os.path.isfile(path):
            raise NotFoundError(FILE_NOT_FOUND)

        with self._filesystem_errors("删除文件", path, FILE_NOT_FOUND):
            os.unlink(path)

        logger.info(f"文件已删除: {folder}/{filename}")

    def delete_folder(self, folder: str) -> None:
        """
        递归删除文件夹及其全部内容

        Raises:
            InvalidPathError: 路径无效
            NotFoundError: 文件夹不存在
        """
        path = self.resolver.resolve(folder)
        self._require_dir(path)

        with self._filesystem_errors("删除文件夹", path, DIRECTORY_NOT_FOUND):
            shutil.rmtree(path)

        logger.info(f"文件夹已删除: {folder}")

    # ===== 内部方法 =====

    def _stat_file(self, folder: str, filename: str, path: Path) -> StoredObject:
        with self._filesystem_errors("读取文件元数据", path, FILE_NOT_FOUND):
            st = os.stat(path)

        if not stat.S_ISREG(st.st_mode):
            raise NotFoundError(FILE_NOT_FOUND)

        # st_birthtime 仅在部分平台可用
        created = getattr(st, "st_birthtime", st.st_ctime)

        return StoredObject(
            folder=folder,
            name=filename,
            path=path,
            size_bytes=st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            created_at=datetime.fromtimestamp(created, tz=timezone.utc),
        )

    def _require_dir(self, path: Path) -> None:
        if not os.path.isdir(path):
            raise NotFoundError(DIRECTORY_NOT_FOUND, resource_type="folder")

    def _is_staging(self, name: str) -> bool:
        return name.startswith(self.STAGING_PREFIX) and name.endswith(self.STAGING_SUFFIX)

    def _discard(self, staged: str) -> None:
        try:
            os.unlink(staged)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"删除暂存文件失败: {staged}: {e}")

    def _remove_if_empty(self, folder_path: Path) -> None:
        try:
            os.rmdir(folder_path)
        except OSError as e:
            # 并发上传已写入其他文件
            logger.debug(f"保留文件夹 {folder_path}: {e}")

    @contextmanager
    def _filesystem_errors(
        self,
        action: str,
        path,
        not_found: Optional[str] = None
    ) -> Iterator[None]:
        """
        将 OSError 转换为存储异常

        Args:
            action: 操作描述（用于日志）
            path: 操作的路径
            not_found: 若给出，FileNotFoundError 转为该消息的 NotFoundError
        """
        try:
            yield
        except StorageError:
            raise
        except (FileNotFoundError, NotADirectoryError) as e:
            if not_found is None:
                logger.error(f"{action}失败: {path}: {e}", exc_info=True)
                raise InternalStorageError(f"{action}失败") from e
            resource_type = "folder" if not_found == DIRECTORY_NOT_FOUND else "file"
            raise NotFoundError(not_found, resource_type=resource_type) from e
        except OSError as e:
            logger.error(f"{action}失败: {path}: {e}", exc_info=True)
            raise InternalStorageError(f"{action}失败") from e


def create_folder_store(config: Optional[Config] = None) -> FolderStore:
    """
    根据配置创建 FolderStore

    根目录不存在时创建
    """
    config = config or Config()
    root = config.storage.root_dir
    root.mkdir(parents=True, exist_ok=True)

    return FolderStore(
        resolver=SecurePathResolver(root),
        validator=create_upload_validator(config.upload)
    )


__all__ = [
    "FolderStore",
    "create_folder_store",
]
