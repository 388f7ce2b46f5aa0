"""
文件存储模块

提供根目录约束下的文件夹/文件存储
"""

from .exceptions import (
    StorageError,
    InvalidPathError,
    NotFoundError,
    InvalidUploadError,
    InternalStorageError,
)

from .security import (
    AccessGate,
    SecurePathResolver,
)

from .validation import (
    UploadValidator,
    create_upload_validator,
    sanitize_filename,
)

from .folder_store import FolderStore, create_folder_store

__all__ = [
    # Exceptions
    "StorageError",
    "InvalidPathError",
    "NotFoundError",
    "InvalidUploadError",
    "InternalStorageError",
    # Security
    "AccessGate",
    "SecurePathResolver",
    # Validation
    "UploadValidator",
    "create_upload_validator",
    "sanitize_filename",
    # Main
    "FolderStore",
    "create_folder_store",
]
