"""
文件管理路由

/{folder}/{file} 与 /{folder} 上的读取、元数据、上传、删除。
文件系统调用在线程池中执行。
"""

from email.utils import format_datetime
from typing import List
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from filegate.api.auth import verify_api_key
from filegate.filestore import FolderStore, InvalidUploadError, sanitize_filename

logger = logging.getLogger(__name__)

# multipart 边界与各部分头部的余量
MULTIPART_OVERHEAD = 64 * 1024

# 每个路由都先校验密钥
router = APIRouter(dependencies=[Depends(verify_api_key)])


def get_folder_store(request: Request) -> FolderStore:
    """获取应用的 FolderStore"""
    return request.app.state.folder_store


def http_date(value) -> str:
    """RFC 7231 格式的 HTTP 日期"""
    return format_datetime(value, usegmt=True)


def body_too_large(max_body: int) -> InvalidUploadError:
    return InvalidUploadError(
        f"File too large: request body exceeds {max_body} bytes",
        reason=InvalidUploadError.FILE_TOO_LARGE
    )


def limit_body(request: Request, max_body: int) -> Request:
    """
    限制请求体大小

    声明的 Content-Length 超限时立即拒绝；分块传输时边接收边计数，
    超限即中止读取，剩余内容不再接收。

    Args:
        request: 原始请求
        max_body: 允许的最大请求体字节数

    Returns:
        读取请求体时执行计数的新 Request

    Raises:
        InvalidUploadError: 声明的请求体超限
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_body:
        raise body_too_large(max_body)

    received = 0

    async def receive():
        nonlocal received
        message = await request.receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > max_body:
                raise body_too_large(max_body)
        return message

    return Request(request.scope, receive)


# ===== 响应模型 =====

class MessageResponse(BaseModel):
    """操作确认响应"""
    message: str


class FolderListResponse(BaseModel):
    """文件夹列表响应"""
    files: List[str] = Field(default_factory=list, description="直接子项名称")


# ===== 文件 =====

@router.get("/{folder}/{file}")
@router.get("/{folder}/{file}/", include_in_schema=False)
async def get_file(
    folder: str,
    file: str,
    store: FolderStore = Depends(get_folder_store)
):
    """
    下载文件
    """
    stored = await run_in_threadpool(store.get_file, folder, file)

    return FileResponse(
        stored.path,
        headers={"Cache-Control": stored.cache_control}
    )


@router.head("/{folder}/{file}")
@router.head("/{folder}/{file}/", include_in_schema=False)
async def stat_file(
    folder: str,
    file: str,
    store: FolderStore = Depends(get_folder_store)
):
    """
    获取文件元数据

    通过响应头返回大小、修改时间、创建时间，无响应体
    """
    stored = await run_in_threadpool(store.stat_file, folder, file)

    return Response(
        status_code=200,
        headers={
            "Content-Length": str(stored.size_bytes),
            "Last-Modified": http_date(stored.modified_at),
            "Created-At": http_date(stored.created_at),
            "Cache-Control": stored.cache_control,
        }
    )


@router.post("/{folder}/{file}", response_model=MessageResponse)
@router.post("/{folder}/{file}/", response_model=MessageResponse, include_in_schema=False)
async def upload_file(
    folder: str,
    file: str,
    request: Request,
    store: FolderStore = Depends(get_folder_store)
):
    """
    上传文件

    - multipart 表单字段: file
    - 支持 .gif / .jpg / .png
    - 最大文件大小: 10MB
    - 同名文件会被覆盖
    """
    # 读取请求体之前先拒绝无效路径
    store.resolver.resolve(folder, sanitize_filename(file))

    upload_config = request.app.state.config.upload
    field_name = upload_config.field_name
    limited = limit_body(request, upload_config.max_file_size + MULTIPART_OVERHEAD)

    try:
        form = await limited.form(max_files=1)
    except StarletteHTTPException as exc:
        # multipart 解析失败（格式错误、文件部分过多等）
        raise InvalidUploadError(
            str(exc.detail),
            reason=InvalidUploadError.MALFORMED_FORM
        ) from exc

    try:
        upload = form.get(field_name)
        if not isinstance(upload, UploadFile):
            raise InvalidUploadError(
                f"No file provided in field '{field_name}'",
                reason=InvalidUploadError.MISSING_FILE
            )

        await run_in_threadpool(
            store.put_file,
            folder,
            file,
            upload.file,
            upload.content_type,
            upload.size
        )
    finally:
        await form.close()

    return MessageResponse(message="File uploaded successfully")


@router.delete("/{folder}/{file}", response_model=MessageResponse)
@router.delete("/{folder}/{file}/", response_model=MessageResponse, include_in_schema=False)
async def delete_file(
    folder: str,
    file: str,
    store: FolderStore = Depends(get_folder_store)
):
    """
    删除文件
    """
    await run_in_threadpool(store.delete_file, folder, file)

    return MessageResponse(message="File deleted successfully")


# ===== 文件夹 =====

@router.get("/{folder}", response_model=FolderListResponse)
@router.get("/{folder}/", response_model=FolderListResponse, include_in_schema=False)
async def list_folder(
    folder: str,
    store: FolderStore = Depends(get_folder_store)
):
    """
    列出文件夹内容（仅名称，不递归）
    """
    summary = await run_in_threadpool(store.list_folder, folder)

    return FolderListResponse(files=summary.entries)


@router.head("/{folder}")
@router.head("/{folder}/", include_in_schema=False)
async def stat_folder(
    folder: str,
    store: FolderStore = Depends(get_folder_store)
):
    """
    获取文件夹大小

    Content-Length 为直接子文件大小之和，无响应体
    """
    summary = await run_in_threadpool(store.stat_folder, folder)

    return Response(
        status_code=200,
        headers={"Content-Length": str(summary.total_size_bytes)}
    )


@router.delete("/{folder}", response_model=MessageResponse)
@router.delete("/{folder}/", response_model=MessageResponse, include_in_schema=False)
async def delete_folder(
    folder: str,
    store: FolderStore = Depends(get_folder_store)
):
    """
    递归删除文件夹
    """
    await run_in_threadpool(store.delete_folder, folder)

    return MessageResponse(message="Directory deleted successfully")


__all__ = ["router"]
