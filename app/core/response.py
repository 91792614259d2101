"""
统一响应模块

所有接口返回同一个信封：
    {"success": true, "code": 200, "message": "操作成功", "data": {...}, "error": null}

失败时 error 为机器可读的错误类型（invalid_transition、already_in_progress 等），
前端据此区分提示性错误和阻断性错误
"""
from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class ResponseModel(BaseModel, Generic[T]):
    """统一响应模型"""
    success: bool = True
    code: int = 200
    message: str = "操作成功"
    data: Optional[T] = None
    error: Optional[str] = None


class PagedData(BaseModel, Generic[T]):
    """分页数据模型"""
    items: List[T]
    total: int
    page: int
    page_size: int
    pages: int

    @staticmethod
    def page_count(total: int, page_size: int) -> int:
        return (total + page_size - 1) // page_size if page_size > 0 else 0


class PagedResponseModel(ResponseModel[PagedData[T]], Generic[T]):
    """分页响应模型"""


DictResponse = ResponseModel[Dict[str, Any]]


def _envelope(success: bool, code: int, message: str, data: Any, error: Optional[str]) -> dict:
    return {
        "success": success,
        "code": code,
        "message": message,
        "data": data,
        "error": error,
    }


def success_response(data: Any = None, message: str = "操作成功", code: int = 200) -> dict:
    return _envelope(True, code, message, data, None)


def error_response(
    message: str = "操作失败",
    code: int = 400,
    data: Any = None,
    error: Optional[str] = None,
) -> dict:
    return _envelope(False, code, message, data, error)


def paged_response(
    items: list,
    total: int,
    page: int,
    page_size: int,
    message: str = "查询成功"
) -> dict:
    return success_response(
        data={
            "items": items,
            "total": total,
            "page": page,
            "page_size": page_size,
            "pages": PagedData.page_count(total, page_size),
        },
        message=message
    )
