"""
异常处理模块

定义业务异常和全局异常处理器。

流程引擎的领域错误都不会让状态处于半写入：
- 非法状态迁移、重复触发分析：状态保持不变，返回 409
- 缺少基线评估：返回 422，属于流程顺序错误
- 通知发送失败：日志已记为 failed，返回 502 供前端重试
存储层异常不在这里转换，由 get_db 回滚后交给通用处理器
"""
from typing import Optional

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from loguru import logger

from .response import error_response


class AppException(Exception):
    """应用基础异常"""
    error_code = "internal_error"

    def __init__(
        self,
        message: str = "服务器内部错误",
        code: int = 500,
        data: Optional[dict] = None
    ):
        self.message = message
        self.code = code
        self.data = data
        super().__init__(self.message)


class NotFoundException(AppException):
    error_code = "not_found"

    def __init__(self, message: str = "资源不存在"):
        super().__init__(message=message, code=404)


class BadRequestException(AppException):
    error_code = "bad_request"

    def __init__(self, message: str = "请求参数错误"):
        super().__init__(message=message, code=400)


class ConflictException(AppException):
    error_code = "conflict"

    def __init__(self, message: str = "资源状态冲突", data: Optional[dict] = None):
        super().__init__(message=message, code=409, data=data)


# ==================== 流程引擎异常 ====================

class InvalidTransitionException(ConflictException):
    """当前状态下不允许该事件，状态保持不变"""
    error_code = "invalid_transition"

    def __init__(self, current_status: str, event: str, reason: str = ""):
        self.current_status = current_status
        self.event = event
        message = f"状态 {current_status} 下不允许执行 {event}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            data={"current_status": current_status, "event": event},
        )


class AlreadyInProgressException(ConflictException):
    """同一 (申请, 类型) 已有分析在处理中，属于提示性错误"""
    error_code = "already_in_progress"

    def __init__(self, application_id: str, kind: str):
        self.application_id = application_id
        self.kind = kind
        super().__init__(
            message=f"分析正在进行中: {application_id}/{kind}",
            data={"application_id": application_id, "kind": kind},
        )


class ConcurrencyConflictException(ConflictException):
    """条件写入多次竞争失败"""
    error_code = "concurrency_conflict"

    def __init__(self, message: str = "并发更新冲突，请稍后重试"):
        super().__init__(message=message)


class MissingBaselineEvaluationException(AppException):
    """面试分析前缺少基线评估"""
    error_code = "missing_baseline_evaluation"

    def __init__(self, application_id: str):
        self.application_id = application_id
        super().__init__(
            message=f"申请 {application_id} 尚无候选人基线评估，无法进行面试分析",
            code=422,
            data={"application_id": application_id},
        )


class NotificationFailureException(AppException):
    """通知发送失败（日志已记录 failed）"""
    error_code = "notification_failure"

    def __init__(self, message: str = "通知发送失败", data: Optional[dict] = None):
        super().__init__(message=message, code=502, data=data)


# ==================== 全局处理器 ====================

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.warning(
        "{}: {} | Path: {}", exc.error_code, exc.message, request.url.path
    )
    return JSONResponse(
        status_code=exc.code,
        content=error_response(
            message=exc.message, code=exc.code, data=exc.data, error=exc.error_code
        )
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.warning(f"HTTPException: {exc.detail} | Path: {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=str(exc.detail), code=exc.status_code, error="http_error")
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求验证异常处理器，错误逐条拼成 "位置: 原因" """
    error_messages = [
        f"{' -> '.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    logger.warning(f"ValidationError: {'; '.join(error_messages)} | Path: {request.url.path}")

    return JSONResponse(
        status_code=422,
        content=error_response(
            message="请求参数验证失败",
            code=422,
            data={"errors": error_messages},
            error="validation_error",
        )
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """未预期异常（包括存储层故障）只返回笼统信息"""
    logger.exception(f"Unhandled Exception: {exc} | Path: {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=error_response(message="服务器内部错误", code=500, error="internal_error")
    )
