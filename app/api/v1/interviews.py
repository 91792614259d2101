"""
面试安排 API 路由

router 挂在 /applications 下（按申请安排与查询），
detail_router 挂在 /interviews 下（改期、取消、完成与历史）
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_lifecycle
from app.core.database import get_db
from app.core.exceptions import NotFoundException
from app.core.response import success_response, ResponseModel
from app.crud import application_crud, interview_crud, interview_history_crud
from app.models.interview import (
    InterviewCreate,
    InterviewHistoryResponse,
    InterviewReschedule,
    InterviewResponse,
    InterviewStatusChange,
)
from app.services.lifecycle import LifecycleService

router = APIRouter()
detail_router = APIRouter()


@router.post("/{application_id}/interviews", summary="安排面试", response_model=ResponseModel[InterviewResponse])
async def schedule_interview(
    application_id: str,
    data: InterviewCreate,
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    """
    安排面试

    - 审阅中/已审阅：申请进入面试阶段
    - 面试中/已面试：追加一轮面试，状态不变
    """
    interview = await lifecycle.schedule_interview(application_id, data)
    return success_response(
        data=InterviewResponse.model_validate(interview).model_dump(),
        message="面试已安排"
    )


@router.get("/{application_id}/interviews", summary="获取申请的面试列表", response_model=ResponseModel[list[InterviewResponse]])
async def list_interviews(
    application_id: str,
    db: AsyncSession = Depends(get_db),
):
    if not await application_crud.get(db, application_id):
        raise NotFoundException(f"应聘申请不存在: {application_id}")
    interviews = await interview_crud.list_by_application(db, application_id)
    return success_response(data=[InterviewResponse.model_validate(i).model_dump() for i in interviews])


@detail_router.get("/{interview_id}", summary="获取面试详情", response_model=ResponseModel[InterviewResponse])
async def get_interview(
    interview_id: str,
    db: AsyncSession = Depends(get_db),
):
    interview = await interview_crud.get(db, interview_id)
    if not interview:
        raise NotFoundException(f"面试不存在: {interview_id}")
    return success_response(data=InterviewResponse.model_validate(interview).model_dump())


@detail_router.post("/{interview_id}/reschedule", summary="面试改期", response_model=ResponseModel[InterviewResponse])
async def reschedule_interview(
    interview_id: str,
    data: InterviewReschedule,
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    interview = await lifecycle.reschedule_interview(interview_id, data)
    return success_response(
        data=InterviewResponse.model_validate(interview).model_dump(),
        message="面试已改期"
    )


@detail_router.post("/{interview_id}/cancel", summary="取消面试", response_model=ResponseModel[InterviewResponse])
async def cancel_interview(
    interview_id: str,
    data: InterviewStatusChange,
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    interview = await lifecycle.cancel_interview(interview_id, data.actor_id, data.note)
    return success_response(
        data=InterviewResponse.model_validate(interview).model_dump(),
        message="面试已取消"
    )


@detail_router.post("/{interview_id}/complete", summary="完成面试", response_model=ResponseModel[InterviewResponse])
async def complete_interview(
    interview_id: str,
    data: InterviewStatusChange,
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    """
    标记面试已完成；申请进入已面试需等待面试分析完成
    """
    interview = await lifecycle.complete_interview(interview_id, data.actor_id, data.note)
    return success_response(
        data=InterviewResponse.model_validate(interview).model_dump(),
        message="面试已完成"
    )


@detail_router.get("/{interview_id}/history", summary="获取面试变更历史", response_model=ResponseModel[list[InterviewHistoryResponse]])
async def get_interview_history(
    interview_id: str,
    db: AsyncSession = Depends(get_db),
):
    if not await interview_crud.get(db, interview_id):
        raise NotFoundException(f"面试不存在: {interview_id}")
    entries = await interview_history_crud.list_by_interview(db, interview_id)
    return success_response(data=[InterviewHistoryResponse.model_validate(e).model_dump() for e in entries])
