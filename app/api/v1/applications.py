"""
应聘申请 API 路由

状态只能通过动作端点推进（邀请、审阅、面试、决定），PATCH 不涉及状态
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_lifecycle
from app.core.database import get_db
from app.core.exceptions import NotFoundException
from app.core.response import (
    success_response,
    paged_response,
    ResponseModel,
    PagedResponseModel,
)
from app.crud import application_crud, analysis_crud, evaluation_crud, job_crud, review_crud
from app.models.analysis import AnalysisRecordResponse
from app.models.application import (
    ActorAction,
    ApplicationCreate,
    ApplicationDetailResponse,
    ApplicationResponse,
    ApplicationStatus,
    ApplicationUpdate,
    BCQInvitationRequest,
    ReviewCompletion,
)
from app.models.evaluation import EvaluationLineageResponse
from app.models.review import ReviewCompleteRequest, ReviewProgressResponse
from app.services.lifecycle import LifecycleService
from app.services.review_gate import get_completion_count, is_complete

router = APIRouter()


async def _with_job_title(db: AsyncSession, application) -> ApplicationResponse:
    item = ApplicationResponse.model_validate(application)
    job = await job_crud.get(db, application.job_id)
    if job:
        item.job_title = job.title
    return item


@router.get("", summary="获取应聘申请列表", response_model=PagedResponseModel[ApplicationResponse])
async def get_applications(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    job_id: Optional[str] = Query(None, description="岗位ID筛选"),
    status: Optional[ApplicationStatus] = Query(None, description="状态筛选"),
    assigned_to: Optional[str] = Query(None, description="负责人筛选"),
    db: AsyncSession = Depends(get_db),
):
    """
    获取应聘申请列表，支持多条件筛选
    """
    skip = (page - 1) * page_size
    filters = {
        "job_id": job_id,
        "status": status.value if status else None,
        "assigned_to": assigned_to,
    }
    applications = await application_crud.get_multi_filtered(db, skip=skip, limit=page_size, **filters)
    total = await application_crud.count_filtered(db, **filters)

    items = []
    for application in applications:
        item = await _with_job_title(db, application)
        items.append(item.model_dump())

    return paged_response(items, total, page, page_size)


@router.post("", summary="创建应聘申请", response_model=ResponseModel[ApplicationResponse])
async def create_application(
    data: ApplicationCreate,
    lifecycle: LifecycleService = Depends(get_lifecycle),
    db: AsyncSession = Depends(get_db),
):
    """
    创建应聘申请，初始状态固定为 pending
    """
    application = await lifecycle.create_application(data)
    item = await _with_job_title(db, application)
    return success_response(data=item.model_dump(), message="应聘申请创建成功")


@router.get("/{application_id}", summary="获取应聘申请详情", response_model=ResponseModel[ApplicationDetailResponse])
async def get_application(
    application_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    获取应聘申请详情，包含评估谱系、各类分析结果与审阅进度
    """
    application = await application_crud.get(db, application_id)
    if not application:
        raise NotFoundException(f"应聘申请不存在: {application_id}")

    response = ApplicationDetailResponse.model_validate(application)
    job = await job_crud.get(db, application.job_id)
    if job:
        response.job_title = job.title

    lineage = await evaluation_crud.get_by_application(db, application_id)
    if lineage:
        response.evaluation = EvaluationLineageResponse.model_validate(lineage).model_dump()

    records = await analysis_crud.list_by_application(db, application_id)
    response.analyses = [AnalysisRecordResponse.model_validate(r).model_dump() for r in records]

    progress = await review_crud.get_by_application(db, application_id)
    if progress:
        response.review_progress = ReviewProgressResponse.model_validate(progress).model_dump()
    completed, total = get_completion_count(progress)
    response.review_completion = ReviewCompletion(
        completed=completed, total=total, is_complete=is_complete(progress)
    )

    return success_response(data=response.model_dump())


@router.patch("/{application_id}", summary="更新应聘申请", response_model=ResponseModel[ApplicationResponse])
async def update_application(
    application_id: str,
    data: ApplicationUpdate,
    lifecycle: LifecycleService = Depends(get_lifecycle),
    db: AsyncSession = Depends(get_db),
):
    """
    更新备注、文档地址、负责人（不涉及状态）
    """
    application = await lifecycle.update_application(application_id, data)
    item = await _with_job_title(db, application)
    return success_response(data=item.model_dump(), message="应聘申请更新成功")


# ========== 状态动作 ==========

@router.post("/{application_id}/bcq-invitation", summary="发送商业案例邀请", response_model=ResponseModel[ApplicationResponse])
async def send_bcq_invitation(
    application_id: str,
    data: BCQInvitationRequest,
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    """
    发送商业案例邀请，通知发送失败时状态保持 pending
    """
    application = await lifecycle.send_bcq_invitation(application_id, data.actor_id, data.access_token)
    return success_response(
        data=ApplicationResponse.model_validate(application).model_dump(),
        message="商业案例邀请已发送"
    )


@router.post("/{application_id}/business-case/complete", summary="提交商业案例", response_model=ResponseModel[ApplicationResponse])
async def complete_business_case(
    application_id: str,
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    application = await lifecycle.complete_business_case(application_id)
    return success_response(
        data=ApplicationResponse.model_validate(application).model_dump(),
        message="商业案例已提交"
    )


@router.post("/{application_id}/review/begin", summary="开始审阅", response_model=ResponseModel[ApplicationResponse])
async def begin_review(
    application_id: str,
    data: ActorAction,
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    application = await lifecycle.begin_review(application_id, data.actor_id)
    return success_response(
        data=ApplicationResponse.model_validate(application).model_dump(),
        message="已进入审阅"
    )


@router.post("/{application_id}/review/complete", summary="完成审阅", response_model=ResponseModel[ApplicationResponse])
async def complete_review(
    application_id: str,
    data: ReviewCompleteRequest,
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    """
    完成审阅：四项审阅全部完成，或由招聘人员手动覆盖
    """
    application = await lifecycle.complete_review(application_id, data.actor_id, data.manual_override)
    return success_response(
        data=ApplicationResponse.model_validate(application).model_dump(),
        message="审阅已完成"
    )
