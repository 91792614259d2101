"""
审阅进度 API 路由
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_lifecycle
from app.core.database import get_db
from app.core.exceptions import NotFoundException
from app.core.response import success_response, DictResponse
from app.crud import application_crud, review_crud
from app.models.review import ReviewProgressResponse, ReviewSectionUpdate
from app.services.lifecycle import LifecycleService
from app.services.review_gate import get_completion_count, is_complete

router = APIRouter()


def _progress_data(progress) -> dict:
    completed, total = get_completion_count(progress)
    return {
        "progress": ReviewProgressResponse.model_validate(progress).model_dump() if progress else None,
        "completed": completed,
        "total": total,
        "is_complete": is_complete(progress),
    }


@router.get("/{application_id}/review-progress", summary="获取审阅进度", response_model=DictResponse)
async def get_review_progress(
    application_id: str,
    db: AsyncSession = Depends(get_db),
):
    if not await application_crud.get(db, application_id):
        raise NotFoundException(f"应聘申请不存在: {application_id}")
    progress = await review_crud.get_by_application(db, application_id)
    return success_response(data=_progress_data(progress))


@router.put("/{application_id}/review-progress", summary="设置审阅项", response_model=DictResponse)
async def set_review_section(
    application_id: str,
    data: ReviewSectionUpdate,
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    """
    设置单个审阅项；四项全部完成且申请处于审阅中时自动进入已审阅
    """
    progress = await lifecycle.set_review_section(application_id, data.section, data.reviewed, data.actor_id)
    return success_response(data=_progress_data(progress), message="审阅进度已更新")
