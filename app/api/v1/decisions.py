"""
录用决定 API 路由
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_lifecycle
from app.core.database import get_db
from app.core.exceptions import NotFoundException
from app.core.response import success_response, ResponseModel
from app.crud import application_crud, decision_crud
from app.models.decision import DecisionCreate, DecisionResponse
from app.services.lifecycle import LifecycleService

router = APIRouter()


@router.post("/{application_id}/decisions", summary="记录录用决定", response_model=ResponseModel[DecisionResponse])
async def record_decision(
    application_id: str,
    data: DecisionCreate,
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    """
    记录录用决定

    - hired / rejected：申请进入对应终态，终态申请再次决定返回 409
    - on_hold：只记录，不改变状态
    """
    decision = await lifecycle.record_decision(application_id, data)
    return success_response(
        data=DecisionResponse.model_validate(decision).model_dump(),
        message="录用决定已记录"
    )


@router.get("/{application_id}/decisions", summary="获取录用决定列表", response_model=ResponseModel[list[DecisionResponse]])
async def list_decisions(
    application_id: str,
    db: AsyncSession = Depends(get_db),
):
    if not await application_crud.get(db, application_id):
        raise NotFoundException(f"应聘申请不存在: {application_id}")
    decisions = await decision_crud.list_by_application(db, application_id)
    return success_response(data=[DecisionResponse.model_validate(d).model_dump() for d in decisions])


@router.get("/{application_id}/decisions/latest", summary="获取最新录用决定", response_model=ResponseModel[DecisionResponse])
async def get_latest_decision(
    application_id: str,
    db: AsyncSession = Depends(get_db),
):
    decision = await decision_crud.latest(db, application_id)
    if not decision:
        raise NotFoundException(f"尚无录用决定: {application_id}")
    return success_response(data=DecisionResponse.model_validate(decision).model_dump())
