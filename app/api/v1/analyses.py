"""
文档分析 API 路由

POST 只负责认领，推理在后台任务中执行；客户端通过 GET 或变更事件获取结果
"""
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_orchestrator
from app.core.database import get_db
from app.core.exceptions import NotFoundException
from app.core.response import success_response, ResponseModel
from app.crud import analysis_crud, application_crud
from app.models.analysis import AnalysisKind, AnalysisRecordResponse, AnalysisRequest
from app.models.application import ActorAction
from app.services.orchestrator import AnalysisOrchestrator

router = APIRouter()


@router.post("/{application_id}/analyses/{kind}", summary="发起文档分析", response_model=ResponseModel[AnalysisRecordResponse])
async def request_analysis(
    application_id: str,
    kind: AnalysisKind,
    background_tasks: BackgroundTasks,
    data: Optional[AnalysisRequest] = None,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    认领分析并在后台执行推理

    - 同一申请同一类型已在处理中：409
    - 面试分析缺少基线评估：422
    """
    input_ref = data.input_ref if data else None
    claim = await orchestrator.claim_analysis(application_id, kind.value, input_ref)
    background_tasks.add_task(orchestrator.run_in_background, claim)
    record = await orchestrator.get_analysis(application_id, kind.value)
    return success_response(
        data=AnalysisRecordResponse.model_validate(record).model_dump(),
        message="分析任务已提交"
    )


@router.get("/{application_id}/analyses", summary="获取申请的全部分析", response_model=ResponseModel[list[AnalysisRecordResponse]])
async def list_analyses(
    application_id: str,
    db: AsyncSession = Depends(get_db),
):
    if not await application_crud.get(db, application_id):
        raise NotFoundException(f"应聘申请不存在: {application_id}")
    records = await analysis_crud.list_by_application(db, application_id)
    return success_response(data=[AnalysisRecordResponse.model_validate(r).model_dump() for r in records])


@router.get("/{application_id}/analyses/{kind}", summary="获取分析结果", response_model=ResponseModel[AnalysisRecordResponse])
async def get_analysis(
    application_id: str,
    kind: AnalysisKind,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    record = await orchestrator.get_analysis(application_id, kind.value)
    return success_response(data=AnalysisRecordResponse.model_validate(record).model_dump())


@router.post("/{application_id}/analyses/{kind}/reset", summary="重置卡住的分析", response_model=ResponseModel[AnalysisRecordResponse])
async def reset_analysis(
    application_id: str,
    kind: AnalysisKind,
    data: ActorAction,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    管理操作：把 processing 记录重置为 pending，原调用的结果之后会被丢弃
    """
    record = await orchestrator.reset_stuck_analysis(application_id, kind.value, data.actor_id)
    return success_response(
        data=AnalysisRecordResponse.model_validate(record).model_dump(),
        message="分析已重置"
    )
