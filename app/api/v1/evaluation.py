"""
候选人评估 API 路由
"""
from fastapi import APIRouter, BackgroundTasks, Depends

from app.api.deps import get_orchestrator
from app.core.response import success_response, ResponseModel
from app.models.application import ActorAction
from app.models.evaluation import EvaluationLineageResponse, EvaluationStatusResponse
from app.services.orchestrator import AnalysisOrchestrator

router = APIRouter()


def _status_data(application, lineage) -> dict:
    return EvaluationStatusResponse(
        application_id=application.id,
        evaluation_status=application.evaluation_status,
        evaluation_error=application.evaluation_error,
        evaluation=EvaluationLineageResponse.model_validate(lineage) if lineage else None,
    ).model_dump()


@router.post("/{application_id}/evaluation", summary="发起候选人评估", response_model=ResponseModel[EvaluationStatusResponse])
async def request_evaluation(
    application_id: str,
    background_tasks: BackgroundTasks,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    认领候选人评估并在后台执行，同一申请同时只允许一次评估
    """
    claim = await orchestrator.claim_evaluation(application_id)
    background_tasks.add_task(orchestrator.run_in_background, claim)
    application, lineage = await orchestrator.get_evaluation(application_id)
    return success_response(data=_status_data(application, lineage), message="评估任务已提交")


@router.get("/{application_id}/evaluation", summary="获取候选人评估", response_model=ResponseModel[EvaluationStatusResponse])
async def get_evaluation(
    application_id: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    application, lineage = await orchestrator.get_evaluation(application_id)
    return success_response(data=_status_data(application, lineage))


@router.post("/{application_id}/evaluation/reset", summary="重置卡住的评估", response_model=ResponseModel[EvaluationStatusResponse])
async def reset_evaluation(
    application_id: str,
    data: ActorAction,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    await orchestrator.reset_stuck_evaluation(application_id, data.actor_id)
    application, lineage = await orchestrator.get_evaluation(application_id)
    return success_response(data=_status_data(application, lineage), message="评估已重置")
