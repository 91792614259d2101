"""
评估谱系前滚

面试分析成功后把新评分写入谱系。第一次进入 post_interview 时冻结面试前快照，
之后的多轮面试只覆盖当前评分
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from app.models.base import utcnow
from app.models.evaluation import EvaluationLineage, EvaluationStage
from app.schemas.analysis import InterviewAnalysisPayload, ScoreChangeExplanation, CandidateEvaluationPayload

SNAPSHOT_FIELDS = (
    ("overall_score", "initial_overall_score"),
    ("skills_match_score", "initial_skills_match_score"),
    ("communication_score", "initial_communication_score"),
    ("cultural_fit_score", "initial_cultural_fit_score"),
    ("recommendation", "initial_recommendation"),
)


@dataclass(frozen=True)
class RollForward:
    """前滚结果：待写入谱系的字段与修正后的分析结果"""
    values: Dict[str, Any]
    explanation: ScoreChangeExplanation
    payload: InterviewAnalysisPayload


def roll_forward(
    lineage: EvaluationLineage,
    payload: InterviewAnalysisPayload,
    *,
    default_baseline_score: int = 50,
    now: Optional[datetime] = None,
) -> RollForward:
    """
    根据面试分析计算谱系的新字段

    previous_score 取谱系当前综合评分，缺失时取默认基线；
    change 始终按 new - previous 计算，不采信模型给出的差值
    """
    previous_score = lineage.overall_score if lineage.overall_score is not None else default_baseline_score
    reasons = payload.reasons_for_score_change
    if not reasons and payload.score_change_explanation is not None:
        reasons = payload.score_change_explanation.reasons_for_change
    explanation = ScoreChangeExplanation.between(previous_score, payload.new_overall_score, reasons)

    values: Dict[str, Any] = {
        "overall_score": payload.new_overall_score,
        "skills_match_score": payload.new_skills_score,
        "communication_score": payload.new_communication_score,
        "cultural_fit_score": payload.new_cultural_fit_score,
        "recommendation": payload.new_recommendation,
        "summary": payload.interview_summary,
        "strengths": list(payload.strengths_demonstrated),
        "concerns": list(payload.concerns_identified),
    }

    if lineage.evaluation_stage == EvaluationStage.INITIAL.value:
        for current, snapshot in SNAPSHOT_FIELDS:
            values[snapshot] = getattr(lineage, current)
        values["evaluation_stage"] = EvaluationStage.POST_INTERVIEW.value
        values["post_interview_at"] = now or utcnow()

    corrected = payload.model_copy(update={"score_change_explanation": explanation})
    values["raw_response"] = corrected.model_dump(mode="json")
    return RollForward(values=values, explanation=explanation, payload=corrected)


def evaluation_values(payload: CandidateEvaluationPayload) -> Dict[str, Any]:
    """候选人评估结果 -> 谱系当前字段，不涉及阶段与快照"""
    return {
        "overall_score": payload.overall_score,
        "skills_match_score": payload.skills_match_score,
        "communication_score": payload.communication_score,
        "cultural_fit_score": payload.cultural_fit_score,
        "recommendation": payload.recommendation,
        "summary": payload.summary,
        "strengths": list(payload.strengths),
        "concerns": list(payload.concerns),
        "raw_response": payload.model_dump(mode="json"),
    }
