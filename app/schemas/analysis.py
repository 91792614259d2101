"""
文档分析结果 Schema

三种分析结果按 kind 区分，使用 pydantic 判别联合解析
"""
from typing import Annotated, List, Literal, Optional, Union
from pydantic import Field, TypeAdapter, field_validator

from .base import BaseSchema


def _round_score(v):
    """模型可能返回小数或字符串分数，统一取整"""
    if v is None:
        return v
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return None
        v = float(v)
    if isinstance(v, float):
        return int(round(v))
    return v


Score = Annotated[int, Field(ge=0, le=100)]


class CVAnalysisPayload(BaseSchema):
    """简历分析结果"""
    kind: Literal["cv"] = "cv"
    candidate_summary: str = Field(..., description="候选人概述")
    experience_years: Optional[float] = Field(None, ge=0, description="工作年限")
    key_skills: List[str] = Field(default_factory=list)
    education: List[str] = Field(default_factory=list)
    work_history: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)
    overall_impression: Optional[str] = None

    def to_summary(self) -> str:
        return self.candidate_summary


class DISCAnalysisPayload(BaseSchema):
    """DISC 测评分析结果"""
    kind: Literal["disc"] = "disc"
    profile_type: Literal["D", "I", "S", "C"] = Field(..., description="主导类型")
    profile_description: str
    dominant_traits: List[str] = Field(default_factory=list)
    communication_style: Optional[str] = None
    work_style: Optional[str] = None
    strengths: List[str] = Field(default_factory=list)
    potential_challenges: List[str] = Field(default_factory=list)
    management_tips: List[str] = Field(default_factory=list)
    team_fit_considerations: Optional[str] = None

    @field_validator("profile_type", mode="before")
    @classmethod
    def normalize_profile_type(cls, v):
        if isinstance(v, str):
            return v.strip().upper()[:1]
        return v

    def to_summary(self) -> str:
        return f"{self.profile_type} Profile: {self.profile_description}"


class ScoreChangeExplanation(BaseSchema):
    """评分变化说明，change 恒等于 new_score - previous_score"""
    previous_score: int
    new_score: int
    change: int
    reasons_for_change: List[str] = Field(default_factory=list)

    @classmethod
    def between(cls, previous_score: int, new_score: int, reasons: List[str]) -> "ScoreChangeExplanation":
        return cls(
            previous_score=previous_score,
            new_score=new_score,
            change=new_score - previous_score,
            reasons_for_change=list(reasons),
        )


class InterviewAnalysisPayload(BaseSchema):
    """面试分析结果（附带更新后的评分）"""
    kind: Literal["interview"] = "interview"
    interview_summary: str
    performance_assessment: str
    strengths_demonstrated: List[str] = Field(default_factory=list)
    concerns_identified: List[str] = Field(default_factory=list)
    areas_needing_clarification: List[str] = Field(default_factory=list)
    new_overall_score: Score
    new_skills_score: Score
    new_communication_score: Score
    new_cultural_fit_score: Score
    new_recommendation: Literal["proceed", "review", "reject"]
    reasons_for_score_change: List[str] = Field(default_factory=list)
    next_steps_recommendation: Optional[str] = None
    suggested_follow_up_questions: List[str] = Field(default_factory=list)
    # 由服务端按基线重新计算后写入
    score_change_explanation: Optional[ScoreChangeExplanation] = None

    @field_validator(
        "new_overall_score", "new_skills_score", "new_communication_score", "new_cultural_fit_score",
        mode="before",
    )
    @classmethod
    def round_scores(cls, v):
        return _round_score(v)

    @field_validator("new_recommendation", mode="before")
    @classmethod
    def normalize_recommendation(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    def to_summary(self) -> str:
        return self.interview_summary


AnalysisPayload = Annotated[
    Union[CVAnalysisPayload, DISCAnalysisPayload, InterviewAnalysisPayload],
    Field(discriminator="kind"),
]

_payload_adapter = TypeAdapter(AnalysisPayload)


def parse_analysis_payload(kind: str, data: dict) -> Union[CVAnalysisPayload, DISCAnalysisPayload, InterviewAnalysisPayload]:
    """按 kind 解析分析结果，模型输出中的 kind 字段以调用方为准"""
    return _payload_adapter.validate_python({**data, "kind": kind})


class CandidateEvaluationPayload(BaseSchema):
    """候选人综合评估结果"""
    overall_score: Score
    skills_match_score: Optional[Score] = None
    communication_score: Optional[Score] = None
    cultural_fit_score: Optional[Score] = None
    recommendation: Literal["proceed", "review", "reject"]
    summary: str
    strengths: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)

    @field_validator(
        "overall_score", "skills_match_score", "communication_score", "cultural_fit_score",
        mode="before",
    )
    @classmethod
    def round_scores(cls, v):
        return _round_score(v)

    @field_validator("recommendation", mode="before")
    @classmethod
    def normalize_recommendation(cls, v):
        return v.strip().lower() if isinstance(v, str) else v
