"""
候选人评估谱系模型模块 - SQLModel 版本

每个申请至多一条。initial_* 快照只在 initial -> post_interview 时写入一次
"""
from datetime import datetime
from typing import Optional, List
from enum import Enum
from sqlmodel import Field, Column, JSON

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse, parent_key


class EvaluationStage(str, Enum):
    """评估阶段枚举"""
    INITIAL = "initial"
    POST_INTERVIEW = "post_interview"


class Recommendation(str, Enum):
    """推荐结论枚举"""
    PROCEED = "proceed"
    REVIEW = "review"
    REJECT = "reject"


# ==================== 表模型 ====================

class EvaluationLineage(TimestampMixin, IDMixin, SQLModelBase, table=True):
    """候选人评估谱系表模型"""
    __tablename__ = "ai_evaluations"

    application_id: str = parent_key("applications.id", "应聘申请ID", unique=True)

    # 当前评分
    overall_score: Optional[int] = Field(None, description="综合评分")
    skills_match_score: Optional[int] = Field(None, description="技能匹配评分")
    communication_score: Optional[int] = Field(None, description="沟通能力评分")
    cultural_fit_score: Optional[int] = Field(None, description="文化契合评分")
    recommendation: Optional[str] = Field(None, max_length=20, description="推荐结论")
    summary: Optional[str] = Field(None, description="评估总结")
    strengths: List[str] = Field(default_factory=list, sa_column=Column(JSON), description="优势")
    concerns: List[str] = Field(default_factory=list, sa_column=Column(JSON), description="顾虑")
    raw_response: Optional[dict] = Field(default=None, sa_column=Column(JSON), description="原始推理结果")

    evaluation_stage: str = Field(EvaluationStage.INITIAL.value, description="评估阶段")

    # 面试前基线快照
    initial_overall_score: Optional[int] = Field(None, description="面试前综合评分")
    initial_skills_match_score: Optional[int] = Field(None, description="面试前技能匹配评分")
    initial_communication_score: Optional[int] = Field(None, description="面试前沟通能力评分")
    initial_cultural_fit_score: Optional[int] = Field(None, description="面试前文化契合评分")
    initial_recommendation: Optional[str] = Field(None, max_length=20, description="面试前推荐结论")

    post_interview_at: Optional[datetime] = Field(None, description="首次面试后评估时间")

    # 乐观锁版本号
    version: int = Field(1, description="版本号")

    def __repr__(self) -> str:
        return f"<EvaluationLineage(application_id={self.application_id}, stage={self.evaluation_stage})>"


# ==================== 响应 Schema ====================

class EvaluationLineageResponse(TimestampResponse):
    """评估谱系响应"""
    application_id: str
    overall_score: Optional[int]
    skills_match_score: Optional[int]
    communication_score: Optional[int]
    cultural_fit_score: Optional[int]
    recommendation: Optional[str]
    summary: Optional[str]
    strengths: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)
    evaluation_stage: str
    initial_overall_score: Optional[int]
    initial_skills_match_score: Optional[int]
    initial_communication_score: Optional[int]
    initial_cultural_fit_score: Optional[int]
    initial_recommendation: Optional[str]
    post_interview_at: Optional[datetime]
    version: int


class EvaluationStatusResponse(SQLModelBase):
    """候选人评估运行状态响应"""
    application_id: str
    evaluation_status: Optional[str]
    evaluation_error: Optional[str]
    evaluation: Optional[EvaluationLineageResponse] = None
