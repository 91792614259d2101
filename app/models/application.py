"""
应聘申请模型模块 - SQLModel 版本

Application 是整个流程的核心表，状态只能经由状态机推进，
其余字段（备注、文档、负责人）可以通过普通更新修改
"""
from datetime import datetime
from typing import Optional, List
from enum import Enum
from sqlmodel import Field

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse, parent_key


class ApplicationStatus(str, Enum):
    """应聘申请状态枚举"""
    PENDING = "pending"              # 待处理
    BCQ_SENT = "bcq_sent"            # 已发送商业案例邀请
    UNDER_REVIEW = "under_review"    # 审阅中
    REVIEWED = "reviewed"            # 已审阅
    INTERVIEW = "interview"          # 面试中
    INTERVIEWED = "interviewed"      # 已面试
    HIRED = "hired"                  # 已录用
    REJECTED = "rejected"            # 已拒绝


TERMINAL_STATUSES = frozenset({ApplicationStatus.HIRED.value, ApplicationStatus.REJECTED.value})


class EvaluationRunStatus(str, Enum):
    """候选人评估运行状态（单飞标记）"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# ==================== 表模型 ====================

class Application(TimestampMixin, IDMixin, SQLModelBase, table=True):
    """
    应聘申请表模型

    evaluation_* 三列是候选人评估的单飞标记，
    只能通过 CRUDApplication 中的条件更新修改
    """
    __tablename__ = "applications"

    # 外键
    job_id: str = parent_key("jobs.id", "岗位ID")

    # 候选人信息
    candidate_id: str = Field(..., index=True, description="候选人ID")
    candidate_name: str = Field(..., max_length=100, description="候选人姓名")
    candidate_email: Optional[str] = Field(None, max_length=200, description="候选人邮箱")

    # 状态管理
    status: str = Field(ApplicationStatus.PENDING.value, index=True, description="申请状态")

    # 上传文档引用
    cv_url: Optional[str] = Field(None, description="简历文件地址")
    disc_url: Optional[str] = Field(None, description="DISC 测评文件地址")

    # 商业案例
    business_case_completed: bool = Field(False, description="商业案例是否已完成")
    business_case_completed_at: Optional[datetime] = Field(None, description="商业案例完成时间")
    bcq_invitation_sent_at: Optional[datetime] = Field(None, description="商业案例邀请发送时间")
    bcq_response_time_minutes: Optional[int] = Field(None, description="邀请发出到完成的分钟数")
    bcq_delayed: Optional[bool] = Field(None, description="是否超过 24 小时才完成")

    assigned_to: Optional[str] = Field(None, index=True, description="负责招聘人员ID")
    notes: Optional[str] = Field(None, description="备注信息")

    # 最近一次综合评分的镜像
    ai_score: Optional[int] = Field(None, description="AI 综合评分")

    # 候选人评估单飞标记
    evaluation_status: Optional[str] = Field(None, description="候选人评估状态")
    evaluation_ticket: Optional[str] = Field(None, description="当前评估调用令牌")
    evaluation_error: Optional[str] = Field(None, description="评估错误信息")

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, status={self.status})>"


# ==================== 请求 Schema ====================

class ApplicationCreate(SQLModelBase):
    """创建应聘申请请求（状态固定为 pending）"""
    job_id: str = Field(..., description="岗位ID")
    candidate_id: str = Field(..., min_length=1, description="候选人ID")
    candidate_name: str = Field(..., min_length=1, max_length=100, description="候选人姓名")
    candidate_email: Optional[str] = Field(None, max_length=200, description="候选人邮箱")
    cv_url: Optional[str] = None
    disc_url: Optional[str] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    notify_candidate: bool = Field(False, description="是否发送申请确认通知")
    actor_id: Optional[str] = Field(None, description="操作人ID")


class ActorAction(SQLModelBase):
    """只携带操作人的动作请求"""
    actor_id: str = Field(..., min_length=1, description="操作人ID")


class BCQInvitationRequest(ActorAction):
    """发送商业案例邀请"""
    access_token: Optional[str] = Field(None, description="候选人门户访问令牌，缺省时自动生成")


class ApplicationUpdate(SQLModelBase):
    """更新应聘申请请求 - 不包含状态"""
    notes: Optional[str] = None
    cv_url: Optional[str] = None
    disc_url: Optional[str] = None
    assigned_to: Optional[str] = None
    candidate_email: Optional[str] = Field(None, max_length=200)


# ==================== 响应 Schema ====================

class ApplicationResponse(TimestampResponse):
    """应聘申请响应"""
    job_id: str
    candidate_id: str
    candidate_name: str
    candidate_email: Optional[str]
    status: str
    cv_url: Optional[str]
    disc_url: Optional[str]
    business_case_completed: bool
    business_case_completed_at: Optional[datetime]
    bcq_invitation_sent_at: Optional[datetime]
    bcq_response_time_minutes: Optional[int]
    bcq_delayed: Optional[bool]
    assigned_to: Optional[str]
    notes: Optional[str]
    ai_score: Optional[int]
    evaluation_status: Optional[str]
    evaluation_error: Optional[str]

    # 关联信息
    job_title: Optional[str] = None


class ReviewCompletion(SQLModelBase):
    """审阅完成度"""
    completed: int
    total: int
    is_complete: bool


class ApplicationDetailResponse(ApplicationResponse):
    """应聘申请详情响应（含评估、分析、审阅进度）"""
    evaluation: Optional[dict] = None
    analyses: List[dict] = Field(default_factory=list)
    review_progress: Optional[dict] = None
    review_completion: Optional[ReviewCompletion] = None
