"""
SQLModel 模型模块

使用 SQLModel 统一 ORM Model 和 Pydantic Schema
"""
from .base import SQLModelBase, TimestampMixin, AppendOnlyMixin
from .job import Job, JobCreate, JobUpdate, JobResponse, JobStatus
from .application import (
    Application, ApplicationCreate, ApplicationUpdate,
    ApplicationResponse, ApplicationDetailResponse, ReviewCompletion, ActorAction, BCQInvitationRequest,
    ApplicationStatus, EvaluationRunStatus, TERMINAL_STATUSES,
)
from .evaluation import (
    EvaluationLineage, EvaluationLineageResponse, EvaluationStatusResponse,
    EvaluationStage, Recommendation,
)
from .analysis import (
    AnalysisRecord, AnalysisRequest, AnalysisRecordResponse,
    AnalysisKind, AnalysisStatus,
)
from .review import ReviewProgress, ReviewSection, ReviewSectionUpdate, ReviewCompleteRequest, ReviewProgressResponse
from .interview import (
    Interview, InterviewHistoryEntry, InterviewCreate, InterviewReschedule, InterviewStatusChange,
    InterviewResponse, InterviewHistoryResponse, InterviewStatus, InterviewType,
)
from .decision import HiringDecision, DecisionCreate, DecisionResponse, DecisionType
from .notification import (
    NotificationLog, NotificationDispatch, NotificationLogResponse,
    NotificationType, NotificationStatus,
)

__all__ = [
    # Base
    "SQLModelBase",
    "TimestampMixin",
    "AppendOnlyMixin",
    # Job
    "Job",
    "JobCreate",
    "JobUpdate",
    "JobResponse",
    "JobStatus",
    # Application
    "Application",
    "ApplicationCreate",
    "ApplicationUpdate",
    "ApplicationResponse",
    "ApplicationDetailResponse",
    "ReviewCompletion",
    "ActorAction",
    "BCQInvitationRequest",
    "ApplicationStatus",
    "EvaluationRunStatus",
    "TERMINAL_STATUSES",
    # Evaluation
    "EvaluationLineage",
    "EvaluationLineageResponse",
    "EvaluationStatusResponse",
    "EvaluationStage",
    "Recommendation",
    # Analysis
    "AnalysisRecord",
    "AnalysisRequest",
    "AnalysisRecordResponse",
    "AnalysisKind",
    "AnalysisStatus",
    # Review
    "ReviewProgress",
    "ReviewSection",
    "ReviewSectionUpdate",
    "ReviewCompleteRequest",
    "ReviewProgressResponse",
    # Interview
    "Interview",
    "InterviewHistoryEntry",
    "InterviewCreate",
    "InterviewReschedule",
    "InterviewStatusChange",
    "InterviewResponse",
    "InterviewHistoryResponse",
    "InterviewStatus",
    "InterviewType",
    # Decision
    "HiringDecision",
    "DecisionCreate",
    "DecisionResponse",
    "DecisionType",
    # Notification
    "NotificationLog",
    "NotificationDispatch",
    "NotificationLogResponse",
    "NotificationType",
    "NotificationStatus",
]
