"""
Pydantic Schemas 模块

定义推理与通知边界的数据验证模型
"""
from .base import BaseSchema
from .analysis import (
    CVAnalysisPayload,
    DISCAnalysisPayload,
    InterviewAnalysisPayload,
    ScoreChangeExplanation,
    CandidateEvaluationPayload,
    AnalysisPayload,
    parse_analysis_payload,
)
from .inference import InferenceRequest, InferenceResponse, InferenceKind
from .notification import NotificationMessage, NotificationResult

__all__ = [
    "BaseSchema",
    # Analysis
    "CVAnalysisPayload",
    "DISCAnalysisPayload",
    "InterviewAnalysisPayload",
    "ScoreChangeExplanation",
    "CandidateEvaluationPayload",
    "AnalysisPayload",
    "parse_analysis_payload",
    # Inference
    "InferenceRequest",
    "InferenceResponse",
    "InferenceKind",
    # Notification
    "NotificationMessage",
    "NotificationResult",
]
