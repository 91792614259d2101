"""
推理边界 Schema

请求 {application_id, kind, input_ref} -> 响应 {success, payload} 或 {success: false, error}
"""
from typing import Any, Dict, Literal, Optional
from pydantic import Field

from .base import BaseSchema

# cv / disc / interview 对应文档分析，evaluation 为候选人综合评估
InferenceKind = Literal["cv", "disc", "interview", "evaluation"]


class InferenceRequest(BaseSchema):
    """推理请求"""
    application_id: str
    kind: InferenceKind
    input_ref: Optional[str] = None
    # 提示词上下文：岗位、候选人、已有评估等
    context: Dict[str, Any] = Field(default_factory=dict)


class InferenceResponse(BaseSchema):
    """推理响应"""
    success: bool
    payload: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, payload: Dict[str, Any]) -> "InferenceResponse":
        return cls(success=True, payload=payload)

    @classmethod
    def fail(cls, error: str) -> "InferenceResponse":
        return cls(success=False, error=error)
