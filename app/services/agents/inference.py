"""
推理边界

InferenceClient 协议：infer(InferenceRequest) -> InferenceResponse。
默认实现通过 LLMClient 调用 OpenAI 兼容接口，结果按 kind 校验，
任何异常都转换为 success=False，不向编排器抛出
"""
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from loguru import logger
from pydantic import ValidationError

from app.schemas.analysis import CandidateEvaluationPayload, parse_analysis_payload
from app.schemas.inference import InferenceRequest, InferenceResponse
from .llm_client import LLMClient, get_llm_client
from .prompts import PromptLoader, get_prompt_loader

# kind -> prompt 文件名
PROMPT_FILES = {
    "cv": "cv_analysis",
    "disc": "disc_analysis",
    "interview": "interview_analysis",
    "evaluation": "candidate_evaluation",
}


@runtime_checkable
class InferenceClient(Protocol):
    async def infer(self, request: InferenceRequest) -> InferenceResponse:
        ...


def _bullets(items: Optional[List[str]], empty: str) -> str:
    if not items:
        return empty
    return "\n".join(f"- {item}" for item in items)


def _previous_evaluation(previous: Optional[Dict[str, Any]]) -> str:
    if not previous:
        return "No previous evaluation available (assume baseline of 50)"
    lines = [
        f"- Overall Score: {previous.get('overall_score', 'N/A')}/100",
        f"- Skills Match: {previous.get('skills_match_score', 'N/A')}/100",
        f"- Communication: {previous.get('communication_score', 'N/A')}/100",
        f"- Cultural Fit: {previous.get('cultural_fit_score', 'N/A')}/100",
        f"- Recommendation: {previous.get('recommendation', 'N/A')}",
    ]
    return "\n".join(lines)


def _analyses(analyses: Optional[Dict[str, str]]) -> str:
    if not analyses:
        return "No document analyses available"
    return "\n".join(f"- {kind.upper()}: {summary}" for kind, summary in analyses.items())


def build_prompt_variables(request: InferenceRequest) -> Dict[str, str]:
    """把推理上下文整理成模板变量，缺失项给出占位说明"""
    ctx = request.context
    return {
        "candidate_name": ctx.get("candidate_name") or "Unknown Candidate",
        "job_title": ctx.get("job_title") or "Unknown Position",
        "job_description": ctx.get("job_description") or "No description available",
        "job_requirements": _bullets(ctx.get("job_requirements"), "No specific requirements listed"),
        "job_responsibilities": _bullets(ctx.get("job_responsibilities"), "No specific responsibilities listed"),
        "document": request.input_ref or "No document provided",
        "previous_evaluation": _previous_evaluation(ctx.get("previous_evaluation")),
        "analyses": _analyses(ctx.get("analyses")),
        "business_case": "Completed" if ctx.get("business_case_completed") else "Not completed",
        "notes": ctx.get("notes") or "No recruiter notes",
    }


def validate_payload(kind: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """按 kind 校验模型输出，返回规范化后的字典"""
    if kind == "evaluation":
        return CandidateEvaluationPayload.model_validate(data).model_dump(mode="json")
    return parse_analysis_payload(kind, data).model_dump(mode="json")


class LLMInferenceClient:
    """基于 LLM 的推理实现"""

    def __init__(self, llm: Optional[LLMClient] = None, prompts: Optional[PromptLoader] = None):
        self._llm = llm
        self._prompts = prompts

    @property
    def llm(self) -> LLMClient:
        if self._llm is None:
            self._llm = get_llm_client()
        return self._llm

    @property
    def prompts(self) -> PromptLoader:
        if self._prompts is None:
            self._prompts = get_prompt_loader()
        return self._prompts

    async def infer(self, request: InferenceRequest) -> InferenceResponse:
        try:
            name = PROMPT_FILES[request.kind]
            variables = build_prompt_variables(request)
            system_prompt, user_prompt = self.prompts.load(name).render(**variables)
            data = await self.llm.complete_json(system_prompt, user_prompt)
            payload = validate_payload(request.kind, data)
        except ValidationError as exc:
            logger.error(
                "Inference payload invalid: application={} kind={} errors={}",
                request.application_id, request.kind, exc.error_count(),
            )
            return InferenceResponse.fail(f"推理结果格式不符合要求: {exc.error_count()} 处错误")
        except Exception as exc:
            logger.error(
                "Inference failed: application={} kind={} error={}",
                request.application_id, request.kind, exc,
            )
            return InferenceResponse.fail(str(exc) or exc.__class__.__name__)

        logger.info("Inference succeeded: application={} kind={}", request.application_id, request.kind)
        return InferenceResponse.ok(payload)


_inference_client: Optional[LLMInferenceClient] = None


def get_inference_client() -> InferenceClient:
    """获取默认推理客户端单例"""
    global _inference_client
    if _inference_client is None:
        _inference_client = LLMInferenceClient()
    return _inference_client
