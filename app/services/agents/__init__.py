"""
agents 模块入口。
推理边界：LLM 客户端、Prompt 加载与按类型的推理调用。
"""

from .llm_client import LLMClient, get_llm_client
from .inference import InferenceClient, LLMInferenceClient, get_inference_client
from .prompts import PromptLoader, get_prompt_loader

__all__ = [
    "LLMClient",
    "get_llm_client",
    "InferenceClient",
    "LLMInferenceClient",
    "get_inference_client",
    "PromptLoader",
    "get_prompt_loader",
]
