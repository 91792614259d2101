"""
OpenAI 兼容接口的 JSON 调用封装。

推理边界只需要一件事：给定 system / user 两段提示词，拿回一个 JSON 对象。
这里负责限流、并发上限和 JSON 解析；网络层的瞬时错误交给 openai SDK 自带的重试。
"""
import asyncio
import json
import re
import time
from typing import Dict, List, Any, Optional

from openai import AsyncOpenAI
from loguru import logger

from app.core.config import settings

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class RateLimiter:
    """每分钟请求数限制（令牌桶），等待时按缺口计算休眠时长"""

    def __init__(self, per_minute: int):
        self.capacity = max(per_minute, 1)
        self.tokens = float(self.capacity)
        self.refill_per_second = self.capacity / 60.0
        self.updated = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.updated) * self.refill_per_second)
        self.updated = now

    async def wait(self) -> None:
        async with self._lock:
            self._refill()
            if self.tokens < 1:
                await asyncio.sleep((1 - self.tokens) / self.refill_per_second)
                self._refill()
            self.tokens -= 1


class LLMClient:
    """
    推理使用的 LLM 客户端

    AsyncOpenAI 在第一次调用时才创建；未配置 api_key 时调用直接抛错，
    由推理层转换为失败结果
    """

    def __init__(
        self,
        *,
        model: str,
        api_key: str,
        base_url: str,
        temperature: float = 0.3,
        timeout: int = 120,
        max_concurrency: int = 5,
        rate_limit: int = 60,
        max_retries: int = 2,
    ):
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self.temperature = temperature
        self.timeout = timeout
        self.max_concurrency = max_concurrency
        self.rate_limit = rate_limit
        self.max_retries = max_retries
        self._client: Optional[AsyncOpenAI] = None
        self._rate_limiter = RateLimiter(rate_limit)
        self._semaphore = asyncio.Semaphore(max_concurrency)

    @classmethod
    def from_settings(cls) -> "LLMClient":
        return cls(
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            temperature=settings.llm_temperature,
            timeout=settings.llm_timeout,
            max_concurrency=settings.llm_max_concurrency,
            rate_limit=settings.llm_rate_limit,
            max_retries=settings.llm_max_retries,
        )

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
            logger.info(
                "LLM client ready: model={}, max_concurrency={}, rate_limit={}/min",
                self.model, self.max_concurrency, self.rate_limit,
            )
        return self._client

    @staticmethod
    def parse_json(content: str) -> Dict[str, Any]:
        """解析模型输出，兼容 markdown 代码块包裹"""
        text = content.strip()
        fenced = _CODE_FENCE.match(text)
        if fenced:
            text = fenced.group(1)

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("JSON 解析失败: {} | 原始内容: {}", exc, text[:500])
            raise ValueError(f"LLM 返回的结果不是有效的 JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("LLM 返回的 JSON 不是对象")
        return data

    async def chat_json(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        if not self.is_configured():
            raise RuntimeError("LLM_API_KEY 未配置")

        await self._rate_limiter.wait()
        async with self._semaphore:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature if temperature is None else temperature,
                response_format={"type": "json_object"},
            )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError("LLM 返回内容为空")
        return self.parse_json(content)

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        return await self.chat_json(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature,
        )

    def is_configured(self) -> bool:
        return bool(self.api_key) and self.api_key != "your-api-key-here"

    def get_status(self) -> Dict[str, Any]:
        """健康检查用的配置摘要，不含密钥"""
        return {
            "model": self.model,
            "base_url": self.base_url,
            "api_key_configured": self.is_configured(),
            "max_concurrency": self.max_concurrency,
            "rate_limit": self.rate_limit,
        }


_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """按当前配置创建的进程级 LLMClient"""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient.from_settings()
    return _llm_client
