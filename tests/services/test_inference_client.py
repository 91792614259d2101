"""
LLM 推理客户端测试

使用真实 prompt 模板与替身 LLM，验证模板变量齐全与结果校验
"""
import os

import pytest

from app.schemas.inference import InferenceRequest
from app.services.agents.inference import LLMInferenceClient, build_prompt_variables
from app.services.agents.llm_client import LLMClient
from app.services.agents.prompts import PromptLoader


class StubLLM:
    def __init__(self, result):
        self.result = result
        self.prompts = []

    async def complete_json(self, system_prompt, user_prompt, temperature=None):
        self.prompts.append((system_prompt, user_prompt))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _request(kind, **context) -> InferenceRequest:
    base = {
        "candidate_name": "Ada Lovelace",
        "job_title": "Data Engineer",
        "job_requirements": ["Python"],
    }
    base.update(context)
    return InferenceRequest(application_id="app-1", kind=kind, input_ref="doc text", context=base)


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", ["cv", "disc", "interview", "evaluation"])
async def test_every_prompt_renders(kind):
    llm = StubLLM(RuntimeError("stop after rendering"))
    client = LLMInferenceClient(llm=llm, prompts=PromptLoader())

    response = await client.infer(_request(kind))

    assert response.success is False
    system_prompt, user_prompt = llm.prompts[0]
    assert "Ada Lovelace" in user_prompt
    if kind != "evaluation":
        assert "doc text" in user_prompt
    assert system_prompt


@pytest.mark.asyncio
async def test_valid_payload_is_normalized():
    llm = StubLLM({
        "overall_score": "71.5",
        "recommendation": " Proceed ",
        "summary": "Good fit",
    })
    client = LLMInferenceClient(llm=llm, prompts=PromptLoader())

    response = await client.infer(_request("evaluation"))

    assert response.success is True
    assert response.payload["overall_score"] == 72
    assert response.payload["recommendation"] == "proceed"


@pytest.mark.asyncio
async def test_invalid_payload_becomes_failure():
    llm = StubLLM({"overall_score": 150, "recommendation": "maybe", "summary": "x"})
    client = LLMInferenceClient(llm=llm, prompts=PromptLoader())

    response = await client.infer(_request("evaluation"))

    assert response.success is False
    assert response.error


def test_prompt_variables_have_placeholders_for_missing_context():
    variables = build_prompt_variables(InferenceRequest(application_id="app-1", kind="cv"))
    assert variables["candidate_name"] == "Unknown Candidate"
    assert variables["document"] == "No document provided"
    assert "baseline" in variables["previous_evaluation"]


def test_parse_json_strips_code_fence():
    assert LLMClient.parse_json('```json\n{"a": 1}\n```') == {"a": 1}
    with pytest.raises(ValueError):
        LLMClient.parse_json("[1, 2]")


def test_prompt_file_requires_both_sections(tmp_path):
    (tmp_path / "broken.yaml").write_text("system: only a system prompt\n", encoding="utf-8")
    loader = PromptLoader(base_path=tmp_path)
    with pytest.raises(ValueError):
        loader.load("broken")
    with pytest.raises(FileNotFoundError):
        loader.load("missing")


def test_hot_reload_follows_file_mtime(tmp_path):
    path = tmp_path / "greeting.yaml"
    path.write_text("system: s\nuser: Hello {candidate_name}\n", encoding="utf-8")
    os.utime(path, (1_000_000, 1_000_000))
    loader = PromptLoader(base_path=tmp_path, hot_reload=True)
    assert loader.load("greeting").render(candidate_name="Ada") == ("s", "Hello Ada")

    path.write_text("system: s\nuser: Hi {candidate_name}\n", encoding="utf-8")
    os.utime(path, (2_000_000, 2_000_000))
    assert loader.get("greeting", "user", candidate_name="Ada") == "Hi Ada"

    cached = PromptLoader(base_path=tmp_path)
    cached.load("greeting")
    path.write_text("system: s\nuser: Bye {candidate_name}\n", encoding="utf-8")
    os.utime(path, (3_000_000, 3_000_000))
    assert cached.get("greeting", "user", candidate_name="Ada") == "Hi Ada"
