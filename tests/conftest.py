"""
测试配置文件

提供测试用的 fixtures：每个测试独立的 SQLite 文件库、可控的推理与邮件替身、
测试客户端、测试数据工厂等
"""
import asyncio
from dataclasses import dataclass, field
from typing import AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.api.deps import get_session_factory
from app.core.database import build_engine, build_session_factory, get_db
from app.core.events import ChangeBus, get_change_bus
from app.crud import job_crud
from app.main import create_app
from app.schemas.inference import InferenceRequest, InferenceResponse
from app.schemas.notification import NotificationMessage, NotificationResult
from app.services.agents.inference import get_inference_client
from app.services.lifecycle import LifecycleService
from app.services.mail import get_notification_sender
from app.services.notifications import NotificationService
from app.services.orchestrator import AnalysisOrchestrator


# ========== 推理与邮件替身 ==========

CV_PAYLOAD = {
    "candidate_summary": "Seasoned backend engineer with strong Python background",
    "experience_years": 6,
    "key_skills": ["Python", "FastAPI", "PostgreSQL"],
    "strengths": ["API design"],
    "red_flags": [],
}

DISC_PAYLOAD = {
    "profile_type": "dominance",
    "profile_description": "Direct and results-oriented",
    "dominant_traits": ["decisive"],
}

EVALUATION_PAYLOAD = {
    "overall_score": 70,
    "skills_match_score": 72,
    "communication_score": 65,
    "cultural_fit_score": 68,
    "recommendation": "Review",
    "summary": "Solid candidate with some gaps",
    "strengths": ["Python"],
    "concerns": ["Limited leadership"],
}

INTERVIEW_PAYLOAD = {
    "interview_summary": "Candidate handled system design questions well",
    "performance_assessment": "Strong technical depth",
    "strengths_demonstrated": ["system design", "clear communication"],
    "concerns_identified": [],
    "new_overall_score": 82.4,
    "new_skills_score": 85,
    "new_communication_score": 80,
    "new_cultural_fit_score": 78,
    "new_recommendation": "proceed",
    "reasons_for_score_change": ["Strong design discussion"],
    # 模型给出的差值不可信，服务端会重新计算
    "score_change_explanation": {
        "previous_score": 10,
        "new_score": 82,
        "change": 99,
        "reasons_for_change": [],
    },
}


class FakeInference:
    """
    推理替身

    payloads 按 kind 返回结果；failures 中的 kind 返回失败；
    设置 gate 后调用会阻塞到 gate.set()
    """

    def __init__(self):
        self.payloads: Dict[str, dict] = {
            "cv": dict(CV_PAYLOAD),
            "disc": dict(DISC_PAYLOAD),
            "evaluation": dict(EVALUATION_PAYLOAD),
            "interview": dict(INTERVIEW_PAYLOAD),
        }
        self.failures: Dict[str, str] = {}
        self.requests: List[InferenceRequest] = []
        self.gate: Optional[asyncio.Event] = None
        self.entered = asyncio.Event()

    async def infer(self, request: InferenceRequest) -> InferenceResponse:
        self.requests.append(request)
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        if request.kind in self.failures:
            return InferenceResponse.fail(self.failures[request.kind])
        return InferenceResponse.ok(dict(self.payloads[request.kind]))


class FakeSender:
    """邮件发送替身，succeed=False 时模拟发送失败"""

    def __init__(self):
        self.succeed = True
        self.sent: List[NotificationMessage] = []

    async def send(self, message: NotificationMessage) -> NotificationResult:
        if not self.succeed:
            return NotificationResult(success=False, error="mail provider unavailable")
        self.sent.append(message)
        return NotificationResult(success=True)


# ========== 数据库 ==========

@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    每个测试一个独立的 SQLite 文件库

    使用文件库而不是内存库，保证多个会话看到同一份数据
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ========== 服务 ==========

@pytest.fixture
def inference() -> FakeInference:
    return FakeInference()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def bus() -> ChangeBus:
    return ChangeBus()


@pytest.fixture
def orchestrator(session_factory, inference, bus) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(session_factory, inference, bus, default_baseline_score=50, max_retries=3)


@pytest.fixture
def notifications(session_factory, sender, bus) -> NotificationService:
    return NotificationService(session_factory, sender, bus)


@pytest.fixture
def lifecycle(session_factory, notifications, bus) -> LifecycleService:
    return LifecycleService(session_factory, notifications, bus)


@dataclass
class Seeder:
    """
    服务层测试数据工厂

    直接通过 CRUD / 服务创建数据，不经过 HTTP
    """
    session_factory: async_sessionmaker[AsyncSession]
    lifecycle: LifecycleService
    _counter: int = field(default=0, repr=False)

    def _next_id(self) -> str:
        self._counter += 1
        return str(self._counter)

    async def job(self, **overrides):
        suffix = self._next_id()
        data = {
            "title": f"Backend Engineer {suffix}",
            "department": "Engineering",
            "description": "Build and operate backend services",
            "requirements": ["Python", "SQL"],
            "responsibilities": ["Design APIs"],
            **overrides,
        }
        async with self.session_factory() as db:
            job = await job_crud.create(db, obj_in=data)
            await db.commit()
        return job

    async def application(self, job_id: Optional[str] = None, **overrides):
        from app.models.application import ApplicationCreate

        if job_id is None:
            job_id = (await self.job()).id
        suffix = self._next_id()
        data = {
            "job_id": job_id,
            "candidate_id": f"cand-{suffix}",
            "candidate_name": f"Candidate {suffix}",
            "candidate_email": f"candidate{suffix}@example.com",
            "cv_url": f"https://files.example.com/cv/{suffix}.pdf",
            "disc_url": f"https://files.example.com/disc/{suffix}.pdf",
            **overrides,
        }
        return await self.lifecycle.create_application(ApplicationCreate(**data))


@pytest.fixture
def seed(session_factory, lifecycle) -> Seeder:
    return Seeder(session_factory=session_factory, lifecycle=lifecycle)


# ========== HTTP 客户端 ==========

@pytest_asyncio.fixture(scope="function")
async def client(session_factory, inference, sender, bus) -> AsyncGenerator[AsyncClient, None]:
    """
    提供测试用的 HTTP 客户端

    覆盖数据库、会话工厂、推理客户端、邮件发送器与变更总线依赖
    """
    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_inference_client] = lambda: inference
    app.dependency_overrides[get_notification_sender] = lambda: sender
    app.dependency_overrides[get_change_bus] = lambda: bus

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@dataclass
class DataFactory:
    """
    HTTP 测试数据工厂类

    集中管理测试数据创建，字段变更时只需修改此处
    """
    client: AsyncClient
    _counter: int = field(default=0, repr=False)

    def _next_id(self) -> str:
        self._counter += 1
        return str(self._counter)

    async def create_job(self, **overrides) -> dict:
        suffix = self._next_id()
        data = {
            "title": f"测试岗位{suffix}",
            "department": "测试部",
            "description": "测试用岗位描述",
            "requirements": ["Python", "FastAPI"],
            "responsibilities": ["接口开发"],
            **overrides
        }
        resp = await self.client.post("/api/v1/jobs", json=data)
        assert resp.status_code == 200, f"创建岗位失败: {resp.text}"
        return resp.json()["data"]

    async def create_application(self, job_id: Optional[str] = None, **overrides) -> dict:
        """创建应聘申请，自动创建依赖的岗位"""
        if job_id is None:
            job_id = (await self.create_job())["id"]
        suffix = self._next_id()
        data = {
            "job_id": job_id,
            "candidate_id": f"cand-{suffix}",
            "candidate_name": f"测试候选人{suffix}",
            "candidate_email": f"test{suffix}@example.com",
            "cv_url": f"https://files.example.com/cv/{suffix}.pdf",
            **overrides
        }
        resp = await self.client.post("/api/v1/applications", json=data)
        assert resp.status_code == 200, f"创建申请失败: {resp.text}"
        return resp.json()["data"]


@pytest_asyncio.fixture
async def factory(client: AsyncClient) -> DataFactory:
    """提供测试数据工厂实例"""
    return DataFactory(client=client)
