"""
数据库配置模块

SQLAlchemy 2.0 异步引擎 + SQLModel 元数据。

引擎与会话工厂用 build_* 函数创建，测试可以为每个用例单独建库；
路由通过 get_db 取请求级会话，服务层通过会话工厂自行开启短事务
"""
from typing import AsyncGenerator
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlmodel import SQLModel

from .config import settings, BASE_DIR


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    创建异步引擎

    SQLite 下设置忙等待超时，并发的条件更新排队执行而不是直接报 database is locked
    """
    connect_args = {"timeout": 30} if database_url.startswith("sqlite") else {}
    return create_async_engine(database_url, echo=echo, connect_args=connect_args)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """expire_on_commit=False：提交后返回给路由的对象仍可读取"""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.database_url, echo=settings.debug)
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    请求级会话依赖

    正常返回时提交；任何异常都回滚后继续抛出，存储层故障不会留下部分写入
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    """创建所有表"""
    import app.models  # noqa: F401

    if settings.uses_sqlite:
        (BASE_DIR / "data").mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def ping() -> bool:
    """健康检查：执行一次 SELECT 1"""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


async def close_db():
    await engine.dispose()
