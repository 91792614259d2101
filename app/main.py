"""
FastAPI 主应用入口

招聘流程编排引擎后端：申请生命周期、文档分析与候选人评估
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.routing import APIRoute
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from loguru import logger

from app.core.config import settings
from app.core.database import init_db, close_db, ping
from app.core.events import get_change_bus
from app.core.response import success_response, DictResponse
from app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)
from app.api import api_router
from app.services.agents.llm_client import get_llm_client

API_VERSION = "1.0.0"


def route_name_as_operation_id(route: APIRoute) -> str:
    """OpenAPI operationId 使用路由函数名，前端生成的客户端方法名更短"""
    return route.name


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("启动应用: {} (env={}, debug={})", settings.app_name, settings.app_env, settings.debug)

    await init_db()
    logger.info("数据库初始化完成")

    if not get_llm_client().is_configured():
        logger.warning("LLM API Key 未配置，分析与评估请求将记录为失败")
    if not settings.sendgrid_api_key:
        logger.warning("SendGrid API Key 未配置，候选人通知将记录为失败")

    yield

    await close_db()
    logger.info("应用已关闭")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="招聘流程编排引擎 API",
        version=API_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        generate_unique_id_function=route_name_as_operation_id,
    )

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["系统"], response_model=DictResponse)
    async def health_check():
        """健康检查：数据库连通性、LLM 配置、变更订阅数"""
        try:
            database = "ok" if await ping() else "error"
        except Exception as exc:
            logger.error("Database ping failed: {}", exc)
            database = "error"
        return success_response(data={
            "status": "healthy" if database == "ok" else "degraded",
            "database": database,
            "llm": get_llm_client().get_status(),
            "mail_configured": bool(settings.sendgrid_api_key),
            "change_subscribers": get_change_bus().subscriber_count,
        })

    @app.get("/", tags=["系统"], response_model=DictResponse)
    async def root():
        return success_response(data={
            "name": settings.app_name,
            "version": API_VERSION,
            "docs": "/docs" if settings.debug else None,
        })

    # CORS 最后添加，最先执行
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


app = create_app()
