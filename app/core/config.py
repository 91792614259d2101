"""
应用配置模块

使用 pydantic-settings 从环境变量 / .env 读取配置，字段名即环境变量名（不区分大小写）
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
import json

# 项目根目录
BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Hiring-Pipeline-API"
    app_env: str = "development"
    debug: bool = True

    # 任意 SQLAlchemy 异步 URL，例如 postgresql+asyncpg://...
    database_url: str = f"sqlite+aiosqlite:///{BASE_DIR / 'data' / 'hiring.db'}"

    cors_origins: List[str] = ["*"]

    # 推理边界（OpenAI 兼容接口）
    llm_model: str = "gpt-4o-mini"
    llm_api_key: str = ""
    llm_base_url: str = "https://api.openai.com/v1"
    llm_temperature: float = Field(0.3, ge=0, le=2)
    llm_timeout: int = Field(120, gt=0)
    llm_max_concurrency: int = Field(5, ge=1)
    llm_rate_limit: int = Field(60, ge=1, description="每分钟请求数")
    llm_max_retries: int = Field(2, ge=0, description="网络瞬时错误的 SDK 重试次数")

    # 通知边界（SendGrid），未配置 key 时每次发送都记为 failed
    sendgrid_api_key: Optional[str] = None
    mail_from: str = "noreply@example.com"
    mail_from_name: str = "Recruitment Team"
    bcq_portal_base_url: str = "http://localhost:5173"

    # 流程引擎
    transition_max_retries: int = Field(3, ge=1, description="状态条件更新竞争失败后的重试次数")
    default_baseline_score: int = Field(50, ge=0, le=100, description="首次面试分析缺少分数时的基线")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """支持 JSON 数组或逗号分隔"""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("database_url", mode="before")
    @classmethod
    def resolve_relative_sqlite(cls, v):
        """相对路径 ./data/ 按项目根目录解析，与启动目录无关"""
        if isinstance(v, str) and "./data/" in v:
            return v.replace("./data/", str(BASE_DIR / "data") + "/")
        return v

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def uses_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
