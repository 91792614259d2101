"""
SQLModel 基类模块

定义通用字段和混入类。

表分两类：
- 可变实体（申请、分析记录、评估谱系、审阅进度、面试）带 created_at / updated_at
- 审计实体（录用决定、面试变更历史）只有 created_at，插入后不再修改
"""
import uuid
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, String, ForeignKey


def utcnow() -> datetime:
    """当前 UTC 时间"""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def parent_key(target: str, description: str, *, unique: bool = False):
    """
    指向父表的外键字段，父记录删除时级联删除

    unique=True 用于一对一的从属表（评估谱系、审阅进度）
    """
    return Field(
        sa_column=Column(
            String,
            ForeignKey(target, ondelete="CASCADE"),
            index=True,
            unique=unique,
            nullable=False,
        ),
        description=description,
    )


class SQLModelBase(SQLModel):
    """
    SQLModel 基类配置

    所有 Schema 类都应继承此类；枚举字段按值存取，
    所以表模型里的状态列都是普通字符串
    """
    model_config = {
        "from_attributes": True,
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "use_enum_values": True,
    }


class IDMixin(SQLModel):
    """UUID 字符串主键"""
    id: str = Field(
        default_factory=new_id,
        primary_key=True,
        description="主键ID"
    )


class TimestampMixin(SQLModel):
    """可变实体的时间戳，updated_at 由 CRUD 层在每次写入时刷新"""
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        description="创建时间"
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        description="更新时间"
    )


class AppendOnlyMixin(SQLModel):
    """审计实体的插入时间，按它排序展示"""
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        index=True,
        description="记录时间"
    )


class TimestampResponse(SQLModelBase):
    """可变实体响应基类"""
    id: str
    created_at: datetime
    updated_at: datetime
