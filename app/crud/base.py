"""
CRUD 基类模块

两类存储：
- CRUDBase：可变实体（申请、分析记录、评估谱系等），
  会被并发写入的列只能通过 conditional_update 修改，调用方根据返回值判断是否抢到写入权
- AppendOnlyCRUD：审计类实体（录用决定、通知日志、面试变更历史），只插入不修改
"""
from typing import Generic, TypeVar, Type, Optional, List, Any, Dict
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from app.models.base import utcnow

ModelType = TypeVar("ModelType", bound=SQLModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=SQLModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=SQLModel)


class _Reader(Generic[ModelType]):
    """只读查询，两类存储共用"""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: str) -> Optional[ModelType]:
        """根据 ID 获取单条记录"""
        result = await db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def find(
        self,
        db: AsyncSession,
        *conditions,
        order_by: Any = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[ModelType]:
        """按条件列出记录，未指定排序时按创建时间倒序"""
        query = select(self.model).where(*conditions)
        if order_by is None:
            order_by = self.model.created_at.desc()
        query = query.order_by(order_by).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def find_one(self, db: AsyncSession, *conditions, order_by: Any = None) -> Optional[ModelType]:
        rows = await self.find(db, *conditions, order_by=order_by, limit=1)
        return rows[0] if rows else None

    async def count_where(self, db: AsyncSession, *conditions) -> int:
        result = await db.execute(
            select(func.count()).select_from(self.model).where(*conditions)
        )
        return result.scalar() or 0

    async def _insert(self, db: AsyncSession, obj_in: Any) -> ModelType:
        if isinstance(obj_in, dict):
            db_obj = self.model(**obj_in)
        else:
            db_obj = self.model.model_validate(obj_in)
        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj


class CRUDBase(_Reader[ModelType]):
    """可变实体的 CRUD 基类"""

    async def get_fresh(self, db: AsyncSession, id: str) -> Optional[ModelType]:
        """
        根据 ID 重新读取记录

        条件更新绕过了会话缓存，之后必须用它读取，否则拿到的是旧值
        """
        result = await db.execute(
            select(self.model)
            .where(self.model.id == id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: CreateSchemaType | Dict[str, Any]
    ) -> ModelType:
        """创建记录，支持传入 Schema 或 dict"""
        return await self._insert(db, obj_in)

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: UpdateSchemaType | Dict[str, Any]
    ) -> ModelType:
        """
        普通字段更新（跳过 None）

        只用于没有并发写入者的字段，例如备注、负责人、岗位描述
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            if value is not None:
                setattr(db_obj, field, value)
        if hasattr(db_obj, "updated_at"):
            db_obj.updated_at = utcnow()

        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def conditional_update(
        self,
        db: AsyncSession,
        *conditions,
        values: Dict[str, Any],
    ) -> bool:
        """
        单语句条件更新（compare-and-set）

        只有满足全部条件的行才会被写入，返回是否命中
        """
        if "updated_at" in self.model.model_fields and "updated_at" not in values:
            values = {**values, "updated_at": utcnow()}
        result = await db.execute(
            update(self.model)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class AppendOnlyCRUD(_Reader[ModelType]):
    """只追加的审计存储：没有 update，也没有 delete"""

    async def create(self, db: AsyncSession, *, obj_in: Dict[str, Any]) -> ModelType:
        return await self._insert(db, obj_in)

    async def list_for(
        self,
        db: AsyncSession,
        column: Any,
        value: str,
        *,
        newest_first: bool = True,
        order_column: Any = None,
    ) -> List[ModelType]:
        """按外键列出审计记录"""
        order_column = order_column if order_column is not None else self.model.created_at
        return await self.find(
            db,
            column == value,
            order_by=order_column.desc() if newest_first else order_column.asc(),
        )
