"""
岗位管理 API 路由
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.events import ChangeBus, EntityKind, get_change_bus
from app.core.exceptions import NotFoundException
from app.core.response import (
    success_response,
    paged_response,
    ResponseModel,
    PagedResponseModel,
)
from app.crud import job_crud
from app.models.job import JobCreate, JobUpdate, JobResponse, JobStatus

router = APIRouter()


@router.get("", summary="获取岗位列表", response_model=PagedResponseModel[JobResponse])
async def get_jobs(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    status: Optional[JobStatus] = Query(None, description="岗位状态"),
    db: AsyncSession = Depends(get_db),
):
    """
    获取岗位列表，支持分页和状态筛选
    """
    skip = (page - 1) * page_size
    status_value = status.value if status else None
    jobs = await job_crud.get_multi_by_status(db, status=status_value, skip=skip, limit=page_size)
    total = await job_crud.count_by_status(db, status=status_value)

    items = []
    for job in jobs:
        item = JobResponse.model_validate(job)
        item.application_count = await job_crud.count_applications(db, job.id)
        items.append(item.model_dump())

    return paged_response(items, total, page, page_size)


@router.post("", summary="创建岗位", response_model=ResponseModel[JobResponse])
async def create_job(
    data: JobCreate,
    db: AsyncSession = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    job = await job_crud.create(db, obj_in=data.model_dump())
    await db.commit()
    bus.emit(EntityKind.JOB, job.id)
    return success_response(
        data=JobResponse.model_validate(job).model_dump(),
        message="岗位创建成功"
    )


@router.get("/{job_id}", summary="获取岗位详情", response_model=ResponseModel[JobResponse])
async def get_job(
    job_id: str,
    db: AsyncSession = Depends(get_db),
):
    job = await job_crud.get(db, job_id)
    if not job:
        raise NotFoundException(f"岗位不存在: {job_id}")

    response = JobResponse.model_validate(job)
    response.application_count = await job_crud.count_applications(db, job_id)
    return success_response(data=response.model_dump())


@router.patch("/{job_id}", summary="更新岗位", response_model=ResponseModel[JobResponse])
async def update_job(
    job_id: str,
    data: JobUpdate,
    db: AsyncSession = Depends(get_db),
    bus: ChangeBus = Depends(get_change_bus),
):
    """
    更新岗位信息（仅更新传入的字段）
    """
    job = await job_crud.get(db, job_id)
    if not job:
        raise NotFoundException(f"岗位不存在: {job_id}")

    job = await job_crud.update(db, db_obj=job, obj_in=data)
    await db.commit()
    bus.emit(EntityKind.JOB, job_id)
    return success_response(
        data=JobResponse.model_validate(job).model_dump(),
        message="岗位更新成功"
    )
