"""日常任务路由

POST /api/routine/expand: 展开月份（{month_key} 或 {target: current|next}）
GET  /api/routine/reminder: 月末提醒
GET  /api/routine/instances: 按日/按月查询可见实例 + 统计
POST /api/routine/instances: 新增临时任务
POST /api/routine/instances/{instance_id}/complete | skip | steps/{index}
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from marketops.core.execution import TransitionResult
from marketops.core.models import TaskInstance
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse

from ..deps import get_store_group, get_viewer
from ..services.routine_service import RoutineService

router = APIRouter()


class ExpandRequest(BaseModel):
    """展开请求体，month_key 优先"""

    month_key: str | None = Field(default=None, description="目标月份 YYYY-MM")
    target: Literal["current", "next"] = Field(default="current", description="本月/下月")


class AdhocRequest(BaseModel):
    """临时任务请求体"""

    title: str = Field(min_length=1)
    owner_id: str = Field(min_length=1)
    date_iso: str = Field(description="日期 YYYY-MM-DD")
    time_of_day: str = Field(default="09:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    channel_id: str | None = None
    dod: str = ""
    description: str = ""
    is_critical: bool = False
    evidence_required: bool = False
    points_on_complete: int | None = None
    points_on_skip: int | None = None


class CompleteRequest(BaseModel):
    evidence: list[str] = Field(default_factory=list, description="证据链接/文本")
    notes: str | None = None


class SkipRequest(BaseModel):
    reason: str = Field(default="", description="跳过原因，不可为空")


class StepRequest(BaseModel):
    checked: bool


def _transition_data(result: TransitionResult) -> dict:
    return {
        "instance": result.instance.model_dump(mode="json"),
        "entry": result.entry.model_dump(mode="json"),
    }


def _instances_data(instances: list[TaskInstance]) -> list[dict]:
    return [inst.model_dump(mode="json") for inst in instances]


@router.post("/api/routine/expand")
async def expand_month(
    body: ExpandRequest,
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    """展开启用模板（仅管理者），重复调用不会产生重复实例"""
    service = RoutineService(store_group)
    if body.month_key is not None:
        month_key = body.month_key
        created = await service.expand_month(viewer, month_key)
    elif body.target == "next":
        month_key, created = await service.apply_next_month(viewer)
    else:
        month_key, created = await service.apply_current_month(viewer)
    return {"month_key": month_key, "created": len(created)}


@router.get("/api/routine/reminder")
async def month_end_reminder(viewer=Depends(get_viewer)):
    return RoutineService.month_end_reminder()


@router.get("/api/routine/instances")
async def list_instances(
    date: str | None = Query(default=None, description="日期 YYYY-MM-DD（默认今天）"),
    month: str | None = Query(default=None, description="月份 YYYY-MM"),
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    service = RoutineService(store_group)
    instances, summary = await service.list_instances(viewer, date_iso=date, month_key=month)
    return {
        "instances": _instances_data(instances),
        "summary": summary._asdict(),
    }


@router.post("/api/routine/instances")
async def create_adhoc(
    body: AdhocRequest,
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    """新增临时任务，返回 201"""
    service = RoutineService(store_group)
    instance = await service.create_adhoc(viewer, **body.model_dump())
    return JSONResponse(status_code=201, content={"instance": instance.model_dump(mode="json")})


@router.post("/api/routine/instances/{instance_id}/complete")
async def complete_instance(
    instance_id: str,
    body: CompleteRequest,
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    service = RoutineService(store_group)
    result = await service.complete_instance(viewer, instance_id, body.evidence, body.notes)
    return _transition_data(result)


@router.post("/api/routine/instances/{instance_id}/skip")
async def skip_instance(
    instance_id: str,
    body: SkipRequest,
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    service = RoutineService(store_group)
    result = await service.skip_instance(viewer, instance_id, body.reason)
    return _transition_data(result)


@router.post("/api/routine/instances/{instance_id}/steps/{index}")
async def set_step(
    instance_id: str,
    index: int,
    body: StepRequest,
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    service = RoutineService(store_group)
    instance = await service.set_step(viewer, instance_id, index, body.checked)
    return {"instance": instance.model_dump(mode="json")}
