"""积分路由

GET  /api/points/ranking?month=YYYY-MM: 排行榜（在职负责人全部上榜）
GET  /api/points?owner_id=&month=: 流水，日期倒序
GET  /api/points/months: 有流水的月份，最新在前
POST /api/points: 手工加减分（仅管理者）
POST /api/points/incident-resolved: 事故解决加分（同一事故只计一次）
POST /api/points/daily-goal: 日销售目标达成加分（仅管理者）
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, StrictInt
from starlette.responses import JSONResponse

from ..deps import get_store_group, get_viewer
from ..services.points_service import PointsService

router = APIRouter()


class ManualPointsRequest(BaseModel):
    owner_id: str = Field(min_length=1)
    date_iso: str = Field(description="记账日期 YYYY-MM-DD")
    amount: StrictInt = Field(description="有符号整数分值")
    reason: str = Field(min_length=1)


class IncidentResolvedRequest(BaseModel):
    incident_id: str = Field(min_length=1)
    title: str = ""
    owner_id: str = Field(min_length=1)
    date_iso: str


class DailyGoalRequest(BaseModel):
    owner_id: str = Field(min_length=1)
    date_iso: str
    gmv: float = Field(ge=0)
    goal: float = Field(gt=0)


@router.get("/api/points/ranking")
async def ranking(
    month: str | None = Query(default=None, description="月份 YYYY-MM，默认全部时间"),
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    service = PointsService(store_group)
    rows = await service.ranking(month)
    return {"month": month, "ranking": [row.model_dump() for row in rows]}


@router.get("/api/points/months")
async def months(
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    service = PointsService(store_group)
    return {"months": await service.months()}


@router.get("/api/points")
async def list_entries(
    owner_id: str | None = Query(default=None),
    month: str | None = Query(default=None),
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    service = PointsService(store_group)
    entries = await service.list_entries(owner_id, month)
    return {
        "entries": [e.model_dump(mode="json") for e in entries],
        "total": sum(e.amount for e in entries),
    }


@router.post("/api/points")
async def add_manual(
    body: ManualPointsRequest,
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    service = PointsService(store_group)
    entry = await service.add_manual(
        viewer, body.owner_id, body.date_iso, body.amount, body.reason
    )
    return JSONResponse(status_code=201, content={"entry": entry.model_dump(mode="json")})


@router.post("/api/points/incident-resolved")
async def incident_resolved(
    body: IncidentResolvedRequest,
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    """新加分返回 201，重复的事故返回 200 和已有流水"""
    service = PointsService(store_group)
    entry, created = await service.incident_resolved(
        body.incident_id, body.title, body.owner_id, body.date_iso
    )
    return JSONResponse(
        status_code=201 if created else 200,
        content={"entry": entry.model_dump(mode="json"), "created": created},
    )


@router.post("/api/points/daily-goal")
async def daily_goal(
    body: DailyGoalRequest,
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    service = PointsService(store_group)
    entry = await service.daily_goal(
        viewer, body.owner_id, body.date_iso, body.gmv, body.goal
    )
    return {
        "goal_met": entry is not None,
        "entry": entry.model_dump(mode="json") if entry else None,
    }
