"""模板路由

GET  /api/templates: 查看者可见的模板列表
POST /api/templates: 新增/覆盖模板（仅管理者）
POST /api/templates/{template_id}/deactivate: 停用模板
"""

from fastapi import APIRouter, Depends
from marketops.core.models import TaskTemplate, TemplateStep, Weekday
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse

from ..deps import get_store_group, get_viewer
from ..services.routine_service import RoutineService

router = APIRouter()


class TemplateRequest(BaseModel):
    """模板请求体"""

    template_id: str = Field(min_length=1, description="稳定标识")
    title: str = Field(min_length=1, description="任务标题")
    owner_id: str = Field(min_length=1, description="负责人")
    weekdays: list[Weekday] = Field(description="生成实例的星期")
    time_of_day: str = Field(default="09:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    channel_id: str | None = None
    dod: str = ""
    description: str = ""
    is_critical: bool = False
    evidence_required: bool = False
    points_on_complete: int | None = None
    points_on_skip: int | None = None
    steps: list[TemplateStep] = Field(default_factory=list)


def _template_data(template: TaskTemplate) -> dict:
    data = template.model_dump(mode="json")
    data["weekdays"] = [d.value for d in sorted(template.weekdays, key=lambda d: d.ordinal)]
    return data


@router.get("/api/templates")
async def list_templates(
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    service = RoutineService(store_group)
    templates = await service.list_templates(viewer)
    return {"templates": [_template_data(t) for t in templates]}


@router.post("/api/templates")
async def create_template(
    body: TemplateRequest,
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    """新增模板，返回 201"""
    service = RoutineService(store_group)
    template = TaskTemplate(
        **body.model_dump(exclude={"weekdays", "steps"}),
        weekdays=set(body.weekdays),
        steps=body.steps,
    )
    saved = await service.create_template(viewer, template)
    return JSONResponse(status_code=201, content={"template": _template_data(saved)})


@router.post("/api/templates/{template_id}/deactivate")
async def deactivate_template(
    template_id: str,
    viewer=Depends(get_viewer),
    store_group=Depends(get_store_group),
):
    service = RoutineService(store_group)
    await service.deactivate_template(viewer, template_id)
    return {"template_id": template_id, "is_active": False}
