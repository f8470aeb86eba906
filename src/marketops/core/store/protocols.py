"""Store Protocol 接口定义

定义 OwnerStore、TemplateStore、InstanceStore、PointsStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from typing import Protocol

from ..models.instance import TaskInstance
from ..models.owner import Owner
from ..models.points import DateRange, PointsEntry
from ..models.template import TaskTemplate


class OwnerStore(Protocol):
    """负责人存储接口"""

    async def save_owner(self, owner: Owner) -> None: ...

    async def get_owner(self, owner_id: str) -> Owner | None: ...

    async def list_owners(self, active_only: bool = False) -> list[Owner]: ...


class TemplateStore(Protocol):
    """模板存储接口"""

    async def save_template(self, template: TaskTemplate) -> None:
        """新增或覆盖模板"""
        ...

    async def get_template(self, template_id: str) -> TaskTemplate | None: ...

    async def list_templates(self, active_only: bool = False) -> list[TaskTemplate]: ...

    async def set_active(self, template_id: str, is_active: bool) -> bool:
        """启用/停用模板，已生成实例不受影响"""
        ...


class InstanceStore(Protocol):
    """实例存储接口

    实例只通过状态机流转更新，不提供删除。
    """

    async def create_instance(self, instance: TaskInstance) -> None: ...

    async def get_instance(self, instance_id: str) -> TaskInstance | None: ...

    async def list_instances(
        self,
        date_range: DateRange | None = None,
        owner_id: str | None = None,
    ) -> list[TaskInstance]: ...

    async def update_transition(self, instance: TaskInstance) -> bool:
        """仅当实例仍为 PENDING 时写入流转结果"""
        ...

    async def update_steps(self, instance: TaskInstance) -> bool: ...


class PointsStore(Protocol):
    """积分存储接口

    流水表 append-only：只允许插入，不允许更新或删除。
    """

    async def append_entry(self, entry: PointsEntry) -> None:
        """追加流水（append-only）"""
        ...

    async def list_entries(
        self,
        owner_id: str | None = None,
        date_range: DateRange | None = None,
    ) -> list[PointsEntry]: ...

    async def get_entries_for_source(self, source_id: str) -> list[PointsEntry]: ...

    async def list_months(self) -> list[str]: ...
