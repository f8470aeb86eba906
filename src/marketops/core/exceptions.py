"""Core 异常体系

所有核心错误同步抛给调用方，核心层不做任何重试。
每个异常带有稳定的 code，供集成层映射为用户可见的错误。
"""


class MarketOpsError(Exception):
    """marketops 核心基础异常"""

    code: str = "MARKETOPS_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidDateError(MarketOpsError):
    """日期格式非法（调用方可修正，不重试）"""

    code = "INVALID_DATE"


class InvalidMonthError(InvalidDateError):
    """月份键非法，必须为 YYYY-MM"""

    code = "INVALID_MONTH"


class InvalidStateTransition(MarketOpsError):
    """对非 PENDING 实例发起流转（已完成或已跳过）"""

    code = "INVALID_STATE_TRANSITION"

    def __init__(self, instance_id: str, current_status: str) -> None:
        """
        Args:
            instance_id: 目标实例 ID
            current_status: 实例当前状态
        """
        super().__init__(f"实例 {instance_id} 已处于 {current_status}，不可再次流转")
        self.instance_id = instance_id
        self.current_status = current_status


class EvidenceRequiredError(MarketOpsError):
    """该任务要求提交证据"""

    code = "EVIDENCE_REQUIRED"

    def __init__(self, instance_id: str) -> None:
        super().__init__(f"实例 {instance_id} 要求提交证据才能完成")
        self.instance_id = instance_id


class SkipReasonRequiredError(MarketOpsError):
    """跳过任务必须填写原因"""

    code = "SKIP_REASON_REQUIRED"

    def __init__(self, instance_id: str) -> None:
        super().__init__(f"跳过实例 {instance_id} 需要填写原因")
        self.instance_id = instance_id


class ForbiddenError(MarketOpsError):
    """操作者既不是负责人，也不具备提升权限"""

    code = "FORBIDDEN"


class InvalidLedgerEntryError(MarketOpsError):
    """积分流水格式非法（属于集成缺陷，应记录日志而非展示给终端用户）"""

    code = "INVALID_LEDGER_ENTRY"


class InvalidTemplateError(MarketOpsError):
    """模板违反不变量（weekdays 为空或负责人不存在/已停用）"""

    code = "INVALID_TEMPLATE"


class InvalidStepError(MarketOpsError):
    """检查清单步骤索引越界"""

    code = "INVALID_STEP"


class ExpansionConflictError(MarketOpsError):
    """并发展开同一月份导致 (template_id, date) 唯一约束冲突"""

    code = "EXPANSION_CONFLICT"

    def __init__(self, month_key: str, original_error: Exception) -> None:
        """
        Args:
            month_key: 正在展开的月份
            original_error: 数据库层原始异常
        """
        super().__init__(f"月份 {month_key} 展开时发生重复写入: {original_error}")
        self.month_key = month_key
        self.original_error = original_error


class NotFoundError(MarketOpsError):
    """实体不存在"""

    code = "NOT_FOUND"
