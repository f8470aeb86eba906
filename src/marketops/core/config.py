"""配置模块 -- 可通过环境变量覆盖

包含数据库路径、可见性策略、月末提醒窗口、积分规则等可配置项。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from .models.enums import GlobalVisibility

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("MARKETOPS_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "MARKETOPS_DB_PATH",
        str(_get_base_dir() / "sqlite" / "marketops.db"),
    )


def get_restrict_to_owner() -> bool:
    """是否默认只展示查看者自己的任务"""
    return os.environ.get("MARKETOPS_RESTRICT_TO_OWNER", "true").lower() != "false"


def get_global_visibility() -> GlobalVisibility:
    """全局任务可见策略（ALL / ELEVATED_ONLY）"""
    raw = os.environ.get("MARKETOPS_GLOBAL_VISIBILITY", GlobalVisibility.ALL.value)
    try:
        return GlobalVisibility(raw.upper())
    except ValueError:
        log.warning(
            "invalid_global_visibility_config",
            env_var="MARKETOPS_GLOBAL_VISIBILITY",
            value=raw,
            fallback=GlobalVisibility.ALL.value,
        )
        return GlobalVisibility.ALL


def get_log_format() -> str:
    """日志渲染模式：dev（默认，可读输出）或 json"""
    raw = os.environ.get("MARKETOPS_LOG_FORMAT", "dev").lower()
    if raw not in ("dev", "json"):
        log.warning(
            "invalid_log_format_config", env_var="MARKETOPS_LOG_FORMAT", value=raw, fallback="dev"
        )
        return "dev"
    return raw


def get_log_level() -> str:
    return os.environ.get("MARKETOPS_LOG_LEVEL", "INFO").upper()


def _int_from_env(env_var: str, default: int) -> int:
    val = os.environ.get(env_var)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        log.warning(
            "invalid_int_config",
            env_var=env_var,
            value=val,
            fallback=default,
        )
        # 使用默认值，不阻塞启动
        return default


# 月末提前几天提醒生成下月任务
MONTH_END_WINDOW_DAYS: int = _int_from_env("MARKETOPS_MONTH_END_WINDOW_DAYS", 2)


class ScoreRules(BaseModel):
    """积分规则 -- 模板未指定分值时的兜底

    环境变量:
        MARKETOPS_POINTS_CRITICAL_DONE: 关键任务完成（默认 25）
        MARKETOPS_POINTS_NORMAL_DONE: 普通任务完成（默认 10）
        MARKETOPS_POINTS_CRITICAL_SKIPPED: 关键任务跳过（默认 -5）
        MARKETOPS_POINTS_NORMAL_SKIPPED: 普通任务跳过（默认 -5）
        MARKETOPS_POINTS_INCIDENT_RESOLVED: 解决事故（默认 20）
        MARKETOPS_POINTS_DAILY_GOAL_MET: 达成日销售目标（默认 50）
    """

    critical_done: int = Field(default=25)
    normal_done: int = Field(default=10)
    critical_skipped: int = Field(default=-5)
    normal_skipped: int = Field(default=-5)
    incident_resolved: int = Field(default=20)
    daily_goal_met: int = Field(default=50)

    def done_points(self, is_critical: bool) -> int:
        return self.critical_done if is_critical else self.normal_done

    def skipped_points(self, is_critical: bool) -> int:
        return self.critical_skipped if is_critical else self.normal_skipped


_SCORE_ENV_VARS: dict[str, str] = {
    "critical_done": "MARKETOPS_POINTS_CRITICAL_DONE",
    "normal_done": "MARKETOPS_POINTS_NORMAL_DONE",
    "critical_skipped": "MARKETOPS_POINTS_CRITICAL_SKIPPED",
    "normal_skipped": "MARKETOPS_POINTS_NORMAL_SKIPPED",
    "incident_resolved": "MARKETOPS_POINTS_INCIDENT_RESOLVED",
    "daily_goal_met": "MARKETOPS_POINTS_DAILY_GOAL_MET",
}


def load_score_rules() -> ScoreRules:
    """从环境变量加载积分规则，非法值回退到默认值"""
    defaults = ScoreRules()
    kwargs = {
        field: _int_from_env(env_var, getattr(defaults, field))
        for field, env_var in _SCORE_ENV_VARS.items()
    }
    return ScoreRules(**kwargs)
