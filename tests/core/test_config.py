"""配置模块单元测试 -- 环境变量覆盖与非法值回退"""

import pytest
from marketops.core.config import (
    ScoreRules,
    get_db_path,
    get_global_visibility,
    get_log_format,
    get_log_level,
    get_restrict_to_owner,
    load_score_rules,
)
from marketops.core.models import GlobalVisibility


class TestPaths:
    def test_db_path_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MARKETOPS_DB_PATH", "/tmp/x.db")
        assert get_db_path() == "/tmp/x.db"

    def test_db_path_under_data_dir(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("MARKETOPS_DB_PATH", raising=False)
        monkeypatch.setenv("MARKETOPS_DATA_DIR", "/srv/ops")
        assert get_db_path() == "/srv/ops/sqlite/marketops.db"


class TestLogConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("MARKETOPS_LOG_FORMAT", raising=False)
        monkeypatch.delenv("MARKETOPS_LOG_LEVEL", raising=False)
        assert get_log_format() == "dev"
        assert get_log_level() == "INFO"

    def test_unknown_format_falls_back(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MARKETOPS_LOG_FORMAT", "xml")
        assert get_log_format() == "dev"

    def test_json_case_insensitive(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MARKETOPS_LOG_FORMAT", "JSON")
        monkeypatch.setenv("MARKETOPS_LOG_LEVEL", "debug")
        assert get_log_format() == "json"
        assert get_log_level() == "DEBUG"


class TestVisibilityConfig:
    def test_restrict_default_true(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("MARKETOPS_RESTRICT_TO_OWNER", raising=False)
        assert get_restrict_to_owner() is True

    def test_restrict_false(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MARKETOPS_RESTRICT_TO_OWNER", "False")
        assert get_restrict_to_owner() is False

    def test_global_visibility(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MARKETOPS_GLOBAL_VISIBILITY", "elevated_only")
        assert get_global_visibility() == GlobalVisibility.ELEVATED_ONLY

    def test_global_visibility_invalid_falls_back(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MARKETOPS_GLOBAL_VISIBILITY", "nobody")
        assert get_global_visibility() == GlobalVisibility.ALL


class TestScoreRules:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        for var in (
            "MARKETOPS_POINTS_CRITICAL_DONE",
            "MARKETOPS_POINTS_NORMAL_DONE",
            "MARKETOPS_POINTS_NORMAL_SKIPPED",
        ):
            monkeypatch.delenv(var, raising=False)
        rules = load_score_rules()
        assert rules == ScoreRules()
        assert rules.done_points(True) == 25
        assert rules.done_points(False) == 10
        assert rules.skipped_points(False) == -5

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MARKETOPS_POINTS_NORMAL_DONE", "12")
        assert load_score_rules().normal_done == 12

    def test_invalid_int_falls_back(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MARKETOPS_POINTS_NORMAL_DONE", "lots")
        assert load_score_rules().normal_done == 10
