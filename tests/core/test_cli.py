"""CLI 测试 -- python -m marketops.core expand / rank"""

import sys

import pytest
from marketops.core.__main__ import expand_month, main, print_ranking
from marketops.core.store import create_store_group


@pytest.fixture
def cli_db(tmp_path, monkeypatch: pytest.MonkeyPatch) -> str:
    db_path = str(tmp_path / "sqlite" / "cli.db")
    monkeypatch.setenv("MARKETOPS_DB_PATH", db_path)
    return db_path


class TestCli:
    async def test_expand_then_rank(self, cli_db, owners, weekday_template, capsys):
        group = await create_store_group(cli_db)
        for owner in owners:
            await group.owner_store.save_owner(owner)
        await group.template_store.save_template(weekday_template)
        await group.conn.commit()
        await group.conn.close()

        await expand_month("2024-02")
        assert "新增 21 个实例" in capsys.readouterr().out

        await expand_month("2024-02")
        assert "新增 0 个实例" in capsys.readouterr().out

        await print_ranking("2024-02")
        out = capsys.readouterr().out
        assert "ana" in out and "bruno" in out and "ceo" in out
        assert "gone" not in out

    def test_usage_without_command(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(sys, "argv", ["marketops.core"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1

    def test_unknown_command(self, monkeypatch: pytest.MonkeyPatch, capsys):
        monkeypatch.setattr(sys, "argv", ["marketops.core", "rebuild"])
        with pytest.raises(SystemExit):
            main()
        assert "未知命令" in capsys.readouterr().out
