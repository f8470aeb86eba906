"""CLI 入口模块 -- python -m marketops.core <command>

支持的命令：
  expand YYYY-MM   将启用模板展开到指定月份
  rank [YYYY-MM]   打印积分排行（默认全部时间）
"""

import asyncio
import sys

from .config import get_db_path

_USAGE = [
    "用法: python -m marketops.core <command>",
    "命令:",
    "  expand YYYY-MM   将启用模板展开到指定月份",
    "  rank [YYYY-MM]   打印积分排行（默认全部时间）",
]


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("\n".join(_USAGE))
        sys.exit(1)

    command = sys.argv[1]

    if command == "expand" and len(sys.argv) == 3:
        asyncio.run(expand_month(sys.argv[2]))
    elif command == "rank" and len(sys.argv) in (2, 3):
        asyncio.run(print_ranking(sys.argv[2] if len(sys.argv) == 3 else None))
    else:
        print(f"未知命令: {' '.join(sys.argv[1:])}")
        print("\n".join(_USAGE))
        sys.exit(1)


async def expand_month(month_key: str) -> None:
    """展开指定月份并写入数据库"""
    from .calendar import month_range
    from .expansion import expand
    from .store import create_store_group, insert_instances

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        templates = await store_group.template_store.list_templates(active_only=True)
        existing = await store_group.instance_store.list_instances(month_range(month_key))
        created = expand(templates, month_key, existing)
        count = await insert_instances(store_group, created, month_key)
        print(f"展开完成: {month_key} 新增 {count} 个实例（已有 {len(existing)} 个）")
    finally:
        await store_group.conn.close()


async def print_ranking(month_key: str | None) -> None:
    """打印排行榜，在职负责人无流水时记 0 分"""
    from .calendar import month_range
    from .ledger import rank
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        date_range = month_range(month_key) if month_key else None
        entries = await store_group.points_store.list_entries(date_range=date_range)
        owners = await store_group.owner_store.list_owners(active_only=True)
        rows = rank(entries, owner_ids=[o.owner_id for o in owners])
        print(f"积分排行: {month_key or '全部'}")
        for position, row in enumerate(rows, start=1):
            print(f"{position:>3}. {row.owner_id:<20} {row.total:>6}")
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
