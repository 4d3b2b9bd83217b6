"""CLI 入口模块 -- python -m tcof.core <command>

支持的命令：
  init-db                          创建数据库表结构
  resolve <project_id> <task_id>   诊断任务标识解析结果
"""

import asyncio
import json
import sys

from .config import get_db_path, load_pipeline_config

USAGE = """用法: python -m tcof.core <command>
命令:
  init-db                          创建数据库表结构
  resolve <project_id> <task_id>   诊断任务标识解析结果"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "resolve" and len(sys.argv) == 4:
        exit_code = asyncio.run(resolve_task(sys.argv[2], sys.argv[3]))
        sys.exit(exit_code)
    else:
        print(f"未知命令或参数错误: {' '.join(sys.argv[1:])}")
        print(USAGE)
        sys.exit(1)


async def init_database() -> None:
    """创建表结构（幂等）"""
    from .store import create_store_group

    db_path = get_db_path()
    config = load_pipeline_config()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path, config.busy_timeout_ms)
    await store_group.close()
    print("初始化完成")


async def resolve_task(project_id: str, client_id: str) -> int:
    """执行一次只读解析并打印结果

    Returns:
        进程退出码：0 命中，2 解析失败
    """
    from .exceptions import TaskPipelineError
    from .projector import project_task
    from .resolver import TaskResolver
    from .store import create_store_group

    config = load_pipeline_config()
    store_group = await create_store_group(get_db_path(), config.busy_timeout_ms)

    try:
        resolver = TaskResolver(store_group.read_task_store, config.store_timeout_s)
        resolved = await resolver.resolve(client_id, project_id)
    except TaskPipelineError as e:
        print(f"解析失败: {e.code} -- {e.message}")
        return 2
    finally:
        await store_group.close()

    print(f"命中策略: {resolved.lookup_method.value}")
    view = project_task(resolved.task, client_id)
    print(json.dumps(view.model_dump(mode="json"), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    main()
