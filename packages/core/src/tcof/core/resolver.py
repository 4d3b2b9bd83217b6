"""Multi-Strategy Resolver -- 客户端任务标识 -> 唯一任务记录

策略按固定顺序依次尝试，首个唯一命中即返回：
1. exact:      id == client_id
2. normalized: id == 规范化标识（仅当规范化结果与原始输入不同）
3. template:   template_id == 规范化标识或原始输入，且 origin = template
4. prefix:     id 或 template_id 以规范化标识开头

每条查询都在项目作用域内执行；同一策略命中多条时抛出 AmbiguousMatchError，
不做任何猜测。其他项目的记录对本次解析不可见。
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog

from .boundary import assert_in_scope
from .exceptions import AmbiguousMatchError, CrossProjectViolationError, TaskNotFoundError
from .identifiers import normalize
from .models import LookupMethod, NormalizedId, ResolvedTask, Task
from .store.calls import bounded
from .store.protocols import TaskStore

log = structlog.get_logger()


@dataclass(frozen=True)
class ResolutionContext:
    """单次解析的输入"""

    client_id: str
    project_id: str
    normalized: NormalizedId | None
    store: TaskStore


class ResolutionStrategy(Protocol):
    """解析策略接口"""

    name: LookupMethod

    async def find_candidates(self, ctx: ResolutionContext) -> list[Task]:
        """返回候选记录（0 条继续，1 条命中，多条即歧义）"""
        ...


class ExactIdStrategy:
    name = LookupMethod.EXACT

    async def find_candidates(self, ctx: ResolutionContext) -> list[Task]:
        task = await ctx.store.get_task(ctx.client_id, ctx.project_id)
        return [task] if task else []


class NormalizedIdStrategy:
    name = LookupMethod.NORMALIZED

    async def find_candidates(self, ctx: ResolutionContext) -> list[Task]:
        if ctx.normalized is None or ctx.normalized.value == ctx.client_id:
            return []
        task = await ctx.store.get_task(ctx.normalized.value, ctx.project_id)
        return [task] if task else []


class TemplateIdStrategy:
    """按模板 ID 匹配 -- 模板 ID 全局不唯一，必须限定项目作用域"""

    name = LookupMethod.TEMPLATE

    async def find_candidates(self, ctx: ResolutionContext) -> list[Task]:
        template_id = ctx.normalized.value if ctx.normalized else ctx.client_id
        return await ctx.store.find_by_template_id(template_id, ctx.project_id)


class PrefixStrategy:
    """前缀匹配 -- 仅对能规范化的标识启用，避免短字符串误配"""

    name = LookupMethod.PREFIX

    async def find_candidates(self, ctx: ResolutionContext) -> list[Task]:
        if ctx.normalized is None:
            return []
        return await ctx.store.find_by_prefix(ctx.normalized.value, ctx.project_id)


DEFAULT_STRATEGIES: tuple[ResolutionStrategy, ...] = (
    ExactIdStrategy(),
    NormalizedIdStrategy(),
    TemplateIdStrategy(),
    PrefixStrategy(),
)


class TaskResolver:
    """按策略顺序解析客户端标识（只读）"""

    def __init__(
        self,
        store: TaskStore,
        timeout_s: float,
        strategies: Sequence[ResolutionStrategy] | None = None,
    ) -> None:
        """
        Args:
            store: 任务存储
            timeout_s: 每次存储调用的超时（秒）
            strategies: 策略序列，None 时使用 DEFAULT_STRATEGIES
        """
        self._store = store
        self._timeout_s = timeout_s
        self._strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES

    @property
    def strategies(self) -> tuple[ResolutionStrategy, ...]:
        return self._strategies

    async def resolve(self, client_id: str, project_id: str) -> ResolvedTask:
        """解析为项目内唯一的任务记录

        Raises:
            TaskNotFoundError: 没有策略唯一命中
            AmbiguousMatchError: 某策略命中多条记录
            TransientStoreError: 存储超时或不可用
        """
        if not client_id or not project_id:
            raise TaskNotFoundError(client_id, project_id)

        ctx = ResolutionContext(
            client_id=client_id,
            project_id=project_id,
            normalized=normalize(client_id),
            store=self._store,
        )

        for strategy in self._strategies:
            candidates = await bounded(
                strategy.find_candidates(ctx),
                operation=f"resolve_{strategy.name}",
                timeout_s=self._timeout_s,
            )
            candidates = self._in_scope(candidates, project_id)
            if not candidates:
                continue

            if len(candidates) > 1:
                candidate_ids = [c.id for c in candidates]
                await log.awarning(
                    "task_resolution_ambiguous",
                    client_id=client_id,
                    project_id=project_id,
                    strategy=strategy.name.value,
                    candidate_ids=candidate_ids,
                )
                raise AmbiguousMatchError(
                    client_id=client_id,
                    project_id=project_id,
                    strategy=strategy.name.value,
                    candidate_ids=candidate_ids,
                )

            task = candidates[0]
            await log.ainfo(
                "task_resolved",
                client_id=client_id,
                project_id=project_id,
                task_id=task.id,
                lookup_method=strategy.name.value,
            )
            return ResolvedTask(task=task, lookup_method=strategy.name, client_id=client_id)

        await log.ainfo(
            "task_not_found",
            client_id=client_id,
            project_id=project_id,
            normalized=ctx.normalized.value if ctx.normalized else None,
        )
        raise TaskNotFoundError(client_id, project_id)

    @staticmethod
    def _in_scope(candidates: list[Task], project_id: str) -> list[Task]:
        """丢弃作用域外的候选（对本次解析不可见）"""
        visible = []
        for candidate in candidates:
            try:
                visible.append(assert_in_scope(candidate, project_id))
            except CrossProjectViolationError:
                continue
        return visible
