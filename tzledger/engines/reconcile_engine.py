#!filepath: tzledger/engines/reconcile_engine.py
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from tzledger.core.events import AccumulatorEntry, DepositEvent, EventKind, IdentityEvent
from tzledger.utils.errors import DataIntegrityError
from tzledger.utils.logger import logs


@dataclass(frozen=True)
class ReconcileResult:
    ledger: Tuple[AccumulatorEntry, ...]
    dropped_deposits: Tuple[DepositEvent, ...] = ()


class ReconcileEngine:
    """
    Reconciliation Engine：identity 事件流 × deposit 事件流 → 有序 accumulator ledger

    规则：
      1. identity 事件按 kind 拆成 registrations / changes，按 actor 分组，
         组内按 (block_height, 输入顺序) 排序
      2. 每个 deposit 找到 actor 的 registration（找不到 → 丢弃或 strict 模式下报错）
      3. deposit 的初始时区 = block 严格小于 deposit 的最后一次 change，否则 registration
         → 产出 +1
      4. 每个 block >= deposit 的 change 产出一对迁移：
         (-1, 变更前时区) + (+1, 新时区)，block / timestamp 取 change 的
      5. 按 block_height 稳定排序

    纯函数：同样的输入永远产出同样的 ledger。
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    # --------------------------------------------------
    # 1. partition
    # --------------------------------------------------
    @staticmethod
    def partition(
        identity_events: Iterable[IdentityEvent],
    ) -> Tuple[Dict[str, List[IdentityEvent]], Dict[str, List[IdentityEvent]]]:
        registrations: Dict[str, List[Tuple[int, int, IdentityEvent]]] = defaultdict(list)
        changes: Dict[str, List[Tuple[int, int, IdentityEvent]]] = defaultdict(list)

        for seq, ev in enumerate(identity_events):
            target = registrations if ev.kind is EventKind.REGISTER else changes
            target[ev.actor].append((ev.block_height, seq, ev))

        def _ordered(groups):
            return {
                actor: [ev for _, _, ev in sorted(items, key=lambda t: (t[0], t[1]))]
                for actor, items in groups.items()
            }

        return _ordered(registrations), _ordered(changes)

    # --------------------------------------------------
    # 2. registration lookup
    # --------------------------------------------------
    @staticmethod
    def find_registration(
        actor: str, registrations: Dict[str, List[IdentityEvent]]
    ) -> Optional[IdentityEvent]:
        """
        最早的 registration；没有则返回 None
        """
        found = registrations.get(actor)
        return found[0] if found else None

    def _missing_registration(self, dep: DepositEvent) -> None:
        msg = (
            f"deposit {dep.tx_hash or '?'} by {dep.actor} at block {dep.block_height} "
            f"has no registration"
        )
        if self.strict:
            raise DataIntegrityError(msg)
        logs.warning(f"[Reconcile] missing registration: {msg} -> deposit dropped")

    @staticmethod
    def _check_registrations(registrations: Dict[str, List[IdentityEvent]]) -> None:
        for actor, regs in registrations.items():
            if len(regs) > 1:
                logs.warning(
                    f"[Reconcile] {actor} registered {len(regs)} times, "
                    f"using block {regs[0].block_height} ({regs[0].timezone!r})"
                )

    # --------------------------------------------------
    # main
    # --------------------------------------------------
    def execute(
        self,
        identity_events: Sequence[IdentityEvent],
        deposits: Sequence[DepositEvent],
    ) -> ReconcileResult:
        registrations, changes = self.partition(identity_events)
        self._check_registrations(registrations)

        initial: List[AccumulatorEntry] = []
        dropped: List[DepositEvent] = []
        kept: Dict[str, List[DepositEvent]] = defaultdict(list)

        # ---------- deposits: +1 with timezone at deposit time ----------
        for dep in deposits:
            reg = self.find_registration(dep.actor, registrations)
            if reg is None:
                self._missing_registration(dep)
                dropped.append(dep)
                continue

            if reg.block_height > dep.block_height:
                logs.warning(
                    f"[Reconcile] {dep.actor} deposit at block {dep.block_height} "
                    f"precedes its registration at block {reg.block_height}"
                )

            timezone = reg.timezone
            for ch in changes.get(dep.actor, ()):
                if ch.block_height >= dep.block_height:
                    break
                timezone = ch.timezone

            initial.append(
                AccumulatorEntry(dep.actor, dep.block_height, dep.timestamp, timezone, 1)
            )
            kept[dep.actor].append(dep)

        # ---------- changes: migration pairs ----------
        ordered_changes = sorted(
            (
                (ch.block_height, seq, actor, idx, ch)
                for seq, (actor, actor_changes) in enumerate(changes.items())
                for idx, ch in enumerate(actor_changes)
            ),
            key=lambda t: (t[0], t[1], t[3]),
        )

        migrations: List[AccumulatorEntry] = []
        for _, _, actor, idx, ch in ordered_changes:
            actor_deposits = kept.get(actor)
            if not actor_deposits:
                continue

            before = changes[actor][idx - 1].timezone if idx > 0 else registrations[actor][0].timezone

            for dep in actor_deposits:
                if dep.block_height > ch.block_height:
                    continue
                migrations.append(AccumulatorEntry(actor, ch.block_height, ch.timestamp, before, -1))
                migrations.append(AccumulatorEntry(actor, ch.block_height, ch.timestamp, ch.timezone, 1))

        ledger = sorted(initial + migrations, key=lambda e: e.block_height)

        logs.info(
            f"[Reconcile] deposits={len(initial)} migrations={len(migrations) // 2} "
            f"dropped={len(dropped)} ledger={len(ledger)}"
        )
        return ReconcileResult(ledger=tuple(ledger), dropped_deposits=tuple(dropped))
