"""
몰수 워크플로

채무자의 미결 채무를 원 청구 계정으로 반전하는 하나의 몰수 분개를 기록하고
외부 레지스트리에 호실 해제를 신호. 기존 입금은 몰수되어 환불되지 않음.

상태: ACTIVE → REVERSING → FORFEITED
      ACTIVE → FAILED (분개 기록 실패, 아무 것도 반영되지 않음)

호실 해제는 분개 기록 이후에만 호출.
해제 또는 몰수 표시가 실패하면 REVERSING으로 남고 pending_forfeitures()로 탐지 가능.
같은 채무자로 forfeit()를 다시 호출하면 기존 분개를 재사용하여 해제를 마무리.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from core.domain.state_machines import ForfeitureState, ForfeitureStateMachine
from core.ledger.errors import ForfeitureError
from core.ledger.store import EntryFilter
from core.types import SourceKind
from core.utils.idempotency import make_forfeiture_source_ref
from core.utils.money import ZERO, money_sum, to_money

if TYPE_CHECKING:
    from adapters.interfaces import IDebtorRegistry, INotifier
    from core.accounting.locks import DebtorLockManager
    from core.accounting.obligations import ObligationTracker
    from core.ledger.entry_builder import LedgerEntryBuilder
    from core.ledger.store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class ForfeitureResult:
    """몰수 결과"""

    debtor_id: str
    state: ForfeitureState
    reversed_payments: Decimal = ZERO
    room_released: bool = False
    ledger_entries: list[str] = field(default_factory=list)
    reason: str = ""
    error: str | None = None


class ForfeitureWorkflow:
    """몰수 워크플로

    Args:
        store: Ledger 저장소
        tracker: 채무 추적기
        builder: 분개 생성기
        registry: 채무자/호실 레지스트리
        locks: 채무자 락
        notifier: 호실 미해제 알림 (선택)
    """

    def __init__(
        self,
        store: LedgerStore,
        tracker: ObligationTracker,
        builder: LedgerEntryBuilder,
        registry: IDebtorRegistry,
        locks: DebtorLockManager,
        notifier: INotifier | None = None,
    ):
        self.store = store
        self.tracker = tracker
        self.builder = builder
        self.registry = registry
        self.locks = locks
        self.notifier = notifier

        # 분개 없이(정산액 0) 해제만 실패한 채무자
        self._unreleased: set[str] = set()

    async def forfeit(
        self,
        debtor_id: str,
        reason: str,
        forfeit_date: date,
        residence_id: str | None = None,
    ) -> ForfeitureResult:
        """몰수 처리

        Args:
            debtor_id: 채무자 ID
            reason: 몰수 사유
            forfeit_date: 몰수일
            residence_id: 기숙사 ID (선택)

        Returns:
            FORFEITED 상태의 결과

        Raises:
            ForfeitureError: 분개 기록 실패 (result.state=FAILED)
                또는 호실 해제 실패 (result.state=REVERSING)
            ConcurrentModificationError: 채무자 락 획득 실패
        """
        machine = ForfeitureStateMachine()
        result = ForfeitureResult(debtor_id=debtor_id, state=machine.current, reason=reason)
        source_ref = make_forfeiture_source_ref(debtor_id)

        async with self.locks.hold(debtor_id):
            # 1~2. 미결 채무 반전 분개 기록
            try:
                existing = await self.store.get_by_source_ref(SourceKind.FORFEITURE, source_ref)
                if existing is not None:
                    result.reversed_payments = to_money(
                        existing.metadata.extra.get("forfeited_payments", "0")
                    )
                    result.ledger_entries.append(existing.entry_id)
                    logger.info(
                        "기존 몰수 분개 재사용",
                        extra={"debtor_id": debtor_id, "entry_id": existing.entry_id},
                    )
                else:
                    entries = await self.store.query(
                        EntryFilter(debtor_id=debtor_id, date_to=forfeit_date)
                    )
                    obligations = self.tracker.derive(entries).get(debtor_id, [])
                    origins = self.tracker.accrual_accounts(entries)
                    settled = money_sum([o.amount_settled for o in obligations])

                    reversals = [
                        (
                            o,
                            origins.get(
                                (debtor_id, o.category, o.period),
                                self.builder.accounts.for_category(o.category),
                            ),
                        )
                        for o in obligations
                        if o.outstanding > 0
                    ]
                    # 미결 채무가 없으면 반전할 미수금도 없음
                    if reversals:
                        entry = self.builder.forfeiture(
                            debtor_id=debtor_id,
                            reversals=reversals,
                            forfeited_payments=settled,
                            reason=reason,
                            entry_date=forfeit_date,
                            source_ref=source_ref,
                            residence_id=residence_id,
                        )
                        await self.store.append(entry)
                        result.ledger_entries.append(entry.entry_id)
                    result.reversed_payments = settled
            except Exception as e:
                machine.transition(ForfeitureState.FAILED)
                result.state = machine.current
                result.error = str(e)
                logger.error(
                    "몰수 분개 기록 실패",
                    extra={"debtor_id": debtor_id, "error": str(e)},
                )
                raise ForfeitureError(f"Forfeiture of {debtor_id} failed: {e}", result) from e

            machine.transition(ForfeitureState.REVERSING)
            result.state = machine.current

            # 3~4. 호실 해제 신호 + 몰수 표시 (분개 기록 이후에만)
            try:
                if not await self.registry.is_room_released(debtor_id):
                    await self.registry.release_room(debtor_id)
                result.room_released = True
                await self.registry.mark_forfeited(debtor_id, reason)
            except Exception as e:
                result.error = str(e)
                if not result.ledger_entries:
                    self._unreleased.add(debtor_id)
                logger.warning(
                    "몰수 분개 기록 후 호실 해제 실패, 재처리 필요",
                    extra={
                        "debtor_id": debtor_id,
                        "room_released": result.room_released,
                        "error": str(e),
                    },
                )
                if self.notifier is not None:
                    await self.notifier.send(
                        f"Forfeiture of {debtor_id} is pending room release",
                        level="WARNING",
                        extra={"debtor_id": debtor_id, "error": str(e)},
                    )
                raise ForfeitureError(
                    f"Forfeiture of {debtor_id} reversed but not completed: {e}", result
                ) from e

            machine.transition(ForfeitureState.FORFEITED)
            result.state = machine.current
            self._unreleased.discard(debtor_id)

        logger.info(
            "몰수 처리 완료",
            extra={
                "debtor_id": debtor_id,
                "reversed_payments": str(result.reversed_payments),
                "entries": len(result.ledger_entries),
            },
        )
        return result

    async def pending_forfeitures(self) -> list[str]:
        """몰수가 시작됐으나 마무리되지 않은 채무자 (재처리 대상)

        몰수 분개가 있거나 분개 없이 해제가 실패한 채무자 중
        호실 미해제 또는 레지스트리 몰수 표시 누락인 경우.
        """
        entries = await self.store.query(EntryFilter(source_kind=SourceKind.FORFEITURE))
        candidates = {e.metadata.debtor_id for e in entries if e.metadata.debtor_id}
        candidates |= self._unreleased

        pending = []
        for debtor_id in sorted(candidates):
            if not await self.registry.is_room_released(debtor_id):
                pending.append(debtor_id)
            elif not await self.registry.is_forfeited(debtor_id):
                pending.append(debtor_id)
        return pending
