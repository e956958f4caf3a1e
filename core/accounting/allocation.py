"""
입금 배분 엔진

입금액을 미결 채무에 결정적 순서로 배분하고
한 건의 분개로 기록.

배분 순서 (ObligationTracker.outstanding):
1. 기간 오름차순 (오래된 달 먼저)
2. 같은 기간 내에서는 AllocationPolicy.category_priority 순

멱등성: 같은 source_ref 입금이 다시 들어오면
저장된 분개에서 이전 결과를 복원하여 반환 (재기록 없음).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from core.accounting.obligations import Obligation
from core.ledger.errors import DuplicateSourceRefError
from core.types import ObligationCategory, Period, SourceKind
from core.utils.idempotency import make_credit_source_ref
from core.utils.money import ZERO, money_sum, to_money

if TYPE_CHECKING:
    from core.accounting.locks import DebtorLockManager
    from core.accounting.obligations import ObligationTracker
    from core.ledger.entry_builder import LedgerEntry, LedgerEntryBuilder
    from core.ledger.store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Application:
    """채무 하나에 배분된 금액

    obligation은 배분 직전 상태의 스냅샷.
    """

    obligation: Obligation
    amount_applied: Decimal


@dataclass(frozen=True)
class AllocationResult:
    """배분 결과

    불변식: sum(amount_applied) + unapplied_remainder == payment_amount
    """

    debtor_id: str
    source_ref: str
    payment_amount: Decimal
    applications: tuple[Application, ...] = field(default_factory=tuple)
    unapplied_remainder: Decimal = ZERO
    entry_id: str | None = None
    replayed: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "applications", tuple(self.applications))
        if self.total_applied + self.unapplied_remainder != self.payment_amount:
            raise ValueError(
                f"Allocation does not add up: applied={self.total_applied} "
                f"remainder={self.unapplied_remainder} payment={self.payment_amount}"
            )

    @property
    def total_applied(self) -> Decimal:
        return money_sum([a.amount_applied for a in self.applications])

    def applied_to(self, category: ObligationCategory, period: Period) -> Decimal:
        """특정 채무에 배분된 금액 (없으면 0)"""
        return money_sum([
            a.amount_applied
            for a in self.applications
            if a.obligation.category == category and a.obligation.period == period
        ])


def plan_allocation(
    outstanding: list[Obligation],
    amount: Decimal,
) -> tuple[list[Application], Decimal]:
    """탐욕적 배분 계획

    Args:
        outstanding: 배분 순서로 정렬된 미결 채무
        amount: 배분할 금액

    Returns:
        (배분 목록, 남은 금액)
    """
    remaining = amount
    applications: list[Application] = []

    for obligation in outstanding:
        if remaining <= 0:
            break
        applied = min(remaining, obligation.outstanding)
        if applied <= 0:
            continue
        applications.append(Application(obligation=obligation, amount_applied=applied))
        remaining -= applied

    return applications, remaining


def result_from_entry(entry: LedgerEntry) -> AllocationResult:
    """저장된 입금 분개 → 배분 결과 복원 (재전송 응답용)"""
    debtor_id = entry.metadata.debtor_id or ""
    snapshot = entry.metadata.extra.get("allocation", [])

    applications = tuple(
        Application(
            obligation=Obligation(
                debtor_id=debtor_id,
                category=ObligationCategory(item["category"]),
                period=Period.parse(item["period"]),
                amount_owed=Decimal(item["amount_owed"]),
                amount_settled=Decimal(item["amount_settled"]),
            ),
            amount_applied=Decimal(item["amount_applied"]),
        )
        for item in snapshot
    )
    remainder = Decimal(entry.metadata.extra.get("unapplied", "0.00"))

    return AllocationResult(
        debtor_id=debtor_id,
        source_ref=entry.source_ref,
        payment_amount=money_sum([a.amount_applied for a in applications]) + remainder,
        applications=applications,
        unapplied_remainder=remainder,
        entry_id=entry.entry_id,
        replayed=True,
    )


class AllocationEngine:
    """입금 배분 엔진

    채무자 락 안에서 조회 → 계획 → 기록을 수행하므로
    같은 채무자의 배분/몰수와 경합하지 않음.

    Args:
        store: Ledger 저장소
        tracker: 채무 추적기
        builder: 분개 생성기
        locks: 채무자 락
    """

    def __init__(
        self,
        store: LedgerStore,
        tracker: ObligationTracker,
        builder: LedgerEntryBuilder,
        locks: DebtorLockManager,
    ):
        self.store = store
        self.tracker = tracker
        self.builder = builder
        self.locks = locks

    async def _prior_result(self, debtor_id: str, source_ref: str) -> AllocationResult | None:
        existing = await self.store.get_by_source_ref(SourceKind.PAYMENT, source_ref)
        if existing is None:
            return None
        if existing.metadata.debtor_id != debtor_id:
            raise DuplicateSourceRefError(SourceKind.PAYMENT.value, source_ref, existing.entry_id)
        logger.info(
            "재전송 입금, 이전 배분 결과 반환",
            extra={"debtor_id": debtor_id, "source_ref": source_ref},
        )
        return result_from_entry(existing)

    async def allocate(
        self,
        debtor_id: str,
        payment_amount: Decimal | int | str,
        payment_date: date,
        source_ref: str,
        residence_id: str | None = None,
        cash_account: str | None = None,
    ) -> AllocationResult:
        """입금 배분

        Args:
            debtor_id: 채무자 ID
            payment_amount: 입금액 (0이면 기록 없이 빈 결과)
            payment_date: 입금일 (이 날짜까지의 채무만 대상)
            source_ref: 입금 이벤트 참조 (멱등성 키)
            residence_id: 기숙사 ID (선택)
            cash_account: 입금 계정 (기본: 현금)

        Returns:
            배분 결과 (재전송이면 replayed=True)

        Raises:
            ValueError: 음수 입금액
            ConcurrentModificationError: 채무자 락 획득 실패
        """
        if not source_ref:
            raise ValueError("source_ref is required")

        amount = to_money(payment_amount)
        if amount < 0:
            raise ValueError(f"Payment amount must not be negative: {amount}")
        if amount == 0:
            return AllocationResult(debtor_id=debtor_id, source_ref=source_ref, payment_amount=ZERO)

        async with self.locks.hold(debtor_id):
            prior = await self._prior_result(debtor_id, source_ref)
            if prior is not None:
                return prior

            outstanding = await self.tracker.outstanding(debtor_id, payment_date)
            applications, remainder = plan_allocation(outstanding, amount)

            entry = self.builder.payment(
                debtor_id=debtor_id,
                source_ref=source_ref,
                entry_date=payment_date,
                applications=[(a.obligation, a.amount_applied) for a in applications],
                remainder=remainder,
                residence_id=residence_id,
                cash_account=cash_account,
            )

            try:
                await self.store.append(entry)
            except DuplicateSourceRefError:
                # 다른 프로세스가 같은 입금을 먼저 기록
                prior = await self._prior_result(debtor_id, source_ref)
                if prior is None:
                    raise
                return prior

        result = AllocationResult(
            debtor_id=debtor_id,
            source_ref=source_ref,
            payment_amount=amount,
            applications=tuple(applications),
            unapplied_remainder=remainder,
            entry_id=entry.entry_id,
        )

        logger.info(
            "입금 배분 완료",
            extra={
                "debtor_id": debtor_id,
                "source_ref": source_ref,
                "amount": str(amount),
                "applied": str(result.total_applied),
                "remainder": str(remainder),
            },
        )
        return result

    async def apply_credit(
        self,
        debtor_id: str,
        as_of: date,
        trigger: str,
        residence_id: str | None = None,
    ) -> AllocationResult | None:
        """선수금을 미결 채무에 상계

        선수금 (Debit) / 미수금 (Credit). source_ref = credit-{trigger}.

        Args:
            debtor_id: 채무자 ID
            as_of: 상계 기준일
            trigger: 상계를 유발한 분개 ID
            residence_id: 기숙사 ID (선택)

        Returns:
            상계 결과 (선수금 또는 미결 채무가 없으면 None)
        """
        source_ref = make_credit_source_ref(trigger)

        async with self.locks.hold(debtor_id):
            prior = await self._prior_result(debtor_id, source_ref)
            if prior is not None:
                return prior

            credit = await self.tracker.credit_balance(debtor_id, as_of)
            if credit <= 0:
                return None

            outstanding = await self.tracker.outstanding(debtor_id, as_of)
            applications, _ = plan_allocation(outstanding, credit)
            if not applications:
                return None

            entry = self.builder.credit_application(
                debtor_id=debtor_id,
                source_ref=source_ref,
                entry_date=as_of,
                applications=[(a.obligation, a.amount_applied) for a in applications],
                residence_id=residence_id,
            )
            await self.store.append(entry)

        result = AllocationResult(
            debtor_id=debtor_id,
            source_ref=source_ref,
            payment_amount=money_sum([a.amount_applied for a in applications]),
            applications=tuple(applications),
            entry_id=entry.entry_id,
        )

        logger.info(
            "선수금 상계 완료",
            extra={"debtor_id": debtor_id, "applied": str(result.total_applied)},
        )
        return result
