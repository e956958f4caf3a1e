"""
채무 추적기

Ledger 분개로부터 채무자별 미결 채무를 유도.
배분/재무제표/몰수가 모두 이 한 가지 계산만 사용함.

채무 = (채무자, 분류, 기간)
- 청구액: invoice/adjustment 분개의 미수금 라인 (차변 - 대변)
- 정산액: payment 분개의 미수금 라인 (대변 - 차변)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from core.config.loader import AccountMapping, AllocationPolicy
from core.ledger.store import EntryFilter
from core.types import ObligationCategory, Period, SourceKind
from core.utils.money import ZERO

if TYPE_CHECKING:
    from core.ledger.entry_builder import LedgerEntry
    from core.ledger.store import LedgerStore

logger = logging.getLogger(__name__)


_OWED_KINDS = (SourceKind.INVOICE, SourceKind.ADJUSTMENT)


@dataclass(frozen=True)
class Obligation:
    """채무 (저장되지 않는 유도 값)"""

    debtor_id: str
    category: ObligationCategory
    period: Period
    amount_owed: Decimal
    amount_settled: Decimal

    @property
    def outstanding(self) -> Decimal:
        """미결 금액"""
        return self.amount_owed - self.amount_settled

    @property
    def is_settled(self) -> bool:
        return self.amount_settled >= self.amount_owed


@dataclass
class _Bucket:
    owed: Decimal = ZERO
    settled: Decimal = ZERO


class ObligationTracker:
    """채무 추적기

    Args:
        store: Ledger 저장소
        policy: 배분 정책 (분류 우선순위)
        accounts: 계정 매핑 (미수금/선수금 코드)
    """

    def __init__(self, store: LedgerStore, policy: AllocationPolicy, accounts: AccountMapping):
        self.store = store
        self.policy = policy
        self.accounts = accounts

    def sort_key(self, obligation: Obligation) -> tuple[Period, int, str]:
        """배분 순서: 기간 오름차순 → 분류 우선순위 → 분류명"""
        return (
            obligation.period,
            self.policy.rank(obligation.category),
            obligation.category.value,
        )

    def derive(self, entries: Iterable[LedgerEntry]) -> dict[str, list[Obligation]]:
        """분개 목록 → 채무자별 채무 목록 (정산 완료 포함, 배분 순서)"""
        buckets: dict[str, dict[tuple[ObligationCategory, Period], _Bucket]] = defaultdict(dict)

        for entry in entries:
            debtor_id = entry.metadata.debtor_id
            if not debtor_id:
                continue

            if entry.source_kind in _OWED_KINDS:
                owed_side = True
            elif entry.source_kind == SourceKind.PAYMENT:
                owed_side = False
            else:
                continue

            for line in entry.lines_for(self.accounts.receivable):
                if line.category is None or line.period is None:
                    continue
                bucket = buckets[debtor_id].setdefault((line.category, line.period), _Bucket())
                if owed_side:
                    bucket.owed += line.signed_amount
                else:
                    bucket.settled -= line.signed_amount

        result: dict[str, list[Obligation]] = {}
        for debtor_id, by_key in buckets.items():
            obligations = [
                Obligation(
                    debtor_id=debtor_id,
                    category=category,
                    period=period,
                    amount_owed=bucket.owed,
                    amount_settled=bucket.settled,
                )
                for (category, period), bucket in by_key.items()
                if bucket.owed != 0 or bucket.settled != 0
            ]
            obligations.sort(key=self.sort_key)
            result[debtor_id] = obligations
        return result

    @staticmethod
    def forfeited_debtors(entries: Iterable[LedgerEntry]) -> set[str]:
        """몰수 분개가 있는 채무자"""
        return {
            entry.metadata.debtor_id
            for entry in entries
            if entry.source_kind == SourceKind.FORFEITURE and entry.metadata.debtor_id
        }

    def accrual_accounts(
        self,
        entries: Iterable[LedgerEntry],
    ) -> dict[tuple[str | None, ObligationCategory, Period], str]:
        """(채무자, 분류, 기간) → 원 청구의 대변 계정 (수익 또는 보증금 부채)"""
        origin: dict[tuple[str | None, ObligationCategory, Period], str] = {}
        for entry in entries:
            if entry.source_kind != SourceKind.INVOICE:
                continue
            for line in entry.lines:
                if line.account_code == self.accounts.receivable or line.credit == 0:
                    continue
                if line.category is None or line.period is None:
                    continue
                origin.setdefault((entry.metadata.debtor_id, line.category, line.period), line.account_code)
        return origin

    async def obligations(self, debtor_id: str, as_of: date) -> list[Obligation]:
        """채무자의 전체 채무 (정산 완료 포함)

        Args:
            debtor_id: 채무자 ID
            as_of: 기준일 (이 날짜까지의 분개만 반영)
        """
        entries = await self.store.query(EntryFilter(debtor_id=debtor_id, date_to=as_of))
        return self.derive(entries).get(debtor_id, [])

    async def outstanding(self, debtor_id: str, as_of: date) -> list[Obligation]:
        """미결 채무 (배분 순서)

        몰수된 채무자는 미결 채무 없음.
        """
        entries = await self.store.query(EntryFilter(debtor_id=debtor_id, date_to=as_of))
        if debtor_id in self.forfeited_debtors(entries):
            return []
        return [o for o in self.derive(entries).get(debtor_id, []) if o.outstanding > 0]

    async def outstanding_all(self, as_of: date) -> dict[str, list[Obligation]]:
        """전체 채무자의 미결 채무 (연령 분석용, 단일 조회)"""
        entries = await self.store.query(EntryFilter(date_to=as_of))
        forfeited = self.forfeited_debtors(entries)

        result: dict[str, list[Obligation]] = {}
        for debtor_id, obligations in self.derive(entries).items():
            if debtor_id in forfeited:
                continue
            pending = [o for o in obligations if o.outstanding > 0]
            if pending:
                result[debtor_id] = pending
        return result

    async def credit_balance(self, debtor_id: str, as_of: date) -> Decimal:
        """채무자의 선수금 잔액 (대변 - 차변)"""
        entries = await self.store.query(EntryFilter(debtor_id=debtor_id, date_to=as_of))
        balance = ZERO
        for entry in entries:
            for line in entry.lines_for(self.accounts.prepayment):
                balance -= line.signed_amount
        return balance

    async def is_forfeited(self, debtor_id: str) -> bool:
        """몰수 분개 존재 여부"""
        entries = await self.store.query(
            EntryFilter(debtor_id=debtor_id, source_kind=SourceKind.FORFEITURE)
        )
        return bool(entries)
