"""
재무제표 엔진

Ledger 분개를 집계하여 재무상태표, 손익계산서, 미수금 연령 분석 생성.
저장하지 않고 요청 시마다 계산 (Ledger가 유일한 원천).

- 재무상태표: 기준일까지의 계정 잔액. 이익잉여금은 누적 순이익.
  자산 = 부채 + 자본 항등식을 매번 검증.
- 손익계산서 (발생주의): 수익/비용 라인을 분개일 기준으로 인식
- 손익계산서 (현금주의): 미수금 정산 라인을 입금일 기준으로 인식하고
  원 청구 분개의 수익 계정으로 귀속. 보증금(부채)은 수익이 아님.

일관성: 각 재무제표는 단일 조회 스냅샷으로 계산.
동시에 기록 중인 최신 분개는 빠질 수 있음.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from core.constants import AgingBuckets
from core.ledger.errors import StatementInvariantViolation
from core.ledger.store import EntryFilter
from core.ledger.types import NORMAL_BALANCE, AccountType, NormalBalance
from core.types import Period, SourceKind, StatementBasis, months_between
from core.utils.money import ZERO

if TYPE_CHECKING:
    from core.accounting.obligations import ObligationTracker
    from core.config.loader import AccountMapping
    from core.ledger.chart import ChartOfAccounts
    from core.ledger.entry_builder import LedgerEntry
    from core.ledger.store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatementSnapshot:
    """재무제표 스냅샷 (요청 시 계산, 저장 안 함)

    금액은 모두 정상 잔액 방향이 양수.
    """

    title: str
    period_label: str
    date_to: date
    basis: StatementBasis
    totals_by_account_type: dict[AccountType, Decimal]
    account_balances: dict[str, Decimal]
    net_income: Decimal
    cumulative_retained_earnings: Decimal
    date_from: date | None = None
    residence_id: str | None = None

    def total(self, account_type: AccountType) -> Decimal:
        return self.totals_by_account_type.get(account_type, ZERO)


@dataclass(frozen=True)
class AgingReport:
    """미수금 연령 분석

    구간: 기간 시작일로부터 경과 일수
    """

    as_of: date
    buckets: dict[str, Decimal]
    by_debtor: dict[str, dict[str, Decimal]] = field(default_factory=dict)

    @property
    def total(self) -> Decimal:
        return sum(self.buckets.values(), ZERO)


def aging_bucket(period: Period, as_of: date) -> str:
    """경과 일수 → 구간 라벨 (미래 기간은 첫 구간)"""
    age_days = (as_of - period.start).days
    for label, upper in AgingBuckets.BUCKETS:
        if upper is None or age_days <= upper:
            return label
    return AgingBuckets.BUCKETS[-1][0]


class StatementEngine:
    """재무제표 엔진

    Args:
        store: Ledger 저장소
        chart: 계정과목표
        accounts: 계정 매핑
        tracker: 채무 추적기 (연령 분석용)
    """

    def __init__(
        self,
        store: LedgerStore,
        chart: ChartOfAccounts,
        accounts: AccountMapping,
        tracker: ObligationTracker,
    ):
        self.store = store
        self.chart = chart
        self.accounts = accounts
        self.tracker = tracker

    # =====================================
    # 집계 헬퍼
    # =====================================

    def _natural_balances(self, entries: Iterable[LedgerEntry]) -> dict[str, Decimal]:
        """계정별 잔액 (정상 잔액 방향 양수)"""
        balances: dict[str, Decimal] = {account.code: ZERO for account in self.chart}
        for entry in entries:
            for line in entry.lines:
                sign = 1 if NORMAL_BALANCE[line.account_type] == NormalBalance.DEBIT else -1
                balances[line.account_code] = (
                    balances.get(line.account_code, ZERO) + sign * line.signed_amount
                )
        return balances

    def _accrual_net(
        self,
        entries: Iterable[LedgerEntry],
    ) -> tuple[dict[str, Decimal], dict[AccountType, Decimal]]:
        """발생주의 수익/비용 (분개일 기준)"""
        by_account: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for entry in entries:
            for line in entry.lines:
                if line.account_type == AccountType.INCOME:
                    by_account[line.account_code] -= line.signed_amount
                elif line.account_type == AccountType.EXPENSE:
                    by_account[line.account_code] += line.signed_amount
        return dict(by_account), self._type_totals(by_account)

    def _cash_net(
        self,
        entries: list[LedgerEntry],
        date_from: date | None,
        date_to: date,
    ) -> tuple[dict[str, Decimal], dict[AccountType, Decimal]]:
        """현금주의 수익/비용

        수익: payment 분개의 미수금 대변 라인을 원 청구의 수익 계정으로 귀속
        비용: 비용 라인을 분개일 기준 (비용은 지급 즉시 기록됨)
        """
        origin = self.tracker.accrual_accounts(entries)
        by_account: dict[str, Decimal] = defaultdict(lambda: ZERO)

        for entry in entries:
            if date_from is not None and entry.entry_date < date_from:
                continue
            if entry.entry_date > date_to:
                continue

            if entry.source_kind == SourceKind.PAYMENT:
                debtor_id = entry.metadata.debtor_id
                for line in entry.lines_for(self.accounts.receivable):
                    if line.category is None or line.period is None:
                        continue
                    account_code = origin.get(
                        (debtor_id, line.category, line.period),
                        self.accounts.for_category(line.category),
                    )
                    if self.chart.get(account_code).account_type != AccountType.INCOME:
                        continue
                    by_account[account_code] -= line.signed_amount

            for line in entry.lines:
                if line.account_type == AccountType.EXPENSE:
                    by_account[line.account_code] += line.signed_amount

        return dict(by_account), self._type_totals(by_account)

    def _type_totals(self, by_account: dict[str, Decimal]) -> dict[AccountType, Decimal]:
        totals = {AccountType.INCOME: ZERO, AccountType.EXPENSE: ZERO}
        for code, amount in by_account.items():
            account_type = self.chart.get(code).account_type
            totals[account_type] = totals.get(account_type, ZERO) + amount
        return totals

    def _net(
        self,
        entries: list[LedgerEntry],
        basis: StatementBasis,
        date_from: date | None,
        date_to: date,
    ) -> tuple[dict[str, Decimal], dict[AccountType, Decimal]]:
        if basis == StatementBasis.CASH:
            return self._cash_net(entries, date_from, date_to)
        in_range = [
            e for e in entries
            if (date_from is None or e.entry_date >= date_from) and e.entry_date <= date_to
        ]
        return self._accrual_net(in_range)

    @staticmethod
    def _net_income(totals: dict[AccountType, Decimal]) -> Decimal:
        return totals.get(AccountType.INCOME, ZERO) - totals.get(AccountType.EXPENSE, ZERO)

    # =====================================
    # 재무상태표
    # =====================================

    async def balance_sheet(self, as_of: date, residence_id: str | None = None) -> StatementSnapshot:
        """재무상태표

        Args:
            as_of: 기준일
            residence_id: 기숙사 ID (None이면 전체)

        Raises:
            StatementInvariantViolation: 자산 ≠ 부채 + 자본
        """
        entries = await self.store.query(EntryFilter(date_to=as_of, residence_id=residence_id))
        balances = self._natural_balances(entries)

        income = sum(
            (balances[a.code] for a in self.chart.by_type(AccountType.INCOME)), ZERO
        )
        expense = sum(
            (balances[a.code] for a in self.chart.by_type(AccountType.EXPENSE)), ZERO
        )
        retained = income - expense

        period_start = Period.from_date(as_of).start
        _, month_totals = self._accrual_net(e for e in entries if e.entry_date >= period_start)

        sheet_balances: dict[str, Decimal] = {}
        totals = {AccountType.ASSET: ZERO, AccountType.LIABILITY: ZERO, AccountType.EQUITY: ZERO}
        for account_type in totals:
            for account in self.chart.by_type(account_type):
                amount = balances[account.code]
                if account.code == self.accounts.retained_earnings:
                    amount += retained
                sheet_balances[account.code] = amount
                totals[account_type] += amount

        snapshot = StatementSnapshot(
            title="Balance Sheet",
            period_label=as_of.isoformat(),
            date_to=as_of,
            basis=StatementBasis.ACCRUAL,
            totals_by_account_type=totals,
            account_balances=sheet_balances,
            net_income=self._net_income(month_totals),
            cumulative_retained_earnings=retained,
            residence_id=residence_id,
        )
        self._check_identity(snapshot)
        return snapshot

    def _check_identity(self, snapshot: StatementSnapshot) -> None:
        assets = snapshot.total(AccountType.ASSET)
        liabilities = snapshot.total(AccountType.LIABILITY)
        equity = snapshot.total(AccountType.EQUITY)

        if assets != liabilities + equity:
            totals = {
                "assets": str(assets),
                "liabilities": str(liabilities),
                "equity": str(equity),
                "as_of": snapshot.date_to.isoformat(),
            }
            logger.critical("재무상태표 항등식 위반", extra=totals)
            raise StatementInvariantViolation(snapshot.title, totals)

    # =====================================
    # 손익계산서
    # =====================================

    async def income_statement(
        self,
        date_from: date,
        date_to: date,
        basis: StatementBasis = StatementBasis.ACCRUAL,
    ) -> StatementSnapshot:
        """손익계산서

        이익잉여금은 처음부터 date_to까지의 누적 순이익 (같은 인식 기준).
        """
        if date_from > date_to:
            raise ValueError(f"date_from {date_from} is after date_to {date_to}")

        basis = StatementBasis(basis)
        entries = await self.store.query(EntryFilter(date_to=date_to))

        by_account, totals = self._net(entries, basis, date_from, date_to)
        _, cumulative_totals = self._net(entries, basis, None, date_to)

        return StatementSnapshot(
            title="Income Statement",
            period_label=f"{date_from.isoformat()}..{date_to.isoformat()}",
            date_from=date_from,
            date_to=date_to,
            basis=basis,
            totals_by_account_type=totals,
            account_balances=by_account,
            net_income=self._net_income(totals),
            cumulative_retained_earnings=self._net_income(cumulative_totals),
        )

    async def monthly_statements(
        self,
        first: Period,
        last: Period,
        basis: StatementBasis = StatementBasis.ACCRUAL,
    ) -> list[StatementSnapshot]:
        """월별 손익계산서

        기초 이익잉여금(first 이전 누적) + 월별 순이익 누계.
        """
        basis = StatementBasis(basis)
        periods = months_between(first, last)
        if not periods:
            return []

        entries = await self.store.query(EntryFilter(date_to=last.end))

        _, opening_totals = self._net(entries, basis, None, first.previous().end)
        retained = self._net_income(opening_totals)

        snapshots: list[StatementSnapshot] = []
        for period in periods:
            by_account, totals = self._net(entries, basis, period.start, period.end)
            net_income = self._net_income(totals)
            retained += net_income
            snapshots.append(StatementSnapshot(
                title="Income Statement",
                period_label=str(period),
                date_from=period.start,
                date_to=period.end,
                basis=basis,
                totals_by_account_type=totals,
                account_balances=by_account,
                net_income=net_income,
                cumulative_retained_earnings=retained,
            ))
        return snapshots

    # =====================================
    # 미수금 연령 분석
    # =====================================

    async def receivables_aging(self, as_of: date) -> AgingReport:
        """미수금 연령 분석 (채무 추적기 기반)"""
        labels = [label for label, _ in AgingBuckets.BUCKETS]
        buckets = {label: ZERO for label in labels}
        by_debtor: dict[str, dict[str, Decimal]] = {}

        outstanding = await self.tracker.outstanding_all(as_of)
        for debtor_id, obligations in sorted(outstanding.items()):
            row = {label: ZERO for label in labels}
            for obligation in obligations:
                label = aging_bucket(obligation.period, as_of)
                row[label] += obligation.outstanding
                buckets[label] += obligation.outstanding
            by_debtor[debtor_id] = row

        return AgingReport(as_of=as_of, buckets=buckets, by_debtor=by_debtor)
