"""
분개 생성기

청구/입금/비용/몰수 요청을 복식부기 분개로 변환
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from core.config.loader import AccountMapping
from core.ledger.errors import ImbalancedEntryError
from core.ledger.types import AccountType
from core.types import ObligationCategory, Period, SourceKind
from core.utils.money import ZERO, to_money

if TYPE_CHECKING:
    from core.accounting.obligations import Obligation
    from core.ledger.chart import ChartOfAccounts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerLine:
    """분개 항목

    차변/대변 중 정확히 한쪽만 0이 아님.
    category/period는 미수금 라인이 어느 채무에 속하는지 표시.
    """

    account_code: str
    account_type: AccountType
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    # 채무 태그 (미수금/선수금 라인)
    category: ObligationCategory | None = None
    period: Period | None = None

    def __post_init__(self) -> None:
        debit = to_money(self.debit)
        credit = to_money(self.credit)
        if debit < 0 or credit < 0:
            raise ValueError(f"Negative amount on line {self.account_code}")
        if (debit == 0) == (credit == 0):
            raise ValueError(
                f"Line {self.account_code} must have exactly one non-zero side "
                f"(debit={debit}, credit={credit})"
            )
        object.__setattr__(self, "debit", debit)
        object.__setattr__(self, "credit", credit)
        object.__setattr__(self, "account_type", AccountType(self.account_type))

    @property
    def amount(self) -> Decimal:
        """0이 아닌 쪽 금액"""
        return self.debit or self.credit

    @property
    def signed_amount(self) -> Decimal:
        """차변 +, 대변 -"""
        return self.debit - self.credit


@dataclass(frozen=True)
class EntryMetadata:
    """분개 메타데이터

    의미 있는 필드는 명시적으로 선언.
    extra는 의미 없는 주석(배분 스냅샷, 사유 등) 전용.
    """

    debtor_id: str | None = None
    period: Period | None = None
    category: ObligationCategory | None = None
    residence_id: str | None = None
    vendor_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LedgerEntry:
    """분개

    하나의 회계 이벤트에 대한 복식부기 기록.
    차변 합계 = 대변 합계 (생성 시점에 검증, 이후 변경 불가)
    """

    entry_id: str
    entry_date: date
    source_kind: SourceKind
    source_ref: str
    lines: tuple[LedgerLine, ...]
    description: str | None = None
    metadata: EntryMetadata = field(default_factory=EntryMetadata)

    # 저장소 삽입 순번 (저장 전에는 None)
    seq: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(self, "source_kind", SourceKind(self.source_kind))
        if not self.lines:
            raise ValueError(f"Entry {self.entry_id} has no lines")
        if not self.source_ref:
            raise ValueError(f"Entry {self.entry_id} has no source_ref")
        if not self.is_balanced():
            raise ImbalancedEntryError(self.entry_id, self.total_debit, self.total_credit)

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)

    def is_balanced(self) -> bool:
        """차변 합계 == 대변 합계 (금액이 고정 소수점이므로 오차 허용 없음)"""
        return self.total_debit == self.total_credit

    def lines_for(self, account_code: str) -> list[LedgerLine]:
        """특정 계정 라인"""
        return [line for line in self.lines if line.account_code == account_code]


def new_entry_id() -> str:
    return str(uuid4())


class LedgerEntryBuilder:
    """요청을 분개로 변환

    계정 유형은 계정과목표에서 조회하므로 잘못된 코드는
    분개 생성 시점에 UnknownAccountError로 실패.

    Args:
        chart: 계정과목표
        accounts: 계정 매핑 (설정)
    """

    def __init__(self, chart: ChartOfAccounts, accounts: AccountMapping):
        self.chart = chart
        self.accounts = accounts

    def _line(
        self,
        account_code: str,
        debit: Decimal = ZERO,
        credit: Decimal = ZERO,
        category: ObligationCategory | None = None,
        period: Period | None = None,
    ) -> LedgerLine:
        account = self.chart.get(account_code)
        return LedgerLine(
            account_code=account.code,
            account_type=account.account_type,
            debit=debit,
            credit=credit,
            category=category,
            period=period,
        )

    def invoice(
        self,
        debtor_id: str,
        category: ObligationCategory,
        period: Period,
        amount: Decimal,
        entry_date: date,
        source_ref: str,
        residence_id: str | None = None,
        source_kind: SourceKind = SourceKind.INVOICE,
        description: str | None = None,
    ) -> LedgerEntry:
        """청구 → 분개

        미수금 (Debit) / 분류별 수익 또는 보증금 부채 (Credit).
        source_kind=ADJUSTMENT이고 금액이 음수면 방향을 뒤집어 채무를 감액.
        """
        amount = to_money(amount)
        if amount == 0:
            raise ValueError("Invoice amount must be non-zero")
        if amount < 0 and source_kind != SourceKind.ADJUSTMENT:
            raise ValueError("Only adjustments may carry a negative amount")

        counter_account = self.accounts.for_category(category)
        magnitude = abs(amount)

        if amount > 0:
            lines = [
                self._line(self.accounts.receivable, debit=magnitude, category=category, period=period),
                self._line(counter_account, credit=magnitude, category=category, period=period),
            ]
        else:
            lines = [
                self._line(counter_account, debit=magnitude, category=category, period=period),
                self._line(self.accounts.receivable, credit=magnitude, category=category, period=period),
            ]

        return LedgerEntry(
            entry_id=new_entry_id(),
            entry_date=entry_date,
            source_kind=source_kind,
            source_ref=source_ref,
            lines=tuple(lines),
            description=description or f"{category.value} {period} for {debtor_id}",
            metadata=EntryMetadata(
                debtor_id=debtor_id,
                period=period,
                category=category,
                residence_id=residence_id,
            ),
        )

    def payment(
        self,
        debtor_id: str,
        source_ref: str,
        entry_date: date,
        applications: list[tuple[Obligation, Decimal]],
        remainder: Decimal,
        residence_id: str | None = None,
        cash_account: str | None = None,
    ) -> LedgerEntry:
        """입금 배분 → 분개

        배분 건마다 현금 (Debit) / 미수금 (Credit) 한 쌍.
        남은 금액은 현금 (Debit) / 선수금 (Credit).
        배분 스냅샷은 재전송 시 결과 복원을 위해 extra에 보관.
        """
        cash = cash_account or self.accounts.cash
        lines: list[LedgerLine] = []
        snapshot: list[dict[str, str]] = []

        for obligation, applied in applications:
            lines.append(self._line(cash, debit=applied))
            lines.append(self._line(
                self.accounts.receivable,
                credit=applied,
                category=obligation.category,
                period=obligation.period,
            ))
            snapshot.append({
                "category": obligation.category.value,
                "period": str(obligation.period),
                "amount_owed": str(obligation.amount_owed),
                "amount_settled": str(obligation.amount_settled),
                "amount_applied": str(applied),
            })

        if remainder > 0:
            lines.append(self._line(cash, debit=remainder))
            lines.append(self._line(self.accounts.prepayment, credit=remainder))

        first_period = applications[0][0].period if applications else None

        return LedgerEntry(
            entry_id=new_entry_id(),
            entry_date=entry_date,
            source_kind=SourceKind.PAYMENT,
            source_ref=source_ref,
            lines=tuple(lines),
            description=f"Payment {source_ref} from {debtor_id}",
            metadata=EntryMetadata(
                debtor_id=debtor_id,
                period=first_period,
                residence_id=residence_id,
                extra={"allocation": snapshot, "unapplied": str(remainder)},
            ),
        )

    def credit_application(
        self,
        debtor_id: str,
        source_ref: str,
        entry_date: date,
        applications: list[tuple[Obligation, Decimal]],
        residence_id: str | None = None,
    ) -> LedgerEntry:
        """선수금 상계 → 분개

        배분 건마다 선수금 (Debit) / 미수금 (Credit).
        """
        lines: list[LedgerLine] = []
        snapshot: list[dict[str, str]] = []

        for obligation, applied in applications:
            lines.append(self._line(self.accounts.prepayment, debit=applied))
            lines.append(self._line(
                self.accounts.receivable,
                credit=applied,
                category=obligation.category,
                period=obligation.period,
            ))
            snapshot.append({
                "category": obligation.category.value,
                "period": str(obligation.period),
                "amount_owed": str(obligation.amount_owed),
                "amount_settled": str(obligation.amount_settled),
                "amount_applied": str(applied),
            })

        return LedgerEntry(
            entry_id=new_entry_id(),
            entry_date=entry_date,
            source_kind=SourceKind.PAYMENT,
            source_ref=source_ref,
            lines=tuple(lines),
            description=f"Advance payment applied for {debtor_id}",
            metadata=EntryMetadata(
                debtor_id=debtor_id,
                period=applications[0][0].period,
                residence_id=residence_id,
                extra={"allocation": snapshot, "unapplied": "0.00", "credit_application": True},
            ),
        )

    def expense(
        self,
        vendor_id: str,
        account_code: str,
        amount: Decimal,
        entry_date: date,
        source_ref: str,
        residence_id: str | None = None,
        description: str | None = None,
    ) -> LedgerEntry:
        """비용 → 분개

        비용 (Debit) / 현금 (Credit). 비용 계정이 아니면 ValueError.
        """
        amount = to_money(amount)
        if amount <= 0:
            raise ValueError("Expense amount must be positive")

        expense_account = self.chart.get(account_code)
        if expense_account.account_type != AccountType.EXPENSE:
            raise ValueError(f"Account {account_code} is not an expense account")

        return LedgerEntry(
            entry_id=new_entry_id(),
            entry_date=entry_date,
            source_kind=SourceKind.EXPENSE,
            source_ref=source_ref,
            lines=(
                self._line(account_code, debit=amount),
                self._line(self.accounts.cash, credit=amount),
            ),
            description=description or f"{expense_account.name} ({vendor_id})",
            metadata=EntryMetadata(
                vendor_id=vendor_id,
                period=Period.from_date(entry_date),
                residence_id=residence_id,
            ),
        )

    def forfeiture(
        self,
        debtor_id: str,
        reversals: list[tuple[Obligation, str]],
        forfeited_payments: Decimal,
        reason: str,
        entry_date: date,
        source_ref: str,
        residence_id: str | None = None,
    ) -> LedgerEntry:
        """몰수 → 분개

        미결 채무마다 원 청구 계정 (Debit) / 미수금 (Credit), 미결 금액만큼.
        이미 입금된 금액은 입금 분개가 미수금을 상계했으므로 다시 기록하지 않음.
        몰수된 입금 총액은 결과 복원을 위해 extra에 보관.

        Args:
            reversals: (미결 채무, 원 청구의 대변 계정) 목록
            forfeited_payments: 몰수되는 기존 배분 총액
        """
        lines: list[LedgerLine] = []
        for obligation, origin_account in reversals:
            outstanding = to_money(obligation.outstanding)
            if outstanding <= 0:
                continue
            lines.append(self._line(
                origin_account,
                debit=outstanding,
                category=obligation.category,
                period=obligation.period,
            ))
            lines.append(self._line(
                self.accounts.receivable,
                credit=outstanding,
                category=obligation.category,
                period=obligation.period,
            ))

        if not lines:
            raise ValueError(f"Nothing outstanding to reverse for {debtor_id}")

        return LedgerEntry(
            entry_id=new_entry_id(),
            entry_date=entry_date,
            source_kind=SourceKind.FORFEITURE,
            source_ref=source_ref,
            lines=tuple(lines),
            description=f"Forfeiture of {debtor_id}: {reason}",
            metadata=EntryMetadata(
                debtor_id=debtor_id,
                period=Period.from_date(entry_date),
                residence_id=residence_id,
                extra={"reason": reason, "forfeited_payments": str(to_money(forfeited_payments))},
            ),
        )
