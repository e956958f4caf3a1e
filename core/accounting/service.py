"""
회계 서비스

외부 애플리케이션 레이어에 노출되는 진입점.
저장소, 계정과목표, 채무 추적기, 배분/재무제표/몰수 엔진을 조립.

사용 예시:
```python
async with await AccountingService.open(registry=registry) as service:
    await service.record_invoice("STU-001", ObligationCategory.RENT, Period(2024, 1),
                                 Decimal("100"), date(2024, 1, 1))
    result = await service.record_payment("STU-001", Decimal("150"), date(2024, 1, 5), "pay-1")
    sheet = await service.get_balance_sheet(date(2024, 1, 31))
```
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.accounting.allocation import AllocationEngine, AllocationResult
from core.accounting.forfeiture import ForfeitureResult, ForfeitureWorkflow
from core.accounting.locks import DebtorLockManager
from core.accounting.obligations import Obligation, ObligationTracker
from core.accounting.statements import AgingReport, StatementEngine, StatementSnapshot
from core.config.loader import LedgerSettings, get_settings
from core.ledger.entry_builder import LedgerEntryBuilder, new_entry_id
from core.ledger.errors import DuplicateSourceRefError
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.types import ObligationCategory, OverpaymentMode, Period, SourceKind, StatementBasis
from core.utils.money import to_money

if TYPE_CHECKING:
    from adapters.interfaces import IDebtorRegistry, INotifier
    from core.ledger.chart import ChartOfAccounts
    from core.ledger.entry_builder import LedgerEntry

logger = logging.getLogger(__name__)


class AccountingService:
    """회계 서비스 (Facade)

    Args:
        store: Ledger 저장소
        chart: 계정과목표
        settings: Ledger 설정
        registry: 채무자/호실 레지스트리
        notifier: 알림 (선택)
        db: 소유한 DB 연결 (close 시 종료, 선택)
    """

    def __init__(
        self,
        store: LedgerStore,
        chart: ChartOfAccounts,
        settings: LedgerSettings,
        registry: IDebtorRegistry,
        notifier: INotifier | None = None,
        db: SQLiteAdapter | None = None,
    ):
        self.store = store
        self.chart = chart
        self.settings = settings
        self._db = db

        self.locks = DebtorLockManager(settings.lock_timeout_sec)
        self.builder = LedgerEntryBuilder(chart, settings.accounts)
        self.tracker = ObligationTracker(store, settings.allocation, settings.accounts)
        self.allocation = AllocationEngine(store, self.tracker, self.builder, self.locks)
        self.statements = StatementEngine(store, chart, settings.accounts, self.tracker)
        self.forfeiture = ForfeitureWorkflow(
            store, self.tracker, self.builder, registry, self.locks, notifier
        )

    @classmethod
    async def open(
        cls,
        registry: IDebtorRegistry,
        settings: LedgerSettings | None = None,
        notifier: INotifier | None = None,
    ) -> "AccountingService":
        """DB 연결 + 스키마 초기화 후 서비스 생성

        Args:
            registry: 채무자/호실 레지스트리
            settings: Ledger 설정 (None이면 ledger.yaml)
            notifier: 알림 (선택)
        """
        if settings is None:
            settings = get_settings().ledger

        db = SQLiteAdapter(settings.db_path)
        await db.connect()
        await init_ledger_schema(db)

        store = LedgerStore(db)
        chart = await store.load_chart()

        logger.info(
            "회계 서비스 시작",
            extra={"db_path": str(settings.db_path), "accounts": len(chart)},
        )
        return cls(store, chart, settings, registry, notifier, db=db)

    async def close(self) -> None:
        """소유한 DB 연결 종료"""
        if self._db is not None:
            await self._db.close()

    async def __aenter__(self) -> "AccountingService":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _append_once(self, entry: LedgerEntry) -> str:
        """분개 기록, 재전송이면 기존 entry_id 반환"""
        try:
            return await self.store.append(entry)
        except DuplicateSourceRefError as e:
            logger.info(
                "재전송 이벤트, 기존 분개 반환",
                extra={"source_kind": e.source_kind, "source_ref": e.source_ref},
            )
            if e.existing_entry_id is None:
                raise
            return e.existing_entry_id

    # =====================================
    # 기록
    # =====================================

    async def record_payment(
        self,
        debtor_id: str,
        amount: Decimal | int | str,
        payment_date: date,
        source_ref: str,
        residence_id: str | None = None,
        cash_account: str | None = None,
    ) -> AllocationResult:
        """입금 기록 + 배분"""
        return await self.allocation.allocate(
            debtor_id=debtor_id,
            payment_amount=amount,
            payment_date=payment_date,
            source_ref=source_ref,
            residence_id=residence_id,
            cash_account=cash_account,
        )

    async def record_invoice(
        self,
        debtor_id: str,
        category: ObligationCategory,
        period: Period,
        amount_owed: Decimal | int | str,
        invoice_date: date,
        residence_id: str | None = None,
        source_ref: str | None = None,
    ) -> str:
        """청구 기록

        source_ref 기본값은 (채무자, 분류, 기간)으로 결정되므로
        같은 채무를 두 번 청구하면 기존 entry_id가 반환됨.
        CARRY_FORWARD 모드면 기록 직후 선수금을 상계.
        """
        category = ObligationCategory(category)
        amount = to_money(amount_owed)
        if amount <= 0:
            raise ValueError(f"Invoice amount must be positive: {amount}")

        entry = self.builder.invoice(
            debtor_id=debtor_id,
            category=category,
            period=period,
            amount=amount,
            entry_date=invoice_date,
            source_ref=source_ref or f"invoice-{debtor_id}-{category.value}-{period}",
            residence_id=residence_id,
        )
        entry_id = await self._append_once(entry)

        if self.settings.allocation.overpayment_mode == OverpaymentMode.CARRY_FORWARD:
            await self.allocation.apply_credit(
                debtor_id, invoice_date, trigger=entry_id, residence_id=residence_id
            )

        return entry_id

    async def record_adjustment(
        self,
        debtor_id: str,
        category: ObligationCategory,
        period: Period,
        amount: Decimal | int | str,
        adjustment_date: date,
        reason: str,
        residence_id: str | None = None,
        source_ref: str | None = None,
    ) -> str:
        """청구 조정 (음수면 청구액 감액)

        Raises:
            ValueError: 감액 후 청구액이 정산액보다 작아지는 경우
        """
        category = ObligationCategory(category)
        amount = to_money(amount)

        async with self.locks.hold(debtor_id):
            if amount < 0:
                current = await self.tracker.obligations(debtor_id, adjustment_date)
                match = next(
                    (o for o in current if o.category == category and o.period == period),
                    None,
                )
                owed = match.amount_owed if match else 0
                settled = match.amount_settled if match else 0
                if owed + amount < settled:
                    raise ValueError(
                        f"Adjustment would reduce {category.value} {period} below settled amount "
                        f"(owed={owed}, settled={settled}, adjustment={amount})"
                    )

            entry = self.builder.invoice(
                debtor_id=debtor_id,
                category=category,
                period=period,
                amount=amount,
                entry_date=adjustment_date,
                source_ref=source_ref or f"adjustment-{new_entry_id()}",
                residence_id=residence_id,
                source_kind=SourceKind.ADJUSTMENT,
                description=reason,
            )
            return await self._append_once(entry)

    async def record_expense(
        self,
        vendor_id: str,
        account_code: str,
        amount: Decimal | int | str,
        expense_date: date,
        residence_id: str | None = None,
        description: str | None = None,
        source_ref: str | None = None,
    ) -> str:
        """비용 기록 (현금 지급)"""
        entry = self.builder.expense(
            vendor_id=vendor_id,
            account_code=account_code,
            amount=to_money(amount),
            entry_date=expense_date,
            source_ref=source_ref or f"expense-{new_entry_id()}",
            residence_id=residence_id,
            description=description,
        )
        return await self._append_once(entry)

    # =====================================
    # 조회
    # =====================================

    async def get_outstanding(self, debtor_id: str, as_of: date) -> list[Obligation]:
        """미결 채무 (배분 순서)"""
        return await self.tracker.outstanding(debtor_id, as_of)

    async def get_balance_sheet(
        self,
        as_of: date,
        residence_id: str | None = None,
    ) -> StatementSnapshot:
        return await self.statements.balance_sheet(as_of, residence_id)

    async def get_income_statement(
        self,
        date_from: date,
        date_to: date,
        basis: StatementBasis = StatementBasis.ACCRUAL,
    ) -> StatementSnapshot:
        return await self.statements.income_statement(date_from, date_to, basis)

    async def get_monthly_statements(
        self,
        first: Period,
        last: Period,
        basis: StatementBasis = StatementBasis.ACCRUAL,
    ) -> list[StatementSnapshot]:
        return await self.statements.monthly_statements(first, last, basis)

    async def get_aging_report(self, as_of: date) -> AgingReport:
        return await self.statements.receivables_aging(as_of)

    # =====================================
    # 몰수
    # =====================================

    async def forfeit_debtor(
        self,
        debtor_id: str,
        reason: str,
        forfeit_date: date,
        residence_id: str | None = None,
    ) -> ForfeitureResult:
        return await self.forfeiture.forfeit(debtor_id, reason, forfeit_date, residence_id)

    async def pending_forfeitures(self) -> list[str]:
        """호실 해제 또는 몰수 표시가 끝나지 않은 몰수 채무자"""
        return await self.forfeiture.pending_forfeitures()
