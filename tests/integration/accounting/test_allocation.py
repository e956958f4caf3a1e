"""AllocationEngine 통합 테스트"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from adapters.mock.registry import MockDebtorRegistry
from core.accounting.allocation import AllocationResult, Application, plan_allocation
from core.accounting.obligations import Obligation
from core.accounting.service import AccountingService
from core.config.loader import AllocationPolicy, LedgerSettings
from core.ledger.errors import DuplicateSourceRefError
from core.ledger.store import EntryFilter
from core.types import ObligationCategory, OverpaymentMode, Period, SourceKind

RENT = ObligationCategory.RENT
ADMIN = ObligationCategory.ADMIN_FEE

JAN = Period(2024, 1)
FEB = Period(2024, 2)


class TestAllocationResult:
    """AllocationResult 불변식 테스트"""

    def test_sum_must_match(self) -> None:
        obligation = Obligation("STU-001", RENT, JAN, Decimal("100.00"), Decimal("0.00"))
        with pytest.raises(ValueError, match="does not add up"):
            AllocationResult(
                debtor_id="STU-001",
                source_ref="pay-1",
                payment_amount=Decimal("100.00"),
                applications=(Application(obligation, Decimal("60.00")),),
                unapplied_remainder=Decimal("30.00"),
            )


class TestPlanAllocation:
    """탐욕적 배분 계획 테스트 (순수 함수)"""

    def test_partial_fills_in_order(self) -> None:
        outstanding = [
            Obligation("STU-001", RENT, JAN, Decimal("100.00"), Decimal("40.00")),
            Obligation("STU-001", RENT, FEB, Decimal("100.00"), Decimal("0.00")),
        ]
        applications, remainder = plan_allocation(outstanding, Decimal("90.00"))
        assert [a.amount_applied for a in applications] == [Decimal("60.00"), Decimal("30.00")]
        assert remainder == Decimal("0.00")

    def test_empty_outstanding(self) -> None:
        applications, remainder = plan_allocation([], Decimal("10.00"))
        assert applications == []
        assert remainder == Decimal("10.00")


class TestAllocate:
    """입금 배분 테스트"""

    @pytest.mark.asyncio
    async def test_oldest_period_first(self, service: AccountingService) -> None:
        """Jan $100 + Feb $100, 입금 $150 → Jan 100, Feb 50"""
        await service.record_invoice("STU-001", RENT, JAN, Decimal("100"), date(2024, 1, 1))
        await service.record_invoice("STU-001", RENT, FEB, Decimal("100"), date(2024, 2, 1))

        result = await service.record_payment("STU-001", Decimal("150"), date(2024, 2, 10), "pay-1")

        assert result.applied_to(RENT, JAN) == Decimal("100.00")
        assert result.applied_to(RENT, FEB) == Decimal("50.00")
        assert result.unapplied_remainder == Decimal("0.00")
        assert [a.obligation.period for a in result.applications] == [JAN, FEB]

    @pytest.mark.asyncio
    async def test_overpayment_remainder(self, service: AccountingService) -> None:
        """채무 $100, 입금 $150 → 100 배분, 잔여 50 (선수금)"""
        await service.record_invoice("STU-001", RENT, JAN, Decimal("100"), date(2024, 1, 1))

        result = await service.record_payment("STU-001", Decimal("150"), date(2024, 1, 5), "pay-1")

        assert result.total_applied == Decimal("100.00")
        assert result.unapplied_remainder == Decimal("50.00")

        entry = await service.store.get_entry(result.entry_id)
        prepayment = entry.lines_for("2200")
        assert [line.credit for line in prepayment] == [Decimal("50.00")]

    @pytest.mark.asyncio
    async def test_category_priority_within_period(self, service: AccountingService) -> None:
        """임대료 $80 + 관리비 $20, 입금 $50 → 임대료 50, 관리비 0"""
        await service.record_invoice("STU-001", ADMIN, JAN, Decimal("20"), date(2024, 1, 1))
        await service.record_invoice("STU-001", RENT, JAN, Decimal("80"), date(2024, 1, 1))

        result = await service.record_payment("STU-001", Decimal("50"), date(2024, 1, 5), "pay-1")

        assert result.applied_to(RENT, JAN) == Decimal("50.00")
        assert result.applied_to(ADMIN, JAN) == Decimal("0.00")
        assert len(result.applications) == 1

    @pytest.mark.asyncio
    async def test_no_obligations_records_prepayment(self, service: AccountingService) -> None:
        """채무 없음 → 전액 잔여로 기록 (버리지 않음)"""
        result = await service.record_payment("STU-001", Decimal("120"), date(2024, 1, 5), "pay-1")

        assert result.applications == ()
        assert result.unapplied_remainder == Decimal("120.00")
        assert result.entry_id is not None
        assert await service.tracker.credit_balance("STU-001", date(2024, 1, 5)) == Decimal("120.00")

    @pytest.mark.asyncio
    async def test_zero_payment_writes_nothing(self, service: AccountingService) -> None:
        result = await service.record_payment("STU-001", Decimal("0"), date(2024, 1, 5), "pay-0")

        assert result.applications == ()
        assert result.unapplied_remainder == Decimal("0.00")
        assert result.entry_id is None
        assert await service.store.query() == []

    @pytest.mark.asyncio
    async def test_negative_payment_rejected(self, service: AccountingService) -> None:
        with pytest.raises(ValueError):
            await service.record_payment("STU-001", Decimal("-5"), date(2024, 1, 5), "pay-neg")

    @pytest.mark.asyncio
    async def test_payment_entry_is_single_and_balanced(self, service: AccountingService) -> None:
        await service.record_invoice("STU-001", RENT, JAN, Decimal("100"), date(2024, 1, 1))
        await service.record_invoice("STU-001", ADMIN, JAN, Decimal("20"), date(2024, 1, 1))

        await service.record_payment("STU-001", Decimal("130"), date(2024, 1, 5), "pay-1")

        payments = await service.store.query(EntryFilter(source_kind=SourceKind.PAYMENT))
        assert len(payments) == 1
        assert payments[0].is_balanced()
        assert payments[0].total_debit == Decimal("130.00")


class TestIdempotency:
    """재전송 멱등성 테스트"""

    @pytest.mark.asyncio
    async def test_replay_returns_prior_result(self, service: AccountingService) -> None:
        """같은 source_ref 두 번 → 분개 한 건"""
        await service.record_invoice("STU-001", RENT, JAN, Decimal("100"), date(2024, 1, 1))
        await service.record_invoice("STU-001", RENT, FEB, Decimal("100"), date(2024, 2, 1))

        first = await service.record_payment("STU-001", Decimal("150"), date(2024, 2, 10), "pay-1")
        second = await service.record_payment("STU-001", Decimal("150"), date(2024, 2, 10), "pay-1")

        assert not first.replayed
        assert second.replayed
        assert second.entry_id == first.entry_id
        assert second.payment_amount == first.payment_amount
        assert second.unapplied_remainder == first.unapplied_remainder
        assert [(a.obligation.period, a.amount_applied) for a in second.applications] == [
            (a.obligation.period, a.amount_applied) for a in first.applications
        ]

        payments = await service.store.query(EntryFilter(source_kind=SourceKind.PAYMENT))
        assert len(payments) == 1

        outstanding = await service.tracker.outstanding("STU-001", date(2024, 2, 28))
        assert outstanding[0].outstanding == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_replay_for_other_debtor_rejected(self, service: AccountingService) -> None:
        await service.record_payment("STU-001", Decimal("10"), date(2024, 1, 5), "pay-1")
        with pytest.raises(DuplicateSourceRefError):
            await service.record_payment("STU-002", Decimal("10"), date(2024, 1, 5), "pay-1")


@pytest.fixture
def carry_forward_settings(ledger_settings: LedgerSettings) -> LedgerSettings:
    return replace(
        ledger_settings,
        allocation=AllocationPolicy(overpayment_mode=OverpaymentMode.CARRY_FORWARD),
    )


class TestCarryForward:
    """선수금 자동 상계 테스트"""

    @pytest.mark.asyncio
    async def test_credit_applied_on_next_invoice(
        self, carry_forward_settings: LedgerSettings, registry: MockDebtorRegistry
    ) -> None:
        async with await AccountingService.open(registry, carry_forward_settings) as service:
            await service.record_payment("STU-001", Decimal("150"), date(2024, 1, 5), "pay-1")
            await service.record_invoice("STU-001", RENT, FEB, Decimal("100"), date(2024, 2, 1))

            assert await service.tracker.outstanding("STU-001", date(2024, 2, 28)) == []
            assert await service.tracker.credit_balance("STU-001", date(2024, 2, 28)) == Decimal("50.00")

            await service.record_invoice("STU-001", RENT, Period(2024, 3), Decimal("100"), date(2024, 3, 1))
            outstanding = await service.tracker.outstanding("STU-001", date(2024, 3, 31))
            assert outstanding[0].outstanding == Decimal("50.00")
            assert await service.tracker.credit_balance("STU-001", date(2024, 3, 31)) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_floating_credit_not_applied(self, service: AccountingService) -> None:
        """기본 모드: 선수금 유지"""
        await service.record_payment("STU-001", Decimal("150"), date(2024, 1, 5), "pay-1")
        await service.record_invoice("STU-001", RENT, FEB, Decimal("100"), date(2024, 2, 1))

        outstanding = await service.tracker.outstanding("STU-001", date(2024, 2, 28))
        assert outstanding[0].outstanding == Decimal("100.00")
        assert await service.tracker.credit_balance("STU-001", date(2024, 2, 28)) == Decimal("150.00")

    @pytest.mark.asyncio
    async def test_apply_credit_idempotent(self, service: AccountingService) -> None:
        await service.record_payment("STU-001", Decimal("40"), date(2024, 1, 5), "pay-1")
        entry_id = await service.record_invoice("STU-001", RENT, FEB, Decimal("100"), date(2024, 2, 1))

        first = await service.allocation.apply_credit("STU-001", date(2024, 2, 1), trigger=entry_id)
        second = await service.allocation.apply_credit("STU-001", date(2024, 2, 1), trigger=entry_id)

        assert first is not None and first.total_applied == Decimal("40.00")
        assert second is not None and second.replayed
        assert await service.tracker.credit_balance("STU-001", date(2024, 2, 28)) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_apply_credit_without_credit(self, service: AccountingService) -> None:
        await service.record_invoice("STU-001", RENT, FEB, Decimal("100"), date(2024, 2, 1))
        assert await service.allocation.apply_credit("STU-001", date(2024, 2, 1), trigger="x") is None
