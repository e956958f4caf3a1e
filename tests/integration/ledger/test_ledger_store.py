"""LedgerStore 통합 테스트"""

from datetime import date
from decimal import Decimal

import aiosqlite
import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import AccountMapping
from core.ledger.chart import ChartOfAccounts
from core.ledger.entry_builder import LedgerEntry, LedgerEntryBuilder, LedgerLine
from core.ledger.errors import DuplicateSourceRefError, UnknownAccountError
from core.ledger.schema import init_ledger_schema
from core.ledger.store import EntryFilter, LedgerStore
from core.ledger.types import INITIAL_ACCOUNTS, AccountType
from core.types import ObligationCategory, Period, SourceKind


@pytest.fixture
def builder(chart: ChartOfAccounts) -> LedgerEntryBuilder:
    return LedgerEntryBuilder(chart, AccountMapping())


def _rent(builder: LedgerEntryBuilder, debtor: str, month: int, ref: str, residence: str | None = None) -> LedgerEntry:
    return builder.invoice(
        debtor, ObligationCategory.RENT, Period(2024, month), Decimal("100"),
        date(2024, month, 1), ref, residence_id=residence,
    )


class TestSchema:
    """스키마 초기화 테스트"""

    @pytest.mark.asyncio
    async def test_idempotent(self, db: SQLiteAdapter) -> None:
        """여러 번 호출해도 안전"""
        await init_ledger_schema(db)
        row = await db.fetchone("SELECT COUNT(*) FROM account")
        assert row[0] == len(INITIAL_ACCOUNTS)


class TestLedgerStoreAppend:
    """분개 저장 테스트"""

    @pytest.mark.asyncio
    async def test_append_and_get(self, ledger_store: LedgerStore, builder: LedgerEntryBuilder) -> None:
        """저장 후 동일 내용 조회"""
        entry = _rent(builder, "STU-001", 1, "inv-1", residence="RES-A")
        entry_id = await ledger_store.append(entry)
        assert entry_id == entry.entry_id

        loaded = await ledger_store.get_entry(entry_id)
        assert loaded is not None
        assert loaded.seq is not None
        assert loaded.lines == entry.lines
        assert loaded.metadata.debtor_id == "STU-001"
        assert loaded.metadata.period == Period(2024, 1)
        assert loaded.metadata.category == ObligationCategory.RENT
        assert loaded.metadata.residence_id == "RES-A"
        assert loaded.is_balanced()

    @pytest.mark.asyncio
    async def test_unknown_account_rejected(self, ledger_store: LedgerStore) -> None:
        """계정과목표에 없는 코드"""
        entry = LedgerEntry(
            entry_id="e-unknown",
            entry_date=date(2024, 1, 1),
            source_kind=SourceKind.EXPENSE,
            source_ref="exp-x",
            lines=[
                LedgerLine("5999", AccountType.EXPENSE, debit=Decimal("10")),
                LedgerLine("1000", AccountType.ASSET, credit=Decimal("10")),
            ],
        )
        with pytest.raises(UnknownAccountError, match="5999"):
            await ledger_store.append(entry)
        assert await ledger_store.get_entry("e-unknown") is None

    @pytest.mark.asyncio
    async def test_account_type_mismatch_rejected(self, ledger_store: LedgerStore) -> None:
        """코드는 있으나 유형이 다름"""
        entry = LedgerEntry(
            entry_id="e-mismatch",
            entry_date=date(2024, 1, 1),
            source_kind=SourceKind.EXPENSE,
            source_ref="exp-y",
            lines=[
                LedgerLine("4001", AccountType.EXPENSE, debit=Decimal("10")),
                LedgerLine("1000", AccountType.ASSET, credit=Decimal("10")),
            ],
        )
        with pytest.raises(UnknownAccountError, match="type mismatch"):
            await ledger_store.append(entry)

    @pytest.mark.asyncio
    async def test_duplicate_source_ref(self, ledger_store: LedgerStore, builder: LedgerEntryBuilder) -> None:
        """같은 (source_kind, source_ref)는 한 번만"""
        first = _rent(builder, "STU-001", 1, "inv-dup")
        await ledger_store.append(first)

        with pytest.raises(DuplicateSourceRefError) as exc_info:
            await ledger_store.append(_rent(builder, "STU-001", 1, "inv-dup"))

        assert exc_info.value.existing_entry_id == first.entry_id
        assert len(await ledger_store.query()) == 1

    @pytest.mark.asyncio
    async def test_same_ref_different_kind_allowed(
        self, ledger_store: LedgerStore, builder: LedgerEntryBuilder
    ) -> None:
        await ledger_store.append(_rent(builder, "STU-001", 1, "ref-1"))
        await ledger_store.append(builder.expense("VEN-1", "5001", Decimal("5"), date(2024, 1, 2), "ref-1"))
        assert len(await ledger_store.query()) == 2


class TestImmutability:
    """append-only 트리거 테스트"""

    @pytest.mark.asyncio
    async def test_update_entry_blocked(
        self, db: SQLiteAdapter, ledger_store: LedgerStore, builder: LedgerEntryBuilder
    ) -> None:
        entry = _rent(builder, "STU-001", 1, "inv-1")
        await ledger_store.append(entry)

        with pytest.raises(aiosqlite.IntegrityError, match="append-only"):
            await db.execute("UPDATE ledger_line SET debit = '1.00' WHERE entry_id = ?", (entry.entry_id,))

    @pytest.mark.asyncio
    async def test_delete_entry_blocked(
        self, db: SQLiteAdapter, ledger_store: LedgerStore, builder: LedgerEntryBuilder
    ) -> None:
        entry = _rent(builder, "STU-001", 1, "inv-1")
        await ledger_store.append(entry)

        with pytest.raises(aiosqlite.IntegrityError, match="append-only"):
            await db.execute("DELETE FROM ledger_entry WHERE entry_id = ?", (entry.entry_id,))

    @pytest.mark.asyncio
    async def test_referenced_account_blocked(
        self, db: SQLiteAdapter, ledger_store: LedgerStore, builder: LedgerEntryBuilder
    ) -> None:
        await ledger_store.append(_rent(builder, "STU-001", 1, "inv-1"))

        with pytest.raises(aiosqlite.IntegrityError, match="referenced"):
            await db.execute("UPDATE account SET name = 'Renamed' WHERE code = '4001'")

    @pytest.mark.asyncio
    async def test_unreferenced_account_editable(self, db: SQLiteAdapter) -> None:
        await db.execute("UPDATE account SET name = 'Petty Cash' WHERE code = '1000'")
        await db.commit()
        row = await db.fetchone("SELECT name FROM account WHERE code = '1000'")
        assert row[0] == "Petty Cash"


class TestLedgerStoreQuery:
    """분개 조회 테스트"""

    @pytest.mark.asyncio
    async def test_order_by_date_then_insertion(
        self, ledger_store: LedgerStore, builder: LedgerEntryBuilder
    ) -> None:
        """날짜 오름차순, 같은 날짜는 삽입 순서"""
        feb = _rent(builder, "STU-001", 2, "inv-feb")
        jan_b = _rent(builder, "STU-002", 1, "inv-jan-b")
        jan_a = _rent(builder, "STU-003", 1, "inv-jan-a")
        for entry in (feb, jan_b, jan_a):
            await ledger_store.append(entry)

        refs = [e.source_ref for e in await ledger_store.query()]
        assert refs == ["inv-jan-b", "inv-jan-a", "inv-feb"]

    @pytest.mark.asyncio
    async def test_filters(self, ledger_store: LedgerStore, builder: LedgerEntryBuilder) -> None:
        await ledger_store.append(_rent(builder, "STU-001", 1, "inv-1", residence="RES-A"))
        await ledger_store.append(_rent(builder, "STU-002", 2, "inv-2", residence="RES-B"))
        await ledger_store.append(builder.expense("VEN-1", "5001", Decimal("5"), date(2024, 3, 2), "exp-1"))

        by_debtor = await ledger_store.query(EntryFilter(debtor_id="STU-002"))
        assert [e.source_ref for e in by_debtor] == ["inv-2"]

        by_kind = await ledger_store.query(EntryFilter(source_kind=SourceKind.EXPENSE))
        assert [e.source_ref for e in by_kind] == ["exp-1"]

        by_range = await ledger_store.query(
            EntryFilter(date_from=date(2024, 2, 1), date_to=date(2024, 2, 29))
        )
        assert [e.source_ref for e in by_range] == ["inv-2"]

        by_account = await ledger_store.query(EntryFilter(account_code="5001"))
        assert [e.source_ref for e in by_account] == ["exp-1"]
        # 계정 필터여도 분개의 모든 라인 반환
        assert len(by_account[0].lines) == 2

        by_residence = await ledger_store.query(EntryFilter(residence_id="RES-A"))
        assert [e.source_ref for e in by_residence] == ["inv-1"]

    @pytest.mark.asyncio
    async def test_get_by_source_ref(self, ledger_store: LedgerStore, builder: LedgerEntryBuilder) -> None:
        entry = _rent(builder, "STU-001", 1, "inv-1")
        await ledger_store.append(entry)

        found = await ledger_store.get_by_source_ref(SourceKind.INVOICE, "inv-1")
        assert found is not None and found.entry_id == entry.entry_id
        assert await ledger_store.get_by_source_ref(SourceKind.PAYMENT, "inv-1") is None


class TestAccounts:
    """계정 조회/추가 테스트"""

    @pytest.mark.asyncio
    async def test_load_chart(self, ledger_store: LedgerStore) -> None:
        chart = await ledger_store.load_chart()
        assert len(chart) == len(INITIAL_ACCOUNTS)
        assert chart.get("2200").account_type == AccountType.LIABILITY

    @pytest.mark.asyncio
    async def test_add_account(self, ledger_store: LedgerStore) -> None:
        await ledger_store.add_account("5004", AccountType.EXPENSE, "Security")
        account = await ledger_store.get_account("5004")
        assert account is not None and account.name == "Security"

        with pytest.raises(ValueError, match="Duplicate"):
            await ledger_store.add_account("5004", AccountType.EXPENSE, "Security")

    @pytest.mark.asyncio
    async def test_trial_balance(self, ledger_store: LedgerStore, builder: LedgerEntryBuilder) -> None:
        """차변 합계 == 대변 합계"""
        await ledger_store.append(_rent(builder, "STU-001", 1, "inv-1"))
        await ledger_store.append(builder.expense("VEN-1", "5001", Decimal("40"), date(2024, 1, 9), "exp-1"))

        rows = await ledger_store.get_trial_balance()
        by_code = {row["code"]: row for row in rows}
        assert by_code["1100"]["balance"] == Decimal("100.00")
        assert by_code["4001"]["balance"] == Decimal("-100.00")
        assert by_code["1000"]["balance"] == Decimal("-40.00")
        assert sum(row["debit"] for row in rows) == sum(row["credit"] for row in rows)

        earlier = await ledger_store.get_trial_balance(as_of=date(2024, 1, 5))
        assert {row["code"]: row for row in earlier}["5001"]["debit"] == Decimal("0.00")
