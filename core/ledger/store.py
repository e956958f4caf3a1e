"""
Ledger 저장소

복식부기 분개 저장 및 조회 (append-only)
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import aiosqlite

from core.ledger.chart import Account, ChartOfAccounts
from core.ledger.entry_builder import EntryMetadata, LedgerEntry, LedgerLine
from core.ledger.errors import (
    DuplicateSourceRefError,
    ImbalancedEntryError,
    UnknownAccountError,
)
from core.ledger.types import AccountType
from core.types import ObligationCategory, Period, SourceKind
from core.utils.money import ZERO

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


_ENTRY_COLUMNS = """
    e.seq, e.entry_id, e.entry_date, e.source_kind, e.source_ref, e.description,
    e.debtor_id, e.period, e.category, e.residence_id, e.vendor_id, e.extra_json,
    l.account_code, l.account_type, l.debit, l.credit, l.category, l.period
"""


@dataclass(frozen=True)
class EntryFilter:
    """분개 조회 조건 (모두 선택, AND 결합)"""

    date_from: date | None = None
    date_to: date | None = None
    source_kind: SourceKind | None = None
    debtor_id: str | None = None
    account_code: str | None = None
    residence_id: str | None = None


def _opt_period(value: str | None) -> Period | None:
    return Period.parse(value) if value else None


def _opt_category(value: str | None) -> ObligationCategory | None:
    return ObligationCategory(value) if value else None


class LedgerStore:
    """Ledger 저장소

    분개를 append-only로 저장하고 조회하는 클래스.
    수정/삭제 API는 없음. 정정은 상계 분개로만 가능.

    Args:
        db: SQLite 어댑터
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db
        # 같은 연결을 공유하므로 쓰기 트랜잭션 직렬화
        self._write_lock = asyncio.Lock()

    async def append(self, entry: LedgerEntry) -> str:
        """분개 저장

        트랜잭션 내에서 ledger_entry + ledger_line 저장.
        분개는 메모리에서 완성된 뒤에만 기록되므로 반쯤 쓰인 상태는 없음.

        Args:
            entry: 저장할 분개

        Returns:
            저장된 entry_id

        Raises:
            ImbalancedEntryError: 불균형 분개
            UnknownAccountError: 없는 계정 또는 유형 불일치
            DuplicateSourceRefError: 같은 source_ref 분개가 이미 존재
        """
        if not entry.is_balanced():
            raise ImbalancedEntryError(entry.entry_id, entry.total_debit, entry.total_credit)

        async with self._write_lock:
            await self._verify_accounts(entry)

            existing = await self._find_entry_id(entry.source_kind, entry.source_ref)
            if existing is not None:
                raise DuplicateSourceRefError(entry.source_kind.value, entry.source_ref, existing)

            meta = entry.metadata
            try:
                async with self.db.transaction():
                    await self.db.execute(
                        """
                        INSERT INTO ledger_entry (
                            entry_id, entry_date, source_kind, source_ref, description,
                            debtor_id, period, category, residence_id, vendor_id, extra_json
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            entry.entry_id,
                            entry.entry_date.isoformat(),
                            entry.source_kind.value,
                            entry.source_ref,
                            entry.description,
                            meta.debtor_id,
                            str(meta.period) if meta.period else None,
                            meta.category.value if meta.category else None,
                            meta.residence_id,
                            meta.vendor_id,
                            json.dumps(meta.extra) if meta.extra else None,
                        ),
                    )

                    await self.db.executemany(
                        """
                        INSERT INTO ledger_line (
                            entry_id, line_order, account_code, account_type,
                            debit, credit, category, period
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        [
                            (
                                entry.entry_id,
                                i,
                                line.account_code,
                                line.account_type.value,
                                str(line.debit),
                                str(line.credit),
                                line.category.value if line.category else None,
                                str(line.period) if line.period else None,
                            )
                            for i, line in enumerate(entry.lines)
                        ],
                    )
            except aiosqlite.IntegrityError as e:
                # 다른 연결에서 같은 source_ref가 먼저 기록된 경우
                existing = await self._find_entry_id(entry.source_kind, entry.source_ref)
                if existing is not None:
                    raise DuplicateSourceRefError(
                        entry.source_kind.value, entry.source_ref, existing
                    ) from e
                raise

        logger.debug(
            "분개 저장 완료",
            extra={"entry_id": entry.entry_id, "source_kind": entry.source_kind.value},
        )
        return entry.entry_id

    async def _verify_accounts(self, entry: LedgerEntry) -> None:
        """라인의 계정 코드/유형이 계정과목표와 일치하는지 확인"""
        codes = sorted({line.account_code for line in entry.lines})
        placeholders = ", ".join("?" for _ in codes)
        rows = await self.db.fetchall(
            f"SELECT code, account_type FROM account WHERE is_active = 1 AND code IN ({placeholders})",
            tuple(codes),
        )
        known = {row[0]: row[1] for row in rows}

        for line in entry.lines:
            account_type = known.get(line.account_code)
            if account_type is None:
                raise UnknownAccountError(line.account_code)
            if account_type != line.account_type.value:
                raise UnknownAccountError(
                    line.account_code,
                    f"type mismatch: chart={account_type} line={line.account_type.value}",
                )

    async def _find_entry_id(self, source_kind: SourceKind, source_ref: str) -> str | None:
        row = await self.db.fetchone(
            "SELECT entry_id FROM ledger_entry WHERE source_kind = ? AND source_ref = ?",
            (source_kind.value, source_ref),
        )
        return row[0] if row else None

    # =====================================
    # 조회
    # =====================================

    async def query(self, criteria: EntryFilter | None = None) -> list[LedgerEntry]:
        """분개 조회

        단일 SELECT로 읽으므로 하나의 시점 스냅샷을 반환.
        정렬: 날짜 오름차순, 같은 날짜는 삽입 순서.

        Args:
            criteria: 조회 조건 (None이면 전체)

        Returns:
            분개 목록
        """
        criteria = criteria or EntryFilter()
        sql = f"""
            SELECT {_ENTRY_COLUMNS}
            FROM ledger_entry e
            JOIN ledger_line l ON l.entry_id = e.entry_id
            WHERE 1 = 1
        """
        params: list[Any] = []

        if criteria.date_from:
            sql += " AND e.entry_date >= ?"
            params.append(criteria.date_from.isoformat())

        if criteria.date_to:
            sql += " AND e.entry_date <= ?"
            params.append(criteria.date_to.isoformat())

        if criteria.source_kind:
            sql += " AND e.source_kind = ?"
            params.append(SourceKind(criteria.source_kind).value)

        if criteria.debtor_id:
            sql += " AND e.debtor_id = ?"
            params.append(criteria.debtor_id)

        if criteria.residence_id:
            sql += " AND e.residence_id = ?"
            params.append(criteria.residence_id)

        if criteria.account_code:
            sql += " AND e.entry_id IN (SELECT entry_id FROM ledger_line WHERE account_code = ?)"
            params.append(criteria.account_code)

        sql += " ORDER BY e.entry_date, e.seq, l.line_order"

        rows = await self.db.fetchall(sql, tuple(params))
        return self._rows_to_entries(rows)

    async def get_entry(self, entry_id: str) -> LedgerEntry | None:
        """분개 단건 조회"""
        rows = await self.db.fetchall(
            f"""
            SELECT {_ENTRY_COLUMNS}
            FROM ledger_entry e
            JOIN ledger_line l ON l.entry_id = e.entry_id
            WHERE e.entry_id = ?
            ORDER BY l.line_order
            """,
            (entry_id,),
        )
        entries = self._rows_to_entries(rows)
        return entries[0] if entries else None

    async def get_by_source_ref(
        self,
        source_kind: SourceKind,
        source_ref: str,
    ) -> LedgerEntry | None:
        """source_ref로 분개 조회 (멱등성 확인용)"""
        entry_id = await self._find_entry_id(SourceKind(source_kind), source_ref)
        if entry_id is None:
            return None
        return await self.get_entry(entry_id)

    @staticmethod
    def _rows_to_entries(rows: list[tuple[Any, ...]]) -> list[LedgerEntry]:
        """JOIN 결과 → LedgerEntry 목록 (행 순서 유지)"""
        headers: dict[int, tuple[Any, ...]] = {}
        lines: dict[int, list[LedgerLine]] = {}

        for row in rows:
            seq = row[0]
            if seq not in headers:
                headers[seq] = row[:12]
                lines[seq] = []
            lines[seq].append(LedgerLine(
                account_code=row[12],
                account_type=AccountType(row[13]),
                debit=Decimal(row[14]),
                credit=Decimal(row[15]),
                category=_opt_category(row[16]),
                period=_opt_period(row[17]),
            ))

        entries = []
        for seq, header in headers.items():
            entries.append(LedgerEntry(
                entry_id=header[1],
                entry_date=date.fromisoformat(header[2]),
                source_kind=SourceKind(header[3]),
                source_ref=header[4],
                description=header[5],
                lines=tuple(lines[seq]),
                metadata=EntryMetadata(
                    debtor_id=header[6],
                    period=_opt_period(header[7]),
                    category=_opt_category(header[8]),
                    residence_id=header[9],
                    vendor_id=header[10],
                    extra=json.loads(header[11]) if header[11] else {},
                ),
                seq=seq,
            ))
        return entries

    # =====================================
    # 계정
    # =====================================

    async def get_account(self, code: str) -> Account | None:
        """계정 정보 조회"""
        row = await self.db.fetchone(
            "SELECT code, account_type, name FROM account WHERE code = ?",
            (code,),
        )
        if not row:
            return None
        return Account.create(row[0], row[1], row[2])

    async def list_accounts(self, account_type: AccountType | None = None) -> list[Account]:
        """활성 계정 목록 (코드 순)"""
        sql = "SELECT code, account_type, name FROM account WHERE is_active = 1"
        params: list[Any] = []

        if account_type:
            sql += " AND account_type = ?"
            params.append(AccountType(account_type).value)

        sql += " ORDER BY code"

        rows = await self.db.fetchall(sql, tuple(params))
        return [Account.create(row[0], row[1], row[2]) for row in rows]

    async def load_chart(self) -> ChartOfAccounts:
        """DB의 계정과목표"""
        return ChartOfAccounts(await self.list_accounts())

    async def add_account(self, code: str, account_type: AccountType, name: str) -> Account:
        """계정 추가

        Raises:
            ValueError: 이미 존재하는 코드
        """
        account = Account.create(code, account_type, name)
        async with self._write_lock:
            try:
                async with self.db.transaction():
                    await self.db.execute(
                        """
                        INSERT INTO account (code, account_type, normal_balance, name)
                        VALUES (?, ?, ?, ?)
                        """,
                        (account.code, account.account_type.value, account.normal_balance.value, name),
                    )
            except aiosqlite.IntegrityError as e:
                raise ValueError(f"Duplicate account code: {code}") from e
        logger.info("계정 추가", extra={"code": code, "account_type": account.account_type.value})
        return account

    async def get_trial_balance(self, as_of: date | None = None) -> list[dict[str, Any]]:
        """시산표 조회

        계정별 차변/대변 합계. 금액은 TEXT이므로 Python Decimal로 합산.

        Args:
            as_of: 기준일 (None이면 전체)

        Returns:
            계정별 합계 목록 (코드 순)
        """
        entries = await self.query(EntryFilter(date_to=as_of))
        accounts = await self.list_accounts()

        totals: dict[str, list[Decimal]] = {a.code: [ZERO, ZERO] for a in accounts}
        for entry in entries:
            for line in entry.lines:
                pair = totals.setdefault(line.account_code, [ZERO, ZERO])
                pair[0] += line.debit
                pair[1] += line.credit

        result = []
        for account in accounts:
            debit_total, credit_total = totals[account.code]
            result.append({
                "code": account.code,
                "name": account.name,
                "account_type": account.account_type.value,
                "debit": debit_total,
                "credit": credit_total,
                "balance": debit_total - credit_total,
            })
        return result
