"""
복식부기 스키마 초기화

시작 시 Ledger 테이블, 인덱스, 트리거를 생성하고 기본 계정을 삽입.
CREATE IF NOT EXISTS 패턴으로 여러 번 호출해도 안전.

분개 불변성은 트리거로 강제:
- ledger_entry / ledger_line UPDATE, DELETE 금지
- 분개에서 참조된 account UPDATE, DELETE 금지
"""

import logging
from typing import TYPE_CHECKING

from core.ledger.types import INITIAL_ACCOUNTS, NORMAL_BALANCE, AccountType

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """Ledger 스키마 초기화 (테이블 + 트리거 + 기본 계정)

    Args:
        db: SQLiteAdapter 인스턴스
    """
    await _create_ledger_tables(db)
    await _create_ledger_indexes(db)
    await _create_immutability_triggers(db)
    await _insert_initial_accounts(db)
    await db.commit()
    logger.info("Ledger 스키마 초기화 완료")


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """Ledger 테이블 생성"""

    # account 테이블
    await db.execute("""
        CREATE TABLE IF NOT EXISTS account (
            code             TEXT PRIMARY KEY,
            account_type     TEXT NOT NULL,
            normal_balance   TEXT NOT NULL,
            name             TEXT NOT NULL,
            is_active        INTEGER DEFAULT 1,
            created_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    # ledger_entry 테이블 (seq = 삽입 순서, 같은 날짜 정렬 기준)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS ledger_entry (
            seq              INTEGER PRIMARY KEY AUTOINCREMENT,
            entry_id         TEXT NOT NULL UNIQUE,
            entry_date       TEXT NOT NULL,
            source_kind      TEXT NOT NULL,
            source_ref       TEXT NOT NULL,
            description      TEXT,
            debtor_id        TEXT,
            period           TEXT,
            category         TEXT,
            residence_id     TEXT,
            vendor_id        TEXT,
            extra_json       TEXT,
            created_at       TEXT NOT NULL DEFAULT (datetime('now')),
            UNIQUE(source_kind, source_ref)
        )
    """)

    # ledger_line 테이블
    await db.execute("""
        CREATE TABLE IF NOT EXISTS ledger_line (
            line_id          INTEGER PRIMARY KEY AUTOINCREMENT,
            entry_id         TEXT NOT NULL,
            line_order       INTEGER NOT NULL,
            account_code     TEXT NOT NULL,
            account_type     TEXT NOT NULL,
            debit            TEXT NOT NULL DEFAULT '0.00',
            credit           TEXT NOT NULL DEFAULT '0.00',
            category         TEXT,
            period           TEXT,
            FOREIGN KEY (entry_id) REFERENCES ledger_entry(entry_id),
            FOREIGN KEY (account_code) REFERENCES account(code)
        )
    """)


async def _create_ledger_indexes(db: "SQLiteAdapter") -> None:
    """조회용 인덱스"""
    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_entry_date
        ON ledger_entry(entry_date, seq)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_entry_debtor
        ON ledger_entry(debtor_id, entry_date)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_line_entry
        ON ledger_line(entry_id, line_order)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_line_account
        ON ledger_line(account_code)
    """)


async def _create_immutability_triggers(db: "SQLiteAdapter") -> None:
    """append-only 트리거"""
    for table in ("ledger_entry", "ledger_line"):
        for action in ("UPDATE", "DELETE"):
            await db.execute(f"""
                CREATE TRIGGER IF NOT EXISTS trg_{table}_no_{action.lower()}
                BEFORE {action} ON {table}
                BEGIN
                    SELECT RAISE(ABORT, '{table} is append-only');
                END
            """)

    for action in ("UPDATE", "DELETE"):
        await db.execute(f"""
            CREATE TRIGGER IF NOT EXISTS trg_account_referenced_no_{action.lower()}
            BEFORE {action} ON account
            WHEN EXISTS (SELECT 1 FROM ledger_line WHERE account_code = OLD.code)
            BEGIN
                SELECT RAISE(ABORT, 'account is referenced by ledger entries');
            END
        """)


async def _insert_initial_accounts(db: "SQLiteAdapter") -> None:
    """기본 계정 삽입 (이미 있으면 무시)"""
    await db.executemany(
        """
        INSERT OR IGNORE INTO account (code, account_type, normal_balance, name)
        VALUES (?, ?, ?, ?)
        """,
        [
            (code, kind, NORMAL_BALANCE[AccountType(kind)].value, name)
            for code, kind, name in INITIAL_ACCOUNTS
        ],
    )
