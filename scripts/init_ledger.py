"""
Ledger 스키마 초기화

사용법:
    python -m scripts.init_ledger
    python -m scripts.init_ledger --config config/ledger.yaml
    python -m scripts.init_ledger --db data/residence_ledger.db
"""

import argparse
import asyncio
import logging
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.db.sqlite_adapter import SQLiteAdapter, get_db_path
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.logging import setup_logging

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ["account", "ledger_entry", "ledger_line"]


async def verify_schema(db: SQLiteAdapter) -> bool:
    """테이블 존재 확인"""
    for table in REQUIRED_TABLES:
        if not await db.table_exists(table):
            logger.error(f"테이블 누락: {table}")
            return False
        logger.info(f"테이블 확인: {table} ✓")
    return True


async def main(db_path: Path) -> None:
    """스키마 초기화 실행

    Args:
        db_path: Ledger DB 경로
    """
    logger.info(f"스키마 초기화 시작: {db_path}")

    async with SQLiteAdapter(db_path) as db:
        await init_ledger_schema(db)

        if not await verify_schema(db):
            raise RuntimeError("스키마 검증 실패")

        accounts = await LedgerStore(db).list_accounts()
        logger.info(f"등록된 계정 수: {len(accounts)}")
        for account in accounts:
            logger.info(f"  {account.code} {account.account_type.value:<9} {account.name}")

    logger.info("스키마 초기화 완료 ✓")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ledger 스키마 초기화")
    parser.add_argument("--config", type=Path, default=None, help="ledger.yaml 경로")
    parser.add_argument("--db", type=Path, default=None, help="DB 경로 (설정보다 우선)")
    args = parser.parse_args()

    setup_logging("init_ledger")
    asyncio.run(main(args.db or get_db_path(args.config)))
