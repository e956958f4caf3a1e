"""
재무 리포트 출력

사용법:
    python -m scripts.ledger_report balance --as-of 2024-12-31
    python -m scripts.ledger_report income --from 2024-01-01 --to 2024-12-31 --basis cash
    python -m scripts.ledger_report monthly --first 2024-01 --last 2024-12
    python -m scripts.ledger_report aging --as-of 2024-12-31
"""

import argparse
import asyncio
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.accounting.obligations import ObligationTracker
from core.accounting.statements import AgingReport, StatementEngine, StatementSnapshot
from core.config.loader import get_settings
from core.ledger.store import LedgerStore
from core.logging import setup_logging
from core.types import Period, StatementBasis

logger = logging.getLogger(__name__)


def _money(value: Decimal) -> str:
    return f"{value:>14,.2f}"


def render_statement(snapshot: StatementSnapshot, names: dict[str, str]) -> str:
    """재무제표 → 텍스트"""
    lines = [
        f"{snapshot.title} [{snapshot.period_label}] ({snapshot.basis.value})",
        "-" * 60,
    ]
    for code in sorted(snapshot.account_balances):
        amount = snapshot.account_balances[code]
        if amount == 0:
            continue
        lines.append(f"{code}  {names.get(code, ''):<36}{_money(amount)}")
    lines.append("-" * 60)
    for account_type, total in snapshot.totals_by_account_type.items():
        lines.append(f"{account_type.value:<42}{_money(total)}")
    lines.append(f"{'Net income':<42}{_money(snapshot.net_income)}")
    lines.append(f"{'Retained earnings (cumulative)':<42}{_money(snapshot.cumulative_retained_earnings)}")
    return "\n".join(lines)


def render_aging(report: AgingReport) -> str:
    """연령 분석 → 텍스트"""
    labels = list(report.buckets)
    header = f"{'Debtor':<16}" + "".join(f"{label:>14}" for label in labels)
    lines = [f"Receivables aging as of {report.as_of.isoformat()}", header, "-" * len(header)]
    for debtor_id, row in report.by_debtor.items():
        lines.append(f"{debtor_id:<16}" + "".join(_money(row[label]) for label in labels))
    lines.append("-" * len(header))
    lines.append(f"{'Total':<16}" + "".join(_money(report.buckets[label]) for label in labels))
    return "\n".join(lines)


async def main(args: argparse.Namespace) -> None:
    settings = get_settings(args.config).ledger

    async with SQLiteAdapter(settings.db_path, readonly=True) as db:
        store = LedgerStore(db)
        chart = await store.load_chart()
        tracker = ObligationTracker(store, settings.allocation, settings.accounts)
        engine = StatementEngine(store, chart, settings.accounts, tracker)
        names = {account.code: account.name for account in chart}

        if args.report == "balance":
            snapshot = await engine.balance_sheet(args.as_of, args.residence)
            print(render_statement(snapshot, names))
        elif args.report == "income":
            snapshot = await engine.income_statement(args.date_from, args.date_to, args.basis)
            print(render_statement(snapshot, names))
        elif args.report == "monthly":
            for snapshot in await engine.monthly_statements(args.first, args.last, args.basis):
                print(render_statement(snapshot, names))
                print()
        else:
            print(render_aging(await engine.receivables_aging(args.as_of)))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="재무 리포트 출력")
    parser.add_argument("--config", type=Path, default=None, help="ledger.yaml 경로")
    sub = parser.add_subparsers(dest="report", required=True)

    balance = sub.add_parser("balance", help="재무상태표")
    balance.add_argument("--as-of", type=date.fromisoformat, default=date.today())
    balance.add_argument("--residence", default=None)

    income = sub.add_parser("income", help="손익계산서")
    income.add_argument("--from", dest="date_from", type=date.fromisoformat, required=True)
    income.add_argument("--to", dest="date_to", type=date.fromisoformat, required=True)
    income.add_argument("--basis", type=StatementBasis, default=StatementBasis.ACCRUAL)

    monthly = sub.add_parser("monthly", help="월별 손익계산서")
    monthly.add_argument("--first", type=Period.parse, required=True)
    monthly.add_argument("--last", type=Period.parse, required=True)
    monthly.add_argument("--basis", type=StatementBasis, default=StatementBasis.ACCRUAL)

    aging = sub.add_parser("aging", help="미수금 연령 분석")
    aging.add_argument("--as-of", type=date.fromisoformat, default=date.today())

    args = parser.parse_args()

    setup_logging("ledger_report", console_level=logging.WARNING)
    asyncio.run(main(args))
