"""
복식부기 (Double-Entry Bookkeeping) 원장

기숙사 청구/입금/비용/몰수를 append-only 분개로 기록.

사용 예시:
```python
from core.ledger import LedgerStore, LedgerEntryBuilder, init_ledger_schema

await init_ledger_schema(db)
store = LedgerStore(db)
builder = LedgerEntryBuilder(await store.load_chart(), settings.accounts)

entry = builder.invoice("d-1", ObligationCategory.RENT, Period(2024, 1), Decimal("100"),
                        date(2024, 1, 1), "inv-1")
await store.append(entry)

trial_balance = await store.get_trial_balance()
```
"""

from core.ledger.chart import Account, ChartOfAccounts
from core.ledger.entry_builder import (
    EntryMetadata,
    LedgerEntry,
    LedgerEntryBuilder,
    LedgerLine,
    new_entry_id,
)
from core.ledger.errors import (
    ConcurrentModificationError,
    DuplicateSourceRefError,
    ForfeitureError,
    ImbalancedEntryError,
    LedgerError,
    StatementInvariantViolation,
    UnknownAccountError,
)
from core.ledger.schema import init_ledger_schema
from core.ledger.store import EntryFilter, LedgerStore
from core.ledger.types import INITIAL_ACCOUNTS, NORMAL_BALANCE, AccountType, NormalBalance

__all__ = [
    # 핵심 클래스
    "LedgerStore",
    "LedgerEntryBuilder",
    "LedgerEntry",
    "LedgerLine",
    "EntryMetadata",
    "EntryFilter",
    "Account",
    "ChartOfAccounts",
    "init_ledger_schema",
    "new_entry_id",
    # Enum
    "AccountType",
    "NormalBalance",
    # 상수
    "INITIAL_ACCOUNTS",
    "NORMAL_BALANCE",
    # 예외
    "LedgerError",
    "ImbalancedEntryError",
    "UnknownAccountError",
    "DuplicateSourceRefError",
    "ConcurrentModificationError",
    "StatementInvariantViolation",
    "ForfeitureError",
]
