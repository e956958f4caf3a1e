"""
계정과목표

코드 → 계정 유형/정상 잔액 조회.
분개 생성기가 LedgerLine의 account_type을 채울 때 사용.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from core.ledger.errors import UnknownAccountError
from core.ledger.types import INITIAL_ACCOUNTS, NORMAL_BALANCE, AccountType, NormalBalance


@dataclass(frozen=True)
class Account:
    """계정 (불변)

    분개에서 참조된 이후에는 변경 불가 (DB 트리거로 강제)
    """

    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance

    @classmethod
    def create(cls, code: str, account_type: str | AccountType, name: str) -> "Account":
        """정상 잔액을 유형에서 유도하여 생성"""
        kind = AccountType(account_type)
        return cls(
            code=code,
            name=name,
            account_type=kind,
            normal_balance=NORMAL_BALANCE[kind],
        )


class ChartOfAccounts:
    """계정과목표

    Args:
        accounts: 계정 목록 (코드 중복 시 ValueError)
    """

    def __init__(self, accounts: Iterable[Account]):
        self._accounts: dict[str, Account] = {}
        for account in accounts:
            if account.code in self._accounts:
                raise ValueError(f"Duplicate account code: {account.code}")
            self._accounts[account.code] = account

    @classmethod
    def default(cls) -> "ChartOfAccounts":
        """기본 계정과목표 (INITIAL_ACCOUNTS)"""
        return cls(Account.create(code, kind, name) for code, kind, name in INITIAL_ACCOUNTS)

    def get(self, code: str) -> Account:
        """계정 조회

        Raises:
            UnknownAccountError: 없는 코드
        """
        account = self._accounts.get(code)
        if account is None:
            raise UnknownAccountError(code)
        return account

    def __contains__(self, code: object) -> bool:
        return code in self._accounts

    def __iter__(self):
        return iter(self._accounts.values())

    def __len__(self) -> int:
        return len(self._accounts)

    def by_type(self, account_type: AccountType) -> list[Account]:
        """유형별 계정 목록 (코드 순)"""
        return sorted(
            (a for a in self._accounts.values() if a.account_type == account_type),
            key=lambda a: a.code,
        )
