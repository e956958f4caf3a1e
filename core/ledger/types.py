"""
복식부기 타입 정의

AccountType 등 Ledger 시스템에서 사용하는 Enum과 기본 계정과목표
"""

from enum import Enum


class AccountType(str, Enum):
    """계정 유형

    복식부기의 5대 계정 유형.
    str을 상속하여 JSON/DB 직렬화 가능.
    """

    ASSET = "ASSET"  # 자산 (현금, 미수금)
    LIABILITY = "LIABILITY"  # 부채 (보증금, 선수금, 미지급금)
    EQUITY = "EQUITY"  # 자본 (출자금, 이익잉여금)
    INCOME = "INCOME"  # 수익 (임대료, 관리비)
    EXPENSE = "EXPENSE"  # 비용 (유지보수, 몰수손실)


class NormalBalance(str, Enum):
    """정상 잔액 방향 (차변/대변)"""

    DEBIT = "DEBIT"  # 차변 (자산, 비용)
    CREDIT = "CREDIT"  # 대변 (부채, 자본, 수익)


# 계정 유형별 정상 잔액
NORMAL_BALANCE: dict[AccountType, NormalBalance] = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
    AccountType.INCOME: NormalBalance.CREDIT,
}


# 기본 계정과목표 (스키마 초기화 시 삽입)
INITIAL_ACCOUNTS: list[tuple[str, str, str]] = [
    # (code, account_type, name)

    # ASSET
    ("1000", "ASSET", "Cash"),
    ("1001", "ASSET", "Bank"),
    ("1100", "ASSET", "Accounts Receivable - Tenants"),

    # LIABILITY
    ("2000", "LIABILITY", "Accounts Payable"),
    ("2020", "LIABILITY", "Tenant Deposits Held"),
    ("2200", "LIABILITY", "Advance Payment Liability"),  # 선수금

    # EQUITY
    ("3000", "EQUITY", "Owner's Capital"),
    ("3100", "EQUITY", "Retained Earnings"),  # 조회 시 계산, 직접 기표 안 함

    # INCOME
    ("4001", "INCOME", "Rental Income"),
    ("4002", "INCOME", "Admin Fee Income"),
    ("4010", "INCOME", "Utility Recovery Income"),
    ("4020", "INCOME", "Penalty Income"),

    # EXPENSE
    ("5000", "EXPENSE", "General Expenses"),
    ("5001", "EXPENSE", "Maintenance"),
    ("5002", "EXPENSE", "Utilities"),
    ("5003", "EXPENSE", "Cleaning"),
    ("5900", "EXPENSE", "Forfeiture Loss"),
]
