"""
core/ledger/types.py 테스트

계정 유형, 정상 잔액, 기본 계정과목표
"""

from core.ledger.types import INITIAL_ACCOUNTS, NORMAL_BALANCE, AccountType, NormalBalance


class TestNormalBalance:
    """정상 잔액 매핑 테스트"""

    def test_debit_types(self) -> None:
        assert NORMAL_BALANCE[AccountType.ASSET] == NormalBalance.DEBIT
        assert NORMAL_BALANCE[AccountType.EXPENSE] == NormalBalance.DEBIT

    def test_credit_types(self) -> None:
        for account_type in (AccountType.LIABILITY, AccountType.EQUITY, AccountType.INCOME):
            assert NORMAL_BALANCE[account_type] == NormalBalance.CREDIT

    def test_all_types_mapped(self) -> None:
        assert set(NORMAL_BALANCE) == set(AccountType)


class TestInitialAccounts:
    """기본 계정과목표 테스트"""

    def test_codes_unique(self) -> None:
        codes = [code for code, _, _ in INITIAL_ACCOUNTS]
        assert len(codes) == len(set(codes))

    def test_types_valid(self) -> None:
        for _, kind, _ in INITIAL_ACCOUNTS:
            AccountType(kind)

    def test_required_accounts_present(self) -> None:
        """배분/몰수에 필요한 계정"""
        codes = {code for code, _, _ in INITIAL_ACCOUNTS}
        assert {"1000", "1100", "2020", "2200", "3100", "4001", "4002", "5900"} <= codes

    def test_deposit_is_liability(self) -> None:
        """보증금은 수익이 아닌 부채"""
        kinds = {code: kind for code, kind, _ in INITIAL_ACCOUNTS}
        assert kinds["2020"] == "LIABILITY"
