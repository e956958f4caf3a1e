"""
core/types.py 테스트

Enum 직렬화, Period 연산
"""

from datetime import date

import pytest

from core.types import (
    ObligationCategory,
    OverpaymentMode,
    Period,
    SourceKind,
    StatementBasis,
    months_between,
)


class TestEnums:
    """Enum 테스트"""

    def test_str_enum_values(self) -> None:
        """str 상속으로 문자열 비교 가능"""
        assert SourceKind.PAYMENT == "payment"
        assert ObligationCategory.ADMIN_FEE == "admin_fee"
        assert StatementBasis.CASH == "cash"
        assert OverpaymentMode.CARRY_FORWARD == "carry_forward"

    def test_source_kinds(self) -> None:
        assert {k.value for k in SourceKind} == {
            "payment", "invoice", "expense", "forfeiture", "adjustment",
        }

    def test_from_value(self) -> None:
        assert ObligationCategory("rent") is ObligationCategory.RENT


class TestPeriod:
    """Period 테스트"""

    def test_str(self) -> None:
        assert str(Period(2024, 3)) == "2024-03"

    def test_invalid_month(self) -> None:
        with pytest.raises(ValueError):
            Period(2024, 13)

    def test_parse(self) -> None:
        assert Period.parse("2024-01") == Period(2024, 1)

    @pytest.mark.parametrize("value", ["2024", "2024-13", "abc", "2024-01-05"])
    def test_parse_invalid(self, value: str) -> None:
        with pytest.raises(ValueError):
            Period.parse(value)

    def test_ordering(self) -> None:
        """연/월 순 정렬"""
        periods = [Period(2024, 2), Period(2023, 12), Period(2024, 1)]
        assert sorted(periods) == [Period(2023, 12), Period(2024, 1), Period(2024, 2)]

    def test_start_end(self) -> None:
        """윤년 2월 마지막 날"""
        period = Period(2024, 2)
        assert period.start == date(2024, 2, 1)
        assert period.end == date(2024, 2, 29)

    def test_next_previous_across_year(self) -> None:
        assert Period(2024, 12).next() == Period(2025, 1)
        assert Period(2025, 1).previous() == Period(2024, 12)

    def test_from_date(self) -> None:
        assert Period.from_date(date(2024, 7, 15)) == Period(2024, 7)

    def test_hashable(self) -> None:
        assert len({Period(2024, 1), Period(2024, 1)}) == 1


class TestMonthsBetween:
    """months_between 함수 테스트"""

    def test_inclusive(self) -> None:
        result = months_between(Period(2024, 11), Period(2025, 2))
        assert [str(p) for p in result] == ["2024-11", "2024-12", "2025-01", "2025-02"]

    def test_reversed_is_empty(self) -> None:
        assert months_between(Period(2024, 3), Period(2024, 1)) == []
