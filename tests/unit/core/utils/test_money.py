"""
core/utils/money.py 테스트

금액 정규화 (소수점 2자리 Decimal), float 거부
"""

from decimal import Decimal

import pytest

from core.utils.money import ZERO, money_sum, to_money


class TestToMoney:
    """to_money 함수 테스트"""

    def test_decimal_quantized(self) -> None:
        """소수점 2자리 고정"""
        assert to_money(Decimal("10.5")) == Decimal("10.50")
        assert str(to_money(Decimal("10.5"))) == "10.50"

    def test_int_and_str(self) -> None:
        """int, 문자열 허용"""
        assert to_money(100) == Decimal("100.00")
        assert to_money("99.99") == Decimal("99.99")

    def test_half_up_rounding(self) -> None:
        """반올림 (ROUND_HALF_UP)"""
        assert to_money("0.005") == Decimal("0.01")
        assert to_money("2.675") == Decimal("2.68")

    def test_float_rejected(self) -> None:
        """float 거부"""
        with pytest.raises(TypeError):
            to_money(10.5)  # type: ignore[arg-type]

    def test_bool_rejected(self) -> None:
        """bool 거부 (int 하위 타입)"""
        with pytest.raises(TypeError):
            to_money(True)  # type: ignore[arg-type]

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity"])
    def test_invalid_values(self, value: str) -> None:
        """숫자가 아닌 값"""
        with pytest.raises(ValueError):
            to_money(value)

    def test_negative_allowed(self) -> None:
        """음수 자체는 허용 (조정 분개)"""
        assert to_money("-20") == Decimal("-20.00")


class TestMoneySum:
    """money_sum 함수 테스트"""

    def test_empty(self) -> None:
        assert money_sum([]) == ZERO

    def test_no_drift(self) -> None:
        """반복 합산해도 오차 없음"""
        values = [to_money("0.10")] * 1000
        assert money_sum(values) == Decimal("100.00")
