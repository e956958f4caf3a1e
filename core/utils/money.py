"""
금액 유틸리티

모든 금액은 소수점 2자리(최소 화폐 단위)로 고정된 Decimal.
float는 반복 집계 시 반올림 오차가 누적되므로 허용하지 않음.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from core.constants import Defaults

ZERO: Decimal = Decimal("0.00")

_QUANTUM: Decimal = Decimal(1).scaleb(-Defaults.MONEY_PLACES)


def to_money(value: Decimal | int | str) -> Decimal:
    """금액 정규화

    Args:
        value: Decimal, int 또는 숫자 문자열

    Returns:
        소수점 2자리로 고정된 Decimal

    Raises:
        TypeError: float 등 허용되지 않는 타입
        ValueError: 숫자가 아닌 문자열

    Example:
        >>> to_money("10.5")
        Decimal('10.50')
    """
    if isinstance(value, bool) or not isinstance(value, (Decimal, int, str)):
        raise TypeError(f"Money must be Decimal, int or str, got {type(value).__name__}")

    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"Invalid money value: {value!r}") from e

    if not amount.is_finite():
        raise ValueError(f"Invalid money value: {value!r}")

    return amount.quantize(_QUANTUM, rounding=ROUND_HALF_UP)


def money_sum(values: "list[Decimal] | tuple[Decimal, ...]") -> Decimal:
    """금액 합계 (빈 목록이면 0.00)"""
    total = ZERO
    for value in values:
        total += value
    return total
