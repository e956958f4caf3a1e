"""
타입 정의 모듈

Enum, Dataclass 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

import calendar
from dataclasses import dataclass
from datetime import date
from enum import Enum


class SourceKind(str, Enum):
    """분개 출처 유형"""

    PAYMENT = "payment"
    INVOICE = "invoice"
    EXPENSE = "expense"
    FORFEITURE = "forfeiture"
    ADJUSTMENT = "adjustment"


class ObligationCategory(str, Enum):
    """채무 분류 (청구 항목)"""

    RENT = "rent"
    ADMIN_FEE = "admin_fee"
    DEPOSIT = "deposit"
    UTILITY = "utility"
    PENALTY = "penalty"


class StatementBasis(str, Enum):
    """손익 인식 기준"""

    CASH = "cash"  # 현금주의 (입금일 인식)
    ACCRUAL = "accrual"  # 발생주의 (청구일 인식)


class OverpaymentMode(str, Enum):
    """초과 입금 처리 방식

    - FLOATING_CREDIT: 선수금(2200)으로 보관, 자동 상계 없음
    - CARRY_FORWARD: 선수금으로 보관 후 다음 청구 시 자동 상계
    """

    FLOATING_CREDIT = "floating_credit"
    CARRY_FORWARD = "carry_forward"


@dataclass(frozen=True, order=True)
class Period:
    """정산 기간 (연/월, 불변)

    order=True로 (year, month) 순 정렬 가능
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1..12, got {self.month}")

    @classmethod
    def from_date(cls, value: date) -> "Period":
        """날짜가 속한 기간"""
        return cls(value.year, value.month)

    @classmethod
    def parse(cls, value: str) -> "Period":
        """'YYYY-MM' 문자열 파싱

        Raises:
            ValueError: 형식이 잘못된 경우
        """
        try:
            year_str, month_str = value.strip().split("-")
            return cls(int(year_str), int(month_str))
        except (AttributeError, ValueError) as e:
            raise ValueError(f"Invalid period (expected YYYY-MM): {value!r}") from e

    @property
    def start(self) -> date:
        """기간 첫날"""
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        """기간 마지막 날"""
        last_day = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, last_day)

    def next(self) -> "Period":
        """다음 달"""
        if self.month == 12:
            return Period(self.year + 1, 1)
        return Period(self.year, self.month + 1)

    def previous(self) -> "Period":
        """이전 달"""
        if self.month == 1:
            return Period(self.year - 1, 12)
        return Period(self.year, self.month - 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def months_between(first: Period, last: Period) -> list[Period]:
    """first ~ last (양 끝 포함) 기간 목록

    first > last면 빈 목록
    """
    periods: list[Period] = []
    current = first
    while current <= last:
        periods.append(current)
        current = current.next()
    return periods
