"""
유틸리티 패키지

금액 정규화, 멱등성 키 생성 등 공통 유틸리티
"""

from core.utils.idempotency import (
    make_credit_source_ref,
    make_forfeiture_source_ref,
    parse_forfeiture_source_ref,
)
from core.utils.money import ZERO, money_sum, to_money

__all__ = [
    "ZERO",
    "to_money",
    "money_sum",
    "make_credit_source_ref",
    "make_forfeiture_source_ref",
    "parse_forfeiture_source_ref",
]
