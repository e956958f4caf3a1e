"""
Ledger 예외 정의

재시도 가능 여부:
- ImbalancedEntryError: 프로그래밍 오류, 재시도 불가
- UnknownAccountError: 호출자 입력 오류, 재시도 불가
- DuplicateSourceRefError: 재전송된 이벤트, 이전 결과 반환으로 해소
- ConcurrentModificationError: 채무자 락 경합, backoff 후 재시도 가능
- StatementInvariantViolation: 재무제표 항등식 위반, 치명적
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from core.accounting.forfeiture import ForfeitureResult


class LedgerError(Exception):
    """Ledger 기본 예외"""
    pass


class ImbalancedEntryError(LedgerError):
    """차변 합계 ≠ 대변 합계"""

    def __init__(self, entry_id: str, total_debit: Decimal, total_credit: Decimal):
        self.entry_id = entry_id
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Unbalanced entry {entry_id}: debit={total_debit} credit={total_credit}"
        )


class UnknownAccountError(LedgerError):
    """계정과목표에 없는 계정 코드"""

    def __init__(self, account_code: str, detail: str | None = None):
        self.account_code = account_code
        message = f"Unknown account: {account_code}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class DuplicateSourceRefError(LedgerError):
    """같은 (source_kind, source_ref) 분개가 이미 존재"""

    def __init__(self, source_kind: str, source_ref: str, existing_entry_id: str | None):
        self.source_kind = source_kind
        self.source_ref = source_ref
        self.existing_entry_id = existing_entry_id
        super().__init__(
            f"Duplicate {source_kind} source_ref {source_ref!r} "
            f"(existing entry: {existing_entry_id})"
        )


class ConcurrentModificationError(LedgerError):
    """채무자 락 획득 실패 (재시도 가능)"""

    def __init__(self, debtor_id: str, timeout_sec: float):
        self.debtor_id = debtor_id
        self.timeout_sec = timeout_sec
        super().__init__(
            f"Debtor {debtor_id} is locked by another operation "
            f"(waited {timeout_sec}s)"
        )


class StatementInvariantViolation(LedgerError):
    """자산 ≠ 부채 + 자본"""

    def __init__(self, title: str, totals: dict[str, Any]):
        self.title = title
        self.totals = totals
        super().__init__(f"{title}: Assets != Liabilities + Equity {totals}")


class ForfeitureError(LedgerError):
    """몰수 처리 실패

    result.state로 실패 지점을 구분:
    - FAILED: 분개 기록 전 실패, 아무 것도 반영되지 않음
    - REVERSING: 분개는 기록됐으나 호실 해제 실패 (재실행으로 복구)
    """

    def __init__(self, message: str, result: ForfeitureResult):
        self.result = result
        super().__init__(message)
