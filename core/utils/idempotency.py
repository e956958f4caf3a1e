"""
Idempotency 유틸리티

시스템이 직접 생성하는 분개의 source_ref 규칙.
외부 이벤트(입금, 청구)는 호출자가 source_ref를 넘기고,
내부 분개(선수금 상계, 몰수)는 아래 규칙으로 결정적으로 생성.

규칙:
- 선수금 상계: credit-{trigger}
- 몰수: forfeit-{debtor_id}
"""

CREDIT_PREFIX: str = "credit"
FORFEIT_PREFIX: str = "forfeit"


def make_credit_source_ref(trigger: str) -> str:
    """선수금 상계 분개의 source_ref

    Args:
        trigger: 상계를 유발한 분개 ID 또는 외부 참조

    Returns:
        credit-{trigger} 형식

    Example:
        >>> make_credit_source_ref("0f3c")
        'credit-0f3c'
    """
    if not trigger:
        raise ValueError("trigger는 비어 있을 수 없습니다")

    return f"{CREDIT_PREFIX}-{trigger}"


def make_forfeiture_source_ref(debtor_id: str) -> str:
    """몰수 분개의 source_ref

    채무자당 몰수는 한 번뿐이므로 debtor_id만으로 결정됨.
    재실행 시 같은 source_ref가 생성되어 중복 기록이 방지됨.

    Example:
        >>> make_forfeiture_source_ref("STU-001")
        'forfeit-STU-001'
    """
    if not debtor_id:
        raise ValueError("debtor_id는 비어 있을 수 없습니다")

    return f"{FORFEIT_PREFIX}-{debtor_id}"


def parse_forfeiture_source_ref(source_ref: str) -> str | None:
    """몰수 source_ref에서 debtor_id 추출

    Example:
        >>> parse_forfeiture_source_ref("forfeit-STU-001")
        'STU-001'
        >>> parse_forfeiture_source_ref("pay-123")
        None
    """
    if not source_ref:
        return None

    prefix = f"{FORFEIT_PREFIX}-"

    if source_ref.startswith(prefix):
        debtor_id = source_ref[len(prefix) :]
        return debtor_id if debtor_id else None

    return None
