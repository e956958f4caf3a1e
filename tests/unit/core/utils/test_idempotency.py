"""
core/utils/idempotency.py 테스트

내부 분개 source_ref 생성, 파싱 테스트
"""

import pytest

from core.utils.idempotency import (
    CREDIT_PREFIX,
    FORFEIT_PREFIX,
    make_credit_source_ref,
    make_forfeiture_source_ref,
    parse_forfeiture_source_ref,
)


class TestPrefixes:
    """접두사 상수 테스트"""

    def test_prefix_values(self) -> None:
        """접두사 값 확인"""
        assert CREDIT_PREFIX == "credit"
        assert FORFEIT_PREFIX == "forfeit"


class TestMakeCreditSourceRef:
    """make_credit_source_ref 함수 테스트"""

    def test_basic_generation(self) -> None:
        """기본 생성"""
        assert make_credit_source_ref("0f3c") == "credit-0f3c"

    def test_deterministic(self) -> None:
        """동일 입력 → 동일 출력"""
        assert make_credit_source_ref("inv-1") == make_credit_source_ref("inv-1")

    def test_empty_trigger_raises(self) -> None:
        """빈 trigger 거부"""
        with pytest.raises(ValueError):
            make_credit_source_ref("")


class TestForfeitureSourceRef:
    """몰수 source_ref 생성/파싱 테스트"""

    def test_make(self) -> None:
        """debtor_id로 결정"""
        assert make_forfeiture_source_ref("STU-001") == "forfeit-STU-001"

    def test_empty_debtor_raises(self) -> None:
        """빈 debtor_id 거부"""
        with pytest.raises(ValueError):
            make_forfeiture_source_ref("")

    def test_parse_roundtrip(self) -> None:
        """생성한 값에서 debtor_id 복원 (하이픈 포함 ID)"""
        ref = make_forfeiture_source_ref("STU-001")
        assert parse_forfeiture_source_ref(ref) == "STU-001"

    @pytest.mark.parametrize("value", ["", "pay-123", "forfeit-", "credit-STU-001"])
    def test_parse_other_refs(self, value: str) -> None:
        """몰수 형식이 아니면 None"""
        assert parse_forfeiture_source_ref(value) is None
