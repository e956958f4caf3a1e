"""
Mock 채무자 레지스트리

테스트용 Mock Registry.
IDebtorRegistry Protocol 준수.
"""

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass
class RegistryCall:
    """레지스트리 호출 기록"""

    method: str
    debtor_id: str
    timestamp: datetime


class MockDebtorRegistry:
    """Mock 채무자 레지스트리

    IDebtorRegistry Protocol 구현.
    호실 해제/몰수 표시를 메모리에 기록하고 실패를 주입할 수 있음.

    사용 예시:
    ```python
    registry = MockDebtorRegistry(fail_release=True)

    with pytest.raises(ForfeitureError):
        await workflow.forfeit("STU-001", "no-show", date(2024, 9, 14))

    registry.fail_release = False
    await workflow.forfeit("STU-001", "no-show", date(2024, 9, 14))
    assert registry.released_rooms == ["STU-001"]
    ```
    """

    def __init__(self, fail_release: bool = False, fail_mark: bool = False):
        """
        Args:
            fail_release: True면 release_room 실패
            fail_mark: True면 mark_forfeited 실패
        """
        self.fail_release = fail_release
        self.fail_mark = fail_mark
        self.released_rooms: list[str] = []
        self.forfeited: dict[str, str] = {}
        self.calls: list[RegistryCall] = []

    def _record(self, method: str, debtor_id: str) -> None:
        self.calls.append(RegistryCall(
            method=method,
            debtor_id=debtor_id,
            timestamp=datetime.now(timezone.utc),
        ))

    async def release_room(self, debtor_id: str) -> None:
        """호실 해제"""
        self._record("release_room", debtor_id)
        if self.fail_release:
            raise ConnectionError(f"Room registry unavailable for {debtor_id}")
        if debtor_id not in self.released_rooms:
            self.released_rooms.append(debtor_id)

    async def mark_forfeited(self, debtor_id: str, reason: str) -> None:
        """몰수 표시"""
        self._record("mark_forfeited", debtor_id)
        if self.fail_mark:
            raise ConnectionError(f"Debtor registry unavailable for {debtor_id}")
        self.forfeited[debtor_id] = reason

    async def is_room_released(self, debtor_id: str) -> bool:
        """호실 해제 여부"""
        return debtor_id in self.released_rooms

    async def is_forfeited(self, debtor_id: str) -> bool:
        """몰수 표시 여부"""
        return debtor_id in self.forfeited

    # -------------------------------------------------------------------------
    # 테스트 헬퍼 메서드
    # -------------------------------------------------------------------------

    def calls_for(self, method: str) -> list[RegistryCall]:
        """특정 메서드 호출 기록"""
        return [c for c in self.calls if c.method == method]

    def clear(self) -> None:
        """기록 초기화"""
        self.released_rooms.clear()
        self.forfeited.clear()
        self.calls.clear()
