"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IDebtorRegistry(Protocol):
    """채무자/호실 레지스트리 인터페이스

    Ledger는 호실 개념이 없으므로 몰수 시 호실 해제는
    이 외부 협력자에게 신호로 전달.
    모든 메서드는 같은 debtor_id로 여러 번 호출해도 안전해야 함.
    """

    async def release_room(self, debtor_id: str) -> None:
        """채무자에게 배정된 호실 해제

        Args:
            debtor_id: 채무자 ID

        Raises:
            Exception: 해제 실패 (몰수 워크플로가 REVERSING 상태로 남음)
        """
        ...

    async def mark_forfeited(self, debtor_id: str, reason: str) -> None:
        """채무자 레코드를 몰수 상태로 표시

        Args:
            debtor_id: 채무자 ID
            reason: 몰수 사유
        """
        ...

    async def is_room_released(self, debtor_id: str) -> bool:
        """호실 해제 여부 (재처리 판단용)

        Args:
            debtor_id: 채무자 ID

        Returns:
            이미 해제되었으면 True
        """
        ...

    async def is_forfeited(self, debtor_id: str) -> bool:
        """몰수 표시 여부 (재처리 판단용)

        Args:
            debtor_id: 채무자 ID

        Returns:
            mark_forfeited가 이미 반영되었으면 True
        """
        ...


@runtime_checkable
class INotifier(Protocol):
    """알림 서비스 인터페이스

    정합성 경고(호실 미해제 등)를 운영자에게 전송.
    """

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """알림 전송

        Args:
            message: 알림 메시지
            level: 알림 레벨 (INFO, WARNING, ERROR, CRITICAL)
            extra: 추가 데이터 (선택)

        Returns:
            전송 성공 여부
        """
        ...
