"""
어댑터 레이어

외부 협력자(DB, 채무자/호실 레지스트리, 알림)와의 연동을 담당.
Protocol 기반 인터페이스로 Mock 교체 가능.
"""

from adapters.interfaces import (
    IDebtorRegistry,
    INotifier,
)

__all__ = [
    # Interfaces
    "IDebtorRegistry",
    "INotifier",
]
