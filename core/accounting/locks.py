"""
채무자별 락

같은 채무자에 대한 배분/몰수는 상호 배제.
서로 다른 채무자는 서로 기다리지 않음 (전역 락 없음).
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from core.constants import Defaults
from core.ledger.errors import ConcurrentModificationError

logger = logging.getLogger(__name__)


class DebtorLockManager:
    """채무자 ID별 asyncio.Lock 관리

    Args:
        timeout_sec: 락 획득 대기 상한 (초과 시 ConcurrentModificationError)

    사용 예시:
    ```python
    locks = DebtorLockManager(timeout_sec=5.0)

    async with locks.hold("STU-001"):
        outstanding = await tracker.outstanding("STU-001", today)
        await store.append(entry)
    ```
    """

    def __init__(self, timeout_sec: float = Defaults.LOCK_TIMEOUT_SEC):
        if timeout_sec <= 0:
            raise ValueError("timeout_sec must be positive")
        self.timeout_sec = timeout_sec
        self._locks: dict[str, asyncio.Lock] = {}
        # 보유자 + 대기자 수. 0이 되면 락 항목 제거
        self._users: dict[str, int] = {}

    def _lock_for(self, debtor_id: str) -> asyncio.Lock:
        lock = self._locks.get(debtor_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[debtor_id] = lock
        return lock

    def _leave(self, debtor_id: str) -> None:
        remaining = self._users[debtor_id] - 1
        if remaining:
            self._users[debtor_id] = remaining
        else:
            del self._users[debtor_id]
            del self._locks[debtor_id]

    @property
    def tracked_count(self) -> int:
        """락 항목 수 (보유/대기 중인 채무자)"""
        return len(self._locks)

    def is_locked(self, debtor_id: str) -> bool:
        """현재 락 보유 여부"""
        lock = self._locks.get(debtor_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, debtor_id: str) -> AsyncIterator[None]:
        """채무자 임계 구역

        Raises:
            ConcurrentModificationError: timeout_sec 내에 락을 얻지 못함
        """
        if not debtor_id:
            raise ValueError("debtor_id is required")

        lock = self._lock_for(debtor_id)
        self._users[debtor_id] = self._users.get(debtor_id, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.timeout_sec)
            except asyncio.TimeoutError as e:
                logger.warning(
                    "채무자 락 획득 실패",
                    extra={"debtor_id": debtor_id, "timeout_sec": self.timeout_sec},
                )
                raise ConcurrentModificationError(debtor_id, self.timeout_sec) from e

            try:
                yield
            finally:
                lock.release()
        finally:
            self._leave(debtor_id)
