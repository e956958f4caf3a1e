"""
State Machines

몰수 처리 등 다단계 워크플로의 상태 전이 관리.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class StateMachineError(Exception):
    """상태 전이 오류"""
    pass


class ForfeitureState(str, Enum):
    """몰수 처리 상태

    전이 규칙:
    - ACTIVE → REVERSING: 상계 분개 기록 완료
    - ACTIVE → FAILED: 분개 기록 실패 (아무 것도 반영되지 않음)
    - REVERSING → FORFEITED: 호실 해제 + 채무자 몰수 표시 완료
    - REVERSING → FAILED: 복구 불가 판정
    """
    ACTIVE = "ACTIVE"
    REVERSING = "REVERSING"
    FORFEITED = "FORFEITED"
    FAILED = "FAILED"


class StateMachine:
    """상태 머신 기본 클래스

    Args:
        initial_state: 초기 상태
        transitions: 허용된 전이 정의 {from_state: [to_states]}
        name: 머신 이름 (로깅용)
    """

    def __init__(
        self,
        initial_state: str | Enum,
        transitions: dict[str, list[str]],
        name: str = "StateMachine",
    ):
        self._state = initial_state.value if isinstance(initial_state, Enum) else initial_state
        self._transitions = transitions
        self._name = name
        self._history: list[tuple[str, str]] = []

    @property
    def state(self) -> str:
        """현재 상태"""
        return self._state

    def can_transition(self, to_state: str | Enum) -> bool:
        """전이 가능 여부 확인"""
        target = to_state.value if isinstance(to_state, Enum) else to_state
        return target in self._transitions.get(self._state, [])

    def transition(self, to_state: str | Enum) -> str:
        """상태 전이

        Args:
            to_state: 목표 상태

        Returns:
            새 상태

        Raises:
            StateMachineError: 허용되지 않은 전이
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state

        if not self.can_transition(target):
            allowed = self._transitions.get(self._state, [])
            raise StateMachineError(
                f"{self._name}: Cannot transition from {self._state} to {target}. "
                f"Allowed: {allowed}"
            )

        old_state = self._state
        self._state = target
        self._history.append((old_state, target))

        logger.debug(f"{self._name}: {old_state} → {target}")

        return target

    @property
    def history(self) -> list[tuple[str, str]]:
        """상태 전이 이력"""
        return self._history.copy()


class ForfeitureStateMachine(StateMachine):
    """몰수 처리 상태 머신"""

    TRANSITIONS: dict[str, list[str]] = {
        "ACTIVE": ["REVERSING", "FAILED"],
        "REVERSING": ["FORFEITED", "FAILED"],
    }

    def __init__(self, initial_state: str | ForfeitureState = ForfeitureState.ACTIVE):
        super().__init__(
            initial_state=initial_state,
            transitions=self.TRANSITIONS,
            name="ForfeitureStateMachine",
        )

    @property
    def current(self) -> ForfeitureState:
        """현재 상태 (Enum)"""
        return ForfeitureState(self._state)

    @property
    def is_terminal(self) -> bool:
        """종료 상태 여부"""
        return self._state in ("FORFEITED", "FAILED")

    @property
    def is_partial(self) -> bool:
        """분개는 기록됐으나 호실 해제가 끝나지 않은 상태"""
        return self._state == "REVERSING"
