"""
설정 로더

ledger.yaml 로드 및 배분 정책/계정 매핑 생성
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.constants import PROJECT_ROOT, Defaults, Paths
from core.types import ObligationCategory, OverpaymentMode


# 부분 입금 시 배분 우선순위 (같은 기간 내)
DEFAULT_CATEGORY_PRIORITY: tuple[ObligationCategory, ...] = (
    ObligationCategory.RENT,
    ObligationCategory.ADMIN_FEE,
    ObligationCategory.DEPOSIT,
    ObligationCategory.UTILITY,
    ObligationCategory.PENALTY,
)

# 청구 분류별 대변 계정 (수익 또는 부채)
DEFAULT_CATEGORY_ACCOUNTS: dict[ObligationCategory, str] = {
    ObligationCategory.RENT: "4001",
    ObligationCategory.ADMIN_FEE: "4002",
    ObligationCategory.DEPOSIT: "2020",
    ObligationCategory.UTILITY: "4010",
    ObligationCategory.PENALTY: "4020",
}


@dataclass(frozen=True)
class AllocationPolicy:
    """입금 배분 정책

    기간 오름차순 정렬 후 같은 기간 내에서 category_priority 순으로 배분.
    목록에 없는 분류는 맨 뒤로 밀림.
    """

    category_priority: tuple[ObligationCategory, ...] = DEFAULT_CATEGORY_PRIORITY
    overpayment_mode: OverpaymentMode = OverpaymentMode.FLOATING_CREDIT

    def rank(self, category: ObligationCategory) -> int:
        """우선순위 (작을수록 먼저)"""
        try:
            return self.category_priority.index(category)
        except ValueError:
            return len(self.category_priority)


@dataclass(frozen=True)
class AccountMapping:
    """분개 생성에 사용하는 계정 코드"""

    cash: str = "1000"
    receivable: str = "1100"
    prepayment: str = "2200"
    retained_earnings: str = "3100"
    category_accounts: dict[ObligationCategory, str] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_ACCOUNTS)
    )

    def for_category(self, category: ObligationCategory) -> str:
        """분류별 대변 계정"""
        return self.category_accounts[category]


@dataclass(frozen=True)
class LedgerSettings:
    """Ledger 설정 (불변)"""

    db_path: Path = Paths.LEDGER_DB
    lock_timeout_sec: float = Defaults.LOCK_TIMEOUT_SEC
    allocation: AllocationPolicy = field(default_factory=AllocationPolicy)
    accounts: AccountMapping = field(default_factory=AccountMapping)


class ConfigLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


def _parse_category(value: Any) -> ObligationCategory:
    try:
        return ObligationCategory(value)
    except ValueError as e:
        valid = [c.value for c in ObligationCategory]
        raise ConfigLoadError(
            f"유효하지 않은 분류입니다: '{value}'. 유효한 값: {valid}"
        ) from e


def _parse_allocation(data: dict[str, Any]) -> AllocationPolicy:
    priority_raw = data.get("category_priority")
    if priority_raw is None:
        priority = DEFAULT_CATEGORY_PRIORITY
    else:
        if not isinstance(priority_raw, list):
            raise ConfigLoadError("allocation.category_priority는 목록이어야 합니다")
        priority = tuple(_parse_category(v) for v in priority_raw)
        if len(set(priority)) != len(priority):
            raise ConfigLoadError("allocation.category_priority에 중복 항목이 있습니다")

    mode_raw = data.get("overpayment_mode", OverpaymentMode.FLOATING_CREDIT.value)
    try:
        mode = OverpaymentMode(mode_raw)
    except ValueError as e:
        valid = [m.value for m in OverpaymentMode]
        raise ConfigLoadError(
            f"유효하지 않은 overpayment_mode입니다: '{mode_raw}'. 유효한 값: {valid}"
        ) from e

    return AllocationPolicy(category_priority=priority, overpayment_mode=mode)


def _parse_accounts(data: dict[str, Any]) -> AccountMapping:
    defaults = AccountMapping()

    category_accounts = dict(DEFAULT_CATEGORY_ACCOUNTS)
    for key, code in (data.get("categories") or {}).items():
        category_accounts[_parse_category(key)] = str(code)

    return AccountMapping(
        cash=str(data.get("cash", defaults.cash)),
        receivable=str(data.get("receivable", defaults.receivable)),
        prepayment=str(data.get("prepayment", defaults.prepayment)),
        retained_earnings=str(data.get("retained_earnings", defaults.retained_earnings)),
        category_accounts=category_accounts,
    )


def load_settings(path: Path | None = None) -> LedgerSettings:
    """ledger.yaml 파일 로드

    파일이 없으면 기본 설정 반환.

    Args:
        path: ledger.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        LedgerSettings 인스턴스

    Raises:
        ConfigLoadError: 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        return LedgerSettings()

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"ledger.yaml 파싱 실패: {e}") from e

    if data is None:
        return LedgerSettings()

    if not isinstance(data, dict):
        raise ConfigLoadError("ledger.yaml 최상위는 매핑이어야 합니다")

    db_path = Path(data["db_path"]) if data.get("db_path") else Paths.LEDGER_DB
    if not db_path.is_absolute():
        db_path = PROJECT_ROOT / db_path

    try:
        lock_timeout = float(data.get("lock_timeout_sec", Defaults.LOCK_TIMEOUT_SEC))
    except (TypeError, ValueError) as e:
        raise ConfigLoadError("lock_timeout_sec는 숫자여야 합니다") from e

    if lock_timeout <= 0:
        raise ConfigLoadError("lock_timeout_sec는 0보다 커야 합니다")

    return LedgerSettings(
        db_path=db_path,
        lock_timeout_sec=lock_timeout,
        allocation=_parse_allocation(data.get("allocation") or {}),
        accounts=_parse_accounts(data.get("accounts") or {}),
    )


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    ledger.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _settings: LedgerSettings | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._settings is None:
            self._settings = load_settings(settings_path)

    @property
    def ledger(self) -> LedgerSettings:
        """로드된 Ledger 설정"""
        assert self._settings is not None
        return self._settings

    @property
    def db_path(self) -> Path:
        """DB 경로"""
        return self.ledger.db_path

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._settings = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: ledger.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
