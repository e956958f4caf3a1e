"""
pytest 공통 fixture 정의

임시 디렉토리, 설정 파일, 스키마가 초기화된 임시 Ledger DB
"""

import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.mock.registry import MockDebtorRegistry
from core.accounting.service import AccountingService
from core.config.loader import LedgerSettings, Settings
from core.ledger.chart import ChartOfAccounts
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def reset_settings() -> None:
    """Settings 싱글턴 초기화"""
    Settings.reset()
    yield
    Settings.reset()


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """테스트용 ledger.yaml 파일 생성"""
    content = f"""# 테스트용 ledger.yaml
db_path: {(temp_dir / "ledger.db").as_posix()}
lock_timeout_sec: 2.5

allocation:
  category_priority: [admin_fee, rent, deposit]
  overpayment_mode: carry_forward

accounts:
  cash: "1001"
  categories:
    utility: "4010"
"""
    path = temp_dir / "ledger.yaml"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def chart() -> ChartOfAccounts:
    """기본 계정과목표"""
    return ChartOfAccounts.default()


@pytest_asyncio.fixture
async def db(temp_dir: Path) -> SQLiteAdapter:
    """스키마가 초기화된 임시 DB"""
    adapter = SQLiteAdapter(temp_dir / "test_ledger.db")
    await adapter.connect()
    await init_ledger_schema(adapter)

    yield adapter

    await adapter.close()


@pytest.fixture
def ledger_store(db: SQLiteAdapter) -> LedgerStore:
    """LedgerStore 인스턴스"""
    return LedgerStore(db)


@pytest.fixture
def registry() -> MockDebtorRegistry:
    """Mock 채무자 레지스트리"""
    return MockDebtorRegistry()


@pytest.fixture
def ledger_settings(temp_dir: Path) -> LedgerSettings:
    """임시 DB를 가리키는 기본 설정"""
    return LedgerSettings(db_path=temp_dir / "service.db", lock_timeout_sec=1.0)


@pytest_asyncio.fixture
async def service(ledger_settings: LedgerSettings, registry: MockDebtorRegistry) -> AccountingService:
    """임시 DB 위의 AccountingService"""
    svc = await AccountingService.open(registry=registry, settings=ledger_settings)

    yield svc

    await svc.close()

