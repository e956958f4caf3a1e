"""
회계 엔진

채무 추적, 입금 배분, 재무제표, 몰수 워크플로.
"""

from core.accounting.allocation import (
    AllocationEngine,
    AllocationResult,
    Application,
    plan_allocation,
)
from core.accounting.forfeiture import ForfeitureResult, ForfeitureWorkflow
from core.accounting.locks import DebtorLockManager
from core.accounting.obligations import Obligation, ObligationTracker
from core.accounting.service import AccountingService
from core.accounting.statements import AgingReport, StatementEngine, StatementSnapshot

__all__ = [
    "AccountingService",
    "AllocationEngine",
    "AllocationResult",
    "Application",
    "plan_allocation",
    "ForfeitureResult",
    "ForfeitureWorkflow",
    "DebtorLockManager",
    "Obligation",
    "ObligationTracker",
    "AgingReport",
    "StatementEngine",
    "StatementSnapshot",
]
