"""
Bottle Core Module
Plan calculation, plan execution, state persistence and command flows
"""

from bottle_manager.core.engine import BottleEngine, CommandResult, Outcome, StatusReport
from bottle_manager.core.executor import ExecutionResult, ItemFailure, PlanExecutor
from bottle_manager.core.plan import ReconciliationPlan, calculate_plan
from bottle_manager.core.store import FileStateStore, MemoryStateStore, StateStore

__all__ = [
    'BottleEngine',
    'CommandResult',
    'Outcome',
    'StatusReport',
    'ExecutionResult',
    'ItemFailure',
    'PlanExecutor',
    'ReconciliationPlan',
    'calculate_plan',
    'FileStateStore',
    'MemoryStateStore',
    'StateStore',
]
