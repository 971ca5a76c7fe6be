"""
Orchestrator: service facade over ranking and backtests
"""
from rankfolio.orchestrator.screening_service import ScreeningService

__all__ = [
    "ScreeningService",
]
