"""
Custom exception classes

Standardised errors shared by every layer of the ranking/backtest core
"""
from typing import Any


class BaseError(Exception):
    """Base class for all custom errors"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ============================================
# Configuration Errors
# ============================================
class ConfigurationError(BaseError):
    """Invalid weights, unknown metric keys, out-of-range thresholds"""
    pass


class ConfigNotFoundError(ConfigurationError):
    """Settings file not found"""
    pass


# ============================================
# Data Errors
# ============================================
class DataError(BaseError):
    """Snapshot or price data problem local to one horizon"""
    pass


class DataUnavailableError(DataError):
    """No snapshot exists for the requested offset"""

    def __init__(self, message: str, years_ago: int | None = None):
        super().__init__(message, {"years_ago": years_ago})
        self.years_ago = years_ago


class InsufficientDataError(DataError):
    """Too few valid candidates to populate a portfolio for a period"""
    pass


# ============================================
# Computation Errors
# ============================================
class ComputationError(BaseError):
    """Degenerate arithmetic (e.g. zero prior portfolio value)"""
    pass


# ============================================
# Database Errors
# ============================================
class DatabaseError(BaseError):
    """Snapshot cache access failure"""
    pass
