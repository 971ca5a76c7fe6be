"""
Core module - shared infrastructure

- config: settings management
- logger: logging service
- database: snapshot cache connection
- exceptions: custom errors
- interfaces: metrics, snapshots, provider contract
- models: ORM models
"""
from rankfolio.core.config import Config, BacktestSettings, get_config
from rankfolio.core.logger import get_logger, LoggerService, setup_logger_from_config
from rankfolio.core.database import DatabaseManager, init_database_from_config, Base
from rankfolio.core.exceptions import (
    BaseError,
    ConfigurationError,
    ConfigNotFoundError,
    DataError,
    DataUnavailableError,
    InsufficientDataError,
    ComputationError,
    DatabaseError,
)
from rankfolio.core.interfaces import (
    Metric,
    GARP_METRICS,
    Direction,
    TransactionType,
    PortfolioState,
    StockSnapshot,
    RankedStock,
    SnapshotProvider,
)

__all__ = [
    # Config
    "Config",
    "BacktestSettings",
    "get_config",
    # Logger
    "get_logger",
    "LoggerService",
    "setup_logger_from_config",
    # Database
    "DatabaseManager",
    "init_database_from_config",
    "Base",
    # Exceptions
    "BaseError",
    "ConfigurationError",
    "ConfigNotFoundError",
    "DataError",
    "DataUnavailableError",
    "InsufficientDataError",
    "ComputationError",
    "DatabaseError",
    # Interfaces
    "Metric",
    "GARP_METRICS",
    "Direction",
    "TransactionType",
    "PortfolioState",
    "StockSnapshot",
    "RankedStock",
    "SnapshotProvider",
]
