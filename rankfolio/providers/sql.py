"""
SQL snapshot provider

Reads the snapshot cache (historical_fundamentals, price_history) written
by the ingestion pipeline. The upsert helpers are what that pipeline calls.
"""
from datetime import date, datetime

import pandas as pd
from sqlalchemy import func, select

from rankfolio.core.database import DatabaseManager
from rankfolio.core.exceptions import DataUnavailableError
from rankfolio.core.interfaces import Metric, SnapshotProvider, StockSnapshot
from rankfolio.core.logger import get_logger
from rankfolio.core.models import FundamentalSnapshotModel, PriceHistoryModel


class SqlSnapshotProvider(SnapshotProvider):
    """
    Usage:
        db = init_database_from_config()
        provider = SqlSnapshotProvider(db)
        current = provider.get_snapshot(0)
    """

    def __init__(self, db: DatabaseManager, as_of: date | None = None):
        self.logger = get_logger(self.__class__.__name__)
        self.db = db
        self._as_of = as_of

    @property
    def as_of(self) -> date:
        """Explicit date, else the newest offset-0 snapshot date, else today"""
        if self._as_of is None:
            with self.db.session() as session:
                latest = session.execute(
                    select(func.max(FundamentalSnapshotModel.as_of))
                    .where(FundamentalSnapshotModel.years_ago == 0)
                ).scalar_one_or_none()
            self._as_of = latest or date.today()
        return self._as_of

    @staticmethod
    def _to_snapshot(row: FundamentalSnapshotModel) -> StockSnapshot:
        return StockSnapshot(
            symbol=row.symbol,
            name=row.name or "",
            sector=row.sector or "",
            years_ago=row.years_ago,
            as_of=row.as_of,
            values={metric: getattr(row, metric.field_name) for metric in Metric},
        )

    def get_snapshot(self, years_ago: int) -> list[StockSnapshot]:
        with self.db.session() as session:
            rows = session.execute(
                select(FundamentalSnapshotModel)
                .where(FundamentalSnapshotModel.years_ago == years_ago)
                .order_by(FundamentalSnapshotModel.symbol)
            ).scalars().all()
            snapshot = [self._to_snapshot(row) for row in rows]

        if not snapshot:
            raise DataUnavailableError(f"No snapshot {years_ago} years ago", years_ago)

        self.logger.debug(f"Loaded {len(snapshot)} stocks for offset {years_ago}")
        return snapshot

    def get_price_history(self, symbol: str) -> pd.Series | None:
        with self.db.session() as session:
            rows = session.execute(
                select(PriceHistoryModel.date, PriceHistoryModel.adj_close)
                .where(PriceHistoryModel.symbol == symbol.upper())
                .order_by(PriceHistoryModel.date)
            ).all()

        if not rows:
            return None

        return pd.Series(
            [row.adj_close for row in rows],
            index=pd.DatetimeIndex([row.date for row in rows]),
            name=symbol.upper(),
            dtype="float64",
        )

    def available_offsets(self) -> list[int]:
        with self.db.session() as session:
            offsets = session.execute(
                select(FundamentalSnapshotModel.years_ago).distinct()
            ).scalars().all()
        return sorted(offsets)

    # ============================================
    # Ingestion helpers
    # ============================================
    def upsert_snapshots(self, snapshots: list[StockSnapshot]) -> int:
        """
        Insert or update fundamentals keyed by (symbol, years_ago)

        Returns:
            number of newly inserted rows
        """
        inserted = 0
        with self.db.session() as session:
            for stock in snapshots:
                row = session.execute(
                    select(FundamentalSnapshotModel)
                    .where(FundamentalSnapshotModel.symbol == stock.symbol)
                    .where(FundamentalSnapshotModel.years_ago == stock.years_ago)
                ).scalar_one_or_none()

                if row is None:
                    row = FundamentalSnapshotModel(symbol=stock.symbol, years_ago=stock.years_ago)
                    session.add(row)
                    inserted += 1

                row.name = stock.name
                row.sector = stock.sector
                row.as_of = stock.as_of
                for metric in Metric:
                    setattr(row, metric.field_name, stock.value(metric))
                row.updated_at = datetime.now()

        self.logger.info(f"Upserted {len(snapshots)} fundamentals ({inserted} new)")
        return inserted

    def upsert_prices(self, symbol: str, closes: pd.Series) -> int:
        """
        Insert or update daily adjusted closes

        Returns:
            number of newly inserted rows
        """
        symbol = symbol.upper()
        closes = closes.dropna()
        inserted = 0

        with self.db.session() as session:
            for timestamp, value in closes.items():
                day = pd.Timestamp(timestamp).date()
                row = session.get(PriceHistoryModel, (symbol, day))
                if row is None:
                    session.add(PriceHistoryModel(symbol=symbol, date=day, adj_close=float(value)))
                    inserted += 1
                else:
                    row.adj_close = float(value)

        self.logger.info(f"Upserted {len(closes)} prices for {symbol} ({inserted} new)")
        return inserted
