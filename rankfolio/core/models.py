"""
Snapshot cache tables

SQLAlchemy ORM models written by the ingestion pipeline and read by
SqlSnapshotProvider
"""
from datetime import datetime

from sqlalchemy import (
    Column, String, Integer, Float, Date, DateTime, UniqueConstraint, Index
)

from rankfolio.core.database import Base


# ============================================
# Fundamentals snapshot
# ============================================
class FundamentalSnapshotModel(Base):
    """One symbol's factor values at one lookback offset"""
    __tablename__ = "historical_fundamentals"
    __table_args__ = (
        UniqueConstraint("symbol", "years_ago", name="uq_fundamentals_symbol_offset"),
        Index("ix_fundamentals_years_ago", "years_ago"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(12), nullable=False)
    years_ago = Column(Integer, nullable=False)
    name = Column(String(200), default="")
    sector = Column(String(100), default="")
    as_of = Column(Date, nullable=True)

    market_cap = Column(Float, nullable=True)
    adtv = Column(Float, nullable=True)
    price_to_sales = Column(Float, nullable=True)
    sales_growth = Column(Float, nullable=True)
    gf_score = Column(Float, nullable=True)

    # GARP metrics
    pe_ratio = Column(Float, nullable=True)
    debt_to_equity = Column(Float, nullable=True)
    operating_margin = Column(Float, nullable=True)
    roic = Column(Float, nullable=True)
    fcf_yield = Column(Float, nullable=True)

    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return f"<Fundamentals {self.symbol} -{self.years_ago}y>"


# ============================================
# Price history
# ============================================
class PriceHistoryModel(Base):
    """Daily adjusted close"""
    __tablename__ = "price_history"

    symbol = Column(String(12), primary_key=True)
    date = Column(Date, primary_key=True)
    adj_close = Column(Float, nullable=False)

    def __repr__(self):
        return f"<Price {self.symbol} {self.date}: {self.adj_close}>"
