"""
Snapshot statistics

Per-metric distribution summary of one snapshot
"""
import pandas as pd

from rankfolio.core.interfaces import GARP_METRICS, Metric, StockSnapshot


def snapshot_frame(snapshot: list[StockSnapshot]) -> pd.DataFrame:
    """One row per symbol, one column per metric (camelCase), NaN for nulls"""
    rows = {
        stock.symbol: {metric.value: stock.value(metric) for metric in Metric}
        for stock in snapshot
    }
    frame = pd.DataFrame.from_dict(rows, orient="index", columns=[m.value for m in Metric])
    return frame.astype("float64")


def summarize_snapshot(snapshot: list[StockSnapshot]) -> dict:
    """
    Summary statistics

    Returns:
        {
            "total_stocks": int,
            "metrics": {metric: {count, coverage, average, median, min, max}},
            "sales_growth": {"positive": int, "negative": int},
            "garp_coverage": float,   # % of stocks with any GARP value
        }
    """
    total = len(snapshot)
    if total == 0:
        return {"total_stocks": 0, "metrics": {}, "sales_growth": {}, "garp_coverage": 0.0}

    frame = snapshot_frame(snapshot)

    metrics = {}
    for metric in Metric:
        column = frame[metric.value].dropna()
        count = int(column.count())
        metrics[metric.value] = {
            "count": count,
            "coverage": round(count / total * 100, 1),
            "average": float(column.mean()) if count else None,
            "median": float(column.median()) if count else None,
            "min": float(column.min()) if count else None,
            "max": float(column.max()) if count else None,
        }

    growth = frame[Metric.SALES_GROWTH.value].dropna()
    garp_columns = [m.value for m in Metric if m in GARP_METRICS]
    with_garp = int(frame[garp_columns].notna().any(axis=1).sum())

    return {
        "total_stocks": total,
        "metrics": metrics,
        "sales_growth": {
            "positive": int((growth > 0).sum()),
            "negative": int((growth < 0).sum()),
        },
        "garp_coverage": round(with_garp / total * 100, 1),
    }
