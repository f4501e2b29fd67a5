"""
Placeholder analytics.

There is no sales history in the ledger, so these figures are generated.
The generator is seeded from its inputs: the same request always yields the
same numbers, which keeps the dashboard stable between refreshes.
"""

import random
from datetime import date, timedelta
from typing import List, Optional

TIME_RANGES = {"7d": 7, "30d": 30, "90d": 90}


def _rng(*parts) -> random.Random:
    return random.Random("|".join(str(p) for p in parts))


def sales_trends(time_range: str, today: Optional[date] = None) -> List[dict]:
    days = TIME_RANGES[time_range]
    today = today or date.today()
    rng = _rng("sales", time_range, today.isoformat())
    out = []
    for i in range(days - 1, -1, -1):
        d = today - timedelta(days=i)
        units = rng.randint(20, 200)
        out.append({"day": d, "units_sold": units, "orders": max(1, units // rng.randint(2, 6))})
    return out


def category_performance(category_names: List[str]) -> List[dict]:
    rng = _rng("categories", *sorted(category_names))
    rows = [
        {
            "category": name,
            "turnover_rate": round(rng.uniform(0.5, 8.0), 2),
            "growth_pct": round(rng.uniform(-15.0, 35.0), 1),
        }
        for name in category_names
    ]
    rows.sort(key=lambda r: -r["turnover_rate"])
    return rows


def generate_overview(time_range: str, category_names: List[str], today: Optional[date] = None) -> dict:
    if time_range not in TIME_RANGES:
        raise ValueError(f"time_range must be one of {', '.join(TIME_RANGES)}")
    today = today or date.today()
    trends = sales_trends(time_range, today=today)
    rng = _rng("overview", time_range, today.isoformat())
    return {
        "time_range": time_range,
        "generated": True,
        "sales_trends": trends,
        "total_units_sold": sum(t["units_sold"] for t in trends),
        "inventory_turnover": round(rng.uniform(2.0, 12.0), 2),
        "stockout_rate_pct": round(rng.uniform(0.0, 10.0), 1),
        "category_performance": category_performance(category_names),
    }
