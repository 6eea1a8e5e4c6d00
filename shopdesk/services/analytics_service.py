# shopdesk/services/analytics_service.py
"""Dashboard figures. Revenue only counts orders whose payment is PAID."""
import logging

import pandas as pd
from sqlalchemy import func

from ..errors import repository_call
from ..extensions import db
from ..model import Order, PaymentStatus
from ..utils.dates import growth_rate, month_bounds, utcnow
from ..utils.money import D, round_money, to_string_money

logger = logging.getLogger(__name__)


def _paid_sum(start, end=None):
    q = db.session.query(func.coalesce(func.sum(Order.total), 0)).filter(
        Order.payment_status == PaymentStatus.PAID,
        Order.created_at >= start,
    )
    if end is not None:
        q = q.filter(Order.created_at < end)
    return round_money(D(q.scalar()))


@repository_call("Failed to compute revenue")
def monthly_revenue(now=None):
    now = now or utcnow()
    current_start, previous_start = month_bounds(now)
    current = _paid_sum(current_start)
    previous = _paid_sum(previous_start, current_start)
    return {
        "total_revenue": to_string_money(current),
        "total_revenue_last_month": to_string_money(previous),
        "growth_rate": growth_rate(current, previous),
    }


@repository_call("Failed to fetch recent sales")
def recent_sales(limit=5):
    orders = (
        Order.query.order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )
    return [{
        "id": o.id,
        "order_number": o.order_number,
        "total": to_string_money(o.total),
        "created_at": o.created_at.isoformat() if o.created_at else None,
        "customer": o.customer.as_summary() if o.customer else None,
    } for o in orders]


def _paid_frame(start):
    rows = (
        db.session.query(Order.created_at, Order.total)
        .filter(Order.payment_status == PaymentStatus.PAID, Order.created_at >= start)
        .all()
    )
    df = pd.DataFrame([tuple(r) for r in rows], columns=["created_at", "total"])
    df["total"] = df["total"].astype(float)
    df["created_at"] = pd.to_datetime(df["created_at"])
    return df


def _bucket(df, freq, index):
    """Sum totals into ``index`` buckets; empty buckets are 0."""
    if df.empty:
        series = pd.Series(0.0, index=index)
    else:
        series = (
            df.set_index("created_at")["total"]
            .groupby(pd.Grouper(freq=freq))
            .sum()
            .reindex(index, fill_value=0.0)
        )
    return series.round(2)


@repository_call("Failed to compute revenue series")
def daily_revenue(days=30, now=None):
    now = now or utcnow()
    end = pd.Timestamp(now).normalize()
    start = end - pd.Timedelta(days=days - 1)
    index = pd.date_range(start, end, freq="D")
    series = _bucket(_paid_frame(start.to_pydatetime()), "D", index)
    return [{"date": ts.strftime("%Y-%m-%d"), "revenue": float(v)} for ts, v in series.items()]


@repository_call("Failed to compute revenue series")
def monthly_revenue_series(months=6, now=None):
    now = now or utcnow()
    current_start, _ = month_bounds(now)
    start = pd.Timestamp(current_start) - pd.DateOffset(months=months - 1)
    index = pd.date_range(start, periods=months, freq="MS")
    series = _bucket(_paid_frame(start.to_pydatetime()), "MS", index)
    return [{"month": ts.strftime("%Y-%m"), "revenue": float(v)} for ts, v in series.items()]


def overview(now=None):
    from .customer_service import monthly_new_customers

    now = now or utcnow()
    return {
        "revenue": monthly_revenue(now),
        "new_customers": monthly_new_customers(now),
        "recent_sales": recent_sales(),
        "daily_revenue": daily_revenue(now=now),
        "monthly_revenue": monthly_revenue_series(now=now),
    }
