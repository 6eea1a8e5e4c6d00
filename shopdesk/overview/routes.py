# shopdesk/overview/routes.py
from flask import request

from ..services import analytics_service as svc
from ..utils.api import ok
from ..utils.decorators import admin_required
from ..utils.params import to_int
from . import bp


@bp.get("")
@admin_required()
def overview():
    return ok("Overview", svc.overview())


@bp.get("/revenue")
@admin_required()
def revenue():
    return ok("Monthly revenue", svc.monthly_revenue())


@bp.get("/recent-sales")
@admin_required()
def recent_sales():
    limit = min(max(to_int(request.args.get("limit"), 5), 1), 50)
    return ok("Recent sales", svc.recent_sales(limit))


@bp.get("/daily-revenue")
@admin_required()
def daily_revenue():
    days = min(max(to_int(request.args.get("days"), 30), 1), 366)
    return ok("Daily revenue", svc.daily_revenue(days))
