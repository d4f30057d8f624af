"""Router para o dashboard e relatórios."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from ..config import settings
from ..database import DbSession
from ..models import User
from ..schemas import (
    AlertsOut,
    BreakdownEntry,
    CalendarDayOut,
    ChartPeriod,
    ChartPoint,
    DashboardMetricsOut,
    TopProductOut,
)
from ..services import data_access, metrics
from ..services.auth import get_current_user
from ..time_utils import local_tz, start_of_day, to_local, utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


def _as_of(value: datetime | None) -> datetime:
    return value or utcnow()


@router.get("/metrics", response_model=DashboardMetricsOut)
def get_metrics(
    db: DbSession,
    current_user: User = Depends(get_current_user),
    as_of: datetime | None = Query(None, description="Data de referência do mês (padrão: agora)"),
):
    """Resumo do mês: faturamento, lucro, despesas, margem, ticket médio e alertas."""
    result = metrics.dashboard_metrics(
        db,
        current_user.id,
        _as_of(as_of),
        local_tz(),
        settings.expiring_window_days,
    )
    return result.to_dict()


@router.get("/chart", response_model=list[ChartPoint])
def get_chart(
    db: DbSession,
    current_user: User = Depends(get_current_user),
    period: ChartPeriod = Query(ChartPeriod.MONTHLY, description="today, weekly ou monthly"),
):
    """Série de faturamento, custos e lucro para o gráfico."""
    return metrics.revenue_chart(db, current_user.id, period, utcnow(), local_tz())


@router.get("/by-category", response_model=dict[str, BreakdownEntry])
def get_by_category(
    db: DbSession,
    current_user: User = Depends(get_current_user),
    as_of: datetime | None = None,
):
    sales = metrics.month_sales(db, current_user.id, _as_of(as_of), local_tz())
    return metrics.by_category(sales)


@router.get("/by-payment-method", response_model=dict[str, BreakdownEntry])
def get_by_payment_method(
    db: DbSession,
    current_user: User = Depends(get_current_user),
    as_of: datetime | None = None,
):
    sales = metrics.month_sales(db, current_user.id, _as_of(as_of), local_tz())
    return metrics.by_payment_method(sales)


@router.get("/top-products", response_model=list[TopProductOut])
def get_top_products(
    db: DbSession,
    current_user: User = Depends(get_current_user),
    limit: int | None = Query(None, ge=1, le=50),
    as_of: datetime | None = None,
):
    """Produtos com maior lucro no mês."""
    sales = metrics.month_sales(db, current_user.id, _as_of(as_of), local_tz())
    return metrics.top_products(sales, limit or settings.top_products_limit)


@router.get("/calendar", response_model=list[CalendarDayOut])
def get_calendar(
    db: DbSession,
    current_user: User = Depends(get_current_user),
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
):
    """Vendas por dia do mês (apenas dias com venda)."""
    tz = local_tz()
    today = to_local(utcnow(), tz).date()
    reference = start_of_day(today.replace(year=year or today.year, month=month or today.month, day=1), tz)
    sales = metrics.month_sales(db, current_user.id, reference, tz)
    return metrics.sales_by_day(sales, tz)


@router.get("/alerts", response_model=AlertsOut)
def get_alerts(db: DbSession, current_user: User = Depends(get_current_user)):
    """Produtos com estoque baixo e com validade próxima."""
    today = to_local(utcnow(), local_tz()).date()
    return {
        "low_stock": data_access.list_low_stock_products(db, current_user.id),
        "expiring": data_access.list_expiring_products(db, current_user.id, today, settings.expiring_window_days),
    }
