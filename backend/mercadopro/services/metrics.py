"""Métricas do dashboard e relatórios.

As funções de agregação são puras: recebem listas de vendas, despesas e
produtos já carregadas e não tocam no banco. As funções da seção "Consultas"
buscam os registros do período e delegam para elas.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ..models import Expense, Product, Sale
from ..schemas import ChartPeriod
from ..time_utils import month_bounds, month_date_bounds, shift_month, start_of_day, to_local, utcnow
from . import data_access

# Indexados por date.weekday() (segunda = 0)
WEEKDAY_LABELS = ["Seg", "Ter", "Qua", "Qui", "Sex", "Sáb", "Dom"]
MONTH_LABELS = ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"]

WEEKLY_DAYS = 7
MONTHLY_MONTHS = 6

FALLBACK_CATEGORY = "outros"


def _money(value: float) -> float:
    return round(value, 2)


@dataclass
class DashboardMetrics:
    total_revenue: float
    total_profit: float
    total_expenses: float
    profit_margin: float
    total_products_sold: int
    average_ticket: float
    low_stock_count: int
    expiring_count: int

    def to_dict(self) -> dict:
        return asdict(self)


def summarize(
    sales: Sequence[Sale],
    expenses: Iterable[Expense],
    products: Iterable[Product],
    today: date,
    expiring_window_days: int = 30,
) -> DashboardMetrics:
    """Resumo do período a partir das vendas e despesas já filtradas.

    O lucro é operacional: lucro das vendas menos as despesas.
    """
    total_revenue = sum(float(s.total_price) for s in sales)
    sales_profit = sum(float(s.profit) for s in sales)
    total_expenses = sum(float(e.amount) for e in expenses)
    total_profit = sales_profit - total_expenses

    expiring_limit = today + timedelta(days=expiring_window_days)
    products = list(products)

    return DashboardMetrics(
        total_revenue=_money(total_revenue),
        total_profit=_money(total_profit),
        total_expenses=_money(total_expenses),
        profit_margin=_money(total_profit / total_revenue * 100) if total_revenue > 0 else 0.0,
        total_products_sold=sum(s.quantity for s in sales),
        average_ticket=_money(total_revenue / len(sales)) if sales else 0.0,
        low_stock_count=sum(1 for p in products if p.stock_quantity <= p.min_stock),
        expiring_count=sum(
            1 for p in products if p.expiry_date is not None and p.expiry_date <= expiring_limit
        ),
    )


# === Séries temporais ===


def _bucket_keys(period: ChartPeriod, local_now: datetime) -> list[tuple]:
    """Chaves dos buckets em ordem cronológica, com o rótulo de cada uma."""
    today = local_now.date()
    if period == ChartPeriod.TODAY:
        return [(hour, f"{hour:02d}:00") for hour in range(local_now.hour + 1)]
    if period == ChartPeriod.WEEKLY:
        days = [today - timedelta(days=offset) for offset in range(WEEKLY_DAYS - 1, -1, -1)]
        return [(day, WEEKDAY_LABELS[day.weekday()]) for day in days]
    months = [shift_month(today.year, today.month, -offset) for offset in range(MONTHLY_MONTHS - 1, -1, -1)]
    return [(ym, MONTH_LABELS[ym[1] - 1]) for ym in months]


def _sale_key(period: ChartPeriod, sale_local: datetime, today: date):
    if period == ChartPeriod.TODAY:
        return sale_local.hour if sale_local.date() == today else None
    if period == ChartPeriod.WEEKLY:
        return sale_local.date()
    return (sale_local.year, sale_local.month)


def _expense_key(period: ChartPeriod, expense_date: date):
    if period == ChartPeriod.WEEKLY:
        return expense_date
    return (expense_date.year, expense_date.month)


def time_series(
    period: ChartPeriod | str,
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
    now: datetime,
    tz: ZoneInfo,
) -> list[dict]:
    """Receita, custos e lucro por hora (hoje), dia (7 dias) ou mês (6 meses).

    Todos os buckets são criados zerados antes da varredura, então o tamanho
    da saída é fixo. Custos de uma venda são ``total - lucro``; despesas entram
    nos custos do dia/mês delas, exceto na visão por hora (despesa não tem hora).
    """
    period = ChartPeriod(period)
    local_now = to_local(now, tz)
    today = local_now.date()

    keys = _bucket_keys(period, local_now)
    buckets = {key: {"revenue": 0.0, "costs": 0.0} for key, _ in keys}

    for sale in sales:
        key = _sale_key(period, to_local(sale.sale_date, tz), today)
        bucket = buckets.get(key)
        if bucket is None:
            continue
        bucket["revenue"] += float(sale.total_price)
        bucket["costs"] += float(sale.total_price) - float(sale.profit)

    if period != ChartPeriod.TODAY:
        for expense in expenses:
            bucket = buckets.get(_expense_key(period, expense.expense_date))
            if bucket is not None:
                bucket["costs"] += float(expense.amount)

    series = []
    for key, label in keys:
        bucket = buckets[key]
        series.append(
            {
                "label": label,
                "revenue": _money(bucket["revenue"]),
                "profit": _money(bucket["revenue"] - bucket["costs"]),
                "costs": _money(bucket["costs"]),
            }
        )
    return series


# === Agrupamentos ===


def _accumulate(groups: dict[str, dict], key: str, sale: Sale) -> None:
    entry = groups.setdefault(key, {"total": 0.0, "profit": 0.0, "count": 0})
    entry["total"] += float(sale.total_price)
    entry["profit"] += float(sale.profit)
    entry["count"] += sale.quantity


def _rounded(groups: dict[str, dict]) -> dict[str, dict]:
    return {
        key: {"total": _money(v["total"]), "profit": _money(v["profit"]), "count": v["count"]}
        for key, v in groups.items()
    }


def by_category(sales: Iterable[Sale]) -> dict[str, dict]:
    """Total, lucro e unidades por categoria do produto."""
    groups: dict[str, dict] = {}
    for sale in sales:
        category = sale.product.category if sale.product is not None else FALLBACK_CATEGORY
        _accumulate(groups, category or FALLBACK_CATEGORY, sale)
    return _rounded(groups)


def by_payment_method(sales: Iterable[Sale]) -> dict[str, dict]:
    """Total, lucro e unidades por forma de pagamento."""
    groups: dict[str, dict] = {}
    for sale in sales:
        _accumulate(groups, sale.payment_method or "dinheiro", sale)
    return _rounded(groups)


def top_products(sales: Iterable[Sale], limit: int = 5) -> list[dict]:
    """Produtos com maior lucro acumulado. Empates mantêm a ordem de acumulação."""
    stats: dict[int | None, dict] = {}
    for sale in sales:
        entry = stats.get(sale.product_id)
        if entry is None:
            entry = stats[sale.product_id] = {
                "id": sale.product_id,
                "name": sale.product_name,
                "quantity": 0,
                "profit": 0.0,
            }
        entry["quantity"] += sale.quantity
        entry["profit"] += float(sale.profit)

    ranked = sorted(stats.values(), key=lambda e: e["profit"], reverse=True)
    return [{**e, "profit": _money(e["profit"])} for e in ranked[:limit]]


def sales_by_day(sales: Iterable[Sale], tz: ZoneInfo) -> list[dict]:
    """Receita, lucro e unidades por dia local, em ordem de data."""
    days: dict[date, dict] = {}
    for sale in sales:
        day = to_local(sale.sale_date, tz).date()
        entry = days.setdefault(day, {"date": day, "revenue": 0.0, "profit": 0.0, "count": 0})
        entry["revenue"] += float(sale.total_price)
        entry["profit"] += float(sale.profit)
        entry["count"] += sale.quantity
    return [
        {**entry, "revenue": _money(entry["revenue"]), "profit": _money(entry["profit"])}
        for _, entry in sorted(days.items())
    ]


def product_stats(product: Product, sales: Iterable[Sale]) -> dict:
    """Unidades vendidas, lucro acumulado e markup do produto."""
    sales = [s for s in sales if s.product_id == product.id]
    markup = 0.0
    if product.cost_price > 0:
        markup = _money((product.sale_price - product.cost_price) / product.cost_price * 100)
    return {
        "product_id": product.id,
        "total_sold": sum(s.quantity for s in sales),
        "total_profit": _money(sum(float(s.profit) for s in sales)),
        "markup": markup,
    }


# === Consultas ===


def month_sales(db: Session, user_id: int, as_of: datetime, tz: ZoneInfo) -> list[Sale]:
    start, end = month_bounds(as_of, tz)
    return data_access.list_sales(db, user_id, start=start, end=end)


def dashboard_metrics(
    db: Session,
    user_id: int,
    as_of: datetime,
    tz: ZoneInfo,
    expiring_window_days: int = 30,
) -> DashboardMetrics:
    """Métricas do mês local que contém ``as_of``.

    Estoque baixo e validade próxima são sempre calculados para hoje.
    """
    first_day, last_day = month_date_bounds(as_of, tz)
    sales = month_sales(db, user_id, as_of, tz)
    expenses = data_access.list_expenses(db, user_id, start_date=first_day, end_date=last_day)
    products = data_access.list_products(db, user_id)
    today = to_local(utcnow(), tz).date()
    return summarize(sales, expenses, products, today, expiring_window_days)


def revenue_chart(
    db: Session,
    user_id: int,
    period: ChartPeriod | str,
    now: datetime,
    tz: ZoneInfo,
) -> list[dict]:
    """Busca vendas e despesas da janela do gráfico e monta a série."""
    period = ChartPeriod(period)
    today = to_local(now, tz).date()

    if period == ChartPeriod.TODAY:
        first_day = today
    elif period == ChartPeriod.WEEKLY:
        first_day = today - timedelta(days=WEEKLY_DAYS - 1)
    else:
        year, month = shift_month(today.year, today.month, -(MONTHLY_MONTHS - 1))
        first_day = date(year, month, 1)

    sales = data_access.list_sales(db, user_id, start=start_of_day(first_day, tz))
    expenses = []
    if period != ChartPeriod.TODAY:
        expenses = data_access.list_expenses(db, user_id, start_date=first_day, end_date=today)
    return time_series(period, sales, expenses, now, tz)
