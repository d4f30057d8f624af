"""Testes para as métricas do dashboard."""

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from mercadopro.models import Expense, Product, Sale
from mercadopro.schemas import ChartPeriod
from mercadopro.services.metrics import (
    by_category,
    by_payment_method,
    dashboard_metrics,
    product_stats,
    sales_by_day,
    summarize,
    time_series,
    top_products,
)
from mercadopro.time_utils import to_local, utcnow

SP = ZoneInfo("America/Sao_Paulo")

# Domingo, 15/03/2026 12:30 em São Paulo
NOW = datetime(2026, 3, 15, 15, 30, tzinfo=UTC)


def make_sale(total, profit, quantity=1, when=NOW, product=None, payment="dinheiro"):
    return Sale(
        product_id=product.id if product else None,
        product=product,
        quantity=quantity,
        unit_price=total / quantity,
        cost_price=(total - profit) / quantity,
        total_price=total,
        profit=profit,
        payment_method=payment,
        sale_date=when,
    )


def make_expense(amount, day):
    return Expense(description="Conta", amount=amount, category="outros", expense_date=day)


@pytest.fixture
def leite():
    return Product(id=1, name="Leite", category="laticinios", cost_price=4.0, sale_price=6.0)


@pytest.fixture
def pao():
    return Product(id=2, name="Pão", category="padaria", cost_price=0.5, sale_price=1.0)


class TestSummarize:
    """Testes para o resumo mensal."""

    def test_totals_and_operating_profit(self):
        """Lucro é o lucro das vendas menos as despesas."""
        sales = [make_sale(15.0, 9.0, quantity=3), make_sale(5.0, 1.0)]
        expenses = [make_expense(4.0, date(2026, 3, 1))]

        result = summarize(sales, expenses, [], date(2026, 3, 15))

        assert result.total_revenue == 20.0
        assert result.total_expenses == 4.0
        assert result.total_profit == 6.0
        assert result.profit_margin == 30.0
        assert result.total_products_sold == 4
        assert result.average_ticket == 10.0

    def test_margin_zero_without_revenue(self):
        """Sem faturamento a margem é exatamente 0."""
        result = summarize([], [make_expense(10.0, date(2026, 3, 2))], [], date(2026, 3, 15))
        assert result.profit_margin == 0
        assert result.average_ticket == 0
        assert result.total_profit == -10.0

    def test_low_stock_is_inclusive(self):
        """Produto exatamente no mínimo conta como estoque baixo."""
        products = [
            Product(name="A", stock_quantity=5, min_stock=5),
            Product(name="B", stock_quantity=6, min_stock=5),
            Product(name="C", stock_quantity=0, min_stock=0),
        ]
        result = summarize([], [], products, date(2026, 3, 15))
        assert result.low_stock_count == 2

    def test_expiring_includes_expired(self):
        """Vencidos e vencendo em até 30 dias entram na contagem."""
        today = date(2026, 3, 15)
        products = [
            Product(name="Vencido", stock_quantity=10, min_stock=0, expiry_date=today - timedelta(days=3)),
            Product(name="Limite", stock_quantity=10, min_stock=0, expiry_date=today + timedelta(days=30)),
            Product(name="Longe", stock_quantity=10, min_stock=0, expiry_date=today + timedelta(days=31)),
            Product(name="Sem validade", stock_quantity=10, min_stock=0),
        ]
        result = summarize([], [], products, today)
        assert result.expiring_count == 2

    def test_to_dict(self):
        """to_dict expõe todos os campos."""
        data = summarize([], [], [], date(2026, 3, 15)).to_dict()
        assert set(data) == {
            "total_revenue",
            "total_profit",
            "total_expenses",
            "profit_margin",
            "total_products_sold",
            "average_ticket",
            "low_stock_count",
            "expiring_count",
        }


class TestTimeSeries:
    """Testes para a série do gráfico."""

    def test_monthly_has_six_buckets_in_order(self):
        """Seis meses, do mais antigo ao atual, inclusive os vazios."""
        series = time_series(ChartPeriod.MONTHLY, [], [], NOW, SP)
        assert [p["label"] for p in series] == ["Out", "Nov", "Dez", "Jan", "Fev", "Mar"]
        assert all(p["revenue"] == 0 and p["costs"] == 0 and p["profit"] == 0 for p in series)

    def test_monthly_sales_and_expenses(self):
        """Custos somam custo das vendas e despesas; lucro é receita menos custos."""
        sales = [
            make_sale(100.0, 40.0, when=datetime(2026, 2, 10, 15, 0, tzinfo=UTC)),
            make_sale(50.0, 20.0, when=NOW),
        ]
        expenses = [make_expense(10.0, date(2026, 2, 20))]

        series = time_series("monthly", sales, expenses, NOW, SP)
        feb, mar = series[4], series[5]

        assert feb == {"label": "Fev", "revenue": 100.0, "profit": 30.0, "costs": 70.0}
        assert mar == {"label": "Mar", "revenue": 50.0, "profit": 20.0, "costs": 30.0}

    def test_insertion_order_does_not_matter(self):
        """A saída segue a ordem cronológica, não a ordem dos registros."""
        sales = [
            make_sale(10.0, 5.0, when=NOW),
            make_sale(30.0, 5.0, when=datetime(2025, 10, 5, 15, 0, tzinfo=UTC)),
        ]
        series = time_series(ChartPeriod.MONTHLY, sales, [], NOW, SP)
        assert series[0]["revenue"] == 30.0
        assert series[-1]["revenue"] == 10.0

    def test_weekly_labels(self):
        """Sete dias terminando hoje (domingo)."""
        series = time_series(ChartPeriod.WEEKLY, [], [], NOW, SP)
        assert [p["label"] for p in series] == ["Seg", "Ter", "Qua", "Qui", "Sex", "Sáb", "Dom"]

    def test_weekly_uses_local_day(self):
        """Venda às 01:00 UTC cai no dia anterior em São Paulo."""
        sale = make_sale(10.0, 4.0, when=datetime(2026, 3, 15, 1, 0, tzinfo=UTC))
        series = time_series(ChartPeriod.WEEKLY, [sale], [], NOW, SP)
        assert series[5]["revenue"] == 10.0  # sábado
        assert series[6]["revenue"] == 0

    def test_today_hours_until_now(self):
        """Um bucket por hora de 00:00 até a hora atual."""
        series = time_series(ChartPeriod.TODAY, [], [], NOW, SP)
        assert len(series) == 13
        assert series[0]["label"] == "00:00"
        assert series[-1]["label"] == "12:00"

    def test_today_ignores_expenses_and_other_days(self):
        """Na visão por hora, despesas e vendas de outros dias ficam de fora."""
        sales = [
            make_sale(20.0, 8.0, when=datetime(2026, 3, 15, 13, 10, tzinfo=UTC)),  # 10:10 local
            make_sale(99.0, 9.0, when=datetime(2026, 3, 14, 13, 10, tzinfo=UTC)),
        ]
        expenses = [make_expense(50.0, date(2026, 3, 15))]

        series = time_series(ChartPeriod.TODAY, sales, expenses, NOW, SP)

        assert series[10] == {"label": "10:00", "revenue": 20.0, "profit": 8.0, "costs": 12.0}
        assert sum(p["revenue"] for p in series) == 20.0
        assert sum(p["costs"] for p in series) == 12.0


class TestGroupings:
    """Testes para agrupamentos por categoria, pagamento e produto."""

    def test_by_category_with_removed_product(self, leite):
        """Venda de produto removido cai em "outros"."""
        sales = [make_sale(12.0, 4.0, quantity=2, product=leite), make_sale(5.0, 2.0)]
        result = by_category(sales)
        assert result["laticinios"] == {"total": 12.0, "profit": 4.0, "count": 2}
        assert result["outros"] == {"total": 5.0, "profit": 2.0, "count": 1}

    def test_by_payment_method(self):
        """Acumula total, lucro e unidades por forma de pagamento."""
        sales = [
            make_sale(10.0, 3.0, payment="pix"),
            make_sale(20.0, 5.0, quantity=2, payment="pix"),
            make_sale(7.0, 1.0, payment="debito"),
        ]
        result = by_payment_method(sales)
        assert result["pix"] == {"total": 30.0, "profit": 8.0, "count": 3}
        assert result["debito"] == {"total": 7.0, "profit": 1.0, "count": 1}

    def test_top_products_sorted_by_profit(self, leite, pao):
        """Ordena por lucro acumulado e respeita o limite."""
        sales = [
            make_sale(6.0, 2.0, product=leite),
            make_sale(10.0, 5.0, quantity=10, product=pao),
            make_sale(6.0, 2.0, product=leite),
            make_sale(3.0, 1.0),
        ]
        result = top_products(sales, limit=2)
        assert [p["name"] for p in result] == ["Pão", "Leite"]
        assert result[0] == {"id": 2, "name": "Pão", "quantity": 10, "profit": 5.0}
        assert result[1]["quantity"] == 2

    def test_top_products_removed_product_name(self):
        """Vendas sem produto aparecem como "Produto removido"."""
        result = top_products([make_sale(3.0, 1.0)])
        assert result == [{"id": None, "name": "Produto removido", "quantity": 1, "profit": 1.0}]

    def test_sales_by_day(self):
        """Agrupa por dia local, em ordem de data."""
        sales = [
            make_sale(10.0, 4.0, when=datetime(2026, 3, 15, 12, 0, tzinfo=UTC)),
            make_sale(5.0, 1.0, when=datetime(2026, 3, 2, 2, 0, tzinfo=UTC)),  # 01/03 local
            make_sale(2.0, 1.0, when=datetime(2026, 3, 15, 20, 0, tzinfo=UTC)),
        ]
        result = sales_by_day(sales, SP)
        assert [d["date"] for d in result] == [date(2026, 3, 1), date(2026, 3, 15)]
        assert result[1] == {"date": date(2026, 3, 15), "revenue": 12.0, "profit": 5.0, "count": 2}

    def test_product_stats_markup(self, leite):
        """Markup é (venda - custo) / custo * 100."""
        sales = [make_sale(12.0, 4.0, quantity=2, product=leite)]
        result = product_stats(leite, sales)
        assert result == {"product_id": 1, "total_sold": 2, "total_profit": 4.0, "markup": 50.0}

    def test_product_stats_zero_cost(self):
        """Custo zero resulta em markup 0."""
        brinde = Product(id=9, name="Brinde", cost_price=0.0, sale_price=1.0)
        assert product_stats(brinde, [])["markup"] == 0.0


class TestDashboardMetricsQuery:
    """Testes para as métricas consultadas no banco."""

    def test_alerts_use_today_for_past_month(self, db_session, user, make_product):
        """Consultar um mês passado não muda a contagem de validade e estoque baixo."""
        today = to_local(utcnow(), SP).date()
        make_product(name="Iogurte", stock_quantity=20, min_stock=2, expiry_date=today + timedelta(days=10))
        make_product(name="Queijo", stock_quantity=1, min_stock=3)

        result = dashboard_metrics(db_session, user.id, datetime(2025, 1, 15, 12, tzinfo=UTC), SP)

        assert result.expiring_count == 1
        assert result.low_stock_count == 1
        assert result.total_revenue == 0
