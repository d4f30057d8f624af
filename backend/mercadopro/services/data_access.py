"""Consultas tipadas sobre produtos, vendas, despesas e assinaturas.

Todas as funções recebem o ``user_id`` do dono dos registros; nenhuma consulta
cruza dados entre usuários.
"""

from datetime import date, datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ..errors import NotFound
from ..models import Category, Expense, Product, Sale, Subscription, Supplier
from ..schemas import CATEGORY_LABELS
from ..time_utils import as_utc


# === Produtos ===


def list_products(
    db: Session,
    user_id: int,
    search: str | None = None,
    category: str | None = None,
) -> list[Product]:
    """Lista produtos ordenados por nome, com busca por nome ou rótulo de categoria."""
    query = db.query(Product).filter(Product.user_id == user_id)

    if search:
        term = search.strip().lower()
        # A busca por rótulo ("Laticínios") precisa ser traduzida para a chave ("laticinios")
        matching_keys = [key for key, label in CATEGORY_LABELS.items() if term in label.lower()]
        conditions = [Product.name.ilike(f"%{term}%"), Product.category.ilike(f"%{term}%")]
        if matching_keys:
            conditions.append(Product.category.in_(matching_keys))
        query = query.filter(or_(*conditions))
    if category:
        query = query.filter(Product.category == category)

    return query.order_by(Product.name).all()


def get_product(db: Session, user_id: int, product_id: int) -> Product:
    product = (
        db.query(Product)
        .filter(Product.id == product_id, Product.user_id == user_id)
        .first()
    )
    if not product:
        raise NotFound("Produto não encontrado")
    return product


def list_low_stock_products(db: Session, user_id: int) -> list[Product]:
    """Produtos com estoque menor ou igual ao mínimo."""
    return (
        db.query(Product)
        .filter(Product.user_id == user_id, Product.stock_quantity <= Product.min_stock)
        .order_by(Product.stock_quantity)
        .all()
    )


def list_expiring_products(db: Session, user_id: int, today: date, window_days: int) -> list[Product]:
    """Produtos vencendo em até ``window_days`` dias (inclui os já vencidos)."""
    limit = today + timedelta(days=window_days)
    return (
        db.query(Product)
        .filter(
            Product.user_id == user_id,
            Product.expiry_date.is_not(None),
            Product.expiry_date <= limit,
        )
        .order_by(Product.expiry_date)
        .all()
    )


def user_category_names(db: Session, user_id: int) -> set[str]:
    rows = db.query(Category.name).filter(Category.user_id == user_id).all()
    return {name for (name,) in rows}


def get_supplier(db: Session, user_id: int, supplier_id: int) -> Supplier:
    supplier = (
        db.query(Supplier)
        .filter(Supplier.id == supplier_id, Supplier.user_id == user_id)
        .first()
    )
    if not supplier:
        raise NotFound("Fornecedor não encontrado")
    return supplier


# === Vendas ===


def list_sales(
    db: Session,
    user_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Sale]:
    """Vendas no intervalo ``[start, end)``, mais recentes primeiro, com o produto carregado.

    Limites com fuso são convertidos para UTC antes da consulta; sem fuso, são UTC.
    """
    query = (
        db.query(Sale)
        .options(joinedload(Sale.product))
        .filter(Sale.user_id == user_id)
    )
    if start is not None:
        query = query.filter(Sale.sale_date >= as_utc(start))
    if end is not None:
        query = query.filter(Sale.sale_date < as_utc(end))
    return query.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()


def list_product_sales(db: Session, user_id: int, product_id: int) -> list[Sale]:
    return (
        db.query(Sale)
        .filter(Sale.user_id == user_id, Sale.product_id == product_id)
        .all()
    )


def get_sale(db: Session, user_id: int, sale_id: int) -> Sale:
    sale = (
        db.query(Sale)
        .filter(Sale.id == sale_id, Sale.user_id == user_id)
        .first()
    )
    if not sale:
        raise NotFound("Venda não encontrada")
    return sale


# === Despesas ===


def list_expenses(
    db: Session,
    user_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[Expense]:
    """Despesas entre ``start_date`` e ``end_date`` (datas, inclusive)."""
    query = db.query(Expense).filter(Expense.user_id == user_id)
    if start_date is not None:
        query = query.filter(Expense.expense_date >= start_date)
    if end_date is not None:
        query = query.filter(Expense.expense_date <= end_date)
    return query.order_by(Expense.expense_date.desc(), Expense.id.desc()).all()


def get_expense(db: Session, user_id: int, expense_id: int) -> Expense:
    expense = (
        db.query(Expense)
        .filter(Expense.id == expense_id, Expense.user_id == user_id)
        .first()
    )
    if not expense:
        raise NotFound("Despesa não encontrada")
    return expense


# === Assinaturas ===


def list_subscriptions(db: Session, user_id: int) -> list[Subscription]:
    """Todas as assinaturas do usuário, a que expira por último primeiro."""
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.expires_at.desc())
        .all()
    )
