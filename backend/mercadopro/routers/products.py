"""Router para o catálogo de produtos."""

import logging

from fastapi import APIRouter, Depends, Query

from ..config import settings
from ..database import DbSession
from ..errors import ValidationError
from ..models import Product, User
from ..schemas import (
    CATEGORY_LABELS,
    ProductCreate,
    ProductOut,
    ProductStatsOut,
    ProductUpdate,
)
from ..services import data_access
from ..services.auth import get_current_user
from ..services.metrics import product_stats
from ..time_utils import local_tz, to_local, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

REQUIRED_FIELDS = ("name", "category", "cost_price", "sale_price", "stock_quantity", "min_stock")


def _validate_references(db: DbSession, user_id: int, data: dict) -> None:
    """Categoria deve ser fixa ou personalizada do usuário; fornecedor deve existir."""
    category = data.get("category")
    if category is not None and category not in CATEGORY_LABELS:
        if category not in data_access.user_category_names(db, user_id):
            raise ValidationError(f"Categoria inválida: {category}")
    if data.get("supplier_id") is not None:
        data_access.get_supplier(db, user_id, data["supplier_id"])


@router.post("/", response_model=ProductOut, status_code=201)
def create_product(payload: ProductCreate, db: DbSession, current_user: User = Depends(get_current_user)):
    """Cadastra um produto."""
    data = payload.model_dump()
    _validate_references(db, current_user.id, data)

    product = Product(user_id=current_user.id, **data)
    if product.entry_date is None:
        product.entry_date = to_local(utcnow(), local_tz()).date()
    db.add(product)
    db.commit()
    db.refresh(product)

    logger.info(f"Produto criado: {product.id} - {product.name}")
    return product


@router.get("/", response_model=list[ProductOut])
def list_products(
    db: DbSession,
    current_user: User = Depends(get_current_user),
    search: str | None = Query(None, description="Buscar por nome ou categoria (mín. 2 caracteres)"),
    category: str | None = Query(None, description="Filtrar por categoria"),
):
    """Lista produtos em ordem alfabética."""
    if search is not None and len(search.strip()) < 2:
        return []
    return data_access.list_products(db, current_user.id, search=search, category=category)


@router.get("/low-stock", response_model=list[ProductOut])
def list_low_stock(db: DbSession, current_user: User = Depends(get_current_user)):
    """Produtos com estoque no mínimo ou abaixo."""
    return data_access.list_low_stock_products(db, current_user.id)


@router.get("/expiring", response_model=list[ProductOut])
def list_expiring(db: DbSession, current_user: User = Depends(get_current_user)):
    """Produtos vencidos ou vencendo na janela configurada."""
    today = to_local(utcnow(), local_tz()).date()
    return data_access.list_expiring_products(db, current_user.id, today, settings.expiring_window_days)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: DbSession, current_user: User = Depends(get_current_user)):
    """Busca um produto pelo ID."""
    return data_access.get_product(db, current_user.id, product_id)


@router.get("/{product_id}/stats", response_model=ProductStatsOut)
def get_product_stats(product_id: int, db: DbSession, current_user: User = Depends(get_current_user)):
    """Unidades vendidas, lucro acumulado e markup do produto."""
    product = data_access.get_product(db, current_user.id, product_id)
    sales = data_access.list_product_sales(db, current_user.id, product_id)
    return product_stats(product, sales)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: DbSession,
    current_user: User = Depends(get_current_user),
):
    """Atualiza um produto. Apenas campos fornecidos são alterados.

    Vendas já registradas mantêm os preços da época.
    """
    product = data_access.get_product(db, current_user.id, product_id)
    update_data = payload.model_dump(exclude_unset=True)
    nulls = [f for f in REQUIRED_FIELDS if f in update_data and update_data[f] is None]
    if nulls:
        raise ValidationError(f"Campos obrigatórios não podem ser nulos: {', '.join(nulls)}")
    _validate_references(db, current_user.id, update_data)

    for field, value in update_data.items():
        setattr(product, field, value)

    db.commit()
    db.refresh(product)

    logger.info(f"Produto atualizado: {product.id}")
    return product


@router.delete("/{product_id}")
def delete_product(product_id: int, db: DbSession, current_user: User = Depends(get_current_user)):
    """Remove um produto. As vendas dele ficam como "Produto removido"."""
    product = data_access.get_product(db, current_user.id, product_id)
    db.delete(product)
    db.commit()

    logger.info(f"Produto removido: {product_id}")
    return {"message": "Produto removido com sucesso"}
