"""Router para vendas, incluindo a venda rápida por texto livre."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request

from ..database import DbSession
from ..models import User
from ..rate_limit import limiter
from ..schemas import QuickSaleOut, QuickSaleRequest, SaleCreate, SaleOut, SaleUpdate
from ..services import data_access, sales as sale_service
from ..services.auth import get_current_user
from ..services.quick_sale import match_product, parse_quick_sale
from ..time_utils import local_tz, month_bounds, utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=SaleOut, status_code=201)
def create_sale(payload: SaleCreate, db: DbSession, current_user: User = Depends(get_current_user)):
    """Registra uma venda e dá baixa no estoque."""
    return sale_service.create_sale(
        db,
        current_user.id,
        payload.product_id,
        payload.quantity,
        payload.payment_method,
    )


@router.post("/quick", response_model=QuickSaleOut, status_code=201)
@limiter.limit("60/minute")
def quick_sale(
    request: Request,
    payload: QuickSaleRequest,
    db: DbSession,
    current_user: User = Depends(get_current_user),
):
    """
    Registra venda a partir de texto livre.

    - **text**: ex. "Leite - 2 pix", "Coca-Cola 3 crédito", "Pão francês"
    """
    parsed = parse_quick_sale(payload.text)
    product = match_product(data_access.list_products(db, current_user.id), parsed.product_query)
    sale = sale_service.create_sale(
        db,
        current_user.id,
        product.id,
        parsed.quantity,
        parsed.payment_method,
    )
    return QuickSaleOut(
        product_query=parsed.product_query,
        quantity=parsed.quantity,
        payment_method=parsed.payment_method,
        sale=SaleOut.model_validate(sale),
        message=f"Venda de {parsed.quantity}x {product.name} registrada!",
    )


@router.get("/", response_model=list[SaleOut])
def list_sales(
    db: DbSession,
    current_user: User = Depends(get_current_user),
    start: datetime | None = Query(None, description="Início do período (padrão: início do mês)"),
    end: datetime | None = Query(None, description="Fim do período, exclusivo"),
):
    """Lista vendas do período, mais recentes primeiro."""
    if start is None and end is None:
        start, end = month_bounds(utcnow(), local_tz())
    return data_access.list_sales(db, current_user.id, start=start, end=end)


@router.get("/{sale_id}", response_model=SaleOut)
def get_sale(sale_id: int, db: DbSession, current_user: User = Depends(get_current_user)):
    return data_access.get_sale(db, current_user.id, sale_id)


@router.patch("/{sale_id}", response_model=SaleOut)
def update_sale(
    sale_id: int,
    payload: SaleUpdate,
    db: DbSession,
    current_user: User = Depends(get_current_user),
):
    """Altera a quantidade vendida, ajustando o estoque pela diferença."""
    return sale_service.update_sale(db, current_user.id, sale_id, payload.quantity)


@router.delete("/{sale_id}")
def delete_sale(sale_id: int, db: DbSession, current_user: User = Depends(get_current_user)):
    """Remove a venda e devolve a quantidade ao estoque."""
    sale_service.delete_sale(db, current_user.id, sale_id)
    return {"message": "Venda removida com sucesso"}
