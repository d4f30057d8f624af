"""Registro, alteração e remoção de vendas mantendo o estoque consistente.

Cada operação grava a venda e o ajuste de estoque na mesma transação. A baixa
de estoque é um UPDATE condicional (``stock_quantity >= qtd``), então duas
vendas simultâneas do mesmo produto não conseguem deixar o estoque negativo:
a que perder a corrida recebe ``InsufficientStock``.
"""

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InsufficientStock, NotFound, UpstreamFailure, ValidationError
from ..models import Product, Sale
from ..schemas import PaymentMethod
from ..time_utils import utcnow
from .data_access import get_product, get_sale

logger = logging.getLogger(__name__)


def _money(value: float) -> float:
    return round(value, 2)


def _price_sale(sale: Sale, product: Product, quantity: int) -> None:
    """Copia os preços atuais do produto para a venda e recalcula total e lucro."""
    sale.quantity = quantity
    sale.unit_price = product.sale_price
    sale.cost_price = product.cost_price
    sale.total_price = _money(product.sale_price * quantity)
    sale.profit = _money((product.sale_price - product.cost_price) * quantity)


def _apply_stock_delta(db: Session, product_id: int, delta: int) -> bool:
    """Soma ``delta`` ao estoque. Baixas só são aplicadas se houver saldo."""
    stmt = update(Product).where(Product.id == product_id)
    if delta < 0:
        stmt = stmt.where(Product.stock_quantity >= -delta)
    stmt = stmt.values(stock_quantity=Product.stock_quantity + delta).execution_options(
        synchronize_session=False
    )
    return db.execute(stmt).rowcount == 1


def create_sale(
    db: Session,
    user_id: int,
    product_id: int,
    quantity: int,
    payment_method: PaymentMethod | str = PaymentMethod.DINHEIRO,
    sale_date: datetime | None = None,
) -> Sale:
    """Registra uma venda e dá baixa no estoque do produto."""
    if quantity < 1:
        raise ValidationError("Quantidade deve ser maior que zero")
    method = PaymentMethod(payment_method)

    product = get_product(db, user_id, product_id)
    if product.stock_quantity < quantity:
        raise InsufficientStock(product.stock_quantity)

    sale = Sale(
        user_id=user_id,
        product_id=product.id,
        payment_method=method.value,
        sale_date=sale_date or utcnow(),
    )
    _price_sale(sale, product, quantity)

    try:
        if not _apply_stock_delta(db, product.id, -quantity):
            db.rollback()
            raise InsufficientStock(product.stock_quantity)
        db.add(sale)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Erro ao registrar venda do produto {product_id}: {e}")
        raise UpstreamFailure("Erro ao registrar venda") from e

    db.refresh(sale)
    logger.info(f"Venda registrada: {sale.id} - {quantity}x produto {product_id} ({method.value})")
    return sale


def delete_sale(db: Session, user_id: int, sale_id: int) -> None:
    """Remove a venda devolvendo a quantidade ao estoque.

    Se o produto já foi removido, a devolução é ignorada e a venda é removida
    mesmo assim.
    """
    sale = get_sale(db, user_id, sale_id)

    try:
        restored = False
        if sale.product_id is not None:
            restored = _apply_stock_delta(db, sale.product_id, sale.quantity)
        if not restored:
            logger.warning(f"Venda {sale_id}: produto removido, estoque não restaurado")
        db.delete(sale)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Erro ao remover venda {sale_id}: {e}")
        raise UpstreamFailure("Erro ao remover venda") from e

    logger.info(f"Venda removida: {sale_id}")


def update_sale(db: Session, user_id: int, sale_id: int, new_quantity: int) -> Sale:
    """Altera a quantidade vendida ajustando o estoque pela diferença.

    Total e lucro são recalculados com os preços *atuais* do produto.
    """
    if new_quantity < 1:
        raise ValidationError("Quantidade deve ser maior que zero")

    sale = get_sale(db, user_id, sale_id)
    diff = new_quantity - sale.quantity
    if diff == 0:
        return sale

    if sale.product_id is None:
        raise NotFound("Produto não encontrado")
    product = get_product(db, user_id, sale.product_id)

    if diff > 0 and product.stock_quantity < diff:
        raise InsufficientStock(product.stock_quantity)

    try:
        if not _apply_stock_delta(db, product.id, -diff):
            db.rollback()
            raise InsufficientStock(product.stock_quantity)
        _price_sale(sale, product, new_quantity)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Erro ao atualizar venda {sale_id}: {e}")
        raise UpstreamFailure("Erro ao atualizar venda") from e

    db.refresh(sale)
    logger.info(f"Venda atualizada: {sale_id} - quantidade {sale.quantity - diff} -> {sale.quantity}")
    return sale
