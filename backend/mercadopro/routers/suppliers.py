"""Router para fornecedores."""

import logging

from fastapi import APIRouter, Depends

from ..database import DbSession
from ..models import Supplier, User
from ..schemas import SupplierCreate, SupplierOut
from ..services import data_access
from ..services.auth import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[SupplierOut])
def list_suppliers(db: DbSession, current_user: User = Depends(get_current_user)):
    return (
        db.query(Supplier)
        .filter(Supplier.user_id == current_user.id)
        .order_by(Supplier.name)
        .all()
    )


@router.post("/", response_model=SupplierOut, status_code=201)
def create_supplier(payload: SupplierCreate, db: DbSession, current_user: User = Depends(get_current_user)):
    supplier = Supplier(user_id=current_user.id, **payload.model_dump())
    db.add(supplier)
    db.commit()
    db.refresh(supplier)

    logger.info(f"Fornecedor criado: {supplier.id} - {supplier.name}")
    return supplier


@router.delete("/{supplier_id}")
def delete_supplier(supplier_id: int, db: DbSession, current_user: User = Depends(get_current_user)):
    """Remove fornecedor; produtos ficam sem fornecedor."""
    supplier = data_access.get_supplier(db, current_user.id, supplier_id)
    for product in supplier.products:
        product.supplier_id = None
    db.delete(supplier)
    db.commit()

    logger.info(f"Fornecedor removido: {supplier_id}")
    return {"message": "Fornecedor removido com sucesso"}
