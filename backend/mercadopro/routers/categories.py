"""Router para categorias personalizadas de produto."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..database import DbSession
from ..models import Category, Product, User
from ..schemas import CATEGORY_LABELS, CategoryCreate, CategoryListOut, CategoryOut
from ..services.auth import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=CategoryListOut)
def list_categories(db: DbSession, current_user: User = Depends(get_current_user)):
    """Categorias fixas e as criadas pelo usuário."""
    custom = (
        db.query(Category)
        .filter(Category.user_id == current_user.id)
        .order_by(Category.name)
        .all()
    )
    return {"builtin": CATEGORY_LABELS, "custom": custom}


@router.post("/", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryCreate, db: DbSession, current_user: User = Depends(get_current_user)):
    """Cria categoria personalizada."""
    if payload.name in CATEGORY_LABELS or payload.name.lower() in {v.lower() for v in CATEGORY_LABELS.values()}:
        raise HTTPException(status_code=409, detail="Categoria já existe entre as categorias padrão")

    existing = (
        db.query(Category)
        .filter(Category.user_id == current_user.id, Category.name == payload.name)
        .first()
    )
    if existing:
        raise HTTPException(status_code=409, detail="Categoria já cadastrada")

    category = Category(user_id=current_user.id, name=payload.name)
    db.add(category)
    db.commit()
    db.refresh(category)

    logger.info(f"Categoria criada: {category.id} - {category.name}")
    return category


@router.delete("/{category_id}")
def delete_category(category_id: int, db: DbSession, current_user: User = Depends(get_current_user)):
    """Remove categoria personalizada. Produtos dela passam para "outros"."""
    category = (
        db.query(Category)
        .filter(Category.id == category_id, Category.user_id == current_user.id)
        .first()
    )
    if not category:
        raise HTTPException(status_code=404, detail="Categoria não encontrada")

    moved = (
        db.query(Product)
        .filter(Product.user_id == current_user.id, Product.category == category.name)
        .update({Product.category: "outros"}, synchronize_session=False)
    )
    db.delete(category)
    db.commit()

    logger.info(f"Categoria removida: {category_id} ({moved} produtos movidos para 'outros')")
    return {"message": "Categoria removida com sucesso"}
