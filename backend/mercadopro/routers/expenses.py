"""Router para despesas."""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query

from ..database import DbSession
from ..models import Expense, User
from ..schemas import ExpenseCreate, ExpenseOut
from ..services import data_access
from ..services.auth import get_current_user
from ..time_utils import local_tz, month_date_bounds, utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ExpenseOut, status_code=201)
def create_expense(payload: ExpenseCreate, db: DbSession, current_user: User = Depends(get_current_user)):
    """Registra uma despesa."""
    expense = Expense(user_id=current_user.id, **payload.model_dump())
    db.add(expense)
    db.commit()
    db.refresh(expense)

    logger.info(f"Despesa registrada: {expense.id} - R${expense.amount:.2f}")
    return expense


@router.get("/", response_model=list[ExpenseOut])
def list_expenses(
    db: DbSession,
    current_user: User = Depends(get_current_user),
    start_date: date | None = Query(None, description="Data inicial (padrão: início do mês)"),
    end_date: date | None = Query(None, description="Data final, inclusive"),
):
    if start_date is None and end_date is None:
        start_date, end_date = month_date_bounds(utcnow(), local_tz())
    return data_access.list_expenses(db, current_user.id, start_date=start_date, end_date=end_date)


@router.delete("/{expense_id}")
def delete_expense(expense_id: int, db: DbSession, current_user: User = Depends(get_current_user)):
    expense = data_access.get_expense(db, current_user.id, expense_id)
    db.delete(expense)
    db.commit()

    logger.info(f"Despesa removida: {expense_id}")
    return {"message": "Despesa removida com sucesso"}
