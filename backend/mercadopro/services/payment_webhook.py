"""Interpretação das notificações da Cakto e ativação de assinaturas.

O payload muda de formato entre versões; os campos são procurados tanto no
objeto ``data`` aninhado quanto na raiz.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import UpstreamFailure
from ..models import Subscription, User
from ..schemas import PlanType

logger = logging.getLogger(__name__)

PAID_STATUSES = {"paid", "approved", "completed", "authorized", "succeeded"}

QUARTERLY_KEYWORDS = ("trimestral", "trimensal", "quarterly", "quarter", "3 meses", "três meses", "3mes")
YEARLY_KEYWORDS = ("anual", "yearly", "annual", "year", "12 meses", "um ano")


def _dig(obj: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _data(payload: dict) -> dict:
    data = payload.get("data")
    return data if isinstance(data, dict) else {}


def extract_email(payload: dict) -> str | None:
    d = _data(payload)
    candidates = [
        _dig(d, "customer", "email"),
        _dig(d, "payer", "email"),
        _dig(payload, "customer", "email"),
        _dig(payload, "payer", "email"),
        payload.get("email"),
    ]
    for value in candidates:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_status(payload: dict) -> str | None:
    d = _data(payload)
    for value in (d.get("status"), payload.get("status"), payload.get("state"), payload.get("current_status")):
        if value:
            return str(value)
    return None


def is_paid(status: str | None) -> bool:
    return str(status).lower() in PAID_STATUSES


def plan_text(payload: dict) -> str:
    """Junta todos os campos que podem identificar o plano em uma string minúscula."""
    d = _data(payload)
    fields = [
        _dig(d, "offer", "name"),
        _dig(d, "offer", "periodicity"),
        _dig(d, "plan", "name"),
        _dig(d, "plan", "periodicity"),
        _dig(d, "plan", "interval"),
        _dig(d, "subscription", "plan", "name"),
        _dig(d, "subscription", "plan", "periodicity"),
        _dig(d, "subscription", "offer", "name"),
        _dig(d, "product", "name"),
        d.get("product_name"),
        d.get("description"),
        payload.get("product_name"),
        payload.get("description"),
        payload.get("plan_name"),
    ]
    return " ".join(str(f) for f in fields if f).lower()


def infer_plan_type(payload: dict) -> PlanType:
    """Trimestral é testado antes de anual; sem correspondência, mensal."""
    text = plan_text(payload)
    interval_count = _dig(_data(payload), "plan", "interval_count")

    if any(k in text for k in QUARTERLY_KEYWORDS) or ("month" in text and interval_count == 3):
        return PlanType.QUARTERLY
    if any(k in text for k in YEARLY_KEYWORDS) or ("month" in text and interval_count == 12):
        return PlanType.YEARLY
    return PlanType.MONTHLY


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()


def activate_subscription(db: Session, user: User, plan: PlanType, now: datetime) -> Subscription:
    """Grava a assinatura do usuário como ativa a partir de agora.

    A linha existente é sobrescrita; o prazo conta de ``now`` e não do
    vencimento anterior.
    """
    expires_at = now + timedelta(days=plan.days)
    subscription = (
        db.query(Subscription)
        .filter(Subscription.user_id == user.id)
        .order_by(Subscription.expires_at.desc())
        .first()
    )
    if subscription is None:
        subscription = Subscription(user_id=user.id)
        db.add(subscription)

    subscription.plan_type = plan.value
    subscription.status = "active"
    subscription.starts_at = now
    subscription.expires_at = expires_at
    subscription.updated_at = now

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Erro ao salvar assinatura do usuário {user.id}: {e}")
        raise UpstreamFailure("Erro ao salvar assinatura") from e

    db.refresh(subscription)
    logger.info(f"Assinatura salva: user={user.id} | plano={plan.value} | expira={expires_at.isoformat()}")
    return subscription
