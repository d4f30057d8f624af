"""Router para assinatura, período de teste e bloqueio de rotas."""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Query

from ..config import settings
from ..database import DbSession
from ..models import User
from ..schemas import AccessDecisionOut, SubscriptionStatus, SubscriptionStatusOut, TrialStatusOut
from ..services import data_access
from ..services.access_control import (
    DatabaseKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    SubscriptionSnapshot,
    TrialTracker,
    decide_access,
    derive_subscription,
    trial_notice_key,
)
from ..services.auth import AuthContext, get_current_user, get_optional_auth_context
from ..time_utils import utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


def get_kv_store(db: DbSession) -> KeyValueStore:
    """Armazenamento do período de teste conforme ``trial_store``."""
    if settings.trial_store == "redis":
        return RedisKeyValueStore.from_url(settings.redis_url)
    return DatabaseKeyValueStore(db)


def get_trial_tracker(store: KeyValueStore = Depends(get_kv_store)) -> TrialTracker:
    return TrialTracker(store, timedelta(days=settings.trial_days))


def _snapshot(db: DbSession, user_id: int) -> SubscriptionSnapshot:
    return derive_subscription(data_access.list_subscriptions(db, user_id), utcnow())


@router.get("/status", response_model=SubscriptionStatusOut)
def get_status(db: DbSession, current_user: User = Depends(get_current_user)):
    """Status da assinatura para exibição."""
    snapshot = _snapshot(db, current_user.id)
    return SubscriptionStatusOut(
        status=snapshot.status,
        days_remaining=snapshot.days_remaining,
        expires_at=snapshot.expires_at,
        plan_type=snapshot.plan_type,
        show_renewal_banner=snapshot.show_renewal_banner(settings.renewal_banner_days),
    )


@router.get("/trial", response_model=TrialStatusOut)
def get_trial(
    current_user: User = Depends(get_current_user),
    tracker: TrialTracker = Depends(get_trial_tracker),
):
    """Tempo restante do período de teste. A primeira chamada marca o início."""
    return tracker.status(current_user.id, utcnow())


@router.get("/access", response_model=AccessDecisionOut)
def check_access(
    db: DbSession,
    path: str = Query(..., description="Rota que o usuário quer acessar"),
    context: AuthContext | None = Depends(get_optional_auth_context),
    store: KeyValueStore = Depends(get_kv_store),
):
    """
    Decide se a rota pode ser acessada.

    Sem autenticação a resposta é um redirecionamento para o login, não 401.
    """
    if context is None:
        return decide_access(
            path,
            authenticated=False,
            plans_path=settings.plans_path,
            login_path=settings.login_path,
        )

    user_id = context.user.id
    now = utcnow()
    snapshot = _snapshot(db, user_id)

    trial = None
    if snapshot.status == SubscriptionStatus.NONE:
        trial = TrialTracker(store, timedelta(days=settings.trial_days)).status(user_id, now)

    notice_key = trial_notice_key(user_id, context.session_id)
    decision = decide_access(
        path,
        authenticated=True,
        subscription=snapshot,
        trial=trial,
        notice_already_shown=store.has(notice_key),
        plans_path=settings.plans_path,
        login_path=settings.login_path,
        banner_days=settings.renewal_banner_days,
    )

    if decision.show_trial_notice:
        store.set(notice_key, now.isoformat())
    if decision.redirect_to:
        logger.info(f"Acesso a {path} redirecionado para {decision.redirect_to} (user={user_id})")
    return decision
