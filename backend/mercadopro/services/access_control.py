"""Controle de acesso: status da assinatura, período de teste e bloqueio de rotas."""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Protocol

from redis import Redis
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import ClientState, Subscription
from ..schemas import GateAction, SubscriptionStatus
from ..time_utils import as_utc

logger = logging.getLogger(__name__)

DAY = timedelta(days=1)


# =============================================================================
# ARMAZENAMENTO CHAVE-VALOR
# =============================================================================


class KeyValueStore(Protocol):
    """Armazenamento simples usado para o início do teste e avisos já exibidos."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def add_if_absent(self, key: str, value: str) -> bool:
        """Grava só se a chave não existir. Retorna True se gravou."""
        ...

    def has(self, key: str) -> bool: ...


class DatabaseKeyValueStore:
    """Chaves gravadas na tabela ``client_state``."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> str | None:
        row = self.db.get(ClientState, key)
        return row.value if row else None

    def set(self, key: str, value: str) -> None:
        self.db.merge(ClientState(key=key, value=value))
        self.db.commit()

    def add_if_absent(self, key: str, value: str) -> bool:
        if self.db.get(ClientState, key) is not None:
            return False
        self.db.add(ClientState(key=key, value=value))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        return True

    def has(self, key: str) -> bool:
        return self.db.get(ClientState, key) is not None


@lru_cache
def shared_redis_client(url: str) -> Redis:
    """Um cliente (e um pool de conexões) por URL no processo."""
    return Redis.from_url(url, decode_responses=True)


class RedisKeyValueStore:
    """Chaves gravadas no Redis."""

    def __init__(self, client: Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        return cls(shared_redis_client(url))

    def get(self, key: str) -> str | None:
        value = self.client.get(key)
        if isinstance(value, bytes):
            return value.decode()
        return value

    def set(self, key: str, value: str) -> None:
        self.client.set(key, value)

    def add_if_absent(self, key: str, value: str) -> bool:
        return bool(self.client.set(key, value, nx=True))

    def has(self, key: str) -> bool:
        return bool(self.client.exists(key))


# =============================================================================
# PERÍODO DE TESTE
# =============================================================================


@dataclass(frozen=True)
class TrialStatus:
    started_at: datetime
    time_left_seconds: int
    is_expired: bool


def trial_key(user_id: int) -> str:
    return f"trial_start_{user_id}"


def trial_notice_key(user_id: int, session_id: str) -> str:
    return f"trial_notice_{user_id}_{session_id}"


class TrialTracker:
    """Conta o tempo de teste a partir do primeiro acesso do usuário.

    O início é gravado uma única vez; chamadas seguintes sempre usam o valor
    original.
    """

    def __init__(self, store: KeyValueStore, duration: timedelta):
        self.store = store
        self.duration = duration

    def start(self, user_id: int, now: datetime) -> datetime:
        key = trial_key(user_id)
        stored = self.store.get(key)
        if stored is not None:
            return as_utc(datetime.fromisoformat(stored))

        started_at = as_utc(now)
        if not self.store.add_if_absent(key, started_at.isoformat()):
            # Outro acesso simultâneo gravou primeiro; vale o valor dele
            return as_utc(datetime.fromisoformat(self.store.get(key)))
        logger.info(f"Período de teste iniciado para usuário {user_id}")
        return started_at

    def status(self, user_id: int, now: datetime) -> TrialStatus:
        started_at = self.start(user_id, now)
        elapsed = as_utc(now) - started_at
        remaining = max(0, math.ceil((self.duration - elapsed).total_seconds()))
        return TrialStatus(started_at=started_at, time_left_seconds=remaining, is_expired=remaining <= 0)


# =============================================================================
# ASSINATURA
# =============================================================================


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """Status de acesso e dados de exibição da assinatura."""

    status: SubscriptionStatus
    days_remaining: int | None = None
    expires_at: datetime | None = None
    plan_type: str | None = None

    def show_renewal_banner(self, banner_days: int = 7) -> bool:
        return (
            self.status == SubscriptionStatus.ACTIVE
            and self.days_remaining is not None
            and self.days_remaining <= banner_days
        )


def days_remaining(expires_at: datetime, now: datetime) -> int:
    """Dias restantes arredondados para cima; nunca negativo."""
    diff = as_utc(expires_at) - as_utc(now)
    return max(0, math.ceil(diff / DAY))


def _is_valid(row: Subscription, now: datetime) -> bool:
    return row.status == "active" and as_utc(row.expires_at) > now


def derive_subscription(rows: Iterable[Subscription], now: datetime) -> SubscriptionSnapshot:
    """Escolhe a assinatura que vale para o usuário.

    Entre as ativas e não vencidas, vale a que expira por último. Sem nenhuma
    válida, a que expira por último é usada só para exibição e o status é
    ``expired``. Sem nenhuma linha, o status é ``none``.
    """
    now = as_utc(now)
    rows = sorted(rows, key=lambda r: as_utc(r.expires_at), reverse=True)
    if not rows:
        return SubscriptionSnapshot(status=SubscriptionStatus.NONE)

    valid = [r for r in rows if _is_valid(r, now)]
    picked = valid[0] if valid else rows[0]
    status = SubscriptionStatus.ACTIVE if valid else SubscriptionStatus.EXPIRED

    return SubscriptionSnapshot(
        status=status,
        days_remaining=days_remaining(picked.expires_at, now),
        expires_at=as_utc(picked.expires_at),
        plan_type=picked.plan_type,
    )


# =============================================================================
# BLOQUEIO DE ROTAS
# =============================================================================


@dataclass(frozen=True)
class AccessDecision:
    action: GateAction
    status: SubscriptionStatus
    redirect_to: str | None = None
    show_trial_notice: bool = False
    trial_time_left_seconds: int | None = None
    show_renewal_banner: bool = False


def decide_access(
    path: str,
    *,
    authenticated: bool,
    loading: bool = False,
    subscription: SubscriptionSnapshot | None = None,
    trial: TrialStatus | None = None,
    notice_already_shown: bool = False,
    plans_path: str = "/planos",
    login_path: str = "/login",
    banner_days: int = 7,
) -> AccessDecision:
    """Decide se a rota ``path`` pode ser acessada.

    Assinatura vencida tem prioridade sobre o período de teste. A página de
    planos é sempre liberada para não criar um redirecionamento em loop.
    """
    if loading:
        return AccessDecision(action=GateAction.WAIT, status=SubscriptionStatus.LOADING)

    if not authenticated:
        return AccessDecision(
            action=GateAction.REDIRECT, status=SubscriptionStatus.NONE, redirect_to=login_path
        )

    status = subscription.status if subscription else SubscriptionStatus.NONE
    banner = subscription.show_renewal_banner(banner_days) if subscription else False

    if path.rstrip("/") == plans_path.rstrip("/"):
        return AccessDecision(action=GateAction.ALLOW, status=status, show_renewal_banner=banner)

    if status == SubscriptionStatus.ACTIVE:
        return AccessDecision(action=GateAction.ALLOW, status=status, show_renewal_banner=banner)

    if status == SubscriptionStatus.EXPIRED:
        return AccessDecision(action=GateAction.REDIRECT, status=status, redirect_to=plans_path)

    if trial is not None and not trial.is_expired:
        return AccessDecision(
            action=GateAction.ALLOW,
            status=status,
            show_trial_notice=not notice_already_shown,
            trial_time_left_seconds=trial.time_left_seconds,
        )

    return AccessDecision(
        action=GateAction.REDIRECT,
        status=status,
        redirect_to=plans_path,
        trial_time_left_seconds=trial.time_left_seconds if trial else 0,
    )
