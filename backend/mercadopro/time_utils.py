"""Utilitários de data/hora: normalização para UTC e limites de período no fuso local."""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from .config import settings


def utcnow() -> datetime:
    """'Agora' do servidor em UTC (com tzinfo)."""
    return datetime.now(UTC)


def local_tz(name: str | None = None) -> ZoneInfo:
    """Fuso usado para agrupar vendas por hora/dia/mês."""
    return ZoneInfo(name or settings.timezone)


def as_utc(dt: datetime) -> datetime:
    """Garante datetime com tzinfo. Datetimes sem fuso (ex: SQLite) são tratados como UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_local(dt: datetime, tz: ZoneInfo) -> datetime:
    return as_utc(dt).astimezone(tz)


def start_of_day(day: date, tz: ZoneInfo) -> datetime:
    """Meia-noite local de ``day``, em UTC."""
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(UTC)


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Soma ``delta`` meses a (ano, mês)."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_bounds(as_of: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Intervalo UTC ``[início, fim)`` do mês local que contém ``as_of``."""
    local = to_local(as_of, tz)
    start = date(local.year, local.month, 1)
    next_year, next_month = shift_month(local.year, local.month, 1)
    end = date(next_year, next_month, 1)
    return start_of_day(start, tz), start_of_day(end, tz)


def month_date_bounds(as_of: datetime, tz: ZoneInfo) -> tuple[date, date]:
    """Primeiro e último dia (datas, inclusive) do mês local que contém ``as_of``."""
    local = to_local(as_of, tz)
    next_year, next_month = shift_month(local.year, local.month, 1)
    last = date(next_year, next_month, 1) - timedelta(days=1)
    return date(local.year, local.month, 1), last
