"""Helpers de calendário para consultas "do dia" e formatação pt-BR."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

BR_DATETIME_FORMAT = "%d/%m/%Y %H:%M:%S"


def resolve_zone(tz: str | ZoneInfo | None) -> ZoneInfo:
    if isinstance(tz, ZoneInfo):
        return tz
    return ZoneInfo(tz or "UTC")


def local_today(tz: str | ZoneInfo | None, now: Optional[datetime] = None) -> date:
    zone = resolve_zone(tz)
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(zone).date()


def day_bounds_utc(day: date, tz: str | ZoneInfo | None) -> Tuple[datetime, datetime]:
    """Return ``[00:00:00, 23:59:59.999999]`` of ``day`` in ``tz`` as UTC datetimes."""

    zone = resolve_zone(tz)
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day, time.max, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def day_bounds_epoch(day: date, tz: str | ZoneInfo | None) -> Tuple[int, int]:
    """Inclusive epoch-second range covering 00:00:00-23:59:59 of ``day``."""

    zone = resolve_zone(tz)
    start = datetime.combine(day, time.min, tzinfo=zone)
    # o dia seguinte à meia-noite menos um segundo respeita dias com DST
    next_start = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return int(start.timestamp()), int(next_start.timestamp()) - 1


def parse_day(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError("Formato de data inválido. Use AAAA-MM-DD.") from exc


def format_br(moment: Optional[datetime], tz: str | ZoneInfo | None) -> str:
    current = moment or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(resolve_zone(tz)).strftime(BR_DATETIME_FORMAT)


def to_iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return str(value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


__all__ = [
    "BR_DATETIME_FORMAT",
    "day_bounds_epoch",
    "day_bounds_utc",
    "format_br",
    "local_today",
    "parse_day",
    "resolve_zone",
    "to_iso",
    "utc_now",
]
