"""Shared helpers for API blueprints."""
from __future__ import annotations

import math
from typing import Any, Dict, Optional

from flask import current_app, request

from nimbus.app.settings import get_app_settings
from nimbus.repository.Base_repository import Page
from nimbus.repository.Measurement_repository import ParameterWriteLocks
from nimbus.services.realtime_service import Broadcaster
from nimbus.utils.constants import MAX_DB_INT
from nimbus.utils.errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _positive_int(name: str, default: int, maximum: Optional[int] = None) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(
            issues=[{"field": name, "message": f"{name} deve ser um inteiro positivo."}]
        ) from exc
    if value < 1 or (maximum is not None and value > maximum):
        limit_hint = f" (máximo {maximum})" if maximum is not None else ""
        raise ValidationError(
            issues=[{"field": name, "message": f"{name} fora do intervalo permitido{limit_hint}."}]
        )
    return value


def pagination_args() -> tuple[int, int]:
    return (
        _positive_int("page", DEFAULT_PAGE, MAX_DB_INT),
        _positive_int("limit", DEFAULT_LIMIT, MAX_LIMIT),
    )


def optional_int_arg(name: str) -> Optional[int]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(
            issues=[{"field": name, "message": f"{name} deve ser um inteiro."}]
        ) from exc
    if abs(value) > MAX_DB_INT:
        raise ValidationError(
            issues=[{"field": name, "message": f"{name} fora do intervalo permitido."}]
        )
    return value


def optional_float_arg(name: str) -> Optional[float]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValidationError(
            issues=[{"field": name, "message": f"{name} deve ser um número."}]
        ) from exc
    if not math.isfinite(value):
        raise ValidationError(
            issues=[{"field": name, "message": f"{name} deve ser um número finito."}]
        )
    return value


def choice_arg(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = request.args.get(name) or default
    if raw not in choices:
        raise ValidationError(
            issues=[{"field": name, "message": f"{name} deve ser um de: {', '.join(choices)}."}]
        )
    return raw


def json_body() -> Any:
    return request.get_json(silent=True)


def paginated(page: Page, serializer) -> Dict[str, Any]:
    return {"data": [serializer(item) for item in page.items], "meta": page.meta()}


def broadcaster() -> Broadcaster:
    return current_app.extensions["broadcaster"]


def write_locks() -> ParameterWriteLocks:
    return current_app.extensions["parameter_write_locks"]


def app_timezone() -> str:
    return get_app_settings().timezone


__all__ = [
    "app_timezone",
    "broadcaster",
    "choice_arg",
    "json_body",
    "optional_float_arg",
    "optional_int_arg",
    "paginated",
    "pagination_args",
    "write_locks",
]
