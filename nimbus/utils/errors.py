"""Hierarquia de erros de domínio traduzida para respostas HTTP pela API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class NimbusError(Exception):
    """Base exception for failures surfaced to API callers."""

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


class ValidationError(NimbusError):
    """Malformed or missing input, with one issue per offending field."""

    status_code = 400

    def __init__(
        self,
        message: str = "Erro de validação nos dados enviados.",
        *,
        issues: Optional[List[Dict[str, str]]] = None,
    ) -> None:
        super().__init__(message)
        self.issues = issues or []

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "errors": self.issues}

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        issues = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ())),
                "message": error.get("msg", ""),
            }
            for error in exc.errors()
        ]
        return cls(issues=issues)


class NotFoundError(NimbusError):
    status_code = 404


class ConflictError(NimbusError):
    status_code = 409


class DuplicateAlarmError(ConflictError):
    """The (user, measurement, alert) triple was already recorded."""

    def __init__(self, user_id: int, measurement_id: int, alert_id: int) -> None:
        super().__init__(
            "Alarme já registrado para este usuário, medida e alerta.",
            context={
                "user_id": user_id,
                "measurement_id": measurement_id,
                "alert_id": alert_id,
            },
        )
        self.key = (user_id, measurement_id, alert_id)


class ForeignKeyError(NimbusError):
    """A referenced related entity does not exist."""

    status_code = 400

    def __init__(
        self,
        field: str,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message or f"Falha na restrição de chave estrangeira: {field}",
            status_code=status_code,
            context={"field": field},
        )
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "field": self.field}


class InternalError(NimbusError):
    status_code = 500

    def __init__(self, message: str = "Erro interno do servidor.", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


__all__ = [
    "ConflictError",
    "DuplicateAlarmError",
    "ForeignKeyError",
    "InternalError",
    "NimbusError",
    "NotFoundError",
    "ValidationError",
]
