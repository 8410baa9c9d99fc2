"""Infraestrutura simples de repositórios baseada em SQLAlchemy."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from nimbus.app import db
from nimbus.utils.errors import NotFoundError
from nimbus.utils.logs import logger


@dataclass
class Page:
    """Uma página de resultados e os totais usados no ``meta`` da API."""

    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)

    def meta(self) -> Dict[str, int]:
        return {
            "totalItems": self.total,
            "currentPage": self.page,
            "totalPages": self.total_pages,
            "itemsPerPage": self.limit,
        }


class BaseRepo:
    """Implementa operações CRUD básicas com tratamento de erros consistente."""

    not_found_message = "Registro não encontrado."

    def __init__(self, model: Type[Any], session: Optional[Session] = None) -> None:
        self.model = model
        self.session = session or db.session

    # ------------------------------------------------------------------
    # Utilitários internos
    # ------------------------------------------------------------------
    def _commit(self, commit: bool) -> None:
        if commit:
            self.session.commit()
        else:
            self.session.flush()

    def _paginate(self, query: Query, page: int, limit: int) -> Page:
        try:
            total = query.order_by(None).count()
            items = query.offset((page - 1) * limit).limit(limit).all()
        except SQLAlchemyError:
            logger.exception(
                "Erro ao paginar %s page=%s limit=%s", self.model.__name__, page, limit
            )
            raise
        return Page(items=items, total=total, page=page, limit=limit)

    # ------------------------------------------------------------------
    # Operações de leitura
    # ------------------------------------------------------------------
    def get(self, id: Any) -> Optional[Any]:
        try:
            return self.session.get(self.model, id)
        except SQLAlchemyError:
            logger.exception("Erro ao buscar %s id=%s", self.model.__name__, id)
            raise

    def get_or_404(self, id: Any) -> Any:
        obj = self.get(id)
        if obj is None:
            raise NotFoundError(self.not_found_message, context={"id": id})
        return obj

    def list_all(self, limit: Optional[int] = None, offset: Optional[int] = None) -> List[Any]:
        query = self.session.query(self.model).order_by(self.model.id)
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        try:
            return query.all()
        except SQLAlchemyError:
            logger.exception("Erro ao listar %s", self.model.__name__)
            raise

    def find_by(self, **filters: Any) -> List[Any]:
        try:
            return self.session.query(self.model).filter_by(**filters).all()
        except SQLAlchemyError:
            logger.exception("Erro em find_by %s filtros=%s", self.model.__name__, filters)
            raise

    def exists(self, **filters: Any) -> bool:
        try:
            return self.session.query(self.model).filter_by(**filters).first() is not None
        except SQLAlchemyError:
            logger.exception(
                "Erro ao verificar existência de %s com filtros=%s",
                self.model.__name__,
                filters,
            )
            raise

    # ------------------------------------------------------------------
    # Operações de escrita
    # ------------------------------------------------------------------
    def add(self, obj: Any, commit: bool = True) -> Any:
        try:
            self.session.add(obj)
            self._commit(commit)
            return obj
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Erro ao adicionar %s", self.model.__name__)
            raise

    def update(self, obj: Any, commit: bool = True) -> Any:
        try:
            merged = self.session.merge(obj)
            self._commit(commit)
            return merged
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Erro ao actualizar %s", self.model.__name__)
            raise

    def delete(self, obj: Any, commit: bool = True) -> bool:
        try:
            self.session.delete(obj)
            self._commit(commit)
            return True
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Erro ao apagar %s", self.model.__name__)
            raise

    def delete_by_id(self, id: Any, commit: bool = True) -> bool:
        obj = self.get_or_404(id)
        return self.delete(obj, commit=commit)
