"""
Repository interface for ledger aggregates.

Engines depend on `Repository`, never on a concrete store. Both backends hand
out copies: mutating a returned entity has no effect until it is `upsert`ed.
"""
from abc import ABC, abstractmethod
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from app.common.exceptions import InvalidArgumentError

import logging

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)
Predicate = Callable[[Any], bool]


class Repository(ABC, Generic[T]):
    """get / list / upsert / delete by id"""

    def __init__(self, entity_name: str, deletable: bool = True):
        self.entity_name = entity_name
        self.deletable = deletable

    @abstractmethod
    def get(self, entity_id: str) -> Optional[T]:
        ...

    @abstractmethod
    def list(self, predicate: Optional[Predicate] = None, **filters) -> List[T]:
        """All entities matching every `field=value` filter and the predicate."""
        ...

    @abstractmethod
    def upsert(self, entity: T) -> T:
        ...

    def delete(self, entity_id: str) -> bool:
        if not self.deletable:
            raise InvalidArgumentError(f"{self.entity_name} records cannot be deleted; deactivate them instead")
        return self._delete(entity_id)

    @abstractmethod
    def _delete(self, entity_id: str) -> bool:
        ...

    @staticmethod
    def _matches(entity: Any, predicate: Optional[Predicate], filters: Dict[str, Any]) -> bool:
        for field, expected in filters.items():
            if getattr(entity, field) != expected:
                return False
        return predicate is None or predicate(entity)


class InMemoryRepository(Repository[T]):
    """Process-lifetime store keyed by id."""

    def __init__(self, entity_name: str, deletable: bool = True):
        super().__init__(entity_name, deletable)
        self._lock = Lock()
        self._items: Dict[str, T] = {}

    def get(self, entity_id: str) -> Optional[T]:
        with self._lock:
            entity = self._items.get(entity_id)
            return entity.model_copy(deep=True) if entity is not None else None

    def list(self, predicate: Optional[Predicate] = None, **filters) -> List[T]:
        with self._lock:
            snapshot = list(self._items.values())
        return [
            entity.model_copy(deep=True)
            for entity in snapshot
            if self._matches(entity, predicate, filters)
        ]

    def upsert(self, entity: T) -> T:
        with self._lock:
            self._items[entity.id] = entity.model_copy(deep=True)
        return entity

    def _delete(self, entity_id: str) -> bool:
        with self._lock:
            return self._items.pop(entity_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class SqlAlchemyRepository(Repository[T]):
    """Repository over one SQLAlchemy table; one short transaction per call."""

    json_fields: Tuple[str, ...] = ()

    def __init__(self, session_factory, row_model, schema: Type[T], entity_name: str, deletable: bool = True):
        super().__init__(entity_name, deletable)
        self._session_factory = session_factory
        self._row_model = row_model
        self._schema = schema
        self._columns = set(row_model.__table__.columns.keys())

    def to_row_values(self, entity: T) -> Dict[str, Any]:
        data = entity.model_dump()
        if self.json_fields:
            data.update(entity.model_dump(mode="json", include=set(self.json_fields)))
        values = {}
        for key, value in data.items():
            if key not in self._columns:
                continue
            values[key] = value.value if isinstance(value, Enum) else value
        return values

    def from_row(self, row) -> T:
        return self._schema.model_validate(row, from_attributes=True)

    def get(self, entity_id: str) -> Optional[T]:
        with self._session_factory() as session:
            row = session.get(self._row_model, entity_id)
            return self.from_row(row) if row is not None else None

    def list(self, predicate: Optional[Predicate] = None, **filters) -> List[T]:
        with self._session_factory() as session:
            query = session.query(self._row_model)
            sql_filters = {k: v for k, v in filters.items() if k in self._columns}
            if sql_filters:
                query = query.filter_by(**{
                    k: (v.value if isinstance(v, Enum) else v) for k, v in sql_filters.items()
                })
            entities = [self.from_row(row) for row in query.order_by(self._row_model.created_at).all()]
        remaining = {k: v for k, v in filters.items() if k not in sql_filters}
        return [entity for entity in entities if self._matches(entity, predicate, remaining)]

    def upsert(self, entity: T) -> T:
        with self._session_factory() as session:
            try:
                session.merge(self._row_model(**self.to_row_values(entity)))
                session.commit()
            except Exception as e:
                session.rollback()
                logger.error(f"Failed to upsert {self.entity_name} {entity.id}: {e}")
                raise
        return entity

    def _delete(self, entity_id: str) -> bool:
        with self._session_factory() as session:
            row = session.get(self._row_model, entity_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True


class ProductSqlRepository(SqlAlchemyRepository[T]):
    """Products keep their stock snapshot nested; the table stores it flattened."""

    def to_row_values(self, entity: T) -> Dict[str, Any]:
        values = super().to_row_values(entity)
        for level, amount in entity.stock.model_dump().items():
            values[f"stock_{level}"] = amount
        return values

    def from_row(self, row) -> T:
        return self._schema.model_validate({
            "id": row.id,
            "name": row.name,
            "sku": row.sku,
            "price": row.price,
            "currency": row.currency,
            "is_active": row.is_active,
            "updated_at": row.updated_at,
            "stock": {
                "current": row.stock_current,
                "reserved": row.stock_reserved,
                "minimum": row.stock_minimum,
                "maximum": row.stock_maximum,
            },
        })


class InvoiceSqlRepository(SqlAlchemyRepository[T]):
    json_fields = ("items", "notes")
