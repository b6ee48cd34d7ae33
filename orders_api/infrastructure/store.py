"""Order store adapter.

Thin interface over the ``orders`` collection. Field names crossing this
boundary are the public camelCase ones (``productId``, ``clientId``...);
the SQL implementation maps them onto the mapped attributes.
"""
from abc import ABC, abstractmethod
from functools import wraps
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from orders_api.core.logging_config import get_logger
from orders_api.domain.models import FIELD_ATTRIBUTES, Order

logger = get_logger(__name__)


class StoreError(Exception):
    """Backend or transport failure, distinct from "not found"."""


class OrderStore(ABC):
    @abstractmethod
    def list_all(self) -> List[Order]:
        ...

    @abstractmethod
    def get_by_id(self, order_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    def insert(self, fields: Dict[str, Any]) -> str:
        """Persist a new order and return the id assigned to it."""

    @abstractmethod
    def update_fields(self, order_id: str, fields: Dict[str, Any]) -> bool:
        """Apply a partial update. Returns False when the order does not exist."""

    @abstractmethod
    def delete_by_id(self, order_id: str) -> bool:
        ...

    @abstractmethod
    def query_by_field(self, field_name: str, value: Any) -> List[Order]:
        ...

    @abstractmethod
    def delete_many(self, orders: Sequence[Order]) -> int:
        """Delete the given orders as one grouped operation, returning the count removed."""


def _column_values(fields: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return {FIELD_ATTRIBUTES[name]: value for name, value in fields.items()}
    except KeyError as exc:
        raise StoreError(f"Unknown order field: {exc.args[0]}") from exc


def _short_reason(exc: SQLAlchemyError) -> str:
    """Driver message without the SQL statement and parameters."""
    orig = getattr(exc, "orig", None)
    if orig is not None and str(orig):
        return str(orig).strip().splitlines()[0]
    return exc.__class__.__name__


def _translate_errors(method):
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            self.db.rollback()
            # Full statement text stays in the chained exception for the logs
            logger.error(f"{method.__name__} failed: {exc}")
            raise StoreError(_short_reason(exc)) from exc
    return wrapper


class SqlOrderStore(OrderStore):
    def __init__(self, db: Session):
        self.db = db

    @_translate_errors
    def list_all(self) -> List[Order]:
        return self.db.query(Order).all()

    @_translate_errors
    def get_by_id(self, order_id: str) -> Optional[Order]:
        return self.db.query(Order).filter(Order.id == order_id).first()

    @_translate_errors
    def insert(self, fields: Dict[str, Any]) -> str:
        values = _column_values(fields)
        values.pop("id", None)
        order = Order(**values)
        self.db.add(order)
        self.db.commit()
        return order.id

    @_translate_errors
    def update_fields(self, order_id: str, fields: Dict[str, Any]) -> bool:
        values = _column_values(fields)
        values.pop("id", None)
        updated = (
            self.db.query(Order)
            .filter(Order.id == order_id)
            .update(values)
        )
        self.db.commit()
        return updated > 0

    @_translate_errors
    def delete_by_id(self, order_id: str) -> bool:
        deleted = (
            self.db.query(Order)
            .filter(Order.id == order_id)
            .delete()
        )
        self.db.commit()
        return deleted > 0

    @_translate_errors
    def query_by_field(self, field_name: str, value: Any) -> List[Order]:
        attribute = _column_values({field_name: value})
        column = getattr(Order, next(iter(attribute)))
        return self.db.query(Order).filter(column == value).all()

    @_translate_errors
    def delete_many(self, orders: Sequence[Order]) -> int:
        ids = [order.id for order in orders]
        if not ids:
            return 0
        deleted = (
            self.db.query(Order)
            .filter(Order.id.in_(ids))
            .delete()
        )
        self.db.commit()
        return deleted
