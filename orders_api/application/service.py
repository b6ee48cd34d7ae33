from typing import Any, List, Optional

from orders_api.core.logging_config import get_logger
from orders_api.core_settings import Settings, get_settings
from orders_api.domain.models import Order
from orders_api.infrastructure.store import OrderStore, StoreError
from .errors import BackendError, OrderNotFoundError, OrderValidationError, UpdateNotAllowedError
from .validation import OrderFieldValidator, UpdateAuthorizer, ValidationRules, check_update_values

logger = get_logger(__name__)

ERROR_LIST = "Erreur lors de la récupération des commandes"
ERROR_GET = "Erreur lors de la récupération de la commande par ID"
ERROR_CREATE = "Erreur lors de la création de la commande"
ERROR_UPDATE = "Erreur lors de la mise à jour de la commande"
ERROR_DELETE = "Erreur lors de la suppression de la commande"

class OrderService:
    def __init__(self, store: OrderStore, settings: Optional[Settings] = None):
        self.store = store
        rules = ValidationRules.from_settings(settings or get_settings())
        self.validator = OrderFieldValidator(rules)
        self.authorizer = UpdateAuthorizer(rules)

    def list(self) -> List[Order]:
        try:
            return self.store.list_all()
        except StoreError as e:
            logger.error(f"Listing orders failed: {e}", exc_info=True)
            raise BackendError(ERROR_LIST, e) from e

    def get(self, order_id: str) -> Order:
        try:
            order = self.store.get_by_id(order_id)
        except StoreError as e:
            logger.error(f"Fetching order {order_id} failed: {e}", exc_info=True)
            raise BackendError(ERROR_GET, e) from e
        if order is None:
            raise OrderNotFoundError()
        return order

    def create(self, payload: Any) -> str:
        """Validate a creation payload and persist it.

        Nothing is written when validation fails. Returns the new order id.
        """
        try:
            fields = self.validator.validate(payload)
        except OrderValidationError as e:
            logger.warning(f"Order creation rejected: {e.message}")
            raise

        try:
            order_id = self.store.insert(fields)
        except StoreError as e:
            logger.error(f"Order creation failed: {e}", exc_info=True)
            raise BackendError(ERROR_CREATE, e) from e

        logger.info(
            f"Order {order_id} created",
            extra={'extra_fields': {'order_id': order_id, 'client_id': fields["clientId"]}}
        )
        return order_id

    def update(self, order_id: str, payload: Any) -> None:
        """Apply a status and/or price change to an existing order.

        The existence check and the write are two separate store calls; an
        order deleted in between is reported as not found by the write.
        """
        try:
            changes = check_update_values(self.authorizer.authorize(payload, order_id))
        except UpdateNotAllowedError as e:
            logger.warning(f"Update of order {order_id} rejected: {e.message}")
            raise

        try:
            if self.store.get_by_id(order_id) is None:
                raise OrderNotFoundError()
            if not self.store.update_fields(order_id, changes):
                raise OrderNotFoundError()
        except StoreError as e:
            logger.error(f"Update of order {order_id} failed: {e}", exc_info=True)
            raise BackendError(ERROR_UPDATE, e) from e

        logger.info(f"Order {order_id} updated", extra={'extra_fields': {'fields': sorted(changes)}})

    def delete(self, order_id: str) -> None:
        try:
            if self.store.get_by_id(order_id) is None:
                raise OrderNotFoundError()
            if not self.store.delete_by_id(order_id):
                raise OrderNotFoundError()
        except StoreError as e:
            logger.error(f"Deletion of order {order_id} failed: {e}", exc_info=True)
            raise BackendError(ERROR_DELETE, e) from e

        logger.info(f"Order {order_id} deleted")
