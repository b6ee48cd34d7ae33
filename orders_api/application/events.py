"""Pub/Sub event handling.

Decoding of the push envelope is kept apart from dispatching so the
handlers can be exercised with a plain dict. Each handler is a single
best-effort store mutation; none of them validates status transitions.
"""
import base64
import binascii
import json
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from orders_api.core.logging_config import get_logger, set_request_context
from orders_api.core_settings import Settings, get_settings
from orders_api.infrastructure.store import OrderStore, StoreError
from .errors import MalformedEventError, UpdateNotAllowedError
from .schemas import EventOutcome, PubSubMessage
from .validation import check_update_values

logger = get_logger(__name__)

DELETE_CLIENT = "DELETE_CLIENT"
ORDER_CONFIRMATION = "ORDER_CONFIRMATION"


def decode_envelope(envelope: Any) -> Dict[str, Any]:
    """Return the JSON payload carried by a ``{message: {data: base64}}`` envelope."""
    if not isinstance(envelope, dict) or not isinstance(envelope.get("message"), dict):
        raise MalformedEventError("Message Pub/Sub invalide : champ message absent")
    try:
        message = PubSubMessage.model_validate(envelope["message"])
    except ValidationError as exc:
        raise MalformedEventError("Message Pub/Sub invalide : structure incorrecte") from exc
    if not message.data:
        raise MalformedEventError("Message Pub/Sub invalide : champ data absent")

    set_request_context(message_id=message.messageId)
    try:
        raw = base64.b64decode(message.data, validate=True)
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError) as exc:
        raise MalformedEventError("Message Pub/Sub invalide : données non décodables") from exc

    if not isinstance(payload, dict) or not payload.get("action"):
        raise MalformedEventError("Message Pub/Sub invalide : champ action absent")
    return payload


class EventConsumer:
    def __init__(self, store: OrderStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()
        self._handlers: Dict[str, Callable[[Dict[str, Any]], EventOutcome]] = {
            DELETE_CLIENT: self.delete_client,
            ORDER_CONFIRMATION: self.confirm_order,
        }

    def dispatch(self, event: Dict[str, Any]) -> EventOutcome:
        action = event.get("action")
        handler = self._handlers.get(action) if isinstance(action, str) else None
        if handler is None:
            logger.warning(f"Unrecognized event action: {action!r}")
            return EventOutcome(status_code=400, message=f"Action non reconnue : {action}")
        logger.info(f"Dispatching event {action}")
        return handler(event)

    def delete_client(self, event: Dict[str, Any]) -> EventOutcome:
        """Remove every order of a client. Repeating the event is a no-op."""
        client_id = event.get("clientId")
        if not isinstance(client_id, str) or not client_id:
            return EventOutcome(status_code=400, message="Le champ clientId est obligatoire.")

        try:
            orders = self.store.query_by_field("clientId", client_id)
            deleted = self.store.delete_many(orders)
        except StoreError as e:
            logger.error(f"Deleting orders of client {client_id} failed: {e}", exc_info=True)
            return EventOutcome(
                status_code=500,
                message=f"Erreur lors de la suppression des commandes du client {client_id} : {e}",
            )

        logger.info(
            f"Deleted {deleted} order(s) of client {client_id}",
            extra={'extra_fields': {'client_id': client_id, 'deleted': deleted}}
        )
        return EventOutcome(
            status_code=200,
            message=f"Commandes du client {client_id} supprimées : {deleted}",
            affected=deleted,
        )

    def confirm_order(self, event: Dict[str, Any]) -> EventOutcome:
        order_id = event.get("orderId")
        if not isinstance(order_id, str) or not order_id or event.get("status") is None:
            return EventOutcome(status_code=400, message="Les champs orderId et status sont obligatoires.")

        # An absent price resets it to the configured default rather than keeping it
        price = event.get("price")
        if price is None:
            price = self.settings.CONFIRMATION_DEFAULT_PRICE
        try:
            changes = check_update_values({"status": event["status"], "price": price})
        except UpdateNotAllowedError as e:
            logger.warning(f"Confirmation of order {order_id} rejected: {e.message}")
            return EventOutcome(status_code=400, message=e.message)

        try:
            if self.store.get_by_id(order_id) is None:
                return self._order_missing(order_id)
            if not self.store.update_fields(order_id, changes):
                return self._order_missing(order_id)
        except StoreError as e:
            logger.error(f"Confirmation of order {order_id} failed: {e}", exc_info=True)
            return EventOutcome(
                status_code=500,
                message=f"Erreur lors de la confirmation de la commande {order_id} : {e}",
            )

        logger.info(
            f"Order {order_id} confirmed",
            extra={'extra_fields': {'status': event["status"], 'price': price}}
        )
        return EventOutcome(status_code=200, message=f"Commande {order_id} confirmée", affected=1)

    def _order_missing(self, order_id: str) -> EventOutcome:
        logger.warning(f"Confirmation for unknown order {order_id}")
        return EventOutcome(status_code=404, message=f"Commande {order_id} non trouvée")
