"""Outbound order events, published to a Pub/Sub topic over its REST API."""
import base64
import json
from typing import Any, Dict, Optional

import httpx

from orders_api.core.logging_config import get_logger
from orders_api.core_settings import Settings, get_settings

logger = get_logger(__name__)

CREATE_ORDER = "CREATE_ORDER"

class OrderEventPublisher:
    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None):
        settings = settings or get_settings()
        self.url = settings.ORDER_EVENTS_URL
        self.token = settings.ORDER_EVENTS_TOKEN
        self.timeout = settings.ORDER_EVENTS_TIMEOUT
        self.transport = transport

    @staticmethod
    def encode(event: Dict[str, Any]) -> Dict[str, Any]:
        data = base64.b64encode(json.dumps(event).encode("utf-8")).decode("ascii")
        return {"messages": [{"data": data}]}

    def publish(self, event: Dict[str, Any]) -> bool:
        """Publish one event. Failures are logged and reported as False, never raised."""
        if not self.url:
            logger.info(f"ORDER_EVENTS_URL not configured; {event.get('action')} event skipped")
            return False

        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.url, json=self.encode(event), headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Publishing {event.get('action')} event failed: {e}")
            return False
        return True

    def publish_order_created(self, order_id: str, quantity: Any, product_id: str) -> bool:
        return self.publish({
            "action": CREATE_ORDER,
            "orderId": order_id,
            "quantity": quantity,
            "productId": product_id,
        })
