from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from orders_api.api.security import require_api_key, require_pubsub_api_key
from orders_api.application.events import EventConsumer, decode_envelope
from orders_api.application.schemas import OrderRead
from orders_api.application.service import OrderService
from orders_api.infrastructure.db import get_db
from orders_api.infrastructure.publisher import OrderEventPublisher
from orders_api.infrastructure.store import OrderStore, SqlOrderStore

router = APIRouter(prefix="/orders", tags=["orders"])

def get_store(db: Session = Depends(get_db)) -> OrderStore:
    return SqlOrderStore(db)

def get_order_service(store: OrderStore = Depends(get_store)) -> OrderService:
    return OrderService(store)

def get_event_consumer(store: OrderStore = Depends(get_store)) -> EventConsumer:
    return EventConsumer(store)

def get_publisher() -> OrderEventPublisher:
    return OrderEventPublisher()

@router.get(
    "",
    response_model=list[OrderRead],
    response_model_exclude_none=True,
    dependencies=[Depends(require_api_key)],
)
def list_orders(service: OrderService = Depends(get_order_service)):
    return service.list()

@router.post("", status_code=201, response_class=PlainTextResponse)
def create_order(
    background_tasks: BackgroundTasks,
    payload: Any = Body(None),
    service: OrderService = Depends(get_order_service),
    publisher: OrderEventPublisher = Depends(get_publisher),
):
    order_id = service.create(payload)
    # Sent after the response; a publish failure never undoes the creation
    background_tasks.add_task(
        publisher.publish_order_created, order_id, payload["quantity"], payload["productId"]
    )
    return PlainTextResponse(f"Commande créée avec son ID : {order_id}", status_code=201)

@router.post("/pubsub", response_class=PlainTextResponse, dependencies=[Depends(require_pubsub_api_key)])
def receive_event(
    envelope: Any = Body(None),
    consumer: EventConsumer = Depends(get_event_consumer),
):
    """Push endpoint for order events (client deletion, order confirmation)."""
    event = decode_envelope(envelope)
    outcome = consumer.dispatch(event)
    return PlainTextResponse(outcome.message, status_code=outcome.status_code)

@router.get("/{order_id}", response_model=OrderRead, response_model_exclude_none=True)
def get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    return service.get(order_id)

@router.put("/{order_id}", response_class=PlainTextResponse, dependencies=[Depends(require_api_key)])
def update_order(
    order_id: str,
    payload: Any = Body(None),
    service: OrderService = Depends(get_order_service),
):
    service.update(order_id, payload)
    return PlainTextResponse("Commande mise à jour")

@router.delete("/{order_id}", response_class=PlainTextResponse, dependencies=[Depends(require_api_key)])
def delete_order(order_id: str, service: OrderService = Depends(get_order_service)):
    service.delete(order_id)
    return PlainTextResponse("Commande supprimée")
