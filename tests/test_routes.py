import httpx

from orders_api.api.routes import get_publisher, get_store
from orders_api.core_settings import Settings, get_settings
from orders_api.infrastructure.publisher import OrderEventPublisher
from orders_api.main import app
from tests.conftest import API_HEADERS, VALID_ORDER, FailingStore, make_envelope

CREATED_PREFIX = "Commande créée avec son ID : "


def create(client, payload=None) -> str:
    resp = client.post("/orders", json=payload or VALID_ORDER)
    assert resp.status_code == 201
    assert resp.text.startswith(CREATED_PREFIX)
    return resp.text[len(CREATED_PREFIX):]


def test_root_welcome(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.text == "Bienvenue sur l'API Commandes"


def test_order_lifecycle_scenario(client):
    order_id = create(client)

    resp = client.get(f"/orders/{order_id}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == order_id
    assert body["productId"] == "prod123"
    assert body["clientId"] == "client123"
    assert body["quantity"] == 2
    assert body["price"] == 29.99
    assert body["status"] == "En attente de confirmation"

    resp = client.put(f"/orders/{order_id}", json={"status": "Livrée"}, headers=API_HEADERS)
    assert resp.status_code == 200
    assert resp.text == "Commande mise à jour"
    assert client.get(f"/orders/{order_id}").json()["status"] == "Livrée"

    resp = client.delete(f"/orders/{order_id}", headers=API_HEADERS)
    assert resp.status_code == 200
    assert resp.text == "Commande supprimée"

    resp = client.get(f"/orders/{order_id}")
    assert resp.status_code == 404
    assert resp.text == "Commande non trouvée"


def test_unpriced_order_omits_price(client):
    payload = dict(VALID_ORDER)
    del payload["price"]
    order_id = create(client, payload)
    assert "price" not in client.get(f"/orders/{order_id}").json()


def test_list_requires_api_key(client):
    resp = client.get("/orders")
    assert resp.status_code == 403
    assert resp.json() == {"message": "Forbidden: Invalid API Key"}

    resp = client.get("/orders", headers={"x-api-key": "wrong"})
    assert resp.status_code == 403


def test_list_orders(client):
    create(client)
    create(client)
    resp = client.get("/orders", headers=API_HEADERS)
    assert resp.status_code == 200
    assert len(resp.json()) == 2


def test_create_validation_failure_is_plain_text(client):
    resp = client.post("/orders", json={"date": "2024-06-08"})
    assert resp.status_code == 400
    assert resp.headers["content-type"].startswith("text/plain")
    assert resp.text == "Tous les champs date, productId, clientId et quantity sont obligatoires."
    assert client.get("/orders", headers=API_HEADERS).json() == []


def test_create_rejects_injection(client):
    resp = client.post("/orders", json=dict(VALID_ORDER, clientId="<script>alert(1)</script>"))
    assert resp.status_code == 400
    assert resp.text == (
        "Les champs productId et clientId doivent contenir uniquement des lettres et des chiffres."
    )


def test_update_requires_api_key(client):
    order_id = create(client)
    resp = client.put(f"/orders/{order_id}", json={"status": "Livrée"})
    assert resp.status_code == 403
    assert client.get(f"/orders/{order_id}").json()["status"] == "En attente de confirmation"


def test_update_disallowed_field(client):
    order_id = create(client)
    resp = client.put(f"/orders/{order_id}", json={"id_produit": "p2"}, headers=API_HEADERS)
    assert resp.status_code == 400
    assert resp.text.startswith("Seuls les champs status et price peuvent être mis à jour.")
    assert client.get(f"/orders/{order_id}").json()["productId"] == "prod123"


def test_update_unknown_order(client):
    resp = client.put("/orders/test", json={"status": "Livrée"}, headers=API_HEADERS)
    assert resp.status_code == 404
    assert resp.text == "Commande non trouvée"


def test_delete_unknown_order_twice(client):
    for _ in range(2):
        resp = client.delete("/orders/test", headers=API_HEADERS)
        assert resp.status_code == 404
        assert resp.text == "Commande non trouvée"


def test_backend_failure_is_500(client):
    app.dependency_overrides[get_store] = lambda: FailingStore()
    resp = client.get("/orders/abc")
    assert resp.status_code == 500
    assert resp.text == "Erreur lors de la récupération de la commande par ID : connection refused"


def test_pubsub_delete_client(client):
    create(client)
    create(client)
    other_id = create(client, dict(VALID_ORDER, clientId="client456"))

    resp = client.post("/orders/pubsub", json=make_envelope({"action": "DELETE_CLIENT", "clientId": "client123"}))
    assert resp.status_code == 200
    assert resp.text == "Commandes du client client123 supprimées : 2"

    remaining = client.get("/orders", headers=API_HEADERS).json()
    assert [o["id"] for o in remaining] == [other_id]


def test_pubsub_order_confirmation(client):
    payload = dict(VALID_ORDER)
    del payload["price"]
    order_id = create(client, payload)

    resp = client.post("/orders/pubsub", json=make_envelope(
        {"action": "ORDER_CONFIRMATION", "orderId": order_id, "status": "confirmed"}
    ))
    assert resp.status_code == 200
    body = client.get(f"/orders/{order_id}").json()
    assert body["status"] == "confirmed"
    assert body["price"] == 0


def test_pubsub_confirmation_unknown_order(client):
    resp = client.post("/orders/pubsub", json=make_envelope(
        {"action": "ORDER_CONFIRMATION", "orderId": "missing", "status": "confirmed"}
    ))
    assert resp.status_code == 404


def test_pubsub_bad_envelope(client):
    resp = client.post("/orders/pubsub", json={"message": {"data": "!!!"}})
    assert resp.status_code == 400
    assert resp.text.startswith("Message Pub/Sub invalide")


def test_pubsub_unknown_action(client):
    order_id = create(client)
    resp = client.post("/orders/pubsub", json=make_envelope({"action": "REFUND", "orderId": order_id}))
    assert resp.status_code == 400
    assert resp.text == "Action non reconnue : REFUND"
    assert client.get(f"/orders/{order_id}").status_code == 200


def test_health_endpoints(client):
    assert client.get("/health/live").json() == {"status": "alive"}
    resp = client.get("/health/ready")
    assert resp.status_code == 200
    checks = resp.json()["checks"]
    assert checks["orders:store"]["status"] == "pass"
    assert checks["events:publisher"]["status"] == "warn"


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert resp.headers["X-Request-ID"] == "req-42"


def test_update_with_null_status_is_rejected(client):
    order_id = create(client)
    resp = client.put(f"/orders/{order_id}", json={"status": None}, headers=API_HEADERS)
    assert resp.status_code == 400
    assert resp.text == "Le champ status doit être une chaîne de caractères."
    assert client.get(f"/orders/{order_id}").json()["status"] == "En attente de confirmation"


def test_update_with_non_numeric_price_is_rejected(client):
    order_id = create(client)
    resp = client.put(f"/orders/{order_id}", json={"price": "abc"}, headers=API_HEADERS)
    assert resp.status_code == 400
    assert resp.text == "Le champ price doit être un nombre."
    assert client.get(f"/orders/{order_id}").json()["price"] == 29.99


def test_update_accepts_zero_price_and_empty_status(client):
    order_id = create(client)
    resp = client.put(f"/orders/{order_id}", json={"price": 0, "status": ""}, headers=API_HEADERS)
    assert resp.status_code == 200
    body = client.get(f"/orders/{order_id}").json()
    assert body["price"] == 0
    assert body["status"] == ""


def test_long_identifiers_and_status_are_stored(client):
    client_id = "c" * 500
    order_id = create(client, dict(VALID_ORDER, clientId=client_id))
    status = "s" * 500
    resp = client.put(f"/orders/{order_id}", json={"status": status}, headers=API_HEADERS)
    assert resp.status_code == 200
    body = client.get(f"/orders/{order_id}").json()
    assert body["clientId"] == client_id
    assert body["status"] == status


def test_create_rejects_infinite_quantity(client):
    resp = client.post(
        "/orders",
        content='{"date": "2024-06-08", "productId": "p1", "clientId": "c1", "quantity": Infinity}',
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.text == "Le champ quantity doit être un nombre positif."
    assert client.get("/orders", headers=API_HEADERS).json() == []


class RecordingPublisher:
    def __init__(self):
        self.calls = []

    def publish_order_created(self, order_id, quantity, product_id):
        self.calls.append((order_id, quantity, product_id))
        return True


def test_create_publishes_order_created(client):
    publisher = RecordingPublisher()
    app.dependency_overrides[get_publisher] = lambda: publisher
    order_id = create(client)
    assert publisher.calls == [(order_id, 2, "prod123")]


def test_create_succeeds_when_publish_fails(client):
    sent = []

    def handler(request):
        sent.append(request)
        return httpx.Response(503)

    app.dependency_overrides[get_publisher] = lambda: OrderEventPublisher(
        Settings(ORDER_EVENTS_URL="https://pubsub.example.test/topics/orders:publish"),
        transport=httpx.MockTransport(handler),
    )
    order_id = create(client)
    assert len(sent) == 1
    assert client.get(f"/orders/{order_id}").status_code == 200


def test_pubsub_requires_api_key_when_configured(client):
    app.dependency_overrides[get_settings] = lambda: Settings(PUBSUB_REQUIRE_API_KEY=True)
    envelope = make_envelope({"action": "DELETE_CLIENT", "clientId": "client123"})

    resp = client.post("/orders/pubsub", json=envelope)
    assert resp.status_code == 403
    assert resp.json() == {"message": "Forbidden: Invalid API Key"}

    resp = client.post("/orders/pubsub", json=envelope, headers=API_HEADERS)
    assert resp.status_code == 200
