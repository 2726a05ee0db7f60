"""API tests for the single message endpoint."""
from conftest import RecordingGateway


def test_send_dry_run_echoes_payload(make_client, gateway):
    client = make_client(DRY_RUN=True)

    response = client.post("/api/messages/send", json={"to": "347 123 4567", "message": "Ciao!"})

    assert response.status_code == 200
    body = response.json()
    assert body["dryRun"] is True
    assert body["to"] == "+393471234567"
    assert body["payload"]["to"] == "393471234567"
    assert body["payload"]["text"]["body"] == "Ciao!"
    assert gateway.sent == []


def test_send_dry_run_query_flag(make_client, gateway):
    client = make_client(DRY_RUN=False)

    body = client.post(
        "/api/messages/send", params={"dryRun": "true"}, json={"to": "+393471234567", "message": "Hi"}
    ).json()

    assert body["dryRun"] is True
    assert gateway.sent == []


def test_send_live(make_client, gateway):
    client = make_client(DRY_RUN=False)

    body = client.post("/api/messages/send", json={"to": "+393471234567", "message": "Hi", "preview_url": True}).json()

    assert body["dryRun"] is False
    assert body["meta"]["messages"] == [{"id": "wamid.1"}]
    assert gateway.sent[0]["text"] == {"body": "Hi", "preview_url": True}


def test_send_invalid_phone(make_client):
    client = make_client()

    response = client.post("/api/messages/send", json={"to": "12345", "message": "Hi"})

    assert response.status_code == 400
    body = response.json()
    assert body["ok"] is False
    assert body["code"] == "VAL100"


def test_send_empty_message(make_client):
    client = make_client()

    response = client.post("/api/messages/send", json={"to": "+393471234567", "message": "   "})

    assert response.status_code == 400
    assert response.json()["details"] == {"field": "message"}


def test_send_message_too_long(make_client):
    client = make_client()

    response = client.post("/api/messages/send", json={"to": "+393471234567", "message": "x" * 4097})

    assert response.status_code == 400


def test_send_malformed_body(make_client):
    client = make_client()

    response = client.post("/api/messages/send", json={"to": ["not", "a", "string"], "message": "Hi"})

    assert response.status_code == 400
    assert response.json()["ok"] is False


def test_send_get_not_allowed(make_client):
    client = make_client()

    response = client.get("/api/messages/send")

    assert response.status_code == 405
    assert response.json()["ok"] is False


def test_send_relays_gateway_status(make_client):
    failing = RecordingGateway(fail_for={"393471234567"})
    client = make_client(gateway_override=failing, DRY_RUN=False)

    response = client.post("/api/messages/send", json={"to": "+393471234567", "message": "Hi"})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "UPS300"
    assert "Meta API error" in body["error"]


def test_send_live_without_credentials(make_client):
    client = make_client(gateway_override=RecordingGateway(configured=False), DRY_RUN=False)

    response = client.post("/api/messages/send", json={"to": "+393471234567", "message": "Hi"})

    assert response.status_code == 500
    assert response.json()["code"] == "SYS501"
