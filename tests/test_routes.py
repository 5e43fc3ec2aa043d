import pytest
from fastapi.testclient import TestClient

from main import create_app
from helpdesk.models.schemas import Subscriber
from helpdesk.services.registry import ServiceRegistry
from helpdesk.services.subscriber_cache import SubscriberCache
from helpdesk.services.supabase_client import RelationalStore
from helpdesk.services.ticket_gateway import TicketMutationGateway
from helpdesk.sync import SubscriberMirror


SUBSCRIBER = Subscriber(
    id="recA",
    external_record_id="recA",
    last_name="Dupont",
    first_name="Jean",
    contract_reference="AB-123456",
    email="jean.dupont@example.fr",
)


class _DummyAirtable:
    async def list_subscribers(self, max_pages=10):
        return [SUBSCRIBER]


def _client(registry):
    return TestClient(create_app(services=registry))


@pytest.fixture
def full_registry(fake_supabase):
    store = RelationalStore(client=fake_supabase)
    airtable = _DummyAirtable()
    mirror = SubscriberMirror(airtable, store)
    return ServiceRegistry(
        subscriber_cache=SubscriberCache(loader=airtable.list_subscribers),
        airtable=None,
        store=store,
        mirror=mirror,
        gateway=TicketMutationGateway(store),
    )


def test_health():
    with _client(ServiceRegistry(subscriber_cache=SubscriberCache())) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["subscribers"]["manual_entry"] is True


def test_subscribers_manual_entry_mode():
    with _client(ServiceRegistry(subscriber_cache=SubscriberCache())) as client:
        response = client.get("/api/subscribers/")

    assert response.status_code == 200
    body = response.json()
    assert body["subscribers"] == []
    assert body["error"] is None
    assert body["initialized"] is True
    assert body["manual_entry"] is True


def test_subscribers_listing_and_lookup(full_registry):
    with _client(full_registry) as client:
        listing = client.get("/api/subscribers/", params={"q": "dupont"})
        single = client.get("/api/subscribers/recA")
        missing = client.get("/api/subscribers/recZ")
        resolved = client.get("/api/subscribers/resolve", params={"hint": "Jean Dupont <JEAN.DUPONT@example.fr>"})

    assert [s["id"] for s in listing.json()["subscribers"]] == ["recA"]
    assert single.json()["display_identity"] == "Jean Dupont - AB-123456"
    assert missing.status_code == 404
    assert resolved.json()["matched_by"] == "email"
    assert resolved.json()["identity"] == "Jean Dupont - AB-123456"


def test_sync_trigger_requires_configured_token(monkeypatch, full_registry):
    monkeypatch.delenv("SYNC_TRIGGER_TOKEN", raising=False)

    with _client(full_registry) as client:
        response = client.post("/api/sync/subscribers")

    assert response.status_code == 503


def test_sync_trigger_rejects_bad_token(monkeypatch, full_registry):
    monkeypatch.setenv("SYNC_TRIGGER_TOKEN", "s3cret")

    with _client(full_registry) as client:
        missing = client.post("/api/sync/subscribers")
        wrong = client.post("/api/sync/subscribers", headers={"Authorization": "Bearer nope"})

    assert missing.status_code == 401
    assert wrong.status_code == 401


def test_sync_trigger_runs_mirror(monkeypatch, full_registry, fake_supabase):
    monkeypatch.setenv("SYNC_TRIGGER_TOKEN", "s3cret")

    with _client(full_registry) as client:
        response = client.post("/api/sync/subscribers", headers={"Authorization": "Bearer s3cret"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["stats"]["inserted"] == 1
    assert fake_supabase.tables["subscribers"][0]["external_record_id"] == "recA"


def test_sync_trigger_without_mirror_returns_500(monkeypatch):
    monkeypatch.setenv("SYNC_TRIGGER_TOKEN", "s3cret")

    with _client(ServiceRegistry(subscriber_cache=SubscriberCache())) as client:
        response = client.post("/api/sync/subscribers", headers={"Authorization": "Bearer s3cret"})

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_tickets_unavailable_without_store():
    with _client(ServiceRegistry(subscriber_cache=SubscriberCache())) as client:
        response = client.get("/api/tickets/")

    assert response.status_code == 503


def test_ticket_endpoints(full_registry, fake_supabase):
    fake_supabase.tables["subscribers"] = [SUBSCRIBER.to_row() | {"id": "8c1f"}]

    with _client(full_registry) as client:
        invalid = client.post("/api/tickets/", json={"title": "", "description": "d", "subscriber_id": "recA"})
        created = client.post(
            "/api/tickets/",
            json={"title": "Panne", "description": "Plus de production", "subscriber_id": "recA", "priority": "Haute"},
        )
        ticket_id = created.json()["id"]
        patched = client.patch(f"/api/tickets/{ticket_id}", json={"status": "Fermé"})
        commented = client.post(f"/api/tickets/{ticket_id}/comments", json={"content": "Rappel fait"})
        missing = client.patch("/api/tickets/nope", json={"status": "Closed"})
        stats = client.get("/api/tickets/stats")

    assert invalid.status_code == 400
    assert invalid.json()["detail"] == {"title": "Title is required"}
    assert created.status_code == 200
    assert created.json()["priority"] == "High"
    assert created.json()["subscriber_identity"] == "Jean Dupont - AB-123456"
    assert patched.json()["status"] == "Closed"
    assert commented.json()["comments"][0]["content"] == "Rappel fait"
    assert missing.status_code == 404
    assert stats.json()["by_status"] == {"Closed": 1}


def test_draft_from_email_endpoint(full_registry):
    with _client(full_registry) as client:
        response = client.post("/api/tickets/from-email", json={
            "id": "m1",
            "subject": "Panne urgente",
            "sender": "Jean Dupont <jean.dupont@example.fr>",
            "body": "Plus rien ne marche",
        })

    assert response.status_code == 200
    draft = response.json()
    assert draft["matched_by"] == "email"
    assert draft["ticket"]["subscriber_id"] == "recA"
    assert draft["ticket"]["priority"] == "High"
    assert draft["ticket"]["channel"] == "Email"


def test_mail_requires_token(full_registry):
    with _client(full_registry) as client:
        response = client.get("/api/mail/messages")

    assert response.status_code == 401
