import pydantic
import pytest

from helpdesk.models.enums import Priority, TicketStatus, TicketType, TicketOrigin, TicketChannel
from helpdesk.models.schemas import Subscriber, TicketCreate, Ticket


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Haute", Priority.HIGH),
        ("high", Priority.HIGH),
        ("Normale", Priority.MEDIUM),
        ("moyenne", Priority.MEDIUM),
        (Priority.LOW, Priority.LOW),
    ],
)
def test_priority_parse(raw, expected):
    assert Priority.parse(raw) is expected


def test_status_legacy_spellings():
    assert TicketStatus.parse("En cours") is TicketStatus.OPEN
    assert TicketStatus.parse("Ferme") is TicketStatus.CLOSED
    assert TicketStatus.parse("Fermé") is TicketStatus.CLOSED
    assert TicketStatus.parse("  en attente du client ") is TicketStatus.WAITING_CUSTOMER


def test_unknown_value_is_rejected():
    with pytest.raises(ValueError):
        TicketType.parse("Autre")
    with pytest.raises(ValueError):
        Priority.parse(None)


def test_labels():
    assert TicketStatus.to_label("WaitingInstaller") == "En attente de l'installateur"
    assert TicketOrigin.COMPANY.label == "SunLib"
    assert TicketChannel.to_label("Mail") == "Mail"
    assert TicketType.PAYMENT_DETAILS_CHANGE.label == "changement date prélèvement/RIB"


def test_ticket_create_accepts_labels():
    ticket = TicketCreate(
        title="t",
        description="d",
        priority="Moyenne",
        status="Nouveau",
        type="Recouvrement",
        origin="Abonné",
        channel="Mail",
    )

    assert ticket.priority is Priority.MEDIUM
    assert ticket.status is TicketStatus.NEW
    assert ticket.type is TicketType.DEBT_COLLECTION
    assert ticket.origin is TicketOrigin.SUBSCRIBER
    assert ticket.channel is TicketChannel.EMAIL
    assert ticket.model_dump(mode="json")["channel"] == "Email"


def test_ticket_create_defaults():
    ticket = TicketCreate(title="t", description="d")

    assert ticket.priority is Priority.MEDIUM
    assert ticket.status is TicketStatus.NEW
    assert ticket.type is TicketType.TECHNICAL_SUPPORT
    assert ticket.origin is TicketOrigin.COMPANY
    assert ticket.channel is TicketChannel.CONTACT_FORM


def test_ticket_create_rejects_unknown_priority():
    with pytest.raises(pydantic.ValidationError):
        TicketCreate(title="t", description="d", priority="Critique")


def test_subscriber_contract_falls_back_to_external_id():
    subscriber = Subscriber(id="u1", external_record_id="recA", last_name="Dupont", first_name="Jean", contract_reference="  ")

    assert subscriber.contract_reference == "recA"
    assert subscriber.key == "recA"
    assert subscriber.display_identity == "Jean Dupont - recA"
    assert subscriber.model_dump()["display_identity"] == "Jean Dupont - recA"


def test_subscriber_row_round_trip():
    row = {
        "id": "u1",
        "external_record_id": "recA",
        "last_name": "Dupont",
        "first_name": "Jean",
        "contract_reference": None,
        "email": "",
        "phone": "0600000000",
    }

    subscriber = Subscriber.from_row(row)
    mirrored = subscriber.to_row()

    assert subscriber.contract_reference == "recA"
    assert mirrored["email"] is None
    assert mirrored["phone"] == "0600000000"
    assert mirrored["external_record_id"] == "recA"
    assert "id" not in mirrored


def test_ticket_from_legacy_row():
    ticket = Ticket.from_row({
        "id": 42,
        "title": "t",
        "description": "d",
        "priority": "Normale",
        "status": "En cours",
        "subscriber_identity": "Paul Durand",
    })

    assert ticket.id == "42"
    assert ticket.priority is Priority.MEDIUM
    assert ticket.status is TicketStatus.OPEN
    assert ticket.type is TicketType.TECHNICAL_SUPPORT
    assert ticket.subscriber_identity == "Paul Durand"
