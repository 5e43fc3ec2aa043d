import pytest

from helpdesk.models.schemas import Subscriber, EmailSender
from helpdesk.services.subscriber_resolver import (
    SubscriberResolver,
    extract_contract,
    fallback_identity,
    parse_sender,
)


@pytest.fixture
def subscribers():
    return [
        Subscriber(
            id="recA",
            external_record_id="recA",
            last_name="Dupont",
            first_name="Jean",
            contract_reference="AB-123456",
            email="Jean.Dupont@example.fr",
            company_name="Dupont SARL",
        ),
        Subscriber(
            id="recB",
            external_record_id="recB",
            last_name="Martin",
            first_name="Claire",
            contract_reference="CD-654321",
            email="claire@example.com",
        ),
    ]


@pytest.fixture
def resolver(subscribers):
    return SubscriberResolver(subscribers)


def test_email_match_is_case_insensitive(resolver, subscribers):
    resolution = resolver.resolve("JEAN.DUPONT@EXAMPLE.FR")

    assert resolution.matched_by == "email"
    assert resolution.subscriber is subscribers[0]
    assert resolution.identity == "Jean Dupont - AB-123456"


def test_name_match_accepts_reversed_order(resolver, subscribers):
    resolution = resolver.resolve("Dupont Jean")

    assert resolution.matched_by == "name"
    assert resolution.subscriber is subscribers[0]


def test_name_match_tolerates_honorifics(resolver, subscribers):
    assert resolver.resolve("Mme Claire Martin").subscriber is subscribers[1]


def test_partial_hint_matches_inside_name(resolver, subscribers):
    assert resolver.match_name("claire") is subscribers[1]


def test_email_wins_over_name(resolver, subscribers):
    resolution = resolver.resolve(EmailSender(name="Claire Martin", address="jean.dupont@example.fr"))

    assert resolution.matched_by == "email"
    assert resolution.subscriber is subscribers[0]


def test_sender_name_used_when_email_unknown(resolver, subscribers):
    resolution = resolver.resolve(EmailSender(name="Claire Martin", address="c.martin@other.org"))

    assert resolution.matched_by == "name"
    assert resolution.subscriber is subscribers[1]


def test_unmatched_sender_gets_fallback_identity(resolver):
    resolution = resolver.resolve(
        EmailSender(address="paul.durand@mail.com"),
        body="Bonjour, mon contrat: ab-999999 ne fonctionne plus",
    )

    assert resolution.matched_by == "none"
    assert resolution.subscriber is None
    assert resolution.identity == "paul durand - AB-999999 <paul.durand@mail.com>"


def test_unmatched_text_hint_keeps_display_name(resolver):
    resolution = resolver.resolve("Paul Durand <paul@x.com>")

    assert resolution.matched_by == "none"
    assert resolution.identity == "Paul Durand <paul@x.com>"


def test_empty_list_never_matches():
    resolution = SubscriberResolver([]).resolve("Jean Dupont")

    assert resolution.matched_by == "none"
    assert resolution.identity == "Jean Dupont"


def test_fallback_identity_from_address_local_part():
    assert fallback_identity("", "marie_curie@lab.fr") == "marie curie <marie_curie@lab.fr>"


def test_extract_contract():
    assert extract_contract("Contrat AB-123456") == "AB-123456"
    assert extract_contract("référence AB-123456") is None
    assert extract_contract(None) is None


def test_parse_sender():
    sender = parse_sender('"Jean Dupont" <Jean.Dupont@Example.fr>')

    assert sender.name == "Jean Dupont"
    assert sender.address == "jean.dupont@example.fr"
    assert str(sender) == "Jean Dupont <jean.dupont@example.fr>"


def test_search_filters_by_contract_email_and_company(resolver, subscribers):
    assert resolver.search("ab-123") == [subscribers[0]]
    assert resolver.search("example.com") == [subscribers[1]]
    assert resolver.search("sarl") == [subscribers[0]]
    assert resolver.search("") == subscribers
    assert resolver.search("nobody") == []
