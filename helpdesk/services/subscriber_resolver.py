"""
Subscriber Resolver

Matches free text or an email sender to a known subscriber:
exact email match, then bidirectional name substring match, else none.
Works on an in-memory list, never calls the network.
"""

import re
from dataclasses import dataclass
from email.utils import parseaddr
from typing import Optional, List, Union

from helpdesk.models.schemas import Subscriber, EmailSender

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}")
CONTRACT_RE = re.compile(r"contrat[:\s]*([A-Z]{2}-\d{6})", re.IGNORECASE)


@dataclass
class Resolution:
    subscriber: Optional[Subscriber]
    matched_by: str  # 'email' | 'name' | 'none'
    fallback_identity: str = ""

    @property
    def identity(self) -> str:
        """Display string to store on a ticket"""
        if self.subscriber:
            return self.subscriber.display_identity
        return self.fallback_identity


def extract_email(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    match = EMAIL_RE.search(text)
    return match.group(0) if match else None


def extract_contract(text: Optional[str]) -> Optional[str]:
    """Contract reference such as `AB-123456` following the word "contrat" """
    if not text:
        return None
    match = CONTRACT_RE.search(text)
    return match.group(1).upper() if match else None


def parse_sender(raw: str) -> EmailSender:
    """Split a `From` header into display name and address"""
    name, address = parseaddr(raw or "")
    if not address or "@" not in address:
        address = extract_email(raw) or ""
        if not name and not address:
            name = (raw or "").strip()
    return EmailSender(name=name.strip().strip('"'), address=address.lower())


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def _name_matches(subscriber: Subscriber, hint: str) -> bool:
    """`hint` must already be normalized"""
    for candidate in (
        _normalize(f"{subscriber.first_name} {subscriber.last_name}"),
        _normalize(f"{subscriber.last_name} {subscriber.first_name}"),
    ):
        if candidate and (candidate in hint or hint in candidate):
            return True
    return False


def fallback_identity(hint: str, email: Optional[str] = None, contract: Optional[str] = None) -> str:
    """
    Display string for a sender that matched no subscriber.

    Name part is the hint without its address, or the address local part
    with `.` and `_` turned into spaces.
    """
    name = EMAIL_RE.sub("", hint or "").replace("<>", "").strip(" <>\"'")
    if not name and email:
        name = email.split("@", 1)[0].replace(".", " ").replace("_", " ")
    name = name or (email or "")

    identity = f"{name} - {contract}" if contract else name
    if email and email not in identity:
        identity = f"{identity} <{email}>"
    return identity


class SubscriberResolver:
    """Resolves hints against a subscriber list"""

    def __init__(self, subscribers: List[Subscriber]):
        self.subscribers = subscribers

    def match_email(self, email: str) -> Optional[Subscriber]:
        target = email.strip().lower()
        for subscriber in self.subscribers:
            if subscriber.email and subscriber.email.strip().lower() == target:
                return subscriber
        return None

    def match_name(self, text: str) -> Optional[Subscriber]:
        """
        Bidirectional substring test, in both name orders.

        "Dupont Jean" and "M. Jean Dupont" both match Jean Dupont.
        First subscriber in list order wins.
        """
        hint = _normalize(text)
        if not hint:
            return None

        for subscriber in self.subscribers:
            if _name_matches(subscriber, hint):
                return subscriber
        return None

    def resolve(self, hint: Union[str, EmailSender], body: Optional[str] = None) -> Resolution:
        """
        Resolve a hint; first match wins, case-insensitive.

        `body` is only used to pick up a contract reference for the
        fallback identity.
        """
        if isinstance(hint, EmailSender):
            email = hint.address or None
            name_hint = hint.name
            raw = str(hint)
        else:
            raw = hint or ""
            email = extract_email(raw)
            name_hint = EMAIL_RE.sub("", raw).strip(" <>\"'")

        if email:
            subscriber = self.match_email(email)
            if subscriber:
                return Resolution(subscriber, "email")

        subscriber = self.match_name(name_hint) if name_hint else None
        if subscriber:
            return Resolution(subscriber, "name")

        contract = extract_contract(body) if body else None
        return Resolution(None, "none", fallback_identity(name_hint or raw, email, contract))

    def search(self, text: str) -> List[Subscriber]:
        """Picker filtering: name, contract reference, email or company contains `text`"""
        needle = _normalize(text or "")
        if not needle:
            return list(self.subscribers)

        results = []
        for subscriber in self.subscribers:
            haystack = _normalize(" ".join(filter(None, [
                subscriber.first_name,
                subscriber.last_name,
                subscriber.contract_reference,
                subscriber.email,
                subscriber.company_name,
            ])))
            if needle in haystack or _name_matches(subscriber, needle):
                results.append(subscriber)
        return results
