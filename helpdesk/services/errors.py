"""
Helpdesk Errors

Typed errors raised by the store clients and the ticket gateway.
The cache and the gateway decide which of them are fatal.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


class HelpdeskError(Exception):
    """Base class for all helpdesk errors"""


class ConfigurationMissing(HelpdeskError):
    """Credentials for an optional store are not configured"""


class StoreError(HelpdeskError):
    """A request to an external store failed"""


class NetworkTimeout(StoreError):
    """Request aborted client-side after the configured timeout"""

    def __init__(self, url: str, timeout: float):
        self.url = url
        self.timeout = timeout
        super().__init__(f"Request timed out after {timeout:.0f}s")


class NetworkError(StoreError):
    """Transport-level failure (DNS, connection refused, reset...)"""


class UpstreamError(StoreError):
    """Non-2xx response from a store"""

    def __init__(self, status: int, reason: str, body: str = ""):
        self.status = status
        self.reason = reason
        self.body = body
        super().__init__(f"Upstream error: {status} {reason}")


class MailAuthExpired(UpstreamError):
    """Mail provider rejected the access token"""


class ValidationError(HelpdeskError):
    """Required ticket fields are missing"""

    def __init__(self, errors: dict):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))


@dataclass
class ReconciliationPartialFailure:
    """A single mirror update that failed. Recorded, never raised."""
    external_id: str
    error: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def as_dict(self) -> dict:
        return {
            "entity_type": "subscriber",
            "external_id": self.external_id,
            "error": self.error,
            "timestamp": self.timestamp,
        }


def summarize(error: Optional[BaseException]) -> str:
    """Single-line, user-facing summary of an error"""
    if error is None:
        return "Unknown error"
    if isinstance(error, UpstreamError):
        return f"{error.status} {error.reason}"
    return str(error) or error.__class__.__name__


class TicketNotFound(HelpdeskError):
    """No ticket with that id in the relational store"""

    def __init__(self, ticket_id: str):
        self.ticket_id = ticket_id
        super().__init__(f"Ticket {ticket_id} not found")
