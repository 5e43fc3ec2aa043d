"""
Airtable API Client

Handles all HTTP requests to the Airtable REST API (the tabular store):
paginated subscriber listing with field-name normalization, and the
mirrored ticket records.
"""

import os
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Tuple

import httpx

from helpdesk.models.enums import Priority, TicketStatus
from helpdesk.models.schemas import Subscriber
from helpdesk.services.errors import NetworkError, NetworkTimeout, UpstreamError

logger = logging.getLogger(__name__)

AIRTABLE_API_URL = "https://api.airtable.com/v0"
PAGE_SIZE = 100
SUBSCRIBER_MAX_PAGES = 10  # circuit breaker against runaway pagination
REQUEST_TIMEOUT = 30.0

NAME_MISSING = "Name missing"
FIRST_NAME_MISSING = "First name missing"

# Template values shipped in .env.example; treated as "not configured"
PLACEHOLDER_VALUES = {"your_airtable_api_key", "your_subscribers_base_id"}

# Ordered raw spellings per logical field; the first present, non-empty one wins.
SUBSCRIBER_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "last_name": ("Nom", "nom", "Last Name", "last_name"),
    "first_name": ("Prénom", "prenom", "Prenom", "First Name", "first_name"),
    "contract_reference": ("Contrat abonné", "contrat_abonne", "Contrat", "Contract"),
    "company_name": ("Nom entreprise", "nom_entreprise", "Entreprise", "Company"),
    "installer_name": ("Installateur", "installateur", "Installer"),
    "crm_link": ("Lien CRM", "lien_crm", "CRM", "CRM Link"),
    "email": ("Email", "email", "E-mail"),
    "phone": ("Téléphone", "telephone", "Tel", "Phone"),
}


@dataclass
class AirtableConfig:
    api_key: str
    base_id: str
    subscribers_table: str = "Abonnés"
    tickets_table: str = "Tickets"


def get_airtable_config() -> Optional[AirtableConfig]:
    """
    Read Airtable settings from the environment.

    Returns None when the key or base id is absent, blank or still a
    template placeholder. That is a valid state: forms fall back to
    manual subscriber entry.
    """
    api_key = (os.getenv("AIRTABLE_API_KEY") or "").strip()
    base_id = (os.getenv("AIRTABLE_SUBSCRIBERS_BASE_ID") or "").strip()

    if not api_key or not base_id or api_key in PLACEHOLDER_VALUES or base_id in PLACEHOLDER_VALUES:
        return None

    return AirtableConfig(
        api_key=api_key,
        base_id=base_id,
        subscribers_table=os.getenv("AIRTABLE_SUBSCRIBERS_TABLE", "Abonnés"),
        tickets_table=os.getenv("AIRTABLE_TICKETS_TABLE", "Tickets"),
    )


def first_present(fields: Dict[str, Any], aliases: Tuple[str, ...], default: str = "") -> str:
    """Return the first non-empty value among `aliases`, else `default`"""
    for key in aliases:
        value = fields.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return default


def normalize_subscriber(record: Dict[str, Any]) -> Subscriber:
    """Map a raw Airtable record onto a Subscriber. Never raises for missing fields."""
    record_id = record["id"]
    fields = record.get("fields") or {}
    aliases = SUBSCRIBER_FIELD_ALIASES

    return Subscriber(
        id=record_id,
        external_record_id=record_id,
        last_name=first_present(fields, aliases["last_name"], NAME_MISSING),
        first_name=first_present(fields, aliases["first_name"], FIRST_NAME_MISSING),
        contract_reference=first_present(fields, aliases["contract_reference"], record_id),
        company_name=first_present(fields, aliases["company_name"]),
        installer_name=first_present(fields, aliases["installer_name"]),
        crm_link=first_present(fields, aliases["crm_link"]),
        email=first_present(fields, aliases["email"]),
        phone=first_present(fields, aliases["phone"]),
    )


def ticket_fields(ticket: Dict[str, Any], created: bool) -> Dict[str, Any]:
    """Airtable `fields` payload for a ticket. Enum values are written as labels."""
    fields: Dict[str, Any] = {
        "Titre": ticket.get("title"),
        "Description": ticket.get("description"),
    }
    if ticket.get("status") is not None:
        fields["Statut"] = TicketStatus.to_label(ticket["status"])
    if ticket.get("priority") is not None:
        fields["Priorité"] = Priority.to_label(ticket["priority"])
    if ticket.get("client_name"):
        fields["Client"] = ticket["client_name"]
    if ticket.get("client_email"):
        fields["Email"] = ticket["client_email"]

    stamp = datetime.now(timezone.utc).isoformat()
    if created:
        fields["Date de création"] = stamp
    else:
        fields["Date de modification"] = stamp

    return {k: v for k, v in fields.items() if v is not None}


class AirtableClient:
    """Client for Airtable API requests"""

    def __init__(
        self,
        config: AirtableConfig,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config
        self.base_url = f"{AIRTABLE_API_URL}/{config.base_id}"
        self.timeout = timeout
        self._transport = transport

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict] = None,
        data: Optional[Dict] = None
    ) -> Any:
        """Make a request and return the decoded JSON body"""
        url = f"{self.base_url}{path}"
        logger.debug(f"[Airtable] {method} {url}")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.request(
                    method, url, headers=self._get_headers(), params=params, json=data
                )
            except httpx.TimeoutException as e:
                logger.error(f"[Airtable] {method} {url} timed out after {self.timeout}s")
                raise NetworkTimeout(url, self.timeout) from e
            except httpx.HTTPError as e:
                logger.error(f"[Airtable] {method} {url} failed: {e}")
                raise NetworkError(f"Airtable request failed: {e}") from e

        if not response.is_success:
            logger.error(
                f"[Airtable] {method} {url} -> {response.status_code} "
                f"{response.reason_phrase}: {response.text}"
            )
            raise UpstreamError(response.status_code, response.reason_phrase, response.text)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"[Airtable] {method} {url} returned a non-JSON body: {response.text[:200]}")
            raise UpstreamError(response.status_code, "Invalid JSON", response.text) from e

    async def list_records(self, table: str, max_pages: int) -> List[Dict]:
        """
        Fetch all records of a table, following the `offset` cursor.

        Stops when no cursor is returned or after `max_pages` pages; hitting
        the ceiling logs a warning and returns what was fetched.
        """
        records: List[Dict] = []
        offset: Optional[str] = None

        for page in range(1, max_pages + 1):
            params = {"pageSize": PAGE_SIZE}
            if offset:
                params["offset"] = offset

            started = time.monotonic()
            response = await self.request("GET", f"/{table}", params=params)
            page_records = response.get("records") or []
            records.extend(page_records)
            offset = response.get("offset")

            logger.info(
                f"[Airtable] {table} page {page}: {len(page_records)} records "
                f"(total {len(records)}, {int((time.monotonic() - started) * 1000)}ms)"
            )

            if not offset:
                break
        else:
            if offset:
                logger.warning(
                    f"[Airtable] Page limit ({max_pages}) reached for {table}, "
                    f"returning {len(records)} records"
                )

        return records

    async def list_subscribers(self, max_pages: int = SUBSCRIBER_MAX_PAGES) -> List[Subscriber]:
        """Fetch and normalize all subscribers"""
        table = self.config.subscribers_table
        records = await self.list_records(table, max_pages=max_pages)

        if not records:
            logger.warning(
                f"[Airtable] No subscribers returned. Check the table name ({table!r}), "
                f"the API key permissions and the base structure"
            )

        return [normalize_subscriber(record) for record in records]

    async def create_ticket_record(self, ticket: Dict[str, Any]) -> Dict:
        """Create a ticket record, returns the raw Airtable record"""
        table = self.config.tickets_table
        result = await self.request("POST", f"/{table}", data={"fields": ticket_fields(ticket, created=True)})
        logger.info(f"[Airtable] Ticket record created: {result.get('id')}")
        return result

    async def update_ticket_record(self, record_id: str, ticket: Dict[str, Any]) -> Dict:
        """Patch a ticket record, returns the raw Airtable record"""
        table = self.config.tickets_table
        result = await self.request(
            "PATCH", f"/{table}/{record_id}", data={"fields": ticket_fields(ticket, created=False)}
        )
        logger.info(f"[Airtable] Ticket record updated: {result.get('id')}")
        return result
