"""
Mailbox Client

Reads the support inbox through the Gmail REST API. The OAuth flow lives
elsewhere: this client only carries an access token.
"""

import base64
import binascii
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

import httpx

from helpdesk.models.schemas import InboundEmail
from helpdesk.services.errors import MailAuthExpired, NetworkError, NetworkTimeout, UpstreamError

logger = logging.getLogger(__name__)

GMAIL_API_URL = "https://gmail.googleapis.com/gmail/v1/users/me"
DETAIL_LIMIT = 10  # messages fetched in full per listing


def decode_base64url(data: str) -> str:
    """Decode a base64url body part; returns the input unchanged if it is not decodable"""
    try:
        padded = data + "=" * (-len(data) % 4)
        return base64.urlsafe_b64decode(padded).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        logger.warning(f"[Mail] Could not decode message body: {e}")
        return data


def _header(headers: List[Dict[str, str]], name: str) -> Optional[str]:
    for header in headers:
        if header.get("name", "").lower() == name.lower():
            return header.get("value")
    return None


def parse_message(message: Dict[str, Any]) -> InboundEmail:
    """Flatten a Gmail `messages.get` payload"""
    payload = message.get("payload") or {}
    headers = payload.get("headers") or []
    parts = payload.get("parts") or []

    body = message.get("snippet", "")
    if (payload.get("body") or {}).get("data"):
        body = decode_base64url(payload["body"]["data"])
    else:
        text_part = next(
            (p for p in parts if p.get("mimeType") == "text/plain" and (p.get("body") or {}).get("data")),
            None
        )
        if text_part:
            body = decode_base64url(text_part["body"]["data"])

    internal_date = message.get("internalDate")
    date = None
    if internal_date:
        date = datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc).isoformat()

    return InboundEmail(
        id=message["id"],
        subject=_header(headers, "Subject") or "(no subject)",
        sender=_header(headers, "From") or "Unknown sender",
        date=date or _header(headers, "Date"),
        snippet=message.get("snippet", ""),
        body=body,
        has_attachments=any(p.get("filename") or (p.get("body") or {}).get("attachmentId") for p in parts),
        is_read="UNREAD" not in (message.get("labelIds") or []),
    )


class MailboxClient:
    """Client for Gmail API requests"""

    def __init__(
        self,
        access_token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport

    async def get(self, path: str, params: Optional[Dict] = None) -> Any:
        url = f"{GMAIL_API_URL}/{path}"
        headers = {"Authorization": f"Bearer {self.access_token}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(url, headers=headers, params=params)
            except httpx.TimeoutException as e:
                raise NetworkTimeout(url, self.timeout) from e
            except httpx.HTTPError as e:
                raise NetworkError(f"Mail request failed: {e}") from e

        if response.status_code == 401:
            raise MailAuthExpired(401, "Access token expired, sign in again", response.text)
        if not response.is_success:
            logger.error(f"[Mail] GET {url} -> {response.status_code}: {response.text}")
            raise UpstreamError(response.status_code, response.reason_phrase, response.text)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"[Mail] GET {url} returned a non-JSON body: {response.text[:200]}")
            raise UpstreamError(response.status_code, "Invalid JSON", response.text) from e

    async def list_inbox(self, max_results: int = 50) -> List[InboundEmail]:
        """
        List inbox messages and fetch the first few in full.

        A message whose detail request fails is skipped.
        """
        listing = await self.get("messages", params={"maxResults": max_results, "q": "in:inbox"})
        refs = listing.get("messages") or []

        messages: List[InboundEmail] = []
        for ref in refs[:DETAIL_LIMIT]:
            try:
                detail = await self.get(f"messages/{ref['id']}")
            except MailAuthExpired:
                raise
            except Exception as e:
                logger.error(f"[Mail] Could not fetch message {ref['id']}: {e}")
                continue
            messages.append(parse_message(detail))

        return messages

    async def get_message(self, message_id: str) -> InboundEmail:
        return parse_message(await self.get(f"messages/{message_id}"))
