"""
Mail Endpoints

Inbox listing and ticket drafts for the email-to-ticket screen.
The console sends the mail provider access token as a bearer token.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from helpdesk.routers.deps import get_mail_token, get_subscriber_cache
from helpdesk.services.email_drafts import draft_from_email
from helpdesk.services.errors import MailAuthExpired, StoreError, summarize
from helpdesk.services.mail_client import MailboxClient
from helpdesk.services.subscriber_cache import SubscriberCache

router = APIRouter()


@router.get("/messages")
async def list_messages(
    max_results: int = Query(default=50, ge=1, le=500),
    token: str = Depends(get_mail_token)
):
    """Inbox messages (the first few fetched in full)"""
    try:
        return await MailboxClient(token).list_inbox(max_results=max_results)
    except MailAuthExpired as e:
        raise HTTPException(status_code=401, detail=e.reason)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=summarize(e))


@router.post("/messages/{message_id}/draft")
async def draft_from_message(
    message_id: str,
    token: str = Depends(get_mail_token),
    cache: SubscriberCache = Depends(get_subscriber_cache)
):
    """Fetch one message and pre-fill a ticket from it"""
    try:
        email = await MailboxClient(token).get_message(message_id)
    except MailAuthExpired as e:
        raise HTTPException(status_code=401, detail=e.reason)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=summarize(e))

    await cache.ensure_loaded()
    return draft_from_email(email, cache.resolver())
