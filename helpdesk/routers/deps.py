"""
Shared route dependencies
"""

import os
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from helpdesk.services.registry import ServiceRegistry
from helpdesk.services.subscriber_cache import SubscriberCache
from helpdesk.services.ticket_gateway import TicketMutationGateway

bearer = HTTPBearer(auto_error=False)


def get_services(request: Request) -> ServiceRegistry:
    return request.app.state.services


def get_subscriber_cache(services: ServiceRegistry = Depends(get_services)) -> SubscriberCache:
    return services.subscriber_cache


def get_gateway(services: ServiceRegistry = Depends(get_services)) -> TicketMutationGateway:
    if services.gateway is None:
        raise HTTPException(status_code=503, detail="Relational store not configured")
    return services.gateway


def require_sync_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)
) -> None:
    """Bearer token check for the mirror trigger"""
    expected = os.getenv("SYNC_TRIGGER_TOKEN")
    if not expected:
        raise HTTPException(status_code=503, detail="SYNC_TRIGGER_TOKEN not configured")
    if credentials is None or not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing bearer token")


def get_mail_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)
) -> str:
    """Mail provider access token passed through by the console"""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Mail access token required")
    return credentials.credentials
