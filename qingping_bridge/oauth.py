"""Obtención del access token (OAuth2 client credentials)."""

from __future__ import annotations

import base64
import logging
from typing import Optional

import requests

from common.config import Settings

from . import http_client
from .exceptions import EmptyTokenError
from .models import TokenResponse

logger = logging.getLogger(__name__)

STAGE = "oauth"
GRANT_TYPE = "client_credentials"
SCOPE = "device_full_access"


def basic_auth_header(app_key: str, app_secret: str) -> str:
    token = base64.b64encode(f"{app_key}:{app_secret}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def mask_token(token: str) -> str:
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"


def fetch_access_token(settings: Settings, session: Optional[requests.Session] = None) -> str:
    """Intercambia APP_KEY/APP_SECRET por un bearer token.

    Se pide un token nuevo en cada ciclo, sin cache ni control de expiración.

    Raises:
        RequestBuildError, TransportError, ResponseReadError,
        ResponseDecodeError, EmptyTokenError
    """
    owns_session = session is None
    session = session or requests.Session()
    try:
        request = requests.Request(
            "POST",
            settings.oauth_url,
            data={"grant_type": GRANT_TYPE, "scope": SCOPE},
            headers={
                "Authorization": basic_auth_header(settings.app_key, settings.app_secret),
                "Content-Type": "application/x-www-form-urlencoded; charset=utf-8",
            },
        )
        prepared = http_client.prepare(session, request, stage=STAGE)
        body = http_client.send(session, prepared, timeout=settings.http_timeout_seconds, stage=STAGE)
    finally:
        if owns_session:
            session.close()

    resp = http_client.decode(body, TokenResponse, stage=STAGE)
    if not resp.access_token:
        raise EmptyTokenError("access token not found")

    logger.info("[OAUTH] Access token obtained token=%s", mask_token(resp.access_token))
    return resp.access_token
