"""Helpers HTTP compartidos por el cliente OAuth y el de dispositivos."""

from __future__ import annotations

import json
import logging
from typing import Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from .exceptions import (
    RequestBuildError,
    ResponseDecodeError,
    ResponseReadError,
    TransportError,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_BODY_PREVIEW = 300


def prepare(session: requests.Session, request: requests.Request, *, stage: str) -> requests.PreparedRequest:
    """Prepara la petición; cualquier fallo aquí es un error de construcción."""
    try:
        return session.prepare_request(request)
    except (requests.RequestException, ValueError, TypeError) as e:
        raise RequestBuildError(f"new http request error: {e}", stage=stage) from e


def send(
    session: requests.Session,
    prepared: requests.PreparedRequest,
    *,
    timeout: float,
    stage: str,
) -> bytes:
    """Envía la petición y devuelve el cuerpo completo.

    Raises:
        TransportError: error de red, timeout o status no 2xx
        ResponseReadError: el cuerpo no se pudo leer
    """
    try:
        resp = session.send(prepared, timeout=timeout, stream=True)
    except requests.RequestException as e:
        raise TransportError(f"http {prepared.method} error: {e}", stage=stage) from e

    try:
        try:
            body = resp.content
        except (requests.RequestException, OSError) as e:
            raise ResponseReadError(f"read response body error: {e}", stage=stage) from e
    finally:
        resp.close()

    logger.debug("[HTTP] %s %s status=%s body=%s", prepared.method, stage, resp.status_code, _preview(body))

    if not 200 <= resp.status_code < 300:
        raise TransportError(
            f"http {prepared.method} returned status {resp.status_code}: {_preview(body)}",
            stage=stage,
            status_code=resp.status_code,
        )
    return body


def decode(body: bytes, model: Type[M], *, stage: str) -> M:
    """Decodifica JSON y lo valida contra el modelo pydantic."""
    try:
        data = json.loads(body)
    except (ValueError, TypeError) as e:
        raise ResponseDecodeError(f"response body decode error: {e}", stage=stage) from e
    if not isinstance(data, dict):
        raise ResponseDecodeError(
            f"response body decode error: expected object, got {type(data).__name__}",
            stage=stage,
        )
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ResponseDecodeError(f"response body decode error: {e}", stage=stage) from e


def _preview(body: Optional[bytes]) -> str:
    if not body:
        return ""
    text = body.decode("utf-8", errors="replace")
    if len(text) > _BODY_PREVIEW:
        return text[:_BODY_PREVIEW] + "..."
    return text
