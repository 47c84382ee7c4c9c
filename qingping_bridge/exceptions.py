"""Errores de un ciclo del bridge.

Cada etapa del ciclo (token, dispositivos, conexión MQTT, publicación)
lanza una subclase de BridgeError. El runner las captura, las registra
y aborta el ciclo; nunca llegan a tumbar el proceso.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Error base del bridge."""

    stage = "cycle"

    def __init__(self, message: str, *, stage: str | None = None):
        if stage is not None:
            self.stage = stage
        super().__init__(message)


class RequestBuildError(BridgeError):
    """No se pudo construir la petición HTTP."""


class TransportError(BridgeError):
    """Fallo de red, timeout o status HTTP no exitoso."""

    def __init__(self, message: str, *, stage: str | None = None, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, stage=stage)


class ResponseReadError(BridgeError):
    """No se pudo leer el cuerpo de la respuesta."""


class ResponseDecodeError(BridgeError):
    """El cuerpo no es JSON válido o no tiene la forma esperada."""


class EmptyTokenError(BridgeError):
    """La respuesta OAuth no contiene access_token."""

    stage = "oauth"


class NoDevicesError(BridgeError):
    """La API devolvió una lista de dispositivos vacía."""

    stage = "devices"


class MQTTConnectError(BridgeError):
    """No se pudo conectar al broker MQTT."""

    stage = "mqtt_connect"


class PublishError(BridgeError):
    """Fallo al serializar o publicar la lectura de un dispositivo."""

    stage = "mqtt_publish"

    def __init__(self, message: str, *, mac: str, stage: str | None = None):
        self.mac = mac
        super().__init__(message, stage=stage)
