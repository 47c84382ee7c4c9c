"""Modelos de la API de dispositivos Qingping y de la lectura publicada.

Formato de respuesta de GET /v1/apis/devices:
{
    "devices": [
        {
            "info": {"mac": "582D3470XXXX"},
            "data": {
                "timestamp": {"value": 1706688000},
                "battery": {"value": 87},
                "temperature": {"value": 21.5},
                "humidity": {"value": 40.2},
                "tvoc": {"value": 0.1},
                "co2": {"value": 500},
                "pm25": {"value": 5}
            }
        }
    ]
}
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, model_validator

Number = Union[int, float]


def _normalize(data: Any) -> Any:
    """Claves en minúsculas y sin valores null.

    La API no es consistente con mayúsculas ("Value" vs "value") y a veces
    manda null; un null cuenta como campo ausente y toma el valor por defecto.
    """
    if data is None:
        return {}
    if isinstance(data, dict):
        return {str(k).lower(): v for k, v in data.items() if v is not None}
    return data


class ApiModel(BaseModel):
    """Base de los modelos de respuesta de la API."""

    @model_validator(mode="before")
    @classmethod
    def normalize_keys(cls, data: Any) -> Any:
        return _normalize(data)


class WrappedNumber(ApiModel):
    value: Number = 0


class WrappedTimestamp(ApiModel):
    value: int = 0


class DeviceInfo(ApiModel):
    mac: str = ""


class DeviceData(ApiModel):
    timestamp: WrappedTimestamp = Field(default_factory=WrappedTimestamp)
    battery: WrappedNumber = Field(default_factory=WrappedNumber)
    temperature: WrappedNumber = Field(default_factory=WrappedNumber)
    humidity: WrappedNumber = Field(default_factory=WrappedNumber)
    tvoc: WrappedNumber = Field(default_factory=WrappedNumber)
    co2: WrappedNumber = Field(default_factory=WrappedNumber)
    pm25: WrappedNumber = Field(default_factory=WrappedNumber)


class DeviceEntry(ApiModel):
    info: DeviceInfo = Field(default_factory=DeviceInfo)
    data: DeviceData = Field(default_factory=DeviceData)


class DeviceListResponse(ApiModel):
    devices: Optional[List[DeviceEntry]] = None


class TokenResponse(BaseModel):
    access_token: Optional[str] = None


@dataclass(frozen=True)
class DeviceReading:
    """Lectura plana de un dispositivo, tal como se publica por MQTT."""

    timestamp: int
    battery: Number
    temperature: Number
    humidity: Number
    tvoc: Number
    co2: Number
    pm25: Number

    @classmethod
    def from_entry(cls, entry: DeviceEntry) -> "DeviceReading":
        d = entry.data
        return cls(
            timestamp=d.timestamp.value,
            battery=d.battery.value,
            temperature=d.temperature.value,
            humidity=d.humidity.value,
            tvoc=d.tvoc.value,
            co2=d.co2.value,
            pm25=d.pm25.value,
        )

    def to_payload(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        # allow_nan=False: NaN/Infinity no es JSON válido para los consumidores.
        return json.dumps(self.to_payload(), separators=(",", ":"), allow_nan=False)
