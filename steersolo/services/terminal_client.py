from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import httpx

PARCEL_DIMENSIONS = {"length": 20, "width": 15, "height": 10, "dimension_unit": "cm"}
PARCEL_DESCRIPTION = "SteerSolo order package"


class TerminalError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: dict | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


@dataclass
class ShippingRate:
    carrier: str
    carrier_logo: str | None
    price: Decimal
    currency: str
    estimated_days: int
    rate_id: str


@dataclass
class Shipment:
    shipment_id: str | None
    tracking_number: str | None
    estimated_delivery_date: datetime | None
    data: dict[str, Any]


@dataclass
class TrackingSnapshot:
    status: str | None
    events: list[dict[str, Any]]
    data: dict[str, Any]


class TerminalClient:
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.terminal.africa/v1",
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Terminal Africa API key is required.")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def create_address(self, address: dict[str, Any], *, residential: bool) -> str:
        name = str(address.get("name") or "").strip()
        first_name, _, last_name = name.partition(" ")
        payload = {
            "first_name": first_name or name,
            "last_name": last_name or name,
            "phone": address.get("phone"),
            "line1": address.get("line1") or address.get("address"),
            "city": address.get("city"),
            "state": address.get("state"),
            "country": "NG",
            "is_residential": residential,
        }
        response = await self._request("POST", "/addresses", json=payload)
        return self._require_id(response, "Failed to create address")

    async def create_parcel(self, weight_kg: float) -> str:
        payload = {
            "weight": weight_kg,
            "weight_unit": "kg",
            **PARCEL_DIMENSIONS,
            "packaging": "box",
            "description": PARCEL_DESCRIPTION,
        }
        response = await self._request("POST", "/parcels", json=payload)
        return self._require_id(response, "Failed to create parcel")

    async def get_rates(self, *, pickup_address_id: str, delivery_address_id: str, parcel_id: str) -> list[ShippingRate]:
        response = await self._request(
            "POST",
            "/rates/shipment",
            json={
                "pickup_address": pickup_address_id,
                "delivery_address": delivery_address_id,
                "parcel_id": parcel_id,
                "currency": "NGN",
            },
        )
        rates = []
        for item in response.get("data") or []:
            rates.append(
                ShippingRate(
                    carrier=str(item.get("carrier_name") or "Unknown carrier"),
                    carrier_logo=item.get("carrier_logo"),
                    price=Decimal(str(item.get("amount") or 0)),
                    currency="NGN",
                    estimated_days=int(item.get("estimated_delivery_days") or 3),
                    rate_id=str(item.get("rate_id")),
                )
            )
        return rates

    async def create_shipment(self, rate_id: str, metadata: dict[str, Any]) -> Shipment:
        response = await self._request("POST", "/shipments", json={"rate_id": rate_id, "metadata": metadata})
        data = response.get("data") or {}
        return Shipment(
            shipment_id=str(data["id"]) if data.get("id") else None,
            tracking_number=data.get("tracking_number"),
            estimated_delivery_date=parse_timestamp(data.get("estimated_delivery_date")),
            data=data,
        )

    async def get_tracking(self, shipment_id: str) -> TrackingSnapshot:
        response = await self._request("GET", f"/shipments/{shipment_id}/tracking")
        data = response.get("data") or {}
        return TrackingSnapshot(
            status=data.get("status"),
            events=list(data.get("events") or []),
            data=data,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method=method, url=path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise TerminalError(f"Terminal Africa request failed: {exc}") from exc
        try:
            content = response.json()
        except ValueError as exc:
            raise TerminalError("Invalid JSON response from Terminal Africa.", status_code=response.status_code) from exc
        if not isinstance(content, dict):
            raise TerminalError("Unexpected response from Terminal Africa.", status_code=response.status_code)
        if response.status_code >= 400 or content.get("status") is False:
            message = content.get("message") or f"Terminal Africa request failed with status {response.status_code}"
            raise TerminalError(message, status_code=response.status_code, payload=content)
        return content

    @staticmethod
    def _require_id(response: dict[str, Any], message: str) -> str:
        data = response.get("data") or {}
        identifier = data.get("id") if isinstance(data, dict) else None
        if not identifier:
            raise TerminalError(message, payload=response)
        return str(identifier)


def parse_timestamp(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
