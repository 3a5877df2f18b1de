from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx


class PaystackError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: dict | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


@dataclass
class PaystackTransaction:
    reference: str
    authorization_url: str | None
    access_code: str | None
    data: dict[str, Any]


@dataclass
class PaystackVerification:
    reference: str
    status: str
    amount_kobo: int | None
    customer_email: str | None
    metadata: dict[str, Any]
    data: dict[str, Any]

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


@dataclass
class PaystackBank:
    name: str
    code: str
    slug: str | None = None


class PaystackClient:
    def __init__(
        self,
        *,
        secret_key: str,
        base_url: str = "https://api.paystack.co",
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not secret_key:
            raise ValueError("Paystack secret key is required.")
        self._secret_key = secret_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def initialize_transaction(self, payload: dict[str, Any]) -> PaystackTransaction:
        response = await self._request("POST", "/transaction/initialize", json=payload)
        data = response.get("data") or {}
        return PaystackTransaction(
            reference=str(data.get("reference") or payload.get("reference") or ""),
            authorization_url=data.get("authorization_url"),
            access_code=data.get("access_code"),
            data=data,
        )

    async def verify_transaction(self, reference: str) -> PaystackVerification:
        response = await self._request("GET", f"/transaction/verify/{reference}")
        data = response.get("data") or {}
        return self._parse_verification(data, reference)

    async def resolve_account(self, account_number: str, bank_code: str) -> dict[str, Any]:
        response = await self._request(
            "GET",
            "/bank/resolve",
            params={"account_number": account_number, "bank_code": bank_code},
        )
        return response.get("data") or {}

    async def create_subaccount(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("POST", "/subaccount", json=payload)
        return response.get("data") or {}

    async def list_banks(self, country: str = "nigeria") -> list[PaystackBank]:
        response = await self._request("GET", "/bank", params={"country": country, "perPage": 100})
        banks = []
        for item in response.get("data") or []:
            code = str(item.get("code") or "").strip()
            name = str(item.get("name") or "").strip()
            if not code or not name:
                continue
            banks.append(PaystackBank(name=name, code=code, slug=item.get("slug")))
        return banks

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._secret_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method=method,
                    url=path,
                    json=json,
                    params=params,
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            raise PaystackError(f"Paystack request failed: {exc}") from exc
        content = self._safe_json(response)
        if response.status_code >= 400 or content.get("status") is False:
            message = content.get("message") or f"Paystack request failed with status {response.status_code}"
            raise PaystackError(message, status_code=response.status_code, payload=content)
        return content

    @staticmethod
    def _parse_verification(data: dict[str, Any], reference: str) -> PaystackVerification:
        metadata = data.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
        customer = data.get("customer") or {}
        return PaystackVerification(
            reference=str(data.get("reference") or reference),
            status=str(data.get("status") or "unknown"),
            amount_kobo=_safe_int(data.get("amount")),
            customer_email=customer.get("email"),
            metadata=metadata,
            data=data,
        )

    @staticmethod
    def _safe_json(response: httpx.Response) -> dict[str, Any]:
        try:
            content = response.json()
        except ValueError as exc:
            raise PaystackError("Invalid JSON response from Paystack.", status_code=response.status_code) from exc
        if not isinstance(content, dict):
            raise PaystackError("Unexpected response from Paystack.", status_code=response.status_code)
        return content


def _safe_int(value: Any) -> int | None:
    try:
        if value is None:
            return None
        return int(value)
    except (TypeError, ValueError):
        return None
