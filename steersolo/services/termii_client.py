from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx


class TermiiError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: dict | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


@dataclass
class TermiiMessage:
    message_id: str | None
    balance: float | None
    data: dict[str, Any]


class TermiiClient:
    def __init__(
        self,
        *,
        api_key: str,
        sender_id: str = "SteerSolo",
        base_url: str = "https://api.ng.termii.com/api",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Termii API key is required.")
        self._api_key = api_key
        self._sender_id = sender_id
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def send_sms(self, to: str, message: str) -> TermiiMessage:
        payload = {
            "to": to.lstrip("+"),
            "from": self._sender_id,
            "sms": message,
            "type": "plain",
            "channel": "generic",
            "api_key": self._api_key,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/sms/send", json=payload)
        except httpx.HTTPError as exc:
            raise TermiiError(f"Termii request failed: {exc}") from exc
        try:
            content = response.json()
        except ValueError as exc:
            raise TermiiError("Invalid JSON response from Termii.", status_code=response.status_code) from exc
        if response.status_code >= 400 or not isinstance(content, dict):
            message_text = content.get("message") if isinstance(content, dict) else None
            raise TermiiError(
                message_text or f"Termii request failed with status {response.status_code}",
                status_code=response.status_code,
                payload=content if isinstance(content, dict) else {},
            )
        balance = content.get("balance")
        return TermiiMessage(
            message_id=content.get("message_id"),
            balance=float(balance) if isinstance(balance, (int, float)) else None,
            data=content,
        )
