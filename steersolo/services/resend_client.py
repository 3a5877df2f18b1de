from __future__ import annotations

from typing import Any

import httpx


class ResendError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: dict | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


class ResendClient:
    def __init__(
        self,
        *,
        api_key: str,
        sender: str,
        base_url: str = "https://api.resend.com",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("Resend API key is required.")
        self._api_key = api_key
        self._sender = sender
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def send_email(self, *, to: list[str], subject: str, html: str) -> str | None:
        payload: dict[str, Any] = {
            "from": self._sender,
            "to": to,
            "subject": subject,
            "html": html,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/emails", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise ResendError(f"Resend request failed: {exc}") from exc
        try:
            content = response.json()
        except ValueError:
            content = {}
        if response.status_code >= 400:
            message = content.get("message") if isinstance(content, dict) else None
            raise ResendError(
                message or f"Resend request failed with status {response.status_code}",
                status_code=response.status_code,
                payload=content if isinstance(content, dict) else {},
            )
        return content.get("id") if isinstance(content, dict) else None
