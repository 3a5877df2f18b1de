from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import httpx
import orjson


class AIGatewayError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: dict | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


@dataclass
class AIStream:
    """Open streaming completion; the caller must drain or close it."""

    client: httpx.AsyncClient
    response: httpx.Response

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.response.aiter_bytes():
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        await self.response.aclose()
        await self.client.aclose()


class AIGatewayClient:
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://ai.gateway.lovable.dev/v1",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("AI gateway API key is required.")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def complete(self, *, model: str, messages: list[dict[str, str]]) -> str | None:
        content = await self._request({"model": model, "messages": messages})
        message = self._first_message(content)
        return message.get("content")

    async def complete_with_tool(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        tool: dict[str, Any],
    ) -> dict[str, Any]:
        name = tool["name"]
        content = await self._request(
            {
                "model": model,
                "messages": messages,
                "tools": [{"type": "function", "function": tool}],
                "tool_choice": {"type": "function", "function": {"name": name}},
            }
        )
        tool_calls = self._first_message(content).get("tool_calls") or []
        arguments = None
        if tool_calls:
            arguments = (tool_calls[0].get("function") or {}).get("arguments")
        if not arguments:
            raise AIGatewayError("Invalid AI response format", payload=content)
        try:
            parsed = orjson.loads(arguments)
        except orjson.JSONDecodeError as exc:
            raise AIGatewayError("Invalid AI response format", payload=content) from exc
        if not isinstance(parsed, dict):
            raise AIGatewayError("Invalid AI response format", payload=content)
        return parsed

    async def open_stream(self, *, model: str, messages: list[dict[str, str]]) -> AIStream:
        client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout, transport=self._transport)
        request = client.build_request(
            "POST",
            "/chat/completions",
            json={"model": model, "messages": messages, "stream": True},
            headers=self._headers(),
        )
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            raise AIGatewayError(f"AI gateway request failed: {exc}") from exc
        if response.status_code >= 400:
            body = await response.aread()
            await response.aclose()
            await client.aclose()
            raise AIGatewayError(
                f"AI gateway request failed with status {response.status_code}",
                status_code=response.status_code,
                payload={"body": body.decode("utf-8", errors="replace")[:500]},
            )
        return AIStream(client=client, response=response)

    async def _request(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/chat/completions", json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            raise AIGatewayError(f"AI gateway request failed: {exc}") from exc
        if response.status_code >= 400:
            raise AIGatewayError(
                f"AI gateway request failed with status {response.status_code}",
                status_code=response.status_code,
                payload={"body": response.text[:500]},
            )
        try:
            content = response.json()
        except ValueError as exc:
            raise AIGatewayError("Invalid JSON response from AI gateway.", status_code=response.status_code) from exc
        if not isinstance(content, dict):
            raise AIGatewayError("Unexpected response from AI gateway.", status_code=response.status_code)
        return content

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _first_message(content: dict[str, Any]) -> dict[str, Any]:
        choices = content.get("choices") or []
        if not choices:
            return {}
        return choices[0].get("message") or {}
