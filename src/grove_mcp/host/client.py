"""HTTP client for the coding-agent host's session API."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..errors import HostRpcError
from ..formatting import first_line

logger = logging.getLogger(__name__)

Envelope = dict[str, Any]


def _error_message(error: Any) -> str:
    if not error:
        return "Unknown error"
    if isinstance(error, str):
        return error
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str):
            return message
        data = error.get("data")
        if isinstance(data, dict) and isinstance(data.get("message"), str):
            return data["message"]
    try:
        return json.dumps(error)
    except (TypeError, ValueError):
        return str(error)


def _segment(value: str) -> str:
    return quote(value, safe="")


def unwrap_response(response: Any, action: str) -> Any:
    """Return the ``data`` of a host response or raise :class:`HostRpcError`."""

    if isinstance(response, dict) and ("data" in response or "error" in response):
        if response.get("error"):
            raise HostRpcError(f"{action} failed.", details=_error_message(response["error"]))
        if response.get("data") is None:
            raise HostRpcError(f"{action} returned no data.")
        return response["data"]

    if response is None or (isinstance(response, dict) and not response):
        raise HostRpcError(f"{action} returned no data.")
    return response


def require_id(data: Any, action: str) -> str:
    session_id = data.get("id") if isinstance(data, dict) else None
    if not isinstance(session_id, str) or not session_id:
        raise HostRpcError(f"{action} returned no ID.")
    return session_id


class HostClient:
    """Thin async wrapper returning ``{"data": ...}`` / ``{"error": ...}`` envelopes."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Envelope:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(method, path, params=params, json=body)
        except httpx.HTTPError as exc:
            logger.warning("Host request failed", extra={"method": method, "path": path})
            return {"error": str(exc) or exc.__class__.__name__}

        try:
            payload = response.json() if response.content else None
        except ValueError:
            payload = None

        if response.is_error:
            detail = payload if payload else first_line(response.text) or response.reason_phrase
            return {"error": f"HTTP {response.status_code}: {_error_message(detail)}"}
        return {"data": payload}

    async def create_session(self, directory: str, title: str) -> Envelope:
        return await self._request(
            "POST", "/session", params={"directory": directory}, body={"title": title}
        )

    async def fork_session(self, session_id: str, directory: str) -> Envelope:
        return await self._request(
            "POST", f"/session/{_segment(session_id)}/fork", params={"directory": directory}, body={}
        )

    async def update_session_title(self, session_id: str, title: str) -> Envelope:
        return await self._request("PATCH", f"/session/{_segment(session_id)}", body={"title": title})

    async def get_session(self, session_id: str) -> Envelope:
        return await self._request("GET", f"/session/{_segment(session_id)}")

    async def open_sessions_ui(self) -> Envelope:
        return await self._request("POST", "/tui/open-sessions")


async def set_session_title(host: HostClient, session_id: str, title: str) -> str | None:
    """Best-effort title update; returns the rendered error or ``None``."""

    try:
        unwrap_response(await host.update_session_title(session_id, title), "Session title update")
    except HostRpcError as exc:
        return exc.render()
    return None


async def open_sessions(host: HostClient) -> str | None:
    """Best-effort request to show the host's sessions view."""

    try:
        unwrap_response(await host.open_sessions_ui(), "Open sessions")
    except HostRpcError as exc:
        return exc.render()
    return None


__all__ = [
    "HostClient",
    "open_sessions",
    "require_id",
    "set_session_title",
    "unwrap_response",
]
