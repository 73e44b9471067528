"""Minimal JSON-over-HTTP client for the puzzle backend's RPC endpoints."""

from __future__ import annotations

from typing import Any

import httpx

DEFAULT_RPC_TIMEOUT_SECONDS = 10.0


def rpc_url(base_url: str, function: str) -> str:
    return f"{base_url.rstrip('/')}/rest/v1/rpc/{function}"


def _headers(api_key: str | None) -> dict[str, str]:
    if api_key is None:
        return {}
    return {"apikey": api_key, "Authorization": f"Bearer {api_key}"}


async def call_rpc(
    base_url: str,
    function: str,
    payload: dict[str, Any],
    *,
    api_key: str | None = None,
    timeout: float = DEFAULT_RPC_TIMEOUT_SECONDS,
) -> Any:
    """POST a payload to a named RPC function and return the decoded JSON body.

    Raises httpx.RequestError on transport failures and httpx.HTTPStatusError
    on non-2xx responses. Returns None for an empty body.
    """
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(rpc_url(base_url, function), json=payload, headers=_headers(api_key))
        response.raise_for_status()
        if not response.content:
            return None
        return response.json()
