from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


async def fetch_public_ip(
    url: str,
    timeout: float = 3.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str | None:
    """Ask an ipify-style endpoint for this host's public address."""
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError):
        logger.debug("Public IP lookup failed", exc_info=True)
        return None
    if not isinstance(data, dict):
        return None
    ip = data.get("ip")
    return str(ip) if ip else None
