"""
Geo-IP request filtering.

Requests from a denylisted country are redirected to a static "blocked"
page. Lookups go through ``CountryLocator``; the instance used by the
middleware lives on ``app.state.geo_locator`` so tests can swap it.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import Request
from fastapi.responses import RedirectResponse

logger = logging.getLogger(__name__)


class CountryLocator:
    """Resolve an IP address to an ISO country code over HTTP."""

    def __init__(
        self,
        url_template: str,
        timeout: float = 3.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url_template = url_template
        self.timeout = timeout
        self.transport = transport

    async def country_for(self, ip: str) -> Optional[str]:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport
        ) as client:
            response = await client.get(self.url_template.format(ip=ip))
            response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            return None
        return payload.get("country_code") or payload.get("country")


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


async def geo_block_middleware(request: Request, call_next):
    settings = request.app.state.settings
    if request.url.path == settings.geo_blocked_path:
        return await call_next(request)

    ip = client_ip(request)
    if not ip or ip in settings.geo_trusted_ips:
        return await call_next(request)

    locator: CountryLocator = request.app.state.geo_locator
    try:
        country = await locator.country_for(ip)
    except Exception as exc:
        # Fail open.
        logger.warning("Geo lookup for %s failed, allowing request: %s", ip, exc)
        return await call_next(request)

    blocked = {code.upper() for code in settings.geo_blocked_countries}
    if country and country.upper() in blocked:
        logger.info("Blocked request from %s (%s) to %s", ip, country, request.url.path)
        return RedirectResponse(settings.geo_blocked_path, status_code=307)
    return await call_next(request)
