"""Best-effort IP geolocation for activity log entries.

Locations are advisory. Nothing in this module raises to its caller: private
and loopback addresses are classified locally, public ones go to a remote
lookup bounded by a short timeout, and every failure becomes
``UNKNOWN_LOCATION``.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import Optional

import httpx

from wateradmin.config import settings

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown Location"


class GeoLocator:
    """Resolve an IP address to a ``"City, Country"`` string."""

    def locate(self, ip_address: Optional[str]) -> str:
        raise NotImplementedError


class NullGeoLocator(GeoLocator):
    """Never performs a lookup."""

    def locate(self, ip_address: Optional[str]) -> str:
        return UNKNOWN_LOCATION


class IpApiGeoLocator(GeoLocator):
    """ip-api.com lookup. Raises on transport errors; wrap it in LocalFirstGeoLocator."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def locate(self, ip_address: Optional[str]) -> str:
        url = f"{self.base_url}/{ip_address}"
        params = {"fields": "city,country,status"}
        if self._client is not None:
            response = self._client.get(url, params=params, timeout=self.timeout)
        else:
            response = httpx.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()

        data = response.json()
        if data.get("status") != "success":
            return UNKNOWN_LOCATION
        parts = [part for part in (data.get("city"), data.get("country")) if part]
        return ", ".join(parts) if parts else UNKNOWN_LOCATION


class LocalFirstGeoLocator(GeoLocator):
    """Classify non-public addresses locally, then fall back to ``remote``."""

    def __init__(self, remote: Optional[GeoLocator] = None) -> None:
        self.remote = remote

    def locate(self, ip_address: Optional[str]) -> str:
        if not ip_address:
            return UNKNOWN_LOCATION
        try:
            ip = ipaddress.ip_address(ip_address.strip())
        except ValueError:
            return UNKNOWN_LOCATION

        if not ip.is_global:
            return f"Local Network ({ip})"
        if self.remote is None:
            return UNKNOWN_LOCATION

        try:
            return self.remote.locate(str(ip))
        except httpx.TimeoutException:
            logger.warning("Geolocation lookup timed out for %s", ip)
        except Exception as exc:
            logger.warning("Geolocation lookup failed for %s: %s", ip, exc)
        return UNKNOWN_LOCATION


def build_geolocator() -> GeoLocator:
    """Geolocator configured from settings."""
    if not settings.GEOLOCATION_ENABLED:
        return LocalFirstGeoLocator(NullGeoLocator())
    remote = IpApiGeoLocator(
        settings.GEOLOCATION_URL,
        timeout=settings.GEOLOCATION_TIMEOUT_SECONDS,
    )
    return LocalFirstGeoLocator(remote)
