"""Shared plumbing for suppliers reached over HTTP.

Subclasses supply the base URL and their auth; this class owns the
``requests`` session, the timeout and the mapping of transport and HTTP
failures onto ``SupplierError``.
"""

import os
from datetime import datetime
from typing import Any

import requests
from requests.exceptions import ConnectionError as ReqConnectionError
from requests.exceptions import RequestException, Timeout

from dropship.suppliers.port import SupplierAdapter, SupplierError

DEFAULT_TIMEOUT_SECONDS = 30.0


def unwrap(payload: Any, *keys: str) -> Any:
    """Return the first non-null ``payload[key]``, or the payload itself."""
    if isinstance(payload, dict):
        for key in keys:
            if key in payload and payload[key] is not None:
                return payload[key]
    return payload


def to_cents(value: Any) -> int:
    """Supplier APIs quote decimal currency units; the platform works in cents."""
    try:
        return round(float(value) * 100)
    except (TypeError, ValueError):
        return 0


def parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


class HttpSupplierAdapter(SupplierAdapter):
    """Base for adapters that talk JSON over HTTP."""

    api_name = "Supplier API"

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout or float(os.getenv("SUPPLIER_HTTP_TIMEOUT", DEFAULT_TIMEOUT_SECONDS))
        self._session = session or requests.Session()

    def _auth_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def _auth(self) -> tuple[str, str] | None:
        return None

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute an HTTP request and return the decoded JSON body ({} if none)."""
        try:
            response = self._session.request(
                method,
                f"{self._base_url}{path}",
                json=json,
                params=params,
                headers=self._auth_headers(),
                auth=self._auth(),
                timeout=self._timeout,
            )
        except Timeout as exc:
            raise SupplierError(f"{self.api_name} request timed out after {self._timeout}s") from exc
        except ReqConnectionError as exc:
            raise SupplierError(f"Could not connect to {self.api_name} at {self._base_url}") from exc
        except RequestException as exc:
            raise SupplierError(f"Request error for {method} {path}: {exc}") from exc

        if not response.ok:
            raise SupplierError(
                f"{self.api_name} returned HTTP {response.status_code} for {method} {path}: {response.text[:500]}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError:
            return {}

    def _get_or_none(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET that treats 404 as "nothing there"."""
        try:
            return self._request("GET", path, params=params)
        except SupplierError as exc:
            if exc.status_code == 404:
                return None
            raise
