from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, List, Optional

import requests

from trip_planner.config import Settings

logger = logging.getLogger(__name__)

LOCATION_CODE = re.compile(r"^[A-Z]{3}$")


class AmadeusError(Exception):
    """Non-success response (or transport failure) from a data endpoint."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body


class AmadeusAuthError(AmadeusError):
    """The client-credentials token exchange failed."""


class UnknownLocationError(ValueError):
    def __init__(self, field: str, query: str, suggestions: Optional[List[dict]] = None):
        super().__init__(f"Unknown {field}: {query}")
        self.field = field
        self.query = query
        self.suggestions = suggestions or []


def to_float(value) -> Optional[float]:
    """Amadeus sends amounts as strings; anything unparsable is None."""
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class AmadeusClient:
    """
    Thin wrapper over the Amadeus self-service REST API.

    - OAuth2 client-credentials token, cached until shortly before it expires
    - GET helper that sends the bearer token and unwraps JSON
    - free text -> IATA location code through Airport & City Search
    """

    TOKEN_PATH = "/v1/security/oauth2/token"
    LOCATIONS_PATH = "/v1/reference-data/locations"
    # refresh this many seconds before the token actually expires
    EXPIRY_MARGIN = 30

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        timeout: int = 15,
    ):
        self.settings = settings
        self.base_url = settings.amadeus_base_url
        self.session = session or requests.Session()
        self.timeout = timeout
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        # cache: normalized text -> iata
        self._cache: Dict[str, str] = {}

    def fetch_token(self) -> Dict[str, Any]:
        """Exchange client id/secret for a bearer token. Raises AmadeusAuthError on any failure."""
        try:
            r = self.session.post(
                f"{self.base_url}{self.TOKEN_PATH}",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.settings.amadeus_client_id or "",
                    "client_secret": self.settings.amadeus_client_secret or "",
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AmadeusAuthError(f"Token request failed: {e}") from e

        if r.status_code >= 400:
            raise AmadeusAuthError(
                f"Amadeus token error {r.status_code}: {r.text[:200]}",
                status=r.status_code,
                body=r.text,
            )
        try:
            payload = r.json()
        except ValueError as e:
            raise AmadeusAuthError(
                f"Amadeus token response is not JSON: {r.text[:200]}",
                status=r.status_code,
                body=r.text,
            ) from e
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise AmadeusAuthError("Amadeus token response has no access_token", status=r.status_code)
        return payload

    def access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        payload = self.fetch_token()
        self._token = payload["access_token"]
        expires_in = int(payload.get("expires_in") or 0)
        self._token_expires_at = time.monotonic() + max(0, expires_in - self.EXPIRY_MARGIN)
        return self._token

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        token = self.access_token()
        url = f"{self.base_url}{path}"
        try:
            r = self.session.get(
                url,
                params={k: v for k, v in (params or {}).items() if v is not None},
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AmadeusError(f"Amadeus request failed: {e}") from e

        if r.status_code >= 400:
            raise AmadeusError(
                f"Amadeus API error {r.status_code}: {r.text[:200]}",
                status=r.status_code,
                body=r.text,
            )
        try:
            return r.json()
        except ValueError as e:
            # e.g. a gateway error page served with 200
            raise AmadeusError(
                f"Amadeus response from {path} is not JSON: {r.text[:200]}",
                status=r.status_code,
                body=r.text,
            ) from e

    def get_data(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[dict]:
        payload = self.get(path, params)
        if not isinstance(payload, dict):
            raise AmadeusError(f"Unexpected response from {path}: {type(payload).__name__}")
        data = payload.get("data")
        if data is None:
            return []
        if not isinstance(data, list):
            raise AmadeusError(f"Unexpected 'data' in response from {path}: {type(data).__name__}")
        return [item for item in data if isinstance(item, dict)]

    @staticmethod
    def _norm(s: str) -> str:
        return (s or "").strip().lower()

    def _search_locations(self, keyword: str, sub_type: str = "CITY,AIRPORT") -> List[dict]:
        items = self.get_data(
            self.LOCATIONS_PATH,
            {"keyword": keyword, "subType": sub_type, "page[limit]": 10},
        )
        return [it for it in items if it.get("iataCode")]

    def resolve_location(self, text: str, field: str = "location", sub_type: str = "CITY,AIRPORT") -> str:
        """
        Accepts:
          - 'LIS' (already a location code, returned unchanged)
          - 'Lisbon' / 'San Francisco' / 'Heathrow' (resolved through the lookup, first match wins)
        """
        raw = (text or "").strip()
        if not raw:
            raise UnknownLocationError(field, text)

        if LOCATION_CODE.match(raw):
            return raw

        key = f"{sub_type}:{self._norm(raw)}"
        if key in self._cache:
            return self._cache[key]

        # full keyword first, then the first 3 chars (autocomplete behaves best on prefixes)
        candidates = self._search_locations(raw, sub_type)
        if not candidates and len(raw) > 3:
            candidates = self._search_locations(raw[:3], sub_type)

        if not candidates:
            raise UnknownLocationError(field, raw)

        code = candidates[0]["iataCode"].upper()
        self._cache[key] = code
        logger.debug("Resolved location", extra={"extra": {"field": field, "query": raw, "code": code}})
        return code
