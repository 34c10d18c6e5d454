from __future__ import annotations

from functools import lru_cache
from typing import Any
from urllib.parse import quote

import requests
from pydantic import ValidationError

from logitrack.core.config import settings
from logitrack.schemas.tms import TmsShipment, TmsTimelineEvent


class TmsApiError(Exception):
    pass


class TmsClient:
    """Read-only client for the external TMS REST API."""

    def __init__(self, *, api_url: str, api_key: str, timeout_seconds: float = 30.0):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _get(self, path: str, *, params: dict[str, str] | None = None) -> requests.Response:
        url = f"{self.api_url}{path}"
        try:
            return requests.get(
                url,
                params=params or None,
                headers=self._headers(),
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise TmsApiError(f"TMS API request failed: {exc}") from exc

    @staticmethod
    def _json(response: requests.Response) -> Any:
        if response.status_code >= 400:
            raise TmsApiError(f"TMS API error: {response.status_code} - {response.text}")
        try:
            return response.json()
        except ValueError as exc:
            raise TmsApiError("TMS API returned invalid JSON.") from exc

    @staticmethod
    def _unwrap_list(body: Any, key: str) -> list[dict]:
        if isinstance(body, list):
            return body
        if isinstance(body, dict):
            items = body.get(key) or []
            if isinstance(items, list):
                return items
        return []

    def get_shipments(
        self,
        *,
        client_id: str | None = None,
        status: str | None = None,
        updated_since: str | None = None,
    ) -> list[TmsShipment]:
        params: dict[str, str] = {}
        if client_id:
            params["client_id"] = client_id
        if status:
            params["status"] = status
        if updated_since:
            params["updated_since"] = updated_since

        body = self._json(self._get("/shipments", params=params))
        try:
            return [TmsShipment.model_validate(item) for item in self._unwrap_list(body, "shipments")]
        except ValidationError as exc:
            raise TmsApiError(f"TMS API returned a malformed shipment: {exc}") from exc

    def get_shipment(self, tracking_number: str) -> TmsShipment | None:
        response = self._get(f"/shipments/{quote(tracking_number, safe='')}")
        if response.status_code == 404:
            return None
        try:
            return TmsShipment.model_validate(self._json(response))
        except ValidationError as exc:
            raise TmsApiError(f"TMS API returned a malformed shipment: {exc}") from exc

    def get_timeline_events(self, tracking_number: str) -> list[TmsTimelineEvent]:
        body = self._json(self._get(f"/shipments/{quote(tracking_number, safe='')}/timeline"))
        try:
            return [TmsTimelineEvent.model_validate(item) for item in self._unwrap_list(body, "events")]
        except ValidationError as exc:
            raise TmsApiError(f"TMS API returned a malformed timeline event: {exc}") from exc


def is_tms_configured() -> bool:
    return bool(settings.TMS_API_URL and settings.TMS_API_KEY)


@lru_cache(maxsize=1)
def _build_client(api_url: str, api_key: str, timeout_seconds: float) -> TmsClient:
    return TmsClient(api_url=api_url, api_key=api_key, timeout_seconds=timeout_seconds)


def get_tms_client() -> TmsClient | None:
    if not is_tms_configured():
        return None
    return _build_client(settings.TMS_API_URL, settings.TMS_API_KEY, settings.TMS_API_TIMEOUT_SECONDS)
