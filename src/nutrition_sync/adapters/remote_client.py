"""HTTP client for the remote nutrition endpoint."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import httpx
from pydantic import ValidationError

from nutrition_sync.adapters.snapshot_codec import (
    format_timestamp,
    parse_timestamp,
    snapshot_from_dict,
    snapshot_to_dict,
)
from nutrition_sync.api.models import NutritionFetchResponse, NutritionSaveResponse
from nutrition_sync.domain.snapshot import Snapshot
from nutrition_sync.domain.sync import RemoteState

_logger = logging.getLogger(__name__)


class RemoteAuthError(RuntimeError):
    """The endpoint rejected the session (HTTP 401)."""


class RemoteTimeoutError(RuntimeError):
    """The request did not finish within the timeout."""


class RemoteUnavailableError(RuntimeError):
    """Transport failure or an unsuccessful response."""


class RemoteNutritionClient(Protocol):
    """Interface for the remote snapshot endpoint."""

    async def fetch(self, last_sync: datetime | None) -> RemoteState:
        """Return the server snapshot if it changed after last_sync."""

    async def push(self, snapshot: Snapshot, updated_at: datetime) -> datetime | None:
        """Upload a full snapshot and return the server's sync time."""


@dataclass
class HttpxRemoteNutritionClient(RemoteNutritionClient):
    """Remote endpoint client implemented with httpx."""

    base_url: str
    token: str | None
    http_client: httpx.AsyncClient
    timeout_seconds: float = 10.0

    @classmethod
    def create(
        cls, base_url: str, token: str | None, timeout_seconds: float = 10.0
    ) -> "HttpxRemoteNutritionClient":
        """Create a remote client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            token=token,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def fetch(self, last_sync: datetime | None) -> RemoteState:
        """GET /nutrition, passing lastSync when known."""
        params: dict[str, str] = {}
        if last_sync is not None:
            params["lastSync"] = format_timestamp(last_sync) or ""
        response = await self._request("GET", "/nutrition", params=params)
        try:
            payload = NutritionFetchResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise RemoteUnavailableError("Malformed nutrition response") from exc
        if not payload.success:
            raise RemoteUnavailableError(payload.message or "Nutrition fetch failed")
        data = payload.data or {}
        snapshot = None
        if payload.has_updates and payload.data is not None:
            snapshot = snapshot_from_dict(payload.data)
        return RemoteState(
            has_updates=payload.has_updates,
            last_sync=parse_timestamp(payload.last_sync or data.get("updatedAt")),
            snapshot=snapshot,
        )

    async def push(self, snapshot: Snapshot, updated_at: datetime) -> datetime | None:
        """POST /nutrition with the snapshot and its update time."""
        body = snapshot_to_dict(snapshot)
        body["updatedAt"] = format_timestamp(updated_at)
        response = await self._request("POST", "/nutrition", json=body)
        try:
            payload = NutritionSaveResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise RemoteUnavailableError("Malformed save response") from exc
        if not payload.success:
            raise RemoteUnavailableError(payload.message or "Nutrition save failed")
        return parse_timestamp(payload.last_sync)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self, method: str, path: str, **kwargs: object
    ) -> httpx.Response:
        headers: dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            async with asyncio.timeout(self.timeout_seconds):
                response = await self.http_client.request(
                    method,
                    f"{self.base_url}{path}",
                    headers=headers,
                    timeout=self.timeout_seconds,
                    **kwargs,  # type: ignore[arg-type]
                )
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise RemoteTimeoutError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError(f"{method} {path} failed: {exc}") from exc
        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise RemoteAuthError("Nutrition endpoint rejected credentials")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            _logger.warning(
                "Nutrition %s %s failed with status %s",
                method,
                path,
                response.status_code,
            )
            raise RemoteUnavailableError(
                f"{method} {path} returned {response.status_code}"
            ) from exc
        return response
