"""HTTP client for OSRM table lookups, exposed as a distance provider."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx
import numpy as np

from ...config import settings
from ...models.domain import Coordinate

# Stand-in for legs OSRM reports as unreachable (null in the table response).
UNREACHABLE_PENALTY_METERS = 999999999.0

logger = logging.getLogger(__name__)


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0), transport=self._transport)

    def table(self, coordinates: Sequence[tuple[float, float]]) -> dict:
        """Return the OSRM table response (distances in meters) for (lat, lon) pairs."""
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for OSRM table.")

        coordinate_str = ";".join(f"{lon},{lat}" for lat, lon in coordinates)
        url = f"{self.base_url}/table/v1/{self.profile}/{coordinate_str}"
        params = {"annotations": "distance,duration"}

        with self._get_client() as client:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    if data.get("code", "Ok") != "Ok":
                        raise ValueError(f"OSRM table request failed: {data.get('message') or data.get('code')}")
                    if "distances" not in data:
                        raise ValueError("OSRM response missing distances.")
                    return data
                except httpx.HTTPStatusError as e:
                    if e.response.status_code < 500:
                        raise
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    logger.debug(f"OSRM returned {e.response.status_code}, retrying (attempt {attempt}/{self.max_retries})")
                    time.sleep(self.backoff_seconds * attempt)
                except (httpx.TimeoutException, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(f"Failed to reach OSRM service at {self.base_url}: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)


class OSRMDistance:
    """Road-network distances from an OSRM table.

    Unreachable legs are replaced by a large penalty so heuristics avoid them.
    """

    def __init__(self, client: OSRMClient | None = None) -> None:
        self.client = client or OSRMClient()

    def matrix(self, points: Sequence[Coordinate]) -> np.ndarray:
        size = len(points)
        if size < 2:
            return np.zeros((size, size), dtype=float)
        table = self.client.table([(p.latitude, p.longitude) for p in points])
        distances = table["distances"]
        if len(distances) != size:
            raise ValueError(f"OSRM matrix size mismatch: expected {size}, got {len(distances)}")
        result = np.array(
            [[UNREACHABLE_PENALTY_METERS if value is None else float(value) for value in row] for row in distances],
            dtype=float,
        )
        np.fill_diagonal(result, 0.0)
        # Road distances are rarely symmetric; the heuristics assume they are.
        return (result + result.T) / 2.0

    def distance_meters(self, a: Coordinate, b: Coordinate) -> float:
        if a.coordinate_id == b.coordinate_id:
            return 0.0
        return float(self.matrix([a, b])[0, 1])
