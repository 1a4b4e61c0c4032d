"""
app/connectors/base.py

Shared HTTP mechanics for row-collection sources: one GET per collection,
exponential backoff on transient failures, JSON decoding.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterator

import requests

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class ConnectorRequestError(RuntimeError):
    """
    Raised when a collection cannot be fetched (permanent failure or retries exhausted).
    """


class _TransientFailure(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count and backoff schedule for one logical request."""

    max_retries: int = 3
    initial_delay_seconds: float = 0.5
    multiplier: float = 2.0

    def delays(self) -> Iterator[float]:
        """Wait before each retry: ``initial``, ``initial * multiplier``, ..."""
        delay = self.initial_delay_seconds
        for _ in range(max(0, self.max_retries)):
            yield delay
            delay *= self.multiplier


class BaseConnector(ABC):
    """
    A read-only source of JSON row collections reached over HTTP.
    """

    source: str

    def __init__(
        self,
        *,
        source: str,
        timeout_seconds: float,
        retry: RetryPolicy,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.source = source
        self._http = session or requests.Session()
        self._timeout_seconds = timeout_seconds
        self._retry = retry
        self._sleep = sleep

    @abstractmethod
    def fetch_rows(self, table: str) -> list[dict[str, Any]]:
        """
        Fetch every row of *table* as plain JSON objects.
        """

    def _get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        response = self._get_with_retry(url, params=params, headers=headers)
        try:
            return response.json()
        except ValueError as exc:
            raise ConnectorRequestError(f"{self.source}: response was not valid JSON.") from exc

    def _get_with_retry(
        self,
        url: str,
        *,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
    ) -> requests.Response:
        delays = self._retry.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._get_once(url, params=params, headers=headers)
            except _TransientFailure as failure:
                delay = next(delays, None)
                if delay is None:
                    logger.error(
                        "Connector gave up source=%s attempts=%d url=%s last_error=%s",
                        self.source,
                        attempt,
                        url,
                        failure.reason,
                    )
                    raise ConnectorRequestError(
                        f"{self.source}: request failed after {attempt} attempts ({failure.reason})."
                    ) from failure
                logger.warning(
                    "Connector retrying source=%s attempt=%d wait_seconds=%.2f reason=%s",
                    self.source,
                    attempt,
                    delay,
                    failure.reason,
                )
                self._sleep(delay)

    def _get_once(
        self,
        url: str,
        *,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
    ) -> requests.Response:
        try:
            response = self._http.request(
                method="GET",
                url=url,
                params=params,
                headers=headers,
                timeout=self._timeout_seconds,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise _TransientFailure(type(exc).__name__) from exc

        if response.status_code in TRANSIENT_STATUS_CODES:
            raise _TransientFailure(f"HTTP {response.status_code}")
        if response.status_code >= 400:
            logger.error(
                "Connector request rejected source=%s status=%d url=%s",
                self.source,
                response.status_code,
                url,
            )
            raise ConnectorRequestError(f"{self.source}: HTTP {response.status_code} from {url}.")
        return response
