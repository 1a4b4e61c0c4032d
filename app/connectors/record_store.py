"""
app/connectors/record_store.py

Read-only client for the managed tabular record store.

The store exposes each collection as a REST resource
(``GET {base_url}/rest/v1/{table}?select=*&order=created_at.desc``) and
authenticates with the project API key sent both as ``apikey`` and as a
bearer token. Rows come back newest ``created_at`` first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

import requests

from app.config import RecordStoreSettings
from app.connectors.base import BaseConnector, ConnectorRequestError, RetryPolicy
from app.domain.records import FinancialCloseRecord, ProcessEfficiencyRecord, RecordParseError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class RecordFetchResult(Generic[RecordT]):
    """
    Typed rows for one collection plus the count of rows that failed to parse.
    """

    source: str
    records: list[RecordT] = field(default_factory=list)
    failed_records: int = 0


class RecordStoreConnector(BaseConnector):
    """
    Fetches the financial close and process efficiency collections.
    """

    def __init__(
        self,
        *,
        settings: RecordStoreSettings,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        extra: dict[str, Any] = {"sleep": sleep} if sleep is not None else {}
        super().__init__(
            source="record_store",
            timeout_seconds=settings.timeout_seconds,
            retry=RetryPolicy(
                max_retries=settings.max_retries,
                initial_delay_seconds=settings.backoff_initial_seconds,
                multiplier=settings.backoff_multiplier,
            ),
            session=session,
            **extra,
        )
        self._settings = settings

    def fetch_rows(self, table: str) -> list[dict[str, Any]]:
        if not self._settings.base_url:
            raise ConnectorRequestError(f"{self.source}: RECORD_STORE_URL is not configured.")

        headers = {"Accept": "application/json"}
        if self._settings.api_key:
            headers["apikey"] = self._settings.api_key
            headers["Authorization"] = f"Bearer {self._settings.api_key}"

        payload = self._get_json(
            f"{self._settings.base_url.rstrip('/')}/rest/v1/{table}",
            params={"select": "*", "order": "created_at.desc"},
            headers=headers,
        )
        if not isinstance(payload, list):
            raise ConnectorRequestError(f"{self.source}: expected a JSON array for table '{table}'.")
        return payload

    def fetch_financial_close(self) -> RecordFetchResult[FinancialCloseRecord]:
        return self._fetch_typed(self._settings.financial_table, FinancialCloseRecord.from_row)

    def fetch_process_efficiency(self) -> RecordFetchResult[ProcessEfficiencyRecord]:
        return self._fetch_typed(self._settings.process_table, ProcessEfficiencyRecord.from_row)

    def _fetch_typed(
        self,
        table: str,
        parse: Callable[[Any], RecordT],
    ) -> RecordFetchResult[RecordT]:
        rows = self.fetch_rows(table)
        records: list[RecordT] = []
        failed_records = 0

        for index, row in enumerate(rows):
            try:
                records.append(parse(row))
            except RecordParseError as exc:
                failed_records += 1
                logger.warning(
                    "Skipping malformed row table=%s index=%s error=%s",
                    table,
                    index,
                    exc,
                )

        logger.info(
            "Fetched table=%s records=%d failed=%d",
            table,
            len(records),
            failed_records,
        )
        return RecordFetchResult(source=table, records=records, failed_records=failed_records)
