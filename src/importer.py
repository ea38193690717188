"""
Feedback intake and spreadsheet import.

Both paths fingerprint the content, skip anything already stored, insert the
raw row and enqueue an enrichment run. The duplicate check is a plain read
before the insert; the unique index on content_hash catches the rare race.
"""

import os
import uuid
from urllib.parse import quote
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

import httpx

from settings import SHEET_SOURCES, SHEETS_API_URL, SHEETS_TIMEOUT_SECONDS
from src.errors import ConfigurationError, DuplicateFeedbackError, SourceFetchError
from src.fingerprint import content_fingerprint
from src.logger import log, log_session_start, log_session_end
from src.models import FeedbackPayload
from src.storage import FeedbackRecord
from src.taxonomy import arr_for_tier
from nodes.prioritize import parse_timestamp


class RowSource(Protocol):
    def fetch_rows(self, sheet_name: str) -> list[list[str]]: ...


class GoogleSheetsSource:
    """Reads sheet values through the Google Sheets v4 REST API."""

    def __init__(self, spreadsheet_id: str, api_key: str, client: Optional[httpx.Client] = None):
        self.spreadsheet_id = spreadsheet_id
        self.api_key = api_key
        self._client = client or httpx.Client(timeout=SHEETS_TIMEOUT_SECONDS)

    def fetch_rows(self, sheet_name: str) -> list[list[str]]:
        url = f"{SHEETS_API_URL}/{self.spreadsheet_id}/values/{quote(sheet_name, safe='')}"
        try:
            response = self._client.get(url, params={"key": self.api_key})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SourceFetchError(f"Failed to fetch {sheet_name}: {e}") from e

        if not isinstance(data, dict):
            raise SourceFetchError(f"Unexpected response for {sheet_name}: {type(data).__name__}")
        values = data.get("values") or []
        if not isinstance(values, list) or not all(isinstance(row, list) for row in values):
            raise SourceFetchError(f"Malformed values for {sheet_name}")
        return [[cell if isinstance(cell, str) else str(cell) for cell in row] for row in values]


def sheets_credentials() -> Optional[tuple[str, str]]:
    spreadsheet_id = os.environ.get("SPREADSHEET_ID", "").strip()
    api_key = os.environ.get("SHEETS_API_KEY", "").strip()
    if not spreadsheet_id or not api_key:
        return None
    return spreadsheet_id, api_key


def require_sheets_source() -> GoogleSheetsSource:
    credentials = sheets_credentials()
    if credentials is None:
        raise ConfigurationError("Google Sheets not configured: set SPREADSHEET_ID and SHEETS_API_KEY")
    return GoogleSheetsSource(*credentials)


def normalize_tier(tier: Optional[str]) -> str:
    return (tier or "free").strip().lower() or "free"


def normalize_timestamp(value: Optional[str]) -> str:
    """ISO-8601 in UTC; missing or unparseable values become now."""
    if value and value.strip():
        try:
            return parse_timestamp(value.strip()).astimezone(timezone.utc).isoformat()
        except ValueError:
            log(f"  Warning: unparseable timestamp {value!r}, using import time")
    return datetime.now(timezone.utc).isoformat()


class FeedbackIntake:
    """Creates feedback rows and enqueues their enrichment runs."""

    def __init__(self, repository, workflow):
        self.repository = repository
        self.workflow = workflow

    def submit(self, source: str, content: str, author: Optional[str] = None,
               customer_tier: Optional[str] = None,
               created_at: Optional[str] = None) -> tuple[FeedbackRecord, str]:
        """
        Store a new item and start its run.

        Returns:
            (record, run_id)

        Raises:
            DuplicateFeedbackError: content already stored
        """
        content = content.strip()
        content_hash = content_fingerprint(content)

        existing = self.repository.find_by_hash(content_hash)
        if existing is not None:
            raise DuplicateFeedbackError(content_hash, existing.id)

        tier = normalize_tier(customer_tier)
        record = FeedbackRecord(
            id=str(uuid.uuid4()),
            source=source,
            content=content,
            content_hash=content_hash,
            author=author or "anonymous",
            customer_tier=tier,
            arr_estimate=arr_for_tier(tier),
            created_at=created_at or datetime.now(timezone.utc).isoformat(),
        )
        self.repository.create(record)

        payload: FeedbackPayload = {
            "id": record.id,
            "source": record.source,
            "content": record.content,
            "customer_tier": record.customer_tier,
            "created_at": record.created_at,
        }
        run_id = self.workflow.start(payload)
        return record, run_id


@dataclass
class ImportResult:
    imported: int = 0
    sources: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"imported": self.imported, "sources": dict(self.sources)}


class IngestionImporter:
    def __init__(self, intake: FeedbackIntake, source: RowSource,
                 sheet_sources: Optional[dict[str, str]] = None):
        self.intake = intake
        self.source = source
        self.sheet_sources = sheet_sources if sheet_sources is not None else dict(SHEET_SOURCES)

    def import_all(self) -> ImportResult:
        """Import every configured sheet; one failing sheet counts as zero."""
        result = ImportResult()
        log_session_start("Import")

        for sheet_name, source_name in self.sheet_sources.items():
            try:
                count = self.import_sheet(sheet_name, source_name)
            except (SourceFetchError, httpx.HTTPError) as e:
                log(f" Error importing {sheet_name}: {type(e).__name__}: {str(e)[:200]}")
                count = 0
            result.sources[source_name] = count
            result.imported += count

        log(f"Imported {result.imported} items: {result.sources}")
        log_session_end("Import")
        return result

    def import_sheet(self, sheet_name: str, source_name: str) -> int:
        rows = self.source.fetch_rows(sheet_name)
        imported = 0

        # First row is the header
        for row in rows[1:]:
            if len(row) < 3 or not (row[0] or "").strip():
                continue
            content, author, tier = row[0], row[1], row[2]
            timestamp = row[3] if len(row) > 3 else None

            try:
                record, run_id = self.intake.submit(
                    source=source_name,
                    content=content,
                    author=(author or "").strip() or None,
                    customer_tier=tier,
                    created_at=normalize_timestamp(timestamp),
                )
            except DuplicateFeedbackError:
                continue

            log(f"  Imported {record.id} from {sheet_name} (run {run_id})")
            imported += 1

        return imported


def run_scheduled_import(intake: FeedbackIntake) -> Optional[ImportResult]:
    """Time-triggered import; does nothing when the sheet credentials are unset."""
    credentials = sheets_credentials()
    if credentials is None:
        return None
    try:
        result = IngestionImporter(intake, GoogleSheetsSource(*credentials)).import_all()
    except Exception as e:
        log(f"Scheduled import failed: {type(e).__name__}: {e}")
        return None
    log(f"Scheduled import: {result.imported} items")
    return result
