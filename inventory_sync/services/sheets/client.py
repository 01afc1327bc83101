# inventory_sync.services.sheets.client

import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import google.auth
from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from inventory_sync.core.config import get_settings
from inventory_sync.core.exceptions import ConfigurationError, SheetsAPIError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

_SIMPLE_TITLE_RE = re.compile(r"^[A-Za-z0-9_]+$")


def quote_sheet_name(title: str) -> str:
    """Worksheet title formatted for A1 notation."""
    normalised = (title or "").strip()
    if _SIMPLE_TITLE_RE.fullmatch(normalised):
        return normalised
    escaped = normalised.replace("'", "''")
    return f"'{escaped}'"


def a1_range(sheet_name: str, range_spec: str) -> str:
    return f"{quote_sheet_name(sheet_name)}!{range_spec}"


@dataclass(frozen=True)
class CellWrite:
    """One cell value to write, addressed in A1 notation (``Truth_Table!G5``)."""
    range: str
    value: Any

    def as_value_range(self) -> dict:
        return {"range": self.range, "values": [[self.value]]}


class SheetsClient:
    """
    Thin wrapper over the Sheets v4 values API.

    Credentials come from Application Default Credentials (the job's service
    account on Cloud Run, ``gcloud auth application-default login`` locally).
    """

    def __init__(self, spreadsheet_id: Optional[str] = None, service=None):
        self.spreadsheet_id = spreadsheet_id or get_settings().SPREADSHEET_ID
        if not self.spreadsheet_id:
            raise ConfigurationError("SPREADSHEET_ID must be set in .env or as environment variables.")
        self._service = service

    @property
    def service(self):
        if self._service is None:
            try:
                credentials, _ = google.auth.default(scopes=SCOPES)
            except GoogleAuthError as e:
                raise ConfigurationError(f"Google credentials unavailable: {e}") from e
            self._service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        return self._service

    def _execute(self, request, operation: str):
        try:
            return request.execute()
        except HttpError as e:
            status = getattr(e.resp, "status", "?")
            raise SheetsAPIError(f"Sheets {operation} failed (HTTP {status}): {e}") from e
        except (OSError, GoogleAuthError) as e:
            raise SheetsAPIError(f"Sheets {operation} failed: {e}") from e

    def read_all_rows(self, range_spec: str) -> List[List[Any]]:
        """Every row in ``range_spec`` as value arrays; trailing empty cells are omitted by the API."""
        request = self.service.spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=range_spec,
            valueRenderOption="UNFORMATTED_VALUE",
        )
        result = self._execute(request, "values.get")
        return result.get("values", [])

    def batch_write_cells(self, writes: Sequence[CellWrite]) -> int:
        """
        Write all cells in one values.batchUpdate call.

        The call is all-or-nothing on the Sheets side. Returns the number of
        cells sent; an empty batch makes no request.
        """
        if not writes:
            return 0
        request = self.service.spreadsheets().values().batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={
                "valueInputOption": "RAW",
                "data": [w.as_value_range() for w in writes],
            },
        )
        self._execute(request, "values.batchUpdate")
        logger.debug("Wrote %d cells to %s", len(writes), self.spreadsheet_id)
        return len(writes)

    def write_cell(self, range_spec: str, value: Any) -> None:
        request = self.service.spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=range_spec,
            valueInputOption="RAW",
            body={"values": [[value]]},
        )
        self._execute(request, "values.update")

    def append_rows(self, range_spec: str, rows: Sequence[Sequence[Any]]) -> int:
        if not rows:
            return 0
        request = self.service.spreadsheets().values().append(
            spreadsheetId=self.spreadsheet_id,
            range=range_spec,
            valueInputOption="RAW",
            insertDataOption="INSERT_ROWS",
            body={"values": [list(r) for r in rows]},
        )
        self._execute(request, "values.append")
        return len(rows)
