"""Google Sheets v4 client for the survey results spreadsheet.

Handles:
- Service-account authentication (google-auth)
- Worksheet metadata and resizing
- Header row read/write
- Row append

Note: Requires the spreadsheets scope, and the service account must have
edit access to the spreadsheet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Sequence
from urllib.parse import quote

import httpx
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import service_account
from starlette.concurrency import run_in_threadpool

from store_survey.core.config import settings

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class SheetsClientError(Exception):
    """A Sheets API call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class WorksheetInfo:
    sheet_id: int
    title: str
    row_count: int
    column_count: int


def _a1_range(title: str, cells: str) -> str:
    escaped = title.replace("'", "''")
    return f"'{escaped}'!{cells}"


def build_credentials(
    client_email: str,
    private_key: str,
) -> service_account.Credentials:
    """Build service-account credentials scoped to spreadsheets."""
    if not client_email or not private_key:
        raise SheetsClientError("Google Sheets service account is not configured")
    return service_account.Credentials.from_service_account_info(
        {
            "type": "service_account",
            "client_email": client_email,
            "private_key": private_key,
            "token_uri": GOOGLE_TOKEN_URI,
        },
        scopes=SHEETS_SCOPES,
    )


class GoogleSheetsClient:
    """Thin async wrapper over the Sheets REST API for one spreadsheet."""

    def __init__(
        self,
        spreadsheet_id: str,
        credentials_loader: Callable[[], Any],
        http_client: httpx.AsyncClient,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.http = http_client
        self._credentials_loader = credentials_loader
        self._credentials: Any | None = None

    @classmethod
    def from_settings(cls, http_client: httpx.AsyncClient) -> "GoogleSheetsClient":
        return cls(
            settings.GOOGLE_SHEETS_SHEET_ID,
            lambda: build_credentials(
                settings.GOOGLE_SHEETS_CLIENT_EMAIL,
                settings.google_private_key,
            ),
            http_client,
        )

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _load_credentials(self) -> Any:
        if self._credentials is None:
            try:
                self._credentials = self._credentials_loader()
            except ValueError as exc:
                # google-auth raises ValueError for malformed keys.
                raise SheetsClientError("Invalid Google Sheets service account key") from exc
        return self._credentials

    async def _access_token(self) -> str:
        if not self.spreadsheet_id:
            raise SheetsClientError("Spreadsheet id is not configured")
        credentials = self._load_credentials()
        if not credentials.valid:
            # google-auth refresh is blocking (requests transport).
            try:
                await run_in_threadpool(credentials.refresh, google_requests.Request())
            except google_exceptions.GoogleAuthError as exc:
                raise SheetsClientError(f"Google authentication failed: {exc}") from exc
        return credentials.token

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        token = await self._access_token()
        url = f"{SHEETS_API_BASE}/{self.spreadsheet_id}{path}"
        try:
            response = await self.http.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.RequestError as exc:
            raise SheetsClientError(f"Sheets API request failed: {exc}") from exc

        if response.is_error:
            message = response.text
            try:
                message = response.json().get("error", {}).get("message", message)
            except ValueError:
                pass
            logger.warning(
                "Sheets API returned %s for %s %s", response.status_code, method, path
            )
            raise SheetsClientError(
                f"Sheets API error {response.status_code}: {message}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        return response.json()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def get_first_worksheet(self) -> WorksheetInfo:
        data = await self._request(
            "GET",
            "",
            params={"fields": "sheets.properties(sheetId,title,gridProperties)"},
        )
        sheets = data.get("sheets") or []
        if not sheets:
            raise SheetsClientError("Spreadsheet has no worksheets")
        props = sheets[0].get("properties", {})
        grid = props.get("gridProperties", {})
        return WorksheetInfo(
            sheet_id=int(props.get("sheetId", 0)),
            title=props.get("title", "Sheet1"),
            row_count=int(grid.get("rowCount", 0)),
            column_count=int(grid.get("columnCount", 0)),
        )

    async def resize(self, worksheet: WorksheetInfo, *, row_count: int, column_count: int) -> None:
        await self._request(
            "POST",
            ":batchUpdate",
            json={
                "requests": [
                    {
                        "updateSheetProperties": {
                            "properties": {
                                "sheetId": worksheet.sheet_id,
                                "gridProperties": {
                                    "rowCount": row_count,
                                    "columnCount": column_count,
                                },
                            },
                            "fields": "gridProperties(rowCount,columnCount)",
                        }
                    }
                ]
            },
        )

    async def get_header_row(self, worksheet: WorksheetInfo) -> list[str]:
        a1 = quote(_a1_range(worksheet.title, "1:1"), safe="")
        data = await self._request("GET", f"/values/{a1}")
        rows = data.get("values") or []
        if not rows:
            return []
        return [str(cell) for cell in rows[0]]

    async def set_header_row(self, worksheet: WorksheetInfo, headers: Sequence[str]) -> None:
        a1 = quote(_a1_range(worksheet.title, "A1"), safe="")
        await self._request(
            "PUT",
            f"/values/{a1}",
            params={"valueInputOption": "RAW"},
            json={"values": [list(headers)]},
        )

    async def append_row(self, worksheet: WorksheetInfo, values: Sequence[str]) -> None:
        a1 = quote(_a1_range(worksheet.title, "A1"), safe="")
        await self._request(
            "POST",
            f"/values/{a1}:append",
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"values": [list(values)]},
        )
