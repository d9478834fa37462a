"""Google Sheets reader for submitted questions.

Reads the first sheet of a spreadsheet through the Sheets v4 REST API and
maps each data row onto the header row. Authentication uses a service
account with the spreadsheets scope.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

import aiohttp
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from .errors import SheetError

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def load_credentials(
    creds_json: str = "",
    creds_file: Optional[Path] = None,
) -> service_account.Credentials:
    """Build service account credentials.

    Args:
        creds_json: Service account key as a JSON string (takes precedence)
        creds_file: Path to a service account key file

    Raises:
        SheetError: If no usable key is available
    """
    try:
        if creds_json:
            info = json.loads(creds_json)
            logger.info("Using service account from GOOGLE_CREDS")
        elif creds_file is not None and creds_file.exists():
            info = json.loads(creds_file.read_text(encoding="utf-8"))
            logger.info(f"Using service account from {creds_file}")
        else:
            raise SheetError("No service account credentials (set GOOGLE_CREDS or add credentials.json)")
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
    except (ValueError, KeyError) as e:
        raise SheetError(f"Invalid service account credentials: {e}") from e


def sheet_range(title: str) -> str:
    """A1 range covering a whole sheet.

    The title is always quoted: an unquoted title such as ``Q1`` or
    ``JAN2024`` would be read as a single cell reference.
    """
    return "'" + title.replace("'", "''") + "'"


def rows_from_values(values: list[list[Any]]) -> list[dict[str, str]]:
    """Map a values grid onto its header row.

    The first row holds the column names; short rows get empty strings for
    their missing trailing cells.
    """
    if not values:
        return []
    header = [str(cell).strip() for cell in values[0]]
    rows = []
    for raw in values[1:]:
        cells = [str(cell) for cell in raw] + [""] * (len(header) - len(raw))
        rows.append(dict(zip(header, cells)))
    return rows


class SheetClient:
    """Async reader for one spreadsheet.

    Args:
        spreadsheet_id: Id from the spreadsheet URL
        credentials: Service account credentials (None for public sheets)
        timeout: Total request timeout in seconds
    """

    def __init__(
        self,
        spreadsheet_id: str,
        credentials: Optional[service_account.Credentials] = None,
        timeout: float = 30.0,
    ):
        self.spreadsheet_id = spreadsheet_id
        self._credentials = credentials
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            )
        return self._session

    async def _auth_headers(self) -> dict[str, str]:
        if self._credentials is None:
            return {}
        if not self._credentials.valid:
            # google-auth refreshes with a blocking HTTP call
            await asyncio.to_thread(self._credentials.refresh, Request())
        return {"Authorization": f"Bearer {self._credentials.token}"}

    async def _get_json(self, url: str, params: Optional[dict[str, str]] = None) -> dict[str, Any]:
        session = await self._get_session()
        headers = await self._auth_headers()
        async with session.get(url, params=params, headers=headers) as response:
            if response.status != 200:
                text = await response.text()
                raise SheetError(f"HTTP {response.status}: {text[:200]}")
            return await response.json()

    async def first_sheet_title(self) -> str:
        """Load spreadsheet metadata and return the first sheet's title."""
        data = await self._get_json(
            f"{SHEETS_API_URL}/{self.spreadsheet_id}",
            params={"fields": "sheets.properties.title"},
        )
        sheets = data.get("sheets") or []
        if not sheets:
            raise SheetError("Spreadsheet has no sheets")
        return sheets[0]["properties"]["title"]

    async def fetch_rows(self) -> list[dict[str, str]]:
        """Read every data row of the first sheet.

        Raises:
            SheetError: On authentication, network or API failures
        """
        try:
            title = await self.first_sheet_title()
            data = await self._get_json(
                f"{SHEETS_API_URL}/{self.spreadsheet_id}/values/{quote(sheet_range(title), safe='')}"
            )
        except SheetError:
            raise
        except asyncio.TimeoutError as e:
            raise SheetError("Timeout reading spreadsheet") from e
        except aiohttp.ClientError as e:
            raise SheetError(f"Network error: {e}") from e
        except Exception as e:
            # google-auth raises its own RefreshError family
            raise SheetError(str(e)) from e

        return rows_from_values(data.get("values", []))

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
