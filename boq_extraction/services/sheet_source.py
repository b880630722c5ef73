"""Fetch a Google Sheets workbook and flatten it into sheet-marked text."""

import time
from typing import Any, Optional
from urllib.parse import quote

import httpx
import jwt

from boq_extraction.core.config import GoogleSheetsSettings
from boq_extraction.core.exceptions import ConfigurationError, SheetSourceError
from boq_extraction.services.extraction.constants import SHEET_MARKER
from boq_extraction.utils.logging import get_logger

LOGGER = get_logger(__name__)

SCOPES = (
    "https://www.googleapis.com/auth/spreadsheets.readonly",
    "https://www.googleapis.com/auth/drive.readonly",
)
SKIPPED_SHEET_KEYWORDS = ("cover", "summary", "contents", "index", "template")
TOKEN_LIFETIME_SECONDS = 3600


def render_sheet(title: str, rows: list[list[Any]]) -> str:
    """Render one sheet's values as a marker line followed by tab-joined rows."""
    lines = [f"{SHEET_MARKER} {title} ==="]
    lines.extend("\t".join("" if cell is None else str(cell) for cell in row) for row in rows)
    return "\n".join(lines)


class GoogleSheetSource:
    """Service-account client for the Sheets v4 API."""

    def __init__(self, sheets_settings: GoogleSheetsSettings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = sheets_settings
        self._http_client = http_client

    def _signed_assertion(self) -> str:
        if not self.settings.service_account_email or not self.settings.service_account_private_key:
            raise ConfigurationError("Google service account credentials are not configured")

        now = int(time.time())
        claims = {
            "iss": self.settings.service_account_email,
            "scope": " ".join(SCOPES),
            "aud": self.settings.token_url,
            "iat": now,
            "exp": now + TOKEN_LIFETIME_SECONDS,
        }
        private_key = self.settings.service_account_private_key.replace("\\n", "\n")
        return jwt.encode(claims, private_key, algorithm="RS256")

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            self.settings.token_url,
            data={
                "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                "assertion": self._signed_assertion(),
            },
        )
        if response.status_code != 200:
            raise SheetSourceError(f"Failed to get access token: {response.status_code} {response.text[:300]}")
        return response.json()["access_token"]

    async def fetch_document(self, spreadsheet_id: str) -> str:
        """Return the workbook as ``=== SHEET: <title> ===`` blocks.

        Raises:
            SheetSourceError: If the token exchange or metadata request fails
            ConfigurationError: If service account credentials are missing
        """
        if self._http_client is not None:
            return await self._fetch(self._http_client, spreadsheet_id)
        async with httpx.AsyncClient(timeout=self.settings.timeout_seconds) as client:
            return await self._fetch(client, spreadsheet_id)

    async def _fetch(self, client: httpx.AsyncClient, spreadsheet_id: str) -> str:
        try:
            token = await self._access_token(client)
            headers = {"Authorization": f"Bearer {token}"}
            base_url = f"{self.settings.sheets_api_url}/{spreadsheet_id}"

            meta = await client.get(base_url, headers=headers)
            if meta.status_code != 200:
                raise SheetSourceError(f"Failed to fetch Google Sheet: {meta.status_code}")

            blocks = []
            for sheet in meta.json().get("sheets", []):
                title = (sheet.get("properties") or {}).get("title")
                if not title or any(k in title.lower() for k in SKIPPED_SHEET_KEYWORDS):
                    continue

                values = await client.get(f"{base_url}/values/{quote(title, safe='')}", headers=headers)
                if values.status_code != 200:
                    LOGGER.warning(
                        f"Skipping sheet {title}: values request failed",
                        extra={"status_code": values.status_code},
                    )
                    continue

                rows = values.json().get("values", [])
                if rows:
                    blocks.append(render_sheet(title, rows))
        except httpx.HTTPError as e:
            raise SheetSourceError(f"Google Sheets request failed: {e}", e) from e

        LOGGER.info(f"Fetched {len(blocks)} sheets from spreadsheet {spreadsheet_id}")
        return "\n".join(blocks)
