"""Tests for the Google Sheets document source."""

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from boq_extraction.core.config import GoogleSheetsSettings
from boq_extraction.core.exceptions import ConfigurationError, SheetSourceError
from boq_extraction.services.sheet_source import GoogleSheetSource, render_sheet

TOKEN_URL = "https://oauth2.example.test/token"
SHEETS_URL = "https://sheets.example.test/v4/spreadsheets"


@pytest.fixture(scope="module")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def sheets_settings(private_key):
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    return GoogleSheetsSettings().model_copy(update={
        "service_account_email": "boq-reader@project.iam.gserviceaccount.com",
        "service_account_private_key": pem,
        "token_url": TOKEN_URL,
        "sheets_api_url": SHEETS_URL,
    })


def make_transport(private_key, values_status=200, meta_status=200, assertions=None):
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == TOKEN_URL:
            form = dict(item.split("=", 1) for item in request.content.decode().split("&"))
            if assertions is not None:
                assertions.append(form["assertion"])
            return httpx.Response(200, json={"access_token": "token-123"})

        assert request.headers["Authorization"] == "Bearer token-123"
        if url == f"{SHEETS_URL}/sheet-1":
            return httpx.Response(meta_status, json={"sheets": [
                {"properties": {"title": "Cover Page"}},
                {"properties": {"title": "Bill 1"}},
                {"properties": {"title": "Bill 2"}},
            ]})
        if url == f"{SHEETS_URL}/sheet-1/values/Bill%201":
            return httpx.Response(values_status, json={"values": [
                ["Item", "Description", "Qty"],
                ["A1", "LED panel", 10],
            ]})
        if url == f"{SHEETS_URL}/sheet-1/values/Bill%202":
            return httpx.Response(200, json={"values": [["B1", "Cable", None, "m"]]})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def test_render_sheet():
    rendered = render_sheet("Bill 1", [["A1", "LED", 10], ["A2", None, "5"]])
    assert rendered == "=== SHEET: Bill 1 ===\nA1\tLED\t10\nA2\t\t5"


@pytest.mark.asyncio
async def test_fetch_document_flattens_sheets(sheets_settings, private_key):
    assertions = []
    client = httpx.AsyncClient(transport=make_transport(private_key, assertions=assertions))
    source = GoogleSheetSource(sheets_settings, http_client=client)

    text = await source.fetch_document("sheet-1")
    await client.aclose()

    assert text == (
        "=== SHEET: Bill 1 ===\nItem\tDescription\tQty\nA1\tLED panel\t10\n"
        "=== SHEET: Bill 2 ===\nB1\tCable\t\tm"
    )
    claims = jwt.decode(
        assertions[0],
        private_key.public_key(),
        algorithms=["RS256"],
        audience=TOKEN_URL,
    )
    assert claims["iss"] == "boq-reader@project.iam.gserviceaccount.com"
    assert "spreadsheets.readonly" in claims["scope"]


@pytest.mark.asyncio
async def test_failed_values_request_skips_sheet(sheets_settings, private_key):
    client = httpx.AsyncClient(transport=make_transport(private_key, values_status=500))
    source = GoogleSheetSource(sheets_settings, http_client=client)

    text = await source.fetch_document("sheet-1")
    await client.aclose()

    assert "Bill 1" not in text
    assert "=== SHEET: Bill 2 ===" in text


@pytest.mark.asyncio
async def test_metadata_failure_raises(sheets_settings, private_key):
    client = httpx.AsyncClient(transport=make_transport(private_key, meta_status=403))
    source = GoogleSheetSource(sheets_settings, http_client=client)

    with pytest.raises(SheetSourceError):
        await source.fetch_document("sheet-1")
    await client.aclose()


@pytest.mark.asyncio
async def test_missing_credentials_raise_configuration_error():
    source = GoogleSheetSource(GoogleSheetsSettings().model_copy(update={
        "service_account_email": "",
        "service_account_private_key": "",
    }))

    with pytest.raises(ConfigurationError):
        await source.fetch_document("sheet-1")
