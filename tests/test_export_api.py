"""Tests for the admin CSV export endpoint."""

import csv
import io

import pytest
from httpx import AsyncClient

from conftest import create_issue
from issuedesk.services.export import EXPORT_COLUMNS

EXPORT_URL = "/api/issues/admin/export/issues"


@pytest.mark.asyncio
async def test_admin_downloads_every_issue(
    async_client: AsyncClient, customer_headers, other_customer_headers, admin_headers
):
    first = await create_issue(async_client, customer_headers, description="has, comma")
    second = await create_issue(async_client, other_customer_headers, title="Broken door")

    resp = await async_client.get(EXPORT_URL, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert resp.headers["content-disposition"] == 'attachment; filename="issues_export.csv"'

    reader = csv.DictReader(io.StringIO(resp.text))
    assert tuple(reader.fieldnames) == EXPORT_COLUMNS
    rows = {row["id"]: row for row in reader}
    assert set(rows) == {first["id"], second["id"]}
    assert rows[first["id"]]["description"] == "has, comma"
    assert rows[first["id"]]["user_id"] == first["user_id"]
    assert rows[second["id"]]["title"] == "Broken door"
    assert rows[second["id"]]["created_at"].endswith("Z")


@pytest.mark.asyncio
async def test_export_with_no_issues_has_header_only(async_client: AsyncClient, admin_headers):
    resp = await async_client.get(EXPORT_URL, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.text.strip() == ",".join(EXPORT_COLUMNS)


@pytest.mark.asyncio
async def test_export_is_admin_only(
    async_client: AsyncClient, customer_headers, technician_headers
):
    for headers in (customer_headers, technician_headers):
        resp = await async_client.get(EXPORT_URL, headers=headers)
        assert resp.status_code == 403
        assert resp.json() == {"message": "Admin access required."}

    resp = await async_client.get(EXPORT_URL)
    assert resp.status_code == 401
