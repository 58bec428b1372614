"""
Tests for the CSV import driver (scripts/import_trips.py).
"""

import csv
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from scripts.import_trips import load_rows, run_importer

FIELDS = [
    "trip_date", "manufacturer", "model", "body_type", "segment", "battery_kwh", "range_km",
    "charging_type", "price_eur", "origin_city", "origin_country", "destination_city",
    "destination_country", "distance_km", "co2_g_per_km", "grid_intensity_gco2_per_kwh",
]


def write_csv(path, rows, blank_tail=False):
    with open(path, "w", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
        if blank_tail:
            fh.write("," * (len(FIELDS) - 1) + "\n")
    return path


def test_load_rows_keeps_text_and_drops_blank_rows(tmp_path, sample_row):
    path = write_csv(tmp_path / "input.csv", [sample_row], blank_tail=True)

    rows = load_rows(path)

    assert len(rows) == 1
    assert rows[0]["trip_date"] == "10/02/2025"
    assert rows[0]["battery_kwh"] == "80"
    assert rows[0]["destination_city"] == "Casablanca"


@pytest.mark.asyncio
async def test_import_through_api(tmp_path, async_client, sample_row, second_row):
    path = write_csv(tmp_path / "input.csv", [sample_row, second_row, sample_row], blank_tail=True)

    summary = await run_importer(path, client=async_client)

    assert summary["ok"] == 3
    assert summary["fail"] == 0
    # the repeated row is absorbed by idempotent create
    assert summary["stats"] == {"manufacturers": 2, "models": 2, "variants": 2, "locations": 4, "trips": 2}


@pytest.mark.asyncio
async def test_rejected_rows_are_counted_not_retried(tmp_path, async_client, sample_row, second_row):
    path = write_csv(tmp_path / "input.csv", [sample_row, {**second_row, "body_type": "Minivan"}])

    summary = await run_importer(path, client=async_client)

    assert summary["ok"] == 1
    assert summary["fail"] == 1
    assert summary["stats"]["trips"] == 1


@pytest.mark.asyncio
async def test_server_errors_are_retried(tmp_path, sample_row):
    path = write_csv(tmp_path / "input.csv", [sample_row])
    attempts = {"post": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            attempts["post"] += 1
            if attempts["post"] == 1:
                return httpx.Response(503, text="busy")
            return httpx.Response(201, json={"id": 1})
        return httpx.Response(200, json={"manufacturers": 1, "models": 1, "variants": 1, "locations": 2, "trips": 1})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as client:
        with patch("core.retry.asyncio.sleep", new=AsyncMock()):
            summary = await run_importer(path, client=client)

    assert attempts["post"] == 2
    assert summary["ok"] == 1
    assert summary["fail"] == 0
